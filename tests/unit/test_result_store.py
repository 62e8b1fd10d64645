"""Unit tests for result persistence."""

import json
import re
import threading
from unittest.mock import patch

import pytest

from fashiongen.core.errors import StorageError
from fashiongen.core.models import Success
from fashiongen.utils.result_store import ResultStore

UUID_PATTERN = r"[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}"


@pytest.fixture
def success(sample_image_bytes):
    return Success(image_bytes=sample_image_bytes, media_type="image/png")


class TestInitialize:
    """Tests for storage preparation."""

    def test_creates_directories_and_log(self, tmp_path):
        """Test missing directories and an empty log are created."""
        store = ResultStore(tmp_path / "a" / "images", tmp_path / "a" / "metadata.json")

        store.initialize()

        assert store.content_dir.is_dir()
        assert json.loads(store.metadata_file.read_text()) == []

    def test_keeps_existing_log(self, tmp_path):
        """Test an existing log is not overwritten."""
        metadata = tmp_path / "metadata.json"
        metadata.write_text('[{"generationId": "old"}]')
        store = ResultStore(tmp_path / "images", metadata)

        store.initialize()

        assert store.load_records() == [{"generationId": "old"}]

    def test_unwritable_location(self, tmp_path):
        """Test a content directory that cannot be created raises StorageError."""
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        store = ResultStore(blocker / "images", tmp_path / "metadata.json")

        with pytest.raises(StorageError):
            store.initialize()

    def test_route_prefix_normalised(self, tmp_path):
        """Test slashes around the route prefix are normalised."""
        store = ResultStore(tmp_path, tmp_path / "m.json", route_prefix="images/")

        assert store.route_prefix == "/images"


class TestPersist:
    """Tests for saving generations."""

    def test_persist_writes_file_and_record(self, result_store, success, sample_settings):
        """Test a success produces a file and a matching record."""
        record = result_store.persist(success, sample_settings, "the prompt")

        assert re.fullmatch(rf"/images/{UUID_PATTERN}\.png", record.image_path)
        assert result_store.resolve_image_path(record.image_path).read_bytes() == success.image_bytes
        assert record.status == "completed"
        assert record.created_at.endswith("Z")

        records = result_store.load_records()
        assert len(records) == 1
        assert records[0] == {
            "generationId": record.generation_id,
            "createdAt": record.created_at,
            "settingsUsed": sample_settings,
            "promptUsed": "the prompt",
            "imagePath": record.image_path,
            "status": "completed",
        }

    def test_records_newest_first(self, result_store, success, sample_settings):
        """Test N successes give N records, newest first, with unique ids."""
        created = [result_store.persist(success, sample_settings, f"prompt {i}") for i in range(5)]

        records = result_store.load_records()

        assert [r["generationId"] for r in records] == [r.generation_id for r in reversed(created)]
        assert len({r["generationId"] for r in records}) == 5
        for record in records:
            assert result_store.resolve_image_path(record["imagePath"]).is_file()

    def test_concurrent_persist(self, result_store, success, sample_settings):
        """Test simultaneous saves each land in the log exactly once."""
        workers = 8
        barrier = threading.Barrier(workers)
        errors = []

        def save(i):
            barrier.wait()
            try:
                result_store.persist(success, sample_settings, f"prompt {i}")
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=save, args=(i,)) for i in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert errors == []
        records = result_store.load_records()
        assert len(records) == workers
        assert len({r["generationId"] for r in records}) == workers
        assert {r["promptUsed"] for r in records} == {f"prompt {i}" for i in range(workers)}
        for record in records:
            assert result_store.resolve_image_path(record["imagePath"]).is_file()

    def test_load_records_limit(self, result_store, success, sample_settings):
        """Test the limit keeps the newest records."""
        for i in range(3):
            result_store.persist(success, sample_settings, f"prompt {i}")

        records = result_store.load_records(limit=2)

        assert [r["promptUsed"] for r in records] == ["prompt 2", "prompt 1"]

    def test_extension_from_media_type(self, result_store, sample_settings):
        """Test the file extension follows the returned media type."""
        record = result_store.persist(Success(b"jpeg-bytes", "image/jpeg"), sample_settings, "p")

        assert record.image_path.endswith(".jpg")

    def test_malformed_log_is_reset(self, result_store, success, sample_settings):
        """Test an unparsable log is treated as empty and replaced."""
        result_store.metadata_file.write_text("{not json")

        record = result_store.persist(success, sample_settings, "p")

        records = json.loads(result_store.metadata_file.read_text())
        assert [r["generationId"] for r in records] == [record.generation_id]

    def test_non_list_log_is_reset(self, result_store, success, sample_settings):
        """Test a log that is not an array is treated as empty."""
        result_store.metadata_file.write_text('{"generationId": "x"}')

        result_store.persist(success, sample_settings, "p")

        assert len(result_store.load_records()) == 1

    def test_missing_log_is_recreated(self, result_store, success, sample_settings):
        """Test a deleted log is recreated on the next success."""
        result_store.metadata_file.unlink()

        result_store.persist(success, sample_settings, "p")

        assert len(result_store.load_records()) == 1

    def test_image_write_failure(self, result_store, success, sample_settings):
        """Test a failed image write raises StorageError and records nothing."""
        with patch('fashiongen.utils.result_store.os.replace', side_effect=OSError("disk full")):
            with pytest.raises(StorageError):
                result_store.persist(success, sample_settings, "p")

        assert result_store.load_records() == []
        assert list(result_store.content_dir.iterdir()) == []

    def test_log_write_failure_keeps_image(self, result_store, success, sample_settings):
        """Test a failed log update does not fail the generation."""
        with patch.object(result_store, '_write_log', side_effect=OSError("read-only")):
            record = result_store.persist(success, sample_settings, "p")

        assert result_store.resolve_image_path(record.image_path).is_file()
        assert result_store.load_records() == []

    def test_no_temp_files_left(self, result_store, success, sample_settings):
        """Test only final files remain after saving."""
        result_store.persist(success, sample_settings, "p")

        names = [p.name for p in result_store.content_dir.iterdir()]
        assert len(names) == 1
        assert not names[0].startswith(".")


class TestResolveImagePath:
    """Tests for URL-to-file mapping."""

    def test_resolve(self, result_store):
        """Test only the file name of the URL path is used."""
        path = result_store.resolve_image_path("/images/../../etc/passwd")

        assert path == result_store.content_dir / "passwd"
