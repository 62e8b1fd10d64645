"""Local persistence for generated images and the metadata log."""

import json
import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional, Union

from fashiongen.core.errors import StorageError
from fashiongen.core.models import GenerationRecord, Success
from fashiongen.utils.image_codec import encode_filename

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ResultStore:
    """Writes generated images to a flat content directory and records them.

    The image file is the authoritative result. The metadata log is a single
    pretty-printed JSON array, newest first, maintained on a best-effort
    basis: a failed log update is logged and never fails the generation.

    Log updates are read-modify-write. They are serialized with a lock inside
    this process; separate processes sharing the same file are not
    coordinated.

    Attributes:
        content_dir: Directory that holds ``<uuid>.<ext>`` files
        metadata_file: Path of the JSON metadata log
        route_prefix: URL prefix under which content_dir is served
    """

    def __init__(self, content_dir: PathLike, metadata_file: PathLike, route_prefix: str = "/images"):
        """Initialize the store.

        Args:
            content_dir: Directory for image files
            metadata_file: JSON file holding the generation records
            route_prefix: URL prefix for served images
        """
        self.content_dir = Path(content_dir)
        self.metadata_file = Path(metadata_file)
        self.route_prefix = "/" + route_prefix.strip("/")
        self._log_lock = Lock()

    def initialize(self) -> None:
        """Create the content directory and an empty log if they are missing.

        Raises:
            StorageError: If the directories or the log cannot be created
        """
        try:
            self.content_dir.mkdir(parents=True, exist_ok=True)
            self.metadata_file.parent.mkdir(parents=True, exist_ok=True)
            if not self.metadata_file.exists():
                self.metadata_file.write_text("[]", encoding="utf-8")
                logger.info(f"Created metadata file: {self.metadata_file}")
        except OSError as e:
            raise StorageError(f"Could not prepare storage at {self.content_dir}: {e}") from e

        logger.info(f"Storing images in {self.content_dir}, metadata in {self.metadata_file}")

    def persist(
        self,
        outcome: Success,
        settings_used: Dict[str, Any],
        prompt_used: str
    ) -> GenerationRecord:
        """Save a successful generation.

        Args:
            outcome: Successful outcome carrying the image bytes
            settings_used: The request's settings object, stored verbatim
            prompt_used: Prompt sent to the model

        Returns:
            The record appended to the metadata log

        Raises:
            StorageError: If the image file could not be written
        """
        generation_id = str(uuid.uuid4())
        filename = encode_filename(generation_id, outcome.media_type)

        self._write_image(filename, outcome.image_bytes)

        record = GenerationRecord(
            generation_id=generation_id,
            created_at=_utc_timestamp(),
            settings_used=settings_used,
            prompt_used=prompt_used,
            image_path=f"{self.route_prefix}/{filename}",
        )
        self._append_record(record)
        return record

    def load_records(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Read the metadata log, newest first.

        Args:
            limit: Maximum number of records to return

        Returns:
            List of record dictionaries; empty if the log is unreadable
        """
        try:
            records = self._read_log()
        except OSError as e:
            logger.error(f"Error reading metadata file {self.metadata_file}: {e}")
            return []
        return records[:limit] if limit is not None else records

    def resolve_image_path(self, image_path: str) -> Path:
        """Map a relative URL such as ``/images/<file>`` to its file on disk."""
        return self.content_dir / Path(image_path).name

    def _write_image(self, filename: str, data: bytes) -> None:
        target = self.content_dir / filename
        temp = self.content_dir / f".{filename}.tmp"

        logger.info(f"Saving image to local path: {target}")
        try:
            self.content_dir.mkdir(parents=True, exist_ok=True)
            with open(temp, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp, target)
        except OSError as e:
            logger.error(f"Error saving image file {filename}: {e}")
            try:
                temp.unlink(missing_ok=True)
            except OSError:
                logger.warning(f"Could not remove partial file {temp}")
            raise StorageError(f"Failed to save generated image {filename}") from e

        logger.info(f"Successfully saved {filename} ({len(data)} bytes)")

    def _append_record(self, record: GenerationRecord) -> None:
        try:
            with self._log_lock:
                records = self._read_log()
                records.insert(0, record.to_json_dict())
                self._write_log(records)
            logger.info(f"Appended generation {record.generation_id} to {self.metadata_file}")
        except (OSError, TypeError, ValueError) as e:
            # The image is already saved; the log is bookkeeping only
            logger.error(f"Error updating metadata file {self.metadata_file}: {e}")

    def _read_log(self) -> List[Dict[str, Any]]:
        try:
            raw = self.metadata_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.warning(f"{self.metadata_file} not found. Starting with empty metadata.")
            return []

        try:
            records = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"{self.metadata_file} is not valid JSON. Resetting.")
            return []

        if not isinstance(records, list):
            logger.warning(f"{self.metadata_file} does not contain a JSON array. Resetting.")
            return []

        return records

    def _write_log(self, records: List[Dict[str, Any]]) -> None:
        temp = self.metadata_file.with_name(f".{self.metadata_file.name}.tmp")
        temp.write_text(json.dumps(records, indent=2), encoding="utf-8")
        os.replace(temp, self.metadata_file)
