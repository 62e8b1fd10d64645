"""Unit tests for the Gradio callbacks."""

from unittest.mock import Mock

import pytest

from app.ui import (
    ENVIRONMENT_FIELDS,
    MODEL_FIELDS,
    build_settings,
    clear_gallery,
    default_settings,
    delete_gallery_item,
    gallery_view,
    generate_fashion_image,
    open_gallery,
    settings_to_values,
)
from fashiongen.core.generation_service import GenerationService
from fashiongen.core.models import GenerationResponse
from fashiongen.core.options import DEFAULT_ENVIRONMENT_SETTINGS, DEFAULT_MODEL_SETTINGS


@pytest.fixture
def default_values():
    return settings_to_values(None)


class TestSettingsMapping:
    """Tests for dropdown values <-> settings object."""

    def test_defaults_round_trip(self, default_values):
        """Test default values map back to the default settings object."""
        assert len(default_values) == len(MODEL_FIELDS) + len(ENVIRONMENT_FIELDS)
        assert build_settings(*default_values) == default_settings()

    def test_preset_label_to_key(self, default_values):
        """Test the background label is sent as its preset key."""
        values = list(default_values)
        values[len(MODEL_FIELDS)] = "Outdoor - Nature"

        settings = build_settings(*values)

        assert settings["environmentSettings"]["backgroundPreset"] == "outdoor-nature"

    def test_custom_background_trimmed(self, default_values):
        """Test the custom background is stripped."""
        values = list(default_values)
        values[len(MODEL_FIELDS) + 1] = "  a rooftop bar  "

        assert build_settings(*values)["environmentSettings"]["backgroundCustom"] == "a rooftop bar"

    def test_restore_persisted_settings(self):
        """Test stored values override defaults and junk is ignored."""
        state = {
            "modelSettings": {"gender": "Male", "unknownField": "x", "height": 3},
            "environmentSettings": {"backgroundPreset": "seasonal-winter"},
        }

        values = settings_to_values(state)

        assert values[MODEL_FIELDS.index("gender")] == "Male"
        assert values[MODEL_FIELDS.index("height")] == DEFAULT_MODEL_SETTINGS["height"]
        assert values[len(MODEL_FIELDS)] == "Seasonal - Winter"

    def test_unknown_preset_restores_default(self):
        """Test an unknown stored preset falls back to the default label."""
        values = settings_to_values({"environmentSettings": {"backgroundPreset": "moon-base"}})

        restored = build_settings(*values)
        assert restored["environmentSettings"]["backgroundPreset"] == DEFAULT_ENVIRONMENT_SETTINGS["backgroundPreset"]


class TestGenerateCallback:
    """Tests for the generate button callback."""

    def test_success_adds_to_gallery(self, mock_backend, result_store, sample_fake_image, default_values):
        """Test a successful generation shows the image and updates the gallery."""
        service = GenerationService(mock_backend, result_store)

        image_path, prompt, status, gallery, settings = generate_fashion_image(
            service, result_store, sample_fake_image, [], 20, *default_values
        )

        assert image_path is not None
        assert prompt.startswith("Generate a photorealistic fashion photograph")
        assert status.startswith("✅")
        assert len(gallery) == 1
        assert result_store.resolve_image_path(gallery[0]["relativePath"]).is_file()
        assert settings == default_settings()

    def test_missing_image(self, result_store, default_values):
        """Test nothing is sent without an uploaded image."""
        service = Mock()

        image_path, _, status, gallery, _ = generate_fashion_image(
            service, result_store, None, [], 20, *default_values
        )

        assert image_path is None
        assert "upload" in status
        assert gallery == []
        service.handle.assert_not_called()

    def test_failure_shows_message(self, result_store, sample_fake_image, default_values):
        """Test a failed generation shows the envelope message and keeps the gallery."""
        service = Mock()
        service.handle.return_value = GenerationResponse.failure("Image generation took too long", 504)
        existing = [{"relativePath": "/images/old.png", "timestamp": 1}]

        image_path, _, status, gallery, _ = generate_fashion_image(
            service, result_store, sample_fake_image, existing, 20, *default_values
        )

        assert image_path is None
        assert "took too long" in status
        assert gallery == existing

    def test_payload_is_data_uri(self, result_store, sample_fake_image, default_values):
        """Test the upload is sent as a PNG data URI."""
        service = Mock()
        service.handle.return_value = GenerationResponse.failure("x", 500)

        generate_fashion_image(service, result_store, sample_fake_image, [], 20, *default_values)

        payload = service.handle.call_args[0][0]
        assert payload["imageData"].startswith("data:image/png;base64,")
        assert set(payload["settings"]) == {"modelSettings", "environmentSettings"}


class TestGalleryCallbacks:
    """Tests for gallery helpers."""

    def test_delete_by_index(self, result_store):
        """Test the selected entry is removed."""
        (result_store.content_dir / "a.png").write_bytes(b"x")
        (result_store.content_dir / "b.png").write_bytes(b"x")
        state = [
            {"relativePath": "/images/b.png", "timestamp": 2},
            {"relativePath": "/images/a.png", "timestamp": 1},
        ]

        assert delete_gallery_item(state, 0, result_store, 20) == [{"relativePath": "/images/a.png", "timestamp": 1}]
        assert delete_gallery_item(state, None, result_store, 20) == state
        assert delete_gallery_item(state, 5, result_store, 20) == state

    def test_delete_with_hidden_entry(self, result_store):
        """Test the index refers to the displayed items, not the stored list."""
        (result_store.content_dir / "present.png").write_bytes(b"x")
        state = [
            {"relativePath": "/images/gone.png", "timestamp": 2},
            {"relativePath": "/images/present.png", "timestamp": 1},
        ]

        items, _ = gallery_view(state, result_store)
        assert [path for path, _ in items] == [str(result_store.content_dir / "present.png")]

        remaining = delete_gallery_item(state, 0, result_store, 20)

        assert [entry["relativePath"] for entry in remaining] == ["/images/gone.png"]

    def test_clear(self):
        """Test clearing returns an empty persisted gallery."""
        state = [{"relativePath": "/images/a.png", "timestamp": 1}]

        assert clear_gallery(state, 20) == []

    def test_saved_state_follows_changes(self):
        """Test the saved copy is rewritten on every gallery change."""
        history, saved = open_gallery([{"relativePath": "/images/a.png", "timestamp": 1}], 20)
        assert [entry["relativePath"] for entry in saved] == ["/images/a.png"]

        history.add("/images/b.png")
        assert [entry["relativePath"] for entry in saved] == ["/images/b.png", "/images/a.png"]

        history.delete("/images/a.png")
        assert [entry["relativePath"] for entry in saved] == ["/images/b.png"]

    def test_gallery_view_skips_missing_files(self, result_store):
        """Test entries whose file is gone are not displayed but still counted."""
        (result_store.content_dir / "present.png").write_bytes(b"x")
        state = [
            {"relativePath": "/images/present.png", "timestamp": 2},
            {"relativePath": "/images/gone.png", "timestamp": 1},
        ]

        items, count = gallery_view(state, result_store)

        assert [path for path, _ in items] == [str(result_store.content_dir / "present.png")]
        assert count == "Gallery: 2 images"
