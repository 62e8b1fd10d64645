"""Shared test fixtures and configuration."""

import pytest
import os
import io
from unittest.mock import Mock
from PIL import Image

from fashiongen.core.base_backend import BaseBackend
from fashiongen.core.models import Success
from fashiongen.utils.image_codec import encode_data_uri
from fashiongen.utils.result_store import ResultStore


@pytest.fixture
def sample_fake_image():
    """Return a fake PIL Image for testing."""
    return Image.new('RGB', (64, 64), color='red')


@pytest.fixture
def sample_image_bytes(sample_fake_image):
    """Return sample image as PNG bytes."""
    img_byte_arr = io.BytesIO()
    sample_fake_image.save(img_byte_arr, format='PNG')
    return img_byte_arr.getvalue()


@pytest.fixture
def sample_data_uri(sample_image_bytes):
    """Return the sample image as a PNG data URI."""
    return encode_data_uri(sample_image_bytes, "image/png")


@pytest.fixture
def sample_settings():
    """Return a settings object as sent by the browser."""
    return {
        "modelSettings": {
            "gender": "Female",
            "bodyType": "Curvy",
            "ageRange": "18-25",
            "ethnicity": "Ambiguous Ethnicity",
            "hairStyle": "Long",
            "hairColor": "Brown",
            "height": "Average",
            "pose": "Walking",
            "accessories": "None",
        },
        "environmentSettings": {
            "backgroundPreset": "outdoor-nature",
            "backgroundCustom": "",
            "lighting": "Natural Daylight",
            "lensStyle": "Portrait (Shallow DoF)",
            "timeOfDay": "Morning",
            "weather": "Clear",
            "season": "Spring",
            "cameraAngle": "Eye Level",
        },
    }


@pytest.fixture
def sample_payload(sample_settings, sample_data_uri):
    """Return a complete /generate request body."""
    return {"settings": sample_settings, "imageData": sample_data_uri}


@pytest.fixture
def mock_backend(sample_image_bytes):
    """Return a backend stub that succeeds with a PNG image."""
    backend = Mock(spec=BaseBackend)
    backend.name = "Stub"
    backend.generate.return_value = Success(image_bytes=sample_image_bytes, media_type="image/png")
    backend.health_check.return_value = True
    return backend


@pytest.fixture
def result_store(tmp_path):
    """Return an initialized ResultStore under a temporary directory."""
    store = ResultStore(tmp_path / "uploads" / "images", tmp_path / "uploads" / "metadata.json")
    store.initialize()
    return store


@pytest.fixture
def test_api_key():
    """Return a test API key."""
    return "AIza_test_key_12345"


# Skip integration tests unless explicitly requested
def pytest_collection_modifyitems(config, items):
    """Automatically skip integration tests unless RUN_INTEGRATION_TESTS is set."""
    skip_integration = pytest.mark.skip(reason="Integration tests disabled (set RUN_INTEGRATION_TESTS=true to enable)")

    for item in items:
        if "integration" in item.keywords:
            if not os.getenv("RUN_INTEGRATION_TESTS", "").lower() == "true":
                item.add_marker(skip_integration)
