"""Application configuration management."""

from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    These settings are automatically loaded from the .env file or environment variables.
    All sensitive data (API keys) should be stored in environment variables, not hardcoded.

    Attributes:
        gemini_api_key: Google Gemini API key (required to start)
        gemini_model: Gemini model used for image generation
        generation_timeout_ms: Time budget for one remote generation call
        max_concurrent_generations: Worker pool size for remote calls
        uploads_dir: Root directory for generated content
        image_route_prefix: URL prefix under which images are served
        max_image_mb: Largest accepted clothing image after decoding
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore'
    )

    # API Keys
    gemini_api_key: str = ""

    # Model Configuration
    gemini_model: str = "gemini-2.5-flash-image"
    generation_timeout_ms: int = 45000
    max_concurrent_generations: int = 4

    # Storage
    uploads_dir: str = "uploads"
    image_route_prefix: str = "/images"

    # Request limits
    max_image_mb: int = 10
    gallery_max_items: int = 20

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 3001
    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"
    enable_ui: bool = True

    # Production Settings
    enable_rate_limiting: bool = True
    rate_limit_requests: int = 20  # Max generations per window
    rate_limit_window: int = 60  # Window size in seconds
    enable_health_checks: bool = True

    # Testing
    run_integration_tests: bool = False

    @property
    def content_dir(self) -> Path:
        """Directory holding generated image files."""
        return Path(self.uploads_dir) / "images"

    @property
    def metadata_file(self) -> Path:
        """JSON log of generation records."""
        return Path(self.uploads_dir) / "metadata.json"

    @property
    def max_image_bytes(self) -> int:
        return self.max_image_mb * 1024 * 1024

    def validate_required_keys(self) -> None:
        """Validate that required API keys are present.

        Raises:
            ValueError: If required API keys are missing
        """
        if not self.gemini_api_key:
            raise ValueError(
                "GEMINI_API_KEY is required. "
                "Please set it in your .env file or environment variables. "
                "Get your key from: https://aistudio.google.com/apikey"
            )

        if self.generation_timeout_ms <= 0:
            raise ValueError("GENERATION_TIMEOUT_MS must be a positive number of milliseconds.")


# Global settings instance
settings = Settings()
