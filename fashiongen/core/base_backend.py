"""Abstract base class for image generation backends."""

from abc import ABC, abstractmethod
from typing import Optional

from .models import GenerationOutcome


class BaseBackend(ABC):
    """Abstract interface for a remote image model.

    A backend performs exactly one remote call per ``generate`` and never
    raises for remote-side failures: blocked content, timeouts, empty answers
    and transport errors are all returned as outcome values. Retrying is the
    caller's decision.

    Attributes:
        api_key: API key for the remote service
    """

    def __init__(self, api_key: Optional[str] = None):
        """Initialize the backend.

        Args:
            api_key: API key for authentication with the remote service
        """
        self.api_key = api_key

    @abstractmethod
    def generate(
        self,
        prompt: str,
        image_bytes: bytes,
        media_type: str,
        timeout_ms: int
    ) -> GenerationOutcome:
        """Generate a fashion photo from a prompt and a clothing image.

        Args:
            prompt: Text prompt built from the user's settings
            image_bytes: Raw bytes of the uploaded clothing image
            media_type: Media type of ``image_bytes``
            timeout_ms: Time budget for the remote call

        Returns:
            One of Success, Blocked, Timeout, TransportError or EmptyResponse
        """
        pass

    @abstractmethod
    def health_check(self) -> bool:
        """Check if the backend is reachable and the credentials work.

        Returns:
            True if the backend is healthy, False otherwise
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the human-readable name of this backend."""
        pass

    def __repr__(self) -> str:
        """String representation of the backend."""
        return f"{self.__class__.__name__}(name='{self.name}')"
