"""Google Gemini backend implementation."""

import base64
import logging
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, List, Optional

from google import genai
from google.genai import types

from fashiongen.core.base_backend import BaseBackend
from fashiongen.core.models import (
    Blocked,
    EmptyResponse,
    GenerationOutcome,
    Success,
    Timeout,
    TransportError,
    TransportErrorKind,
)

logger = logging.getLogger(__name__)

# Finish reasons that mean the model completed normally
NORMAL_FINISH_REASONS = frozenset({"STOP", "FINISH_REASON_UNSPECIFIED"})

# Safety probabilities that are not worth reporting to the user
_LOW_PROBABILITIES = frozenset({"NEGLIGIBLE", "LOW", "HARM_PROBABILITY_UNSPECIFIED"})

# Checked in order; the first matching group wins
_ERROR_MARKERS = (
    (TransportErrorKind.INVALID_CREDENTIAL, ("api key not valid", "api_key_invalid", "invalid api key",
                                             "unauthenticated", "401")),
    (TransportErrorKind.PERMISSION, ("permission", "403", "not found", "not_found", "404")),
    (TransportErrorKind.CONTENT_POLICY, ("safety", "content policy", "prohibited", "blocked")),
    (TransportErrorKind.QUOTA, ("quota", "resource_exhausted", "rate limit", "429")),
    (TransportErrorKind.TIMEOUT, ("timeout", "timed out", "deadline")),
)


def _enum_name(value: Any) -> Optional[str]:
    if value is None:
        return None
    name = getattr(value, "name", None)
    return name if isinstance(name, str) else str(value)


def _summarize_ratings(ratings: Any) -> Optional[str]:
    """Short, user-presentable summary of flagged safety categories."""
    flagged = []
    for rating in ratings or []:
        probability = _enum_name(getattr(rating, "probability", None)) or ""
        if not getattr(rating, "blocked", False) and probability in _LOW_PROBABILITIES:
            continue
        category = (_enum_name(getattr(rating, "category", None)) or "UNKNOWN").replace("HARM_CATEGORY_", "")
        flagged.append(f"{category}: {probability or 'BLOCKED'}")
    return ", ".join(flagged) or None


class GeminiBackend(BaseBackend):
    """Backend implementation using the Google Gen AI SDK.

    Sends the clothing image and the prompt in one ``generate_content`` call
    and asks for text and image output. The blocking SDK call runs on a small
    worker pool so it can be raced against a timer. A call that loses the
    race is abandoned rather than cancelled; the SDK's HTTP timeout makes sure
    its worker is eventually released.

    Attributes:
        api_key: Gemini API key
        model: Model identifier used for generation
        client: google-genai Client instance
    """

    DEFAULT_MODEL = "gemini-2.5-flash-image"
    DEFAULT_TIMEOUT_MS = 45000

    SAFETY_CATEGORIES = (
        types.HarmCategory.HARM_CATEGORY_HARASSMENT,
        types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
        types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
        types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
    )

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        max_workers: int = 4,
        http_timeout_ms: Optional[int] = None
    ):
        """Initialize the Gemini backend.

        Args:
            api_key: Gemini API key
            model: Optional model identifier (defaults to DEFAULT_MODEL)
            max_workers: Upper bound on concurrent remote calls, including
                abandoned ones still waiting on the network
            http_timeout_ms: Transport-level timeout for the SDK

        Raises:
            ValueError: If API key is empty or max_workers is not positive
        """
        super().__init__(api_key)

        if not api_key:
            raise ValueError("Gemini API key is required")
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")

        self.model = model or self.DEFAULT_MODEL
        self.client = genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=http_timeout_ms or self.DEFAULT_TIMEOUT_MS + 15000),
        )
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="gemini")
        logger.info(f"Initialized Gemini backend with model: {self.model}")

    def generate(
        self,
        prompt: str,
        image_bytes: bytes,
        media_type: str,
        timeout_ms: int = DEFAULT_TIMEOUT_MS
    ) -> GenerationOutcome:
        """Run one generation call raced against ``timeout_ms``.

        Args:
            prompt: Text prompt
            image_bytes: Clothing image bytes
            media_type: Media type of the clothing image
            timeout_ms: Time budget in milliseconds

        Returns:
            The classified outcome of the call
        """
        logger.info(f"Generating fashion image with prompt: {prompt[:50]}...")
        started = time.monotonic()
        future = self._executor.submit(self._call_model, prompt, image_bytes, media_type)

        done, _ = wait([future], timeout=timeout_ms / 1000)
        elapsed_ms = int((time.monotonic() - started) * 1000)

        if not done:
            future.cancel()
            logger.error(f"Gemini call exceeded {timeout_ms}ms, abandoning it")
            return Timeout(elapsed_ms=elapsed_ms)

        try:
            response = future.result()
        except Exception as e:
            outcome = self.classify_error(e)
            logger.error(f"Gemini API error ({outcome.kind.value}) after {elapsed_ms}ms: {e}")
            return outcome

        outcome = self.interpret_response(response)
        logger.info(f"Gemini call finished in {elapsed_ms}ms with {type(outcome).__name__}")
        return outcome

    def _call_model(self, prompt: str, image_bytes: bytes, media_type: str) -> Any:
        config = types.GenerateContentConfig(
            response_modalities=["TEXT", "IMAGE"],
            safety_settings=[
                types.SafetySetting(category=category, threshold=types.HarmBlockThreshold.BLOCK_NONE)
                for category in self.SAFETY_CATEGORIES
            ],
        )
        return self.client.models.generate_content(
            model=self.model,
            contents=[types.Part.from_bytes(data=image_bytes, mime_type=media_type), prompt],
            config=config,
        )

    @staticmethod
    def classify_error(error: Exception) -> TransportError:
        """Classify an SDK or network exception by its message.

        Args:
            error: Exception raised by the remote call

        Returns:
            TransportError tagged with the matching kind, or GENERIC
        """
        message = str(error) or error.__class__.__name__
        lowered = f"{error.__class__.__name__} {message}".lower()

        for kind, markers in _ERROR_MARKERS:
            if any(marker in lowered for marker in markers):
                return TransportError(kind=kind, message=message)

        return TransportError(kind=TransportErrorKind.GENERIC, message=message)

    @staticmethod
    def interpret_response(response: Any) -> GenerationOutcome:
        """Turn a received ``GenerateContentResponse`` into an outcome.

        Image presence, not text presence, decides success.

        Args:
            response: Response object returned by ``generate_content``

        Returns:
            Blocked, EmptyResponse or Success
        """
        candidates = getattr(response, "candidates", None) or []
        feedback = getattr(response, "prompt_feedback", None)

        if not candidates:
            reason = _enum_name(getattr(feedback, "block_reason", None)) or "NO_CANDIDATES"
            ratings = getattr(feedback, "safety_ratings", None)
            logger.warning(f"Gemini returned no candidates (reason={reason}, safety_ratings={ratings})")
            return Blocked(reason=reason, details=_summarize_ratings(ratings))

        candidate = candidates[0]
        finish_reason = _enum_name(getattr(candidate, "finish_reason", None))
        if finish_reason and finish_reason not in NORMAL_FINISH_REASONS:
            ratings = getattr(candidate, "safety_ratings", None)
            logger.warning(
                f"Gemini stopped early (finish_reason={finish_reason}, "
                f"message={getattr(candidate, 'finish_message', None)}, safety_ratings={ratings})"
            )
            return Blocked(reason=finish_reason, details=_summarize_ratings(ratings))

        content = getattr(candidate, "content", None)
        parts = getattr(content, "parts", None) or []
        if not parts:
            logger.warning("Gemini candidate has no content parts")
            return EmptyResponse()

        image_data: Any = None
        image_type: Optional[str] = None
        captions: List[str] = []

        for part in parts:
            inline = getattr(part, "inline_data", None)
            mime_type = getattr(inline, "mime_type", None)
            data = getattr(inline, "data", None)
            if image_data is None and data and isinstance(mime_type, str) and mime_type.startswith("image/"):
                image_data, image_type = data, mime_type
                continue

            text = getattr(part, "text", None)
            if isinstance(text, str) and text.strip():
                captions.append(text.strip())

        caption = "\n".join(captions) or None

        if image_data is None:
            logger.warning(f"Gemini response had no image part (caption: {caption!r})")
            return EmptyResponse(caption_text=caption)

        if isinstance(image_data, str):
            image_data = base64.b64decode(image_data)

        if caption:
            logger.warning(f"Gemini returned text alongside the image: {caption[:200]}")

        logger.info(f"Received generated image ({len(image_data)} bytes, {image_type})")
        return Success(image_bytes=image_data, media_type=image_type, caption_text=caption)

    def health_check(self) -> bool:
        """Check that the configured model is visible with this API key.

        Returns:
            True if the backend is healthy, False otherwise
        """
        try:
            logger.debug("Performing health check...")
            self.client.models.get(model=self.model)
            logger.debug("Health check passed")
            return True
        except Exception as e:
            logger.warning(f"Health check failed: {e}")
            return False

    def close(self) -> None:
        """Stop accepting work; abandoned calls finish in the background."""
        self._executor.shutdown(wait=False, cancel_futures=True)

    @property
    def name(self) -> str:
        """Get the backend name.

        Returns:
            The string "Gemini"
        """
        return "Gemini"
