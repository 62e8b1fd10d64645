"""Generation orchestrator: validation, prompt, remote call, persistence."""

import logging
from typing import Any, Dict, Iterable, Optional

from pydantic import ValidationError as PydanticValidationError

from fashiongen.core.base_backend import BaseBackend
from fashiongen.core.errors import FormatError, StorageError, ValidationError
from fashiongen.core.models import (
    Blocked,
    EmptyResponse,
    GenerationOutcome,
    GenerationRequest,
    GenerationResponse,
    Success,
    Timeout,
    TransportError,
    TransportErrorKind,
)
from fashiongen.core.options import ACCEPTED_IMAGE_TYPES
from fashiongen.core.prompt_builder import PromptBuilder, get_prompt_builder
from fashiongen.utils.image_codec import decode_data_uri, parse_media_type, sniff_media_type
from fashiongen.utils.result_store import ResultStore

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Image generation failed due to an internal server error."

TRANSPORT_ERROR_RESPONSES = {
    TransportErrorKind.TIMEOUT: (
        504, "The connection to the image model timed out. Please try again."
    ),
    TransportErrorKind.PERMISSION: (
        502, "The image model is unavailable or access to it was denied. Please check the server's model configuration."
    ),
    TransportErrorKind.CONTENT_POLICY: (
        422, "The request was rejected by the image model's content policy. Try a different image or settings."
    ),
    TransportErrorKind.INVALID_CREDENTIAL: (
        502, "The server's API key for the image model is invalid. Please contact the administrator."
    ),
    TransportErrorKind.QUOTA: (
        429, "The image model's quota or rate limit was exceeded. Please try again later."
    ),
    TransportErrorKind.GENERIC: (
        502, "Image generation failed due to an error communicating with the image model."
    ),
}


class GenerationService:
    """Handles one ``/generate`` request end to end.

    Every path, including unexpected exceptions, ends in a
    GenerationResponse envelope; nothing propagates to the caller.

    Attributes:
        backend: Remote image model backend
        store: Persistence for successful generations
        prompt_builder: Settings-to-prompt mapper
        timeout_ms: Time budget passed to the backend
        max_image_bytes: Largest accepted decoded clothing image
    """

    def __init__(
        self,
        backend: BaseBackend,
        store: ResultStore,
        prompt_builder: Optional[PromptBuilder] = None,
        timeout_ms: int = 45000,
        max_image_bytes: int = 10 * 1024 * 1024,
        accepted_types: Iterable[str] = ACCEPTED_IMAGE_TYPES
    ):
        """Initialize the service.

        Args:
            backend: Backend used for the remote call
            store: Store used to persist results
            prompt_builder: Optional builder (defaults to the global one)
            timeout_ms: Remote call time budget
            max_image_bytes: Upper bound on decoded image size
            accepted_types: Media types accepted for the clothing image
        """
        self.backend = backend
        self.store = store
        self.prompt_builder = prompt_builder or get_prompt_builder()
        self.timeout_ms = timeout_ms
        self.max_image_bytes = max_image_bytes
        self.accepted_types = tuple(accepted_types)

        logger.info(
            f"Initialized GenerationService with backend: {backend.name}, timeout: {timeout_ms}ms"
        )

    def handle(self, payload: Any) -> GenerationResponse:
        """Process a generation request body.

        Args:
            payload: Parsed JSON body ``{settings, imageData}``

        Returns:
            Success envelope with ``imageUrl`` and ``promptUsed``, or a
            failure envelope with a display-ready ``message``
        """
        try:
            return self._handle(payload)
        except Exception:
            logger.exception("Error during /generate processing")
            return GenerationResponse.failure(INTERNAL_ERROR_MESSAGE, 500)

    def _handle(self, payload: Any) -> GenerationResponse:
        try:
            request = self.validate(payload)
        except ValidationError as e:
            logger.error(f"Validation error: {e}")
            return GenerationResponse.failure(str(e), 400)

        settings = request.settings
        prompt = self.prompt_builder.build_prompt(settings.model_settings, settings.environment_settings)
        logger.info(f"Constructed prompt: {prompt[:120]}...")

        try:
            image = decode_data_uri(request.image_data)
        except FormatError as e:
            logger.error(f"Error parsing imageData URI: {e}")
            return GenerationResponse.failure("Invalid image data format.", 400)

        if len(image.data) > self.max_image_bytes:
            logger.error(f"Rejected image of {len(image.data)} bytes")
            return GenerationResponse.failure(
                f"Image is too large. Maximum size is {self.max_image_bytes / (1024 * 1024):g} MB.", 413
            )

        sniffed = sniff_media_type(image.data)
        if sniffed and sniffed != image.media_type:
            logger.warning(f"Declared image type {image.media_type} but content looks like {sniffed}")

        outcome = self.backend.generate(prompt, image.data, image.media_type, self.timeout_ms)
        return self._respond(outcome, payload["settings"], prompt)

    def validate(self, payload: Any) -> GenerationRequest:
        """Check the request shape before any processing.

        Args:
            payload: Parsed JSON body

        Returns:
            The validated GenerationRequest

        Raises:
            ValidationError: If a required field is missing, the image is not
                a data URI, or its media type is not accepted
        """
        if not isinstance(payload, dict) or not payload.get("settings") or not payload.get("imageData"):
            raise ValidationError("Missing required fields: settings and imageData")

        settings = payload["settings"]
        if (
            not isinstance(settings, dict)
            or not isinstance(settings.get("modelSettings"), dict)
            or not isinstance(settings.get("environmentSettings"), dict)
        ):
            raise ValidationError("Missing required settings structure.")

        media_type = parse_media_type(payload["imageData"])
        if media_type is None:
            raise ValidationError(
                "Invalid imageData format. Expected data URI (e.g., data:image/png;base64,...)"
            )
        if media_type not in self.accepted_types:
            raise ValidationError(
                f"Unsupported image type '{media_type}'. Accepted types: {', '.join(self.accepted_types)}"
            )

        try:
            return GenerationRequest.model_validate(payload)
        except PydanticValidationError as e:
            fields = ", ".join(
                ".".join(str(loc) for loc in error["loc"]) for error in e.errors()
            )
            raise ValidationError(f"Invalid settings values: {fields}") from e

    def _respond(
        self,
        outcome: GenerationOutcome,
        settings_used: Dict[str, Any],
        prompt: str
    ) -> GenerationResponse:
        if isinstance(outcome, Success):
            try:
                record = self.store.persist(outcome, settings_used, prompt)
            except StorageError as e:
                logger.error(f"Generated image could not be saved: {e}")
                return GenerationResponse.failure(
                    "Image was generated but the server failed to save generated image. Please try again.", 500
                )
            logger.info(f"Sending success response with relative URL: {record.image_path}")
            return GenerationResponse.ok(image_url=record.image_path, prompt_used=prompt)

        if isinstance(outcome, Blocked):
            message = "Image generation failed. The request might have been blocked due to safety policies."
            if outcome.reason:
                message += f" Reason: {outcome.reason}."
            if outcome.details:
                message += f" Details: {outcome.details}."
            return GenerationResponse.failure(message, 422)

        if isinstance(outcome, Timeout):
            return GenerationResponse.failure(
                f"Image generation took too long to complete (over {self.timeout_ms / 1000:g} seconds). "
                "Please try again.",
                504,
            )

        if isinstance(outcome, EmptyResponse):
            message = "Image generation failed: No image data received from API."
            if outcome.caption_text:
                message += f" Model response: {outcome.caption_text[:300]}"
            return GenerationResponse.failure(message, 502)

        if isinstance(outcome, TransportError):
            status_code, message = TRANSPORT_ERROR_RESPONSES[outcome.kind]
            return GenerationResponse.failure(message, status_code)

        logger.error(f"Unknown generation outcome: {outcome!r}")
        return GenerationResponse.failure(INTERNAL_ERROR_MESSAGE, 500)
