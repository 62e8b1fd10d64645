"""Core data models for fashion image generation."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _AttributeModel(BaseModel):
    """Settings objects arrive camelCased from the browser."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        frozen=True,
        protected_namespaces=(),
    )


class ModelAttributes(_AttributeModel):
    """Appearance of the generated model.

    Every field is an opaque label from a closed option set. Neutral values
    such as "Average" or "None" are dropped by the prompt builder.
    """

    gender: Optional[str] = None
    body_type: Optional[str] = None
    age_range: Optional[str] = None
    ethnicity: Optional[str] = None
    hair_style: Optional[str] = None
    hair_color: Optional[str] = None
    height: Optional[str] = None
    pose: Optional[str] = None
    accessories: Optional[str] = None


class EnvironmentAttributes(_AttributeModel):
    """Scene and camera settings.

    A non-empty ``background_custom`` takes precedence over
    ``background_preset``.
    """

    background_preset: Optional[str] = None
    background_custom: Optional[str] = None
    lighting: Optional[str] = None
    lens_style: Optional[str] = None
    time_of_day: Optional[str] = None
    weather: Optional[str] = None
    season: Optional[str] = None
    camera_angle: Optional[str] = None


class GenerationSettings(_AttributeModel):
    model_settings: ModelAttributes
    environment_settings: EnvironmentAttributes


class GenerationRequest(BaseModel):
    """Body of ``POST /generate``.

    Attributes:
        settings: Model and environment attributes chosen by the user
        image_data: Clothing photo as a ``data:<type>;base64,<payload>`` URI
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "settings": {
                    "modelSettings": {"gender": "Female", "bodyType": "Curvy", "ageRange": "18-25"},
                    "environmentSettings": {"backgroundPreset": "outdoor-urban", "lighting": "Natural Daylight"},
                },
                "imageData": "data:image/png;base64,iVBORw0KGgo...",
            }
        },
    )

    settings: GenerationSettings
    image_data: str = Field(..., min_length=1)


class GenerationRecord(BaseModel):
    """One entry of the metadata log, written once per successful generation."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    generation_id: str
    created_at: str
    settings_used: Dict[str, Any]
    prompt_used: str
    image_path: str
    status: Literal["completed"] = "completed"

    def to_json_dict(self) -> Dict[str, Any]:
        """Serialize with the camelCase keys used on disk."""
        return self.model_dump(by_alias=True, mode="json")


class GenerationResponse(BaseModel):
    """Envelope returned to the caller for every request.

    ``status_code`` travels with the envelope but is never serialized.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    image_url: Optional[str] = None
    prompt_used: Optional[str] = None
    message: Optional[str] = None
    status_code: int = Field(default=200, exclude=True)

    @classmethod
    def ok(cls, image_url: str, prompt_used: str) -> "GenerationResponse":
        return cls(success=True, image_url=image_url, prompt_used=prompt_used)

    @classmethod
    def failure(cls, message: str, status_code: int) -> "GenerationResponse":
        return cls(success=False, message=message, status_code=status_code)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class TransportErrorKind(Enum):
    """Classification of a failed call to the remote model."""
    TIMEOUT = "timeout"
    PERMISSION = "permission"
    CONTENT_POLICY = "content_policy"
    INVALID_CREDENTIAL = "invalid_credential"
    QUOTA = "quota"
    GENERIC = "generic"


@dataclass(frozen=True)
class Success:
    """The model returned an image. A caption may accompany it."""
    image_bytes: bytes
    media_type: str
    caption_text: Optional[str] = None


@dataclass(frozen=True)
class Blocked:
    """The model declined the request or stopped early."""
    reason: str
    details: Optional[str] = None


@dataclass(frozen=True)
class Timeout:
    """The call did not finish within the time budget."""
    elapsed_ms: int


@dataclass(frozen=True)
class TransportError:
    """Network, auth, quota or API failure while calling the model."""
    kind: TransportErrorKind
    message: str


@dataclass(frozen=True)
class EmptyResponse:
    """The model answered without an image part."""
    caption_text: Optional[str] = None


GenerationOutcome = Union[Success, Blocked, Timeout, TransportError, EmptyResponse]
