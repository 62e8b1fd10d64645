"""Image payload helpers: data URI parsing, file naming and format sniffing."""

import base64
import binascii
import io
import re
from dataclasses import dataclass
from typing import Optional

from PIL import Image, UnidentifiedImageError

from fashiongen.core.errors import FormatError

DATA_URI_PATTERN = re.compile(
    r"^data:(?P<media_type>[\w.+-]+/[\w.+-]+);base64,(?P<payload>.+)$",
    re.DOTALL,
)

DEFAULT_EXTENSION = "jpg"

# Subtypes whose conventional file extension differs from the subtype itself
_EXTENSION_OVERRIDES = {
    "jpeg": "jpg",
    "pjpeg": "jpg",
    "svg+xml": "svg",
    "x-icon": "ico",
}


@dataclass(frozen=True)
class DecodedImage:
    """Binary content of a data URI.

    Attributes:
        media_type: Declared media type, e.g. ``image/png``
        data: Decoded bytes
    """
    media_type: str
    data: bytes


def parse_media_type(data_uri: str) -> Optional[str]:
    """Return the declared media type of a data URI, or None if it does not match."""
    if not isinstance(data_uri, str):
        return None
    match = DATA_URI_PATTERN.match(data_uri)
    return match.group("media_type").lower() if match else None


def decode_data_uri(data_uri: str) -> DecodedImage:
    """Split a ``data:<media-type>;base64,<payload>`` string into type and bytes.

    Args:
        data_uri: The data URI sent by the browser

    Returns:
        DecodedImage with the declared media type and decoded bytes

    Raises:
        FormatError: If the string is not a base64 data URI or the payload
            is not valid base64
    """
    if not isinstance(data_uri, str):
        raise FormatError("Image data must be a string")

    match = DATA_URI_PATTERN.match(data_uri)
    if not match:
        raise FormatError("Image data is not a base64 data URI")

    payload = re.sub(r"\s+", "", match.group("payload"))
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise FormatError(f"Image payload is not valid base64: {e}") from e

    if not data:
        raise FormatError("Image payload is empty")

    return DecodedImage(media_type=match.group("media_type").lower(), data=data)


def encode_data_uri(data: bytes, media_type: str) -> str:
    """Inverse of :func:`decode_data_uri`."""
    return f"data:{media_type};base64,{base64.b64encode(data).decode('ascii')}"


def file_extension(media_type: Optional[str]) -> str:
    """Derive a storage extension from a media type's subtype.

    ``image/png`` gives ``png`` and ``image/jpeg`` gives ``jpg``. Anything
    that cannot be parsed into a plain alphanumeric subtype falls back to
    ``jpg``.
    """
    if not media_type or "/" not in media_type:
        return DEFAULT_EXTENSION

    subtype = media_type.split("/", 1)[1].split(";", 1)[0].strip().lower()
    subtype = _EXTENSION_OVERRIDES.get(subtype, subtype)

    if not re.fullmatch(r"[a-z0-9]+", subtype):
        return DEFAULT_EXTENSION
    return subtype


def encode_filename(stem: str, media_type: Optional[str]) -> str:
    """Build ``<stem>.<ext>`` for a stored image."""
    return f"{stem}.{file_extension(media_type)}"


def sniff_media_type(data: bytes) -> Optional[str]:
    """Detect the actual media type of image bytes.

    Args:
        data: Image file bytes

    Returns:
        Media type such as ``image/png``, or None if Pillow cannot identify it
    """
    try:
        with Image.open(io.BytesIO(data)) as image:
            return Image.MIME.get(image.format or "")
    except (UnidentifiedImageError, OSError):
        return None


def image_to_data_uri(image: Image.Image, format: str = "PNG") -> str:
    """Encode a PIL image as a data URI.

    JPEG output is converted to RGB first since JPEG has no alpha channel.
    """
    if format.upper() == "JPEG" and image.mode not in ("RGB", "L"):
        image = image.convert("RGB")

    output = io.BytesIO()
    image.save(output, format=format)
    media_type = Image.MIME.get(format.upper(), f"image/{format.lower()}")
    return encode_data_uri(output.getvalue(), media_type)
