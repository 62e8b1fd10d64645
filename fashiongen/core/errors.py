"""Exceptions raised inside the generation pipeline.

Remote-model failures (blocked, timeout, empty response, transport) are not
exceptions: the generation client reports them as outcome values. The
exceptions here cover the local stages around that call.
"""


class FashionGenError(Exception):
    """Base class for pipeline errors."""


class ValidationError(FashionGenError):
    """The incoming request is malformed. No remote call is made."""


class FormatError(FashionGenError):
    """The image payload is not a well-formed base64 data URI."""


class StorageError(FashionGenError):
    """A generated image could not be written to the content directory."""
