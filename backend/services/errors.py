"""Error types shared by the encoder, the transform client and the API layer."""


class ImageEditError(Exception):
    """Base class for image edit failures."""


class ConfigurationError(ImageEditError):
    """Required configuration (e.g. GOOGLE_API_KEY) is missing."""


class EncodingError(ImageEditError):
    """The input image could not be read or encoded."""


class InvalidImageError(EncodingError):
    """Uploaded bytes were rejected by image validation."""


class TransportError(ImageEditError):
    """The remote Gemini call failed before a response was produced."""


class EmptyResultError(ImageEditError):
    """The remote call succeeded but returned no image part."""


class InvalidInstructionError(ImageEditError, ValueError):
    """Edit instruction is missing or blank."""
