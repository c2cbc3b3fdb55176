import logging
from dataclasses import dataclass
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from services.errors import InvalidImageError

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_MIME_TYPES = frozenset({"image/png", "image/jpeg", "image/webp"})
MAX_UPLOAD_SIZE_BYTES = 10 * 1024 * 1024  # 10MB
MIN_IMAGE_WIDTH = 16
MIN_IMAGE_HEIGHT = 16
MAX_IMAGE_WIDTH = 8192
MAX_IMAGE_HEIGHT = 8192
MAX_IMAGE_PIXELS = 16_777_216  # 16 MP

IMAGE_MIME_ALIASES = {
    "image/jpg": "image/jpeg",
    "image/pjpeg": "image/jpeg",
    "image/x-jpg": "image/jpeg",
    "image/x-jpeg": "image/jpeg",
    "image/jfif": "image/jpeg",
    "image/apng": "image/png",
    "image/x-png": "image/png",
    "image/x-webp": "image/webp",
}


@dataclass(frozen=True)
class ImagePayloadInfo:
    mime_type: str
    width: int
    height: int


def normalize_image_mime_type(claimed_mime_type: str | None) -> str:
    mime_type = (claimed_mime_type or "").strip()
    if not mime_type:
        return ""

    # Browsers and proxies occasionally send quoted or parameterised values.
    if len(mime_type) >= 2 and mime_type[0] == mime_type[-1] and mime_type[0] in "\"'":
        mime_type = mime_type[1:-1].strip()
    if ";" in mime_type:
        mime_type = mime_type.split(";", 1)[0].strip()

    mime_type = mime_type.lower()
    return IMAGE_MIME_ALIASES.get(mime_type, mime_type)


def sniff_image_mime_type(content: bytes) -> str | None:
    """
    Best-effort MIME sniffing by magic bytes.

    Returns normalized mime_type ("image/png", "image/jpeg", "image/webp") or None.
    """
    if not content:
        return None
    if content.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if content.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    # WebP RIFF container with WEBP identifier
    if len(content) >= 12 and content[:4] == b"RIFF" and content[8:12] == b"WEBP":
        return "image/webp"
    return None


def _check_dimensions(
    width: int,
    height: int,
    *,
    min_width: int,
    min_height: int,
    max_width: int,
    max_height: int,
    max_pixels: int,
) -> None:
    if width <= 0 or height <= 0:
        raise InvalidImageError("Invalid image dimensions")

    if width < min_width or height < min_height:
        raise InvalidImageError(
            f"Image is too small ({width}x{height}). "
            f"Minimum supported size is {min_width}x{min_height}."
        )

    if width > max_width or height > max_height:
        raise InvalidImageError(
            f"Image is too large ({width}x{height}). "
            f"Maximum supported size is {max_width}x{max_height}."
        )

    total_pixels = width * height
    if total_pixels > max_pixels:
        raise InvalidImageError(
            f"Image has too many pixels ({total_pixels}). "
            f"Maximum supported pixel count is {max_pixels}."
        )


def _detect_image_dimensions(content: bytes, **limits: int) -> tuple[int, int]:
    """Read the header size, enforce limits, and only then decode the bitmap."""
    try:
        with Image.open(BytesIO(content)) as image:
            width, height = image.size
            _check_dimensions(width, height, **limits)
            image.load()
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        ValueError,
    ) as e:
        raise InvalidImageError(
            "Unsupported or corrupted image file. Please upload PNG, JPG, or WEBP."
        ) from e
    return width, height


def validate_uploaded_image_payload(
    content: bytes,
    claimed_mime_type: str | None = None,
    *,
    max_size_bytes: int = MAX_UPLOAD_SIZE_BYTES,
    min_width: int = MIN_IMAGE_WIDTH,
    min_height: int = MIN_IMAGE_HEIGHT,
    max_width: int = MAX_IMAGE_WIDTH,
    max_height: int = MAX_IMAGE_HEIGHT,
    max_pixels: int = MAX_IMAGE_PIXELS,
) -> ImagePayloadInfo:
    """
    Validate uploaded image bytes and return canonical metadata.

    Rules:
    - Accept PNG/JPEG/WEBP by actual magic bytes (preferred over the claimed type).
    - Gracefully handle wrong/missing client Content-Type when bytes are valid.
    - Reject empty, oversized and degenerate images before they reach Gemini.
    - Dimension limits are checked from the header, before decoding pixels.
    """
    if not content:
        raise InvalidImageError("No image was uploaded")

    if len(content) > max_size_bytes:
        raise InvalidImageError(
            f"File too large. Maximum size is {max_size_bytes // (1024 * 1024)}MB"
        )

    if len(content) < 12:
        raise InvalidImageError("File too small to be a valid image")

    normalized_claimed = normalize_image_mime_type(claimed_mime_type)
    sniffed_mime = sniff_image_mime_type(content)

    if sniffed_mime not in ALLOWED_IMAGE_MIME_TYPES:
        raise InvalidImageError("Invalid file type. Allowed: PNG, JPG, WEBP")

    if (
        normalized_claimed in ALLOWED_IMAGE_MIME_TYPES
        and normalized_claimed != sniffed_mime
    ):
        logger.warning(
            "Claimed MIME type mismatch (claimed=%s, sniffed=%s); using sniffed MIME",
            normalized_claimed,
            sniffed_mime,
        )

    width, height = _detect_image_dimensions(
        content,
        min_width=min_width,
        min_height=min_height,
        max_width=max_width,
        max_height=max_height,
        max_pixels=max_pixels,
    )
    return ImagePayloadInfo(mime_type=sniffed_mime, width=width, height=height)
