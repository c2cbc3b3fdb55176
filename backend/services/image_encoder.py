"""
Request encoder.

Turns a locally selected image (raw bytes, a file on disk, or an uploaded
file) into an EncodedImage: base64 text paired with the declared mime type.
No network access happens here.
"""

import base64
import binascii
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from services.errors import EncodingError
from services.image_validation import normalize_image_mime_type, sniff_image_mime_type

logger = logging.getLogger(__name__)

FALLBACK_MIME_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class EncodedImage:
    """Image contents as base64 text plus its media type."""

    data: str
    mime_type: str

    @classmethod
    def from_bytes(cls, content: bytes, mime_type: str) -> "EncodedImage":
        return cls(data=base64.b64encode(content).decode("ascii"), mime_type=mime_type)

    @classmethod
    def from_data_uri(cls, uri: str) -> "EncodedImage":
        """Parse a `data:<mime>;base64,<payload>` URI."""
        header, sep, payload = (uri or "").partition(",")
        if not sep or not header.startswith("data:") or ";base64" not in header:
            raise EncodingError("Image data is not a base64 data URI")
        mime_type = normalize_image_mime_type(header[len("data:"):].split(";", 1)[0])
        payload = payload.strip()
        if not payload:
            raise EncodingError("Image data URI has an empty payload")
        return cls(data=payload, mime_type=mime_type or FALLBACK_MIME_TYPE)

    @property
    def data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"

    def to_bytes(self) -> bytes:
        try:
            return base64.b64decode(self.data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise EncodingError(f"Image data is not valid base64: {e}") from e


def _resolve_mime_type(content: bytes, declared: Optional[str]) -> str:
    mime_type = normalize_image_mime_type(declared)
    if mime_type and mime_type != FALLBACK_MIME_TYPE:
        return mime_type
    return sniff_image_mime_type(content) or mime_type or FALLBACK_MIME_TYPE


def encode_image_bytes(content: bytes, mime_type: Optional[str] = None) -> EncodedImage:
    """Encode raw image bytes, keeping the declared media type."""
    if not content:
        raise EncodingError("No image data to encode (empty selection)")
    return EncodedImage.from_bytes(content, _resolve_mime_type(content, mime_type))


def encode_file(path: Union[str, Path]) -> EncodedImage:
    """Read an image from disk and encode it."""
    file_path = Path(path)
    try:
        content = file_path.read_bytes()
    except OSError as e:
        raise EncodingError(f"Could not read image file {file_path.name}: {e}") from e

    declared, _ = mimetypes.guess_type(file_path.name)
    logger.debug("Read %d bytes from %s (declared=%s)", len(content), file_path, declared)
    return encode_image_bytes(content, declared)


async def encode_upload(upload) -> EncodedImage:
    """Read an uploaded file (FastAPI UploadFile) completely and encode it."""
    if upload is None:
        raise EncodingError("No image was selected")
    try:
        content = await upload.read()
    except OSError as e:
        raise EncodingError(f"Could not read uploaded image: {e}") from e
    return encode_image_bytes(content, getattr(upload, "content_type", None))
