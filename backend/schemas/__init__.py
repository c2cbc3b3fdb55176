from .edit import (
    EditBase64Request,
    EditErrorResponse,
    EditResponse,
    PresetListResponse,
    PresetResponse,
)

__all__ = [
    "EditBase64Request",
    "EditErrorResponse",
    "EditResponse",
    "PresetListResponse",
    "PresetResponse",
]
