from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from schemas.validators import normalize_optional_text, normalize_required_text

# base64 inflates by 4/3; 10MB image -> ~14MB text
MAX_IMAGE_DATA_CHARS = 14 * 1024 * 1024


class EditBase64Request(BaseModel):
    """Edit request with the image already encoded on the client"""

    image_data: str = Field(
        ...,
        min_length=1,
        max_length=MAX_IMAGE_DATA_CHARS,
        description="Data URI (data:image/png;base64,...) or bare base64 payload",
    )
    mime_type: Optional[str] = Field(
        None,
        max_length=100,
        description="Media type for bare base64 payloads; ignored for data URIs",
        examples=["image/png"],
    )
    preset: Optional[str] = Field(None, max_length=64, examples=["puf_chain"])

    @field_validator("image_data", mode="before")
    @classmethod
    def normalize_image_data(cls, v):
        return normalize_required_text(v, field_name="image_data")

    @field_validator("mime_type", "preset", mode="before")
    @classmethod
    def normalize_optional(cls, v):
        return normalize_optional_text(v)


class EditResponse(BaseModel):
    """Edited image plus the accessory label"""

    image_data: str = Field(..., description="Edited image as a data URI")
    mime_type: str
    accessory: str
    preset: str


class EditErrorResponse(BaseModel):
    detail: str
    kind: Optional[str] = Field(
        None,
        description="invalid_request | transport | empty_result",
    )


class PresetResponse(BaseModel):
    name: str
    accessory: str
    instruction: str


class PresetListResponse(BaseModel):
    items: List[PresetResponse]
    default: str
