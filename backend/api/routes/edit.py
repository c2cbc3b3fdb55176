import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import JSONResponse

import config
from api.dependencies import get_transform_client
from schemas.edit import (
    EditBase64Request,
    EditErrorResponse,
    EditResponse,
    PresetListResponse,
    PresetResponse,
)
from services.edit_presets import DEFAULT_PRESET_NAME, PRESETS, EditPreset, get_preset
from services.error_sanitizer import sanitize_public_error_message
from services.errors import EncodingError
from services.image_encoder import EncodedImage, encode_upload
from services.image_validation import validate_uploaded_image_payload
from services.transform_client import (
    EditFailure,
    FailureKind,
    GeminiTransformClient,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/edit", tags=["edit"])

_ERROR_RESPONSES = {
    400: {"model": EditErrorResponse},
    502: {"model": EditErrorResponse},
}


def _resolve_preset(name: Optional[str]) -> EditPreset:
    try:
        return get_preset(name)
    except KeyError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown preset. Available: {', '.join(sorted(PRESETS))}",
        )


def _validated(image: EncodedImage) -> EncodedImage:
    """Check decoded bytes are a supported image; adopt the sniffed mime type."""
    info = validate_uploaded_image_payload(
        image.to_bytes(),
        image.mime_type,
        max_size_bytes=config.get_settings().MAX_UPLOAD_SIZE_BYTES,
    )
    if info.mime_type != image.mime_type:
        return EncodedImage(data=image.data, mime_type=info.mime_type)
    return image


def _failure_response(failure: EditFailure) -> JSONResponse:
    status_code = (
        status.HTTP_400_BAD_REQUEST
        if failure.kind == FailureKind.INVALID_REQUEST
        else status.HTTP_502_BAD_GATEWAY
    )
    detail = sanitize_public_error_message(
        failure.message,
        fallback=f"{GeminiTransformClient.FAILURE_PREFIX}: "
        f"{GeminiTransformClient.UNKNOWN_ERROR_MESSAGE}",
    )
    return JSONResponse(
        status_code=status_code,
        content=EditErrorResponse(detail=detail, kind=failure.kind.value).model_dump(),
    )


async def _run_edit(
    client: GeminiTransformClient, image: EncodedImage, preset: EditPreset
):
    result = await client.transform(image, preset.instruction)
    if isinstance(result, EditFailure):
        logger.warning("Edit failed (kind=%s): %s", result.kind.value, result.message)
        return _failure_response(result)

    return EditResponse(
        image_data=result.image.data_uri,
        mime_type=result.image.mime_type,
        accessory=preset.accessory_label,
        preset=preset.name,
    )


@router.post("", response_model=EditResponse, responses=_ERROR_RESPONSES)
async def edit_uploaded_image(
    file: UploadFile = File(..., description="Photo to edit (PNG, JPG, WEBP)"),
    preset: Optional[str] = Form(None, description="Edit preset name"),
    client: GeminiTransformClient = Depends(get_transform_client),
):
    """
    Edit an uploaded photo with Gemini.

    Applies the preset's filter + accessory instructions and returns the
    edited image as a data URI together with the accessory label.
    """
    edit_preset = _resolve_preset(preset)

    try:
        image = _validated(await encode_upload(file))
    except EncodingError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return await _run_edit(client, image, edit_preset)


@router.post("/base64", response_model=EditResponse, responses=_ERROR_RESPONSES)
async def edit_encoded_image(
    body: EditBase64Request,
    client: GeminiTransformClient = Depends(get_transform_client),
):
    """Edit an image the client already encoded (data URI or bare base64)."""
    edit_preset = _resolve_preset(body.preset)

    try:
        if body.image_data.startswith("data:"):
            image = EncodedImage.from_data_uri(body.image_data)
        else:
            image = EncodedImage(data=body.image_data, mime_type=body.mime_type or "")
        image = _validated(image)
    except EncodingError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return await _run_edit(client, image, edit_preset)


@router.get("/presets", response_model=PresetListResponse)
async def list_presets():
    """List available edit presets."""
    return PresetListResponse(
        items=[
            PresetResponse(
                name=p.name, accessory=p.accessory_label, instruction=p.instruction
            )
            for p in PRESETS.values()
        ],
        default=DEFAULT_PRESET_NAME,
    )
