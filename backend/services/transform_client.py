"""
Google Gemini transform client.

Sends one image plus one edit instruction to Gemini's image model and turns
the multi-part response into an EditResult.
"""

import asyncio
import base64
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union

from services.errors import (
    ConfigurationError,
    EmptyResultError,
    EncodingError,
    InvalidInstructionError,
    TransportError,
)
from services.image_encoder import EncodedImage
from services.image_validation import normalize_image_mime_type

logger = logging.getLogger(__name__)


class FailureKind(str, Enum):
    INVALID_REQUEST = "invalid_request"
    TRANSPORT = "transport"
    EMPTY_RESULT = "empty_result"


@dataclass(frozen=True)
class EditRequest:
    """One image and the instruction describing how to edit it"""

    image: EncodedImage
    instruction: str

    def __post_init__(self):
        if not isinstance(self.instruction, str) or not self.instruction.strip():
            raise InvalidInstructionError("Edit instruction cannot be blank")


@dataclass(frozen=True)
class EditSuccess:
    image: EncodedImage

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class EditFailure:
    message: str
    kind: FailureKind
    cause: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return False


EditResult = Union[EditSuccess, EditFailure]


class GeminiTransformClient:
    """
    Image edit client for Gemini.

    The API key is injected at construction time; a missing key is fatal here
    rather than on first use. Each transform() call is independent, the
    client keeps no per-request state.
    """

    GEMINI_IMAGE_MODEL = "gemini-2.5-flash-image"
    FAILURE_PREFIX = "Failed to generate image"
    UNKNOWN_ERROR_MESSAGE = "An unknown error occurred."
    NO_IMAGE_MESSAGE = "No image data found in the API response."
    DEFAULT_OUTPUT_MIME_TYPE = "image/png"

    def __init__(self, api_key: str, *, genai_client: Optional[object] = None):
        if not api_key or not api_key.strip():
            raise ConfigurationError("GOOGLE_API_KEY environment variable not set")

        if genai_client is None:
            from google import genai

            genai_client = genai.Client(api_key=api_key.strip())

        self._client = genai_client
        logger.info("Gemini transform client ready (model=%s)", self.GEMINI_IMAGE_MODEL)

    @classmethod
    def from_settings(cls, settings) -> "GeminiTransformClient":
        return cls(settings.GOOGLE_API_KEY)

    @staticmethod
    async def _run_in_thread(call: Callable[[], object]) -> object:
        # The SDK call is blocking; keep the event loop free while it runs.
        return await asyncio.to_thread(call)

    @staticmethod
    def _build_contents(request: EditRequest) -> list:
        from google.genai import types

        # Image first, then the instruction text.
        return [
            types.Content(
                role="user",
                parts=[
                    types.Part.from_bytes(
                        data=request.image.to_bytes(),
                        mime_type=request.image.mime_type,
                    ),
                    types.Part.from_text(text=request.instruction),
                ],
            )
        ]

    @staticmethod
    def _build_config() -> object:
        from google.genai import types

        return types.GenerateContentConfig(response_modalities=[types.Modality.IMAGE])

    @staticmethod
    def _first_candidate_parts(response: object) -> list:
        """Parts of candidates[0]; any missing level yields an empty list."""
        candidates = getattr(response, "candidates", None)
        if not candidates:
            return []
        content = getattr(candidates[0], "content", None)
        if content is None:
            return []
        parts = getattr(content, "parts", None)
        if not parts:
            return []
        return list(parts)

    @classmethod
    def _extract_image_from_response(cls, response: object) -> Optional[EncodedImage]:
        """Return the first inline image part of the first candidate."""
        for part in cls._first_candidate_parts(response):
            inline_data = getattr(part, "inline_data", None)
            data = getattr(inline_data, "data", None) if inline_data is not None else None
            if not data:
                continue

            if isinstance(data, (bytes, bytearray)):
                encoded = base64.b64encode(bytes(data)).decode("ascii")
            else:
                # Already base64 text
                encoded = str(data)
            mime_type = normalize_image_mime_type(getattr(inline_data, "mime_type", None))
            return EncodedImage(
                data=encoded, mime_type=mime_type or cls.DEFAULT_OUTPUT_MIME_TYPE
            )
        return None

    async def _generate(self, request: EditRequest) -> object:
        contents = self._build_contents(request)
        config = self._build_config()

        try:
            return await self._run_in_thread(
                lambda: self._client.models.generate_content(
                    model=self.GEMINI_IMAGE_MODEL,
                    contents=contents,
                    config=config,
                )
            )
        except Exception as e:
            raise TransportError(str(e)) from e

    @classmethod
    def _failure_from_exception(cls, error: Exception) -> EditFailure:
        if isinstance(error, (InvalidInstructionError, EncodingError)):
            kind = FailureKind.INVALID_REQUEST
        elif isinstance(error, EmptyResultError):
            kind = FailureKind.EMPTY_RESULT
        else:
            kind = FailureKind.TRANSPORT

        detail = str(error).strip() or cls.UNKNOWN_ERROR_MESSAGE
        return EditFailure(
            message=f"{cls.FAILURE_PREFIX}: {detail}", kind=kind, cause=error
        )

    async def transform(self, image: EncodedImage, instruction: str) -> EditResult:
        """
        Edit `image` according to `instruction`.

        Never raises for request/transport/response problems: all of them are
        returned as EditFailure. Not retried; call again to retry.
        """
        try:
            request = EditRequest(image=image, instruction=instruction)
            logger.debug(
                "Sending edit request: mime=%s instruction=%s...",
                image.mime_type,
                instruction[:80],
            )
            response = await self._generate(request)

            result_image = self._extract_image_from_response(response)
            if result_image is None:
                raise EmptyResultError(self.NO_IMAGE_MESSAGE)

            logger.debug("Gemini returned image (mime=%s)", result_image.mime_type)
            return EditSuccess(image=result_image)
        except Exception as e:
            logger.error(f"Error editing image with Gemini: {e}")
            return self._failure_from_exception(e)
