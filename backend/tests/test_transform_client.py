"""
Tests for the Gemini transform client.
"""

import asyncio
import base64
import time
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from conftest import image_part, make_response, raw_response, text_part
from services.errors import ConfigurationError, EmptyResultError, TransportError
from services.image_encoder import EncodedImage
from services.transform_client import (
    EditFailure,
    EditRequest,
    EditSuccess,
    FailureKind,
    GeminiTransformClient,
)

PREFIX = "Failed to generate image: "


class TestGeminiTransformClientInitialization:
    """Tests for construction and credential handling."""

    @pytest.mark.parametrize("api_key", ["", "   ", None])
    def test_missing_api_key_is_fatal(self, api_key):
        with pytest.raises(ConfigurationError, match="GOOGLE_API_KEY"):
            GeminiTransformClient(api_key, genai_client=MagicMock())

    def test_builds_genai_client_with_api_key(self):
        with patch("google.genai.Client") as mock_client_cls:
            client = GeminiTransformClient("  secret-key  ")

        mock_client_cls.assert_called_once_with(api_key="secret-key")
        assert client._client is mock_client_cls.return_value

    def test_from_settings_uses_google_api_key(self):
        settings = MagicMock()
        settings.GOOGLE_API_KEY = ""
        with pytest.raises(ConfigurationError):
            GeminiTransformClient.from_settings(settings)


class TestEditRequest:
    def test_blank_instruction_rejected(self, encoded_png):
        with pytest.raises(ValueError):
            EditRequest(image=encoded_png, instruction="  \n ")

    def test_valid_request(self, encoded_png):
        request = EditRequest(image=encoded_png, instruction="add a hat")
        assert request.instruction == "add a hat"


class TestTransformRequestShape:
    @pytest.mark.asyncio
    async def test_sends_image_then_text_with_image_modality(
        self, transform_client, fake_genai, encoded_png, sample_image_bytes
    ):
        await transform_client.transform(encoded_png, "make it noir")

        fake_genai.models.generate_content.assert_called_once()
        kwargs = fake_genai.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-2.5-flash-image"

        parts = kwargs["contents"][0].parts
        assert len(parts) == 2
        assert parts[0].inline_data.data == sample_image_bytes
        assert parts[0].inline_data.mime_type == "image/png"
        assert parts[1].text == "make it noir"

        assert list(kwargs["config"].response_modalities) == ["IMAGE"]


class TestTransformResponseParsing:
    @pytest.mark.asyncio
    async def test_returns_first_image_part(
        self, transform_client, encoded_png, edited_image_bytes
    ):
        result = await transform_client.transform(encoded_png, "edit")

        assert isinstance(result, EditSuccess)
        assert result.ok is True
        assert result.image.mime_type == "image/png"
        assert result.image.to_bytes() == edited_image_bytes

    @pytest.mark.asyncio
    async def test_text_before_base64_image_part_is_ignored(
        self, transform_client, fake_genai, encoded_png
    ):
        fake_genai.models.generate_content.return_value = raw_response(
            [
                SimpleNamespace(text="ok", inline_data=None),
                SimpleNamespace(
                    text=None, inline_data=SimpleNamespace(data="AAAA", mime_type=None)
                ),
            ]
        )

        result = await transform_client.transform(encoded_png, "edit")

        assert isinstance(result, EditSuccess)
        assert result.image.data == "AAAA"
        assert result.image.mime_type == "image/png"

    @pytest.mark.asyncio
    async def test_binary_image_payload_is_base64_encoded(
        self, transform_client, fake_genai, encoded_png
    ):
        fake_genai.models.generate_content.return_value = make_response(
            text_part("ok"), image_part(b"\x00\x00\x00", mime_type="image/jpeg")
        )

        result = await transform_client.transform(encoded_png, "edit")

        assert isinstance(result, EditSuccess)
        assert result.image.data == "AAAA"
        assert result.image.mime_type == "image/jpeg"

    @pytest.mark.asyncio
    async def test_first_of_several_images_wins(
        self, transform_client, fake_genai, encoded_png
    ):
        fake_genai.models.generate_content.return_value = make_response(
            image_part(b"first"), image_part(b"second")
        )

        result = await transform_client.transform(encoded_png, "edit")

        assert result.image.to_bytes() == b"first"

    @pytest.mark.asyncio
    async def test_text_only_response_is_empty_result(
        self, transform_client, fake_genai, encoded_png
    ):
        fake_genai.models.generate_content.return_value = make_response(text_part("ok"))

        result = await transform_client.transform(encoded_png, "edit")

        assert isinstance(result, EditFailure)
        assert result.kind == FailureKind.EMPTY_RESULT
        assert result.message == PREFIX + "No image data found in the API response."
        assert isinstance(result.cause, EmptyResultError)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            SimpleNamespace(candidates=[]),
            SimpleNamespace(candidates=None),
            SimpleNamespace(candidates=[SimpleNamespace(content=None)]),
            SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=None))]),
            SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[]))]),
            SimpleNamespace(),
            None,
        ],
    )
    async def test_missing_levels_are_empty_result(
        self, transform_client, fake_genai, encoded_png, response
    ):
        fake_genai.models.generate_content.return_value = response

        result = await transform_client.transform(encoded_png, "edit")

        assert isinstance(result, EditFailure)
        assert result.kind == FailureKind.EMPTY_RESULT
        assert "No image data found" in result.message

    @pytest.mark.asyncio
    async def test_empty_inline_data_is_skipped(
        self, transform_client, fake_genai, encoded_png
    ):
        fake_genai.models.generate_content.return_value = raw_response(
            [
                SimpleNamespace(inline_data=SimpleNamespace(data=b"", mime_type="image/png")),
                SimpleNamespace(inline_data=SimpleNamespace(data=b"img", mime_type="image/png")),
            ]
        )

        result = await transform_client.transform(encoded_png, "edit")

        assert result.image.to_bytes() == b"img"


class TestTransformFailures:
    @pytest.mark.asyncio
    async def test_transport_fault_is_wrapped(
        self, transform_client, fake_genai, encoded_png
    ):
        fault = ConnectionResetError("Connection reset by peer")
        fake_genai.models.generate_content.side_effect = fault

        result = await transform_client.transform(encoded_png, "edit")

        assert isinstance(result, EditFailure)
        assert result.kind == FailureKind.TRANSPORT
        assert result.message == PREFIX + "Connection reset by peer"
        assert isinstance(result.cause, TransportError)
        assert result.cause.__cause__ is fault

    @pytest.mark.asyncio
    async def test_api_error_message_is_kept(
        self, transform_client, fake_genai, encoded_png
    ):
        from google.genai import errors

        fake_genai.models.generate_content.side_effect = errors.ServerError(
            503,
            {"error": {"code": 503, "message": "The model is overloaded.", "status": "UNAVAILABLE"}},
        )

        result = await transform_client.transform(encoded_png, "edit")

        assert result.kind == FailureKind.TRANSPORT
        assert result.message.startswith(PREFIX)
        assert "overloaded" in result.message

    @pytest.mark.asyncio
    async def test_fault_without_message_uses_generic_text(
        self, transform_client, fake_genai, encoded_png
    ):
        fake_genai.models.generate_content.side_effect = RuntimeError()

        result = await transform_client.transform(encoded_png, "edit")

        assert result.message == PREFIX + "An unknown error occurred."

    @pytest.mark.asyncio
    async def test_blank_instruction_never_reaches_gemini(
        self, transform_client, fake_genai, encoded_png
    ):
        result = await transform_client.transform(encoded_png, "   ")

        assert isinstance(result, EditFailure)
        assert result.kind == FailureKind.INVALID_REQUEST
        assert result.message.startswith(PREFIX)
        fake_genai.models.generate_content.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_base64_is_invalid_request(self, transform_client, fake_genai):
        result = await transform_client.transform(
            EncodedImage(data="not base64!!", mime_type="image/png"), "edit"
        )

        assert result.kind == FailureKind.INVALID_REQUEST
        fake_genai.models.generate_content.assert_not_called()

    @pytest.mark.asyncio
    async def test_failure_message_is_never_empty(
        self, transform_client, fake_genai, encoded_png
    ):
        for side_effect in (OSError(), ValueError("bad"), TimeoutError("timed out")):
            fake_genai.models.generate_content.side_effect = side_effect
            result = await transform_client.transform(encoded_png, "edit")
            assert isinstance(result, EditFailure)
            assert result.message.strip()

    @pytest.mark.asyncio
    async def test_no_automatic_retry(self, transform_client, fake_genai, encoded_png):
        fake_genai.models.generate_content.side_effect = ConnectionError("down")

        await transform_client.transform(encoded_png, "edit")

        assert fake_genai.models.generate_content.call_count == 1


class TestTransformConcurrency:
    @pytest.mark.asyncio
    async def test_overlapping_calls_resolve_independently(self, fake_genai):
        def _echo_instruction(*, model, contents, config):
            instruction = contents[0].parts[1].text
            # Slow down the first call so the second one finishes first.
            time.sleep(0.05 if instruction == "first" else 0.0)
            return make_response(image_part(instruction.encode("utf-8")))

        fake_genai.models.generate_content.side_effect = _echo_instruction
        client = GeminiTransformClient("key", genai_client=fake_genai)
        image_a = EncodedImage.from_bytes(b"a", "image/png")
        image_b = EncodedImage.from_bytes(b"b", "image/png")

        first, second = await asyncio.gather(
            client.transform(image_a, "first"),
            client.transform(image_b, "second"),
        )

        assert first.image.to_bytes() == b"first"
        assert second.image.to_bytes() == b"second"

    @pytest.mark.asyncio
    async def test_one_failure_does_not_affect_other_call(self, fake_genai):
        def _fail_for_bad(*, model, contents, config):
            if contents[0].parts[1].text == "bad":
                raise ConnectionResetError("reset")
            return make_response(image_part(b"good"))

        fake_genai.models.generate_content.side_effect = _fail_for_bad
        client = GeminiTransformClient("key", genai_client=fake_genai)
        image = EncodedImage(data=base64.b64encode(b"x").decode(), mime_type="image/png")

        bad, good = await asyncio.gather(
            client.transform(image, "bad"), client.transform(image, "good")
        )

        assert isinstance(bad, EditFailure)
        assert isinstance(good, EditSuccess)
        assert good.image.to_bytes() == b"good"
