"""
Test fixtures and configuration for pytest.
"""

import os
import struct
import sys
import zlib
from io import BytesIO
from types import SimpleNamespace
from typing import AsyncGenerator
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.image_encoder import EncodedImage
from services.transform_client import GeminiTransformClient


# ============== Gemini response builders ==============


def image_part(data: bytes, mime_type: str = "image/png"):
    from google.genai import types

    return types.Part(inline_data=types.Blob(data=data, mime_type=mime_type))


def text_part(text: str):
    from google.genai import types

    return types.Part(text=text)


def make_response(*parts):
    """GenerateContentResponse with a single candidate holding `parts`."""
    from google.genai import types

    return types.GenerateContentResponse(
        candidates=[
            types.Candidate(content=types.Content(role="model", parts=list(parts)))
        ]
    )


def raw_response(parts):
    """Loosely-typed response (base64 strings in inline_data, like raw JSON)."""
    return SimpleNamespace(
        candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))]
    )


def _image_bytes(fmt: str, color: str, size=(100, 100)) -> bytes:
    img = Image.new("RGB", size, color=color)
    buffer = BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


def header_only_png(width: int, height: int) -> bytes:
    """PNG whose IHDR declares `width`x`height` but carries no real pixel data."""

    def chunk(kind: bytes, body: bytes) -> bytes:
        return (
            struct.pack(">I", len(body))
            + kind
            + body
            + struct.pack(">I", zlib.crc32(kind + body) & 0xFFFFFFFF)
        )

    ihdr = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", ihdr)
        + chunk(b"IDAT", zlib.compress(b"\x00"))
        + chunk(b"IEND", b"")
    )


# ============== Test Data Fixtures ==============


@pytest.fixture
def sample_image_bytes() -> bytes:
    """Generate sample PNG image bytes for testing."""
    return _image_bytes("PNG", "red")


@pytest.fixture
def sample_jpeg_bytes() -> bytes:
    """Generate sample JPEG image bytes for testing."""
    return _image_bytes("JPEG", "blue")


@pytest.fixture
def sample_webp_bytes() -> bytes:
    return _image_bytes("WEBP", "green")


@pytest.fixture
def edited_image_bytes() -> bytes:
    """What the fake Gemini returns as the edited image."""
    return _image_bytes("PNG", "black", size=(64, 64))


@pytest.fixture
def encoded_png(sample_image_bytes) -> EncodedImage:
    return EncodedImage.from_bytes(sample_image_bytes, "image/png")


# ============== Mock Fixtures ==============


@pytest.fixture
def fake_genai(edited_image_bytes):
    """Stand-in for google.genai.Client; returns one edited image by default."""
    client = MagicMock()
    client.models.generate_content.return_value = make_response(
        text_part("Here is your edited image."),
        image_part(edited_image_bytes),
    )
    return client


@pytest.fixture
def transform_client(fake_genai) -> GeminiTransformClient:
    return GeminiTransformClient("test-api-key", genai_client=fake_genai)


# ============== Client Fixtures ==============


@pytest_asyncio.fixture(scope="function")
async def client(transform_client) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with the transform client overridden."""
    from api.dependencies import get_transform_client
    from main import app

    app.dependency_overrides[get_transform_client] = lambda: transform_client

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def unconfigured_client() -> AsyncGenerator[AsyncClient, None]:
    """Test client without a transform client (startup never ran)."""
    from main import app

    app.dependency_overrides.clear()
    app.state.transform_client = None

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
