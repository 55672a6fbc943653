"""Shared pytest fixtures for the screentext test suite."""

from __future__ import annotations

import io
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image, ImageDraw

from src.interfaces.ocr_provider import IOCRProvider
from src.models.extraction import ExtractionAttempt
from src.models.screenshot import ScreenshotImage


# ---------------------------------------------------------------------------
# Image fixtures
# ---------------------------------------------------------------------------


def make_png_bytes(
    width: int = 320,
    height: int = 120,
    *,
    background: tuple[int, int, int] = (255, 255, 255),
    text: str | None = "Hey how are you?",
) -> bytes:
    """Render a tiny chat-bubble-like PNG in memory."""
    img = Image.new("RGB", (width, height), background)
    if text:
        draw = ImageDraw.Draw(img)
        fill = (0, 0, 0) if sum(background) > 384 else (255, 255, 255)
        draw.text((10, height // 2 - 6), text, fill=fill)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def png_bytes() -> bytes:
    return make_png_bytes()


@pytest.fixture
def screenshot(png_bytes: bytes) -> ScreenshotImage:
    """A ScreenshotImage holding a small PNG."""
    return ScreenshotImage.from_bytes(png_bytes, filename="chat.png")


@pytest.fixture
def url_screenshot() -> ScreenshotImage:
    """A URL-only ScreenshotImage (no bytes)."""
    return ScreenshotImage.from_url("https://example.com/shots/chat.png")


# ---------------------------------------------------------------------------
# Provider fixtures
# ---------------------------------------------------------------------------


def make_ocr_provider(
    name: str,
    *,
    available: bool = True,
    text: str = "Hey how are you?",
    confidence: float = 0.9,
    error: str | None = None,
    raises: BaseException | None = None,
    side_effect=None,  # noqa: ANN001
) -> MagicMock:
    """Create a mock OCR provider with configurable behaviour."""
    mock = MagicMock(spec=IOCRProvider)
    mock.get_provider_name.return_value = name
    mock.is_available.return_value = available

    if side_effect is not None:
        mock.extract_text = AsyncMock(side_effect=side_effect)
    elif raises is not None:
        mock.extract_text = AsyncMock(side_effect=raises)
    elif error is not None:
        mock.extract_text = AsyncMock(return_value=ExtractionAttempt.failure(name, error, 5))
    else:
        mock.extract_text = AsyncMock(
            return_value=ExtractionAttempt(
                text=text,
                confidence=confidence,
                source_id=name,
                elapsed_ms=5,
            )
        )
    return mock


@pytest.fixture
def ocr_provider_factory():  # noqa: ANN201
    """Return :func:`make_ocr_provider` so tests can build fake providers."""
    return make_ocr_provider


@pytest.fixture
def png_factory():  # noqa: ANN201
    """Return :func:`make_png_bytes` for tests that need custom images."""
    return make_png_bytes
