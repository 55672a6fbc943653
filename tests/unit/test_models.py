"""Unit tests for the screenshot, attempt and pipeline models."""

from __future__ import annotations

import base64
from pathlib import Path

import pytest
from pydantic import ValidationError

from src.models.extraction import TIMED_OUT, ExtractionAttempt
from src.models.pipeline import PipelineConfig, PipelineReport, PipelineState
from src.models.screenshot import ScreenshotImage, detect_media_type
from src.utils.errors import ImageFormatError


# ======================================================================
# ScreenshotImage
# ======================================================================


class TestScreenshotImage:
    def test_from_bytes_sniffs_media_type(self, png_bytes: bytes) -> None:
        image = ScreenshotImage.from_bytes(png_bytes, filename="chat.png")

        assert image.content_type == "image/png"
        assert image.file_size == len(png_bytes)
        assert image.image_data == png_bytes
        assert image.has_bytes is True
        assert len(image.image_hash) == 64

    def test_bytes_not_serialized(self, screenshot: ScreenshotImage) -> None:
        assert "_image_data" not in screenshot.model_dump()

    def test_empty_bytes_rejected(self) -> None:
        with pytest.raises(ImageFormatError, match="empty"):
            ScreenshotImage.from_bytes(b"")

    def test_from_data_uri(self, png_bytes: bytes) -> None:
        uri = "data:image/png;base64," + base64.b64encode(png_bytes).decode()
        image = ScreenshotImage.from_data_uri(uri)

        assert image.image_data == png_bytes
        assert image.content_type == "image/png"

    @pytest.mark.parametrize(
        "uri",
        [
            "data:text/plain;base64,aGVsbG8=",
            "data:image/png,not-base64",
            "data:image/png;base64,@@@notbase64@@@",
            "not a uri",
        ],
    )
    def test_bad_data_uri_rejected(self, uri: str) -> None:
        with pytest.raises(ImageFormatError):
            ScreenshotImage.from_data_uri(uri)

    def test_from_url_has_no_bytes(self) -> None:
        image = ScreenshotImage.from_url("https://example.com/img/chat.jpg?sig=1")

        assert image.has_bytes is False
        assert image.image_data is None
        assert image.filename == "chat.jpg"
        assert image.source_url == "https://example.com/img/chat.jpg?sig=1"

    def test_from_url_rejects_other_schemes(self) -> None:
        with pytest.raises(ImageFormatError):
            ScreenshotImage.from_url("ftp://example.com/chat.png")

    def test_require_bytes_on_url_handle(self, url_screenshot: ScreenshotImage) -> None:
        with pytest.raises(ImageFormatError) as exc_info:
            url_screenshot.require_bytes("tesseract")
        assert exc_info.value.provider_name == "tesseract"

    def test_from_path(self, tmp_path: Path, png_bytes: bytes) -> None:
        path = tmp_path / "shot.png"
        path.write_bytes(png_bytes)

        image = ScreenshotImage.from_path(path)
        assert image.filename == "shot.png"
        assert image.image_data == png_bytes

    def test_from_missing_path(self, tmp_path: Path) -> None:
        with pytest.raises(ImageFormatError, match="Cannot read"):
            ScreenshotImage.from_path(tmp_path / "missing.png")

    def test_coerce_dispatch(self, png_bytes: bytes, screenshot: ScreenshotImage) -> None:
        assert ScreenshotImage.coerce(screenshot) is screenshot
        assert ScreenshotImage.coerce(png_bytes).image_data == png_bytes
        assert ScreenshotImage.coerce("https://example.com/x.png").source_url == "https://example.com/x.png"
        uri = "data:image/png;base64," + base64.b64encode(png_bytes).decode()
        assert ScreenshotImage.coerce(uri).image_data == png_bytes

    def test_coerce_rejects_unknown_type(self) -> None:
        with pytest.raises(ImageFormatError):
            ScreenshotImage.coerce(12345)  # type: ignore[arg-type]

    @pytest.mark.parametrize(
        ("source", "filename", "content_type"),
        [
            ("data:image/jpeg,raw", None, "image/jpeg"),
            ("data:text/plain;base64,aGk=", None, None),
            ("/tmp/missing/chat.png", "chat.png", "image/png"),
            (Path("shots/chat.webp"), "chat.webp", "image/webp"),
            (12345, None, None),
        ],
    )
    def test_unreadable_keeps_salvageable_metadata(self, source, filename, content_type) -> None:
        image = ScreenshotImage.unreadable(source)

        assert image.filename == filename
        assert image.content_type == content_type
        assert image.has_bytes is False
        assert image.source_url is None
        with pytest.raises(ImageFormatError, match="unreadable handle"):
            image.require_bytes("tesseract")

    def test_describe(self, screenshot: ScreenshotImage) -> None:
        descriptor = screenshot.describe()
        assert descriptor.filename == "chat.png"
        assert descriptor.content_type == "image/png"
        assert descriptor.file_size == screenshot.file_size

    def test_frozen(self, screenshot: ScreenshotImage) -> None:
        with pytest.raises(ValidationError):
            screenshot.filename = "other.png"  # type: ignore[misc]


class TestDetectMediaType:
    @pytest.mark.parametrize(
        ("header", "expected"),
        [
            (b"\x89PNG\r\n\x1a\n0000", "image/png"),
            (b"\xff\xd8\xff\xe0", "image/jpeg"),
            (b"RIFF\x00\x00\x00\x00WEBP", "image/webp"),
            (b"GIF89a", "image/gif"),
            (b"BM0000", "image/bmp"),
            (b"II*\x00", "image/tiff"),
            (b"hello", None),
        ],
    )
    def test_signatures(self, header: bytes, expected: str | None) -> None:
        assert detect_media_type(header) == expected


# ======================================================================
# ExtractionAttempt
# ======================================================================


class TestExtractionAttempt:
    def test_confidence_clamped(self) -> None:
        assert ExtractionAttempt(source_id="x", confidence=1.4).confidence == 1.0
        assert ExtractionAttempt(source_id="x", confidence=-3).confidence == 0.0
        assert ExtractionAttempt(source_id="x", confidence=None).confidence == 0.0

    def test_elapsed_rounded_and_non_negative(self) -> None:
        assert ExtractionAttempt(source_id="x", elapsed_ms=12.6).elapsed_ms == 13
        assert ExtractionAttempt(source_id="x", elapsed_ms=-5).elapsed_ms == 0

    def test_failure_zeroes_text_and_confidence(self) -> None:
        attempt = ExtractionAttempt.failure("azure", "HTTP 500", 40)

        assert attempt.failed is True
        assert attempt.text == ""
        assert attempt.confidence == 0.0
        assert attempt.error == "HTTP 500"
        assert attempt.timed_out is False

    def test_failure_with_blank_error_still_failed(self) -> None:
        assert ExtractionAttempt.failure("azure", "").failed is True

    def test_timed_out(self) -> None:
        assert ExtractionAttempt.failure("azure", TIMED_OUT).timed_out is True

    def test_success_not_failed(self) -> None:
        attempt = ExtractionAttempt(text="hi", confidence=0.4, source_id="tesseract")
        assert attempt.failed is False


# ======================================================================
# PipelineConfig / PipelineReport
# ======================================================================


class TestPipelineConfig:
    def test_default_budget_is_providers_plus_one(self) -> None:
        config = PipelineConfig.for_provider_count(3)

        assert config.max_attempts == 4
        assert config.confidence_threshold == pytest.approx(0.3)
        assert config.per_attempt_timeout_ms == 30_000
        assert config.per_attempt_timeout_s == pytest.approx(30.0)

    def test_explicit_budget_wins(self) -> None:
        assert PipelineConfig.for_provider_count(3, max_attempts=1).max_attempts == 1

    def test_zero_providers_still_one_attempt(self) -> None:
        assert PipelineConfig.for_provider_count(0).max_attempts == 1

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_attempts": 0},
            {"max_attempts": 2, "confidence_threshold": 1.5},
            {"max_attempts": 2, "per_attempt_timeout_ms": 0},
        ],
    )
    def test_invalid_values_rejected(self, kwargs: dict) -> None:
        with pytest.raises(ValidationError):
            PipelineConfig(**kwargs)


class TestPipelineReport:
    def test_synthetic_flag(self) -> None:
        synthetic = PipelineReport(
            result=ExtractionAttempt(text="notice", confidence=0.1, source_id="fallback-generator"),
            outcome=PipelineState.EXHAUSTED,
        )
        real = PipelineReport(
            result=ExtractionAttempt(text="hi there", confidence=0.9, source_id="tesseract"),
            outcome=PipelineState.ACCEPTED,
        )
        assert synthetic.synthetic is True
        assert real.synthetic is False

    def test_outcome_is_a_terminal_state(self) -> None:
        assert [state.value for state in PipelineState] == ["ACCEPTED", "EXHAUSTED"]
        with pytest.raises(ValidationError):
            PipelineReport(
                result=ExtractionAttempt(text="hi there", confidence=0.9, source_id="tesseract"),
                outcome="TRYING",
            )
