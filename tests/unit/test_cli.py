"""Unit tests for the ``extract`` CLI command."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from src.cli import extract
from src.services.ocr_service import OCRService


@pytest.fixture(autouse=True)
def _keep_logging_config():  # noqa: ANN202
    """Stop the CLI from pointing cached loggers at capsys' short-lived stderr."""
    with patch("src.utils.logging.configure_logging"):
        yield


class TestParser:
    def test_defaults(self) -> None:
        args = extract._build_parser().parse_args(["chat.png"])

        assert args.image == "chat.png"
        assert args.json_output is False
        assert args.threshold is None
        assert args.max_attempts is None

    @pytest.mark.parametrize(
        "argv",
        [
            ["chat.png", "--threshold", "1.5"],
            ["chat.png", "--max-attempts", "0"],
            ["chat.png", "--timeout-ms", "-1"],
        ],
    )
    def test_rejects_bad_values(self, argv: list[str]) -> None:
        with pytest.raises(SystemExit):
            extract._build_parser().parse_args(argv)


class TestMain:
    def test_missing_file(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert extract.main([str(tmp_path / "nope.png"), "-q"]) == 1
        assert "File not found" in capsys.readouterr().err

    def test_prints_text(
        self,
        tmp_path: Path,
        png_bytes: bytes,
        ocr_provider_factory,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        image_path = tmp_path / "chat.png"
        image_path.write_bytes(png_bytes)
        service = OCRService([ocr_provider_factory("tesseract", text="Hey how are you??")])

        with patch("src.main.build_ocr_service", return_value=service):
            code = extract.main([str(image_path), "-q"])

        captured = capsys.readouterr()
        assert code == 0
        assert captured.out.strip() == "Hey how are you?"
        assert "Source: tesseract" in captured.err

    def test_json_output(
        self,
        tmp_path: Path,
        png_bytes: bytes,
        ocr_provider_factory,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        image_path = tmp_path / "chat.png"
        image_path.write_bytes(png_bytes)
        service = OCRService([ocr_provider_factory("tesseract", available=False)])

        with patch("src.main.build_ocr_service", return_value=service):
            code = extract.main([str(image_path), "--json", "-q"])

        document = json.loads(capsys.readouterr().out)
        assert code == 0
        assert document["image"] == "chat.png"
        assert document["source_id"] == "fallback-generator"
        assert document["limited_analysis"] is True
        assert document["attempts"] == []
