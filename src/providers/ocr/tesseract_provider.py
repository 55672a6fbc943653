"""Tesseract OCR provider for chat screenshot text extraction.

Wraps pytesseract.  Tesseract is synchronous and CPU-bound, so each
recognition runs in a worker thread via :func:`asyncio.to_thread`; the
event loop stays free and the decision engine's timeout race still works.
"""

from __future__ import annotations

import asyncio
import io
import time

from PIL import Image

from src.interfaces.ocr_provider import IOCRProvider
from src.models.extraction import ExtractionAttempt
from src.models.screenshot import ScreenshotImage
from src.utils.confidence import average_confidence
from src.utils.errors import ImageFormatError
from src.utils.logging import get_logger

# Graceful import: the Tesseract binary and its Python wrapper are installed
# separately.  Without the wrapper is_available() returns False and the
# registry disables this provider instead of failing at startup.
try:
    import pytesseract

    _PYTESSERACT_AVAILABLE = True
except ImportError:
    pytesseract = None  # type: ignore[assignment]
    _PYTESSERACT_AVAILABLE = False

# PSM 6: a single uniform block of text, which suits message bubbles.
_DEFAULT_TESSERACT_CONFIG = "--psm 6"


class TesseractOCRProvider(IOCRProvider):
    """OCR provider backed by Google Tesseract via pytesseract.

    Confidence is the mean of Tesseract's per-word confidences (0-100)
    scaled to 0-1.  Needs raw image bytes; URL-only handles are reported as
    a failed attempt.
    """

    def __init__(
        self,
        languages: str = "eng",
        tesseract_config: str = _DEFAULT_TESSERACT_CONFIG,
    ) -> None:
        self._languages = languages
        self._tesseract_config = tesseract_config
        self._logger = get_logger(__name__)

    # ------------------------------------------------------------------
    # IOCRProvider interface
    # ------------------------------------------------------------------

    async def extract_text(self, image: ScreenshotImage) -> ExtractionAttempt:
        name = self.get_provider_name()
        start = time.perf_counter()
        try:
            image_bytes = image.require_bytes(name)
            text, confidence = await asyncio.to_thread(self._recognize, image_bytes)
        except ImageFormatError as exc:
            self._logger.warning("ocr_unsupported_input", provider=name, error=exc.message)
            return ExtractionAttempt.failure(name, exc.message, self._elapsed_ms(start))
        except Exception as exc:
            self._logger.error("ocr_extraction_failed", provider=name, error=str(exc))
            return ExtractionAttempt.failure(name, f"Tesseract OCR failed: {exc}", self._elapsed_ms(start))

        elapsed_ms = self._elapsed_ms(start)
        self._logger.info(
            "ocr_extraction_complete",
            provider=name,
            confidence=round(confidence, 4),
            chars=len(text),
            elapsed_ms=elapsed_ms,
        )
        return ExtractionAttempt(
            text=text,
            confidence=confidence,
            source_id=name,
            elapsed_ms=elapsed_ms,
        )

    def get_provider_name(self) -> str:
        return "tesseract"

    def is_available(self) -> bool:
        """Check that pytesseract is installed and the Tesseract binary exists."""
        if not _PYTESSERACT_AVAILABLE:
            return False
        try:
            pytesseract.get_tesseract_version()
            return True
        except Exception:
            return False

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _recognize(self, image_bytes: bytes) -> tuple[str, float]:
        """Decode and run Tesseract.  Runs in a worker thread."""
        image = Image.open(io.BytesIO(image_bytes)).convert("RGB")
        return self._run_tesseract(image)

    def _run_tesseract(self, image: Image.Image) -> tuple[str, float]:
        """Run ``image_to_data`` and rebuild the text line by line.

        Words with a confidence of ``-1`` (layout rows) or ``0`` are skipped.
        Returns ``("", 0.0)`` when nothing was recognised.
        """
        data = pytesseract.image_to_data(
            image,
            lang=self._languages,
            config=self._tesseract_config,
            output_type=pytesseract.Output.DICT,
        )

        lines: list[list[str]] = []
        confidences: list[float] = []
        prev_line_key: tuple[int, int, int] | None = None

        for i, raw_word in enumerate(data["text"]):
            word = raw_word.strip()
            conf = float(data["conf"][i])
            if not word or conf <= 0:
                continue

            line_key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
            if line_key != prev_line_key:
                lines.append([])
                prev_line_key = line_key
            lines[-1].append(word)
            confidences.append(conf)

        if not lines:
            return "", 0.0

        text = "\n".join(" ".join(words) for words in lines)
        return text, average_confidence(confidences, default=0.0, scale=100.0)

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int(round((time.perf_counter() - start) * 1000))
