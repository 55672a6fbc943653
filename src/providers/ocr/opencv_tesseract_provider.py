"""Tesseract with OpenCV screenshot preprocessing.

Same engine as :class:`TesseractOCRProvider`, but Tesseract runs on each
variant from :meth:`ScreenshotPreprocessor.build_ocr_passes` (Otsu,
adaptive threshold, plain grayscale) and the pass with the highest
confidence wins.  Registered as a separate, lower-priority provider so
the decision engine can retry a weak plain Tesseract read on cleaned-up
images.
"""

from __future__ import annotations

import io

from PIL import Image

from src.providers.ocr.tesseract_provider import TesseractOCRProvider
from src.utils.errors import OCRExtractionError
from src.utils.image_preprocessor import ScreenshotPreprocessor


class OpenCVTesseractOCRProvider(TesseractOCRProvider):
    """Multi-pass Tesseract over OpenCV-preprocessed copies of the screenshot."""

    def __init__(
        self,
        preprocessor: ScreenshotPreprocessor,
        languages: str = "eng",
        tesseract_config: str = "--psm 6",
    ) -> None:
        super().__init__(languages=languages, tesseract_config=tesseract_config)
        self._preprocessor = preprocessor

    def get_provider_name(self) -> str:
        return "opencv-tesseract"

    def _recognize(self, image_bytes: bytes) -> tuple[str, float]:
        original = Image.open(io.BytesIO(image_bytes)).convert("RGB")

        best_text, best_confidence = "", 0.0
        failures: list[str] = []
        passes = self._preprocessor.build_ocr_passes(original)
        for pass_name, pass_image in passes:
            try:
                text, confidence = self._run_tesseract(pass_image)
            except Exception as exc:
                self._logger.warning(
                    "ocr_pass_failed",
                    pass_name=pass_name,
                    provider=self.get_provider_name(),
                    error=str(exc),
                )
                failures.append(f"{pass_name}: {exc}")
                continue

            self._logger.debug(
                "ocr_pass_complete",
                pass_name=pass_name,
                provider=self.get_provider_name(),
                confidence=round(confidence, 4),
            )
            if text and confidence > best_confidence:
                best_text, best_confidence = text, confidence

        if len(failures) == len(passes):
            raise OCRExtractionError(
                "All preprocessing passes failed: " + "; ".join(failures),
                provider_name=self.get_provider_name(),
            )
        return best_text, best_confidence
