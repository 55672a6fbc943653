"""OCR provider implementations for chat screenshot text extraction.

Four implementations of IOCRProvider, tried in the configured priority
order by ocr_service.py (default order shown):
    1. TesseractOCRProvider: local Tesseract on the raw screenshot.
    2. GoogleVisionOCRProvider: Google Cloud Vision ``images:annotate``.
    3. AzureReadOCRProvider: Azure Computer Vision Read v3.2 (polled).
    4. OpenCVTesseractOCRProvider: Tesseract on an OpenCV-cleaned image.
"""

from src.providers.ocr.azure_read_provider import AzureReadOCRProvider
from src.providers.ocr.google_vision_provider import GoogleVisionOCRProvider
from src.providers.ocr.opencv_tesseract_provider import OpenCVTesseractOCRProvider
from src.providers.ocr.tesseract_provider import TesseractOCRProvider

__all__ = [
    "AzureReadOCRProvider",
    "GoogleVisionOCRProvider",
    "OpenCVTesseractOCRProvider",
    "TesseractOCRProvider",
]
