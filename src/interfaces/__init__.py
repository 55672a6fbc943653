"""Public interface definitions for recognition providers.

Every OCR backend is accessed through :class:`IOCRProvider`.  Concrete
adapters live in ``src/providers/ocr/`` and are registered in
``src/main.py`` at startup, in the configured priority order.

    Interface      ->  Concrete implementations
    ──────────────────────────────────────────────────────────────
    IOCRProvider   ->  TesseractOCRProvider, GoogleVisionOCRProvider,
                       AzureReadOCRProvider, OpenCVTesseractOCRProvider
"""

from src.interfaces.ocr_provider import IOCRProvider

__all__ = ["IOCRProvider"]
