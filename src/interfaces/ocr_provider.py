"""Abstract base class for text-recognition providers.

Defines the contract for any OCR backend used to read chat screenshots.
Implementations wrap local Tesseract, Google Vision, Azure Computer Vision
or any other engine; the decision engine only ever sees this interface,
so adding a backend means writing one new class and registering it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.extraction import ExtractionAttempt
from src.models.screenshot import ScreenshotImage


# Concrete implementations: TesseractOCRProvider, GoogleVisionOCRProvider,
# AzureReadOCRProvider, OpenCVTesseractOCRProvider (src/providers/ocr/).
# OCRService (src/services/ocr_service.py) tries them in registry order.
class IOCRProvider(ABC):
    """Contract for services that extract text from screenshots.

    Every concrete provider must be able to:
    * Turn a ``ScreenshotImage`` into an ``ExtractionAttempt``.
    * Report whether it is configured (credentials present, binary installed).
    """

    @abstractmethod
    async def extract_text(self, image: ScreenshotImage) -> ExtractionAttempt:
        """Run recognition on *image* and return the attempt.

        Implementations must not raise: transport errors, non-success
        responses, malformed payloads and unsupported input encodings are
        all returned as ``ExtractionAttempt.failure(...)``.  Confidence is
        always defined, using a deterministic proxy when the backend does
        not report one.  Implementations hold no per-image state, so one
        instance may serve many images concurrently.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return the stable identifier used as ``ExtractionAttempt.source_id``.

        Example return values: ``"tesseract"``, ``"google-vision"``.
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured and usable.

        Implementations check credentials or binaries without performing a
        recognition pass.
        """
