"""Google Cloud Vision OCR provider.

Calls the ``images:annotate`` REST endpoint with both ``TEXT_DETECTION``
and ``DOCUMENT_TEXT_DETECTION`` requested.  The document annotation keeps
line structure, which matters for chat logs, so it wins when present; the
first plain text annotation is the fallback.

Inline bytes are sent base64-encoded; URL-only handles are passed through
as ``imageUri`` so Google fetches the image itself.
"""

from __future__ import annotations

import base64
import time
from typing import Any

import httpx

from src.interfaces.ocr_provider import IOCRProvider
from src.models.extraction import ExtractionAttempt
from src.models.screenshot import ScreenshotImage
from src.utils.confidence import DEFAULT_PROVIDER_CONFIDENCE, average_confidence
from src.utils.errors import OCRExtractionError
from src.utils.logging import get_logger

_ANNOTATE_URL = "https://vision.googleapis.com/v1/images:annotate"


class GoogleVisionOCRProvider(IOCRProvider):
    """OCR provider backed by the Google Cloud Vision REST API."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str | None,
        annotate_url: str = _ANNOTATE_URL,
    ) -> None:
        self._http = http_client
        self._api_key = api_key
        self._annotate_url = annotate_url
        self._logger = get_logger(__name__)

    # ------------------------------------------------------------------
    # IOCRProvider interface
    # ------------------------------------------------------------------

    async def extract_text(self, image: ScreenshotImage) -> ExtractionAttempt:
        name = self.get_provider_name()
        start = time.perf_counter()

        source = self._image_payload(image)
        if source is None:
            return ExtractionAttempt.failure(name, "Image has neither bytes nor URL", self._elapsed_ms(start))

        body = {
            "requests": [
                {
                    "image": source,
                    "features": [
                        {"type": "TEXT_DETECTION"},
                        {"type": "DOCUMENT_TEXT_DETECTION"},
                    ],
                }
            ]
        }

        try:
            response = await self._http.post(
                self._annotate_url,
                params={"key": self._api_key or ""},
                json=body,
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            error = f"Google Vision API error: HTTP {exc.response.status_code}"
            self._logger.error("ocr_extraction_failed", provider=name, error=error)
            return ExtractionAttempt.failure(name, error, self._elapsed_ms(start))
        except (httpx.HTTPError, ValueError) as exc:
            error = f"Google Vision request failed: {exc}"
            self._logger.error("ocr_extraction_failed", provider=name, error=error)
            return ExtractionAttempt.failure(name, error, self._elapsed_ms(start))

        try:
            text, confidence = self._parse_response(payload)
        except OCRExtractionError as exc:
            self._logger.error("ocr_extraction_failed", provider=name, error=exc.message)
            return ExtractionAttempt.failure(name, exc.message, self._elapsed_ms(start))
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            error = f"Malformed Google Vision response: {exc}"
            self._logger.error("ocr_extraction_failed", provider=name, error=error)
            return ExtractionAttempt.failure(name, error, self._elapsed_ms(start))

        elapsed_ms = self._elapsed_ms(start)
        self._logger.info(
            "ocr_extraction_complete",
            provider=name,
            confidence=round(confidence, 4),
            chars=len(text),
            elapsed_ms=elapsed_ms,
        )
        return ExtractionAttempt(text=text, confidence=confidence, source_id=name, elapsed_ms=elapsed_ms)

    def get_provider_name(self) -> str:
        return "google-vision"

    def is_available(self) -> bool:
        return bool(self._api_key)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _image_payload(image: ScreenshotImage) -> dict[str, Any] | None:
        if image.has_bytes:
            return {"content": base64.b64encode(image.image_data).decode("ascii")}
        if image.source_url:
            return {"source": {"imageUri": image.source_url}}
        return None

    @staticmethod
    def _parse_response(payload: dict[str, Any]) -> tuple[str, float]:
        """Pull text and a confidence out of an ``images:annotate`` response.

        An in-band ``error`` object on the per-image response raises
        :class:`OCRExtractionError` carrying the API's own message.
        """
        result = payload["responses"][0]
        if result.get("error"):
            message = result["error"].get("message") or "annotate error"
            raise OCRExtractionError(f"Google Vision annotate error: {message}", provider_name="google-vision")

        full_text = result.get("fullTextAnnotation")
        if full_text and full_text.get("text"):
            pages = full_text.get("pages") or []
            confidence = average_confidence(page.get("confidence") for page in pages)
            return full_text["text"], confidence

        annotations = result.get("textAnnotations") or []
        if annotations and annotations[0].get("description"):
            return annotations[0]["description"], DEFAULT_PROVIDER_CONFIDENCE

        return "", 0.0

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int(round((time.perf_counter() - start) * 1000))
