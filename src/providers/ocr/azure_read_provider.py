"""Azure Computer Vision Read (v3.2) OCR provider.

The Read API is asynchronous on the service side:

    1. POST the image to ``/vision/v3.2/read/analyze``; the service answers
       202 with an ``Operation-Location`` header.
    2. GET that location until ``status`` is ``succeeded`` or ``failed``,
       at most ``max_polls`` times, ``poll_interval_s`` apart.

Text is the ``readResults[].lines[].text`` joined with newlines, and the
confidence is the mean of every word confidence on the page.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any

import httpx

from src.interfaces.ocr_provider import IOCRProvider
from src.models.extraction import ExtractionAttempt
from src.models.screenshot import ScreenshotImage
from src.utils.confidence import average_confidence
from src.utils.errors import OCRExtractionError
from src.utils.logging import get_logger

_ANALYZE_PATH = "/vision/v3.2/read/analyze"
_SUBSCRIPTION_HEADER = "Ocp-Apim-Subscription-Key"


class AzureReadOCRProvider(IOCRProvider):
    """OCR provider backed by the Azure Computer Vision Read API."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        endpoint: str | None,
        api_key: str | None,
        poll_interval_s: float = 1.0,
        max_polls: int = 10,
        language: str = "en",
    ) -> None:
        self._http = http_client
        self._endpoint = (endpoint or "").rstrip("/")
        self._api_key = api_key
        self._poll_interval_s = poll_interval_s
        self._max_polls = max_polls
        self._language = language
        self._logger = get_logger(__name__)

    # ------------------------------------------------------------------
    # IOCRProvider interface
    # ------------------------------------------------------------------

    async def extract_text(self, image: ScreenshotImage) -> ExtractionAttempt:
        name = self.get_provider_name()
        start = time.perf_counter()
        try:
            operation_url = await self._submit(image)
            result = await self._poll(operation_url)
            text, confidence = self._parse_result(result)
        except OCRExtractionError as exc:
            self._logger.error("ocr_extraction_failed", provider=name, error=exc.message)
            return ExtractionAttempt.failure(name, exc.message, self._elapsed_ms(start))
        except httpx.HTTPStatusError as exc:
            error = f"Azure OCR API error: HTTP {exc.response.status_code}"
            self._logger.error("ocr_extraction_failed", provider=name, error=error)
            return ExtractionAttempt.failure(name, error, self._elapsed_ms(start))
        except (httpx.HTTPError, ValueError) as exc:
            error = f"Azure OCR request failed: {exc}"
            self._logger.error("ocr_extraction_failed", provider=name, error=error)
            return ExtractionAttempt.failure(name, error, self._elapsed_ms(start))
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            error = f"Malformed Azure OCR response: {exc}"
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
        return "azure"

    def is_available(self) -> bool:
        return bool(self._endpoint and self._api_key)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _submit(self, image: ScreenshotImage) -> str:
        """Start a Read operation and return its ``Operation-Location``."""
        headers = {_SUBSCRIPTION_HEADER: self._api_key or ""}
        params = {"language": self._language, "model-version": "latest"}
        url = f"{self._endpoint}{_ANALYZE_PATH}"

        if image.has_bytes:
            headers["Content-Type"] = "application/octet-stream"
            response = await self._http.post(url, params=params, headers=headers, content=image.image_data)
        elif image.source_url:
            response = await self._http.post(url, params=params, headers=headers, json={"url": image.source_url})
        else:
            raise OCRExtractionError("Image has neither bytes nor URL", provider_name=self.get_provider_name())

        response.raise_for_status()
        operation_url = response.headers.get("Operation-Location")
        if not operation_url:
            raise OCRExtractionError(
                "No Operation-Location header in Azure OCR response",
                provider_name=self.get_provider_name(),
            )
        return operation_url

    async def _poll(self, operation_url: str) -> dict[str, Any]:
        headers = {_SUBSCRIPTION_HEADER: self._api_key or ""}
        for poll in range(1, self._max_polls + 1):
            response = await self._http.get(operation_url, headers=headers)
            response.raise_for_status()
            payload = response.json()
            status = str(payload.get("status", "")).lower()
            self._logger.debug("azure_read_poll", poll=poll, status=status)

            if status == "succeeded":
                return payload
            if status == "failed":
                raise OCRExtractionError("Azure Read operation failed", provider_name=self.get_provider_name())
            if poll < self._max_polls:
                await asyncio.sleep(self._poll_interval_s)

        raise OCRExtractionError(
            f"Azure Read operation not finished after {self._max_polls} polls",
            provider_name=self.get_provider_name(),
        )

    @staticmethod
    def _parse_result(payload: dict[str, Any]) -> tuple[str, float]:
        read_results = payload["analyzeResult"]["readResults"]
        lines: list[str] = []
        word_confidences: list[float] = []
        for page in read_results:
            for line in page.get("lines") or []:
                lines.append(line["text"])
                word_confidences.extend(word.get("confidence") for word in line.get("words") or [])

        if not lines:
            return "", 0.0
        return "\n".join(lines), average_confidence(word_confidences)

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int(round((time.perf_counter() - start) * 1000))
