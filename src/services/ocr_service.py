"""OCR decision engine with a multi-provider fallback chain.

Drives the enabled providers of a :class:`ProviderRegistry` one at a time,
in priority order, and decides when a result is good enough.

Architecture: Fallback Chain with a guaranteed answer
-----------------------------------------------------
Each provider call is raced against ``per_attempt_timeout_ms``; a slow
provider is abandoned (best-effort cancel, never joined) and recorded as
``"timed out"``.  Every call, successful or not, is appended to a per-run
attempt list that is owned by this one invocation and discarded after it.

    1. Accept early when ``confidence >= threshold`` and the *raw* text
       passes the meaningfulness gate.  The accepted text is then cleaned.
    2. Otherwise keep going until candidates or the attempt budget run out.
    3. On exhaustion return the highest-confidence attempt that has text
       (earliest wins ties), cleaned, with its confidence raised to
       ``LOW_CONFIDENCE_FLOOR``.
    4. With no text at all, return synthetic text from the fallback
       generator tagged ``"fallback-generator"``.

A handle that cannot be decoded (bad data URI, unreadable path) is not an
error either: it becomes a metadata-only image that every provider rejects,
so the run ends in the fallback text like any other total failure.

The engine never returns an attempt with ``error`` set and never raises for
provider or input problems.  The only exception that escapes ``run_pipeline`` is
:class:`FallbackGenerationError`, a programming error.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Sequence
from pathlib import Path

import structlog

from src.interfaces.ocr_provider import IOCRProvider
from src.models.extraction import TIMED_OUT, ExtractionAttempt
from src.models.pipeline import PipelineConfig, PipelineReport, PipelineState
from src.models.screenshot import ImageDescriptor, ScreenshotImage
from src.pipeline.fallback_generator import MINIMAL_FALLBACK_TEXT, generate_fallback_text
from src.pipeline.meaningfulness_gate import is_meaningful_text
from src.pipeline.provider_registry import ProviderRegistry
from src.utils.concurrency import RaceTimeout, race_with_timeout, throttled_gather
from src.utils.confidence import (
    FALLBACK_CONFIDENCE,
    FALLBACK_SOURCE_ID,
    LOW_CONFIDENCE_FLOOR,
)
from src.utils.errors import FallbackGenerationError, ImageFormatError
from src.utils.logging import get_logger
from src.utils.text_normalizer import clean_text

ImageSource = ScreenshotImage | bytes | str | Path

_DEFAULT_BATCH_CONCURRENCY = 4


def _elapsed_ms(start: float) -> int:
    return int(round((time.perf_counter() - start) * 1000))


class OCRService:
    """Runs the extraction pipeline for one image at a time.

    The registry and default configuration are read-only after
    construction, so one service instance can serve any number of
    concurrent pipeline runs.
    """

    def __init__(
        self,
        providers: ProviderRegistry | Sequence[IOCRProvider],
        config: PipelineConfig | None = None,
        *,
        normalize_case: bool = True,
        batch_concurrency: int = _DEFAULT_BATCH_CONCURRENCY,
        fallback_generator: Callable[[ScreenshotImage | ImageDescriptor], str] = generate_fallback_text,
    ) -> None:
        if isinstance(providers, ProviderRegistry):
            self._registry = providers
        else:
            self._registry = ProviderRegistry.from_providers(list(providers))
        self._default_config = config or PipelineConfig.for_provider_count(len(self._registry))
        self._normalize_case = normalize_case
        self._batch_concurrency = max(1, batch_concurrency)
        self._fallback_generator = fallback_generator
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    @property
    def default_config(self) -> PipelineConfig:
        return self._default_config

    def get_available_providers(self) -> list[str]:
        """Names of the enabled providers, primary first."""
        return self._registry.names()

    async def extract_text(self, image: ImageSource) -> str:
        """Run the pipeline with the default config and return only the text.

        Returns ``""`` only when even the synthetic fallback could not be
        built, which is logged as a fatal condition.
        """
        try:
            result = await self.run_pipeline(image)
        except FallbackGenerationError as exc:
            self._logger.critical("ocr_extract_text_fatal", error=str(exc), exc_info=True)
            return ""
        return result.text

    async def run_pipeline(
        self,
        image: ImageSource,
        config: PipelineConfig | None = None,
    ) -> ExtractionAttempt:
        """Run the pipeline and return the final structured attempt."""
        report = await self.run(image, config)
        return report.result

    async def run(
        self,
        image: ImageSource,
        config: PipelineConfig | None = None,
    ) -> PipelineReport:
        """Run the pipeline and return the result plus the attempt history.

        Raises:
            FallbackGenerationError: if synthetic text could not be built.
        """
        start = time.perf_counter()
        config = config or self._default_config
        try:
            screenshot = ScreenshotImage.coerce(image)
        except ImageFormatError as exc:
            screenshot = ScreenshotImage.unreadable(image)
            self._logger.warning("ocr_unreadable_image", image_id=screenshot.id, error=exc.message)
        logger = self._logger.bind(image_id=screenshot.id)

        attempts: list[ExtractionAttempt] = []

        for provider in self._registry.candidates():
            if len(attempts) >= config.max_attempts:
                logger.warning(
                    "ocr_attempt_budget_exhausted",
                    max_attempts=config.max_attempts,
                    skipped_provider=provider.get_provider_name(),
                )
                break

            attempt = await self._attempt(provider, screenshot, config, logger)
            attempts.append(attempt)

            if attempt.failed:
                continue

            meaningful = is_meaningful_text(attempt.text)
            if attempt.confidence >= config.confidence_threshold and meaningful:
                logger.info(
                    "ocr_attempt_accepted",
                    provider=attempt.source_id,
                    confidence=round(attempt.confidence, 4),
                    elapsed_ms=attempt.elapsed_ms,
                    attempt_number=len(attempts),
                )
                result = attempt.model_copy(
                    update={"text": clean_text(attempt.text, normalize_case=self._normalize_case)}
                )
                return self._report(result, attempts, PipelineState.ACCEPTED, start)

            logger.warning(
                "ocr_attempt_not_accepted",
                provider=attempt.source_id,
                confidence=round(attempt.confidence, 4),
                threshold=config.confidence_threshold,
                meaningful=meaningful,
            )

        result = self._select_best_attempt(attempts, logger)
        if result is None:
            result = self._generate_fallback(screenshot, attempts, start, logger)
        return self._report(result, attempts, PipelineState.EXHAUSTED, start)

    async def extract_batch(
        self,
        images: Sequence[ImageSource],
        config: PipelineConfig | None = None,
    ) -> list[ExtractionAttempt]:
        """Run independent pipelines for several images concurrently.

        Results are returned in input order.  An image whose pipeline
        raises (only a broken fallback generator can) yields the minimal
        fallback notice instead of aborting the whole batch, so every entry
        carries non-empty text.
        """
        semaphore = asyncio.Semaphore(self._batch_concurrency)
        raw_results = await throttled_gather(
            [self.run_pipeline(image, config) for image in images],
            semaphore=semaphore,
        )

        results: list[ExtractionAttempt] = []
        for index, outcome in enumerate(raw_results):
            if isinstance(outcome, BaseException):
                self._logger.error("ocr_batch_item_failed", index=index, error=str(outcome))
                results.append(
                    ExtractionAttempt(
                        text=MINIMAL_FALLBACK_TEXT,
                        confidence=FALLBACK_CONFIDENCE,
                        source_id=FALLBACK_SOURCE_ID,
                    )
                )
            else:
                results.append(outcome)
        return results

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _attempt(
        self,
        provider: IOCRProvider,
        image: ScreenshotImage,
        config: PipelineConfig,
        logger: structlog.BoundLogger,
    ) -> ExtractionAttempt:
        """Invoke one provider, raced against the per-attempt timeout."""
        name = provider.get_provider_name()
        logger.debug("ocr_provider_attempting", provider=name)
        start = time.perf_counter()

        try:
            attempt = await race_with_timeout(
                provider.extract_text(image), config.per_attempt_timeout_s
            )
        except RaceTimeout:
            logger.warning(
                "ocr_attempt_timed_out",
                provider=name,
                timeout_ms=config.per_attempt_timeout_ms,
            )
            return ExtractionAttempt.failure(name, TIMED_OUT, _elapsed_ms(start))
        except Exception as exc:
            # Adapters should not raise; record it like any transport failure.
            logger.error("ocr_provider_failed", provider=name, error=str(exc))
            return ExtractionAttempt.failure(name, str(exc) or type(exc).__name__, _elapsed_ms(start))

        elapsed_ms = _elapsed_ms(start)
        if not isinstance(attempt, ExtractionAttempt):
            logger.error("ocr_provider_failed", provider=name, error="malformed provider result")
            return ExtractionAttempt.failure(name, "malformed provider result", elapsed_ms)

        if attempt.failed:
            logger.error("ocr_provider_failed", provider=name, error=attempt.error)
            return ExtractionAttempt.failure(attempt.source_id, attempt.error or "", elapsed_ms)

        return attempt.model_copy(update={"elapsed_ms": elapsed_ms})

    def _select_best_attempt(
        self,
        attempts: list[ExtractionAttempt],
        logger: structlog.BoundLogger,
    ) -> ExtractionAttempt | None:
        """Stable max by confidence over attempts that still have text once cleaned."""
        best: ExtractionAttempt | None = None
        best_text = ""
        for attempt in attempts:
            if attempt.failed or not attempt.text.strip():
                continue
            cleaned = clean_text(attempt.text, normalize_case=self._normalize_case)
            if not cleaned:
                continue
            # Strict comparison keeps the earliest attempt on ties.
            if best is None or attempt.confidence > best.confidence:
                best, best_text = attempt, cleaned

        if best is None:
            return None

        logger.warning(
            "ocr_returning_best_effort",
            provider=best.source_id,
            confidence=round(best.confidence, 4),
            attempts=len(attempts),
        )
        return best.model_copy(
            update={
                "text": best_text,
                "confidence": max(best.confidence, LOW_CONFIDENCE_FLOOR),
            }
        )

    def _generate_fallback(
        self,
        image: ScreenshotImage,
        attempts: list[ExtractionAttempt],
        start: float,
        logger: structlog.BoundLogger,
    ) -> ExtractionAttempt:
        try:
            text = self._fallback_generator(image)
        except Exception as exc:
            raise FallbackGenerationError(f"Fallback generator raised: {exc}") from exc
        if not isinstance(text, str) or not text.strip():
            raise FallbackGenerationError("Fallback generator returned no text")

        logger.error(
            "ocr_all_attempts_failed",
            attempts=len(attempts),
            errors=[attempt.error for attempt in attempts if attempt.failed],
        )
        return ExtractionAttempt(
            text=text,
            confidence=FALLBACK_CONFIDENCE,
            source_id=FALLBACK_SOURCE_ID,
            elapsed_ms=_elapsed_ms(start),
        )

    @staticmethod
    def _report(
        result: ExtractionAttempt,
        attempts: list[ExtractionAttempt],
        outcome: PipelineState,
        start: float,
    ) -> PipelineReport:
        return PipelineReport(
            result=result,
            attempts=tuple(attempts),
            outcome=outcome,
            total_elapsed_ms=_elapsed_ms(start),
        )
