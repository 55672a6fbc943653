"""Pipeline configuration, state and report models.

``PipelineConfig`` is built once (per process, or per call when a caller
wants different thresholds) and never mutated during a run.  The decision
engine tries providers in turn until one is accepted or the candidates run
out, then hands the caller a ``PipelineReport`` holding the final attempt,
the terminal ``PipelineState`` and a copy of the ordered attempt history.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from src.models.extraction import ExtractionAttempt
from src.utils.confidence import FALLBACK_SOURCE_ID

DEFAULT_CONFIDENCE_THRESHOLD = 0.3
DEFAULT_PER_ATTEMPT_TIMEOUT_MS = 30_000


class PipelineState(str, Enum):  # noqa: UP042 — StrEnum requires Python 3.11+
    """Terminal state of one extraction run."""

    ACCEPTED = "ACCEPTED"      # An attempt met threshold and gate
    EXHAUSTED = "EXHAUSTED"    # Candidates or attempt budget ran out


class PipelineConfig(BaseModel):
    """Immutable per-invocation configuration of the decision engine."""

    model_config = ConfigDict(frozen=True)

    # Total attempts across all providers, primary included.
    max_attempts: int = Field(ge=1)
    # Minimum confidence to accept an attempt outright.
    confidence_threshold: float = Field(default=DEFAULT_CONFIDENCE_THRESHOLD, ge=0.0, le=1.0)
    per_attempt_timeout_ms: int = Field(default=DEFAULT_PER_ATTEMPT_TIMEOUT_MS, gt=0)

    @property
    def per_attempt_timeout_s(self) -> float:
        return self.per_attempt_timeout_ms / 1000.0

    @classmethod
    def for_provider_count(
        cls,
        enabled_providers: int,
        *,
        max_attempts: int | None = None,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        per_attempt_timeout_ms: int = DEFAULT_PER_ATTEMPT_TIMEOUT_MS,
    ) -> PipelineConfig:
        """Default budget: one attempt per enabled provider plus one spare."""
        return cls(
            max_attempts=max_attempts if max_attempts is not None else enabled_providers + 1,
            confidence_threshold=confidence_threshold,
            per_attempt_timeout_ms=per_attempt_timeout_ms,
        )


class PipelineReport(BaseModel):
    """Full outcome of one pipeline run."""

    model_config = ConfigDict(frozen=True)

    result: ExtractionAttempt
    # Every provider attempt, in invocation order.
    attempts: tuple[ExtractionAttempt, ...] = ()
    # How the run ended.
    outcome: PipelineState
    total_elapsed_ms: int = Field(default=0, ge=0)

    @property
    def synthetic(self) -> bool:
        return self.result.source_id == FALLBACK_SOURCE_ID
