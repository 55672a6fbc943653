"""Extraction attempt model: one record per provider invocation.

One ``ExtractionAttempt`` is recorded per provider invocation.  Attempts
are immutable; the decision engine derives the final, caller-facing
attempt from a recorded one via ``model_copy(update={...})``.

A failed attempt (transport error, bad payload, timeout) has ``error``
set, empty text and zero confidence.  An attempt returned to a caller
always has ``error=None`` and cleaned text.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.utils.confidence import clamp_confidence

TIMED_OUT = "timed out"


class ExtractionAttempt(BaseModel):
    """Outcome of asking one provider (or the fallback generator) for text."""

    model_config = ConfigDict(frozen=True)

    # Extracted text; may be empty.
    text: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    # Provider name (e.g. "google-vision") or "fallback-generator".
    source_id: str
    elapsed_ms: int = Field(default=0, ge=0)
    # Set when the provider call itself failed.
    error: str | None = None

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp(cls, value: float) -> float:
        return clamp_confidence(value)

    @field_validator("elapsed_ms", mode="before")
    @classmethod
    def _non_negative_ms(cls, value: float) -> int:
        return max(0, int(round(float(value))))

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def timed_out(self) -> bool:
        return self.error == TIMED_OUT

    @classmethod
    def failure(cls, source_id: str, error: str, elapsed_ms: float = 0) -> ExtractionAttempt:
        """Build a failed attempt; text and confidence are zeroed."""
        return cls(
            text="",
            confidence=0.0,
            source_id=source_id,
            elapsed_ms=elapsed_ms,
            error=error or "Unknown error",
        )
