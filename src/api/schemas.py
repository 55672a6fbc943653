"""Pydantic request/response schemas for the screentext API.

Defines the public contract for the REST endpoints: single and batch
extraction, health, and provider listing.  FastAPI uses these models to
validate, serialize and document (``/docs``) every response.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from src.models.extraction import ExtractionAttempt
from src.models.pipeline import PipelineReport
from src.utils.confidence import confidence_to_level, is_limited


class AttemptSchema(BaseModel):
    """One provider invocation as reported to API clients."""

    source_id: str
    text: str
    confidence: float = Field(ge=0.0, le=1.0)
    elapsed_ms: int
    error: str | None = None

    @classmethod
    def from_attempt(cls, attempt: ExtractionAttempt) -> AttemptSchema:
        return cls(
            source_id=attempt.source_id,
            text=attempt.text,
            confidence=attempt.confidence,
            elapsed_ms=attempt.elapsed_ms,
            error=attempt.error,
        )


class ExtractionResponse(BaseModel):
    """Final extraction result for one screenshot."""

    filename: str | None = None
    text: str
    confidence: float = Field(ge=0.0, le=1.0)
    confidence_level: str
    source_id: str
    elapsed_ms: int
    # True for synthetic text or floor confidence: show a "limited analysis" notice.
    limited_analysis: bool
    outcome: str | None = None
    attempts: list[AttemptSchema] = Field(default_factory=list)

    @classmethod
    def from_result(
        cls,
        result: ExtractionAttempt,
        *,
        filename: str | None = None,
        report: PipelineReport | None = None,
    ) -> ExtractionResponse:
        return cls(
            filename=filename,
            text=result.text,
            confidence=result.confidence,
            confidence_level=confidence_to_level(result.confidence).value,
            source_id=result.source_id,
            elapsed_ms=report.total_elapsed_ms if report else result.elapsed_ms,
            limited_analysis=is_limited(result),
            outcome=report.outcome.value.lower() if report else None,
            attempts=[AttemptSchema.from_attempt(a) for a in report.attempts] if report else [],
        )


class BatchExtractionResponse(BaseModel):
    """Results for a batch upload, in upload order."""

    results: list[ExtractionResponse]


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ProvidersResponse(BaseModel):
    """List of configured OCR providers and their availability."""

    providers: list[dict[str, Any]]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
