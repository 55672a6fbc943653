"""Confidence scoring utilities for extraction attempts.

Every recognition backend reports quality differently: Tesseract gives
0-100 per word, Google Vision gives 0-1 per page/block (sometimes nothing),
Azure gives 0-1 per word.  This module normalizes all of that into the
single ``[0, 1]`` scale the decision engine compares against its
threshold:

1. **clamp_confidence** -- force any number (including NaN) into [0, 1].
2. **average_confidence** -- deterministic proxy from per-token scores,
   with a fixed default when the provider exposes none.
3. **confidence_to_level** -- human-readable tier for API/CLI output.
4. **is_limited** -- whether a final result should carry a
   "limited analysis" notice (synthetic text or floor confidence).
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.models.extraction import ExtractionAttempt

# Confidence assigned when a provider returns text but no usable quality
# signal at all.
DEFAULT_PROVIDER_CONFIDENCE = 0.5

# Minimum confidence stamped on a best-effort (below threshold) result so
# it is distinguishable from a hard failure (0.0).
LOW_CONFIDENCE_FLOOR = 0.1

# Confidence attached to synthetic fallback text.
FALLBACK_CONFIDENCE = 0.1

FALLBACK_SOURCE_ID = "fallback-generator"


class ConfidenceLevel(Enum):
    """Human-readable confidence tiers."""

    VERY_LOW = "very_low"    # < 0.2
    LOW = "low"              # 0.2 - 0.4
    MEDIUM = "medium"        # 0.4 - 0.6
    HIGH = "high"            # 0.6 - 0.8
    VERY_HIGH = "very_high"  # >= 0.8


def clamp_confidence(value: float | int | None) -> float:
    """Clamp *value* into ``[0.0, 1.0]``; ``None`` and NaN become 0.0."""
    if value is None:
        return 0.0
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, value))


def average_confidence(
    values: Iterable[float | int | None],
    default: float = DEFAULT_PROVIDER_CONFIDENCE,
    scale: float = 1.0,
) -> float:
    """Average per-token confidences into a single attempt confidence.

    Args:
        values: Raw per-word / per-block scores.  ``None`` entries and
            negative sentinels (Tesseract uses ``-1``) are ignored.
        default: Returned when no usable score exists.
        scale: Divisor applied before averaging (``100`` for Tesseract).

    Returns:
        Mean confidence clamped to [0.0, 1.0].
    """
    usable: list[float] = []
    for raw in values:
        if raw is None:
            continue
        try:
            number = float(raw)
        except (TypeError, ValueError):
            continue
        if math.isnan(number) or number < 0:
            continue
        usable.append(number / scale)

    if not usable:
        return clamp_confidence(default)
    return clamp_confidence(sum(usable) / len(usable))


def confidence_to_level(score: float) -> ConfidenceLevel:
    """Map a numeric confidence score to a human-readable level."""
    if score < 0.2:
        return ConfidenceLevel.VERY_LOW
    if score < 0.4:
        return ConfidenceLevel.LOW
    if score < 0.6:
        return ConfidenceLevel.MEDIUM
    if score < 0.8:
        return ConfidenceLevel.HIGH
    return ConfidenceLevel.VERY_HIGH


def is_limited(result: ExtractionAttempt) -> bool:
    """Return ``True`` when callers should show a "limited analysis" notice."""
    return result.source_id == FALLBACK_SOURCE_ID or result.confidence <= LOW_CONFIDENCE_FLOOR
