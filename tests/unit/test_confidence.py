"""Unit tests for confidence scoring utilities."""

from __future__ import annotations

import math

import pytest

from src.models.extraction import ExtractionAttempt
from src.utils.confidence import (
    FALLBACK_SOURCE_ID,
    ConfidenceLevel,
    average_confidence,
    clamp_confidence,
    confidence_to_level,
    is_limited,
)


# ======================================================================
# clamp_confidence
# ======================================================================


class TestClampConfidence:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [(0.5, 0.5), (-0.2, 0.0), (1.7, 1.0), (None, 0.0), (math.nan, 0.0), (1, 1.0), ("x", 0.0)],
    )
    def test_clamp(self, value: object, expected: float) -> None:
        assert clamp_confidence(value) == pytest.approx(expected)  # type: ignore[arg-type]


# ======================================================================
# average_confidence
# ======================================================================


class TestAverageConfidence:
    def test_plain_mean(self) -> None:
        assert average_confidence([0.8, 0.6, 0.4]) == pytest.approx(0.6)

    def test_scaled_tesseract_scores(self) -> None:
        assert average_confidence([90, 70], scale=100.0) == pytest.approx(0.8)

    def test_ignores_sentinels_and_none(self) -> None:
        assert average_confidence([-1, None, 0.9, math.nan]) == pytest.approx(0.9)

    def test_default_when_nothing_usable(self) -> None:
        assert average_confidence([]) == pytest.approx(0.5)
        assert average_confidence([None, -1], default=0.0) == 0.0

    def test_result_clamped(self) -> None:
        assert average_confidence([150, 150], scale=100.0) == 1.0


# ======================================================================
# confidence_to_level
# ======================================================================


class TestConfidenceToLevel:
    @pytest.mark.parametrize(
        ("score", "level"),
        [
            (0.0, ConfidenceLevel.VERY_LOW),
            (0.19, ConfidenceLevel.VERY_LOW),
            (0.2, ConfidenceLevel.LOW),
            (0.4, ConfidenceLevel.MEDIUM),
            (0.6, ConfidenceLevel.HIGH),
            (0.79, ConfidenceLevel.HIGH),
            (0.8, ConfidenceLevel.VERY_HIGH),
            (1.0, ConfidenceLevel.VERY_HIGH),
        ],
    )
    def test_levels(self, score: float, level: ConfidenceLevel) -> None:
        assert confidence_to_level(score) == level


# ======================================================================
# is_limited
# ======================================================================


class TestIsLimited:
    def test_synthetic_text_is_limited(self) -> None:
        result = ExtractionAttempt(text="notice", confidence=0.9, source_id=FALLBACK_SOURCE_ID)
        assert is_limited(result) is True

    def test_floor_confidence_is_limited(self) -> None:
        result = ExtractionAttempt(text="hi there", confidence=0.1, source_id="tesseract")
        assert is_limited(result) is True

    def test_normal_result_not_limited(self) -> None:
        result = ExtractionAttempt(text="hi there", confidence=0.25, source_id="tesseract")
        assert is_limited(result) is False
