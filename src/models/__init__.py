"""screentext domain models: re-exports all public model classes.

    - screenshot.py : image handle (bytes, data URI, path or URL) + metadata
    - extraction.py : one provider attempt, the unit of pipeline history
    - pipeline.py   : per-run configuration, states and the final report
"""

from __future__ import annotations

from src.models.extraction import TIMED_OUT, ExtractionAttempt
from src.models.pipeline import PipelineConfig, PipelineReport, PipelineState
from src.models.screenshot import ImageDescriptor, ScreenshotImage, detect_media_type

__all__ = [
    # extraction
    "TIMED_OUT",
    "ExtractionAttempt",
    # pipeline
    "PipelineConfig",
    "PipelineReport",
    "PipelineState",
    # screenshot
    "ImageDescriptor",
    "ScreenshotImage",
    "detect_media_type",
]
