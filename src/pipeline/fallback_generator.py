"""Synthetic text for screenshots no provider could read.

When every provider failed, was disabled, or produced nothing, the caller
still needs *some* text to hand to the relationship analysis downstream.
:func:`generate_fallback_text` builds a notice that says extraction
failed, includes whatever metadata is known about the image, and tells
the user how to get a better result.  The decision engine tags the text
with ``source_id="fallback-generator"`` so consumers can skip scoring it.
"""

from __future__ import annotations

from src.models.screenshot import ImageDescriptor, ScreenshotImage
from src.utils.logging import get_logger

_logger = get_logger(__name__)

UNKNOWN = "unknown"

GUIDANCE = (
    "This appears to be a screenshot that may contain conversation text. "
    "For best results, please:\n"
    "- Ensure the image is not compressed or blurry\n"
    "- Try cropping the image to focus on the message area\n"
    "- If possible, provide a higher resolution screenshot"
)

ANALYSIS_NOTICE = (
    "The emotional analysis will proceed with limited insights based on "
    "the available context."
)

MINIMAL_FALLBACK_TEXT = "Unable to process this image. Please try a different screenshot."


def _describe(image: ScreenshotImage | ImageDescriptor | None) -> str:
    if image is None:
        return f"[Image: {UNKNOWN}, Size: {UNKNOWN}, Type: {UNKNOWN}]"

    descriptor = image.describe() if isinstance(image, ScreenshotImage) else image
    name = descriptor.filename or UNKNOWN
    size = f"{descriptor.size_kb} KB" if descriptor.size_kb is not None else UNKNOWN
    media_type = descriptor.content_type or UNKNOWN
    summary = f"[Image: {name}, Size: {size}, Type: {media_type}"
    if descriptor.source_url:
        summary += ", provided as URL"
    return summary + "]"


def generate_fallback_text(image: ScreenshotImage | ImageDescriptor | None = None) -> str:
    """Return a non-empty notice describing the failed extraction.

    Never raises; if building the detailed notice fails for any reason the
    fixed :data:`MINIMAL_FALLBACK_TEXT` is returned instead.
    """
    _logger.info("generating_fallback_text")
    try:
        return (
            f"The system was unable to extract text from this image. {_describe(image)}\n\n"
            f"{GUIDANCE}\n\n"
            f"{ANALYSIS_NOTICE}"
        )
    except Exception as exc:
        _logger.error("fallback_text_failed", error=str(exc))
        return MINIMAL_FALLBACK_TEXT
