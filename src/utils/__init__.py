"""Utility modules for screentext.

- **confidence** -- confidence clamping, averaging and level mapping, plus
  the constants shared by the decision engine (floor, fallback source id).
- **errors** -- exception hierarchy rooted at ScreenTextError.
- **concurrency** -- semaphore-throttled gather and the timeout race used
  for every provider call.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **text_normalizer** -- the cleaner applied to every returned text.
- **image_preprocessor** (not re-exported here) -- OpenCV passes for
  chat screenshots, used by the opencv-tesseract provider.
"""

# -- Confidence scoring utilities ------------------------------------------
from src.utils.confidence import (
    ConfidenceLevel,
    average_confidence,
    clamp_confidence,
    confidence_to_level,
    is_limited,
)

# -- Concurrency helpers ---------------------------------------------------
from src.utils.concurrency import RaceTimeout, race_with_timeout, throttled_gather

# -- Error hierarchy -------------------------------------------------------
from src.utils.errors import (
    ConfigurationError,
    FallbackGenerationError,
    ImageFormatError,
    OCRExtractionError,
    PipelineError,
    ProviderUnavailableError,
    ScreenTextError,
)

# -- Logging ---------------------------------------------------------------
from src.utils.logging import configure_logging, get_logger

# -- Text cleaning ---------------------------------------------------------
from src.utils.text_normalizer import clean_text

__all__ = [
    # confidence
    "ConfidenceLevel",
    "average_confidence",
    "clamp_confidence",
    "confidence_to_level",
    "is_limited",
    # concurrency
    "RaceTimeout",
    "race_with_timeout",
    "throttled_gather",
    # errors
    "ConfigurationError",
    "FallbackGenerationError",
    "ImageFormatError",
    "OCRExtractionError",
    "PipelineError",
    "ProviderUnavailableError",
    "ScreenTextError",
    # logging
    "configure_logging",
    "get_logger",
    # text_normalizer
    "clean_text",
]
