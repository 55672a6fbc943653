"""Custom exception hierarchy for screentext.

All application exceptions inherit from :class:`ScreenTextError`, which
carries an optional ``provider_name`` so error handlers can identify which
recognition backend (e.g. "tesseract", "google-vision", "azure") caused the
failure.

The hierarchy is organized by where in the extraction flow it is raised:

    ScreenTextError  (base -- catch-all for any screentext error)
    +-- ImageFormatError         (input handle cannot be decoded / is unsupported)
    +-- OCRExtractionError       (a provider could not produce text)
    +-- ProviderUnavailableError (external service down / not configured)
    +-- ConfigurationError       (startup / invalid settings)
    +-- PipelineError            (orchestration faults)
        +-- FallbackGenerationError (synthetic text could not be built)

Provider adapters never let these escape: they convert them into failed
extraction attempts.  Only :class:`FallbackGenerationError` is allowed to
reach a caller, because it signals a programming error rather than a
runtime condition.
"""


class ScreenTextError(Exception):
    """Base exception for all screentext errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which backend triggered the error.  The
    ``__str__`` method prefixes the provider name in brackets for log
    output, e.g. ``[azure] Read operation did not succeed``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Input / extraction errors
# ---------------------------------------------------------------------------

class ImageFormatError(ScreenTextError):
    """Raised when an image handle is in an encoding a consumer cannot accept.

    Raised at construction time for undecodable data URIs, and inside
    provider adapters when e.g. a local engine is handed a remote URL or
    an unreadable handle.  The decision engine records it as a failed
    attempt and never lets it reach the caller.
    """

    def __init__(
        self,
        message: str = "Unsupported image format",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class OCRExtractionError(ScreenTextError):
    """Raised inside a provider when text extraction fails."""

    def __init__(
        self,
        message: str = "OCR text extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ProviderUnavailableError(ScreenTextError):
    """Raised when a recognition service is unreachable or not configured."""

    def __init__(
        self,
        message: str = "Recognition service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Orchestration / configuration errors
# ---------------------------------------------------------------------------

class ConfigurationError(ScreenTextError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class PipelineError(ScreenTextError):
    """Raised when pipeline orchestration fails."""

    def __init__(
        self,
        message: str = "Pipeline orchestration failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class FallbackGenerationError(PipelineError):
    """Raised when even the synthetic fallback text could not be produced.

    This is unreachable in a correct build.  It is deliberately not
    absorbed by :meth:`OCRService.run_pipeline`.
    """

    def __init__(
        self,
        message: str = "Fallback text generation failed",
        provider_name: str | None = "fallback-generator",
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
