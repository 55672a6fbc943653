"""screentext FastAPI application entry point.

Wires the OCR providers, the provider registry and the decision engine
together via dependency injection.  Loads configuration from ``.env`` and
``config/config.yaml`` and configures structured logging.

Also exposes :func:`build_ocr_service` so the CLI can assemble the same
pipeline outside the web server.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from src.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from src.api.routes import router as api_router
from src.config.loader import load_config
from src.config.settings import Settings
from src.interfaces.ocr_provider import IOCRProvider
from src.models.pipeline import PipelineConfig
from src.pipeline.provider_registry import ProviderRegistry
from src.providers.ocr.azure_read_provider import AzureReadOCRProvider
from src.providers.ocr.google_vision_provider import GoogleVisionOCRProvider
from src.providers.ocr.opencv_tesseract_provider import OpenCVTesseractOCRProvider
from src.providers.ocr.tesseract_provider import TesseractOCRProvider
from src.services.ocr_service import OCRService
from src.utils.image_preprocessor import ScreenshotPreprocessor
from src.utils.logging import configure_logging, get_logger

_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Provider / service assembly
# ---------------------------------------------------------------------------


def _build_provider(
    key: str,
    app_settings: Settings,
    http_client: httpx.AsyncClient,
    preprocessor: ScreenshotPreprocessor,
) -> IOCRProvider:
    """Instantiate the provider named by a ``provider_priority`` entry."""
    if key == "tesseract":
        return TesseractOCRProvider(languages=app_settings.tesseract_languages)
    if key == "google_vision":
        return GoogleVisionOCRProvider(
            http_client=http_client,
            api_key=app_settings.google_vision_api_key,
        )
    if key == "azure":
        return AzureReadOCRProvider(
            http_client=http_client,
            endpoint=app_settings.azure_vision_endpoint,
            api_key=app_settings.azure_vision_key,
            poll_interval_s=app_settings.azure_poll_interval_s,
            max_polls=app_settings.azure_max_polls,
        )
    return OpenCVTesseractOCRProvider(
        preprocessor=preprocessor,
        languages=app_settings.tesseract_languages,
    )


def build_registry(
    app_settings: Settings,
    config: dict[str, Any],
    http_client: httpx.AsyncClient,
) -> ProviderRegistry:
    """Build the priority-ordered provider registry.

    Providers switched off by their feature flag stay in the registry as
    disabled entries so the health endpoints can report them.
    """
    preprocessor = ScreenshotPreprocessor()
    flags = app_settings.get_enabled_provider_flags()

    providers: list[IOCRProvider] = []
    disabled: dict[str, str] = {}
    for key in config["ocr"]["provider_priority"]:
        provider = _build_provider(key, app_settings, http_client, preprocessor)
        providers.append(provider)
        if not flags.get(key, True):
            disabled[provider.get_provider_name()] = "disabled by configuration"

    return ProviderRegistry.from_providers(providers, disabled=disabled)


def build_ocr_service(
    app_settings: Settings,
    http_client: httpx.AsyncClient,
    config: dict[str, Any] | None = None,
) -> OCRService:
    """Assemble the decision engine from settings and the YAML priority list."""
    config = config or load_config(settings=app_settings)
    registry = build_registry(app_settings, config, http_client)
    pipeline_config = PipelineConfig.for_provider_count(
        len(registry),
        max_attempts=app_settings.ocr_max_attempts,
        confidence_threshold=app_settings.ocr_confidence_threshold,
        per_attempt_timeout_ms=app_settings.ocr_per_attempt_timeout_ms,
    )
    return OCRService(
        registry,
        pipeline_config,
        normalize_case=app_settings.ocr_normalize_noisy_case,
        batch_concurrency=app_settings.ocr_batch_concurrency,
    )


def _build_all(app_settings: Settings) -> dict[str, Any]:
    """Construct every component the API needs and return them by name."""
    config = load_config(settings=app_settings)
    http_client = httpx.AsyncClient(timeout=30.0)
    ocr_service = build_ocr_service(app_settings, http_client, config)
    components: dict[str, Any] = {
        "settings": app_settings,
        "config": config,
        "http_client": http_client,
        "ocr_service": ocr_service,
        "provider_registry": ocr_service.registry,
        "max_upload_bytes": app_settings.max_upload_bytes,
    }
    # Absent from the YAML: the routes fall back to their built-in list.
    content_types = config.get("api", {}).get("allowed_content_types")
    if content_types:
        components["allowed_content_types"] = frozenset(content_types)
    return components


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, clean up on shutdown."""
    components = _build_all(settings)

    for key, value in components.items():
        setattr(application.state, key, value)

    _logger.info(
        "app_startup",
        version=_VERSION,
        environment=settings.app_env,
        providers=components["ocr_service"].get_available_providers(),
    )

    yield

    # -- Shutdown: close shared httpx client --
    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()
    _logger.info("app_shutdown", message="HTTP client closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="screentext API",
        version=_VERSION,
        description=(
            "Upload a chat screenshot and get its text back.  Providers are "
            "tried in priority order; a usable result is always returned."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    # -- API routes --
    application.include_router(api_router)

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "src.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
