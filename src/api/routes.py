"""FastAPI API routes for screentext.

Service dependencies are resolved from ``app.state`` via FastAPI's
``Depends`` using the ``Annotated`` pattern.

# ─── API ROUTE MAP ────────────────────────────────────────────────────
#
# Endpoint                              Method  Description
# ─────────────────────────────────────────────────────────────────────
# /api/v1/screenshots/extract           POST    Upload one screenshot -> text
# /api/v1/screenshots/extract-batch     POST    Upload several -> texts (in order)
# /api/v1/health                        GET     Health check + provider status
# /api/v1/providers                     GET     List all configured providers
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, UploadFile

from src.api.schemas import (
    BatchExtractionResponse,
    ErrorResponse,
    ExtractionResponse,
    HealthResponse,
    ProvidersResponse,
)
from src.models.screenshot import ScreenshotImage
from src.pipeline.provider_registry import ProviderRegistry
from src.services.ocr_service import OCRService
from src.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

# --- Upload validation constants ---
_ALLOWED_CONTENT_TYPES = frozenset(
    {"image/png", "image/jpeg", "image/webp", "image/gif", "image/bmp", "image/tiff"}
)
_DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024
_MAX_BATCH_FILES = 20

# Read uploads in 64 KB increments to reject oversized files early.
_UPLOAD_CHUNK_SIZE = 64 * 1024

_VERSION = "0.1.0"


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def _get_ocr_service(request: Request) -> OCRService:
    return request.app.state.ocr_service


def _get_registry(request: Request) -> ProviderRegistry:
    return request.app.state.provider_registry


def _get_max_upload_bytes(request: Request) -> int:
    return getattr(request.app.state, "max_upload_bytes", _DEFAULT_MAX_FILE_SIZE)


def _get_allowed_content_types(request: Request) -> frozenset[str]:
    return getattr(request.app.state, "allowed_content_types", _ALLOWED_CONTENT_TYPES)


OCRServiceDep = Annotated[OCRService, Depends(_get_ocr_service)]
RegistryDep = Annotated[ProviderRegistry, Depends(_get_registry)]
MaxUploadDep = Annotated[int, Depends(_get_max_upload_bytes)]
ContentTypesDep = Annotated[frozenset[str], Depends(_get_allowed_content_types)]


async def _read_upload(
    file: UploadFile,
    max_bytes: int,
    allowed_types: frozenset[str] = _ALLOWED_CONTENT_TYPES,
) -> ScreenshotImage:
    """Validate and buffer one upload into a ``ScreenshotImage``."""
    content_type = file.content_type or ""
    if content_type not in allowed_types:
        raise HTTPException(
            status_code=415,
            detail=(
                f"Unsupported file type: {content_type}. "
                f"Allowed: {', '.join(sorted(allowed_types))}"
            ),
        )

    chunks: list[bytes] = []
    total_size = 0
    while True:
        chunk = await file.read(_UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        total_size += len(chunk)
        if total_size > max_bytes:
            raise HTTPException(
                status_code=413,
                detail=f"File too large. Maximum: {max_bytes} bytes.",
            )
        chunks.append(chunk)

    if total_size == 0:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    return ScreenshotImage.from_bytes(
        b"".join(chunks),
        filename=file.filename,
        content_type=content_type,
    )


# ---------------------------------------------------------------------------
# Extraction endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/screenshots/extract",
    response_model=ExtractionResponse,
    responses={
        413: {"model": ErrorResponse},
        415: {"model": ErrorResponse},
    },
    summary="Extract text from one chat screenshot",
)
async def extract_screenshot(
    file: UploadFile,
    ocr_service: OCRServiceDep,
    max_upload_bytes: MaxUploadDep,
    allowed_types: ContentTypesDep,
) -> ExtractionResponse:
    """Run the extraction pipeline on one uploaded screenshot.

    Always returns text: the best provider result, or a synthetic notice
    flagged with ``limited_analysis`` when nothing could be read.
    """
    image = await _read_upload(file, max_upload_bytes, allowed_types)
    report = await ocr_service.run(image)

    _logger.info(
        "screenshot_extracted",
        image_id=image.id,
        source=report.result.source_id,
        confidence=round(report.result.confidence, 4),
        outcome=report.outcome.value,
    )
    return ExtractionResponse.from_result(report.result, filename=image.filename, report=report)


@router.post(
    "/screenshots/extract-batch",
    response_model=BatchExtractionResponse,
    responses={
        400: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        415: {"model": ErrorResponse},
    },
    summary="Extract text from several chat screenshots",
)
async def extract_screenshot_batch(
    files: list[UploadFile],
    ocr_service: OCRServiceDep,
    max_upload_bytes: MaxUploadDep,
    allowed_types: ContentTypesDep,
) -> BatchExtractionResponse:
    """Run independent pipelines on every upload; results keep upload order."""
    if not files:
        raise HTTPException(status_code=400, detail="No files uploaded")
    if len(files) > _MAX_BATCH_FILES:
        raise HTTPException(
            status_code=400,
            detail=f"Too many files: {len(files)}. Maximum: {_MAX_BATCH_FILES}.",
        )

    images = [await _read_upload(file, max_upload_bytes, allowed_types) for file in files]
    results = await ocr_service.extract_batch(images)

    return BatchExtractionResponse(
        results=[
            ExtractionResponse.from_result(result, filename=image.filename)
            for image, result in zip(images, results, strict=True)
        ]
    )


# ---------------------------------------------------------------------------
# System endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(registry: RegistryDep) -> HealthResponse:
    """Return application health, version, and provider availability.

    ``degraded`` means no provider is enabled: every request will get
    synthetic fallback text.
    """
    providers = {entry.name: entry.enabled for entry in registry}
    status = "healthy" if len(registry) > 0 else "degraded"
    return HealthResponse(status=status, version=_VERSION, providers=providers)


@router.get(
    "/providers",
    response_model=ProvidersResponse,
    summary="List configured OCR providers",
)
async def list_providers(registry: RegistryDep) -> ProvidersResponse:
    """List every provider in priority order with its enabled flag."""
    return ProvidersResponse(providers=registry.describe())
