"""screentext API layer: routes, schemas, and middleware."""

from src.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from src.api.routes import router
from src.api.schemas import (
    AttemptSchema,
    BatchExtractionResponse,
    ErrorResponse,
    ExtractionResponse,
    HealthResponse,
    ProvidersResponse,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "router",
    "AttemptSchema",
    "BatchExtractionResponse",
    "ErrorResponse",
    "ExtractionResponse",
    "HealthResponse",
    "ProvidersResponse",
]
