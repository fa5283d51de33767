"""feedbackPulse API layer: routes, schemas, and middleware."""

from src.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from src.api.routes import router
from src.api.schemas import (
    AdvanceResponse,
    DatasetAnalysisResponse,
    DatasetResponse,
    ErrorResponse,
    HealthResponse,
    ProvidersResponse,
)

__all__ = [
    "AdvanceResponse",
    "DatasetAnalysisResponse",
    "DatasetResponse",
    "ErrorHandlingMiddleware",
    "ErrorResponse",
    "HealthResponse",
    "ProvidersResponse",
    "RequestLoggingMiddleware",
    "configure_cors",
    "router",
]
