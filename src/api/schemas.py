"""Pydantic request/response schemas for the feedbackPulse API.

# ─── HOW SCHEMAS WORK ─────────────────────────────────────────────────
#
# FastAPI validates incoming JSON against the *Request models (invalid
# bodies get a 422) and serializes return values through the *Response
# models.  Domain models from src/models/ are embedded directly where
# their shape is already the public one (Dataset, AnalyticsReport).
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from src.models.analytics import AnalyticsReport
from src.models.dataset import Dataset, SourceType
from src.models.review import ReviewQuestion, ReviewRequest


# ---------------------------------------------------------------------------
# Datasets
# ---------------------------------------------------------------------------


class CreateDatasetRequest(BaseModel):
    """Rows already parsed from an uploaded CSV (or any tabular source)."""

    title: str = Field(..., min_length=1, max_length=200)
    source_type: SourceType = SourceType.CSV
    source_url: str | None = None
    columns: list[str] = Field(..., min_length=1)
    rows: list[dict[str, Any]] = Field(..., min_length=1)


class ImportSheetRequest(BaseModel):
    """A publicly shared Google Sheet to import."""

    title: str = Field(..., min_length=1, max_length=200)
    sheets_url: str = Field(..., min_length=1)


class DatasetResponse(BaseModel):
    dataset: Dataset


class DatasetListResponse(BaseModel):
    datasets: list[Dataset]
    total: int


class DatasetAnalysisResponse(BaseModel):
    """A dataset together with its (possibly partial) analytics."""

    dataset: Dataset
    analytics: AnalyticsReport


class AdvanceResponse(BaseModel):
    """Progress after one batch; ``done`` tells the driver to stop calling."""

    dataset_id: str
    processed: int
    analyzed_total: int
    total_rows: int
    done: bool
    status: str


class DeleteResponse(BaseModel):
    deleted: bool
    id: str


# ---------------------------------------------------------------------------
# Review requests
# ---------------------------------------------------------------------------


class CreateReviewRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    questions: list[ReviewQuestion] = Field(..., min_length=1)


class CreateQuickReviewRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)


class ReviewRequestListResponse(BaseModel):
    requests: list[ReviewRequest]
    total: int


class SubmitReviewResponseRequest(BaseModel):
    respondent_id: str = Field(..., min_length=1)
    department: str | None = None
    answers: dict[str, Any] = Field(..., min_length=1)


class SubmitReviewResponseResponse(BaseModel):
    response_id: str
    request_id: str


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ProvidersResponse(BaseModel):
    """Sentiment providers in chain order and their availability."""

    providers: list[dict[str, Any]]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
