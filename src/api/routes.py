"""FastAPI API routes for feedbackPulse.

Service dependencies are resolved from ``app.state`` via FastAPI's
``Depends`` using the ``Annotated`` pattern.  Domain errors raised by the
services (unknown dataset, bad state, bad import) are left to
``ErrorHandlingMiddleware``, which maps them to 4xx JSON bodies.

# ─── API ROUTE MAP ────────────────────────────────────────────────────
#
# Endpoint                                   Method  Description
# ─────────────────────────────────────────────────────────────────────
# /api/v1/datasets                           POST    Create dataset from parsed rows
# /api/v1/datasets/google-sheets             POST    Import a public Google Sheet
# /api/v1/datasets                           GET     List datasets
# /api/v1/datasets/{id}                      GET     Dataset + analytics
# /api/v1/datasets/{id}                      DELETE  Delete dataset and rows
# /api/v1/datasets/{id}/advance              POST    Analyze one more batch
# /api/v1/datasets/{id}/reanalyze            POST    Reset analysis
# /api/v1/datasets/{id}/export               GET     CSV of rows + sentiment
# /api/v1/review-requests                    POST    Create review request
# /api/v1/review-requests                    GET     List review requests
# /api/v1/review-requests/quick              POST    One-question quick review
# /api/v1/review-requests/{id}/responses     POST    Submit a response
# /api/v1/review-requests/{id}/analytics     GET     Aggregate a request
# /api/v1/review-requests/{id}/export        GET     CSV of responses
# /api/v1/health                             GET     Health + provider status
# /api/v1/providers                          GET     Sentiment provider chain
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import csv
import io
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response

from src.api.schemas import (
    AdvanceResponse,
    CreateDatasetRequest,
    CreateQuickReviewRequest,
    CreateReviewRequest,
    DatasetAnalysisResponse,
    DatasetListResponse,
    DatasetResponse,
    DeleteResponse,
    ErrorResponse,
    HealthResponse,
    ImportSheetRequest,
    ProvidersResponse,
    ReviewRequestListResponse,
    SubmitReviewResponseRequest,
    SubmitReviewResponseResponse,
)
from src.interfaces.review_store import IReviewStore
from src.interfaces.row_store import IRowStore
from src.models.analytics import AnalyticsReport
from src.models.review import QUICK_REVIEW_QUESTION, ReviewRequest
from src.services.analytics_service import AnalyticsService
from src.services.batch_advancer import BatchAdvancer
from src.services.dataset_importer import DatasetImporter
from src.utils.errors import DatasetNotFoundError, InvalidRequestError, ReviewRequestNotFoundError
from src.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

_EXPORT_SENTIMENT_COLUMNS = ["sentiment_label", "sentiment_score", "confidence", "provider_used"]
_REVIEW_EXPORT_LEADING = ["Respondent", "Department"]


# ---------------------------------------------------------------------------
# Dependency helpers
# ---------------------------------------------------------------------------


def _get_row_store(request: Request) -> IRowStore:
    """Return the dataset/row store from application state."""
    return request.app.state.row_store


def _get_review_store(request: Request) -> IReviewStore:
    """Return the review request store from application state."""
    return request.app.state.review_store


def _get_advancer(request: Request) -> BatchAdvancer:
    return request.app.state.batch_advancer


def _get_importer(request: Request) -> DatasetImporter:
    return request.app.state.dataset_importer


def _get_analytics(request: Request) -> AnalyticsService:
    return request.app.state.analytics_service


RowStoreDep = Annotated[IRowStore, Depends(_get_row_store)]
ReviewStoreDep = Annotated[IReviewStore, Depends(_get_review_store)]
AdvancerDep = Annotated[BatchAdvancer, Depends(_get_advancer)]
ImporterDep = Annotated[DatasetImporter, Depends(_get_importer)]
AnalyticsDep = Annotated[AnalyticsService, Depends(_get_analytics)]


# ---------------------------------------------------------------------------
# Dataset endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/datasets",
    response_model=DatasetResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}},
    summary="Create a dataset from parsed rows",
)
async def create_dataset(body: CreateDatasetRequest, importer: ImporterDep) -> DatasetResponse:
    """Store rows for analysis; drive ``/advance`` afterwards to analyze them."""
    dataset = await importer.import_rows(
        title=body.title,
        source_type=body.source_type,
        columns=body.columns,
        rows=body.rows,
        source_url=body.source_url,
    )
    return DatasetResponse(dataset=dataset)


@router.post(
    "/datasets/google-sheets",
    response_model=DatasetResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}},
    summary="Import a publicly shared Google Sheet",
)
async def import_google_sheet(body: ImportSheetRequest, importer: ImporterDep) -> DatasetResponse:
    dataset = await importer.import_google_sheet(title=body.title, sheets_url=body.sheets_url)
    return DatasetResponse(dataset=dataset)


@router.get(
    "/datasets",
    response_model=DatasetListResponse,
    summary="List datasets, newest first",
)
async def list_datasets(store: RowStoreDep) -> DatasetListResponse:
    datasets = await store.list_datasets()
    return DatasetListResponse(datasets=datasets, total=len(datasets))


@router.get(
    "/datasets/{dataset_id}",
    response_model=DatasetAnalysisResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get a dataset with its analytics",
)
async def get_dataset(
    dataset_id: str,
    store: RowStoreDep,
    analytics: AnalyticsDep,
) -> DatasetAnalysisResponse:
    """Analytics are partial while the dataset is still ``processing``."""
    dataset = await store.get_dataset(dataset_id)
    if dataset is None:
        raise DatasetNotFoundError(message=f"Dataset {dataset_id} not found")
    report = await analytics.aggregate_dataset(dataset_id)
    return DatasetAnalysisResponse(dataset=dataset, analytics=report)


@router.delete(
    "/datasets/{dataset_id}",
    response_model=DeleteResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Delete a dataset and its rows",
)
async def delete_dataset(dataset_id: str, store: RowStoreDep) -> DeleteResponse:
    deleted = await store.delete_dataset(dataset_id)
    if not deleted:
        raise DatasetNotFoundError(message=f"Dataset {dataset_id} not found")
    return DeleteResponse(deleted=True, id=dataset_id)


@router.post(
    "/datasets/{dataset_id}/advance",
    response_model=AdvanceResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Analyze the next batch of rows",
)
async def advance_dataset(
    dataset_id: str,
    advancer: AdvancerDep,
    store: RowStoreDep,
    batch_size: Annotated[int | None, Query(ge=1, le=100)] = None,
) -> AdvanceResponse:
    """Call repeatedly until ``done`` is true; safe to call again afterwards."""
    result = await advancer.advance(dataset_id, batch_size=batch_size)
    dataset = await store.get_dataset(dataset_id)
    return AdvanceResponse(
        dataset_id=dataset_id,
        processed=result.processed,
        analyzed_total=result.analyzed_total,
        total_rows=result.total_rows,
        done=result.done,
        status=dataset.status.value if dataset else "deleted",
    )


@router.post(
    "/datasets/{dataset_id}/reanalyze",
    response_model=DatasetResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Clear the analysis and start over",
)
async def reanalyze_dataset(dataset_id: str, advancer: AdvancerDep) -> DatasetResponse:
    dataset = await advancer.reanalyze(dataset_id)
    return DatasetResponse(dataset=dataset)


@router.get(
    "/datasets/{dataset_id}/export",
    responses={404: {"model": ErrorResponse}},
    summary="Download rows and their sentiment as CSV",
)
async def export_dataset(dataset_id: str, store: RowStoreDep) -> Response:
    dataset = await store.get_dataset(dataset_id)
    if dataset is None:
        raise DatasetNotFoundError(message=f"Dataset {dataset_id} not found")
    rows = await store.list_rows(dataset_id)

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(["respondent", *dataset.question_columns, *_EXPORT_SENTIMENT_COLUMNS])
    for row in rows:
        writer.writerow(
            [
                row.respondent_label,
                *(row.raw_data.get(c, "") for c in dataset.question_columns),
                row.sentiment_label.value if row.sentiment_label else "",
                "" if row.sentiment_score is None else row.sentiment_score,
                "" if row.confidence is None else row.confidence,
                row.provider_used or "",
            ]
        )

    filename = f"dataset-{dataset_id}.csv"
    return Response(
        content=buffer.getvalue(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ---------------------------------------------------------------------------
# Review request endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/review-requests",
    response_model=ReviewRequest,
    status_code=201,
    responses={400: {"model": ErrorResponse}},
    summary="Create a review request",
)
async def create_review_request(
    body: CreateReviewRequest, reviews: ReviewStoreDep
) -> ReviewRequest:
    question_ids = [q.id for q in body.questions]
    if len(set(question_ids)) != len(question_ids):
        raise HTTPException(status_code=400, detail="Question ids must be unique")
    return await reviews.create_request(title=body.title.strip(), questions=body.questions)


@router.post(
    "/review-requests/quick",
    response_model=ReviewRequest,
    status_code=201,
    summary="Create a one-question quick review",
)
async def create_quick_review(
    body: CreateQuickReviewRequest, reviews: ReviewStoreDep
) -> ReviewRequest:
    """Good / Average / Needs Improvement on the preset question."""
    review_request = await reviews.create_request(
        title=body.title.strip(), questions=[QUICK_REVIEW_QUESTION]
    )
    _logger.info("quick_review_created", request_id=review_request.id)
    return review_request


@router.get(
    "/review-requests",
    response_model=ReviewRequestListResponse,
    summary="List review requests",
)
async def list_review_requests(reviews: ReviewStoreDep) -> ReviewRequestListResponse:
    requests = await reviews.list_requests()
    return ReviewRequestListResponse(requests=requests, total=len(requests))


@router.post(
    "/review-requests/{request_id}/responses",
    response_model=SubmitReviewResponseResponse,
    status_code=201,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
    summary="Submit a response to a review request",
)
async def submit_review_response(
    request_id: str,
    body: SubmitReviewResponseRequest,
    reviews: ReviewStoreDep,
) -> SubmitReviewResponseResponse:
    """One response per respondent; a second submission returns 409."""
    review_request = await reviews.get_request(request_id)
    if review_request is None:
        raise ReviewRequestNotFoundError(message=f"Review request {request_id} not found")

    known = {q.id for q in review_request.questions}
    unknown = sorted(set(body.answers) - known)
    if unknown:
        raise InvalidRequestError(message=f"Unknown question ids: {', '.join(unknown)}")

    response = await reviews.submit_response(
        request_id=request_id,
        respondent_id=body.respondent_id,
        answers=body.answers,
        department=body.department,
    )
    return SubmitReviewResponseResponse(response_id=response.id, request_id=request_id)


@router.get(
    "/review-requests/{request_id}/analytics",
    response_model=AnalyticsReport,
    responses={404: {"model": ErrorResponse}},
    summary="Aggregate the responses of a review request",
)
async def review_request_analytics(request_id: str, analytics: AnalyticsDep) -> AnalyticsReport:
    return await analytics.aggregate_review_request(request_id)


@router.get(
    "/review-requests/{request_id}/export",
    responses={404: {"model": ErrorResponse}},
    summary="Download the responses of a review request as CSV",
)
async def export_review_request(request_id: str, reviews: ReviewStoreDep) -> Response:
    """One line per response in submission order; columns follow the questions."""
    review_request = await reviews.get_request(request_id)
    if review_request is None:
        raise ReviewRequestNotFoundError(message=f"Review request {request_id} not found")
    responses = await reviews.list_responses(request_id)

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(
        [*_REVIEW_EXPORT_LEADING, *(q.text for q in review_request.questions), "Submitted At"]
    )
    for response in responses:
        writer.writerow(
            [
                response.respondent_id,
                response.department or "",
                *(_format_answer(response.answers.get(q.id)) for q in review_request.questions),
                response.created_at.isoformat() if response.created_at else "",
            ]
        )

    _logger.info(
        "review_request_exported", request_id=request_id, response_count=len(responses)
    )
    filename = f"review-{request_id}.csv"
    return Response(
        content=buffer.getvalue(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _format_answer(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return "; ".join(str(v) for v in value)
    return str(value)


# ---------------------------------------------------------------------------
# System endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Healthy with any remote provider; degraded when only the fallback answers."""
    providers: dict[str, Any] = {}
    if hasattr(request.app.state, "provider_registry"):
        providers = dict(request.app.state.provider_registry)

    remote_available = any(
        available for name, available in providers.items() if name != "fallback"
    )
    return HealthResponse(
        status="healthy" if remote_available else "degraded",
        version=getattr(request.app.state, "version", "0.1.0"),
        providers=providers,
    )


@router.get(
    "/providers",
    response_model=ProvidersResponse,
    summary="List the sentiment provider chain",
)
async def list_providers(request: Request) -> ProvidersResponse:
    """Providers in fallback order, ending with the rule-based classifier."""
    providers: list[dict[str, Any]] = []
    if hasattr(request.app.state, "provider_list"):
        providers = request.app.state.provider_list
    return ProvidersResponse(providers=providers)
