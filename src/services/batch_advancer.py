"""Batch advancer: moves a dataset's sentiment analysis forward one batch.

# ─── HOW ADVANCING WORKS ──────────────────────────────────────────────
#
# The host only allows short requests, so a dataset is never analyzed in
# one go.  A driver (the UI poll loop, a cron job, a test) calls
# ``advance(dataset_id)`` repeatedly until it reports ``done=True``.
#
# Each call:
#   1. loads the dataset; anything but ``processing`` returns done at once
#   2. claims up to ``batch_size`` unanalyzed rows (lowest row_index first)
#   3. classifies each claimed row through the provider chain
#   4. writes each row with a claim-checked write that also bumps
#      ``analyzed_rows``; a failing row is logged and released, the rest
#      of the batch continues
#   5. completes the dataset (with a summary) once every row is analyzed
#
# Nothing is kept in memory between calls, so a call killed half-way only
# leaves claimed-but-unwritten rows behind, and those become selectable
# again once their claim is older than ``claim_ttl_seconds``.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timedelta, timezone

from src.interfaces.row_store import IRowStore
from src.models.dataset import (
    AdvanceResult,
    Dataset,
    DatasetStatus,
    QuestionSentiment,
    ResponseRow,
    RowAnalysis,
)
from src.models.sentiment import (
    NO_TEXT_PROVIDER,
    RATING_PROVIDER,
    SentimentLabel,
    SentimentResult,
)
from src.services.analytics_service import summarize_sentiment
from src.services.answer_fields import numeric_answers, text_answers
from src.services.rule_classifier import RuleBasedClassifier
from src.services.sentiment_classifier import SentimentClassifier
from src.utils.concurrency import throttled_gather
from src.utils.errors import (
    DatasetNotFoundError,
    InvalidDatasetStateError,
    InvalidRequestError,
    RowPersistenceError,
)
from src.utils.logging import dataset_log_context, get_logger


class BatchAdvancer:
    """Resumable, idempotent unit of sentiment work over one dataset."""

    def __init__(
        self,
        store: IRowStore,
        classifier: SentimentClassifier,
        rule_classifier: RuleBasedClassifier | None = None,
        batch_size: int = 10,
        concurrency: int = 1,
        claim_ttl_seconds: int = 120,
        analyze_questions: bool = True,
        min_text_length: int = 4,
    ) -> None:
        self._store = store
        self._classifier = classifier
        self._rule_classifier = rule_classifier or RuleBasedClassifier()
        self._batch_size = batch_size
        self._concurrency = max(1, concurrency)
        self._claim_ttl = timedelta(seconds=claim_ttl_seconds)
        self._analyze_questions = analyze_questions
        self._min_text_length = min_text_length
        self._logger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def advance(self, dataset_id: str, batch_size: int | None = None) -> AdvanceResult:
        """Analyze at most one batch of pending rows and report progress.

        Raises
        ------
        DatasetNotFoundError
            If the dataset does not exist.
        InvalidRequestError
            If ``batch_size`` is smaller than one.
        """
        with dataset_log_context(dataset_id):
            return await self._advance_batch(dataset_id, batch_size)

    async def _advance_batch(self, dataset_id: str, batch_size: int | None) -> AdvanceResult:
        size = self._batch_size if batch_size is None else batch_size
        if size < 1:
            raise InvalidRequestError(message=f"batch_size must be at least 1, got {size}")

        dataset = await self._store.get_dataset(dataset_id)
        if dataset is None:
            raise DatasetNotFoundError(message=f"Dataset {dataset_id} not found")
        if dataset.status != DatasetStatus.PROCESSING:
            return self._progress(dataset, processed=0)

        claim_token = uuid.uuid4().hex
        stale_before = datetime.now(tz=timezone.utc) - self._claim_ttl  # noqa: UP017
        rows = await self._store.claim_batch(dataset_id, size, claim_token, stale_before)

        processed = 0
        if rows:
            outcomes = await throttled_gather(
                [self._process_row(dataset, row, claim_token) for row in rows],
                semaphore=asyncio.Semaphore(self._concurrency),
                return_exceptions=True,
            )
            for row, outcome in zip(rows, outcomes):
                if isinstance(outcome, BaseException):
                    await self._handle_row_failure(row, claim_token, outcome)
                elif outcome:
                    processed += 1
                else:
                    self._logger.info(
                        "row_claim_lost", dataset_id=dataset_id, row_index=row.row_index
                    )

        dataset = await self._complete_if_done(dataset_id)
        self._logger.info(
            "batch_advanced",
            dataset_id=dataset_id,
            claimed=len(rows),
            processed=processed,
            analyzed_total=dataset.analyzed_rows,
            total_rows=dataset.total_rows,
            status=dataset.status.value,
        )
        return self._progress(dataset, processed=processed)

    async def reanalyze(self, dataset_id: str) -> Dataset:
        """Clear all analysis so the dataset can be advanced from scratch.

        Raises
        ------
        DatasetNotFoundError
            If the dataset does not exist.
        InvalidDatasetStateError
            If the dataset failed during import (its rows are incomplete).
        """
        dataset = await self._store.get_dataset(dataset_id)
        if dataset is None:
            raise DatasetNotFoundError(message=f"Dataset {dataset_id} not found")
        if dataset.status == DatasetStatus.FAILED:
            raise InvalidDatasetStateError(
                message=f"Dataset {dataset_id} failed during import and cannot be re-analyzed"
            )

        reset = await self._store.reset_analysis(dataset_id)
        if reset is None:
            raise DatasetNotFoundError(message=f"Dataset {dataset_id} not found")
        self._logger.info("dataset_reanalysis_started", dataset_id=dataset_id)
        return reset

    # ------------------------------------------------------------------
    # Row processing
    # ------------------------------------------------------------------

    async def _process_row(self, dataset: Dataset, row: ResponseRow, claim_token: str) -> bool:
        analysis = await self._analyze_row(dataset, row)
        return await self._store.record_analysis(dataset.id, row.id, claim_token, analysis)

    async def _analyze_row(self, dataset: Dataset, row: ResponseRow) -> RowAnalysis:
        columns = dataset.question_columns
        texts = text_answers(row.raw_data, columns, self._min_text_length)

        if not texts:
            ratings = numeric_answers(row.raw_data, columns)
            if ratings:
                mean = sum(ratings) / len(ratings)
                result = self._rule_classifier.classify(f"{mean:g}")
                return RowAnalysis(
                    sentiment=result.model_copy(update={"provider_used": RATING_PROVIDER})
                )
            return RowAnalysis(
                sentiment=SentimentResult(
                    label=SentimentLabel.NEUTRAL,
                    score=0.0,
                    confidence=0.0,
                    provider_used=NO_TEXT_PROVIDER,
                )
            )

        question_sentiments: dict[str, QuestionSentiment] | None = None
        if self._analyze_questions and len(texts) > 1:
            question_sentiments = {}
            for column, text in texts.items():
                answer_result = await self._classifier.classify(text)
                question_sentiments[column] = QuestionSentiment.from_result(answer_result)

        overall = await self._classifier.classify(". ".join(texts.values()))

        if self._analyze_questions and len(texts) == 1:
            (column,) = texts
            question_sentiments = {column: QuestionSentiment.from_result(overall)}

        return RowAnalysis(sentiment=overall, question_sentiments=question_sentiments)

    async def _handle_row_failure(
        self, row: ResponseRow, claim_token: str, error: BaseException
    ) -> None:
        self._logger.error(
            "row_analysis_failed",
            dataset_id=row.dataset_id,
            row_index=row.row_index,
            error=str(error),
            error_type=type(error).__name__,
        )
        try:
            await self._store.release_claim(row.id, claim_token)
        except RowPersistenceError as exc:
            # The claim expires on its own after the TTL.
            self._logger.warning("row_claim_release_failed", row_index=row.row_index, error=str(exc))

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    async def _complete_if_done(self, dataset_id: str) -> Dataset:
        dataset = await self._store.get_dataset(dataset_id)
        if dataset is None:
            raise DatasetNotFoundError(message=f"Dataset {dataset_id} was deleted while advancing")

        if dataset.status == DatasetStatus.PROCESSING and dataset.analyzed_rows >= dataset.total_rows:
            counts = await self._store.count_labels(dataset_id)
            completed = await self._store.mark_completed(dataset_id, summarize_sentiment(counts))
            if completed is not None:
                dataset = completed
        return dataset

    @staticmethod
    def _progress(dataset: Dataset, processed: int) -> AdvanceResult:
        return AdvanceResult(
            processed=processed,
            analyzed_total=dataset.analyzed_rows,
            total_rows=dataset.total_rows,
            done=dataset.status != DatasetStatus.PROCESSING,
        )
