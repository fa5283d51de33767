"""Analytics aggregation over datasets and review requests.

Read-only: nothing here writes to a store, so reports can be pulled at
any point of an analysis, including half-way through.  Pending rows are
simply not counted yet.

Dataset tallies, per question column:
    numeric answer                      -> the value ("4")
    text answer with a question label   -> that label
    text answer, row analyzed           -> the row label
    text answer, row pending            -> skipped

Review request tallies, per question id:
    option / emoji / rating answers     -> the value
    free-text answers                   -> the rule-based label of the text
"""

from __future__ import annotations

from collections import Counter
from typing import Any

from src.interfaces.review_store import IReviewStore
from src.interfaces.row_store import IRowStore
from src.models.analytics import AnalyticsReport, SentimentSummary
from src.models.dataset import Dataset, ResponseRow
from src.models.review import QuestionType
from src.models.sentiment import SentimentLabel
from src.services.answer_fields import as_number, format_value, is_blank
from src.services.rule_classifier import RuleBasedClassifier
from src.utils.errors import DatasetNotFoundError, ReviewRequestNotFoundError
from src.utils.logging import get_logger

_UNSPECIFIED_DEPARTMENT = "Unspecified"


def summarize_sentiment(counts: dict[SentimentLabel, int]) -> str:
    """Write the plain-language summary stored on a completed dataset."""
    positive = counts.get(SentimentLabel.POSITIVE, 0)
    neutral = counts.get(SentimentLabel.NEUTRAL, 0)
    negative = counts.get(SentimentLabel.NEGATIVE, 0)
    total = positive + neutral + negative
    if total == 0:
        return "No responses were analyzed."

    def pct(n: int) -> int:
        return round(n * 100 / total)

    summary = (
        f"Out of {total} analyzed responses: {pct(positive)}% rated Positive, "
        f"{pct(neutral)}% Neutral, and {pct(negative)}% Negative. "
    )
    if positive > 2 * negative:
        summary += "Overall feedback is strongly positive."
    elif positive > negative:
        summary += "Overall feedback leans positive, with some areas for improvement."
    elif negative > 2 * positive:
        summary += "Overall feedback is strongly negative and needs attention."
    elif negative > positive:
        summary += "Overall feedback leans negative; review the critical responses."
    else:
        summary += "Overall feedback is mixed."
    return summary


class AnalyticsService:
    """Builds :class:`AnalyticsReport` objects from stored data."""

    def __init__(
        self,
        row_store: IRowStore,
        review_store: IReviewStore | None = None,
        rule_classifier: RuleBasedClassifier | None = None,
        min_text_length: int = 4,
    ) -> None:
        self._row_store = row_store
        self._review_store = review_store
        self._rule_classifier = rule_classifier or RuleBasedClassifier()
        self._min_text_length = min_text_length
        self._logger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Datasets
    # ------------------------------------------------------------------

    async def aggregate_dataset(self, dataset_id: str) -> AnalyticsReport:
        dataset = await self._row_store.get_dataset(dataset_id)
        if dataset is None:
            raise DatasetNotFoundError(message=f"Dataset {dataset_id} not found")
        rows = await self._row_store.list_rows(dataset_id)

        questions = dataset.question_columns
        distributions: dict[str, Counter[str]] = {q: Counter() for q in questions}
        for row in rows:
            for question in questions:
                key = self._dataset_answer_key(row, question)
                if key is not None:
                    distributions[question][key] += 1

        report = AnalyticsReport(
            total_responses=dataset.total_rows,
            analyzed_responses=sum(1 for r in rows if r.is_analyzed),
            question_ids=questions,
            distributions={q: dict(c) for q, c in distributions.items()},
            sentiment_summary=self._sentiment_summary(rows),
            raw_responses=[self._raw_row(dataset, r) for r in rows],
        )
        self._logger.debug(
            "dataset_aggregated",
            dataset_id=dataset_id,
            analyzed=report.analyzed_responses,
            total=report.total_responses,
        )
        return report

    def _dataset_answer_key(self, row: ResponseRow, question: str) -> str | None:
        value = row.raw_data.get(question)
        if is_blank(value):
            return None
        if as_number(value) is not None:
            return format_value(value)

        text = str(value).strip()
        if len(text) < self._min_text_length:
            return text
        if row.question_sentiments and question in row.question_sentiments:
            return row.question_sentiments[question].label.value
        if row.sentiment_label is not None:
            return row.sentiment_label.value
        return None

    @staticmethod
    def _sentiment_summary(rows: list[ResponseRow]) -> SentimentSummary:
        analyzed = [r for r in rows if r.is_analyzed]
        labels = Counter(r.sentiment_label for r in analyzed)
        scores = [r.sentiment_score for r in analyzed if r.sentiment_score is not None]
        return SentimentSummary(
            positive=labels.get(SentimentLabel.POSITIVE, 0),
            neutral=labels.get(SentimentLabel.NEUTRAL, 0),
            negative=labels.get(SentimentLabel.NEGATIVE, 0),
            analyzed=len(analyzed),
            average_score=round(sum(scores) / len(scores), 3) if scores else 0.0,
        )

    @staticmethod
    def _raw_row(dataset: Dataset, row: ResponseRow) -> dict[str, Any]:
        return {
            "row_index": row.row_index,
            "respondent": row.respondent_label,
            "answers": {c: row.raw_data.get(c) for c in dataset.question_columns},
            "sentiment_label": row.sentiment_label.value if row.sentiment_label else None,
            "sentiment_score": row.sentiment_score,
            "confidence": row.confidence,
        }

    # ------------------------------------------------------------------
    # Review requests
    # ------------------------------------------------------------------

    async def aggregate_review_request(self, request_id: str) -> AnalyticsReport:
        if self._review_store is None:
            raise ReviewRequestNotFoundError(message="Review requests are not configured")
        request = await self._review_store.get_request(request_id)
        if request is None:
            raise ReviewRequestNotFoundError(message=f"Review request {request_id} not found")
        responses = await self._review_store.list_responses(request_id)

        distributions: dict[str, Counter[str]] = {q.id: Counter() for q in request.questions}
        question_types = {q.id: q.type for q in request.questions}
        departments: Counter[str] = Counter()

        for response in responses:
            departments[response.department or _UNSPECIFIED_DEPARTMENT] += 1
            for question_id, value in response.answers.items():
                if question_id not in distributions or is_blank(value):
                    continue
                if question_types[question_id] == QuestionType.TEXT_BASED:
                    key = self._rule_classifier.classify(str(value)).label.value
                else:
                    key = format_value(value)
                distributions[question_id][key] += 1

        return AnalyticsReport(
            total_responses=len(responses),
            analyzed_responses=len(responses),
            question_ids=[q.id for q in request.questions],
            distributions={q: dict(c) for q, c in distributions.items()},
            department_breakdown=dict(departments),
            raw_responses=[
                {
                    "respondent_id": r.respondent_id,
                    "department": r.department,
                    "answers": r.answers,
                    "submitted_at": r.created_at.isoformat() if r.created_at else None,
                }
                for r in responses
            ],
        )
