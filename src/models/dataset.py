"""Dataset and response-row models.

A :class:`Dataset` is one imported table of feedback; each of its rows is a
:class:`ResponseRow`.  A row counts as analyzed once ``sentiment_label`` is
set.  All models are frozen; the row store hands back fresh instances on
every read.

Status lifecycle::

    processing ──(analyzed_rows == total_rows)──> completed
        │
        └──(ingestion failure)──> failed

The only way back to ``processing`` is an explicit re-analyze.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.models.sentiment import SentimentLabel, SentimentResult


class SourceType(str, Enum):  # noqa: UP042 (StrEnum requires Python 3.11+)
    CSV = "csv"
    SHEET = "sheet"


class DatasetStatus(str, Enum):  # noqa: UP042 (StrEnum requires Python 3.11+)
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Dataset(BaseModel):
    """An imported feedback table and its analysis progress."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    source_type: SourceType
    source_url: str | None = None
    columns: list[str] = Field(default_factory=list)
    # Column holding respondent names, when one was detected on import.
    respondent_column: str | None = None
    total_rows: int = Field(default=0, ge=0)
    analyzed_rows: int = Field(default=0, ge=0)
    status: DatasetStatus = DatasetStatus.PROCESSING
    summary: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def question_columns(self) -> list[str]:
        """Columns that hold answers, i.e. everything but the respondent column."""
        return [c for c in self.columns if c != self.respondent_column]

    @property
    def progress(self) -> float:
        if self.total_rows == 0:
            return 1.0
        return self.analyzed_rows / self.total_rows


class QuestionSentiment(BaseModel):
    """Sentiment of a single answer within a row."""

    model_config = ConfigDict(frozen=True)

    label: SentimentLabel
    score: float = Field(ge=-1.0, le=1.0)
    confidence: float = Field(ge=0.0, le=1.0)

    @classmethod
    def from_result(cls, result: SentimentResult) -> QuestionSentiment:
        return cls(label=result.label, score=result.score, confidence=result.confidence)


class ResponseRow(BaseModel):
    """One respondent's answers plus (once analyzed) their sentiment."""

    model_config = ConfigDict(frozen=True)

    id: str
    dataset_id: str
    row_index: int = Field(ge=0)
    raw_data: dict[str, Any] = Field(default_factory=dict)
    respondent_label: str = ""
    sentiment_label: SentimentLabel | None = None
    sentiment_score: float | None = None
    confidence: float | None = None
    question_sentiments: dict[str, QuestionSentiment] | None = None
    provider_used: str | None = None
    analyzed_at: datetime | None = None

    @property
    def is_analyzed(self) -> bool:
        return self.sentiment_label is not None


class RowAnalysis(BaseModel):
    """The result the batch advancer writes for one claimed row."""

    model_config = ConfigDict(frozen=True)

    sentiment: SentimentResult
    question_sentiments: dict[str, QuestionSentiment] | None = None


class AdvanceResult(BaseModel):
    """Progress report returned by one ``advance()`` call."""

    model_config = ConfigDict(frozen=True)

    processed: int = Field(ge=0)
    analyzed_total: int = Field(ge=0)
    total_rows: int = Field(ge=0)
    done: bool
