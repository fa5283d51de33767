"""Abstract base class for dataset / response-row storage.

The row store is the single source of truth for datasets, their rows and
their analysis progress.  Besides plain CRUD it owns the two operations
that make batch advancement safe under concurrent callers:

* :meth:`IRowStore.claim_batch` reserves unanalyzed rows for one caller in
  a single atomic step;
* :meth:`IRowStore.record_analysis` writes a row's result only if the row
  is still unanalyzed and still held by that caller, and bumps the
  dataset's ``analyzed_rows`` in the same transaction.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from src.models.dataset import Dataset, ResponseRow, RowAnalysis, SourceType
from src.models.sentiment import SentimentLabel


# Concrete implementation: SQLiteRowStore (src/providers/row_store/)
class IRowStore(ABC):
    """Contract for dataset and response-row persistence."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they don't exist.  Called at startup."""

    @abstractmethod
    async def create_dataset(
        self,
        title: str,
        source_type: SourceType,
        columns: list[str],
        total_rows: int,
        source_url: str | None = None,
        respondent_column: str | None = None,
    ) -> Dataset:
        """Insert a dataset header in ``processing`` state with no rows yet."""

    @abstractmethod
    async def add_rows(
        self,
        dataset_id: str,
        rows: list[tuple[str, dict[str, Any]]],
        start_index: int = 0,
    ) -> int:
        """Insert ``(respondent_label, raw_data)`` rows in one transaction.

        Rows are numbered from ``start_index``.  Returns the count inserted.

        Raises
        ------
        src.utils.errors.RowPersistenceError
            If the insert fails; nothing from this call is kept.
        """

    @abstractmethod
    async def get_dataset(self, dataset_id: str) -> Dataset | None:
        """Return the dataset, or ``None`` if it does not exist."""

    @abstractmethod
    async def list_datasets(self) -> list[Dataset]:
        """Return every dataset, newest first."""

    @abstractmethod
    async def delete_dataset(self, dataset_id: str) -> bool:
        """Delete a dataset and all of its rows.  Returns ``False`` if absent."""

    @abstractmethod
    async def list_rows(self, dataset_id: str) -> list[ResponseRow]:
        """Return every row of a dataset ordered by ``row_index``."""

    @abstractmethod
    async def claim_batch(
        self,
        dataset_id: str,
        limit: int,
        claim_token: str,
        stale_before: datetime,
    ) -> list[ResponseRow]:
        """Atomically reserve up to ``limit`` unanalyzed rows.

        Selects rows with no label whose claim is absent or older than
        ``stale_before``, lowest ``row_index`` first, and stamps them with
        ``claim_token``.  Two concurrent callers never receive the same row.
        """

    @abstractmethod
    async def record_analysis(
        self,
        dataset_id: str,
        row_id: str,
        claim_token: str,
        analysis: RowAnalysis,
    ) -> bool:
        """Persist a row's analysis and increment ``analyzed_rows``.

        Returns ``False`` (and writes nothing) when the row is already
        analyzed or no longer held by ``claim_token``.

        Raises
        ------
        src.utils.errors.RowPersistenceError
            If the write itself fails.
        """

    @abstractmethod
    async def release_claim(self, row_id: str, claim_token: str) -> None:
        """Drop a claim so the row becomes selectable again."""

    @abstractmethod
    async def count_labels(self, dataset_id: str) -> dict[SentimentLabel, int]:
        """Return the number of analyzed rows per label."""

    @abstractmethod
    async def mark_completed(self, dataset_id: str, summary: str) -> Dataset | None:
        """Move a fully analyzed ``processing`` dataset to ``completed``.

        No-op when the dataset is not ``processing`` or not fully analyzed.
        Returns the dataset as it stands afterwards.
        """

    @abstractmethod
    async def mark_failed(self, dataset_id: str, reason: str) -> Dataset | None:
        """Move a ``processing`` dataset to ``failed`` with ``reason`` as summary."""

    @abstractmethod
    async def reset_analysis(self, dataset_id: str) -> Dataset | None:
        """Clear every row's analysis and claim; return the dataset to ``processing``."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this store."""
