"""SQLite-backed dataset / response-row store.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Providers (concrete adapter implementing IRowStore).
# Database: ``data/feedback_pulse.db`` with two tables:
#   - ``datasets``   one row per imported feedback table + progress counters
#   - ``responses``  one row per respondent, owned by a dataset (cascade)
#
# Claiming: ``claim_batch`` runs a single UPDATE over the lowest unclaimed
# unanalyzed rows inside ``BEGIN IMMEDIATE``, so concurrent advance calls
# get disjoint batches.  A claim older than the TTL chosen by the caller
# is treated as abandoned and can be taken over.
#
# Recording: ``record_analysis`` only writes a row that is still
# unanalyzed and still carries the caller's claim token, and bumps
# ``datasets.analyzed_rows`` in the same transaction.
#
# Uses ``aiosqlite`` for async I/O and ``PRAGMA journal_mode=WAL`` so the
# analytics readers are not blocked by the advancer's writes.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from src.interfaces.row_store import IRowStore
from src.models.dataset import Dataset, DatasetStatus, ResponseRow, RowAnalysis, SourceType
from src.models.sentiment import SentimentLabel
from src.utils.errors import RowPersistenceError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/feedback_pulse.db")

# Seconds a connection waits on a locked database before giving up.
_BUSY_TIMEOUT = 30.0

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

# ── Schema DDL ────────────────────────────────────────────────────────

_CREATE_DATASETS_TABLE = """\
CREATE TABLE IF NOT EXISTS datasets (
    id                TEXT    PRIMARY KEY,
    title             TEXT    NOT NULL,
    source_type       TEXT    NOT NULL,
    source_url        TEXT,
    columns           TEXT    NOT NULL DEFAULT '[]',
    respondent_column TEXT,
    total_rows        INTEGER NOT NULL DEFAULT 0,
    analyzed_rows     INTEGER NOT NULL DEFAULT 0,
    status            TEXT    NOT NULL DEFAULT 'processing',
    summary           TEXT,
    created_at        TEXT    NOT NULL,
    updated_at        TEXT    NOT NULL,
    CHECK (analyzed_rows >= 0 AND analyzed_rows <= total_rows)
);
"""

_CREATE_RESPONSES_TABLE = """\
CREATE TABLE IF NOT EXISTS responses (
    id                  TEXT    PRIMARY KEY,
    dataset_id          TEXT    NOT NULL REFERENCES datasets(id) ON DELETE CASCADE,
    row_index           INTEGER NOT NULL,
    respondent_label    TEXT    NOT NULL DEFAULT '',
    raw_data            TEXT    NOT NULL DEFAULT '{}',
    sentiment_label     TEXT,
    sentiment_score     REAL,
    confidence          REAL,
    question_sentiments TEXT,
    provider_used       TEXT,
    analyzed_at         TEXT,
    claim_token         TEXT,
    claimed_at          TEXT,
    UNIQUE(dataset_id, row_index)
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_responses_dataset ON responses(dataset_id, row_index);",
    "CREATE INDEX IF NOT EXISTS idx_responses_pending "
    "ON responses(dataset_id, sentiment_label, claim_token);",
    "CREATE INDEX IF NOT EXISTS idx_datasets_created ON datasets(created_at);",
]

# ── Queries ───────────────────────────────────────────────────────────

_INSERT_DATASET_SQL = """\
INSERT INTO datasets (id, title, source_type, source_url, columns, respondent_column,
                      total_rows, analyzed_rows, status, created_at, updated_at)
VALUES (?, ?, ?, ?, ?, ?, ?, 0, 'processing', ?, ?);
"""

_INSERT_ROW_SQL = """\
INSERT INTO responses (id, dataset_id, row_index, respondent_label, raw_data)
VALUES (?, ?, ?, ?, ?);
"""

_SELECT_DATASET_SQL = "SELECT * FROM datasets WHERE id = ?;"

_SELECT_ROWS_SQL = "SELECT * FROM responses WHERE dataset_id = ? ORDER BY row_index;"

_CLAIM_SQL = """\
UPDATE responses
SET claim_token = ?, claimed_at = ?
WHERE id IN (
    SELECT id FROM responses
    WHERE dataset_id = ?
      AND sentiment_label IS NULL
      AND (claim_token IS NULL OR claimed_at < ?)
    ORDER BY row_index
    LIMIT ?
);
"""

_SELECT_CLAIMED_SQL = """\
SELECT * FROM responses
WHERE dataset_id = ? AND claim_token = ?
ORDER BY row_index;
"""

_RECORD_SQL = """\
UPDATE responses
SET sentiment_label = ?, sentiment_score = ?, confidence = ?,
    question_sentiments = ?, provider_used = ?, analyzed_at = ?,
    claim_token = NULL, claimed_at = NULL
WHERE id = ? AND dataset_id = ? AND claim_token = ? AND sentiment_label IS NULL;
"""

_INCREMENT_ANALYZED_SQL = """\
UPDATE datasets
SET analyzed_rows = MIN(total_rows, analyzed_rows + 1), updated_at = ?
WHERE id = ?;
"""

_RELEASE_CLAIM_SQL = """\
UPDATE responses SET claim_token = NULL, claimed_at = NULL
WHERE id = ? AND claim_token = ?;
"""

_COUNT_LABELS_SQL = """\
SELECT sentiment_label, COUNT(*) AS n FROM responses
WHERE dataset_id = ? AND sentiment_label IS NOT NULL
GROUP BY sentiment_label;
"""

_MARK_COMPLETED_SQL = """\
UPDATE datasets SET status = 'completed', summary = ?, updated_at = ?
WHERE id = ? AND status = 'processing' AND analyzed_rows >= total_rows;
"""

_MARK_FAILED_SQL = """\
UPDATE datasets SET status = 'failed', summary = ?, updated_at = ?
WHERE id = ? AND status = 'processing';
"""

_RESET_ROWS_SQL = """\
UPDATE responses
SET sentiment_label = NULL, sentiment_score = NULL, confidence = NULL,
    question_sentiments = NULL, provider_used = NULL, analyzed_at = NULL,
    claim_token = NULL, claimed_at = NULL
WHERE dataset_id = ?;
"""

_RESET_DATASET_SQL = """\
UPDATE datasets
SET analyzed_rows = 0, status = 'processing', summary = NULL, updated_at = ?
WHERE id = ?;
"""


def _timestamp(moment: datetime | None = None) -> str:
    """Fixed-width UTC timestamp so stored values compare correctly as text."""
    moment = moment or datetime.now(tz=timezone.utc)  # noqa: UP017
    return moment.astimezone(timezone.utc).strftime(_TIMESTAMP_FORMAT)  # noqa: UP017


class SQLiteRowStore(IRowStore):
    """SQLite-backed dataset and response-row persistence."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    def _connect(self, autocommit: bool = False) -> aiosqlite.Connection:
        # autocommit connections run their own BEGIN IMMEDIATE / COMMIT.
        if autocommit:
            return aiosqlite.connect(
                str(self._db_path), timeout=_BUSY_TIMEOUT, isolation_level=None
            )
        return aiosqlite.connect(str(self._db_path), timeout=_BUSY_TIMEOUT)

    async def initialize(self) -> None:
        """Create tables and indices; enable WAL mode."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with self._connect() as db:
            await db.execute("PRAGMA journal_mode=WAL;")
            await db.execute(_CREATE_DATASETS_TABLE)
            await db.execute(_CREATE_RESPONSES_TABLE)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("row_store_initialized", path=str(self._db_path))

    # ------------------------------------------------------------------
    # Datasets
    # ------------------------------------------------------------------

    async def create_dataset(
        self,
        title: str,
        source_type: SourceType,
        columns: list[str],
        total_rows: int,
        source_url: str | None = None,
        respondent_column: str | None = None,
    ) -> Dataset:
        dataset_id = uuid.uuid4().hex
        now = _timestamp()
        async with self._connect() as db:
            await db.execute(
                _INSERT_DATASET_SQL,
                (
                    dataset_id,
                    title,
                    SourceType(source_type).value,
                    source_url,
                    json.dumps(columns),
                    respondent_column,
                    total_rows,
                    now,
                    now,
                ),
            )
            await db.commit()

        logger.info(
            "dataset_created",
            dataset_id=dataset_id,
            source_type=SourceType(source_type).value,
            total_rows=total_rows,
        )
        dataset = await self.get_dataset(dataset_id)
        assert dataset is not None
        return dataset

    async def add_rows(
        self,
        dataset_id: str,
        rows: list[tuple[str, dict[str, Any]]],
        start_index: int = 0,
    ) -> int:
        params = [
            (uuid.uuid4().hex, dataset_id, start_index + offset, label, json.dumps(raw_data))
            for offset, (label, raw_data) in enumerate(rows)
        ]
        try:
            async with self._connect() as db:
                await db.executemany(_INSERT_ROW_SQL, params)
                await db.commit()
        except aiosqlite.Error as exc:
            raise RowPersistenceError(
                message=f"Failed to insert rows {start_index}..{start_index + len(rows) - 1}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return len(params)

    async def get_dataset(self, dataset_id: str) -> Dataset | None:
        async with self._connect() as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(_SELECT_DATASET_SQL, (dataset_id,))
            row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_dataset(dict(row))

    async def list_datasets(self) -> list[Dataset]:
        async with self._connect() as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM datasets ORDER BY created_at DESC")
            rows = await cursor.fetchall()
        return [self._row_to_dataset(dict(r)) for r in rows]

    async def delete_dataset(self, dataset_id: str) -> bool:
        async with self._connect() as db:
            await db.execute("PRAGMA foreign_keys = ON;")
            await db.execute("DELETE FROM responses WHERE dataset_id = ?", (dataset_id,))
            cursor = await db.execute("DELETE FROM datasets WHERE id = ?", (dataset_id,))
            deleted = cursor.rowcount > 0
            await db.commit()
        if deleted:
            logger.info("dataset_deleted", dataset_id=dataset_id)
        return deleted

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------

    async def list_rows(self, dataset_id: str) -> list[ResponseRow]:
        async with self._connect() as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(_SELECT_ROWS_SQL, (dataset_id,))
            rows = await cursor.fetchall()
        return [self._row_to_response(dict(r)) for r in rows]

    async def claim_batch(
        self,
        dataset_id: str,
        limit: int,
        claim_token: str,
        stale_before: datetime,
    ) -> list[ResponseRow]:
        try:
            async with self._connect(autocommit=True) as db:
                db.row_factory = aiosqlite.Row
                await db.execute("BEGIN IMMEDIATE")
                try:
                    await db.execute(
                        _CLAIM_SQL,
                        (claim_token, _timestamp(), dataset_id, _timestamp(stale_before), limit),
                    )
                    cursor = await db.execute(_SELECT_CLAIMED_SQL, (dataset_id, claim_token))
                    rows = await cursor.fetchall()
                    await db.execute("COMMIT")
                except aiosqlite.Error:
                    await db.execute("ROLLBACK")
                    raise
        except aiosqlite.Error as exc:
            raise RowPersistenceError(
                message=f"Failed to claim rows for dataset {dataset_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        claimed = [self._row_to_response(dict(r)) for r in rows]
        logger.debug(
            "rows_claimed",
            dataset_id=dataset_id,
            claim_token=claim_token,
            count=len(claimed),
        )
        return claimed

    async def record_analysis(
        self,
        dataset_id: str,
        row_id: str,
        claim_token: str,
        analysis: RowAnalysis,
    ) -> bool:
        sentiment = analysis.sentiment
        question_json = None
        if analysis.question_sentiments is not None:
            question_json = json.dumps(
                {k: v.model_dump(mode="json") for k, v in analysis.question_sentiments.items()}
            )
        now = _timestamp()

        try:
            async with self._connect(autocommit=True) as db:
                await db.execute("BEGIN IMMEDIATE")
                try:
                    cursor = await db.execute(
                        _RECORD_SQL,
                        (
                            sentiment.label.value,
                            sentiment.score,
                            sentiment.confidence,
                            question_json,
                            sentiment.provider_used,
                            now,
                            row_id,
                            dataset_id,
                            claim_token,
                        ),
                    )
                    if cursor.rowcount != 1:
                        await db.execute("ROLLBACK")
                        return False
                    await db.execute(_INCREMENT_ANALYZED_SQL, (now, dataset_id))
                    await db.execute("COMMIT")
                except aiosqlite.Error:
                    await db.execute("ROLLBACK")
                    raise
        except aiosqlite.Error as exc:
            raise RowPersistenceError(
                message=f"Failed to record analysis for row {row_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return True

    async def release_claim(self, row_id: str, claim_token: str) -> None:
        try:
            async with self._connect() as db:
                await db.execute(_RELEASE_CLAIM_SQL, (row_id, claim_token))
                await db.commit()
        except aiosqlite.Error as exc:
            raise RowPersistenceError(
                message=f"Failed to release claim on row {row_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def count_labels(self, dataset_id: str) -> dict[SentimentLabel, int]:
        counts = {label: 0 for label in SentimentLabel}
        async with self._connect() as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(_COUNT_LABELS_SQL, (dataset_id,))
            rows = await cursor.fetchall()
        for row in rows:
            counts[SentimentLabel(row["sentiment_label"])] = row["n"]
        return counts

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    async def mark_completed(self, dataset_id: str, summary: str) -> Dataset | None:
        async with self._connect() as db:
            cursor = await db.execute(_MARK_COMPLETED_SQL, (summary, _timestamp(), dataset_id))
            transitioned = cursor.rowcount > 0
            await db.commit()
        if transitioned:
            logger.info("dataset_completed", dataset_id=dataset_id)
        return await self.get_dataset(dataset_id)

    async def mark_failed(self, dataset_id: str, reason: str) -> Dataset | None:
        async with self._connect() as db:
            await db.execute(_MARK_FAILED_SQL, (reason, _timestamp(), dataset_id))
            await db.commit()
        logger.warning("dataset_failed", dataset_id=dataset_id, reason=reason)
        return await self.get_dataset(dataset_id)

    async def reset_analysis(self, dataset_id: str) -> Dataset | None:
        async with self._connect(autocommit=True) as db:
            await db.execute("BEGIN IMMEDIATE")
            try:
                await db.execute(_RESET_ROWS_SQL, (dataset_id,))
                await db.execute(_RESET_DATASET_SQL, (_timestamp(), dataset_id))
                await db.execute("COMMIT")
            except aiosqlite.Error:
                await db.execute("ROLLBACK")
                raise
        logger.info("dataset_analysis_reset", dataset_id=dataset_id)
        return await self.get_dataset(dataset_id)

    def get_provider_name(self) -> str:
        return "sqlite_row_store"

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_dataset(row: dict[str, Any]) -> Dataset:
        return Dataset(
            id=row["id"],
            title=row["title"],
            source_type=SourceType(row["source_type"]),
            source_url=row["source_url"],
            columns=json.loads(row["columns"] or "[]"),
            respondent_column=row["respondent_column"],
            total_rows=row["total_rows"],
            analyzed_rows=row["analyzed_rows"],
            status=DatasetStatus(row["status"]),
            summary=row["summary"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _row_to_response(row: dict[str, Any]) -> ResponseRow:
        question_sentiments = None
        if row["question_sentiments"]:
            question_sentiments = json.loads(row["question_sentiments"])
        return ResponseRow(
            id=row["id"],
            dataset_id=row["dataset_id"],
            row_index=row["row_index"],
            raw_data=json.loads(row["raw_data"] or "{}"),
            respondent_label=row["respondent_label"],
            sentiment_label=row["sentiment_label"],
            sentiment_score=row["sentiment_score"],
            confidence=row["confidence"],
            question_sentiments=question_sentiments,
            provider_used=row["provider_used"],
            analyzed_at=row["analyzed_at"],
        )
