"""SQLite-backed review request provider.

Stores review requests (a title plus a JSON list of questions) and the
responses submitted against them.  ``UNIQUE(request_id, respondent_id)``
enforces one response per respondent; the insert maps the constraint
violation to :class:`DuplicateResponseError`.

Shares the database file with the row store; tables are independent.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from src.interfaces.review_store import IReviewStore
from src.models.review import ReviewQuestion, ReviewRequest, ReviewResponse
from src.utils.errors import DuplicateResponseError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/feedback_pulse.db")

_CREATE_REQUESTS_TABLE = """\
CREATE TABLE IF NOT EXISTS review_requests (
    id          TEXT PRIMARY KEY,
    title       TEXT NOT NULL,
    questions   TEXT NOT NULL,
    created_at  TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
"""

_CREATE_RESPONSES_TABLE = """\
CREATE TABLE IF NOT EXISTS review_responses (
    id             TEXT PRIMARY KEY,
    request_id     TEXT NOT NULL REFERENCES review_requests(id) ON DELETE CASCADE,
    respondent_id  TEXT NOT NULL,
    department     TEXT,
    answers        TEXT NOT NULL DEFAULT '{}',
    created_at     TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    UNIQUE(request_id, respondent_id)
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_review_responses_request "
    "ON review_responses(request_id);",
]


class SQLiteReviewProvider(IReviewStore):
    """SQLite-backed review request persistence."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute("PRAGMA journal_mode=WAL;")
            await db.execute(_CREATE_REQUESTS_TABLE)
            await db.execute(_CREATE_RESPONSES_TABLE)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("review_db_initialized", path=str(self._db_path))

    async def create_request(self, title: str, questions: list[ReviewQuestion]) -> ReviewRequest:
        request_id = uuid.uuid4().hex
        created_at = datetime.now(tz=timezone.utc)  # noqa: UP017
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                "INSERT INTO review_requests (id, title, questions, created_at) VALUES (?, ?, ?, ?)",
                (
                    request_id,
                    title,
                    json.dumps([q.model_dump(mode="json") for q in questions]),
                    created_at.isoformat(),
                ),
            )
            await db.commit()
        logger.info("review_request_created", request_id=request_id, questions=len(questions))
        return ReviewRequest(
            id=request_id, title=title, questions=questions, created_at=created_at
        )

    async def get_request(self, request_id: str) -> ReviewRequest | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM review_requests WHERE id = ?", (request_id,)
            )
            row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_request(dict(row))

    async def list_requests(self) -> list[ReviewRequest]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM review_requests ORDER BY created_at DESC")
            rows = await cursor.fetchall()
        return [self._row_to_request(dict(r)) for r in rows]

    async def submit_response(
        self,
        request_id: str,
        respondent_id: str,
        answers: dict[str, Any],
        department: str | None = None,
    ) -> ReviewResponse:
        response_id = uuid.uuid4().hex
        created_at = datetime.now(tz=timezone.utc)  # noqa: UP017
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(
                    "INSERT INTO review_responses "
                    "(id, request_id, respondent_id, department, answers, created_at) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (
                        response_id,
                        request_id,
                        respondent_id,
                        department,
                        json.dumps(answers),
                        created_at.isoformat(),
                    ),
                )
                await db.commit()
        except aiosqlite.IntegrityError as exc:
            raise DuplicateResponseError(
                message=f"Respondent {respondent_id} already answered request {request_id}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("review_response_submitted", request_id=request_id, response_id=response_id)
        return ReviewResponse(
            id=response_id,
            request_id=request_id,
            respondent_id=respondent_id,
            department=department,
            answers=answers,
            created_at=created_at,
        )

    async def list_responses(self, request_id: str) -> list[ReviewResponse]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM review_responses WHERE request_id = ? ORDER BY created_at",
                (request_id,),
            )
            rows = await cursor.fetchall()
        return [
            ReviewResponse(
                id=r["id"],
                request_id=r["request_id"],
                respondent_id=r["respondent_id"],
                department=r["department"],
                answers=json.loads(r["answers"] or "{}"),
                created_at=r["created_at"],
            )
            for r in rows
        ]

    def get_provider_name(self) -> str:
        return "sqlite_review"

    @staticmethod
    def _row_to_request(row: dict[str, Any]) -> ReviewRequest:
        return ReviewRequest(
            id=row["id"],
            title=row["title"],
            questions=[ReviewQuestion(**q) for q in json.loads(row["questions"])],
            created_at=row["created_at"],
        )
