"""Shared pytest fixtures for the feedbackPulse test suite."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from src.interfaces.llm_provider import ILLMProvider
from src.models.dataset import Dataset, SourceType
from src.providers.review.sqlite_review_provider import SQLiteReviewProvider
from src.providers.row_store.sqlite_row_store import SQLiteRowStore


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "feedback_pulse_test.db"


@pytest_asyncio.fixture
async def row_store(db_path: Path) -> SQLiteRowStore:
    store = SQLiteRowStore(db_path=db_path)
    await store.initialize()
    return store


@pytest_asyncio.fixture
async def review_store(db_path: Path) -> SQLiteReviewProvider:
    store = SQLiteReviewProvider(db_path=db_path)
    await store.initialize()
    return store


async def _seed_dataset(
    store: SQLiteRowStore,
    rows: list[dict[str, Any]],
    columns: list[str] | None = None,
    respondent_column: str | None = None,
    title: str = "Course feedback",
) -> Dataset:
    """Create a dataset with ``rows`` directly through the store."""
    columns = columns or list(rows[0].keys())
    dataset = await store.create_dataset(
        title=title,
        source_type=SourceType.CSV,
        columns=columns,
        total_rows=len(rows),
        respondent_column=respondent_column,
    )
    await store.add_rows(
        dataset.id,
        [
            ((r.get(respondent_column) if respondent_column else "") or f"Respondent {i + 1}", r)
            for i, r in enumerate(rows)
        ],
    )
    return dataset


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------


@pytest.fixture
def feedback_rows() -> list[dict[str, Any]]:
    """25 rows with a name, a rating and one free-text comment each."""
    return [
        {
            "Name": f"Student {i}",
            "Rating": (i % 5) + 1,
            "Comments": f"Session {i} was excellent and really helpful",
        }
        for i in range(25)
    ]


# ---------------------------------------------------------------------------
# LLM provider mocks
# ---------------------------------------------------------------------------


def _verdict_json(label: str = "Positive", score: float = 0.8, confidence: float = 0.9) -> str:
    return json.dumps(
        {"sentiment_label": label, "sentiment_score": score, "confidence": confidence}
    )


def _make_llm_provider(
    name: str,
    reply: str | None = None,
    side_effect: Any = None,
    available: bool = True,
) -> MagicMock:
    """Build an ILLMProvider mock whose ``complete`` returns ``reply``."""
    provider = MagicMock(spec=ILLMProvider)
    provider.get_provider_name.return_value = name
    provider.is_available.return_value = available
    provider.complete = AsyncMock(
        return_value=reply if reply is not None else _verdict_json(),
        side_effect=side_effect,
    )
    return provider


@pytest.fixture
def seed_dataset():
    """Return an async helper that stores a dataset with the given rows."""
    return _seed_dataset


@pytest.fixture
def verdict_json():
    """Return a helper that renders a provider verdict as JSON text."""
    return _verdict_json


@pytest.fixture
def make_llm_provider():
    """Return a factory for ILLMProvider mocks."""
    return _make_llm_provider
