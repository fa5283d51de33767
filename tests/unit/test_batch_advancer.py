"""Unit tests for the batch advancer, run against a real SQLite row store."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
import structlog

from src.models.dataset import DatasetStatus
from src.models.sentiment import SentimentLabel
from src.providers.row_store.sqlite_row_store import SQLiteRowStore
from src.services.batch_advancer import BatchAdvancer
from src.services.sentiment_classifier import SentimentClassifier
from src.utils.errors import (
    DatasetNotFoundError,
    InvalidDatasetStateError,
    InvalidRequestError,
    LLMError,
    RowPersistenceError,
)


class _FlakyRowStore(SQLiteRowStore):
    """Fails the first ``failures`` row writes."""

    def __init__(self, db_path, failures: int = 1) -> None:
        super().__init__(db_path=db_path)
        self.failures = failures

    async def record_analysis(self, dataset_id, row_id, claim_token, analysis) -> bool:
        if self.failures > 0:
            self.failures -= 1
            raise RowPersistenceError("disk I/O error", self.get_provider_name())
        return await super().record_analysis(dataset_id, row_id, claim_token, analysis)


@pytest.fixture
def provider(make_llm_provider, verdict_json):
    return make_llm_provider("groq", reply=verdict_json("Positive", 0.8, 0.9))


@pytest.fixture
def advancer(row_store, provider) -> BatchAdvancer:
    return BatchAdvancer(store=row_store, classifier=SentimentClassifier(providers=[provider]))


class TestAdvance:
    @pytest.mark.asyncio
    async def test_progresses_in_batches_until_done(
        self, advancer, row_store, seed_dataset, feedback_rows
    ) -> None:
        dataset = await seed_dataset(row_store, feedback_rows, respondent_column="Name")

        results = [await advancer.advance(dataset.id, batch_size=10) for _ in range(3)]

        assert [r.processed for r in results] == [10, 10, 5]
        assert [r.analyzed_total for r in results] == [10, 20, 25]
        assert [r.done for r in results] == [False, False, True]
        assert all(r.total_rows == 25 for r in results)

        stored = await row_store.get_dataset(dataset.id)
        assert stored.status == DatasetStatus.COMPLETED
        assert stored.summary.startswith("Out of 25 analyzed responses: 100% rated Positive")

    @pytest.mark.asyncio
    async def test_rows_are_analyzed_in_row_order(
        self, advancer, row_store, seed_dataset, feedback_rows
    ) -> None:
        dataset = await seed_dataset(row_store, feedback_rows, respondent_column="Name")

        await advancer.advance(dataset.id, batch_size=7)

        rows = await row_store.list_rows(dataset.id)
        assert [r.is_analyzed for r in rows] == [True] * 7 + [False] * 18

    @pytest.mark.asyncio
    async def test_advance_after_done_is_a_no_op(
        self, advancer, row_store, seed_dataset, feedback_rows, provider
    ) -> None:
        dataset = await seed_dataset(row_store, feedback_rows, respondent_column="Name")
        await advancer.advance(dataset.id, batch_size=100)
        calls = provider.complete.await_count

        again = await advancer.advance(dataset.id)

        assert again.processed == 0
        assert again.analyzed_total == 25
        assert again.done is True
        assert provider.complete.await_count == calls

    @pytest.mark.asyncio
    async def test_uses_default_batch_size(self, row_store, provider, seed_dataset, feedback_rows) -> None:
        advancer = BatchAdvancer(
            store=row_store, classifier=SentimentClassifier(providers=[provider]), batch_size=4
        )
        dataset = await seed_dataset(row_store, feedback_rows, respondent_column="Name")

        result = await advancer.advance(dataset.id)

        assert result.processed == 4

    @pytest.mark.asyncio
    async def test_rejects_non_positive_batch_size(self, advancer, row_store, seed_dataset, feedback_rows) -> None:
        dataset = await seed_dataset(row_store, feedback_rows)
        with pytest.raises(InvalidRequestError):
            await advancer.advance(dataset.id, batch_size=0)

    @pytest.mark.asyncio
    async def test_unknown_dataset(self, advancer) -> None:
        with pytest.raises(DatasetNotFoundError):
            await advancer.advance("does-not-exist")

    @pytest.mark.asyncio
    async def test_failed_dataset_reports_done(self, advancer, row_store, seed_dataset, feedback_rows) -> None:
        dataset = await seed_dataset(row_store, feedback_rows)
        await row_store.mark_failed(dataset.id, "import broke")

        result = await advancer.advance(dataset.id)

        assert result.processed == 0
        assert result.done is True


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_calls_never_double_classify(
        self, row_store, provider, seed_dataset, feedback_rows
    ) -> None:
        dataset = await seed_dataset(row_store, feedback_rows, respondent_column="Name")
        first = BatchAdvancer(store=row_store, classifier=SentimentClassifier(providers=[provider]))
        second = BatchAdvancer(store=row_store, classifier=SentimentClassifier(providers=[provider]))

        results = await asyncio.gather(
            first.advance(dataset.id, batch_size=10),
            second.advance(dataset.id, batch_size=10),
        )

        assert sum(r.processed for r in results) == 20
        assert provider.complete.await_count == 20
        stored = await row_store.get_dataset(dataset.id)
        assert stored.analyzed_rows == 20

    @pytest.mark.asyncio
    async def test_parallel_rows_within_a_batch(
        self, row_store, provider, seed_dataset, feedback_rows
    ) -> None:
        advancer = BatchAdvancer(
            store=row_store,
            classifier=SentimentClassifier(providers=[provider]),
            concurrency=5,
        )
        dataset = await seed_dataset(row_store, feedback_rows, respondent_column="Name")

        result = await advancer.advance(dataset.id, batch_size=25)

        assert result.processed == 25
        assert result.done is True

    @pytest.mark.asyncio
    async def test_abandoned_claim_is_taken_over_after_ttl(
        self, advancer, row_store, provider, seed_dataset, feedback_rows
    ) -> None:
        dataset = await seed_dataset(row_store, feedback_rows[:3])
        long_ago = datetime.now(tz=timezone.utc) - timedelta(hours=1)  # noqa: UP017
        claimed = await row_store.claim_batch(dataset.id, 3, "crashed-worker", long_ago)
        assert len(claimed) == 3

        # Claim is fresh: nothing to take yet.
        blocked = await advancer.advance(dataset.id)
        assert blocked.processed == 0

        expired = BatchAdvancer(
            store=row_store,
            classifier=SentimentClassifier(providers=[provider]),
            claim_ttl_seconds=0,
        )
        await asyncio.sleep(0.01)
        result = await expired.advance(dataset.id)
        assert result.processed == 3
        assert result.done is True

    @pytest.mark.asyncio
    async def test_provider_calls_are_logged_with_the_dataset(
        self, row_store, make_llm_provider, verdict_json, seed_dataset, feedback_rows
    ) -> None:
        seen: list[dict] = []

        async def reply(*_args, **_kwargs) -> str:
            seen.append(structlog.contextvars.get_contextvars())
            return verdict_json("Positive", 0.7, 0.8)

        provider = make_llm_provider("groq", side_effect=reply)
        advancer = BatchAdvancer(
            store=row_store, classifier=SentimentClassifier(providers=[provider]), concurrency=2
        )
        dataset = await seed_dataset(row_store, feedback_rows[:2], respondent_column="Name")

        await advancer.advance(dataset.id)

        assert len(seen) == 2
        assert all(context.get("dataset_id") == dataset.id for context in seen)
        assert "dataset_id" not in structlog.contextvars.get_contextvars()


class TestFailureIsolation:
    @pytest.mark.asyncio
    async def test_row_write_failure_is_row_scoped(
        self, db_path, provider, seed_dataset, feedback_rows
    ) -> None:
        store = _FlakyRowStore(db_path=db_path, failures=1)
        await store.initialize()
        dataset = await seed_dataset(store, feedback_rows[:10], respondent_column="Name")
        advancer = BatchAdvancer(store=store, classifier=SentimentClassifier(providers=[provider]))

        first = await advancer.advance(dataset.id, batch_size=10)
        assert first.processed == 9
        assert first.done is False

        rows = await store.list_rows(dataset.id)
        assert [r.row_index for r in rows if not r.is_analyzed] == [0]

        second = await advancer.advance(dataset.id, batch_size=10)
        assert second.processed == 1
        assert second.done is True

    @pytest.mark.asyncio
    async def test_all_providers_down_still_completes(
        self, row_store, make_llm_provider, seed_dataset, feedback_rows
    ) -> None:
        down = make_llm_provider("groq", side_effect=LLMError("unreachable", "groq"))
        advancer = BatchAdvancer(store=row_store, classifier=SentimentClassifier(providers=[down]))
        dataset = await seed_dataset(row_store, feedback_rows[:5], respondent_column="Name")

        result = await advancer.advance(dataset.id)

        assert result.done is True
        rows = await row_store.list_rows(dataset.id)
        assert {r.provider_used for r in rows} == {"fallback"}


class TestRowAnalysis:
    @pytest.mark.asyncio
    async def test_ratings_only_row_uses_rating_rule(
        self, advancer, row_store, seed_dataset, provider
    ) -> None:
        dataset = await seed_dataset(row_store, [{"Q1": 5, "Q2": "4"}, {"Q1": 1, "Q2": 2}])

        await advancer.advance(dataset.id)

        high, low = await row_store.list_rows(dataset.id)
        assert high.sentiment_label == SentimentLabel.POSITIVE
        assert high.provider_used == "rating"
        assert low.sentiment_label == SentimentLabel.NEGATIVE
        provider.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_row_is_neutral_without_provider(
        self, advancer, row_store, seed_dataset, provider
    ) -> None:
        dataset = await seed_dataset(row_store, [{"Q1": "", "Q2": "ok"}])

        result = await advancer.advance(dataset.id)

        (row,) = await row_store.list_rows(dataset.id)
        assert result.done is True
        assert row.sentiment_label == SentimentLabel.NEUTRAL
        assert row.confidence == 0.0
        assert row.provider_used == "none"
        provider.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_each_text_answer_gets_its_own_sentiment(
        self, row_store, make_llm_provider, verdict_json, seed_dataset
    ) -> None:
        replies = {
            "Loved the labs": verdict_json("Positive", 0.9, 0.9),
            "Lectures dragged on": verdict_json("Negative", -0.5, 0.8),
        }

        provider = make_llm_provider("groq")
        provider.complete.side_effect = lambda **kw: replies.get(
            kw["user_prompt"], verdict_json("Neutral", 0.1, 0.6)
        )
        advancer = BatchAdvancer(store=row_store, classifier=SentimentClassifier(providers=[provider]))
        dataset = await seed_dataset(
            row_store, [{"Best part": "Loved the labs", "Worst part": "Lectures dragged on"}]
        )

        await advancer.advance(dataset.id)

        (row,) = await row_store.list_rows(dataset.id)
        assert row.question_sentiments["Best part"].label == SentimentLabel.POSITIVE
        assert row.question_sentiments["Worst part"].label == SentimentLabel.NEGATIVE
        assert row.sentiment_label == SentimentLabel.NEUTRAL
        sent = [c.kwargs["user_prompt"] for c in provider.complete.await_args_list]
        assert sent[-1] == "Loved the labs. Lectures dragged on"

    @pytest.mark.asyncio
    async def test_respondent_column_is_not_classified(
        self, advancer, row_store, seed_dataset, provider
    ) -> None:
        dataset = await seed_dataset(
            row_store, [{"Name": "Alice Smith", "Rating": 4}], respondent_column="Name"
        )

        await advancer.advance(dataset.id)

        (row,) = await row_store.list_rows(dataset.id)
        assert row.respondent_label == "Alice Smith"
        assert row.provider_used == "rating"
        provider.complete.assert_not_awaited()


class TestReanalyze:
    @pytest.mark.asyncio
    async def test_resets_completed_dataset(
        self, advancer, row_store, seed_dataset, feedback_rows
    ) -> None:
        dataset = await seed_dataset(row_store, feedback_rows, respondent_column="Name")
        await advancer.advance(dataset.id, batch_size=100)

        reset = await advancer.reanalyze(dataset.id)

        assert reset.status == DatasetStatus.PROCESSING
        assert reset.analyzed_rows == 0
        assert reset.summary is None
        rows = await row_store.list_rows(dataset.id)
        assert not any(r.is_analyzed for r in rows)

        result = await advancer.advance(dataset.id, batch_size=100)
        assert result.processed == 25
        assert result.done is True

    @pytest.mark.asyncio
    async def test_failed_dataset_cannot_be_reanalyzed(
        self, advancer, row_store, seed_dataset, feedback_rows
    ) -> None:
        dataset = await seed_dataset(row_store, feedback_rows)
        await row_store.mark_failed(dataset.id, "import broke")

        with pytest.raises(InvalidDatasetStateError):
            await advancer.reanalyze(dataset.id)

    @pytest.mark.asyncio
    async def test_unknown_dataset(self, advancer) -> None:
        with pytest.raises(DatasetNotFoundError):
            await advancer.reanalyze("missing")
