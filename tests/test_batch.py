"""Tests for the batch scoring run."""
from __future__ import annotations

import sqlite3
from unittest.mock import AsyncMock, patch

import pytest

from vocab_pipeline.batch import BatchProcessor
from vocab_pipeline.difficulty import difficulty_level
from vocab_pipeline.models import Word
from vocab_pipeline.state import load_state


@pytest.fixture
def state_path(tmp_path):
    return tmp_path / "difficulty-state.json"


@pytest.fixture
def processor(populated_db, scorer, state_path):
    return BatchProcessor(populated_db, scorer, state_path, batch_delay=0)


class TestProcessRange:
    @pytest.mark.asyncio
    async def test_apply_mode(self, processor, populated_db, state_path):
        summary = await processor.process_range(1, 4, batch_size=2)
        assert summary.processed == 4
        assert summary.successful == 3
        assert summary.skipped == 1
        assert summary.errors == 0
        assert summary.batches == 2
        assert summary.covered_ranges == [(1, 2), (3, 4)]

        for text in ("cat", "paradox", "mellifluous"):
            w = populated_db.get_word(text)
            assert w.difficulty_score is not None
            assert w.difficulty_level == difficulty_level(w.difficulty_score)
        assert load_state(state_path).processed_ranges == ((1, 4),)

    @pytest.mark.asyncio
    async def test_phrase_skipped_not_scored(self, processor, populated_db):
        phrase = populated_db.get_word("ice cream")
        populated_db.update_word_difficulty(phrase.id, 0.5, {})
        await processor.process_range(1, 4)
        phrase = populated_db.get_word("ice cream")
        assert phrase.difficulty_score is None
        assert phrase.difficulty_level is None
        assert phrase.metadata["skipped"] is True

    @pytest.mark.asyncio
    async def test_dry_run_does_not_write(self, processor, populated_db, state_path):
        summary = await processor.process_range(1, 4)
        assert summary.dry_run is False

        dry = BatchProcessor(populated_db, processor.scorer, state_path.with_name("dry.json"), 0)
        populated_db.clear_word_difficulty(populated_db.get_word("cat").id, {})
        summary = await dry.process_range(1, 4, update_store=False)
        assert summary.dry_run
        assert summary.successful == 3
        assert populated_db.get_word("cat").difficulty_score is None
        assert not state_path.with_name("dry.json").exists()

    @pytest.mark.asyncio
    async def test_dry_run_matches_apply(self, processor, populated_db, scorer):
        dry = await processor.process_range(1, 4, update_store=False)
        expected = await scorer.score("paradox", populated_db.get_word("paradox"))
        applied = await processor.process_range(1, 4)
        stored = populated_db.get_word("paradox")
        assert stored.difficulty_score == pytest.approx(expected.score)
        assert stored.difficulty_level == expected.level
        assert (dry.successful, dry.skipped, dry.errors) == (
            applied.successful, applied.skipped, applied.errors
        )

    @pytest.mark.asyncio
    async def test_resume_skips_processed(self, processor, fake_provider):
        await processor.process_range(1, 4)
        calls = len(fake_provider.calls)
        summary = await processor.process_range(1, 4)
        assert summary.processed == 0
        assert len(fake_provider.calls) == calls

    @pytest.mark.asyncio
    async def test_resume_processes_gap_only(self, processor):
        await processor.process_range(1, 2)
        summary = await processor.process_range(1, 4)
        assert summary.processed == 2
        assert summary.covered_ranges == [(3, 4)]

    @pytest.mark.asyncio
    async def test_short_batch_covers_missing_tail(
        self, processor, populated_db, state_path, fake_provider
    ):
        populated_db.import_words([Word("zest"), Word("quixotic")])
        populated_db.conn.execute("DELETE FROM words WHERE word = ?", ("zest",))
        populated_db.conn.commit()

        summary = await processor.process_range(1, 5)
        assert summary.processed == 4
        assert summary.covered_ranges == [(1, 5)]
        assert load_state(state_path).processed_ranges == ((1, 5),)

        calls = len(fake_provider.calls)
        again = await processor.process_range(1, 5)
        assert again.batches == 0
        assert len(fake_provider.calls) == calls

    @pytest.mark.asyncio
    async def test_empty_fetch_records_tail(self, processor, populated_db, state_path):
        populated_db.import_words([Word("zest"), Word("quixotic")])
        populated_db.conn.execute("DELETE FROM words WHERE word = ?", ("zest",))
        populated_db.conn.commit()

        summary = await processor.process_range(1, 5, batch_size=4)
        assert summary.batches == 1
        assert summary.covered_ranges == [(1, 4), (5, 5)]
        assert load_state(state_path).processed_ranges == ((1, 5),)

    @pytest.mark.asyncio
    async def test_range_past_max_id_picks_up_new_words(self, processor, populated_db, state_path):
        await processor.process_range(1, 100)
        assert load_state(state_path).processed_ranges == ((1, 4),)

        populated_db.import_words([Word("zest")])
        summary = await processor.process_range(1, 100)
        assert summary.processed == 1
        assert load_state(state_path).processed_ranges == ((1, 5),)

    @pytest.mark.asyncio
    async def test_force_reprocesses(self, processor):
        await processor.process_range(1, 4)
        summary = await processor.process_range(1, 4, skip_processed=False)
        assert summary.processed == 4

    @pytest.mark.asyncio
    async def test_overwrites_previous_values(self, processor, populated_db):
        cat = populated_db.get_word("cat")
        populated_db.update_word_difficulty(cat.id, 0.99, {"seeded": True})
        await processor.process_range(1, 4, skip_processed=False)
        cat = populated_db.get_word("cat")
        assert cat.difficulty_score < 0.4
        assert cat.difficulty_level == "beginner"
        assert "seeded" not in cat.metadata

    @pytest.mark.asyncio
    async def test_word_error_counted(self, processor, populated_db, state_path):
        original = populated_db.update_word_difficulty

        def failing(word_id, score, metadata):
            if word_id == 2:
                raise sqlite3.OperationalError("database is locked")
            original(word_id, score, metadata)

        populated_db.update_word_difficulty = failing
        summary = await processor.process_range(1, 4, batch_size=2)
        assert summary.errors == 1
        assert summary.successful == 2
        # Batch with the failed write is not recorded as covered
        assert load_state(state_path).processed_ranges == ((3, 4),)

    @pytest.mark.asyncio
    async def test_batch_fetch_error_reported(self, processor, populated_db, state_path):
        def broken(*args):
            raise sqlite3.OperationalError("no such table: words")

        populated_db.get_words_in_range = broken
        summary = await processor.process_range(1, 4)
        assert len(summary.batch_failures) == 1
        assert summary.processed == 0
        assert not state_path.exists()

    @pytest.mark.asyncio
    async def test_delay_between_batches(self, populated_db, scorer, state_path):
        processor = BatchProcessor(populated_db, scorer, state_path, batch_delay=2.5)
        with patch("vocab_pipeline.batch.asyncio.sleep", new=AsyncMock()) as sleep:
            summary = await processor.process_range(1, 4, batch_size=1)
        assert summary.batches == 4
        assert sleep.await_count == 3
        sleep.assert_awaited_with(2.5)

    @pytest.mark.asyncio
    async def test_invalid_range(self, processor):
        with pytest.raises(ValueError):
            await processor.process_range(10, 1)
