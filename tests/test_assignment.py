"""Tests for daily word assignment."""
from __future__ import annotations

from datetime import date

import pytest

from vocab_pipeline.assignment import (
    InsufficientWordsError,
    daily_counts,
    months_before,
    required_counts,
)
from vocab_pipeline.config import DEFAULT_TIER_DISTRIBUTION
from vocab_pipeline.models import ADVANCED, BEGINNER, INTERMEDIATE, DailyAssignment

from conftest import POOL

DAY1 = date(2025, 1, 2)
DAY2 = date(2025, 1, 3)
TIER_OF = {
    w: BEGINNER if s < 0.4 else INTERMEDIATE if s < 0.7 else ADVANCED for w, _, s in POOL
}
DEFINITION_OF = {w: d for w, d, _ in POOL}


class TestHelpers:
    def test_months_before(self):
        assert months_before(date(2025, 1, 1), 6) == date(2024, 7, 1)
        assert months_before(date(2025, 3, 31), 1) == date(2025, 2, 28)
        assert months_before(date(2024, 12, 15), 12) == date(2023, 12, 15)

    def test_daily_counts(self):
        assert daily_counts(5, DEFAULT_TIER_DISTRIBUTION) == {
            BEGINNER: 2, INTERMEDIATE: 2, ADVANCED: 1
        }
        # 1.2, 1.2, 0.6 round to one of each
        assert daily_counts(3, DEFAULT_TIER_DISTRIBUTION) == {
            BEGINNER: 1, INTERMEDIATE: 1, ADVANCED: 1
        }

    def test_required_counts(self):
        assert required_counts(3, 5, DEFAULT_TIER_DISTRIBUTION) == {
            BEGINNER: 6, INTERMEDIATE: 6, ADVANCED: 3
        }


class TestAssignForRange:
    @pytest.mark.asyncio
    async def test_single_day_distribution(self, assigner, pool_db):
        result = await assigner.assign_for_range(DAY1, DAY1, 5)
        assert result.assigned_count == 5
        assert not result.existing
        tiers = [a.difficulty_level for a in result.assignments]
        assert tiers.count(BEGINNER) == 2
        assert tiers.count(INTERMEDIATE) == 2
        assert tiers.count(ADVANCED) == 1

        for a in result.assignments:
            assert TIER_OF[a.word] == a.difficulty_level
            assert len(a.quiz.options) == 4
            assert a.quiz.options.count(DEFINITION_OF[a.word]) == 1
            assert a.quiz.correct_option == DEFINITION_OF[a.word]

        rows = pool_db.get_daily_words(DAY1.isoformat())
        assert len(rows) == 5
        assert {(r["difficulty_level"], r["slot"]) for r in rows} == {
            (BEGINNER, 0), (BEGINNER, 1), (INTERMEDIATE, 0), (INTERMEDIATE, 1), (ADVANCED, 0)
        }

    @pytest.mark.asyncio
    async def test_rerun_returns_existing(self, assigner, pool_db):
        first = await assigner.assign_for_range(DAY1, DAY1, 5)
        again = await assigner.assign_for_range(DAY1, DAY1, 5)
        assert again.existing
        assert again.assigned_count == 0
        assert again.skipped_dates == [DAY1.isoformat()]
        assert {a.word for a in again.assignments} == {a.word for a in first.assignments}
        assert pool_db.get_assignment_count() == 5

    @pytest.mark.asyncio
    async def test_force_reassigns(self, assigner, pool_db):
        await assigner.assign_for_range(DAY1, DAY1, 5)
        forced = await assigner.assign_for_range(DAY1, DAY1, 5, force=True)
        assert not forced.existing
        assert forced.assigned_count == 5
        assert pool_db.get_assignment_count() == 5

    @pytest.mark.asyncio
    async def test_failed_force_keeps_existing(self, assigner, pool_db):
        await assigner.assign_for_range(DAY1, DAY1, 5)
        before = sorted(r["word"] for r in pool_db.get_daily_words(DAY1.isoformat()))

        with pytest.raises(InsufficientWordsError):
            await assigner.assign_for_range(DAY1, DAY1, 15, force=True)

        after = sorted(r["word"] for r in pool_db.get_daily_words(DAY1.isoformat()))
        assert after == before
        assert pool_db.get_assignment_count() == 5

    @pytest.mark.asyncio
    async def test_force_can_redraw_replaced_words(self, assigner, pool_db):
        await assigner.assign_for_range(DAY1, DAY2, 5)
        forced = await assigner.assign_for_range(DAY1, DAY2, 5, force=True)
        assert forced.assigned_count == 10
        assert len({a.word for a in forced.assignments}) == 10
        assert pool_db.get_assignment_count() == 10

    @pytest.mark.asyncio
    async def test_two_days_no_repeats(self, assigner, pool_db):
        result = await assigner.assign_for_range(DAY1, DAY2, 5)
        assert result.assigned_count == 10
        words = [a.word for a in result.assignments]
        assert len(set(words)) == 10
        keys = set()
        for d in (DAY1, DAY2):
            for r in pool_db.get_daily_words(d.isoformat()):
                keys.add((r["date"], r["difficulty_level"], r["slot"]))
        assert len(keys) == 10

    @pytest.mark.asyncio
    async def test_existing_dates_reserve_their_words(self, assigner):
        first = await assigner.assign_for_range(DAY1, DAY1, 5)
        result = await assigner.assign_for_range(DAY1, DAY2, 5)
        assert result.skipped_dates == [DAY1.isoformat()]
        assert result.assigned_count == 5
        day1 = {a.word for a in first.assignments}
        day2 = {a.word for a in result.assignments if a.date == DAY2.isoformat()}
        assert len(day2) == 5
        assert not day1 & day2

    @pytest.mark.asyncio
    async def test_shortfall_raises(self, assigner, pool_db):
        with pytest.raises(InsufficientWordsError) as exc:
            await assigner.assign_for_range(DAY1, date(2025, 1, 4), 5)
        err = exc.value
        assert (err.tier, err.needed, err.available) == (BEGINNER, 6, 4)
        assert "short by 2" in str(err)
        assert pool_db.get_assignment_count() == 0

    @pytest.mark.asyncio
    async def test_lookback_reuses_least_recent(self, assigner, pool_db):
        # chair and apple used in December, kitten more recently
        for day, word, slot in (
            ("2024-12-01", "chair", 0),
            ("2024-12-01", "apple", 1),
            ("2024-12-20", "kitten", 0),
        ):
            pool_db.save_daily_assignment(
                DailyAssignment(date=day, word=word, difficulty_level=BEGINNER), slot
            )
        result = await assigner.assign_for_range(DAY1, DAY1, 5)
        beginners = {a.word for a in result.assignments if a.difficulty_level == BEGINNER}
        assert beginners == {"garden", "chair"}

    @pytest.mark.asyncio
    async def test_old_usage_outside_lookback(self, assigner, pool_db):
        pool_db.save_daily_assignment(
            DailyAssignment(date="2024-01-15", word="chair", difficulty_level=BEGINNER), slot=0
        )
        result = await assigner.assign_for_range(DAY1, DAY2, 5)
        assert "chair" in {a.word for a in result.assignments}

    @pytest.mark.asyncio
    async def test_ineligible_words_filtered(self, assigner, pool_db):
        from vocab_pipeline.models import Sense, Word

        pool_db.import_words([Word("ice cream", pos="noun", senses=[Sense("a frozen dessert", "noun")])])
        result = await assigner.assign_for_range(DAY1, DAY1, 5)
        assert result.filtered_out == 1
        assert "ice cream" not in {a.word for a in result.assignments}

    @pytest.mark.asyncio
    async def test_unscored_words_get_scored(self, assigner, pool_db):
        from vocab_pipeline.models import Sense, Word

        pool_db.import_words([Word("quixotic", pos="adjective",
                                   senses=[Sense("exceedingly idealistic", "adjective")])])
        await assigner.assign_for_range(DAY1, DAY1, 5)
        assert pool_db.get_word("quixotic").difficulty_score is not None

    @pytest.mark.asyncio
    async def test_custom_distribution(self, assigner):
        result = await assigner.assign_for_range(
            DAY1, DAY1, 3, distribution={BEGINNER: 0.0, INTERMEDIATE: 0.0, ADVANCED: 1.0}
        )
        assert [a.difficulty_level for a in result.assignments] == [ADVANCED] * 3

    @pytest.mark.asyncio
    async def test_validation(self, assigner):
        with pytest.raises(ValueError):
            await assigner.assign_for_range(DAY2, DAY1, 5)
        with pytest.raises(ValueError):
            await assigner.assign_for_range(DAY1, DAY1, 0)
        with pytest.raises(ValueError):
            await assigner.assign_for_range(DAY1, DAY1, 5, distribution={BEGINNER: 0.5})
        with pytest.raises(ValueError):
            await assigner.assign_for_range(DAY1, DAY1, 5, distribution={"expert": 1.0})


class TestAssignNextDay:
    @pytest.mark.asyncio
    async def test_assigns_tomorrow(self, assigner, pool_db):
        result = await assigner.assign_next_day(words_per_day=3)
        assert result.start_date == "2025-01-02"
        assert result.assigned_count == 3
        assert len(pool_db.get_daily_words("2025-01-02")) == 3

    @pytest.mark.asyncio
    async def test_second_call_is_noop(self, assigner, pool_db):
        await assigner.assign_next_day(words_per_day=3)
        again = await assigner.assign_next_day(words_per_day=3)
        assert again.existing
        assert again.assigned_count == 0
        assert len(again.assignments) == 3
