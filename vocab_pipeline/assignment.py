from __future__ import annotations

import calendar
import logging
import math
import random
from collections.abc import Callable
from datetime import date, timedelta

from vocab_pipeline.config import DEFAULT_TIER_DISTRIBUTION, validate_distribution
from vocab_pipeline.db import Database
from vocab_pipeline.difficulty import DifficultyScorer, difficulty_level
from vocab_pipeline.distractors import DistractorGenerator
from vocab_pipeline.filters import is_eligible
from vocab_pipeline.models import TIERS, AssignmentResult, DailyAssignment, QuizOptions, Word

log = logging.getLogger("vocab_pipeline.assign")


class InsufficientWordsError(Exception):
    def __init__(self, tier: str, needed: int, available: int):
        self.tier = tier
        self.needed = needed
        self.available = available
        super().__init__(
            f"Not enough {tier} words available. Need {needed}, have {available} "
            f"(short by {needed - available})"
        )


def months_before(d: date, months: int) -> date:
    month_index = d.year * 12 + (d.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def date_range(start: date, end: date) -> list[date]:
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


def _round_half_up(x: float) -> int:
    return math.floor(round(x, 9) + 0.5)


def daily_counts(words_per_day: int, distribution: dict[str, float]) -> dict[str, int]:
    """Words per tier for one date."""
    return {tier: _round_half_up(words_per_day * distribution.get(tier, 0.0)) for tier in TIERS}


def required_counts(
    days: int, words_per_day: int, distribution: dict[str, float]
) -> dict[str, int]:
    """Minimum pool size per tier for a run over *days* dates."""
    per_day = daily_counts(words_per_day, distribution)
    total = days * words_per_day
    return {
        tier: max(math.ceil(round(total * distribution.get(tier, 0.0), 9)), days * per_day[tier])
        for tier in TIERS
    }


def _existing_to_assignments(rows: list[dict]) -> list[DailyAssignment]:
    result = []
    for r in rows:
        quiz = None
        if r["options"] and r["correct_index"] is not None:
            quiz = QuizOptions(options=r["options"], correct_index=r["correct_index"])
        result.append(DailyAssignment(
            date=r["date"],
            word=r["word"],
            difficulty_level=r["difficulty_level"],
            difficulty_score=r["difficulty_score"],
            quiz=quiz,
        ))
    return result


class DateAssigner:
    def __init__(
        self,
        db: Database,
        scorer: DifficultyScorer,
        distractors: DistractorGenerator,
        lookback_months: int = 6,
        rng: random.Random | None = None,
        today: Callable[[], date] = date.today,
    ):
        self.db = db
        self.scorer = scorer
        self.distractors = distractors
        self.lookback_months = lookback_months
        self.rng = rng or random.Random()
        self.today = today

    async def _scored(self, word: Word) -> Word:
        if word.difficulty_score is None:
            result = await self.scorer.score(word.word, word)
            self.db.update_word_difficulty(word.id, result.score, result.to_dict())
            word.difficulty_score = result.score
        word.difficulty_level = difficulty_level(word.difficulty_score)
        return word

    async def _candidate_pools(
        self, since: date, reserved: set[str], replaced: list[str]
    ) -> tuple[dict[str, list[Word]], dict[str, list[Word]], int]:
        """Fresh words and least-recently-used fallbacks, bucketed by tier."""
        fresh = {tier: [] for tier in TIERS}
        fallback = {tier: [] for tier in TIERS}
        filtered_out = 0

        cutoff = since.isoformat()
        sources = [
            (fresh, self.db.get_words_not_used_since(cutoff, replaced)),
            (fallback, [w for w, _ in self.db.get_words_used_since(cutoff, replaced)]),
        ]
        for buckets, words in sources:
            for word in words:
                if word.word in reserved:
                    continue
                check = is_eligible(word.word)
                if not check.valid:
                    log.debug("Filtered out %r: %s", word.word, check.reason)
                    filtered_out += 1
                    continue
                if not word.primary_definition:
                    log.debug("Filtered out %r: no definition", word.word)
                    filtered_out += 1
                    continue
                word = await self._scored(word)
                buckets[word.difficulty_level].append(word)
        return fresh, fallback, filtered_out

    async def assign_for_range(
        self,
        start: date,
        end: date,
        words_per_day: int,
        distribution: dict[str, float] | None = None,
        force: bool = False,
    ) -> AssignmentResult:
        if end < start:
            raise ValueError(f"end date {end} is before start date {start}")
        if words_per_day < 1:
            raise ValueError("words_per_day must be at least 1")
        distribution = validate_distribution(distribution or DEFAULT_TIER_DISTRIBUTION)

        dates = date_range(start, end)
        result = AssignmentResult(
            assigned_count=0, start_date=start.isoformat(), end_date=end.isoformat()
        )

        to_assign: list[date] = []
        replaced: list[str] = []
        reserved: set[str] = set()
        for d in dates:
            existing = self.db.get_daily_words(d.isoformat())
            if existing and force:
                replaced.append(d.isoformat())
            elif existing:
                result.skipped_dates.append(d.isoformat())
                result.assignments.extend(_existing_to_assignments(existing))
                reserved.update(r["word"] for r in existing)
                continue
            to_assign.append(d)

        if not to_assign:
            log.info("Words already assigned for %s to %s", start, end)
            result.existing = True
            return result

        per_day = daily_counts(words_per_day, distribution)
        needed = required_counts(len(to_assign), words_per_day, distribution)
        since = months_before(self.today(), self.lookback_months)

        fresh, fallback, result.filtered_out = await self._candidate_pools(
            since, reserved, replaced
        )
        pools: dict[str, list[Word]] = {}
        for tier in TIERS:
            pool = list(fresh[tier])
            shortfall = needed[tier] - len(pool)
            if shortfall > 0 and fallback[tier]:
                log.info(
                    "Only %d fresh %s words, reusing %d least recently used",
                    len(pool), tier, min(shortfall, len(fallback[tier])),
                )
                pool.extend(fallback[tier][:shortfall])
            if len(pool) < needed[tier]:
                raise InsufficientWordsError(tier, needed[tier], len(pool))
            pools[tier] = pool

        log.info(
            "Pool sizes: %s",
            ", ".join(f"{t}={len(fresh[t])}" for t in TIERS),
        )

        # Existing rows go only once the new draw is known to fit
        for day in replaced:
            removed = self.db.delete_daily_words(day)
            log.info("Removed %d existing assignments for %s", removed, day)

        for d in to_assign:
            for tier in TIERS:
                count = per_day[tier]
                if count == 0:
                    continue
                drawn = self.rng.sample(pools[tier], count)
                for slot, word in enumerate(drawn):
                    pools[tier].remove(word)
                    quiz = await self.distractors.build_quiz(
                        word.word,
                        word.primary_definition,
                        word.pos or word.senses[0].pos or None,
                        tier,
                    )
                    assignment = DailyAssignment(
                        date=d.isoformat(),
                        word=word.word,
                        difficulty_level=tier,
                        difficulty_score=word.difficulty_score,
                        quiz=quiz,
                    )
                    self.db.save_daily_assignment(assignment, slot)
                    result.assignments.append(assignment)
                    result.assigned_count += 1

        log.info(
            "Assigned %d words across %d dates (%s to %s)",
            result.assigned_count, len(to_assign), start, end,
        )
        return result

    async def assign_next_day(
        self, words_per_day: int = 3, distribution: dict[str, float] | None = None
    ) -> AssignmentResult:
        tomorrow = self.today() + timedelta(days=1)
        existing = self.db.get_daily_words(tomorrow.isoformat())
        if len(existing) >= words_per_day:
            return AssignmentResult(
                assigned_count=0,
                start_date=tomorrow.isoformat(),
                end_date=tomorrow.isoformat(),
                assignments=_existing_to_assignments(existing),
                existing=True,
                skipped_dates=[tomorrow.isoformat()],
            )
        return await self.assign_for_range(
            tomorrow, tomorrow, words_per_day, distribution, force=bool(existing)
        )
