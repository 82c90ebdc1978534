"""Composite word difficulty: four weighted components and a fixed tier mapping.

The tier of a word is only ever produced by ``difficulty_level`` from its score.
"""
from __future__ import annotations

import logging
import math
import re
import sqlite3
from typing import TYPE_CHECKING

from vocab_pipeline.config import DEFAULT_DOMAIN_VALUES, WeightProfile
from vocab_pipeline.models import (
    ADVANCED,
    BEGINNER,
    INTERMEDIATE,
    DifficultyComponents,
    DifficultyResult,
    Sense,
    Word,
    WordSignal,
)
from vocab_pipeline.providers.base import ProviderError

if TYPE_CHECKING:
    from vocab_pipeline.db import Database
    from vocab_pipeline.providers.base import LexicalProvider

log = logging.getLogger("vocab_pipeline.difficulty")

TIER_THRESHOLDS = (0.4, 0.7)

FREQUENCY_EXPONENT = 0.85
FREQUENCY_FLOOR = 0.1

STORE_CONFIDENCE = 0.6
EXTERNAL_CONFIDENCE = 0.4
NO_SOURCE_CONFIDENCE = 0.3

TECHNICAL_DOMAINS = (
    "medical", "medicine", "technical", "technology", "scientific", "academic",
    "legal", "law", "biology", "chemistry", "physics", "mathematics", "finance",
    "economics", "engineering", "logic", "philosophy",
)

COMMON_PREFIXES = ("un", "re", "in", "dis", "en", "non", "pre", "anti")
COMMON_SUFFIXES = ("ing", "ed", "tion", "able", "ible", "ful", "ness", "less")

_VOWEL_GROUP = re.compile(r"[aeiouy]+")


def difficulty_level(score: float) -> str:
    low, high = TIER_THRESHOLDS
    if score < low:
        return BEGINNER
    if score < high:
        return INTERMEDIATE
    return ADVANCED


def estimate_syllables(word: str) -> int:
    letters = re.sub(r"[^a-z]", "", word.lower())
    if not letters:
        return 0
    if len(letters) <= 3:
        return 1
    count = len(_VOWEL_GROUP.findall(letters))
    if letters.endswith("e") and letters[-2] not in "aeiouy" and count > 1:
        count -= 1
    return max(count, 1)


# ── Component scores ─────────────────────────────────────────────────────


def frequency_score(
    frequency: float | None,
    word: str,
    syllables: int,
    max_expected_frequency: float = 75.0,
) -> tuple[float, bool]:
    """Rarer words score higher. Returns (score, used_fallback)."""
    if frequency is None:
        return min(0.7, len(word) / 20 + syllables / 10), True
    normalized = min(max(frequency, 0.0) / max_expected_frequency, 1.0)
    return max((1 - normalized) ** FREQUENCY_EXPONENT, FREQUENCY_FLOOR), False


def polysemy_score(sense_count: int) -> float:
    # Single-sense and heavily polysemous words both read as harder than a few senses.
    if sense_count <= 1:
        return 0.7
    if sense_count >= 7:
        return 0.8
    return 0.7 - 0.2 * math.sin(math.pi * (sense_count - 1) / 6)


def is_technical_domain(domain: str | None) -> bool:
    if not domain:
        return False
    d = domain.lower()
    return any(t in d for t in TECHNICAL_DOMAINS)


def semantic_score(senses: list[Sense]) -> float:
    if not senses:
        return 0.5
    technical = sum(1 for s in senses if is_technical_domain(s.domain)) / len(senses)
    pos_variety = min(len({s.pos for s in senses if s.pos}) / 4, 1.0)
    return (polysemy_score(len(senses)) + technical + pos_variety) / 3


def length_score(word: str) -> float:
    n = len(word)
    if n <= 3:
        return 0.0
    if n <= 5:
        return 0.2
    if n <= 7:
        return 0.4
    if n <= 9:
        return 0.6
    if n <= 12:
        return 0.8
    return 1.0


def syllable_score(syllables: int) -> float:
    if syllables <= 1:
        return 0.0
    if syllables == 2:
        return 0.3
    if syllables == 3:
        return 0.6
    return min(0.9, 0.6 + (syllables - 3) * 0.1)


def morphology_score(word: str) -> float:
    score = 0.0
    if word.startswith(COMMON_PREFIXES):
        score += 0.3
    if word.endswith(COMMON_SUFFIXES):
        score += 0.3
    if "-" in word or re.search(r"[A-Z]", word[1:]):
        score += 0.4
    return min(score, 1.0)


def structural_score(word: str, syllables: int) -> float:
    return (length_score(word) + syllable_score(syllables) + morphology_score(word)) / 3


def domain_score(senses: list[Sense], domain_values: dict[str, float]) -> float:
    values = [
        domain_values[s.domain.lower()]
        for s in senses
        if s.domain and s.domain.lower() in domain_values
    ]
    if not values:
        return 0.5
    return sum(values) / len(values)


def confidence_score(store_hit: bool, external_hit: bool) -> float:
    weights = []
    if store_hit:
        weights.append(STORE_CONFIDENCE)
    if external_hit:
        weights.append(EXTERNAL_CONFIDENCE)
    return sum(weights) / len(weights) if weights else NO_SOURCE_CONFIDENCE


def calculate_basic_difficulty(word: str) -> DifficultyResult:
    """Length and syllables only, for when scoring itself broke."""
    syllables = estimate_syllables(word)
    score = (length_score(word) + syllable_score(syllables)) / 2
    return DifficultyResult(
        score=score,
        level=difficulty_level(score),
        confidence=NO_SOURCE_CONFIDENCE,
        components=DifficultyComponents(
            frequency=0.5, semantic=0.5, structural=score, domain=0.5
        ),
        uses_fallback=True,
    )


# ── Scorer ───────────────────────────────────────────────────────────────


class DifficultyScorer:
    def __init__(
        self,
        db: Database | None,
        provider: LexicalProvider | None,
        weights: WeightProfile | None = None,
        domain_values: dict[str, float] | None = None,
        max_expected_frequency: float = 75.0,
    ):
        self.db = db
        self.provider = provider
        self.weights = (weights or WeightProfile()).normalized()
        self.domain_values = {
            k.lower(): v for k, v in (domain_values or DEFAULT_DOMAIN_VALUES).items()
        }
        self.max_expected_frequency = max_expected_frequency

    async def _store_data(self, text: str) -> Word | None:
        if self.db is None:
            return None
        try:
            return self.db.get_word(text)
        except sqlite3.Error as e:
            log.warning("Store lookup failed for %r: %s", text, e)
            return None

    async def _external_data(self, text: str) -> WordSignal | None:
        if self.provider is None:
            return None
        try:
            return await self.provider.lookup(text)
        except ProviderError as e:
            log.warning("External lookup failed for %r: %s", text, e)
            return None

    async def score(self, text: str, word: Word | None = None) -> DifficultyResult:
        """Score *text*. Pass *word* to reuse an already loaded store record.

        Never raises: source failures fall back per component, anything else
        falls back to ``calculate_basic_difficulty``.
        """
        try:
            stored = word if word is not None else await self._store_data(text)
            signal = await self._external_data(text)
            return self._combine(text, stored, signal)
        except Exception:
            log.exception("Scoring failed for %r, using basic estimate", text)
            return calculate_basic_difficulty(text)

    def _combine(
        self, text: str, stored: Word | None, signal: WordSignal | None
    ) -> DifficultyResult:
        store_hit = stored is not None and bool(stored.senses)
        external_hit = signal is not None

        frequency = signal.frequency if signal and signal.frequency is not None else None
        if frequency is None and stored is not None:
            frequency = stored.frequency

        syllables = (
            (signal.syllables if signal else None)
            or (stored.syllable_count if stored else None)
            or estimate_syllables(text)
        )

        senses = stored.senses if store_hit else (signal.definitions if signal else [])

        freq, used_fallback = frequency_score(
            frequency, text, syllables, self.max_expected_frequency
        )
        components = DifficultyComponents(
            frequency=freq,
            semantic=semantic_score(senses),
            structural=structural_score(text, syllables),
            domain=domain_score(senses, self.domain_values),
        )
        w = self.weights
        score = (
            components.frequency * w.frequency
            + components.semantic * w.semantic
            + components.structural * w.structural
            + components.domain * w.domain
        )
        score = min(max(score, 0.0), 1.0)
        if used_fallback:
            log.info("No frequency data for %r, estimated from length/syllables", text)

        sources = []
        if store_hit:
            sources.append("store")
        if external_hit:
            sources.append(self.provider.name())
        return DifficultyResult(
            score=score,
            level=difficulty_level(score),
            confidence=confidence_score(store_hit, external_hit),
            components=components,
            uses_fallback=used_fallback,
            sources=sources,
        )
