"""Wrong-answer options for definition quizzes.

Candidates come from an ordered list of strategies; the first strategies to
supply enough acceptable candidates win. A candidate is rejected when it
overlaps the correct definition too much or repeats an accepted one.
"""
from __future__ import annotations

import logging
import random
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from vocab_pipeline.db import Database
from vocab_pipeline.models import (
    ADVANCED,
    BEGINNER,
    INTERMEDIATE,
    DistractorCandidate,
    QuizOptions,
)
from vocab_pipeline.providers.base import LexicalProvider, ProviderError

log = logging.getLogger("vocab_pipeline.distractors")

ALTERNATE_SENSE_QUALITY = 0.9
RELATED_WORD_QUALITY = 0.85
FALLBACK_QUALITY = 0.5


@dataclass
class DistractorRequest:
    word: str
    correct_definition: str
    part_of_speech: str | None
    tier: str


Strategy = Callable[[DistractorRequest], Awaitable[list[DistractorCandidate]]]


# ── Similarity ───────────────────────────────────────────────────────────


def significant_words(text: str) -> list[str]:
    return [w for w in re.split(r"\W+", text.lower()) if len(w) > 3]


def definition_similarity(a: str, b: str) -> float:
    """Shared significant words over the shorter text's significant word count."""
    words_a = significant_words(a)
    words_b = significant_words(b)
    if not words_a or not words_b:
        return 0.0
    common = [w for w in words_a if w in words_b]
    return len(common) / min(len(words_a), len(words_b))


def is_too_similar(candidate: str, correct: str, threshold: float = 0.3) -> bool:
    return definition_similarity(candidate, correct) > threshold


# ── Templates ────────────────────────────────────────────────────────────

_FIELDS = {
    BEGINNER: ["cooking", "gardening", "sports", "music", "travel", "photography"],
    INTERMEDIATE: ["engineering", "medicine", "journalism", "architecture", "economics"],
    ADVANCED: ["epistemology", "semiotics", "neuropsychology", "phenomenology", "macroeconomics"],
}
_ADJECTIVES = {
    BEGINNER: ["colorful", "useful", "bright", "quiet", "heavy"],
    INTERMEDIATE: ["innovative", "traditional", "remarkable", "controversial", "efficient"],
    ADVANCED: ["esoteric", "ephemeral", "idiosyncratic", "ubiquitous", "dialectical"],
}
_NOUNS = {
    BEGINNER: ["kindness", "patience", "courage", "energy", "talent"],
    INTERMEDIATE: ["integrity", "perseverance", "collaboration", "authenticity", "discipline"],
    ADVANCED: ["equanimity", "sagacity", "verisimilitude", "perspicacity", "magnanimity"],
}
_PLACES = {
    BEGINNER: ["schools", "parks", "gardens", "kitchens", "libraries"],
    INTERMEDIATE: ["laboratories", "museums", "universities", "corporations"],
    ADVANCED: ["geopolitical regions", "theoretical frameworks", "anthropological contexts"],
}
_VERBS = {
    BEGINNER: ["running", "drawing", "swimming", "singing", "building"],
    INTERMEDIATE: ["negotiating", "investigating", "organizing", "supervising"],
    ADVANCED: ["extrapolating", "postulating", "disambiguating", "conceptualizing"],
}


def template_distractors(
    word: str, part_of_speech: str | None, tier: str, rng: random.Random
) -> list[str]:
    """Generic wrong definitions shaped by part of speech and tier."""
    tier = tier if tier in _FIELDS else INTERMEDIATE

    def pick(pool: dict[str, list[str]]) -> str:
        return rng.choice(pool[tier])

    pos = (part_of_speech or "").lower()
    if pos == "noun":
        specific = [
            f"A {pick(_ADJECTIVES)} object found in {pick(_PLACES)}",
            f"A person who specializes in {pick(_FIELDS)}",
            f"A device used for {pick(_VERBS)}",
        ]
    elif pos == "verb":
        specific = [
            f"To cause something to become {pick(_ADJECTIVES)}",
            f"To perform an action typical in {pick(_FIELDS)}",
            f"To keep {pick(_VERBS)} with great {pick(_NOUNS)}",
        ]
    elif pos == "adjective":
        specific = [
            f"Having the quality of {pick(_NOUNS)}",
            f"Relating to {pick(_FIELDS)} in a {pick(_ADJECTIVES)} way",
        ]
    elif pos == "adverb":
        specific = [
            f"In a manner that is {pick(_ADJECTIVES)}",
            f"With a focus on {pick(_NOUNS)}",
        ]
    else:
        specific = [
            f"A concept from {pick(_FIELDS)}",
            f"Something characterized by {pick(_ADJECTIVES)} qualities",
        ]

    generic = [
        f"A term used in {pick(_FIELDS)} to describe {pick(_NOUNS)}",
        f"Something commonly found in {pick(_PLACES)}",
    ]
    candidates = specific + generic
    rng.shuffle(candidates)
    return candidates + [
        f"Not a definition of {word}",
        f"The opposite of {word}",
        f"A term often confused with {word}",
        f"Something unrelated to {word}",
    ]


# ── Generator ────────────────────────────────────────────────────────────


class DistractorGenerator:
    def __init__(
        self,
        db: Database,
        provider: LexicalProvider | None = None,
        count: int = 3,
        similarity_threshold: float = 0.3,
        rng: random.Random | None = None,
    ):
        self.db = db
        self.provider = provider
        self.count = count
        self.similarity_threshold = similarity_threshold
        self.rng = rng or random.Random()
        self.strategies: list[Strategy] = [
            self._stored,
            self._alternate_senses,
            self._related_word_senses,
            self._templates,
        ]

    async def _stored(self, req: DistractorRequest) -> list[DistractorCandidate]:
        records = self.db.get_stored_distractors(
            req.word, req.part_of_speech, req.tier, limit=self.count * 2
        )
        return [
            DistractorCandidate(r["distractor"], "stored", r["quality_score"]) for r in records
        ]

    async def _alternate_senses(self, req: DistractorRequest) -> list[DistractorCandidate]:
        word = self.db.get_word(req.word)
        if word is None:
            return []
        return [
            DistractorCandidate(s.definition, "alternate_sense", ALTERNATE_SENSE_QUALITY)
            for s in word.senses
            if s.definition and s.definition != req.correct_definition
        ]

    async def _related_words(self, word: str, relation: str) -> list[str]:
        stored = self.db.get_word(word)
        if stored is not None:
            related = stored.synonyms if relation == "syn" else stored.antonyms
            if related:
                return related
        if self.provider is None:
            return []
        try:
            return await self.provider.related_words(word, relation)
        except ProviderError as e:
            log.warning("Related-word lookup failed for %r: %s", word, e)
            return []

    async def _definition_of(self, word: str) -> str | None:
        stored = self.db.get_word(word)
        if stored is not None and stored.primary_definition:
            return stored.primary_definition
        if self.provider is None:
            return None
        try:
            senses = await self.provider.definitions(word)
        except ProviderError as e:
            log.warning("Definition lookup failed for %r: %s", word, e)
            return None
        return senses[0].definition if senses else None

    async def _related_word_senses(self, req: DistractorRequest) -> list[DistractorCandidate]:
        candidates = []
        for relation, source in (("syn", "synonym_definition"), ("ant", "antonym_definition")):
            for related in await self._related_words(req.word, relation):
                definition = await self._definition_of(related)
                if definition:
                    candidates.append(
                        DistractorCandidate(definition, source, RELATED_WORD_QUALITY)
                    )
        return candidates

    async def _templates(self, req: DistractorRequest) -> list[DistractorCandidate]:
        return [
            DistractorCandidate(text, "dynamic_fallback", FALLBACK_QUALITY)
            for text in template_distractors(req.word, req.part_of_speech, req.tier, self.rng)
        ]

    def _acceptable(self, text: str, correct: str, accepted: list[str]) -> bool:
        normalized = text.strip().lower()
        if not normalized or normalized == correct.strip().lower():
            return False
        if any(normalized == a.strip().lower() for a in accepted):
            return False
        return not is_too_similar(text, correct, self.similarity_threshold)

    def _persist(self, req: DistractorRequest, candidate: DistractorCandidate) -> None:
        if candidate.source == "stored":
            self.db.increment_distractor_usage(req.word, candidate.text)
        else:
            self.db.save_distractor(
                req.word, req.correct_definition, candidate.text, req.part_of_speech,
                req.tier, candidate.source, candidate.quality_score,
            )

    async def generate(
        self, word: str, correct_definition: str, part_of_speech: str | None, tier: str
    ) -> list[str]:
        req = DistractorRequest(word, correct_definition, part_of_speech, tier)
        accepted: list[str] = []
        sources: dict[str, str] = {}
        for strategy in self.strategies:
            if len(accepted) >= self.count:
                break
            for candidate in await strategy(req):
                if len(accepted) >= self.count:
                    break
                if not self._acceptable(candidate.text, correct_definition, accepted):
                    continue
                accepted.append(candidate.text)
                sources[candidate.text] = candidate.source
                self._persist(req, candidate)

        if len(accepted) < self.count:
            log.warning("Only %d distractors for %r", len(accepted), word)
        log.info("Distractors for %r: %s", word, sources)
        return accepted

    async def build_quiz(
        self, word: str, correct_definition: str, part_of_speech: str | None, tier: str
    ) -> QuizOptions:
        distractors = await self.generate(word, correct_definition, part_of_speech, tier)
        return shuffle_options(correct_definition, distractors, self.rng)


def shuffle_options(
    correct_definition: str, distractors: list[str], rng: random.Random
) -> QuizOptions:
    options = [*distractors, correct_definition]
    rng.shuffle(options)
    return QuizOptions(options=options, correct_index=options.index(correct_definition))
