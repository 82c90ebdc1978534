"""Shared test fixtures."""
from __future__ import annotations

import json
import random
from datetime import date

import pytest

from vocab_pipeline.db import Database
from vocab_pipeline.difficulty import DifficultyScorer
from vocab_pipeline.distractors import DistractorGenerator
from vocab_pipeline.models import Sense, Word, WordSignal
from vocab_pipeline.providers.base import LexicalProvider, ProviderError


class FakeProvider(LexicalProvider):
    """In-memory stand-in for the external frequency/association service."""

    def __init__(self, signals: dict[str, WordSignal] | None = None,
                 related: dict[tuple[str, str], list[str]] | None = None):
        self.signals = signals or {}
        self.related = related or {}
        self.fail = False
        self.calls: list[str] = []

    async def lookup(self, word: str) -> WordSignal | None:
        self.calls.append(word)
        if self.fail:
            raise ProviderError("service unavailable")
        return self.signals.get(word.lower())

    async def related_words(self, word: str, relation: str, limit: int = 5) -> list[str]:
        if self.fail:
            raise ProviderError("service unavailable")
        return self.related.get((word, relation), [])[:limit]

    def name(self) -> str:
        return "fake"


@pytest.fixture
def tmp_db(tmp_path):
    """Create a fresh temporary database."""
    db = Database(tmp_path / "test.db")
    yield db
    db.close()


@pytest.fixture
def sample_words():
    """A small lexicon: an everyday word, an abstract word, a rare word and a phrase."""
    return [
        Word(
            "cat",
            pos="noun",
            senses=[Sense("a small domesticated carnivorous mammal with soft fur", "noun", "animal")],
            examples=["The cat slept on the windowsill."],
            synonyms=["feline"],
            frequency=60.0,
            syllable_count=1,
        ),
        Word(
            "paradox",
            pos="noun",
            senses=[
                Sense("a statement that contradicts itself and yet might be true", "noun", "logic"),
                Sense("a person or thing that combines contradictory features", "noun", "communication"),
            ],
            examples=["It is a paradox that standing is more tiring than walking."],
            synonyms=["contradiction", "enigma"],
            frequency=3.0,
            syllable_count=3,
        ),
        Word(
            "mellifluous",
            pos="adjective",
            senses=[Sense("sweet or musical; pleasant to hear", "adjective", "music")],
            synonyms=["dulcet"],
            antonyms=["cacophonous"],
            frequency=0.3,
            syllable_count=4,
        ),
        Word(
            "ice cream",
            pos="noun",
            senses=[Sense("a frozen dessert made from cream and sugar", "noun", "food")],
        ),
    ]


@pytest.fixture
def populated_db(tmp_db, sample_words):
    """A database pre-loaded with the sample lexicon."""
    tmp_db.import_words(sample_words)
    return tmp_db


@pytest.fixture
def sample_signals():
    return {
        "cat": WordSignal("cat", frequency=60.0, syllables=1, parts_of_speech=["noun"]),
        "paradox": WordSignal("paradox", frequency=3.0, syllables=3, parts_of_speech=["noun"]),
        "mellifluous": WordSignal("mellifluous", frequency=0.3, syllables=4),
        "the": WordSignal("the", frequency=70.0, syllables=1),
        "house": WordSignal("house", frequency=72.0, syllables=1),
    }


@pytest.fixture
def fake_provider(sample_signals):
    return FakeProvider(signals=sample_signals)


@pytest.fixture
def scorer(populated_db, fake_provider):
    return DifficultyScorer(populated_db, fake_provider)


# Pre-scored pool for assignment: 4 beginner, 4 intermediate, 3 advanced
POOL = [
    ("chair", "a seat for one person with a back", 0.10),
    ("apple", "the round fruit of a tree of the rose family", 0.15),
    ("kitten", "a young domestic cat", 0.20),
    ("garden", "a piece of ground used for growing flowers or vegetables", 0.30),
    ("lantern", "a lamp with a transparent case protecting the flame", 0.45),
    ("harbor", "a place on the coast where vessels may find shelter", 0.50),
    ("meadow", "a piece of grassland used for hay", 0.55),
    ("puzzle", "a game or problem designed to test ingenuity", 0.60),
    ("paradox", "a statement that contradicts itself and yet might be true", 0.75),
    ("ephemeral", "lasting for a very short time", 0.80),
    ("mellifluous", "sweet or musical; pleasant to hear", 0.90),
]


@pytest.fixture
def pool_db(tmp_db):
    """A database whose words already carry difficulty scores."""
    words = [Word(w, pos="noun", senses=[Sense(d, "noun")]) for w, d, _ in POOL]
    tmp_db.import_words(words)
    for w, _, score in POOL:
        word = tmp_db.get_word(w)
        tmp_db.update_word_difficulty(word.id, score, {"seeded": True})
    return tmp_db


@pytest.fixture
def assigner(pool_db):
    from vocab_pipeline.assignment import DateAssigner

    rng = random.Random(42)
    scorer = DifficultyScorer(pool_db, None)
    distractors = DistractorGenerator(pool_db, None, rng=rng)
    return DateAssigner(
        pool_db, scorer, distractors, lookback_months=6, rng=rng,
        today=lambda: date(2025, 1, 1),
    )


@pytest.fixture
def lexicon_json(tmp_path):
    """A JSON lexicon file on disk."""
    path = tmp_path / "lexicon.json"
    path.write_text(json.dumps([
        {
            "word": "paradox",
            "pos": "noun",
            "frequency": 3.0,
            "syllable_count": 3,
            "senses": [
                {"definition": "a self-contradictory statement", "pos": "noun", "domain": "logic"},
                "a person with contradictory qualities",
            ],
            "examples": ["A paradox of modern life."],
            "synonyms": ["contradiction"],
        },
        {"word": "cat", "senses": [{"definition": "a small feline", "pos": "noun"}]},
    ]))
    return path
