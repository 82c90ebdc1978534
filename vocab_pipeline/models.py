from __future__ import annotations

from dataclasses import dataclass, field

BEGINNER = "beginner"
INTERMEDIATE = "intermediate"
ADVANCED = "advanced"

TIERS = (BEGINNER, INTERMEDIATE, ADVANCED)


@dataclass
class Sense:
    definition: str
    pos: str = ""
    domain: str | None = None


@dataclass
class Word:
    word: str
    pos: str = ""
    senses: list[Sense] = field(default_factory=list)
    examples: list[str] = field(default_factory=list)
    synonyms: list[str] = field(default_factory=list)
    antonyms: list[str] = field(default_factory=list)
    frequency: float | None = None
    syllable_count: int | None = None
    id: int | None = None
    difficulty_score: float | None = None
    difficulty_level: str | None = None  # derived from difficulty_score
    metadata: dict = field(default_factory=dict)

    @property
    def primary_definition(self) -> str:
        return self.senses[0].definition if self.senses else ""


@dataclass
class WordSignal:
    """What the external frequency/association service knows about a word."""

    word: str
    frequency: float | None = None
    syllables: int | None = None
    parts_of_speech: list[str] = field(default_factory=list)
    definitions: list[Sense] = field(default_factory=list)
    raw: dict = field(default_factory=dict)


@dataclass
class EligibilityResult:
    valid: bool
    reason: str | None = None


@dataclass
class DifficultyComponents:
    frequency: float
    semantic: float
    structural: float
    domain: float

    def to_dict(self) -> dict:
        return {
            "frequency": self.frequency,
            "semantic": self.semantic,
            "structural": self.structural,
            "domain": self.domain,
        }


@dataclass
class DifficultyResult:
    score: float
    level: str
    confidence: float
    components: DifficultyComponents
    uses_fallback: bool = False
    sources: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "level": self.level,
            "confidence": self.confidence,
            "components": self.components.to_dict(),
            "uses_fallback": self.uses_fallback,
            "sources": list(self.sources),
        }


@dataclass
class QuizOptions:
    options: list[str]
    correct_index: int

    @property
    def correct_option(self) -> str:
        return self.options[self.correct_index]


@dataclass
class DailyAssignment:
    date: str  # ISO date
    word: str
    difficulty_level: str
    difficulty_score: float | None = None
    quiz: QuizOptions | None = None


@dataclass
class DistractorCandidate:
    text: str
    source: str  # stored | alternate_sense | synonym_definition | antonym_definition | dynamic_fallback
    quality_score: float


@dataclass
class BatchSummary:
    processed: int = 0
    successful: int = 0
    skipped: int = 0
    errors: int = 0
    fallback: int = 0
    batches: int = 0
    batch_failures: list[str] = field(default_factory=list)
    covered_ranges: list[tuple[int, int]] = field(default_factory=list)
    dry_run: bool = False

    def to_dict(self) -> dict:
        return {
            "processed": self.processed,
            "successful": self.successful,
            "skipped": self.skipped,
            "errors": self.errors,
            "fallback": self.fallback,
            "batches": self.batches,
            "batch_failures": list(self.batch_failures),
            "covered_ranges": [list(r) for r in self.covered_ranges],
            "dry_run": self.dry_run,
        }


@dataclass
class AssignmentResult:
    assigned_count: int
    start_date: str
    end_date: str
    assignments: list[DailyAssignment] = field(default_factory=list)
    existing: bool = False
    skipped_dates: list[str] = field(default_factory=list)
    filtered_out: int = 0
