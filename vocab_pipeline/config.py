from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from pathlib import Path

from vocab_pipeline.models import TIERS

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.json"

DEFAULT_WEIGHTS = {
    "frequency": 0.50,
    "semantic": 0.20,
    "structural": 0.15,
    "domain": 0.15,
}

# Difficulty of vocabulary tagged with a subject domain (0 = everyday, 1 = specialist)
DEFAULT_DOMAIN_VALUES = {
    "animal": 0.2,
    "food": 0.2,
    "body": 0.25,
    "plant": 0.3,
    "artifact": 0.3,
    "person": 0.3,
    "feeling": 0.35,
    "act": 0.4,
    "communication": 0.5,
    "cognition": 0.6,
    "art": 0.55,
    "music": 0.55,
    "religion": 0.6,
    "politics": 0.6,
    "technology": 0.65,
    "finance": 0.7,
    "economics": 0.7,
    "logic": 0.7,
    "philosophy": 0.75,
    "law": 0.75,
    "biology": 0.75,
    "engineering": 0.75,
    "medicine": 0.8,
    "chemistry": 0.8,
    "physics": 0.8,
    "mathematics": 0.8,
}

DEFAULT_TIER_DISTRIBUTION = {
    "beginner": 0.4,
    "intermediate": 0.4,
    "advanced": 0.2,
}

DEFAULTS = {
    "db_path": "lexicon.db",
    "state_path": "difficulty-state.json",
    "datamuse_url": "https://api.datamuse.com",
    "request_interval": 1.0,
    "request_timeout": 10.0,
    "max_retries": 3,
    "retry_backoff": 0.5,
    "batch_size": 50,
    "batch_delay": 2.0,
    "lookback_months": 6,
    "frequency_threshold": 0.85,
    "max_expected_frequency": 75.0,
    "weights": DEFAULT_WEIGHTS,
    "domain_values": DEFAULT_DOMAIN_VALUES,
    "words_per_day": 3,
    "tier_distribution": DEFAULT_TIER_DISTRIBUTION,
    "distractor_count": 3,
    "similarity_threshold": 0.3,
}


@dataclass(frozen=True)
class WeightProfile:
    """Weights of the four difficulty components. Always sums to 1.0 once normalized."""

    frequency: float = DEFAULT_WEIGHTS["frequency"]
    semantic: float = DEFAULT_WEIGHTS["semantic"]
    structural: float = DEFAULT_WEIGHTS["structural"]
    domain: float = DEFAULT_WEIGHTS["domain"]

    @classmethod
    def from_dict(cls, raw: dict) -> WeightProfile:
        known = set(DEFAULT_WEIGHTS)
        unknown = set(raw) - known
        if unknown:
            raise ValueError(f"unknown weight keys: {', '.join(sorted(unknown))}")
        values = {k: float(raw.get(k, 0.0)) for k in known}
        negative = [k for k, v in values.items() if v < 0]
        if negative:
            raise ValueError(f"negative weights: {', '.join(sorted(negative))}")
        return cls(**values).normalized()

    @property
    def total(self) -> float:
        return self.frequency + self.semantic + self.structural + self.domain

    def normalized(self) -> WeightProfile:
        total = self.total
        if total <= 0:
            raise ValueError("weight profile must have a positive total")
        if math.isclose(total, 1.0, abs_tol=1e-9):
            return self
        return WeightProfile(
            frequency=self.frequency / total,
            semantic=self.semantic / total,
            structural=self.structural / total,
            domain=self.domain / total,
        )

    def to_dict(self) -> dict:
        return {
            "frequency": self.frequency,
            "semantic": self.semantic,
            "structural": self.structural,
            "domain": self.domain,
        }


def validate_distribution(distribution: dict[str, float]) -> dict[str, float]:
    """Check a tier -> fraction mapping covers known tiers and sums to 1.0."""
    unknown = set(distribution) - set(TIERS)
    if unknown:
        raise ValueError(f"unknown tiers in distribution: {', '.join(sorted(unknown))}")
    if any(v < 0 for v in distribution.values()):
        raise ValueError("distribution fractions must be non-negative")
    total = sum(distribution.values())
    if not math.isclose(total, 1.0, abs_tol=1e-6):
        raise ValueError(f"distribution must sum to 1.0 (got {total:.4f})")
    return {tier: float(distribution.get(tier, 0.0)) for tier in TIERS}


@dataclass
class Settings:
    db_path: str = DEFAULTS["db_path"]
    state_path: str = DEFAULTS["state_path"]
    datamuse_url: str = DEFAULTS["datamuse_url"]
    request_interval: float = DEFAULTS["request_interval"]
    request_timeout: float = DEFAULTS["request_timeout"]
    max_retries: int = DEFAULTS["max_retries"]
    retry_backoff: float = DEFAULTS["retry_backoff"]
    batch_size: int = DEFAULTS["batch_size"]
    batch_delay: float = DEFAULTS["batch_delay"]
    lookback_months: int = DEFAULTS["lookback_months"]
    frequency_threshold: float = DEFAULTS["frequency_threshold"]
    max_expected_frequency: float = DEFAULTS["max_expected_frequency"]
    weights: dict[str, float] = field(default_factory=lambda: dict(DEFAULTS["weights"]))
    domain_values: dict[str, float] = field(default_factory=lambda: dict(DEFAULTS["domain_values"]))
    words_per_day: int = DEFAULTS["words_per_day"]
    tier_distribution: dict[str, float] = field(
        default_factory=lambda: dict(DEFAULTS["tier_distribution"])
    )
    distractor_count: int = DEFAULTS["distractor_count"]
    similarity_threshold: float = DEFAULTS["similarity_threshold"]

    @property
    def project_root(self) -> Path:
        return Path(__file__).resolve().parent.parent

    @property
    def db_full_path(self) -> Path:
        return self.project_root / self.db_path

    @property
    def state_full_path(self) -> Path:
        return self.project_root / self.state_path

    def weight_profile(self) -> WeightProfile:
        return WeightProfile.from_dict(self.weights)

    def to_dict(self) -> dict:
        return {
            "db_path": self.db_path,
            "state_path": self.state_path,
            "datamuse_url": self.datamuse_url,
            "request_interval": self.request_interval,
            "request_timeout": self.request_timeout,
            "max_retries": self.max_retries,
            "retry_backoff": self.retry_backoff,
            "batch_size": self.batch_size,
            "batch_delay": self.batch_delay,
            "lookback_months": self.lookback_months,
            "frequency_threshold": self.frequency_threshold,
            "max_expected_frequency": self.max_expected_frequency,
            "weights": dict(self.weights),
            "domain_values": dict(self.domain_values),
            "words_per_day": self.words_per_day,
            "tier_distribution": dict(self.tier_distribution),
            "distractor_count": self.distractor_count,
            "similarity_threshold": self.similarity_threshold,
        }


def load_settings() -> Settings:
    if CONFIG_PATH.exists():
        raw = json.loads(CONFIG_PATH.read_text())
        known = {f.name for f in Settings.__dataclass_fields__.values()}
        filtered = {k: v for k, v in raw.items() if k in known}
        return Settings(**filtered)
    return Settings()


def save_settings(settings: Settings) -> None:
    CONFIG_PATH.write_text(json.dumps(settings.to_dict(), indent=4) + "\n")
