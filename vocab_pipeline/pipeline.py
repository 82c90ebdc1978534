"""Wire the pipeline components together from Settings."""
from __future__ import annotations

from dataclasses import dataclass

from vocab_pipeline.assignment import DateAssigner
from vocab_pipeline.batch import BatchProcessor
from vocab_pipeline.config import Settings
from vocab_pipeline.db import Database
from vocab_pipeline.difficulty import DifficultyScorer
from vocab_pipeline.distractors import DistractorGenerator
from vocab_pipeline.providers.base import LexicalProvider
from vocab_pipeline.providers.datamuse import DatamuseProvider
from vocab_pipeline.rate_limiter import RateLimiter


@dataclass
class Pipeline:
    settings: Settings
    db: Database
    provider: LexicalProvider
    scorer: DifficultyScorer
    batch: BatchProcessor
    distractors: DistractorGenerator
    assigner: DateAssigner


def make_provider(settings: Settings) -> LexicalProvider:
    return DatamuseProvider(
        base_url=settings.datamuse_url,
        limiter=RateLimiter(settings.request_interval),
        timeout=settings.request_timeout,
        max_retries=settings.max_retries,
        backoff=settings.retry_backoff,
    )


def build_pipeline(
    settings: Settings, db: Database, provider: LexicalProvider | None = None
) -> Pipeline:
    provider = provider or make_provider(settings)
    scorer = DifficultyScorer(
        db,
        provider,
        weights=settings.weight_profile(),
        domain_values=settings.domain_values,
        max_expected_frequency=settings.max_expected_frequency,
    )
    distractors = DistractorGenerator(
        db,
        provider,
        count=settings.distractor_count,
        similarity_threshold=settings.similarity_threshold,
    )
    return Pipeline(
        settings=settings,
        db=db,
        provider=provider,
        scorer=scorer,
        batch=BatchProcessor(
            db, scorer, settings.state_full_path, batch_delay=settings.batch_delay
        ),
        distractors=distractors,
        assigner=DateAssigner(
            db, scorer, distractors, lookback_months=settings.lookback_months
        ),
    )
