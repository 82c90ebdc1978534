from __future__ import annotations

import asyncio
import logging
import sqlite3
from pathlib import Path

from vocab_pipeline.db import Database
from vocab_pipeline.difficulty import DifficultyScorer
from vocab_pipeline.models import BatchSummary, Word
from vocab_pipeline.state import ProcessingState, load_state, save_state, unprocessed_ranges

log = logging.getLogger("vocab_pipeline.batch")


class BatchProcessor:
    """Scores words in ascending-ID batches and records covered ranges.

    With ``update_store=False`` (dry run) nothing is written: neither the
    words nor the processing state.
    """

    def __init__(
        self,
        db: Database,
        scorer: DifficultyScorer,
        state_path: Path,
        batch_delay: float = 2.0,
    ):
        self.db = db
        self.scorer = scorer
        self.state_path = state_path
        self.batch_delay = batch_delay

    def load_state(self) -> ProcessingState:
        return load_state(self.state_path)

    async def process_range(
        self,
        start_id: int,
        end_id: int,
        batch_size: int = 50,
        update_store: bool = True,
        skip_processed: bool = True,
    ) -> BatchSummary:
        if start_id > end_id:
            raise ValueError(f"start_id {start_id} is after end_id {end_id}")
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")

        state = self.load_state()
        summary = BatchSummary(dry_run=not update_store)

        if skip_processed:
            ranges = unprocessed_ranges(state.processed_ranges, start_id, end_id)
            if not ranges:
                log.info("IDs %d-%d already processed, nothing to do", start_id, end_id)
                return summary
        else:
            ranges = [(start_id, end_id)]

        # Recorded spans never extend past the current max id
        last_id = self.db.get_max_word_id()

        for range_start, range_end in ranges:
            log.info("Processing IDs %d-%d", range_start, range_end)
            tail_end = min(range_end, last_id)
            cursor = range_start
            while cursor <= range_end:
                if summary.batches > 0 and self.batch_delay > 0:
                    await asyncio.sleep(self.batch_delay)

                try:
                    words = self.db.get_words_in_range(cursor, range_end, batch_size)
                except sqlite3.Error as e:
                    msg = f"Fetching IDs {cursor}-{range_end} failed: {e}"
                    log.error(msg)
                    summary.batch_failures.append(msg)
                    break
                if not words:
                    if update_store and cursor <= tail_end:
                        state = state.with_batch(cursor, tail_end, 0, 0, 0)
                        save_state(state, self.state_path)
                        summary.covered_ranges.append((cursor, tail_end))
                    break

                summary.batches += 1
                counts = await self._process_batch(words, update_store, summary)
                span_end = words[-1].id
                if len(words) < batch_size:
                    span_end = max(span_end, tail_end)
                span = (cursor, span_end)

                if update_store and counts["errors"] == 0:
                    state = state.with_batch(
                        span[0], span[1], len(words), counts["with_frequency"],
                        counts["without_frequency"],
                    )
                    save_state(state, self.state_path)
                    summary.covered_ranges.append(span)

                log.info(
                    "Batch #%d (IDs %d-%d): %d scored, %d skipped, %d errors",
                    summary.batches, span[0], span[1], counts["successful"],
                    counts["skipped"], counts["errors"],
                )
                if len(words) < batch_size:
                    break
                cursor = words[-1].id + 1

        log.info(
            "Run complete%s: %d processed, %d successful (%d fallback), %d skipped, %d errors",
            " (dry run)" if summary.dry_run else "",
            summary.processed, summary.successful, summary.fallback,
            summary.skipped, summary.errors,
        )
        return summary

    async def _process_batch(
        self, words: list[Word], update_store: bool, summary: BatchSummary
    ) -> dict[str, int]:
        counts = {
            "successful": 0, "skipped": 0, "errors": 0,
            "with_frequency": 0, "without_frequency": 0,
        }
        for word in words:
            summary.processed += 1
            try:
                if " " in word.word.strip():
                    log.info("Skipping phrase %r", word.word)
                    if update_store:
                        self.db.clear_word_difficulty(
                            word.id, {"skipped": True, "reason": "Phrase not scored"}
                        )
                    counts["skipped"] += 1
                    counts["without_frequency"] += 1
                    continue

                result = await self.scorer.score(word.word, word)
                if update_store:
                    self.db.update_word_difficulty(word.id, result.score, result.to_dict())
                counts["successful"] += 1
                if result.uses_fallback:
                    summary.fallback += 1
                    counts["without_frequency"] += 1
                else:
                    counts["with_frequency"] += 1
            except Exception as e:
                log.error("Error processing word %d (%s): %s", word.id, word.word, e)
                counts["errors"] += 1

        summary.successful += counts["successful"]
        summary.skipped += counts["skipped"]
        summary.errors += counts["errors"]
        return counts
