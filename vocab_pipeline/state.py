"""Resumable progress for difficulty scoring: which word-ID ranges are done."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path

log = logging.getLogger("vocab_pipeline.state")

Range = tuple[int, int]


def merge_ranges(ranges: list[Range] | tuple[Range, ...]) -> list[Range]:
    """Sorted, non-overlapping closed intervals; adjacent ranges are joined."""
    merged: list[Range] = []
    for start, end in sorted((min(a, b), max(a, b)) for a, b in ranges):
        if merged and start <= merged[-1][1] + 1:
            last_start, last_end = merged[-1]
            merged[-1] = (last_start, max(last_end, end))
        else:
            merged.append((start, end))
    return merged


def add_range(ranges: list[Range] | tuple[Range, ...], start: int, end: int) -> list[Range]:
    return merge_ranges([*ranges, (start, end)])


def is_processed(ranges: list[Range] | tuple[Range, ...], word_id: int) -> bool:
    return any(start <= word_id <= end for start, end in ranges)


def unprocessed_ranges(
    ranges: list[Range] | tuple[Range, ...], start: int, end: int
) -> list[Range]:
    """The parts of [start, end] not covered by *ranges*."""
    gaps: list[Range] = []
    cursor = start
    for r_start, r_end in merge_ranges(ranges):
        if r_end < cursor:
            continue
        if r_start > end:
            break
        if r_start > cursor:
            gaps.append((cursor, r_start - 1))
        cursor = max(cursor, r_end + 1)
        if cursor > end:
            break
    if cursor <= end:
        gaps.append((cursor, end))
    return gaps


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ProcessingState:
    processed_ranges: tuple[Range, ...] = ()
    last_processed_id: int = 0
    total_processed: int = 0
    with_frequency: int = 0
    without_frequency: int = 0
    started_at: str | None = None
    updated_at: str | None = None

    def with_batch(
        self, start_id: int, end_id: int, processed: int, with_frequency: int, without_frequency: int
    ) -> ProcessingState:
        now = _now()
        return replace(
            self,
            processed_ranges=tuple(add_range(self.processed_ranges, start_id, end_id)),
            last_processed_id=max(self.last_processed_id, end_id),
            total_processed=self.total_processed + processed,
            with_frequency=self.with_frequency + with_frequency,
            without_frequency=self.without_frequency + without_frequency,
            started_at=self.started_at or now,
            updated_at=now,
        )

    def to_dict(self) -> dict:
        return {
            "processed_ranges": [list(r) for r in self.processed_ranges],
            "last_processed_id": self.last_processed_id,
            "total_processed": self.total_processed,
            "with_frequency": self.with_frequency,
            "without_frequency": self.without_frequency,
            "started_at": self.started_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, raw: dict) -> ProcessingState:
        ranges = [(int(a), int(b)) for a, b in raw.get("processed_ranges", [])]
        return cls(
            processed_ranges=tuple(merge_ranges(ranges)),
            last_processed_id=int(raw.get("last_processed_id", 0)),
            total_processed=int(raw.get("total_processed", 0)),
            with_frequency=int(raw.get("with_frequency", 0)),
            without_frequency=int(raw.get("without_frequency", 0)),
            started_at=raw.get("started_at"),
            updated_at=raw.get("updated_at"),
        )


def load_state(path: Path) -> ProcessingState:
    if not path.exists():
        return ProcessingState()
    return ProcessingState.from_dict(json.loads(path.read_text()))


def save_state(state: ProcessingState, path: Path) -> None:
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(state.to_dict(), indent=2) + "\n")
    tmp.replace(path)


def reset_state(path: Path) -> ProcessingState:
    if path.exists():
        path.unlink()
        log.info("Processing state reset (%s removed)", path)
    return ProcessingState()
