"""CLI entry point for vocab-pipeline.

Usage:
  python -m vocab_pipeline serve [--port PORT] [--host HOST]
  python -m vocab_pipeline import FILE.json
  python -m vocab_pipeline score --start N --end M [--batch N] [--dry-run] [--force]
  python -m vocab_pipeline score-word WORD
  python -m vocab_pipeline check-word WORD
  python -m vocab_pipeline assign --start YYYY-MM-DD [--end YYYY-MM-DD] [--per-day N] [--force]
  python -m vocab_pipeline assign --next-day [--per-day N]
  python -m vocab_pipeline state [--reset]
  python -m vocab_pipeline stats
"""
from __future__ import annotations

import asyncio
import logging
import sys
from datetime import date
from pathlib import Path


def main():
    logging.basicConfig(level=logging.INFO, format="%(name)s | %(message)s")
    args = sys.argv[1:]
    command = args[0] if args else "stats"

    if command == "serve":
        _serve(args[1:])
    elif command == "import":
        _import_lexicon(args[1:])
    elif command == "score":
        _score(args[1:])
    elif command == "score-word":
        _score_word(args[1:])
    elif command == "check-word":
        _check_word(args[1:])
    elif command == "assign":
        _assign(args[1:])
    elif command == "state":
        _state(args[1:])
    elif command == "stats":
        _stats()
    else:
        print(f"Unknown command: {command}")
        print("Commands: serve, import, score, score-word, check-word, assign, state, stats")
        sys.exit(1)


def _parse_flag(args: list[str], name: str, default: str | None) -> str | None:
    for i, a in enumerate(args):
        if a == name and i + 1 < len(args):
            return args[i + 1]
    return default


def _open():
    from vocab_pipeline.config import load_settings
    from vocab_pipeline.db import Database

    settings = load_settings()
    return settings, Database(settings.db_full_path)


def _serve(args: list[str]):
    import uvicorn

    port = int(_parse_flag(args, "--port", "8766"))
    host = _parse_flag(args, "--host", "127.0.0.1")
    print(f"Starting Vocab Pipeline API on http://{host}:{port}")
    print("Press Ctrl+C to stop\n")
    uvicorn.run(
        "vocab_pipeline.app:app",
        host=host,
        port=port,
        reload=False,
        timeout_graceful_shutdown=5,
    )


def _import_lexicon(args: list[str]):
    from vocab_pipeline.parsers.lexicon_parser import parse_lexicon_file

    if not args:
        print("Usage: import FILE.json")
        sys.exit(1)
    path = Path(args[0])
    if not path.exists():
        print(f"File not found: {path}")
        sys.exit(1)

    settings, db = _open()
    print(f"  Parsing: {path.name}")
    words = parse_lexicon_file(path)
    n = db.import_words(words)
    print(f"    {n} words")
    print(f"\nTotal in DB: {db.get_word_count()} words")
    db.close()


def _score(args: list[str]):
    from vocab_pipeline.pipeline import build_pipeline

    settings, db = _open()
    start = int(_parse_flag(args, "--start", "1"))
    end = int(_parse_flag(args, "--end", str(db.get_max_word_id())))
    batch_size = int(_parse_flag(args, "--batch", str(settings.batch_size)))
    dry_run = "--dry-run" in args
    force = "--force" in args

    if db.get_word_count() == 0:
        print("No words in database. Run 'import' first.")
        db.close()
        sys.exit(1)

    pipeline = build_pipeline(settings, db)
    mode = "DRY RUN" if dry_run else "LIVE"
    print(f"Scoring IDs {start}-{end} in batches of {batch_size} ({mode})")
    if force:
        print("Ignoring processing state; existing scores will be overwritten")

    summary = asyncio.run(pipeline.batch.process_range(
        start, end, batch_size=batch_size, update_store=not dry_run, skip_processed=not force,
    ))

    print()
    print(f"Processed:  {summary.processed} in {summary.batches} batches")
    print(f"Successful: {summary.successful} ({summary.fallback} using fallback)")
    print(f"Skipped:    {summary.skipped}")
    print(f"Errors:     {summary.errors}")
    for failure in summary.batch_failures:
        print(f"  FAILED: {failure}")
    if dry_run:
        print("(dry run: no DB changes made)")
    db.close()
    if summary.batch_failures:
        sys.exit(1)


def _score_word(args: list[str]):
    from vocab_pipeline.pipeline import build_pipeline

    if not args:
        print("Usage: score-word WORD")
        sys.exit(1)
    word = args[0]
    settings, db = _open()
    pipeline = build_pipeline(settings, db)
    result = asyncio.run(pipeline.scorer.score(word))

    print(f"{word}")
    print("=" * 40)
    print(f"Score:       {result.score:.3f}")
    print(f"Level:       {result.level}")
    print(f"Confidence:  {result.confidence:.2f}")
    print(f"Sources:     {', '.join(result.sources) or 'none'}")
    for name, value in result.components.to_dict().items():
        print(f"  {name:<11s} {value:.3f}")
    if result.uses_fallback:
        print("(no frequency data; estimated from length and syllables)")
    db.close()


def _check_word(args: list[str]):
    from vocab_pipeline.config import load_settings
    from vocab_pipeline.filters import is_eligible_advanced
    from vocab_pipeline.pipeline import make_provider

    if not args:
        print("Usage: check-word WORD")
        sys.exit(1)
    word = args[0]
    settings = load_settings()
    result = asyncio.run(is_eligible_advanced(
        word,
        make_provider(settings),
        frequency_threshold=settings.frequency_threshold,
        max_expected_frequency=settings.max_expected_frequency,
    ))
    if result.valid:
        print(f"{word}: eligible")
    else:
        print(f"{word}: rejected ({result.reason})")


def _assign(args: list[str]):
    from vocab_pipeline.assignment import InsufficientWordsError
    from vocab_pipeline.pipeline import build_pipeline

    settings, db = _open()
    pipeline = build_pipeline(settings, db)
    per_day = int(_parse_flag(args, "--per-day", str(settings.words_per_day)))
    force = "--force" in args

    try:
        if "--next-day" in args:
            result = asyncio.run(pipeline.assigner.assign_next_day(per_day, settings.tier_distribution))
        else:
            start_arg = _parse_flag(args, "--start", None)
            if start_arg is None:
                print("Usage: assign --start YYYY-MM-DD [--end YYYY-MM-DD] [--per-day N] [--force]")
                sys.exit(1)
            start = date.fromisoformat(start_arg)
            end = date.fromisoformat(_parse_flag(args, "--end", start_arg))
            result = asyncio.run(pipeline.assigner.assign_for_range(
                start, end, per_day, settings.tier_distribution, force=force,
            ))
    except InsufficientWordsError as e:
        print(f"Assignment failed: {e}")
        db.close()
        sys.exit(1)

    if result.existing:
        print(f"Words already assigned for {result.start_date} to {result.end_date}:")
    else:
        print(f"Assigned {result.assigned_count} words for {result.start_date} to {result.end_date}")
        if result.skipped_dates:
            print(f"Kept existing assignments for: {', '.join(result.skipped_dates)}")
    for a in result.assignments:
        print(f"  {a.date}  {a.difficulty_level:<12s} {a.word}")
    db.close()


def _state(args: list[str]):
    from vocab_pipeline.config import load_settings
    from vocab_pipeline.state import load_state, reset_state

    settings = load_settings()
    path = settings.state_full_path
    if "--reset" in args:
        reset_state(path)
        print("Processing state reset.")
        return

    state = load_state(path)
    print("Processing State")
    print("=" * 40)
    ranges = ", ".join(f"{a}-{b}" for a, b in state.processed_ranges) or "none"
    print(f"Processed ranges:   {ranges}")
    print(f"Last processed ID:  {state.last_processed_id}")
    print(f"Total processed:    {state.total_processed}")
    print(f"With frequency:     {state.with_frequency}")
    print(f"Without frequency:  {state.without_frequency}")
    print(f"Started:            {state.started_at or '-'}")
    print(f"Updated:            {state.updated_at or '-'}")


def _stats():
    settings, db = _open()
    stats = db.get_stats()

    print("Vocab Pipeline Stats")
    print("=" * 40)
    print(f"Total words:        {stats['total_words']}")
    print(f"Scored words:       {stats['scored_words']}")
    print(f"Unscored words:     {stats['unscored_words']}")
    for tier, n in stats["tiers"].items():
        print(f"  {tier:<17s} {n}")
    print(f"Daily assignments:  {stats['daily_assignments']}")
    print(f"Stored distractors: {stats['stored_distractors']}")
    db.close()


if __name__ == "__main__":
    main()
