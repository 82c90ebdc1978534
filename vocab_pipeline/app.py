"""FastAPI application exposing scoring, assignment and the daily quiz."""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date

logging.basicConfig(level=logging.INFO, format="%(name)s | %(message)s")

from fastapi import FastAPI, HTTPException, Request

from vocab_pipeline.assignment import InsufficientWordsError
from vocab_pipeline.config import Settings, load_settings, save_settings, validate_distribution
from vocab_pipeline.db import Database
from vocab_pipeline.filters import is_eligible_advanced
from vocab_pipeline.pipeline import Pipeline, build_pipeline, make_provider
from vocab_pipeline.providers.base import LexicalProvider
from vocab_pipeline.state import load_state, reset_state

app = FastAPI(title="Vocab Pipeline")
log = logging.getLogger("vocab_pipeline.api")

# Global state (initialized on startup)
_db: Database | None = None
_settings: Settings | None = None
_provider: LexicalProvider | None = None


def get_db() -> Database:
    assert _db is not None
    return _db


def get_settings() -> Settings:
    assert _settings is not None
    return _settings


def get_provider() -> LexicalProvider:
    global _provider
    if _provider is None:
        _provider = make_provider(get_settings())
    return _provider


def get_pipeline() -> Pipeline:
    return build_pipeline(get_settings(), get_db(), get_provider())


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise HTTPException(400, f"Invalid date: {value!r}")


@app.on_event("startup")
async def startup():
    global _db, _settings, _provider
    if _db is not None:
        return  # Already initialized (e.g. by tests)
    _settings = load_settings()
    _db = Database(_settings.db_full_path)
    _provider = make_provider(_settings)


@app.on_event("shutdown")
async def shutdown():
    if _db:
        _db.close()


# ── API: Stats & state ────────────────────────────────────────────────────

@app.get("/api/stats")
async def api_stats():
    return get_db().get_stats()


@app.get("/api/state")
async def api_state():
    return load_state(get_settings().state_full_path).to_dict()


@app.post("/api/state/reset")
async def api_state_reset():
    return reset_state(get_settings().state_full_path).to_dict()


# ── API: Scoring ──────────────────────────────────────────────────────────

@app.post("/api/score")
async def api_score(request: Request):
    body = await request.json()
    s = get_settings()
    try:
        start = int(body["start"])
        end = int(body["end"])
    except (KeyError, TypeError, ValueError):
        raise HTTPException(400, "start and end IDs are required")

    pipeline = get_pipeline()
    try:
        summary = await pipeline.batch.process_range(
            start,
            end,
            batch_size=int(body.get("batch_size", s.batch_size)),
            update_store=not body.get("dry_run", False),
            skip_processed=not body.get("force", False),
        )
    except ValueError as e:
        raise HTTPException(400, str(e))
    return summary.to_dict()


@app.get("/api/words/{word}/difficulty")
async def api_word_difficulty(word: str):
    db = get_db()
    stored = db.get_word(word)
    result = await get_pipeline().scorer.score(word, stored)
    return {
        "word": word,
        "stored": {
            "difficulty_score": stored.difficulty_score,
            "difficulty_level": stored.difficulty_level,
        } if stored else None,
        "computed": result.to_dict(),
    }


@app.get("/api/words/{word}/eligibility")
async def api_word_eligibility(word: str):
    s = get_settings()
    result = await is_eligible_advanced(
        word,
        get_provider(),
        frequency_threshold=s.frequency_threshold,
        max_expected_frequency=s.max_expected_frequency,
    )
    return {"word": word, "valid": result.valid, "reason": result.reason}


# ── API: Daily assignments ────────────────────────────────────────────────

@app.post("/api/assign")
async def api_assign(request: Request):
    body = await request.json()
    s = get_settings()
    start = _parse_date(body.get("start"))
    end = _parse_date(body.get("end", body.get("start")))

    try:
        result = await get_pipeline().assigner.assign_for_range(
            start,
            end,
            words_per_day=int(body.get("words_per_day", s.words_per_day)),
            distribution=body.get("distribution", s.tier_distribution),
            force=bool(body.get("force", False)),
        )
    except InsufficientWordsError as e:
        log.warning("Assignment failed: %s", e)
        raise HTTPException(409, {
            "error": str(e), "tier": e.tier, "needed": e.needed, "available": e.available,
        })
    except ValueError as e:
        raise HTTPException(400, str(e))

    return {
        "assigned_count": result.assigned_count,
        "date_range": {"start": result.start_date, "end": result.end_date},
        "existing": result.existing,
        "skipped_dates": result.skipped_dates,
        "filtered_out": result.filtered_out,
        "assignments": [
            {
                "date": a.date,
                "word": a.word,
                "difficulty_level": a.difficulty_level,
                "difficulty_score": a.difficulty_score,
            }
            for a in result.assignments
        ],
    }


@app.get("/api/daily/{day}")
async def api_daily(day: str):
    d = _parse_date(day)
    rows = get_db().get_daily_words(d.isoformat())
    return {
        "date": d.isoformat(),
        "words": [
            {
                "word": r["word"],
                "difficulty_level": r["difficulty_level"],
                "difficulty_score": r["difficulty_score"],
                "options": r["options"],
            }
            for r in rows
        ],
    }


@app.post("/api/quiz/answer")
async def api_quiz_answer(request: Request):
    body = await request.json()
    d = _parse_date(body.get("date"))
    try:
        outcome = get_db().record_quiz_answer(
            d.isoformat(), body["word"], int(body["selected_index"])
        )
    except (KeyError, TypeError):
        raise HTTPException(400, "word and selected_index are required")
    except ValueError as e:
        raise HTTPException(400, str(e))
    if outcome is None:
        raise HTTPException(404, "No quiz for that word and date")
    return outcome


# ── API: Settings ─────────────────────────────────────────────────────────

@app.get("/api/settings")
async def api_get_settings():
    return get_settings().to_dict()


@app.put("/api/settings")
async def api_update_settings(request: Request):
    body = await request.json()
    s = get_settings()
    known = {f.name for f in Settings.__dataclass_fields__.values()}
    updates = {k: v for k, v in body.items() if k in known}
    try:
        candidate = replace(s, **updates)
        candidate.weight_profile()
        validate_distribution(candidate.tier_distribution)
    except ValueError as e:
        raise HTTPException(400, str(e))
    for k, v in updates.items():
        setattr(s, k, v)
    save_settings(s)
    return s.to_dict()
