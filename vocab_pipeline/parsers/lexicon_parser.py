"""Parse a JSON lexicon export into Word objects.

The file holds a list of entries (or ``{"words": [...]}``)::

    {"word": "paradox", "pos": "noun", "frequency": 3.1, "syllable_count": 3,
     "senses": [{"definition": "...", "pos": "noun", "domain": "logic"}],
     "examples": ["..."], "synonyms": ["..."], "antonyms": ["..."]}

Senses may also be plain definition strings.
"""
from __future__ import annotations

import json
from pathlib import Path

from vocab_pipeline.models import Sense, Word


def _parse_sense(raw: dict | str, default_pos: str) -> Sense:
    if isinstance(raw, str):
        return Sense(definition=raw.strip(), pos=default_pos)
    return Sense(
        definition=str(raw.get("definition", "")).strip(),
        pos=raw.get("pos") or default_pos,
        domain=raw.get("domain") or None,
    )


def parse_entry(raw: dict) -> Word:
    word = str(raw.get("word", "")).strip()
    if not word:
        raise ValueError(f"Lexicon entry without a word: {raw!r}")
    pos = raw.get("pos") or ""
    senses = [_parse_sense(s, pos) for s in raw.get("senses", [])]
    senses = [s for s in senses if s.definition]
    if not pos and senses:
        pos = senses[0].pos
    frequency = raw.get("frequency")
    syllables = raw.get("syllable_count")
    return Word(
        word=word,
        pos=pos,
        senses=senses,
        examples=list(raw.get("examples", [])),
        synonyms=list(raw.get("synonyms", [])),
        antonyms=list(raw.get("antonyms", [])),
        frequency=float(frequency) if frequency is not None else None,
        syllable_count=int(syllables) if syllables is not None else None,
    )


def parse_lexicon_file(path: Path) -> list[Word]:
    data = json.loads(path.read_text())
    if isinstance(data, dict):
        data = data.get("words", [])
    return [parse_entry(entry) for entry in data]
