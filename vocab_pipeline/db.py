from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from vocab_pipeline.difficulty import difficulty_level
from vocab_pipeline.models import TIERS, DailyAssignment, Sense, Word

SCHEMA = """
CREATE TABLE IF NOT EXISTS words (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    word TEXT NOT NULL UNIQUE,
    pos TEXT,
    frequency REAL,
    syllable_count INTEGER,
    difficulty_score REAL,
    difficulty_level TEXT,
    metadata_json TEXT DEFAULT '{}',
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS senses (
    word_id INTEGER NOT NULL REFERENCES words(id),
    sense_number INTEGER NOT NULL,
    definition TEXT NOT NULL,
    pos TEXT,
    domain TEXT,
    PRIMARY KEY (word_id, sense_number)
);

CREATE TABLE IF NOT EXISTS examples (
    word_id INTEGER NOT NULL REFERENCES words(id),
    example TEXT NOT NULL,
    PRIMARY KEY (word_id, example)
);

CREATE TABLE IF NOT EXISTS relations (
    word_id INTEGER NOT NULL REFERENCES words(id),
    related_word TEXT NOT NULL,
    relation TEXT NOT NULL,
    PRIMARY KEY (word_id, related_word, relation)
);

CREATE TABLE IF NOT EXISTS daily_words (
    date TEXT NOT NULL,
    difficulty_level TEXT NOT NULL,
    slot INTEGER NOT NULL DEFAULT 0,
    word TEXT NOT NULL,
    difficulty_score REAL,
    options_json TEXT,
    correct_index INTEGER,
    created_at TEXT NOT NULL,
    PRIMARY KEY (date, difficulty_level, slot),
    UNIQUE (date, word)
);

CREATE TABLE IF NOT EXISTS word_distractors (
    word TEXT NOT NULL,
    distractor TEXT NOT NULL,
    correct_definition TEXT NOT NULL,
    part_of_speech TEXT,
    difficulty TEXT NOT NULL,
    source TEXT NOT NULL,
    quality_score REAL NOT NULL DEFAULT 0.8,
    usage_count INTEGER NOT NULL DEFAULT 0,
    success_count INTEGER NOT NULL DEFAULT 0,
    selection_count INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    last_used TEXT,
    PRIMARY KEY (word, distractor)
);

CREATE INDEX IF NOT EXISTS idx_daily_words_word ON daily_words(word);
CREATE INDEX IF NOT EXISTS idx_distractors_lookup
    ON word_distractors(word, difficulty, quality_score DESC);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Database:
    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self._init_schema()

    def _init_schema(self) -> None:
        self.conn.executescript(SCHEMA)
        self.conn.commit()

    def close(self) -> None:
        self.conn.close()

    # ── Import ────────────────────────────────────────────────────────────

    def import_words(self, words: list[Word]) -> int:
        """Upsert words by text, replacing their senses, examples and relations.

        Difficulty columns are left untouched; scoring owns them.
        """
        count = 0
        for w in words:
            self.conn.execute(
                "INSERT INTO words (word, pos, frequency, syllable_count, updated_at) "
                "VALUES (?, ?, ?, ?, ?) "
                "ON CONFLICT(word) DO UPDATE SET pos=excluded.pos, "
                "frequency=excluded.frequency, syllable_count=excluded.syllable_count, "
                "updated_at=excluded.updated_at",
                (w.word, w.pos, w.frequency, w.syllable_count, _now()),
            )
            word_id = self.conn.execute(
                "SELECT id FROM words WHERE word = ?", (w.word,)
            ).fetchone()[0]
            self.conn.execute("DELETE FROM senses WHERE word_id = ?", (word_id,))
            self.conn.execute("DELETE FROM examples WHERE word_id = ?", (word_id,))
            self.conn.execute("DELETE FROM relations WHERE word_id = ?", (word_id,))
            for i, s in enumerate(w.senses, 1):
                self.conn.execute(
                    "INSERT INTO senses (word_id, sense_number, definition, pos, domain) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (word_id, i, s.definition, s.pos or w.pos, s.domain),
                )
            for ex in w.examples:
                self.conn.execute(
                    "INSERT OR IGNORE INTO examples (word_id, example) VALUES (?, ?)",
                    (word_id, ex),
                )
            for rel, related in (("syn", w.synonyms), ("ant", w.antonyms)):
                for r in related:
                    self.conn.execute(
                        "INSERT OR IGNORE INTO relations (word_id, related_word, relation) "
                        "VALUES (?, ?, ?)",
                        (word_id, r, rel),
                    )
            w.id = word_id
            count += 1
        self.conn.commit()
        return count

    # ── Words ─────────────────────────────────────────────────────────────

    def _hydrate(self, row: sqlite3.Row) -> Word:
        word_id = row["id"]
        senses = [
            Sense(definition=r["definition"], pos=r["pos"] or "", domain=r["domain"])
            for r in self.conn.execute(
                "SELECT * FROM senses WHERE word_id = ? ORDER BY sense_number", (word_id,)
            ).fetchall()
        ]
        examples = [
            r[0] for r in self.conn.execute(
                "SELECT example FROM examples WHERE word_id = ?", (word_id,)
            ).fetchall()
        ]
        relations = self.conn.execute(
            "SELECT related_word, relation FROM relations WHERE word_id = ? "
            "ORDER BY rowid",
            (word_id,),
        ).fetchall()
        return Word(
            id=word_id,
            word=row["word"],
            pos=row["pos"] or "",
            senses=senses,
            examples=examples,
            synonyms=[r["related_word"] for r in relations if r["relation"] == "syn"],
            antonyms=[r["related_word"] for r in relations if r["relation"] == "ant"],
            frequency=row["frequency"],
            syllable_count=row["syllable_count"],
            difficulty_score=row["difficulty_score"],
            difficulty_level=row["difficulty_level"],
            metadata=json.loads(row["metadata_json"] or "{}"),
        )

    def get_word(self, word: str) -> Word | None:
        row = self.conn.execute(
            "SELECT * FROM words WHERE word = ?", (word,)
        ).fetchone()
        if row is None:
            row = self.conn.execute(
                "SELECT * FROM words WHERE LOWER(word) = LOWER(?)", (word,)
            ).fetchone()
        return self._hydrate(row) if row else None

    def get_word_by_id(self, word_id: int) -> Word | None:
        row = self.conn.execute(
            "SELECT * FROM words WHERE id = ?", (word_id,)
        ).fetchone()
        return self._hydrate(row) if row else None

    def get_words_in_range(self, start_id: int, end_id: int, limit: int) -> list[Word]:
        """Up to *limit* words with start_id <= id <= end_id, ascending by id."""
        rows = self.conn.execute(
            "SELECT * FROM words WHERE id >= ? AND id <= ? ORDER BY id ASC LIMIT ?",
            (start_id, end_id, limit),
        ).fetchall()
        return [self._hydrate(r) for r in rows]

    def get_word_count(self) -> int:
        row = self.conn.execute("SELECT COUNT(*) FROM words").fetchone()
        return row[0]

    def get_max_word_id(self) -> int:
        row = self.conn.execute("SELECT COALESCE(MAX(id), 0) FROM words").fetchone()
        return row[0]

    def update_word_difficulty(self, word_id: int, score: float, metadata: dict) -> None:
        """Overwrite score, tier and metadata. The tier is always derived from *score*."""
        self.conn.execute(
            "UPDATE words SET difficulty_score=?, difficulty_level=?, metadata_json=?, "
            "updated_at=? WHERE id=?",
            (score, difficulty_level(score), json.dumps(metadata), _now(), word_id),
        )
        self.conn.commit()

    def clear_word_difficulty(self, word_id: int, metadata: dict) -> None:
        self.conn.execute(
            "UPDATE words SET difficulty_score=NULL, difficulty_level=NULL, "
            "metadata_json=?, updated_at=? WHERE id=?",
            (json.dumps(metadata), _now(), word_id),
        )
        self.conn.commit()

    @staticmethod
    def _date_filter(
        column: str, since_date: str, ignore_dates: list[str]
    ) -> tuple[str, list[str]]:
        clause = f"{column} >= ?"
        params = [since_date]
        if ignore_dates:
            clause += f" AND {column} NOT IN ({', '.join('?' * len(ignore_dates))})"
            params.extend(ignore_dates)
        return clause, params

    def get_words_not_used_since(
        self, since_date: str, ignore_dates: list[str] | tuple[str, ...] = ()
    ) -> list[Word]:
        """Words with no daily assignment on or after *since_date*.

        Assignments on *ignore_dates* do not count as uses.
        """
        clause, params = self._date_filter("date", since_date, list(ignore_dates))
        rows = self.conn.execute(
            "SELECT * FROM words WHERE word NOT IN "
            f"(SELECT word FROM daily_words WHERE {clause}) ORDER BY id",
            params,
        ).fetchall()
        return [self._hydrate(r) for r in rows]

    def get_words_used_since(
        self, since_date: str, ignore_dates: list[str] | tuple[str, ...] = ()
    ) -> list[tuple[Word, str]]:
        """Words assigned on or after *since_date* with their latest date, least recent first."""
        clause, params = self._date_filter("d.date", since_date, list(ignore_dates))
        rows = self.conn.execute(
            "SELECT w.*, MAX(d.date) AS last_used FROM words w "
            "JOIN daily_words d ON d.word = w.word "
            f"WHERE {clause} "
            "GROUP BY w.id ORDER BY last_used ASC, w.id ASC",
            params,
        ).fetchall()
        return [(self._hydrate(r), r["last_used"]) for r in rows]

    def get_tier_counts(self) -> dict[str, int]:
        counts = {tier: 0 for tier in TIERS}
        rows = self.conn.execute(
            "SELECT difficulty_level, COUNT(*) AS n FROM words "
            "WHERE difficulty_level IS NOT NULL GROUP BY difficulty_level"
        ).fetchall()
        for r in rows:
            counts[r["difficulty_level"]] = r["n"]
        return counts

    # ── Daily assignments ─────────────────────────────────────────────────

    def get_daily_words(self, date: str) -> list[dict]:
        rows = self.conn.execute(
            "SELECT * FROM daily_words WHERE date = ? ORDER BY difficulty_level, slot",
            (date,),
        ).fetchall()
        result = []
        for r in rows:
            d = dict(r)
            d["options"] = json.loads(d.pop("options_json") or "[]")
            result.append(d)
        return result

    def save_daily_assignment(self, assignment: DailyAssignment, slot: int) -> None:
        """Upsert on (date, tier, slot)."""
        quiz = assignment.quiz
        self.conn.execute(
            "INSERT INTO daily_words (date, difficulty_level, slot, word, "
            "difficulty_score, options_json, correct_index, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(date, difficulty_level, slot) DO UPDATE SET "
            "word=excluded.word, difficulty_score=excluded.difficulty_score, "
            "options_json=excluded.options_json, correct_index=excluded.correct_index",
            (
                assignment.date,
                assignment.difficulty_level,
                slot,
                assignment.word,
                assignment.difficulty_score,
                json.dumps(quiz.options) if quiz else None,
                quiz.correct_index if quiz else None,
                _now(),
            ),
        )
        self.conn.commit()

    def delete_daily_words(self, date: str) -> int:
        cur = self.conn.execute("DELETE FROM daily_words WHERE date = ?", (date,))
        self.conn.commit()
        return cur.rowcount

    def get_assignment_count(self) -> int:
        row = self.conn.execute("SELECT COUNT(*) FROM daily_words").fetchone()
        return row[0]

    # ── Distractors ───────────────────────────────────────────────────────

    def get_stored_distractors(
        self, word: str, part_of_speech: str | None, difficulty: str, limit: int = 5
    ) -> list[dict]:
        """Best stored distractors first: highest quality, then least used."""
        if part_of_speech:
            rows = self.conn.execute(
                "SELECT * FROM word_distractors "
                "WHERE word = ? AND difficulty = ? AND part_of_speech = ? "
                "ORDER BY quality_score DESC, usage_count ASC LIMIT ?",
                (word, difficulty, part_of_speech, limit),
            ).fetchall()
        else:
            rows = self.conn.execute(
                "SELECT * FROM word_distractors "
                "WHERE word = ? AND difficulty = ? "
                "ORDER BY quality_score DESC, usage_count ASC LIMIT ?",
                (word, difficulty, limit),
            ).fetchall()
        return [dict(r) for r in rows]

    def get_distractor(self, word: str, distractor: str) -> dict | None:
        row = self.conn.execute(
            "SELECT * FROM word_distractors WHERE word = ? AND distractor = ?",
            (word, distractor),
        ).fetchone()
        return dict(row) if row else None

    def save_distractor(
        self,
        word: str,
        correct_definition: str,
        distractor: str,
        part_of_speech: str | None,
        difficulty: str,
        source: str,
        quality_score: float,
    ) -> None:
        """Upsert on (word, distractor); an existing record keeps its best quality score."""
        self.conn.execute(
            "INSERT INTO word_distractors (word, distractor, correct_definition, "
            "part_of_speech, difficulty, source, quality_score, usage_count, "
            "created_at, last_used) VALUES (?, ?, ?, ?, ?, ?, ?, 1, ?, ?) "
            "ON CONFLICT(word, distractor) DO UPDATE SET "
            "usage_count=usage_count+1, "
            "quality_score=MAX(quality_score, excluded.quality_score), "
            "last_used=excluded.last_used",
            (word, distractor, correct_definition, part_of_speech, difficulty,
             source, quality_score, _now(), _now()),
        )
        self.conn.commit()

    def increment_distractor_usage(self, word: str, distractor: str) -> None:
        self.conn.execute(
            "UPDATE word_distractors SET usage_count=usage_count+1, last_used=? "
            "WHERE word=? AND distractor=?",
            (_now(), word, distractor),
        )
        self.conn.commit()

    def record_quiz_answer(self, date: str, word: str, chosen_index: int) -> dict | None:
        """Record an answer to a daily quiz and update the shown distractors' counters.

        A correct answer bumps success_count on every distractor shown; a wrong
        answer bumps selection_count on the distractor that was picked.
        """
        row = self.conn.execute(
            "SELECT * FROM daily_words WHERE date = ? AND word = ?", (date, word)
        ).fetchone()
        if row is None or row["options_json"] is None:
            return None
        options = json.loads(row["options_json"])
        correct_index = row["correct_index"]
        if not 0 <= chosen_index < len(options):
            raise ValueError(f"chosen_index out of range: {chosen_index}")
        correct = chosen_index == correct_index
        if correct:
            for i, text in enumerate(options):
                if i == correct_index:
                    continue
                self.conn.execute(
                    "UPDATE word_distractors SET success_count=success_count+1 "
                    "WHERE word=? AND distractor=?",
                    (word, text),
                )
        else:
            self.conn.execute(
                "UPDATE word_distractors SET selection_count=selection_count+1 "
                "WHERE word=? AND distractor=?",
                (word, options[chosen_index]),
            )
        self.conn.commit()
        return {
            "correct": correct,
            "correct_index": correct_index,
            "correct_option": options[correct_index],
        }

    def get_distractor_count(self) -> int:
        row = self.conn.execute("SELECT COUNT(*) FROM word_distractors").fetchone()
        return row[0]

    # ── Stats ─────────────────────────────────────────────────────────────

    def get_stats(self) -> dict:
        total = self.get_word_count()
        tiers = self.get_tier_counts()
        scored = sum(tiers.values())
        return {
            "total_words": total,
            "scored_words": scored,
            "unscored_words": total - scored,
            "tiers": tiers,
            "daily_assignments": self.get_assignment_count(),
            "stored_distractors": self.get_distractor_count(),
        }
