import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from banyan.config import settings
from banyan.models.badge import Badge, BadgeCreate, EarnedBadge
from banyan.models.card import Card, CardCreate, CardSchedule
from banyan.models.deck import Deck, DeckCreate
from banyan.models.mastery import ConceptMastery
from banyan.models.progress import LearnerProgress
from banyan.models.review import ReviewEvent
from banyan.models.session import StudySession

_db_path: Path | None = None

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA foreign_keys=ON;

CREATE TABLE IF NOT EXISTS decks (
    id          TEXT PRIMARY KEY,
    learner_id  TEXT NOT NULL,
    title       TEXT NOT NULL,
    description TEXT DEFAULT '',
    language    TEXT DEFAULT 'en',
    card_count  INTEGER DEFAULT 0,
    created_at  TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at  TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_decks_learner ON decks(learner_id);

CREATE TABLE IF NOT EXISTS cards (
    id               TEXT PRIMARY KEY,
    deck_id          TEXT NOT NULL REFERENCES decks(id) ON DELETE CASCADE,
    question         TEXT NOT NULL,
    answer           TEXT NOT NULL,
    card_type        TEXT NOT NULL DEFAULT 'flashcard',
    options          TEXT,
    topic            TEXT,
    explanation      TEXT,
    easiness_factor  REAL DEFAULT 2.5,
    interval_days    INTEGER DEFAULT 1,
    review_count     INTEGER DEFAULT 0,
    last_reviewed_at TEXT,
    next_review_at   TEXT,
    created_at       TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at       TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_cards_review ON cards(deck_id, next_review_at);

CREATE TABLE IF NOT EXISTS concepts (
    learner_id    TEXT NOT NULL,
    deck_id       TEXT NOT NULL REFERENCES decks(id) ON DELETE CASCADE,
    name          TEXT NOT NULL,
    mastery       REAL DEFAULT 0.0,
    seen_count    INTEGER DEFAULT 0,
    correct_count INTEGER DEFAULT 0,
    last_seen_at  TEXT,
    created_at    TEXT NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (learner_id, deck_id, name)
);

CREATE TABLE IF NOT EXISTS reviews (
    id                 TEXT PRIMARY KEY,
    learner_id         TEXT NOT NULL,
    card_id            TEXT NOT NULL,
    deck_id            TEXT NOT NULL,
    session_id         TEXT,
    result             TEXT NOT NULL,
    time_spent_seconds INTEGER DEFAULT 0,
    created_at         TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_reviews_session ON reviews(session_id);
CREATE UNIQUE INDEX IF NOT EXISTS idx_reviews_session_card ON reviews(session_id, card_id);
CREATE INDEX IF NOT EXISTS idx_reviews_learner ON reviews(learner_id, created_at);

CREATE TABLE IF NOT EXISTS user_progress (
    learner_id           TEXT PRIMARY KEY,
    xp                   INTEGER DEFAULT 0,
    level                INTEGER DEFAULT 1,
    tree_level           INTEGER DEFAULT 1,
    streak_days          INTEGER DEFAULT 0,
    last_study_date      TEXT,
    total_cards_reviewed INTEGER DEFAULT 0,
    streak_vault         INTEGER DEFAULT 0,
    updated_at           TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS study_sessions (
    id           TEXT PRIMARY KEY,
    learner_id   TEXT NOT NULL,
    deck_id      TEXT NOT NULL REFERENCES decks(id) ON DELETE CASCADE,
    card_ids     TEXT NOT NULL DEFAULT '[]',
    started_at   TEXT NOT NULL,
    expires_at   TEXT,
    completed_at TEXT
);

CREATE TABLE IF NOT EXISTS badges (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL UNIQUE,
    description TEXT DEFAULT '',
    icon        TEXT DEFAULT '',
    requirement TEXT NOT NULL,
    created_at  TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS user_badges (
    learner_id TEXT NOT NULL,
    badge_id   TEXT NOT NULL REFERENCES badges(id) ON DELETE CASCADE,
    earned_at  TEXT NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (learner_id, badge_id)
);

CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);
INSERT OR IGNORE INTO schema_version(version) VALUES (1);
"""


async def init_sqlite(data_dir: Path) -> None:
    global _db_path
    _db_path = data_dir / settings.sqlite_filename
    async with aiosqlite.connect(_db_path) as db:
        await db.executescript(SCHEMA_SQL)
        await db.commit()


async def get_db() -> AsyncIterator[aiosqlite.Connection]:
    assert _db_path is not None, "SQLite not initialized"
    async with aiosqlite.connect(_db_path) as db:
        db.row_factory = aiosqlite.Row
        await db.execute("PRAGMA foreign_keys=ON")
        yield db


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


# --- Decks ---


def _row_to_deck(row: aiosqlite.Row) -> Deck:
    return Deck(**dict(row))


async def create_deck(db: aiosqlite.Connection, deck: DeckCreate) -> Deck:
    """Insert a deck together with its generated cards."""
    deck_id = str(uuid.uuid4())
    now = _now()
    await db.execute(
        """INSERT INTO decks
           (id, learner_id, title, description, language, card_count, created_at, updated_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            deck_id,
            deck.learner_id,
            deck.title,
            deck.description,
            deck.language,
            len(deck.cards),
            now,
            now,
        ),
    )
    await insert_cards(db, deck_id, deck.cards, commit=False)
    await db.commit()
    return await get_deck(db, deck_id)  # type: ignore[return-value]


async def get_deck(db: aiosqlite.Connection, deck_id: str) -> Deck | None:
    cursor = await db.execute("SELECT * FROM decks WHERE id = ?", (deck_id,))
    row = await cursor.fetchone()
    return _row_to_deck(row) if row else None


async def count_decks_for_learner(db: aiosqlite.Connection, learner_id: str) -> int:
    cursor = await db.execute(
        "SELECT COUNT(*) FROM decks WHERE learner_id = ?", (learner_id,)
    )
    row = await cursor.fetchone()
    return row[0] if row else 0


# --- Cards ---


def _row_to_card(row: aiosqlite.Row) -> Card:
    d = dict(row)
    d["options"] = json.loads(d["options"]) if d["options"] else None
    return Card(**d)


async def insert_cards(
    db: aiosqlite.Connection,
    deck_id: str,
    cards: list[CardCreate],
    commit: bool = True,
) -> list[str]:
    """Insert generated cards into a deck. Returns the new card IDs."""
    now = _now()
    card_ids: list[str] = []
    for c in cards:
        card_id = str(uuid.uuid4())
        card_ids.append(card_id)
        await db.execute(
            """INSERT INTO cards
               (id, deck_id, question, answer, card_type, options, topic,
                explanation, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                card_id,
                deck_id,
                c.question,
                c.answer,
                c.card_type.value,
                json.dumps(c.options) if c.options is not None else None,
                c.topic,
                c.explanation,
                now,
                now,
            ),
        )
    if commit:
        await db.commit()
    return card_ids


async def list_cards_for_deck(db: aiosqlite.Connection, deck_id: str) -> list[Card]:
    """All cards of a deck, never-reviewed first, then earliest due."""
    cursor = await db.execute(
        """SELECT * FROM cards WHERE deck_id = ?
           ORDER BY next_review_at IS NOT NULL, next_review_at ASC, created_at ASC""",
        (deck_id,),
    )
    rows = await cursor.fetchall()
    return [_row_to_card(r) for r in rows]


async def get_card(db: aiosqlite.Connection, card_id: str) -> Card | None:
    cursor = await db.execute("SELECT * FROM cards WHERE id = ?", (card_id,))
    row = await cursor.fetchone()
    return _row_to_card(row) if row else None


async def get_cards(db: aiosqlite.Connection, card_ids: list[str]) -> list[Card]:
    """Fetch cards by ID, preserving the order of ``card_ids``."""
    if not card_ids:
        return []
    placeholders = ", ".join("?" for _ in card_ids)
    cursor = await db.execute(
        f"SELECT * FROM cards WHERE id IN ({placeholders})",  # noqa: S608
        card_ids,
    )
    by_id = {c.id: c for c in (_row_to_card(r) for r in await cursor.fetchall())}
    return [by_id[cid] for cid in card_ids if cid in by_id]


async def update_card_schedule(
    db: aiosqlite.Connection,
    card_id: str,
    schedule: CardSchedule,
    commit: bool = True,
) -> Card | None:
    now = _now()
    await db.execute(
        """UPDATE cards
           SET easiness_factor = ?, interval_days = ?, review_count = ?,
               last_reviewed_at = ?, next_review_at = ?, updated_at = ?
           WHERE id = ?""",
        (
            schedule.easiness_factor,
            schedule.interval_days,
            schedule.review_count,
            schedule.last_reviewed_at,
            schedule.next_review_at,
            now,
            card_id,
        ),
    )
    if commit:
        await db.commit()
    return await get_card(db, card_id)


# --- Concept mastery ---


def _row_to_mastery(row: aiosqlite.Row) -> ConceptMastery:
    d = dict(row)
    d.pop("created_at", None)
    return ConceptMastery(**d)


async def get_mastery(
    db: aiosqlite.Connection, learner_id: str, deck_id: str
) -> dict[str, ConceptMastery]:
    """Concept name -> mastery record for one learner and deck."""
    cursor = await db.execute(
        "SELECT * FROM concepts WHERE learner_id = ? AND deck_id = ? ORDER BY name",
        (learner_id, deck_id),
    )
    rows = await cursor.fetchall()
    return {r["name"]: _row_to_mastery(r) for r in rows}


async def get_concept_mastery(
    db: aiosqlite.Connection, learner_id: str, deck_id: str, name: str
) -> ConceptMastery | None:
    cursor = await db.execute(
        "SELECT * FROM concepts WHERE learner_id = ? AND deck_id = ? AND name = ?",
        (learner_id, deck_id, name),
    )
    row = await cursor.fetchone()
    return _row_to_mastery(row) if row else None


async def upsert_mastery(
    db: aiosqlite.Connection, record: ConceptMastery, commit: bool = True
) -> None:
    await db.execute(
        """INSERT INTO concepts
           (learner_id, deck_id, name, mastery, seen_count, correct_count, last_seen_at, created_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?)
           ON CONFLICT(learner_id, deck_id, name) DO UPDATE SET
               mastery = excluded.mastery,
               seen_count = excluded.seen_count,
               correct_count = excluded.correct_count,
               last_seen_at = excluded.last_seen_at""",
        (
            record.learner_id,
            record.deck_id,
            record.name,
            record.mastery,
            record.seen_count,
            record.correct_count,
            record.last_seen_at,
            _now(),
        ),
    )
    if commit:
        await db.commit()


# --- Review events ---


def _row_to_review(row: aiosqlite.Row) -> ReviewEvent:
    return ReviewEvent(**dict(row))


async def append_review_event(
    db: aiosqlite.Connection, event: ReviewEvent, commit: bool = True
) -> bool:
    """
    Append a review event.

    Returns False when nothing was stored: the event ID already exists, or the
    session already holds an answer for the card.
    """
    cursor = await db.execute(
        """INSERT OR IGNORE INTO reviews
           (id, learner_id, card_id, deck_id, session_id, result,
            time_spent_seconds, created_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            event.id,
            event.learner_id,
            event.card_id,
            event.deck_id,
            event.session_id,
            event.result.value,
            event.time_spent_seconds,
            event.created_at,
        ),
    )
    if commit:
        await db.commit()
    return (cursor.rowcount or 0) > 0


async def get_review_event(db: aiosqlite.Connection, event_id: str) -> ReviewEvent | None:
    cursor = await db.execute("SELECT * FROM reviews WHERE id = ?", (event_id,))
    row = await cursor.fetchone()
    return _row_to_review(row) if row else None


async def list_session_reviews(
    db: aiosqlite.Connection, session_id: str
) -> list[ReviewEvent]:
    cursor = await db.execute(
        "SELECT * FROM reviews WHERE session_id = ? ORDER BY created_at ASC",
        (session_id,),
    )
    rows = await cursor.fetchall()
    return [_row_to_review(r) for r in rows]


# --- Learner progress ---


async def get_progress(db: aiosqlite.Connection, learner_id: str) -> LearnerProgress:
    """Return the learner's progress; a learner with no row starts from zero."""
    cursor = await db.execute(
        "SELECT * FROM user_progress WHERE learner_id = ?", (learner_id,)
    )
    row = await cursor.fetchone()
    if row is None:
        return LearnerProgress(learner_id=learner_id)
    return LearnerProgress(**dict(row))


async def update_progress(
    db: aiosqlite.Connection, progress: LearnerProgress
) -> LearnerProgress:
    now = _now()
    await db.execute(
        """INSERT INTO user_progress
           (learner_id, xp, level, tree_level, streak_days, last_study_date,
            total_cards_reviewed, streak_vault, updated_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
           ON CONFLICT(learner_id) DO UPDATE SET
               xp = excluded.xp,
               level = excluded.level,
               tree_level = excluded.tree_level,
               streak_days = excluded.streak_days,
               last_study_date = excluded.last_study_date,
               total_cards_reviewed = excluded.total_cards_reviewed,
               streak_vault = excluded.streak_vault,
               updated_at = excluded.updated_at""",
        (
            progress.learner_id,
            progress.xp,
            progress.level,
            progress.tree_level,
            progress.streak_days,
            progress.last_study_date,
            progress.total_cards_reviewed,
            progress.streak_vault,
            now,
        ),
    )
    await db.commit()
    return await get_progress(db, progress.learner_id)


# --- Study sessions ---


def _row_to_session(row: aiosqlite.Row) -> StudySession:
    d = dict(row)
    d["card_ids"] = json.loads(d["card_ids"] or "[]")
    return StudySession(**d)


async def create_study_session(
    db: aiosqlite.Connection,
    learner_id: str,
    deck_id: str,
    card_ids: list[str],
    started_at: str,
    expires_at: str | None = None,
) -> StudySession:
    session_id = str(uuid.uuid4())
    await db.execute(
        """INSERT INTO study_sessions
           (id, learner_id, deck_id, card_ids, started_at, expires_at)
           VALUES (?, ?, ?, ?, ?, ?)""",
        (session_id, learner_id, deck_id, json.dumps(card_ids), started_at, expires_at),
    )
    await db.commit()
    return await get_study_session(db, session_id)  # type: ignore[return-value]


async def get_study_session(
    db: aiosqlite.Connection, session_id: str
) -> StudySession | None:
    cursor = await db.execute(
        "SELECT * FROM study_sessions WHERE id = ?", (session_id,)
    )
    row = await cursor.fetchone()
    return _row_to_session(row) if row else None


async def mark_session_completed(
    db: aiosqlite.Connection, session_id: str, completed_at: str
) -> bool:
    """
    Claim the completion flag of a session.

    Only the first caller gets True. Does not commit: the caller commits the
    claim together with the progress update it guards.
    """
    cursor = await db.execute(
        "UPDATE study_sessions SET completed_at = ? WHERE id = ? AND completed_at IS NULL",
        (completed_at, session_id),
    )
    return (cursor.rowcount or 0) > 0


# --- Badges ---


def _row_to_badge(row: aiosqlite.Row) -> Badge:
    d = dict(row)
    d["requirement"] = json.loads(d["requirement"])
    return Badge(**d)


async def create_badge(db: aiosqlite.Connection, badge: BadgeCreate) -> Badge:
    badge_id = str(uuid.uuid4())
    await db.execute(
        """INSERT INTO badges (id, name, description, icon, requirement, created_at)
           VALUES (?, ?, ?, ?, ?, ?)""",
        (
            badge_id,
            badge.name,
            badge.description,
            badge.icon,
            badge.requirement.model_dump_json(),
            _now(),
        ),
    )
    await db.commit()
    cursor = await db.execute("SELECT * FROM badges WHERE id = ?", (badge_id,))
    return _row_to_badge(await cursor.fetchone())


async def list_badges(db: aiosqlite.Connection) -> list[Badge]:
    cursor = await db.execute("SELECT * FROM badges ORDER BY created_at ASC, name ASC")
    rows = await cursor.fetchall()
    return [_row_to_badge(r) for r in rows]


async def list_earned_badge_ids(db: aiosqlite.Connection, learner_id: str) -> set[str]:
    cursor = await db.execute(
        "SELECT badge_id FROM user_badges WHERE learner_id = ?", (learner_id,)
    )
    rows = await cursor.fetchall()
    return {row[0] for row in rows}


async def award_badge(db: aiosqlite.Connection, learner_id: str, badge_id: str) -> bool:
    cursor = await db.execute(
        "INSERT OR IGNORE INTO user_badges (learner_id, badge_id, earned_at) VALUES (?, ?, ?)",
        (learner_id, badge_id, _now()),
    )
    await db.commit()
    return (cursor.rowcount or 0) > 0


async def list_learner_badges(
    db: aiosqlite.Connection, learner_id: str
) -> list[EarnedBadge]:
    cursor = await db.execute(
        """SELECT b.*, ub.earned_at AS earned_at
           FROM user_badges ub
           JOIN badges b ON b.id = ub.badge_id
           WHERE ub.learner_id = ?
           ORDER BY ub.earned_at DESC""",
        (learner_id,),
    )
    rows = await cursor.fetchall()
    out: list[EarnedBadge] = []
    for row in rows:
        d = dict(row)
        earned_at = d.pop("earned_at")
        d["requirement"] = json.loads(d["requirement"])
        out.append(EarnedBadge(badge=Badge(**d), earned_at=earned_at))
    return out
