import asyncio
from datetime import date, datetime, timezone

import aiosqlite
import pytest

from banyan.config import settings
from banyan.db.sqlite import init_sqlite
from banyan.models.card import Card, CardType

FIXED_NOW = datetime(2026, 3, 10, 12, 0, 0, tzinfo=timezone.utc)
FIXED_TODAY = date(2026, 3, 10)


def make_card(card_id: str, topic: str | None = None, deck_id: str = "deck-1", **kw) -> Card:
    fields = {
        "id": card_id,
        "deck_id": deck_id,
        "question": f"Question {card_id}?",
        "answer": f"Answer {card_id}",
        "card_type": CardType.FLASHCARD,
        "topic": topic,
        "created_at": "2026-03-01 09:00:00",
        "updated_at": "2026-03-01 09:00:00",
    }
    fields.update(kw)
    return Card(**fields)


@pytest.fixture
def card_factory():
    return make_card


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    """A fresh, initialized SQLite database in a temp directory."""
    monkeypatch.setattr(settings, "banyan_data_dir", tmp_path)
    asyncio.run(init_sqlite(tmp_path))
    return tmp_path / settings.sqlite_filename


@pytest.fixture
def run_db(db_path):
    """Run ``fn(db)`` on its own connection and return the result."""

    def _run(fn):
        async def _main():
            async with aiosqlite.connect(db_path) as db:
                db.row_factory = aiosqlite.Row
                await db.execute("PRAGMA foreign_keys=ON")
                return await fn(db)

        return asyncio.run(_main())

    return _run


@pytest.fixture
def client(tmp_path, monkeypatch):
    from fastapi.testclient import TestClient

    from banyan import create_app

    monkeypatch.setattr(settings, "banyan_data_dir", tmp_path)
    with TestClient(create_app()) as c:
        yield c
