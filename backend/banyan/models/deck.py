from __future__ import annotations

from pydantic import BaseModel, Field

from banyan.models.card import CardCreate


class DeckCreate(BaseModel):
    learner_id: str
    title: str
    description: str = ""
    language: str = "en"
    cards: list[CardCreate] = Field(default_factory=list)


class Deck(BaseModel):
    id: str
    learner_id: str
    title: str
    description: str
    language: str
    card_count: int
    created_at: str
    updated_at: str
