from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


DEFAULT_EASINESS = 2.5
MIN_EASINESS = 1.3


class CardType(str, Enum):
    FLASHCARD = "flashcard"
    MCQ = "mcq"


class CardCreate(BaseModel):
    """A generated card as handed over by the deck generator."""

    question: str
    answer: str
    card_type: CardType = CardType.FLASHCARD
    options: list[str] | None = None
    topic: str | None = None     # concept label; None = untagged
    explanation: str | None = None


class CardSchedule(BaseModel):
    easiness_factor: float = Field(default=DEFAULT_EASINESS, ge=MIN_EASINESS)
    interval_days: int = 1
    review_count: int = 0        # consecutive successful repetitions (SM-2 n)
    last_reviewed_at: str | None = None  # ISO-8601 UTC timestamp
    next_review_at: str | None = None    # None = due immediately


class Card(BaseModel):
    id: str
    deck_id: str
    question: str
    answer: str
    card_type: CardType = CardType.FLASHCARD
    options: list[str] | None = None
    topic: str | None = None
    explanation: str | None = None
    easiness_factor: float = DEFAULT_EASINESS
    interval_days: int = 1
    review_count: int = 0
    last_reviewed_at: str | None = None
    next_review_at: str | None = None
    created_at: str
    updated_at: str

    @property
    def schedule(self) -> CardSchedule:
        return CardSchedule(
            easiness_factor=self.easiness_factor,
            interval_days=self.interval_days,
            review_count=self.review_count,
            last_reviewed_at=self.last_reviewed_at,
            next_review_at=self.next_review_at,
        )


class CardList(BaseModel):
    items: list[Card]
    total: int
