from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from banyan.models.card import CardSchedule
from banyan.models.mastery import ConceptMastery


class ReviewOutcome(str, Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    SKIP = "skip"


class ReviewEvent(BaseModel):
    """Append-only record of one answer (or skip) inside a session."""

    id: str
    learner_id: str
    card_id: str
    deck_id: str
    session_id: str | None = None
    result: ReviewOutcome
    time_spent_seconds: int = 0
    created_at: str


class AnswerRequest(BaseModel):
    card_id: str
    result: ReviewOutcome
    time_spent_seconds: int = Field(default=0, ge=0)
    event_id: str | None = None  # client-generated id, lets offline replays dedupe


class AnswerResult(BaseModel):
    event: ReviewEvent
    mastery: ConceptMastery | None = None
    schedule: CardSchedule | None = None
