from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from banyan.models.badge import Badge
from banyan.models.card import Card
from banyan.models.progress import LearnerProgress, ProgressEvent, SessionStats


class StudySessionCreate(BaseModel):
    learner_id: str
    deck_id: str
    size: int | None = Field(default=None, ge=1, le=50)
    seed: int | None = None  # fixes the shuffle, mainly for reproducible tests


class StudySession(BaseModel):
    id: str
    learner_id: str
    deck_id: str
    card_ids: list[str]
    started_at: str
    expires_at: str | None = None
    completed_at: str | None = None


class StudySessionDetail(BaseModel):
    session: StudySession | None  # None when the deck has no cards
    cards: list[Card]


class SessionSummary(BaseModel):
    session_id: str
    stats: SessionStats
    xp_gained: int
    accuracy: int  # whole percent correct among answered (non-skip) cards
    progress: LearnerProgress
    events: list[ProgressEvent]
    new_badges: list[Badge] = Field(default_factory=list)
    difficulty_suggestion: Literal["increase", "decrease", "maintain"] = "maintain"
