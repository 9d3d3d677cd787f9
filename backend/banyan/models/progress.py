from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class LearnerProgress(BaseModel):
    learner_id: str
    xp: int = 0
    level: int = 1
    tree_level: int = 1          # growth indicator, floor(xp / 50) + 1
    streak_days: int = 0
    last_study_date: str | None = None  # ISO date (YYYY-MM-DD), UTC
    total_cards_reviewed: int = 0
    streak_vault: int = 0        # banked streak-protection credits
    updated_at: str | None = None


class SessionStats(BaseModel):
    correct: int = Field(default=0, ge=0)
    incorrect: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)

    @property
    def answered(self) -> int:
        return self.correct + self.incorrect

    @property
    def total(self) -> int:
        return self.correct + self.incorrect + self.skipped


class ProgressEventType(str, Enum):
    LEVEL_UP = "level_up"
    STREAK_VAULT_EARNED = "streak_vault_earned"


class ProgressEvent(BaseModel):
    type: ProgressEventType
    level: int


class ProgressUpdate(BaseModel):
    progress: LearnerProgress
    xp_gained: int
    events: list[ProgressEvent] = Field(default_factory=list)

    @property
    def leveled_up(self) -> bool:
        return any(e.type == ProgressEventType.LEVEL_UP for e in self.events)
