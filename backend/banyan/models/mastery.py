from __future__ import annotations

from pydantic import BaseModel, Field


class ConceptMastery(BaseModel):
    """Proficiency of one learner on one concept of one deck."""

    learner_id: str
    deck_id: str
    name: str
    mastery: float = Field(default=0.0, ge=0.0, le=100.0)
    seen_count: int = 0
    correct_count: int = 0
    last_seen_at: str | None = None


class MasteryList(BaseModel):
    items: list[ConceptMastery]
    total: int
