from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class RequirementType(str, Enum):
    DECKS_CREATED = "decks_created"
    STREAK_DAYS = "streak_days"
    HARD_CORRECT = "hard_correct"
    XP = "xp"
    DECK_ACCURACY = "deck_accuracy"


class BadgeRequirement(BaseModel):
    type: str  # RequirementType value; unknown strings are tolerated and never met
    value: int


class BadgeCreate(BaseModel):
    name: str
    description: str = ""
    icon: str = ""
    requirement: BadgeRequirement


class Badge(BaseModel):
    id: str
    name: str
    description: str = ""
    icon: str = ""
    requirement: BadgeRequirement
    created_at: str


class EarnedBadge(BaseModel):
    badge: Badge
    earned_at: str
