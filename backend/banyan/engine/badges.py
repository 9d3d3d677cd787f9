from __future__ import annotations

import logging
from collections.abc import Collection, Sequence

from banyan.models.badge import Badge, RequirementType
from banyan.models.progress import LearnerProgress

logger = logging.getLogger(__name__)


def requirement_met(badge: Badge, progress: LearnerProgress, decks_created: int) -> bool:
    req = badge.requirement
    try:
        kind = RequirementType(req.type)
    except ValueError:
        logger.warning("Unknown badge requirement %r on badge %s", req.type, badge.id)
        return False

    if kind == RequirementType.XP:
        return progress.xp >= req.value
    if kind == RequirementType.STREAK_DAYS:
        return progress.streak_days >= req.value
    if kind == RequirementType.DECKS_CREATED:
        return decks_created >= req.value
    # hard_correct / deck_accuracy have no tracked counters yet
    return False


def evaluate_badges(
    progress: LearnerProgress,
    badges: Sequence[Badge],
    earned_ids: Collection[str],
    decks_created: int = 0,
) -> list[Badge]:
    """Return the badges newly earned by ``progress``, in catalog order."""
    return [
        b
        for b in badges
        if b.id not in earned_ids and requirement_met(b, progress, decks_created)
    ]
