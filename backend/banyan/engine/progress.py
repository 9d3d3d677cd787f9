"""
Session-level progress: XP, level, tree growth, streaks and streak-vault credits.

``apply_session_outcome`` is not idempotent. It must run exactly once per
completed session; the session runner guards this with a completion flag.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from banyan.models.progress import (
    LearnerProgress,
    ProgressEvent,
    ProgressEventType,
    ProgressUpdate,
    SessionStats,
)

XP_PER_CORRECT = 10
XP_PER_INCORRECT = 2   # effort credit; skips earn nothing
XP_PER_LEVEL = 100
XP_PER_TREE_LEVEL = 50
VAULT_LEVEL_INTERVAL = 5


def session_xp(stats: SessionStats) -> int:
    return stats.correct * XP_PER_CORRECT + stats.incorrect * XP_PER_INCORRECT


def level_for_xp(xp: int) -> int:
    return xp // XP_PER_LEVEL + 1


def tree_level_for_xp(xp: int) -> int:
    return xp // XP_PER_TREE_LEVEL + 1


def next_streak(streak_days: int, last_study_date: date | None, today: date) -> int:
    if last_study_date is None:
        return 1
    if last_study_date == today:
        return streak_days or 1
    if last_study_date == today - timedelta(days=1):
        return (streak_days or 0) + 1
    return 1


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    return date.fromisoformat(value[:10])


def apply_session_outcome(
    prior: LearnerProgress,
    stats: SessionStats,
    today: date | None = None,
) -> ProgressUpdate:
    """Fold one finished session into the learner's progress record."""
    today = today or datetime.now(timezone.utc).date()

    xp_gained = session_xp(stats)
    new_xp = prior.xp + xp_gained
    new_level = level_for_xp(new_xp)

    events: list[ProgressEvent] = []
    vault = prior.streak_vault
    if new_level > prior.level:
        events.append(ProgressEvent(type=ProgressEventType.LEVEL_UP, level=new_level))
        if new_level % VAULT_LEVEL_INTERVAL == 0:
            events.append(
                ProgressEvent(type=ProgressEventType.STREAK_VAULT_EARNED, level=new_level)
            )
            vault += 1

    progress = prior.model_copy(
        update={
            "xp": new_xp,
            "level": max(prior.level, new_level),
            "tree_level": max(prior.tree_level, tree_level_for_xp(new_xp)),
            "streak_days": next_streak(
                prior.streak_days, _parse_date(prior.last_study_date), today
            ),
            "last_study_date": today.isoformat(),
            "total_cards_reviewed": prior.total_cards_reviewed + stats.answered,
            "streak_vault": vault,
        }
    )
    return ProgressUpdate(progress=progress, xp_gained=xp_gained, events=events)
