from __future__ import annotations

from datetime import datetime, timezone

from banyan.models.mastery import ConceptMastery
from banyan.models.review import ReviewOutcome

# --- Mastery deltas (score range 0-100) ---
CORRECT_DELTA = 9
INCORRECT_DELTA = -7
MASTERY_MIN = 0.0
MASTERY_MAX = 100.0


def clamp_mastery(value: float) -> float:
    return max(MASTERY_MIN, min(MASTERY_MAX, value))


def update_mastery(
    learner_id: str,
    deck_id: str,
    concept: str,
    current: ConceptMastery | None,
    outcome: ReviewOutcome | str,
    now: datetime | None = None,
) -> ConceptMastery | None:
    """
    Apply one answer to a learner's mastery of ``concept``.

    A missing record starts from mastery 0 and is created by the first
    non-skip answer. Skips return ``current`` untouched (None stays None).
    """
    outcome = ReviewOutcome(outcome)
    if outcome == ReviewOutcome.SKIP:
        return current

    base = current or ConceptMastery(learner_id=learner_id, deck_id=deck_id, name=concept)
    correct = outcome == ReviewOutcome.CORRECT
    delta = CORRECT_DELTA if correct else INCORRECT_DELTA
    now = now or datetime.now(timezone.utc)

    return base.model_copy(
        update={
            "mastery": clamp_mastery(base.mastery + delta),
            "seen_count": base.seen_count + 1,
            "correct_count": base.correct_count + (1 if correct else 0),
            "last_seen_at": now.astimezone(timezone.utc).isoformat(),
        }
    )
