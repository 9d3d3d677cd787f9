"""
SM-2 review scheduler.

Answers are mapped onto SM-2 quality scores (0-5):
  correct   -> 4  (good recall)
  incorrect -> 1  (hard / incorrect recall)
  skip      -> never scheduled

The card's easiness factor is nudged by the standard SM-2 formula and floored at
1.3; the interval follows the classic 1, 6, interval * EF progression and
resets to one day on any failed recall.
"""
from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone

from banyan.models.card import DEFAULT_EASINESS, MIN_EASINESS, CardSchedule
from banyan.models.review import ReviewOutcome

_OUTCOME_QUALITY = {
    ReviewOutcome.CORRECT: 4,
    ReviewOutcome.INCORRECT: 1,
}
PASSING_QUALITY = 3


class SchedulerError(ValueError):
    """Raised when an outcome cannot be scheduled (skips, unknown values)."""


def outcome_quality(outcome: ReviewOutcome | str) -> int:
    try:
        outcome = ReviewOutcome(outcome)
    except ValueError as e:
        raise SchedulerError(f"unknown review outcome: {outcome!r}") from e
    if outcome == ReviewOutcome.SKIP:
        raise SchedulerError("skipped cards are not rescheduled")
    return _OUTCOME_QUALITY[outcome]


def next_easiness(easiness: float, quality: int) -> float:
    miss = 5 - quality
    return max(MIN_EASINESS, easiness + (0.1 - miss * (0.08 + miss * 0.02)))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _iso(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).isoformat()


def compute_sm2(
    quality: int,
    repetitions: int,
    interval: int,
    easiness: float,
) -> tuple[int, int, float]:
    """
    Compute SM-2 values for one review.

    Returns (new_repetitions, new_interval_days, new_easiness).
    """
    new_easiness = next_easiness(easiness, quality)

    if quality < PASSING_QUALITY:
        return 0, 1, new_easiness

    new_reps = repetitions + 1
    if new_reps == 1:
        new_interval = 1
    elif new_reps == 2:
        new_interval = 6
    else:
        new_interval = _round_half_up(interval * new_easiness)
    return new_reps, new_interval, new_easiness


def schedule_next(
    schedule: CardSchedule | None,
    outcome: ReviewOutcome | str,
    now: datetime | None = None,
) -> CardSchedule:
    """Return the card's scheduling state after answering it with ``outcome``.

    ``schedule`` is the card's prior state; None means a fresh card. The result
    depends only on the inputs, so a fixed ``now`` makes it deterministic.
    """
    quality = outcome_quality(outcome)
    now = now or datetime.now(timezone.utc)
    prior = schedule or CardSchedule()

    reps, interval, easiness = compute_sm2(
        quality,
        prior.review_count or 0,
        prior.interval_days or 1,
        prior.easiness_factor or DEFAULT_EASINESS,
    )

    return CardSchedule(
        easiness_factor=easiness,
        interval_days=interval,
        review_count=reps,
        last_reviewed_at=_iso(now),
        next_review_at=_iso(now + timedelta(days=interval)),
    )
