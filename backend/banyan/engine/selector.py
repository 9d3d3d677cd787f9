"""
Adaptive session selection.

Cards are grouped by the learner's mastery of their concept:
  weak   mastery <  40   (untagged cards count as 0)
  medium 40 <= mastery <= 70
  strong mastery >  70

A session targets 60% weak, 20% medium and 20% strong cards. When a band
runs short, its shortfall moves to the next band (weak -> medium -> strong)
and anything still missing is drawn from the remaining pool. The batch is
shuffled once more before it is returned.

If mastery data is missing or the weighted path fails, the session falls back
to the first ``target_size`` cards of the pool. Selection never raises.
"""
from __future__ import annotations

import logging
import random
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from banyan.models.card import Card
from banyan.models.mastery import ConceptMastery

logger = logging.getLogger(__name__)

WEAK_BELOW = 40.0
STRONG_ABOVE = 70.0
DEFAULT_SESSION_SIZE = 10

# Process-wide generator; callers inject their own for reproducible shuffles.
_rng = random.Random()

MasteryLookup = Mapping[str, float] | Mapping[str, ConceptMastery]


@dataclass
class MasteryBands:
    weak: list[Card] = field(default_factory=list)
    medium: list[Card] = field(default_factory=list)
    strong: list[Card] = field(default_factory=list)


def _score(masteries: MasteryLookup, topic: str | None) -> float:
    if not topic:
        return 0.0
    value = masteries.get(topic)
    if value is None:
        return 0.0
    if isinstance(value, ConceptMastery):
        return value.mastery
    return float(value)


def partition_by_mastery(cards: Sequence[Card], masteries: MasteryLookup) -> MasteryBands:
    bands = MasteryBands()
    for card in cards:
        score = _score(masteries, card.topic)
        if score < WEAK_BELOW:
            bands.weak.append(card)
        elif score <= STRONG_ABOVE:
            bands.medium.append(card)
        else:
            bands.strong.append(card)
    return bands


def band_targets(size: int) -> tuple[int, int, int]:
    """(weak, medium, strong) counts for a session of ``size`` cards."""
    weak = min(size, -(-size * 3 // 5))            # ceil(60%)
    medium = min(size - weak, -(-size // 5))       # ceil(20%)
    return weak, medium, size - weak - medium


def _shuffled(cards: Sequence[Card], rng: random.Random) -> list[Card]:
    return rng.sample(list(cards), len(cards))


def weighted_selection(
    cards: Sequence[Card],
    masteries: MasteryLookup,
    target_size: int,
    rng: random.Random,
) -> list[Card]:
    bands = partition_by_mastery(cards, masteries)
    targets = band_targets(target_size)

    picked: list[Card] = []
    shortfall = 0
    for band, target in zip((bands.weak, bands.medium, bands.strong), targets):
        wanted = target + shortfall
        taken = _shuffled(band, rng)[:wanted]
        picked.extend(taken)
        shortfall = wanted - len(taken)

    if shortfall > 0:
        chosen = {c.id for c in picked}
        remaining = [c for c in cards if c.id not in chosen]
        picked.extend(_shuffled(remaining, rng)[: target_size - len(picked)])

    rng.shuffle(picked)
    return picked[:target_size]


def unweighted_selection(cards: Sequence[Card], target_size: int) -> list[Card]:
    return list(cards[:target_size])


def select_session(
    cards: Sequence[Card],
    masteries: MasteryLookup | None,
    target_size: int = DEFAULT_SESSION_SIZE,
    rng: random.Random | None = None,
) -> list[Card]:
    """Pick up to ``target_size`` cards for one review session.

    ``masteries`` maps concept name to a mastery score or record. Passing None
    marks the mastery data as unavailable and selects unweighted.
    """
    if not cards or target_size <= 0:
        return []
    if masteries is None:
        return unweighted_selection(cards, target_size)

    try:
        return weighted_selection(cards, masteries, target_size, rng or _rng)
    except Exception:
        logger.warning(
            "Weighted selection failed for %d cards, using unweighted fallback",
            len(cards),
            exc_info=True,
        )
        return unweighted_selection(cards, target_size)
