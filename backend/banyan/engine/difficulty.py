from __future__ import annotations

from typing import Literal

MIN_ANSWERS = 5
RAISE_AT = 0.85
LOWER_AT = 0.60

Adjustment = Literal["increase", "decrease", "maintain"]


def suggest_difficulty_adjustment(correct_count: int, total_count: int) -> Adjustment:
    """Suggest moving the learner's difficulty band based on session accuracy."""
    if total_count < MIN_ANSWERS:
        return "maintain"

    accuracy = correct_count / total_count
    if accuracy >= RAISE_AT:
        return "increase"
    if accuracy <= LOWER_AT:
        return "decrease"
    return "maintain"
