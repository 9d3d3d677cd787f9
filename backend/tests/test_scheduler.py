"""
Tests for the SM-2 review scheduler.

Run: python -m pytest backend/tests/test_scheduler.py -v
"""
import random
from datetime import timedelta

import pytest

from banyan.engine.scheduler import (
    SchedulerError,
    compute_sm2,
    next_easiness,
    outcome_quality,
    schedule_next,
)
from banyan.models.card import MIN_EASINESS, CardSchedule

from conftest import FIXED_NOW


class TestQualityMapping:

    def test_correct_is_good_recall(self):
        assert outcome_quality("correct") == 4

    def test_incorrect_is_hard_recall(self):
        assert outcome_quality("incorrect") == 1

    def test_skip_is_never_scheduled(self):
        with pytest.raises(SchedulerError):
            outcome_quality("skip")

    def test_unknown_outcome(self):
        with pytest.raises(SchedulerError):
            schedule_next(CardSchedule(), "maybe", FIXED_NOW)


class TestEasiness:

    def test_good_recall_keeps_easiness(self):
        assert next_easiness(2.5, 4) == pytest.approx(2.5)

    def test_hard_recall_lowers_easiness(self):
        assert next_easiness(2.5, 1) == pytest.approx(1.96)

    def test_floor(self):
        assert next_easiness(1.35, 1) == MIN_EASINESS

    def test_floor_holds_for_any_outcome_sequence(self):
        rng = random.Random(7)
        schedule = CardSchedule()
        for _ in range(300):
            outcome = rng.choice(["correct", "incorrect", "incorrect"])
            schedule = schedule_next(schedule, outcome, FIXED_NOW)
            assert schedule.easiness_factor >= 1.3


class TestIntervals:

    def test_three_correct_from_fresh_card(self):
        schedule = CardSchedule()
        intervals = []
        for _ in range(3):
            schedule = schedule_next(schedule, "correct", FIXED_NOW)
            intervals.append(schedule.interval_days)

        ef = 2.5
        for _ in range(3):
            ef = next_easiness(ef, 4)
        assert intervals[:2] == [1, 6]
        assert intervals[2] == int(6 * ef + 0.5) == 15
        assert schedule.review_count == 3

    def test_incorrect_resets_regardless_of_history(self):
        seasoned = CardSchedule(easiness_factor=2.8, interval_days=40, review_count=6)
        result = schedule_next(seasoned, "incorrect", FIXED_NOW)
        assert result.interval_days == 1
        assert result.review_count == 0
        assert result.easiness_factor == pytest.approx(2.8 - 0.54)

    def test_correct_after_reset_restarts_progression(self):
        schedule = CardSchedule(easiness_factor=2.5, interval_days=15, review_count=3)
        schedule = schedule_next(schedule, "incorrect", FIXED_NOW)
        schedule = schedule_next(schedule, "correct", FIXED_NOW)
        assert (schedule.interval_days, schedule.review_count) == (1, 1)

    def test_interval_rounds_half_up(self):
        # 5 * 2.5 = 12.5 -> 13
        assert compute_sm2(4, 2, 5, 2.5) == (3, 13, pytest.approx(2.5))


class TestScheduleNext:

    def test_timestamps(self):
        result = schedule_next(CardSchedule(review_count=1, interval_days=1), "correct", FIXED_NOW)
        assert result.interval_days == 6
        assert result.last_reviewed_at == FIXED_NOW.isoformat()
        assert result.next_review_at == (FIXED_NOW + timedelta(days=6)).isoformat()

    def test_missing_schedule_is_a_fresh_card(self):
        assert schedule_next(None, "correct", FIXED_NOW) == schedule_next(
            CardSchedule(), "correct", FIXED_NOW
        )

    def test_deterministic_for_fixed_now(self):
        prior = CardSchedule(easiness_factor=2.1, interval_days=6, review_count=2)
        assert schedule_next(prior, "correct", FIXED_NOW) == schedule_next(prior, "correct", FIXED_NOW)
