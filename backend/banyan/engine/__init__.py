"""Pure review engine: selection, mastery, SM-2 scheduling and progress."""

from banyan.engine.badges import evaluate_badges
from banyan.engine.difficulty import suggest_difficulty_adjustment
from banyan.engine.mastery import update_mastery
from banyan.engine.progress import apply_session_outcome
from banyan.engine.scheduler import SchedulerError, schedule_next
from banyan.engine.selector import select_session

__all__ = [
    "SchedulerError",
    "apply_session_outcome",
    "evaluate_badges",
    "schedule_next",
    "select_session",
    "suggest_difficulty_adjustment",
    "update_mastery",
]
