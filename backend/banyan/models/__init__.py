from banyan.models.badge import (
    Badge,
    BadgeCreate,
    BadgeRequirement,
    EarnedBadge,
    RequirementType,
)
from banyan.models.card import (
    DEFAULT_EASINESS,
    MIN_EASINESS,
    Card,
    CardCreate,
    CardList,
    CardSchedule,
    CardType,
)
from banyan.models.deck import Deck, DeckCreate
from banyan.models.mastery import ConceptMastery, MasteryList
from banyan.models.progress import (
    LearnerProgress,
    ProgressEvent,
    ProgressEventType,
    ProgressUpdate,
    SessionStats,
)
from banyan.models.review import AnswerRequest, AnswerResult, ReviewEvent, ReviewOutcome
from banyan.models.session import (
    SessionSummary,
    StudySession,
    StudySessionCreate,
    StudySessionDetail,
)

__all__ = [
    "AnswerRequest",
    "AnswerResult",
    "Badge",
    "BadgeCreate",
    "BadgeRequirement",
    "Card",
    "CardCreate",
    "CardList",
    "CardSchedule",
    "CardType",
    "ConceptMastery",
    "DEFAULT_EASINESS",
    "Deck",
    "DeckCreate",
    "EarnedBadge",
    "LearnerProgress",
    "MIN_EASINESS",
    "MasteryList",
    "ProgressEvent",
    "ProgressEventType",
    "ProgressUpdate",
    "RequirementType",
    "ReviewEvent",
    "ReviewOutcome",
    "SessionStats",
    "SessionSummary",
    "StudySession",
    "StudySessionCreate",
    "StudySessionDetail",
]
