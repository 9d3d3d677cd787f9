"""
Study session runner.

Flow of one mini-review:
  1. start_session    select an adaptive batch and persist the session row
  2. record_answer    once per card: append the review event, update concept
                      mastery and reschedule the card (skips only log the event)
  3. complete_session fold the session's outcomes into learner progress,
                      exactly once, then award any newly earned badges
     expire_session   the review timer ran out: unanswered cards become skips
                      and the session is completed

Soft failures: a failing mastery fetch degrades selection to unweighted, and a
failing badge award is logged. Everything else propagates to the caller.
"""
from __future__ import annotations

import logging
import math
import random
import uuid
from datetime import date, datetime, timedelta, timezone

import aiosqlite

from banyan.config import settings
from banyan.db.sqlite import (
    append_review_event,
    award_badge,
    count_decks_for_learner,
    create_study_session,
    get_card,
    get_concept_mastery,
    get_mastery,
    get_progress,
    get_review_event,
    get_study_session,
    list_badges,
    list_cards_for_deck,
    list_earned_badge_ids,
    list_session_reviews,
    mark_session_completed,
    update_card_schedule,
    update_progress,
    upsert_mastery,
)
from banyan.engine.badges import evaluate_badges
from banyan.engine.difficulty import suggest_difficulty_adjustment
from banyan.engine.mastery import update_mastery
from banyan.engine.progress import apply_session_outcome
from banyan.engine.scheduler import schedule_next
from banyan.engine.selector import select_session
from banyan.models.badge import Badge
from banyan.models.progress import LearnerProgress, SessionStats
from banyan.models.review import AnswerResult, ReviewEvent, ReviewOutcome
from banyan.models.session import SessionSummary, StudySession, StudySessionDetail

logger = logging.getLogger(__name__)


class StudySessionError(Exception):
    pass


class SessionNotFoundError(StudySessionError):
    pass


class SessionAlreadyCompletedError(StudySessionError):
    pass


class CardNotInSessionError(StudySessionError):
    pass


class CardAlreadyAnsweredError(StudySessionError):
    pass


class ReviewEventConflictError(StudySessionError):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).isoformat()


async def _load_open_session(db: aiosqlite.Connection, session_id: str) -> StudySession:
    session = await get_study_session(db, session_id)
    if session is None:
        raise SessionNotFoundError(f"Study session {session_id} not found")
    if session.completed_at is not None:
        raise SessionAlreadyCompletedError(f"Study session {session_id} is already completed")
    return session


def tally_session(session: StudySession, reviews: list[ReviewEvent]) -> SessionStats:
    """Count outcomes per session card; cards without an answer count as skips."""
    first_result: dict[str, ReviewOutcome] = {}
    for event in reviews:
        if event.card_id in session.card_ids:
            first_result.setdefault(event.card_id, event.result)

    stats = SessionStats()
    for card_id in session.card_ids:
        result = first_result.get(card_id, ReviewOutcome.SKIP)
        if result == ReviewOutcome.CORRECT:
            stats.correct += 1
        elif result == ReviewOutcome.INCORRECT:
            stats.incorrect += 1
        else:
            stats.skipped += 1
    return stats


def session_accuracy(stats: SessionStats) -> int:
    if stats.answered == 0:
        return 0
    return int(math.floor(stats.correct / stats.answered * 100 + 0.5))


async def start_session(
    db: aiosqlite.Connection,
    learner_id: str,
    deck_id: str,
    size: int | None = None,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> StudySessionDetail:
    """Select an adaptive batch of cards and open a session for it.

    An empty deck yields an empty detail with no session row; the caller
    should send the learner elsewhere instead of starting a review.
    """
    size = size or settings.session_size
    cards = await list_cards_for_deck(db, deck_id)
    if not cards:
        logger.info("Deck %s has no cards, no session started", deck_id)
        return StudySessionDetail(session=None, cards=[])

    try:
        masteries = await get_mastery(db, learner_id, deck_id)
    except Exception:
        logger.warning(
            "Mastery fetch failed for learner %s deck %s, selecting unweighted",
            learner_id,
            deck_id,
            exc_info=True,
        )
        masteries = None

    selected = select_session(cards, masteries, size, rng)

    now = now or _utcnow()
    session = await create_study_session(
        db,
        learner_id,
        deck_id,
        [c.id for c in selected],
        started_at=_iso(now),
        expires_at=_iso(now + timedelta(seconds=settings.review_window_seconds)),
    )
    logger.info(
        "Started session %s for learner %s: %d of %d cards",
        session.id,
        learner_id,
        len(selected),
        len(cards),
    )
    return StudySessionDetail(session=session, cards=selected)


async def _replayed_answer(
    db: aiosqlite.Connection, session_id: str, event: ReviewEvent
) -> AnswerResult:
    stored = await get_review_event(db, event.id)
    if stored is None:
        raise CardAlreadyAnsweredError(
            f"Card {event.card_id} was already answered in session {session_id}"
        )
    if stored.session_id != session_id or stored.card_id != event.card_id:
        raise ReviewEventConflictError(
            f"Review event {event.id} belongs to another session or card"
        )
    logger.info("Review event %s already recorded, skipping replay", event.id)
    return AnswerResult(event=stored)


async def record_answer(
    db: aiosqlite.Connection,
    session_id: str,
    card_id: str,
    outcome: ReviewOutcome | str,
    time_spent_seconds: int = 0,
    event_id: str | None = None,
    now: datetime | None = None,
) -> AnswerResult:
    """
    Record one answer of a session.

    The event append decides whether the answer applies: replaying an already
    stored ``event_id`` is a no-op that returns the stored event without
    touching mastery or scheduling again. The event, the mastery update and
    the new card schedule are committed together.
    """
    outcome = ReviewOutcome(outcome)
    session = await _load_open_session(db, session_id)
    if card_id not in session.card_ids:
        raise CardNotInSessionError(f"Card {card_id} is not part of session {session_id}")

    now = now or _utcnow()
    event = ReviewEvent(
        id=event_id or str(uuid.uuid4()),
        learner_id=session.learner_id,
        card_id=card_id,
        deck_id=session.deck_id,
        session_id=session_id,
        result=outcome,
        time_spent_seconds=time_spent_seconds,
        created_at=_iso(now),
    )

    try:
        if not await append_review_event(db, event, commit=False):
            await db.rollback()
            return await _replayed_answer(db, session_id, event)

        # The append holds the write lock, so this sees any completion that
        # landed after the session was loaded.
        current_session = await get_study_session(db, session_id)
        if current_session is None or current_session.completed_at is not None:
            raise SessionAlreadyCompletedError(
                f"Study session {session_id} is already completed"
            )
        card = await get_card(db, card_id)
        if card is None:
            raise CardNotInSessionError(f"Card {card_id} no longer exists")

        mastery = None
        if outcome != ReviewOutcome.SKIP and card.topic:
            current = await get_concept_mastery(
                db, session.learner_id, session.deck_id, card.topic
            )
            mastery = update_mastery(
                session.learner_id, session.deck_id, card.topic, current, outcome, now
            )
            await upsert_mastery(db, mastery, commit=False)

        schedule = None
        if outcome != ReviewOutcome.SKIP:
            schedule = schedule_next(card.schedule, outcome, now)
            await update_card_schedule(db, card_id, schedule, commit=False)

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    return AnswerResult(event=event, mastery=mastery, schedule=schedule)


async def _award_new_badges(db: aiosqlite.Connection, progress: LearnerProgress) -> list[Badge]:
    try:
        earned = evaluate_badges(
            progress,
            await list_badges(db),
            await list_earned_badge_ids(db, progress.learner_id),
            await count_decks_for_learner(db, progress.learner_id),
        )
        return [b for b in earned if await award_badge(db, progress.learner_id, b.id)]
    except Exception:
        logger.warning(
            "Badge check failed for learner %s", progress.learner_id, exc_info=True
        )
        return []


async def complete_session(
    db: aiosqlite.Connection,
    session_id: str,
    today: date | None = None,
    now: datetime | None = None,
) -> SessionSummary:
    """Apply a finished session to learner progress. Succeeds at most once per session."""
    session = await _load_open_session(db, session_id)
    now = now or _utcnow()
    today = today or now.astimezone(timezone.utc).date()

    # The completion claim opens the write transaction, so neither the tally
    # nor the progress read below can interleave with an answer or another
    # completion.
    try:
        if not await mark_session_completed(db, session_id, _iso(now)):
            await db.rollback()
            logger.warning("Session %s was completed concurrently", session_id)
            raise SessionAlreadyCompletedError(
                f"Study session {session_id} is already completed"
            )
        stats = tally_session(session, await list_session_reviews(db, session_id))
        prior = await get_progress(db, session.learner_id)
        update = apply_session_outcome(prior, stats, today)
        progress = await update_progress(db, update.progress)
    except SessionAlreadyCompletedError:
        raise
    except Exception:
        await db.rollback()
        raise

    new_badges = await _award_new_badges(db, progress)

    logger.info(
        "Completed session %s: %d correct, %d incorrect, %d skipped, +%d XP",
        session_id,
        stats.correct,
        stats.incorrect,
        stats.skipped,
        update.xp_gained,
    )
    return SessionSummary(
        session_id=session_id,
        stats=stats,
        xp_gained=update.xp_gained,
        accuracy=session_accuracy(stats),
        progress=progress,
        events=update.events,
        new_badges=new_badges,
        difficulty_suggestion=suggest_difficulty_adjustment(stats.correct, stats.answered),
    )


async def expire_session(
    db: aiosqlite.Connection,
    session_id: str,
    today: date | None = None,
    now: datetime | None = None,
) -> SessionSummary:
    """Close a session whose review window ran out; unanswered cards are skipped."""
    session = await _load_open_session(db, session_id)
    now = now or _utcnow()

    answered = {e.card_id for e in await list_session_reviews(db, session_id)}
    unanswered = [cid for cid in session.card_ids if cid not in answered]
    for card_id in unanswered:
        await append_review_event(
            db,
            ReviewEvent(
                id=str(uuid.uuid4()),
                learner_id=session.learner_id,
                card_id=card_id,
                deck_id=session.deck_id,
                session_id=session_id,
                result=ReviewOutcome.SKIP,
                created_at=_iso(now),
            ),
        )
    logger.info("Session %s expired with %d unanswered cards", session_id, len(unanswered))
    return await complete_session(db, session_id, today=today, now=now)
