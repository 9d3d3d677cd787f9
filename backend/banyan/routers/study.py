"""
Study session router.

Endpoints:
  POST /study/sessions                 select an adaptive batch and open a session
  GET  /study/sessions/{id}            session with its cards, in review order
  POST /study/sessions/{id}/answers    record correct / incorrect / skip for one card
  POST /study/sessions/{id}/expire     review window ran out; unanswered cards are skipped
  POST /study/sessions/{id}/complete   apply the session to learner progress (once)
"""
from __future__ import annotations

import random

import aiosqlite
from fastapi import APIRouter, Depends, HTTPException

from banyan.db.sqlite import get_cards, get_db, get_deck, get_study_session
from banyan.models.review import AnswerRequest, AnswerResult
from banyan.models.session import SessionSummary, StudySessionCreate, StudySessionDetail
from banyan.services.study_session import (
    CardAlreadyAnsweredError,
    CardNotInSessionError,
    ReviewEventConflictError,
    SessionAlreadyCompletedError,
    SessionNotFoundError,
    StudySessionError,
    complete_session,
    expire_session,
    record_answer,
    start_session,
)

router = APIRouter()


def _http_error(e: StudySessionError) -> HTTPException:
    if isinstance(e, SessionNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, (
        SessionAlreadyCompletedError, CardAlreadyAnsweredError, ReviewEventConflictError
    )):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, CardNotInSessionError):
        return HTTPException(status_code=422, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


@router.post("/sessions", response_model=StudySessionDetail, status_code=201)
async def open_session(
    body: StudySessionCreate,
    db: aiosqlite.Connection = Depends(get_db),
) -> StudySessionDetail:
    """Start a mini-review. An empty deck returns no session and no cards."""
    if not await get_deck(db, body.deck_id):
        raise HTTPException(status_code=404, detail="Deck not found")
    rng = random.Random(body.seed) if body.seed is not None else None
    return await start_session(db, body.learner_id, body.deck_id, size=body.size, rng=rng)


@router.get("/sessions/{session_id}", response_model=StudySessionDetail)
async def get_session(
    session_id: str,
    db: aiosqlite.Connection = Depends(get_db),
) -> StudySessionDetail:
    session = await get_study_session(db, session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Study session not found")
    return StudySessionDetail(session=session, cards=await get_cards(db, session.card_ids))


@router.post("/sessions/{session_id}/answers", response_model=AnswerResult)
async def answer_card(
    session_id: str,
    body: AnswerRequest,
    db: aiosqlite.Connection = Depends(get_db),
) -> AnswerResult:
    try:
        return await record_answer(
            db,
            session_id,
            body.card_id,
            body.result,
            time_spent_seconds=body.time_spent_seconds,
            event_id=body.event_id,
        )
    except StudySessionError as e:
        raise _http_error(e) from e


@router.post("/sessions/{session_id}/expire", response_model=SessionSummary)
async def expire(
    session_id: str,
    db: aiosqlite.Connection = Depends(get_db),
) -> SessionSummary:
    try:
        return await expire_session(db, session_id)
    except StudySessionError as e:
        raise _http_error(e) from e


@router.post("/sessions/{session_id}/complete", response_model=SessionSummary)
async def complete(
    session_id: str,
    db: aiosqlite.Connection = Depends(get_db),
) -> SessionSummary:
    try:
        return await complete_session(db, session_id)
    except StudySessionError as e:
        raise _http_error(e) from e
