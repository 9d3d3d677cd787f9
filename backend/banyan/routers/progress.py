import aiosqlite
from fastapi import APIRouter, Depends, HTTPException

from banyan.db.sqlite import create_badge, get_db, get_progress, list_badges, list_learner_badges
from banyan.models.badge import Badge, BadgeCreate, EarnedBadge
from banyan.models.progress import LearnerProgress

router = APIRouter()


@router.get("/progress/{learner_id}", response_model=LearnerProgress)
async def learner_progress(learner_id: str, db: aiosqlite.Connection = Depends(get_db)):
    return await get_progress(db, learner_id)


@router.get("/progress/{learner_id}/badges", response_model=list[EarnedBadge])
async def learner_badges(learner_id: str, db: aiosqlite.Connection = Depends(get_db)):
    return await list_learner_badges(db, learner_id)


@router.get("/badges", response_model=list[Badge])
async def all_badges(db: aiosqlite.Connection = Depends(get_db)):
    return await list_badges(db)


@router.post("/badges", response_model=Badge, status_code=201)
async def define_badge(body: BadgeCreate, db: aiosqlite.Connection = Depends(get_db)):
    try:
        return await create_badge(db, body)
    except aiosqlite.IntegrityError:
        raise HTTPException(status_code=409, detail=f"Badge {body.name!r} already exists")
