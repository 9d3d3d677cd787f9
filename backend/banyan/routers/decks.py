import aiosqlite
from fastapi import APIRouter, Depends, HTTPException, Query

from banyan.db.sqlite import create_deck, get_db, get_deck, get_mastery, list_cards_for_deck
from banyan.models.card import CardList, CardType
from banyan.models.deck import Deck, DeckCreate
from banyan.models.mastery import MasteryList

router = APIRouter()


@router.post("/", response_model=Deck, status_code=201)
async def create(body: DeckCreate, db: aiosqlite.Connection = Depends(get_db)):
    for i, card in enumerate(body.cards):
        if card.card_type == CardType.MCQ and not card.options:
            raise HTTPException(
                status_code=422, detail=f"Card {i}: multiple-choice cards need options"
            )
    return await create_deck(db, body)


@router.get("/{deck_id}", response_model=Deck)
async def get_one(deck_id: str, db: aiosqlite.Connection = Depends(get_db)):
    deck = await get_deck(db, deck_id)
    if not deck:
        raise HTTPException(status_code=404, detail="Deck not found")
    return deck


@router.get("/{deck_id}/cards", response_model=CardList)
async def list_cards(deck_id: str, db: aiosqlite.Connection = Depends(get_db)):
    if not await get_deck(db, deck_id):
        raise HTTPException(status_code=404, detail="Deck not found")
    items = await list_cards_for_deck(db, deck_id)
    return CardList(items=items, total=len(items))


@router.get("/{deck_id}/mastery", response_model=MasteryList)
async def deck_mastery(
    deck_id: str,
    learner_id: str = Query(...),
    db: aiosqlite.Connection = Depends(get_db),
):
    """Concept mastery of one learner on this deck, by concept name."""
    if not await get_deck(db, deck_id):
        raise HTTPException(status_code=404, detail="Deck not found")
    items = list((await get_mastery(db, learner_id, deck_id)).values())
    return MasteryList(items=items, total=len(items))
