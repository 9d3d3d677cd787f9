from banyan.db.sqlite import (
    append_review_event,
    count_decks_for_learner,
    create_deck,
    create_study_session,
    get_mastery,
    get_progress,
    get_review_event,
    get_study_session,
    list_cards_for_deck,
    list_session_reviews,
    mark_session_completed,
    update_card_schedule,
    update_progress,
    upsert_mastery,
)
from banyan.models.card import CardCreate, CardSchedule, CardType
from banyan.models.deck import DeckCreate
from banyan.models.mastery import ConceptMastery
from banyan.models.progress import LearnerProgress
from banyan.models.review import ReviewEvent, ReviewOutcome


def _deck_body(n: int = 3) -> DeckCreate:
    cards = [CardCreate(question=f"Q{i}?", answer=f"A{i}", topic="Cells") for i in range(n)]
    cards.append(
        CardCreate(
            question="Which organelle makes ATP?",
            answer="Mitochondria",
            card_type=CardType.MCQ,
            options=["Nucleus", "Mitochondria", "Ribosome"],
        )
    )
    return DeckCreate(learner_id="learner-1", title="Biology", cards=cards)


def test_create_deck_with_cards(run_db):
    async def scenario(db):
        deck = await create_deck(db, _deck_body())
        return deck, await list_cards_for_deck(db, deck.id)

    deck, cards = run_db(scenario)
    assert deck.card_count == 4
    assert len(cards) == 4
    mcq = next(c for c in cards if c.card_type == CardType.MCQ)
    assert mcq.options == ["Nucleus", "Mitochondria", "Ribosome"]
    assert all(c.easiness_factor == 2.5 and c.review_count == 0 for c in cards)


def test_cards_never_reviewed_come_first(run_db):
    async def scenario(db):
        deck = await create_deck(db, _deck_body(2))
        first, second, third = (await list_cards_for_deck(db, deck.id))[:3]
        await update_card_schedule(
            db, first.id, CardSchedule(interval_days=6, review_count=2, next_review_at="2026-03-20T00:00:00+00:00")
        )
        await update_card_schedule(
            db, second.id, CardSchedule(interval_days=1, review_count=1, next_review_at="2026-03-11T00:00:00+00:00")
        )
        return [c.id for c in await list_cards_for_deck(db, deck.id)], (first.id, second.id, third.id)

    order, (first, second, third) = run_db(scenario)
    assert order[-2:] == [second, first]
    assert third in order[:2]


def test_mastery_upsert(run_db):
    async def scenario(db):
        deck = await create_deck(db, _deck_body())
        rec = ConceptMastery(learner_id="learner-1", deck_id=deck.id, name="Cells", mastery=9, seen_count=1, correct_count=1)
        await upsert_mastery(db, rec)
        await upsert_mastery(db, rec.model_copy(update={"mastery": 18, "seen_count": 2, "correct_count": 2}))
        return await get_mastery(db, "learner-1", deck.id), await get_mastery(db, "other", deck.id)

    mine, theirs = run_db(scenario)
    assert list(mine) == ["Cells"]
    assert mine["Cells"].mastery == 18
    assert mine["Cells"].seen_count == 2
    assert theirs == {}


def test_progress_cold_start_and_update(run_db):
    async def scenario(db):
        fresh = await get_progress(db, "learner-1")
        saved = await update_progress(db, LearnerProgress(learner_id="learner-1", xp=127, level=2, tree_level=3))
        return fresh, saved

    fresh, saved = run_db(scenario)
    assert (fresh.xp, fresh.level, fresh.tree_level, fresh.streak_days) == (0, 1, 1, 0)
    assert (saved.xp, saved.level, saved.tree_level) == (127, 2, 3)


def test_review_events_are_idempotent_on_id(run_db):
    event = ReviewEvent(
        id="evt-1",
        learner_id="learner-1",
        card_id="card-1",
        deck_id="deck-1",
        session_id="session-1",
        result=ReviewOutcome.CORRECT,
        time_spent_seconds=4,
        created_at="2026-03-10T12:00:00+00:00",
    )

    async def scenario(db):
        first = await append_review_event(db, event)
        second = await append_review_event(db, event)
        return first, second, await list_session_reviews(db, "session-1")

    first, second, stored = run_db(scenario)
    assert (first, second) == (True, False)
    assert stored == [event]


def test_session_completion_claimed_once(run_db):
    async def scenario(db):
        deck = await create_deck(db, _deck_body())
        session = await create_study_session(db, "learner-1", deck.id, ["a", "b"], "2026-03-10T12:00:00+00:00")
        first = await mark_session_completed(db, session.id, "2026-03-10T12:01:30+00:00")
        await db.commit()
        second = await mark_session_completed(db, session.id, "2026-03-10T12:05:00+00:00")
        await db.commit()
        return first, second, await get_study_session(db, session.id)

    first, second, session = run_db(scenario)
    assert (first, second) == (True, False)
    assert session.completed_at == "2026-03-10T12:01:30+00:00"
    assert session.card_ids == ["a", "b"]


def test_count_decks(run_db):
    async def scenario(db):
        await create_deck(db, _deck_body(1))
        await create_deck(db, _deck_body(1))
        return await count_decks_for_learner(db, "learner-1"), await count_decks_for_learner(db, "nobody")

    assert run_db(scenario) == (2, 0)


def test_one_answer_per_card_per_session(run_db):
    first = ReviewEvent(
        id="evt-1",
        learner_id="learner-1",
        card_id="card-1",
        deck_id="deck-1",
        session_id="session-1",
        result=ReviewOutcome.INCORRECT,
        created_at="2026-03-10T12:00:00+00:00",
    )
    second = first.model_copy(update={"id": "evt-2", "result": ReviewOutcome.CORRECT})
    other_session = first.model_copy(update={"id": "evt-3", "session_id": "session-2"})

    async def scenario(db):
        appended = (
            await append_review_event(db, first),
            await append_review_event(db, second),
            await append_review_event(db, other_session),
        )
        return appended, await get_review_event(db, "evt-1"), await get_review_event(db, "evt-2")

    appended, stored, missing = run_db(scenario)
    assert appended == (True, False, True)
    assert stored == first
    assert missing is None
