def _create_deck(client, n=6, learner_id="learner-1"):
    body = {
        "learner_id": learner_id,
        "title": "Photosynthesis",
        "cards": [
            {"question": f"Q{i}?", "answer": f"A{i}", "topic": "Light reactions" if i % 2 else "Calvin cycle"}
            for i in range(n)
        ],
    }
    res = client.post("/decks/", json=body)
    assert res.status_code == 201
    return res.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_deck_roundtrip(client):
    deck = _create_deck(client)
    assert deck["card_count"] == 6
    assert client.get(f"/decks/{deck['id']}").json()["title"] == "Photosynthesis"
    cards = client.get(f"/decks/{deck['id']}/cards").json()
    assert cards["total"] == 6


def test_mcq_without_options_rejected(client):
    body = {
        "learner_id": "learner-1",
        "title": "Bad",
        "cards": [{"question": "Pick one", "answer": "B", "card_type": "mcq"}],
    }
    assert client.post("/decks/", json=body).status_code == 422


def test_unknown_deck(client):
    assert client.get("/decks/nope").status_code == 404
    res = client.post("/study/sessions", json={"learner_id": "learner-1", "deck_id": "nope"})
    assert res.status_code == 404


def test_empty_deck_session(client):
    deck = client.post("/decks/", json={"learner_id": "learner-1", "title": "Empty"}).json()
    res = client.post("/study/sessions", json={"learner_id": "learner-1", "deck_id": deck["id"]})
    assert res.status_code == 201
    assert res.json() == {"session": None, "cards": []}


def test_full_session_flow(client):
    deck = _create_deck(client)
    res = client.post(
        "/study/sessions",
        json={"learner_id": "learner-1", "deck_id": deck["id"], "size": 4, "seed": 42},
    )
    assert res.status_code == 201
    detail = res.json()
    session_id = detail["session"]["id"]
    cards = detail["cards"]
    assert len(cards) == 4

    fetched = client.get(f"/study/sessions/{session_id}").json()
    assert [c["id"] for c in fetched["cards"]] == [c["id"] for c in cards]

    for card, result in zip(cards[:3], ["correct", "incorrect", "skip"]):
        res = client.post(
            f"/study/sessions/{session_id}/answers",
            json={"card_id": card["id"], "result": result, "time_spent_seconds": 5},
        )
        assert res.status_code == 200
        assert res.json()["event"]["result"] == result

    res = client.post(
        f"/study/sessions/{session_id}/answers",
        json={"card_id": cards[0]["id"], "result": "correct"},
    )
    assert res.status_code == 409

    summary = client.post(f"/study/sessions/{session_id}/complete").json()
    assert summary["stats"] == {"correct": 1, "incorrect": 1, "skipped": 2}
    assert summary["xp_gained"] == 12
    assert summary["accuracy"] == 50

    assert client.post(f"/study/sessions/{session_id}/complete").status_code == 409
    assert client.post(f"/study/sessions/{session_id}/expire").status_code == 409

    progress = client.get("/progress/learner-1").json()
    assert progress["xp"] == 12
    assert progress["streak_days"] == 1
    assert progress["total_cards_reviewed"] == 2

    mastery = client.get(f"/decks/{deck['id']}/mastery", params={"learner_id": "learner-1"}).json()
    assert mastery["total"] in (1, 2)


def test_invalid_outcome(client):
    deck = _create_deck(client, n=2)
    detail = client.post("/study/sessions", json={"learner_id": "learner-1", "deck_id": deck["id"]}).json()
    res = client.post(
        f"/study/sessions/{detail['session']['id']}/answers",
        json={"card_id": detail["cards"][0]["id"], "result": "maybe"},
    )
    assert res.status_code == 422


def test_expire_endpoint(client):
    deck = _create_deck(client, n=3)
    detail = client.post("/study/sessions", json={"learner_id": "learner-2", "deck_id": deck["id"]}).json()
    summary = client.post(f"/study/sessions/{detail['session']['id']}/expire").json()
    assert summary["stats"] == {"correct": 0, "incorrect": 0, "skipped": 3}
    assert summary["xp_gained"] == 0


def test_badges(client):
    res = client.post("/badges", json={"name": "Sprout", "requirement": {"type": "xp", "value": 10}})
    assert res.status_code == 201
    assert client.post("/badges", json={"name": "Sprout", "requirement": {"type": "xp", "value": 10}}).status_code == 409

    deck = _create_deck(client, n=1, learner_id="learner-3")
    detail = client.post("/study/sessions", json={"learner_id": "learner-3", "deck_id": deck["id"]}).json()
    client.post(
        f"/study/sessions/{detail['session']['id']}/answers",
        json={"card_id": detail["cards"][0]["id"], "result": "correct"},
    )
    summary = client.post(f"/study/sessions/{detail['session']['id']}/complete").json()
    assert [b["name"] for b in summary["new_badges"]] == ["Sprout"]
    earned = client.get("/progress/learner-3/badges").json()
    assert [e["badge"]["name"] for e in earned] == ["Sprout"]


def test_event_id_reused_across_sessions(client):
    deck = _create_deck(client, n=1, learner_id="learner-4")
    first = client.post("/study/sessions", json={"learner_id": "learner-4", "deck_id": deck["id"]}).json()
    second = client.post("/study/sessions", json={"learner_id": "learner-4", "deck_id": deck["id"]}).json()
    card_id = first["cards"][0]["id"]
    answer = {"card_id": card_id, "result": "correct", "event_id": "offline-1"}

    assert client.post(f"/study/sessions/{first['session']['id']}/answers", json=answer).status_code == 200
    replay = client.post(f"/study/sessions/{first['session']['id']}/answers", json=answer)
    assert replay.status_code == 200
    assert replay.json()["mastery"] is None
    assert client.post(f"/study/sessions/{second['session']['id']}/answers", json=answer).status_code == 409

    mastery = client.get(f"/decks/{deck['id']}/mastery", params={"learner_id": "learner-4"}).json()
    assert mastery["total"] == 1
