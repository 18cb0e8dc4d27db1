from fastapi.testclient import TestClient

from coup_server import play_service
from coup_server.play_service import create_app


def make_client():
    return TestClient(create_app(seed=11))


def seat_two(client):
    match_id = client.post("/matches").json()["match_id"]
    first = client.post(f"/matches/{match_id}/join", json={"name": "Alice"}).json()
    second = client.post(f"/matches/{match_id}/join", json={"name": "Bob"}).json()
    return match_id, first, second


def poll(client, match_id, token):
    response = client.get(f"/matches/{match_id}/events", params={"token": token})
    assert response.status_code == 200
    return response.json()["events"]


def last_state(events):
    states = [event["payload"] for event in events if event["channel"] == "state"]
    return states[-1]


def test_join_returns_seat_and_initial_state():
    client = make_client()
    match_id, first, second = seat_two(client)

    assert first["seat"] == 0
    assert second["seat"] == 1
    assert first["match_id"] == match_id
    state = last_state(second["events"])
    assert state["phase"]["name"] == "start-of-turn"
    assert state["seat"] == 1
    assert [slot["role"] for slot in state["players"][0]["influence"]] == ["unknown", "unknown"]
    assert state["players"][0]["name"] == "Alice"


def test_command_round_trip_updates_every_seat():
    client = make_client()
    match_id, first, second = seat_two(client)
    sequence_id = last_state(poll(client, match_id, first["token"]))["sequence_id"]

    response = client.post(
        f"/matches/{match_id}/command",
        json={
            "token": first["token"],
            "command": {"command": "play-action", "sequenceId": sequence_id, "action": "income"},
        },
    )

    assert response.status_code == 202
    assert response.json() == {"status": "received"}
    state = last_state(poll(client, match_id, second["token"]))
    assert state["players"][0]["cash"] == 3
    assert state["phase"] == {
        "name": "start-of-turn",
        "player": 1,
        "action": None,
        "target": None,
        "blocker": None,
        "role": None,
        "message": None,
        "winner": None,
    }
    assert state["history"][-1]["message"] == "drew income"


def test_rejected_command_is_still_received_but_changes_nothing():
    client = make_client()
    match_id, first, second = seat_two(client)
    poll(client, match_id, second["token"])

    response = client.post(
        f"/matches/{match_id}/command",
        json={"token": second["token"], "command": {"command": "play-action", "sequenceId": 0, "action": "tax"}},
    )

    assert response.status_code == 202
    assert poll(client, match_id, second["token"]) == []


def test_full_and_unknown_matches_are_rejected():
    client = make_client()
    match_id, _, _ = seat_two(client)

    assert client.post(f"/matches/{match_id}/join", json={}).status_code == 409
    assert client.post("/matches/missing/join", json={}).status_code == 404
    response = client.post(
        f"/matches/{match_id}/command",
        json={"token": "not-a-seat", "command": {"command": "allow", "sequenceId": 1}},
    )
    assert response.status_code == 404


def test_public_join_pairs_players():
    client = make_client()
    first = client.post("/matches/join", json={"name": "Alice"}).json()
    second = client.post("/matches/join", json={}).json()

    assert first["match_id"] == second["match_id"]
    assert (first["seat"], second["seat"]) == (0, 1)


def test_legal_commands_for_the_acting_seat():
    client = make_client()
    match_id, first, second = seat_two(client)

    acting = client.get(f"/matches/{match_id}/legal", params={"token": first["token"]}).json()["commands"]
    waiting = client.get(f"/matches/{match_id}/legal", params={"token": second["token"]}).json()["commands"]

    assert {"command": "play-action", "action": "income", "sequenceId": 3} in acting
    assert waiting == []


def test_leaving_forfeits_and_closes_the_match():
    client = make_client()
    match_id, first, second = seat_two(client)
    poll(client, match_id, second["token"])

    response = client.post(f"/matches/{match_id}/leave", json={"token": first["token"]})

    assert response.status_code == 200
    state = last_state(poll(client, match_id, second["token"]))
    assert state["phase"]["name"] == "game-won"
    assert state["phase"]["winner"] == 1
    assert client.get(f"/matches/{match_id}/legal", params={"token": second["token"]}).status_code == 404


def test_invalid_player_names_are_rejected():
    client = make_client()
    match_id = client.post("/matches").json()["match_id"]

    for name in ["", "x" * 31, "<script>", "tab\tname"]:
        assert client.post(f"/matches/{match_id}/join", json={"name": name}).status_code == 422
        assert client.post("/matches/join", json={"name": name}).status_code == 422
    assert client.post(f"/matches/{match_id}/join", json={"name": "Ace_of *$!"}).status_code == 200


def test_closed_matches_release_their_seats():
    app = create_app(seed=12)
    client = TestClient(app)
    match_id, first, second = seat_two(client)

    client.post(f"/matches/{match_id}/leave", json={"token": first["token"]})

    assert app.state.handles == {}
    assert list(app.state.retired) == [second["token"]]

    assert last_state(poll(client, match_id, second["token"]))["phase"]["name"] == "game-won"
    assert app.state.retired == {}
    response = client.get(f"/matches/{match_id}/events", params={"token": second["token"]})
    assert response.status_code == 404


def test_retired_seats_are_bounded(monkeypatch):
    monkeypatch.setattr(play_service, "RETIRED_HANDLE_LIMIT", 2)
    app = play_service.create_app(seed=13)
    client = TestClient(app)

    for _ in range(3):
        match_id, first, _ = seat_two(client)
        client.post(f"/matches/{match_id}/leave", json={"token": first["token"]})

    assert len(app.state.retired) == 2
    assert app.state.handles == {}
