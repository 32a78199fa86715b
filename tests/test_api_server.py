from __future__ import annotations

from fastapi.testclient import TestClient
import pytest

from quiz_host.constants.network_constants import OWNER_COOKIE_NAME
from quiz_host.server.api_server import create_api_app


@pytest.fixture
def app(manager):
    return create_api_app(manager)


@pytest.fixture
def client(app):
    return TestClient(app)


def _create(client: TestClient, **overrides) -> dict:
    payload = {
        "title": "Friday trivia",
        "team_names": ["Owls", "Foxes"],
        "topics": ["General"],
        "questions_per_level": {"easy": 1, "medium": 0, "hard": 0},
        "timeouts_in_seconds": {"easy": 20, "medium": 30, "hard": 45},
    }
    payload.update(overrides)
    payload = {key: value for key, value in payload.items() if value is not None}
    response = client.post("/quizzes", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_identity_cookie_is_issued_once(client):
    first = client.get("/identity")
    assert first.status_code == 200
    owner_id = first.json()["owner_id"]
    assert first.cookies.get(OWNER_COOKIE_NAME) == owner_id

    second = client.get("/identity")
    assert second.json()["owner_id"] == owner_id


def test_create_and_list_quizzes_per_owner(app, client):
    created = _create(client)

    assert created["title"] == "Friday trivia"
    assert [team["name"] for team in created["teams"]] == ["Owls", "Foxes"]
    assert created["questions_per_level"] == {"easy": 1, "medium": 0, "hard": 0}

    listed = client.get("/quizzes").json()
    assert [quiz["id"] for quiz in listed] == [created["id"]]

    stranger = TestClient(app)
    assert stranger.get("/quizzes").json() == []


def test_create_uses_default_level_settings(client):
    created = _create(client, questions_per_level=None, timeouts_in_seconds=None)

    assert created["questions_per_level"] == {"easy": 5, "medium": 5, "hard": 5}
    assert created["timeouts_in_seconds"] == {"easy": 20, "medium": 30, "hard": 45}


@pytest.mark.parametrize(
    "overrides",
    [
        {"team_names": []},
        {"title": "   "},
        {"team_names": ["Owls", ""]},
        {"timeouts_in_seconds": {"easy": 0, "medium": 30, "hard": 45}},
    ],
)
def test_create_rejects_invalid_payloads(client, overrides):
    payload = {
        "title": "Quiz",
        "team_names": ["Owls"],
        "questions_per_level": {"easy": 1, "medium": 1, "hard": 1},
        "timeouts_in_seconds": {"easy": 20, "medium": 30, "hard": 45},
    }
    payload.update(overrides)

    assert client.post("/quizzes", json=payload).status_code == 422


def test_session_flow_from_start_to_end(client):
    quiz = _create(client, team_names=["Solo"])

    started = client.post(f"/quizzes/{quiz['id']}/start")
    assert started.status_code == 200
    session = started.json()
    assert session["state"] == "awaiting_answer"
    assert session["level"] == "easy"
    assert session["time_left"] == 20
    assert session["current_team"]["name"] == "Solo"
    question = session["current_question"]
    assert question["correct_answer"] is None
    assert len(question["options"]) == 4

    answered = client.post(
        "/session/answer",
        json={"question_id": question["id"], "option_index": 0},
    ).json()
    assert answered["state"] == "answer_revealed"
    assert answered["selected_option"] == 0
    correct = answered["current_question"]["correct_answer"]
    assert correct in range(4)
    assert answered["current_team"]["score"] == (1 if correct == 0 else 0)

    completed = client.post("/session/advance").json()
    assert completed["state"] == "complete"

    live_results = client.get("/session/results").json()
    assert live_results["winners"] == ["Solo"]
    assert live_results["total_questions_per_team"] == 1

    ended = client.post("/session/end").json()
    assert ended["state"] == "idle"
    assert client.get("/session/results").status_code == 404

    stored = client.get(f"/quizzes/{quiz['id']}/results").json()
    assert stored["standings"][0]["answered"] == 1
    assert stored["question_reviews"] == []


def test_deferred_quiz_hides_answers_until_results(client):
    quiz = _create(client, team_names=["Solo"], show_answers_at_end=True)
    question = client.post(f"/quizzes/{quiz['id']}/start").json()["current_question"]

    session = client.post(
        "/session/answer",
        json={"question_id": question["id"], "option_index": 1},
    ).json()

    assert session["state"] == "awaiting_answer"
    assert session["answers_revealed"] is False
    assert session["current_question"]["correct_answer"] is None

    client.post("/session/advance")
    client.post("/session/end")
    reviews = client.get(f"/quizzes/{quiz['id']}/results").json()["question_reviews"]
    assert [review["selected_option"] for review in reviews] == [1]


def test_live_results_keep_deferred_answers_until_the_quiz_completes(client):
    quiz = _create(
        client,
        team_names=["Owls", "Foxes"],
        show_answers_at_end=True,
        questions_per_level={"easy": 2, "medium": 0, "hard": 0},
    )
    client.post(f"/quizzes/{quiz['id']}/start")

    mid_quiz = client.get("/session/results").json()
    assert mid_quiz["question_reviews"] == []
    assert [row["name"] for row in mid_quiz["standings"]] == ["Owls", "Foxes"]

    for _ in range(4):
        question = client.get("/session").json()["current_question"]
        client.post("/session/answer", json={"question_id": question["id"], "option_index": 0})
        assert client.get("/session/results").json()["question_reviews"] == []
        client.post("/session/advance")

    assert client.get("/session").json()["state"] == "complete"
    reviews = client.get("/session/results").json()["question_reviews"]
    assert len(reviews) == 4
    assert all(review["correct_answer"] in range(4) for review in reviews)


def test_deferred_timeout_unlocks_advance_without_showing_answer(client, ticker):
    quiz = _create(client, team_names=["Solo", "Duo"], show_answers_at_end=True)
    client.post(f"/quizzes/{quiz['id']}/start")

    ticker.tick(20)
    session = client.get("/session").json()

    assert session["state"] == "answer_revealed"
    assert session["time_left"] == 0
    assert session["current_question"]["correct_answer"] is None
    assert client.post("/session/advance").json()["team_index"] == 1


def test_question_html_is_rendered(client):
    quiz = _create(client, team_names=["Solo"])

    question = client.post(f"/quizzes/{quiz['id']}/start").json()["current_question"]

    assert question["text_html"].startswith("<p>")
    assert question["options_html"] == [option.replace("&", "&amp;") for option in question["options"]]


def test_errors_map_to_http_statuses(app, client):
    quiz = _create(client)
    stranger = TestClient(app)

    assert client.post("/quizzes/missing/start").status_code == 404
    assert stranger.post(f"/quizzes/{quiz['id']}/start").status_code == 403
    assert stranger.delete(f"/quizzes/{quiz['id']}").status_code == 403

    assert client.post(f"/quizzes/{quiz['id']}/start").status_code == 200
    assert client.post(f"/quizzes/{quiz['id']}/start").status_code == 409
    assert client.delete(f"/quizzes/{quiz['id']}").status_code == 409
    assert stranger.post("/session/end").status_code == 403

    assert client.post("/session/end").status_code == 200
    assert client.delete(f"/quizzes/{quiz['id']}").status_code == 204
    assert client.get(f"/quizzes/{quiz['id']}/results").status_code == 404


def test_ignored_actions_return_current_snapshot(client):
    assert client.get("/session").json()["state"] == "idle"
    assert client.post("/session/advance").json()["state"] == "idle"
    response = client.post("/session/answer", json={"question_id": "nope", "option_index": 0})
    assert response.status_code == 200
    assert response.json()["state"] == "idle"


def test_categories_come_from_question_bank(client):
    assert client.get("/categories").json() == []
