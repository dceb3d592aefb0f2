"""HTTP-level tests for the questionnaire and health routes."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.controllers.dependencies import get_orchestrator, get_session_store, get_tts_service
from app.main import app

from conftest import MP3_AUDIO, matched, unmatched


@pytest.fixture
def client(orchestrator, store, tts):
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_session_store] = lambda: store
    app.dependency_overrides[get_tts_service] = lambda: tts

    yield TestClient(app)

    app.dependency_overrides.clear()


def _start(client: TestClient) -> str:
    response = client.post("/api/questionnaire/start")
    assert response.status_code == 200
    return response.json()["sessionId"]


def _submit(client: TestClient, session_id: str, audio: bytes = MP3_AUDIO):
    return client.post(
        f"/api/questionnaire/response/{session_id}",
        files={"audio": ("answer.mp3", audio, "audio/mpeg")},
    )


def test_start_session_reports_ttl(client):
    response = client.post("/api/questionnaire/start")

    assert response.status_code == 200
    payload = response.json()
    assert payload["sessionId"]
    assert payload["message"] == "Session started successfully"
    assert payload["expiresInSeconds"] == 1800


def test_current_question_and_progress(client):
    session_id = _start(client)

    response = client.get(f"/api/questionnaire/question/{session_id}")

    assert response.status_code == 200
    payload = response.json()
    assert payload["completed"] is False
    assert payload["totalQuestions"] == 2
    assert payload["currentQuestionNumber"] == 1
    assert payload["question"] == {
        "id": 1,
        "text": "How confident do you feel?",
        "validCategories": ["very confident", "neutral"],
    }


def test_answering_every_question(client, classifier, stt):
    stt.outcomes.extend(["I'm neutral", "zero"])
    classifier.outcomes.extend([matched("neutral", 0.8), matched("0", 0.95)])
    session_id = _start(client)

    first = _submit(client, session_id).json()
    assert first["status"] == "SUCCESS"
    assert first["nextQuestion"]["id"] == 2
    assert first["completed"] is False
    assert first["isSuccessful"] is False

    second = _submit(client, session_id).json()
    assert second["status"] == "COMPLETED"
    assert second["completed"] is True
    assert second["isSuccessful"] is True
    assert second["confidence"] == pytest.approx(0.95)
    assert second["nextQuestion"] is None

    question = client.get(f"/api/questionnaire/question/{session_id}").json()
    assert question["completed"] is True
    assert question["question"] is None
    assert question["currentQuestionNumber"] == 2

    responses = client.get(f"/api/questionnaire/responses/{session_id}")
    assert responses.status_code == 200
    assert responses.json() == {"1": "neutral", "2": "0"}


def test_unmatched_answer_returns_retry(client, classifier):
    classifier.outcomes.append(unmatched("Try saying neutral or very confident."))
    session_id = _start(client)

    payload = _submit(client, session_id).json()

    assert payload["status"] == "RETRY"
    assert payload["retryMessage"] == "Try saying neutral or very confident."
    assert payload["retryCount"] == 1
    assert payload["nextQuestion"]["id"] == 1


def test_short_audio_is_a_bad_request(client, stt):
    session_id = _start(client)

    response = _submit(client, session_id, audio=b"\xff\xfb" + b"\x00" * 100)

    assert response.status_code == 400
    payload = response.json()
    assert payload["error"] == "INVALID_AUDIO"
    assert payload["message"].startswith("Audio too short")
    assert payload["path"] == f"/api/questionnaire/response/{session_id}"
    assert stt.calls == []


def test_unknown_session_is_not_found(client):
    for response in (
        client.get("/api/questionnaire/question/nope"),
        client.get("/api/questionnaire/responses/nope"),
        client.get("/api/questionnaire/question/nope/audio"),
        _submit(client, "nope"),
    ):
        assert response.status_code == 404
        assert response.json()["error"] == "SESSION_NOT_FOUND"


def test_concurrent_write_is_a_conflict(client, classifier, store):
    session_id = _start(client)

    async def racing_classification():
        other = await store.get(session_id)
        other.increment_retry(1, "from another request")
        await store.put(other)
        return matched("neutral")

    classifier.outcomes.append(racing_classification)

    response = _submit(client, session_id)

    assert response.status_code == 409
    assert response.json()["error"] == "SESSION_CONFLICT"


def test_question_and_retry_audio(client, tts):
    session_id = _start(client)

    question_audio = client.get(f"/api/questionnaire/question/{session_id}/audio")
    retry_audio = client.get(
        f"/api/questionnaire/retry/{session_id}/audio",
        params={"message": "Please say yes or no."},
    )

    assert question_audio.status_code == 200
    assert question_audio.headers["content-type"] == "audio/mpeg"
    assert question_audio.headers["content-disposition"] == "inline; filename=question.mp3"
    assert retry_audio.status_code == 200
    assert tts.spoken == ["How confident do you feel?", "Please say yes or no."]


def test_tts_outage_is_service_unavailable(client, tts):
    session_id = _start(client)
    tts.fail = True

    response = client.get(f"/api/questionnaire/question/{session_id}/audio")

    assert response.status_code == 503
    payload = response.json()
    assert payload["error"] == "SERVICE_UNAVAILABLE"
    assert "Text-to-Speech" not in payload["message"]


def test_corrupt_stored_session_is_an_internal_error(client, store):
    session_id = _start(client)
    key = f"test:{session_id}"
    _, version, expires_at = store._entries[key]
    store._entries[key] = ('{"session_id": 42, "responses": "broken"}', version, expires_at)

    response = client.get(f"/api/questionnaire/question/{session_id}")

    assert response.status_code == 500
    assert response.json()["error"] == "INTERNAL_ERROR"


def test_end_session(client):
    session_id = _start(client)

    assert client.delete(f"/api/questionnaire/session/{session_id}").status_code == 204
    assert client.get(f"/api/questionnaire/question/{session_id}").status_code == 404
    assert client.delete(f"/api/questionnaire/session/{session_id}").status_code == 404


def test_health_and_readiness(client, tts):
    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "UP"

    ready = client.get("/health/ready")
    assert ready.status_code == 200
    assert ready.json() == {"status": "READY", "dependencies": {"sessionStore": True, "polly": True}}

    tts.fail = True
    not_ready = client.get("/health/ready")
    assert not_ready.status_code == 503
    assert not_ready.json()["dependencies"]["polly"] is False


def test_metrics_endpoint(client):
    _start(client)

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "http_requests_total" in response.text
