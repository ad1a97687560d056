"""Tests for the REST transport."""

import pytest
from fastapi.testclient import TestClient

from scheme_assistant.llm.classifier import KeywordIntentClassifier
from scheme_assistant.voice import RecordingTTS, ScriptedSTT, STTResult
from server import create_app


def _text(value: str) -> dict:
    return {"english": value, "hindi": f"{value} (hi)", "tamil": f"{value} (ta)"}


@pytest.fixture
def stt() -> ScriptedSTT:
    return ScriptedSTT()


@pytest.fixture
def client(orchestrator_factory, stt):
    app = create_app(orchestrator_factory(KeywordIntentClassifier()), stt=stt, tts=RecordingTTS())
    with TestClient(app) as test_client:
        yield test_client


def _new_session(client, **body) -> str:
    response = client.post("/session/create", json=body)
    assert response.status_code == 200
    return response.json()["session_id"]


# =============================================================================
# Sessions and chat
# =============================================================================


class TestSessionEndpoints:
    def test_health(self, client):
        data = client.get("/").json()

        assert data["status"] == "running"
        assert data["supported_languages"] == ["english", "hindi", "tamil"]

    def test_create_session(self, client):
        data = client.post("/session/create", json={"language": "tamil"}).json()

        assert data["language"] == "tamil"
        assert data["state"] == "language_selection"
        assert data["version"] == 1

    def test_unsupported_language(self, client):
        response = client.post("/session/create", json={"language": "klingon"})

        assert response.status_code == 422
        assert response.json() == {"error": "validation_failure", "recoverable": False, "field": "language"}

    def test_unknown_session_state(self, client):
        response = client.get("/session/missing/state")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_end_session(self, client):
        session_id = _new_session(client)

        ended = client.delete(f"/session/{session_id}")
        again = client.delete(f"/session/{session_id}")
        state = client.get(f"/session/{session_id}/state")

        assert ended.status_code == 200
        assert ended.json()["completed"] is False
        assert again.status_code == 410
        assert state.status_code == 410

    def test_consent(self, client):
        session_id = _new_session(client)

        data = client.post(f"/session/{session_id}/consent", json={"pii_retention": True}).json()

        assert data["pii_retention"] is True
        assert data["audio_retention"] is False
        assert data["version"] == 2


class TestChatEndpoints:
    def test_inactivity_prompt(self, client, clock):
        session_id = _new_session(client)
        client.post("/chat/text", json={"session_id": session_id, "text": "english"})

        quiet = client.post(f"/session/{session_id}/inactivity").json()
        clock.advance(121)
        prompted = client.post(f"/session/{session_id}/inactivity").json()
        again = client.post(f"/session/{session_id}/inactivity").json()

        assert quiet == {"session_id": session_id, "prompted": False, "response": None}
        assert prompted["prompted"] is True
        assert prompted["response"]["response_text"].startswith("Are you still there?")
        assert again["prompted"] is False

    def test_inactivity_after_expiry(self, client, clock):
        session_id = _new_session(client)
        clock.advance(1801)

        assert client.post(f"/session/{session_id}/inactivity").status_code == 410

    def test_text_turn(self, client):
        session_id = _new_session(client)

        data = client.post("/chat/text", json={"session_id": session_id, "text": "english"}).json()

        assert data["next_state"] == "main_menu"
        assert data["error"] is None
        assert data["suggestions"] == ["Show schemes", "Check eligibility", "Help"]
        state = client.get(f"/session/{session_id}/state").json()
        assert state["state"] == "main_menu"
        assert len(state["history"]) == 2

    def test_turn_errors_come_back_in_the_reply(self, client):
        response = client.post("/chat/text", json={"session_id": "missing", "text": "hello"})

        assert response.status_code == 200
        assert response.json()["error"]["kind"] == "not_found"

    def test_low_confidence_text(self, client):
        session_id = _new_session(client)

        data = client.post(
            "/chat/text", json={"session_id": session_id, "text": "engl", "confidence": 0.1}
        ).json()

        assert data["next_state"] == "language_selection"

    def test_voice_turn_streams_audio(self, client, stt):
        session_id = _new_session(client)
        stt.results.append(STTResult("english", confidence=0.9))

        response = client.post(
            "/chat/voice",
            files={"audio": ("turn.wav", b"RIFF....", "audio/wav")},
            data={"session_id": session_id},
        )

        assert response.status_code == 200
        assert response.headers["x-next-state"] == "main_menu"
        assert response.headers["content-type"].startswith("audio/text")
        assert response.content.decode("utf-8").startswith("I will continue in English.")


# =============================================================================
# Schemes and eligibility
# =============================================================================


class TestSchemeEndpoints:
    def test_list_by_category(self, client):
        data = client.get("/schemes", params={"category": "pension"}).json()

        assert data["total"] == 3
        assert {s["id"] for s in data["schemes"]} == {"widow_pension", "old_age_pension", "disability_pension"}

    def test_get_in_language(self, client):
        data = client.get("/schemes/pmay", params={"language": "hindi"}).json()

        assert data["name"] == "प्रधानमंत्री आवास योजना"
        assert data["language"] == "hindi"

    def test_unknown_scheme(self, client):
        assert client.get("/schemes/nope").status_code == 404

    def test_create_requires_every_language(self, client):
        record = {
            "id": "new_scheme",
            "name": {"english": "New Scheme"},
            "description": _text("Something new"),
            "category": "welfare",
        }

        response = client.post("/schemes", json=record)

        assert response.status_code == 422
        assert response.json()["field"] == "name"

    def test_create_update_and_history(self, client):
        record = {"id": "new_scheme", "name": _text("New Scheme"),
                  "description": _text("Something new"), "category": "welfare"}

        created = client.post("/schemes", json=record)
        updated = client.put("/schemes/new_scheme", json={"website": "https://new.gov.in"})
        current = client.get("/schemes/new_scheme").json()
        history = client.get("/schemes/new_scheme/history").json()

        assert created.status_code == 201
        assert updated.json()["version"] == 2
        assert current["website"] == "https://new.gov.in"
        assert [v["version"] for v in history["versions"]] == [1, 2]

    def test_withdraw(self, client):
        assert client.delete("/schemes/pmsby").status_code == 200
        assert client.get("/schemes/pmsby").status_code == 404
        assert client.delete("/schemes/pmsby").status_code == 404

    def test_eligibility_check(self, client):
        data = client.post("/eligibility/check", json={
            "scheme_id": "old_age_pension",
            "profile": {"age": 65, "income": 50000},
        }).json()

        assert data["eligible"] is True
        assert data["complete"] is True
        assert data["matched"] == ["senior", "low_income"]

    def test_eligibility_check_skips_withdrawn_alternatives(self, client):
        assert client.delete("/schemes/old_age_pension").status_code == 200

        data = client.post("/eligibility/check", json={
            "scheme_id": "widow_pension",
            "profile": {"age": 65, "income": 50000, "is_widow": False},
        }).json()

        assert data["eligible"] is False
        assert "old_age_pension" not in data["alternatives"]
        assert data["alternatives"][:2] == ["pmjdy", "pmsby"]

    def test_metrics(self, client):
        _new_session(client)

        data = client.get("/metrics").json()

        assert data["sessions"]["created"] == 1
        assert data["scheme_cache"]["size"] == 9
