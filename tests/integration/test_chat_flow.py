"""
tests/integration/test_chat_flow.py — Test de integración del flujo de chat.

Levanta la app completa con TestClient (lifespan incluido: crea la BD
in-memory en startup) y recorre una sesión de principio a fin:
  session/start → saludo → mensajes con hechos → perfil → history
  → session/end → sessions → borrado

Gemini se mockea parcheando el backend que inyecta dependencies.get_generator.

Ejecución:
    pytest tests/integration/ -v
"""

from unittest.mock import AsyncMock, patch

import pytest
from starlette.testclient import TestClient

from main import app
from services.persona import greeting_templates


# ── Fixtures ──────────────────────────────────────────────────────────────────


@pytest.fixture()
def generator():
    fake = AsyncMock(return_value="Denver sounds amazing! What do you do there?")
    with patch("dependencies.generate", new=fake):
        yield fake


@pytest.fixture()
def api(generator):
    """TestClient con lifespan activado."""
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client


# ── Tests ─────────────────────────────────────────────────────────────────────


class TestChatFlow:
    def test_full_session(self, api, generator):
        start = api.post("/api/session/start", json={"userId": "flow_user"})
        assert start.status_code == 200
        session_id = start.json()["sessionId"]

        def send(message: str) -> str:
            resp = api.post(
                "/api/message",
                json={"userId": "flow_user", "sessionId": session_id, "message": message},
            )
            assert resp.status_code == 200, resp.text
            return resp.json()["response"]

        # Saludo al inicio: sin Gemini
        assert send("hello") in greeting_templates(None)
        generator.assert_not_awaited()

        # Hechos del usuario → perfil
        reply = send("My name is Sam and I live in Denver.")
        assert reply == "Denver sounds amazing! What do you do there?"
        generator.assert_awaited_once()

        # El segundo prompt ya incluye la memoria
        send("I love hiking")
        (prompt,), _ = generator.await_args
        assert "You're talking with Sam." in prompt
        assert "- Location: Denver" in prompt
        assert "Them: My name is Sam and I live in Denver." in prompt

        profile = api.get("/api/profile/flow_user").json()["profile"]
        assert profile["name"] == "Sam"
        assert profile["preferences"]["location"] == "Denver"
        assert profile["preferences"]["interests"] == ["hiking"]
        assert profile["totalInteractions"] == 2

        history = api.get(f"/api/history/flow_user/{session_id}").json()["messages"]
        assert len(history) == 6
        assert [m["role"] for m in history] == ["user", "assistant"] * 3

        end = api.post(
            "/api/session/end", json={"userId": "flow_user", "sessionId": session_id}
        )
        assert end.json() == {"message": "Session ended successfully"}

        sessions = api.get("/api/sessions/flow_user").json()["sessions"]
        assert sessions[0]["summary"] == "Discussed hiking (6 messages)"

        # La memoria sobrevive al final de la sesión
        assert send("hi") in greeting_templates("Sam")

        assert api.delete("/api/user/flow_user").status_code == 200
        assert api.get("/api/profile/flow_user").json() == {"profile": None}

    def test_identity_question(self, api, generator):
        resp = api.post(
            "/api/message",
            json={"userId": "u1", "sessionId": "s1", "message": "Are you a bot?"},
        )
        assert resp.status_code == 200
        assert resp.json()["response"].startswith("What? No, I'm Alex!")
        generator.assert_not_awaited()
