import pytest
from fastapi.testclient import TestClient

from app.dependencies import get_orchestrator
from app.main import app
from memory.session_cache import SessionCache
from orchestration.orchestrator import ConversationOrchestrator


@pytest.fixture
def client(empty_store, generator, prompts, clock):
    orchestrator = ConversationOrchestrator(
        store=empty_store,
        generator=generator,
        prompts=prompts,
        cache=SessionCache(clock=clock),
        clock=clock,
    )
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_events_reply_in_order(client, generator, prompts):
    response = client.post("/v1/events", json={"events": [
        {"user_id": "U1", "text": "你好"},
        {"user_id": "U2", "text": "", "message_type": "sticker"},
        {"user_id": "U1", "text": "/tools", "delivery_timestamp": "2024-05-17T10:00:00+08:00"},
    ]})

    assert response.status_code == 200
    replies = response.json()["replies"]
    assert [r["user_id"] for r in replies] == ["U1", "U2", "U1"]
    assert [r["text"] for r in replies] == [generator.reply, prompts.unsupported_content, prompts.tools_text]


def test_events_rejects_missing_user(client):
    response = client.post("/v1/events", json={"events": [{"text": "hi"}]})
    assert response.status_code == 422


def test_stats_without_backend(client):
    response = client.get("/v1/users/U1/stats")
    assert response.status_code == 200
    assert response.json() == {"user_id": "U1", "distinct_session_count": 0, "total_turn_count": 0}


def test_health_reports_backend(client):
    body = client.get("/health").json()
    assert body["status"] == "ok"
    assert body["backend"] == "none"
    assert "/clear" in body["commands"]
