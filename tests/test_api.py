"""
Tests for the WABOT HTTP API.

Uses FastAPI's TestClient against an in-memory database.
"""

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from fastapi.testclient import TestClient

from wabot.main import create_app


@pytest.fixture
def client(db, test_settings):
    app = create_app(database=db, config=test_settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def offline_client(test_settings):
    """App whose database failed to come up at startup."""
    with patch("wabot.main.get_db", side_effect=RuntimeError("Access denied for user")):
        app = create_app(config=test_settings)
        with TestClient(app) as test_client:
            yield test_client


def _send(client, message="hi", sender="60123", **extra):
    return client.post("/webhook/message", json={"message": message, "from": sender, **extra})


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestWebhook:

    def test_reply(self, client):
        response = _send(client, "hi", "60123", messageId="wamid.1")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["from"] == "60123"
        assert data["response"].startswith("Hello! 👋")
        assert data["metadata"]["intent"] == "greeting"
        assert data["metadata"]["knowledgeUsed"] is False
        assert data["metadata"]["model"] == "fallback"
        assert isinstance(data["metadata"]["responseTime"], int)
        assert data["forwarded"] is False

    def test_missing_fields(self, client):
        response = client.post("/webhook/message", json={"message": "hi"})

        assert response.status_code == 400
        assert "Missing required fields" in response.json()["error"]

    def test_invalid_json(self, client):
        response = client.post(
            "/webhook/message",
            content="not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert "error" in response.json()

    def test_non_object_body(self, client):
        response = client.post("/webhook/message", json=["hi"])
        assert response.status_code == 400

    def test_forwarded_to_n8n(self, client):
        forwarder = MagicMock(enabled=True, forward=AsyncMock(return_value=200))
        client.app.state.forwarder = forwarder

        response = _send(client, "hi", "60123", messageId="wamid.2")

        assert response.json()["forwarded"] is True
        forwarder.forward.assert_awaited_once()
        args = forwarder.forward.await_args.args
        assert args[0] == "60123"
        assert args[2] == "wamid.2"

    def test_forward_failure_still_replies(self, client):
        client.app.state.forwarder = MagicMock(
            enabled=True,
            forward=AsyncMock(side_effect=httpx.ConnectError("n8n down")),
        )

        response = _send(client)

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["forwarded"] is False

    def test_uses_knowledge_base(self, client):
        client.post("/api/admin/knowledge", json={
            "category": "pricing",
            "keywords": "price, pricing",
            "question": "How much?",
            "answer": "Plans start at $19/mo",
        })

        data = _send(client, "what is your pricing").json()

        assert data["metadata"]["knowledgeUsed"] is True
        assert data["response"].startswith("Plans start at $19/mo")


class TestSend:

    def test_send_forwards(self, client):
        forwarder = MagicMock(enabled=True, forward=AsyncMock(return_value=200))
        client.app.state.forwarder = forwarder

        response = client.post("/api/send", json={"to": "60123", "message": "Promo today!"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["result"] == {"status": "success", "statusCode": 200}
        assert data["timestamp"]
        forwarder.forward.assert_awaited_once_with("60123", "Promo today!")

    def test_send_missing_fields(self, client):
        response = client.post("/api/send", json={"to": "60123"})

        assert response.status_code == 400
        assert response.json()["error"] == "Missing required fields: to, message"

    def test_send_without_webhook_is_skipped(self, client):
        response = client.post("/api/send", json={"to": "60123", "message": "Promo today!"})

        assert response.status_code == 200
        assert response.json()["result"]["status"] == "skipped"

    def test_send_forward_failure(self, client):
        client.app.state.forwarder = MagicMock(
            enabled=True,
            forward=AsyncMock(side_effect=httpx.ConnectError("n8n down")),
        )

        response = client.post("/api/send", json={"to": "60123", "message": "Promo today!"})

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to send message"
        assert "n8n down" in response.json()["details"]


class TestConversation:

    def test_history_and_profile(self, client):
        _send(client, "hi", "60777")

        response = client.get("/api/conversation/60777")

        assert response.status_code == 200
        data = response.json()
        assert [turn["role"] for turn in data["history"]] == ["user", "assistant"]
        assert data["totalStored"] == 2
        assert data["profile"]["totalMessages"] == 1
        assert data["databaseEnabled"] is True

    def test_unknown_contact(self, client):
        data = client.get("/api/conversation/60000").json()

        assert data["history"] == []
        assert data["profile"] is None


class TestKnowledgeAdmin:

    def _create(self, client, **overrides):
        body = {
            "category": "support",
            "keywords": "help, support",
            "question": "I need help",
            "answer": "We're here to help! 🛠️",
            "priority": 4,
            **overrides,
        }
        return client.post("/api/admin/knowledge", json=body)

    def test_create_and_list(self, client):
        created = self._create(client)
        assert created.status_code == 200
        assert created.json()["id"]

        listing = client.get("/api/admin/knowledge", params={"category": "support"}).json()

        assert listing["success"] is True
        assert listing["pagination"]["total"] == 1
        assert listing["data"][0]["question"] == "I need help"

    def test_create_missing_fields(self, client):
        response = client.post("/api/admin/knowledge", json={"category": "support"})

        assert response.status_code == 400
        assert "keywords" in response.json()["error"]

    def test_update(self, client):
        entry_id = self._create(client).json()["id"]

        response = client.put(f"/api/admin/knowledge/{entry_id}", json={"answer": "New answer", "is_active": False})

        assert response.status_code == 200
        row = client.get("/api/admin/knowledge").json()["data"][0]
        assert row["answer"] == "New answer"
        assert row["is_active"] is False
        assert row["question"] == "I need help"

    def test_update_unknown(self, client):
        response = client.put("/api/admin/knowledge/999", json={"answer": "x"})
        assert response.status_code == 404

    def test_delete(self, client):
        entry_id = self._create(client).json()["id"]

        assert client.delete(f"/api/admin/knowledge/{entry_id}").status_code == 200
        assert client.delete(f"/api/admin/knowledge/{entry_id}").status_code == 404


class TestAnalytics:

    def test_summary(self, client):
        _send(client, "hi", "60123")
        _send(client, "what is the price", "60456")

        data = client.get("/api/admin/analytics").json()

        analytics = data["analytics"]
        assert analytics["intents"]["count"] == 2
        assert analytics["responseTime"]["count"] == 2
        assert analytics["knowledgeHits"]["count"] == 2
        assert analytics["totalConversations"] == 4
        assert analytics["totalUsers"] == 2

    def test_user_analytics(self, client):
        _send(client, "what is the price", "60123")
        _send(client, "how much is the plan", "60123")

        data = client.get("/api/admin/users/60123/analytics").json()

        assert data["phoneNumber"] == "60123"
        assert data["analytics"]["totalMessages"] == 2
        assert data["analytics"]["recentTopics"] == [{"topic": "pricing", "count": 2}]

    def test_database_status(self, client):
        data = client.get("/api/admin/database-status").json()

        assert data["database"]["connected"] is True
        assert data["database"]["ready"] is True
        assert data["database"]["dialect"] == "sqlite"


class TestDatabaseUnavailable:
    """Startup survived a database failure."""

    def test_admin_endpoints_unavailable(self, offline_client):
        assert offline_client.get("/api/admin/knowledge").status_code == 503
        assert offline_client.get("/api/admin/analytics").status_code == 503
        assert offline_client.get("/api/admin/users/60123/analytics").status_code == 503
        assert offline_client.delete("/api/admin/knowledge/1").status_code == 503

    def test_webhook_uses_basic_reply(self, offline_client):
        response = _send(offline_client, "hi")

        assert response.status_code == 200
        data = response.json()
        assert data["response"].startswith("Hello! 👋")
        assert data["metadata"] == {"model": "basic", "databaseEnabled": False}

    def test_conversation_without_database(self, offline_client):
        data = offline_client.get("/api/conversation/60123").json()
        assert data["databaseEnabled"] is False

    def test_database_status_reports_error(self, offline_client):
        data = offline_client.get("/api/admin/database-status").json()

        assert data["database"]["connected"] is False
        assert data["database"]["ready"] is False
        assert "Access denied" in data["database"]["error"]
