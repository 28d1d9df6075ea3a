"""Unit tests for the n8n workflow forwarder."""
import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from wabot.core.config import WebhookConfig
from wabot.services.outbound import WorkflowForwarder


@pytest.fixture
def forwarder():
    return WorkflowForwarder(WebhookConfig(n8n_url="https://n8n.test/webhook/reply", timeout_seconds=10.0))


class TestPayload:

    def test_payload_fields(self, forwarder):
        payload = forwarder.payload_for("60123", "Hello!", "wamid.1")

        assert payload["to"] == "60123"
        assert payload["message"] == "Hello!"
        assert payload["originalMessageId"] == "wamid.1"
        assert payload["source"] == "ai-chatbot"
        assert payload["timestamp"]

    def test_enabled_flag(self, forwarder):
        assert forwarder.enabled
        assert not WorkflowForwarder(WebhookConfig(n8n_url=None)).enabled


@pytest.mark.asyncio
class TestForward:

    async def test_posts_to_webhook(self, forwarder):
        with patch("httpx.AsyncClient") as mock_client_class:
            client = AsyncMock()
            client.post = AsyncMock(return_value=MagicMock(status_code=200, raise_for_status=MagicMock()))
            mock_client_class.return_value.__aenter__.return_value = client

            status = await forwarder.forward("60123", "Hello!", "wamid.1")

        assert status == 200
        mock_client_class.assert_called_once_with(timeout=10.0)
        args, kwargs = client.post.call_args
        assert args[0] == "https://n8n.test/webhook/reply"
        assert kwargs["json"]["to"] == "60123"

    async def test_http_error_propagates(self, forwarder):
        with patch("httpx.AsyncClient") as mock_client_class:
            client = AsyncMock()
            client.post = AsyncMock(side_effect=httpx.ConnectError("refused"))
            mock_client_class.return_value.__aenter__.return_value = client

            with pytest.raises(httpx.HTTPError):
                await forwarder.forward("60123", "Hello!")

    async def test_not_configured(self):
        with pytest.raises(RuntimeError):
            await WorkflowForwarder(WebhookConfig(n8n_url=None)).forward("60123", "Hello!")
