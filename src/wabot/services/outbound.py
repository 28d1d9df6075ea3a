"""Forwarding replies to the n8n workflow webhook."""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from wabot.core.config import WebhookConfig
from wabot.core.logging import logger


class WorkflowForwarder:
    """Posts each reply to the configured n8n webhook so the workflow can deliver it."""

    SOURCE = "ai-chatbot"

    def __init__(self, config: WebhookConfig):
        self.url = config.n8n_url
        self.timeout = config.timeout_seconds

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def payload_for(self, to: str, message: str, original_message_id: Optional[str]) -> Dict[str, Any]:
        return {
            "to": to,
            "message": message,
            "originalMessageId": original_message_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "source": self.SOURCE,
        }

    async def forward(self, to: str, message: str, original_message_id: Optional[str] = None) -> int:
        """
        Send one reply. Returns the HTTP status code.

        Raises:
            httpx.HTTPError: network failure, timeout or non-2xx response
            RuntimeError: no webhook configured
        """
        if not self.url:
            raise RuntimeError("N8N_WEBHOOK_URL not configured")

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                self.url,
                json=self.payload_for(to, message, original_message_id),
                headers={"Content-Type": "application/json"},
            )
            response.raise_for_status()

        logger.info(f"Sent to n8n: {response.status_code}")
        return response.status_code
