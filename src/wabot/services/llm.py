"""
Text-generation backends.

Both backends take the same StructuredPrompt and return one completion.
Anything that goes wrong on the way (network, timeout, non-2xx, payload
shape) is raised as BackendError so the caller can tell a backend failure
apart from a bug.
"""
from typing import Any, Dict, List, Optional

import httpx
from openai import AsyncOpenAI, OpenAIError

from wabot.core.config import BackendKind, LLMConfig
from wabot.core.logging import logger
from wabot.services.assistant.context import StructuredPrompt


class BackendError(Exception):
    """A text-generation backend call failed."""

    def __init__(self, backend: str, message: str):
        super().__init__(f"[{backend}] {message}")
        self.backend = backend


class TextBackend:
    """Interface shared by the generation backends."""

    name: str = "backend"

    async def complete(self, prompt: StructuredPrompt) -> str:
        raise NotImplementedError


class OpenAIBackend(TextBackend):
    """OpenAI chat completions."""

    name = "openai-gpt"

    def __init__(self, config: LLMConfig, client: Optional[AsyncOpenAI] = None):
        self.config = config
        self.client = client or AsyncOpenAI(
            api_key=config.openai_api_key,
            base_url=config.openai_base_url,
            timeout=config.timeout_seconds,
            max_retries=0,
        )
        logger.info(f"OpenAI backend initialized: {config.openai_model}")

    def messages_for(self, prompt: StructuredPrompt) -> List[Dict[str, str]]:
        messages = [{"role": "system", "content": block} for block in prompt.system]
        messages.extend({"role": role, "content": text} for role, text in prompt.turns)
        return messages

    async def complete(self, prompt: StructuredPrompt) -> str:
        try:
            resp = await self.client.chat.completions.create(
                model=self.config.openai_model,
                messages=self.messages_for(prompt),
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
                presence_penalty=self.config.presence_penalty,
                frequency_penalty=self.config.frequency_penalty,
            )
        except OpenAIError as e:
            logger.error(f"OpenAI call failed: {e}")
            raise BackendError(self.name, str(e)) from e

        try:
            content = resp.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            raise BackendError(self.name, f"Invalid API response format: {e}") from e
        if not content or not content.strip():
            raise BackendError(self.name, "Empty completion")
        return content.strip()


class GeminiBackend(TextBackend):
    """Google Gemini generateContent over REST."""

    name = "google-gemini"

    def __init__(self, config: LLMConfig):
        self.config = config
        self.base_url = config.gemini_base_url.rstrip('/')
        logger.info(f"Gemini backend initialized: {config.gemini_model}")

    @property
    def url(self) -> str:
        return f"{self.base_url}/models/{self.config.gemini_model}:generateContent"

    def payload_for(self, prompt: StructuredPrompt) -> Dict[str, Any]:
        # Gemini calls the assistant side "model"
        contents = [
            {"role": "user" if role == "user" else "model", "parts": [{"text": text}]}
            for role, text in prompt.turns
        ]
        return {
            "systemInstruction": {"parts": [{"text": prompt.system_text}]},
            "contents": contents,
            "generationConfig": {
                "temperature": self.config.temperature,
                "maxOutputTokens": self.config.max_tokens,
            },
        }

    async def complete(self, prompt: StructuredPrompt) -> str:
        try:
            async with httpx.AsyncClient(timeout=self.config.timeout_seconds) as client:
                response = await client.post(
                    self.url,
                    params={"key": self.config.gemini_api_key},
                    json=self.payload_for(prompt),
                    headers={"Content-Type": "application/json"},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            logger.error(f"Gemini request timed out after {self.config.timeout_seconds}s")
            raise BackendError(self.name, "Request timed out") from e
        except httpx.HTTPStatusError as e:
            logger.error(f"Gemini HTTP error: {e.response.status_code}")
            raise BackendError(self.name, f"HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Gemini request failed: {e}")
            raise BackendError(self.name, str(e)) from e

        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise BackendError(self.name, f"Invalid API response format: {e}") from e
        if not text or not text.strip():
            raise BackendError(self.name, "Empty completion")
        return text.strip()


def build_backend(config: LLMConfig) -> Optional[TextBackend]:
    """Backend for the configured credentials, or None for template-only replies."""
    kind = config.backend_kind
    if kind is BackendKind.OPENAI:
        return OpenAIBackend(config)
    if kind is BackendKind.GEMINI:
        return GeminiBackend(config)
    if kind is BackendKind.NONE:
        return None
    raise ValueError(f"Unknown backend kind: {kind}")
