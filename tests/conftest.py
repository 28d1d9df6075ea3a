"""
WABOT Test Configuration

Shared fixtures and configuration for pytest.
"""

import asyncio
import sys
from pathlib import Path
from typing import List

import pytest

# Add src/ to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from wabot.core.config import AssistantConfig, LLMConfig, Settings, WebhookConfig  # noqa: E402
from wabot.core.database import Database  # noqa: E402
from wabot.services.assistant.context import StructuredPrompt  # noqa: E402
from wabot.services.llm import BackendError, TextBackend  # noqa: E402
from wabot.services.stores import (  # noqa: E402
    ConversationStore,
    KnowledgeStore,
    MetricsSink,
    ProfileStore,
)


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: fast unit tests"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests that wire several components together"
    )


# =============================================================================
# Fake Backends
# =============================================================================

class FakeBackend(TextBackend):
    """Backend that records every prompt and answers with a fixed text."""

    name = "fake-llm"

    def __init__(self, reply: str = "Fake reply 🤖"):
        self.reply = reply
        self.prompts: List[StructuredPrompt] = []

    async def complete(self, prompt: StructuredPrompt) -> str:
        self.prompts.append(prompt)
        # Yield so concurrent pipeline runs interleave
        await asyncio.sleep(0)
        return self.reply


class FailingBackend(TextBackend):
    """Backend whose every call fails like a dropped connection."""

    name = "failing-llm"

    def __init__(self):
        self.calls = 0

    async def complete(self, prompt: StructuredPrompt) -> str:
        self.calls += 1
        raise BackendError(self.name, "Connection refused")


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def failing_backend() -> FailingBackend:
    return FailingBackend()


# =============================================================================
# Settings Fixtures
# =============================================================================

@pytest.fixture
def test_settings() -> Settings:
    """Settings with no backend credentials and no outbound webhook."""
    return Settings(
        llm=LLMConfig(openai_api_key=None, gemini_api_key=None),
        assistant=AssistantConfig(
            bot_name="WABOT",
            knowledge_limit=3,
            history_window=10,
            unmapped_intent_search="unfiltered",
        ),
        webhook=WebhookConfig(n8n_url=None),
    )


@pytest.fixture
def llm_config() -> LLMConfig:
    return LLMConfig(
        openai_api_key="sk-test",
        openai_model="gpt-3.5-turbo",
        gemini_api_key="gemini-test",
        gemini_model="gemini-1.5-pro",
        gemini_base_url="https://generativelanguage.googleapis.com/v1beta",
        temperature=0.7,
        max_tokens=500,
        presence_penalty=0.1,
        frequency_penalty=0.1,
        timeout_seconds=30.0,
    )


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture
def db():
    """In-memory SQLite database with the full schema."""
    database = Database(in_memory=True)
    yield database
    database.close()


@pytest.fixture
def knowledge_store(db) -> KnowledgeStore:
    return KnowledgeStore(db)


@pytest.fixture
def profile_store(db) -> ProfileStore:
    return ProfileStore(db)


@pytest.fixture
def conversation_store(db) -> ConversationStore:
    return ConversationStore(db)


@pytest.fixture
def metrics_sink(db) -> MetricsSink:
    return MetricsSink(db)


# =============================================================================
# Sample Data Fixtures
# =============================================================================

@pytest.fixture
def sample_knowledge(knowledge_store):
    """A few entries across categories; one inactive."""
    ids = {
        "pricing_plans": knowledge_store.add(
            "pricing", "price, pricing, plan", "What are your pricing plans?", "Plans start at $19/mo", priority=3
        ),
        "free_trial": knowledge_store.add(
            "pricing", "free trial, demo", "Do you offer a free trial?", "Yes, 14 days free.", priority=4
        ),
        "api": knowledge_store.add(
            "integration", "api, webhook, n8n", "Do you provide an API?", "Yes, a REST API and webhooks.", priority=3
        ),
        "retired": knowledge_store.add(
            "pricing", "price, legacy", "What was the legacy price?", "Old pricing.", priority=9, is_active=False
        ),
    }
    return ids
