"""Unit tests for ResponseGenerator and its deterministic fallback."""
import pytest

from wabot.services.assistant.context import ContextAssembler
from wabot.services.assistant.generator import (
    ERROR_REPLY,
    FALLBACK_MODEL,
    TEMPLATES,
    ResponseGenerator,
)
from wabot.services.assistant.types import KnowledgeEntry
from wabot.services.intent.classifier import Intent
from wabot.services.llm import BackendError


def _has_emoji(text: str) -> bool:
    return any(ord(c) >= 0x1F300 or 0x2600 <= ord(c) <= 0x27BF for c in text)


@pytest.fixture
def assembler():
    return ContextAssembler(bot_name="WABOT")


class TestTemplates:

    def test_one_template_per_intent(self):
        assert set(TEMPLATES) == set(Intent)

    @pytest.mark.parametrize("intent", list(Intent))
    def test_template_shape(self, intent):
        text = ResponseGenerator().template_for(intent, "x")

        assert text.strip()
        assert len(text) < 300
        assert _has_emoji(text)
        assert "{" not in text

    def test_general_echoes_message(self):
        message = "do you sell {curly} things?"
        text = ResponseGenerator().template_for(Intent.GENERAL, message)
        assert message in text

    def test_bot_name_used(self):
        text = ResponseGenerator(bot_name="Acme").template_for(Intent.GREETING, "hi")
        assert "Welcome to Acme" in text

    def test_error_reply_is_generic(self):
        assert "trouble processing your message" in ERROR_REPLY


class TestFallback:

    @pytest.mark.parametrize("intent", list(Intent))
    def test_total_for_every_intent(self, assembler, intent):
        context = assembler.assemble("something", intent, [], None, [])
        assert ResponseGenerator().fallback(context)

    def test_uses_top_knowledge_entry(self, assembler):
        entries = [
            KnowledgeEntry(category="pricing", question="Q", answer="Plans start at $19/mo", priority=5),
            KnowledgeEntry(category="support", question="Q2", answer="Other", priority=1),
        ]
        context = assembler.assemble("price", Intent.PRICING, entries, None, [])

        text = ResponseGenerator().fallback(context)

        assert text.startswith("Plans start at $19/mo")
        assert text.endswith("Is there anything else you'd like to know about pricing?")


@pytest.mark.asyncio
class TestGenerate:

    async def test_no_backend_uses_fallback(self, assembler):
        context = assembler.assemble("hi", Intent.GREETING, [], None, [])
        generator = ResponseGenerator()

        reply = await generator.generate(context, "hi")

        assert reply.backend == FALLBACK_MODEL
        assert reply.text == generator.template_for(Intent.GREETING, "hi")

    async def test_backend_receives_structured_prompt(self, assembler, fake_backend):
        context = assembler.assemble("hi", Intent.GREETING, [], None, [])

        reply = await ResponseGenerator(fake_backend).generate(context, "hi")

        assert reply.text == fake_backend.reply
        assert reply.backend == "fake-llm"
        assert fake_backend.prompts[0].turns[-1] == ("user", "hi")

    async def test_backend_error_propagates(self, assembler, failing_backend):
        context = assembler.assemble("hi", Intent.GREETING, [], None, [])

        with pytest.raises(BackendError):
            await ResponseGenerator(failing_backend).generate(context, "hi")

    async def test_backend_name(self, fake_backend):
        assert ResponseGenerator(fake_backend).backend_name == "fake-llm"
        assert ResponseGenerator().backend_name == FALLBACK_MODEL
