"""
Assistant pipeline - one inbound message in, one reply out.

Flow:
1. Classify the message into an Intent
2. Retrieve supporting knowledge (best effort)
3. Load the contact's profile and recent history
4. Assemble the response context
5. Generate the reply (backend, or deterministic fallback)
6. Record metrics, profile and conversation

A reply is always produced. Backend failures fall back to the template
for the detected intent; anything else unexpected is answered with a
generic apology.
"""
import asyncio
import time
from typing import List, Optional

from wabot.core.config import Settings, settings as default_settings
from wabot.core.database import Database
from wabot.core.logging import logger
from wabot.services.assistant.context import ContextAssembler
from wabot.services.assistant.generator import ERROR_REPLY, FALLBACK_MODEL, ResponseGenerator
from wabot.services.assistant.recorder import InteractionRecorder
from wabot.services.assistant.retriever import KnowledgeRetriever
from wabot.services.assistant.types import AssistantReply, ConversationTurn, GeneratedReply
from wabot.services.intent.classifier import IntentClassifier
from wabot.services.llm import BackendError, TextBackend, build_backend
from wabot.services.stores import ConversationStore, KnowledgeStore, MetricsSink, ProfileStore


ERROR_INTENT = "error"


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class AssistantPipeline:
    """Runs the reply pipeline for one message at a time.

    Holds no per-request state; concurrent calls only share the stores.
    """

    def __init__(
        self,
        classifier: IntentClassifier,
        retriever: KnowledgeRetriever,
        assembler: ContextAssembler,
        generator: ResponseGenerator,
        recorder: InteractionRecorder,
        profiles: ProfileStore,
        conversations: ConversationStore,
    ):
        self.classifier = classifier
        self.retriever = retriever
        self.assembler = assembler
        self.generator = generator
        self.recorder = recorder
        self.profiles = profiles
        self.conversations = conversations

    @property
    def model_name(self) -> str:
        return self.generator.backend_name

    async def respond(
        self,
        message: str,
        identifier: str,
        history: Optional[List[ConversationTurn]] = None,
    ) -> AssistantReply:
        """
        Produce the reply for one inbound message.

        Args:
            message: Raw user text
            identifier: Stable contact id (phone number)
            history: Prior turns, oldest first. Loaded from the conversation
                store when omitted.

        Returns:
            AssistantReply. Never raises.
        """
        started = time.monotonic()
        try:
            return await self._respond(message, identifier, history, started)
        except Exception as e:
            logger.error(f"Enhanced response error for {identifier}: {e}", exc_info=True)
            return AssistantReply(
                response=ERROR_REPLY,
                intent=ERROR_INTENT,
                knowledge_used=False,
                response_time_ms=_elapsed_ms(started),
                model=FALLBACK_MODEL,
            )

    async def _respond(
        self,
        message: str,
        identifier: str,
        history: Optional[List[ConversationTurn]],
        started: float,
    ) -> AssistantReply:
        intent = self.classifier.classify(message)
        # Store calls are blocking SQLAlchemy, keep them off the event loop
        knowledge = await asyncio.to_thread(self.retriever.retrieve, message, intent)
        profile = await asyncio.to_thread(self.profiles.get, identifier)
        if history is None:
            history = await asyncio.to_thread(self.conversations.recent, identifier, self.assembler.history_window)

        context = self.assembler.assemble(message, intent, knowledge, profile, history)
        logger.debug(f"Context for {identifier}: intent={intent.value}, knowledge={len(knowledge)}, history={len(context.history)}")

        try:
            reply = await self.generator.generate(context, message)
        except BackendError as e:
            logger.error(f"Backend failure, answering with fallback: {e}")
            reply = GeneratedReply(text=self.generator.fallback(context), backend=FALLBACK_MODEL)

        latency_ms = _elapsed_ms(started)
        await asyncio.to_thread(
            self.recorder.record,
            identifier=identifier,
            user_message=message,
            assistant_message=reply.text,
            intent=intent.value,
            backend=reply.backend,
            latency_ms=latency_ms,
            knowledge_hits=len(knowledge),
        )

        logger.info(
            f"Reply for {identifier} - intent: {intent.value}, knowledge used: {bool(knowledge)}, "
            f"model: {reply.backend}, {latency_ms}ms"
        )
        return AssistantReply(
            response=reply.text,
            intent=intent.value,
            knowledge_used=bool(knowledge),
            response_time_ms=latency_ms,
            model=reply.backend,
        )


def build_pipeline(
    db: Database,
    config: Optional[Settings] = None,
    backend: Optional[TextBackend] = None,
) -> AssistantPipeline:
    """
    Wire the pipeline against one database.

    The backend is resolved from the configured credentials unless one is
    passed in.
    """
    config = config or default_settings
    if backend is None:
        backend = build_backend(config.llm)

    profiles = ProfileStore(db)
    conversations = ConversationStore(db)
    assistant = config.assistant

    return AssistantPipeline(
        classifier=IntentClassifier(),
        retriever=KnowledgeRetriever(
            KnowledgeStore(db),
            limit=assistant.knowledge_limit,
            unmapped_policy=assistant.unmapped_intent_search,
        ),
        assembler=ContextAssembler(bot_name=assistant.bot_name, history_window=assistant.history_window),
        generator=ResponseGenerator(backend, bot_name=assistant.bot_name),
        recorder=InteractionRecorder(profiles, conversations, MetricsSink(db)),
        profiles=profiles,
        conversations=conversations,
    )
