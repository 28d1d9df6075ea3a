"""Post-reply bookkeeping: metrics, profile upsert and conversation log."""
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List

from wabot.core.logging import logger
from wabot.services.assistant.types import Outcome
from wabot.services.stores import ConversationStore, MetricsSink, ProfileStore


class InteractionRecorder:
    """Writes everything about one exchange.

    Each write stands alone: a failure is logged and the remaining writes
    still run. Nothing is raised to the caller.
    """

    def __init__(self, profiles: ProfileStore, conversations: ConversationStore, metrics: MetricsSink):
        self.profiles = profiles
        self.conversations = conversations
        self.metrics = metrics

    def _attempt(self, label: str, write: Callable[[], None]) -> Outcome[None]:
        try:
            write()
            return Outcome.success()
        except Exception as e:
            logger.error(f"Recording step '{label}' failed: {e}")
            return Outcome.failure(e)

    def record(
        self,
        identifier: str,
        user_message: str,
        assistant_message: str,
        intent: str,
        backend: str,
        latency_ms: int,
        knowledge_hits: int,
    ) -> None:
        outcomes: List[Outcome[None]] = [
            self._attempt("response_time", lambda: self.metrics.record(
                "response_time", latency_ms, {"model": backend, "intent": intent}
            )),
            self._attempt("knowledge_base_hits", lambda: self.metrics.record(
                "knowledge_base_hits", knowledge_hits, {"intent": intent}
            )),
            self._attempt("intent_detected", lambda: self.metrics.record(
                "intent_detected", 1, {"intent": intent}
            )),
            self._attempt("profile", lambda: self.profiles.upsert(
                identifier,
                context={
                    "lastIntent": intent,
                    "lastInteraction": datetime.now(timezone.utc).isoformat(),
                },
            )),
            self._attempt("conversation", lambda: self._append_exchange(
                identifier, user_message, assistant_message, backend, latency_ms,
                {"intent": intent, "knowledgeHits": knowledge_hits},
            )),
        ]

        failed = sum(1 for outcome in outcomes if not outcome.ok)
        if failed:
            logger.warning(f"Recorded exchange for {identifier} with {failed} failed write(s)")

    def _append_exchange(
        self,
        identifier: str,
        user_message: str,
        assistant_message: str,
        backend: str,
        latency_ms: int,
        metadata: Dict[str, Any],
    ) -> None:
        self.conversations.append(identifier, user_message, "user")
        self.conversations.append(
            identifier, assistant_message, "assistant",
            backend=backend, latency_ms=latency_ms, metadata=metadata,
        )
