"""Knowledge retrieval for a classified message."""
from typing import Dict, List, Optional

from wabot.core.logging import logger
from wabot.services.assistant.types import KnowledgeEntry, Outcome
from wabot.services.intent.classifier import Intent
from wabot.services.stores import KnowledgeStore


# Every intent is listed; None means "no category filter".
CATEGORY_BY_INTENT: Dict[Intent, Optional[str]] = {
    Intent.GREETING: None,
    Intent.PRICING: "pricing",
    Intent.SUPPORT: "support",
    Intent.COMPANY: "company",
    Intent.WHATSAPP: "whatsapp",
    Intent.AI: "ai",
    Intent.KWAP: "kwap",
    Intent.TECHNICAL: "integration",
    Intent.GOODBYE: None,
    Intent.GENERAL: None,
}

UNMAPPED_UNFILTERED = "unfiltered"
UNMAPPED_SKIP = "skip"


class KnowledgeRetriever:
    """Looks up at most `limit` active knowledge entries for a message."""

    def __init__(self, store: KnowledgeStore, limit: int = 3, unmapped_policy: str = UNMAPPED_UNFILTERED):
        if unmapped_policy not in (UNMAPPED_UNFILTERED, UNMAPPED_SKIP):
            raise ValueError(f"Unknown unmapped intent policy: {unmapped_policy}")
        self.store = store
        self.limit = limit
        self.unmapped_policy = unmapped_policy

    def search(self, query: str, intent: Intent) -> Outcome[List[KnowledgeEntry]]:
        """Query the store; failures come back as Outcome.failure."""
        category = CATEGORY_BY_INTENT[intent]
        if category is None and self.unmapped_policy == UNMAPPED_SKIP:
            return Outcome.success([])

        try:
            rows = self.store.search(query, category, self.limit)
        except Exception as e:
            return Outcome.failure(e)

        entries = [entry for entry in rows if entry.is_active]
        entries.sort(key=lambda entry: entry.priority, reverse=True)
        return Outcome.success(entries[:self.limit])

    def retrieve(self, query: str, intent: Intent) -> List[KnowledgeEntry]:
        """Best-effort lookup: a store failure is logged and yields []."""
        outcome = self.search(query, intent)
        if not outcome.ok:
            logger.error(f"Knowledge base search error: {outcome.error}")
        return outcome.unwrap_or([])
