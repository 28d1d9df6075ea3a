"""Intent classifier - ordered keyword patterns over the lower-cased message."""
import re
from enum import Enum
from typing import List, Pattern, Tuple


class Intent(str, Enum):
    """Coarse label for an inbound message, used to pick the reply strategy."""
    GREETING = "greeting"
    PRICING = "pricing"
    SUPPORT = "support"
    COMPANY = "company"
    WHATSAPP = "whatsapp"
    AI = "ai"
    KWAP = "kwap"
    TECHNICAL = "technical"
    GOODBYE = "goodbye"
    GENERAL = "general"


# Declaration order is the match priority: the first pattern that hits wins.
INTENT_RULES: List[Tuple[Intent, Pattern[str]]] = [
    (Intent.GREETING, re.compile(r"^(hi|hello|hey|good morning|good afternoon|good evening)")),
    (Intent.PRICING, re.compile(r"(price|pricing|cost|plan|subscription|fee|payment|money)")),
    (Intent.SUPPORT, re.compile(r"(help|support|problem|issue|trouble|error|assistance)")),
    (Intent.COMPANY, re.compile(r"(about|company|business|service|what do you|who are you)")),
    (Intent.WHATSAPP, re.compile(r"(whatsapp|integration|connect|phone|message|send)")),
    (Intent.AI, re.compile(r"(ai|artificial intelligence|smart|intelligent|gpt|gemini)")),
    (Intent.KWAP, re.compile(r"(kwap|pension|malaysia|retirement|inquiry|ic)")),
    (Intent.TECHNICAL, re.compile(r"(api|integration|webhook|setup|configuration|install)")),
    (Intent.GOODBYE, re.compile(r"(bye|goodbye|see you|thanks|thank you)")),
]


class IntentClassifier:
    """Maps free text to an Intent.

    Holds nothing but the static rule table, so one instance can be shared
    between concurrent requests.
    """

    def __init__(self, rules: List[Tuple[Intent, Pattern[str]]] = INTENT_RULES):
        self.rules = rules

    def classify(self, text: str) -> Intent:
        """Return the first matching intent, or Intent.GENERAL."""
        lowered = (text or "").lower()
        for intent, pattern in self.rules:
            if pattern.search(lowered):
                return intent
        return Intent.GENERAL
