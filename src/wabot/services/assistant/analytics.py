"""Per-contact conversation analytics for the admin API."""
from collections import Counter
from typing import Any, Dict, List, Optional

from wabot.services.assistant.types import ConversationTurn
from wabot.services.intent.classifier import IntentClassifier
from wabot.services.stores import ConversationStore, ProfileStore


class ConversationAnalytics:
    """Summarises one contact's activity."""

    def __init__(
        self,
        profiles: ProfileStore,
        conversations: ConversationStore,
        classifier: Optional[IntentClassifier] = None,
        topic_window: int = 50,
    ):
        self.profiles = profiles
        self.conversations = conversations
        self.classifier = classifier or IntentClassifier()
        self.topic_window = topic_window

    def topics(self, turns: List[ConversationTurn], top: int = 5) -> List[Dict[str, Any]]:
        """Most frequent intents among the user's turns."""
        counts = Counter(
            self.classifier.classify(turn.text).value
            for turn in turns
            if turn.role == "user"
        )
        return [{"topic": topic, "count": count} for topic, count in counts.most_common(top)]

    def for_user(self, identifier: str) -> Dict[str, Any]:
        profile = self.profiles.get(identifier)
        recent = self.conversations.recent(identifier, self.topic_window, role="user")
        return {
            "totalMessages": profile.total_messages if profile else 0,
            "lastInteraction": profile.last_interaction if profile else None,
            "recentTopics": self.topics(recent),
            "averageResponseTime": self.conversations.average_response_time(identifier),
        }
