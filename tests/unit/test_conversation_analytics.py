"""Unit tests for per-contact conversation analytics."""
from wabot.services.assistant.analytics import ConversationAnalytics
from wabot.services.assistant.types import ConversationTurn


class TestTopics:

    def test_counts_user_turns_only(self, profile_store, conversation_store):
        analytics = ConversationAnalytics(profile_store, conversation_store)
        turns = [
            ConversationTurn(role="user", text="what is the price"),
            ConversationTurn(role="assistant", text="hi there"),
            ConversationTurn(role="user", text="how much is the plan"),
            ConversationTurn(role="user", text="hello"),
        ]

        assert analytics.topics(turns) == [
            {"topic": "pricing", "count": 2},
            {"topic": "greeting", "count": 1},
        ]

    def test_top_five(self, profile_store, conversation_store):
        analytics = ConversationAnalytics(profile_store, conversation_store)
        texts = ["hi", "price", "problem", "about", "whatsapp", "kwap", "bye"]
        turns = [ConversationTurn(role="user", text=t) for t in texts]

        assert len(analytics.topics(turns)) == 5


class TestForUser:

    def test_unknown_contact(self, profile_store, conversation_store):
        result = ConversationAnalytics(profile_store, conversation_store).for_user("nobody")

        assert result == {
            "totalMessages": 0,
            "lastInteraction": None,
            "recentTopics": [],
            "averageResponseTime": None,
        }

    def test_known_contact(self, profile_store, conversation_store):
        profile_store.upsert("60123")
        conversation_store.append("60123", "what is the price", "user")
        conversation_store.append("60123", "Plans start at $19/mo", "assistant", backend="fallback", latency_ms=40)

        result = ConversationAnalytics(profile_store, conversation_store).for_user("60123")

        assert result["totalMessages"] == 1
        assert result["lastInteraction"] is not None
        assert result["recentTopics"] == [{"topic": "pricing", "count": 1}]
        assert result["averageResponseTime"] == 40.0
