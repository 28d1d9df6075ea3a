"""Data types shared by the reply pipeline."""
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar

from wabot.services.intent.classifier import Intent


T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Success or failure of a best-effort step.

    The caller decides whether a failure is swallowed or re-raised.
    """
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T = None) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: BaseException) -> "Outcome[T]":
        return cls(error=error)

    def unwrap_or(self, default: T) -> T:
        return self.value if self.error is None else default


@dataclass
class KnowledgeEntry:
    """One FAQ-style fact from the knowledge base."""
    category: str
    question: str
    answer: str
    priority: int = 1
    id: Optional[int] = None
    keywords: str = ""
    is_active: bool = True

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "KnowledgeEntry":
        return cls(
            id=row.get("id"),
            category=row["category"],
            question=row["question"],
            answer=row["answer"],
            priority=int(row.get("priority") or 0),
            keywords=row.get("keywords") or "",
            is_active=bool(row.get("is_active", True)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "category": self.category,
            "keywords": self.keywords,
            "question": self.question,
            "answer": self.answer,
            "priority": self.priority,
            "is_active": self.is_active,
        }


@dataclass
class UserProfile:
    """Accumulated state about one conversation partner (keyed by phone number)."""
    identifier: str
    name: Optional[str] = None
    email: Optional[str] = None
    preferences: Dict[str, Any] = field(default_factory=dict)
    context: Dict[str, Any] = field(default_factory=dict)
    total_messages: int = 0
    last_interaction: Optional[str] = None

    @property
    def last_intent(self) -> Optional[str]:
        return self.context.get("lastIntent")


@dataclass
class ConversationTurn:
    """One message of a conversation."""
    role: str  # user | assistant | system
    text: str
    timestamp: Optional[str] = None
    backend: Optional[str] = None
    latency_ms: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role,
            "text": self.text,
            "timestamp": self.timestamp,
            "model": self.backend,
            "responseTimeMs": self.latency_ms,
            "metadata": self.metadata,
        }


@dataclass
class ResponseContext:
    """Everything the response generator needs for one request."""
    instructions: str
    message: str
    intent: Intent
    knowledge: List[KnowledgeEntry] = field(default_factory=list)
    profile: Optional[UserProfile] = None
    history: List[ConversationTurn] = field(default_factory=list)


@dataclass
class GeneratedReply:
    """Reply text plus the identifier of whatever produced it."""
    text: str
    backend: str


@dataclass
class AssistantReply:
    """Result of one pipeline run, returned to the HTTP layer."""
    response: str
    intent: str
    knowledge_used: bool
    response_time_ms: int
    model: str

    def metadata(self) -> Dict[str, Any]:
        return {
            "intent": self.intent,
            "knowledgeUsed": self.knowledge_used,
            "responseTime": self.response_time_ms,
            "model": self.model,
        }
