"""Pydantic schemas."""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class InboundMessage(BaseModel):
    """Webhook payload from n8n or a WhatsApp service.

    message and from are required; they are optional here so a missing
    field comes back as a 400 with an error body instead of a 422.
    """
    message: Optional[str] = None
    sender: Optional[str] = Field(default=None, alias="from")
    to: Optional[str] = None
    messageId: Optional[str] = None


class OutboundMessage(BaseModel):
    """Direct send request from the broadcast UI."""
    to: Optional[str] = None
    message: Optional[str] = None


class WebhookResponse(BaseModel):
    """Webhook response schema."""
    success: bool = True
    response: str
    sender: str = Field(serialization_alias="from")
    timestamp: str
    metadata: Dict[str, Any]
    forwarded: bool = False


class KnowledgeCreate(BaseModel):
    """Knowledge entry creation schema."""
    category: Optional[str] = None
    keywords: Optional[str] = None
    question: Optional[str] = None
    answer: Optional[str] = None
    priority: int = 1

    def missing_fields(self) -> List[str]:
        return [name for name in ("category", "keywords", "question", "answer") if not getattr(self, name)]


class KnowledgeUpdate(BaseModel):
    """Knowledge entry update schema. Omitted fields are left unchanged."""
    category: Optional[str] = None
    keywords: Optional[str] = None
    question: Optional[str] = None
    answer: Optional[str] = None
    priority: Optional[int] = None
    is_active: Optional[bool] = None


class ProfileSummary(BaseModel):
    """Profile fields shown next to a conversation."""
    name: Optional[str] = None
    totalMessages: int = 0
    lastInteraction: Optional[str] = None


class ConversationResponse(BaseModel):
    """Conversation lookup response."""
    phoneNumber: str
    history: List[Dict[str, Any]]
    totalStored: int = 0
    profile: Optional[ProfileSummary] = None
    databaseEnabled: bool = True
