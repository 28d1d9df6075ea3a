"""Context assembly: instruction preamble, history window and the structured prompt."""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from wabot.services.assistant.types import (
    ConversationTurn,
    KnowledgeEntry,
    ResponseContext,
    UserProfile,
)
from wabot.services.intent.classifier import Intent


BASE_INSTRUCTIONS = """You are {bot_name} AI Assistant - an intelligent, helpful, and professional AI chatbot specialized in WhatsApp automation and business communication solutions.

PERSONALITY:
- Friendly, professional, and solution-oriented
- Keep responses concise but informative (ideally under 300 characters for WhatsApp)
- Use emojis appropriately to make conversations engaging
- Always aim to be helpful and provide actionable information

CAPABILITIES:
- Answer questions about {bot_name}'s services and features
- Provide technical support and guidance
- Help with pricing and business inquiries
- Assist with WhatsApp integration and setup
- Handle KWAP pension inquiry questions

RESPONSE GUIDELINES:
- If knowledge base information is provided, use it as the primary source of truth
- Personalize responses based on user profile if available
- Reference previous conversation context when relevant
- If you don't know something specific, be honest and offer to help find the information
- Always end with a helpful follow-up question or call-to-action when appropriate"""

# Every intent is listed; None means the base instructions are used unchanged.
FOCUS_BY_INTENT: Dict[Intent, Optional[str]] = {
    Intent.GREETING: None,
    Intent.PRICING: "Focus on providing clear pricing information and help the user choose the right plan.",
    Intent.SUPPORT: "Be extra helpful and patient. Provide step-by-step guidance and offer multiple solution paths.",
    Intent.COMPANY: "Highlight {bot_name}'s key benefits and unique value propositions.",
    Intent.WHATSAPP: "Focus on WhatsApp integration benefits and practical implementation guidance.",
    Intent.AI: None,
    Intent.KWAP: None,
    Intent.TECHNICAL: "Provide detailed technical guidance. Break down complex processes into simple steps.",
    Intent.GOODBYE: None,
    Intent.GENERAL: None,
}

KNOWLEDGE_SEPARATOR = "\n\n---\n\n"


class ContextAssembler:
    """Builds the per-request ResponseContext. No I/O."""

    def __init__(self, bot_name: str = "WABOT", history_window: int = 10):
        self.bot_name = bot_name
        self.history_window = history_window

    def instructions_for(self, intent: Intent) -> str:
        """Base persona plus the intent's focus clause, when it has one."""
        base = BASE_INSTRUCTIONS.format(bot_name=self.bot_name)
        focus = FOCUS_BY_INTENT[intent]
        if focus:
            return f"{base}\n\nSPECIAL FOCUS: {focus.format(bot_name=self.bot_name)}"
        return base

    def assemble(
        self,
        message: str,
        intent: Intent,
        knowledge: List[KnowledgeEntry],
        profile: Optional[UserProfile],
        history: List[ConversationTurn],
    ) -> ResponseContext:
        # Oldest turns are dropped, order is kept
        window = list(history)[-self.history_window:] if self.history_window > 0 else []
        return ResponseContext(
            instructions=self.instructions_for(intent),
            message=message,
            intent=intent,
            knowledge=list(knowledge),
            profile=profile,
            history=window,
        )


@dataclass
class StructuredPrompt:
    """Backend-neutral prompt: system blocks, then role-tagged turns ending with the user message."""
    system: List[str] = field(default_factory=list)
    turns: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def system_text(self) -> str:
        return "\n\n".join(self.system)


def knowledge_block(entries: List[KnowledgeEntry]) -> str:
    content = KNOWLEDGE_SEPARATOR.join(f"Q: {kb.question}\nA: {kb.answer}" for kb in entries)
    return (
        f"RELEVANT KNOWLEDGE BASE INFORMATION:\n{content}\n\n"
        "Use this information to provide accurate and helpful responses. "
        "If the user's question is directly addressed in the knowledge base, prioritize that information."
    )


def profile_note(profile: UserProfile) -> str:
    name = f"Name: {profile.name}. " if profile.name else ""
    return (
        f"USER PROFILE: User has sent {profile.total_messages or 0} messages. "
        f"{name}Feel free to personalize the response appropriately."
    )


def build_prompt(context: ResponseContext, message: str) -> StructuredPrompt:
    """Lay out a ResponseContext in the order every backend sends it."""
    prompt = StructuredPrompt(system=[context.instructions])

    if context.knowledge:
        prompt.system.append(knowledge_block(context.knowledge))

    if context.profile is not None:
        prompt.system.append(profile_note(context.profile))

    for turn in context.history:
        role = "user" if turn.role == "user" else "assistant"
        prompt.turns.append((role, turn.text))

    prompt.turns.append(("user", message))
    return prompt
