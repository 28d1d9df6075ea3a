"""Reply generation: configured LLM backend, or deterministic templates."""
from typing import Dict, Optional

from wabot.core.logging import logger
from wabot.services.assistant.context import build_prompt
from wabot.services.assistant.types import GeneratedReply, ResponseContext
from wabot.services.intent.classifier import Intent
from wabot.services.llm import TextBackend


FALLBACK_MODEL = "fallback"

# One template per intent. GENERAL echoes the user's message back.
TEMPLATES: Dict[Intent, str] = {
    Intent.GREETING: (
        "Hello! 👋 Welcome to {bot_name} - your AI-powered WhatsApp automation platform!\n\n"
        "I can help you with:\n"
        "• Platform information\n"
        "• Technical support\n"
        "• Pricing questions\n"
        "• Integration guidance\n\n"
        "What would you like to know?"
    ),
    Intent.PRICING: (
        "💰 Our pricing starts at $19/month for the Starter plan!\n\n"
        "• Starter ($19/month) - small businesses\n"
        "• Professional ($49/month) - growing teams\n"
        "• Enterprise (Custom) - tailored solutions\n\n"
        "🎉 Plus a 14-day free trial!\n\n"
        "Want to know more about any specific plan?"
    ),
    Intent.SUPPORT: (
        "🛠️ I'm here to help!\n\n"
        "Common solutions:\n"
        "• Check your API keys in the .env file\n"
        "• Verify n8n workflows are active\n"
        "• Restart the application after changes\n\n"
        "What specific issue can I help you with?"
    ),
    Intent.COMPANY: (
        "🤖 {bot_name} is your all-in-one WhatsApp automation platform!\n\n"
        "We provide:\n"
        "• AI Chatbot - smart conversations\n"
        "• WhatsApp Sender - message broadcasting\n"
        "• KWAP Inquiry - Malaysian pension lookup\n"
        "• n8n Integration - workflow automation\n\n"
        "How can we help your business?"
    ),
    Intent.WHATSAPP: (
        "📱 Connecting WhatsApp is easy!\n\n"
        "1. Get your WhatsApp Business API credentials\n"
        "2. Add the webhook to your n8n workflow\n"
        "3. Send a test message to the bot\n\n"
        "Which step would you like help with?"
    ),
    Intent.AI: (
        "🧠 Our AI assistant answers your customers instantly, 24/7, "
        "using your own knowledge base.\n\n"
        "Want to see how it could work for your business?"
    ),
    Intent.KWAP: (
        "🏦 Need a KWAP pension inquiry? I can help you look up Malaysian "
        "pension information with your IC number.\n\n"
        "Would you like to start an inquiry now?"
    ),
    Intent.TECHNICAL: (
        "⚙️ Setting up is straightforward:\n\n"
        "• Configure your API keys\n"
        "• Point your webhook to /webhook/message\n"
        "• Activate your n8n workflow\n\n"
        "Which part of the setup can I walk you through?"
    ),
    Intent.GOODBYE: (
        "Thanks for chatting with {bot_name}! 👋\n\n"
        "I'm available 24/7 for platform questions, technical support and integration guidance.\n\n"
        "Feel free to message anytime. Have a great day! 😊"
    ),
    Intent.GENERAL: (
        "Thanks for your message: \"{message}\"\n\n"
        "🤖 I'm {bot_name} AI Assistant! I can help with:\n"
        "• Platform information & features\n"
        "• Technical support & setup\n"
        "• Pricing & plans\n"
        "• WhatsApp integration\n\n"
        "What would you like to know more about?"
    ),
}

ERROR_REPLY = (
    "I apologize, but I'm having trouble processing your message right now. 😅\n\n"
    "Please try again in a moment, or contact our support team if the issue persists.\n\n"
    "Is there anything else I can help you with?"
)


class ResponseGenerator:
    """Produces the reply text for an assembled context.

    The backend is fixed at construction time; with no backend every reply
    comes from the templates.
    """

    def __init__(self, backend: Optional[TextBackend] = None, bot_name: str = "WABOT"):
        self.backend = backend
        self.bot_name = bot_name

    @property
    def backend_name(self) -> str:
        return self.backend.name if self.backend is not None else FALLBACK_MODEL

    async def generate(self, context: ResponseContext, raw_message: str) -> GeneratedReply:
        """
        Generate a reply.

        Raises:
            BackendError: the configured backend failed. Not handled here.
        """
        if self.backend is None:
            return GeneratedReply(text=self.fallback(context), backend=FALLBACK_MODEL)

        prompt = build_prompt(context, raw_message)
        logger.debug(f"Calling {self.backend.name} with {len(prompt.system)} system blocks, {len(prompt.turns)} turns")
        text = await self.backend.complete(prompt)
        return GeneratedReply(text=text, backend=self.backend.name)

    def fallback(self, context: ResponseContext) -> str:
        """Deterministic reply: best knowledge answer, else the intent template."""
        if context.knowledge:
            best = context.knowledge[0]
            return f"{best.answer}\n\nIs there anything else you'd like to know about {best.category}?"
        return self.template_for(context.intent, context.message)

    def template_for(self, intent: Intent, message: str) -> str:
        return TEMPLATES[intent].format(bot_name=self.bot_name, message=message)
