"""API routes."""
from typing import Any, Dict, Optional

import httpx
from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from wabot.core.config import settings
from wabot.core.logging import logger
from wabot.models.schemas import (
    ConversationResponse,
    InboundMessage,
    KnowledgeCreate,
    KnowledgeUpdate,
    OutboundMessage,
    ProfileSummary,
    WebhookResponse,
)
from wabot.services.assistant.generator import ResponseGenerator
from wabot.services.intent.classifier import IntentClassifier
from wabot.services.stores import utc_now

router = APIRouter()

DATABASE_UNAVAILABLE = "Database not available"


def _error(status_code: int, error: str, details: Optional[str] = None) -> JSONResponse:
    body = {"error": error}
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)


def _database_ready(request: Request) -> bool:
    return bool(getattr(request.app.state, "database_ready", False))


def _basic_reply(message: str) -> str:
    """Template reply used when the database (and so the pipeline) is unavailable."""
    intent = IntentClassifier().classify(message)
    return ResponseGenerator(bot_name=settings.assistant.bot_name).template_for(intent, message)


@router.get("/health")
def health():
    """Service health check."""
    return {"status": "healthy", "timestamp": utc_now()}


# ===== Inbound messages =====

@router.post("/webhook/message")
async def receive_message(request: Request):
    """
    Main webhook - receives messages from n8n or WhatsApp services.

    The pipeline never fails the request; a failed n8n forward is logged and
    reported through the `forwarded` flag.
    """
    try:
        body = await request.json()
    except ValueError:
        return _error(400, "Invalid JSON body")

    try:
        payload = InboundMessage.model_validate(body)
    except ValidationError as e:
        return _error(400, "Invalid message payload", str(e))

    if not payload.message or not payload.sender:
        return _error(400, "Missing required fields: message, from")

    logger.info(f"Received message from {payload.sender}")
    state = request.app.state

    if _database_ready(request):
        reply = await state.pipeline.respond(payload.message, payload.sender)
        text = reply.response
        metadata: Dict[str, Any] = reply.metadata()
    else:
        text = _basic_reply(payload.message)
        metadata = {"model": "basic", "databaseEnabled": False}

    forwarded = False
    forwarder = getattr(state, "forwarder", None)
    if forwarder is not None and forwarder.enabled:
        try:
            await forwarder.forward(payload.sender, text, payload.messageId)
            forwarded = True
        except (httpx.HTTPError, RuntimeError) as e:
            logger.error(f"Failed to send to n8n: {e}")

    return WebhookResponse(
        response=text,
        sender=payload.sender,
        timestamp=utc_now(),
        metadata=metadata,
        forwarded=forwarded,
    ).model_dump(by_alias=True)


@router.post("/api/send")
async def send_message(payload: OutboundMessage, request: Request):
    """Push a message straight to the n8n workflow (broadcast UI)."""
    if not payload.to or not payload.message:
        return _error(400, "Missing required fields: to, message")

    forwarder = request.app.state.forwarder
    if not forwarder.enabled:
        logger.warning("N8N_WEBHOOK_URL not configured, message not sent")
        result = {"status": "skipped", "reason": "no webhook configured"}
    else:
        try:
            status_code = await forwarder.forward(payload.to, payload.message)
        except httpx.HTTPError as e:
            logger.error(f"Send error: {e}")
            return _error(500, "Failed to send message", str(e))
        result = {"status": "success", "statusCode": status_code}

    return {"success": True, "result": result, "timestamp": utc_now()}


@router.get("/api/conversation/{phone}")
def get_conversation(phone: str, request: Request):
    """Last 20 stored turns plus a profile summary."""
    if not _database_ready(request):
        return {
            **ConversationResponse(phoneNumber=phone, history=[], databaseEnabled=False).model_dump(),
            "message": "Database not available - conversation history not stored",
        }

    state = request.app.state
    try:
        history = state.conversations.recent(phone, 20)
        profile = state.profiles.get(phone)
        total = state.conversations.count(phone)
    except Exception as e:
        logger.error(f"Conversation history error: {e}")
        return _error(500, "Failed to retrieve conversation history", str(e))

    summary = None
    if profile is not None:
        summary = ProfileSummary(
            name=profile.name,
            totalMessages=profile.total_messages,
            lastInteraction=profile.last_interaction,
        )
    return ConversationResponse(
        phoneNumber=phone,
        history=[turn.to_dict() for turn in history],
        totalStored=total,
        profile=summary,
    ).model_dump()


# ===== Knowledge base admin =====

@router.get("/api/admin/knowledge")
def list_knowledge(
    request: Request,
    category: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    """Paged knowledge base listing."""
    if not _database_ready(request):
        return _error(503, DATABASE_UNAVAILABLE)

    try:
        result = request.app.state.knowledge.list(category=category, search=search, page=page, limit=limit)
    except Exception as e:
        logger.error(f"Knowledge base fetch error: {e}")
        return _error(500, "Failed to fetch knowledge base", str(e))

    return {"success": True, **result}


@router.post("/api/admin/knowledge")
def create_knowledge(entry: KnowledgeCreate, request: Request):
    """Add a knowledge base entry."""
    if not _database_ready(request):
        return _error(503, DATABASE_UNAVAILABLE)

    missing = entry.missing_fields()
    if missing:
        return _error(400, f"Missing required fields: {', '.join(missing)}")

    try:
        entry_id = request.app.state.knowledge.add(
            category=entry.category,
            keywords=entry.keywords,
            question=entry.question,
            answer=entry.answer,
            priority=entry.priority,
        )
    except Exception as e:
        logger.error(f"Knowledge base creation error: {e}")
        return _error(500, "Failed to create knowledge base entry", str(e))

    return {"success": True, "id": entry_id, "message": "Knowledge base entry created successfully"}


@router.put("/api/admin/knowledge/{entry_id}")
def update_knowledge(entry_id: int, entry: KnowledgeUpdate, request: Request):
    """Partially update a knowledge base entry."""
    if not _database_ready(request):
        return _error(503, DATABASE_UNAVAILABLE)

    try:
        updated = request.app.state.knowledge.update(entry_id, **entry.model_dump(exclude_none=True))
    except Exception as e:
        logger.error(f"Knowledge base update error: {e}")
        return _error(500, "Failed to update knowledge base entry", str(e))

    if not updated:
        return _error(404, "Knowledge base entry not found")
    return {"success": True, "message": "Knowledge base entry updated successfully"}


@router.delete("/api/admin/knowledge/{entry_id}")
def delete_knowledge(entry_id: int, request: Request):
    if not _database_ready(request):
        return _error(503, DATABASE_UNAVAILABLE)

    try:
        deleted = request.app.state.knowledge.delete(entry_id)
    except Exception as e:
        logger.error(f"Knowledge base deletion error: {e}")
        return _error(500, "Failed to delete knowledge base entry", str(e))

    if not deleted:
        return _error(404, "Knowledge base entry not found")
    return {"success": True, "message": "Knowledge base entry deleted successfully"}


# ===== Analytics =====

@router.get("/api/admin/analytics")
def get_analytics(
    request: Request,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
):
    """Metric summaries plus conversation and contact totals for a period."""
    if not _database_ready(request):
        return _error(503, DATABASE_UNAVAILABLE)

    state = request.app.state
    try:
        totals = state.conversations.totals(start_date, end_date)
        analytics = {
            "responseTime": state.metrics.summary("response_time", start_date, end_date),
            "knowledgeHits": state.metrics.summary("knowledge_base_hits", start_date, end_date),
            "intents": state.metrics.summary("intent_detected", start_date, end_date),
            **totals,
        }
    except Exception as e:
        logger.error(f"Analytics fetch error: {e}")
        return _error(500, "Failed to fetch analytics", str(e))

    return {
        "success": True,
        "analytics": analytics,
        "period": {"startDate": start_date, "endDate": end_date},
    }


@router.get("/api/admin/users/{phone}/analytics")
def get_user_analytics(phone: str, request: Request):
    if not _database_ready(request):
        return _error(503, DATABASE_UNAVAILABLE)

    try:
        analytics = request.app.state.analytics.for_user(phone)
    except Exception as e:
        logger.error(f"User analytics error: {e}")
        return _error(500, "Failed to fetch user analytics", str(e))

    return {"success": True, "phoneNumber": phone, "analytics": analytics}


@router.get("/api/admin/database-status")
def database_status(request: Request):
    """Connection status; reports the startup error when the database never came up."""
    state = request.app.state
    database = getattr(state, "database", None)
    if database is None:
        status = {"connected": False, "error": getattr(state, "database_error", None)}
    else:
        status = database.status()

    return {
        "success": True,
        "database": {
            "connected": status.get("connected", False),
            "ready": _database_ready(request),
            "dialect": status.get("dialect"),
            "poolStats": status.get("pool_stats"),
            "error": status.get("error"),
        },
    }
