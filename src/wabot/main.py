"""WABOT AI Chatbot - Main entry point."""
from typing import Optional

from fastapi import FastAPI

from wabot import __version__
from wabot.api.routes import router
from wabot.core.config import Settings, settings
from wabot.core.database import Database, get_db, reset_db
from wabot.core.logging import logger
from wabot.services.assistant.analytics import ConversationAnalytics
from wabot.services.assistant.pipeline import build_pipeline
from wabot.services.llm import TextBackend
from wabot.services.outbound import WorkflowForwarder
from wabot.services.stores import ConversationStore, KnowledgeStore, MetricsSink, ProfileStore


def _status(flag) -> str:
    return "configured" if flag else "not configured"


def attach_services(
    app: FastAPI,
    database: Database,
    config: Settings,
    backend: Optional[TextBackend] = None,
) -> None:
    """Hang the stores and the reply pipeline off app.state."""
    state = app.state
    state.database = database
    state.knowledge = KnowledgeStore(database)
    state.profiles = ProfileStore(database)
    state.conversations = ConversationStore(database)
    state.metrics = MetricsSink(database)
    state.pipeline = build_pipeline(database, config, backend)
    state.analytics = ConversationAnalytics(state.profiles, state.conversations)
    state.database_ready = True


def create_app(
    database: Optional[Database] = None,
    config: Optional[Settings] = None,
    backend: Optional[TextBackend] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        database: Database to use. Defaults to the global instance.
        config: Settings. Defaults to the loaded settings singleton.
        backend: Text backend override. Defaults to the configured one.
    """
    config = config or settings

    app = FastAPI(
        title="WABOT: AI Chatbot",
        description="WhatsApp automation assistant with knowledge base, profiles and analytics",
        version=__version__,
    )
    app.include_router(router)
    app.state.database_ready = False
    app.state.database_error = None
    app.state.forwarder = WorkflowForwarder(config.webhook)

    @app.on_event("startup")
    async def startup_event():
        """Initialize the database and the reply pipeline."""
        logger.info("=" * 60)
        logger.info("WABOT AI Chatbot starting up")

        try:
            attach_services(app, database or get_db(), config, backend)
            logger.info("Database connected, enhanced replies enabled")
        except Exception as e:
            app.state.database_error = str(e)
            logger.error(f"Database initialization failed: {e}")
            logger.warning("Falling back to basic replies without database features")

        logger.info(f"Backend: {config.backend_kind.value}")
        logger.info(f"OpenAI: {_status(config.llm.openai_api_key)}")
        logger.info(f"Gemini: {_status(config.llm.gemini_api_key)}")
        logger.info(f"n8n webhook: {_status(config.n8n_webhook_url)}")
        logger.info("=" * 60)

    @app.on_event("shutdown")
    async def shutdown_event():
        """Cleanup on shutdown."""
        logger.info("WABOT AI Chatbot shutting down")
        if database is None:
            reset_db()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "wabot.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=settings.server.dev_mode,
        log_level="info",
    )
