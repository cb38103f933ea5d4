"""
TriageDesk - Main Application
=============================

AI-assisted customer support ticketing service.

A chat client collects the user's contact details and talks to a triage
assistant; the first exchange opens a ticket, later turns extend its
transcript, and routing teams are emailed on creation, escalation and
resolution.

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: TicketService and DTOs
- Domain: Entities, state machine, value objects
- Infrastructure: Database, LLM, mail, routing config
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from triagedesk.config import settings
from triagedesk.core import ApplicationException, ConfigurationException
from triagedesk.infrastructure.database import close_database, create_tables, init_database
from triagedesk.infrastructure.llm import build_llm_client
from triagedesk.infrastructure.mail import build_email_transport
from triagedesk.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
    http_exception_handler,
    request_validation_exception_handler,
)
from triagedesk.shared.infrastructure.logging import get_logger, setup_logging
from triagedesk.tickets.infrastructure import (
    EmailNotificationSender,
    LLMTriageAssistant,
    RoutingConfigManager,
)
from triagedesk.tickets.interfaces import tickets_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database and create tables
    3. Load and watch routing configuration
    4. Build LLM client and triage assistant
    5. Build email transport and notification sender

    SHUTDOWN:
    1. Stop routing config watcher
    2. Close database connections
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting TriageDesk", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    logger.info("Initializing database")
    init_database()
    await create_tables()

    logger.info("Loading routing configuration")
    routing_config_manager = RoutingConfigManager()
    routing_config_manager.load(settings.routing_config_path)
    routing_config_manager.start_watching()

    logger.info("Initializing LLM client", extra={"provider": settings.llm_provider})
    try:
        llm_client = build_llm_client(settings)
        triage_assistant = LLMTriageAssistant(
            llm_client,
            labels_provider=lambda: routing_config_manager.config.category_labels
        )
    except ConfigurationException as e:
        # Chat answers 503 until a key is configured; ticket actions still work
        logger.warning(f"LLM client initialization failed: {e}")
        triage_assistant = None

    notification_sender = EmailNotificationSender(build_email_transport(settings))

    app.state.settings = settings
    app.state.routing_config_manager = routing_config_manager
    app.state.triage_assistant = triage_assistant
    app.state.notification_sender = notification_sender

    logger.info("TriageDesk started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down TriageDesk")
    routing_config_manager.stop_watching()
    await close_database()
    logger.info("TriageDesk shutdown complete")


def create_app() -> FastAPI:
    """Build the FastAPI application with middleware, handlers and routes."""
    app = FastAPI(
        title="TriageDesk API",
        description="""
    ## AI-Assisted Customer Support Ticketing

    **Endpoints:**
    - `POST /api/ticket/initiate` - Acknowledge an initial query
    - `POST /api/chat` - Triage chat turn (opens a ticket on the first turn)
    - `POST /api/ticket/escalate` - Hand the ticket to a human team
    - `POST /api/ticket/urgent` - Mark the ticket as urgent
    - `POST /api/ticket/resolve` - Resolve the ticket with a 1-5 review
    - `GET /api/ticket/{id}` - Ticket with its transcript

    **Ticket lifecycle:** `open` → `escalated` → `resolved`
    (`open` → `resolved` directly is allowed; nothing returns to `open`).
    """,
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # === CORS Middleware ===
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # === Custom Middleware (from shared) ===
    # Added last runs first: correlation id must exist before logging reads it
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(CorrelationIDMiddleware)

    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(ApplicationException, application_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    # === Include Module Routers ===
    app.include_router(tickets_router)

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """Health check endpoint for load balancers and orchestrators."""
        state = request.app.state
        checks = {
            "llm_client": (
                "available" if getattr(state, "triage_assistant", None) else "not_configured"
            ),
            "smtp": "configured" if settings.smtp_host else "logging_only",
            "routing_config": (
                "loaded" if getattr(state, "routing_config_manager", None) else "defaults"
            ),
        }
        return {
            "status": "healthy",
            "version": settings.app_version,
            "environment": settings.environment,
            "checks": checks
        }

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "service": "TriageDesk",
            "version": settings.app_version,
            "docs": "/docs",
            "health": "/health",
        }

    return app


app = create_app()


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "triagedesk.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
