"""
Support Desk - Main Application
================================

Customer-support backend for a campus food ordering marketplace.

Modules:
- Tickets: ticket lifecycle, conversation ledger, escalation to agents
- Triage: AI first-line replies and hand-off decisions
- Complaints: vendor-facing projection of restaurant-related tickets

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities and value objects
- Infrastructure: Database, LLM clients
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from supportdesk.complaints.interfaces import complaints_router
from supportdesk.config import Settings, get_settings
from supportdesk.core import ApplicationException
from supportdesk.infrastructure.database import Database
from supportdesk.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    MetricsMiddleware,
    application_exception_handler,
    global_exception_handler,
    validation_exception_handler,
)
from supportdesk.shared.infrastructure.grafana import GrafanaOTLPExporter
from supportdesk.shared.infrastructure.logging import get_logger, setup_logging
from supportdesk.tickets.interfaces import tickets_router
from supportdesk.triage.application import build_gateway

logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    The lifespan creates the database handle and the classifier gateway
    and stores them on ``app.state``. Tests may set both directly.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator:
        """
        STARTUP:
        1. Setup structured logging
        2. Open the database handle
        3. Create database tables (development)
        4. Build the Grafana metrics exporter
        5. Build the classifier gateway

        SHUTDOWN:
        1. Close database connections
        """
        setup_logging(settings.log_level, settings.environment)
        logger.info("Starting Support Desk", extra={
            "version": settings.app_version,
            "environment": settings.environment,
            "classifier": settings.llm_provider
        })

        if getattr(app.state, "database", None) is None:
            app.state.database = Database.from_settings(settings)

        if settings.create_tables_on_startup:
            logger.info("Creating database tables")
            try:
                await app.state.database.create_tables()
            except Exception as e:
                logger.warning("Database not available - running in degraded mode", extra={"error": str(e)})

        if getattr(app.state, "metrics_exporter", None) is None:
            app.state.metrics_exporter = GrafanaOTLPExporter.from_settings(settings)

        if getattr(app.state, "classifier_gateway", None) is None:
            app.state.classifier_gateway = build_gateway(settings, metrics=app.state.metrics_exporter)

        logger.info("Support Desk started successfully")

        yield  # Application runs here

        logger.info("Shutting down Support Desk")
        await app.state.database.close()
        logger.info("Support Desk shutdown complete")

    app = FastAPI(
        title="Support Desk API",
        description="""
    ## Customer Support for the Campus Food Marketplace

    **Students** open tickets about orders, payments, food quality, deliveries
    and accounts, and chat with an AI assistant. Tickets the assistant cannot
    handle, and all urgent tickets, are handed to the least loaded agent.

    **Support staff** work the ticket queue, reply (optionally with internal
    notes), change status and reassign tickets.

    **Vendors** see a read-only list of complaints about their restaurants.

    Callers are identified by the `X-User-Id` and `X-User-Role` headers set by
    the upstream authentication gateway.
    """,
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.settings = settings

    # === CORS Middleware ===
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # === Custom Middleware (from shared) ===
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(CorrelationIDMiddleware)
    app.add_exception_handler(ApplicationException, application_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    # === Include Module Routers ===
    app.include_router(tickets_router)
    app.include_router(complaints_router)

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """Health check endpoint for load balancers and orchestrators."""
        checks = {
            "database": "connected",
            "classifier": settings.llm_provider
        }
        healthy = True

        database = getattr(request.app.state, "database", None)
        if database is None:
            checks["database"] = "not_initialized"
            healthy = False
        else:
            try:
                await database.ping()
            except Exception as e:
                checks["database"] = f"error: {e}"
                healthy = False

        exporter = getattr(request.app.state, "metrics_exporter", None)
        checks["grafana"] = "enabled" if exporter is not None and exporter.is_enabled() else "disabled"
        request_metrics = getattr(request.app.state, "request_metrics", None)

        return {
            "status": "healthy" if healthy else "degraded",
            "version": settings.app_version,
            "environment": settings.environment,
            "checks": checks,
            "metrics": request_metrics.snapshot() if request_metrics is not None else None
        }

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "service": "Support Desk",
            "version": settings.app_version,
            "architecture": "Clean Architecture / Modular Monolith",
            "docs": "/docs",
            "health": "/health",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "supportdesk.main:app",
        host=_settings.host,
        port=_settings.port,
        reload=_settings.debug,
        log_level=_settings.log_level.lower()
    )
