"""
FastAPI application entry point.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import RequestResponseEndpoint

from receptionist import __version__
from receptionist.config import get_settings
from receptionist.messaging.factory import close_messaging_provider
from receptionist.shared.database import get_database_manager
from receptionist.shared.logging import correlation_id_var, get_logger, setup_logging
from receptionist.telephony.webhooks.legacy import router as legacy_webhooks_router
from receptionist.telephony.webhooks.router import router as telephony_webhooks_router

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"
PROVIDER_IDEMPOTENCY_HEADER = "I-Twilio-Idempotency-Token"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    setup_logging()
    settings = get_settings()

    logger.info("Application starting", extra={"env": settings.app_env})

    db_manager = get_database_manager()
    if settings.db_create_schema:
        await db_manager.create_schema()
        logger.info("Database schema ensured")

    yield

    logger.info("Shutting down application")
    await close_messaging_provider()
    await db_manager.close()
    logger.info("Application shutdown complete")


async def correlation_middleware(request: Request, call_next: RequestResponseEndpoint) -> Response:
    """Bind a correlation id to the request's log records and echo it back."""
    correlation_id = (
        request.headers.get(REQUEST_ID_HEADER)
        or request.headers.get(PROVIDER_IDEMPOTENCY_HEADER)
        or str(uuid4())
    )
    token = correlation_id_var.set(correlation_id)
    try:
        response = await call_next(request)
    finally:
        correlation_id_var.reset(token)
    response.headers[REQUEST_ID_HEADER] = correlation_id
    return response


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Receptionist Telephony API",
        description="Provider webhooks, missed-call outreach and consent ledger",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.middleware("http")(correlation_middleware)

    app.include_router(telephony_webhooks_router)
    app.include_router(legacy_webhooks_router)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    return app


app = create_app()
