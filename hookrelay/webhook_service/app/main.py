import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from httpx import AsyncClient

from hookrelay.common import (
    DEFAULT_APP_NAME,
    ServiceSettings,
    build_app,
    configure_logging,
)
from hookrelay.common.tracing import instrument_http_client

from .api.health import router as health_router
from .api.notifications import router as notifications_router
from .api.visits import router as visits_router
from .dispatcher import NotificationDispatcher
from .policy import RetryPolicy
from .transport import WebhookTransport

SERVICE_NAME = "Webhook Relay"

logger = logging.getLogger(__name__)


def build_dispatcher(settings: ServiceSettings, client: AsyncClient | None = None) -> NotificationDispatcher:
    """Wire the transport and dispatcher for the configured webhook URL."""

    policy = RetryPolicy(default_retry_after=settings.webhook_default_retry_after_seconds)
    if not settings.webhook_url:
        logger.warning("Webhook URL not configured; notifications are disabled")
        return NotificationDispatcher(None, policy=policy)

    http_client = client or AsyncClient(timeout=settings.webhook_timeout_seconds)
    instrument_http_client(http_client, settings)
    transport = WebhookTransport(client=http_client, url=settings.webhook_url)
    return NotificationDispatcher(transport, policy=policy)


def create_app(settings: ServiceSettings | None = None, *, http_client: AsyncClient | None = None) -> FastAPI:
    """Create the Webhook Relay FastAPI application.

    ``http_client`` lets callers supply the client used to reach the sink;
    it is closed with the app either way.
    """

    resolved_settings = settings or ServiceSettings()
    if resolved_settings.app_name == DEFAULT_APP_NAME:
        resolved_settings = resolved_settings.model_copy(update={"app_name": SERVICE_NAME})
    configure_logging(resolved_settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        dispatcher: NotificationDispatcher | None = None
        try:
            dispatcher = build_dispatcher(resolved_settings, http_client)
            app.state.dispatcher = dispatcher
            yield
        finally:
            app.state.dispatcher = None
            if dispatcher is not None:
                drained = await dispatcher.drain(resolved_settings.webhook_shutdown_grace_seconds)
                if not drained:
                    logger.warning(
                        "Webhook queue not drained within %.1fs of shutdown",
                        resolved_settings.webhook_shutdown_grace_seconds,
                    )
                await dispatcher.aclose()
            if http_client is not None and (dispatcher is None or not dispatcher.enabled):
                await http_client.aclose()

    app = build_app(resolved_settings, lifespan=lifespan)
    app.include_router(health_router)
    app.include_router(visits_router)
    app.include_router(notifications_router)
    return app


app = create_app()
