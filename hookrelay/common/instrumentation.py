from importlib.metadata import PackageNotFoundError, version
from typing import Any, cast

from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

from .config import ServiceSettings
from .tracing import configure_tracing

# Probed by orchestrators every few seconds; kept out of request metrics.
_UNMEASURED_ROUTES = ["/health", "/metrics"]


def _relay_version() -> str:
    try:
        return version("hookrelay")
    except PackageNotFoundError:
        return "0.0.0"


def instrument_app(app: FastAPI, settings: ServiceSettings) -> None:
    """Expose request metrics next to the relay's webhook counters at ``/metrics``."""

    if settings.enable_metrics:
        Instrumentator(excluded_handlers=_UNMEASURED_ROUTES).instrument(app).expose(app)

    state = cast(Any, app.state)
    state.settings = settings


def build_app(settings: ServiceSettings, **extra_kwargs: Any) -> FastAPI:
    app = FastAPI(title=settings.app_name, version=_relay_version(), **extra_kwargs)
    instrument_app(app, settings)
    configure_tracing(app, settings)
    return app
