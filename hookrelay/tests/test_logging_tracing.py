import logging

import httpx
import pytest
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider

from hookrelay.common import ServiceSettings, build_app, configure_logging
from hookrelay.common.logging import redact_webhook_url
from hookrelay.common.tracing import (
    _INSTRUMENTED_APPS,
    _INSTRUMENTED_CLIENTS,
    configure_tracing,
    instrument_http_client,
)

WEBHOOK_URL = "https://chat.example.test/api/webhooks/123456/s3cr3t-token"


def test_redact_webhook_url_masks_token_only() -> None:
    text = f'HTTP Request: POST {WEBHOOK_URL} "HTTP/1.1 204 No Content"'

    redacted = redact_webhook_url(text)

    assert "s3cr3t-token" not in redacted
    assert "/api/webhooks/123456/***" in redacted
    assert redacted.endswith('"HTTP/1.1 204 No Content"')


def test_redact_webhook_url_leaves_other_text_alone() -> None:
    assert redact_webhook_url("Webhook notification #3 delivered") == "Webhook notification #3 delivered"


@pytest.mark.usefixtures("caplog")
class TestRelayObservability:
    def test_relay_app_is_traced_once(self, caplog: pytest.LogCaptureFixture) -> None:
        settings = ServiceSettings(
            enable_tracing=True,
            enable_metrics=False,
            app_name="Tracing Test Relay",
        )
        configure_logging(settings)
        caplog.set_level(logging.WARNING)
        before = len(_INSTRUMENTED_APPS)
        app = build_app(settings)
        assert len(_INSTRUMENTED_APPS) == before + 1
        configure_tracing(app, settings)
        assert len(_INSTRUMENTED_APPS) == before + 1
        assert isinstance(trace.get_tracer_provider(), TracerProvider)

    def test_webhook_client_is_instrumented_once(self) -> None:
        settings = ServiceSettings(enable_tracing=True, enable_metrics=False)
        client = httpx.AsyncClient()
        before = len(_INSTRUMENTED_CLIENTS)

        instrument_http_client(client, settings)
        instrument_http_client(client, settings)

        assert len(_INSTRUMENTED_CLIENTS) == before + 1

    def test_webhook_client_untouched_when_tracing_disabled(self) -> None:
        settings = ServiceSettings(enable_tracing=False, enable_metrics=False)
        client = httpx.AsyncClient()
        before = len(_INSTRUMENTED_CLIENTS)

        instrument_http_client(client, settings)

        assert len(_INSTRUMENTED_CLIENTS) == before

    def test_delivery_logs_carry_trace_ids_inside_request_span(self, caplog: pytest.LogCaptureFixture) -> None:
        settings = ServiceSettings(
            enable_tracing=True,
            enable_metrics=False,
            app_name="Logging Trace Relay",
        )
        configure_logging(settings)
        build_app(settings)
        caplog.clear()
        tracer = trace.get_tracer(__name__)
        logger = logging.getLogger("hookrelay.webhook_service.app.dispatcher")
        with caplog.at_level(logging.INFO):
            logger.info("Webhook notification #1 delivered")
            with tracer.start_as_current_span("POST /notifications/embeds"):
                logger.info("Webhook notification #2 delivered")

        detached, in_request = caplog.records[-2:]
        assert detached.trace_id == "-"
        assert detached.span_id == "-"
        assert len(in_request.trace_id) == 32
        assert len(in_request.span_id) == 16

    def test_sink_request_log_hides_webhook_token(self, caplog: pytest.LogCaptureFixture) -> None:
        configure_logging(ServiceSettings(enable_tracing=False, enable_metrics=False))
        caplog.clear()
        with caplog.at_level(logging.INFO):
            logging.getLogger("httpx").info(
                'HTTP Request: %s %s "%s %d %s"', "POST", WEBHOOK_URL, "HTTP/1.1", 204, "No Content"
            )

        message = caplog.records[-1].getMessage()
        assert "s3cr3t-token" not in message
        assert "/api/webhooks/123456/***" in message
        assert "s3cr3t-token" not in caplog.text
