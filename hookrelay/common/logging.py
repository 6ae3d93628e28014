import logging
import re
from typing import Literal

from opentelemetry import trace

from .config import ServiceSettings


_TRACE_PLACEHOLDER = "-"
_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | trace_id=%(trace_id)s span_id=%(span_id)s | %(message)s"
# The path segment after the webhook id is the credential.
_WEBHOOK_TOKEN = re.compile(r"(/api/webhooks/\d+/)[^\s/?\"']+")
_REDACTED = "***"


def redact_webhook_url(text: str) -> str:
    return _WEBHOOK_TOKEN.sub(rf"\g<1>{_REDACTED}", text)


class TraceContextFilter(logging.Filter):
    """Stamp relay and webhook log records with the active trace and span ids.

    Records emitted outside a span, such as dispatcher chain links running after
    the request that enqueued them has finished, carry ``-`` placeholders.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            record.trace_id = format(span_context.trace_id, "032x")
            record.span_id = format(span_context.span_id, "016x")
        else:
            record.trace_id = _TRACE_PLACEHOLDER
            record.span_id = _TRACE_PLACEHOLDER
        return True


class WebhookTokenFilter(logging.Filter):
    """Mask webhook tokens in messages, notably httpx's per-request INFO lines."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_webhook_url(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def _install(target: logging.Filterer, log_filter: logging.Filter) -> None:
    if not any(type(existing) is type(log_filter) for existing in target.filters):
        target.addFilter(log_filter)


def configure_logging(settings: ServiceSettings) -> None:
    """Configure root logging for the relay.

    Filters go on the root logger and on each of its handlers, since records
    propagated from ``httpx`` or the dispatcher only pass handler filters.
    """

    logging_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = settings.log_level
    logging.basicConfig(level=logging_level, format=_LOG_FORMAT)
    root_logger = logging.getLogger()
    for log_filter in (TraceContextFilter(), WebhookTokenFilter()):
        _install(root_logger, log_filter)
        for handler in root_logger.handlers:
            _install(handler, log_filter)
