"""HTTP transport for the chat-ops webhook sink."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import StrEnum
from time import perf_counter
from typing import Mapping

import httpx

from .metrics import WEBHOOK_ATTEMPTS_TOTAL, WEBHOOK_SEND_LATENCY_SECONDS

logger = logging.getLogger(__name__)

RETRY_AFTER_HEADER = "Retry-After"
RATE_LIMIT_RESET_HEADER = "X-RateLimit-Reset-After"
_DETAIL_LIMIT = 500


class SendResultKind(StrEnum):
    OK = "ok"
    RATE_LIMITED = "rate_limited"
    REJECTED = "rejected"
    ERROR = "error"


@dataclass(slots=True, frozen=True)
class SendResult:
    kind: SendResultKind
    status_code: int | None = None
    retry_after: float | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.kind is SendResultKind.OK


def _parse_seconds(raw: str | None) -> float | None:
    if raw is None:
        return None
    try:
        value = float(raw.strip())
    except ValueError:
        return None
    if not math.isfinite(value) or value < 0:
        return None
    return value


def parse_retry_after(headers: Mapping[str, str]) -> float | None:
    """Return the cooldown in seconds advertised by a 429 response.

    ``Retry-After`` wins over the rate-limit reset header. ``None`` when
    neither carries a usable value; the retry policy supplies the fallback.
    """

    for header in (RETRY_AFTER_HEADER, RATE_LIMIT_RESET_HEADER):
        value = _parse_seconds(headers.get(header))
        if value is not None:
            return value
    return None


def _truncate(text: str) -> str:
    if len(text) <= _DETAIL_LIMIT:
        return text
    return text[:_DETAIL_LIMIT] + "..."


class WebhookTransport:
    """POSTs serialized payloads to a single webhook URL and classifies the reply."""

    def __init__(self, *, client: httpx.AsyncClient, url: str) -> None:
        self._client = client
        self._url = url

    @property
    def url(self) -> str:
        return self._url

    async def close(self) -> None:
        await self._client.aclose()

    async def send(self, body: bytes) -> SendResult:
        start = perf_counter()
        try:
            response = await self._client.post(
                self._url,
                content=body,
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as exc:
            WEBHOOK_SEND_LATENCY_SECONDS.observe(perf_counter() - start)
            WEBHOOK_ATTEMPTS_TOTAL.labels(result=SendResultKind.ERROR.value).inc()
            return SendResult(SendResultKind.ERROR, detail=f"{exc.__class__.__name__}: {exc}")
        WEBHOOK_SEND_LATENCY_SECONDS.observe(perf_counter() - start)

        result = self._classify(response)
        WEBHOOK_ATTEMPTS_TOTAL.labels(result=result.kind.value).inc()
        logger.debug("Webhook responded %s (%s)", response.status_code, result.kind.value)
        return result

    def _classify(self, response: httpx.Response) -> SendResult:
        status_code = response.status_code
        if response.is_success:
            return SendResult(SendResultKind.OK, status_code=status_code)
        if status_code == httpx.codes.TOO_MANY_REQUESTS:
            return SendResult(
                SendResultKind.RATE_LIMITED,
                status_code=status_code,
                retry_after=parse_retry_after(response.headers),
            )
        detail = response.reason_phrase
        body = response.text.strip()
        if body:
            detail = f"{detail}: {_truncate(body)}" if detail else _truncate(body)
        return SendResult(SendResultKind.REJECTED, status_code=status_code, detail=detail)
