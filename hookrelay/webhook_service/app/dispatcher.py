"""Ordered, rate-limit aware delivery of webhook notifications.

Every call to :meth:`NotificationDispatcher.enqueue` schedules a task that
first waits for the previously enqueued task and only then talks to the sink.
The chain of tasks is the queue: sends happen one at a time, in submission
order, and the callers never wait for the network unless they await the
future they were handed. That future is separate from the chain link, so a
caller giving up on it does not withdraw the notification.

A 429 from the sink sets a cooldown shared by the whole chain, so the next
item (or the single retry of the current one) is held back until the window
advertised by the sink has passed.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Awaitable, Callable

from .embeds import Embed, serialize_payload
from .metrics import (
    WEBHOOK_COOLDOWN_WAIT_SECONDS,
    WEBHOOK_DELIVERIES_TOTAL,
    WEBHOOK_PENDING,
    WEBHOOK_RATE_LIMITED_TOTAL,
)
from .policy import SINGLE_RETRY, RetryPolicy
from .transport import SendResultKind, WebhookTransport

logger = logging.getLogger(__name__)

Payload = Embed | dict[str, Any] | str | bytes


class DeliveryStatus(StrEnum):
    DELIVERED = "delivered"
    RATE_LIMITED = "rate_limited"
    REJECTED = "rejected"
    TRANSPORT_ERROR = "transport_error"
    DISABLED = "disabled"
    DISCARDED = "discarded"


@dataclass(slots=True, frozen=True)
class DeliveryOutcome:
    status: DeliveryStatus
    attempts: int = 0
    status_code: int | None = None
    detail: str | None = None

    @property
    def delivered(self) -> bool:
        return self.status is DeliveryStatus.DELIVERED


@dataclass(slots=True, frozen=True)
class NotificationRequest:
    sequence: int
    body: bytes


class NotificationDispatcher:
    """Serializes notifications from many producers into one delivery stream.

    ``transport`` is ``None`` when no webhook URL is configured; the
    dispatcher is then disabled and every enqueue resolves immediately as
    :attr:`DeliveryStatus.DISABLED` without touching the network.
    """

    def __init__(
        self,
        transport: WebhookTransport | None,
        *,
        policy: RetryPolicy = SINGLE_RETRY,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._policy = policy
        self._clock = clock
        self._sleep = sleep
        self._cooldown_until = float("-inf")
        self._tail: asyncio.Task[DeliveryOutcome] | None = None
        self._tasks: set[asyncio.Task[DeliveryOutcome]] = set()
        self._sequence = itertools.count(1)

    @property
    def enabled(self) -> bool:
        return self._transport is not None

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def cooldown_remaining(self) -> float:
        return max(0.0, self._cooldown_until - self._clock())

    def enqueue(self, payload: Payload) -> asyncio.Future[DeliveryOutcome]:
        """Queue ``payload`` behind everything already submitted.

        Must be called from the event loop. The returned future never raises
        for delivery failures; it resolves to a :class:`DeliveryOutcome`.
        """

        loop = asyncio.get_running_loop()
        request = NotificationRequest(sequence=next(self._sequence), body=serialize_payload(payload))
        if self._transport is None:
            logger.warning("Webhook URL not configured; dropping notification #%s", request.sequence)
            WEBHOOK_DELIVERIES_TOTAL.labels(status=DeliveryStatus.DISABLED.value).inc()
            disabled: asyncio.Future[DeliveryOutcome] = loop.create_future()
            disabled.set_result(DeliveryOutcome(DeliveryStatus.DISABLED))
            return disabled

        task = loop.create_task(
            self._run_after(self._tail, self._transport, request),
            name=f"webhook-notification-{request.sequence}",
        )
        self._tail = task
        self._tasks.add(task)
        WEBHOOK_PENDING.inc()
        task.add_done_callback(self._forget)

        # Callers get their own future; cancelling it leaves the chain link running.
        delivery: asyncio.Future[DeliveryOutcome] = loop.create_future()
        task.add_done_callback(lambda link: _resolve(delivery, link, request))
        return delivery

    async def drain(self, timeout: float | None = None) -> bool:
        """Wait until everything enqueued so far has resolved.

        Returns ``False`` when ``timeout`` elapsed first.
        """

        tail = self._tail
        if tail is None or tail.done():
            return True
        done, _ = await asyncio.wait((tail,), timeout=timeout)
        return bool(done)

    async def aclose(self) -> None:
        """Discard unresolved notifications and close the transport.

        Callers awaiting a discarded notification receive a
        :attr:`DeliveryStatus.DISCARDED` outcome.
        """

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            logger.warning("Discarding %s undelivered webhook notification(s) on shutdown", len(tasks))
            await asyncio.gather(*tasks, return_exceptions=True)
        if self._transport is not None:
            await self._transport.close()

    def _forget(self, task: asyncio.Task[DeliveryOutcome]) -> None:
        self._tasks.discard(task)
        WEBHOOK_PENDING.dec()

    async def _run_after(
        self,
        previous: asyncio.Task[DeliveryOutcome] | None,
        transport: WebhookTransport,
        request: NotificationRequest,
    ) -> DeliveryOutcome:
        if previous is not None and not previous.done():
            # Wait for completion only; the predecessor's result is not ours.
            await asyncio.wait((previous,))
        del previous

        try:
            outcome = await self._send_one(transport, request)
        except Exception:
            logger.exception("Unexpected error delivering webhook notification #%s", request.sequence)
            outcome = DeliveryOutcome(DeliveryStatus.TRANSPORT_ERROR, detail="unexpected dispatcher error")
        WEBHOOK_DELIVERIES_TOTAL.labels(status=outcome.status.value).inc()
        return outcome

    async def _send_one(self, transport: WebhookTransport, request: NotificationRequest) -> DeliveryOutcome:
        attempt = 0
        while True:
            attempt += 1
            await self._wait_for_cooldown()
            result = await transport.send(request.body)

            if result.ok:
                logger.info("Webhook notification #%s delivered", request.sequence)
                return DeliveryOutcome(DeliveryStatus.DELIVERED, attempts=attempt, status_code=result.status_code)

            if result.kind is SendResultKind.RATE_LIMITED:
                retry_after = self._policy.retry_delay(result)
                self._cooldown_until = self._clock() + retry_after
                WEBHOOK_RATE_LIMITED_TOTAL.inc()
                if self._policy.should_retry(attempt, result):
                    logger.info(
                        "Webhook rate limited; retrying notification #%s in %.2fs",
                        request.sequence,
                        retry_after,
                    )
                    continue
                logger.warning(
                    "Webhook still rate limited after %s attempts; dropping notification #%s",
                    attempt,
                    request.sequence,
                )
                return DeliveryOutcome(
                    DeliveryStatus.RATE_LIMITED,
                    attempts=attempt,
                    status_code=result.status_code,
                )

            if result.kind is SendResultKind.REJECTED:
                logger.error(
                    "Webhook rejected notification #%s: %s %s",
                    request.sequence,
                    result.status_code,
                    result.detail or "",
                )
                return DeliveryOutcome(
                    DeliveryStatus.REJECTED,
                    attempts=attempt,
                    status_code=result.status_code,
                    detail=result.detail,
                )

            logger.error("Error sending webhook notification #%s: %s", request.sequence, result.detail)
            return DeliveryOutcome(DeliveryStatus.TRANSPORT_ERROR, attempts=attempt, detail=result.detail)

    async def _wait_for_cooldown(self) -> None:
        remaining = self._cooldown_until - self._clock()
        if remaining <= 0:
            return
        WEBHOOK_COOLDOWN_WAIT_SECONDS.observe(remaining)
        # Timers may fire marginally early; never send before the window closes.
        while remaining > 0:
            await self._sleep(remaining)
            remaining = self._cooldown_until - self._clock()


def _resolve(
    delivery: asyncio.Future[DeliveryOutcome],
    link: asyncio.Task[DeliveryOutcome],
    request: NotificationRequest,
) -> None:
    if delivery.done():
        return
    if link.cancelled():
        WEBHOOK_DELIVERIES_TOTAL.labels(status=DeliveryStatus.DISCARDED.value).inc()
        logger.warning("Webhook notification #%s discarded before delivery", request.sequence)
        delivery.set_result(DeliveryOutcome(DeliveryStatus.DISCARDED, detail="discarded on shutdown"))
        return
    delivery.set_result(link.result())
