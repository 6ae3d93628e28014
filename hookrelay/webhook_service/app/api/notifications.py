"""HTTP routes for submitting embeds and inspecting the dispatcher."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, Query, Response, status

from ..dependencies import get_dispatcher
from ..dispatcher import NotificationDispatcher
from ..embeds import Embed
from ..schemas import DeliveryOutcomeResponse, DispatcherStatusResponse, EmbedQueuedResponse

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.post(
    "/embeds",
    response_model=DeliveryOutcomeResponse | EmbedQueuedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def submit_embed(
    embed: Embed,
    response: Response,
    wait: bool = Query(default=False),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> DeliveryOutcomeResponse | EmbedQueuedResponse:
    delivery = dispatcher.enqueue(embed)
    if not wait:
        return EmbedQueuedResponse(queued=dispatcher.enabled, pending=dispatcher.pending)

    # A disconnecting client must not withdraw the queued embed.
    outcome = await asyncio.shield(delivery)
    response.status_code = status.HTTP_200_OK
    return DeliveryOutcomeResponse(
        status=outcome.status,
        delivered=outcome.delivered,
        attempts=outcome.attempts,
        statusCode=outcome.status_code,
        detail=outcome.detail,
    )


@router.get("/dispatcher", response_model=DispatcherStatusResponse)
async def dispatcher_status(
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> DispatcherStatusResponse:
    return DispatcherStatusResponse(
        enabled=dispatcher.enabled,
        pending=dispatcher.pending,
        cooldownRemainingSeconds=round(dispatcher.cooldown_remaining(), 3),
    )
