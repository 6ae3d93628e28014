"""Visit tracking route that feeds the webhook dispatcher."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from ..dependencies import get_dispatcher
from ..dispatcher import NotificationDispatcher
from ..embeds import build_visit_embed
from ..schemas import VisitNotifyRequest, VisitNotifyResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/visit", tags=["visits"])

_USER_AGENT_PREVIEW = 50


@router.post("/notify", response_model=VisitNotifyResponse)
async def notify_visit(
    payload: VisitNotifyRequest,
    request: Request,
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> VisitNotifyResponse:
    user_agent = request.headers.get("user-agent", "")
    logger.info(
        "Website visit tracked url=%s screen=%s timezone=%s language=%s client=%s agent=%s",
        payload.url,
        payload.screen,
        payload.timezone,
        payload.language,
        request.client.host if request.client else None,
        user_agent[:_USER_AGENT_PREVIEW],
    )
    dispatcher.enqueue(build_visit_embed(payload))
    return VisitNotifyResponse(success=True, message="Visit tracked successfully")
