"""Dependency helpers for the webhook relay service."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from .dispatcher import NotificationDispatcher


def get_dispatcher(request: Request) -> NotificationDispatcher:
    dispatcher = getattr(request.app.state, "dispatcher", None)
    if dispatcher is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="dispatcher_unavailable")
    return dispatcher
