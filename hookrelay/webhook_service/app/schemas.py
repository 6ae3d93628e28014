"""Pydantic schemas for the webhook relay API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .dispatcher import DeliveryStatus


class VisitNotifyRequest(BaseModel):
    url: str | None = Field(default=None, max_length=2048)
    screen: str | None = Field(default=None, max_length=64)
    timezone: str | None = Field(default=None, max_length=64)
    language: str | None = Field(default=None, max_length=64)

    @field_validator("url", "screen", "timezone", "language")
    @classmethod
    def _strip_optional(cls, value: str | None) -> str | None:
        if value is None:
            return None
        cleaned = value.strip()
        if not cleaned:
            return None
        return cleaned


class VisitNotifyResponse(BaseModel):
    success: bool
    message: str


class EmbedQueuedResponse(BaseModel):
    queued: bool
    pending: int


class DeliveryOutcomeResponse(BaseModel):
    status: DeliveryStatus
    delivered: bool
    attempts: int
    status_code: int | None = Field(default=None, alias="statusCode")
    detail: str | None = None

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class DispatcherStatusResponse(BaseModel):
    enabled: bool
    pending: int
    cooldown_remaining_seconds: float = Field(alias="cooldownRemainingSeconds")

    model_config = ConfigDict(populate_by_name=True)
