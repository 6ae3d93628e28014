"""Embed payloads accepted by the chat-ops webhook."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

VISIT_COLOR = 0x3498DB
VISIT_FOOTER = "JourneyAI Analytics"
_UNKNOWN = "Unknown"


class EmbedField(BaseModel):
    name: str
    value: str
    inline: bool = False


class EmbedFooter(BaseModel):
    text: str


class Embed(BaseModel):
    title: str | None = Field(default=None, max_length=256)
    description: str | None = Field(default=None, max_length=4096)
    color: int | None = Field(default=None, ge=0, le=0xFFFFFF)
    fields: list[EmbedField] = Field(default_factory=list)
    timestamp: str | None = None
    footer: EmbedFooter | None = None

    model_config = ConfigDict(extra="allow")


def build_visit_embed(visit: Any, *, now: datetime | None = None) -> Embed:
    """Build the "Website Visit" embed for a tracked page view.

    ``visit`` is any object exposing ``url``, ``screen``, ``timezone`` and
    ``language`` attributes; missing or empty values render as ``Unknown``.
    """

    moment = now or datetime.now(tz=timezone.utc)

    def _value(attribute: str) -> str:
        raw = getattr(visit, attribute, None)
        return str(raw) if raw else _UNKNOWN

    return Embed(
        title="🌐 Website Visit",
        description="Someone visited JourneyAI!",
        color=VISIT_COLOR,
        fields=[
            EmbedField(name="📍 URL", value=_value("url"), inline=True),
            EmbedField(name="🖥️ Screen", value=_value("screen"), inline=True),
            EmbedField(name="🌍 Timezone", value=_value("timezone"), inline=True),
            EmbedField(name="🗣️ Language", value=_value("language"), inline=True),
        ],
        timestamp=moment.isoformat(),
        footer=EmbedFooter(text=VISIT_FOOTER),
    )


def serialize_payload(payload: Embed | dict[str, Any] | str | bytes) -> bytes:
    """Encode a payload for the sink.

    Embeds are wrapped as ``{"embeds": [...]}``; strings and bytes are sent
    as-is.
    """

    if isinstance(payload, bytes):
        return payload
    if isinstance(payload, str):
        return payload.encode("utf-8")
    if isinstance(payload, Embed):
        payload = {"embeds": [payload.model_dump(mode="json", exclude_none=True)]}
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str).encode("utf-8")
