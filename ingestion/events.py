from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from analytics.models import as_utc, utc_now
from config.channels import ChannelConfig
from misc.discord_text import best_display_name


@dataclass(frozen=True, slots=True)
class InboundEvent:
    content: str
    author: str
    channel: str
    channel_id: str
    message_id: str
    created_at: datetime
    guild_id: str | None = None
    thread_id: str | None = None
    thread_name: str | None = None


def _id_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def build_inbound_event(message: Any, *, channel_config: ChannelConfig) -> tuple[InboundEvent | None, str | None]:
    """
    Returns (event, drop_reason). Exactly one of the two is None.

    `channel_config` is the already-resolved config for the message's channel,
    or for the parent channel when the message was posted inside a thread.
    """
    channel = getattr(message, "channel", None)
    author = getattr(message, "author", None)
    message_id = _id_str(getattr(message, "id", None))
    channel_id = _id_str(getattr(channel, "id", None))
    if channel is None or author is None or message_id is None or channel_id is None:
        return (None, "missing_fields")

    content = getattr(message, "content", None)
    if not isinstance(content, str):
        return (None, "missing_content")
    content = content.strip()
    if not content:
        return (None, "empty_content")

    thread_id = None
    thread_name = None
    if channel_id != str(channel_config.channel_id):
        thread_id = channel_id
        thread_name = str(getattr(channel, "name", "") or "").strip() or None

    created_at = getattr(message, "created_at", None)
    created_at = as_utc(created_at) if isinstance(created_at, datetime) else utc_now()

    guild = getattr(message, "guild", None)
    return (
        InboundEvent(
            content=content,
            author=best_display_name(author),
            channel=channel_config.name,
            channel_id=channel_id,
            message_id=message_id,
            created_at=created_at,
            guild_id=_id_str(getattr(guild, "id", None)) if guild is not None else None,
            thread_id=thread_id,
            thread_name=thread_name,
        ),
        None,
    )
