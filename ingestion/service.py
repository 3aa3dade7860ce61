from __future__ import annotations

import asyncio
from typing import Any

from analytics.ledger import AnalyticsLedger
from analytics.models import TrackedMessage
from classifier.service import classify_message, extract_help_topic
from config.channels import ChannelConfig
from ingestion.events import InboundEvent, build_inbound_event


async def record_inbound_event(
    event: InboundEvent,
    *,
    ledger: AnalyticsLedger,
    client: Any,
    openai_model: str,
) -> TrackedMessage:
    topic = await classify_message(event.content, client=client, model=openai_model)
    help_topic = None
    if event.channel == ledger.help_channel:
        help_topic = await extract_help_topic(event.content, client=client, model=openai_model)

    tracked = TrackedMessage(
        content=event.content,
        author=event.author,
        channel=event.channel,
        topic=topic,
        timestamp=event.created_at,
        help_topic=help_topic,
        thread_id=event.thread_id,
        thread_name=event.thread_name,
        message_id=event.message_id,
        channel_id=event.channel_id,
    )
    ledger.record(tracked)
    return tracked


async def record_inbound_message(
    message: Any,
    *,
    channel_config: ChannelConfig,
    ledger: AnalyticsLedger,
    client: Any,
    openai_model: str,
) -> TrackedMessage | None:
    """Classify and record one platform message. Never raises."""
    event, reason = build_inbound_event(message, channel_config=channel_config)
    if event is None:
        print(f"[Ingest] dropped message id={getattr(message, 'id', None)} reason={reason}")
        return None
    try:
        tracked = await record_inbound_event(event, ledger=ledger, client=client, openai_model=openai_model)
    except Exception as e:
        print(f"[Ingest] Error recording message {event.message_id} in #{event.channel}: {e}")
        return None
    print(f"[Ingest] #{tracked.channel} {tracked.author}: {tracked.topic}")
    return tracked


async def _backfill_history(
    source: Any,
    *,
    channel_config: ChannelConfig,
    record_func,
    bot_user: Any | None,
    backfill_limit: int,
    backfill_pause_every: int,
    backfill_pause_seconds: float,
) -> int:
    count = 0
    async for msg in source.history(limit=backfill_limit, oldest_first=True):
        if getattr(msg.author, "bot", False):
            continue
        if bot_user is not None and getattr(msg.author, "id", None) == getattr(bot_user, "id", None):
            continue
        if await record_func(msg, channel_config=channel_config) is not None:
            count += 1
            if count % max(1, int(backfill_pause_every)) == 0:
                await asyncio.sleep(float(backfill_pause_seconds))
    return count


async def backfill_channel(
    channel: Any,
    *,
    channel_config: ChannelConfig,
    record_func,
    bot_user: Any | None,
    backfill_limit: int,
    backfill_pause_every: int,
    backfill_pause_seconds: float,
) -> int:
    """
    Replay recent history of one configured channel (and its active threads)
    through `record_func`. Returns the number of messages recorded.
    """
    if not hasattr(channel, "id"):
        return 0

    channel_id = channel.id
    print(
        f"[Backfill] Starting channel {channel_id} ({getattr(channel, 'name', 'unknown')}) "
        f"limit={backfill_limit}"
    )

    sources = []
    # Forum channels have no history of their own; only their threads do.
    if hasattr(channel, "history"):
        sources.append(channel)
    sources.extend(list(getattr(channel, "threads", None) or []))

    count = 0
    for source in sources:
        try:
            count += await _backfill_history(
                source,
                channel_config=channel_config,
                record_func=record_func,
                bot_user=bot_user,
                backfill_limit=backfill_limit,
                backfill_pause_every=backfill_pause_every,
                backfill_pause_seconds=backfill_pause_seconds,
            )
        except Exception as e:
            print(f"[Backfill] Error in channel {getattr(source, 'id', channel_id)}: {e}")

    print(f"[Backfill] Done channel {channel_id}. Recorded {count} messages.")
    return count
