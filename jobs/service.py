from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any

from analytics.ledger import AnalyticsLedger
from analytics.models import ReactedMessage
from analytics.reports import format_daily_summary
from config.defaults import ROLLUP_DAYS, ROLLUP_MAX_ITEMS, ROLLUP_MIN_REACTIONS


def reaction_total(message: Any) -> int:
    total = 0
    for reaction in getattr(message, "reactions", None) or []:
        try:
            total += int(getattr(reaction, "count", 0) or 0)
        except (TypeError, ValueError):
            continue
    return total


async def collect_rollup(
    *,
    ledger: AnalyticsLedger,
    fetch_message_func,
    days: int = ROLLUP_DAYS,
    min_reactions: int = ROLLUP_MIN_REACTIONS,
    max_items: int = ROLLUP_MAX_ITEMS,
    now: datetime | None = None,
) -> list[ReactedMessage]:
    """
    Recent tracked messages with at least `min_reactions` reactions, most reacted first.

    `fetch_message_func(channel_id, message_id)` returns the live platform
    message; a failed fetch skips that message.
    """
    ranked: list[ReactedMessage] = []
    candidates = ledger.messages_for_rollup(days, now=now)
    for tracked in candidates:
        try:
            live = await fetch_message_func(int(tracked.channel_id), int(tracked.message_id))
        except Exception as e:
            print(f"[Jobs] rollup fetch failed message={tracked.message_id}: {e}")
            continue
        if live is None:
            continue
        count = reaction_total(live)
        if count >= min_reactions:
            ranked.append(ReactedMessage(message=tracked, reaction_count=count))

    ranked.sort(key=lambda item: -item.reaction_count)
    print(f"[Jobs] rollup scanned={len(candidates)} kept={len(ranked)}")
    return ranked[:max_items]


async def post_daily_summary(*, ledger: AnalyticsLedger, slack_client: Any, channel: str) -> None:
    report = format_daily_summary(ledger)
    await slack_client.chat_postMessage(channel=channel, text=report.text, blocks=report.blocks)


async def daily_summary_loop(
    *,
    ledger: AnalyticsLedger,
    slack_client: Any,
    channel: str | None,
    interval_seconds: int,
) -> None:
    if slack_client is None or not channel:
        return

    while True:
        await asyncio.sleep(max(60, int(interval_seconds)))
        try:
            await post_daily_summary(ledger=ledger, slack_client=slack_client, channel=channel)
            print(f"[Jobs] daily summary posted channel={channel} messages={len(ledger)}")
        except Exception as e:
            print(f"[Jobs] daily summary loop error: {e}")
