"""Slack payloads (fallback text + Block Kit blocks) built from the ledger."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from analytics.ledger import AnalyticsLedger
from analytics.models import TOPIC_EMOJIS, TOPIC_LABELS, ReactedMessage, ranked_topics, utc_now
from config.defaults import (
    ROLLUP_DAYS,
    ROLLUP_MAX_ITEMS,
    ROLLUP_MIN_REACTIONS,
    TOP_HELP_TOPICS_LIMIT,
    TOP_THREADS_LIMIT,
    TOP_THREADS_MIN_REPLIES,
)

DISCORD_BASE_URL = "https://discord.com/channels"
TRENDING_HELP_TOPICS = 3
ROLLUP_SNIPPET_CHARS = 100


@dataclass(slots=True)
class Report:
    text: str
    blocks: list[dict[str, Any]] = field(default_factory=list)

    def as_payload(self) -> dict[str, Any]:
        return {"text": self.text, "blocks": self.blocks}


def _header(text: str) -> dict[str, Any]:
    return {"type": "header", "text": {"type": "plain_text", "text": text, "emoji": True}}


def _section(text: str) -> dict[str, Any]:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def _context(text: str) -> dict[str, Any]:
    return {"type": "context", "elements": [{"type": "mrkdwn", "text": text}]}


_DIVIDER = {"type": "divider"}


def discord_link(guild_id: str | int, channel_id: str | int, message_id: str | int | None = None) -> str:
    base = f"{DISCORD_BASE_URL}/{guild_id}/{channel_id}"
    if message_id:
        return f"{base}/{message_id}"
    return base


def _topic_lines(counts: dict[str, int]) -> str:
    return "\n".join(
        f"{TOPIC_EMOJIS[topic]} {TOPIC_LABELS[topic]}: *{n}*" for topic, n in ranked_topics(counts)
    )


def _help_topic_list(ledger: AnalyticsLedger, limit: int) -> str:
    rows = ledger.top_help_topics(limit)
    return "\n".join(
        f"{idx}. *{row.topic}* — {row.count} request{'s' if row.count > 1 else ''}"
        for idx, row in enumerate(rows, start=1)
    )


def format_daily_summary(ledger: AnalyticsLedger, *, now: datetime | None = None) -> Report:
    totals = ledger.total_counts()
    total_messages = sum(totals.values())
    title = "📊 Daily Analytics Summary"
    if total_messages == 0:
        return Report(
            text=f"{title}: No messages recorded today",
            blocks=[_header(title), _section("_No messages recorded today._")],
        )

    blocks: list[dict[str, Any]] = [
        _header(title),
        _section(f"*Total Messages:* {total_messages}"),
        _DIVIDER,
        _section(f"*Overall Breakdown:*\n{_topic_lines(totals)}"),
    ]

    summary = ledger.summary()
    if len(summary) > 1:
        blocks.append(_DIVIDER)
        blocks.append(_section("*Per-Channel Breakdown:*"))
        for channel, counts in summary.items():
            channel_total = sum(counts.values())
            line = " | ".join(f"{TOPIC_EMOJIS[topic]} {n}" for topic, n in ranked_topics(counts))
            blocks.append(_context(f"*#{channel}* ({channel_total}): {line}"))

    trending = ledger.top_help_topics(TRENDING_HELP_TOPICS)
    if trending:
        lines = "\n".join(f"• {row.topic} ({row.count})" for row in trending)
        blocks.append(_DIVIDER)
        blocks.append(_section(f"*🔥 Trending Help Topics:*\n{lines}"))

    generated = (now or utc_now()).isoformat(timespec="seconds")
    blocks.append(_DIVIDER)
    blocks.append(_context(f"_Generated at {generated}_"))
    return Report(text=f"{title}: {total_messages} messages analyzed", blocks=blocks)


def format_top_help_topics(ledger: AnalyticsLedger, *, limit: int = TOP_HELP_TOPICS_LIMIT) -> Report:
    help_total = ledger.help_message_count()
    topic_list = _help_topic_list(ledger, limit)
    if not topic_list:
        return Report(
            text="No help topics tracked yet",
            blocks=[
                _section(
                    "📊 *Top Help Topics*\n\n_No help requests tracked yet. "
                    f"Data will appear as people ask questions in #{ledger.help_channel}._"
                )
            ],
        )
    return Report(
        text=f"Top {limit} Help Topics ({help_total} total requests)",
        blocks=[
            _header("📊 Top Help Topics"),
            _section(f"Based on *{help_total}* help requests:\n\n{topic_list}"),
            _context(f"_Data from #{ledger.help_channel} channel since bot started_"),
        ],
    )


def format_top_threads(
    ledger: AnalyticsLedger,
    guild_id: str | int,
    *,
    min_replies: int = TOP_THREADS_MIN_REPLIES,
    limit: int = TOP_THREADS_LIMIT,
) -> Report:
    threads = ledger.top_threads(min_replies, limit)
    if not threads:
        return Report(
            text=f"No threads with {min_replies}+ replies yet",
            blocks=[
                _section(
                    f"📊 *Top Help Threads*\n\n_No threads with {min_replies}+ replies yet. "
                    "Data will appear as discussions grow._"
                )
            ],
        )
    lines = "\n".join(
        f"{idx}.) <{discord_link(guild_id, t.thread_id)}|{t.thread_name}> ({t.reply_count} replies)"
        for idx, t in enumerate(threads, start=1)
    )
    return Report(
        text=f"Top {limit} Help Threads",
        blocks=[
            _header(f"🔥 Top Help Threads ({min_replies}+ replies)"),
            _section(lines),
            _context("_Click a thread title to view it in Discord_"),
        ],
    )


def format_combined_report(ledger: AnalyticsLedger, *, limit: int = TOP_HELP_TOPICS_LIMIT) -> Report:
    totals = ledger.total_counts()
    total_messages = sum(totals.values())
    if total_messages == 0:
        return Report(
            text="No analytics data yet",
            blocks=[
                _section(
                    "📊 *Analytics Report*\n\n_No data tracked yet. "
                    "Messages will be analyzed as they come in._"
                )
            ],
        )
    top_topics = ledger.top_help_topics(limit)
    topic_list = _help_topic_list(ledger, limit) or "_No help topics tracked yet_"
    top_label = top_topics[0].topic if top_topics else "N/A"
    return Report(
        text=f"Discord Analytics: {total_messages} messages, top topic: {top_label}",
        blocks=[
            _header("📊 Discord Analytics Report"),
            _section(f"*Summary* ({total_messages} total messages)\n\n{_topic_lines(totals)}"),
            _DIVIDER,
            _section(
                f"*🔥 Top {limit} Help Topics* ({ledger.help_message_count()} help requests)\n\n{topic_list}"
            ),
            _context("_Ask me anything about the community data!_"),
        ],
    )


def _snippet(content: str) -> str:
    text = " ".join(str(content or "").splitlines())
    if len(text) > ROLLUP_SNIPPET_CHARS:
        return text[:ROLLUP_SNIPPET_CHARS] + "..."
    return text


def format_weekly_rollup(ranked: list[ReactedMessage], guild_id: str | int) -> Report:
    title = "📊 Weekly Community Rollup"
    if not ranked:
        return Report(
            text=f"📊 Weekly Rollup: No messages with {ROLLUP_MIN_REACTIONS}+ reactions this week",
            blocks=[
                _header(title),
                _section(f"_No messages with {ROLLUP_MIN_REACTIONS}+ reactions in the last {ROLLUP_DAYS} days._"),
            ],
        )

    items = ranked[:ROLLUP_MAX_ITEMS]
    blocks: list[dict[str, Any]] = [
        _header(title),
        _context(f"_Top {len(items)} messages with {ROLLUP_MIN_REACTIONS}+ reactions from the last {ROLLUP_DAYS} days_"),
        _DIVIDER,
    ]
    for idx, item in enumerate(items, start=1):
        m = item.message
        # Messages inside threads link through the thread, not the parent channel.
        url = discord_link(guild_id, m.thread_id or m.channel_id, m.message_id)
        blocks.append(
            _section(
                f"{idx}. *{item.reaction_count} reactions* | #{m.channel} | _{m.topic}_\n"
                f"     <{url}|\"{_snippet(m.content)}\">"
            )
        )
    blocks.append(_DIVIDER)
    blocks.append(_context("_Click any message to view it in Discord_"))
    return Report(text=f"📊 Weekly Rollup: {len(items)} popular messages", blocks=blocks)
