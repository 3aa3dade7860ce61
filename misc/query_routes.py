from __future__ import annotations

import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from analytics.ledger import AnalyticsLedger
from analytics.models import ReactedMessage
from analytics.reports import (
    Report,
    format_combined_report,
    format_daily_summary,
    format_top_help_topics,
    format_top_threads,
    format_weekly_rollup,
)
from memory.conversations import ConversationMemory
from retrieval.service import answer_freeform

RESET_TRIGGERS = (
    "forget",
    "clear history",
    "start over",
    "new conversation",
    "reset conversation",
)
OVERVIEW_WORDS = {"analytics", "report", "stats"}
CLEARED_MESSAGE = "🧹 Conversation history cleared. What would you like to know about the community?"


@dataclass(frozen=True)
class QueryContext:
    ledger: AnalyticsLedger
    memory: ConversationMemory
    client: Any
    openai_model: str
    user_id: str
    guild_id: str
    collect_rollup_func: Callable[[], Awaitable[list[ReactedMessage]]] | None = None


@dataclass(frozen=True)
class QueryRule:
    name: str
    predicate: Callable[[str], bool]
    action: Callable[[QueryContext, str], Awaitable[Report]]


def clean_query_text(text: str) -> str:
    """Strip Slack user mentions and surrounding whitespace."""
    return re.sub(r"<@[A-Z0-9]+(\|[^>]*)?>", "", text or "").strip()


def _norm(text: str) -> str:
    return " ".join((text or "").lower().split())


def is_reset_request(text: str) -> bool:
    t = _norm(text)
    return any(trigger in t for trigger in RESET_TRIGGERS)


def is_threads_request(text: str) -> bool:
    return bool(re.search(r"\bthreads?\b", _norm(text)))


def is_help_topics_request(text: str) -> bool:
    t = _norm(text)
    return bool(re.search(r"\bhelp topics?\b", t) or re.search(r"\btop\b.*\btopics?\b|\btopics?\b.*\btop\b", t))


def is_rollup_request(text: str) -> bool:
    t = _norm(text)
    return bool(re.search(r"\b(rollup|roll-up|weekly|reactions?|popular)\b", t))


def is_summary_request(text: str) -> bool:
    return bool(re.search(r"\b(summary|daily)\b", _norm(text)))


def is_overview_request(text: str) -> bool:
    t = _norm(text)
    return not t or t in OVERVIEW_WORDS


async def _forget(ctx: QueryContext, text: str) -> Report:
    ctx.memory.clear(ctx.user_id)
    return Report(text=CLEARED_MESSAGE)


async def _threads(ctx: QueryContext, text: str) -> Report:
    return format_top_threads(ctx.ledger, ctx.guild_id)


async def _help_topics(ctx: QueryContext, text: str) -> Report:
    return format_top_help_topics(ctx.ledger)


async def _rollup(ctx: QueryContext, text: str) -> Report:
    ranked = await ctx.collect_rollup_func() if ctx.collect_rollup_func is not None else []
    return format_weekly_rollup(ranked, ctx.guild_id)


async def _summary(ctx: QueryContext, text: str) -> Report:
    return format_daily_summary(ctx.ledger)


async def _overview(ctx: QueryContext, text: str) -> Report:
    return format_combined_report(ctx.ledger)


async def _freeform(ctx: QueryContext, text: str) -> Report:
    answer = await answer_freeform(
        text,
        ctx.user_id,
        ledger=ctx.ledger,
        memory=ctx.memory,
        client=ctx.client,
        openai_model=ctx.openai_model,
    )
    return Report(text=answer)


# Evaluated top to bottom; the first matching predicate wins.
QUERY_RULES: tuple[QueryRule, ...] = (
    QueryRule("forget", is_reset_request, _forget),
    QueryRule("threads", is_threads_request, _threads),
    QueryRule("help_topics", is_help_topics_request, _help_topics),
    QueryRule("rollup", is_rollup_request, _rollup),
    QueryRule("summary", is_summary_request, _summary),
    QueryRule("overview", is_overview_request, _overview),
)
FALLBACK_RULE = QueryRule("freeform", lambda text: True, _freeform)


def classify_query_route(text: str, rules: tuple[QueryRule, ...] = QUERY_RULES) -> QueryRule:
    for rule in rules:
        if rule.predicate(text):
            return rule
    return FALLBACK_RULE


async def route_query(text: str, ctx: QueryContext) -> tuple[str, Report]:
    """Returns (route_name, report) for one analytics query."""
    clean = clean_query_text(text)
    rule = classify_query_route(clean)
    return (rule.name, await rule.action(ctx, clean))
