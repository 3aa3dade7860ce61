from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable


@dataclass(frozen=True)
class RuntimeDeps:
    # state
    ledger: Any
    memory: Any
    persistence: Any
    channel_directory: Any

    # pipeline
    record_message_func: Callable
    review_service: Any

    # llm
    client: Any
    openai_model: str


@dataclass(frozen=True)
class RuntimeBootDeps:
    backfill_enabled: bool
    backfill_channel_func: Callable
    daily_summary_loop_func: Callable | None
    start_slack_func: Callable | None


@dataclass(frozen=True)
class SlackDeps:
    ledger: Any
    memory: Any
    review_service: Any
    client: Any
    openai_model: str
    guild_id: str
    collect_rollup_func: Callable | None = None
