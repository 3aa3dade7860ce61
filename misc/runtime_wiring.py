from __future__ import annotations

from ingestion.service import backfill_channel as backfill_channel_service
from ingestion.service import record_inbound_message as record_inbound_message_service
from misc.events_runtime import register_runtime_events
from misc.runtime_deps import RuntimeBootDeps
from misc.runtime_deps import RuntimeDeps


def wire_bot_runtime(
    bot,
    *,
    ledger,
    memory,
    persistence,
    channel_directory,
    review_service,
    client,
    openai_model: str,
    backfill_enabled: bool,
    backfill_limit: int,
    backfill_pause_every: int,
    backfill_pause_seconds: float,
    daily_summary_loop_func,
    start_slack_func,
) -> None:
    async def record_message(message, *, channel_config):
        return await record_inbound_message_service(
            message,
            channel_config=channel_config,
            ledger=ledger,
            client=client,
            openai_model=openai_model,
        )

    async def backfill_channel(channel, *, channel_config):
        if channel_config is None:
            return 0
        return await backfill_channel_service(
            channel,
            channel_config=channel_config,
            record_func=record_message,
            bot_user=bot.user,
            backfill_limit=backfill_limit,
            backfill_pause_every=backfill_pause_every,
            backfill_pause_seconds=backfill_pause_seconds,
        )

    register_runtime_events(
        bot,
        deps=RuntimeDeps(
            ledger=ledger,
            memory=memory,
            persistence=persistence,
            channel_directory=channel_directory,
            record_message_func=record_message,
            review_service=review_service,
            client=client,
            openai_model=openai_model,
        ),
        boot=RuntimeBootDeps(
            backfill_enabled=backfill_enabled,
            backfill_channel_func=backfill_channel,
            daily_summary_loop_func=daily_summary_loop_func,
            start_slack_func=start_slack_func,
        ),
    )
