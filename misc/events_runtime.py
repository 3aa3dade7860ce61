from __future__ import annotations

import asyncio

import discord
from discord.ext import commands

from config.channels import ChannelConfig
from misc.discord_gates import resolve_channel_config
from misc.runtime_deps import RuntimeBootDeps
from misc.runtime_deps import RuntimeDeps


def _is_thread_message(message: discord.Message, config: ChannelConfig) -> bool:
    return int(getattr(message.channel, "id", 0) or 0) != int(config.channel_id)


async def handle_tracked_message(message: discord.Message, config: ChannelConfig, *, deps: RuntimeDeps) -> None:
    """Per-message pipeline: analytics for every tracked channel, review drafts for welcome channels."""
    await deps.record_message_func(message, channel_config=config)

    if not config.is_welcome or _is_thread_message(message, config):
        return
    try:
        await deps.review_service.handle_intro(message, channel_name=config.name)
    except Exception as e:
        print(f"[Review] Error processing intro {getattr(message, 'id', None)}: {e}")


async def run_startup(bot: commands.Bot, *, deps: RuntimeDeps, boot: RuntimeBootDeps) -> None:
    if boot.start_slack_func is not None and not getattr(bot, "_slack_task", None):
        bot._slack_task = asyncio.create_task(boot.start_slack_func())
        print("[Slack] socket mode starting")

    if not boot.backfill_enabled:
        print("[Backfill] disabled by config")
    elif deps.persistence.has_data():
        print(f"[Backfill] skipped; snapshot already holds {len(deps.ledger)} messages")
    else:
        for channel_id in sorted(deps.channel_directory.enabled_ids()):
            channel = bot.get_channel(channel_id)
            if channel is None:
                try:
                    channel = await bot.fetch_channel(channel_id)
                except Exception as e:
                    print(f"[Backfill] Could not fetch channel {channel_id}: {e}")
                    continue
            await boot.backfill_channel_func(channel, channel_config=deps.channel_directory.lookup(channel_id))

    if boot.daily_summary_loop_func is not None and not getattr(bot, "_daily_summary_task", None):
        bot._daily_summary_task = asyncio.create_task(boot.daily_summary_loop_func())
        print("[Jobs] daily summary loop started")


def register_runtime_events(
    bot: commands.Bot,
    *,
    deps: RuntimeDeps,
    boot: RuntimeBootDeps,
) -> None:
    @bot.event
    async def on_ready():
        print(f"Marco is online as {bot.user} tracking {len(deps.channel_directory)} channels")
        # on_ready fires again after reconnects.
        if getattr(bot, "_startup_done", False):
            return
        bot._startup_done = True
        await run_startup(bot, deps=deps, boot=boot)

    @bot.event
    async def on_message(message: discord.Message):
        if message.author.bot:
            return

        config = resolve_channel_config(message, deps.channel_directory)
        if config is None:
            return

        # Each message gets its own task so a slow classification only delays that message.
        task = asyncio.create_task(handle_tracked_message(message, config, deps=deps))
        pending = getattr(bot, "_message_tasks", None)
        if pending is None:
            pending = set()
            bot._message_tasks = pending
        pending.add(task)
        task.add_done_callback(pending.discard)
