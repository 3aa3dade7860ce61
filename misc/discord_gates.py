from __future__ import annotations

import discord

from config.channels import ChannelConfig, ChannelDirectory


def resolve_channel_config(message: discord.Message, directory: ChannelDirectory) -> ChannelConfig | None:
    # DMs never reach the analytics pipeline.
    if getattr(message, "guild", None) is None:
        return None

    channel_id = int(getattr(message.channel, "id", 0) or 0)
    config = directory.lookup(channel_id)
    if config is not None:
        return config
    # thread: resolve through its parent channel
    if isinstance(message.channel, discord.Thread) and message.channel.parent_id:
        return directory.lookup(int(message.channel.parent_id))
    return None


def message_in_tracked_channels(message: discord.Message, directory: ChannelDirectory) -> bool:
    return resolve_channel_config(message, directory) is not None
