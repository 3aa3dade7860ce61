from __future__ import annotations

import unittest
from types import SimpleNamespace
from unittest import mock

from config.channels import ChannelConfig, ChannelDirectory

try:
    from misc.discord_gates import message_in_tracked_channels, resolve_channel_config
except ModuleNotFoundError:
    resolve_channel_config = None
    message_in_tracked_channels = None

DIRECTORY = ChannelDirectory(
    [
        ChannelConfig(name="intros", channel_id=123, response_type="welcome"),
        ChannelConfig(name="help", channel_id=456, response_type="analytics-only"),
        ChannelConfig(name="random", channel_id=789, response_type="analytics-only", enabled=False),
    ]
)


@unittest.skipIf(resolve_channel_config is None, "discord.py not installed")
class DiscordGatesTests(unittest.TestCase):
    def test_dm_is_never_tracked(self):
        message = SimpleNamespace(
            guild=None,
            channel=SimpleNamespace(id=123),
        )
        self.assertIsNone(resolve_channel_config(message, DIRECTORY))

    def test_configured_channel_resolves(self):
        message = SimpleNamespace(
            guild=SimpleNamespace(id=1),
            channel=SimpleNamespace(id=123),
        )
        config = resolve_channel_config(message, DIRECTORY)
        self.assertEqual(config.name, "intros")
        self.assertTrue(config.is_welcome)

    def test_unknown_and_disabled_channels_are_ignored(self):
        for channel_id in (999, 789):
            message = SimpleNamespace(
                guild=SimpleNamespace(id=1),
                channel=SimpleNamespace(id=channel_id),
            )
            self.assertFalse(message_in_tracked_channels(message, DIRECTORY))

    def test_thread_resolves_through_parent(self):
        class FakeThread:
            def __init__(self, channel_id: int, parent_id: int):
                self.id = int(channel_id)
                self.parent_id = int(parent_id)

        message = SimpleNamespace(
            guild=SimpleNamespace(id=1),
            channel=FakeThread(channel_id=777, parent_id=456),
        )
        with mock.patch("misc.discord_gates.discord.Thread", FakeThread):
            config = resolve_channel_config(message, DIRECTORY)
        self.assertEqual(config.name, "help")


if __name__ == "__main__":
    unittest.main()
