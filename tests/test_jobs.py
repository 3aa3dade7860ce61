from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from analytics.ledger import AnalyticsLedger
from analytics.models import TrackedMessage
from jobs.service import collect_rollup, daily_summary_loop, post_daily_summary, reaction_total

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _tracked(message_id: str, *, days_ago: float = 1, channel_id: str | None = "50") -> TrackedMessage:
    return TrackedMessage(
        content=f"message {message_id}",
        author="a",
        channel="general",
        topic="praise",
        timestamp=NOW - timedelta(days=days_ago),
        message_id=message_id,
        channel_id=channel_id,
    )


def _live(*counts: int):
    return SimpleNamespace(reactions=[SimpleNamespace(emoji="👍", count=n) for n in counts])


class _FakeSlack:
    def __init__(self):
        self.posted: list[dict] = []

    async def chat_postMessage(self, **kwargs):
        self.posted.append(kwargs)
        return {"ok": True}


class ReactionTotalTests(unittest.TestCase):
    def test_sums_all_reactions(self) -> None:
        self.assertEqual(reaction_total(_live(2, 3)), 5)
        self.assertEqual(reaction_total(SimpleNamespace(reactions=[])), 0)
        self.assertEqual(reaction_total(SimpleNamespace()), 0)


class CollectRollupTests(unittest.IsolatedAsyncioTestCase):
    async def test_ranks_recent_messages_with_enough_reactions(self) -> None:
        ledger = AnalyticsLedger()
        ledger.record(_tracked("1"))
        ledger.record(_tracked("2"))
        ledger.record(_tracked("3"))
        ledger.record(_tracked("4", days_ago=9))
        ledger.record(_tracked("5", channel_id=None))
        ledger.record(_tracked("6"))

        live = {1: _live(3), 2: _live(1, 1), 3: _live(4, 4), 4: _live(50)}
        fetched: list[tuple[int, int]] = []

        async def fetch(channel_id: int, message_id: int):
            fetched.append((channel_id, message_id))
            if message_id == 6:
                raise RuntimeError("Unknown Message")
            return live[message_id]

        ranked = await collect_rollup(ledger=ledger, fetch_message_func=fetch, now=NOW)
        self.assertEqual([(r.message.message_id, r.reaction_count) for r in ranked], [("3", 8), ("1", 3)])
        self.assertEqual(fetched, [(50, 1), (50, 2), (50, 3), (50, 6)])

    async def test_max_items_caps_output(self) -> None:
        ledger = AnalyticsLedger()
        for idx in range(1, 6):
            ledger.record(_tracked(str(idx)))

        async def fetch(channel_id: int, message_id: int):
            return _live(message_id + 2)

        ranked = await collect_rollup(ledger=ledger, fetch_message_func=fetch, max_items=2, now=NOW)
        self.assertEqual([r.message.message_id for r in ranked], ["5", "4"])


class DailySummaryTests(unittest.IsolatedAsyncioTestCase):
    async def test_post_daily_summary_sends_blocks(self) -> None:
        ledger = AnalyticsLedger()
        ledger.record(_tracked("1"))
        slack = _FakeSlack()
        await post_daily_summary(ledger=ledger, slack_client=slack, channel="C-SUM")
        self.assertEqual(slack.posted[0]["channel"], "C-SUM")
        self.assertEqual(slack.posted[0]["text"], "📊 Daily Analytics Summary: 1 messages analyzed")
        self.assertTrue(slack.posted[0]["blocks"])

    async def test_loop_without_channel_returns_immediately(self) -> None:
        self.assertIsNone(
            await daily_summary_loop(ledger=AnalyticsLedger(), slack_client=_FakeSlack(), channel="", interval_seconds=60)
        )
        self.assertIsNone(
            await daily_summary_loop(ledger=AnalyticsLedger(), slack_client=None, channel="C", interval_seconds=60)
        )


if __name__ == "__main__":
    unittest.main()
