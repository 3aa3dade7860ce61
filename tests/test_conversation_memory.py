from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone

from memory.conversations import ConversationMemory, ConversationTurn

START = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


class _Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class ConversationMemoryTests(unittest.TestCase):
    def test_append_and_history_per_user(self) -> None:
        memory = ConversationMemory(clock=_Clock(START))
        memory.append("U1", "user", "what is trending?")
        memory.append("U1", "assistant", "support requests")
        memory.append("U2", "user", "hi")
        self.assertEqual([t.role for t in memory.history("U1")], ["user", "assistant"])
        self.assertEqual(len(memory.history("U2")), 1)
        self.assertEqual(memory.history("nobody"), [])

    def test_unknown_role_is_rejected(self) -> None:
        memory = ConversationMemory(clock=_Clock(START))
        with self.assertRaises(ValueError):
            memory.append("U1", "system", "nope")

    def test_retention_boundary(self) -> None:
        clock = _Clock(START)
        memory = ConversationMemory(retention=timedelta(hours=168), clock=clock)
        memory.append("U1", "user", "old question")

        clock.advance(hours=168, seconds=-1)
        self.assertEqual(len(memory.history("U1")), 1)

        clock.advance(seconds=1)
        self.assertEqual(memory.history("U1"), [])
        self.assertNotIn("U1", memory.user_ids())

    def test_append_prunes_expired_turns(self) -> None:
        clock = _Clock(START)
        memory = ConversationMemory(retention=timedelta(hours=1), clock=clock)
        memory.append("U1", "user", "first")
        clock.advance(hours=2)
        memory.append("U1", "user", "second")
        self.assertEqual([t.content for t in memory.history("U1")], ["second"])

    def test_clear_removes_history_and_notifies(self) -> None:
        calls: list[int] = []
        memory = ConversationMemory(clock=_Clock(START), on_change=lambda: calls.append(1))
        memory.append("U1", "user", "hello")
        self.assertTrue(memory.clear("U1"))
        self.assertFalse(memory.clear("U1"))
        self.assertEqual(memory.history("U1"), [])
        self.assertEqual(len(calls), 2)

    def test_history_only_notifies_when_pruning(self) -> None:
        calls: list[int] = []
        clock = _Clock(START)
        memory = ConversationMemory(retention=timedelta(hours=1), clock=clock, on_change=lambda: calls.append(1))
        memory.append("U1", "user", "hello")
        memory.history("U1")
        self.assertEqual(len(calls), 1)
        clock.advance(hours=1)
        memory.history("U1")
        self.assertEqual(len(calls), 2)

    def test_snapshot_and_load_drop_expired_turns(self) -> None:
        clock = _Clock(START)
        memory = ConversationMemory(retention=timedelta(hours=24), clock=clock)
        memory.load(
            {
                "U1": [
                    ConversationTurn("user", "stale", START - timedelta(hours=30)),
                    ConversationTurn("user", "fresh", START - timedelta(hours=1)),
                ],
                "U2": [ConversationTurn("user", "stale", START - timedelta(days=3))],
            }
        )
        snap = memory.snapshot()
        self.assertEqual(list(snap), ["U1"])
        self.assertEqual(snap["U1"][0]["content"], "fresh")
        self.assertEqual(snap["U1"][0]["timestamp"], (START - timedelta(hours=1)).isoformat())


if __name__ == "__main__":
    unittest.main()
