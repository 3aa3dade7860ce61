from __future__ import annotations

import asyncio
import json
import tempfile
import threading
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

from analytics.ledger import AnalyticsLedger
from analytics.models import TrackedMessage
from db.persistence import DebouncedSaveSlot, PersistenceManager
from db.snapshot_store import (
    decode_messages,
    message_from_record,
    message_to_record,
    parse_timestamp,
    read_json_file,
    write_json_atomic,
)
from memory.conversations import ConversationMemory


def _msg(**kwargs) -> TrackedMessage:
    base = {
        "content": "hello",
        "author": "sam",
        "channel": "general",
        "topic": "praise",
        "timestamp": datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc),
    }
    base.update(kwargs)
    return TrackedMessage(**base)


class SnapshotStoreTests(unittest.TestCase):
    def test_parse_timestamp_accepts_iso_z_and_epoch_millis(self) -> None:
        expected = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
        self.assertEqual(parse_timestamp("2026-03-01T12:00:00Z"), expected)
        self.assertEqual(parse_timestamp("2026-03-01T12:00:00.000Z"), expected)
        self.assertEqual(parse_timestamp(expected.timestamp() * 1000), expected)
        self.assertEqual(parse_timestamp(expected.timestamp()), expected)
        self.assertIsNone(parse_timestamp("not a date"))
        self.assertIsNone(parse_timestamp(None))

    def test_record_keeps_optional_fields(self) -> None:
        msg = _msg(channel="help", help_topic="ssh issue", thread_id="t1", thread_name="SSH")
        restored = message_from_record(message_to_record(msg))
        self.assertEqual(restored, msg)

    def test_legacy_camel_case_keys_are_accepted(self) -> None:
        row = {
            "content": "how do I ssh",
            "author": "kim",
            "channel": "help",
            "topic": "support-request",
            "timestamp": "2026-03-01T12:00:00.000Z",
            "helpTopic": "SSH issues",
            "threadId": "99",
            "threadName": "ssh help",
            "messageId": "5",
            "channelId": "7",
        }
        msg = message_from_record(row)
        self.assertIsNotNone(msg)
        self.assertEqual(msg.help_topic, "SSH issues")
        self.assertEqual(msg.thread_id, "99")
        self.assertEqual(msg.message_id, "5")
        self.assertEqual(msg.channel_id, "7")

    def test_malformed_rows_are_skipped(self) -> None:
        payload = {
            "messages": [
                message_to_record(_msg()),
                {"channel": "general", "topic": "spam", "timestamp": "2026-03-01T12:00:00Z"},
                {"channel": "general", "topic": "praise"},
                "garbage",
            ]
        }
        messages, skipped, warning = decode_messages(payload)
        self.assertEqual(len(messages), 1)
        self.assertEqual(skipped, 3)
        self.assertIsNone(warning)

    def test_read_json_file_reports_corruption(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            missing, warning = read_json_file(Path(td) / "none.json")
            self.assertIsNone(missing)
            self.assertIsNone(warning)

            bad = Path(td) / "bad.json"
            bad.write_text("{not json", encoding="utf-8")
            payload, warning = read_json_file(bad)
            self.assertIsNone(payload)
            self.assertIn("Failed to read snapshot", warning)

    def test_write_json_atomic_leaves_no_temp_files(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "nested" / "data.json"
            write_json_atomic(path, {"messages": []})
            write_json_atomic(path, {"messages": [1]})
            self.assertEqual(json.loads(path.read_text(encoding="utf-8")), {"messages": [1]})
            self.assertEqual([p.name for p in path.parent.iterdir()], ["data.json"])

    def test_arm_without_running_loop_only_marks_dirty(self) -> None:
        slot = DebouncedSaveSlot("test", 0.01, build_payload=lambda: {}, write_func=lambda p: None)
        slot.arm()
        self.assertTrue(slot.dirty)
        self.assertFalse(slot.pending)


class DebouncedSaveSlotTests(unittest.IsolatedAsyncioTestCase):
    async def test_burst_of_arms_coalesces_into_one_write(self) -> None:
        written: list[int] = []
        state = {"n": 0}
        slot = DebouncedSaveSlot(
            "test",
            0.02,
            build_payload=lambda: state["n"],
            write_func=written.append,
        )
        for idx in range(5):
            state["n"] = idx
            slot.arm()
        self.assertTrue(slot.pending)
        await asyncio.sleep(0.15)
        self.assertEqual(written, [4])
        self.assertEqual(slot.writes, 1)
        self.assertFalse(slot.dirty)
        self.assertFalse(slot.pending)

    async def test_flush_writes_immediately_and_cancels_timer(self) -> None:
        written: list[str] = []
        slot = DebouncedSaveSlot("test", 60.0, build_payload=lambda: "payload", write_func=written.append)
        slot.arm()
        self.assertTrue(await slot.flush())
        self.assertEqual(written, ["payload"])
        self.assertFalse(slot.pending)
        # Nothing dirty: flush is a no-op.
        self.assertTrue(await slot.flush())
        self.assertEqual(written, ["payload"])

    async def test_flush_waits_for_running_write(self) -> None:
        gate = threading.Event()
        started: list[int] = []
        active = {"now": 0, "max": 0}
        state = {"n": 1}

        def slow_write(payload):
            active["now"] += 1
            active["max"] = max(active["max"], active["now"])
            started.append(payload)
            gate.wait(2.0)
            active["now"] -= 1

        slot = DebouncedSaveSlot("test", 0.0, build_payload=lambda: state["n"], write_func=slow_write)
        slot.arm()
        await asyncio.sleep(0.05)
        self.assertEqual(started, [1])

        state["n"] = 2
        slot.arm()
        flushing = asyncio.create_task(slot.flush())
        await asyncio.sleep(0.05)
        self.assertEqual(started, [1])

        gate.set()
        self.assertTrue(await flushing)
        self.assertEqual(started, [1, 2])
        self.assertEqual(active["max"], 1)
        self.assertFalse(slot.dirty)

    async def test_write_failure_keeps_slot_dirty(self) -> None:
        def _fail(payload):
            raise OSError("disk full")

        slot = DebouncedSaveSlot("test", 60.0, build_payload=lambda: {}, write_func=_fail)
        slot.arm()
        self.assertFalse(await slot.flush())
        self.assertTrue(slot.dirty)
        self.assertEqual(slot.failures, 1)
        self.assertEqual(slot.writes, 0)


class PersistenceManagerTests(unittest.IsolatedAsyncioTestCase):
    async def test_flush_then_load_restores_both_stores(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            messages_path = Path(td) / "analytics-data.json"
            conversations_path = Path(td) / "conversations-data.json"

            ledger = AnalyticsLedger()
            memory = ConversationMemory()
            manager = PersistenceManager(
                ledger=ledger,
                memory=memory,
                messages_path=messages_path,
                conversations_path=conversations_path,
                messages_delay=60.0,
                conversations_delay=60.0,
            )
            manager.attach()
            ledger.record(_msg(topic="bug-report", timestamp=datetime.now(timezone.utc)))
            memory.append("U1", "user", "what's new?")
            self.assertTrue(manager.messages_slot.pending)
            self.assertTrue(manager.conversations_slot.pending)
            self.assertTrue(await manager.flush())

            restored_ledger = AnalyticsLedger()
            restored_memory = ConversationMemory()
            stats = PersistenceManager(
                ledger=restored_ledger,
                memory=restored_memory,
                messages_path=messages_path,
                conversations_path=conversations_path,
            ).load()
            self.assertEqual(stats["messages"], 1)
            self.assertEqual(stats["conversations"], 1)
            self.assertEqual(restored_ledger.summary(), ledger.summary())
            self.assertEqual(restored_memory.history("U1")[0].content, "what's new?")

    async def test_corrupt_messages_file_does_not_block_conversations(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            messages_path = Path(td) / "analytics-data.json"
            conversations_path = Path(td) / "conversations-data.json"
            messages_path.write_text("{broken", encoding="utf-8")
            recent = (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()
            conversations_path.write_text(
                json.dumps({"conversations": {"U9": [{"role": "user", "content": "hi", "timestamp": recent}]}}),
                encoding="utf-8",
            )

            ledger = AnalyticsLedger()
            memory = ConversationMemory()
            stats = PersistenceManager(
                ledger=ledger,
                memory=memory,
                messages_path=messages_path,
                conversations_path=conversations_path,
            ).load()
            self.assertEqual(stats["messages"], 0)
            self.assertFalse(ledger.has_data())
            self.assertEqual(stats["conversations"], 1)
            self.assertEqual(len(memory.history("U9")), 1)


if __name__ == "__main__":
    unittest.main()
