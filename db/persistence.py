from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path
from typing import Any

from analytics.ledger import AnalyticsLedger
from config.defaults import CONVERSATIONS_SAVE_DELAY_SECONDS, MESSAGES_SAVE_DELAY_SECONDS
from db.snapshot_store import (
    decode_conversations,
    decode_messages,
    message_to_record,
    read_json_file,
    write_json_atomic,
)
from memory.conversations import ConversationMemory


class DebouncedSaveSlot:
    """
    One pending save per store. Arming cancels the previous pending task, so a
    burst of mutations produces a single write after `delay` seconds of quiet.

    The payload is built on the event loop; the write runs in a worker thread.
    Writes never overlap, so the file always ends with the newest payload.
    Outside a running loop, arm() only marks the slot dirty until flush().
    """

    def __init__(
        self,
        name: str,
        delay: float,
        *,
        build_payload: Callable[[], Any],
        write_func: Callable[[Any], None],
    ) -> None:
        self.name = name
        self.delay = float(delay)
        self.build_payload = build_payload
        self.write_func = write_func
        self.dirty = False
        self.writes = 0
        self.failures = 0
        self._task: asyncio.Task | None = None
        self._write_lock = asyncio.Lock()

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def arm(self) -> None:
        self.dirty = True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self.cancel()
        self._task = loop.create_task(self._run())

    def cancel(self) -> None:
        task = self._task
        self._task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _run(self) -> None:
        await asyncio.sleep(self.delay)
        self._task = None
        async with self._write_lock:
            if self.dirty:
                await self._write()

    async def flush(self) -> bool:
        self.cancel()
        # Waits out a write already running in the worker thread.
        async with self._write_lock:
            if not self.dirty:
                return True
            return await self._write()

    async def _write(self) -> bool:
        payload = self.build_payload()
        self.dirty = False
        try:
            await asyncio.to_thread(self.write_func, payload)
        except Exception as e:
            # Retried on the next arming.
            self.dirty = True
            self.failures += 1
            print(f"[Persist] save failed slot={self.name}: {e}")
            return False
        self.writes += 1
        return True


class PersistenceManager:
    """Owns the two snapshot files and their save slots."""

    def __init__(
        self,
        *,
        ledger: AnalyticsLedger,
        memory: ConversationMemory,
        messages_path: str | Path,
        conversations_path: str | Path,
        messages_delay: float = MESSAGES_SAVE_DELAY_SECONDS,
        conversations_delay: float = CONVERSATIONS_SAVE_DELAY_SECONDS,
    ) -> None:
        self.ledger = ledger
        self.memory = memory
        self.messages_path = Path(messages_path)
        self.conversations_path = Path(conversations_path)
        self.messages_slot = DebouncedSaveSlot(
            "messages",
            messages_delay,
            build_payload=self._messages_payload,
            write_func=lambda payload: write_json_atomic(self.messages_path, payload),
        )
        self.conversations_slot = DebouncedSaveSlot(
            "conversations",
            conversations_delay,
            build_payload=self._conversations_payload,
            write_func=lambda payload: write_json_atomic(self.conversations_path, payload),
        )

    def attach(self) -> None:
        """Route store mutations into the save slots."""
        self.ledger.on_change = self.schedule_messages_save
        self.memory.on_change = self.schedule_conversations_save

    def _messages_payload(self) -> dict[str, Any]:
        return {"messages": [message_to_record(m) for m in self.ledger.all_messages()]}

    def _conversations_payload(self) -> dict[str, Any]:
        return {"conversations": self.memory.snapshot()}

    def load(self) -> dict[str, int]:
        """Load both snapshots independently; failures leave that store empty."""
        stats = {"messages": 0, "messages_skipped": 0, "conversations": 0, "turns_skipped": 0}

        payload, warning = read_json_file(self.messages_path)
        messages, skipped, decode_warning = decode_messages(payload)
        for msg in (warning, decode_warning):
            if msg:
                print(f"[Persist] {msg}; starting with an empty message log")
        self.ledger.load(messages)
        stats["messages"] = len(messages)
        stats["messages_skipped"] = skipped

        payload, warning = read_json_file(self.conversations_path)
        turns, skipped, decode_warning = decode_conversations(payload)
        for msg in (warning, decode_warning):
            if msg:
                print(f"[Persist] {msg}; starting with empty conversations")
        self.memory.load(turns)
        stats["conversations"] = len(self.memory.user_ids())
        stats["turns_skipped"] = skipped

        print(
            f"[Persist] loaded messages={stats['messages']} skipped={stats['messages_skipped']} "
            f"conversations={stats['conversations']} skipped_turns={stats['turns_skipped']}"
        )
        return stats

    def has_data(self) -> bool:
        return self.ledger.has_data()

    def schedule_messages_save(self) -> None:
        self.messages_slot.arm()

    def schedule_conversations_save(self) -> None:
        self.conversations_slot.arm()

    def schedule_save(self) -> None:
        self.schedule_messages_save()
        self.schedule_conversations_save()

    async def flush(self) -> bool:
        ok_messages = await self.messages_slot.flush()
        ok_conversations = await self.conversations_slot.flush()
        return ok_messages and ok_conversations
