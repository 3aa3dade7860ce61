from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from analytics.models import as_utc, utc_now
from config.defaults import CONVERSATION_RETENTION_HOURS

ROLES = ("user", "assistant")


@dataclass(frozen=True, slots=True)
class ConversationTurn:
    role: str
    content: str
    timestamp: datetime

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValueError(f"Unknown conversation role: {self.role!r}")


class ConversationMemory:
    """
    Per-user conversation history with a fixed retention window.

    A turn written at T is visible to reads at T' < T + retention and gone at
    T' >= T + retention. Both reads and writes prune expired turns.
    """

    def __init__(
        self,
        *,
        retention: timedelta = timedelta(hours=CONVERSATION_RETENTION_HOURS),
        clock: Callable[[], datetime] = utc_now,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self.retention = retention
        self.clock = clock
        self.on_change = on_change
        self._turns: dict[str, list[ConversationTurn]] = {}

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change()

    def _live(self, turns: list[ConversationTurn], now: datetime) -> list[ConversationTurn]:
        return [t for t in turns if now - as_utc(t.timestamp) < self.retention]

    def _prune(self, user_id: str, now: datetime) -> list[ConversationTurn]:
        turns = self._live(self._turns.get(user_id, []), now)
        if turns:
            self._turns[user_id] = turns
        else:
            self._turns.pop(user_id, None)
        return turns

    def append(self, user_id: str, role: str, content: str) -> ConversationTurn:
        key = str(user_id)
        now = as_utc(self.clock())
        turn = ConversationTurn(role=role, content=str(content or ""), timestamp=now)
        turns = self._prune(key, now)
        turns.append(turn)
        self._turns[key] = turns
        self._notify()
        return turn

    def history(self, user_id: str) -> list[ConversationTurn]:
        key = str(user_id)
        if key not in self._turns:
            return []
        before = len(self._turns[key])
        turns = self._prune(key, as_utc(self.clock()))
        if len(turns) != before:
            self._notify()
        return list(turns)

    def clear(self, user_id: str) -> bool:
        removed = self._turns.pop(str(user_id), None) is not None
        if removed:
            self._notify()
        return removed

    def user_ids(self) -> list[str]:
        return list(self._turns)

    def has_data(self) -> bool:
        return any(self._turns.values())

    def snapshot(self) -> dict[str, list[dict[str, Any]]]:
        return {
            user_id: [
                {"role": t.role, "content": t.content, "timestamp": as_utc(t.timestamp).isoformat()}
                for t in turns
            ]
            for user_id, turns in self._turns.items()
            if turns
        }

    def load(self, turns_by_user: dict[str, list[ConversationTurn]]) -> None:
        now = as_utc(self.clock())
        self._turns = {}
        for user_id, turns in (turns_by_user or {}).items():
            live = self._live(list(turns), now)
            if live:
                self._turns[str(user_id)] = live
