from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime, timedelta

from analytics.models import (
    TOPICS,
    HelpTopicCount,
    ThreadActivity,
    TrackedMessage,
    as_utc,
    ranked_topics,
    utc_now,
)
from analytics.normalizer import normalize_help_topic
from config.defaults import HELP_CHANNEL_NAME, TOP_HELP_TOPICS_LIMIT, TOP_THREADS_LIMIT, TOP_THREADS_MIN_REPLIES


def _empty_topic_counts() -> dict[str, int]:
    return {topic: 0 for topic in TOPICS}


class AnalyticsLedger:
    """
    Append-only log of TrackedMessages plus per-channel topic counters.

    The log is the source of truth. Counters are a cache that always equals
    a fold over the log; `recount()` rebuilds them from scratch.
    """

    def __init__(
        self,
        *,
        help_channel: str = HELP_CHANNEL_NAME,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self.help_channel = help_channel
        self.on_change = on_change
        self._log: list[TrackedMessage] = []
        self._counts: dict[str, dict[str, int]] = {}

    def __len__(self) -> int:
        return len(self._log)

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change()

    def _count(self, message: TrackedMessage) -> None:
        channel_counts = self._counts.setdefault(message.channel, _empty_topic_counts())
        channel_counts[message.topic] = channel_counts.get(message.topic, 0) + 1

    def record(self, message: TrackedMessage) -> None:
        if not isinstance(message, TrackedMessage):
            raise TypeError("record() expects a TrackedMessage")
        self._log.append(message)
        self._count(message)
        self._notify()

    def recount(self) -> dict[str, dict[str, int]]:
        self._counts = {}
        for message in self._log:
            self._count(message)
        return self.summary()

    def load(self, messages: Iterable[TrackedMessage]) -> None:
        """Replace the log wholesale (startup load) and rebuild counters."""
        self._log = [m for m in messages if isinstance(m, TrackedMessage)]
        self.recount()

    def reset(self) -> None:
        self._log = []
        self._counts = {}
        self._notify()

    def has_data(self) -> bool:
        return bool(self._log)

    def all_messages(self) -> list[TrackedMessage]:
        return list(self._log)

    def recent_messages(self, channel: str | None = None, limit: int = 20) -> list[TrackedMessage]:
        rows = [m for m in self._log if channel is None or m.channel == channel]
        if limit <= 0:
            return []
        return rows[-limit:]

    def summary(self) -> dict[str, dict[str, int]]:
        """channel -> topic -> count, copies only."""
        return {channel: dict(counts) for channel, counts in self._counts.items()}

    def total_counts(self) -> dict[str, int]:
        totals = _empty_topic_counts()
        for counts in self._counts.values():
            for topic, n in counts.items():
                totals[topic] = totals.get(topic, 0) + n
        return totals

    def top_counts(self, scope: str | None = None) -> list[tuple[str, int]]:
        """Ranked (topic, count) pairs for one channel, or across all when scope is None."""
        if scope is None:
            return ranked_topics(self.total_counts())
        return ranked_topics(self._counts.get(scope, {}))

    def help_message_count(self) -> int:
        return sum(1 for m in self._log if m.channel == self.help_channel)

    def top_help_topics(self, limit: int = TOP_HELP_TOPICS_LIMIT) -> list[HelpTopicCount]:
        if limit <= 0:
            return []
        # dict preserves first-seen order; sorted() is stable.
        counts: dict[str, int] = {}
        for message in self._log:
            if message.channel != self.help_channel or not message.help_topic:
                continue
            key = normalize_help_topic(message.help_topic)
            if not key:
                continue
            counts[key] = counts.get(key, 0) + 1
        ranked = sorted(counts.items(), key=lambda item: -item[1])
        return [HelpTopicCount(topic=t, count=n) for t, n in ranked[:limit]]

    def top_threads(
        self,
        min_replies: int = TOP_THREADS_MIN_REPLIES,
        limit: int = TOP_THREADS_LIMIT,
    ) -> list[ThreadActivity]:
        if limit <= 0:
            return []
        names: dict[str, str] = {}
        counts: dict[str, int] = {}
        for message in self._log:
            if not message.thread_id or not message.thread_name:
                continue
            names.setdefault(message.thread_id, message.thread_name)
            counts[message.thread_id] = counts.get(message.thread_id, 0) + 1
        eligible = [(tid, n) for tid, n in counts.items() if n >= min_replies]
        ranked = sorted(eligible, key=lambda item: -item[1])
        return [
            ThreadActivity(thread_id=tid, thread_name=names[tid], reply_count=n)
            for tid, n in ranked[:limit]
        ]

    def messages_for_rollup(self, days: int, *, now: datetime | None = None) -> list[TrackedMessage]:
        """Messages inside the last `days` that carry the ids needed to fetch reactions."""
        cutoff = as_utc(now or utc_now()) - timedelta(days=days)
        return [
            m
            for m in self._log
            if m.message_id and m.channel_id and as_utc(m.timestamp) >= cutoff
        ]
