from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

# Enumeration order doubles as the display tie-break.
TOPICS = (
    "support-request",
    "feature-request",
    "bug-report",
    "general-discussion",
    "praise",
    "question",
)
VALID_TOPICS = frozenset(TOPICS)
DEFAULT_TOPIC = "general-discussion"

TOPIC_LABELS = {
    "support-request": "Support Requests",
    "feature-request": "Feature Requests",
    "bug-report": "Bug Reports",
    "general-discussion": "General Discussion",
    "praise": "Praise",
    "question": "Questions",
}

TOPIC_EMOJIS = {
    "support-request": "🆘",
    "feature-request": "💡",
    "bug-report": "🐛",
    "general-discussion": "💬",
    "praise": "🎉",
    "question": "❓",
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass(frozen=True, slots=True)
class TrackedMessage:
    content: str
    author: str
    channel: str
    topic: str
    timestamp: datetime
    help_topic: str | None = None
    thread_id: str | None = None
    thread_name: str | None = None
    message_id: str | None = None
    channel_id: str | None = None

    def __post_init__(self) -> None:
        if self.topic not in VALID_TOPICS:
            raise ValueError(f"Unknown topic: {self.topic!r}")


@dataclass(frozen=True, slots=True)
class HelpTopicCount:
    topic: str
    count: int


@dataclass(frozen=True, slots=True)
class ThreadActivity:
    thread_id: str
    thread_name: str
    reply_count: int


def ranked_topics(counts: dict[str, int]) -> list[tuple[str, int]]:
    """Non-zero topics by count descending; ties keep enumeration order."""
    order = {topic: idx for idx, topic in enumerate(TOPICS)}
    items = [(t, int(n)) for t, n in counts.items() if int(n) > 0 and t in order]
    return sorted(items, key=lambda item: (-item[1], order[item[0]]))


@dataclass(frozen=True, slots=True)
class ReactedMessage:
    message: TrackedMessage
    reaction_count: int
