"""JSON snapshot files for the message log and conversation memory.

Both files are loaded wholesale at startup and rewritten wholesale on save.
Keys are snake_case; camelCase keys written by older versions are accepted.
"""

from __future__ import annotations

import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from analytics.models import TrackedMessage, as_utc
from memory.conversations import ConversationTurn

_LEGACY_MESSAGE_KEYS = {
    "helpTopic": "help_topic",
    "threadId": "thread_id",
    "threadName": "thread_name",
    "messageId": "message_id",
    "channelId": "channel_id",
}

_OPTIONAL_MESSAGE_FIELDS = ("help_topic", "thread_id", "thread_name", "message_id", "channel_id")


def parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = float(value)
        # Millisecond epochs.
        if seconds > 1e11:
            seconds /= 1000.0
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    text = str(value or "").strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return as_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def message_to_record(message: TrackedMessage) -> dict[str, Any]:
    record: dict[str, Any] = {
        "content": message.content,
        "author": message.author,
        "channel": message.channel,
        "topic": message.topic,
        "timestamp": as_utc(message.timestamp).isoformat(),
    }
    for name in _OPTIONAL_MESSAGE_FIELDS:
        value = getattr(message, name)
        if value is not None:
            record[name] = value
    return record


def message_from_record(record: Any) -> TrackedMessage | None:
    """TrackedMessage from a snapshot row, or None when the row is malformed."""
    if not isinstance(record, dict):
        return None
    row = dict(record)
    for legacy, key in _LEGACY_MESSAGE_KEYS.items():
        if key not in row and legacy in row:
            row[key] = row[legacy]

    timestamp = parse_timestamp(row.get("timestamp"))
    channel = _opt_str(row.get("channel"))
    if timestamp is None or channel is None:
        return None
    try:
        return TrackedMessage(
            content=str(row.get("content") or ""),
            author=str(row.get("author") or ""),
            channel=channel,
            topic=str(row.get("topic") or ""),
            timestamp=timestamp,
            **{name: _opt_str(row.get(name)) for name in _OPTIONAL_MESSAGE_FIELDS},
        )
    except ValueError:
        return None


def turn_from_record(record: Any) -> ConversationTurn | None:
    if not isinstance(record, dict):
        return None
    timestamp = parse_timestamp(record.get("timestamp"))
    if timestamp is None:
        return None
    try:
        return ConversationTurn(
            role=str(record.get("role") or ""),
            content=str(record.get("content") or ""),
            timestamp=timestamp,
        )
    except ValueError:
        return None


def read_json_file(path: str | Path) -> tuple[Any, str | None]:
    """
    Returns (payload, warning_message). A missing file is (None, None).
    """
    p = Path(path)
    if not p.exists():
        return (None, None)
    try:
        return (json.loads(p.read_text(encoding="utf-8")), None)
    except Exception as exc:
        return (None, f"Failed to read snapshot {p}: {exc}")


def decode_messages(payload: Any) -> tuple[list[TrackedMessage], int, str | None]:
    """Returns (messages, skipped_rows, warning)."""
    if payload is None:
        return ([], 0, None)
    rows = payload.get("messages") if isinstance(payload, dict) else payload
    if not isinstance(rows, list):
        return ([], 0, "messages snapshot has no 'messages' list")
    out: list[TrackedMessage] = []
    skipped = 0
    for row in rows:
        message = message_from_record(row)
        if message is None:
            skipped += 1
            continue
        out.append(message)
    return (out, skipped, None)


def decode_conversations(payload: Any) -> tuple[dict[str, list[ConversationTurn]], int, str | None]:
    """Returns (turns_by_user, skipped_rows, warning)."""
    if payload is None:
        return ({}, 0, None)
    users = payload.get("conversations") if isinstance(payload, dict) else None
    if not isinstance(users, dict):
        return ({}, 0, "conversations snapshot has no 'conversations' mapping")
    out: dict[str, list[ConversationTurn]] = {}
    skipped = 0
    for user_id, rows in users.items():
        if not isinstance(rows, list):
            skipped += 1
            continue
        turns: list[ConversationTurn] = []
        for row in rows:
            turn = turn_from_record(row)
            if turn is None:
                skipped += 1
                continue
            turns.append(turn)
        if turns:
            out[str(user_id)] = turns
    return (out, skipped, None)


def write_json_atomic(path: str | Path, payload: Any) -> None:
    """Write via a temp file in the same directory, then os.replace()."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{p.name}.", suffix=".tmp", dir=str(p.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(payload, fh, ensure_ascii=False, indent=2)
        os.replace(tmp_name, p)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise
