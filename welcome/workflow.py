from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from analytics.models import utc_now

STATE_CREATED = "created"
STATE_DRAFTED = "drafted"
STATE_AWAITING_MANUAL_DRAFT = "awaiting_manual_draft"
STATE_EDITED = "edited"
STATE_APPROVED = "approved"
STATE_SKIPPED = "skipped"

EXPIRED_MESSAGE = "This request has expired."
PUBLISHING_MESSAGE = "This response is already being sent."


@dataclass(slots=True)
class PendingResponse:
    origin_id: str
    origin: Any
    author: str
    intro_content: str
    source_link: str
    channel_name: str = ""
    suggested_response: str = ""
    state: str = STATE_CREATED
    notification_channel: str | None = None
    notification_ts: str | None = None
    created_at: datetime = field(default_factory=utc_now)

    @property
    def has_response(self) -> bool:
        return bool(self.suggested_response.strip())

    @property
    def has_notification(self) -> bool:
        return bool(self.notification_channel and self.notification_ts)


@dataclass(frozen=True, slots=True)
class ReviewOutcome:
    ok: bool
    message: str
    expired: bool = False
    record: PendingResponse | None = None


PublishFunc = Callable[[Any, str], Awaitable[Any]]
NotificationFunc = Callable[[PendingResponse], Awaitable[Any]]


class ApprovalWorkflow:
    """
    In-flight welcome replies awaiting a human decision, keyed by origin message id.

    created -> drafted | awaiting_manual_draft -> edited* -> approved | skipped.
    Terminal transitions remove the record. Decisions on unknown ids report
    EXPIRED_MESSAGE instead of raising. Records are never persisted.
    """

    def __init__(
        self,
        *,
        publish_func: PublishFunc,
        update_notification_func: NotificationFunc | None = None,
    ) -> None:
        self.publish_func = publish_func
        self.update_notification_func = update_notification_func
        self._pending: dict[str, PendingResponse] = {}
        self._publishing: set[str] = set()

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, origin_id: object) -> bool:
        return str(origin_id) in self._pending

    def get(self, origin_id: str) -> PendingResponse | None:
        return self._pending.get(str(origin_id))

    def create(
        self,
        origin_id: str,
        *,
        origin: Any,
        author: str,
        intro_content: str,
        source_link: str,
        suggestion: str | None,
        channel_name: str = "",
    ) -> PendingResponse:
        key = str(origin_id)
        if key in self._pending:
            print(f"[Review] overwriting pending response origin_id={key}")
        record = PendingResponse(
            origin_id=key,
            origin=origin,
            author=author,
            intro_content=intro_content,
            source_link=source_link,
            channel_name=channel_name,
        )
        text = (suggestion or "").strip()
        if text:
            record.suggested_response = text
            record.state = STATE_DRAFTED
        else:
            record.state = STATE_AWAITING_MANUAL_DRAFT
        self._pending[key] = record
        return record

    def attach_notification(self, origin_id: str, *, channel: str, ts: str) -> bool:
        record = self.get(origin_id)
        if record is None:
            return False
        record.notification_channel = channel
        record.notification_ts = ts
        return True

    def _expired(self, origin_id: str, action: str) -> ReviewOutcome:
        print(f"[Review] {action} on unknown origin_id={origin_id}")
        return ReviewOutcome(ok=False, message=EXPIRED_MESSAGE, expired=True)

    def save_edit(self, origin_id: str, text: str) -> ReviewOutcome:
        """Validate and store an edited response without touching Slack."""
        key = str(origin_id)
        record = self.get(key)
        if record is None:
            return self._expired(key, "edit")
        if key in self._publishing:
            return ReviewOutcome(ok=False, message=PUBLISHING_MESSAGE, record=record)
        clean = (text or "").strip()
        if not clean:
            return ReviewOutcome(ok=False, message="Response text cannot be empty.", record=record)

        record.suggested_response = clean
        record.state = STATE_EDITED
        return ReviewOutcome(ok=True, message="Response saved.", record=record)

    async def refresh_notification(self, record: PendingResponse) -> None:
        if self.update_notification_func is None or not record.has_notification:
            return
        try:
            await self.update_notification_func(record)
        except Exception as e:
            print(f"[Review] notification update failed origin_id={record.origin_id}: {e}")

    async def edit(self, origin_id: str, text: str) -> ReviewOutcome:
        outcome = self.save_edit(origin_id, text)
        if outcome.ok and outcome.record is not None:
            await self.refresh_notification(outcome.record)
        return outcome

    async def approve(self, origin_id: str) -> ReviewOutcome:
        key = str(origin_id)
        record = self.get(key)
        if record is None:
            return self._expired(key, "approve")
        if not record.has_response:
            return ReviewOutcome(
                ok=False,
                message="No response text yet. Write a response before sending.",
                record=record,
            )
        if key in self._publishing:
            return ReviewOutcome(ok=False, message=PUBLISHING_MESSAGE, record=record)

        self._publishing.add(key)
        try:
            await self.publish_func(record.origin, record.suggested_response)
        except Exception as e:
            print(f"[Review] publish failed origin_id={key}: {e}")
            return ReviewOutcome(ok=False, message=f"Failed to publish response: {str(e)[:160]}", record=record)
        finally:
            self._publishing.discard(key)

        record.state = STATE_APPROVED
        # A create() for the same id during publish replaced the record; keep the new one.
        if self._pending.get(key) is record:
            self._pending.pop(key, None)
        print(f"[Review] approved origin_id={key} author={record.author}")
        return ReviewOutcome(ok=True, message=f"Response sent to {record.author}.", record=record)

    async def skip(self, origin_id: str) -> ReviewOutcome:
        key = str(origin_id)
        if key in self._publishing:
            return ReviewOutcome(ok=False, message=PUBLISHING_MESSAGE, record=self.get(key))
        record = self._pending.pop(key, None)
        if record is None:
            return self._expired(key, "skip")
        record.state = STATE_SKIPPED
        print(f"[Review] skipped origin_id={key} author={record.author}")
        return ReviewOutcome(ok=True, message=f"Skipped {record.author}.", record=record)
