from __future__ import annotations

from typing import Any

from analytics.reports import discord_link
from classifier.prompts import build_welcome_prompt
from llm.completions import complete_text
from misc.discord_text import DISCORD_MAX_THREAD_NAME_LEN, best_display_name, send_chunked
from welcome.blocks import (
    VIEW_DISCORD_ACTION,
    action_origin_id,
    edit_modal_view,
    modal_response_text,
    review_blocks,
    review_text,
    sent_blocks,
    skipped_blocks,
)
from welcome.workflow import ApprovalWorkflow, PendingResponse, ReviewOutcome

EXPIRED_NOTICE = "❌ This request has expired."


async def generate_welcome_reply(content: str, *, client: Any, model: str) -> str | None:
    try:
        reply = await complete_text(client, model=model, prompt=build_welcome_prompt(content))
    except Exception as e:
        print(f"[Review] welcome draft failed: {e}")
        return None
    return reply or None


async def publish_welcome_thread(origin: Any, text: str) -> Any:
    """Open a 'Welcome {author}' thread on the intro message and post the reply there."""
    name = f"Welcome {best_display_name(origin.author)}"[:DISCORD_MAX_THREAD_NAME_LEN]
    thread = await origin.create_thread(name=name, reason="Community welcome response")
    await send_chunked(thread, text)
    return thread


class WelcomeReviewService:
    """Drafts welcome replies, posts them to Slack for review, and applies decisions."""

    def __init__(
        self,
        *,
        client: Any,
        openai_model: str,
        slack_client: Any | None,
        review_channel: str | None,
        workflow: ApprovalWorkflow | None = None,
    ) -> None:
        self.client = client
        self.openai_model = openai_model
        self.slack_client = slack_client
        self.review_channel = (review_channel or "").strip() or None
        self.workflow = workflow or ApprovalWorkflow(
            publish_func=publish_welcome_thread,
            update_notification_func=self.update_notification,
        )

    async def handle_intro(self, message: Any, *, channel_name: str) -> PendingResponse:
        author = best_display_name(message.author)
        guild_id = message.guild.id if getattr(message, "guild", None) else "@me"
        link = discord_link(guild_id, message.channel.id, message.id)
        suggestion = await generate_welcome_reply(message.content or "", client=self.client, model=self.openai_model)
        if suggestion is None:
            print(f"[Review] no AI draft for {author}; waiting for a manual response")

        record = self.workflow.create(
            str(message.id),
            origin=message,
            author=author,
            intro_content=message.content or "",
            source_link=link,
            suggestion=suggestion,
            channel_name=channel_name,
        )
        await self.notify(record)
        return record

    async def notify(self, record: PendingResponse) -> bool:
        if self.slack_client is None or not self.review_channel:
            print(f"[Review] no Slack review channel configured; pending origin_id={record.origin_id}")
            return False
        try:
            resp = await self.slack_client.chat_postMessage(
                channel=self.review_channel,
                text=review_text(record),
                blocks=review_blocks(record),
            )
        except Exception as e:
            print(f"[Review] Slack notification failed origin_id={record.origin_id}: {e}")
            return False
        self.workflow.attach_notification(record.origin_id, channel=resp["channel"], ts=resp["ts"])
        print(f"[Review] posted review origin_id={record.origin_id} author={record.author}")
        return True

    async def update_notification(self, record: PendingResponse) -> None:
        if self.slack_client is None or not record.has_notification:
            return
        await self.slack_client.chat_update(
            channel=record.notification_channel,
            ts=record.notification_ts,
            text=review_text(record),
            blocks=review_blocks(record),
        )

    async def _replace_notification(self, record: PendingResponse, *, text: str, blocks: list[dict[str, Any]]) -> None:
        if self.slack_client is None or not record.has_notification:
            return
        try:
            await self.slack_client.chat_update(
                channel=record.notification_channel,
                ts=record.notification_ts,
                text=text,
                blocks=blocks,
            )
        except Exception as e:
            print(f"[Review] Slack update failed origin_id={record.origin_id}: {e}")

    async def _reply_in_thread(self, channel_id: str | None, message_ts: str | None, text: str) -> None:
        if self.slack_client is None or not channel_id:
            return
        try:
            await self.slack_client.chat_postMessage(channel=channel_id, text=text, thread_ts=message_ts)
        except Exception as e:
            print(f"[Review] Slack reply failed: {e}")

    async def handle_action(
        self,
        action_id: str,
        *,
        channel_id: str | None = None,
        message_ts: str | None = None,
        trigger_id: str | None = None,
    ) -> ReviewOutcome | None:
        """Apply one review button press. Returns None for non-review actions."""
        if action_id == VIEW_DISCORD_ACTION:
            return None
        parsed = action_origin_id(action_id or "")
        if parsed is None:
            print(f"[Review] ignoring unknown action_id={action_id!r}")
            return None
        kind, origin_id = parsed

        if kind == "edit":
            record = self.workflow.get(origin_id)
            if record is None:
                await self._reply_in_thread(channel_id, message_ts, EXPIRED_NOTICE)
                return ReviewOutcome(ok=False, message=EXPIRED_NOTICE, expired=True)
            if self.slack_client is not None and trigger_id:
                await self.slack_client.views_open(trigger_id=trigger_id, view=edit_modal_view(record))
            return ReviewOutcome(ok=True, message="Opened response editor.", record=record)

        if kind == "approve":
            outcome = await self.workflow.approve(origin_id)
            if outcome.ok and outcome.record is not None:
                rec = outcome.record
                await self._replace_notification(
                    rec,
                    text=f"✅ Response sent to {rec.author}",
                    blocks=sent_blocks(rec),
                )
        else:
            outcome = await self.workflow.skip(origin_id)
            if outcome.ok and outcome.record is not None:
                rec = outcome.record
                await self._replace_notification(
                    rec,
                    text=f"❌ Skipped {rec.author}",
                    blocks=skipped_blocks(rec),
                )

        if outcome.expired:
            await self._reply_in_thread(channel_id, message_ts, EXPIRED_NOTICE)
        elif not outcome.ok:
            await self._reply_in_thread(channel_id, message_ts, f"⚠️ {outcome.message}")
        return outcome

    def save_edit_submission(self, view: dict[str, Any]) -> ReviewOutcome:
        """Store the modal text; the review message is refreshed separately after the ack."""
        origin_id = str(view.get("private_metadata") or "")
        outcome = self.workflow.save_edit(origin_id, modal_response_text(view))
        if outcome.ok and outcome.record is not None:
            print(f"[Review] response written for {outcome.record.author}")
        return outcome

    async def refresh_notification(self, record: PendingResponse) -> None:
        await self.workflow.refresh_notification(record)

    async def handle_edit_submission(self, view: dict[str, Any]) -> ReviewOutcome:
        outcome = self.save_edit_submission(view)
        if outcome.ok and outcome.record is not None:
            await self.refresh_notification(outcome.record)
        return outcome
