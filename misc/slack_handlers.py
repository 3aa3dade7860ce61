from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from analytics.reports import Report
from misc.query_routes import QueryContext, route_query
from misc.runtime_deps import SlackDeps
from retrieval.service import APOLOGY_MESSAGE
from welcome.blocks import RESPONSE_BLOCK_ID
from welcome.workflow import ReviewOutcome


async def handle_analytics_query(
    text: str,
    *,
    user_id: str,
    channel: str,
    thread_ts: str | None,
    web_client: Any,
    deps: SlackDeps,
) -> str:
    """Answer one analytics question and post the reply. Returns the route taken."""
    ctx = QueryContext(
        ledger=deps.ledger,
        memory=deps.memory,
        client=deps.client,
        openai_model=deps.openai_model,
        user_id=str(user_id),
        guild_id=deps.guild_id,
        collect_rollup_func=deps.collect_rollup_func,
    )
    try:
        route, report = await route_query(text, ctx)
    except Exception as e:
        print(f"[Query] Error answering user={user_id}: {e}")
        route, report = ("error", Report(text=APOLOGY_MESSAGE))
    print(f"[Query] user={user_id} route={route}")

    kwargs: dict[str, Any] = {"channel": channel, "text": report.text}
    if report.blocks:
        kwargs["blocks"] = report.blocks
    if thread_ts:
        kwargs["thread_ts"] = thread_ts
    await web_client.chat_postMessage(**kwargs)
    return route


def should_answer_message_event(event: dict[str, Any]) -> bool:
    """Direct messages from people; bot echoes and edits/deletes are ignored."""
    if event.get("channel_type") != "im":
        return False
    if event.get("bot_id") or event.get("subtype"):
        return False
    return bool(event.get("user"))


async def handle_app_mention(event: dict[str, Any], *, web_client: Any, deps: SlackDeps) -> str:
    return await handle_analytics_query(
        event.get("text") or "",
        user_id=event.get("user") or "",
        channel=event.get("channel") or "",
        thread_ts=event.get("thread_ts") or event.get("ts"),
        web_client=web_client,
        deps=deps,
    )


async def handle_direct_message(event: dict[str, Any], *, web_client: Any, deps: SlackDeps) -> str | None:
    if not should_answer_message_event(event):
        return None
    return await handle_analytics_query(
        event.get("text") or "",
        user_id=event.get("user") or "",
        channel=event.get("channel") or "",
        thread_ts=event.get("thread_ts"),
        web_client=web_client,
        deps=deps,
    )


async def handle_review_action(body: dict[str, Any], *, deps: SlackDeps) -> None:
    actions = body.get("actions") or []
    if not actions:
        return
    action = actions[0]
    try:
        await deps.review_service.handle_action(
            str(action.get("action_id") or ""),
            channel_id=(body.get("channel") or {}).get("id"),
            message_ts=(body.get("message") or {}).get("ts"),
            trigger_id=body.get("trigger_id"),
        )
    except Exception as e:
        print(f"[Slack] Error handling review action {action.get('action_id')}: {e}")


def edit_ack_payload(outcome: ReviewOutcome) -> dict[str, Any]:
    """
    Ack kwargs for a modal submission: empty closes the modal, a
    response_action=errors payload keeps it open with a field error.
    Expired requests get the error too, so the reviewer sees why nothing changed.
    """
    if outcome.ok:
        return {}
    return {"response_action": "errors", "errors": {RESPONSE_BLOCK_ID: outcome.message}}


async def handle_edit_submission(
    view: dict[str, Any],
    *,
    ack: Callable[..., Awaitable[Any]],
    deps: SlackDeps,
) -> ReviewOutcome | None:
    """Save the edit, ack within Slack's deadline, then refresh the review message."""
    try:
        outcome = deps.review_service.save_edit_submission(view)
    except Exception as e:
        print(f"[Slack] Error handling edit submission: {e}")
        await ack()
        return None

    await ack(**edit_ack_payload(outcome))
    if outcome.ok and outcome.record is not None:
        try:
            await deps.review_service.refresh_notification(outcome.record)
        except Exception as e:
            print(f"[Slack] Error refreshing review message: {e}")
    return outcome
