from __future__ import annotations

import re

from slack_bolt.adapter.socket_mode.async_handler import AsyncSocketModeHandler
from slack_bolt.async_app import AsyncApp

from misc.runtime_deps import SlackDeps
from misc.slack_handlers import (
    handle_app_mention,
    handle_direct_message,
    handle_edit_submission,
    handle_review_action,
)
from welcome.blocks import APPROVE_PREFIX, EDIT_MODAL_CALLBACK, EDIT_PREFIX, SKIP_PREFIX, VIEW_DISCORD_ACTION

REVIEW_ACTION_RE = re.compile(rf"^({APPROVE_PREFIX}|{EDIT_PREFIX}|{SKIP_PREFIX}).+")


def build_slack_app(*, bot_token: str, deps: SlackDeps) -> AsyncApp:
    app = AsyncApp(token=bot_token)

    @app.action(REVIEW_ACTION_RE)
    async def on_review_action(ack, body):
        await ack()
        await handle_review_action(body, deps=deps)

    @app.action(VIEW_DISCORD_ACTION)
    async def on_view_discord(ack):
        # Link button; Slack still expects an ack.
        await ack()

    @app.view(EDIT_MODAL_CALLBACK)
    async def on_edit_submission(ack, view):
        await handle_edit_submission(view, ack=ack, deps=deps)

    @app.event("app_mention")
    async def on_app_mention(event, client):
        try:
            await handle_app_mention(event, web_client=client, deps=deps)
        except Exception as e:
            print(f"[Slack] Error handling mention: {e}")

    @app.event("message")
    async def on_message(event, client):
        try:
            await handle_direct_message(event, web_client=client, deps=deps)
        except Exception as e:
            print(f"[Slack] Error handling message: {e}")

    return app


async def start_socket_mode(app: AsyncApp, *, app_token: str) -> None:
    handler = AsyncSocketModeHandler(app, app_token)
    await handler.start_async()
