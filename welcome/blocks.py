"""Block Kit payloads for the welcome review flow."""

from __future__ import annotations

from typing import Any

from welcome.workflow import STATE_EDITED, PendingResponse

APPROVE_PREFIX = "approve_"
EDIT_PREFIX = "edit_"
SKIP_PREFIX = "reject_"
VIEW_DISCORD_ACTION = "view_discord"

EDIT_MODAL_CALLBACK = "edit_response_modal"
RESPONSE_BLOCK_ID = "response_block"
RESPONSE_INPUT_ID = "response_input"


def _button(text: str, action_id: str, value: str, style: str | None = None) -> dict[str, Any]:
    button: dict[str, Any] = {
        "type": "button",
        "text": {"type": "plain_text", "text": text, "emoji": True},
        "value": value,
        "action_id": action_id,
    }
    if style:
        button["style"] = style
    return button


def action_origin_id(action_id: str) -> tuple[str, str] | None:
    """('approve'|'edit'|'skip', origin_id) for a review button, else None."""
    for prefix, kind in ((APPROVE_PREFIX, "approve"), (EDIT_PREFIX, "edit"), (SKIP_PREFIX, "skip")):
        if action_id.startswith(prefix) and len(action_id) > len(prefix):
            return (kind, action_id[len(prefix):])
    return None


def review_blocks(record: PendingResponse) -> list[dict[str, Any]]:
    oid = record.origin_id
    edited = record.state == STATE_EDITED
    if edited:
        title = "📬 Discord Intro - Response Ready"
    elif record.has_response:
        title = "📬 New Discord Intro - AI Suggestion Ready"
    else:
        title = "📬 New Discord Intro"

    blocks: list[dict[str, Any]] = [
        {"type": "header", "text": {"type": "plain_text", "text": title, "emoji": True}},
        {
            "type": "section",
            "fields": [
                {"type": "mrkdwn", "text": f"*From:*\n{record.author}"},
                {"type": "mrkdwn", "text": f"*Channel:*\n#{record.channel_name or 'unknown'}"},
            ],
        },
        {"type": "divider"},
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": f"*📝 Their Intro:*\n{record.intro_content}"},
            "accessory": {
                "type": "button",
                "text": {"type": "plain_text", "text": "View on Discord", "emoji": True},
                "url": record.source_link,
                "action_id": VIEW_DISCORD_ACTION,
            },
        },
    ]

    if record.has_response:
        label = "*✏️ Your Response:*" if edited else "*🤖 AI Suggested Response:*"
        blocks.append({"type": "section", "text": {"type": "mrkdwn", "text": f"{label}\n_{record.suggested_response}_"}})

    buttons: list[dict[str, Any]] = []
    if record.has_response:
        send_text = "✅ Send" if edited else "✅ Send AI Response"
        buttons.append(_button(send_text, f"{APPROVE_PREFIX}{oid}", oid, style="primary"))
    buttons.append(_button("✏️ Edit" if edited else "✏️ Write Response", f"{EDIT_PREFIX}{oid}", oid))
    buttons.append(_button("❌ Skip", f"{SKIP_PREFIX}{oid}", oid, style="danger"))
    blocks.append({"type": "actions", "elements": buttons})

    context = f"Message ID: {oid}"
    if record.has_response and not edited:
        context += " | AI Generated"
    blocks.append({"type": "context", "elements": [{"type": "mrkdwn", "text": context}]})
    return blocks


def review_text(record: PendingResponse) -> str:
    if record.state == STATE_EDITED:
        return f"Response ready for {record.author}"
    return f"New intro from {record.author}"


def sent_blocks(record: PendingResponse) -> list[dict[str, Any]]:
    return [
        {
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": f"✅ *Response Sent!*\n\nTo: {record.author}\nMessage: _\"{record.suggested_response}\"_",
            },
        }
    ]


def skipped_blocks(record: PendingResponse) -> list[dict[str, Any]]:
    return [{"type": "section", "text": {"type": "mrkdwn", "text": f"❌ *Skipped*\n\nFrom: {record.author}"}}]


def edit_modal_view(record: PendingResponse) -> dict[str, Any]:
    element: dict[str, Any] = {
        "type": "plain_text_input",
        "action_id": RESPONSE_INPUT_ID,
        "multiline": True,
        "placeholder": {"type": "plain_text", "text": "Write your response here..."},
    }
    if record.has_response:
        element["initial_value"] = record.suggested_response
    return {
        "type": "modal",
        "callback_id": EDIT_MODAL_CALLBACK,
        "private_metadata": record.origin_id,
        "title": {"type": "plain_text", "text": "Write Response"},
        "submit": {"type": "plain_text", "text": "Save"},
        "close": {"type": "plain_text", "text": "Cancel"},
        "blocks": [
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": (
                        f"*Responding to:* {record.author}\n\n*Their intro:*\n\"{record.intro_content}\"\n\n"
                        f"<{record.source_link}|View on Discord>"
                    ),
                },
            },
            {
                "type": "input",
                "block_id": RESPONSE_BLOCK_ID,
                "element": element,
                "label": {"type": "plain_text", "text": "Your Response"},
            },
        ],
    }


def modal_response_text(view: dict[str, Any]) -> str:
    values = (view.get("state") or {}).get("values") or {}
    block = values.get(RESPONSE_BLOCK_ID) or {}
    field = block.get(RESPONSE_INPUT_ID) or {}
    return str(field.get("value") or "")
