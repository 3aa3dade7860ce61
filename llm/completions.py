from __future__ import annotations

import asyncio
from typing import Any


def build_messages(prompt: str, *, system_prompt: str | None = None, history: list[dict[str, str]] | None = None) -> list[dict[str, str]]:
    messages: list[dict[str, str]] = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    for turn in history or []:
        role = turn.get("role")
        content = turn.get("content")
        if role in {"user", "assistant"} and content:
            messages.append({"role": role, "content": content})
    messages.append({"role": "user", "content": prompt})
    return messages


async def complete_text(
    client: Any,
    *,
    model: str,
    prompt: str,
    system_prompt: str | None = None,
    history: list[dict[str, str]] | None = None,
    temperature: float | None = None,
    max_tokens: int | None = None,
) -> str:
    """
    One chat completion over the synchronous OpenAI client, run off the event loop.

    Returns the stripped text (possibly empty). Transport and API errors propagate;
    callers own their fallback policy.
    """
    kwargs: dict[str, Any] = {
        "model": model,
        "messages": build_messages(prompt, system_prompt=system_prompt, history=history),
    }
    if temperature is not None:
        kwargs["temperature"] = temperature
    if max_tokens is not None:
        kwargs["max_tokens"] = max_tokens

    resp = await asyncio.to_thread(client.chat.completions.create, **kwargs)
    return (resp.choices[0].message.content or "").strip()
