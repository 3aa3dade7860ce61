from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from analytics.models import DEFAULT_TOPIC, VALID_TOPICS
from analytics.normalizer import GENERAL_HELP
from classifier.prompts import CLASSIFY_SYSTEM_PROMPT, build_classify_prompt, build_help_topic_prompt
from llm.completions import complete_text

_QUOTE_CHARS = "\"'`“”‘’"
MAX_HELP_TOPIC_CHARS = 80


@dataclass(frozen=True, slots=True)
class TopicParse:
    ok: bool
    topic: str | None = None
    reason: str | None = None
    raw: str = ""


def parse_topic_label(raw: str | None) -> TopicParse:
    """Strict gate for model labels: only exact members of the topic set pass."""
    text = str(raw or "")
    clean = text.strip().lower()
    if not clean:
        return TopicParse(ok=False, reason="empty", raw=text)
    clean = clean.strip(_QUOTE_CHARS).strip()
    if clean.endswith("."):
        clean = clean[:-1].rstrip()
    clean = clean.strip(_QUOTE_CHARS).strip()
    if clean in VALID_TOPICS:
        return TopicParse(ok=True, topic=clean, raw=text)
    return TopicParse(ok=False, reason="not_in_taxonomy", raw=text)


async def classify_message(content: str, *, client: Any, model: str) -> str:
    """Topic label for `content`; falls back to the default topic and never raises."""
    try:
        raw = await complete_text(
            client,
            model=model,
            prompt=build_classify_prompt(content),
            system_prompt=CLASSIFY_SYSTEM_PROMPT,
            temperature=0,
        )
    except Exception as e:
        print(f"[Classifier] classification call failed: {e}; using {DEFAULT_TOPIC}")
        return DEFAULT_TOPIC

    parsed = parse_topic_label(raw)
    if parsed.ok and parsed.topic:
        return parsed.topic
    print(f"[Classifier] rejected label reason={parsed.reason} raw={parsed.raw[:80]!r}; using {DEFAULT_TOPIC}")
    return DEFAULT_TOPIC


async def extract_help_topic(content: str, *, client: Any, model: str) -> str:
    """Short lower-cased phrase naming the help request; raw, not yet normalized."""
    try:
        raw = await complete_text(
            client,
            model=model,
            prompt=build_help_topic_prompt(content),
            temperature=0,
        )
    except Exception as e:
        print(f"[Classifier] help topic extraction failed: {e}")
        return GENERAL_HELP

    topic = " ".join(raw.split()).strip().lower()
    if not topic:
        return GENERAL_HELP
    return topic[:MAX_HELP_TOPIC_CHARS]
