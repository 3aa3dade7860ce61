"""Help-topic canonicalization.

Free-text extraction produces near-duplicate phrasings ("VS Code setup",
"vscode issue", ...). They are folded into a small set of canonical labels
before ranking so counts accumulate on one key.
"""

from __future__ import annotations

import re

GENERAL_HELP = "general help"

# (pattern, canonical). When several patterns are substrings of the same
# cleaned topic, the longest pattern wins; equal lengths keep table order.
HELP_TOPIC_MAPPINGS: tuple[tuple[str, str], ...] = (
    ("coder setup", "coder setup issue"),
    ("coder configuration", "coder setup issue"),
    ("coder install", "coder setup issue"),
    ("coder installation", "coder setup issue"),
    ("vs code", "vs code issue"),
    ("vscode", "vs code issue"),
    ("vs code setup", "vs code issue"),
    ("vscode setup", "vs code issue"),
    ("vs code issue", "vs code issue"),
    ("vscode issue", "vs code issue"),
    ("vs code connection", "vs code issue"),
    ("workspace issue", "workspace issue"),
    ("workspace crash", "workspace issue"),
    ("workspace connection", "workspace issue"),
    ("ssh", "ssh issue"),
    ("ssh issue", "ssh issue"),
    ("ssh connection", "ssh issue"),
    ("ssh setup", "ssh issue"),
    ("docker issue", "docker issue"),
    ("docker setup", "docker issue"),
    ("devcontainer issue", "devcontainer issue"),
    ("devcontainer setup", "devcontainer issue"),
    ("template issue", "template issue"),
    ("template setup", "template issue"),
    ("authentication issue", "authentication issue"),
    ("auth issue", "authentication issue"),
    ("login issue", "authentication issue"),
    ("git issue", "git issue"),
    ("git authentication", "git issue"),
    ("github issue", "git issue"),
    ("unknown issue", GENERAL_HELP),
    ("no main topic", GENERAL_HELP),
    ("general help", GENERAL_HELP),
)

_SUFFIX_RULES = (
    (re.compile(r"\bissues?$"), "issue"),
    (re.compile(r"\bproblems?$"), "issue"),
    (re.compile(r"\berrors?$"), "error"),
    (re.compile(r"\bquestions?$"), "question"),
)


def clean_help_topic(raw: str) -> str:
    text = str(raw or "").lower()
    text = re.sub(r"[\"'`]", "", text)
    text = re.sub(r"\s+", " ", text).strip()
    for pattern, replacement in _SUFFIX_RULES:
        text = pattern.sub(replacement, text)
    return text


def _best_mapping(cleaned: str) -> str | None:
    best: tuple[int, str] | None = None
    for pattern, canonical in HELP_TOPIC_MAPPINGS:
        if pattern in cleaned and (best is None or len(pattern) > best[0]):
            best = (len(pattern), canonical)
    return best[1] if best else None


def normalize_help_topic(raw: str) -> str:
    cleaned = clean_help_topic(raw)
    mapped = _best_mapping(cleaned)
    if mapped is not None:
        return mapped
    return cleaned
