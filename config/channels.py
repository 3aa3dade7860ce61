from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from config.defaults import DEFAULT_CHANNELS

RESPONSE_WELCOME = "welcome"
RESPONSE_ANALYTICS_ONLY = "analytics-only"
RESPONSE_TYPES = {RESPONSE_WELCOME, RESPONSE_ANALYTICS_ONLY}

# Older configs used "engage" for channels that were only tracked.
_RESPONSE_TYPE_ALIASES = {
    "engage": RESPONSE_ANALYTICS_ONLY,
    "analytics_only": RESPONSE_ANALYTICS_ONLY,
    "analytics": RESPONSE_ANALYTICS_ONLY,
}


@dataclass(frozen=True, slots=True)
class ChannelConfig:
    name: str
    channel_id: int
    response_type: str
    enabled: bool = True

    @property
    def is_welcome(self) -> bool:
        return self.response_type == RESPONSE_WELCOME


def _parse_channel_id(value: Any) -> int | None:
    tok = str(value or "").strip()
    if re.fullmatch(r"\d{1,22}", tok):
        return int(tok)
    return None


def _normalize_response_type(value: Any) -> str | None:
    clean = str(value or "").strip().lower()
    clean = _RESPONSE_TYPE_ALIASES.get(clean, clean)
    if clean in RESPONSE_TYPES:
        return clean
    return None


def build_channel_configs(entries: list[Any], *, environ: dict[str, str] | None = None) -> list[ChannelConfig]:
    """Turn raw channel entries into configs; entries without a usable id are dropped."""
    env = os.environ if environ is None else environ
    out: list[ChannelConfig] = []
    seen_ids: set[int] = set()
    for entry in entries or []:
        if not isinstance(entry, dict):
            continue
        name = str(entry.get("name") or "").strip().lstrip("#").lower()
        if not name:
            continue
        channel_id = _parse_channel_id(entry.get("channel_id"))
        if channel_id is None and entry.get("channel_id_env"):
            channel_id = _parse_channel_id(env.get(str(entry["channel_id_env"])))
        if channel_id is None or channel_id in seen_ids:
            continue
        response_type = _normalize_response_type(entry.get("response_type"))
        if response_type is None:
            print(f"[CFG] channel {name!r} has unknown response_type={entry.get('response_type')!r}; skipping")
            continue
        seen_ids.add(channel_id)
        out.append(
            ChannelConfig(
                name=name,
                channel_id=channel_id,
                response_type=response_type,
                enabled=bool(entry.get("enabled", True)),
            )
        )
    return out


def load_channel_configs(
    path: str | Path | None,
    *,
    environ: dict[str, str] | None = None,
) -> tuple[list[ChannelConfig], str | None]:
    """
    Returns (configs, warning_message). warning_message is None on clean load.
    """
    defaults = build_channel_configs(DEFAULT_CHANNELS, environ=environ)
    if not path:
        return (defaults, "Channel config path missing; using built-in defaults.")

    p = Path(path)
    if not p.exists():
        return (defaults, f"Channel config not found at {p}; using built-in defaults.")

    try:
        payload = yaml.safe_load(p.read_text(encoding="utf-8"))
    except Exception as exc:
        return (defaults, f"Failed to read channel config from {p}: {exc}; using built-in defaults.")

    raw_channels = payload.get("channels") if isinstance(payload, dict) else None
    if not isinstance(raw_channels, list):
        return (defaults, f"Invalid channel config format in {p}; using built-in defaults.")

    return (build_channel_configs(raw_channels, environ=environ), None)


class ChannelDirectory:
    """Platform channel id -> enabled ChannelConfig."""

    def __init__(self, configs: list[ChannelConfig]) -> None:
        self._by_id = {c.channel_id: c for c in configs if c.enabled}

    def __len__(self) -> int:
        return len(self._by_id)

    def lookup(self, channel_id: int | None) -> ChannelConfig | None:
        if channel_id is None:
            return None
        try:
            return self._by_id.get(int(channel_id))
        except (TypeError, ValueError):
            return None

    def enabled_ids(self) -> set[int]:
        return set(self._by_id)

    def welcome_ids(self) -> set[int]:
        return {cid for cid, cfg in self._by_id.items() if cfg.is_welcome}
