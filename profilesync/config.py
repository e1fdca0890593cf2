from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
import os
import yaml

from profilesync.domain.notification import (
    DEFAULT_COLOR,
    DEFAULT_CONTACT_TITLE,
    DEFAULT_ICON_URL,
    DEFAULT_NOTICE_LINK,
    DEFAULT_NOTICE_TITLE,
)
from profilesync.infra.slack_client import DEFAULT_BASE_URL

ENV_PREFIX = "PROFILESYNC_"


@dataclass(frozen=True)
class Settings:
    # Slack API
    slack_token: str | None = None
    api_base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = 20.0
    page_size: int = 200

    # Paths / logging
    log_dir: str = "./logs"
    log_level: str = "INFO"
    report_dir: str = "./reports"

    # Notification
    notify: bool = True
    notify_self: bool = False
    icon_url: str = DEFAULT_ICON_URL
    notify_color: str = DEFAULT_COLOR
    notice_title: str = DEFAULT_NOTICE_TITLE
    notice_link: str | None = DEFAULT_NOTICE_LINK
    contact_title: str = DEFAULT_CONTACT_TITLE
    contact_link: str | None = None


@dataclass(frozen=True)
class LoadedSettings:
    settings: Settings
    sources_used: list[str]


_INT_KEYS = {"page_size"}
_FLOAT_KEYS = {"timeout_seconds"}
_BOOL_KEYS = {"notify", "notify_self"}


def _read_yaml_config(path: Path) -> dict:
    if not path.exists() or not path.is_file():
        return {}
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            return {}
        return data


def _env_get(name: str) -> str | None:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return None
    return v.strip()


def parse_bool(v: str) -> bool:
    vv = v.strip().lower()
    if vv in ("1", "true", "yes", "y", "on"):
        return True
    if vv in ("0", "false", "no", "n", "off"):
        return False
    raise ValueError(f"Invalid boolean value: {v}")


def _coerce(key: str, value):
    if value is None:
        return None
    if key in _INT_KEYS:
        return int(value)
    if key in _FLOAT_KEYS:
        return float(value)
    if key in _BOOL_KEYS:
        return value if isinstance(value, bool) else parse_bool(str(value))
    return str(value)


def loadSettings(
    config_path: str | None,
    cli_overrides: dict,
) -> LoadedSettings:
    """
    Priority: CLI > ENV (PROFILESYNC_*) > config.yml > defaults.

    SLACK_TOKEN принимается как запасной вариант для PROFILESYNC_SLACK_TOKEN.
    """
    sources: list[str] = []
    known = [f.name for f in fields(Settings)]
    merged: dict = {name: getattr(Settings(), name) for name in known}

    # 1) config file
    if config_path:
        cfg = _read_yaml_config(Path(config_path))
        if cfg:
            sources.append("config")
        for key in known:
            if key in cfg:
                merged[key] = _coerce(key, cfg[key])

    # 2) env
    env = {key: _env_get(f"{ENV_PREFIX}{key.upper()}") for key in known}
    if env["slack_token"] is None:
        env["slack_token"] = _env_get("SLACK_TOKEN")
    if any(v is not None for v in env.values()):
        sources.append("env")
    for key, value in env.items():
        if value is not None:
            merged[key] = _coerce(key, value)

    # 3) CLI overrides (only those explicitly passed)
    if any(v is not None for v in cli_overrides.values()):
        sources.append("cli")
    for key, value in cli_overrides.items():
        if value is None:
            continue
        if key not in merged:
            raise ValueError(f"Unknown setting: {key}")
        merged[key] = _coerce(key, value)

    return LoadedSettings(settings=Settings(**merged), sources_used=sources)
