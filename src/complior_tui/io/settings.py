"""Settings file I/O for the complior TUI.

Manages a JSON settings file at XDG_CONFIG_HOME/complior/settings.json.
Unknown keys are preserved on write; a missing or corrupt file loads as
defaults.

This module is a STABLE BOUNDARY: not hot-reloadable.
Import as: from complior_tui.io import settings
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, fields
from pathlib import Path

from complior_tui.core.themes import DEFAULT_THEME

logger = logging.getLogger(__name__)

DEFAULT_ENGINE_PORT = 3099
DEFAULT_ENGINE_HOST = "127.0.0.1"
DEFAULT_TICK_RATE_MS = 250


def get_config_dir() -> Path:
    config_home = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
    return Path(config_home) / "complior"


def get_config_path() -> Path:
    """Return XDG_CONFIG_HOME (default ~/.config) / complior / settings.json."""
    return get_config_dir() / "settings.json"


@dataclass(frozen=True)
class TuiConfig:
    engine_port: int = DEFAULT_ENGINE_PORT
    engine_host: str = DEFAULT_ENGINE_HOST
    tick_rate_ms: int = DEFAULT_TICK_RATE_MS
    project_path: str | None = None
    theme: str = DEFAULT_THEME
    sidebar_visible: bool = True
    watch_on_start: bool = False
    animations_enabled: bool = True
    scroll_acceleration: float = 1.0
    engine_dir: str | None = None
    onboarding_completed: bool = False
    onboarding_last_step: int | None = None

    def engine_url(self) -> str:
        return f"http://{self.engine_host}:{self.engine_port}"


# [LAW:one-source-of-truth] Field types drive the load-time coercion.
_FIELD_TYPES: dict[str, type] = {
    "engine_port": int,
    "engine_host": str,
    "tick_rate_ms": int,
    "project_path": str,
    "theme": str,
    "sidebar_visible": bool,
    "watch_on_start": bool,
    "animations_enabled": bool,
    "scroll_acceleration": float,
    "engine_dir": str,
    "onboarding_completed": bool,
    "onboarding_last_step": int,
}


def load_settings() -> dict:
    """Raw settings.json contents; {} when the file is missing or unreadable."""
    path = get_config_path()
    # [LAW:dataflow-not-control-flow] Always attempt read; empty dict is the "no data" value.
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (FileNotFoundError, json.JSONDecodeError, OSError):
        return {}
    return data if isinstance(data, dict) else {}


def save_settings(data: dict) -> None:
    """Atomic write of settings dict: temp file in the same directory, then rename."""
    path = get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
        os.replace(tmp_path, path)
    except OSError:
        Path(tmp_path).unlink(missing_ok=True)
        raise


def _coerce(name: str, value):
    expected = _FIELD_TYPES[name]
    if value is None:
        return None
    if expected is bool:
        return value if isinstance(value, bool) else None
    if expected in (int, float) and isinstance(value, bool):
        return None
    if expected is float and isinstance(value, (int, float)):
        return float(value)
    return value if isinstance(value, expected) else None


def load_config() -> TuiConfig:
    """Settings merged over defaults. Wrong-typed values fall back to the default."""
    raw = load_settings()
    values = {}
    for f in fields(TuiConfig):
        if f.name not in raw:
            continue
        coerced = _coerce(f.name, raw[f.name])
        if coerced is None and raw[f.name] is not None:
            logger.warning("ignoring setting %s=%r (wrong type)", f.name, raw[f.name])
            continue
        values[f.name] = coerced
    return TuiConfig(**values)


def load_setting(key: str, default=None):
    return load_settings().get(key, default)


def save_setting(key: str, value) -> None:
    """Merge one key into settings.json, keeping every other key."""
    data = load_settings()
    data[key] = value
    save_settings(data)


def save_theme(theme_name: str) -> None:
    save_setting("theme", theme_name)


def mark_onboarding_complete() -> None:
    data = load_settings()
    data["onboarding_completed"] = True
    data.pop("onboarding_last_step", None)
    save_settings(data)


def save_onboarding_partial(step: int) -> None:
    save_setting("onboarding_last_step", step)


def save_onboarding_answers(answers: dict[str, str]) -> None:
    """Persist onboarding answers under "onboarding" and apply the theme choice."""
    data = load_settings()
    data["onboarding"] = dict(answers)
    theme = answers.get("welcome_theme")
    if theme:
        data["theme"] = theme
    data["onboarding_completed"] = True
    data.pop("onboarding_last_step", None)
    save_settings(data)
