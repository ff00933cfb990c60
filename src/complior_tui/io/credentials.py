"""API key storage.

Two owner-only (0600) files under $XDG_CONFIG_HOME/complior/:
- `credentials`: KEY=value lines written by the onboarding wizard
  (`#` comments and blank lines are ignored and preserved);
- `providers.json`: the ProviderConfig edited by provider setup and
  the model selector.

This module is a STABLE BOUNDARY: not hot-reloadable.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from complior_tui.core.providers import ProviderConfig
from complior_tui.io.settings import get_config_dir

logger = logging.getLogger(__name__)

# provider id -> env-style key in the credentials file
CREDENTIAL_KEYS: dict[str, str] = {
    "openrouter": "OPENROUTER_KEY",
    "anthropic": "ANTHROPIC_KEY",
    "openai": "OPENAI_KEY",
}

PRIVATE_MODE = 0o600


def credentials_path() -> Path:
    return get_config_dir() / "credentials"


def provider_config_path() -> Path:
    return get_config_dir() / "providers.json"


def _write_private(path: Path, text: str) -> None:
    """Atomic write; the file is created 0600 before any content lands."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        os.chmod(tmp_path, PRIVATE_MODE)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_path, path)
    except OSError:
        Path(tmp_path).unlink(missing_ok=True)
        raise


# ─── KEY=value credentials ────────────────────────────────────────────────────


def load_credentials() -> dict[str, str]:
    try:
        content = credentials_path().read_text(encoding="utf-8")
    except OSError:
        return {}
    creds: dict[str, str] = {}
    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        creds[key.strip()] = value.strip()
    return creds


def save_credential(provider: str, api_key: str) -> bool:
    """Replace or append the provider's key. Unknown providers are ignored (False).

    Raises OSError when the file cannot be written.
    """
    env_key = CREDENTIAL_KEYS.get(provider)
    if env_key is None:
        return False

    path = credentials_path()
    try:
        existing = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        existing = ""

    replaced = False
    lines: list[str] = []
    for line in existing.splitlines():
        stripped = line.strip()
        if stripped and not stripped.startswith("#") and "=" in stripped:
            if stripped.split("=", 1)[0].strip() == env_key:
                lines.append(f"{env_key}={api_key}")
                replaced = True
                continue
        lines.append(line)
    if not replaced:
        lines.append(f"{env_key}={api_key}")

    _write_private(path, "\n".join(lines) + "\n")
    logger.info("credential saved for %s", provider)
    return True


def get_credential(provider: str) -> str | None:
    env_key = CREDENTIAL_KEYS.get(provider)
    if env_key is None:
        return None
    return load_credentials().get(env_key)


# ─── providers.json ───────────────────────────────────────────────────────────


def load_provider_config() -> ProviderConfig:
    """Missing or corrupt file yields an empty config.

    Keys saved by onboarding into the credentials file fill in providers
    that providers.json does not list.
    """
    try:
        raw = json.loads(provider_config_path().read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        raw = {}
    config = ProviderConfig.from_json(raw if isinstance(raw, dict) else {})

    creds = load_credentials()
    for provider, env_key in CREDENTIAL_KEYS.items():
        if provider not in config.providers and creds.get(env_key):
            config.providers[provider] = creds[env_key]
    return config


def save_provider_config(config: ProviderConfig) -> None:
    """Raises OSError on failure."""
    _write_private(provider_config_path(), json.dumps(config.to_json(), indent=2) + "\n")
