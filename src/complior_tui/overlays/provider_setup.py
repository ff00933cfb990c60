"""Provider setup overlay: choose a provider, enter its API key.

Steps: 0 select provider → 1 key input → 2 verifying → 3 result.
Step 2 ignores input while a verification is outstanding; the engine's
answer arrives as a channel event and lands in finish_verified or
finish_failed.
"""

from __future__ import annotations

from dataclasses import dataclass

from complior_tui.core import actions as a
from complior_tui.core import commands as c
from complior_tui.core.providers import PROVIDERS, key_format_valid, models_for_provider
from complior_tui.core.types import OverlayKind
from complior_tui.overlays.base import Overlay, move_cursor

STEP_SELECT = 0
STEP_KEY = 1
STEP_VERIFYING = 2
STEP_RESULT = 3


@dataclass
class ProviderSetupOverlay(Overlay):
    kind = OverlayKind.PROVIDER_SETUP

    step: int = STEP_SELECT
    selected: int = 0
    key_input: str = ""
    error: str | None = None

    @property
    def provider_id(self) -> str:
        return PROVIDERS[self.selected][0] if 0 <= self.selected < len(PROVIDERS) else "unknown"


def _is_char(action: a.Action, char: str) -> bool:
    return isinstance(action, a.InsertChar) and action.char == char


def _handle_select(overlay: ProviderSetupOverlay, state, action: a.Action) -> c.AppCommand | None:
    if isinstance(action, a.ScrollDown) or _is_char(action, "j"):
        overlay.selected = move_cursor(overlay.selected, 1, len(PROVIDERS))
    elif isinstance(action, a.ScrollUp) or _is_char(action, "k"):
        overlay.selected = move_cursor(overlay.selected, -1, len(PROVIDERS))
    elif isinstance(action, a.SubmitInput):
        overlay.step = STEP_KEY
        overlay.key_input = ""
    elif isinstance(action, (a.EnterNormalMode, a.Quit)):
        state.overlay = None
    return None


def _handle_key(overlay: ProviderSetupOverlay, state, action: a.Action) -> c.AppCommand | None:
    if isinstance(action, a.InsertChar):
        overlay.key_input += action.char
    elif isinstance(action, a.DeleteChar):
        overlay.key_input = overlay.key_input[:-1]
    elif isinstance(action, a.SubmitInput):
        if not overlay.key_input:
            return None
        if not key_format_valid(overlay.provider_id, overlay.key_input):
            finish_failed(overlay, f"Invalid key format for {overlay.provider_id}")
            return None
        overlay.error = None
        overlay.step = STEP_VERIFYING
        return c.VerifyProvider(overlay.provider_id, overlay.key_input)
    elif isinstance(action, a.EnterNormalMode):
        overlay.step = STEP_SELECT
    elif isinstance(action, a.Quit):
        state.overlay = None
    return None


def _handle_verifying(overlay: ProviderSetupOverlay, state, action: a.Action) -> c.AppCommand | None:
    return None


def _handle_result(overlay: ProviderSetupOverlay, state, action: a.Action) -> c.AppCommand | None:
    if isinstance(action, a.SubmitInput):
        if overlay.error is None:
            state.overlay = None
    elif _is_char(action, "r") and overlay.error is not None:
        overlay.step = STEP_KEY
        overlay.key_input = ""
        overlay.error = None
    elif isinstance(action, (a.EnterNormalMode, a.Quit)):
        state.overlay = None
    return None


_STEP_HANDLERS = {
    STEP_SELECT: _handle_select,
    STEP_KEY: _handle_key,
    STEP_VERIFYING: _handle_verifying,
    STEP_RESULT: _handle_result,
}


def handle(overlay: ProviderSetupOverlay, state, action: a.Action) -> c.AppCommand | None:
    step_handler = _STEP_HANDLERS.get(overlay.step, _handle_verifying)
    return step_handler(overlay, state, action)


# ─── Verification outcome ─────────────────────────────────────────────────────


def finish_verified(overlay: ProviderSetupOverlay, state, provider_id: str, api_key: str) -> c.AppCommand:
    """Store an accepted key; the first configured provider becomes active."""
    config = state.provider_config
    config.providers[provider_id] = api_key
    if not config.active_provider:
        config.active_provider = provider_id
        models = models_for_provider(provider_id)
        if models:
            config.active_model = models[0].id
    overlay.error = None
    overlay.step = STEP_RESULT
    return c.SaveProviderConfig()


def finish_failed(overlay: ProviderSetupOverlay, message: str) -> None:
    overlay.error = message
    overlay.step = STEP_RESULT
