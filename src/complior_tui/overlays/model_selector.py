"""Model selector overlay over the models of configured providers."""

from __future__ import annotations

from dataclasses import dataclass

from complior_tui.core import actions as a
from complior_tui.core import commands as c
from complior_tui.core.providers import display_model_name, selectable_models
from complior_tui.core.types import OverlayKind
from complior_tui.overlays.base import Overlay, move_cursor


@dataclass
class ModelSelectorOverlay(Overlay):
    kind = OverlayKind.MODEL_SELECTOR

    index: int = 0


def _is_char(action: a.Action, char: str) -> bool:
    return isinstance(action, a.InsertChar) and action.char == char


def handle(overlay: ModelSelectorOverlay, state, action: a.Action) -> c.AppCommand | None:
    models = selectable_models(state.provider_config)

    if isinstance(action, a.ScrollDown) or _is_char(action, "j"):
        overlay.index = move_cursor(overlay.index, 1, len(models))
    elif isinstance(action, a.ScrollUp) or _is_char(action, "k"):
        overlay.index = move_cursor(overlay.index, -1, len(models))
    elif isinstance(action, a.SubmitInput):
        state.overlay = None
        if not 0 <= overlay.index < len(models):
            return None
        model = models[overlay.index]
        state.provider_config.active_model = model.id
        state.provider_config.active_provider = model.provider
        state.post(f"Model switched to: {display_model_name(model.id)}")
        return c.SaveProviderConfig()
    elif isinstance(action, (a.EnterNormalMode, a.Quit)):
        state.overlay = None
    return None
