"""Pure key and mouse dispatch.

All keyboard input routes through map_key based on a KeyContext snapshot.
Textual BINDINGS are not used - CompliorApp.on_key is the sole dispatcher.

// [LAW:one-source-of-truth] Key→action tables per mode live here and nowhere else.
// [LAW:dataflow-not-control-flow] Lookup walks fixed tables in a fixed order.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum, auto

from complior_tui.core import actions as a
from complior_tui.core.types import ClickTarget, InputMode, OverlayKind, Panel, Rect, ViewState

SCROLL_ACCEL_WINDOW = 0.3
SCROLL_ACCEL_MIN_EVENTS = 3


# ─── Input snapshots ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class KeyEvent:
    """A key press. code is a single character or a named key (enter, esc, tab, ...)."""

    code: str
    ctrl: bool = False
    alt: bool = False


class MouseKind(Enum):
    SCROLL_UP = auto()
    SCROLL_DOWN = auto()
    LEFT_DOWN = auto()
    OTHER = auto()


@dataclass(frozen=True)
class MouseEvent:
    kind: MouseKind
    column: int = 0
    row: int = 0


@dataclass(frozen=True)
class KeyContext:
    mode: InputMode
    panel: Panel
    view: ViewState
    overlay: OverlayKind | None = None
    overlay_text_entry: bool = False
    code_search_active: bool = False


# ─── Global modifier tables ───────────────────────────────────────────────────

CTRL_KEYMAP: dict[str, a.Action] = {
    "c": a.Quit(),
    "t": a.ToggleTerminal(),
    "b": a.ToggleSidebar(),
    "f": a.ToggleFilesPanel(),
    "p": a.ShowCommandPalette(),
    "s": a.StartScan(),
    "z": a.Undo(),
    "d": a.ScrollHalfPageDown(),
    "u": a.ScrollHalfPageUp(),
}

ALT_KEYMAP: dict[str, a.Action] = {
    "1": a.FocusPanel(Panel.CHAT),
    "2": a.FocusPanel(Panel.SCORE),
    "3": a.FocusPanel(Panel.FILE_BROWSER),
    "4": a.FocusPanel(Panel.CODE_VIEWER),
    "5": a.FocusPanel(Panel.TERMINAL),
}


# ─── Overlay table ────────────────────────────────────────────────────────────

# Overlays whose j/k move a cursor instead of typing into a filter.
NAVIGABLE_OVERLAYS: frozenset[OverlayKind] = frozenset({
    OverlayKind.THEME_PICKER,
    OverlayKind.ONBOARDING,
    OverlayKind.DISMISS_MODAL,
    OverlayKind.CONFIRM_DIALOG,
    OverlayKind.UNDO_HISTORY,
    OverlayKind.COMMAND_PALETTE,
})

OVERLAY_KEYMAP: dict[str, a.Action] = {
    "esc": a.EnterNormalMode(),
    "enter": a.SubmitInput(),
    "backspace": a.DeleteChar(),
}

OVERLAY_NAV_KEYMAP: dict[str, a.Action] = {
    "j": a.ScrollDown(),
    "down": a.ScrollDown(),
    "k": a.ScrollUp(),
    "up": a.ScrollUp(),
}


# ─── Per-mode tables ──────────────────────────────────────────────────────────
# Printable characters not listed in INSERT/COMMAND become InsertChar.

MODE_KEYMAP: dict[InputMode, dict[str, a.Action]] = {
    InputMode.INSERT: {
        "enter": a.SubmitInput(),
        "backspace": a.DeleteChar(),
        "left": a.MoveCursorLeft(),
        "right": a.MoveCursorRight(),
        "up": a.HistoryUp(),
        "down": a.HistoryDown(),
        "esc": a.EnterNormalMode(),
        "tab": a.TabComplete(),
    },
    InputMode.COMMAND: {
        "enter": a.SubmitInput(),
        "backspace": a.DeleteChar(),
        "esc": a.EnterNormalMode(),
        "tab": a.TabComplete(),
    },
    InputMode.VISUAL: {
        "esc": a.EnterNormalMode(),
        "j": a.SelectionDown(),
        "down": a.SelectionDown(),
        "k": a.SelectionUp(),
        "up": a.SelectionUp(),
        "y": a.AcceptDiff(),
        "n": a.RejectDiff(),
    },
    InputMode.NORMAL: {
        "q": a.Quit(),
        "tab": a.ToggleMode(),
        "1": a.SwitchView(ViewState.DASHBOARD),
        "2": a.SwitchView(ViewState.SCAN),
        "3": a.SwitchView(ViewState.FIX),
        "4": a.SwitchView(ViewState.CHAT),
        "5": a.SwitchView(ViewState.TIMELINE),
        "6": a.SwitchView(ViewState.REPORT),
        "i": a.EnterInsertMode(),
        "j": a.ScrollDown(),
        "down": a.ScrollDown(),
        "k": a.ScrollUp(),
        "up": a.ScrollUp(),
        "g": a.ScrollToTop(),
        "G": a.ScrollToBottom(),
        "v": a.EnterVisualMode(),
        "V": a.EnterVisualMode(),
        ":": a.EnterColonMode(),
        "U": a.ShowUndoHistory(),
        "w": a.WatchToggle(),
        "M": a.ShowModelSelector(),
        "T": a.ShowThemePicker(),
        "?": a.ShowHelp(),
        "@": a.ShowFilePicker(),
    },
}

# ─── Context-dependent NORMAL keys ────────────────────────────────────────────
# Rules are tried in order; the first whose key matches and whose guard holds wins.
# They take precedence over MODE_KEYMAP[NORMAL], mirroring match-arm order.

VIEW_KEY_CHARS = frozenset("achmlfdenxo<>")
VIEW_KEY_VIEWS = frozenset({ViewState.SCAN, ViewState.FIX, ViewState.REPORT, ViewState.DASHBOARD})
VIEW_ESCAPE_VIEWS = frozenset({ViewState.SCAN, ViewState.FIX, ViewState.DASHBOARD})

_Guard = Callable[[KeyContext], bool]
_Resolve = Callable[[str], a.Action]


def _const(action: a.Action) -> _Resolve:
    return lambda _code: action


def _in_code_viewer(ctx: KeyContext) -> bool:
    return ctx.panel is Panel.CODE_VIEWER


def _searching_code(ctx: KeyContext) -> bool:
    return ctx.panel is Panel.CODE_VIEWER and ctx.code_search_active


def _enter_action(ctx: KeyContext) -> a.Action:
    if ctx.panel is Panel.FILE_BROWSER:
        return a.OpenFile()
    if ctx.view in (ViewState.SCAN, ViewState.FIX):
        return a.ViewEnter()
    return a.SubmitInput()


# (keys, guard, resolver)
NORMAL_RULES: tuple[tuple[frozenset[str], _Guard, _Resolve], ...] = (
    (frozenset({"/"}), _in_code_viewer, _const(a.CodeSearch())),
    (frozenset({"/"}), lambda ctx: True, _const(a.EnterCommandMode())),
    (frozenset({"n"}), _searching_code, _const(a.CodeSearchNext())),
    (frozenset({"N"}), _searching_code, _const(a.CodeSearchPrev())),
)

# Checked after MODE_KEYMAP[NORMAL].
NORMAL_FALLBACK_RULES: tuple[tuple[frozenset[str], _Guard, _Resolve], ...] = (
    (frozenset({" "}), lambda ctx: ctx.view is ViewState.FIX, _const(a.ViewKey(" "))),
    (frozenset({" "}), lambda ctx: ctx.panel is Panel.FILE_BROWSER, _const(a.ToggleExpand())),
    (frozenset({"y"}), lambda ctx: ctx.panel is Panel.DIFF_PREVIEW, _const(a.AcceptDiff())),
    (frozenset({"n"}), lambda ctx: ctx.panel is Panel.DIFF_PREVIEW, _const(a.RejectDiff())),
    (frozenset({"backspace"}), _in_code_viewer, _const(a.CloseFile())),
    (frozenset({"esc"}), lambda ctx: ctx.view in VIEW_ESCAPE_VIEWS, _const(a.ViewEscape())),
    (frozenset({"esc"}), _in_code_viewer, _const(a.CloseFile())),
    (VIEW_KEY_CHARS, lambda ctx: ctx.view in VIEW_KEY_VIEWS, a.ViewKey),
)


def _first_rule(rules, code: str, ctx: KeyContext) -> a.Action | None:
    for keys, guard, resolve in rules:
        if code in keys and guard(ctx):
            return resolve(code)
    return None


def _is_char(code: str) -> bool:
    return len(code) == 1


def _map_normal(code: str, ctx: KeyContext) -> a.Action:
    if code == "enter":
        return _enter_action(ctx)
    action = _first_rule(NORMAL_RULES, code, ctx)
    if action is not None:
        return action
    action = MODE_KEYMAP[InputMode.NORMAL].get(code)
    if action is not None:
        return action
    action = _first_rule(NORMAL_FALLBACK_RULES, code, ctx)
    return action if action is not None else a.NoAction()


def _map_overlay(code: str, ctx: KeyContext) -> a.Action:
    action = OVERLAY_KEYMAP.get(code)
    if action is not None:
        return action
    # a navigable overlay that is collecting text (an API key) gets raw chars
    navigable = ctx.overlay in NAVIGABLE_OVERLAYS and not ctx.overlay_text_entry
    if navigable and code in OVERLAY_NAV_KEYMAP:
        return OVERLAY_NAV_KEYMAP[code]
    return a.InsertChar(code) if _is_char(code) else a.NoAction()


def map_key(event: KeyEvent, ctx: KeyContext) -> a.Action:
    """Translate one key press into an Action. Pure; never raises."""
    code = event.code
    if event.ctrl:
        if code == "k" and ctx.mode is InputMode.VISUAL:
            return a.SendSelectionToAi()
        if code in CTRL_KEYMAP:
            return CTRL_KEYMAP[code]
    if event.alt and code in ALT_KEYMAP:
        return ALT_KEYMAP[code]

    if ctx.overlay is not None:
        return _map_overlay(code, ctx)

    if ctx.mode is InputMode.NORMAL:
        return _map_normal(code, ctx)

    action = MODE_KEYMAP[ctx.mode].get(code)
    if action is not None:
        return action
    if ctx.mode in (InputMode.INSERT, InputMode.COMMAND) and _is_char(code):
        return a.InsertChar(code)
    return a.NoAction()


# ─── Mouse ────────────────────────────────────────────────────────────────────


def scroll_line_count(recent_scrolls: Sequence[float], now: float, acceleration: float) -> int:
    """Lines per wheel notch: accelerated after a burst of recent scroll events."""
    recent = sum(1 for t in recent_scrolls if now - t < SCROLL_ACCEL_WINDOW)
    if recent >= SCROLL_ACCEL_MIN_EVENTS:
        return int(acceleration * 3)
    return 1


def hit_test(click_areas: Sequence[tuple[Rect, ClickTarget]], col: int, row: int) -> ClickTarget | None:
    for rect, target in click_areas:
        if rect.contains(col, row):
            return target
    return None


def map_mouse(
    event: MouseEvent,
    click_areas: Sequence[tuple[Rect, ClickTarget]],
    recent_scrolls: Sequence[float],
    now: float,
    acceleration: float = 1.0,
) -> a.Action:
    if event.kind is MouseKind.SCROLL_UP:
        return a.ScrollLines(-scroll_line_count(recent_scrolls, now, acceleration))
    if event.kind is MouseKind.SCROLL_DOWN:
        return a.ScrollLines(scroll_line_count(recent_scrolls, now, acceleration))
    if event.kind is MouseKind.LEFT_DOWN:
        target = hit_test(click_areas, event.column, event.row)
        return a.ClickAt(target) if target is not None else a.NoAction()
    return a.NoAction()
