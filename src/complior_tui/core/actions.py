"""User-intent actions produced by the input mapper.

// [LAW:one-source-of-truth] The class IS the action tag, no kind string.
// Actions are immutable once constructed; the controller never parses raw keys.

This module is STABLE. Safe for `from` imports everywhere.
"""

from __future__ import annotations

from dataclasses import dataclass

from complior_tui.core.types import ClickTarget, Panel, ViewState


@dataclass(frozen=True)
class Action:
    """Base class for all actions."""


# ─── Application ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class NoAction(Action):
    """Unrecognized input. Applying it changes nothing."""


@dataclass(frozen=True)
class Quit(Action):
    pass


@dataclass(frozen=True)
class NextPanel(Action):
    pass


@dataclass(frozen=True)
class ToggleTerminal(Action):
    pass


@dataclass(frozen=True)
class ToggleSidebar(Action):
    pass


@dataclass(frozen=True)
class ToggleFilesPanel(Action):
    pass


@dataclass(frozen=True)
class FocusPanel(Action):
    panel: Panel


@dataclass(frozen=True)
class SwitchView(Action):
    view: ViewState


@dataclass(frozen=True)
class ToggleMode(Action):
    pass


# ─── Text editing ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class SubmitInput(Action):
    pass


@dataclass(frozen=True)
class InsertChar(Action):
    char: str


@dataclass(frozen=True)
class DeleteChar(Action):
    pass


@dataclass(frozen=True)
class MoveCursorLeft(Action):
    pass


@dataclass(frozen=True)
class MoveCursorRight(Action):
    pass


@dataclass(frozen=True)
class HistoryUp(Action):
    pass


@dataclass(frozen=True)
class HistoryDown(Action):
    pass


@dataclass(frozen=True)
class TabComplete(Action):
    pass


@dataclass(frozen=True)
class GotoLine(Action):
    pass


# ─── Scrolling ────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ScrollUp(Action):
    pass


@dataclass(frozen=True)
class ScrollDown(Action):
    pass


@dataclass(frozen=True)
class ScrollHalfPageUp(Action):
    pass


@dataclass(frozen=True)
class ScrollHalfPageDown(Action):
    pass


@dataclass(frozen=True)
class ScrollToTop(Action):
    pass


@dataclass(frozen=True)
class ScrollToBottom(Action):
    pass


@dataclass(frozen=True)
class ScrollLines(Action):
    """Mouse wheel: positive scrolls down, negative scrolls up."""

    lines: int


# ─── Modes ────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class EnterInsertMode(Action):
    pass


@dataclass(frozen=True)
class EnterNormalMode(Action):
    pass


@dataclass(frozen=True)
class EnterVisualMode(Action):
    pass


@dataclass(frozen=True)
class EnterCommandMode(Action):
    pass


@dataclass(frozen=True)
class EnterColonMode(Action):
    pass


# ─── Code viewer / selection / diff ───────────────────────────────────────────


@dataclass(frozen=True)
class SelectionUp(Action):
    pass


@dataclass(frozen=True)
class SelectionDown(Action):
    pass


@dataclass(frozen=True)
class SendSelectionToAi(Action):
    pass


@dataclass(frozen=True)
class AcceptDiff(Action):
    pass


@dataclass(frozen=True)
class RejectDiff(Action):
    pass


@dataclass(frozen=True)
class CloseFile(Action):
    pass


@dataclass(frozen=True)
class ToggleExpand(Action):
    pass


@dataclass(frozen=True)
class OpenFile(Action):
    pass


@dataclass(frozen=True)
class CodeSearch(Action):
    pass


@dataclass(frozen=True)
class CodeSearchNext(Action):
    pass


@dataclass(frozen=True)
class CodeSearchPrev(Action):
    pass


# ─── Overlay triggers ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ShowCommandPalette(Action):
    pass


@dataclass(frozen=True)
class ShowFilePicker(Action):
    pass


@dataclass(frozen=True)
class ShowHelp(Action):
    pass


@dataclass(frozen=True)
class ShowModelSelector(Action):
    pass


@dataclass(frozen=True)
class ShowProviderSetup(Action):
    pass


@dataclass(frozen=True)
class ShowThemePicker(Action):
    pass


@dataclass(frozen=True)
class ShowUndoHistory(Action):
    pass


# ─── Engine work ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class StartScan(Action):
    pass


@dataclass(frozen=True)
class WatchToggle(Action):
    pass


@dataclass(frozen=True)
class Undo(Action):
    pass


# ─── Mouse / view-scoped ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class ClickAt(Action):
    target: ClickTarget


@dataclass(frozen=True)
class ViewKey(Action):
    """Single-char key whose meaning depends on the active view."""

    char: str


@dataclass(frozen=True)
class ViewEnter(Action):
    pass


@dataclass(frozen=True)
class ViewEscape(Action):
    pass


# // [LAW:one-source-of-truth] Every concrete action class, for exhaustiveness checks.
ALL_ACTIONS: tuple[type[Action], ...] = tuple(Action.__subclasses__())
