"""Application controller: applies actions and worker events to ApplicationState.

// [LAW:single-enforcer] Controller.apply is the only place an Action changes state.
// [LAW:dataflow-not-control-flow] Overlay input routes through OVERLAY_HANDLERS,
// everything else through _ACTION_HANDLERS. Both are keyed by class.

The controller performs no I/O. Work that needs the engine, the filesystem
or a subprocess comes back as one AppCommand for the executor.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from complior_tui.app import channel_events
from complior_tui.app.command_line import (
    begin_chat,
    begin_scan,
    handle_colon_command,
    handle_command,
    tab_complete,
)
from complior_tui.app.state import HALF_PAGE, ApplicationState, context_pct, find_search_matches
from complior_tui.app.view_keys import handle_view_enter, handle_view_escape, handle_view_key
from complior_tui.core import actions as a
from complior_tui.core import commands as c
from complior_tui.core.types import (
    FindingRow,
    FixCheckbox,
    InputMode,
    Panel,
    PanelFocus,
    Rect,
    Selection,
    SidebarToggle,
    ViewState,
    ViewTab,
)
from complior_tui.io.file_tree import toggle_expand
from complior_tui.overlays import (
    command_palette,
    confirm_dialog,
    dismiss_modal,
    model_selector,
    onboarding,
    provider_setup,
    theme_picker,
    undo_history,
)
from complior_tui.overlays.text_filter import (
    FilePickerOverlay,
    GettingStartedOverlay,
    HelpOverlay,
    handle_file_picker,
    handle_getting_started,
    handle_help,
)
from complior_tui.tui.input_modes import KeyContext

logger = logging.getLogger(__name__)

IDLE_SUGGESTION_SECONDS = 10.0
SCROLL_EVENT_WINDOW = 0.5
TAB_WIDTH = 10
SIDEBAR_MIN_WIDTH = 120
SIDEBAR_WIDTH = 20
FINDING_ROWS_Y = 5
FIX_ROWS_Y = 3
MAX_CLICK_ROWS = 20

_Handler = Callable[[ApplicationState, a.Action], "c.AppCommand | None"]

# // [LAW:one-source-of-truth] Overlay class → its input handler.
OVERLAY_HANDLERS: dict[type, Callable] = {
    command_palette.CommandPaletteOverlay: command_palette.handle,
    FilePickerOverlay: handle_file_picker,
    HelpOverlay: handle_help,
    GettingStartedOverlay: handle_getting_started,
    model_selector.ModelSelectorOverlay: model_selector.handle,
    provider_setup.ProviderSetupOverlay: provider_setup.handle,
    theme_picker.ThemePickerOverlay: theme_picker.handle,
    onboarding.OnboardingOverlay: onboarding.handle,
    confirm_dialog.ConfirmDialogOverlay: confirm_dialog.handle,
    dismiss_modal.DismissModalOverlay: dismiss_modal.handle,
    undo_history.UndoHistoryOverlay: undo_history.handle,
}


# ─── Application ──────────────────────────────────────────────────────────────


def _quit(state: ApplicationState, action: a.Quit) -> None:
    state.running = False


def _no_action(state: ApplicationState, action: a.NoAction) -> None:
    return None


def _next_panel(state: ApplicationState, action: a.NextPanel) -> None:
    state.next_panel()


def _toggle_terminal(state: ApplicationState, action: a.ToggleTerminal) -> None:
    state.terminal_visible = not state.terminal_visible


def _toggle_sidebar(state: ApplicationState, action: a.ToggleSidebar) -> None:
    state.sidebar_visible = not state.sidebar_visible


def _toggle_files_panel(state: ApplicationState, action: a.ToggleFilesPanel) -> None:
    state.files_panel_visible = not state.files_panel_visible


def _focus_panel(state: ApplicationState, action: a.FocusPanel) -> None:
    state.panel = action.panel


def _switch_view(state: ApplicationState, action: a.SwitchView) -> None:
    state.switch_view(action.view)


def _toggle_mode(state: ApplicationState, action: a.ToggleMode) -> None:
    state.mode = state.mode.next()


# ─── Text editing ─────────────────────────────────────────────────────────────


def _insert_char(state: ApplicationState, action: a.InsertChar) -> None:
    state.insert_char(action.char)


def _delete_char(state: ApplicationState, action: a.DeleteChar) -> None:
    state.delete_char()


def _cursor_left(state: ApplicationState, action: a.MoveCursorLeft) -> None:
    state.move_cursor_left()


def _cursor_right(state: ApplicationState, action: a.MoveCursorRight) -> None:
    state.move_cursor_right()


def _history_up(state: ApplicationState, action: a.HistoryUp) -> None:
    state.history_up()


def _history_down(state: ApplicationState, action: a.HistoryDown) -> None:
    state.history_down()


def _tab_complete(state: ApplicationState, action: a.TabComplete) -> None:
    tab_complete(state)


def _goto_line(state: ApplicationState, action: a.GotoLine) -> None:
    text = state.take_input()
    state.input_mode = InputMode.NORMAL
    try:
        line = int(text.strip())
    except ValueError:
        return
    state.code_scroll = _clamp_code_line(state, max(line - 1, 0))


def _run_code_search(state: ApplicationState, query: str) -> None:
    if state.code_content is not None:
        matches = find_search_matches(state.code_content, query)
        state.code_search_current = 0
        if matches:
            state.code_scroll = matches[0]
        state.code_search_matches = matches
        state.code_search_query = query
    state.input_mode = InputMode.NORMAL


def _submit_input(state: ApplicationState, action: a.SubmitInput) -> c.AppCommand | None:
    text = state.take_input()
    if not text:
        return None
    state.push_history(text)

    if text.startswith("!") and len(text) > 1:
        command = text[1:]
        state.terminal_visible = True
        state.post(f"$ {command}")
        return c.RunCommand(command)

    if state.colon_mode:
        state.colon_mode = False
        state.input_mode = InputMode.NORMAL
        return handle_colon_command(state, text)

    if state.input_mode is InputMode.COMMAND or text.startswith("/"):
        if state.panel is Panel.CODE_VIEWER and not text.startswith("/"):
            _run_code_search(state, text)
            return None
        state.input_mode = InputMode.INSERT
        return handle_command(state, text.lstrip("/"))

    return begin_chat(state, text)


# ─── Scrolling ────────────────────────────────────────────────────────────────


def _clamp_code_line(state: ApplicationState, line: int) -> int:
    return max(0, min(line, max(state.code_line_count() - 1, 0)))


def _scroll_panel_up(state: ApplicationState) -> None:
    panel = state.panel
    if panel is Panel.CODE_VIEWER:
        state.code_scroll = max(state.code_scroll - 1, 0)
    elif panel is Panel.FILE_BROWSER:
        state.file_browser_index = max(state.file_browser_index - 1, 0)
    elif panel is Panel.TERMINAL:
        state.terminal_scroll = max(state.terminal_scroll - 1, 0)
        state.terminal_auto_scroll = False
    elif panel is Panel.CHAT:
        state.chat_scroll = max(state.chat_scroll - 1, 0)
        state.chat_auto_scroll = False


def _scroll_panel_down(state: ApplicationState) -> None:
    panel = state.panel
    if panel is Panel.CODE_VIEWER:
        state.code_scroll = _clamp_code_line(state, state.code_scroll + 1)
    elif panel is Panel.FILE_BROWSER:
        if state.file_browser_index + 1 < len(state.file_tree):
            state.file_browser_index += 1
    elif panel is Panel.TERMINAL:
        state.terminal_scroll += 1
        if state.terminal_scroll + 1 >= len(state.terminal_output):
            state.terminal_auto_scroll = True
    elif panel is Panel.CHAT:
        state.chat_scroll += 1


def _scroll_up(state: ApplicationState, action: a.Action | None = None) -> None:
    view = state.view
    if view is ViewState.SCAN:
        state.scan_view.navigate_up()
    elif view is ViewState.FIX:
        state.fix_view.navigate_up()
    elif view is ViewState.TIMELINE:
        state.timeline_scroll = max(state.timeline_scroll - 1, 0)
    elif view is ViewState.REPORT:
        state.report_scroll = max(state.report_scroll - 1, 0)
    else:
        _scroll_panel_up(state)


def _scroll_down(state: ApplicationState, action: a.Action | None = None) -> None:
    view = state.view
    if view is ViewState.SCAN:
        state.scan_view.navigate_down(len(state.filtered_findings()))
    elif view is ViewState.FIX:
        state.fix_view.navigate_down()
    elif view is ViewState.TIMELINE:
        state.timeline_scroll += 1
    elif view is ViewState.REPORT:
        state.report_scroll += 1
    else:
        _scroll_panel_down(state)


def _half_page_up(state: ApplicationState, action: a.ScrollHalfPageUp) -> None:
    if state.panel is Panel.CHAT:
        state.chat_scroll = max(state.chat_scroll - HALF_PAGE, 0)
        state.chat_auto_scroll = False
    else:
        state.code_scroll = max(state.code_scroll - HALF_PAGE, 0)


def _half_page_down(state: ApplicationState, action: a.ScrollHalfPageDown) -> None:
    if state.panel is Panel.CHAT:
        state.chat_scroll += HALF_PAGE
    else:
        state.code_scroll = _clamp_code_line(state, state.code_scroll + HALF_PAGE)


def _scroll_to_top(state: ApplicationState, action: a.ScrollToTop) -> None:
    state.code_scroll = 0


def _scroll_to_bottom(state: ApplicationState, action: a.ScrollToBottom) -> None:
    state.code_scroll = _clamp_code_line(state, state.code_line_count())
    state.chat_auto_scroll = True


def _scroll_lines(state: ApplicationState, action: a.ScrollLines) -> None:
    now = time.monotonic()
    state.scroll_events.append(now)
    state.scroll_events = [t for t in state.scroll_events if now - t < SCROLL_EVENT_WINDOW]
    step = _scroll_down if action.lines > 0 else _scroll_up
    for _ in range(abs(action.lines)):
        step(state)


# ─── Modes ────────────────────────────────────────────────────────────────────


def _enter_insert(state: ApplicationState, action: a.EnterInsertMode) -> None:
    state.input_mode = InputMode.INSERT


def _enter_normal(state: ApplicationState, action: a.EnterNormalMode) -> None:
    state.input_mode = InputMode.NORMAL
    state.selection = None
    state.colon_mode = False


def _enter_visual(state: ApplicationState, action: a.EnterVisualMode) -> None:
    state.input_mode = InputMode.VISUAL
    state.selection = Selection(state.code_scroll, state.code_scroll)


def _enter_command(state: ApplicationState, action: a.EnterCommandMode) -> None:
    state.input_mode = InputMode.COMMAND
    state.set_input("")


def _enter_colon(state: ApplicationState, action: a.EnterColonMode) -> None:
    state.input_mode = InputMode.COMMAND
    state.colon_mode = True
    state.set_input("")


# ─── Code viewer / selection / diff ───────────────────────────────────────────


def _selection_up(state: ApplicationState, action: a.SelectionUp) -> None:
    sel = state.selection
    if sel is None:
        return
    sel.end_line = max(sel.end_line - 1, 0)
    if sel.end_line < sel.start_line:
        sel.start_line = sel.end_line


def _selection_down(state: ApplicationState, action: a.SelectionDown) -> None:
    if state.selection is not None:
        state.selection.end_line += 1


def selection_context(content: str, selection: Selection, file_path: str | None) -> str:
    """Fenced block quoting the selected lines, with a 1-based range header."""
    lines = content.splitlines()
    last = max(len(lines) - 1, 0)
    start = min(selection.start_line, last)
    end = min(selection.end_line, last)
    code = "\n".join(lines[start:end + 1])
    file = file_path or "unknown"
    count = end - start + 1
    return f"[selected {count} lines from {file}:{start + 1}-{end + 1}]\n```\n{code}\n```"


def _send_selection(state: ApplicationState, action: a.SendSelectionToAi) -> None:
    if state.code_content is None or state.selection is None:
        return
    state.set_input(selection_context(state.code_content, state.selection, state.open_file_path))
    state.input_mode = InputMode.INSERT
    state.panel = Panel.CHAT


def _accept_diff(state: ApplicationState, action: a.AcceptDiff) -> None:
    state.diff_content = None
    state.panel = Panel.CHAT
    state.post("Diff applied.")


def _reject_diff(state: ApplicationState, action: a.RejectDiff) -> None:
    state.diff_content = None
    state.panel = Panel.CHAT
    state.post("Diff rejected.")


def _close_file(state: ApplicationState, action: a.CloseFile) -> None:
    state.close_file()


def _toggle_expand(state: ApplicationState, action: a.ToggleExpand) -> None:
    toggle_expand(state.file_tree, state.file_browser_index)


def _open_file(state: ApplicationState, action: a.OpenFile) -> c.AppCommand | None:
    index = state.file_browser_index
    if not 0 <= index < len(state.file_tree):
        return None
    entry = state.file_tree[index]
    if entry.is_dir:
        toggle_expand(state.file_tree, index)
        return None
    return c.OpenFile(entry.path)


def _code_search(state: ApplicationState, action: a.CodeSearch) -> None:
    state.input_mode = InputMode.COMMAND
    state.set_input("")


def _step_search(state: ApplicationState, delta: int) -> None:
    matches = state.code_search_matches
    if not matches:
        return
    state.code_search_current = (state.code_search_current + delta) % len(matches)
    state.code_scroll = matches[state.code_search_current]


def _code_search_next(state: ApplicationState, action: a.CodeSearchNext) -> None:
    _step_search(state, 1)


def _code_search_prev(state: ApplicationState, action: a.CodeSearchPrev) -> None:
    _step_search(state, -1)


# ─── Overlay triggers ─────────────────────────────────────────────────────────


def _show_command_palette(state: ApplicationState, action: a.ShowCommandPalette) -> None:
    state.overlay = command_palette.CommandPaletteOverlay()


def _show_file_picker(state: ApplicationState, action: a.ShowFilePicker) -> None:
    state.overlay = FilePickerOverlay()


def _show_help(state: ApplicationState, action: a.ShowHelp) -> None:
    state.overlay = HelpOverlay()


def _show_model_selector(state: ApplicationState, action: a.ShowModelSelector) -> None:
    if state.provider_config.is_configured():
        state.overlay = model_selector.ModelSelectorOverlay()
    else:
        state.overlay = provider_setup.ProviderSetupOverlay()


def _show_provider_setup(state: ApplicationState, action: a.ShowProviderSetup) -> None:
    state.overlay = provider_setup.ProviderSetupOverlay()


def _show_theme_picker(state: ApplicationState, action: a.ShowThemePicker) -> None:
    state.overlay = theme_picker.ThemePickerOverlay.for_theme(state.theme)


def _show_undo_history(state: ApplicationState, action: a.ShowUndoHistory) -> c.AppCommand:
    state.overlay = undo_history.UndoHistoryOverlay()
    return c.FetchUndoHistory()


# ─── Engine work ──────────────────────────────────────────────────────────────


def _start_scan(state: ApplicationState, action: a.StartScan) -> c.AppCommand:
    return begin_scan(state)


def _watch_toggle(state: ApplicationState, action: a.WatchToggle) -> c.AppCommand:
    return c.ToggleWatch()


def _undo(state: ApplicationState, action: a.Undo) -> c.AppCommand:
    return c.Undo(None)


# ─── Mouse / view-scoped ──────────────────────────────────────────────────────


def _click_at(state: ApplicationState, action: a.ClickAt) -> None:
    target = action.target
    if isinstance(target, ViewTab):
        state.switch_view(target.view)
    elif isinstance(target, PanelFocus):
        state.panel = target.panel
    elif isinstance(target, FindingRow):
        state.scan_view.selected_finding = target.index
    elif isinstance(target, FixCheckbox):
        state.fix_view.toggle_at(target.index)
    elif isinstance(target, SidebarToggle):
        state.sidebar_visible = not state.sidebar_visible


def _view_key(state: ApplicationState, action: a.ViewKey) -> c.AppCommand | None:
    return handle_view_key(state, action.char)


def _view_enter(state: ApplicationState, action: a.ViewEnter) -> c.AppCommand | None:
    return handle_view_enter(state)


def _view_escape(state: ApplicationState, action: a.ViewEscape) -> None:
    handle_view_escape(state)


# // [LAW:one-source-of-truth] Every Action class has exactly one entry here.
_ACTION_HANDLERS: dict[type[a.Action], _Handler] = {
    a.NoAction: _no_action,
    a.Quit: _quit,
    a.NextPanel: _next_panel,
    a.ToggleTerminal: _toggle_terminal,
    a.ToggleSidebar: _toggle_sidebar,
    a.ToggleFilesPanel: _toggle_files_panel,
    a.FocusPanel: _focus_panel,
    a.SwitchView: _switch_view,
    a.ToggleMode: _toggle_mode,
    a.SubmitInput: _submit_input,
    a.InsertChar: _insert_char,
    a.DeleteChar: _delete_char,
    a.MoveCursorLeft: _cursor_left,
    a.MoveCursorRight: _cursor_right,
    a.HistoryUp: _history_up,
    a.HistoryDown: _history_down,
    a.TabComplete: _tab_complete,
    a.GotoLine: _goto_line,
    a.ScrollUp: _scroll_up,
    a.ScrollDown: _scroll_down,
    a.ScrollHalfPageUp: _half_page_up,
    a.ScrollHalfPageDown: _half_page_down,
    a.ScrollToTop: _scroll_to_top,
    a.ScrollToBottom: _scroll_to_bottom,
    a.ScrollLines: _scroll_lines,
    a.EnterInsertMode: _enter_insert,
    a.EnterNormalMode: _enter_normal,
    a.EnterVisualMode: _enter_visual,
    a.EnterCommandMode: _enter_command,
    a.EnterColonMode: _enter_colon,
    a.SelectionUp: _selection_up,
    a.SelectionDown: _selection_down,
    a.SendSelectionToAi: _send_selection,
    a.AcceptDiff: _accept_diff,
    a.RejectDiff: _reject_diff,
    a.CloseFile: _close_file,
    a.ToggleExpand: _toggle_expand,
    a.OpenFile: _open_file,
    a.CodeSearch: _code_search,
    a.CodeSearchNext: _code_search_next,
    a.CodeSearchPrev: _code_search_prev,
    a.ShowCommandPalette: _show_command_palette,
    a.ShowFilePicker: _show_file_picker,
    a.ShowHelp: _show_help,
    a.ShowModelSelector: _show_model_selector,
    a.ShowProviderSetup: _show_provider_setup,
    a.ShowThemePicker: _show_theme_picker,
    a.ShowUndoHistory: _show_undo_history,
    a.StartScan: _start_scan,
    a.WatchToggle: _watch_toggle,
    a.Undo: _undo,
    a.ClickAt: _click_at,
    a.ViewKey: _view_key,
    a.ViewEnter: _view_enter,
    a.ViewEscape: _view_escape,
}


# ─── Controller ───────────────────────────────────────────────────────────────


class Controller:
    """Owns ApplicationState and is the only writer to it."""

    def __init__(self, state: ApplicationState | None = None):
        self.state = state if state is not None else ApplicationState()

    def apply(self, action: a.Action) -> c.AppCommand | None:
        state = self.state
        if not isinstance(action, a.NoAction):
            state.idle_suggestions.reset_timer()
            if state.idle_suggestions.current is not None:
                state.idle_suggestions.dismiss()

        if state.overlay is not None:
            handler = OVERLAY_HANDLERS.get(type(state.overlay))
            if handler is None:
                logger.warning("no handler for overlay %s", type(state.overlay).__name__)
                state.overlay = None
                return None
            return handler(state.overlay, state, action)

        return _ACTION_HANDLERS[type(action)](state, action)

    def apply_event(self, event: channel_events.ChannelEvent) -> c.AppCommand | None:
        return channel_events.apply_event(self.state, event)

    def tick(self) -> c.AppCommand | None:
        """Periodic housekeeping; may ask for idle suggestions."""
        state = self.state
        state.spinner_index += 1
        state.toasts.gc()
        state.context_pct = context_pct(len(state.messages), state.context_max_messages)

        idle = state.idle_suggestions
        if (
            idle.current is None
            and idle.is_idle(IDLE_SUGGESTION_SECONDS)
            and not state.scan_view.scanning
            and state.overlay is None
            and state.input_mode is not InputMode.INSERT
            and state.streaming_response is None
            and not idle.recently_dismissed()
            and not idle.fetch_pending
        ):
            idle.fetch_pending = True
            return c.FetchSuggestions()
        return None

    def key_context(self) -> KeyContext:
        state = self.state
        overlay = state.overlay
        return KeyContext(
            mode=state.input_mode,
            panel=state.panel,
            view=state.view,
            overlay=overlay.kind if overlay is not None else None,
            overlay_text_entry=overlay.accepts_text() if overlay is not None else False,
            code_search_active=state.code_search_query is not None,
        )

    def rebuild_click_areas(self, width: int, height: int) -> None:
        """Mouse hit areas for the current terminal size and view."""
        state = self.state
        areas: list[tuple[Rect, object]] = []

        footer_y = max(height - 1, 0)
        for i, view in enumerate(ViewState):
            x = i * TAB_WIDTH
            if x + TAB_WIDTH <= width:
                areas.append((Rect(x, footer_y, TAB_WIDTH, 1), ViewTab(view)))

        if width >= SIDEBAR_MIN_WIDTH and state.sidebar_visible:
            areas.append((
                Rect(width - SIDEBAR_WIDTH, 0, SIDEBAR_WIDTH, max(height - 2, 0)),
                SidebarToggle(),
            ))

        if state.view is ViewState.SCAN:
            count = len(state.filtered_findings())
            for i in range(min(count, MAX_CLICK_ROWS)):
                areas.append((Rect(0, FINDING_ROWS_Y + i, width // 2, 1), FindingRow(i)))

        if state.view is ViewState.FIX:
            for i in range(min(len(state.fix_view.fixable_findings), MAX_CLICK_ROWS)):
                areas.append((Rect(0, FIX_ROWS_Y + i, width // 2, 1), FixCheckbox(i)))

        state.click_areas = areas
