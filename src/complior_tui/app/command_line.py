"""Slash commands, colon commands and their tab completion.

// [LAW:one-source-of-truth] COMMANDS and COLON_COMMANDS are the only command lists;
// the palette, completion and help all read them.
// [LAW:dataflow-not-control-flow] Each command name maps to one handler in a table.

Handlers mutate ApplicationState and return at most one AppCommand.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from complior_tui.app.state import ApplicationState
from complior_tui.core import commands as c
from complior_tui.core.types import ToastKind, ViewState
from complior_tui.overlays.model_selector import ModelSelectorOverlay
from complior_tui.overlays.provider_setup import ProviderSetupOverlay
from complior_tui.overlays.text_filter import GettingStartedOverlay, HelpOverlay
from complior_tui.overlays.theme_picker import ThemePickerOverlay

logger = logging.getLogger(__name__)

DEFAULT_SESSION = "latest"

# (command, description) in palette order.
COMMANDS: tuple[tuple[str, str], ...] = (
    ("/scan", "Scan project for compliance"),
    ("/help", "Show all commands and shortcuts"),
    ("/edit", "Open file in code viewer"),
    ("/run", "Run shell command"),
    ("/clear", "Clear terminal output"),
    ("/reconnect", "Reconnect to engine"),
    ("/theme", "Switch color theme"),
    ("/view", "Switch to view (1-6)"),
    ("/save", "Save current session"),
    ("/load", "Load saved session"),
    ("/sessions", "List saved sessions"),
    ("/watch", "Toggle file watch mode"),
    ("/fix", "Open Fix view (--dry-run to preview)"),
    ("/whatif", "What-if scenario analysis"),
    ("/export", "Export the last scan as Markdown"),
    ("/provider", "Configure LLM provider"),
    ("/model", "Switch model"),
    ("/welcome", "Show getting started"),
    ("/undo", "Undo last fix"),
    ("/animations", "Toggle animations on/off"),
)

COLON_COMMANDS: tuple[str, ...] = (
    "scan", "fix", "theme", "export", "watch", "quit", "help",
    "undo", "view", "provider", "animations", "whatif", "dry-run",
)

HELP_TEXT = (
    "Commands:\n"
    "  /scan           Scan project for compliance\n"
    "  /edit <path>    Open file in viewer\n"
    "  /run <cmd>      Run shell command\n"
    "  /clear          Clear terminal output\n"
    "  /reconnect      Reconnect to engine\n"
    "  /theme [name]   Switch theme (no name opens the picker)\n"
    "  /watch          Toggle file watch mode\n"
    "  /view <1-6>     Switch to view (Dashboard/Scan/Fix/Chat/Timeline/Report)\n"
    "  /save [name]    Save session\n"
    "  /load [name]    Load session\n"
    "  /sessions       List saved sessions\n"
    "  /fix            Open Fix view\n"
    "  /fix --dry-run  Preview fixes without applying\n"
    "  /whatif <text>  What-if scenario analysis\n"
    "  /export         Export the last scan report\n"
    "  /provider       Configure LLM provider\n"
    "  /model          Switch model (also M in Normal mode)\n"
    "  /welcome        Show getting started\n"
    "  /help           Show this help\n"
    "\n"
    "Shortcuts:\n"
    "  @file           Reference file in message\n"
    "  !cmd            Run shell command directly\n"
    "  1-6             Switch view (Normal mode)\n"
    "  Tab             Toggle mode (Scan/Fix/Watch)\n"
    "  Alt+1..5        Jump to panel\n"
    "  Ctrl+P          Command palette\n"
    "  Ctrl+B          Toggle sidebar\n"
    "  Ctrl+T          Toggle terminal\n"
    "  V               Visual select (code viewer)\n"
    "  Ctrl+K          Send selection to AI\n"
    "  ?               Help (Normal mode)\n"
    "  q               Quit\n"
)


# ─── Completion ───────────────────────────────────────────────────────────────


def filtered_commands(filter_text: str) -> list[tuple[str, str]]:
    """Palette entries whose command or description contains filter_text."""
    needle = filter_text.lower()
    return [
        (cmd, desc) for cmd, desc in COMMANDS
        if not needle or needle in cmd.lower() or needle in desc.lower()
    ]


def complete_command(partial: str) -> str | None:
    """First slash command (with its "/") whose name starts with partial."""
    lower = partial.lower()
    for cmd, _desc in COMMANDS:
        if cmd[1:].startswith(lower):
            return cmd
    return None


def complete_colon_command(partial: str) -> str | None:
    lower = partial.lower()
    for cmd in COLON_COMMANDS:
        if cmd.startswith(lower):
            return cmd
    return None


def tab_complete(state: ApplicationState) -> None:
    if state.colon_mode:
        completed = complete_colon_command(state.input)
        if completed is not None:
            state.set_input(completed)
        return
    if state.input.startswith("/"):
        completed = complete_command(state.input[1:])
        if completed is not None:
            state.set_input(completed)


# ─── Shared command bodies ────────────────────────────────────────────────────


def begin_scan(state: ApplicationState) -> c.Scan:
    """Mark a user scan in flight and return the command that runs it."""
    state.post("Scanning project...")
    state.operation_start = time.monotonic()
    state.scan_seq += 1
    state.scan_in_flight = True
    state.scan_view.scanning = True
    return c.Scan(seq=state.scan_seq)


def begin_auto_scan(state: ApplicationState) -> c.AutoScan:
    """Scan without the "Scanning project..." message; results report score deltas."""
    state.operation_start = time.monotonic()
    state.scan_seq += 1
    state.scan_in_flight = True
    state.scan_view.scanning = True
    return c.AutoScan(seq=state.scan_seq)


def begin_chat(state: ApplicationState, text: str) -> c.Chat:
    """Post the user turn and open a new chat stream."""
    state.post_user(text)
    state.chat_seq += 1
    state.chat_in_flight = True
    state.streaming_response = None
    state.streaming_thinking = None
    state.pending_blocks = []
    state.chat_auto_scroll = True
    state.operation_start = time.monotonic()
    return c.Chat(text, seq=state.chat_seq)


def _split(text: str) -> tuple[str, str]:
    name, _sep, arg = text.partition(" ")
    return name, arg


def _parse_view(arg: str) -> ViewState | None:
    try:
        return ViewState.from_key(int(arg.strip()))
    except ValueError:
        return None


def _open_theme_or_switch(state: ApplicationState, name: str) -> c.AppCommand | None:
    if not name:
        state.overlay = ThemePickerOverlay.for_theme(state.theme)
        return None
    return c.SwitchTheme(name)


def _toggle_animations(state: ApplicationState) -> None:
    state.animations_enabled = not state.animations_enabled
    status = "on" if state.animations_enabled else "off"
    state.toast(ToastKind.INFO, f"Animations: {status}")


# ─── Slash commands ───────────────────────────────────────────────────────────

_SlashHandler = Callable[[ApplicationState, str], "c.AppCommand | None"]


def _slash_scan(state: ApplicationState, arg: str) -> c.AppCommand | None:
    return begin_scan(state)


def _slash_edit(state: ApplicationState, arg: str) -> c.AppCommand | None:
    if not arg:
        state.post("Usage: /edit <file-path>")
        return None
    return c.OpenFile(arg)


def _slash_run(state: ApplicationState, arg: str) -> c.AppCommand | None:
    if not arg:
        state.post("Usage: /run <command>")
        return None
    state.terminal_visible = True
    return c.RunCommand(arg)


def _slash_clear(state: ApplicationState, arg: str) -> c.AppCommand | None:
    state.terminal_output.clear()
    state.terminal_scroll = 0
    state.post("Terminal cleared.")
    return None


def _slash_reconnect(state: ApplicationState, arg: str) -> c.AppCommand | None:
    return c.Reconnect()


def _slash_theme(state: ApplicationState, arg: str) -> c.AppCommand | None:
    return _open_theme_or_switch(state, arg)


def _slash_save(state: ApplicationState, arg: str) -> c.AppCommand | None:
    return c.SaveSession(arg or DEFAULT_SESSION)


def _slash_load(state: ApplicationState, arg: str) -> c.AppCommand | None:
    return c.LoadSession(arg or DEFAULT_SESSION)


def _slash_sessions(state: ApplicationState, arg: str) -> c.AppCommand | None:
    return c.ListSessions()


def _slash_help(state: ApplicationState, arg: str) -> c.AppCommand | None:
    state.post(HELP_TEXT)
    return None


def _slash_provider(state: ApplicationState, arg: str) -> c.AppCommand | None:
    state.overlay = ProviderSetupOverlay()
    return None


def _slash_model(state: ApplicationState, arg: str) -> c.AppCommand | None:
    if state.provider_config.is_configured():
        state.overlay = ModelSelectorOverlay()
    else:
        state.post("No providers configured. Use /provider first.")
    return None


def _slash_view(state: ApplicationState, arg: str) -> c.AppCommand | None:
    view = _parse_view(arg)
    if view is None:
        state.post("Usage: /view <1-6> (Dashboard/Scan/Fix/Chat/Timeline/Report)")
        return None
    state.switch_view(view)
    return None


def _slash_watch(state: ApplicationState, arg: str) -> c.AppCommand | None:
    return c.ToggleWatch()


def _slash_welcome(state: ApplicationState, arg: str) -> c.AppCommand | None:
    state.overlay = GettingStartedOverlay()
    return None


def _slash_whatif(state: ApplicationState, arg: str) -> c.AppCommand | None:
    if not arg:
        state.post("Usage: /whatif <scenario> (e.g. /whatif expand to UK)")
        return None
    return c.WhatIf(arg)


def _slash_fix(state: ApplicationState, arg: str) -> c.AppCommand | None:
    if "--dry-run" in arg:
        selected = state.fix_view.selected_check_ids()
        if not selected:
            state.post("No fixes selected. Go to Fix view (3) and select fixes first.")
            return None
        return c.FixDryRun(selected)
    state.switch_view(ViewState.FIX)
    state.post("Switched to Fix view. Select fixes and press Enter to apply.")
    return None


def _slash_export(state: ApplicationState, arg: str) -> c.AppCommand | None:
    if state.last_scan is not None:
        return c.ExportReport()
    state.toast(ToastKind.WARNING, f"No scan data. Run /scan first (format: {arg or 'md'})")
    return None


def _slash_undo(state: ApplicationState, arg: str) -> c.AppCommand | None:
    return c.Undo()


def _slash_animations(state: ApplicationState, arg: str) -> c.AppCommand | None:
    _toggle_animations(state)
    return None


SLASH_HANDLERS: dict[str, _SlashHandler] = {
    "scan": _slash_scan,
    "edit": _slash_edit,
    "run": _slash_run,
    "clear": _slash_clear,
    "reconnect": _slash_reconnect,
    "theme": _slash_theme,
    "save": _slash_save,
    "load": _slash_load,
    "sessions": _slash_sessions,
    "help": _slash_help,
    "provider": _slash_provider,
    "model": _slash_model,
    "view": _slash_view,
    "watch": _slash_watch,
    "welcome": _slash_welcome,
    "whatif": _slash_whatif,
    "fix": _slash_fix,
    "export": _slash_export,
    "undo": _slash_undo,
    "animations": _slash_animations,
}


def handle_command(state: ApplicationState, text: str) -> c.AppCommand | None:
    """Run a slash command given without its leading "/"."""
    name, arg = _split(text)
    handler = SLASH_HANDLERS.get(name)
    if handler is None:
        state.post(f"Unknown command: /{text}. Type /help for usage.")
        return None
    logger.debug("slash command %s", name)
    return handler(state, arg)


# ─── Colon commands ───────────────────────────────────────────────────────────


def _colon_fix(state: ApplicationState, arg: str) -> c.AppCommand | None:
    if not arg:
        state.switch_view(ViewState.FIX)
        state.toast(ToastKind.INFO, "Fix view opened")
    else:
        state.toast(ToastKind.INFO, f"Fix: {arg}")
    return None


def _colon_export(state: ApplicationState, arg: str) -> c.AppCommand | None:
    if state.last_scan is not None:
        return c.ExportReport()
    state.toast(ToastKind.WARNING, f"No scan data. Run :scan first (format: {arg or 'md'})")
    return None


def _colon_quit(state: ApplicationState, arg: str) -> c.AppCommand | None:
    state.running = False
    return None


def _colon_help(state: ApplicationState, arg: str) -> c.AppCommand | None:
    state.overlay = HelpOverlay()
    return None


def _colon_view(state: ApplicationState, arg: str) -> c.AppCommand | None:
    view = _parse_view(arg)
    if view is None:
        state.toast(ToastKind.WARNING, "Usage: :view <1-6>")
        return None
    state.switch_view(view)
    return None


def _colon_whatif(state: ApplicationState, arg: str) -> c.AppCommand | None:
    if not arg:
        state.toast(ToastKind.WARNING, "Usage: :whatif <scenario>")
        return None
    return c.WhatIf(arg)


def _colon_dry_run(state: ApplicationState, arg: str) -> c.AppCommand | None:
    selected = state.fix_view.selected_check_ids()
    if not selected:
        state.toast(ToastKind.WARNING, "No fixes selected. Select fixes in Fix view first.")
        return None
    return c.FixDryRun(selected)


COLON_HANDLERS: dict[str, _SlashHandler] = {
    "scan": _slash_scan,
    "s": _slash_scan,
    "fix": _colon_fix,
    "theme": _slash_theme,
    "export": _colon_export,
    "watch": _slash_watch,
    "w": _slash_watch,
    "quit": _colon_quit,
    "q": _colon_quit,
    "help": _colon_help,
    "h": _colon_help,
    "undo": _slash_undo,
    "u": _slash_undo,
    "view": _colon_view,
    "v": _colon_view,
    "provider": _slash_provider,
    "p": _slash_provider,
    "animations": _slash_animations,
    "whatif": _colon_whatif,
    "wi": _colon_whatif,
    "dry-run": _colon_dry_run,
    "dr": _colon_dry_run,
}


def handle_colon_command(state: ApplicationState, text: str) -> c.AppCommand | None:
    name, arg = _split(text)
    handler = COLON_HANDLERS.get(name)
    if handler is None:
        state.toast(ToastKind.WARNING, f"Unknown: :{text}. Try :help")
        return None
    return handler(state, arg)
