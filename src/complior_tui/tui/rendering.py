"""Rich rendering of ApplicationState.

Pure functions: state in, rich Text out. No widget, no I/O.

// [LAW:one-source-of-truth] Theme colors live in THEME_COLORS; every renderer
// reads the active palette through _palette(state).
// [LAW:dataflow-not-control-flow] Views and overlays render through
// VIEW_RENDERERS / OVERLAY_RENDERERS keyed by ViewState / overlay class.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from rich.text import Text

from complior_tui.app.command_line import HELP_TEXT
from complior_tui.app.controller import SIDEBAR_MIN_WIDTH, SIDEBAR_WIDTH, TAB_WIDTH
from complior_tui.core.providers import PROVIDERS, display_model_name, selectable_models
from complior_tui.core.themes import DEFAULT_THEME, THEME_NAMES
from complior_tui.core.types import InputMode, MessageRole, Severity, ViewState, Zone
from complior_tui.io.report_export import render_markdown
from complior_tui.overlays.command_palette import CommandPaletteOverlay
from complior_tui.overlays.confirm_dialog import ConfirmDialogOverlay
from complior_tui.overlays.dismiss_modal import DISMISS_REASONS, DismissModalOverlay
from complior_tui.overlays.model_selector import ModelSelectorOverlay
from complior_tui.overlays.onboarding import SUBSTEP_KEY, OnboardingOverlay, StepKind
from complior_tui.overlays.provider_setup import STEP_KEY, STEP_RESULT, STEP_VERIFYING, ProviderSetupOverlay
from complior_tui.overlays.text_filter import FilePickerOverlay, GettingStartedOverlay, HelpOverlay
from complior_tui.overlays.theme_picker import ThemePickerOverlay
from complior_tui.overlays.undo_history import UndoHistoryOverlay

CHAT_TAIL = 30
FINDING_ROWS = 20
TAB_LABELS = ("dash", "scan", "fix", "chat", "time", "report")
SPARK_CHARS = "▁▂▃▄▅▆▇█"


# ─── Theme colors ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ThemeColors:
    fg: str
    dim: str
    accent: str
    success: str
    warning: str
    error: str


THEME_COLORS: dict[str, ThemeColors] = {
    "dark": ThemeColors("white", "grey50", "cyan", "green", "yellow", "red"),
    "light": ThemeColors("black", "grey42", "blue", "dark_green", "dark_orange", "red3"),
    "solarized-dark": ThemeColors("#93a1a1", "#586e75", "#268bd2", "#859900", "#b58900", "#dc322f"),
    "solarized-light": ThemeColors("#586e75", "#93a1a1", "#268bd2", "#859900", "#b58900", "#dc322f"),
    "dracula": ThemeColors("#f8f8f2", "#6272a4", "#bd93f9", "#50fa7b", "#f1fa8c", "#ff5555"),
    "nord": ThemeColors("#eceff4", "#4c566a", "#88c0d0", "#a3be8c", "#ebcb8b", "#bf616a"),
    "monokai": ThemeColors("#f8f8f2", "#75715e", "#66d9ef", "#a6e22e", "#e6db74", "#f92672"),
    "gruvbox": ThemeColors("#ebdbb2", "#928374", "#83a598", "#b8bb26", "#fabd2f", "#fb4934"),
}


def _palette(state) -> ThemeColors:
    return THEME_COLORS.get(state.theme, THEME_COLORS[DEFAULT_THEME])


def _severity_style(colors: ThemeColors, severity: Severity) -> str:
    if severity in (Severity.CRITICAL, Severity.HIGH):
        return f"bold {colors.error}"
    if severity is Severity.MEDIUM:
        return colors.warning
    return colors.dim


def _zone_style(colors: ThemeColors, zone: Zone) -> str:
    return {Zone.GREEN: colors.success, Zone.YELLOW: colors.warning, Zone.RED: colors.error}[zone]


def sparkline(values: list[float]) -> str:
    """Score history as block characters, 0..100 mapped onto eight levels."""
    top = len(SPARK_CHARS) - 1
    return "".join(SPARK_CHARS[max(0, min(int(v / 100 * top), top))] for v in values)


# ─── Chrome ───────────────────────────────────────────────────────────────────


def render_header(state) -> Text:
    colors = _palette(state)
    text = Text()
    text.append(" Complior ", style=f"bold {colors.accent}")
    text.append(f" engine: {state.engine_status.value}", style=colors.dim)
    text.append(f" | mode: {state.mode.value}", style=colors.dim)
    text.append(f" | {state.view.label}", style=colors.fg)
    if state.last_scan is not None:
        score = state.last_scan.score
        text.append(" | score ", style=colors.dim)
        text.append(f"{score.total_score:.0f}/100", style=_zone_style(colors, score.zone))
    elapsed = state.elapsed_secs()
    if elapsed is not None:
        spin = state.spinner if state.animations_enabled else "*"
        text.append(f" {spin} {elapsed}s", style=colors.accent)
    if state.watch_active:
        text.append(" [watch]", style=colors.warning)
    return text


def render_input_line(state) -> Text:
    colors = _palette(state)
    prefix = {
        InputMode.INSERT: "> ",
        InputMode.NORMAL: "  ",
        InputMode.COMMAND: ":" if state.colon_mode else "/",
        InputMode.VISUAL: "v ",
    }[state.input_mode]
    text = Text(f"[{state.input_mode.name}] ", style=colors.dim)
    text.append(prefix, style=colors.accent)
    text.append(state.input, style=colors.fg)
    return text


def render_footer(state) -> Text:
    """View tabs, TAB_WIDTH columns each, matching the click areas."""
    colors = _palette(state)
    text = Text()
    for view, label in zip(ViewState, TAB_LABELS):
        cell = f"{view.value} {label}".ljust(TAB_WIDTH)
        style = f"reverse {colors.accent}" if view is state.view else colors.dim
        text.append(cell, style=style)
    return text


def render_toast(state) -> Text | None:
    toast = state.toasts.latest()
    if toast is None:
        return None
    colors = _palette(state)
    style = {
        "SUCCESS": colors.success,
        "INFO": colors.accent,
        "WARNING": colors.warning,
        "ERROR": colors.error,
    }[toast.kind.name]
    return Text(f"{toast.kind.value} {toast.message}", style=style)


# ─── Views ────────────────────────────────────────────────────────────────────


def render_messages(state, limit: int = CHAT_TAIL) -> Text:
    colors = _palette(state)
    text = Text()
    role_styles = {
        MessageRole.USER: f"bold {colors.accent}",
        MessageRole.ASSISTANT: colors.fg,
        MessageRole.SYSTEM: colors.dim,
    }
    for msg in state.messages[-limit:]:
        for block in msg.blocks:
            if block[0] == "thinking":
                text.append(f"  (thinking) {block[1]}\n", style=f"italic {colors.dim}")
            elif block[0] == "tool_call":
                text.append(f"  -> {block[1]}\n", style=colors.accent)
            elif block[0] == "tool_result":
                style = colors.error if block[3] else colors.success
                text.append(f"  <- {block[1]}\n", style=style)
        text.append(f"{msg.role.value}: ", style=role_styles[msg.role])
        text.append(msg.content + "\n", style=colors.fg)
    if state.streaming_thinking:
        text.append(f"  (thinking) {state.streaming_thinking}\n", style=f"italic {colors.dim}")
    if state.streaming_response:
        text.append("assistant: ", style=colors.fg)
        text.append(state.streaming_response + "\n", style=colors.fg)
    return text


def _render_dashboard(state) -> Text:
    colors = _palette(state)
    text = Text()
    scan = state.last_scan
    if scan is None:
        text.append("No scan yet. Press Ctrl+S or type /scan.\n", style=colors.dim)
    else:
        score = scan.score
        text.append("Compliance score: ", style=colors.fg)
        text.append(
            f"{score.total_score:.0f}/100 ({score.zone.value.upper()})\n",
            style=f"bold {_zone_style(colors, score.zone)}",
        )
        text.append(
            f"{score.passed_checks} pass / {score.failed_checks} fail / "
            f"{len(scan.findings)} findings\n",
            style=colors.dim,
        )
    if state.score_history:
        text.append(f"History {sparkline(state.score_history)}\n", style=colors.accent)
    if state.activity_log and not state.zoom.zoomed:
        text.append("\nActivity\n", style=f"bold {colors.fg}")
        for entry in state.activity_log:
            text.append(f"  {entry.timestamp} {entry.kind.value:<5} {entry.detail}\n", style=colors.dim)
    suggestion = state.idle_suggestions.current
    if suggestion is not None:
        text.append(f"\nTip: {suggestion.text}\n", style=colors.warning)
        if suggestion.detail:
            text.append(f"     {suggestion.detail}\n", style=colors.dim)
    text.append("\n")
    text.append_text(render_messages(state, limit=8))
    return text


def _render_scan(state) -> Text:
    colors = _palette(state)
    view = state.scan_view
    text = Text(f"Filter: {view.findings_filter.label}  (a/c/h/m/l)\n", style=colors.dim)
    findings = state.filtered_findings()
    # rows are pinned so finding i lands on FINDING_ROWS_Y + i
    if view.scanning:
        text.append("Scanning...\n\n", style=colors.accent)
    else:
        text.append(f"{len(findings)} findings, {view.files_scanned} files\n\n", style=colors.dim)
    if not findings:
        text.append("No findings.\n", style=colors.dim)
        return text
    for i, finding in enumerate(findings[:FINDING_ROWS]):
        marker = ">" if i == view.selected_finding else " "
        text.append(f"{marker} {finding.severity.value.upper():<8} ", style=_severity_style(colors, finding.severity))
        text.append(f"{finding.check_id}: {finding.message}\n", style=colors.fg)
    selected = state.selected_finding()
    if view.detail_open and selected is not None:
        text.append("\n", style=colors.fg)
        text.append(f"{selected.check_id}\n", style=f"bold {colors.accent}")
        text.append(f"{selected.message}\n", style=colors.fg)
        if selected.article_reference:
            text.append(f"Reference: {selected.article_reference}\n", style=colors.dim)
        if selected.obligation_id:
            text.append(f"Obligation: {selected.obligation_id}\n", style=colors.dim)
        if selected.fix:
            text.append(f"Fix: {selected.fix}\n", style=colors.success)
        text.append("x explain | f fix | d dismiss\n", style=colors.dim)
    return text


def _render_fix(state) -> Text:
    colors = _palette(state)
    fix = state.fix_view
    text = Text(f"Fixable findings ({fix.selected_count()} selected)\n", style=colors.fg)
    if fix.results is not None:
        r = fix.results
        text.append(
            f"Applied {r.applied}, failed {r.failed}. Score {r.old_score:.0f} -> {r.new_score:.0f}\n",
            style=colors.success,
        )
        return text
    if not fix.fixable_findings:
        text.append("Nothing to fix. Run a scan first.\n", style=colors.dim)
        return text
    for i, item in enumerate(fix.fixable_findings[:FINDING_ROWS]):
        box = "[x]" if item.selected else "[ ]"
        marker = ">" if i == fix.selected_index else " "
        text.append(f"{marker} {box} ", style=colors.accent)
        text.append(f"{item.check_id} +{item.predicted_impact} ", style=colors.success)
        text.append(f"{item.message} ({item.status.value})\n", style=colors.fg)
    text.append(
        f"\nPredicted impact: +{fix.total_predicted_impact()}  space toggle | a all | n none | Enter apply\n",
        style=colors.dim,
    )
    return text


def _render_code(state, colors: ThemeColors) -> Text:
    text = Text(f"{state.open_file_path}\n", style=f"bold {colors.accent}")
    lines = (state.code_content or "").splitlines()
    selected = range(0)
    if state.selection is not None:
        selected = range(state.selection.start_line, state.selection.end_line + 1)
    for number in range(state.code_scroll, min(state.code_scroll + FINDING_ROWS, len(lines))):
        style = f"reverse {colors.fg}" if number in selected else colors.fg
        if number in state.code_search_matches:
            style = f"bold {colors.warning}"
        text.append(f"{number + 1:>5} ", style=colors.dim)
        text.append(lines[number] + "\n", style=style)
    return text


def _render_chat(state) -> Text:
    colors = _palette(state)
    text = Text()
    if state.open_file_path is not None:
        text.append_text(_render_code(state, colors))
        text.append("\n")
    text.append_text(render_messages(state))
    if state.terminal_visible:
        text.append("\nTerminal\n", style=f"bold {colors.fg}")
        tail = state.terminal_output[state.terminal_scroll:][-FINDING_ROWS:]
        text.append("\n".join(tail) + "\n", style=colors.dim)
    text.append(f"context {state.context_pct}%\n", style=colors.dim)
    return text


def _render_timeline(state) -> Text:
    colors = _palette(state)
    lines = [f"{score:5.0f}  {sparkline([score])}" for score in state.score_history]
    lines += [f"{e.timestamp}  {e.kind.value:<5} {e.detail}" for e in state.activity_log]
    if not lines:
        return Text("No history yet.\n", style=colors.dim)
    return Text("\n".join(lines[state.timeline_scroll:]) + "\n", style=colors.fg)


def _render_report(state) -> Text:
    colors = _palette(state)
    if state.last_scan is None:
        return Text("No scan to report. Run /scan first.\n", style=colors.dim)
    lines = render_markdown(state.last_scan).splitlines()
    text = Text("\n".join(lines[state.report_scroll:]) + "\n", style=colors.fg)
    text.append("e export to markdown\n", style=colors.dim)
    return text


VIEW_RENDERERS: dict[ViewState, Callable[[object], Text]] = {
    ViewState.DASHBOARD: _render_dashboard,
    ViewState.SCAN: _render_scan,
    ViewState.FIX: _render_fix,
    ViewState.CHAT: _render_chat,
    ViewState.TIMELINE: _render_timeline,
    ViewState.REPORT: _render_report,
}


# ─── Overlays ─────────────────────────────────────────────────────────────────


def _cursor_list(labels: list[str], selected: int, colors: ThemeColors) -> Text:
    text = Text()
    for i, label in enumerate(labels):
        if i == selected:
            text.append(f"> {label}\n", style=f"bold {colors.accent}")
        else:
            text.append(f"  {label}\n", style=colors.fg)
    return text


def _render_palette(overlay: CommandPaletteOverlay, state, colors: ThemeColors) -> Text:
    text = Text(f"Command: {overlay.filter}\n", style=colors.accent)
    labels = [f"{cmd:<12} {desc}" for cmd, desc in overlay.entries()]
    text.append_text(_cursor_list(labels, overlay.selected, colors))
    return text


def _render_file_picker(overlay: FilePickerOverlay, state, colors: ThemeColors) -> Text:
    text = Text(f"File: {overlay.filter}\n", style=colors.accent)
    for entry in overlay.matches(state.file_tree)[:FINDING_ROWS]:
        text.append(f"  {entry.path}\n", style=colors.fg)
    return text


def _render_help(overlay: HelpOverlay, state, colors: ThemeColors) -> Text:
    lines = HELP_TEXT.splitlines()
    return Text("\n".join(lines[overlay.scroll:]), style=colors.fg)


def _render_getting_started(overlay: GettingStartedOverlay, state, colors: ThemeColors) -> Text:
    text = Text("Getting started\n\n", style=f"bold {colors.accent}")
    text.append(
        "1. /scan checks your project against the EU AI Act\n"
        "2. Press 2 for findings, 3 to fix them\n"
        "3. Chat with the assistant about any finding\n"
        "4. /provider connects an LLM, /help lists every command\n\n",
        style=colors.fg,
    )
    text.append("Press any key to continue", style=colors.dim)
    return text


def _render_model_selector(overlay: ModelSelectorOverlay, state, colors: ThemeColors) -> Text:
    models = selectable_models(state.provider_config)
    active = state.provider_config.active_model
    text = Text(f"Model (active: {display_model_name(active)})\n", style=colors.accent)
    labels = [f"{m.display_name} [{m.provider}]" for m in models]
    text.append_text(_cursor_list(labels, overlay.index, colors))
    return text


def _render_provider_setup(overlay: ProviderSetupOverlay, state, colors: ThemeColors) -> Text:
    text = Text("Provider setup\n", style=f"bold {colors.accent}")
    if overlay.step == STEP_KEY:
        text.append(f"API key for {overlay.provider_id}: ", style=colors.fg)
        text.append("*" * len(overlay.key_input) + "\n", style=colors.accent)
    elif overlay.step == STEP_VERIFYING:
        text.append(f"Verifying {overlay.provider_id} key...\n", style=colors.dim)
    elif overlay.step == STEP_RESULT:
        if overlay.error:
            text.append(f"{overlay.error}  (r retry)\n", style=colors.error)
        else:
            text.append(f"{overlay.provider_id} configured.\n", style=colors.success)
    else:
        text.append_text(_cursor_list([label for _pid, label in PROVIDERS], overlay.selected, colors))
    return text


def _render_theme_picker(overlay: ThemePickerOverlay, state, colors: ThemeColors) -> Text:
    text = Text("Theme\n", style=f"bold {colors.accent}")
    text.append_text(_cursor_list(list(THEME_NAMES), overlay.selected, colors))
    return text


def _render_onboarding(overlay: OnboardingOverlay, state, colors: ThemeColors) -> Text:
    wiz = overlay.wizard
    step = wiz.current()
    text = Text(
        f"Setup {wiz.visible_position()}/{wiz.total_visible_steps()} "
        f"({wiz.progress_pct() * 100:.0f}%)\n",
        style=colors.dim,
    )
    if step is None:
        return text
    text.append(f"{step.title}\n", style=f"bold {colors.accent}")
    text.append(f"{step.description}\n\n", style=colors.fg)
    if step.kind is StepKind.SUMMARY:
        text.append(wiz.build_summary() + "\n", style=colors.fg)
    elif step.kind is StepKind.TEXT_INPUT and wiz.provider_substep == SUBSTEP_KEY:
        shown = "*" * len(step.text_value) if step.masked else step.text_value
        text.append(f"Key: {shown}\n", style=colors.accent)
    else:
        for i, option in enumerate(step.options):
            mark = "(x)" if i in step.selected else "( )"
            if step.kind is StepKind.CHECKBOX:
                mark = "[x]" if i in step.selected else "[ ]"
            style = f"bold {colors.accent}" if i == wiz.cursor else colors.fg
            text.append(f"{'>' if i == wiz.cursor else ' '} {mark} {option.label}", style=style)
            if option.tag:
                text.append(f" [{option.tag}]", style=colors.warning)
            text.append("\n")
    if wiz.validation_message:
        style = colors.success if wiz.key_valid else colors.error
        text.append(f"\n{wiz.validation_message}\n", style=style)
    return text


def _render_confirm(overlay: ConfirmDialogOverlay, state, colors: ThemeColors) -> Text:
    text = Text(f"{overlay.title}\n", style=f"bold {colors.accent}")
    text.append(f"{overlay.message}\n\n(y)es / (n)o", style=colors.fg)
    return text


def _render_dismiss(overlay: DismissModalOverlay, state, colors: ThemeColors) -> Text:
    text = Text("Dismiss finding\n", style=f"bold {colors.accent}")
    text.append_text(_cursor_list(list(DISMISS_REASONS), overlay.cursor, colors))
    return text


def _render_undo_history(overlay: UndoHistoryOverlay, state, colors: ThemeColors) -> Text:
    text = Text("Undo history\n", style=f"bold {colors.accent}")
    if not overlay.loaded:
        text.append("Loading...\n", style=colors.dim)
        return text
    if not overlay.entries:
        text.append("No fixes to undo.\n", style=colors.dim)
        return text
    labels = []
    for entry in overlay.entries:
        delta = f" ({entry.score_delta:+.0f})" if entry.score_delta is not None else ""
        labels.append(f"#{entry.id} {entry.timestamp} {entry.action} [{entry.status}]{delta}")
    text.append_text(_cursor_list(labels, overlay.selected, colors))
    return text


OVERLAY_RENDERERS: dict[type, Callable[[object, object, ThemeColors], Text]] = {
    CommandPaletteOverlay: _render_palette,
    FilePickerOverlay: _render_file_picker,
    HelpOverlay: _render_help,
    GettingStartedOverlay: _render_getting_started,
    ModelSelectorOverlay: _render_model_selector,
    ProviderSetupOverlay: _render_provider_setup,
    ThemePickerOverlay: _render_theme_picker,
    OnboardingOverlay: _render_onboarding,
    ConfirmDialogOverlay: _render_confirm,
    DismissModalOverlay: _render_dismiss,
    UndoHistoryOverlay: _render_undo_history,
}


def render_overlay(state) -> Text | None:
    overlay = state.overlay
    if overlay is None:
        return None
    renderer = OVERLAY_RENDERERS.get(type(overlay))
    if renderer is None:
        return None
    return renderer(overlay, state, _palette(state))


# ─── Whole screen ─────────────────────────────────────────────────────────────


def render_body(state) -> Text:
    """The active view, or the overlay when one is open."""
    overlay = render_overlay(state)
    if overlay is not None:
        return overlay
    return VIEW_RENDERERS[state.view](state)


def render_sidebar(state) -> list[Text]:
    colors = _palette(state)
    lines = [Text("Files", style=f"bold {colors.fg}")]
    for i, entry in enumerate(state.file_tree):
        marker = ">" if i == state.file_browser_index else " "
        suffix = "/" if entry.is_dir else ""
        lines.append(Text(f"{marker}{'  ' * entry.depth}{entry.name}{suffix}", style=colors.dim))
    return lines


def render_state(state, width: int | None = None, height: int | None = None) -> Text:
    """The whole screen.

    Row 0 is the header, row 1 the latest toast, then the body, the input line
    and the footer tabs. With a height the body is padded so the footer sits on
    the last row, where the click areas expect it. With a width of at least
    SIDEBAR_MIN_WIDTH the file sidebar fills the rightmost SIDEBAR_WIDTH columns.
    """
    body = list(render_body(state).split("\n", allow_blank=True))
    if height is not None:
        rows = max(height - 4, 0)
        body = body[:rows] + [Text() for _ in range(rows - len(body))]
    if width is not None and width >= SIDEBAR_MIN_WIDTH and state.sidebar_visible:
        sidebar = render_sidebar(state)
        main_width = width - SIDEBAR_WIDTH
        for i, line in enumerate(body):
            line.truncate(main_width, pad=True)
            if i < len(sidebar):
                side = sidebar[i]
                side.truncate(SIDEBAR_WIDTH)
                line.append_text(side)

    text = Text()
    text.append_text(render_header(state))
    text.append("\n")
    toast = render_toast(state)
    if toast is not None:
        text.append_text(toast)
    text.append("\n")
    text.append_text(Text("\n").join(body))
    text.append("\n")
    text.append_text(render_input_line(state))
    text.append("\n")
    text.append_text(render_footer(state))
    return text
