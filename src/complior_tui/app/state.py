"""Application state: the single mutable record the controller owns.

// [LAW:one-source-of-truth] Every piece of UI state lives on ApplicationState.
// Overlay-private state lives on the overlay object in `overlay`.

Nothing here performs engine I/O. View sub-states (scan, fix, zoom) are
small dataclasses with their own navigation helpers.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

from complior_tui.core.providers import ProviderConfig
from complior_tui.core.themes import DEFAULT_THEME
from complior_tui.core.types import (
    ActivityEntry,
    ActivityKind,
    ChatMessage,
    ClickTarget,
    DiffContent,
    EngineConnectionStatus,
    FileEntry,
    Finding,
    IdleSuggestionState,
    InputMode,
    MessageRole,
    Mode,
    Panel,
    Rect,
    ScanResult,
    Selection,
    Severity,
    ToastKind,
    ToastStack,
    ViewState,
    system_message,
)
from complior_tui.io.sessions import SESSION_TERMINAL_LINES, SessionData
from complior_tui.overlays.base import Overlay

MAX_HISTORY = 50
MAX_TERMINAL_LINES = 1000
MAX_ACTIVITY_LOG = 10
MAX_SCORE_HISTORY = 20
HALF_PAGE = 10
FIX_SPLIT_MIN = 25
FIX_SPLIT_MAX = 75
FIX_SPLIT_STEP = 5
SPINNER_FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"
WELCOME_MESSAGE = "Welcome to Complior. Type a message or /scan to start."


# ─── Scan view ────────────────────────────────────────────────────────────────


class FindingsFilter(Enum):
    ALL = "a"
    CRITICAL = "c"
    HIGH = "h"
    MEDIUM = "m"
    LOW = "l"

    @classmethod
    def from_key(cls, char: str) -> FindingsFilter | None:
        try:
            return cls(char)
        except ValueError:
            return None

    @property
    def label(self) -> str:
        return self.name.capitalize()

    def matches(self, severity: Severity) -> bool:
        return _FILTER_SEVERITIES[self] is None or severity in _FILTER_SEVERITIES[self]


_FILTER_SEVERITIES: dict[FindingsFilter, frozenset[Severity] | None] = {
    FindingsFilter.ALL: None,
    FindingsFilter.CRITICAL: frozenset({Severity.CRITICAL}),
    FindingsFilter.HIGH: frozenset({Severity.HIGH}),
    FindingsFilter.MEDIUM: frozenset({Severity.MEDIUM}),
    FindingsFilter.LOW: frozenset({Severity.LOW, Severity.INFO}),
}


@dataclass
class ScanViewState:
    findings_filter: FindingsFilter = FindingsFilter.ALL
    selected_finding: int | None = None
    detail_open: bool = False
    scanning: bool = False
    files_scanned: int = 0

    def navigate_up(self) -> None:
        self.selected_finding = max((self.selected_finding or 0) - 1, 0)

    def navigate_down(self, count: int) -> None:
        if count == 0:
            return
        self.selected_finding = min((self.selected_finding or 0) + 1, count - 1)

    def set_complete(self, files_scanned: int) -> None:
        self.files_scanned = files_scanned
        self.scanning = False
        self.selected_finding = None
        self.detail_open = False


# ─── Fix view ─────────────────────────────────────────────────────────────────


class FixItemStatus(Enum):
    PENDING = "pending"
    APPLIED = "applied"
    FAILED = "failed"


PREDICTED_IMPACT: dict[Severity, int] = {
    Severity.CRITICAL: 8,
    Severity.HIGH: 5,
    Severity.MEDIUM: 3,
    Severity.LOW: 1,
    Severity.INFO: 0,
}


@dataclass
class FixableItem:
    finding_index: int
    check_id: str
    obligation_id: str | None
    message: str
    predicted_impact: int
    selected: bool = False
    status: FixItemStatus = FixItemStatus.PENDING


@dataclass(frozen=True)
class FixResults:
    applied: int
    failed: int
    old_score: float
    new_score: float


@dataclass
class FixViewState:
    fixable_findings: list[FixableItem] = field(default_factory=list)
    selected_index: int = 0
    diff_visible: bool = True
    applying: bool = False
    results: FixResults | None = None

    @classmethod
    def from_scan(cls, findings: tuple[Finding, ...] | list[Finding]) -> FixViewState:
        """Fixable items are findings that carry a suggested fix."""
        return cls(fixable_findings=[
            FixableItem(
                finding_index=i,
                check_id=f.check_id,
                obligation_id=f.obligation_id,
                message=f.message,
                predicted_impact=PREDICTED_IMPACT[f.severity],
            )
            for i, f in enumerate(findings)
            if f.fix is not None
        ])

    def selected_count(self) -> int:
        return sum(1 for item in self.fixable_findings if item.selected)

    def selected_check_ids(self) -> tuple[str, ...]:
        return tuple(item.check_id for item in self.fixable_findings if item.selected)

    def total_predicted_impact(self) -> int:
        return sum(item.predicted_impact for item in self.fixable_findings if item.selected)

    def toggle_at(self, index: int) -> None:
        if 0 <= index < len(self.fixable_findings):
            item = self.fixable_findings[index]
            item.selected = not item.selected

    def toggle_current(self) -> None:
        self.toggle_at(self.selected_index)

    def select_all(self) -> None:
        for item in self.fixable_findings:
            item.selected = True

    def deselect_all(self) -> None:
        for item in self.fixable_findings:
            item.selected = False

    def navigate_up(self) -> None:
        self.selected_index = max(self.selected_index - 1, 0)

    def navigate_down(self) -> None:
        if self.fixable_findings:
            self.selected_index = min(self.selected_index + 1, len(self.fixable_findings) - 1)


# ─── Dashboard zoom ───────────────────────────────────────────────────────────


@dataclass
class ZoomState:
    zoomed: bool = False
    focus_index: int = 0

    def toggle(self) -> None:
        self.zoomed = not self.zoomed

    def close(self) -> None:
        self.zoomed = False


# ─── Helpers ──────────────────────────────────────────────────────────────────


def find_search_matches(content: str, query: str) -> list[int]:
    """Zero-based line numbers containing query, case-insensitively."""
    needle = query.lower()
    if not needle:
        return []
    return [i for i, line in enumerate(content.splitlines()) if needle in line.lower()]


def context_pct(message_count: int, max_messages: int) -> int:
    if max_messages == 0:
        return 0
    return min(message_count * 100 // max_messages, 100)


# ─── Application state ────────────────────────────────────────────────────────


@dataclass
class ApplicationState:
    # core
    running: bool = True
    panel: Panel = Panel.CHAT
    input_mode: InputMode = InputMode.INSERT
    view: ViewState = ViewState.DASHBOARD
    mode: Mode = Mode.SCAN
    engine_status: EngineConnectionStatus = EngineConnectionStatus.CONNECTING
    project_path: Path = field(default_factory=Path.cwd)
    theme: str = DEFAULT_THEME
    scroll_acceleration: float = 1.0

    # chat
    messages: list[ChatMessage] = field(
        default_factory=lambda: [system_message(WELCOME_MESSAGE)]
    )
    input: str = ""
    cursor: int = 0
    chat_scroll: int = 0
    chat_auto_scroll: bool = True
    streaming_response: str | None = None
    streaming_thinking: str | None = None
    pending_blocks: list[tuple] = field(default_factory=list)
    last_token_usage: tuple[int, int] | None = None
    chat_seq: int = 0
    chat_in_flight: bool = False

    # input history
    history: list[str] = field(default_factory=list)
    history_index: int | None = None
    history_saved_input: str = ""

    # score
    last_scan: ScanResult | None = None
    score_history: list[float] = field(default_factory=list)
    scan_seq: int = 0
    scan_in_flight: bool = False

    # file browser / code viewer
    file_tree: list[FileEntry] = field(default_factory=list)
    file_browser_index: int = 0
    code_content: str | None = None
    open_file_path: str | None = None
    code_scroll: int = 0
    selection: Selection | None = None
    code_search_query: str | None = None
    code_search_matches: list[int] = field(default_factory=list)
    code_search_current: int = 0

    # terminal
    terminal_output: list[str] = field(default_factory=list)
    terminal_visible: bool = False
    terminal_scroll: int = 0
    terminal_auto_scroll: bool = True

    # panels
    diff_content: DiffContent | None = None
    sidebar_visible: bool = True
    files_panel_visible: bool = True
    overlay: Overlay | None = None
    provider_config: ProviderConfig = field(default_factory=ProviderConfig)

    # views
    scan_view: ScanViewState = field(default_factory=ScanViewState)
    fix_view: FixViewState = field(default_factory=FixViewState)
    timeline_scroll: int = 0
    report_scroll: int = 0
    zoom: ZoomState = field(default_factory=ZoomState)
    fix_split_pct: int = 40

    # watch / fix validation
    activity_log: list[ActivityEntry] = field(default_factory=list)
    watch_active: bool = False
    watch_last_score: float | None = None
    pre_fix_score: float | None = None

    # chrome
    toasts: ToastStack = field(default_factory=ToastStack)
    context_pct: int = 0
    context_max_messages: int = 32
    click_areas: list[tuple[Rect, ClickTarget]] = field(default_factory=list)
    scroll_events: list[float] = field(default_factory=list)
    colon_mode: bool = False
    idle_suggestions: IdleSuggestionState = field(default_factory=IdleSuggestionState)
    animations_enabled: bool = True
    spinner_index: int = 0
    operation_start: float | None = None

    # ─── Messages / log ──────────────────────────────────────────────────────

    def post(self, text: str) -> None:
        """Append a system message."""
        self.messages.append(system_message(text))

    def post_user(self, text: str) -> None:
        self.messages.append(ChatMessage(MessageRole.USER, text))

    def toast(self, kind: ToastKind, message: str) -> None:
        self.toasts.push(kind, message)

    def add_terminal_line(self, line: str) -> None:
        self.terminal_output.append(line)
        if len(self.terminal_output) > MAX_TERMINAL_LINES:
            del self.terminal_output[0]
        if self.terminal_auto_scroll:
            self.terminal_scroll = max(len(self.terminal_output) - 1, 0)

    def push_activity(self, kind: ActivityKind, detail: str) -> None:
        timestamp = datetime.now().strftime("%H:%M")
        self.activity_log.append(ActivityEntry(timestamp, kind, detail))
        if len(self.activity_log) > MAX_ACTIVITY_LOG:
            del self.activity_log[0]

    def push_score(self, score: float) -> None:
        self.score_history.append(score)
        if len(self.score_history) > MAX_SCORE_HISTORY:
            del self.score_history[0]

    @property
    def spinner(self) -> str:
        return SPINNER_FRAMES[self.spinner_index % len(SPINNER_FRAMES)]

    def elapsed_secs(self) -> int | None:
        if self.operation_start is None:
            return None
        return int(time.monotonic() - self.operation_start)

    # ─── Text input ──────────────────────────────────────────────────────────
    # cursor is a code-point index into input.

    def insert_char(self, char: str) -> None:
        self.input = self.input[:self.cursor] + char + self.input[self.cursor:]
        self.cursor += len(char)

    def delete_char(self) -> None:
        if self.cursor > 0:
            self.input = self.input[:self.cursor - 1] + self.input[self.cursor:]
            self.cursor -= 1

    def move_cursor_left(self) -> None:
        self.cursor = max(self.cursor - 1, 0)

    def move_cursor_right(self) -> None:
        self.cursor = min(self.cursor + 1, len(self.input))

    def set_input(self, text: str) -> None:
        self.input = text
        self.cursor = len(text)

    def take_input(self) -> str:
        text, self.input, self.cursor = self.input, "", 0
        return text

    def input_byte_len(self) -> int:
        return len(self.input.encode("utf-8"))

    # ─── History ─────────────────────────────────────────────────────────────

    def push_history(self, text: str) -> None:
        # a submit always ends history navigation, duplicate or not
        self.history_index = None
        self.history_saved_input = ""
        if not text or (self.history and self.history[-1] == text):
            return
        self.history.append(text)
        if len(self.history) > MAX_HISTORY:
            del self.history[0]

    def history_up(self) -> None:
        if not self.history:
            return
        if self.history_index is None:
            self.history_saved_input = self.input
            self.history_index = len(self.history) - 1
        elif self.history_index == 0:
            return
        else:
            self.history_index -= 1
        self.set_input(self.history[self.history_index])

    def history_down(self) -> None:
        if self.history_index is None:
            return
        if self.history_index + 1 >= len(self.history):
            self.history_index = None
            saved, self.history_saved_input = self.history_saved_input, ""
            self.set_input(saved)
        else:
            self.history_index += 1
            self.set_input(self.history[self.history_index])

    # ─── Panels / views ──────────────────────────────────────────────────────

    def next_panel(self) -> None:
        if self.panel is Panel.CHAT:
            self.panel = Panel.SCORE
        elif self.panel is Panel.SCORE:
            self.panel = Panel.CODE_VIEWER if self.code_content is not None else Panel.FILE_BROWSER
        elif self.panel in (Panel.FILE_BROWSER, Panel.CODE_VIEWER):
            self.panel = Panel.TERMINAL if self.terminal_visible else Panel.CHAT
        else:
            self.panel = Panel.CHAT

    def switch_view(self, view: ViewState) -> None:
        self.view = view
        if view is ViewState.FIX and self.last_scan is not None:
            self.fix_view = FixViewState.from_scan(self.last_scan.findings)

    def filtered_findings(self) -> list[Finding]:
        if self.last_scan is None:
            return []
        flt = self.scan_view.findings_filter
        return [f for f in self.last_scan.findings if flt.matches(f.severity)]

    def selected_finding(self) -> Finding | None:
        """The finding under the Scan view cursor, indexed into the filtered list."""
        idx = self.scan_view.selected_finding
        if idx is None:
            return None
        findings = self.filtered_findings()
        return findings[idx] if 0 <= idx < len(findings) else None

    def open_file(self, path: str, content: str) -> None:
        self.push_activity(ActivityKind.FILE_OPEN, path)
        self.code_content = content
        self.open_file_path = path
        self.code_scroll = 0
        self.selection = None
        self.panel = Panel.CODE_VIEWER

    def close_file(self) -> None:
        self.code_content = None
        self.open_file_path = None
        self.code_scroll = 0
        self.selection = None
        self.panel = Panel.FILE_BROWSER

    def code_line_count(self) -> int:
        return len(self.code_content.splitlines()) if self.code_content else 0

    # ─── Sessions ────────────────────────────────────────────────────────────

    def to_session_data(self) -> SessionData:
        return SessionData(
            messages=list(self.messages),
            score_history=list(self.score_history),
            open_file_path=self.open_file_path,
            terminal_output=self.terminal_output[-SESSION_TERMINAL_LINES:],
            last_scan=self.last_scan,
        )

    def load_session_data(self, data: SessionData) -> None:
        self.messages = list(data.messages)
        self.score_history = list(data.score_history)
        self.open_file_path = data.open_file_path
        self.terminal_output = list(data.terminal_output)
        self.last_scan = data.last_scan
