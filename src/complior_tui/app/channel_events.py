"""Results posted back by background workers, and how they change state.

Workers never touch ApplicationState. They post one of these frozen
events through the EventChannel; the event loop applies it on its own
thread via apply_event.

// [LAW:one-source-of-truth] The class IS the event tag.
// [LAW:single-enforcer] Stale chat/scan results are dropped here by seq,
// so late responses never reach state.
// [LAW:dataflow-not-control-flow] apply_event dispatches through EVENT_HANDLERS.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from complior_tui.app.command_line import begin_auto_scan
from complior_tui.core import commands as c
from complior_tui.core.types import (
    ActivityKind,
    ChatMessage,
    EngineConnectionStatus,
    MessageRole,
    Mode,
    ScanResult,
    Suggestion,
    SuggestionKind,
    ToastKind,
    UndoEntry,
)
from complior_tui.io.sessions import SessionData
from complior_tui.overlays import provider_setup
from complior_tui.overlays.provider_setup import ProviderSetupOverlay
from complior_tui.overlays.undo_history import UndoHistoryOverlay
from complior_tui.pipeline import sse

logger = logging.getLogger(__name__)

REGRESSION_THRESHOLD = 5.0
SCORE_SUCCESS = 80.0
SCORE_WARNING = 50.0


@dataclass(frozen=True)
class ChannelEvent:
    """Base class for worker results."""


# ─── Chat ─────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ChatStream(ChannelEvent):
    seq: int
    event: sse.SseEvent


def _apply_sse_token(state, event: sse.Token) -> None:
    state.streaming_response = (state.streaming_response or "") + event.text


def _apply_sse_thinking(state, event: sse.Thinking) -> None:
    state.streaming_thinking = (state.streaming_thinking or "") + event.text


def _apply_sse_tool_call(state, event: sse.ToolCall) -> None:
    msg = ChatMessage(MessageRole.SYSTEM, f"Tool call: {event.name}")
    msg.blocks.append(("tool_call", event.name, event.args))
    state.messages.append(msg)


def _apply_sse_tool_result(state, event: sse.ToolResult) -> None:
    suffix = " (error)" if event.is_error else ""
    msg = ChatMessage(MessageRole.SYSTEM, f"Tool result: {event.name}{suffix}")
    msg.blocks.append(("tool_result", event.name, event.result, event.is_error))
    state.messages.append(msg)


def _apply_sse_usage(state, event: sse.Usage) -> None:
    state.last_token_usage = (event.prompt_tokens, event.completion_tokens)


def _apply_sse_done(state, event: sse.Done) -> None:
    response, state.streaming_response = state.streaming_response, None
    thinking, state.streaming_thinking = state.streaming_thinking, None
    if response is not None:
        msg = ChatMessage(MessageRole.ASSISTANT, response)
        if thinking:
            msg.blocks.append(("thinking", thinking))
        msg.blocks.append(("text", response))
        state.push_activity(ActivityKind.CHAT, "AI response")
        state.messages.append(msg)
        state.chat_auto_scroll = True
    state.operation_start = None
    state.chat_in_flight = False


def _apply_sse_error(state, event: sse.Error) -> None:
    state.post(f"Error: {event.message}")
    state.streaming_response = None
    state.streaming_thinking = None
    state.operation_start = None
    state.chat_in_flight = False


SSE_HANDLERS: dict[type[sse.SseEvent], Callable] = {
    sse.Token: _apply_sse_token,
    sse.Thinking: _apply_sse_thinking,
    sse.ToolCall: _apply_sse_tool_call,
    sse.ToolResult: _apply_sse_tool_result,
    sse.Usage: _apply_sse_usage,
    sse.Done: _apply_sse_done,
    sse.Error: _apply_sse_error,
}


def _apply_chat_stream(state, event: ChatStream) -> None:
    if event.seq != state.chat_seq or not state.chat_in_flight:
        logger.debug("dropping stale chat event seq=%d (current %d)", event.seq, state.chat_seq)
        return
    handler = SSE_HANDLERS.get(type(event.event))
    if handler is not None:
        handler(state, event.event)


# ─── Scan ─────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ScanCompleted(ChannelEvent):
    seq: int
    result: ScanResult
    auto: bool = False


@dataclass(frozen=True)
class ScanFailed(ChannelEvent):
    seq: int
    error: str
    auto: bool = False


def _score_toast_kind(score: float) -> ToastKind:
    if score >= SCORE_SUCCESS:
        return ToastKind.SUCCESS
    if score >= SCORE_WARNING:
        return ToastKind.WARNING
    return ToastKind.ERROR


def set_scan_result(state, result: ScanResult) -> None:
    score = result.score.total_score
    zone = result.score.zone.value.upper()
    state.push_activity(ActivityKind.SCAN, f"{score:.0f}/100")
    state.push_score(score)
    state.post(
        f"Scan complete: {score:.0f}/100 ({zone}), {result.files_scanned} files, "
        f"{result.score.total_checks} checks ({result.score.passed_checks} pass, "
        f"{result.score.failed_checks} fail)"
    )
    state.scan_view.set_complete(result.files_scanned)
    state.last_scan = result
    state.operation_start = None
    state.chat_auto_scroll = True
    state.toast(_score_toast_kind(score), f"Scan complete: {score:.0f}/100 ({zone})")


def _report_score_delta(state, old: float, new: float) -> None:
    diff = new - old
    if diff < -REGRESSION_THRESHOLD:
        state.post(f"REGRESSION: Score dropped {old:.0f} → {new:.0f} ({diff:+.0f})")
        state.toast(ToastKind.ERROR, f"Score dropped {diff:+.0f}")
    elif diff > 0:
        state.post(f"IMPROVED: Score {old:.0f} → {new:.0f} ({diff:+.0f})")


def _is_current_scan(state, seq: int) -> bool:
    if seq != state.scan_seq:
        logger.debug("dropping stale scan result seq=%d (current %d)", seq, state.scan_seq)
        return False
    return True


def _apply_scan_completed(state, event: ScanCompleted) -> None:
    if not _is_current_scan(state, event.seq):
        return
    state.scan_in_flight = False
    if not event.auto:
        set_scan_result(state, event.result)
        return

    # a fix validation compares against the pre-fix score, watch mode against the last scan
    if state.pre_fix_score is not None:
        baseline, state.pre_fix_score = state.pre_fix_score, None
    else:
        baseline = state.last_scan.score.total_score if state.last_scan is not None else None
    state.watch_last_score = baseline
    set_scan_result(state, event.result)
    if baseline is not None:
        _report_score_delta(state, baseline, event.result.score.total_score)


def _apply_scan_failed(state, event: ScanFailed) -> None:
    if not _is_current_scan(state, event.seq):
        return
    state.scan_in_flight = False
    state.scan_view.scanning = False
    state.operation_start = None
    prefix = "Auto-scan failed" if event.auto else "Scan failed"
    state.post(f"{prefix}: {event.error}")


# ─── Files / terminal ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class FileOpened(ChannelEvent):
    path: str
    content: str


@dataclass(frozen=True)
class FileOpenFailed(ChannelEvent):
    path: str
    error: str


@dataclass(frozen=True)
class CommandOutput(ChannelEvent):
    command: str
    lines: tuple[str, ...]


@dataclass(frozen=True)
class CommandFailed(ChannelEvent):
    command: str
    error: str


def _apply_file_opened(state, event: FileOpened) -> None:
    state.open_file(event.path, event.content)


def _apply_file_open_failed(state, event: FileOpenFailed) -> None:
    state.post(f"Cannot open file: {event.error}")


def _apply_command_output(state, event: CommandOutput) -> None:
    state.add_terminal_line(f"$ {event.command}")
    for line in event.lines:
        state.add_terminal_line(line)


def _apply_command_failed(state, event: CommandFailed) -> None:
    state.add_terminal_line(f"$ {event.command}")
    state.add_terminal_line(f"Error: {event.error}")


# ─── Engine / stores ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class EngineStatusChanged(ChannelEvent):
    status: EngineConnectionStatus
    message: str | None = None


@dataclass(frozen=True)
class ThemeSwitched(ChannelEvent):
    name: str


@dataclass(frozen=True)
class SessionSaved(ChannelEvent):
    name: str


@dataclass(frozen=True)
class SessionLoaded(ChannelEvent):
    name: str
    data: SessionData


@dataclass(frozen=True)
class SessionListed(ChannelEvent):
    names: tuple[str, ...]


@dataclass(frozen=True)
class StoreFailed(ChannelEvent):
    message: str


def _apply_engine_status(state, event: EngineStatusChanged) -> None:
    state.engine_status = event.status
    if event.message:
        state.post(event.message)


def _apply_theme_switched(state, event: ThemeSwitched) -> None:
    state.theme = event.name
    state.post(f"Theme switched to: {event.name}")


def _apply_session_saved(state, event: SessionSaved) -> None:
    state.post(f"Session saved: {event.name}")


def _apply_session_loaded(state, event: SessionLoaded) -> None:
    state.load_session_data(event.data)
    state.post(f"Session loaded: {event.name}")


def _apply_session_listed(state, event: SessionListed) -> None:
    if event.names:
        state.post("Sessions: " + ", ".join(event.names))
    else:
        state.post("No saved sessions.")


def _apply_store_failed(state, event: StoreFailed) -> None:
    state.post(event.message)


# ─── Provider setup ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ProviderVerified(ChannelEvent):
    provider_id: str
    api_key: str


@dataclass(frozen=True)
class ProviderSetupFailed(ChannelEvent):
    message: str


def _apply_provider_verified(state, event: ProviderVerified) -> c.AppCommand | None:
    overlay = state.overlay
    if not isinstance(overlay, ProviderSetupOverlay) or overlay.step != provider_setup.STEP_VERIFYING:
        # closed or restarted while the engine was checking; an unconfirmed key is not stored
        logger.info("dropping verification result for %s", event.provider_id)
        return None
    state.post(f"{event.provider_id} key verified.")
    return provider_setup.finish_verified(overlay, state, event.provider_id, event.api_key)


def _apply_provider_setup_failed(state, event: ProviderSetupFailed) -> None:
    state.post(event.message)
    if isinstance(state.overlay, ProviderSetupOverlay):
        provider_setup.finish_failed(state.overlay, event.message)


# ─── Undo ─────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class UndoApplied(ChannelEvent):
    message: str | None = None


@dataclass(frozen=True)
class UndoFailed(ChannelEvent):
    pass


@dataclass(frozen=True)
class UndoHistoryLoaded(ChannelEvent):
    entries: tuple[UndoEntry, ...]


def _apply_undo_applied(state, event: UndoApplied) -> None:
    state.toast(ToastKind.SUCCESS, event.message or "Undo applied")
    state.push_activity(ActivityKind.FIX, "Undo")


def _apply_undo_failed(state, event: UndoFailed) -> None:
    state.toast(ToastKind.WARNING, "Nothing to undo")


def _apply_undo_history(state, event: UndoHistoryLoaded) -> None:
    # the overlay may have been closed while the request was in flight
    if isinstance(state.overlay, UndoHistoryOverlay):
        state.overlay.set_entries(list(event.entries))


# ─── Suggestions ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class SuggestionsLoaded(ChannelEvent):
    items: tuple[Suggestion, ...]


@dataclass(frozen=True)
class SuggestionsFailed(ChannelEvent):
    pass


def build_local_suggestion(state) -> Suggestion:
    """Offline suggestion derived from the last scan."""
    scan = state.last_scan
    if scan is None:
        return Suggestion(
            SuggestionKind.TIP,
            "Try /scan to check your project's compliance score",
            "Press any key to dismiss",
        )
    score = scan.score.total_score
    if scan.findings:
        return Suggestion(
            SuggestionKind.FIX,
            f"Score {score:.0f}/100. {len(scan.findings)} findings to fix, press 3 for Fix view",
            "Quick wins can boost your score significantly",
        )
    if score < SCORE_SUCCESS:
        return Suggestion(
            SuggestionKind.DEADLINE,
            f"Score {score:.0f}/100, EU AI Act full enforcement Aug 2, 2026",
            "Press 5 for Timeline view",
        )
    return Suggestion(
        SuggestionKind.SCORE,
        f"Score {score:.0f}/100, Looking good! Run /scan to verify latest changes",
    )


def _apply_suggestions_loaded(state, event: SuggestionsLoaded) -> None:
    idle = state.idle_suggestions
    idle.fetch_pending = False
    idle.current = event.items[0] if event.items else build_local_suggestion(state)


def _apply_suggestions_failed(state, event: SuggestionsFailed) -> None:
    idle = state.idle_suggestions
    idle.fetch_pending = False
    idle.current = build_local_suggestion(state)


# ─── Engine side results ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class WhatIfResult(ChannelEvent):
    text: str


@dataclass(frozen=True)
class DryRunResult(ChannelEvent):
    text: str


@dataclass(frozen=True)
class ReportExported(ChannelEvent):
    path: str


def _apply_whatif(state, event: WhatIfResult) -> None:
    state.post(event.text)


def _apply_dry_run(state, event: DryRunResult) -> None:
    state.post(f"Dry run: {event.text}")


def _apply_report_exported(state, event: ReportExported) -> None:
    state.toast(ToastKind.SUCCESS, f"Report exported: {event.path}")
    state.post(f"Report exported: {event.path}")


# ─── Watch mode ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class WatchChanged(ChannelEvent):
    path: str


@dataclass(frozen=True)
class WatchToggled(ChannelEvent):
    active: bool
    message: str | None = None


def _apply_watch_changed(state, event: WatchChanged) -> c.AppCommand | None:
    if not state.watch_active:
        return None
    state.push_activity(ActivityKind.WATCH, event.path)
    if state.scan_in_flight:
        return None
    return begin_auto_scan(state)


def _apply_watch_toggled(state, event: WatchToggled) -> None:
    state.watch_active = event.active
    if event.active:
        state.mode = Mode.WATCH
        state.post(event.message or "Watch mode started. Editing files will trigger auto-scan.")
    else:
        state.mode = Mode.SCAN
        state.post(event.message or "Watch mode stopped.")


# ─── Dispatch ─────────────────────────────────────────────────────────────────

EVENT_HANDLERS: dict[type[ChannelEvent], Callable] = {
    ChatStream: _apply_chat_stream,
    ScanCompleted: _apply_scan_completed,
    ScanFailed: _apply_scan_failed,
    FileOpened: _apply_file_opened,
    FileOpenFailed: _apply_file_open_failed,
    CommandOutput: _apply_command_output,
    CommandFailed: _apply_command_failed,
    EngineStatusChanged: _apply_engine_status,
    ThemeSwitched: _apply_theme_switched,
    SessionSaved: _apply_session_saved,
    SessionLoaded: _apply_session_loaded,
    SessionListed: _apply_session_listed,
    StoreFailed: _apply_store_failed,
    ProviderVerified: _apply_provider_verified,
    ProviderSetupFailed: _apply_provider_setup_failed,
    UndoApplied: _apply_undo_applied,
    UndoFailed: _apply_undo_failed,
    UndoHistoryLoaded: _apply_undo_history,
    SuggestionsLoaded: _apply_suggestions_loaded,
    SuggestionsFailed: _apply_suggestions_failed,
    WhatIfResult: _apply_whatif,
    DryRunResult: _apply_dry_run,
    ReportExported: _apply_report_exported,
    WatchChanged: _apply_watch_changed,
    WatchToggled: _apply_watch_toggled,
}


def apply_event(state, event: ChannelEvent) -> c.AppCommand | None:
    handler = EVENT_HANDLERS.get(type(event))
    if handler is None:
        logger.warning("no handler for channel event %s", type(event).__name__)
        return None
    return handler(state, event)
