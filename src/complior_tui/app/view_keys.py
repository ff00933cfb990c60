"""View-scoped keys: single chars, Enter and Esc whose meaning depends on the view.

// [LAW:dataflow-not-control-flow] One handler per view in each table;
// views without an entry ignore the key.
"""

from __future__ import annotations

from complior_tui.app.command_line import begin_auto_scan, begin_chat
from complior_tui.app.state import (
    FIX_SPLIT_MAX,
    FIX_SPLIT_MIN,
    FIX_SPLIT_STEP,
    FindingsFilter,
    FixItemStatus,
    FixResults,
)
from complior_tui.core import commands as c
from complior_tui.core.types import ToastKind, ViewState
from complior_tui.overlays.dismiss_modal import DismissModalOverlay


# ─── Single-char keys ─────────────────────────────────────────────────────────


def _scan_key(state, char: str) -> c.AppCommand | None:
    view = state.scan_view
    flt = FindingsFilter.from_key(char)
    if flt is not None:
        view.findings_filter = flt
        view.selected_finding = 0
        return None

    if char == "f" and view.detail_open:
        view.detail_open = False
        state.switch_view(ViewState.FIX)
        return None

    finding = state.selected_finding()
    if finding is None:
        return None
    if char == "x":
        state.toast(ToastKind.INFO, "Explaining finding...")
        return begin_chat(state, f"Explain this finding: {finding.message}")
    if char == "o":
        state.toast(ToastKind.INFO, f"Finding: {finding.check_id}")
    elif char == "d":
        state.overlay = DismissModalOverlay(finding_index=view.selected_finding)
    return None


def _fix_key(state, char: str) -> c.AppCommand | None:
    fix = state.fix_view
    if char == " ":
        fix.toggle_current()
    elif char == "a":
        fix.select_all()
    elif char == "n":
        fix.deselect_all()
    elif char == "d":
        fix.diff_visible = not fix.diff_visible
    elif char == "<":
        state.fix_split_pct = max(state.fix_split_pct - FIX_SPLIT_STEP, FIX_SPLIT_MIN)
    elif char == ">":
        state.fix_split_pct = min(state.fix_split_pct + FIX_SPLIT_STEP, FIX_SPLIT_MAX)
    return None


def _dashboard_key(state, char: str) -> c.AppCommand | None:
    if char == "e":
        state.zoom.toggle()
    return None


def _report_key(state, char: str) -> c.AppCommand | None:
    if char == "e" and state.last_scan is not None:
        return c.ExportReport()
    return None


VIEW_KEY_HANDLERS = {
    ViewState.SCAN: _scan_key,
    ViewState.FIX: _fix_key,
    ViewState.DASHBOARD: _dashboard_key,
    ViewState.REPORT: _report_key,
}


def handle_view_key(state, char: str) -> c.AppCommand | None:
    handler = VIEW_KEY_HANDLERS.get(state.view)
    return handler(state, char) if handler is not None else None


# ─── Enter ────────────────────────────────────────────────────────────────────


def _scan_enter(state) -> c.AppCommand | None:
    view = state.scan_view
    if view.detail_open:
        view.detail_open = False
    elif state.last_scan is not None:
        view.detail_open = True
        if view.selected_finding is None:
            view.selected_finding = 0
    return None


def _fix_enter(state) -> c.AppCommand | None:
    """Apply the selected fixes locally, then re-scan to validate them."""
    fix = state.fix_view
    if fix.results is not None:
        fix.results = None
        return None
    selected = fix.selected_count()
    if selected == 0:
        return None

    old_score = state.last_scan.score.total_score if state.last_scan is not None else 0.0
    impact = fix.total_predicted_impact()
    for item in fix.fixable_findings:
        if item.selected:
            item.status = FixItemStatus.APPLIED
    fix.results = FixResults(
        applied=selected,
        failed=0,
        old_score=old_score,
        new_score=min(old_score + impact, 100.0),
    )
    state.pre_fix_score = old_score
    state.toast(ToastKind.SUCCESS, f"Applied {selected} fixes. Re-scanning...")
    return begin_auto_scan(state)


VIEW_ENTER_HANDLERS = {
    ViewState.SCAN: _scan_enter,
    ViewState.FIX: _fix_enter,
}


def handle_view_enter(state) -> c.AppCommand | None:
    handler = VIEW_ENTER_HANDLERS.get(state.view)
    return handler(state) if handler is not None else None


# ─── Esc ──────────────────────────────────────────────────────────────────────


def handle_view_escape(state) -> None:
    if state.view is ViewState.DASHBOARD:
        state.zoom.close()
    elif state.view is ViewState.SCAN:
        state.scan_view.detail_open = False
    elif state.view is ViewState.FIX:
        state.fix_view.results = None
