"""Tests for pure key and mouse dispatch.

Verifies that map_key routes keys per mode, overlay and view, and that
map_mouse turns wheel and click events into actions.
"""

from complior_tui.core import actions as a
from complior_tui.core.types import (
    FindingRow,
    InputMode,
    OverlayKind,
    Panel,
    Rect,
    ViewState,
    ViewTab,
)
from complior_tui.tui.app import translate_key
from complior_tui.tui.input_modes import (
    KeyContext,
    KeyEvent,
    MouseEvent,
    MouseKind,
    hit_test,
    map_key,
    map_mouse,
    scroll_line_count,
)


def ctx(mode=InputMode.NORMAL, panel=Panel.CHAT, view=ViewState.DASHBOARD, **kwargs):
    return KeyContext(mode=mode, panel=panel, view=view, **kwargs)


def key(code, **kwargs):
    return KeyEvent(code, **kwargs)


class TestGlobalModifiers:
    def test_ctrl_keys_apply_in_every_mode(self):
        for mode in InputMode:
            assert map_key(key("c", ctrl=True), ctx(mode)) == a.Quit()
            assert map_key(key("s", ctrl=True), ctx(mode)) == a.StartScan()

    def test_ctrl_k_in_visual_sends_selection(self):
        assert map_key(key("k", ctrl=True), ctx(InputMode.VISUAL)) == a.SendSelectionToAi()

    def test_alt_digits_focus_panels(self):
        assert map_key(key("4", alt=True), ctx()) == a.FocusPanel(Panel.CODE_VIEWER)

    def test_ctrl_wins_over_overlay(self):
        c = ctx(overlay=OverlayKind.HELP)
        assert map_key(key("p", ctrl=True), c) == a.ShowCommandPalette()


class TestInsertMode:
    def test_printable_becomes_insert_char(self):
        assert map_key(key("x"), ctx(InputMode.INSERT)) == a.InsertChar("x")

    def test_q_does_not_quit_while_typing(self):
        assert map_key(key("q"), ctx(InputMode.INSERT)) == a.InsertChar("q")

    def test_named_keys(self):
        c = ctx(InputMode.INSERT)
        assert map_key(key("enter"), c) == a.SubmitInput()
        assert map_key(key("esc"), c) == a.EnterNormalMode()
        assert map_key(key("up"), c) == a.HistoryUp()
        assert map_key(key("tab"), c) == a.TabComplete()

    def test_unknown_named_key_is_noop(self):
        assert map_key(key("f5"), ctx(InputMode.INSERT)) == a.NoAction()


class TestNormalMode:
    def test_digits_switch_views(self):
        assert map_key(key("3"), ctx()) == a.SwitchView(ViewState.FIX)

    def test_slash_enters_command_mode(self):
        assert map_key(key("/"), ctx()) == a.EnterCommandMode()

    def test_slash_in_code_viewer_searches(self):
        assert map_key(key("/"), ctx(panel=Panel.CODE_VIEWER)) == a.CodeSearch()

    def test_n_cycles_matches_only_while_searching(self):
        searching = ctx(panel=Panel.CODE_VIEWER, code_search_active=True)
        assert map_key(key("n"), searching) == a.CodeSearchNext()
        assert map_key(key("N"), searching) == a.CodeSearchPrev()

    def test_enter_depends_on_panel_and_view(self):
        assert map_key(key("enter"), ctx(panel=Panel.FILE_BROWSER)) == a.OpenFile()
        assert map_key(key("enter"), ctx(view=ViewState.SCAN)) == a.ViewEnter()
        assert map_key(key("enter"), ctx(view=ViewState.CHAT)) == a.SubmitInput()

    def test_view_keys_in_scan_view(self):
        assert map_key(key("c"), ctx(view=ViewState.SCAN)) == a.ViewKey("c")

    def test_view_keys_ignored_in_chat_view(self):
        assert map_key(key("c"), ctx(view=ViewState.CHAT)) == a.NoAction()

    def test_space_toggles_fix_checkbox(self):
        assert map_key(key(" "), ctx(view=ViewState.FIX)) == a.ViewKey(" ")

    def test_space_expands_directory(self):
        c = ctx(panel=Panel.FILE_BROWSER, view=ViewState.CHAT)
        assert map_key(key(" "), c) == a.ToggleExpand()

    def test_esc_in_scan_view(self):
        assert map_key(key("esc"), ctx(view=ViewState.SCAN)) == a.ViewEscape()

    def test_diff_preview_accept(self):
        c = ctx(panel=Panel.DIFF_PREVIEW, view=ViewState.CHAT)
        assert map_key(key("y"), c) == a.AcceptDiff()


class TestOverlayKeys:
    def test_j_moves_cursor_in_navigable_overlay(self):
        c = ctx(overlay=OverlayKind.THEME_PICKER)
        assert map_key(key("j"), c) == a.ScrollDown()

    def test_j_types_into_filter_overlay(self):
        c = ctx(overlay=OverlayKind.FILE_PICKER)
        assert map_key(key("j"), c) == a.InsertChar("j")

    def test_j_types_while_overlay_collects_text(self):
        c = ctx(overlay=OverlayKind.ONBOARDING, overlay_text_entry=True)
        assert map_key(key("j"), c) == a.InsertChar("j")

    def test_esc_and_enter(self):
        c = ctx(overlay=OverlayKind.HELP)
        assert map_key(key("esc"), c) == a.EnterNormalMode()
        assert map_key(key("enter"), c) == a.SubmitInput()


class TestMouse:
    AREAS = [
        (Rect(0, 23, 10, 1), ViewTab(ViewState.DASHBOARD)),
        (Rect(10, 23, 10, 1), ViewTab(ViewState.SCAN)),
        (Rect(0, 5, 40, 1), FindingRow(0)),
    ]

    def test_hit_test(self):
        assert hit_test(self.AREAS, 12, 23) == ViewTab(ViewState.SCAN)
        assert hit_test(self.AREAS, 50, 50) is None

    def test_click_maps_to_target(self):
        event = MouseEvent(MouseKind.LEFT_DOWN, 3, 5)
        assert map_mouse(event, self.AREAS, [], 0.0) == a.ClickAt(FindingRow(0))

    def test_click_outside_is_noop(self):
        event = MouseEvent(MouseKind.LEFT_DOWN, 70, 1)
        assert map_mouse(event, self.AREAS, [], 0.0) == a.NoAction()

    def test_wheel_single_line(self):
        assert map_mouse(MouseEvent(MouseKind.SCROLL_UP), [], [], 10.0) == a.ScrollLines(-1)
        assert map_mouse(MouseEvent(MouseKind.SCROLL_DOWN), [], [], 10.0) == a.ScrollLines(1)

    def test_wheel_accelerates_after_burst(self):
        recent = [9.9, 9.95, 9.98]
        assert scroll_line_count(recent, 10.0, 1.0) == 3
        assert scroll_line_count(recent, 10.0, 2.0) == 6

    def test_old_scrolls_do_not_accelerate(self):
        assert scroll_line_count([1.0, 2.0, 3.0], 10.0, 1.0) == 1


class TestTranslateKey:
    def test_named_keys(self):
        assert translate_key("escape", None) == KeyEvent("esc")
        assert translate_key("enter", None) == KeyEvent("enter")

    def test_modifiers(self):
        assert translate_key("ctrl+s", None) == KeyEvent("s", ctrl=True)
        assert translate_key("alt+2", None) == KeyEvent("2", alt=True)

    def test_printable_character(self):
        assert translate_key("question_mark", "?") == KeyEvent("?")
        assert translate_key("space", " ") == KeyEvent(" ")

    def test_unprintable_ignored(self):
        assert translate_key("f1", None) is None
