"""Tests for slash and colon command parsing and tab completion."""

import pytest

from complior_tui.app.command_line import (
    COLON_COMMANDS,
    COMMANDS,
    SLASH_HANDLERS,
    complete_colon_command,
    complete_command,
    filtered_commands,
    handle_colon_command,
    handle_command,
    tab_complete,
)
from complior_tui.core import commands as c
from complior_tui.core.providers import ProviderConfig
from complior_tui.core.types import ToastKind, ViewState
from complior_tui.overlays.model_selector import ModelSelectorOverlay
from complior_tui.overlays.provider_setup import ProviderSetupOverlay
from complior_tui.overlays.text_filter import GettingStartedOverlay, HelpOverlay
from complior_tui.overlays.theme_picker import ThemePickerOverlay
from tests.builders import make_scan


class TestCommandTables:
    def test_every_listed_command_has_a_handler(self):
        names = {cmd[1:] for cmd, _desc in COMMANDS}
        assert names == set(SLASH_HANDLERS)

    def test_colon_commands_complete(self):
        for name in COLON_COMMANDS:
            assert complete_colon_command(name) == name


class TestCompletion:
    def test_prefix(self):
        assert complete_command("the") == "/theme"
        assert complete_command("zzz") is None

    def test_first_match_wins(self):
        assert complete_command("s") == "/scan"

    def test_filter_matches_description(self):
        cmds = [cmd for cmd, _desc in filtered_commands("color")]
        assert cmds == ["/theme"]

    def test_empty_filter_lists_everything(self):
        assert len(filtered_commands("")) == len(COMMANDS)

    def test_tab_complete_slash(self, state):
        state.set_input("/wat")
        tab_complete(state)
        assert state.input == "/watch"

    def test_tab_complete_colon(self, state):
        state.colon_mode = True
        state.set_input("exp")
        tab_complete(state)
        assert state.input == "export"

    def test_tab_complete_plain_text_untouched(self, state):
        state.set_input("hello")
        tab_complete(state)
        assert state.input == "hello"


class TestSlashCommands:
    def test_scan_bumps_sequence(self, state):
        assert handle_command(state, "scan") == c.Scan(seq=1)
        assert handle_command(state, "scan") == c.Scan(seq=2)
        assert state.messages[-1].content == "Scanning project..."

    @pytest.mark.parametrize(
        "text, usage",
        [
            ("edit", "Usage: /edit <file-path>"),
            ("run", "Usage: /run <command>"),
            ("whatif", "Usage: /whatif <scenario> (e.g. /whatif expand to UK)"),
            ("view 9", "Usage: /view <1-6> (Dashboard/Scan/Fix/Chat/Timeline/Report)"),
        ],
    )
    def test_missing_arguments_post_usage(self, state, text, usage):
        assert handle_command(state, text) is None
        assert state.messages[-1].content == usage

    def test_edit_and_run(self, state):
        assert handle_command(state, "edit src/app.py") == c.OpenFile("src/app.py")
        assert handle_command(state, "run make test") == c.RunCommand("make test")
        assert state.terminal_visible

    def test_session_names_default(self, state):
        assert handle_command(state, "save") == c.SaveSession("latest")
        assert handle_command(state, "load work") == c.LoadSession("work")
        assert handle_command(state, "sessions") == c.ListSessions()

    def test_theme_without_name_opens_picker(self, state):
        assert handle_command(state, "theme") is None
        assert isinstance(state.overlay, ThemePickerOverlay)

    def test_theme_with_name_switches(self, state):
        assert handle_command(state, "theme nord") == c.SwitchTheme("nord")

    def test_view_switches(self, state):
        handle_command(state, "view 5")
        assert state.view is ViewState.TIMELINE

    def test_clear_empties_terminal(self, state):
        state.terminal_output.extend(["a", "b"])
        handle_command(state, "clear")
        assert state.terminal_output == []
        assert state.messages[-1].content == "Terminal cleared."

    def test_model_requires_provider(self, state):
        handle_command(state, "model")
        assert state.overlay is None
        assert state.messages[-1].content == "No providers configured. Use /provider first."
        state.provider_config = ProviderConfig("openai", "gpt-4o", {"openai": "sk-x"})
        handle_command(state, "model")
        assert isinstance(state.overlay, ModelSelectorOverlay)

    def test_provider_and_welcome_open_overlays(self, state):
        handle_command(state, "provider")
        assert isinstance(state.overlay, ProviderSetupOverlay)
        handle_command(state, "welcome")
        assert isinstance(state.overlay, GettingStartedOverlay)

    def test_fix_opens_fix_view(self, scanned_state):
        assert handle_command(scanned_state, "fix") is None
        assert scanned_state.view is ViewState.FIX

    def test_fix_dry_run_needs_selection(self, scanned_state):
        assert handle_command(scanned_state, "fix --dry-run") is None
        assert scanned_state.messages[-1].content.startswith("No fixes selected.")
        scanned_state.switch_view(ViewState.FIX)
        scanned_state.fix_view.toggle_at(0)
        assert handle_command(scanned_state, "fix --dry-run") == c.FixDryRun(("ART-5",))

    def test_export_needs_scan(self, state):
        assert handle_command(state, "export") is None
        assert state.toasts.latest().kind is ToastKind.WARNING
        state.last_scan = make_scan()
        assert handle_command(state, "export") == c.ExportReport()

    def test_misc_commands(self, state):
        assert handle_command(state, "undo") == c.Undo()
        assert handle_command(state, "watch") == c.ToggleWatch()
        assert handle_command(state, "reconnect") == c.Reconnect()
        assert handle_command(state, "whatif expand to UK") == c.WhatIf("expand to UK")

    def test_animations_toggle(self, state):
        handle_command(state, "animations")
        assert state.animations_enabled is False
        assert state.toasts.latest().message == "Animations: off"

    def test_unknown(self, state):
        assert handle_command(state, "frobnicate now") is None
        assert state.messages[-1].content == "Unknown command: /frobnicate now. Type /help for usage."


class TestColonCommands:
    def test_aliases(self, state):
        assert handle_colon_command(state, "s") == c.Scan(seq=1)
        assert handle_colon_command(state, "w") == c.ToggleWatch()
        assert handle_colon_command(state, "u") == c.Undo()

    def test_quit(self, state):
        handle_colon_command(state, "q")
        assert state.running is False

    def test_help_opens_overlay(self, state):
        handle_colon_command(state, "h")
        assert isinstance(state.overlay, HelpOverlay)

    def test_fix_with_and_without_argument(self, scanned_state):
        handle_colon_command(scanned_state, "fix ART-5")
        assert scanned_state.toasts.latest().message == "Fix: ART-5"
        assert scanned_state.view is ViewState.DASHBOARD
        handle_colon_command(scanned_state, "fix")
        assert scanned_state.view is ViewState.FIX

    def test_view_usage_is_a_toast(self, state):
        handle_colon_command(state, "v x")
        assert state.toasts.latest().message == "Usage: :view <1-6>"
        handle_colon_command(state, "v 2")
        assert state.view is ViewState.SCAN

    def test_dry_run_without_selection_warns(self, state):
        assert handle_colon_command(state, "dr") is None
        assert state.toasts.latest().kind is ToastKind.WARNING

    def test_whatif(self, state):
        assert handle_colon_command(state, "wi add GPAI") == c.WhatIf("add GPAI")
        assert handle_colon_command(state, "whatif") is None

    def test_unknown(self, state):
        handle_colon_command(state, "nope")
        assert state.toasts.latest().message == "Unknown: :nope. Try :help"
