"""Tests for modal overlays driven through the controller."""

from complior_tui.app import channel_events as ev
from complior_tui.core import actions as a
from complior_tui.core import commands as c
from complior_tui.core.providers import ProviderConfig
from complior_tui.core.types import ToastKind, UndoEntry
from complior_tui.overlays.command_palette import CommandPaletteOverlay
from complior_tui.overlays.confirm_dialog import ConfirmDialogOverlay
from complior_tui.overlays.dismiss_modal import DismissModalOverlay
from complior_tui.overlays.model_selector import ModelSelectorOverlay
from complior_tui.overlays.provider_setup import STEP_KEY, STEP_RESULT, STEP_VERIFYING, ProviderSetupOverlay
from complior_tui.overlays.text_filter import FilePickerOverlay, GettingStartedOverlay, HelpOverlay
from complior_tui.overlays.theme_picker import ThemePickerOverlay
from complior_tui.overlays.undo_history import UndoHistoryOverlay
from tests.builders import make_tree


def type_text(controller, text):
    for ch in text:
        controller.apply(a.InsertChar(ch))


class TestCommandPalette:
    def test_filter_narrows_entries(self):
        overlay = CommandPaletteOverlay(filter="them")
        assert [cmd for cmd, _desc in overlay.entries()] == ["/theme"]

    def test_typing_resets_cursor(self, controller, state):
        state.overlay = CommandPaletteOverlay(selected=3)
        controller.apply(a.InsertChar("s"))
        assert state.overlay.selected == 0

    def test_enter_runs_chosen_command(self, controller, state):
        state.overlay = CommandPaletteOverlay()
        type_text(controller, "scan")
        assert controller.apply(a.SubmitInput()) == c.Scan(seq=1)
        assert state.overlay is None

    def test_escape_closes(self, controller, state):
        state.overlay = CommandPaletteOverlay()
        controller.apply(a.EnterNormalMode())
        assert state.overlay is None


class TestFilePicker:
    def test_enter_inserts_file_reference(self, controller, state):
        state.file_tree = make_tree()
        state.set_input("explain ")
        state.overlay = FilePickerOverlay()
        type_text(controller, "main")
        controller.apply(a.SubmitInput())
        assert state.input == "explain @main.py "
        assert state.overlay is None


class TestHelpAndGettingStarted:
    def test_help_scrolls_with_j_and_k(self, controller, state):
        state.overlay = HelpOverlay()
        controller.apply(a.InsertChar("j"))
        controller.apply(a.InsertChar("j"))
        controller.apply(a.InsertChar("k"))
        assert state.overlay.scroll == 1

    def test_getting_started_marks_first_run(self, controller, state):
        state.overlay = GettingStartedOverlay()
        assert controller.apply(a.SubmitInput()) == c.MarkFirstRunDone()
        assert state.overlay is None


class TestThemePicker:
    def test_enter_applies_and_saves(self, controller, state):
        state.overlay = ThemePickerOverlay.for_theme("dark")
        controller.apply(a.ScrollDown())
        assert controller.apply(a.SubmitInput()) == c.SaveTheme("light")
        assert state.theme == "light"
        assert state.toasts.latest().message == "Theme: light"

    def test_cursor_is_bounded(self, controller, state):
        state.overlay = ThemePickerOverlay()
        controller.apply(a.ScrollUp())
        assert state.overlay.selected == 0


class TestProviderSetup:
    def test_select_then_verify_key(self, controller, state):
        state.overlay = ProviderSetupOverlay()
        controller.apply(a.ScrollDown())
        controller.apply(a.SubmitInput())
        assert state.overlay.step == STEP_KEY

        type_text(controller, "sk-key")
        assert controller.apply(a.SubmitInput()) == c.VerifyProvider("openai", "sk-key")
        assert state.overlay.step == STEP_VERIFYING
        # nothing is stored until the engine accepts the key
        assert state.provider_config.providers == {}

        assert controller.apply_event(ev.ProviderVerified("openai", "sk-key")) == c.SaveProviderConfig()
        assert state.overlay.step == STEP_RESULT
        assert state.provider_config.providers == {"openai": "sk-key"}
        assert state.provider_config.active_provider == "openai"
        assert state.provider_config.active_model == "gpt-4o"

        controller.apply(a.SubmitInput())
        assert state.overlay is None

    def test_empty_key_is_ignored(self, controller, state):
        state.overlay = ProviderSetupOverlay(step=STEP_KEY)
        assert controller.apply(a.SubmitInput()) is None
        assert state.overlay.step == STEP_KEY

    def test_bad_format_fails_without_engine(self, controller, state):
        state.overlay = ProviderSetupOverlay(step=STEP_KEY)
        type_text(controller, "abc")
        assert controller.apply(a.SubmitInput()) is None
        assert state.overlay.step == STEP_RESULT
        assert state.overlay.error == "Invalid key format for anthropic"

    def test_input_ignored_while_verifying(self, controller, state):
        state.overlay = ProviderSetupOverlay(step=STEP_VERIFYING, key_input="sk-ant-x")
        controller.apply(a.InsertChar("z"))
        controller.apply(a.EnterNormalMode())
        assert state.overlay.step == STEP_VERIFYING
        assert state.overlay.key_input == "sk-ant-x"

    def test_escape_in_key_step_goes_back(self, controller, state):
        state.overlay = ProviderSetupOverlay(step=STEP_KEY, key_input="abc")
        controller.apply(a.EnterNormalMode())
        assert state.overlay.step == 0

    def test_rejected_key_then_retry(self, controller, state):
        state.overlay = ProviderSetupOverlay(step=STEP_KEY)
        type_text(controller, "sk-ant-wrong")
        assert controller.apply(a.SubmitInput()) == c.VerifyProvider("anthropic", "sk-ant-wrong")

        controller.apply_event(ev.ProviderSetupFailed("Invalid API key"))
        assert state.overlay.step == STEP_RESULT
        assert state.overlay.error == "Invalid API key"
        assert state.messages[-1].content == "Invalid API key"
        # enter does not close while an error is shown
        controller.apply(a.SubmitInput())
        assert isinstance(state.overlay, ProviderSetupOverlay)

        controller.apply(a.InsertChar("r"))
        assert state.overlay.step == STEP_KEY
        assert state.overlay.key_input == ""
        assert state.overlay.error is None
        assert state.provider_config.providers == {}

    def test_late_verification_after_close_is_dropped(self, controller, state):
        state.overlay = ProviderSetupOverlay(step=STEP_KEY)
        type_text(controller, "sk-ant-ok")
        controller.apply(a.SubmitInput())
        state.overlay = None
        assert controller.apply_event(ev.ProviderVerified("anthropic", "sk-ant-ok")) is None
        assert state.provider_config.providers == {}


class TestModelSelector:
    def test_switches_model(self, controller, state):
        state.provider_config = ProviderConfig("anthropic", "", {"anthropic": "sk-ant-x"})
        state.overlay = ModelSelectorOverlay()
        controller.apply(a.ScrollDown())
        assert controller.apply(a.SubmitInput()) == c.SaveProviderConfig()
        assert state.provider_config.active_model == "claude-haiku-4-5-20251001"
        assert state.messages[-1].content == "Model switched to: Claude Haiku 4.5"


class TestConfirmDialog:
    def test_y_confirms(self, controller, state):
        state.overlay = ConfirmDialogOverlay(title="Apply", message="Apply 3 fixes?")
        controller.apply(a.InsertChar("y"))
        assert state.overlay is None
        assert state.toasts.latest().kind is ToastKind.SUCCESS

    def test_n_cancels(self, controller, state):
        state.overlay = ConfirmDialogOverlay()
        controller.apply(a.InsertChar("n"))
        assert state.overlay is None
        assert state.toasts.latest() is None

    def test_other_keys_ignored(self, controller, state):
        state.overlay = ConfirmDialogOverlay()
        controller.apply(a.InsertChar("x"))
        assert isinstance(state.overlay, ConfirmDialogOverlay)


class TestDismissModal:
    def test_choose_reason(self, controller, state):
        state.overlay = DismissModalOverlay(finding_index=2)
        controller.apply(a.ScrollDown())
        controller.apply(a.SubmitInput())
        assert state.overlay is None
        assert state.toasts.latest().message == "Dismissed: Accepted risk"


class TestUndoHistory:
    def test_enter_undoes_selected_entry(self, controller, state):
        overlay = UndoHistoryOverlay()
        overlay.set_entries([
            UndoEntry(7, "10:00", "fix ART-5", "applied"),
            UndoEntry(8, "10:05", "fix ART-13", "applied"),
        ])
        state.overlay = overlay
        controller.apply(a.ScrollDown())
        assert controller.apply(a.SubmitInput()) == c.Undo(8)
        assert state.overlay is None

    def test_enter_with_no_entries(self, controller, state):
        state.overlay = UndoHistoryOverlay()
        assert controller.apply(a.SubmitInput()) is None
        assert state.overlay is None
