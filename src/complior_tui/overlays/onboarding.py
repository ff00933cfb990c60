"""First-run onboarding wizard.

Ten steps, some skipped depending on the project type. The AI provider
step has its own substeps: 0 choose provider → 1 type key → 3 result
(2 is reserved for an engine-side verification and is never entered).

// [LAW:one-source-of-truth] build_steps() is the only step table; config
// values for each step come from CONFIG_VALUES.
// [LAW:dataflow-not-control-flow] Substep handlers are looked up by number.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto

from complior_tui.core import actions as a
from complior_tui.core import commands as c
from complior_tui.core.providers import key_format_valid, models_for_provider
from complior_tui.core.themes import THEME_NAMES
from complior_tui.core.types import OverlayKind
from complior_tui.overlays.base import Overlay

logger = logging.getLogger(__name__)


class StepKind(Enum):
    THEME_SELECT = auto()
    RADIO = auto()
    TEXT_INPUT = auto()
    CHECKBOX = auto()
    SUMMARY = auto()


_SINGLE_SELECT = (StepKind.RADIO, StepKind.THEME_SELECT)


@dataclass(frozen=True)
class StepOption:
    label: str
    hint: str | None = None
    tag: str | None = None


@dataclass
class OnboardingStep:
    id: str
    title: str
    description: str
    kind: StepKind
    options: tuple[StepOption, ...] = ()
    selected: list[int] = field(default_factory=list)
    text_value: str = ""
    skippable: bool = False
    masked: bool = False


# ─── Step table ───────────────────────────────────────────────────────────────

_O = StepOption
HIGH_RISK = "HIGH RISK"
COMING_SOON = "coming soon"


def build_steps() -> list[OnboardingStep]:
    return [
        OnboardingStep(
            id="welcome_theme",
            title="Welcome + Theme",
            description="Choose the text style that looks best with your terminal.\n"
                        "To change this later, run /theme",
            kind=StepKind.THEME_SELECT,
            options=(
                _O("Complior Dark"), _O("Complior Light"), _O("Solarized Dark"),
                _O("Solarized Light"), _O("Dracula"), _O("Nord"), _O("Monokai"),
                _O("Gruvbox"),
            ),
            selected=[0],
        ),
        OnboardingStep(
            id="navigation",
            title="Navigation Mode",
            description="How do you want to navigate?",
            kind=StepKind.RADIO,
            options=(
                _O("Standard", "Arrow keys, Enter, Esc. Tab to cycle, Space to toggle."),
                _O("Vim-style", "j/k to move, Enter to confirm. h/l for tabs, / to search."),
            ),
            selected=[0],
        ),
        OnboardingStep(
            id="ai_provider",
            title="AI Connection",
            description="Select how Complior connects to AI.\n"
                        "AI enables: doc generation, deeper analysis, model compliance testing.",
            kind=StepKind.TEXT_INPUT,
            masked=True,
            options=(
                _O("OpenRouter API key", "400+ models (Claude, GPT, Gemini, Mistral, Llama)",
                   "RECOMMENDED"),
                _O("Anthropic API key", "Claude models only"),
                _O("OpenAI API key", "GPT models only"),
                _O("Offline mode", "Static scan, hardcoded rules. No doc generation."),
            ),
        ),
        OnboardingStep(
            id="project_type",
            title="Project Type",
            description="Is this a new project or an existing one?",
            kind=StepKind.RADIO,
            options=(
                _O("Existing project", "Complior will scan and find AI tools now."),
                _O("New project", "Set up compliance from the start."),
                _O("Just exploring", "Quick demo with sample data."),
            ),
            selected=[0],
        ),
        OnboardingStep(
            id="workspace_trust",
            title="Workspace Trust",
            description="Complior will scan files, detect AI tools, and generate reports.",
            kind=StepKind.RADIO,
            options=(_O("Yes, I trust this folder"), _O("No, exit")),
            selected=[0],
            skippable=True,
        ),
        OnboardingStep(
            id="jurisdiction",
            title="Jurisdiction",
            description="Where does your company operate?\n"
                        "This determines which regulations apply.",
            kind=StepKind.RADIO,
            options=(
                _O("EU / EEA", "EU AI Act applies in full"),
                _O("UK", "UK AI framework", COMING_SOON),
                _O("EU + UK", "Both frameworks", COMING_SOON),
                _O("US", "State-level rules", COMING_SOON),
                _O("Global", "All applicable frameworks", COMING_SOON),
                _O("Not sure", "Default: EU AI Act"),
            ),
            selected=[0],
        ),
        OnboardingStep(
            id="role",
            title="Role in AI Value Chain",
            description="What is your company's role?\n"
                        "EU AI Act assigns different obligations to each role.",
            kind=StepKind.RADIO,
            options=(
                _O("We USE AI tools (Deployer)", "~10 obligations. Most companies are here."),
                _O("We BUILD AI systems (Provider)", "~30 obligations. Train/fine-tune/ship AI."),
                _O("Both (Provider + Deployer)", "Build your own AI AND use third-party AI."),
                _O("Not sure", "We'll detect from your codebase."),
            ),
            selected=[0],
        ),
        OnboardingStep(
            id="industry",
            title="Industry / Domain",
            description="What industry does this project serve?\n"
                        "Some industries trigger HIGH RISK under the EU AI Act.",
            kind=StepKind.RADIO,
            options=(
                _O("General SaaS / Web app"),
                _O("HR / Recruitment / People", tag=HIGH_RISK),
                _O("Finance / Credit / Insurance", tag=HIGH_RISK),
                _O("Healthcare / Medical", tag=HIGH_RISK),
                _O("Education / EdTech", tag=HIGH_RISK),
                _O("Legal / Justice", tag=HIGH_RISK),
                _O("Security / Biometrics", tag=HIGH_RISK),
                _O("Marketing / Advertising"),
                _O("Customer Service"),
                _O("Other / Not sure"),
            ),
            selected=[0],
        ),
        OnboardingStep(
            id="scan_scope",
            title="Scan Scope",
            description="What should Complior scan?\nUse Space to toggle, Enter to confirm.",
            kind=StepKind.CHECKBOX,
            options=(
                _O("Dependencies", "package.json, requirements.txt, go.mod"),
                _O("Environment vars", ".env, docker-compose.yml, CI/CD configs"),
                _O("Source code", "imports, API calls, SDK patterns"),
                _O("Infrastructure", "Dockerfile, K8s manifests, Terraform"),
                _O("Documentation", "Check if compliance docs exist"),
            ),
            selected=[0, 1, 2],
            skippable=True,
        ),
        OnboardingStep(
            id="summary",
            title="Setup Complete",
            description="Review your configuration and start Complior.",
            kind=StepKind.SUMMARY,
        ),
    ]


# step id -> config value per option index
CONFIG_VALUES: dict[str, tuple[str, ...]] = {
    "welcome_theme": THEME_NAMES,
    "navigation": ("standard", "vim"),
    "ai_provider": ("openrouter", "anthropic", "openai", "offline"),
    "project_type": ("existing", "new", "demo"),
    "workspace_trust": ("yes", "no"),
    "jurisdiction": ("eu", "uk", "eu+uk", "us", "global", "eu"),
    "role": ("deployer", "provider", "both", "auto"),
    "industry": (
        "general", "hr", "finance", "healthcare", "education",
        "legal", "security", "marketing", "customer-service", "auto",
    ),
}
CONFIG_FALLBACKS: dict[str, str] = {"ai_provider": "offline"}
SCAN_SCOPE_VALUES: tuple[str, ...] = ("deps", "env", "source", "infra", "docs")

OFFLINE_INDEX = 3
TRUST_EXIT_INDEX = 1

SUBSTEP_SELECT = 0
SUBSTEP_KEY = 1
SUBSTEP_RESULT = 3


# ─── Wizard ───────────────────────────────────────────────────────────────────


@dataclass
class OnboardingWizard:
    steps: list[OnboardingStep] = field(default_factory=build_steps)
    current_step: int = 0
    cursor: int = 0
    completed: bool = False
    result_summary: str | None = None
    provider_substep: int = SUBSTEP_SELECT
    validation_message: str | None = None
    key_valid: bool = False
    project_type: str | None = None
    active_steps: list[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.active_steps:
            self.active_steps = list(range(len(self.steps)))

    @classmethod
    def resume(cls, step: int) -> OnboardingWizard:
        """Start at a previously saved step, clamped to the table."""
        wiz = cls()
        wiz.current_step = max(0, min(step, len(wiz.steps) - 1))
        wiz._enter_step()
        return wiz

    # ─── Position ────────────────────────────────────────────────────────────

    def total_visible_steps(self) -> int:
        return len(self.active_steps)

    def visible_position(self) -> int:
        """1-based position among visible steps."""
        try:
            return self.active_steps.index(self.current_step) + 1
        except ValueError:
            return 1

    def progress_pct(self) -> float:
        if self.completed:
            return 1.0
        total = self.total_visible_steps()
        if total == 0:
            return 0.0
        return (self.visible_position() - 1) / total

    def current(self) -> OnboardingStep | None:
        if 0 <= self.current_step < len(self.steps):
            return self.steps[self.current_step]
        return None

    def step(self, step_id: str) -> OnboardingStep | None:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    # ─── Cursor / selection ──────────────────────────────────────────────────

    def move_cursor_up(self) -> None:
        self.cursor = max(self.cursor - 1, 0)

    def move_cursor_down(self) -> None:
        step = self.current()
        if step is not None and self.cursor + 1 < len(step.options):
            self.cursor += 1

    def toggle_selection(self) -> None:
        """Radio and theme steps select the cursor; checkboxes flip it."""
        step = self.current()
        if step is None:
            return
        if step.kind in _SINGLE_SELECT:
            step.selected = [self.cursor]
        elif step.kind is StepKind.CHECKBOX:
            if self.cursor in step.selected:
                step.selected.remove(self.cursor)
            else:
                step.selected.append(self.cursor)

    def select_all(self) -> None:
        step = self.current()
        if step is not None and step.kind is StepKind.CHECKBOX:
            step.selected = list(range(len(step.options)))

    def select_minimum(self) -> None:
        step = self.current()
        if step is not None and step.kind is StepKind.CHECKBOX:
            step.selected = [0]

    # ─── Navigation ──────────────────────────────────────────────────────────

    def _enter_step(self) -> None:
        step = self.current()
        # single-select steps open with the cursor on their current choice
        if step is not None and step.kind in _SINGLE_SELECT and step.selected:
            self.cursor = step.selected[0]
        else:
            self.cursor = 0
        if step is not None and step.id == "ai_provider":
            self.provider_substep = SUBSTEP_SELECT

    def next_step(self) -> bool:
        """Advance to the next visible step. Returns True when the wizard completed."""
        try:
            pos = self.active_steps.index(self.current_step)
        except ValueError:
            return False
        if pos + 1 < len(self.active_steps):
            self.current_step = self.active_steps[pos + 1]
            self._enter_step()
            return False
        self.completed = True
        self.result_summary = self.build_summary()
        return True

    def prev_step(self) -> None:
        try:
            pos = self.active_steps.index(self.current_step)
        except ValueError:
            return
        if pos > 0:
            self.current_step = self.active_steps[pos - 1]
            self._enter_step()

    def recalculate_active_steps(self) -> None:
        """workspace_trust is skipped for demos; scan_scope is kept only for existing projects."""
        project_type = self.project_type or "existing"
        visible = []
        for i, step in enumerate(self.steps):
            if step.id == "workspace_trust" and project_type == "demo":
                continue
            if step.id == "scan_scope" and project_type != "existing":
                continue
            visible.append(i)
        self.active_steps = visible

    # ─── Values ──────────────────────────────────────────────────────────────

    def _labels(self, step: OnboardingStep) -> list[str]:
        # for the provider step this is the chosen option, never the typed key
        return [step.options[i].label for i in step.selected if 0 <= i < len(step.options)]

    def step_value(self, step_id: str) -> str | None:
        step = self.step(step_id)
        if step is None:
            return None
        if step.kind is StepKind.TEXT_INPUT:
            return step.text_value or None
        labels = self._labels(step)
        return ", ".join(labels) if labels else None

    def answers(self) -> list[tuple[str, list[str]]]:
        return [(step.id, self._labels(step)) for step in self.steps]

    def selected_config_value(self, step_id: str) -> str:
        step = self.step(step_id)
        if step is None:
            return ""
        if step_id == "scan_scope":
            return ",".join(
                SCAN_SCOPE_VALUES[i] for i in step.selected if 0 <= i < len(SCAN_SCOPE_VALUES)
            )
        values = CONFIG_VALUES.get(step_id)
        if values is None:
            return ""
        idx = step.selected[0] if step.selected else 0
        if 0 <= idx < len(values):
            return values[idx]
        return CONFIG_FALLBACKS.get(step_id, values[0])

    def config_answers(self) -> tuple[tuple[str, str], ...]:
        return tuple(
            (step.id, self.selected_config_value(step.id))
            for step in self.steps
            if step.kind is not StepKind.SUMMARY
        )

    def api_key(self) -> str:
        """The typed key, only once it passed the format check."""
        step = self.step("ai_provider")
        if step is None or not self.key_valid:
            return ""
        return step.text_value

    def build_summary(self) -> str:
        parts = [f"{step_id}: {', '.join(values)}" for step_id, values in self.answers() if values]
        return " | ".join(parts)


# ─── Overlay ──────────────────────────────────────────────────────────────────


@dataclass
class OnboardingOverlay(Overlay):
    kind = OverlayKind.ONBOARDING

    wizard: OnboardingWizard = field(default_factory=OnboardingWizard)

    def accepts_text(self) -> bool:
        step = self.wizard.current()
        return (
            step is not None
            and step.kind is StepKind.TEXT_INPUT
            and self.wizard.provider_substep == SUBSTEP_KEY
        )


def _close_partial(overlay: OnboardingOverlay, state) -> c.AppCommand:
    state.overlay = None
    return c.SaveOnboardingPartial(overlay.wizard.current_step)


def _finish(overlay: OnboardingOverlay, state) -> c.AppCommand:
    wiz = overlay.wizard
    if wiz.result_summary:
        state.post(f"Setup complete: {wiz.result_summary}")
    state.overlay = None

    provider = wiz.selected_config_value("ai_provider")
    key = wiz.api_key()
    if key and provider != "offline":
        config = state.provider_config
        config.providers[provider] = key
        if not config.active_provider:
            config.active_provider = provider
            models = models_for_provider(provider)
            if models:
                config.active_model = models[0].id
    logger.info("onboarding complete (provider=%s)", provider)
    return c.CompleteOnboarding(answers=wiz.config_answers(), api_key=key)


def _advance(overlay: OnboardingOverlay, state) -> c.AppCommand | None:
    wiz = overlay.wizard
    step = wiz.current()
    leaving = step.id if step is not None else ""
    if leaving == "project_type":
        # recompute skips before moving so the next step is already a visible one
        wiz.project_type = wiz.selected_config_value("project_type")
        wiz.recalculate_active_steps()
    completed = wiz.next_step()
    if leaving == "welcome_theme":
        state.theme = wiz.selected_config_value("welcome_theme")
    if completed:
        return _finish(overlay, state)
    return None


# ─── Generic steps ────────────────────────────────────────────────────────────


def _handle_step(overlay: OnboardingOverlay, state, action: a.Action) -> c.AppCommand | None:
    wiz = overlay.wizard
    step = wiz.current()
    kind = step.kind if step is not None else StepKind.SUMMARY

    if isinstance(action, (a.ScrollDown, a.ScrollUp)):
        if isinstance(action, a.ScrollDown):
            wiz.move_cursor_down()
        else:
            wiz.move_cursor_up()
        if kind is StepKind.THEME_SELECT and wiz.cursor < len(THEME_NAMES):
            state.theme = THEME_NAMES[wiz.cursor]
    elif isinstance(action, a.InsertChar):
        if action.char == " " and kind in (*_SINGLE_SELECT, StepKind.CHECKBOX):
            wiz.toggle_selection()
        elif action.char == "a":
            wiz.select_all()
        elif action.char == "n":
            wiz.select_minimum()
    elif isinstance(action, a.SubmitInput):
        if kind in _SINGLE_SELECT:
            wiz.toggle_selection()
        if step is not None and step.id == "workspace_trust" and step.selected[:1] == [TRUST_EXIT_INDEX]:
            state.post("Run complior in a trusted folder.")
            state.overlay = None
            state.running = False
            return None
        return _advance(overlay, state)
    elif isinstance(action, a.DeleteChar):
        wiz.prev_step()
    elif isinstance(action, (a.EnterNormalMode, a.Quit)):
        return _close_partial(overlay, state)
    return None


# ─── AI provider substeps ─────────────────────────────────────────────────────


def _provider_select(overlay: OnboardingOverlay, state, action: a.Action) -> c.AppCommand | None:
    wiz = overlay.wizard
    step = wiz.current()
    if isinstance(action, a.ScrollDown):
        wiz.move_cursor_down()
    elif isinstance(action, a.ScrollUp):
        wiz.move_cursor_up()
    elif isinstance(action, a.SubmitInput):
        step.selected = [wiz.cursor]
        step.text_value = ""
        wiz.key_valid = False
        if wiz.cursor == OFFLINE_INDEX:
            wiz.validation_message = "Offline mode: static scan only."
            return _advance(overlay, state)
        wiz.provider_substep = SUBSTEP_KEY
    elif isinstance(action, a.DeleteChar):
        wiz.prev_step()
    elif isinstance(action, (a.EnterNormalMode, a.Quit)):
        return _close_partial(overlay, state)
    return None


def _provider_key(overlay: OnboardingOverlay, state, action: a.Action) -> c.AppCommand | None:
    wiz = overlay.wizard
    step = wiz.current()
    if isinstance(action, a.InsertChar):
        step.text_value += action.char
    elif isinstance(action, a.DeleteChar):
        if step.text_value:
            step.text_value = step.text_value[:-1]
        else:
            wiz.provider_substep = SUBSTEP_SELECT
    elif isinstance(action, a.SubmitInput):
        key = step.text_value
        if not key:
            return None
        provider = wiz.selected_config_value("ai_provider")
        wiz.key_valid = key_format_valid(provider, key)
        if wiz.key_valid:
            wiz.validation_message = "Valid. Key accepted."
        else:
            wiz.validation_message = f"Invalid key format for {provider}. Check your key."
        wiz.provider_substep = SUBSTEP_RESULT
    elif isinstance(action, a.EnterNormalMode):
        wiz.provider_substep = SUBSTEP_SELECT
        step.text_value = ""
    elif isinstance(action, a.Quit):
        return _close_partial(overlay, state)
    return None


def _retry_key(wiz: OnboardingWizard, step: OnboardingStep) -> None:
    wiz.provider_substep = SUBSTEP_KEY
    wiz.key_valid = False
    step.text_value = ""


def _provider_result(overlay: OnboardingOverlay, state, action: a.Action) -> c.AppCommand | None:
    wiz = overlay.wizard
    step = wiz.current()
    if isinstance(action, a.SubmitInput):
        if not wiz.key_valid:
            _retry_key(wiz, step)
            return None
        return _advance(overlay, state)
    if isinstance(action, a.DeleteChar):
        _retry_key(wiz, step)
    elif isinstance(action, (a.EnterNormalMode, a.Quit)):
        return _close_partial(overlay, state)
    return None


_PROVIDER_SUBSTEPS = {
    SUBSTEP_SELECT: _provider_select,
    SUBSTEP_KEY: _provider_key,
    SUBSTEP_RESULT: _provider_result,
}


def handle(overlay: OnboardingOverlay, state, action: a.Action) -> c.AppCommand | None:
    step = overlay.wizard.current()
    if step is not None and step.kind is StepKind.TEXT_INPUT:
        substep_handler = _PROVIDER_SUBSTEPS.get(overlay.wizard.provider_substep, _provider_select)
        return substep_handler(overlay, state, action)
    return _handle_step(overlay, state, action)
