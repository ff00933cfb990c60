"""Command executor: runs AppCommands off the event-loop thread.

// [LAW:locality-or-seam] This is the only module that performs engine,
// filesystem or subprocess I/O on behalf of the controller.
// [LAW:single-enforcer] Workers report back exclusively through channel.send();
// ApplicationState is read once, on the loop thread, at submit time.

Each command handler receives the command plus a Snapshot of the state it
needs. Blocking work runs on a daemon thread; quick local work (watcher
start/stop) runs inline.
"""

from __future__ import annotations

import functools
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, replace
from pathlib import Path

from complior_tui.app import channel_events as ev
from complior_tui.core import commands as c
from complior_tui.core.providers import ProviderConfig
from complior_tui.core.types import EngineConnectionStatus, ScanResult, Suggestion, SuggestionKind, UndoEntry
from complior_tui.io import credentials, report_export, sessions, settings
from complior_tui.io.sessions import SessionData
from complior_tui.io.watcher import ProjectWatcher
from complior_tui.pipeline import sse
from complior_tui.pipeline.engine_client import EngineClient, EngineError

logger = logging.getLogger(__name__)

AUTO_WATCH_MESSAGE = "Watch mode started (auto)."


# ─── Snapshot / stores ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Snapshot:
    """What a worker may know about ApplicationState, copied at submit time."""

    project_path: str
    provider_config: ProviderConfig
    session: SessionData
    last_scan: ScanResult | None


def take_snapshot(state) -> Snapshot:
    config = state.provider_config
    return Snapshot(
        project_path=str(state.project_path),
        provider_config=replace(config, providers=dict(config.providers)),
        session=state.to_session_data(),
        last_scan=state.last_scan,
    )


def _read_text(path: str) -> str:
    return Path(path).read_text(encoding="utf-8")


@dataclass
class Stores:
    """Persistence entry points. Tests swap these for in-memory fakes."""

    save_session: Callable = sessions.save_session
    load_session: Callable = sessions.load_session
    list_sessions: Callable = sessions.list_sessions
    mark_first_run_done: Callable = sessions.mark_first_run_done
    save_theme: Callable = settings.save_theme
    save_onboarding_answers: Callable = settings.save_onboarding_answers
    save_onboarding_partial: Callable = settings.save_onboarding_partial
    save_provider_config: Callable = credentials.save_provider_config
    save_credential: Callable = credentials.save_credential
    export_report: Callable = report_export.export_report
    read_local_file: Callable = _read_text


# ─── Result formatting ────────────────────────────────────────────────────────


def format_whatif(scenario: str, current: float, raw: dict) -> str:
    projected = raw.get("projectedScore", current)
    projected = float(projected) if isinstance(projected, (int, float)) else current
    delta = projected - current
    lines = [
        f"What-If Analysis: {scenario}",
        f"Current score:   {current:.0f}/100",
        f"Projected score: {projected:.0f}/100 ({delta:+.0f})",
    ]
    obligations = [str(o) for o in raw.get("newObligations") or []]
    if obligations:
        lines.append("")
        lines.append(f"New obligations: +{len(obligations)}")
        lines.extend(f"  - {obl}" for obl in obligations)
    effort = raw.get("effortDays")
    if isinstance(effort, int):
        lines.append("")
        lines.append(f"Effort estimate: ~{effort} days")
    return "\n".join(lines)


def offline_whatif(scenario: str, current: float) -> dict:
    """Heuristic projection used when the engine cannot answer."""
    if "expand" in scenario or "UK" in scenario:
        drop, obligations, effort = 14.0, [
            "Registration with AI regulatory body",
            "Transparency report required",
            "Cross-border compliance assessment",
        ], 5
    elif "add" in scenario or "tool" in scenario:
        drop, obligations, effort = 7.0, [
            "Content marking required (C2PA)",
            "AI-generated content disclosure",
        ], 2
    else:
        drop, obligations, effort = 5.0, ["Additional compliance review needed"], 1
    return {
        "projectedScore": max(current - drop, 0.0),
        "newObligations": obligations,
        "effortDays": effort,
    }


def format_dry_run(check_ids: tuple[str, ...], raw: dict) -> str:
    message = raw.get("message")
    if isinstance(message, str) and message:
        return message
    fixes = raw.get("fixes")
    count = len(fixes) if isinstance(fixes, list) else len(check_ids)
    text = f"{count} fixes would be applied ({', '.join(check_ids)})"
    predicted = raw.get("predictedScore")
    if isinstance(predicted, (int, float)):
        text += f", predicted score {predicted:.0f}/100"
    return text


def parse_suggestions(items: list[dict]) -> tuple[Suggestion, ...]:
    return tuple(
        Suggestion(
            kind=SuggestionKind.parse(item.get("kind", "tip")),
            text=str(item.get("text", "")),
            detail=item.get("detail") if isinstance(item.get("detail"), str) else None,
        )
        for item in items
    )


# ─── Executor ─────────────────────────────────────────────────────────────────


class CommandExecutor:
    def __init__(
        self,
        state_view: Callable[[], object],
        client: EngineClient,
        channel,
        stores: Stores | None = None,
        watcher: Callable[[str, Callable[[str], None]], ProjectWatcher] = ProjectWatcher,
        spawn: Callable[[Callable[[], None], str], None] | None = None,
    ):
        self._state_view = state_view
        self.client = client
        self._channel = channel
        self._stores = stores if stores is not None else Stores()
        self._watcher_factory = watcher
        self._watcher: ProjectWatcher | None = None
        self._spawn = spawn if spawn is not None else _spawn_daemon

    # ─── Public API ──────────────────────────────────────────────────────────

    def submit(self, cmd: c.AppCommand | None) -> None:
        if cmd is None:
            return
        handler = _COMMAND_HANDLERS.get(type(cmd))
        if handler is None:
            logger.warning("no executor handler for %s", type(cmd).__name__)
            return
        job = functools.partial(handler, self, cmd, take_snapshot(self._state_view()))
        if type(cmd) in INLINE_COMMANDS:
            job()
        else:
            self._spawn(job, type(cmd).__name__)

    def stop_watcher(self) -> None:
        watcher, self._watcher = self._watcher, None
        if watcher is not None:
            watcher.stop()

    @property
    def watching(self) -> bool:
        return self._watcher is not None

    def send(self, event: ev.ChannelEvent) -> None:
        self._channel.send(event)

    def _store(self, action: Callable[[], ev.ChannelEvent | None], failure: str) -> None:
        """Run a local persistence step; OSError and ValueError become StoreFailed."""
        try:
            event = action()
        except (OSError, ValueError) as exc:
            logger.warning("%s: %s", failure, exc)
            self.send(ev.StoreFailed(f"{failure}: {exc}"))
            return
        if event is not None:
            self.send(event)

    # ─── Engine work ─────────────────────────────────────────────────────────

    def _scan(self, cmd: c.Scan | c.AutoScan, snap: Snapshot) -> None:
        auto = isinstance(cmd, c.AutoScan)
        try:
            result = self.client.scan(snap.project_path)
        except EngineError as exc:
            logger.warning("scan failed: %s", exc)
            self.send(ev.ScanFailed(cmd.seq, str(exc), auto=auto))
            return
        self.send(ev.ScanCompleted(cmd.seq, result, auto=auto))

    def _chat(self, cmd: c.Chat, snap: Snapshot) -> None:
        config = snap.provider_config
        provider = config.active_provider if config.is_configured() else None
        model = config.active_model if provider else None
        api_key = config.providers.get(provider) if provider else None
        stream_client = self.client.clone_for_stream()

        def sink(event: sse.SseEvent) -> None:
            self.send(ev.ChatStream(cmd.seq, event))

        try:
            stream_client.chat_stream(cmd.text, sink, provider=provider, model=model, api_key=api_key)
        except EngineError as exc:
            logger.error("chat stream error: %s", exc)
            sink(sse.Error(f"Connection error: {exc}"))
            sink(sse.Done())
        finally:
            stream_client.close()

    def _open_file(self, cmd: c.OpenFile, snap: Snapshot) -> None:
        try:
            content = self.client.read_file(cmd.path)
        except EngineError:
            # the engine may be down; the file is usually readable locally
            try:
                content = self._stores.read_local_file(cmd.path)
            except (OSError, UnicodeDecodeError) as exc:
                self.send(ev.FileOpenFailed(cmd.path, str(exc)))
                return
        self.send(ev.FileOpened(cmd.path, content))

    def _run_command(self, cmd: c.RunCommand, snap: Snapshot) -> None:
        try:
            output = self.client.run_command(cmd.command)
        except EngineError as exc:
            self.send(ev.CommandFailed(cmd.command, str(exc)))
            return
        self.send(ev.CommandOutput(cmd.command, tuple(output.splitlines())))

    def _reconnect(self, cmd: c.Reconnect, snap: Snapshot) -> None:
        self.send(ev.EngineStatusChanged(EngineConnectionStatus.CONNECTING, "Reconnecting to engine..."))
        if self.client.is_ready():
            self.send(ev.EngineStatusChanged(EngineConnectionStatus.CONNECTED, "Reconnected successfully."))
        else:
            self.send(ev.EngineStatusChanged(
                EngineConnectionStatus.DISCONNECTED, "Reconnect failed. Is engine running?"
            ))

    def _undo(self, cmd: c.Undo, snap: Snapshot) -> None:
        try:
            result = self.client.undo(cmd.entry_id)
        except EngineError as exc:
            logger.info("undo failed: %s", exc)
            self.send(ev.UndoFailed())
            return
        message = result.get("message")
        self.send(ev.UndoApplied(message if isinstance(message, str) else None))

    def _undo_history(self, cmd: c.FetchUndoHistory, snap: Snapshot) -> None:
        try:
            raw = self.client.undo_history()
        except EngineError as exc:
            logger.info("undo history unavailable: %s", exc)
            raw = []
        entries = tuple(e for e in (UndoEntry.from_json(item) for item in raw) if e is not None)
        self.send(ev.UndoHistoryLoaded(entries))

    def _suggestions(self, cmd: c.FetchSuggestions, snap: Snapshot) -> None:
        try:
            items = self.client.suggestions()
        except EngineError as exc:
            logger.debug("suggestions unavailable: %s", exc)
            self.send(ev.SuggestionsFailed())
            return
        self.send(ev.SuggestionsLoaded(parse_suggestions(items)))

    def _whatif(self, cmd: c.WhatIf, snap: Snapshot) -> None:
        current = snap.last_scan.score.total_score if snap.last_scan is not None else 0.0
        try:
            raw = self.client.whatif(cmd.scenario)
        except EngineError as exc:
            logger.info("what-if via engine failed, using offline estimate: %s", exc)
            raw = offline_whatif(cmd.scenario, current)
        self.send(ev.WhatIfResult(format_whatif(cmd.scenario, current, raw)))

    def _dry_run(self, cmd: c.FixDryRun, snap: Snapshot) -> None:
        try:
            raw = self.client.fix_dry_run(cmd.check_ids)
        except EngineError as exc:
            self.send(ev.StoreFailed(f"Dry run failed: {exc}"))
            return
        self.send(ev.DryRunResult(format_dry_run(cmd.check_ids, raw)))

    def _verify_provider(self, cmd: c.VerifyProvider, snap: Snapshot) -> None:
        try:
            valid, error = self.client.verify_provider(cmd.provider_id, cmd.api_key)
        except EngineError as exc:
            logger.info("provider verification failed: %s", exc)
            self.send(ev.ProviderSetupFailed(f"Cannot verify key: {exc}"))
            return
        if not valid:
            self.send(ev.ProviderSetupFailed(error or f"Key rejected by {cmd.provider_id}"))
            return
        self.send(ev.ProviderVerified(cmd.provider_id, cmd.api_key))

    # ─── Local stores ────────────────────────────────────────────────────────

    def _switch_theme(self, cmd: c.SwitchTheme, snap: Snapshot) -> None:
        def run() -> ev.ChannelEvent:
            self._stores.save_theme(cmd.name)
            return ev.ThemeSwitched(cmd.name)
        self._store(run, "Theme save failed")

    def _save_theme(self, cmd: c.SaveTheme, snap: Snapshot) -> None:
        self._store(lambda: self._stores.save_theme(cmd.name), "Theme save failed")

    def _save_session(self, cmd: c.SaveSession, snap: Snapshot) -> None:
        def run() -> ev.ChannelEvent:
            self._stores.save_session(cmd.name, snap.session)
            return ev.SessionSaved(cmd.name)
        self._store(run, "Save failed")

    def _load_session(self, cmd: c.LoadSession, snap: Snapshot) -> None:
        self._store(lambda: ev.SessionLoaded(cmd.name, self._stores.load_session(cmd.name)), "Load failed")

    def _list_sessions(self, cmd: c.ListSessions, snap: Snapshot) -> None:
        self._store(lambda: ev.SessionListed(tuple(self._stores.list_sessions())), "Cannot list sessions")

    def _mark_first_run(self, cmd: c.MarkFirstRunDone, snap: Snapshot) -> None:
        self._store(self._stores.mark_first_run_done, "Cannot record first run")

    def _export_report(self, cmd: c.ExportReport, snap: Snapshot) -> None:
        def run() -> ev.ChannelEvent:
            if snap.last_scan is None:
                raise ValueError("no scan to export")
            path = self._stores.export_report(snap.last_scan, snap.project_path)
            return ev.ReportExported(str(path))
        self._store(run, "Export failed")

    def _save_provider_config(self, cmd: c.SaveProviderConfig, snap: Snapshot) -> None:
        try:
            self._stores.save_provider_config(snap.provider_config)
        except (OSError, ValueError) as exc:
            logger.warning("Cannot save provider config: %s", exc)
            # an open provider setup overlay shows this on its result step
            self.send(ev.ProviderSetupFailed(f"Cannot save provider config: {exc}"))

    def _complete_onboarding(self, cmd: c.CompleteOnboarding, snap: Snapshot) -> None:
        def run() -> None:
            answers = dict(cmd.answers)
            self._stores.save_onboarding_answers(answers)
            provider = answers.get("ai_provider", "")
            if cmd.api_key and provider and provider != "offline":
                self._stores.save_credential(provider, cmd.api_key)
                self._stores.save_provider_config(snap.provider_config)
            self._stores.mark_first_run_done()
        self._store(run, "Cannot save setup")

    def _save_onboarding_partial(self, cmd: c.SaveOnboardingPartial, snap: Snapshot) -> None:
        self._store(lambda: self._stores.save_onboarding_partial(cmd.step), "Cannot save setup progress")

    # ─── Watch mode ──────────────────────────────────────────────────────────

    def _toggle_watch(self, cmd: c.ToggleWatch, snap: Snapshot) -> None:
        if self._watcher is not None:
            self.stop_watcher()
            self.send(ev.WatchToggled(False))
            return
        watcher = self._watcher_factory(
            snap.project_path, lambda changed: self.send(ev.WatchChanged(changed))
        )
        watcher.start()
        self._watcher = watcher
        self.send(ev.WatchToggled(True, AUTO_WATCH_MESSAGE if cmd.auto else None))


def _spawn_daemon(job: Callable[[], None], name: str) -> None:
    def run() -> None:
        try:
            job()
        except Exception:
            logger.exception("command %s crashed", name)

    threading.Thread(target=run, name=f"exec-{name}", daemon=True).start()


# ─── Dispatch ─────────────────────────────────────────────────────────────────

# Commands cheap enough to run on the loop thread.
INLINE_COMMANDS: frozenset[type[c.AppCommand]] = frozenset({c.ToggleWatch})

# // [LAW:one-source-of-truth] Every AppCommand class has exactly one entry here.
_COMMAND_HANDLERS: dict[type[c.AppCommand], Callable] = {
    c.Scan: CommandExecutor._scan,
    c.AutoScan: CommandExecutor._scan,
    c.Chat: CommandExecutor._chat,
    c.OpenFile: CommandExecutor._open_file,
    c.RunCommand: CommandExecutor._run_command,
    c.Reconnect: CommandExecutor._reconnect,
    c.SwitchTheme: CommandExecutor._switch_theme,
    c.SaveTheme: CommandExecutor._save_theme,
    c.SaveSession: CommandExecutor._save_session,
    c.LoadSession: CommandExecutor._load_session,
    c.ListSessions: CommandExecutor._list_sessions,
    c.ToggleWatch: CommandExecutor._toggle_watch,
    c.Undo: CommandExecutor._undo,
    c.FetchUndoHistory: CommandExecutor._undo_history,
    c.FetchSuggestions: CommandExecutor._suggestions,
    c.WhatIf: CommandExecutor._whatif,
    c.FixDryRun: CommandExecutor._dry_run,
    c.MarkFirstRunDone: CommandExecutor._mark_first_run,
    c.ExportReport: CommandExecutor._export_report,
    c.VerifyProvider: CommandExecutor._verify_provider,
    c.SaveProviderConfig: CommandExecutor._save_provider_config,
    c.CompleteOnboarding: CommandExecutor._complete_onboarding,
    c.SaveOnboardingPartial: CommandExecutor._save_onboarding_partial,
}
