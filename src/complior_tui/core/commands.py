"""Deferred async work requests returned by the controller.

// [LAW:one-source-of-truth] The class IS the command tag.
// [LAW:locality-or-seam] Commands are data; the executor is the only place they run.

The controller emits zero or one command per applied action. It never
performs I/O itself.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AppCommand:
    """Base class for all commands."""


@dataclass(frozen=True)
class Scan(AppCommand):
    """User-initiated scan. seq correlates the result with scan_seq."""

    seq: int = 0


@dataclass(frozen=True)
class AutoScan(AppCommand):
    """Scan triggered by watch mode or fix validation; reports score deltas."""

    seq: int = 0


@dataclass(frozen=True)
class Chat(AppCommand):
    text: str
    seq: int = 0


@dataclass(frozen=True)
class OpenFile(AppCommand):
    path: str


@dataclass(frozen=True)
class RunCommand(AppCommand):
    command: str


@dataclass(frozen=True)
class Reconnect(AppCommand):
    pass


@dataclass(frozen=True)
class SwitchTheme(AppCommand):
    name: str


@dataclass(frozen=True)
class SaveTheme(AppCommand):
    name: str


@dataclass(frozen=True)
class SaveSession(AppCommand):
    name: str


@dataclass(frozen=True)
class LoadSession(AppCommand):
    name: str


@dataclass(frozen=True)
class ListSessions(AppCommand):
    pass


@dataclass(frozen=True)
class ToggleWatch(AppCommand):
    """auto marks the watch_on_start toggle made at startup."""

    auto: bool = False


@dataclass(frozen=True)
class Undo(AppCommand):
    entry_id: int | None = None


@dataclass(frozen=True)
class FetchUndoHistory(AppCommand):
    pass


@dataclass(frozen=True)
class FetchSuggestions(AppCommand):
    pass


@dataclass(frozen=True)
class WhatIf(AppCommand):
    scenario: str


@dataclass(frozen=True)
class FixDryRun(AppCommand):
    check_ids: tuple[str, ...]


@dataclass(frozen=True)
class MarkFirstRunDone(AppCommand):
    pass


@dataclass(frozen=True)
class ExportReport(AppCommand):
    pass


@dataclass(frozen=True)
class VerifyProvider(AppCommand):
    """Ask the engine whether an API key works before it is stored."""

    provider_id: str
    api_key: str


@dataclass(frozen=True)
class SaveProviderConfig(AppCommand):
    pass


@dataclass(frozen=True)
class CompleteOnboarding(AppCommand):
    """Persist onboarding answers (theme, provider key, project settings)."""

    answers: tuple[tuple[str, str], ...] = ()
    api_key: str = ""


@dataclass(frozen=True)
class SaveOnboardingPartial(AppCommand):
    step: int
