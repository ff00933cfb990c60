"""Shared value types for the complior TUI.

// [LAW:one-source-of-truth] Enums and engine payload shapes are defined once here.
// [LAW:single-enforcer] ScanResult.from_json is the sole engine-payload validation boundary.

This module is STABLE. Safe for `from` imports everywhere.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum, auto


# ─── Type alias for JSON-parsed dicts ─────────────────────────────────────────

JsonDict = dict[str, object]


# ─── Enums ────────────────────────────────────────────────────────────────────


class ViewState(Enum):
    """Top-level screens, numbered 1-6 in the footer."""

    DASHBOARD = 1
    SCAN = 2
    FIX = 3
    CHAT = 4
    TIMELINE = 5
    REPORT = 6

    @classmethod
    def from_key(cls, number: int) -> ViewState | None:
        try:
            return cls(number)
        except ValueError:
            return None

    @property
    def label(self) -> str:
        return self.name.capitalize()


class Panel(Enum):
    CHAT = auto()
    SCORE = auto()
    FILE_BROWSER = auto()
    CODE_VIEWER = auto()
    TERMINAL = auto()
    DIFF_PREVIEW = auto()


class InputMode(Enum):
    """Editing modes. NORMAL routes single keys to actions, INSERT/COMMAND edit text."""

    NORMAL = auto()
    INSERT = auto()
    COMMAND = auto()
    VISUAL = auto()


class Mode(Enum):
    """Workflow mode cycled with Tab in NORMAL mode."""

    SCAN = "scan"
    FIX = "fix"
    WATCH = "watch"

    def next(self) -> Mode:
        return _MODE_CYCLE[self]


_MODE_CYCLE = {Mode.SCAN: Mode.FIX, Mode.FIX: Mode.WATCH, Mode.WATCH: Mode.SCAN}


class EngineConnectionStatus(Enum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"


class MessageRole(Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Severity(Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


class Zone(Enum):
    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"


class ToastKind(Enum):
    SUCCESS = "[OK]"
    INFO = "[i]"
    WARNING = "[!]"
    ERROR = "[X]"


class OverlayKind(Enum):
    COMMAND_PALETTE = auto()
    FILE_PICKER = auto()
    HELP = auto()
    GETTING_STARTED = auto()
    MODEL_SELECTOR = auto()
    PROVIDER_SETUP = auto()
    THEME_PICKER = auto()
    ONBOARDING = auto()
    CONFIRM_DIALOG = auto()
    DISMISS_MODAL = auto()
    UNDO_HISTORY = auto()


class ActivityKind(Enum):
    SCAN = "scan"
    FIX = "fix"
    CHAT = "chat"
    FILE_OPEN = "file"
    WATCH = "watch"


# ─── Chat ─────────────────────────────────────────────────────────────────────


@dataclass
class ChatMessage:
    """One entry in the message log.

    blocks carries structured parts of assistant turns as tuples:
    ("thinking", text), ("tool_call", name, args),
    ("tool_result", name, result, is_error), ("text", text).
    """

    role: MessageRole
    content: str
    blocks: list[tuple] = field(default_factory=list)

    def to_json(self) -> JsonDict:
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def from_json(cls, raw: JsonDict) -> ChatMessage:
        return cls(role=MessageRole(raw["role"]), content=str(raw.get("content", "")))


def system_message(text: str) -> ChatMessage:
    return ChatMessage(MessageRole.SYSTEM, text)


# ─── Engine payloads ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Finding:
    check_id: str
    type: str
    message: str
    severity: Severity
    obligation_id: str | None = None
    article_reference: str | None = None
    fix: str | None = None

    @classmethod
    def from_json(cls, raw: JsonDict) -> Finding:
        return cls(
            check_id=str(raw["checkId"]),
            type=str(raw.get("type", "")),
            message=str(raw["message"]),
            severity=Severity(raw["severity"]),
            obligation_id=raw.get("obligationId"),
            article_reference=raw.get("articleReference"),
            fix=raw.get("fix"),
        )

    def to_json(self) -> JsonDict:
        return {
            "checkId": self.check_id,
            "type": self.type,
            "message": self.message,
            "severity": self.severity.value,
            "obligationId": self.obligation_id,
            "articleReference": self.article_reference,
            "fix": self.fix,
        }


@dataclass(frozen=True)
class ScoreBreakdown:
    total_score: float
    zone: Zone
    total_checks: int = 0
    passed_checks: int = 0
    failed_checks: int = 0
    skipped_checks: int = 0
    critical_cap_applied: bool = False
    category_scores: tuple[JsonDict, ...] = ()

    @classmethod
    def from_json(cls, raw: JsonDict) -> ScoreBreakdown:
        return cls(
            total_score=float(raw["totalScore"]),
            zone=Zone(raw["zone"]),
            total_checks=int(raw.get("totalChecks", 0)),
            passed_checks=int(raw.get("passedChecks", 0)),
            failed_checks=int(raw.get("failedChecks", 0)),
            skipped_checks=int(raw.get("skippedChecks", 0)),
            critical_cap_applied=bool(raw.get("criticalCapApplied", False)),
            category_scores=tuple(raw.get("categoryScores", ())),
        )

    def to_json(self) -> JsonDict:
        return {
            "totalScore": self.total_score,
            "zone": self.zone.value,
            "totalChecks": self.total_checks,
            "passedChecks": self.passed_checks,
            "failedChecks": self.failed_checks,
            "skippedChecks": self.skipped_checks,
            "criticalCapApplied": self.critical_cap_applied,
            "categoryScores": list(self.category_scores),
        }


@dataclass(frozen=True)
class ScanResult:
    score: ScoreBreakdown
    findings: tuple[Finding, ...]
    project_path: str = ""
    scanned_at: str = ""
    duration: int = 0
    files_scanned: int = 0

    @classmethod
    def from_json(cls, raw: JsonDict) -> ScanResult:
        """Build from the engine's camelCase payload.

        Raises ValueError when a required field is missing or has the wrong type.
        """
        try:
            return cls(
                score=ScoreBreakdown.from_json(raw["score"]),
                findings=tuple(Finding.from_json(f) for f in raw.get("findings", ())),
                project_path=str(raw.get("projectPath", "")),
                scanned_at=str(raw.get("scannedAt", "")),
                duration=int(raw.get("duration", 0)),
                files_scanned=int(raw.get("filesScanned", 0)),
            )
        except (KeyError, TypeError) as exc:
            raise ValueError(f"malformed scan result: {exc!r}") from exc

    def to_json(self) -> JsonDict:
        return {
            "score": self.score.to_json(),
            "findings": [f.to_json() for f in self.findings],
            "projectPath": self.project_path,
            "scannedAt": self.scanned_at,
            "duration": self.duration,
            "filesScanned": self.files_scanned,
        }


# ─── UI state value types ─────────────────────────────────────────────────────


@dataclass
class FileEntry:
    path: str
    name: str
    is_dir: bool
    depth: int = 0
    expanded: bool = False


@dataclass
class Selection:
    start_line: int
    end_line: int


@dataclass(frozen=True)
class DiffContent:
    file_path: str
    lines: tuple[str, ...] = ()


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    def contains(self, col: int, row: int) -> bool:
        return self.x <= col < self.x + self.width and self.y <= row < self.y + self.height


# ─── Click targets ────────────────────────────────────────────────────────────
# // [LAW:one-source-of-truth] The class IS the target kind.


@dataclass(frozen=True)
class ClickTarget:
    """Base class for mouse hit-test targets."""


@dataclass(frozen=True)
class ViewTab(ClickTarget):
    view: ViewState


@dataclass(frozen=True)
class PanelFocus(ClickTarget):
    panel: Panel


@dataclass(frozen=True)
class FindingRow(ClickTarget):
    index: int


@dataclass(frozen=True)
class FixCheckbox(ClickTarget):
    index: int


@dataclass(frozen=True)
class SidebarToggle(ClickTarget):
    pass


# ─── Activity, toasts, suggestions ────────────────────────────────────────────


@dataclass(frozen=True)
class ActivityEntry:
    timestamp: str
    kind: ActivityKind
    detail: str


TOAST_TTL_SECONDS = 3.0
MAX_VISIBLE_TOASTS = 5


@dataclass
class Toast:
    kind: ToastKind
    message: str
    created_at: float = field(default_factory=time.monotonic)

    def is_expired(self, now: float | None = None) -> bool:
        now = time.monotonic() if now is None else now
        return now - self.created_at >= TOAST_TTL_SECONDS


@dataclass
class ToastStack:
    toasts: list[Toast] = field(default_factory=list)

    def push(self, kind: ToastKind, message: str) -> None:
        self.toasts.append(Toast(kind, message))
        if len(self.toasts) > MAX_VISIBLE_TOASTS:
            del self.toasts[0]

    def gc(self, now: float | None = None) -> int:
        before = len(self.toasts)
        self.toasts = [t for t in self.toasts if not t.is_expired(now)]
        return before - len(self.toasts)

    def latest(self) -> Toast | None:
        return self.toasts[-1] if self.toasts else None


class SuggestionKind(Enum):
    TIP = "tip"
    FIX = "fix"
    DEADLINE = "deadline"
    SCORE = "score"
    NEW = "new"

    @classmethod
    def parse(cls, raw: object) -> SuggestionKind:
        try:
            return cls(raw)
        except ValueError:
            return cls.TIP


@dataclass(frozen=True)
class Suggestion:
    kind: SuggestionKind
    text: str
    detail: str | None = None


SUGGESTION_DISMISS_COOLDOWN = 30.0


@dataclass
class IdleSuggestionState:
    current: Suggestion | None = None
    last_input: float = field(default_factory=time.monotonic)
    fetch_pending: bool = False
    dismissed_at: float | None = None

    def reset_timer(self) -> None:
        self.last_input = time.monotonic()

    def is_idle(self, seconds: float) -> bool:
        return time.monotonic() - self.last_input >= seconds

    def dismiss(self) -> None:
        self.current = None
        self.fetch_pending = False
        self.dismissed_at = time.monotonic()

    def recently_dismissed(self) -> bool:
        return (
            self.dismissed_at is not None
            and time.monotonic() - self.dismissed_at < SUGGESTION_DISMISS_COOLDOWN
        )


@dataclass(frozen=True)
class UndoEntry:
    id: int
    timestamp: str
    action: str
    status: str
    score_delta: float | None = None

    @classmethod
    def from_json(cls, raw: JsonDict) -> UndoEntry | None:
        """Tolerant parse: entries without an integer id are skipped (None)."""
        entry_id = raw.get("id")
        if not isinstance(entry_id, int):
            return None
        status = raw.get("status", "applied")
        delta = raw.get("scoreDelta")
        return cls(
            id=entry_id,
            timestamp=str(raw.get("timestamp", "")),
            action=str(raw.get("action", "")),
            status=status if status in ("applied", "undone", "baseline") else "applied",
            score_delta=float(delta) if isinstance(delta, (int, float)) else None,
        )
