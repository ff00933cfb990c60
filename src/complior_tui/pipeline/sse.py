"""Incremental decoder for the engine's chat event stream.

// [LAW:single-enforcer] extract_event is the sole stream validation boundary.
// [LAW:dataflow-not-control-flow] Named events dispatch through _NAMED_EVENT_PARSERS.

Frames are `event: <name>` (optional) and `data: <payload>` lines terminated
by a blank line. Parsing never blocks and never raises: malformed JSON
degrades to a plain Token carrying the raw payload.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass

from complior_tui.core.types import JsonDict

FRAME_TERMINATOR = "\n\n"


# ─── Event hierarchy ──────────────────────────────────────────────────────────
# // [LAW:one-source-of-truth] The class IS the type.


@dataclass(frozen=True)
class SseEvent:
    """Base class for all stream events."""


@dataclass(frozen=True)
class Token(SseEvent):
    text: str


@dataclass(frozen=True)
class Thinking(SseEvent):
    text: str


@dataclass(frozen=True)
class ToolCall(SseEvent):
    id: str
    name: str
    args: object = None


@dataclass(frozen=True)
class ToolResult(SseEvent):
    id: str
    name: str
    result: object = None
    is_error: bool = False


@dataclass(frozen=True)
class Usage(SseEvent):
    prompt_tokens: int
    completion_tokens: int


@dataclass(frozen=True)
class Done(SseEvent):
    pass


@dataclass(frozen=True)
class Error(SseEvent):
    message: str


# ─── Named event parsers ──────────────────────────────────────────────────────


def _thinking(obj: JsonDict) -> SseEvent:
    return Thinking(str(obj.get("content", "")))


def _text(obj: JsonDict) -> SseEvent:
    return Token(str(obj.get("content", "")))


def _tool_call(obj: JsonDict) -> SseEvent:
    return ToolCall(
        id=str(obj.get("toolCallId", "")),
        name=str(obj.get("toolName", "")),
        args=obj.get("args"),
    )


def _tool_result(obj: JsonDict) -> SseEvent:
    return ToolResult(
        id=str(obj.get("toolCallId", "")),
        name=str(obj.get("toolName", "")),
        result=obj.get("result"),
        is_error=bool(obj.get("isError", False)),
    )


def _usage(obj: JsonDict) -> SseEvent:
    return Usage(
        prompt_tokens=int(obj.get("promptTokens", 0) or 0),
        completion_tokens=int(obj.get("completionTokens", 0) or 0),
    )


def _error(obj: JsonDict) -> SseEvent:
    return Error(str(obj.get("message", "Unknown error")))


_NAMED_EVENT_PARSERS: dict[str, Callable[[JsonDict], SseEvent]] = {
    "thinking": _thinking,
    "text": _text,
    "tool_call": _tool_call,
    "tool_result": _tool_result,
    "usage": _usage,
    "error": _error,
}


def _loads_object(data: str) -> JsonDict | None:
    try:
        obj = json.loads(data)
    except json.JSONDecodeError:
        return None
    return obj if isinstance(obj, dict) else None


def _parse_named(name: str, data: str) -> SseEvent:
    if name == "done":
        return Done()
    parser = _NAMED_EVENT_PARSERS.get(name)
    obj = _loads_object(data)
    if parser is None or obj is None:
        # error frames keep their raw text as the message
        return Error(data) if name == "error" else Token(data)
    try:
        return parser(obj)
    except (TypeError, ValueError):
        return Token(data)


def _parse_unnamed(data: str) -> SseEvent:
    if data == "[DONE]":
        return Done()
    obj = _loads_object(data)
    if obj is None:
        return Token(data)
    choices = obj.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        delta = choices[0].get("delta")
        if isinstance(delta, dict) and isinstance(delta.get("content"), str):
            return Token(delta["content"])
    if isinstance(obj.get("text"), str):
        return Token(obj["text"])
    return Token(data)


def extract_event(buffer: str) -> tuple[SseEvent | None, str]:
    """Consume at most one complete frame from buffer.

    Returns (event, remaining_buffer). Without a complete frame the buffer
    is returned unchanged. A complete frame with no data lines is consumed
    and yields None.
    """
    end = buffer.find(FRAME_TERMINATOR)
    if end < 0:
        return None, buffer

    frame = buffer[:end]
    rest = buffer[end + len(FRAME_TERMINATOR):]

    name: str | None = None
    data_lines: list[str] = []
    for line in frame.split("\n"):
        line = line.rstrip("\r")
        if line.startswith("event:"):
            name = line[len("event:"):].strip()
        elif line.startswith("data:"):
            data_lines.append(line[len("data:"):].removeprefix(" "))

    if not data_lines:
        return None, rest

    data = "\n".join(data_lines)
    event = _parse_named(name, data) if name else _parse_unnamed(data)
    return event, rest


@dataclass
class SseBuffer:
    """Accumulates network chunks and drains every complete frame."""

    pending: str = ""

    def feed(self, chunk: str) -> list[SseEvent]:
        self.pending += chunk.replace("\r\n", "\n")
        events: list[SseEvent] = []
        while True:
            before = self.pending
            event, self.pending = extract_event(self.pending)
            if event is not None:
                events.append(event)
            elif self.pending == before:
                return events
