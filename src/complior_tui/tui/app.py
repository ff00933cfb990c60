"""Textual front-end.

// [LAW:locality-or-seam] Thin shell: translates Textual key and mouse events into
//   KeyEvent / MouseEvent, feeds them to the EventLoop, and paints whatever
//   rendering.render_state returns. No application logic lives here.
// [LAW:single-enforcer] on_key is the sole key dispatcher; BINDINGS stay unused.
"""

from __future__ import annotations

import logging
import traceback

from textual import events
from textual.app import App, ComposeResult
from textual.widgets import Static

from complior_tui.app.event_loop import EventLoop
from complior_tui.tui import rendering
from complior_tui.tui.input_modes import KeyEvent, MouseEvent, MouseKind

logger = logging.getLogger(__name__)

SCREEN_ID = "screen"

# Textual key names that differ from ours
_NAMED_KEYS = {
    "enter": "enter",
    "escape": "esc",
    "backspace": "backspace",
    "tab": "tab",
    "up": "up",
    "down": "down",
    "left": "left",
    "right": "right",
}


def translate_key(key: str, character: str | None) -> KeyEvent | None:
    """Textual key name (and printable character) to a KeyEvent."""
    if key in _NAMED_KEYS:
        return KeyEvent(_NAMED_KEYS[key])
    if key.startswith("ctrl+"):
        return KeyEvent(key.removeprefix("ctrl+"), ctrl=True)
    if key.startswith("alt+"):
        return KeyEvent(key.removeprefix("alt+"), alt=True)
    if character is not None and character.isprintable():
        return KeyEvent(character)
    return None


class CompliorApp(App):
    """Full-screen host for one EventLoop."""

    CSS_PATH = "styles.css"

    def __init__(self, loop: EventLoop, **kwargs):
        super().__init__(**kwargs)
        self._loop = loop
        self._error_log: list[str] = []
        loop.attach_frontend(render=self._paint, size=self._terminal_size)

    def compose(self) -> ComposeResult:
        yield Static(id=SCREEN_ID)

    def on_mount(self) -> None:
        self.run_worker(self._run_loop(), exclusive=True)

    async def _run_loop(self) -> None:
        try:
            await self._loop.run()
        finally:
            self.exit()

    def _terminal_size(self) -> tuple[int, int]:
        return self.size.width, self.size.height

    def _paint(self, state) -> None:
        width, height = self._terminal_size()
        self.query_one(f"#{SCREEN_ID}", Static).update(
            rendering.render_state(state, width=width, height=height)
        )

    def _handle_exception(self, error: Exception) -> None:
        """// [LAW:single-enforcer] Top-level exception handler.

        Logs with a normal Python traceback before Textual tears down, so the
        session log explains the crash.
        """
        tb = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        self._error_log.append(tb)
        logger.error("unhandled exception:\n%s", tb)
        super()._handle_exception(error)

    # ─── Input ───────────────────────────────────────────────────────────────

    async def on_key(self, event: events.Key) -> None:
        key_event = translate_key(event.key, event.character)
        if key_event is None:
            return
        event.prevent_default()
        event.stop()
        self._loop.feed(key_event)

    def on_mouse_scroll_up(self, event: events.MouseScrollUp) -> None:
        self._loop.feed(MouseEvent(MouseKind.SCROLL_UP, event.screen_x, event.screen_y))

    def on_mouse_scroll_down(self, event: events.MouseScrollDown) -> None:
        self._loop.feed(MouseEvent(MouseKind.SCROLL_DOWN, event.screen_x, event.screen_y))

    def on_click(self, event: events.Click) -> None:
        self._loop.feed(MouseEvent(MouseKind.LEFT_DOWN, event.screen_x, event.screen_y))
