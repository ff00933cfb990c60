"""The application event loop: terminal input, worker results and ticks.

// [LAW:single-enforcer] Only this loop calls Controller.apply / apply_event / tick,
// so ApplicationState is mutated from exactly one task.
// [LAW:dataflow-not-control-flow] Each iteration waits for the first ready source,
// processes that one item to completion, then redraws.

Workers post results from their own threads through EventChannel.send(),
which hops onto the loop with call_soon_threadsafe.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from complior_tui.app.controller import Controller
from complior_tui.app.executor import CommandExecutor
from complior_tui.core import commands as c
from complior_tui.core.types import EngineConnectionStatus
from complior_tui.io import sessions
from complior_tui.io.settings import TuiConfig
from complior_tui.overlays.onboarding import OnboardingOverlay, OnboardingWizard
from complior_tui.overlays.provider_setup import ProviderSetupOverlay
from complior_tui.overlays.text_filter import GettingStartedOverlay
from complior_tui.pipeline.engine_process import EngineProcessError, EngineProcessStatus, EngineSupervisor
from complior_tui.tui.input_modes import KeyEvent, MouseEvent, map_key, map_mouse

logger = logging.getLogger(__name__)

HEALTH_CHECK_EVERY = 20


class EventChannel:
    """Thread-safe inbox for worker results."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._early: list = []

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        early, self._early = self._early, []
        for event in early:
            self._queue.put_nowait(event)

    def send(self, event) -> None:
        """Callable from any thread. Events sent before bind() are held until then."""
        if self._loop is None:
            self._early.append(event)
            return
        self._loop.call_soon_threadsafe(self._queue.put_nowait, event)

    async def get(self):
        return await self._queue.get()

    def pending(self) -> int:
        return self._queue.qsize()


class EventLoop:
    def __init__(
        self,
        controller: Controller,
        executor: CommandExecutor,
        channel: EventChannel,
        config: TuiConfig | None = None,
        supervisor: EngineSupervisor | None = None,
        resume: bool = False,
        render: Callable[[object], None] | None = None,
        size: Callable[[], tuple[int, int]] | None = None,
        health_every: int = HEALTH_CHECK_EVERY,
    ):
        self.controller = controller
        self.executor = executor
        self.channel = channel
        self.config = config if config is not None else TuiConfig()
        self.supervisor = supervisor
        self.resume = resume
        self.health_every = health_every
        self._render = render or (lambda _state: None)
        self._size = size or (lambda: (80, 24))
        self._terminal: asyncio.Queue = asyncio.Queue()
        self._terminal_task: asyncio.Task | None = None
        self._channel_task: asyncio.Task | None = None
        self._tick_rate = self.config.tick_rate_ms / 1000
        self._next_tick = 0.0
        self.tick_count = 0

    @property
    def state(self):
        return self.controller.state

    # ─── Input from the front-end ────────────────────────────────────────────

    def attach_frontend(
        self,
        render: Callable[[object], None],
        size: Callable[[], tuple[int, int]],
    ) -> None:
        self._render = render
        self._size = size

    def feed(self, event: KeyEvent | MouseEvent) -> None:
        """Queue a terminal event. Must be called on the loop thread."""
        self._terminal.put_nowait(event)

    # ─── Lifecycle ───────────────────────────────────────────────────────────

    async def run(self) -> None:
        self.channel.bind(asyncio.get_running_loop())
        await self.startup()
        self._next_tick = time.monotonic() + self._tick_rate
        try:
            while self.state.running:
                self.redraw()
                source, item = await self._next_item()
                await self.process(source, item)
        finally:
            self._cancel_waiters()
            self.shutdown()

    def redraw(self) -> None:
        width, height = self._size()
        self.controller.rebuild_click_areas(width, height)
        self._render(self.state)

    async def startup(self) -> None:
        state = self.state
        if self.resume:
            self._resume_session()
        self._open_first_run_overlay()

        client = self.executor.client
        if self.supervisor is not None and self.supervisor.status is EngineProcessStatus.STARTING:
            state.engine_status = EngineConnectionStatus.CONNECTING
            state.post("Starting engine...")
            self.redraw()
            if await asyncio.to_thread(self.supervisor.wait_until_ready, client):
                state.engine_status = EngineConnectionStatus.CONNECTED
                state.post(f"Engine ready on port {self.supervisor.port}.")
            else:
                state.engine_status = EngineConnectionStatus.DISCONNECTED
                state.post("Engine failed to start. Use /reconnect or restart.")
        elif await asyncio.to_thread(client.is_ready):
            state.engine_status = EngineConnectionStatus.CONNECTED
            state.post("Connected to engine.")
        else:
            state.engine_status = EngineConnectionStatus.DISCONNECTED
            state.post("Engine not running. Start with: cd engine && npm run dev")

        if self.config.watch_on_start:
            self.executor.submit(c.ToggleWatch(auto=True))

    def shutdown(self) -> None:
        """Stop the watcher, kill the engine, autosave. Safe to call twice."""
        self.executor.stop_watcher()
        if self.supervisor is not None:
            self.supervisor.shutdown()
        try:
            sessions.save_session(sessions.AUTOSAVE_NAME, self.state.to_session_data())
        except OSError as exc:
            logger.warning("failed to autosave session: %s", exc)

    def _resume_session(self) -> None:
        try:
            data = sessions.load_session(sessions.AUTOSAVE_NAME)
        except (OSError, ValueError) as exc:
            logger.info("no session to resume: %s", exc)
            return
        self.state.load_session_data(data)
        logger.info("resumed session %r", sessions.AUTOSAVE_NAME)

    def _open_first_run_overlay(self) -> None:
        state = self.state
        if not self.config.onboarding_completed:
            step = self.config.onboarding_last_step
            wizard = OnboardingWizard.resume(step) if step is not None else OnboardingWizard()
            state.overlay = OnboardingOverlay(wizard)
        elif not sessions.first_run_done():
            state.overlay = GettingStartedOverlay()
        elif not state.provider_config.is_configured():
            state.overlay = ProviderSetupOverlay()

    # ─── One iteration ───────────────────────────────────────────────────────

    async def _next_item(self) -> tuple[str, object]:
        if self._terminal_task is None:
            self._terminal_task = asyncio.ensure_future(self._terminal.get())
        if self._channel_task is None:
            self._channel_task = asyncio.ensure_future(self.channel.get())

        # a due tick is taken before any queued item
        now = time.monotonic()
        if now >= self._next_tick:
            self._next_tick = now + self._tick_rate
            return "tick", None

        timeout = self._next_tick - now
        done, _pending = await asyncio.wait(
            {self._terminal_task, self._channel_task},
            timeout=timeout,
            return_when=asyncio.FIRST_COMPLETED,
        )
        # terminal input wins a tie so keys stay responsive under streaming load
        if self._terminal_task in done:
            task, self._terminal_task = self._terminal_task, None
            return "terminal", task.result()
        if self._channel_task in done:
            task, self._channel_task = self._channel_task, None
            return "channel", task.result()
        self._next_tick = time.monotonic() + self._tick_rate
        return "tick", None

    async def process(self, source: str, item: object) -> None:
        if source == "terminal":
            self.executor.submit(self.controller.apply(self._map(item)))
        elif source == "channel":
            self.executor.submit(self.controller.apply_event(item))
        else:
            self.executor.submit(self.controller.tick())
            self.tick_count += 1
            if self.tick_count % self.health_every == 0:
                await self.check_engine_health()

    def _map(self, event: KeyEvent | MouseEvent):
        if isinstance(event, KeyEvent):
            return map_key(event, self.controller.key_context())
        state = self.state
        return map_mouse(
            event,
            state.click_areas,
            state.scroll_events,
            time.monotonic(),
            state.scroll_acceleration,
        )

    async def check_engine_health(self) -> None:
        """Restart a dead engine we launched ourselves."""
        supervisor = self.supervisor
        if supervisor is None or supervisor.is_alive():
            return
        if supervisor.status is not EngineProcessStatus.STOPPED:
            return

        state = self.state
        logger.warning("engine process died, attempting restart")
        try:
            port = supervisor.try_restart()
        except EngineProcessError as exc:
            state.engine_status = EngineConnectionStatus.ERROR
            state.post(f"Engine restart failed: {exc}")
            return

        self.executor.client.base_url = supervisor.engine_url()
        state.engine_status = EngineConnectionStatus.CONNECTING
        state.post(f"Engine restarting on port {port}...")
        self.redraw()
        if await asyncio.to_thread(supervisor.wait_until_ready, self.executor.client):
            state.engine_status = EngineConnectionStatus.CONNECTED
            state.post(f"Engine ready on port {port}.")
        else:
            state.engine_status = EngineConnectionStatus.DISCONNECTED

    def _cancel_waiters(self) -> None:
        for task in (self._terminal_task, self._channel_task):
            if task is not None:
                task.cancel()
        self._terminal_task = None
        self._channel_task = None
