"""Tests for EventChannel and EventLoop: startup overlays, health checks, shutdown."""

import asyncio
import threading
import time
from unittest.mock import MagicMock

import pytest

from complior_tui.app import channel_events as ev
from complior_tui.app.event_loop import EventChannel, EventLoop
from complior_tui.app.executor import CommandExecutor
from complior_tui.core import commands as c
from complior_tui.core.providers import ProviderConfig
from complior_tui.core.types import EngineConnectionStatus
from complior_tui.io import sessions
from complior_tui.io.sessions import SessionData
from complior_tui.io.settings import TuiConfig
from complior_tui.overlays.onboarding import OnboardingOverlay
from complior_tui.overlays.provider_setup import ProviderSetupOverlay
from complior_tui.overlays.text_filter import GettingStartedOverlay
from complior_tui.pipeline.engine_process import EngineProcessError, EngineProcessStatus
from complior_tui.tui.input_modes import KeyEvent

ONBOARDED = TuiConfig(onboarding_completed=True)


@pytest.fixture
def executor():
    executor = MagicMock(spec=CommandExecutor)
    executor.client = MagicMock()
    executor.client.is_ready.return_value = False
    return executor


@pytest.fixture
def make_loop(controller, executor, xdg_dirs):
    def make(**kwargs):
        return EventLoop(controller, executor, EventChannel(), **kwargs)
    return make


def dead_supervisor(**kwargs):
    supervisor = MagicMock()
    supervisor.is_alive.return_value = False
    supervisor.status = EngineProcessStatus.STOPPED
    supervisor.engine_url.return_value = "http://127.0.0.1:4200"
    supervisor.configure_mock(**kwargs)
    return supervisor


class TestEventChannel:
    async def test_events_before_bind_are_held(self):
        channel = EventChannel()
        channel.send("early")
        assert channel.pending() == 0
        channel.bind(asyncio.get_running_loop())
        assert await channel.get() == "early"

    async def test_send_from_worker_thread(self):
        channel = EventChannel()
        channel.bind(asyncio.get_running_loop())
        worker = threading.Thread(target=channel.send, args=("from-thread",))
        worker.start()
        worker.join()
        assert await asyncio.wait_for(channel.get(), timeout=1.0) == "from-thread"


class TestStartupOverlays:
    async def test_onboarding_when_not_completed(self, make_loop, state):
        await make_loop().startup()
        assert isinstance(state.overlay, OnboardingOverlay)
        assert state.overlay.wizard.current_step == 0

    async def test_onboarding_resumes_partial_progress(self, make_loop, state):
        await make_loop(config=TuiConfig(onboarding_last_step=3)).startup()
        assert state.overlay.wizard.current_step == 3

    async def test_getting_started_after_onboarding(self, make_loop, state):
        await make_loop(config=ONBOARDED).startup()
        assert isinstance(state.overlay, GettingStartedOverlay)

    async def test_provider_setup_when_unconfigured(self, make_loop, state):
        sessions.mark_first_run_done()
        await make_loop(config=ONBOARDED).startup()
        assert isinstance(state.overlay, ProviderSetupOverlay)

    async def test_no_overlay_when_fully_set_up(self, make_loop, state):
        sessions.mark_first_run_done()
        state.provider_config = ProviderConfig("openai", "gpt-4o", {"openai": "sk-x"})
        await make_loop(config=ONBOARDED).startup()
        assert state.overlay is None


class TestStartupEngine:
    async def test_engine_not_running(self, make_loop, state):
        await make_loop().startup()
        assert state.engine_status is EngineConnectionStatus.DISCONNECTED
        assert state.messages[-1].content == "Engine not running. Start with: cd engine && npm run dev"

    async def test_external_engine_connected(self, make_loop, executor, state):
        executor.client.is_ready.return_value = True
        await make_loop().startup()
        assert state.engine_status is EngineConnectionStatus.CONNECTED
        assert state.messages[-1].content == "Connected to engine."

    async def test_waits_for_spawned_engine(self, make_loop, state):
        supervisor = MagicMock(status=EngineProcessStatus.STARTING, port=4100)
        supervisor.wait_until_ready.return_value = True
        renders = []
        loop = make_loop(supervisor=supervisor, render=renders.append)
        await loop.startup()
        assert state.engine_status is EngineConnectionStatus.CONNECTED
        assert state.messages[-1].content == "Engine ready on port 4100."
        assert renders

    async def test_spawned_engine_never_ready(self, make_loop, state):
        supervisor = MagicMock(status=EngineProcessStatus.STARTING, port=4100)
        supervisor.wait_until_ready.return_value = False
        await make_loop(supervisor=supervisor).startup()
        assert state.engine_status is EngineConnectionStatus.DISCONNECTED

    async def test_watch_on_start(self, make_loop, executor):
        await make_loop(config=TuiConfig(watch_on_start=True)).startup()
        executor.submit.assert_called_once_with(c.ToggleWatch(auto=True))

    async def test_resume_loads_autosave(self, make_loop, state):
        sessions.save_session(sessions.AUTOSAVE_NAME, SessionData(score_history=[42.0]))
        await make_loop(resume=True).startup()
        assert state.score_history == [42.0]

    async def test_resume_without_autosave(self, make_loop, state):
        await make_loop(resume=True).startup()
        assert state.score_history == []


class TestProcess:
    async def test_terminal_key_goes_through_controller(self, make_loop, executor, state):
        await make_loop().process("terminal", KeyEvent("c", ctrl=True))
        assert state.running is False
        executor.submit.assert_called_once_with(None)

    async def test_channel_event_applied(self, make_loop, state):
        await make_loop().process("channel", ev.FileOpened("a.py", "x"))
        assert state.open_file_path == "a.py"

    async def test_tick_counts(self, make_loop):
        loop = make_loop()
        await loop.process("tick", None)
        assert loop.tick_count == 1


class TestNextItem:
    async def test_due_tick_beats_waiting_channel_event(self, make_loop):
        loop = make_loop()
        loop.channel.bind(asyncio.get_running_loop())
        loop.channel.send(ev.FileOpened("a.py", "x"))
        await asyncio.sleep(0)
        loop._next_tick = 0.0
        try:
            assert await loop._next_item() == ("tick", None)
            source, item = await loop._next_item()
            assert source == "channel"
            assert item == ev.FileOpened("a.py", "x")
        finally:
            loop._cancel_waiters()

    async def test_busy_channel_still_ticks(self, make_loop):
        loop = make_loop(config=TuiConfig(tick_rate_ms=10))
        loop.channel.bind(asyncio.get_running_loop())
        for i in range(50):
            loop.channel.send(ev.FileOpened(f"{i}.py", "x"))
        await asyncio.sleep(0)
        loop._next_tick = time.monotonic() + 60
        try:
            sources = [(await loop._next_item())[0] for _ in range(5)]
            assert sources == ["channel"] * 5
            loop._next_tick = 0.0
            assert (await loop._next_item())[0] == "tick"
        finally:
            loop._cancel_waiters()


class TestHealthCheck:
    async def test_restarts_dead_engine(self, make_loop, executor, state):
        supervisor = dead_supervisor()
        supervisor.try_restart.return_value = 4200
        supervisor.wait_until_ready.return_value = True
        loop = make_loop(supervisor=supervisor, health_every=1)
        await loop.process("tick", None)
        assert executor.client.base_url == "http://127.0.0.1:4200"
        assert state.engine_status is EngineConnectionStatus.CONNECTED
        assert state.messages[-1].content == "Engine ready on port 4200."

    async def test_restart_budget_exhausted(self, make_loop, state):
        supervisor = dead_supervisor()
        supervisor.try_restart.side_effect = EngineProcessError("Max restarts (3) exceeded")
        await make_loop(supervisor=supervisor).check_engine_health()
        assert state.engine_status is EngineConnectionStatus.ERROR
        assert state.messages[-1].content == "Engine restart failed: Max restarts (3) exceeded"

    async def test_failed_engine_is_left_alone(self, make_loop):
        supervisor = dead_supervisor(status=EngineProcessStatus.FAILED)
        await make_loop(supervisor=supervisor).check_engine_health()
        supervisor.try_restart.assert_not_called()

    async def test_live_engine_is_left_alone(self, make_loop):
        supervisor = dead_supervisor()
        supervisor.is_alive.return_value = True
        await make_loop(supervisor=supervisor).check_engine_health()
        supervisor.try_restart.assert_not_called()

    async def test_health_checked_only_every_n_ticks(self, make_loop):
        supervisor = dead_supervisor(status=EngineProcessStatus.FAILED)
        loop = make_loop(supervisor=supervisor, health_every=3)
        for _ in range(2):
            await loop.process("tick", None)
        supervisor.is_alive.assert_not_called()
        await loop.process("tick", None)
        supervisor.is_alive.assert_called_once()


class TestShutdown:
    def test_autosaves_and_stops_everything(self, make_loop, executor, state):
        supervisor = MagicMock()
        state.score_history = [10.0, 20.0]
        make_loop(supervisor=supervisor).shutdown()
        executor.stop_watcher.assert_called_once()
        supervisor.shutdown.assert_called_once()
        assert sessions.load_session(sessions.AUTOSAVE_NAME).score_history == [10.0, 20.0]


class TestRun:
    async def test_quit_key_ends_run(self, make_loop, state):
        sessions.mark_first_run_done()
        state.provider_config = ProviderConfig("openai", "gpt-4o", {"openai": "sk-x"})
        renders = []
        loop = make_loop(config=ONBOARDED, render=renders.append, size=lambda: (100, 30))
        loop.feed(KeyEvent("c", ctrl=True))
        await asyncio.wait_for(loop.run(), timeout=5.0)
        assert state.running is False
        assert renders
        assert state.click_areas
        assert sessions.AUTOSAVE_NAME in sessions.list_sessions()
