"""Engine child-process supervisor.

// [LAW:single-enforcer] EngineSupervisor is the sole owner of the engine subprocess.
// [LAW:locality-or-seam] Spawn, health polling and restart budgeting are isolated here.

The supervisor is synchronous. The event loop calls the blocking
wait_until_ready() through asyncio.to_thread.
"""

from __future__ import annotations

import logging
import os
import socket
import subprocess
import threading
import time
from collections.abc import Callable
from enum import Enum
from pathlib import Path

from complior_tui.pipeline.engine_client import EngineClient

logger = logging.getLogger(__name__)

MAX_RESTARTS = 3
ENGINE_HOST = "127.0.0.1"


class EngineProcessError(Exception):
    """The engine could not be started or restarted."""


class EngineProcessStatus(Enum):
    NOT_STARTED = "not_started"
    STARTING = "starting"
    RUNNING = "running"
    STOPPED = "stopped"
    EXTERNAL = "external"
    FAILED = "failed"


def find_free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((ENGINE_HOST, 0))
        return sock.getsockname()[1]


def drain_output(stream, label: str) -> None:
    """Forward one child pipe to the log, line by line, until it closes."""
    with stream:
        for raw in stream:
            line = raw.decode("utf-8", "replace") if isinstance(raw, bytes) else raw
            logger.debug("engine %s: %s", label, line.rstrip())


class EngineSupervisor:
    """Launches `npx tsx src/server.ts` and tracks its health.

    Usable as a context manager; the child is killed on every exit path.
    """

    def __init__(
        self,
        engine_dir: str | os.PathLike[str],
        port_finder: Callable[[], int] | None = None,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
    ):
        self.engine_dir = Path(engine_dir)
        self.port = 0
        self.status = EngineProcessStatus.NOT_STARTED
        self.restart_count = 0
        self._child: subprocess.Popen | None = None
        self._port_finder = port_finder or find_free_port
        self._popen = popen

    @classmethod
    def external(cls, port: int) -> EngineSupervisor:
        """Supervisor for an engine someone else runs (--engine-url)."""
        supervisor = cls(Path())
        supervisor.port = port
        supervisor.status = EngineProcessStatus.EXTERNAL
        return supervisor

    def __enter__(self) -> EngineSupervisor:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    def engine_url(self) -> str:
        return f"http://{ENGINE_HOST}:{self.port}"

    def start(self) -> int:
        entry = self.engine_dir / "src" / "server.ts"
        if not entry.exists():
            raise EngineProcessError(f"Engine not found at {entry}")

        try:
            port = self._port_finder()
        except OSError as exc:
            raise EngineProcessError(f"Cannot find free port: {exc}") from exc

        env = dict(os.environ, PORT=str(port))
        try:
            self._child = self._popen(
                ["npx", "tsx", "src/server.ts"],
                cwd=str(self.engine_dir),
                env=env,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as exc:
            raise EngineProcessError(f"Failed to spawn engine: {exc}") from exc

        # an undrained pipe fills up and blocks the engine on its next write
        for label in ("stdout", "stderr"):
            stream = getattr(self._child, label, None)
            if stream is not None:
                threading.Thread(
                    target=drain_output, args=(stream, label), name=f"engine-{label}", daemon=True
                ).start()

        self.port = port
        self.status = EngineProcessStatus.STARTING
        logger.info("engine spawned on port %d (pid %s)", port, getattr(self._child, "pid", "?"))
        return port

    def wait_until_ready(
        self,
        client: EngineClient,
        max_attempts: int = 30,
        interval: float = 0.2,
        sleep: Callable[[float], None] = time.sleep,
    ) -> bool:
        """Poll /status until ready. Blocks up to max_attempts * interval seconds."""
        for _ in range(max_attempts):
            sleep(interval)
            if client.is_ready():
                self.status = EngineProcessStatus.RUNNING
                return True
        logger.warning("engine not ready after %d attempts", max_attempts)
        return False

    def is_alive(self) -> bool:
        if self.status is EngineProcessStatus.EXTERNAL:
            return True
        if self.status is EngineProcessStatus.FAILED:
            return False
        if self._child is None:
            return False
        if self._child.poll() is None:
            return True
        self.status = EngineProcessStatus.STOPPED
        return False

    def try_restart(self) -> int:
        if self.status is EngineProcessStatus.EXTERNAL:
            raise EngineProcessError("Cannot restart external engine")
        if self.restart_count >= MAX_RESTARTS:
            self.status = EngineProcessStatus.FAILED
            raise EngineProcessError(f"Max restarts ({MAX_RESTARTS}) exceeded")
        self.restart_count += 1
        logger.info("restarting engine (attempt %d/%d)", self.restart_count, MAX_RESTARTS)
        self.shutdown()
        return self.start()

    def shutdown(self) -> None:
        child, self._child = self._child, None
        if child is not None:
            try:
                child.kill()
            except OSError:
                logger.debug("engine already exited")
            child.wait()
        if self.status is not EngineProcessStatus.EXTERNAL:
            self.status = EngineProcessStatus.STOPPED
