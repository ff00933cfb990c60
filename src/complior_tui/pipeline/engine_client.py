"""HTTP client for the compliance engine.

// [LAW:single-enforcer] _request is the only place HTTP failures become EngineError.
// [LAW:locality-or-seam] All engine wire details (paths, camelCase bodies, timeouts) live here.

Calls are blocking; the executor runs them on worker threads.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

import requests

from complior_tui.core.types import JsonDict, ScanResult
from complior_tui.pipeline.sse import Done, SseBuffer, SseEvent

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
STATUS_TIMEOUT = 3.0
VERIFY_TIMEOUT = 15.0
LIST_TIMEOUT = 5.0
ANALYSIS_TIMEOUT = 10.0


class EngineError(Exception):
    """Engine unreachable, non-2xx response, or undecodable body."""


class EngineClient:
    def __init__(self, base_url: str, session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self._session = session if session is not None else requests.Session()

    def clone_for_stream(self) -> EngineClient:
        """Fresh client with its own session, for long-lived streams on another thread."""
        return EngineClient(self.base_url)

    def close(self) -> None:
        self._session.close()

    # ─── Transport ───────────────────────────────────────────────────────────

    def _request(
        self,
        method: str,
        path: str,
        *,
        body: JsonDict | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        stream: bool = False,
    ) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            resp = self._session.request(method, url, json=body, timeout=timeout, stream=stream)
            resp.raise_for_status()
        except requests.RequestException as exc:
            logger.debug("engine %s %s failed: %s", method, path, exc)
            raise EngineError(f"{method} {path}: {exc}") from exc
        return resp

    def _json(self, method: str, path: str, **kwargs) -> object:
        resp = self._request(method, path, **kwargs)
        try:
            return resp.json()
        except ValueError as exc:
            raise EngineError(f"{method} {path}: invalid JSON response") from exc

    def _json_object(self, method: str, path: str, **kwargs) -> JsonDict:
        data = self._json(method, path, **kwargs)
        if not isinstance(data, dict):
            raise EngineError(f"{method} {path}: expected a JSON object")
        return data

    def _json_list(self, method: str, path: str, **kwargs) -> list[JsonDict]:
        data = self._json(method, path, **kwargs)
        if not isinstance(data, list):
            raise EngineError(f"{method} {path}: expected a JSON array")
        return [item for item in data if isinstance(item, dict)]

    # ─── Endpoints ───────────────────────────────────────────────────────────

    def status(self) -> JsonDict:
        return self._json_object("GET", "/status", timeout=STATUS_TIMEOUT)

    def is_ready(self) -> bool:
        """True when /status answers with ready=true. Never raises."""
        try:
            return bool(self.status().get("ready"))
        except EngineError:
            return False

    def scan(self, path: str) -> ScanResult:
        raw = self._json_object("POST", "/scan", body={"path": path})
        try:
            return ScanResult.from_json(raw)
        except ValueError as exc:
            raise EngineError(str(exc)) from exc

    def chat_stream(
        self,
        message: str,
        sink: Callable[[SseEvent], None],
        provider: str | None = None,
        model: str | None = None,
        api_key: str | None = None,
    ) -> None:
        """POST /chat and feed every decoded event to sink, ending with Done."""
        body: JsonDict = {"message": message, "stream": True}
        if provider and model and api_key:
            body.update(provider=provider, model=model, apiKey=api_key)

        resp = self._request("POST", "/chat", body=body, stream=True)
        buffer = SseBuffer()
        try:
            for chunk in resp.iter_content(chunk_size=None, decode_unicode=True):
                if not chunk:
                    continue
                text = chunk if isinstance(chunk, str) else chunk.decode("utf-8", "replace")
                for event in buffer.feed(text):
                    sink(event)
        except requests.RequestException as exc:
            raise EngineError(f"chat stream interrupted: {exc}") from exc
        finally:
            resp.close()
        sink(Done())

    def run_command(self, command: str) -> str:
        return self._request("POST", "/shell", body={"command": command}).text

    def read_file(self, path: str) -> str:
        data = self._json_object("POST", "/file/read", body={"path": path})
        content = data.get("content")
        if not isinstance(content, str):
            raise EngineError("POST /file/read: missing content")
        return content

    def edit_file(self, path: str, old: str, new: str) -> str:
        body = {"path": path, "oldString": old, "newString": new}
        return self._request("POST", "/file/edit", body=body).text

    def verify_provider(self, provider: str, api_key: str) -> tuple[bool, str | None]:
        data = self._json_object(
            "POST",
            "/provider/verify",
            body={"provider": provider, "apiKey": api_key},
            timeout=VERIFY_TIMEOUT,
        )
        error = data.get("error")
        return bool(data.get("valid")), error if isinstance(error, str) else None

    def undo(self, entry_id: int | None = None) -> JsonDict:
        body: JsonDict = {} if entry_id is None else {"id": entry_id}
        return self._json_object("POST", "/fix/undo", body=body)

    def undo_history(self) -> list[JsonDict]:
        return self._json_list("GET", "/fix/history", timeout=LIST_TIMEOUT)

    def suggestions(self) -> list[JsonDict]:
        return self._json_list("GET", "/suggestions", timeout=LIST_TIMEOUT)

    def whatif(self, scenario: str) -> JsonDict:
        return self._json_object(
            "POST", "/whatif", body={"scenario": scenario}, timeout=ANALYSIS_TIMEOUT
        )

    def fix_dry_run(self, check_ids: list[str] | tuple[str, ...]) -> JsonDict:
        return self._json_object(
            "POST",
            "/fix",
            body={"checks": list(check_ids), "dry_run": True},
            timeout=ANALYSIS_TIMEOUT,
        )
