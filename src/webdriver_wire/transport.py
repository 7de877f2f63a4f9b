"""Transport executor: one HTTP round trip per command, async or blocking."""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from typing import Any, Coroutine, Mapping, Optional, TypeVar

import httpx

from .codec import WireRequest, decode_response
from .errors import TransportError, TransportFailure

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json;charset=UTF-8",
}


class HttpTransport:
    """Send encoded requests to a remote end with ``httpx.AsyncClient``.

    The only suspension point of a command is the ``await`` on the client.
    There is no retry: most WebDriver commands are not idempotent, so a
    transient failure is raised to the caller as is.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 60.0,
        connect_timeout: Optional[float] = None,
        headers: Optional[Mapping[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        if client is None:
            merged = dict(DEFAULT_HEADERS)
            merged.update(headers or {})
            client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=httpx.Timeout(
                    timeout, connect=timeout if connect_timeout is None else connect_timeout
                ),
                headers=merged,
            )
        self._client = client

    @property
    def base_url(self) -> str:
        return self._base_url

    async def send(self, request: WireRequest) -> tuple[int, Any]:
        """Perform the round trip and return the status and parsed JSON body."""

        url = self._base_url + request.path
        LOGGER.debug("-> %s %s %s", request.method, request.path, _preview(request.body))
        try:
            response = await self._client.request(request.method, url, json=request.body)
        except httpx.TimeoutException as exc:
            LOGGER.warning("%s %s timed out", request.method, request.path)
            raise TransportError(
                TransportFailure.TIMEOUT, f"{request.method} {request.path} timed out"
            ) from exc
        except httpx.TransportError as exc:
            LOGGER.warning("%s %s failed: %s", request.method, request.path, exc)
            raise TransportError(
                TransportFailure.CONNECTION, str(exc) or type(exc).__name__
            ) from exc
        try:
            payload = response.json() if response.content else None
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise TransportError(
                TransportFailure.INVALID_RESPONSE,
                f"HTTP {response.status_code} body is not valid JSON",
            ) from exc
        LOGGER.debug("<- %s %s", response.status_code, _preview(payload))
        return response.status_code, payload

    async def execute(self, request: WireRequest) -> Any:
        """Send ``request`` and return the decoded ``value`` or raise."""

        status, payload = await self.send(request)
        return decode_response(status, payload)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def _preview(body: Any, limit: int = 300) -> str:
    if body is None:
        return ""
    text = json.dumps(body, default=str)
    if len(text) > limit:
        return text[:limit] + "..."
    return text


class LoopThread:
    """A dedicated thread that drives a private asyncio event loop.

    Blocking callers hand coroutines to :meth:`run` and are parked until the
    coroutine finishes on the loop thread.
    """

    def __init__(self, name: str = "webdriver-wire") -> None:
        self._loop = asyncio.new_event_loop()
        self._started = threading.Event()
        self._stopped = False
        self._thread = threading.Thread(target=self._serve, name=name, daemon=True)
        self._thread.start()
        self._started.wait()

    def _serve(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.call_soon(self._started.set)
        try:
            self._loop.run_forever()
        finally:
            self._loop.run_until_complete(self._loop.shutdown_asyncgens())
            self._loop.close()

    @property
    def running(self) -> bool:
        return not self._stopped and self._thread.is_alive()

    def run(self, coro: Coroutine[Any, Any, T]) -> T:
        if not self.running:
            coro.close()
            raise RuntimeError("event loop thread is stopped")
        if threading.current_thread() is self._thread:
            coro.close()
            raise RuntimeError(
                "LoopThread.run() called from its own loop; await the coroutine instead"
            )
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result()

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        self._loop.call_soon_threadsafe(self._loop.stop)
        if threading.current_thread() is not self._thread:
            self._thread.join()

