"""Process lifecycle: startup, signal interception and two-phase shutdown.

State moves ``created -> running -> shutting_down -> stopped``. Shutdown
stops the streaming transport first and the listener second, both under one
deadline. Either phase failing is fatal and is never retried.
"""

from __future__ import annotations

import asyncio
import signal
from collections.abc import Awaitable, Callable
from enum import Enum
from pathlib import Path
from typing import Optional, Protocol

from starlette.types import ASGIApp

from ..core.config import ServerConfig
from ..util.log import Log
from .dispatcher import RouteDispatcher
from .errors import ShutdownError, StartupError
from .listener import Listener
from .middleware import AccessLogMiddleware, CORSMiddleware
from .transport import SseTransport, StreamingTransport

log = Log.create({"service": "server.lifecycle"})

SHUTDOWN_TIMEOUT = 5.0
STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class LifecycleState(str, Enum):
    CREATED = "created"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


class ServingListener(Protocol):
    """What the lifecycle needs from a listener."""

    def bind(self) -> object: ...

    def start(self) -> asyncio.Task[None]: ...

    async def shutdown(self, deadline: float) -> None: ...


class Lifecycle:
    """Owns the transport, the listener and the stop signal for one process run.

    Collaborators not supplied are built from ``config``: an
    :class:`SseTransport` and a uvicorn :class:`Listener` serving
    :meth:`build_app`.
    """

    def __init__(
        self,
        config: ServerConfig,
        transport: Optional[StreamingTransport] = None,
        listener: Optional[ServingListener] = None,
        *,
        shutdown_timeout: float = SHUTDOWN_TIMEOUT,
        access_log: bool = True,
        docs_file: Optional[Path] = None,
    ) -> None:
        self.config = config
        self.transport: StreamingTransport = transport or SseTransport()
        self.access_log = access_log
        self.docs_file = docs_file
        self.listener: ServingListener = listener or Listener(self.build_app(), config)
        self.shutdown_timeout = shutdown_timeout
        self.state = LifecycleState.CREATED
        self._stop = asyncio.Event()
        self._signals: list[signal.Signals] = []

    def build_app(self) -> ASGIApp:
        """Dispatcher wrapped by the CORS policy, then by access logging."""
        dispatcher = RouteDispatcher(self.transport, docs_file=self.docs_file)
        return AccessLogMiddleware(CORSMiddleware(dispatcher), enabled=self.access_log)

    def request_stop(self) -> None:
        """Ask a running lifecycle to shut down. Safe to call repeatedly."""
        if not self._stop.is_set():
            log.info("termination requested", {"state": self.state.value})
        self._stop.set()

    async def run(self) -> None:
        """Serve until a stop is requested, then shut down.

        Raises:
            StartupError: The listener could not bind or stopped serving with
                an error.
            ShutdownError: A shutdown phase failed or ran past the deadline.
        """
        address = self.config.address
        try:
            self.listener.bind()
        except OSError as e:
            log.error("bind failed", {"phase": "bind", "address": address, "error": e})
            raise StartupError("bind", address, e) from e

        log.info("starting server", {"address": address})
        serving = self.listener.start()
        self.state = LifecycleState.RUNNING
        self._install_signal_handlers()
        try:
            await self._wait(serving)
            await self.shutdown()
        finally:
            self._remove_signal_handlers()

    async def _wait(self, serving: asyncio.Task[None]) -> None:
        stopped = asyncio.create_task(self._stop.wait())
        try:
            done, _ = await asyncio.wait({serving, stopped}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stopped.cancel()

        if serving not in done or self._stop.is_set():
            return
        address = self.config.address
        if serving.cancelled():
            log.error("listener cancelled", {"phase": "serve", "address": address})
            raise StartupError("serve", address)
        exc = serving.exception()
        if exc is not None:
            log.error("server failed", {"phase": "serve", "address": address, "error": exc})
            raise StartupError("serve", address, exc) from exc
        log.warn("listener closed before termination was requested", {"address": address})

    async def shutdown(self) -> None:
        """Stop the transport, then the listener, under one shared deadline."""
        self.state = LifecycleState.SHUTTING_DOWN
        deadline = asyncio.get_running_loop().time() + self.shutdown_timeout
        log.info("shutting down server", {
            "address": self.config.address,
            "timeout_s": self.shutdown_timeout,
        })
        await self._shutdown_phase("transport", self.transport.shutdown, deadline)
        await self._shutdown_phase("listener", self.listener.shutdown, deadline)
        self.state = LifecycleState.STOPPED
        log.info("server gracefully stopped", {"address": self.config.address})

    async def _shutdown_phase(
        self,
        phase: str,
        stop: Callable[[float], Awaitable[None]],
        deadline: float,
    ) -> None:
        address = self.config.address
        try:
            async with asyncio.timeout_at(deadline):
                await stop(deadline)
        except Exception as e:
            log.error("shutdown failed", {"phase": phase, "address": address, "error": e})
            raise ShutdownError(phase, address, e) from e
        log.debug("shutdown phase complete", {"phase": phase})

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in STOP_SIGNALS:
            try:
                loop.add_signal_handler(sig, self.request_stop)
            except NotImplementedError:
                # Windows event loops have no add_signal_handler
                signal.signal(sig, lambda *_: loop.call_soon_threadsafe(self.request_stop))
            except (RuntimeError, ValueError):
                log.warn("cannot install signal handler", {"signal": sig.name})
                continue
            self._signals.append(sig)

    def _remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in self._signals:
            try:
                loop.remove_signal_handler(sig)
            except NotImplementedError:
                signal.signal(sig, signal.SIG_DFL)
        self._signals.clear()
