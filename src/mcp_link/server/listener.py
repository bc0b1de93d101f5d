"""HTTP listener backed by uvicorn.

The socket is bound up front so bind failures surface synchronously, before
any background task exists. Signal handling is left to the lifecycle, so
the embedded uvicorn server never installs its own handlers.
"""

from __future__ import annotations

import asyncio
import socket
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Optional

import uvicorn
from starlette.types import ASGIApp

from ..core.config import ServerConfig
from ..util.log import Log

log = Log.create({"service": "server.listener"})


class _UvicornServer(uvicorn.Server):
    """uvicorn server that leaves signals to its owner."""

    def install_signal_handlers(self) -> None:
        return

    @contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


class Listener:
    """Binds the listen socket and serves an ASGI app on it."""

    def __init__(self, app: ASGIApp, config: ServerConfig) -> None:
        self.app = app
        self.config = config
        self.server: Optional[uvicorn.Server] = None
        self.task: Optional[asyncio.Task[None]] = None
        self._socket: Optional[socket.socket] = None

    def bind(self) -> socket.socket:
        """Create the listening socket.

        Raises:
            OSError: If the address cannot be bound.
        """
        family = socket.AF_INET6 if self.config.is_ipv6 else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.config.host, self.config.port))
        except OSError:
            sock.close()
            raise
        sock.set_inheritable(True)
        self._socket = sock
        log.debug("socket bound", {"address": self.config.address})
        return sock

    def start(self) -> asyncio.Task[None]:
        """Serve in a background task, binding first if needed."""
        sock = self._socket or self.bind()
        config = uvicorn.Config(
            self.app,
            lifespan="off",
            log_level="warning",
            access_log=False,
        )
        self.server = _UvicornServer(config)
        self.task = asyncio.create_task(self.server.serve(sockets=[sock]), name="mcp-link-listener")
        return self.task

    async def shutdown(self, deadline: float) -> None:
        """Stop accepting and wait for the serve task, bounded by ``deadline``."""
        if self.server is None or self.task is None:
            return
        self.server.should_exit = True
        async with asyncio.timeout_at(deadline):
            await asyncio.shield(self.task)
        log.info("listener stopped", {"address": self.config.address})
