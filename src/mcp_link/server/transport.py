"""Streaming transport contract and the MCP SSE implementation.

The front door only needs two capabilities from a transport: an ASGI request
handler and a shutdown that honours an absolute deadline. ``SseTransport``
provides both on top of the MCP SDK's SSE server transport, tracking every
open session so shutdown can drain them before the listener closes.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Protocol, runtime_checkable

import anyio
import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.sse import SseServerTransport
from starlette.types import Receive, Scope, Send

from .. import __version__
from ..util.log import Log
from .errors import error_response

log = Log.create({"service": "server.transport"})

SSE_PATH = "/sse"
MESSAGE_PATH = "/message"

ServerFactory = Callable[[Scope], Server]


@runtime_checkable
class StreamingTransport(Protocol):
    """Capability pair the lifecycle and dispatcher rely on."""

    async def handle(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Serve any request the local routes did not claim."""
        ...

    async def shutdown(self, deadline: float) -> None:
        """Drain sessions, raising if that cannot finish by ``deadline``.

        ``deadline`` is an absolute ``loop.time()`` value.
        """
        ...


def default_server_factory(scope: Scope) -> Server:
    """MCP server advertising an empty tool catalogue."""
    server = Server("mcp-link", version=__version__)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return []

    return server


class SseTransport:
    """MCP over Server-Sent Events.

    ``GET /sse`` opens a session whose MCP server comes from
    ``server_factory``; clients post messages to ``/message`` with the
    session id the SDK advertises in the endpoint event.
    """

    def __init__(
        self,
        server_factory: ServerFactory | None = None,
        *,
        sse_path: str = SSE_PATH,
        message_path: str = MESSAGE_PATH,
    ) -> None:
        self.server_factory = server_factory or default_server_factory
        self.sse_path = sse_path
        self.message_path = message_path
        self._sse = SseServerTransport(message_path)
        self._sessions: set[anyio.CancelScope] = set()
        self._idle = asyncio.Event()
        self._idle.set()
        self._closing = False

    @property
    def active_sessions(self) -> int:
        return len(self._sessions)

    @property
    def closing(self) -> bool:
        return self._closing

    async def handle(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "websocket":
            await send({"type": "websocket.close", "code": 1000})
            return
        if scope["type"] != "http":
            return

        path = scope["path"]
        method = scope["method"]
        if path == self.sse_path:
            if method != "GET":
                await self._method_not_allowed(scope, receive, send, "GET")
                return
            if self._closing:
                response = error_response(
                    status_code=503,
                    code="shutting_down",
                    message="server is shutting down",
                )
                await response(scope, receive, send)
                return
            await self._serve_session(scope, receive, send)
            return

        if path == self.message_path:
            if method != "POST":
                await self._method_not_allowed(scope, receive, send, "POST")
                return
            await self._sse.handle_post_message(scope, receive, send)
            return

        response = error_response(
            status_code=404,
            code="not_found",
            message=f"no route for {method} {path}",
        )
        await response(scope, receive, send)

    async def _method_not_allowed(self, scope: Scope, receive: Receive, send: Send, allow: str) -> None:
        response = error_response(
            status_code=405,
            code="method_not_allowed",
            message=f"{scope['method']} is not allowed on {scope['path']}",
        )
        response.headers["Allow"] = allow
        await response(scope, receive, send)

    async def _serve_session(self, scope: Scope, receive: Receive, send: Send) -> None:
        server = self.server_factory(scope)
        with self._session():
            async with self._sse.connect_sse(scope, receive, send) as (read_stream, write_stream):
                await server.run(read_stream, write_stream, server.create_initialization_options())

    @contextmanager
    def _session(self) -> Iterator[anyio.CancelScope]:
        cancel = anyio.CancelScope()
        self._sessions.add(cancel)
        self._idle.clear()
        log.info("session opened", {"sessions": len(self._sessions)})
        try:
            with cancel:
                yield cancel
        finally:
            self._sessions.discard(cancel)
            if not self._sessions:
                self._idle.set()
            log.info("session closed", {"sessions": len(self._sessions)})

    async def shutdown(self, deadline: float) -> None:
        self._closing = True
        live = list(self._sessions)
        log.info("draining sessions", {"sessions": len(live)})
        for cancel in live:
            cancel.cancel()
        try:
            async with asyncio.timeout_at(deadline):
                await self._idle.wait()
        except TimeoutError:
            log.error("session drain timed out", {"sessions": len(self._sessions)})
            raise
        log.info("transport stopped")
