"""Shared test doubles for the server layer."""

from __future__ import annotations

import asyncio
import json
from typing import Any

from starlette.types import Receive, Scope, Send


class EchoTransport:
    """Transport stand-in that answers with what it received."""

    def __init__(self, events: list[tuple[str, Any]] | None = None) -> None:
        self.events = events if events is not None else []
        self.requests: list[dict[str, Any]] = []

    async def handle(self, scope: Scope, receive: Receive, send: Send) -> None:
        body = b""
        while True:
            message = await receive()
            body += message.get("body", b"")
            if not message.get("more_body"):
                break
        seen = {
            "method": scope["method"],
            "path": scope["path"],
            "query": scope.get("query_string", b"").decode("latin-1"),
            "body": body.decode("utf-8"),
        }
        self.requests.append(seen)
        payload = json.dumps(seen).encode("utf-8")
        await send({
            "type": "http.response.start",
            "status": 299,
            "headers": [(b"content-type", b"application/json")],
        })
        await send({"type": "http.response.body", "body": payload})

    async def shutdown(self, deadline: float) -> None:
        self.events.append(("transport.shutdown", deadline))


class FakeListener:
    """Listener stand-in whose serve task runs until shutdown."""

    def __init__(
        self,
        events: list[tuple[str, Any]] | None = None,
        *,
        bind_error: OSError | None = None,
        serve_error: Exception | None = None,
    ) -> None:
        self.events = events if events is not None else []
        self.bind_error = bind_error
        self.serve_error = serve_error
        self.task: asyncio.Task[None] | None = None
        self._closed = asyncio.Event()

    def bind(self) -> object:
        self.events.append(("listener.bind", None))
        if self.bind_error is not None:
            raise self.bind_error
        return object()

    def start(self) -> asyncio.Task[None]:
        self.events.append(("listener.start", None))
        self.task = asyncio.create_task(self._serve())
        return self.task

    async def _serve(self) -> None:
        await asyncio.sleep(0)
        if self.serve_error is not None:
            raise self.serve_error
        await self._closed.wait()

    async def shutdown(self, deadline: float) -> None:
        self.events.append(("listener.shutdown.begin", deadline))
        self._closed.set()
        if self.task is not None:
            await self.task
        self.events.append(("listener.shutdown.end", deadline))


async def wait_listening(listener: Any) -> int:
    """Wait for a real uvicorn listener to accept connections; return its port."""
    while listener.server is None or not listener.server.started:
        await asyncio.sleep(0.01)
    return listener._socket.getsockname()[1]
