"""Exact-path dispatch between local routes and the streaming transport.

Local routes answer ``GET`` only. Any other method on a local path, and
every other path, is handed to the transport untouched so it owns the
not-found and method-not-allowed answers.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from pathlib import Path

from starlette.responses import FileResponse, JSONResponse
from starlette.types import Receive, Scope, Send

from .errors import error_response
from .schemas import HealthResponse, StatusResponse
from .transport import StreamingTransport

LocalHandler = Callable[[Scope, Receive, Send], Awaitable[None]]

DOCS_ROUTE = "/connect-api"
ROOT_ROUTE = "/"
STATUS_ROUTES = ("/status", "/health")


def default_docs_file() -> Path:
    return Path(__file__).resolve().parent.parent / "static" / "connect-api.html"


def utc_timestamp() -> str:
    """Current UTC time as RFC 3339 with second precision."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class RouteDispatcher:
    """ASGI app serving the local routes and forwarding everything else.

    ``GET /`` answers with the inline health payload rather than redirecting
    to the documentation page.
    """

    def __init__(self, transport: StreamingTransport, *, docs_file: Path | None = None) -> None:
        self.transport = transport
        self.docs_file = docs_file or default_docs_file()
        self.routes: dict[str, LocalHandler] = {
            DOCS_ROUTE: self._docs,
            ROOT_ROUTE: self._root,
        }
        for path in STATUS_ROUTES:
            self.routes[path] = self._status

    def match(self, method: str, path: str) -> LocalHandler | None:
        if method != "GET":
            return None
        return self.routes.get(path)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            handler = self.match(scope["method"], scope["path"])
            if handler is not None:
                await handler(scope, receive, send)
                return
        await self.transport.handle(scope, receive, send)

    async def _docs(self, scope: Scope, receive: Receive, send: Send) -> None:
        if not self.docs_file.is_file():
            response = error_response(
                status_code=404,
                code="not_found",
                message="documentation page is not installed",
            )
        else:
            response = FileResponse(self.docs_file, media_type="text/html")
        await response(scope, receive, send)

    async def _root(self, scope: Scope, receive: Receive, send: Send) -> None:
        response = JSONResponse(HealthResponse().model_dump())
        await response(scope, receive, send)

    async def _status(self, scope: Scope, receive: Receive, send: Send) -> None:
        response = JSONResponse(StatusResponse(timestamp=utc_timestamp()).model_dump())
        await response(scope, receive, send)
