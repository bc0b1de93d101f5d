"""Pure ASGI middleware classes for the MCP Link server."""

from __future__ import annotations

import secrets
import time

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..util.log import Log

access = Log.create({"service": "server.access"})

CORS_HEADERS: tuple[tuple[bytes, bytes], ...] = (
    (b"access-control-allow-origin", b"*"),
    (b"access-control-allow-methods", b"*"),
    (b"access-control-allow-headers", b"*"),
)


def _header(scope: Scope, name: bytes) -> str | None:
    for key, val in scope.get("headers", []):
        if key == name:
            return val.decode("latin-1")
    return None


def _client_ip(scope: Scope) -> str | None:
    client = scope.get("client")
    return client[0] if client else None


class CORSMiddleware:
    """Grants every origin, method and header, and answers preflight itself.

    ``OPTIONS`` requests on any path get ``200`` with an empty body and never
    reach the wrapped app. Every other response gets the policy headers unless
    the wrapped app set them explicitly.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        if scope["method"] == "OPTIONS":
            await send({
                "type": "http.response.start",
                "status": 200,
                "headers": [*CORS_HEADERS, (b"content-length", b"0")],
            })
            await send({"type": "http.response.body", "body": b""})
            return

        async def with_policy(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                present = {key.lower() for key, _ in headers}
                headers.extend(item for item in CORS_HEADERS if item[0] not in present)
                message = {**message, "headers": headers}
            await send(message)

        await self.app(scope, receive, with_policy)


class AccessLogMiddleware:
    """Tags each request with an ``X-Request-ID`` and logs one access line."""

    def __init__(self, app: ASGIApp, enabled: bool = True) -> None:
        self.app = app
        self.enabled = enabled

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        rid = _header(scope, b"x-request-id") or secrets.token_hex(8)
        scope.setdefault("state", {})["request_id"] = rid
        begin = time.perf_counter()
        status = 500

        async def tagged(message: Message) -> None:
            nonlocal status
            if message["type"] == "http.response.start":
                status = message["status"]
                headers = [*message.get("headers", []), (b"x-request-id", rid.encode("latin-1"))]
                message = {**message, "headers": headers}
            await send(message)

        try:
            await self.app(scope, receive, tagged)
        except Exception as exc:
            if self.enabled:
                access.error("request failed", _access_entry(scope, rid, begin, error=str(exc)))
            raise

        if self.enabled:
            access.info("request", _access_entry(scope, rid, begin, status=status))


def _access_entry(scope: Scope, rid: str, begin: float, **outcome: object) -> dict[str, object]:
    return {
        "request_id": rid,
        "method": scope.get("method", ""),
        "path": scope.get("path", ""),
        "query": (scope.get("query_string") or b"").decode("latin-1") or None,
        **outcome,
        "client_ip": _client_ip(scope),
        "duration_ms": int((time.perf_counter() - begin) * 1000),
    }
