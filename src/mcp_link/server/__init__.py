"""HTTP front door for the MCP SSE transport.

Example:
    from mcp_link.core import ServerConfig
    from mcp_link.server import Lifecycle

    lifecycle = Lifecycle(ServerConfig.resolve(port=8080))
    await lifecycle.run()  # returns after SIGINT/SIGTERM and a clean shutdown

Endpoints:
    GET /connect-api - Connection guide page
    GET / - Health payload
    GET /status, /health - Liveness with UTC timestamp
    GET /sse - MCP SSE session (transport)
    POST /message - MCP client message (transport)
    OPTIONS * - CORS preflight
"""

from .dispatcher import RouteDispatcher
from .errors import LifecycleError, ShutdownError, StartupError
from .lifecycle import Lifecycle, LifecycleState
from .listener import Listener
from .middleware import AccessLogMiddleware, CORSMiddleware
from .transport import SseTransport, StreamingTransport

__all__ = [
    "AccessLogMiddleware",
    "CORSMiddleware",
    "Lifecycle",
    "LifecycleError",
    "LifecycleState",
    "Listener",
    "RouteDispatcher",
    "ShutdownError",
    "SseTransport",
    "StartupError",
    "StreamingTransport",
]
