"""MCP Link - serve Model Context Protocol over SSE behind a small HTTP front door.

The server exposes the MCP SSE transport (``/sse`` and ``/message``) next to a
few auxiliary routes (health, status and a connection guide page), and
coordinates an orderly two-phase shutdown of the transport and the listener.
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
