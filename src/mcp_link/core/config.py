"""Listen address configuration.

The port is resolved from three sources, strongest first:

1. the ``PORT`` environment variable (hosting platforms assign it),
2. the ``--port`` command line value,
3. :data:`DEFAULT_PORT`.

A ``PORT`` value that is not a plain decimal integer in ``0..65535`` is
ignored.
"""

from __future__ import annotations

import ipaddress
import os
import re
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080
PORT_ENV = "PORT"
MAX_PORT = 65535

_PORT_PATTERN = re.compile(r"[+-]?[0-9]+")


def env_port(environ: Mapping[str, str] | None = None) -> int | None:
    """Return the port override from the environment, if it parses."""
    env = os.environ if environ is None else environ
    text = (env.get(PORT_ENV) or "").strip()
    if not text.isascii() or not _PORT_PATTERN.fullmatch(text):
        return None
    port = int(text)
    if not 0 <= port <= MAX_PORT:
        return None
    return port


class ServerConfig(BaseModel):
    """Resolved listen address."""

    host: str = DEFAULT_HOST
    port: int = Field(DEFAULT_PORT, ge=0, le=MAX_PORT)

    model_config = ConfigDict(frozen=True)

    @field_validator("host")
    @classmethod
    def _strip_host(cls, value: str) -> str:
        host = value.strip()
        if host.startswith("[") and host.endswith("]"):
            host = host[1:-1]
        if not host:
            raise ValueError("host must not be empty")
        return host

    @classmethod
    def resolve(
        cls,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        environ: Mapping[str, str] | None = None,
    ) -> "ServerConfig":
        """Build a config from CLI values, applying the ``PORT`` override."""
        override = env_port(environ)
        return cls(host=host, port=override if override is not None else port)

    @property
    def is_ipv6(self) -> bool:
        try:
            return isinstance(ipaddress.ip_address(self.host), ipaddress.IPv6Address)
        except ValueError:
            return False

    @property
    def address(self) -> str:
        """``host:port`` with IPv6 literals bracketed."""
        if self.is_ipv6:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"

    @property
    def url(self) -> str:
        return f"http://{self.address}"
