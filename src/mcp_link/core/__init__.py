"""Core configuration and path helpers."""

from .config import DEFAULT_HOST, DEFAULT_PORT, ServerConfig
from .global_paths import GlobalPath

__all__ = ["DEFAULT_HOST", "DEFAULT_PORT", "GlobalPath", "ServerConfig"]
