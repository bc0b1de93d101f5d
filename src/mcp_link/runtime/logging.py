"""Runtime logging bootstrap helpers."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Optional

from ..util.log import Log, LogFormat, LogLevel

LEVEL_ENV = "MCP_LINK_LOG_LEVEL"
FORMAT_ENV = "MCP_LINK_LOG_FORMAT"
FILE_ENV = "MCP_LINK_LOG_FILE"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class LogSettings:
    level: LogLevel
    format: LogFormat
    console: bool
    file: bool
    access_log: bool


def _env_flag(env: Mapping[str, str], key: str) -> Optional[bool]:
    value = env.get(key)
    if value is None or not value.strip():
        return None
    return value.strip().lower() in _TRUTHY


def resolve_log_settings(
    *,
    level: Optional[str] = None,
    format: Optional[str] = None,
    access_log: Optional[bool] = None,
    console: Optional[bool] = None,
    file: Optional[bool] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> LogSettings:
    """Merge explicit options over environment over server defaults.

    Raises:
        ValueError: If the level or format does not parse.
    """
    env = os.environ if environ is None else environ

    use_file = file
    if use_file is None:
        use_file = _env_flag(env, FILE_ENV)

    return LogSettings(
        level=LogLevel.parse(level or env.get(LEVEL_ENV) or None),
        format=LogFormat.parse(format or env.get(FORMAT_ENV) or None),
        console=True if console is None else console,
        file=bool(use_file),
        access_log=True if access_log is None else access_log,
    )


def bootstrap_logging(
    *,
    level: Optional[str] = None,
    format: Optional[str] = None,
    access_log: Optional[bool] = None,
    console: Optional[bool] = None,
    file: Optional[bool] = None,
) -> LogSettings:
    """Resolve settings and initialize the process logger."""
    settings = resolve_log_settings(
        level=level,
        format=format,
        access_log=access_log,
        console=console,
        file=file,
    )
    Log.configure(
        level=settings.level,
        format=settings.format,
        console=settings.console,
        file=settings.file,
    )
    return settings
