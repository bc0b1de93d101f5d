"""Structured logging with console and rotating file sinks.

Loggers are tagged with a ``service`` and render every event as a single
line, either ``key=value`` pairs, JSON, or a human-oriented pretty form.
"""

import json
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, TextIO

from ..core.global_paths import GlobalPath

KEEP_LOG_FILES = 10


class LogLevel(str, Enum):
    """Log severity levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"

    @classmethod
    def parse(cls, value: str | None) -> "LogLevel":
        if value is None:
            return cls.INFO
        text = value.strip().lower()
        if text == "debug":
            return cls.DEBUG
        if text == "info":
            return cls.INFO
        if text in {"warn", "warning"}:
            return cls.WARN
        if text == "error":
            return cls.ERROR
        raise ValueError(f"invalid log level: {value}")


class LogFormat(str, Enum):
    """Log output format."""

    KV = "kv"
    JSON = "json"
    PRETTY = "pretty"

    @classmethod
    def parse(cls, value: str | None) -> "LogFormat":
        if value is None:
            return cls.KV
        text = value.strip().lower()
        for item in cls:
            if item.value == text:
                return item
        raise ValueError(f"invalid log format: {value}")


LEVEL_PRIORITY = {
    LogLevel.DEBUG: 0,
    LogLevel.INFO: 1,
    LogLevel.WARN: 2,
    LogLevel.ERROR: 3,
}


@dataclass
class LogConfig:
    """Process-wide sink configuration."""

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.KV
    console: bool = True
    file: bool = False
    log_file_path: Optional[str] = None
    _file_handle: Optional[TextIO] = None


_config = LogConfig()


class Logger:
    """Structured logger bound to a set of tags."""

    def __init__(self, tags: Optional[Dict[str, Any]] = None):
        self.tags = tags or {}

    def _should_log(self, level: LogLevel) -> bool:
        return LEVEL_PRIORITY[level] >= LEVEL_PRIORITY[_config.level]

    def _format_error(self, error: BaseException, depth: int = 0) -> str:
        result = str(error) or type(error).__name__
        if error.__cause__ and depth < 10:
            result += " Caused by: " + self._format_error(error.__cause__, depth + 1)
        return result

    def _normalize(self, value: Any) -> Any:
        if isinstance(value, BaseException):
            return self._format_error(value)
        if isinstance(value, (dict, list, tuple, int, float, bool)) or value is None:
            return value
        return str(value)

    def _value(self, value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return str(value)
        if isinstance(value, (dict, list, tuple)):
            return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
        text = str(value)
        if text == "" or any(ch.isspace() for ch in text) or "=" in text:
            return json.dumps(text, ensure_ascii=False)
        return text

    def _render(self, level: LogLevel, message: Any, extra: Optional[Dict[str, Any]]) -> str:
        tags = {**self.tags, **(extra or {})}
        payload = {
            "time": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "level": level.value.lower(),
            "msg": self._normalize(message),
            **{k: self._normalize(v) for k, v in tags.items() if v is not None},
        }
        if _config.format == LogFormat.JSON:
            return json.dumps(payload, ensure_ascii=False, separators=(",", ":")) + "\n"

        pairs = " ".join(
            f"{k}={self._value(v)}"
            for k, v in payload.items()
            if k not in {"time", "level", "msg"}
        )
        if _config.format == LogFormat.PRETTY:
            text = f"{payload['time']} {level.value:<5} {payload['msg'] or ''}"
            return f"{text} ({pairs})\n" if pairs else f"{text}\n"

        parts = [
            str(payload["time"]),
            f"level={payload['level']}",
            f"msg={self._value(payload['msg'])}",
            pairs,
        ]
        return " ".join(part for part in parts if part) + "\n"

    def _write(self, line: str) -> None:
        if _config.console:
            sys.stderr.write(line)
            sys.stderr.flush()
        if _config.file and _config._file_handle:
            _config._file_handle.write(line)
            _config._file_handle.flush()

    def _log(self, level: LogLevel, message: Any, extra: Optional[Dict[str, Any]]) -> None:
        if self._should_log(level):
            self._write(self._render(level, message, extra))

    def debug(self, message: Any = None, extra: Optional[Dict[str, Any]] = None) -> None:
        self._log(LogLevel.DEBUG, message, extra)

    def info(self, message: Any = None, extra: Optional[Dict[str, Any]] = None) -> None:
        self._log(LogLevel.INFO, message, extra)

    def warn(self, message: Any = None, extra: Optional[Dict[str, Any]] = None) -> None:
        self._log(LogLevel.WARN, message, extra)

    def warning(self, message: Any = None, extra: Optional[Dict[str, Any]] = None) -> None:
        """Compatibility alias for warn()."""
        self.warn(message, extra)

    def error(self, message: Any = None, extra: Optional[Dict[str, Any]] = None) -> None:
        self._log(LogLevel.ERROR, message, extra)

    def tag(self, key: str, value: Any) -> "Logger":
        self.tags[key] = value
        return self

    def clone(self) -> "Logger":
        return Logger(tags=self.tags.copy())


class Log:
    """Global logging interface and factory."""

    _loggers: Dict[str, Logger] = {}

    @classmethod
    def create(cls, tags: Optional[Dict[str, Any]] = None) -> Logger:
        """Create or retrieve a logger.

        Loggers tagged with a ``service`` are cached by service name.
        """
        tags = tags or {}
        service = tags.get("service")
        if service and isinstance(service, str):
            if service not in cls._loggers:
                cls._loggers[service] = Logger(tags=tags)
            return cls._loggers[service]
        return Logger(tags=tags)

    @classmethod
    def configure(
        cls,
        *,
        level: LogLevel | None = None,
        format: LogFormat | None = None,
        console: bool | None = None,
        file: bool | None = None,
    ) -> None:
        """Configure sinks and output format.

        Enabling the file sink opens a new timestamped file in
        :meth:`GlobalPath.log`, pruning all but the newest files.
        """
        if level is not None:
            _config.level = level
        if format is not None:
            _config.format = format
        if console is not None:
            _config.console = console
        if file is not None:
            _config.file = file

        cls.close()
        if not _config.file:
            _config.log_file_path = None
            return

        log_dir = Path(GlobalPath.log())
        log_dir.mkdir(parents=True, exist_ok=True)
        cls._cleanup_logs(log_dir)
        stamp = datetime.now().isoformat().split(".")[0].replace(":", "")
        log_path = log_dir / f"{stamp}.log"

        _config.log_file_path = str(log_path)
        _config._file_handle = log_path.open("a", encoding="utf-8")

    @classmethod
    def level(cls) -> LogLevel:
        return _config.level

    @classmethod
    def file(cls) -> str:
        """Get the current log file path, or an empty string."""
        return _config.log_file_path or ""

    @classmethod
    def _cleanup_logs(cls, log_dir: Path) -> None:
        """Remove old log files, keeping room for the one about to be opened."""
        log_files = sorted(
            log_dir.glob("????-??-??T??????.log"),
            key=lambda p: p.stat().st_mtime,
        )
        excess = len(log_files) - (KEEP_LOG_FILES - 1)
        for old_file in log_files[:max(excess, 0)]:
            old_file.unlink(missing_ok=True)

    @classmethod
    def close(cls) -> None:
        """Close the log file handle if open."""
        if _config._file_handle:
            _config._file_handle.close()
            _config._file_handle = None
