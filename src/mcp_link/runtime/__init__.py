"""Process runtime bootstrap helpers."""

from .logging import LogSettings, bootstrap_logging

__all__ = ["LogSettings", "bootstrap_logging"]
