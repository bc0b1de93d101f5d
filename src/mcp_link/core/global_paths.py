"""Platform directory paths for MCP Link.

Only the data and log directories are used; both are created lazily by the
callers that write into them.
"""

import os
from pathlib import Path

from platformdirs import user_data_dir

APP_NAME = "mcp-link"


class GlobalPath:
    """Global path management for MCP Link directories."""

    @classmethod
    def data(cls) -> str:
        """Application data directory."""
        return os.environ.get("MCP_LINK_DATA_DIR") or user_data_dir(APP_NAME)

    @classmethod
    def log(cls) -> str:
        """Log file directory."""
        return str(Path(cls.data()) / "log")
