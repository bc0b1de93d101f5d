"""CLI entry point for MCP Link."""

from typing import Optional

import typer
from rich.console import Console

from .. import __version__
from ..core.config import DEFAULT_HOST, DEFAULT_PORT, MAX_PORT

app = typer.Typer(
    name="mcp-link",
    help="Convert OpenAPI to MCP compatible endpoints",
    no_args_is_help=True,
    add_completion=False,
)

console = Console()


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        console.print(f"mcp-link {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
):
    """MCP Link - Model Context Protocol over SSE."""


@app.command()
def serve(
    port: int = typer.Option(
        DEFAULT_PORT,
        "--port",
        "-p",
        min=0,
        max=MAX_PORT,
        help="Port to listen on (the PORT environment variable takes precedence)",
    ),
    host: str = typer.Option(
        DEFAULT_HOST,
        "--host",
        "-H",
        help="Host to listen on",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Log level: debug, info, warn, error",
    ),
    log_format: Optional[str] = typer.Option(
        None,
        "--log-format",
        help="Log format: kv, json, pretty",
    ),
    access_log: bool = typer.Option(
        True,
        "--access-log/--no-access-log",
        help="Log one line per HTTP request",
    ),
):
    """Start the MCP Link server."""
    from .cmd.serve import serve_command

    serve_command(
        host=host,
        port=port,
        log_level=log_level,
        log_format=log_format,
        access_log=access_log,
    )


if __name__ == "__main__":
    app()
