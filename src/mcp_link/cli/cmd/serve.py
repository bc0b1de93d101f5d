"""Serve command - run the MCP Link server until terminated."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import typer
from pydantic import ValidationError
from rich.console import Console

from ...core.config import ServerConfig
from ...runtime.logging import bootstrap_logging
from ...server.errors import LifecycleError
from ...server.lifecycle import Lifecycle
from ...util.log import Log

log = Log.create({"service": "cli.serve"})
console = Console(stderr=True)


async def run_server(
    config: ServerConfig,
    *,
    access_log: bool = True,
    lifecycle_factory: Callable[..., Lifecycle] = Lifecycle,
) -> None:
    lifecycle = lifecycle_factory(config, access_log=access_log)
    console.print(f"Starting server on [cyan]{config.address}[/cyan]")
    await lifecycle.run()


def serve_command(
    *,
    host: str,
    port: int,
    log_level: str | None,
    log_format: str | None,
    access_log: bool,
) -> None:
    try:
        settings = bootstrap_logging(level=log_level, format=log_format, access_log=access_log)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e

    try:
        config = ServerConfig.resolve(host=host, port=port)
    except ValidationError as e:
        problems = "; ".join(f"{err['loc'][0]}: {err['msg']}" for err in e.errors())
        log.error("invalid listen address", {"phase": "config", "host": host, "port": port, "error": problems})
        raise typer.BadParameter(problems) from e

    log.info("serve requested", {"address": config.address, "log_file": Log.file() or None})

    try:
        asyncio.run(run_server(config, access_log=settings.access_log))
    except LifecycleError as e:
        log.error("fatal", {"phase": e.phase, "address": e.address, "error": str(e)})
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except KeyboardInterrupt:
        console.print("\nInterrupted before shutdown handlers were installed")
        raise typer.Exit(130)
    finally:
        Log.close()

    console.print("[green]Server gracefully stopped[/green]")
