from __future__ import annotations

import pytest
from typer.testing import CliRunner

from mcp_link import __version__
from mcp_link.cli.main import app
from mcp_link.core.config import ServerConfig
from mcp_link.server.errors import ShutdownError

runner = CliRunner()


def test_cli_serve_delegates_to_serve_command(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_serve_command(
        *,
        host: str,
        port: int,
        log_level: str | None,
        log_format: str | None,
        access_log: bool,
    ) -> None:
        captured.update(
            host=host,
            port=port,
            log_level=log_level,
            log_format=log_format,
            access_log=access_log,
        )

    monkeypatch.setattr("mcp_link.cli.cmd.serve.serve_command", fake_serve_command)

    result = runner.invoke(
        app,
        ["serve", "-H", "127.0.0.1", "-p", "5001", "--log-level", "debug", "--log-format", "json", "--no-access-log"],
    )

    assert result.exit_code == 0
    assert captured == {
        "host": "127.0.0.1",
        "port": 5001,
        "log_level": "debug",
        "log_format": "json",
        "access_log": False,
    }


def test_cli_serve_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}
    monkeypatch.setattr(
        "mcp_link.cli.cmd.serve.serve_command",
        lambda **kwargs: captured.update(kwargs),
    )

    result = runner.invoke(app, ["serve"])

    assert result.exit_code == 0
    assert captured["host"] == "0.0.0.0"
    assert captured["port"] == 8080
    assert captured["access_log"] is True


def test_version_flag() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def _patch_run_server(monkeypatch: pytest.MonkeyPatch, seen: dict[str, object], error: Exception | None = None) -> None:
    async def fake_run_server(config: ServerConfig, *, access_log: bool = True) -> None:
        seen["config"] = config
        seen["access_log"] = access_log
        if error is not None:
            raise error

    monkeypatch.setattr("mcp_link.cli.cmd.serve.run_server", fake_run_server)
    monkeypatch.setattr("mcp_link.cli.cmd.serve.Log.configure", classmethod(lambda cls, **_kw: None))


def test_env_port_takes_precedence_over_flag(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: dict[str, object] = {}
    _patch_run_server(monkeypatch, seen)

    result = runner.invoke(app, ["serve", "--port", "9000"], env={"PORT": "7000"})

    assert result.exit_code == 0
    assert seen["config"] == ServerConfig(host="0.0.0.0", port=7000)
    assert "Server gracefully stopped" in result.output


def test_invalid_env_port_uses_flag(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: dict[str, object] = {}
    _patch_run_server(monkeypatch, seen)

    result = runner.invoke(app, ["serve", "--port", "9000"], env={"PORT": "eighty"})

    assert result.exit_code == 0
    assert seen["config"] == ServerConfig(host="0.0.0.0", port=9000)


def test_fatal_shutdown_exits_non_zero(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: dict[str, object] = {}
    _patch_run_server(monkeypatch, seen, ShutdownError("transport", "0.0.0.0:8080", TimeoutError()))

    result = runner.invoke(app, ["serve"], env={"PORT": ""})

    assert result.exit_code == 1
    assert "shutdown failed during transport on 0.0.0.0:8080" in result.output
    assert "gracefully stopped" not in result.output


def test_invalid_log_level_is_usage_error(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: dict[str, object] = {}
    _patch_run_server(monkeypatch, seen)

    result = runner.invoke(app, ["serve", "--log-level", "loud"])

    assert result.exit_code == 2
    assert "config" not in seen


@pytest.mark.anyio
async def test_run_server_builds_and_runs_lifecycle() -> None:
    from mcp_link.cli.cmd.serve import run_server

    calls: list[tuple[str, object]] = []

    class _Lifecycle:
        def __init__(self, config: ServerConfig, *, access_log: bool) -> None:
            calls.append(("init", (config.address, access_log)))

        async def run(self) -> None:
            calls.append(("run", None))

    await run_server(ServerConfig(host="127.0.0.1", port=1), access_log=False, lifecycle_factory=_Lifecycle)

    assert calls == [("init", ("127.0.0.1:1", False)), ("run", None)]


def test_out_of_range_env_port_uses_flag(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: dict[str, object] = {}
    _patch_run_server(monkeypatch, seen)

    result = runner.invoke(app, ["serve", "--port", "9000"], env={"PORT": "70000"})

    assert result.exit_code == 0
    assert seen["config"] == ServerConfig(host="0.0.0.0", port=9000)


@pytest.mark.parametrize(
    "args",
    [
        ["serve", "--port", "70000"],
        ["serve", "-p", "-1"],
        ["serve", "-H", " "],
    ],
)
def test_invalid_listen_address_is_usage_error(monkeypatch: pytest.MonkeyPatch, args: list[str]) -> None:
    seen: dict[str, object] = {}
    _patch_run_server(monkeypatch, seen)

    result = runner.invoke(app, args, env={"PORT": ""})

    assert result.exit_code == 2
    assert result.exception is None or isinstance(result.exception, SystemExit)
    assert "config" not in seen


def test_serve_command_rejects_blank_host(monkeypatch: pytest.MonkeyPatch) -> None:
    import typer

    from mcp_link.cli.cmd.serve import serve_command

    monkeypatch.setattr("mcp_link.cli.cmd.serve.Log.configure", classmethod(lambda cls, **_kw: None))
    monkeypatch.delenv("PORT", raising=False)

    with pytest.raises(typer.BadParameter, match="host"):
        serve_command(host=" ", port=8080, log_level=None, log_format=None, access_log=True)
