import pytest
from pydantic import ValidationError

from mcp_link.core.config import DEFAULT_HOST, DEFAULT_PORT, ServerConfig, env_port


def test_defaults() -> None:
    config = ServerConfig.resolve(environ={})

    assert config.host == DEFAULT_HOST == "0.0.0.0"
    assert config.port == DEFAULT_PORT == 8080
    assert config.address == "0.0.0.0:8080"
    assert config.url == "http://0.0.0.0:8080"


def test_env_port_overrides_cli_port() -> None:
    config = ServerConfig.resolve(port=9000, environ={"PORT": "7000"})

    assert config.port == 7000


@pytest.mark.parametrize(
    "value",
    ["abc", "80.5", "", "   ", "8080x", "8_080", "\u0668\u0660\u0668\u0660", "70000", "-1"],
)
def test_invalid_env_port_falls_back_to_cli_port(value: str) -> None:
    config = ServerConfig.resolve(port=9000, environ={"PORT": value})

    assert config.port == 9000


def test_invalid_env_port_falls_back_to_default() -> None:
    assert ServerConfig.resolve(environ={"PORT": "not-a-port"}).port == DEFAULT_PORT


def test_env_port_reads_process_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PORT", " 6123 ")
    assert env_port() == 6123
    monkeypatch.delenv("PORT")
    assert env_port() is None


def test_out_of_range_port_is_rejected() -> None:
    with pytest.raises(ValidationError):
        ServerConfig(port=70000)
    with pytest.raises(ValidationError):
        ServerConfig.resolve(port=-1, environ={})


@pytest.mark.parametrize(
    ("host", "address"),
    [
        ("127.0.0.1", "127.0.0.1:8080"),
        ("localhost", "localhost:8080"),
        ("::1", "[::1]:8080"),
        ("[::]", "[::]:8080"),
    ],
)
def test_address_is_well_formed(host: str, address: str) -> None:
    assert ServerConfig(host=host, port=8080).address == address


def test_empty_host_is_rejected() -> None:
    with pytest.raises(ValidationError):
        ServerConfig(host="  ", port=8080)
