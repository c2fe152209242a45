"""Tests for the mise-server entry point options."""

from __future__ import annotations

import asyncio

import pytest

from mise.server import run
from mise.server.run import ServerOptions


def test_defaults_when_environment_is_empty() -> None:
    assert ServerOptions.from_env({}) == ServerOptions()


def test_reads_host_port_and_duration() -> None:
    options = ServerOptions.from_env(
        {"MISE_SERVER_HOST": "0.0.0.0", "MISE_SERVER_PORT": "9100", "MISE_SERVER_DURATION": "2.5"}
    )

    assert options == ServerOptions(host="0.0.0.0", port=9100, duration=2.5)


@pytest.mark.parametrize(
    "environ",
    [
        {"MISE_SERVER_DURATION": "soon"},
        {"MISE_SERVER_DURATION": "0"},
        {"MISE_SERVER_PORT": "eighty"},
        {"MISE_SERVER_RELOAD": "1", "MISE_SERVER_DURATION": "5"},
    ],
)
def test_rejects_invalid_options(environ) -> None:
    with pytest.raises(SystemExit):
        ServerOptions.from_env(environ)


class _FakeServer:
    def __init__(self) -> None:
        self.should_exit = False
        self.ticks = 0

    async def serve(self) -> None:
        while not self.should_exit:
            self.ticks += 1
            await asyncio.sleep(0.01)


def test_timed_run_stops_the_server() -> None:
    server = _FakeServer()

    asyncio.run(run._run_for(server, 0.05))

    assert server.should_exit is True
    assert server.ticks > 0


def test_main_serves_until_duration_elapses(monkeypatch) -> None:
    started = {}

    class _Server(_FakeServer):
        def __init__(self, config) -> None:
            super().__init__()
            started["config"] = config

    monkeypatch.setenv("MISE_SERVER_PORT", "9200")
    monkeypatch.setenv("MISE_SERVER_DURATION", "0.05")
    monkeypatch.delenv("MISE_SERVER_RELOAD", raising=False)
    monkeypatch.setattr(run.uvicorn, "Server", _Server)

    run.main()

    assert started["config"].port == 9200
    assert started["config"].app == run.APP_PATH
