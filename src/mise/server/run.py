"""Console entry point that serves the Mise API with uvicorn.

Reads ``MISE_SERVER_HOST``, ``MISE_SERVER_PORT``, ``MISE_SERVER_RELOAD`` and
``MISE_SERVER_DURATION``. A duration makes the server stop on its own, which is
handy for smoke runs; it cannot be combined with auto-reload.
"""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from typing import Mapping, Optional

import uvicorn

from mise.config import get_settings

APP_PATH = "mise.server.app:app"


@dataclass(frozen=True)
class ServerOptions:
    host: str = "127.0.0.1"
    port: int = 8000
    reload: bool = False
    duration: Optional[float] = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> "ServerOptions":
        raw_port = environ.get("MISE_SERVER_PORT", "8000")
        try:
            port = int(raw_port)
        except ValueError as exc:
            raise SystemExit(f"Invalid MISE_SERVER_PORT '{raw_port}'") from exc

        options = cls(
            host=environ.get("MISE_SERVER_HOST", "127.0.0.1"),
            port=port,
            reload=environ.get("MISE_SERVER_RELOAD") == "1",
            duration=_env_duration(environ.get("MISE_SERVER_DURATION")),
        )
        if options.reload and options.duration is not None:
            raise SystemExit("MISE_SERVER_DURATION cannot be used with MISE_SERVER_RELOAD=1")
        return options


def _env_duration(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError as exc:
        raise SystemExit(f"Invalid MISE_SERVER_DURATION '{value}'") from exc
    if seconds <= 0:
        raise SystemExit("MISE_SERVER_DURATION must be a positive number of seconds")
    return seconds


async def _run_for(server: uvicorn.Server, seconds: float) -> None:
    serving = asyncio.ensure_future(server.serve())
    done, _ = await asyncio.wait({serving}, timeout=seconds)
    if not done:
        server.should_exit = True
    await serving


def main() -> None:
    """Entry point for the ``mise-server`` console script."""

    options = ServerOptions.from_env(os.environ)
    log_level = get_settings().log_level.lower()

    if options.reload:
        uvicorn.run(APP_PATH, host=options.host, port=options.port, reload=True, log_level=log_level)
        return

    server = uvicorn.Server(
        uvicorn.Config(APP_PATH, host=options.host, port=options.port, log_level=log_level)
    )
    if options.duration is None:
        server.run()
    else:
        asyncio.run(_run_for(server, options.duration))


if __name__ == "__main__":
    main()
