"""Pytest configuration and fixtures for CoinDaemon tests."""

from __future__ import annotations

import errno
import json
from typing import Any, Callable

import httpx
import pytest

FIRST_PORT = 8331


def rpc_reply(result: Any = None, error: Any = None, status_code: int = 200) -> httpx.Response:
    """Build a JSON-RPC response as a daemon would send it."""
    return httpx.Response(status_code, json={"result": result, "error": error, "id": 1})


def refuse_connection(request: httpx.Request) -> httpx.Response:
    """Fail the way httpx does when nothing listens on the port."""
    refused = ConnectionRefusedError(errno.ECONNREFUSED, "Connection refused")
    raise httpx.ConnectError("[Errno 111] Connection refused", request=request) from refused


def request_json(request: httpx.Request) -> Any:
    return json.loads(request.content)


def fleet_transport(handlers: dict[int, Callable[[httpx.Request], Any]]) -> httpx.MockTransport:
    """Mock transport routing each request to a handler keyed by port.

    Handlers may be plain functions or coroutines.
    """

    def route(request: httpx.Request):
        return handlers[request.url.port](request)

    return httpx.MockTransport(route)


@pytest.fixture
def daemon_configs() -> list[dict[str, Any]]:
    """Three daemon definitions on consecutive ports."""
    return [
        {"host": "127.0.0.1", "port": FIRST_PORT + i, "user": "rpc", "password": "secret"}
        for i in range(3)
    ]


@pytest.fixture
def log_records() -> list[tuple[str, str]]:
    return []


@pytest.fixture
def log_sink(log_records: list[tuple[str, str]]) -> Callable[[str, str], None]:
    """Log sink that records (severity, message) pairs."""

    def sink(severity: str, message: str) -> None:
        log_records.append((severity, message))

    return sink


@pytest.fixture
def config_file(tmp_path, daemon_configs):
    """Daemon definitions written to a JSON file."""
    path = tmp_path / "daemons.json"
    path.write_text(json.dumps({"daemons": daemon_configs}))
    return path
