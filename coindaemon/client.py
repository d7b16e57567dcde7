"""Single-object interface over the registry, dispatcher and health monitor."""

from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator, Callable, Sequence

import httpx

from coindaemon.config import DEFAULT_TIMEOUT
from coindaemon.dispatcher import FanOutDispatcher, OnComplete
from coindaemon.health import HealthMonitor
from coindaemon.logs import LogSink, default_log_sink
from coindaemon.registry import InstanceRegistry
from coindaemon.schemas import DaemonConfig, DaemonInstance, RpcOutcome


class DaemonClient:
    """Client for a fleet of JSON-RPC daemons.

    Example:
        client = DaemonClient([
            {"host": "127.0.0.1", "port": 8332, "user": "rpc", "password": "secret"},
        ])
        outcomes = await client.cmd("getblockcount", [])
    """

    def __init__(
        self,
        daemons: DaemonConfig | dict[str, Any] | Sequence[DaemonConfig | dict[str, Any]],
        log: LogSink | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = DEFAULT_TIMEOUT,
        strict_parsing: bool = False,
    ):
        self.log = log or default_log_sink
        self.registry = InstanceRegistry.from_configs(daemons)
        self.dispatcher = FanOutDispatcher(
            self.registry,
            log=self.log,
            transport=transport,
            timeout=timeout,
            strict_parsing=strict_parsing,
        )
        self.health = HealthMonitor(self.dispatcher, log=self.log)

    @property
    def instances(self) -> list[DaemonInstance]:
        return list(self.registry)

    # --- Commands ---

    def dispatch(
        self,
        method: str,
        params: Sequence[Any] | None,
        on_complete: OnComplete,
        stream_results: bool = False,
        include_raw_data: bool = False,
    ) -> asyncio.Task:
        return self.dispatcher.dispatch(method, params, on_complete, stream_results, include_raw_data)

    async def cmd(
        self,
        method: str,
        params: Sequence[Any] | None = None,
        include_raw_data: bool = False,
    ) -> list[RpcOutcome]:
        return await self.dispatcher.cmd(method, params, include_raw_data)

    def stream(
        self,
        method: str,
        params: Sequence[Any] | None = None,
        include_raw_data: bool = False,
    ) -> AsyncIterator[RpcOutcome]:
        return self.dispatcher.stream(method, params, include_raw_data)

    async def pcmd(
        self,
        method: str,
        params: Sequence[Any] | None = None,
        stream_results: bool = False,
        include_raw_data: bool = False,
    ) -> Any:
        return await self.dispatcher.pcmd(method, params, stream_results, include_raw_data)

    async def batch_cmd(self, commands: Sequence[tuple[str, Sequence[Any] | None]]) -> RpcOutcome:
        return await self.dispatcher.batch_cmd(commands)

    # --- Health ---

    async def check_online(self, callback: Callable[[bool], Any] | None = None) -> bool:
        return await self.health.check_online(callback)

    async def init(self, callback: Callable[[], Any] | None = None) -> None:
        await self.health.init(callback)

    def on(self, event: str, listener: Callable[..., Any]) -> Callable[..., Any]:
        return self.health.on(event, listener)

    def once(self, event: str, listener: Callable[..., Any]) -> Callable[..., Any]:
        return self.health.once(event, listener)

    def off(self, event: str, listener: Callable[..., Any]) -> None:
        self.health.off(event, listener)
