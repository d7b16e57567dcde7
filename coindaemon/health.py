"""Aggregate liveness checks across the daemon fleet."""

from __future__ import annotations

import inspect
from typing import Any, Callable

from coindaemon.config import LIVENESS_METHOD
from coindaemon.dispatcher import FanOutDispatcher
from coindaemon.events import EventEmitter
from coindaemon.logs import LogSink
from coindaemon.schemas import RpcOutcome

CONNECTION_FAILED = "connectionFailed"
ONLINE = "online"


class DaemonOfflineError(Exception):
    """Raised by init when at least one daemon failed the liveness check."""

    def __init__(self, outcomes: list[RpcOutcome]):
        failed = [outcome.instance.index for outcome in outcomes if not outcome.ok]
        super().__init__(f"Daemon instances not online: {failed}")
        self.outcomes = outcomes


class HealthMonitor(EventEmitter):
    """Probes every daemon and emits connectivity events.

    Events:
        connectionFailed: outcome list, when any instance reports an error
        online: no payload, when init finds the whole fleet live
    """

    def __init__(
        self,
        dispatcher: FanOutDispatcher,
        log: LogSink | None = None,
        method: str = LIVENESS_METHOD,
    ):
        super().__init__(log or dispatcher.log)
        self.dispatcher = dispatcher
        self.method = method
        self.last_outcomes: list[RpcOutcome] = []

    async def _probe(self) -> tuple[bool, list[RpcOutcome]]:
        outcomes = await self.dispatcher.cmd(self.method, [])
        self.last_outcomes = outcomes
        return all(outcome.ok for outcome in outcomes), outcomes

    async def check_online(self, callback: Callable[[bool], Any] | None = None) -> bool:
        """Return True only if every instance answered without error.

        A single failing instance makes the whole fleet non-live and
        fires ``connectionFailed`` with all outcomes.
        """
        online, outcomes = await self._probe()

        # Emitted before the callback so a failing callback cannot suppress it
        if not online:
            self.emit(CONNECTION_FAILED, outcomes)

        if callback is not None:
            result = callback(online)
            if inspect.isawaitable(result):
                await result
        return online

    async def init(self, callback: Callable[[], Any] | None = None) -> None:
        """Wait for a successful liveness check before declaring readiness.

        Raises:
            DaemonOfflineError: If any instance is not online
        """
        online = await self.check_online()
        if not online:
            error = DaemonOfflineError(self.last_outcomes)
            self.log("error", f"Daemon fleet failed readiness check: {error}")
            raise error

        self.emit(ONLINE)
        if callback is not None:
            result = callback()
            if inspect.isawaitable(result):
                await result
