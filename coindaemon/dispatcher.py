"""Fan-out dispatcher: one logical RPC command sent to every registered daemon."""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Sequence

import httpx

from coindaemon.config import DEFAULT_TIMEOUT
from coindaemon.logs import LogSink, default_log_sink
from coindaemon.parser import (
    ResponseParseError,
    decode_response,
    extract_result,
    serialize_batch,
    serialize_request,
)
from coindaemon.registry import InstanceRegistry
from coindaemon.schemas import CallState, DaemonInstance, ErrorKind, RpcError, RpcOutcome
from coindaemon.transport import DaemonRequestError, send

OnComplete = Callable[[Any], Any]


@dataclass
class PendingCall:
    """Tracks the single completion allowed for one instance in one dispatch."""

    instance: DaemonInstance
    state: CallState = CallState.PENDING
    outcome: RpcOutcome | None = None

    def settle(self, outcome: RpcOutcome) -> bool:
        """Record the outcome; returns False if the call was already settled."""
        if self.state is CallState.SETTLED:
            return False
        self.state = CallState.SETTLED
        self.outcome = outcome
        return True


async def _invoke(callback: OnComplete, value: Any) -> None:
    result = callback(value)
    if inspect.isawaitable(result):
        await result


class FanOutDispatcher:
    """Sends JSON-RPC commands concurrently to every instance of a registry.

    Each dispatch keeps its own pending-call list, so concurrent dispatches
    on the same dispatcher never share mutable state.
    """

    def __init__(
        self,
        registry: InstanceRegistry,
        log: LogSink | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = DEFAULT_TIMEOUT,
        strict_parsing: bool = False,
    ):
        """Initialize the dispatcher.

        Args:
            registry: Daemon instances to fan out to
            log: Sink for diagnostics
            transport: Optional httpx transport shared by all requests
            timeout: Per-request timeout in seconds
            strict_parsing: Report undecodable bodies as parse-error outcomes
        """
        self.registry = registry
        self.log = log or default_log_sink
        self.transport = transport
        self.timeout = timeout
        self.strict_parsing = strict_parsing
        self._tasks: set[asyncio.Task] = set()

    # --- Single instance ---

    async def _post(self, instance: DaemonInstance, payload: str) -> str:
        return await send(
            instance,
            payload,
            transport=self.transport,
            timeout=self.timeout,
            log=self.log,
        )

    async def _call_instance(
        self,
        instance: DaemonInstance,
        payload: str,
        include_raw_data: bool,
    ) -> RpcOutcome:
        """Run one request against one instance; never raises.

        Unexpected failures become request-error outcomes so one instance
        cannot keep the aggregate from completing.
        """
        try:
            return await self._request_instance(instance, payload, include_raw_data)
        except Exception as e:
            self.log("error", f"Unexpected failure calling daemon instance {instance.index}: {e!r}")
            return RpcOutcome(
                error=RpcError(type=ErrorKind.REQUEST_ERROR, message=str(e) or type(e).__name__),
                instance=instance,
            )

    async def _request_instance(
        self,
        instance: DaemonInstance,
        payload: str,
        include_raw_data: bool,
    ) -> RpcOutcome:
        try:
            body = await self._post(instance, payload)
        except DaemonRequestError as e:
            self.log("debug", f"Daemon instance {instance.index} request failed ({e.kind.value}): {e.message}")
            return RpcOutcome(error=e.to_error(), instance=instance)

        data = body if include_raw_data else None

        try:
            decoded = decode_response(body)
        except ResponseParseError as e:
            self.log(
                "error",
                f"Could not parse rpc data from daemon instance {instance.index}"
                f"\nRequest Data: {payload}"
                f"\nResponse Data: {body}",
            )
            error = RpcError(type=ErrorKind.PARSE_ERROR, message=str(e)) if self.strict_parsing else None
            return RpcOutcome(error=error, instance=instance, data=data)

        error, response = extract_result(decoded)
        return RpcOutcome(error=error, response=response, instance=instance, data=data)

    # --- Fan-out ---

    async def _fan_out(
        self,
        method: str,
        params: Sequence[Any] | None,
        include_raw_data: bool,
        on_outcome: OnComplete | None = None,
    ) -> list[RpcOutcome]:
        calls = [PendingCall(instance) for instance in self.registry]

        async def run(call: PendingCall) -> None:
            # Fresh id per instance
            payload = serialize_request(method, params)
            outcome = await self._call_instance(call.instance, payload, include_raw_data)
            if call.settle(outcome) and on_outcome is not None:
                await _invoke(on_outcome, outcome)

        await asyncio.gather(*(run(call) for call in calls))
        return [call.outcome for call in calls]

    async def _dispatch(
        self,
        method: str,
        params: Sequence[Any] | None,
        on_complete: OnComplete,
        stream_results: bool,
        include_raw_data: bool,
    ) -> None:
        if stream_results:
            await self._fan_out(method, params, include_raw_data, on_outcome=on_complete)
            return

        outcomes = await self._fan_out(method, params, include_raw_data)
        await _invoke(on_complete, outcomes)

    def dispatch(
        self,
        method: str,
        params: Sequence[Any] | None,
        on_complete: OnComplete,
        stream_results: bool = False,
        include_raw_data: bool = False,
    ) -> asyncio.Task:
        """Send a command to every instance and report through a callback.

        In batched mode ``on_complete`` receives the full outcome list once,
        in registry order. With ``stream_results`` it receives each outcome
        as soon as its instance finishes, in completion order.

        Must be called from a running event loop. The returned task may be
        awaited but cannot usefully be cancelled.
        """
        task = asyncio.get_running_loop().create_task(
            self._dispatch(method, params, on_complete, stream_results, include_raw_data)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def cmd(
        self,
        method: str,
        params: Sequence[Any] | None = None,
        include_raw_data: bool = False,
    ) -> list[RpcOutcome]:
        """Send a command to every instance and return outcomes in registry order."""
        return await self._fan_out(method, params, include_raw_data)

    async def stream(
        self,
        method: str,
        params: Sequence[Any] | None = None,
        include_raw_data: bool = False,
    ) -> AsyncIterator[RpcOutcome]:
        """Yield one outcome per instance in completion order."""
        loop = asyncio.get_running_loop()
        tasks = [
            loop.create_task(
                self._call_instance(instance, serialize_request(method, params), include_raw_data)
            )
            for instance in self.registry
        ]
        # Keep references in case the consumer stops iterating early
        for task in tasks:
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        for next_done in asyncio.as_completed(tasks):
            yield await next_done

    async def pcmd(
        self,
        method: str,
        params: Sequence[Any] | None = None,
        stream_results: bool = False,
        include_raw_data: bool = False,
    ) -> Any:
        """Await whatever the dispatch callback would receive first.

        In batched mode that is the outcome list. In streamed mode only the
        first finished outcome is captured.
        """
        future: asyncio.Future = asyncio.get_running_loop().create_future()

        def resolve(value: Any) -> None:
            if not future.done():
                future.set_result(value)

        def reject(task: asyncio.Task) -> None:
            if future.done() or task.cancelled():
                return
            if task.exception() is not None:
                future.set_exception(task.exception())

        task = self.dispatch(method, params, resolve, stream_results, include_raw_data)
        task.add_done_callback(reject)
        return await future

    async def batch_cmd(self, commands: Sequence[tuple[str, Sequence[Any] | None]]) -> RpcOutcome:
        """Send a JSON-RPC batch to the first registered instance only.

        Args:
            commands: ``[(method, params), ...]`` pairs

        Returns:
            Outcome whose response is the decoded batch reply array
        """
        instance = self.registry.first
        payload = serialize_batch(commands)

        try:
            body = await self._post(instance, payload)
        except DaemonRequestError as e:
            return RpcOutcome(error=e.to_error(), instance=instance)

        try:
            decoded = decode_response(body)
        except ResponseParseError as e:
            self.log(
                "error",
                f"Could not parse batch rpc data from daemon instance {instance.index}"
                f"\nRequest Data: {payload}"
                f"\nResponse Data: {body}",
            )
            error = RpcError(type=ErrorKind.PARSE_ERROR, message=str(e)) if self.strict_parsing else None
            return RpcOutcome(error=error, instance=instance)

        if isinstance(decoded, dict):
            # Daemons answer a rejected batch with a single error object
            error, _ = extract_result(decoded)
            return RpcOutcome(error=error, response=decoded, instance=instance)
        return RpcOutcome(response=decoded, instance=instance)
