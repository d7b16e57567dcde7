"""HTTP transport adapter: one authenticated POST per call, failures classified."""

from __future__ import annotations

import errno

import httpx

from coindaemon.config import DEFAULT_TIMEOUT
from coindaemon.logs import LogSink, default_log_sink
from coindaemon.schemas import DaemonInstance, ErrorKind, RpcError


class DaemonRequestError(Exception):
    """Raised when a request never produced a usable response body."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def to_error(self) -> RpcError:
        return RpcError(type=self.kind, message=self.message)


def _is_connection_refused(exc: BaseException) -> bool:
    """Search the exception chain, exception groups included, for ECONNREFUSED."""
    pending = [exc]
    seen = set()
    while pending:
        current = pending.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))

        if isinstance(current, ConnectionRefusedError):
            return True
        if isinstance(current, OSError) and current.errno == errno.ECONNREFUSED:
            return True

        pending.extend(getattr(current, "exceptions", ()))
        pending.extend(e for e in (current.__cause__, current.__context__) if e is not None)
    return False


async def send(
    instance: DaemonInstance,
    payload: str,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    timeout: float | None = DEFAULT_TIMEOUT,
    log: LogSink = default_log_sink,
) -> str:
    """POST a serialized JSON-RPC payload to one daemon and return the body.

    No retries are attempted. Any HTTP status other than 401 is returned
    for parsing, since daemons report RPC errors with a 500 and a JSON body.

    Args:
        instance: Target daemon
        payload: Serialized request (object or batch array)
        transport: Optional httpx transport, e.g. a MockTransport in tests
        timeout: Request timeout in seconds
        log: Sink for diagnostics

    Returns:
        Response body text

    Raises:
        DaemonRequestError: On 401, refused connection or other transport failure
    """
    body = payload.encode("utf-8")

    try:
        async with httpx.AsyncClient(transport=transport, timeout=timeout) as client:
            response = await client.post(
                instance.url,
                content=body,
                auth=(instance.user, instance.password),
                headers={"Content-Length": str(len(body))},
            )
    except httpx.ConnectError as e:
        # DNS and other connect failures are not "offline"
        kind = ErrorKind.OFFLINE if _is_connection_refused(e) else ErrorKind.REQUEST_ERROR
        raise DaemonRequestError(kind, str(e) or type(e).__name__) from e
    except httpx.HTTPError as e:
        raise DaemonRequestError(ErrorKind.REQUEST_ERROR, str(e) or type(e).__name__) from e

    if response.status_code == 401:
        log("error", "Unauthorized RPC access - invalid RPC username or password")
        raise DaemonRequestError(
            ErrorKind.UNAUTHORIZED,
            f"Daemon instance {instance.index} rejected the RPC credentials",
        )

    return response.text
