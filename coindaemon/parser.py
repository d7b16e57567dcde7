"""JSON-RPC request serialization and response parsing."""

from __future__ import annotations

import json
import random
import time
from typing import Any, Sequence

from coindaemon.schemas import RpcRequest

# Some daemons print NaN values as a bare -nan token
NAN_MARKER = ":-nan"
NAN_TOKEN = ":-nan,"
NAN_REPLACEMENT = ":0,"


class ResponseParseError(ValueError):
    """Raised when a response body is not decodable JSON."""

    pass


def new_request_id(offset: int = 0) -> int:
    """Millisecond timestamp plus a small random offset.

    Ids are advisory only; responses are correlated by position.
    """
    return int(time.time() * 1000) + random.randrange(10) + offset


def serialize_request(method: str, params: Sequence[Any] | None, request_id: int | None = None) -> str:
    """Serialize a single JSON-RPC request object."""
    request = RpcRequest(
        method=method,
        params=list(params or []),
        id=new_request_id() if request_id is None else request_id,
    )
    return json.dumps(request.model_dump())


def serialize_batch(commands: Sequence[tuple[str, Sequence[Any] | None]]) -> str:
    """Serialize ``[(method, params), ...]`` into a JSON-RPC batch array.

    Ids share one random base and are offset by position, so they are
    distinct within the batch.
    """
    base_id = new_request_id()
    requests = [
        RpcRequest(method=method, params=list(params or []), id=base_id + i).model_dump()
        for i, (method, params) in enumerate(commands)
    ]
    return json.dumps(requests)


def decode_response(raw: str) -> Any:
    """Decode a response body, repairing ``-nan`` numeric literals once.

    Args:
        raw: Response body text

    Returns:
        Decoded JSON value

    Raises:
        ResponseParseError: If the body is not JSON even after repair
    """
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        if NAN_MARKER not in raw:
            raise ResponseParseError(str(e)) from e

    repaired = raw.replace(NAN_TOKEN, NAN_REPLACEMENT)
    try:
        return json.loads(repaired)
    except json.JSONDecodeError as e:
        raise ResponseParseError(str(e)) from e


def extract_result(payload: Any) -> tuple[Any, Any]:
    """Split a decoded response object into ``(error, result)``."""
    if not isinstance(payload, dict):
        return None, None
    return payload.get("error"), payload.get("result")
