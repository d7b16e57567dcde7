"""Pydantic schemas for daemon configuration, requests and per-instance outcomes."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ErrorKind(str, Enum):
    """Locally detected failure kinds."""

    UNAUTHORIZED = "unauthorized"
    OFFLINE = "offline"
    REQUEST_ERROR = "request-error"
    PARSE_ERROR = "parse-error"


class CallState(str, Enum):
    """Completion state of one instance call."""

    PENDING = "pending"
    SETTLED = "settled"


class RpcError(BaseModel):
    """Error produced by this library rather than reported by a daemon."""

    type: ErrorKind
    message: str = ""


# --- Daemon definitions ---


class DaemonConfig(BaseModel):
    """Caller-supplied definition of one daemon endpoint."""

    host: str = Field(default="127.0.0.1", min_length=1)
    port: int = Field(..., ge=1, le=65535)
    user: str
    password: str


class DaemonInstance(BaseModel):
    """A registered daemon endpoint, immutable once created."""

    model_config = ConfigDict(frozen=True)

    host: str
    port: int
    user: str
    password: str = Field(repr=False)
    index: int = Field(..., ge=0, description="Position in the configured fleet")

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}/"

    @property
    def label(self) -> str:
        return f"#{self.index} {self.host}:{self.port}"


# --- Wire request / outcome ---


class RpcRequest(BaseModel):
    """A single JSON-RPC request object."""

    method: str
    params: list[Any] = Field(default_factory=list)
    id: int


class RpcOutcome(BaseModel):
    """Result of one dispatched call against one instance."""

    # RpcError for local failures, otherwise the daemon's decoded error member as-is
    error: Any = None
    response: Any = None
    instance: DaemonInstance
    data: str | None = Field(default=None, description="Unparsed body when raw data was requested")

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_kind(self) -> ErrorKind | None:
        """Kind of a locally detected error, None for daemon-reported or no error."""
        if isinstance(self.error, RpcError):
            return self.error.type
        return None
