"""CoinDaemon RPC fan-out client.

Sends one logical JSON-RPC command to a fleet of coin daemons over HTTP,
collects or streams their per-instance outcomes, and reports aggregate
connectivity health.
"""

__version__ = "0.1.0"

from coindaemon.client import DaemonClient
from coindaemon.health import CONNECTION_FAILED, ONLINE, DaemonOfflineError
from coindaemon.schemas import DaemonConfig, DaemonInstance, ErrorKind, RpcError, RpcOutcome

__all__ = [
    "CONNECTION_FAILED",
    "DaemonClient",
    "DaemonConfig",
    "DaemonInstance",
    "DaemonOfflineError",
    "ErrorKind",
    "ONLINE",
    "RpcError",
    "RpcOutcome",
]
