"""Configuration constants and loaders for daemon fleets."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from coindaemon.schemas import DaemonConfig

DEFAULT_HOST = "127.0.0.1"

# Seconds; applies per HTTP request
DEFAULT_TIMEOUT = 30.0

# Method used by the health monitor to probe every daemon
LIVENESS_METHOD = "getinfo"

# Environment variable naming a JSON file of daemon definitions
CONFIG_ENV_VAR = "COINDAEMON_CONFIG"

_DAEMON_URI_RE = re.compile(
    r"^(?P<user>[^:@]+):(?P<password>[^@]*)@(?:(?P<host>[^:@]+):)?(?P<port>\d+)$"
)


class ConfigError(ValueError):
    """Raised when daemon definitions cannot be loaded or validated."""

    pass


def validate_daemon_config(raw: DaemonConfig | dict[str, Any]) -> DaemonConfig:
    """Validate one daemon definition."""
    if isinstance(raw, DaemonConfig):
        return raw
    if not isinstance(raw, dict):
        raise ConfigError(f"Daemon definition must be an object, got {type(raw).__name__}")

    # Explicit null host means loopback
    if raw.get("host") is None:
        raw = {k: v for k, v in raw.items() if k != "host"}

    try:
        return DaemonConfig(**raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid daemon definition: {e}") from e


def parse_daemon_uri(uri: str) -> DaemonConfig:
    """Parse a ``user:password@host:port`` string (host may be omitted).

    Args:
        uri: Daemon URI as given on the command line

    Returns:
        Validated DaemonConfig
    """
    match = _DAEMON_URI_RE.match(uri.strip())
    if not match:
        raise ConfigError(f"Expected user:password@host:port, got '{uri}'")

    return validate_daemon_config({
        "host": match.group("host") or DEFAULT_HOST,
        "port": int(match.group("port")),
        "user": match.group("user"),
        "password": match.group("password"),
    })


def load_daemon_configs(path: Path | str) -> list[DaemonConfig]:
    """Load daemon definitions from a JSON file.

    The file may hold a single object, a list of objects, or an object
    with a ``daemons`` list.

    Args:
        path: Path to the JSON file

    Returns:
        Daemon definitions in file order
    """
    path = Path(path)
    try:
        content = json.loads(path.read_text())
    except OSError as e:
        raise ConfigError(f"Cannot read daemon config {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Daemon config {path} is not valid JSON: {e}") from e

    if isinstance(content, dict) and "daemons" in content:
        content = content["daemons"]
    if isinstance(content, dict):
        content = [content]
    if not isinstance(content, list):
        raise ConfigError(f"Daemon config {path} must hold an object or a list")

    return [validate_daemon_config(item) for item in content]
