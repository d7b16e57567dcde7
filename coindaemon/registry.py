"""Fixed registry of configured daemon instances."""

from __future__ import annotations

from typing import Any, Iterator, Sequence

from coindaemon.config import ConfigError, validate_daemon_config
from coindaemon.schemas import DaemonConfig, DaemonInstance


class InstanceRegistry:
    """Ordered, read-only list of daemon instances.

    Safe to share between concurrent dispatches since nothing mutates it
    after construction.
    """

    def __init__(self, instances: Sequence[DaemonInstance]):
        if not instances:
            raise ConfigError("At least one daemon must be configured")
        self._instances: tuple[DaemonInstance, ...] = tuple(instances)

    @classmethod
    def from_configs(
        cls,
        daemons: DaemonConfig | dict[str, Any] | Sequence[DaemonConfig | dict[str, Any]],
    ) -> InstanceRegistry:
        """Build a registry from one definition or an ordered sequence of them."""
        if isinstance(daemons, (DaemonConfig, dict)):
            daemons = [daemons]

        instances = []
        for index, raw in enumerate(daemons):
            config = validate_daemon_config(raw)
            instances.append(DaemonInstance(**config.model_dump(), index=index))
        return cls(instances)

    @property
    def first(self) -> DaemonInstance:
        return self._instances[0]

    def __len__(self) -> int:
        return len(self._instances)

    def __iter__(self) -> Iterator[DaemonInstance]:
        return iter(self._instances)

    def __getitem__(self, index: int) -> DaemonInstance:
        return self._instances[index]

    def __repr__(self) -> str:
        labels = ", ".join(instance.label for instance in self._instances)
        return f"InstanceRegistry([{labels}])"
