"""The set of device list strategies enabled for passing devices to containers."""

from __future__ import annotations

from collections.abc import Iterable

from nvdpconfig.resources import (
    DEVICE_LIST_STRATEGY_CDI_ANNOTATIONS,
    DEVICE_LIST_STRATEGY_CDI_CRI,
    DEVICE_LIST_STRATEGY_ENVVAR,
    DEVICE_LIST_STRATEGY_VOLUME_MOUNTS,
    ConfigError,
)

__all__ = ["DeviceListStrategies", "new_device_list_strategies"]

_KNOWN_STRATEGIES = (
    DEVICE_LIST_STRATEGY_ENVVAR,
    DEVICE_LIST_STRATEGY_VOLUME_MOUNTS,
    DEVICE_LIST_STRATEGY_CDI_ANNOTATIONS,
    DEVICE_LIST_STRATEGY_CDI_CRI,
)

_CDI_PREFIX = "cdi-"


class DeviceListStrategies(dict):
    """Maps each strategy name to whether it is enabled."""

    def includes(self, strategy: str) -> bool:
        return bool(self.get(strategy, False))

    def any_cdi_enabled(self) -> bool:
        """Whether any enabled strategy requires CDI."""
        return any(enabled and name.startswith(_CDI_PREFIX) for name, enabled in self.items())

    def all_cdi_enabled(self) -> bool:
        """Whether every enabled strategy requires CDI."""
        return all(name.startswith(_CDI_PREFIX) for name, enabled in self.items() if enabled)


def new_device_list_strategies(strategies: Iterable[str]) -> DeviceListStrategies:
    """Enable the given strategies; an unknown name raises ``ConfigError``."""
    result = DeviceListStrategies.fromkeys(_KNOWN_STRATEGIES, False)
    for strategy in strategies:
        if strategy not in result:
            raise ConfigError(f"invalid strategy: {strategy}")
        result[strategy] = True
    return result