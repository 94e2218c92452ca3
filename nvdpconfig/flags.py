"""Command line flags shared by the device plugin and feature discovery."""

from __future__ import annotations

import datetime
import json
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from nvdpconfig.duration import Duration, parse_duration
from nvdpconfig.resources import ConfigError

__all__ = [
    "CliFlag",
    "CliContext",
    "PluginCommandLineFlags",
    "GFDCommandLineFlags",
    "Flags",
    "parse_device_list_strategy",
]


@dataclass(frozen=True)
class CliFlag:
    """A command line flag: its name, aliases and default value."""

    name: str
    default: Any = None
    aliases: tuple[str, ...] = ()

    @property
    def names(self) -> tuple[str, ...]:
        return (self.name, *self.aliases)


@dataclass
class CliContext:
    """Values given on the command line, with flag defaults as fallback."""

    flags: Sequence[CliFlag] = ()
    values: Mapping[str, Any] = field(default_factory=dict)

    def _flag(self, name: str) -> CliFlag | None:
        return next((flag for flag in self.flags if name in flag.names), None)

    def _names(self, name: str) -> tuple[str, ...]:
        flag = self._flag(name)
        return flag.names if flag is not None else (name,)

    def is_set(self, name: str) -> bool:
        """Whether the flag (under any of its names) was given explicitly."""
        return any(n in self.values for n in self._names(name))

    def value(self, name: str) -> Any:
        """The explicit value of a flag, else its default, else ``None``."""
        for n in self._names(name):
            if n in self.values:
                return self.values[n]
        flag = self._flag(name)
        return flag.default if flag is not None else None


def parse_device_list_strategy(value) -> list[str]:
    """Accept a single strategy name or a list of names."""
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return list(value)
    raise ConfigError(f"invalid deviceListStrategy: {json.dumps(value, default=str)}")


def _object(value, what: str) -> dict:
    if not isinstance(value, dict):
        raise ConfigError(f"{what} must be an object: {value!r}")
    return value


def _opt_str(data: dict, key: str) -> str | None:
    value = data.get(key)
    if value is None or isinstance(value, str):
        return value
    raise ConfigError(f"'{key}' must be a string: {value!r}")


def _opt_bool(data: dict, key: str) -> bool | None:
    value = data.get(key)
    if value is None or isinstance(value, bool):
        return value
    raise ConfigError(f"'{key}' must be a boolean: {value!r}")


def _opt_duration(data: dict, key: str) -> Duration | None:
    value = data.get(key)
    if value is None:
        return None
    try:
        return Duration.from_json(value)
    except ValueError as exc:
        raise ConfigError(f"invalid '{key}': {exc}") from exc


def _opt_strategy(data: dict, key: str) -> list[str] | None:
    value = data.get(key)
    if value is None:
        return None
    return parse_device_list_strategy(value)


@dataclass
class PluginCommandLineFlags:
    """Flags specific to the device plugin."""

    pass_device_specs: bool | None = None
    device_list_strategy: list[str] | None = None
    device_id_strategy: str | None = None
    cdi_annotation_prefix: str | None = None
    nvidia_ctk_path: str | None = None
    container_driver_root: str | None = None

    @classmethod
    def from_json(cls, value) -> "PluginCommandLineFlags":
        data = _object(value, "plugin flags")
        return cls(
            pass_device_specs=_opt_bool(data, "passDeviceSpecs"),
            device_list_strategy=_opt_strategy(data, "deviceListStrategy"),
            device_id_strategy=_opt_str(data, "deviceIDStrategy"),
            cdi_annotation_prefix=_opt_str(data, "cdiAnnotationPrefix"),
            nvidia_ctk_path=_opt_str(data, "nvidiaCTKPath"),
            container_driver_root=_opt_str(data, "containerDriverRoot"),
        )

    def to_json(self) -> dict:
        return {
            "passDeviceSpecs": self.pass_device_specs,
            "deviceListStrategy": (
                list(self.device_list_strategy)
                if self.device_list_strategy is not None
                else None
            ),
            "deviceIDStrategy": self.device_id_strategy,
            "cdiAnnotationPrefix": self.cdi_annotation_prefix,
            "nvidiaCTKPath": self.nvidia_ctk_path,
            "containerDriverRoot": self.container_driver_root,
        }


@dataclass
class GFDCommandLineFlags:
    """Flags specific to feature discovery."""

    oneshot: bool | None = None
    no_timestamp: bool | None = None
    sleep_interval: Duration | None = None
    output_file: str | None = None
    machine_type_file: str | None = None

    @classmethod
    def from_json(cls, value) -> "GFDCommandLineFlags":
        data = _object(value, "gfd flags")
        return cls(
            oneshot=_opt_bool(data, "oneshot"),
            no_timestamp=_opt_bool(data, "noTimestamp"),
            sleep_interval=_opt_duration(data, "sleepInterval"),
            output_file=_opt_str(data, "outputFile"),
            machine_type_file=_opt_str(data, "machineTypeFile"),
        )

    def to_json(self) -> dict:
        return {
            "oneshot": self.oneshot,
            "noTimestamp": self.no_timestamp,
            "sleepInterval": (
                self.sleep_interval.to_json() if self.sleep_interval is not None else None
            ),
            "outputFile": self.output_file,
            "machineTypeFile": self.machine_type_file,
        }


def _string(value) -> str:
    return "" if value is None else str(value)


def _strings(value) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(item) for item in value]


def _boolean(value) -> bool:
    return bool(value)


def _duration(value) -> Duration:
    if value is None:
        return Duration(0)
    if isinstance(value, str):
        return Duration(parse_duration(value))
    if isinstance(value, datetime.timedelta):
        return Duration(value // datetime.timedelta(microseconds=1) * 1000)
    return Duration(int(value))


_Update = tuple[str, Callable[[Any], Any]]

_COMMON_FLAGS: dict[str, _Update] = {
    "mig-strategy": ("mig_strategy", _string),
    "fail-on-init-error": ("fail_on_init_error", _boolean),
    "mps-root": ("mps_root", _string),
    "driver-root": ("nvidia_driver_root", _string),
    "nvidia-driver-root": ("nvidia_driver_root", _string),
    "dev-root": ("nvidia_dev_root", _string),
    "nvidia-dev-root": ("nvidia_dev_root", _string),
    "gds-enabled": ("gds_enabled", _boolean),
    "mofed-enabled": ("mofed_enabled", _boolean),
    "use-node-feature-api": ("use_node_feature_api", _boolean),
    "device-discovery-strategy": ("device_discovery_strategy", _string),
}

_PLUGIN_FLAGS: dict[str, _Update] = {
    "pass-device-specs": ("pass_device_specs", _boolean),
    "device-list-strategy": ("device_list_strategy", _strings),
    "device-id-strategy": ("device_id_strategy", _string),
    "cdi-annotation-prefix": ("cdi_annotation_prefix", _string),
    "nvidia-cdi-hook-path": ("nvidia_ctk_path", _string),
    "nvidia-ctk-path": ("nvidia_ctk_path", _string),
    "container-driver-root": ("container_driver_root", _string),
}

_GFD_FLAGS: dict[str, _Update] = {
    "oneshot": ("oneshot", _boolean),
    "output-file": ("output_file", _string),
    "sleep-interval": ("sleep_interval", _duration),
    "no-timestamp": ("no_timestamp", _boolean),
    "machine-type-file": ("machine_type_file", _string),
}


def _apply(target, update: _Update | None, context: CliContext, name: str) -> None:
    """Take the CLI value when it was given, or when nothing is configured yet."""
    if update is None:
        return
    attr, convert = update
    if context.is_set(name) or getattr(target, attr) is None:
        setattr(target, attr, convert(context.value(name)))


@dataclass
class Flags:
    """All flags configuring the device plugin and feature discovery."""

    mig_strategy: str | None = None
    fail_on_init_error: bool | None = None
    mps_root: str | None = None
    nvidia_driver_root: str | None = None
    nvidia_dev_root: str | None = None
    gds_enabled: bool | None = None
    mofed_enabled: bool | None = None
    use_node_feature_api: bool | None = None
    device_discovery_strategy: str | None = None
    plugin: PluginCommandLineFlags | None = None
    gfd: GFDCommandLineFlags | None = None

    @classmethod
    def from_json(cls, value) -> "Flags":
        if value is None:
            return cls()
        data = _object(value, "flags")
        plugin = data.get("plugin")
        gfd = data.get("gfd")
        return cls(
            mig_strategy=_opt_str(data, "migStrategy"),
            fail_on_init_error=_opt_bool(data, "failOnInitError"),
            mps_root=_opt_str(data, "mpsRoot"),
            nvidia_driver_root=_opt_str(data, "nvidiaDriverRoot"),
            nvidia_dev_root=_opt_str(data, "nvidiaDevRoot"),
            gds_enabled=_opt_bool(data, "gdsEnabled"),
            mofed_enabled=_opt_bool(data, "mofedEnabled"),
            use_node_feature_api=_opt_bool(data, "useNodeFeatureAPI"),
            device_discovery_strategy=_opt_str(data, "deviceDiscoveryStrategy"),
            plugin=PluginCommandLineFlags.from_json(plugin) if plugin is not None else None,
            gfd=GFDCommandLineFlags.from_json(gfd) if gfd is not None else None,
        )

    @classmethod
    def parse(cls, text: str) -> "Flags":
        try:
            data = json.loads(text)
        except (json.JSONDecodeError, TypeError) as exc:
            raise ConfigError(f"invalid JSON: {exc}") from exc
        return cls.from_json(data)

    def to_json(self) -> dict:
        data: dict = {
            "migStrategy": self.mig_strategy,
            "failOnInitError": self.fail_on_init_error,
        }
        if self.mps_root is not None:
            data["mpsRoot"] = self.mps_root
        if self.nvidia_driver_root is not None:
            data["nvidiaDriverRoot"] = self.nvidia_driver_root
        if self.nvidia_dev_root is not None:
            data["nvidiaDevRoot"] = self.nvidia_dev_root
        data["gdsEnabled"] = self.gds_enabled
        data["mofedEnabled"] = self.mofed_enabled
        data["useNodeFeatureAPI"] = self.use_node_feature_api
        data["deviceDiscoveryStrategy"] = self.device_discovery_strategy
        if self.plugin is not None:
            data["plugin"] = self.plugin.to_json()
        if self.gfd is not None:
            data["gfd"] = self.gfd.to_json()
        return data

    def update_from_cli_flags(self, context: CliContext, flags: Iterable[CliFlag]) -> None:
        """Overlay command line values onto these flags.

        A value given on the command line always wins; a flag's default only
        fills in settings that are still unset.
        """
        for flag in flags:
            for name in flag.names:
                _apply(self, _COMMON_FLAGS.get(name), context, name)
                if self.plugin is None:
                    self.plugin = PluginCommandLineFlags()
                _apply(self.plugin, _PLUGIN_FLAGS.get(name), context, name)
                if self.gfd is None:
                    self.gfd = GFDCommandLineFlags()
                _apply(self.gfd, _GFD_FLAGS.get(name), context, name)