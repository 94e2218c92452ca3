"""The versioned configuration: loading from files and merging command line flags."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import IO, Iterable

import yaml

from nvdpconfig.flags import CliContext, CliFlag, Flags
from nvdpconfig.resources import ConfigError, Resources
from nvdpconfig.sharing import Sharing

__all__ = [
    "VERSION",
    "Config",
    "new_config",
    "disable_resource_naming_in_config",
    "parse_config",
    "parse_config_from",
]

VERSION = "v1"


@dataclass
class Config:
    """Configuration for the device plugin and feature discovery."""

    version: str = VERSION
    flags: Flags = field(default_factory=Flags)
    resources: Resources = field(default_factory=Resources)
    sharing: Sharing = field(default_factory=Sharing)

    @classmethod
    def from_json(cls, value) -> "Config":
        """Build a config from decoded data; a missing version means the current one."""
        if value is None:
            value = {}
        if not isinstance(value, dict):
            raise ConfigError(f"config must be an object: {value!r}")
        version = value.get("version")
        if version is None or version == "":
            version = VERSION
        if version != VERSION:
            raise ConfigError(f"unknown version: {version}")
        return cls(
            version=version,
            flags=Flags.from_json(value.get("flags")),
            resources=Resources.from_json(value.get("resources")),
            sharing=Sharing.from_json(value.get("sharing")),
        )

    def to_json(self) -> dict:
        return {
            "version": self.version,
            "flags": self.flags.to_json(),
            "resources": self.resources.to_json(),
            "sharing": self.sharing.to_json(),
        }


def parse_config_from(reader: IO) -> Config:
    """Read a YAML or JSON config document from a text or binary stream."""
    try:
        content = reader.read()
    except OSError as exc:
        raise ConfigError(f"read error: {exc}") from exc
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise ConfigError(f"unmarshal error: {exc}") from exc
    return Config.from_json(data)


def parse_config(config_file: str | os.PathLike) -> Config:
    """Load a config from a YAML or JSON file."""
    try:
        reader = open(config_file, "rb")
    except OSError as exc:
        raise ConfigError(f"error opening config file: {exc}") from exc
    with reader:
        try:
            return parse_config_from(reader)
        except ConfigError as exc:
            raise ConfigError(f"error parsing config file: {exc}") from exc


def new_config(context: CliContext, flags: Iterable[CliFlag]) -> Config:
    """Build a config from the command line, the environment and a config file.

    Explicit command line values take precedence over the config file.
    """
    config = Config()
    config_file = context.value("config-file")
    if config_file:
        try:
            config = parse_config(config_file)
        except ConfigError as exc:
            raise ConfigError(f"unable to parse config file: {exc}") from exc

    config.flags.update_from_cli_flags(context, flags)

    if not config.flags.nvidia_dev_root:
        config.flags.nvidia_dev_root = config.flags.nvidia_driver_root

    # Combining requests for more than one shared device is not supported under MPS.
    if config.sharing.mps is not None:
        config.sharing.mps.fail_requests_greater_than_one = True

    return config


def disable_resource_naming_in_config(logger, config: Config) -> None:
    """Drop custom resource names and device selections, warning about each."""
    if config.resources.gpus or config.resources.migs:
        logger.warning(
            "Customizing the 'resources' field is not yet supported in the config. Ignoring..."
        )
    config.resources.gpus = []
    config.resources.migs = []

    config.sharing.time_slicing.disable_resource_renaming(logger, "timeSlicing")
    if config.sharing.mps is not None:
        config.sharing.mps.disable_resource_renaming(logger, "mps")