"""Resource names, wildcard patterns and resource lists, plus shared constants."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

__all__ = [
    "ConfigError",
    "ResourceName",
    "ResourcePattern",
    "Resource",
    "Resources",
    "new_resource_name",
    "new_resource",
    "RESOURCE_NAME_PREFIX",
    "DEFAULT_SHARED_RESOURCE_NAME_SUFFIX",
    "MAX_RESOURCE_NAME_LENGTH",
    "MIG_STRATEGY_NONE",
    "MIG_STRATEGY_SINGLE",
    "MIG_STRATEGY_MIXED",
    "DEVICE_LIST_STRATEGY_ENVVAR",
    "DEVICE_LIST_STRATEGY_VOLUME_MOUNTS",
    "DEVICE_LIST_STRATEGY_CDI_ANNOTATIONS",
    "DEVICE_LIST_STRATEGY_CDI_CRI",
    "DEVICE_ID_STRATEGY_UUID",
    "DEVICE_ID_STRATEGY_INDEX",
    "DEFAULT_CDI_ANNOTATION_PREFIX",
    "DEFAULT_NVIDIA_CTK_PATH",
    "DEFAULT_CONTAINER_DRIVER_ROOT",
]

RESOURCE_NAME_PREFIX = "nvidia.com"
DEFAULT_SHARED_RESOURCE_NAME_SUFFIX = ".shared"
MAX_RESOURCE_NAME_LENGTH = 63

MIG_STRATEGY_NONE = "none"
MIG_STRATEGY_SINGLE = "single"
MIG_STRATEGY_MIXED = "mixed"

DEVICE_LIST_STRATEGY_ENVVAR = "envvar"
DEVICE_LIST_STRATEGY_VOLUME_MOUNTS = "volume-mounts"
DEVICE_LIST_STRATEGY_CDI_ANNOTATIONS = "cdi-annotations"
DEVICE_LIST_STRATEGY_CDI_CRI = "cdi-cri"

DEVICE_ID_STRATEGY_UUID = "uuid"
DEVICE_ID_STRATEGY_INDEX = "index"

DEFAULT_CDI_ANNOTATION_PREFIX = "cdi.k8s.io/"
DEFAULT_NVIDIA_CTK_PATH = "/usr/bin/nvidia-ctk"
DEFAULT_CONTAINER_DRIVER_ROOT = "/driver-root"

_DNS1123_LABEL = r"[a-z0-9]([-a-z0-9]*[a-z0-9])?"
_DNS1123_SUBDOMAIN = re.compile(rf"{_DNS1123_LABEL}(\.{_DNS1123_LABEL})*")
_DNS1123_SUBDOMAIN_MAX_LENGTH = 253


class ConfigError(ValueError):
    """Raised when configuration data is malformed or invalid."""


def _dns_subdomain_problems(name: str) -> list[str]:
    problems = []
    if len(name) > _DNS1123_SUBDOMAIN_MAX_LENGTH:
        problems.append(f"must be no more than {_DNS1123_SUBDOMAIN_MAX_LENGTH} characters")
    if not _DNS1123_SUBDOMAIN.fullmatch(name):
        problems.append(
            "a lowercase RFC 1123 subdomain must consist of lower case alphanumeric "
            "characters, '-' or '.', and must start and end with an alphanumeric character"
        )
    return problems


class ResourceName(str):
    """A fully-qualified resource name such as ``nvidia.com/gpu``."""

    def split(self) -> tuple[str, str]:  # type: ignore[override]
        """Return the prefix and the bare name."""
        prefix, sep, name = str(self).partition("/")
        if not sep:
            return "", str(self)
        return prefix, name

    def default_shared_rename(self) -> "ResourceName":
        return ResourceName(str(self) + DEFAULT_SHARED_RESOURCE_NAME_SUFFIX)

    @classmethod
    def from_json(cls, value) -> "ResourceName":
        if not isinstance(value, str):
            raise ConfigError(f"resource name must be a string: {value!r}")
        return new_resource_name(value)


class ResourcePattern(str):
    """A wildcard pattern where ``*`` matches any run of characters."""

    def matches(self, s: str) -> bool:
        """Whether the pattern occurs anywhere in ``s``."""
        regex = ".*".join(re.escape(part) for part in str(self).split("*"))
        return re.search(regex, s) is not None


def new_resource_name(n: str) -> ResourceName:
    """Qualify ``n`` with the standard prefix and validate it."""
    if not n.startswith(RESOURCE_NAME_PREFIX + "/"):
        n = f"{RESOURCE_NAME_PREFIX}/{n}"

    if len(n) > MAX_RESOURCE_NAME_LENGTH:
        raise ConfigError(
            f"fully-qualified resource name must be {MAX_RESOURCE_NAME_LENGTH} "
            f"characters or less: {n}"
        )

    _, name = ResourceName(n).split()
    problems = _dns_subdomain_problems(name)
    if problems:
        raise ConfigError(f"incorrect format for resource name '{n}': {problems}")

    return ResourceName(n)


@dataclass
class Resource:
    """A pattern matcher paired with the resource name it maps to."""

    pattern: ResourcePattern
    name: ResourceName

    @classmethod
    def from_json(cls, value) -> "Resource":
        if not isinstance(value, dict):
            raise ConfigError(f"resource must be an object: {value!r}")
        if "pattern" not in value:
            raise ConfigError("resources must have a 'pattern' field set")
        if "name" not in value:
            raise ConfigError("resources must have a 'name' field set")
        pattern = value["pattern"]
        if not isinstance(pattern, str):
            raise ConfigError(f"resource pattern must be a string: {pattern!r}")
        return cls(ResourcePattern(pattern), ResourceName.from_json(value["name"]))

    def to_json(self) -> dict:
        return {"pattern": str(self.pattern), "name": str(self.name)}


def new_resource(pattern: str, name: str) -> Resource:
    """Build a resource from a pattern and a (possibly unqualified) name."""
    try:
        resource_name = new_resource_name(name)
    except ConfigError as exc:
        raise ConfigError(f"invalid resource name: {exc}") from exc
    return Resource(ResourcePattern(pattern), resource_name)


def _resource_list(value, key: str) -> list[Resource]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError(f"'{key}' must be a list: {value!r}")
    return [Resource.from_json(item) for item in value]


@dataclass
class Resources:
    """Full GPU and MIG device resources, listed separately."""

    gpus: list[Resource] = field(default_factory=list)
    migs: list[Resource] = field(default_factory=list)

    def add_gpu_resource(self, pattern: str, name: str) -> None:
        self.gpus.append(new_resource(pattern, name))

    def add_mig_resource(self, pattern: str, name: str) -> None:
        self.migs.append(new_resource(pattern, name))

    @classmethod
    def from_json(cls, value) -> "Resources":
        if value is None:
            return cls()
        if not isinstance(value, dict):
            raise ConfigError(f"resources must be an object: {value!r}")
        return cls(
            gpus=_resource_list(value.get("gpus"), "gpus"),
            migs=_resource_list(value.get("mig"), "mig"),
        )

    def to_json(self) -> dict:
        data: dict = {"gpus": [r.to_json() for r in self.gpus] if self.gpus else None}
        if self.migs:
            data["mig"] = [r.to_json() for r in self.migs]
        return data