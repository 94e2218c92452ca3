"""Options for replicating (sharing) devices between containers."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field

from nvdpconfig.resources import ConfigError, ResourceName

__all__ = [
    "ReplicatedDeviceRef",
    "ReplicatedDevices",
    "ReplicatedResource",
    "ReplicatedResources",
]

_UINT_MAX = 1 << 64
_INT_MAX = (1 << 63) - 1
_DIGITS = re.compile(r"[0-9]+")
_HEX32 = re.compile(r"[0-9a-fA-F]{32}")
_URN_PREFIX = "urn:uuid:"


def _is_uint(text: str) -> bool:
    return bool(_DIGITS.fullmatch(text)) and int(text) < _UINT_MAX


def _is_plain_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_uuid(text: str) -> bool:
    """Accept the UUID spellings: plain, braced, URN-prefixed and undashed."""
    if len(text) == 32:
        return bool(_HEX32.fullmatch(text))
    if len(text) == 36 + len(_URN_PREFIX):
        if text[: len(_URN_PREFIX)].lower() != _URN_PREFIX:
            return False
        text = text[len(_URN_PREFIX):]
    elif len(text) == 38:
        if not (text.startswith("{") and text.endswith("}")):
            return False
        text = text[1:-1]
    elif len(text) != 36:
        return False
    if any(text[pos] != "-" for pos in (8, 13, 18, 23)):
        return False
    undashed = text[:8] + text[9:13] + text[14:18] + text[19:23] + text[24:]
    return bool(_HEX32.fullmatch(undashed))


def _loads(text: str):
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError) as exc:
        raise ConfigError(f"invalid JSON: {exc}") from exc


class ReplicatedDeviceRef(str):
    """A full GPU index, a MIG index, or a GPU or MIG UUID."""

    def is_gpu_index(self) -> bool:
        return _is_uint(str(self))

    def is_mig_index(self) -> bool:
        gpu, sep, mig = str(self).partition(":")
        return bool(sep) and _is_uint(gpu) and _is_uint(mig)

    def is_uuid(self) -> bool:
        return self.is_gpu_uuid() or self.is_mig_uuid()

    def is_gpu_uuid(self) -> bool:
        """Whether this has the form ``GPU-<uuid>``."""
        text = str(self)
        return text.startswith("GPU-") and _is_uuid(text[len("GPU-"):])

    def is_mig_uuid(self) -> bool:
        """Whether this has the form ``MIG-<uuid>`` or ``MIG-GPU-<uuid>/<gi>/<ci>``."""
        text = str(self)
        if not text.startswith("MIG-"):
            return False
        suffix = text[len("MIG-"):]
        if _is_uuid(suffix):
            return True
        parts = suffix.split("/", 2)
        if len(parts) != 3:
            return False
        if not ReplicatedDeviceRef(parts[0]).is_gpu_uuid():
            return False
        return all(_is_uint(part) for part in parts[1:])


@dataclass
class ReplicatedDevices:
    """Which devices to replicate; exactly one of the fields is meant to be set."""

    all: bool = False
    count: int = 0
    devices: list[ReplicatedDeviceRef] | None = None

    @classmethod
    def from_json(cls, value) -> "ReplicatedDevices":
        if isinstance(value, str):
            if value != "all":
                raise ConfigError(
                    f"devices set as '{value}' but the only valid string input is 'all'"
                )
            return cls(all=True)

        if _is_plain_int(value):
            if value > _INT_MAX or value < -_INT_MAX - 1:
                raise ConfigError(f"unrecognized type for devices spec: {value!r}")
            if value <= 0:
                raise ConfigError(
                    f"devices set as '{value}' but a count of devices must be > 0"
                )
            return cls(count=value)

        if isinstance(value, list):
            refs = []
            for item in value:
                if _is_plain_int(item) and 0 <= item < _UINT_MAX:
                    refs.append(ReplicatedDeviceRef(str(item)))
                    continue
                if isinstance(item, str):
                    ref = ReplicatedDeviceRef(item)
                    if ref.is_gpu_index() or ref.is_mig_index() or ref.is_uuid():
                        refs.append(ref)
                        continue
                raise ConfigError(
                    f"unsupported type for device in devices list: {item!r}"
                )
            return cls(devices=refs)

        raise ConfigError(f"unrecognized type for devices spec: {value!r}")

    @classmethod
    def parse(cls, text: str) -> "ReplicatedDevices":
        return cls.from_json(_loads(text))

    def to_json(self):
        if self.all:
            return "all"
        if self.count > 0:
            return self.count
        if self.devices is not None:
            return [str(ref) for ref in self.devices]
        raise ConfigError(f"unmarshallable ReplicatedDevices struct: {self!r}")


@dataclass
class ReplicatedResource:
    """A resource to be replicated a number of times."""

    name: ResourceName
    replicas: int
    devices: ReplicatedDevices = field(default_factory=lambda: ReplicatedDevices(all=True))
    rename: ResourceName = field(default_factory=lambda: ResourceName(""))

    @classmethod
    def from_json(cls, value) -> "ReplicatedResource":
        if not isinstance(value, dict):
            raise ConfigError(f"replicated resource must be an object: {value!r}")

        if "name" not in value:
            raise ConfigError("no resource name specified")
        name = ResourceName.from_json(value["name"])

        devices = ReplicatedDevices.from_json(value.get("devices", "all"))

        if "replicas" not in value:
            raise ConfigError("no replicas specified")
        replicas = value["replicas"]
        if not _is_plain_int(replicas):
            raise ConfigError(f"replicas must be an integer: {replicas!r}")
        if replicas < 2:
            raise ConfigError("number of replicas must be >= 2")

        rename = ResourceName("")
        if "rename" in value:
            rename = ResourceName.from_json(value["rename"])

        return cls(name=name, replicas=replicas, devices=devices, rename=rename)

    @classmethod
    def parse(cls, text: str) -> "ReplicatedResource":
        return cls.from_json(_loads(text))

    def to_json(self) -> dict:
        data: dict = {"name": str(self.name)}
        if self.rename:
            data["rename"] = str(self.rename)
        data["devices"] = self.devices.to_json()
        data["replicas"] = self.replicas
        return data


def _optional_bool(data: dict, key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ConfigError(f"'{key}' must be a boolean: {value!r}")
    return value


@dataclass
class ReplicatedResources:
    """Generic options for replicating devices."""

    rename_by_default: bool = False
    fail_requests_greater_than_one: bool = False
    resources: list[ReplicatedResource] = field(default_factory=list)

    @classmethod
    def from_json(cls, value) -> "ReplicatedResources":
        if not isinstance(value, dict):
            raise ConfigError(f"replicated resources must be an object: {value!r}")

        rename_by_default = _optional_bool(value, "renameByDefault")
        fail_requests = _optional_bool(value, "failRequestsGreaterThanOne")

        if "resources" not in value:
            raise ConfigError("no resources specified")
        raw = value["resources"]
        if raw is None:
            raw = []
        if not isinstance(raw, list):
            raise ConfigError(f"'resources' must be a list: {raw!r}")
        resources = [ReplicatedResource.from_json(item) for item in raw]
        if not resources:
            raise ConfigError("no resources specified")

        if rename_by_default:
            for resource in resources:
                if not resource.rename:
                    resource.rename = resource.name.default_shared_rename()

        return cls(
            rename_by_default=rename_by_default,
            fail_requests_greater_than_one=fail_requests,
            resources=resources,
        )

    @classmethod
    def parse(cls, text: str) -> "ReplicatedResources":
        return cls.from_json(_loads(text))

    def to_json(self) -> dict:
        data: dict = {}
        if self.rename_by_default:
            data["renameByDefault"] = True
        if self.fail_requests_greater_than_one:
            data["failRequestsGreaterThanOne"] = True
        if self.resources:
            data["resources"] = [r.to_json() for r in self.resources]
        return data

    def is_replicated(self) -> bool:
        """Whether any resource is replicated more than once."""
        return any(r.replicas > 1 for r in self.resources)

    def disable_resource_renaming(self, logger, name: str) -> None:
        """Reset renames and device selections to their defaults, warning when changed."""
        sets_non_default_rename = False
        sets_devices = False
        for resource in self.resources:
            default_rename = resource.name.default_shared_rename()
            if not self.rename_by_default and resource.rename:
                sets_non_default_rename = True
                resource.rename = ResourceName("")
            if self.rename_by_default and resource.rename != default_rename:
                sets_non_default_rename = True
                resource.rename = default_rename
            if not resource.devices.all:
                sets_devices = True
                resource.devices = ReplicatedDevices(all=True)
        if sets_non_default_rename:
            logger.warning(
                "Setting the 'rename' field in sharing.%s.resources is not yet "
                "supported in the config. Ignoring...",
                name,
            )
        if sets_devices:
            logger.warning(
                "Customizing the 'devices' field in sharing.%s.resources is not yet "
                "supported in the config. Ignoring...",
                name,
            )