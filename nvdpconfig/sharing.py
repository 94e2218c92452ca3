"""Sharing strategies for devices: time-slicing and MPS."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from nvdpconfig.replicas import ReplicatedResources
from nvdpconfig.resources import ConfigError

__all__ = ["SharingStrategy", "Sharing"]


class SharingStrategy(str, enum.Enum):
    """The active way in which devices are shared."""

    MPS = "mps"
    NONE = "none"
    TIME_SLICING = "time-slicing"

    def __str__(self) -> str:
        return self.value


@dataclass
class Sharing:
    """The supported sharing strategies and their replication settings."""

    time_slicing: ReplicatedResources = field(default_factory=ReplicatedResources)
    mps: ReplicatedResources | None = None

    def sharing_strategy(self) -> SharingStrategy:
        if self.mps is not None and self.mps.is_replicated():
            return SharingStrategy.MPS
        if self.time_slicing.is_replicated():
            return SharingStrategy.TIME_SLICING
        return SharingStrategy.NONE

    def replicated_resources(self) -> ReplicatedResources:
        """The resources of the active strategy; MPS wins whenever it is configured."""
        if self.mps is not None:
            return self.mps
        return self.time_slicing

    @classmethod
    def from_json(cls, value) -> "Sharing":
        if value is None:
            return cls()
        if not isinstance(value, dict):
            raise ConfigError(f"sharing must be an object: {value!r}")
        sharing = cls()
        if "timeSlicing" in value:
            sharing.time_slicing = ReplicatedResources.from_json(value["timeSlicing"])
        mps = value.get("mps")
        if mps is not None:
            sharing.mps = ReplicatedResources.from_json(mps)
        return sharing

    def to_json(self) -> dict:
        data: dict = {"timeSlicing": self.time_slicing.to_json()}
        if self.mps is not None:
            data["mps"] = self.mps.to_json()
        return data