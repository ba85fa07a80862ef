"""Device identification model."""

from __future__ import annotations

from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class DeviceInfo:
    """Identification strings and version numbers reported by the cube."""

    name: str = ""
    description: str = ""
    copyright: str = ""
    hw_major: int = 0
    hw_minor: int = 0
    sw_major: int = 0
    sw_minor: int = 0
    proto_major: int = 0
    proto_minor: int = 0

    @property
    def hardware_version(self) -> str:
        return f"{self.hw_major}.{self.hw_minor}"

    @property
    def software_version(self) -> str:
        return f"{self.sw_major}.{self.sw_minor}"

    @property
    def protocol_version(self) -> str:
        return f"{self.proto_major}.{self.proto_minor}"

    def to_dict(self) -> dict:
        return asdict(self)
