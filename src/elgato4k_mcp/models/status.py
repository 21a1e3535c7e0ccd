"""Status snapshot and firmware version models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .device import Family, SpeedMode
from .settings import SettingKind, format_value


@dataclass(frozen=True)
class FirmwareVersion:
    """Firmware build date, reported as ``YY.MM.DD``.

    With ``bcd`` set the fields hold the raw date bytes as the device sent
    them and render as hex, so a byte such as 0x0c prints as ``0c``.
    """

    year: int
    month: int
    day: int
    bcd: bool = False

    def __str__(self) -> str:
        if self.bcd:
            return f"{self.year:02x}.{self.month:02x}.{self.day:02x}"
        return f"{self.year:02d}.{self.month:02d}.{self.day:02d}"


@dataclass
class StatusSnapshot:
    """All readable settings of one device, captured in a single pass.

    ``fields`` only holds kinds the family can read back; a snapshot is
    never built from a partial set of reads.
    """

    family: Family
    speed_mode: SpeedMode
    firmware_version: FirmwareVersion
    fields: dict[SettingKind, Any] = field(default_factory=dict)

    def __getitem__(self, kind: SettingKind) -> Any:
        return self.fields[kind]

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "model": str(self.family),
            "firmware_version": str(self.firmware_version),
            "usb_speed": str(self.speed_mode),
        }
        for kind, value in self.fields.items():
            result[kind.value] = format_value(value)
        return result

    def format(self) -> str:
        lines = [
            f"Firmware version: {self.firmware_version}",
            f"USB speed: {self.speed_mode}",
        ]
        for kind, value in self.fields.items():
            lines.append(f"{kind}: {format_value(value)}")
        return "\n".join(lines)
