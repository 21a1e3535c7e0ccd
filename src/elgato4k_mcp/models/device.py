"""Device family, speed mode, and resolved identity records."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .settings import SettingKind


class Family(Enum):
    """The two unrelated control protocols."""

    X = "4K X"  # UVC extension unit, selector framing
    S = "4K S"  # HID reports

    def __str__(self) -> str:
        return self.value


class SpeedMode(Enum):
    """USB link speed, derived from the enumerated product id."""

    USB2 = "USB 2.0 (480 Mbps)"
    USB3 = "USB 3.0"
    SUPERSPEED_5G = "5Gbps (SuperSpeed)"
    SUPERSPEED_PLUS_10G = "10Gbps (SuperSpeed+)"

    def __str__(self) -> str:
        return self.value


CAPABILITIES: dict[Family, frozenset[SettingKind]] = {
    Family.X: frozenset({
        SettingKind.HDR_TONE_MAP,
        SettingKind.HDMI_COLOR_RANGE,
        SettingKind.EDID_SOURCE,
        SettingKind.CUSTOM_EDID,
        SettingKind.USB_SPEED,
    }),
    Family.S: frozenset({
        SettingKind.HDR_TONE_MAP,
        SettingKind.HDMI_COLOR_RANGE,
        SettingKind.EDID_SOURCE,
        SettingKind.AUDIO_INPUT,
        SettingKind.VIDEO_SCALER,
    }),
}


@dataclass(frozen=True)
class UsbDescriptor:
    """One transport-visible USB device."""

    vendor_id: int
    product_id: int
    path: str = ""
    manufacturer: str = ""
    product: str = ""


@dataclass(frozen=True)
class DeviceIdentity:
    """A recognized capture card, resolved once per session."""

    family: Family
    speed_mode: SpeedMode
    vendor_id: int
    product_id: int
    path: str = ""

    @property
    def capabilities(self) -> frozenset[SettingKind]:
        return CAPABILITIES[self.family]

    def supports(self, kind: SettingKind) -> bool:
        return kind in CAPABILITIES[self.family]

    def to_dict(self) -> dict:
        return {
            "model": str(self.family),
            "speed_mode": str(self.speed_mode),
            "usb_id": f"{self.vendor_id:04x}:{self.product_id:04x}",
            "path": self.path,
            "capabilities": sorted(k.value for k in self.capabilities),
        }

    def __str__(self) -> str:
        return (
            f"{self.family} ({self.vendor_id:04x}:{self.product_id:04x} - "
            f"{self.speed_mode})"
        )
