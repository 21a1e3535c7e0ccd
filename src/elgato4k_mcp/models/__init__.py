"""Data models for settings, device identity, and status snapshots."""

from .settings import (
    AudioInput,
    ColorRange,
    EdidSource,
    Setting,
    SettingKind,
    UsbSpeed,
    parse_setting,
    parse_value,
)
from .device import CAPABILITIES, DeviceIdentity, Family, SpeedMode, UsbDescriptor
from .status import FirmwareVersion, StatusSnapshot
