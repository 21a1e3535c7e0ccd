"""User-facing setting vocabulary shared by both device families.

A :class:`Setting` pairs a :class:`SettingKind` with a value whose type
depends on the kind::

    HDR_TONE_MAP      bool
    HDMI_COLOR_RANGE  ColorRange
    EDID_SOURCE       EdidSource
    CUSTOM_EDID       bool
    USB_SPEED         UsbSpeed
    AUDIO_INPUT       AudioInput
    VIDEO_SCALER      bool
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..errors import InvalidSettingError


class SettingKind(Enum):
    """Setting identifiers."""

    HDR_TONE_MAP = "hdr_tone_map"
    HDMI_COLOR_RANGE = "hdmi_color_range"
    EDID_SOURCE = "edid_source"
    CUSTOM_EDID = "custom_edid"
    USB_SPEED = "usb_speed"
    AUDIO_INPUT = "audio_input"
    VIDEO_SCALER = "video_scaler"

    def __str__(self) -> str:
        return SETTING_LABELS[self]


class ColorRange(Enum):
    """HDMI color range (EDID range policy)."""

    AUTO = "auto"
    EXPAND = "expand"  # full, 0-255
    SHRINK = "shrink"  # limited, 16-235


class EdidSource(Enum):
    """Which EDID the card presents to the HDMI source."""

    DISPLAY = "display"  # passthrough monitor's EDID
    MERGED = "merged"  # combined EDID from all displays
    INTERNAL = "internal"  # card's built-in EDID


class UsbSpeed(Enum):
    """Requested USB link speed (4K X only)."""

    GEN1_5G = "5g"
    GEN2_10G = "10g"


class AudioInput(Enum):
    """Audio input source (4K S only)."""

    EMBEDDED = "embedded"  # HDMI audio
    ANALOG = "analog"  # line-in


SETTING_LABELS: dict[SettingKind, str] = {
    SettingKind.HDR_TONE_MAP: "HDR tone mapping",
    SettingKind.HDMI_COLOR_RANGE: "HDMI color range",
    SettingKind.EDID_SOURCE: "EDID source",
    SettingKind.CUSTOM_EDID: "Custom EDID",
    SettingKind.USB_SPEED: "USB speed",
    SettingKind.AUDIO_INPUT: "Audio input",
    SettingKind.VIDEO_SCALER: "Video scaler",
}

VALUE_TYPES: dict[SettingKind, type] = {
    SettingKind.HDR_TONE_MAP: bool,
    SettingKind.HDMI_COLOR_RANGE: ColorRange,
    SettingKind.EDID_SOURCE: EdidSource,
    SettingKind.CUSTOM_EDID: bool,
    SettingKind.USB_SPEED: UsbSpeed,
    SettingKind.AUDIO_INPUT: AudioInput,
    SettingKind.VIDEO_SCALER: bool,
}

_BOOL_ALIASES = {
    "on": True, "true": True, "1": True,
    "off": False, "false": False, "0": False,
}

# Accepted spellings per enum, beyond the canonical value
_ENUM_ALIASES: dict[type, dict[str, Any]] = {
    ColorRange: {"full": ColorRange.EXPAND, "limited": ColorRange.SHRINK},
    EdidSource: {},
    UsbSpeed: {
        "5gbps": UsbSpeed.GEN1_5G, "5": UsbSpeed.GEN1_5G,
        "10gbps": UsbSpeed.GEN2_10G, "10": UsbSpeed.GEN2_10G,
    },
    AudioInput: {
        "hdmi": AudioInput.EMBEDDED, "digital": AudioInput.EMBEDDED,
        "line": AudioInput.ANALOG, "linein": AudioInput.ANALOG,
    },
}


@dataclass(frozen=True)
class Setting:
    """One requested setting change."""

    kind: SettingKind
    value: Any

    def __post_init__(self) -> None:
        expected = VALUE_TYPES[self.kind]
        # bool is a subclass of int, so check the exact type for toggles
        if expected is bool:
            valid = type(self.value) is bool
        else:
            valid = isinstance(self.value, expected)
        if not valid:
            raise InvalidSettingError(
                f"{self.kind} expects {expected.__name__}, got {self.value!r}"
            )

    def __str__(self) -> str:
        return f"{self.kind}: {format_value(self.value)}"


def valid_values(kind: SettingKind) -> list[str]:
    """Canonical textual values accepted for ``kind``."""
    expected = VALUE_TYPES[kind]
    if expected is bool:
        return ["on", "off"]
    return [member.value for member in expected]


def parse_value(kind: SettingKind, text: str) -> Any:
    """Parse a textual value (``"on"``, ``"expand"``, ``"10g"``...) for ``kind``.

    Raises:
        InvalidSettingError: If ``text`` is not a recognized spelling.
    """
    key = text.strip().lower()
    expected = VALUE_TYPES[kind]
    if expected is bool:
        if key in _BOOL_ALIASES:
            return _BOOL_ALIASES[key]
    else:
        try:
            return expected(key)
        except ValueError:
            if key in _ENUM_ALIASES[expected]:
                return _ENUM_ALIASES[expected][key]
    raise InvalidSettingError(
        f"Invalid value '{text}' for {kind}. "
        f"Valid values: {', '.join(valid_values(kind))}"
    )


def parse_setting(kind: SettingKind | str, text: str) -> Setting:
    """Build a :class:`Setting` from a kind name and a textual value."""
    try:
        kind = SettingKind(kind)
    except ValueError:
        raise InvalidSettingError(
            f"Unknown setting '{kind}'. Valid: {[k.value for k in SettingKind]}"
        ) from None
    return Setting(kind, parse_value(kind, text))


def format_value(value: Any) -> str:
    """Human-readable rendering of a setting value."""
    if isinstance(value, bool):
        return "On" if value else "Off"
    if isinstance(value, ColorRange):
        return {
            ColorRange.AUTO: "Auto",
            ColorRange.EXPAND: "Expand (Full)",
            ColorRange.SHRINK: "Shrink (Limited)",
        }[value]
    if isinstance(value, AudioInput):
        return {
            AudioInput.EMBEDDED: "Embedded (HDMI)",
            AudioInput.ANALOG: "Analog (line-in)",
        }[value]
    if isinstance(value, UsbSpeed):
        return {UsbSpeed.GEN1_5G: "5Gbps", UsbSpeed.GEN2_10G: "10Gbps"}[value]
    if isinstance(value, Enum):
        return value.value.capitalize()
    return str(value)
