"""Packet codec for the 4K X (UVC extension unit #4).

Every write is a two-step SET_CUR pair on the extension unit::

    trigger  selector 0x02   <payload length, u16 little-endian>
    payload  selector 0x01   <setting bytes>

Setting payloads share an ``a1 <len> 00 00 <feature> 00 00 00 <args...> <check>``
layout. The trailing check byte is an integrity field the device verifies;
its algorithm was never confirmed for all command families, so every frame
sent here is a literal captured from the vendor software. Nothing in this
module derives that byte, and no frame may be sent that is not in these
tables (custom EDID upload stays unimplemented for that reason).

Reads ("probes") write a query frame the same way, then fetch the response
from selector 0x01. Responses carry a four-byte header (``a1 80 xx 00``)
followed by data; single-value reads return their value at byte 4.
"""

from __future__ import annotations

from ..errors import ProtocolError, UnsupportedOperationError
from ..models.device import Family
from ..models.settings import (
    ColorRange,
    EdidSource,
    Setting,
    SettingKind,
    UsbSpeed,
)
from ..models.status import FirmwareVersion

RESPONSE_VALUE_OFFSET = 4
FIRMWARE_DIGITS = 6  # ASCII YYMMDD

# ─── WRITE FRAMES ────────────────────────────────────────────────────

SETTING_PAYLOADS: dict[SettingKind, dict[object, bytes]] = {
    SettingKind.HDR_TONE_MAP: {
        True: bytes.fromhex("a1 07 00 00 1f 00 00 00 01 38"),
        False: bytes.fromhex("a1 07 00 00 1f 00 00 00 00 39"),
    },
    SettingKind.HDMI_COLOR_RANGE: {
        ColorRange.AUTO: bytes.fromhex("a1 08 00 00 7c 00 00 00 01 00 da"),
        ColorRange.EXPAND: bytes.fromhex("a1 08 00 00 7c 00 00 00 01 03 d7"),
        ColorRange.SHRINK: bytes.fromhex("a1 08 00 00 7c 00 00 00 01 04 d6"),
    },
    SettingKind.EDID_SOURCE: {
        EdidSource.DISPLAY: bytes.fromhex("a1 0a 00 00 4d 00 00 00 01 00 00 00 07"),
        EdidSource.MERGED: bytes.fromhex("a1 0a 00 00 4d 00 00 00 04 00 00 00 04"),
        EdidSource.INTERNAL: bytes.fromhex("a1 0a 00 00 4d 00 00 00 00 00 00 00 08"),
    },
    SettingKind.CUSTOM_EDID: {
        False: bytes.fromhex("a1 0a 00 00 54 00 00 00 00 00 80 00 81"),
        True: bytes.fromhex("a1 0a 00 00 54 00 00 00 00 01 80 00 80"),
    },
}

# AT command 0x8e (force USB speed), input ``01 00 00 00 <speed> 00 00 00``
# with speed 0x00 = 5Gbps, 0x03 = 10Gbps.
AT_CMD_SET_USB_SPEED = 0x8E
USB_SPEED_FRAMES: dict[UsbSpeed, bytes] = {
    UsbSpeed.GEN1_5G: bytes.fromhex(
        "a1 0e 00 00 8e 00 00 00 01 00 00 00 00 00 00 00 c2"
    ),
    UsbSpeed.GEN2_10G: bytes.fromhex(
        "a1 0e 00 00 8e 00 00 00 01 00 00 00 03 00 00 00 bf"
    ),
}

# ─── READ PROBES ─────────────────────────────────────────────────────

FIRMWARE_PROBE = bytes.fromhex("a1 06 00 00 77 00 00 00 e2")

READ_PROBES: dict[SettingKind, bytes] = {
    SettingKind.HDR_TONE_MAP: bytes.fromhex("a1 06 00 00 90 00 00 00 c9"),
    SettingKind.HDMI_COLOR_RANGE: bytes.fromhex("a1 07 00 00 91 00 00 00 01 c6"),
}

READ_DECODE: dict[SettingKind, dict[int, object]] = {
    SettingKind.HDR_TONE_MAP: {0x00: False, 0x01: True},
    # mirrors byte 9 of the color range write frames
    SettingKind.HDMI_COLOR_RANGE: {
        0x00: ColorRange.AUTO,
        0x03: ColorRange.EXPAND,
        0x04: ColorRange.SHRINK,
    },
}

# Readable kinds in the order a status snapshot queries them
READABLE_KINDS = (SettingKind.HDMI_COLOR_RANGE, SettingKind.HDR_TONE_MAP)


def build_trigger(payload: bytes) -> bytes:
    """Build the selector 0x02 trigger announcing ``payload``'s length."""
    return len(payload).to_bytes(2, "little")


def encode_setting(setting: Setting) -> bytes:
    """Return the literal selector 0x01 frame for ``setting``.

    Raises:
        UnsupportedOperationError: If the 4K X has no frame for this kind.
    """
    if setting.kind is SettingKind.USB_SPEED:
        return USB_SPEED_FRAMES[setting.value]
    table = SETTING_PAYLOADS.get(setting.kind)
    if table is None:
        raise UnsupportedOperationError(setting.kind, Family.X)
    return table[setting.value]


def is_reenumerating(setting: Setting) -> bool:
    """True when applying ``setting`` makes the device drop off the bus."""
    return setting.kind is SettingKind.USB_SPEED


def decode_response(kind: SettingKind, data: bytes) -> object:
    """Decode a probe response for ``kind``.

    Raises:
        ProtocolError: If the response is short or holds an unknown value.
    """
    table = READ_DECODE.get(kind)
    if table is None:
        raise UnsupportedOperationError(kind, Family.X)
    if len(data) <= RESPONSE_VALUE_OFFSET:
        raise ProtocolError(
            f"{kind} response too short ({len(data)} bytes)", data
        )
    raw = data[RESPONSE_VALUE_OFFSET]
    if raw not in table:
        raise ProtocolError(f"Unknown {kind} value 0x{raw:02x}", data)
    return table[raw]


def decode_firmware(data: bytes) -> FirmwareVersion:
    """Decode the firmware probe response.

    The response carries the build date as six ASCII digits (``YYMMDD``)
    starting at byte 4, e.g. ``"250210"`` for 25.02.10.
    """
    start = RESPONSE_VALUE_OFFSET
    digits = bytes(data[start : start + FIRMWARE_DIGITS])
    if len(digits) < FIRMWARE_DIGITS or not digits.isdigit():
        raise ProtocolError(
            f"Unexpected firmware response: {bytes(data[:16]).hex(' ')}", data
        )
    yy, mm, dd = int(digits[0:2]), int(digits[2:4]), int(digits[4:6])
    if not (1 <= mm <= 12 and 1 <= dd <= 31):
        raise ProtocolError(f"Invalid firmware date {digits.decode()}", data)
    return FirmwareVersion(year=yy, month=mm, day=dd)
