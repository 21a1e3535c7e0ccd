"""Packet codec for the 4K S (HID output/input report 6).

All packets are exactly 255 bytes, zero padded.

Write packet::

    +-----------+-------------+---------+-------+---------+-------+---------+
    | Report ID | Marker      | Class   | Write | Sub-cmd | Value | Padding |
    | 0x06      | 0x06 0x06   | 0x55    | 0x02  | 1 byte  | 1 byte| to 255  |
    +-----------+-------------+---------+-------+---------+-------+---------+

Most writes only take effect after a confirmation packet, which is a write
packet carrying the commit sub-command (``13 01``).

Read request (``ReadI2cData``)::

    +-----------+-------+---------+--------+---------+
    | Report ID | 0x55  | Sub-cmd | Length | Padding |
    +-----------+-------+---------+--------+---------+

followed by a GET_REPORT on input report 6; the bytes after the report id
are the response.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import ProtocolError, UnsupportedOperationError
from ..models.device import Family
from ..models.settings import AudioInput, ColorRange, EdidSource, Setting, SettingKind
from ..models.status import FirmwareVersion
from .constants import HID_PACKET_SIZE, HID_REPORT_ID

WRITE_HEADER = bytes([HID_REPORT_ID, 0x06, 0x06, 0x55, 0x02])
READ_CMD = 0x55


class SubCommand:
    """Feature sub-command ids (from the vendor DLL's CCamLinkSupport)."""

    FIRMWARE_VERSION = 0x02
    AUDIO_INPUT = 0x08
    HDR_TONEMAPPING = 0x0A
    COLOR_RANGE = 0x0B
    EDID_MODE = 0x12
    COMMIT = 0x13
    VIDEO_SCALER = 0x19


SETTING_SUBCMDS: dict[SettingKind, int] = {
    SettingKind.HDR_TONE_MAP: SubCommand.HDR_TONEMAPPING,
    SettingKind.HDMI_COLOR_RANGE: SubCommand.COLOR_RANGE,
    SettingKind.EDID_SOURCE: SubCommand.EDID_MODE,
    SettingKind.AUDIO_INPUT: SubCommand.AUDIO_INPUT,
    SettingKind.VIDEO_SCALER: SubCommand.VIDEO_SCALER,
}

# One table per kind serves both directions, so what we write is exactly
# what a read decodes back.
VALUE_CODES: dict[SettingKind, dict[object, int]] = {
    SettingKind.HDR_TONE_MAP: {False: 0x00, True: 0x01},
    SettingKind.HDMI_COLOR_RANGE: {
        ColorRange.AUTO: 0x00,
        ColorRange.EXPAND: 0x01,
        ColorRange.SHRINK: 0x02,
    },
    SettingKind.EDID_SOURCE: {
        EdidSource.MERGED: 0x00,
        EdidSource.DISPLAY: 0x01,
        EdidSource.INTERNAL: 0x02,
    },
    SettingKind.AUDIO_INPUT: {AudioInput.EMBEDDED: 0x00, AudioInput.ANALOG: 0x01},
    SettingKind.VIDEO_SCALER: {False: 0x00, True: 0x01},
}

# EDID source applies immediately; everything else needs the commit packet
REQUIRES_CONFIRMATION = frozenset({
    SettingKind.HDR_TONE_MAP,
    SettingKind.HDMI_COLOR_RANGE,
    SettingKind.AUDIO_INPUT,
    SettingKind.VIDEO_SCALER,
})

SETTING_READ_LENGTH = 1
FIRMWARE_READ_LENGTH = 8
FIRMWARE_DATE_OFFSET = 3
FIRMWARE_MAX_MONTH = 0x12
FIRMWARE_MAX_DAY = 0x31

# Readable kinds in the order a status snapshot queries them
READABLE_KINDS = (
    SettingKind.HDR_TONE_MAP,
    SettingKind.HDMI_COLOR_RANGE,
    SettingKind.EDID_SOURCE,
    SettingKind.AUDIO_INPUT,
    SettingKind.VIDEO_SCALER,
)


@dataclass(frozen=True)
class ReadRequest:
    """A ReadI2cData request and the response length it announces."""

    sub_cmd: int
    length: int

    def to_packet(self) -> bytes:
        return build_read_request(self.sub_cmd, self.length)


def _pad(body: bytes) -> bytes:
    return body + b"\x00" * (HID_PACKET_SIZE - len(body))


def build_write_packet(sub_cmd: int, value: int) -> bytes:
    """Build a 255-byte settings write packet."""
    return _pad(WRITE_HEADER + bytes([sub_cmd, value]))


CONFIRMATION_PACKET = build_write_packet(SubCommand.COMMIT, 0x01)


def build_read_request(sub_cmd: int, length: int) -> bytes:
    """Build a 255-byte ReadI2cData request packet."""
    if not 0 < length < HID_PACKET_SIZE:
        raise ValueError(f"Read length must be 1-{HID_PACKET_SIZE - 1}, got {length}")
    return _pad(bytes([HID_REPORT_ID, READ_CMD, sub_cmd, length]))


def encode_setting(setting: Setting) -> tuple[bytes, bytes | None]:
    """Encode ``setting`` as (command packet, confirmation packet or None).

    Raises:
        UnsupportedOperationError: If the 4K S has no sub-command for this kind.
    """
    sub_cmd = SETTING_SUBCMDS.get(setting.kind)
    if sub_cmd is None:
        raise UnsupportedOperationError(setting.kind, Family.S)
    packet = build_write_packet(sub_cmd, VALUE_CODES[setting.kind][setting.value])
    if setting.kind in REQUIRES_CONFIRMATION:
        return packet, CONFIRMATION_PACKET
    return packet, None


def read_request(kind: SettingKind) -> ReadRequest:
    """The ReadI2cData request that reads back ``kind``."""
    sub_cmd = SETTING_SUBCMDS.get(kind)
    if sub_cmd is None:
        raise UnsupportedOperationError(kind, Family.S)
    return ReadRequest(sub_cmd, SETTING_READ_LENGTH)


FIRMWARE_REQUEST = ReadRequest(SubCommand.FIRMWARE_VERSION, FIRMWARE_READ_LENGTH)


def decode_response(kind: SettingKind, data: bytes) -> object:
    """Decode a one-byte status read for ``kind``.

    Raises:
        ProtocolError: If the response is empty or the byte is not in the table.
    """
    if not data:
        raise ProtocolError(f"Empty {kind} response")
    raw = data[0]
    for value, code in VALUE_CODES[kind].items():
        if code == raw:
            return value
    raise ProtocolError(f"Unknown {kind} value 0x{raw:02x}", data)


def decode_firmware(data: bytes) -> FirmwareVersion:
    """Decode the 8-byte firmware response.

    Bytes 3-5 hold the build date as BCD ``[YY, MM, DD]``
    (e.g. ``25 02 10`` for 25.02.10). Month and day are range-checked on the
    raw bytes (0x01-0x12, 0x01-0x31) and rendered as hex, so non-BCD bytes
    such as ``0c`` still decode.
    """
    end = FIRMWARE_DATE_OFFSET + 3
    if len(data) < end:
        raise ProtocolError(
            f"Firmware response too short ({len(data)} bytes)", data
        )
    yy, mm, dd = data[FIRMWARE_DATE_OFFSET:end]
    if not (yy or mm or dd):
        raise ProtocolError("Device reported no firmware version", data)
    if not (1 <= mm <= FIRMWARE_MAX_MONTH and 1 <= dd <= FIRMWARE_MAX_DAY):
        raise ProtocolError(
            f"Invalid firmware date {bytes([yy, mm, dd]).hex(' ')}", data
        )
    return FirmwareVersion(year=yy, month=mm, day=dd, bcd=True)
