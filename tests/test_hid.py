"""Tests for the 4K S HID report codec."""

import pytest

from elgato4k_mcp.errors import ProtocolError, UnsupportedOperationError
from elgato4k_mcp.models.settings import (
    AudioInput,
    ColorRange,
    EdidSource,
    Setting,
    SettingKind,
    UsbSpeed,
)
from elgato4k_mcp.models.status import FirmwareVersion
from elgato4k_mcp.protocol import hid
from elgato4k_mcp.protocol.constants import HID_PACKET_SIZE
from elgato4k_mcp.protocol.hid import (
    CONFIRMATION_PACKET,
    SubCommand,
    WRITE_HEADER,
    build_read_request,
    build_write_packet,
    decode_firmware,
    decode_response,
    encode_setting,
    read_request,
)


def test_write_packet_layout():
    """Header, sub-command at offset 5, value at offset 6, zeros after."""
    packet = build_write_packet(SubCommand.HDR_TONEMAPPING, 0x01)
    assert len(packet) == HID_PACKET_SIZE
    assert packet[:5] == bytes([0x06, 0x06, 0x06, 0x55, 0x02])
    assert packet[5] == 0x0A
    assert packet[6] == 0x01
    assert not any(packet[7:])


def test_confirmation_packet():
    assert len(CONFIRMATION_PACKET) == HID_PACKET_SIZE
    assert CONFIRMATION_PACKET[:5] == WRITE_HEADER
    assert CONFIRMATION_PACKET[5:7] == b"\x13\x01"
    assert not any(CONFIRMATION_PACKET[7:])


def test_sub_commands_per_setting():
    cases = [
        (Setting(SettingKind.HDMI_COLOR_RANGE, ColorRange.EXPAND), 0x0B, 0x01),
        (Setting(SettingKind.EDID_SOURCE, EdidSource.INTERNAL), 0x12, 0x02),
        (Setting(SettingKind.AUDIO_INPUT, AudioInput.ANALOG), 0x08, 0x01),
        (Setting(SettingKind.VIDEO_SCALER, True), 0x19, 0x01),
        (Setting(SettingKind.HDR_TONE_MAP, False), 0x0A, 0x00),
    ]
    for setting, sub_cmd, value in cases:
        packet, _ = encode_setting(setting)
        assert (packet[5], packet[6]) == (sub_cmd, value), setting


def test_confirmation_required_except_edid_source():
    _, confirm = encode_setting(Setting(SettingKind.VIDEO_SCALER, True))
    assert confirm == CONFIRMATION_PACKET
    _, confirm = encode_setting(Setting(SettingKind.AUDIO_INPUT, AudioInput.EMBEDDED))
    assert confirm == CONFIRMATION_PACKET
    _, confirm = encode_setting(Setting(SettingKind.EDID_SOURCE, EdidSource.DISPLAY))
    assert confirm is None


def test_encode_unsupported_kind():
    with pytest.raises(UnsupportedOperationError):
        encode_setting(Setting(SettingKind.USB_SPEED, UsbSpeed.GEN1_5G))
    with pytest.raises(UnsupportedOperationError):
        encode_setting(Setting(SettingKind.CUSTOM_EDID, True))


def test_read_request_packet():
    packet = build_read_request(SubCommand.AUDIO_INPUT, 1)
    assert len(packet) == HID_PACKET_SIZE
    assert packet[:4] == bytes([0x06, 0x55, 0x08, 0x01])
    assert not any(packet[4:])
    with pytest.raises(ValueError):
        build_read_request(SubCommand.AUDIO_INPUT, 0)


def test_read_requests_per_kind():
    assert read_request(SettingKind.EDID_SOURCE) == hid.ReadRequest(0x12, 1)
    assert hid.FIRMWARE_REQUEST == hid.ReadRequest(0x02, 8)
    with pytest.raises(UnsupportedOperationError):
        read_request(SettingKind.USB_SPEED)


def test_decode_recovers_encoded_value():
    """Reading back the byte a write sent yields the written value."""
    for kind, table in hid.VALUE_CODES.items():
        for value in table:
            packet, _ = encode_setting(Setting(kind, value))
            assert decode_response(kind, bytes([packet[6]])) == value


def test_decode_audio_rejects_unknown_byte():
    with pytest.raises(ProtocolError) as exc_info:
        decode_response(SettingKind.AUDIO_INPUT, b"\x02")
    assert exc_info.value.raw == b"\x02"
    with pytest.raises(ProtocolError):
        decode_response(SettingKind.AUDIO_INPUT, b"\x03")


def test_decode_empty_response():
    with pytest.raises(ProtocolError):
        decode_response(SettingKind.VIDEO_SCALER, b"")


def test_decode_firmware_bcd():
    version = decode_firmware(bytes([0x00, 0x00, 0x00, 0x25, 0x02, 0x10, 0x00, 0x00]))
    assert version == FirmwareVersion(0x25, 0x02, 0x10, bcd=True)
    assert str(version) == "25.02.10"


def test_decode_firmware_keeps_non_bcd_month():
    """A month byte of 0x0c is in range and renders as hex."""
    version = decode_firmware(bytes([0x00, 0x00, 0x00, 0x25, 0x0C, 0x03, 0x00, 0x00]))
    assert str(version) == "25.0c.03"


def test_decode_firmware_rejects_bad_dates():
    with pytest.raises(ProtocolError, match="no firmware"):
        decode_firmware(bytes(8))
    with pytest.raises(ProtocolError):
        decode_firmware(bytes([0, 0, 0, 0x25, 0x15, 0x03, 0, 0]))  # month 15
    with pytest.raises(ProtocolError):
        decode_firmware(bytes([0, 0, 0, 0x25, 0x02, 0x00, 0, 0]))  # day 0
    with pytest.raises(ProtocolError):
        decode_firmware(bytes([0, 0, 0, 0x25]))
