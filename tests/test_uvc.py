"""Tests for the 4K X extension unit codec."""

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
from elgato4k_mcp.protocol import uvc
from elgato4k_mcp.protocol.uvc import (
    build_trigger,
    decode_firmware,
    decode_response,
    encode_setting,
    is_reenumerating,
)

from conftest import uvc_response


def test_trigger_announces_payload_length():
    assert build_trigger(bytes(11)) == b"\x0b\x00"
    assert build_trigger(bytes(13)) == b"\x0d\x00"


def test_color_range_frames():
    """Captured frames for each color range, byte for byte."""
    assert encode_setting(Setting(SettingKind.HDMI_COLOR_RANGE, ColorRange.EXPAND)) == bytes(
        [0xA1, 0x08, 0x00, 0x00, 0x7C, 0x00, 0x00, 0x00, 0x01, 0x03, 0xD7]
    )
    assert encode_setting(Setting(SettingKind.HDMI_COLOR_RANGE, ColorRange.AUTO))[-2:] == b"\x00\xda"
    assert encode_setting(Setting(SettingKind.HDMI_COLOR_RANGE, ColorRange.SHRINK))[-2:] == b"\x04\xd6"


def test_hdr_and_edid_frames():
    assert encode_setting(Setting(SettingKind.HDR_TONE_MAP, True)) == bytes.fromhex(
        "a1 07 00 00 1f 00 00 00 01 38"
    )
    assert encode_setting(Setting(SettingKind.EDID_SOURCE, EdidSource.MERGED)) == bytes.fromhex(
        "a10a00004d0000000400000004"
    )
    assert encode_setting(Setting(SettingKind.CUSTOM_EDID, True)) == bytes.fromhex(
        "a10a0000540000000001800080"
    )


def test_every_frame_starts_with_family_byte():
    for table in uvc.SETTING_PAYLOADS.values():
        for frame in table.values():
            assert frame[0] == 0xA1
            assert frame[1] == len(frame) - 3


def test_usb_speed_frames():
    """AT command 0x8e with speed 0x00 (5G) or 0x03 (10G) at byte 12."""
    five = encode_setting(Setting(SettingKind.USB_SPEED, UsbSpeed.GEN1_5G))
    ten = encode_setting(Setting(SettingKind.USB_SPEED, UsbSpeed.GEN2_10G))
    assert five[4] == ten[4] == uvc.AT_CMD_SET_USB_SPEED
    assert five[12] == 0x00
    assert ten[12] == 0x03
    assert len(five) == len(ten) == 17


def test_usb_speed_reenumerates():
    assert is_reenumerating(Setting(SettingKind.USB_SPEED, UsbSpeed.GEN2_10G))
    assert not is_reenumerating(Setting(SettingKind.HDR_TONE_MAP, True))


def test_encode_unsupported_kind():
    with pytest.raises(UnsupportedOperationError):
        encode_setting(Setting(SettingKind.AUDIO_INPUT, AudioInput.ANALOG))
    with pytest.raises(UnsupportedOperationError):
        encode_setting(Setting(SettingKind.VIDEO_SCALER, True))


def test_decode_hdr():
    assert decode_response(SettingKind.HDR_TONE_MAP, uvc_response(0x01)) is True
    assert decode_response(SettingKind.HDR_TONE_MAP, uvc_response(0x00)) is False


def test_decode_color_range_mirrors_write_byte():
    """The read value equals byte 9 of the matching write frame."""
    for value, frame in uvc.SETTING_PAYLOADS[SettingKind.HDMI_COLOR_RANGE].items():
        assert decode_response(SettingKind.HDMI_COLOR_RANGE, uvc_response(frame[9])) is value


def test_decode_rejects_unknown_values():
    with pytest.raises(ProtocolError) as exc_info:
        decode_response(SettingKind.HDMI_COLOR_RANGE, uvc_response(0x01))
    assert exc_info.value.raw[4] == 0x01
    with pytest.raises(ProtocolError):
        decode_response(SettingKind.HDR_TONE_MAP, uvc_response(0x02))


def test_decode_rejects_short_response():
    with pytest.raises(ProtocolError):
        decode_response(SettingKind.HDR_TONE_MAP, b"\xa1\x80\x00\x00")


def test_edid_source_is_not_readable():
    with pytest.raises(UnsupportedOperationError):
        decode_response(SettingKind.EDID_SOURCE, uvc_response(0x00))


def test_decode_firmware():
    data = bytes([0xA1, 0x80, 0x81, 0x00]) + b"250210"
    data += b"\x00" * (133 - len(data))
    version = decode_firmware(data)
    assert version == FirmwareVersion(25, 2, 10)
    assert str(version) == "25.02.10"


def test_decode_firmware_rejects_empty_or_invalid():
    blank = bytes([0xA1, 0x80, 0x81, 0x00]) + b"\x00" * 129
    with pytest.raises(ProtocolError):
        decode_firmware(blank)
    with pytest.raises(ProtocolError):
        decode_firmware(bytes([0xA1, 0x80, 0x81, 0x00]) + b"251340")
    with pytest.raises(ProtocolError):
        decode_firmware(b"\xa1\x80")


def test_probe_frames():
    assert uvc.FIRMWARE_PROBE[4] == 0x77
    assert uvc.READ_PROBES[SettingKind.HDR_TONE_MAP][4] == 0x90
    assert uvc.READ_PROBES[SettingKind.HDMI_COLOR_RANGE][4] == 0x91
    assert uvc.READ_PROBES[SettingKind.HDMI_COLOR_RANGE][8] == 0x01
