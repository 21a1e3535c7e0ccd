"""Tests for device identity resolution."""

import pytest

from elgato4k_mcp.errors import AmbiguousDeviceError, DeviceNotFoundError
from elgato4k_mcp.identity import PIDS_4KS, PIDS_4KX, classify, detect, find_devices, resolve
from elgato4k_mcp.models.device import Family, SpeedMode, UsbDescriptor
from elgato4k_mcp.models.settings import SettingKind


def _desc(pid, vid=0x0FD9, path="1-2"):
    return UsbDescriptor(vendor_id=vid, product_id=pid, path=path)


def test_product_tables_are_disjoint():
    assert not set(PIDS_4KX) & set(PIDS_4KS)


def test_classify_4kx_speed_modes():
    assert classify(_desc(0x009B)).speed_mode is SpeedMode.SUPERSPEED_PLUS_10G
    assert classify(_desc(0x009C)).speed_mode is SpeedMode.SUPERSPEED_5G
    assert classify(_desc(0x009D)).speed_mode is SpeedMode.USB2
    assert classify(_desc(0x009C)).family is Family.X


def test_classify_4ks():
    identity = classify(_desc(0x00AF))
    assert identity.family is Family.S
    assert identity.speed_mode is SpeedMode.USB3
    assert classify(_desc(0x00AE)).speed_mode is SpeedMode.USB2


def test_classify_unrecognized():
    assert classify(_desc(0x1234)) is None
    assert classify(_desc(0x009B, vid=0x046D)) is None


def test_capabilities():
    x = classify(_desc(0x009C))
    s = classify(_desc(0x00AF))
    assert x.supports(SettingKind.USB_SPEED)
    assert x.supports(SettingKind.CUSTOM_EDID)
    assert not x.supports(SettingKind.AUDIO_INPUT)
    assert not x.supports(SettingKind.VIDEO_SCALER)
    assert s.supports(SettingKind.AUDIO_INPUT)
    assert s.supports(SettingKind.VIDEO_SCALER)
    assert not s.supports(SettingKind.USB_SPEED)
    assert not s.supports(SettingKind.CUSTOM_EDID)


def test_resolve_single_device_ignores_others():
    identity = resolve([_desc(0x1234, vid=0x046D), _desc(0x00AF, path="3-1")])
    assert identity.family is Family.S
    assert identity.path == "3-1"


def test_resolve_not_found():
    with pytest.raises(DeviceNotFoundError):
        resolve([])
    with pytest.raises(DeviceNotFoundError):
        resolve([_desc(0x0001)])


def test_resolve_ambiguous_presents_all_matches():
    devices = [_desc(0x009C, path="1-1"), _desc(0x00AF, path="2-4")]
    with pytest.raises(AmbiguousDeviceError) as exc_info:
        resolve(devices)
    assert [d.path for d in exc_info.value.devices] == ["1-1", "2-4"]


def test_resolve_by_path():
    devices = [_desc(0x009C, path="1-1"), _desc(0x00AF, path="2-4")]
    assert resolve(devices, path="2-4").family is Family.S
    with pytest.raises(DeviceNotFoundError):
        resolve(devices, path="9-9")


def test_find_devices_lists_every_match():
    devices = [_desc(0x009C, path="1-1"), _desc(0x0042), _desc(0x00AE, path="2-1")]
    assert [d.product_id for d in find_devices(devices)] == [0x009C, 0x00AE]


def test_detect_uses_enumerator():
    identity = detect(enumerate_fn=lambda: [_desc(0x009D)])
    assert identity.family is Family.X
    assert str(identity) == "4K X (0fd9:009d - USB 2.0 (480 Mbps))"


def test_identity_to_dict():
    data = classify(_desc(0x009B, path="1-4")).to_dict()
    assert data["model"] == "4K X"
    assert data["usb_id"] == "0fd9:009b"
    assert "usb_speed" in data["capabilities"]
