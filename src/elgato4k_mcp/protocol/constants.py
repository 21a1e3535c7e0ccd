"""USB identifiers, request codes, and timing constants for both device families.

All magic numbers live here so the codecs and transports reference names
instead of raw hex.
"""

from __future__ import annotations

# ─── USB IDENTIFIERS ─────────────────────────────────────────────────

VENDOR_ID = 0x0FD9

# 4K X: the product id changes with the USB speed mode
PID_4KX_10G = 0x009B
PID_4KX_5G = 0x009C
PID_4KX_USB2 = 0x009D

# 4K S
PID_4KS_USB3 = 0x00AF
PID_4KS_USB2 = 0x00AE

# ─── UVC EXTENSION UNIT (4K X) ───────────────────────────────────────

UVC_REQUEST_TYPE_OUT = 0x21
UVC_REQUEST_TYPE_IN = 0xA1
UVC_SET_CUR = 0x01
UVC_GET_CUR = 0x81
UVC_GET_LEN = 0x85
UVC_INTERFACE = 0
UVC_ENTITY_ID = 4
UVC_XU_GUID = "961073c7-49f7-44f2-ab42-e940405940c2"
UVC_SELECTOR_VALUE = 0x01
UVC_SELECTOR_TRIGGER = 0x02

# ─── HID REPORTS (4K S) ──────────────────────────────────────────────

HID_REQUEST_TYPE_OUT = 0x21
HID_REQUEST_TYPE_IN = 0xA1
HID_SET_REPORT = 0x09
HID_GET_REPORT = 0x01
HID_REPORT_ID = 0x06
HID_REPORT_VALUE_OUTPUT = 0x0200 | HID_REPORT_ID
HID_REPORT_VALUE_INPUT = 0x0100 | HID_REPORT_ID
HID_INTERFACE = 7
HID_PACKET_SIZE = 255

# ─── TIMING ──────────────────────────────────────────────────────────

USB_TIMEOUT_MS = 1000
HID_INTER_PACKET_DELAY = 0.001  # seconds between command and confirmation
HID_READ_DELAY = 0.010  # seconds between read request and GET_REPORT
SETTING_APPLY_DELAY = 0.100  # seconds between consecutive settings
