"""Shared test doubles: a transport that records every transfer."""

from __future__ import annotations

from contextlib import contextmanager

import pytest

from elgato4k_mcp.errors import TransportError
from elgato4k_mcp.protocol.constants import (
    HID_GET_REPORT,
    HID_PACKET_SIZE,
    HID_REPORT_ID,
    UVC_GET_CUR,
    UVC_GET_LEN,
    UVC_SELECTOR_VALUE,
)
from elgato4k_mcp.transport.base import Transport


class RecordingTransport(Transport):
    """In-memory transport.

    ``uvc_responses`` are served, in order, by GET_CUR on selector 0x01 (and
    sized by GET_LEN). ``reports`` are served by HID GET_REPORT. When
    ``fail_at`` is set, the transfer with that index raises TransportError.
    """

    def __init__(self, uvc_responses=(), reports=(), fail_at=None):
        self.uvc_responses = list(uvc_responses)
        self.reports = list(reports)
        self.fail_at = fail_at
        self.transfers = []
        self.events = []
        self.closed = False

    def _record(self, entry):
        self.transfers.append(entry)
        if self.fail_at is not None and len(self.transfers) - 1 == self.fail_at:
            raise TransportError("injected failure")

    def control_write(self, request_type, request, value, index, data):
        self._record(("write", request, value, index, bytes(data)))
        return len(data)

    def control_read(self, request_type, request, value, index, length):
        self._record(("read", request, value, index, length))
        selector = value >> 8
        if request == UVC_GET_LEN:
            if selector == UVC_SELECTOR_VALUE:
                return len(self.uvc_responses[0]).to_bytes(2, "little")
            return b"\x02\x00"
        if request == UVC_GET_CUR:
            if selector == UVC_SELECTOR_VALUE:
                return self.uvc_responses.pop(0)
            return b"\x00\x00"
        if request == HID_GET_REPORT:
            return self.reports.pop(0)
        raise AssertionError(f"unexpected read request 0x{request:02x}")

    @contextmanager
    def claimed(self, interface):
        self.events.append(("claim", interface))
        try:
            yield
        finally:
            self.events.append(("release", interface))

    def close(self):
        self.closed = True

    @property
    def writes(self):
        """Data of every control write, in order."""
        return [t[4] for t in self.transfers if t[0] == "write"]


def uvc_response(value: int, length: int = 16) -> bytes:
    """A 4K X probe response carrying ``value`` at byte 4."""
    data = bytes([0xA1, 0x80, 0x00, 0x00, value])
    return data + b"\x00" * (length - len(data))


def hid_report(data: bytes) -> bytes:
    """A full GET_REPORT buffer: report id, ``data``, zero padding."""
    body = bytes([HID_REPORT_ID]) + data
    return body + b"\x00" * (HID_PACKET_SIZE - len(body))


@pytest.fixture
def transport():
    return RecordingTransport()
