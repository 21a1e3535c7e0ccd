"""Abstract USB transport used by the command sequencer.

Concrete transports provide raw control transfers and a scoped interface
claim; HID report I/O is derived from those unless a backend has its own.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator

from ..protocol.constants import (
    HID_GET_REPORT,
    HID_INTERFACE,
    HID_REPORT_VALUE_INPUT,
    HID_REPORT_VALUE_OUTPUT,
    HID_REQUEST_TYPE_IN,
    HID_REQUEST_TYPE_OUT,
    HID_SET_REPORT,
)


class Transport(ABC):
    """Blocking USB primitives for one opened device."""

    @abstractmethod
    def control_write(
        self, request_type: int, request: int, value: int, index: int, data: bytes
    ) -> int:
        """Issue a host-to-device control transfer; return bytes written."""

    @abstractmethod
    def control_read(
        self, request_type: int, request: int, value: int, index: int, length: int
    ) -> bytes:
        """Issue a device-to-host control transfer of up to ``length`` bytes."""

    @contextmanager
    def claimed(self, interface: int) -> Iterator[None]:
        """Hold ``interface`` for the duration of a command sequence.

        The default does nothing; transports that must detach a kernel
        driver override this and restore it on every exit path.
        """
        yield

    def set_report(self, data: bytes) -> int:
        """HID SET_REPORT on output report 6."""
        return self.control_write(
            HID_REQUEST_TYPE_OUT,
            HID_SET_REPORT,
            HID_REPORT_VALUE_OUTPUT,
            HID_INTERFACE,
            data,
        )

    def get_report(self, length: int) -> bytes:
        """HID GET_REPORT on input report 6, report id byte included."""
        return self.control_read(
            HID_REQUEST_TYPE_IN,
            HID_GET_REPORT,
            HID_REPORT_VALUE_INPUT,
            HID_INTERFACE,
            length,
        )

    def close(self) -> None:
        """Release the device handle."""
