"""Multi-packet command sequencing over a :class:`~..transport.base.Transport`.

Writes move ``IDLE -> COMMAND_ISSUED -> (CONFIRMATION_ISSUED) -> COMMITTED``;
reads move ``IDLE -> READ_REQUEST_ISSUED -> RESPONSE_RECEIVED -> DECODED``.
Each transition is one blocking transport call. A failure at any step ends
the sequence (the 4K X status poll only paces the device and is exempt).
Nothing is retried here; several commands, speed switching in particular,
are not idempotent on the device.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable, Sequence, TypeVar

from ..errors import NotCommittedError, ProtocolError, TransportError
from .constants import (
    HID_INTER_PACKET_DELAY,
    HID_PACKET_SIZE,
    HID_READ_DELAY,
    HID_REPORT_ID,
    UVC_ENTITY_ID,
    UVC_GET_CUR,
    UVC_GET_LEN,
    UVC_INTERFACE,
    UVC_REQUEST_TYPE_IN,
    UVC_REQUEST_TYPE_OUT,
    UVC_SELECTOR_TRIGGER,
    UVC_SELECTOR_VALUE,
    UVC_SET_CUR,
)
from .hid import ReadRequest
from .uvc import build_trigger

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SequenceState(Enum):
    """Progress of the command currently being driven."""

    IDLE = "idle"
    COMMAND_ISSUED = "command issued"
    CONFIRMATION_ISSUED = "confirmation issued"
    COMMITTED = "committed"
    READ_REQUEST_ISSUED = "read request issued"
    RESPONSE_RECEIVED = "response received"
    DECODED = "decoded"


class CommandSequencer:
    """Drives one command at a time against a single device.

    Args:
        transport: An open transport; the caller holds the interface claim.
        inter_packet_delay: Seconds between the packets of a HID write.
        read_delay: Seconds between a HID read request and GET_REPORT.
    """

    def __init__(
        self,
        transport,
        inter_packet_delay: float = HID_INTER_PACKET_DELAY,
        read_delay: float = HID_READ_DELAY,
    ) -> None:
        self._transport = transport
        self._inter_packet_delay = inter_packet_delay
        self._read_delay = read_delay
        self.state = SequenceState.IDLE

    # ─── GENERIC STATE MACHINE ────────────────────────────────────────

    def write(
        self, steps: Sequence[Callable[[], object]], delay: float = 0.0
    ) -> SequenceState:
        """Run a write whose first step is the command and the rest commit it.

        Raises:
            TransportError: If the command step itself fails.
            NotCommittedError: If the command went out but a later step failed.
        """
        self.state = SequenceState.IDLE
        for i, step in enumerate(steps):
            if i and delay:
                time.sleep(delay)
            try:
                step()
            except (TransportError, ProtocolError) as e:
                if self.state is SequenceState.IDLE:
                    raise
                raise NotCommittedError(
                    f"Command sent but not committed: {e}", self.state
                ) from e
            self.state = (
                SequenceState.COMMAND_ISSUED if i == 0
                else SequenceState.CONFIRMATION_ISSUED
            )
        self.state = SequenceState.COMMITTED
        return self.state

    def read(
        self,
        request: Callable[[], object],
        receive: Callable[[], bytes],
        decode: Callable[[bytes], T],
        delay: float = 0.0,
    ) -> T:
        """Run a request/response read and decode the response."""
        self.state = SequenceState.IDLE
        request()
        self.state = SequenceState.READ_REQUEST_ISSUED
        if delay:
            time.sleep(delay)
        data = receive()
        self.state = SequenceState.RESPONSE_RECEIVED
        logger.debug("Response: %s", data.hex(" "))
        value = decode(data)
        self.state = SequenceState.DECODED
        return value

    # ─── UVC EXTENSION UNIT (4K X) ────────────────────────────────────

    def _set_cur(self, selector: int, data: bytes) -> None:
        logger.debug("SET_CUR sel %d: %s", selector, data.hex(" "))
        self._transport.control_write(
            UVC_REQUEST_TYPE_OUT,
            UVC_SET_CUR,
            selector << 8,
            (UVC_ENTITY_ID << 8) | UVC_INTERFACE,
            data,
        )

    def _get_len(self, selector: int) -> int:
        data = self._transport.control_read(
            UVC_REQUEST_TYPE_IN,
            UVC_GET_LEN,
            selector << 8,
            (UVC_ENTITY_ID << 8) | UVC_INTERFACE,
            2,
        )
        if len(data) < 2:
            raise ProtocolError(f"GET_LEN returned {len(data)} bytes", data)
        return int.from_bytes(data[:2], "little")

    def _get_cur(self, selector: int) -> bytes:
        # the device resizes the selector after each SET_CUR; ask first
        length = self._get_len(selector)
        return self._transport.control_read(
            UVC_REQUEST_TYPE_IN,
            UVC_GET_CUR,
            selector << 8,
            (UVC_ENTITY_ID << 8) | UVC_INTERFACE,
            length,
        )

    def uvc_write(self, payload: bytes) -> SequenceState:
        """Trigger (selector 0x02) then payload (selector 0x01)."""
        return self.write([
            lambda: self._set_cur(UVC_SELECTOR_TRIGGER, build_trigger(payload)),
            lambda: self._set_cur(UVC_SELECTOR_VALUE, payload),
        ])

    def _poll_status(self) -> None:
        # selector 0x02 status read gives the device time to fill selector 0x01;
        # its value is unused, so a failed poll does not end the sequence
        try:
            self._get_cur(UVC_SELECTOR_TRIGGER)
        except (TransportError, ProtocolError) as e:
            logger.debug("Status poll failed, reading response anyway: %s", e)

    def _uvc_send_frame(self, frame: bytes) -> None:
        self._set_cur(UVC_SELECTOR_TRIGGER, build_trigger(frame))
        self._set_cur(UVC_SELECTOR_VALUE, frame)

    def _uvc_send_probe(self, probe: bytes) -> None:
        self._uvc_send_frame(probe)
        self._poll_status()

    def uvc_query(self, probe: bytes, decode: Callable[[bytes], T]) -> T:
        """Write a probe frame, then read and decode selector 0x01."""
        return self.read(
            lambda: self._uvc_send_probe(probe),
            lambda: self._get_cur(UVC_SELECTOR_VALUE),
            decode,
        )

    def uvc_at_command(self, frame: bytes) -> bytes:
        """Send an AT command frame and read back its ACK.

        The device only acts on an AT command once the ACK has been read, so
        the frame is the command step and the ACK read is its commit step.

        Raises:
            TransportError: If the frame could not be sent.
            NotCommittedError: If the frame went out but the ACK read failed;
                the device may or may not have acted on it.
        """
        ack: list[bytes] = []

        def acknowledge() -> None:
            self._poll_status()
            ack.append(self._get_cur(UVC_SELECTOR_VALUE))

        self.write([lambda: self._uvc_send_frame(frame), acknowledge])
        logger.debug("AT command ACK: %s", ack[0].hex(" "))
        return ack[0]

    # ─── HID REPORTS (4K S) ───────────────────────────────────────────

    def _send_packet(self, packet: bytes) -> None:
        if len(packet) != HID_PACKET_SIZE:
            raise ValueError(
                f"HID packet must be {HID_PACKET_SIZE} bytes, got {len(packet)}"
            )
        logger.debug("SET_REPORT: %s", packet[:8].hex(" "))
        self._transport.set_report(packet)

    def hid_write(self, packet: bytes, confirmation: bytes | None = None) -> SequenceState:
        """Send a command packet and, if given, its confirmation packet."""
        steps = [lambda: self._send_packet(packet)]
        if confirmation is not None:
            steps.append(lambda: self._send_packet(confirmation))
        return self.write(steps, delay=self._inter_packet_delay)

    def _receive_report(self, request: ReadRequest) -> bytes:
        report = self._transport.get_report(HID_PACKET_SIZE)
        if not report or report[0] != HID_REPORT_ID:
            raise ProtocolError(
                f"Expected input report 0x{HID_REPORT_ID:02x}, got "
                f"{bytes(report[:1]).hex() or 'nothing'}",
                report,
            )
        data = report[1:]
        if len(data) < request.length:
            raise ProtocolError(
                f"Expected {request.length} bytes for sub-command "
                f"0x{request.sub_cmd:02x}, got {len(data)}",
                report,
            )
        return data[: request.length]

    def hid_read(self, request: ReadRequest, decode: Callable[[bytes], T]) -> T:
        """ReadI2cData: SET_REPORT the request, GET_REPORT the response."""
        return self.read(
            lambda: self._send_packet(request.to_packet()),
            lambda: self._receive_report(request),
            decode,
            delay=self._read_delay,
        )
