"""Settings façade: the one public surface for applying and reading settings.

Both families sit behind the same two calls. Each call validates the
setting against the device's capability set before any byte is sent, then
dispatches to the family's codec and drives it through the sequencer while
holding the control interface.

Usage::

    with CaptureCard.open() as card:
        card.apply(Setting(SettingKind.HDR_TONE_MAP, True))
        print(card.read_status().format())
"""

from __future__ import annotations

import logging
from enum import Enum

from .errors import NotCommittedError, TransportError, UnsupportedOperationError
from .identity import detect
from .models.device import CAPABILITIES, DeviceIdentity, Family, SpeedMode
from .models.settings import Setting
from .models.status import FirmwareVersion, StatusSnapshot
from .protocol import hid, uvc
from .protocol.constants import (
    HID_INTER_PACKET_DELAY,
    HID_INTERFACE,
    HID_READ_DELAY,
    USB_TIMEOUT_MS,
    UVC_INTERFACE,
)
from .protocol.sequencer import CommandSequencer
from .transport.base import Transport

logger = logging.getLogger(__name__)

CONTROL_INTERFACES: dict[Family, int] = {
    Family.X: UVC_INTERFACE,
    Family.S: HID_INTERFACE,
}


class Effect(Enum):
    """Outcome of a successful :func:`apply_setting`."""

    APPLIED = "applied"
    # the device dropped off the bus and will come back under a new product id
    APPLIED_DEVICE_REENUMERATED = "applied, device re-enumerated"


def check_supported(family: Family, setting: Setting) -> None:
    """Raise :class:`UnsupportedOperationError` if ``family`` can't take ``setting``."""
    if setting.kind not in CAPABILITIES[family]:
        raise UnsupportedOperationError(setting.kind, family)


# ─── APPLY ───────────────────────────────────────────────────────────

def _apply_4kx(setting: Setting, sequencer: CommandSequencer) -> Effect:
    payload = uvc.encode_setting(setting)
    if uvc.is_reenumerating(setting):
        sequencer.uvc_at_command(payload)
        return Effect.APPLIED_DEVICE_REENUMERATED
    sequencer.uvc_write(payload)
    return Effect.APPLIED


def _apply_4ks(setting: Setting, sequencer: CommandSequencer) -> Effect:
    packet, confirmation = hid.encode_setting(setting)
    sequencer.hid_write(packet, confirmation)
    return Effect.APPLIED


_APPLY = {
    Family.X: _apply_4kx,
    Family.S: _apply_4ks,
}


def apply_setting(
    family: Family, setting: Setting, sequencer: CommandSequencer
) -> Effect:
    """Apply one setting to a device of ``family``.

    Raises:
        UnsupportedOperationError: Before any transfer, if the family lacks the kind.
        NotCommittedError: If the command went out but its commit step failed.
        TransportError: If the command itself could not be sent.
    """
    check_supported(family, setting)
    effect = _APPLY[family](setting, sequencer)
    logger.info("Applied %s (%s)", setting, effect.value)
    return effect


# ─── STATUS ──────────────────────────────────────────────────────────

def _firmware_4kx(sequencer: CommandSequencer) -> FirmwareVersion:
    return sequencer.uvc_query(uvc.FIRMWARE_PROBE, uvc.decode_firmware)


def _firmware_4ks(sequencer: CommandSequencer) -> FirmwareVersion:
    return sequencer.hid_read(hid.FIRMWARE_REQUEST, hid.decode_firmware)


def _status_4kx(sequencer: CommandSequencer) -> dict:
    fields = {}
    for kind in uvc.READABLE_KINDS:
        fields[kind] = sequencer.uvc_query(
            uvc.READ_PROBES[kind], lambda data, k=kind: uvc.decode_response(k, data)
        )
    return fields


def _status_4ks(sequencer: CommandSequencer) -> dict:
    fields = {}
    for kind in hid.READABLE_KINDS:
        fields[kind] = sequencer.hid_read(
            hid.read_request(kind), lambda data, k=kind: hid.decode_response(k, data)
        )
    return fields


_FIRMWARE = {
    Family.X: _firmware_4kx,
    Family.S: _firmware_4ks,
}

_STATUS = {
    Family.X: _status_4kx,
    Family.S: _status_4ks,
}


def read_firmware_version(family: Family, sequencer: CommandSequencer) -> FirmwareVersion:
    """Read and decode the firmware build date."""
    return _FIRMWARE[family](sequencer)


def read_status(
    family: Family, speed_mode: SpeedMode, sequencer: CommandSequencer
) -> StatusSnapshot:
    """Read every readable field, stopping at the first failed read.

    The 4K X reports its speed through its product id, so ``speed_mode``
    comes from the resolved identity rather than a read.
    """
    firmware = _FIRMWARE[family](sequencer)
    fields = _STATUS[family](sequencer)
    return StatusSnapshot(
        family=family,
        speed_mode=speed_mode,
        firmware_version=firmware,
        fields=fields,
    )


# ─── DEVICE HANDLE ───────────────────────────────────────────────────

class CaptureCard:
    """An opened capture card: identity, transport, and sequencer together.

    Every call claims the control interface (detaching the kernel driver)
    for just the duration of its transfers, so the host's video and audio
    drivers get the interface back on every exit path.
    """

    def __init__(
        self,
        identity: DeviceIdentity,
        transport: Transport,
        inter_packet_delay: float = HID_INTER_PACKET_DELAY,
        read_delay: float = HID_READ_DELAY,
    ) -> None:
        self._identity = identity
        self._transport = transport
        self._sequencer = CommandSequencer(
            transport,
            inter_packet_delay=inter_packet_delay,
            read_delay=read_delay,
        )
        self._stale = False

    @classmethod
    def open(
        cls,
        path: str | None = None,
        backend: str = "auto",
        timeout_ms: int = USB_TIMEOUT_MS,
    ) -> CaptureCard:
        """Detect the connected card and open a transport to it."""
        from .transport.usb_connection import open_transport

        identity = detect(path=path)
        transport = open_transport(identity, backend=backend, timeout_ms=timeout_ms)
        return cls(identity, transport)

    @property
    def identity(self) -> DeviceIdentity:
        return self._identity

    @property
    def family(self) -> Family:
        return self._identity.family

    @property
    def stale(self) -> bool:
        """True once the device has re-enumerated; the handle is then unusable."""
        return self._stale

    def _check_usable(self) -> None:
        if self._stale:
            raise TransportError(
                "Device re-enumerated after a USB speed change; open it again"
            )

    def apply(self, setting: Setting) -> Effect:
        """Apply ``setting``; see :func:`apply_setting`."""
        self._check_usable()
        check_supported(self.family, setting)
        try:
            with self._transport.claimed(CONTROL_INTERFACES[self.family]):
                effect = apply_setting(self.family, setting, self._sequencer)
        except NotCommittedError:
            # a speed switch that reached the device may still re-enumerate it
            if uvc.is_reenumerating(setting):
                self._stale = True
            raise
        if effect is Effect.APPLIED_DEVICE_REENUMERATED:
            self._stale = True
        return effect

    def read_status(self) -> StatusSnapshot:
        """Build a fresh :class:`StatusSnapshot`; see :func:`read_status`."""
        self._check_usable()
        with self._transport.claimed(CONTROL_INTERFACES[self.family]):
            return read_status(self.family, self._identity.speed_mode, self._sequencer)

    def read_firmware_version(self) -> FirmwareVersion:
        self._check_usable()
        with self._transport.claimed(CONTROL_INTERFACES[self.family]):
            return read_firmware_version(self.family, self._sequencer)

    def close(self) -> None:
        self._transport.close()

    def __enter__(self) -> CaptureCard:
        return self

    def __exit__(self, *exc) -> None:
        self.close()
