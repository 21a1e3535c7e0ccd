"""Device identity resolution: vendor/product id to family and speed mode.

The product id sets of the two families are disjoint, so a single lookup
classifies a device unambiguously. Speed switching on the 4K X changes the
product id but never the family.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable

from .errors import AmbiguousDeviceError, DeviceNotFoundError
from .models.device import DeviceIdentity, Family, SpeedMode, UsbDescriptor
from .protocol.constants import (
    PID_4KS_USB2,
    PID_4KS_USB3,
    PID_4KX_10G,
    PID_4KX_5G,
    PID_4KX_USB2,
    VENDOR_ID,
)

logger = logging.getLogger(__name__)

PIDS_4KX: dict[int, SpeedMode] = {
    PID_4KX_10G: SpeedMode.SUPERSPEED_PLUS_10G,
    PID_4KX_5G: SpeedMode.SUPERSPEED_5G,
    PID_4KX_USB2: SpeedMode.USB2,
}

PIDS_4KS: dict[int, SpeedMode] = {
    PID_4KS_USB3: SpeedMode.USB3,
    PID_4KS_USB2: SpeedMode.USB2,
}

PRODUCT_TABLES: dict[Family, dict[int, SpeedMode]] = {
    Family.X: PIDS_4KX,
    Family.S: PIDS_4KS,
}


def classify(descriptor: UsbDescriptor) -> DeviceIdentity | None:
    """Classify one enumerated device, or return None if unrecognized."""
    if descriptor.vendor_id != VENDOR_ID:
        return None
    for family, table in PRODUCT_TABLES.items():
        speed_mode = table.get(descriptor.product_id)
        if speed_mode is not None:
            return DeviceIdentity(
                family=family,
                speed_mode=speed_mode,
                vendor_id=descriptor.vendor_id,
                product_id=descriptor.product_id,
                path=descriptor.path,
            )
    return None


def find_devices(descriptors: Iterable[UsbDescriptor]) -> list[DeviceIdentity]:
    """Every supported capture card among ``descriptors``."""
    matches = []
    for descriptor in descriptors:
        identity = classify(descriptor)
        if identity is None:
            logger.debug(
                "Ignoring unrecognized device %04x:%04x",
                descriptor.vendor_id,
                descriptor.product_id,
            )
            continue
        matches.append(identity)
    return matches


def resolve(
    descriptors: Iterable[UsbDescriptor], path: str | None = None
) -> DeviceIdentity:
    """Resolve exactly one supported device.

    Args:
        descriptors: Devices visible to the transport.
        path: Optional USB path (``"<bus>-<ports>"``) to pick one of several.

    Raises:
        DeviceNotFoundError: If nothing matches.
        AmbiguousDeviceError: If several devices match and ``path`` is not given.
    """
    matches = find_devices(descriptors)
    if path is not None:
        matches = [m for m in matches if m.path == path]
        if not matches:
            raise DeviceNotFoundError(f"No supported device at USB path {path}")
    if not matches:
        raise DeviceNotFoundError()
    if len(matches) > 1:
        listing = ", ".join(f"{m} at {m.path}" for m in matches)
        raise AmbiguousDeviceError(
            f"{len(matches)} devices found ({listing}); pick one by path",
            matches,
        )
    return matches[0]


def detect(
    path: str | None = None,
    enumerate_fn: Callable[[], list[UsbDescriptor]] | None = None,
) -> DeviceIdentity:
    """Enumerate the USB bus and resolve the connected capture card."""
    if enumerate_fn is None:
        from .transport.usb_connection import enumerate_devices

        enumerate_fn = enumerate_devices
    identity = resolve(enumerate_fn(), path=path)
    logger.info("Device: %s", identity)
    return identity
