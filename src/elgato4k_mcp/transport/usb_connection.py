"""USB connections to the capture cards via ``pyusb`` or ``hidapi``.

``pyusb`` (libusb) is the primary backend: it issues the exact control
transfers both families need and handles kernel driver detach/reattach.
``hidapi`` is a fallback for the 4K S only, for hosts where the hidraw node
is accessible but raw usbfs access is not.
"""

from __future__ import annotations

import errno
import logging
from contextlib import contextmanager
from typing import Iterator

from ..errors import (
    DeviceNotFoundError,
    DeviceTimeoutError,
    PermissionDeniedError,
    TransportError,
)
from ..models.device import DeviceIdentity, Family, UsbDescriptor
from ..protocol.constants import HID_INTERFACE, HID_REPORT_ID, USB_TIMEOUT_MS, VENDOR_ID
from .base import Transport

logger = logging.getLogger(__name__)

BACKENDS = ("auto", "pyusb", "hidapi")


def _usb_path(dev) -> str:
    """Stable ``<bus>-<port>.<port>`` path for a pyusb device."""
    ports = getattr(dev, "port_numbers", None) or ()
    return f"{dev.bus}-{'.'.join(str(p) for p in ports)}"


def _translate_usb_error(e: Exception, what: str) -> Exception:
    """Map a pyusb exception onto this package's error kinds."""
    import usb.core

    if isinstance(e, usb.core.USBTimeoutError):
        return DeviceTimeoutError(f"{what} timed out: {e}")
    if getattr(e, "errno", None) in (errno.EACCES, errno.EPERM):
        return PermissionDeniedError(
            f"{what}: permission denied. Run as root or install a udev rule. ({e})"
        )
    return TransportError(f"{what} failed: {e}")


def enumerate_devices(vendor_id: int = VENDOR_ID) -> list[UsbDescriptor]:
    """List every USB device with ``vendor_id`` visible to libusb."""
    import usb.core

    try:
        found = list(usb.core.find(find_all=True, idVendor=vendor_id))
    except usb.core.NoBackendError as e:
        raise TransportError(f"No libusb backend available: {e}") from e
    except usb.core.USBError as e:
        raise _translate_usb_error(e, "USB enumeration") from e

    descriptors = [
        UsbDescriptor(
            vendor_id=dev.idVendor,
            product_id=dev.idProduct,
            path=_usb_path(dev),
        )
        for dev in found
    ]
    logger.debug("Enumerated %d device(s) for vendor %04x", len(descriptors), vendor_id)
    return descriptors


class PyUsbTransport(Transport):
    """Control transfers through pyusb + libusb.

    Usage::

        transport = PyUsbTransport.open(identity)
        with transport.claimed(interface):
            transport.control_write(...)
        transport.close()
    """

    def __init__(self, device, timeout_ms: int = USB_TIMEOUT_MS) -> None:
        self._device = device
        self._timeout_ms = timeout_ms

    @classmethod
    def open(
        cls, identity: DeviceIdentity, timeout_ms: int = USB_TIMEOUT_MS
    ) -> PyUsbTransport:
        """Open the device matching ``identity`` (by path when it has one)."""
        import usb.core

        def match(dev) -> bool:
            return not identity.path or _usb_path(dev) == identity.path

        try:
            dev = usb.core.find(
                idVendor=identity.vendor_id,
                idProduct=identity.product_id,
                custom_match=match,
            )
        except usb.core.NoBackendError as e:
            raise TransportError(f"No libusb backend available: {e}") from e
        if dev is None:
            raise DeviceNotFoundError(f"{identity} is no longer connected")
        logger.info("Opened %s via pyusb", identity)
        return cls(dev, timeout_ms=timeout_ms)

    def control_write(self, request_type, request, value, index, data) -> int:
        import usb.core

        try:
            return self._device.ctrl_transfer(
                request_type, request, value, index, bytes(data), self._timeout_ms
            )
        except usb.core.USBError as e:
            raise _translate_usb_error(
                e, f"control write (req 0x{request:02x}, wValue 0x{value:04x})"
            ) from e

    def control_read(self, request_type, request, value, index, length) -> bytes:
        import usb.core

        try:
            data = self._device.ctrl_transfer(
                request_type, request, value, index, length, self._timeout_ms
            )
        except usb.core.USBError as e:
            raise _translate_usb_error(
                e, f"control read (req 0x{request:02x}, wValue 0x{value:04x})"
            ) from e
        return bytes(data)

    def check_access(self, interface: int) -> None:
        """Open the device node now, so a permission problem shows before any I/O.

        libusb opens usbfs lazily, on the first request that needs it.
        """
        import usb.core

        try:
            self._device.is_kernel_driver_active(interface)
        except NotImplementedError:
            pass
        except usb.core.USBError as e:
            raise _translate_usb_error(e, "opening the device") from e

    @contextmanager
    def claimed(self, interface: int) -> Iterator[None]:
        """Detach the kernel driver and claim ``interface``; undo both on exit."""
        import usb.core
        import usb.util

        reattach = False
        try:
            try:
                reattach = self._device.is_kernel_driver_active(interface)
            except NotImplementedError:
                reattach = False
            if reattach:
                self._device.detach_kernel_driver(interface)
                logger.info("Temporarily detached kernel driver from interface %d", interface)
            usb.util.claim_interface(self._device, interface)
        except usb.core.USBError as e:
            if reattach:
                self._reattach(interface)
            raise _translate_usb_error(e, f"claiming interface {interface}") from e

        try:
            yield
        finally:
            try:
                usb.util.release_interface(self._device, interface)
            except usb.core.USBError as e:
                logger.warning("Failed to release interface %d: %s", interface, e)
            if reattach:
                self._reattach(interface)

    def _reattach(self, interface: int) -> None:
        import usb.core

        try:
            self._device.attach_kernel_driver(interface)
            logger.info("Reattached kernel driver to interface %d", interface)
        except (usb.core.USBError, NotImplementedError) as e:
            logger.warning("Failed to reattach kernel driver on interface %d: %s", interface, e)

    def close(self) -> None:
        import usb.util

        if self._device is None:
            return
        usb.util.dispose_resources(self._device)
        self._device = None
        logger.info("Disconnected")


class HidapiTransport(Transport):
    """Report I/O through the hidapi library (4K S only).

    hidapi owns the hidraw node, so there is no kernel driver to detach and
    raw control transfers are unavailable.
    """

    def __init__(self, device) -> None:
        self._device = device

    @classmethod
    def open(cls, identity: DeviceIdentity) -> HidapiTransport:
        import hid

        if identity.family is not Family.S:
            raise TransportError("hidapi backend only supports the 4K S")

        candidates = [
            info
            for info in hid.enumerate(identity.vendor_id, identity.product_id)
            if info.get("interface_number") == HID_INTERFACE
        ]
        if not candidates:
            raise DeviceNotFoundError(f"No hidraw interface {HID_INTERFACE} for {identity}")

        device = hid.device()
        try:
            device.open_path(candidates[0]["path"])
        except OSError as e:
            raise PermissionDeniedError(f"Could not open hidraw node: {e}") from e
        device.set_nonblocking(False)
        logger.info("Opened %s via hidapi", identity)
        return cls(device)

    def control_write(self, request_type, request, value, index, data) -> int:
        raise TransportError("Raw control transfers are not available through hidapi")

    def control_read(self, request_type, request, value, index, length) -> bytes:
        raise TransportError("Raw control transfers are not available through hidapi")

    def set_report(self, data: bytes) -> int:
        try:
            written = self._device.write(bytes(data))
        except (OSError, ValueError) as e:
            raise TransportError(f"HID output report failed: {e}") from e
        if written < 0:
            raise TransportError(f"HID output report failed: {self._device.error()}")
        return written

    def get_report(self, length: int) -> bytes:
        try:
            data = self._device.get_input_report(HID_REPORT_ID, length)
        except (OSError, ValueError) as e:
            raise TransportError(f"HID input report failed: {e}") from e
        return bytes(data)

    def close(self) -> None:
        if self._device is None:
            return
        self._device.close()
        self._device = None
        logger.info("Disconnected")


def open_transport(
    identity: DeviceIdentity,
    backend: str = "auto",
    timeout_ms: int = USB_TIMEOUT_MS,
) -> Transport:
    """Open a transport for ``identity``, trying pyusb first, then hidapi.

    Raises:
        PermissionDeniedError, DeviceNotFoundError, TransportError: If no
            backend could open the device.
    """
    if backend not in BACKENDS:
        raise ValueError(f"Unknown backend '{backend}'. Valid: {list(BACKENDS)}")

    if backend == "hidapi":
        return HidapiTransport.open(identity)
    if backend == "pyusb" or identity.family is not Family.S:
        return PyUsbTransport.open(identity, timeout_ms=timeout_ms)

    # hosts with a readable hidraw node but no usbfs access fall back to hidapi
    try:
        transport = PyUsbTransport.open(identity, timeout_ms=timeout_ms)
    except (TransportError, PermissionDeniedError) as e:
        error = e
    else:
        try:
            transport.check_access(HID_INTERFACE)
            return transport
        except (TransportError, PermissionDeniedError) as e:
            transport.close()
            error = e

    logger.info("pyusb backend unavailable (%s), trying hidapi", error)
    try:
        return HidapiTransport.open(identity)
    except (TransportError, DeviceNotFoundError, PermissionDeniedError):
        raise error from None
