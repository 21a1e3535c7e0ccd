"""USB transports: abstract interface plus pyusb and hidapi backends."""

from .base import Transport
from .usb_connection import (
    HidapiTransport,
    PyUsbTransport,
    enumerate_devices,
    open_transport,
)
