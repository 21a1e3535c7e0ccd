"""Exception hierarchy for device discovery, transport, and protocol failures.

Every error raised by this package derives from :class:`Elgato4KError` so
callers (the CLI and the MCP server) can map each kind to a distinct exit
status or message. Nothing in the package retries on these errors.
"""

from __future__ import annotations


class Elgato4KError(Exception):
    """Base class for all errors raised by this package."""


class DeviceNotFoundError(Elgato4KError):
    """Raised when no supported vendor/product id is enumerated."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            message
            or "Elgato 4K X or 4K S not found. Make sure it's connected. "
            "Known PIDs: 4K X (009b, 009c, 009d), 4K S (00ae, 00af)"
        )


class AmbiguousDeviceError(Elgato4KError):
    """Raised when more than one supported device matches."""

    def __init__(self, message, devices):
        super().__init__(message)
        self.devices = devices  # list[DeviceIdentity]


class PermissionDeniedError(Elgato4KError):
    """Raised when the operating system refuses access to the device."""


class UnsupportedOperationError(Elgato4KError):
    """Raised when a setting kind is not in the device's capability set."""

    def __init__(self, kind, family) -> None:
        super().__init__(f"{kind} is not supported on {family}")
        self.kind = kind
        self.family = family


class InvalidSettingError(Elgato4KError, ValueError):
    """Raised when a setting value is out of range for its kind."""


class TransportError(Elgato4KError):
    """Raised when a control transfer or report I/O fails."""


class NotCommittedError(TransportError):
    """Raised when a write was issued but its confirmation step failed.

    ``state`` is the last sequence state that completed successfully.
    """

    def __init__(self, message: str, state) -> None:
        super().__init__(message)
        self.state = state


class DeviceTimeoutError(TransportError):
    """Raised when a transport call exceeds its bounded timeout."""


class ProtocolError(Elgato4KError):
    """Raised when a response does not match the expected decode table.

    Usually means an unknown firmware variant; ``raw`` holds the bytes that
    failed to decode.
    """

    def __init__(self, message: str, raw: bytes = b"") -> None:
        super().__init__(message)
        self.raw = bytes(raw)
