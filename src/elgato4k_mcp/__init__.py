"""Control Elgato 4K X (UVC) and 4K S (HID) capture cards over USB."""

from .controller import CaptureCard, Effect, apply_setting, read_status
from .errors import (
    AmbiguousDeviceError,
    DeviceNotFoundError,
    DeviceTimeoutError,
    Elgato4KError,
    InvalidSettingError,
    NotCommittedError,
    PermissionDeniedError,
    ProtocolError,
    TransportError,
    UnsupportedOperationError,
)
from .models import (
    AudioInput,
    ColorRange,
    DeviceIdentity,
    EdidSource,
    Family,
    FirmwareVersion,
    Setting,
    SettingKind,
    SpeedMode,
    StatusSnapshot,
    UsbSpeed,
)

__version__ = "0.1.0"
