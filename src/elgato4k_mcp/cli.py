"""Command-line entry point (``elgato4k``).

Settings are applied in the order given on the command line, with a short
pause between them. Exit status identifies the failure kind, see
:data:`EXIT_CODES`.
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from typing import Optional

from .controller import CaptureCard, Effect, check_supported
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
from .identity import PIDS_4KS, PIDS_4KX, find_devices
from .models.settings import Setting, SettingKind, format_value, parse_value, valid_values
from .protocol.constants import SETTING_APPLY_DELAY, USB_TIMEOUT_MS, VENDOR_ID
from .transport.usb_connection import BACKENDS, enumerate_devices

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_USAGE = 2

# Most specific first: NotCommittedError and DeviceTimeoutError are TransportErrors
EXIT_CODES: tuple[tuple[type[Elgato4KError], int], ...] = (
    (DeviceNotFoundError, 3),
    (PermissionDeniedError, 4),
    (UnsupportedOperationError, 5),
    (ProtocolError, 6),
    (NotCommittedError, 10),
    (DeviceTimeoutError, 8),
    (TransportError, 7),
    (AmbiguousDeviceError, 9),
    (InvalidSettingError, EXIT_USAGE),
)

SETTING_FLAGS: dict[SettingKind, tuple[str, ...]] = {
    SettingKind.HDMI_COLOR_RANGE: ("--hdmi-range", "--edid-range"),
    SettingKind.EDID_SOURCE: ("--edid-source",),
    SettingKind.HDR_TONE_MAP: ("--hdr-map",),
    SettingKind.CUSTOM_EDID: ("--custom-edid",),
    SettingKind.AUDIO_INPUT: ("--audio-input",),
    SettingKind.VIDEO_SCALER: ("--video-scaler",),
    SettingKind.USB_SPEED: ("--usb-speed",),
}

SETTING_HELP: dict[SettingKind, str] = {
    SettingKind.HDMI_COLOR_RANGE: "HDMI color range (expand = full, shrink = limited)",
    SettingKind.EDID_SOURCE: "EDID presented to the source",
    SettingKind.HDR_TONE_MAP: "HDR tone mapping",
    SettingKind.CUSTOM_EDID: "custom EDID preset selection (4K X only, no upload)",
    SettingKind.AUDIO_INPUT: "audio input source (4K S only)",
    SettingKind.VIDEO_SCALER: "video scaler (4K S only)",
    SettingKind.USB_SPEED: "USB speed mode (4K X only); the device re-enumerates",
}

EPILOG = f"""\
examples:
  sudo elgato4k --status
  sudo elgato4k --hdmi-range expand --hdr-map on
  sudo elgato4k --audio-input analog      # 4K S only
  sudo elgato4k --usb-speed 10g           # 4K X only

supported devices:
  Elgato 4K X: {', '.join(f'{VENDOR_ID:04x}:{pid:04x}' for pid in PIDS_4KX)}
  Elgato 4K S: {', '.join(f'{VENDOR_ID:04x}:{pid:04x}' for pid in PIDS_4KS)}
"""


class _SettingAction(argparse.Action):
    """Collect settings in command-line order, validating each value."""

    def __init__(self, option_strings, dest, kind: SettingKind, **kwargs) -> None:
        self.kind = kind
        super().__init__(option_strings, dest, **kwargs)

    def __call__(self, parser, namespace, values, option_string=None) -> None:
        try:
            setting = Setting(self.kind, parse_value(self.kind, values))
        except InvalidSettingError as e:
            parser.error(str(e))
        settings = list(getattr(namespace, self.dest, None) or [])
        settings.append(setting)
        setattr(namespace, self.dest, settings)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="elgato4k",
        description="Change settings on Elgato 4K X and 4K S capture cards over USB.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--status", action="store_true", help="read current device settings")
    parser.add_argument(
        "--firmware-version", action="store_true", help="read the firmware version"
    )
    parser.add_argument("--list", action="store_true", help="list connected capture cards")

    for kind, flags in SETTING_FLAGS.items():
        parser.add_argument(
            *flags,
            action=_SettingAction,
            kind=kind,
            dest="settings",
            metavar="|".join(valid_values(kind)),
            help=SETTING_HELP[kind],
        )

    parser.add_argument("--device", metavar="PATH", help="USB path (bus-ports) when several cards are connected")
    parser.add_argument("--backend", choices=BACKENDS, default="auto", help="USB backend (default: auto)")
    parser.add_argument(
        "--timeout-ms", type=int, default=USB_TIMEOUT_MS,
        help=f"per-transfer timeout (default: {USB_TIMEOUT_MS})",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="log packet traffic")
    return parser


def exit_code_for(error: Elgato4KError) -> int:
    for cls, code in EXIT_CODES:
        if isinstance(error, cls):
            return code
    return EXIT_ERROR


def _list_devices() -> int:
    devices = find_devices(enumerate_devices())
    if not devices:
        raise DeviceNotFoundError()
    for identity in devices:
        print(f"{identity.path}\t{identity}")
    return EXIT_OK


def _apply_all(card: CaptureCard, settings: list[Setting]) -> int:
    # reject the whole batch before touching the device
    for setting in settings:
        check_supported(card.family, setting)

    for i, setting in enumerate(settings):
        if i:
            time.sleep(SETTING_APPLY_DELAY)
        print(f"Setting {setting.kind} to {format_value(setting.value)}")
        if setting.kind is SettingKind.USB_SPEED:
            print("WARNING: Device will disconnect and re-enumerate with a different PID!")
        effect = card.apply(setting)
        if effect is Effect.APPLIED_DEVICE_REENUMERATED:
            print("Device is re-enumerating; run again to talk to it.")

    print("\nAll settings applied successfully!")
    return EXIT_OK


def run(args: argparse.Namespace) -> int:
    if args.list:
        return _list_devices()

    card = CaptureCard.open(path=args.device, backend=args.backend, timeout_ms=args.timeout_ms)
    try:
        print(f"Device: {card.identity}", file=sys.stderr)
        if args.status:
            print(card.read_status().format())
            return EXIT_OK
        if args.firmware_version:
            print(f"Firmware version: {card.read_firmware_version()}")
            return EXIT_OK
        return _apply_all(card, args.settings)
    finally:
        card.close()


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    args.settings = args.settings or []

    if not (args.status or args.firmware_version or args.list or args.settings):
        parser.print_help()
        return EXIT_OK

    if args.settings and (args.status or args.firmware_version or args.list):
        parser.error("setting flags cannot be combined with --status, --firmware-version or --list")

    kinds = [s.kind for s in args.settings]
    if SettingKind.USB_SPEED in kinds[:-1]:
        parser.error("--usb-speed must be the last setting; the device re-enumerates after it")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        return run(args)
    except Elgato4KError as e:
        print(f"Error: {e}", file=sys.stderr)
        return exit_code_for(e)


if __name__ == "__main__":
    sys.exit(main())
