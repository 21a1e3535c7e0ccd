"""MCP server entry point for Elgato 4K X / 4K S capture cards.

Exposes tools and resources via the Model Context Protocol using the
official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .controller import CaptureCard, Effect
from .errors import Elgato4KError
from .identity import PIDS_4KS, PIDS_4KX, find_devices
from .models.device import CAPABILITIES, Family
from .models.settings import (
    SETTING_LABELS,
    Setting,
    SettingKind,
    format_value,
    parse_value,
    valid_values,
)
from .transport.usb_connection import enumerate_devices

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "elgato4k",
    instructions="MCP server for Elgato 4K X and 4K S capture card settings",
)

# Global connection state
_card: CaptureCard | None = None


def _get_card() -> CaptureCard:
    """Get the active device, raising if not connected."""
    if _card is None:
        raise RuntimeError("Not connected to device. Use the 'connect' tool first.")
    return _card


def _error(e: Elgato4KError) -> dict[str, Any]:
    return {"error": str(e), "kind": type(e).__name__}


def _apply(kind: SettingKind, value: str) -> dict[str, Any]:
    """Parse, apply, and report one setting change."""
    global _card
    card = _get_card()
    try:
        setting = Setting(kind, parse_value(kind, value))
        effect = card.apply(setting)
    except Elgato4KError as e:
        if card.stale:
            card.close()
            _card = None
        return _error(e)

    result: dict[str, Any] = {
        "setting": kind.value,
        "value": format_value(setting.value),
        "effect": effect.value,
    }
    if effect is Effect.APPLIED_DEVICE_REENUMERATED:
        card.close()
        _card = None
        result["message"] = (
            "Device is re-enumerating with a new product id. "
            "Use the 'connect' tool again before sending more commands."
        )
    return result


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def list_devices() -> dict[str, Any]:
    """List every connected Elgato 4K X / 4K S with its USB path."""
    try:
        devices = find_devices(enumerate_devices())
    except Elgato4KError as e:
        return _error(e)
    return {"devices": [d.to_dict() for d in devices]}


@mcp.tool()
def connect(path: str | None = None, backend: str = "auto") -> dict[str, Any]:
    """Open the connected capture card.

    Auto-detects the model from its USB product id. When several cards are
    connected, pass the ``path`` reported by ``list_devices``.

    Args:
        path: USB path (bus-ports) of the card to open.
        backend: "auto", "pyusb", or "hidapi" (4K S only).
    """
    global _card
    if _card is not None:
        return {"connected": True, "message": "Already connected", **_card.identity.to_dict()}

    try:
        _card = CaptureCard.open(path=path, backend=backend)
    except Elgato4KError as e:
        return _error(e)
    return {"connected": True, **_card.identity.to_dict()}


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Release the capture card."""
    global _card
    if _card is not None:
        _card.close()
        _card = None
    return {"disconnected": True}


@mcp.tool()
def get_device_info() -> dict[str, Any]:
    """Model, USB speed mode, product id, and supported settings."""
    return _get_card().identity.to_dict()


# ─── STATUS TOOLS ─────────────────────────────────────────────────────

@mcp.tool()
def get_status() -> dict[str, Any]:
    """Read every readable setting plus the firmware version.

    The 4K X can report firmware, USB speed, HDMI color range, and HDR tone
    mapping; the 4K S also reports EDID source, audio input, and scaler.
    """
    try:
        return _get_card().read_status().to_dict()
    except Elgato4KError as e:
        return _error(e)


@mcp.tool()
def get_firmware_version() -> dict[str, Any]:
    """Read the firmware build date (YY.MM.DD)."""
    try:
        return {"firmware_version": str(_get_card().read_firmware_version())}
    except Elgato4KError as e:
        return _error(e)


# ─── SETTING TOOLS ────────────────────────────────────────────────────

@mcp.tool()
def set_hdr_tone_mapping(value: str) -> dict[str, Any]:
    """Turn HDR tone mapping on or off.

    Args:
        value: "on" or "off".
    """
    return _apply(SettingKind.HDR_TONE_MAP, value)


@mcp.tool()
def set_hdmi_color_range(value: str) -> dict[str, Any]:
    """Set the HDMI color range (EDID range policy).

    Args:
        value: "auto", "expand" (full 0-255), or "shrink" (limited 16-235).
    """
    return _apply(SettingKind.HDMI_COLOR_RANGE, value)


@mcp.tool()
def set_edid_source(value: str) -> dict[str, Any]:
    """Choose which EDID the card presents to the HDMI source.

    Args:
        value: "display" (monitor passthrough), "merged", or "internal".
    """
    return _apply(SettingKind.EDID_SOURCE, value)


@mcp.tool()
def set_custom_edid(value: str) -> dict[str, Any]:
    """Enable or disable the custom EDID preset (4K X only).

    Selects the preset already stored on the card; uploading EDID data is
    not supported.

    Args:
        value: "on" or "off".
    """
    return _apply(SettingKind.CUSTOM_EDID, value)


@mcp.tool()
def set_usb_speed(value: str) -> dict[str, Any]:
    """Force the USB link speed (4K X only).

    The card disconnects and re-enumerates with a different product id;
    call ``connect`` again afterwards.

    Args:
        value: "5g" or "10g".
    """
    return _apply(SettingKind.USB_SPEED, value)


@mcp.tool()
def set_audio_input(value: str) -> dict[str, Any]:
    """Select the audio input (4K S only).

    Args:
        value: "embedded" (HDMI audio) or "analog" (line-in).
    """
    return _apply(SettingKind.AUDIO_INPUT, value)


@mcp.tool()
def set_video_scaler(value: str) -> dict[str, Any]:
    """Enable or disable the video scaler (4K S only).

    Args:
        value: "on" or "off".
    """
    return _apply(SettingKind.VIDEO_SCALER, value)


# ─── MCP RESOURCES ───────────────────────────────────────────────────

@mcp.resource("elgato4k://device/info")
def resource_device_info() -> str:
    """Identity of the connected card."""
    if _card is None:
        return json.dumps({"connected": False})
    return json.dumps({"connected": True, **_card.identity.to_dict()}, indent=2)


@mcp.resource("elgato4k://device/status")
def resource_device_status() -> str:
    """Current settings of the connected card."""
    return json.dumps(get_status(), indent=2)


@mcp.resource("elgato4k://catalog/settings")
def resource_settings_catalog() -> str:
    """Every setting, its accepted values, and which models support it."""
    catalog = {
        kind.value: {
            "label": SETTING_LABELS[kind],
            "values": valid_values(kind),
            "models": [str(f) for f in Family if kind in CAPABILITIES[f]],
        }
        for kind in SettingKind
    }
    return json.dumps(catalog, indent=2)


@mcp.resource("elgato4k://catalog/devices")
def resource_device_catalog() -> str:
    """Supported product ids and the speed mode each one indicates."""
    return json.dumps(
        {
            str(Family.X): {f"{pid:04x}": str(mode) for pid, mode in PIDS_4KX.items()},
            str(Family.S): {f"{pid:04x}": str(mode) for pid, mode in PIDS_4KS.items()},
        },
        indent=2,
    )


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
