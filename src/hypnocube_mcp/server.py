"""MCP server entry point for the Hypnocube LED cube.

Exposes tools, resources, and prompts via the Model Context Protocol
using the official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .cube import HypnoCube
from .errors import HypnocubeError
from .models.colors import COLORS, list_colors as _list_colors
from .models.framebuffer import AXIS_SIZES, Status, X_SIZE, Y_SIZE, Z_SIZE
from .transport.serial_connection import DEFAULT_BAUD, SerialConnection

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "hypnocube",
    instructions="MCP server for the Hypnocube 4x4x4 RGB LED cube",
)

# Global connection state
_connection: SerialConnection | None = None
_cube: HypnoCube | None = None


def _get_cube() -> HypnoCube:
    """Get the active cube session, raising if not connected."""
    if _cube is None or _connection is None or not _connection.connected:
        raise RuntimeError("Not connected to a cube. Use the 'connect' tool first.")
    return _cube


def _status_result(status: Status, **extra: Any) -> dict[str, Any]:
    result: dict[str, Any] = {"status": status.name.lower(), **extra}
    if status is Status.OUT_OF_RANGE:
        result["error"] = "Index out of range"
    elif status is Status.ERROR:
        result["error"] = "Invalid coordinates or color"
    return result


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(port: str | None = None, baudrate: int = DEFAULT_BAUD) -> dict[str, Any]:
    """Open the serial link to the cube and log in.

    Logging in restores the last image shown (or clears to black).

    Args:
        port: Serial device, e.g. /dev/ttyUSB0 or COM3. Defaults to
              $HYPNOCUBE_PORT or the platform's first serial port.
        baudrate: Link speed (default 38400).
    """
    global _connection, _cube
    if _cube is not None and _connection is not None and _connection.connected:
        return {
            "connected": True,
            "message": "Already connected",
            "port": _connection.port,
            "logged_in": _cube.logged_in,
        }

    _connection = SerialConnection(port, baudrate=baudrate)
    try:
        _connection.open()
        _cube = HypnoCube(_connection)
        logged_in = _cube.login()
    except HypnocubeError as e:
        _connection.close()
        _connection = None
        _cube = None
        return {"connected": False, "error": str(e)}

    result: dict[str, Any] = {
        "connected": True,
        "port": _connection.port,
        "logged_in": logged_in,
    }
    if not logged_in:
        result["error"] = _cube.error_info.message
    return result


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Log out and close the serial link."""
    global _connection, _cube
    if _connection is None:
        return {"disconnected": True}
    try:
        if _cube is not None:
            _cube.logout()
    except HypnocubeError as e:
        logger.warning("Logout failed: %s", e)
    finally:
        _connection.close()
        _connection = None
        _cube = None
    return {"disconnected": True}


@mcp.tool()
def get_device_info() -> dict[str, Any]:
    """Retrieve the cube's name, description, copyright and version numbers."""
    cube = _get_cube()
    try:
        info = cube.info()
    except HypnocubeError as e:
        return {"error": str(e)}
    result = info.to_dict()
    result["hardware_version"] = info.hardware_version
    result["software_version"] = info.software_version
    result["protocol_version"] = info.protocol_version
    return result


# ─── DRAWING TOOLS ───────────────────────────────────────────────────

@mcp.tool()
def clear(color: str = "black") -> dict[str, Any]:
    """Fill the local framebuffer with one color. Call 'update' to display it.

    Args:
        color: Color name, #rrggbb / 0xrrggbb hex, or a 0-255 grey level.
    """
    return _status_result(_get_cube().clear(color), color=color)


@mcp.tool()
def set_pixel(x: int, y: int, z: int, color: str = "white") -> dict[str, Any]:
    """Set one voxel in the local framebuffer. Call 'update' to display it.

    (0, 0, 0) is bottom back left, looking at the connector side.
    Coordinates larger than the cube wrap around.

    Args:
        x: Column, left to right (0-3).
        y: Layer, bottom to top (0-3).
        z: Row, back to front (0-3).
        color: Color name, #rrggbb / 0xrrggbb hex, or a 0-255 grey level.
    """
    status = _get_cube().set_pixel(x, y, z, color)
    return _status_result(status, x=x, y=y, z=z, color=color)


@mcp.tool()
def set_plane(axis: str, index: int, color: str = "white") -> dict[str, Any]:
    """Set every voxel on one plane of the local framebuffer.

    Args:
        axis: 'x', 'y' or 'z'; the plane holds this coordinate fixed.
        index: Plane position along the axis (0-3).
        color: Color name, #rrggbb / 0xrrggbb hex, or a 0-255 grey level.
    """
    status = _get_cube().set_plane(axis, index, color)
    return _status_result(status, axis=axis, index=index, color=color)


@mcp.tool()
def update() -> dict[str, Any]:
    """Send the local framebuffer to the cube and display it."""
    cube = _get_cube()
    try:
        displayed = cube.update()
    except HypnocubeError as e:
        return {"displayed": False, "error": str(e)}
    result: dict[str, Any] = {"displayed": displayed}
    if not displayed:
        result["error"] = cube.error_info.message
    return result


# ─── DEVICE TOOLS ────────────────────────────────────────────────────

@mcp.tool()
def ping() -> dict[str, bool]:
    """Send a keepalive so the cube stays out of its demo mode."""
    _get_cube().ping()
    return {"pinged": True}


@mcp.tool()
def reset_device() -> dict[str, bool]:
    """Reset the cube. Fire-and-forget; the local login state is unchanged."""
    cube = _get_cube()
    cube.reset()
    return {"reset": True, "logged_in": cube.logged_in}


@mcp.tool()
def get_last_error() -> dict[str, Any]:
    """Read and clear the cube's error register."""
    return _get_cube().last_error().to_dict()


@mcp.tool()
def list_colors() -> dict[str, Any]:
    """List the named colors accepted by the drawing tools."""
    names = _list_colors()
    return {"colors": names, "count": len(names)}


# ─── MCP RESOURCES ───────────────────────────────────────────────────

@mcp.resource("hypnocube://device/status")
def resource_device_status() -> str:
    """Connection state, login state and last error."""
    if _cube is None or _connection is None or not _connection.connected:
        return json.dumps({"connected": False})
    info = _cube.device_info
    return json.dumps({
        "connected": True,
        "port": _connection.port,
        "logged_in": _cube.logged_in,
        "last_error": _cube.error_info.to_dict(),
        "device": info.to_dict() if info else None,
    })


@mcp.resource("hypnocube://catalog/colors")
def resource_color_catalog() -> str:
    """All named colors with their RGB values."""
    colors = [{"name": name, "rgb": list(COLORS[name])} for name in _list_colors()]
    return json.dumps({"colors": colors, "count": len(colors)})


@mcp.resource("hypnocube://display/buffer")
def resource_display_buffer() -> str:
    """The local framebuffer as [r, g, b] triples in device order."""
    if _cube is None:
        return json.dumps({"buffer": []})
    return json.dumps({
        "size": {"x": X_SIZE, "y": Y_SIZE, "z": Z_SIZE},
        "buffer": _cube.framebuffer.to_list(),
    })


# ─── MCP PROMPTS ─────────────────────────────────────────────────────

@mcp.prompt()
def draw_pattern(description: str) -> str:
    """Guide the AI to draw a pattern on the cube.

    Args:
        description: What to show, e.g. "a red floor and blue ceiling".
    """
    return f"""Draw this on the 4x4x4 LED cube: {description}

Consider:
- (0, 0, 0) is bottom back left, looking at the connector side
- Axes: {', '.join(f'{axis} 0-{size - 1}' for axis, size in AXIS_SIZES.items())}
- The cube shows 4 bits per channel, so very dark shades look black
- Use clear, set_plane and set_pixel to build the image, then update once

Use list_colors for available color names, or pass #rrggbb values."""


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
