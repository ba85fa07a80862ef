"""Data models for the framebuffer, colors, device info and persistence."""

from .buffer_store import BufferStore
from .colors import COLORS, HexColor, NamedColor, RGB, list_colors, parse_color, resolve_color
from .device_info import DeviceInfo
from .framebuffer import Framebuffer, Status
