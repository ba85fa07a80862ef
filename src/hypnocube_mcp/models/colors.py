"""Color names and literal parsing.

User input is turned into one of three variants at the API boundary and
resolved once into an ``(r, g, b)`` triple::

    parse_color("red")        -> NamedColor("red")
    parse_color("#ff8000")    -> HexColor("ff8000")
    parse_color("0x40")       -> HexColor("40")       (grey)
    parse_color(128)          -> RGB(128, 128, 128)
    parse_color((1, 2, 3))    -> RGB(1, 2, 3)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Union

from ..errors import ArgumentError

RGBTuple = tuple[int, int, int]

HUES: dict[str, RGBTuple] = {
    "red": (1, 0, 0),
    "green": (0, 1, 0),
    "blue": (0, 0, 1),
    "magenta": (1, 0, 1),
    "yellow": (1, 1, 0),
    "cyan": (0, 1, 1),
    "white": (1, 1, 1),
}

# Intensity prefixes, dimmest first
LEVELS = ("dark", "mid", "", "bright")

_FIXED_COLORS: dict[str, RGBTuple] = {
    "black": (0, 0, 0),
    "lilac": (0xF0, 0, 0xF0),
    "orange": (0xF0, 0x20, 0),
    "amber": (0xF0, 0x20, 0),
    "warmwhite": (0xA0, 0xA0, 0xA0),
    "purple": (0x10, 0, 0x10),
    "lightpurple": (0x40, 0, 0x40),
    "pink": (0xF0, 0x00, 0x20),
}

_HEX_RE = re.compile(r"^(?:0[xX]|#)([0-9a-fA-F]+)$")


def shade(hue: str, level: int) -> RGBTuple:
    """Return the RGB triple for ``hue`` at intensity ``level`` (0-3).

    Levels map to channel values 64, 128, 192 and 255.
    """
    if hue not in HUES:
        raise ArgumentError(f"Unknown hue '{hue}'. Valid: {sorted(HUES)}")
    if not 0 <= level < len(LEVELS):
        raise ArgumentError(f"Level must be 0-{len(LEVELS) - 1}, got {level}")
    value = min(64 * (level + 1), 255)
    r, g, b = HUES[hue]
    return (r * value, g * value, b * value)


def _build_table() -> Mapping[str, RGBTuple]:
    table = dict(_FIXED_COLORS)
    for level, prefix in enumerate(LEVELS):
        for hue in HUES:
            table[prefix + hue] = shade(hue, level)
    return MappingProxyType(table)


COLORS = _build_table()


def list_colors() -> list[str]:
    return sorted(COLORS)


@dataclass(frozen=True)
class NamedColor:
    name: str


@dataclass(frozen=True)
class HexColor:
    """Hex digits without prefix: 2 digits for grey, 6 for rrggbb."""

    digits: str


@dataclass(frozen=True)
class RGB:
    r: int
    g: int
    b: int


Color = Union[NamedColor, HexColor, RGB]


def parse_color(value) -> Color:
    """Classify user input as a color variant.

    Raises:
        ArgumentError: If the value cannot be a color.
    """
    if isinstance(value, (NamedColor, HexColor, RGB)):
        return value
    if isinstance(value, bool):
        raise ArgumentError(f"Not a color: {value!r}")
    if isinstance(value, int):
        return RGB(value, value, value)
    if isinstance(value, (tuple, list)):
        if len(value) != 3:
            raise ArgumentError(f"RGB color needs 3 channels, got {len(value)}")
        try:
            return RGB(*(int(channel) for channel in value))
        except (TypeError, ValueError) as e:
            raise ArgumentError(f"Not a color: {value!r}") from e
    if isinstance(value, str):
        text = value.strip()
        match = _HEX_RE.match(text)
        if match:
            return HexColor(match.group(1))
        if text.isdigit():
            level = int(text)
            return RGB(level, level, level)
        return NamedColor(text.lower())
    raise ArgumentError(f"Not a color: {value!r}")


def resolve_color(color: Color) -> RGBTuple:
    """Resolve a color variant to a canonical ``(r, g, b)`` triple.

    Raises:
        ArgumentError: Unknown name, malformed hex or channel out of 0-255.
    """
    if isinstance(color, NamedColor):
        try:
            return COLORS[color.name]
        except KeyError:
            raise ArgumentError(f"Unknown color '{color.name}'") from None
    if isinstance(color, HexColor):
        digits = color.digits
        if len(digits) == 2:
            level = int(digits, 16)
            return (level, level, level)
        if len(digits) == 6:
            return (int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))
        raise ArgumentError(
            f"Bad hex color '{digits}', must be like #ab34f0 or 0xab34f0"
        )
    if isinstance(color, RGB):
        rgb = (color.r, color.g, color.b)
        if not all(0 <= channel <= 255 for channel in rgb):
            raise ArgumentError(f"Color channels must be 0-255, got {rgb}")
        return rgb
    raise ArgumentError(f"Not a color: {color!r}")


def to_rgb(value) -> RGBTuple:
    """Parse and resolve in one step."""
    return resolve_color(parse_color(value))
