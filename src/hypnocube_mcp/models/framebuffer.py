"""Voxel framebuffer for the 4x4x4 cube and its packed wire encoding.

Coordinates follow the physical cube: the front is the side with the power
and serial connectors, and (0, 0, 0) is bottom back left. The x axis runs
the other way in the device's memory, so it is mirrored when computing the
buffer offset.

Wire encoding keeps the top 4 bits of every channel and packs two voxels
into three bytes::

    byte 0 = R0 << 4 | G0
    byte 1 = B0 << 4 | R1
    byte 2 = G1 << 4 | B1
"""

from __future__ import annotations

import logging
from enum import IntEnum
from itertools import islice, product

from ..errors import ArgumentError
from .colors import RGBTuple, to_rgb

logger = logging.getLogger(__name__)

X_SIZE = 4
Y_SIZE = 4
Z_SIZE = 4
VOXEL_COUNT = X_SIZE * Y_SIZE * Z_SIZE
WIRE_SIZE = VOXEL_COUNT * 3 // 2

AXIS_SIZES = {"x": X_SIZE, "y": Y_SIZE, "z": Z_SIZE}

BLACK: RGBTuple = (0, 0, 0)


class Status(IntEnum):
    """Result of a drawing call."""

    OK = 0
    ERROR = 1
    OUT_OF_RANGE = 2


def offset(x: int, y: int, z: int) -> int:
    """Linear buffer index of a voxel. Coordinates wrap around each axis."""
    x %= X_SIZE
    y %= Y_SIZE
    z %= Z_SIZE
    x = X_SIZE - 1 - x
    return y * Z_SIZE * Y_SIZE + z * Y_SIZE + x


class Framebuffer:
    """An ordered grid of RGB voxels."""

    def __init__(self, voxels: list[RGBTuple] | None = None) -> None:
        self._voxels: list[RGBTuple] = [BLACK] * VOXEL_COUNT
        if voxels is not None:
            self.load(voxels)

    def __len__(self) -> int:
        return len(self._voxels)

    def __getitem__(self, index: int) -> RGBTuple:
        return self._voxels[index]

    @property
    def voxels(self) -> list[RGBTuple]:
        return list(self._voxels)

    def load(self, voxels: list) -> None:
        """Replace the whole buffer.

        Short inputs are padded with black; entries beyond the voxel count
        are kept but never transmitted.

        Raises:
            ArgumentError: If an entry is not a valid RGB triple.
        """
        if any(not isinstance(voxel, (list, tuple)) for voxel in voxels):
            raise ArgumentError("Buffer entries must be [r, g, b] triples")
        loaded = [to_rgb(tuple(voxel)) for voxel in voxels]
        loaded += [BLACK] * (VOXEL_COUNT - len(loaded))
        self._voxels = loaded

    def get_pixel(self, x: int, y: int, z: int) -> RGBTuple:
        return self._voxels[offset(x, y, z)]

    def clear(self, color="black") -> Status:
        """Fill every voxel with one color."""
        try:
            rgb = to_rgb(color)
        except ArgumentError as e:
            logger.warning("clear: %s", e)
            return Status.ERROR
        self._voxels = [rgb] * VOXEL_COUNT
        return Status.OK

    def set_pixel(self, x: int | None, y: int | None, z: int | None, color="white") -> Status:
        """Set one voxel.

        Returns:
            ``Status.ERROR`` if a coordinate is missing or negative, or the
            color cannot be resolved; ``Status.OK`` otherwise.
        """
        if x is None or y is None or z is None or x < 0 or y < 0 or z < 0:
            logger.warning("set_pixel: bad coordinates (%s, %s, %s)", x, y, z)
            return Status.ERROR
        try:
            rgb = to_rgb(color)
        except ArgumentError as e:
            logger.warning("set_pixel: %s", e)
            return Status.ERROR
        self._voxels[offset(x, y, z)] = rgb
        return Status.OK

    def set_plane(self, axis: str, index: int | None, color="white") -> Status:
        """Set every voxel whose ``axis`` coordinate equals ``index``.

        Returns:
            ``Status.OUT_OF_RANGE`` if ``index`` is outside the axis,
            ``Status.ERROR`` for an unknown axis or color, else ``Status.OK``.
            The buffer is untouched unless the result is ``Status.OK``.
        """
        axis = str(axis).lower()
        if axis not in AXIS_SIZES:
            logger.warning("set_plane: unknown axis %r", axis)
            return Status.ERROR
        if index is None or not 0 <= index < AXIS_SIZES[axis]:
            logger.warning("set_plane: %s index %s out of range", axis, index)
            return Status.OUT_OF_RANGE
        try:
            rgb = to_rgb(color)
        except ArgumentError as e:
            logger.warning("set_plane: %s", e)
            return Status.ERROR

        axis_index = "xyz".index(axis)
        for point in product(range(X_SIZE), range(Y_SIZE), range(Z_SIZE)):
            if point[axis_index] == index:
                self._voxels[offset(*point)] = rgb
        return Status.OK

    def to_wire_bytes(self) -> bytes:
        """Pack the buffer into the cube's 12-bit color format."""
        out = bytearray()
        carry = 0
        for count, (r, g, b) in enumerate(islice(self._voxels, VOXEL_COUNT)):
            r, g, b = (r >> 4) & 0xF, (g >> 4) & 0xF, (b >> 4) & 0xF
            if count & 1:
                out.append((carry << 4) | r)
                out.append((g << 4) | b)
            else:
                out.append((r << 4) | g)
                carry = b
        return bytes(out)

    def to_list(self) -> list[list[int]]:
        """JSON-friendly copy of the buffer."""
        return [list(voxel) for voxel in self._voxels]
