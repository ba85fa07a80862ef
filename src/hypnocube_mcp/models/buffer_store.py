"""Persistence of the last displayed framebuffer.

The buffer is written as JSON (a list of ``[r, g, b]`` triples) after every
acknowledged update and read back at the next login, so a new session
resumes the image the cube was showing.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from ..errors import ArgumentError
from .framebuffer import Framebuffer

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_PATH = Path(tempfile.gettempdir()) / "hypnocube.buffer.json"
FILE_MODE = 0o664  # shared between users of the same cube


class BufferStore:
    """Load and save a framebuffer at a fixed path."""

    def __init__(self, path: str | Path = DEFAULT_BUFFER_PATH) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def save(self, framebuffer: Framebuffer) -> Path:
        """Write the buffer, replacing any previous file atomically."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_name(self._path.name + ".tmp")
        tmp.write_text(json.dumps(framebuffer.to_list()))
        os.replace(tmp, self._path)
        try:
            os.chmod(self._path, FILE_MODE)
        except OSError as e:
            logger.debug("Could not chmod %s: %s", self._path, e)
        return self._path

    def load(self) -> list[list[int]] | None:
        """Read the saved voxel list.

        Returns:
            The list of ``[r, g, b]`` entries, or None if nothing was saved.

        Raises:
            ArgumentError: If the file exists but does not hold a voxel list.
        """
        if not self.exists():
            return None
        try:
            data = json.loads(self._path.read_text())
        except (OSError, ValueError) as e:
            raise ArgumentError(f"Unreadable buffer file {self._path}: {e}") from e
        if not isinstance(data, list):
            raise ArgumentError(
                f"Buffer file {self._path} must contain a list, got {type(data).__name__}"
            )
        return data
