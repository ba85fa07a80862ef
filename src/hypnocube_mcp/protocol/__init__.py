"""Protocol layer: framing, packetizing, command builders and response parsing."""

from .framing import Frame, build_frames, decode_frame, encode_frame, read_frame
from .commands import Command, InfoField, build_command
