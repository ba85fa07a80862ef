"""Client driver and MCP server for the Hypnocube 4x4x4 RGB LED cube."""

from .cube import HypnoCube, SessionState
from .errors import ErrorCode, ErrorInfo, HypnocubeError
