"""Byte transports for talking to the cube."""

from .serial_connection import SerialConnection, default_port
