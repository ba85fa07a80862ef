"""Tests for the cube session: login, dispatch, info and display updates."""

from unittest.mock import MagicMock

import pytest

from hypnocube_mcp.cube import HypnoCube, SessionState
from hypnocube_mcp.errors import ErrorCode, SessionError
from hypnocube_mcp.models.buffer_store import BufferStore
from hypnocube_mcp.models.framebuffer import BLACK, WIRE_SIZE, Framebuffer, Status
from hypnocube_mcp.protocol.commands import Command
from hypnocube_mcp.protocol.framing import SYNC, escape
from hypnocube_mcp.utils.rate_limit import RateLimiter


def _login(cube, transport):
    transport.queue_reply(Command.ACK)  # login
    transport.queue_reply(Command.ACK)  # first frame
    assert cube.login()
    transport.written.clear()


# ─── SEND_DATA ───────────────────────────────────────────────────────


def test_send_data_none_is_noop(cube, transport):
    assert cube.send_data(None) is None
    assert transport.written == []


def test_send_data_returns_reply(cube, transport):
    transport.queue_reply(Command.ACK, b"\x07")
    response = cube.send_data(Command.PING)
    assert response.command == Command.ACK
    assert response.payload == b"\x07"
    assert cube.error_info.ok


def test_send_data_no_response_leaves_input(cube, transport):
    transport.queue_reply(Command.ACK)
    assert cube.send_data(Command.PING, no_response=True) is None
    assert transport.pending > 0


def test_send_data_records_device_error(cube, transport):
    transport.queue_reply(Command.ERR, bytes([ErrorCode.BAD_COMMAND]))
    response = cube.send_data(Command.PING)
    assert response.command == Command.ERR
    assert cube.error_info.code == ErrorCode.BAD_COMMAND
    assert cube.error_info.message == "invalid command"


def test_send_data_success_clears_error(cube, transport):
    transport.queue_reply(Command.ERR, bytes([ErrorCode.BAD_DATA]))
    transport.queue_reply(Command.ACK)
    cube.send_data(Command.PING)
    cube.send_data(Command.PING)
    assert cube.error_info.ok


def test_send_data_bad_checksum(cube, transport):
    body = bytes([0x60, 1, 0, Command.ACK])
    transport.queue(bytes([SYNC]) + escape(body + b"\x00\x00") + bytes([SYNC]))
    assert cube.send_data(Command.PING) is None
    assert cube.error_info.code == ErrorCode.BAD_CHECKSUM


def test_send_data_timeout(cube, transport):
    assert cube.send_data(Command.PING) is None
    assert cube.error_info.code == ErrorCode.TIMEOUT


def test_send_data_splits_long_messages(cube, transport):
    cube.send_data(Command.FRAME, bytes(WIRE_SIZE), no_response=True)
    assert len(transport.written) == 2
    (message,) = transport.messages()
    assert message.command == Command.FRAME
    assert message.data == bytes(WIRE_SIZE)


def test_send_data_paces_once_per_message(transport):
    limiter = MagicMock(spec=RateLimiter)
    cube = HypnoCube(transport, buffer_path=None, rate_limiter=limiter)
    cube.send_data(Command.FRAME, bytes(WIRE_SIZE), no_response=True)
    cube.send_data(Command.PING, no_response=True)
    assert limiter.wait.call_count == 2


# ─── LOGIN / LOGOUT ──────────────────────────────────────────────────


def test_login_with_ack(cube, transport, buffer_path):
    transport.queue_reply(Command.ACK)
    transport.queue_reply(Command.ACK)
    assert cube.login() is True
    assert cube.state is SessionState.LOGGED_IN
    assert transport.commands() == [Command.LOGIN, Command.FRAME, Command.FLIP]
    assert transport.messages()[0].data == bytes.fromhex("abadc0de")
    # a fresh session shows black and saves it
    assert transport.messages()[1].data == bytes(WIRE_SIZE)
    assert buffer_path.is_file()


def test_login_with_err_code_zero(cube, transport):
    transport.queue_reply(Command.ERR, b"\x00")
    transport.queue_reply(Command.ACK)
    assert cube.login() is True
    assert cube.logged_in


def test_login_refused(cube, transport):
    transport.queue_reply(Command.ERR, bytes([ErrorCode.BAD_LOGIN]))
    assert cube.login() is False
    assert cube.state is SessionState.LOGGED_OUT
    assert cube.error_info.code == ErrorCode.BAD_LOGIN
    assert transport.commands() == [Command.LOGIN]


def test_login_no_reply(cube, transport):
    assert cube.login() is False
    assert not cube.logged_in
    assert cube.error_info.code == ErrorCode.TIMEOUT


def test_login_when_logged_in_is_noop(cube, transport):
    _login(cube, transport)
    assert cube.login() is True
    assert transport.written == []


def test_login_restores_saved_buffer(cube, transport, buffer_path):
    saved = Framebuffer()
    saved.set_plane("y", 3, "brightcyan")
    BufferStore(buffer_path).save(saved)

    transport.queue_reply(Command.ACK)
    transport.queue_reply(Command.ACK)
    assert cube.login()
    assert cube.framebuffer.voxels == saved.voxels
    assert transport.messages()[1].data == saved.to_wire_bytes()


def test_login_ignores_corrupt_buffer(cube, transport, buffer_path):
    buffer_path.write_text("not json")
    transport.queue_reply(Command.ACK)
    transport.queue_reply(Command.ACK)
    assert cube.login()
    assert all(voxel == BLACK for voxel in cube.framebuffer.voxels)


def test_login_without_store(transport, tmp_path):
    cube = HypnoCube(transport, buffer_path=None, rate_limiter=RateLimiter(0),
                     response_timeout=0.05)
    transport.queue_reply(Command.ACK)
    transport.queue_reply(Command.ACK)
    assert cube.login()
    assert list(tmp_path.iterdir()) == []


def test_logout(cube, transport):
    _login(cube, transport)
    transport.queue_reply(Command.ACK)
    cube.logout()
    assert not cube.logged_in
    assert transport.commands() == [Command.LOGOUT]
    # fire and forget: the reply is not consumed
    assert transport.pending > 0


def test_logout_when_logged_out(cube, transport):
    cube.logout()
    assert transport.written == []


# ─── INFO / ERRORS / KEEPALIVE ───────────────────────────────────────


def _queue_info(transport):
    transport.queue_reply(Command.INFO, b"HypnoCube 4x4x4\x00\xff\xff")
    transport.queue_reply(Command.INFO, b"RGB LED cube\x00")
    transport.queue_reply(Command.INFO, b"(c) Hypnocube LLC")
    transport.queue_reply(Command.VERS, bytes([1, 2, 3, 4, 5, 6]))


def test_info(cube, transport):
    _queue_info(transport)
    info = cube.info()
    assert info.name == "HypnoCube 4x4x4"
    assert info.description == "RGB LED cube"
    assert info.copyright == "(c) Hypnocube LLC"
    assert info.hardware_version == "1.2"
    assert info.software_version == "3.4"
    assert info.protocol_version == "5.6"

    messages = transport.messages()
    assert [m.command for m in messages] == [Command.INFO] * 3 + [Command.VERS]
    assert [m.data for m in messages[:3]] == [b"\x00\x00", b"\x00\x01", b"\x00\x02"]


def test_info_is_cached(cube, transport):
    _queue_info(transport)
    first = cube.info()
    transport.written.clear()
    assert cube.info() is first
    assert cube.device_info is first
    assert transport.written == []


def test_info_tolerates_errors(cube, transport):
    transport.queue_reply(Command.ERR, bytes([ErrorCode.NOT_IMPLEMENTED]))
    transport.queue_reply(Command.INFO, b"desc")
    transport.queue_reply(Command.INFO, b"")
    transport.queue_reply(Command.ERR, bytes([ErrorCode.NOT_IMPLEMENTED]))
    info = cube.info()
    assert info.name == ""
    assert info.description == "desc"
    assert info.hardware_version == "0.0"


def test_logout_forgets_info(cube, transport):
    _login(cube, transport)
    _queue_info(transport)
    cube.info()
    cube.logout()
    assert cube.device_info is None


def test_ping(cube, transport):
    cube.ping()
    assert transport.commands() == [Command.PING]


def test_ping_skipped_when_busy(cube, transport):
    transport.activity = True
    cube.ping()
    assert transport.written == []


def test_reset_keeps_session(cube, transport):
    _login(cube, transport)
    _queue_info(transport)
    info = cube.info()
    transport.written.clear()
    cube.reset()
    assert transport.commands() == [Command.RESET]
    assert cube.logged_in
    assert cube.device_info is info
    assert transport.pending == 0


def test_send_data_forwards_unknown_command(cube, transport):
    assert cube.send_data(99, b"\x01", no_response=True) is None
    (message,) = transport.messages()
    assert message.command == 99
    assert message.data == b"\x01"


def test_send_data_unknown_command_reply(cube, transport):
    transport.queue_reply(Command.ACK)
    response = cube.send_data(0x7F)
    assert response.command == Command.ACK


def test_last_error_reads_then_clears(cube, transport):
    transport.queue_reply(Command.ERR, bytes([ErrorCode.BAD_CHECKSUM]))
    transport.queue_reply(Command.ACK)
    error = cube.last_error()
    assert error.code == ErrorCode.BAD_CHECKSUM
    messages = transport.messages()
    assert [m.command for m in messages] == [Command.ERR, Command.ERR]
    assert messages[0].data == b""
    assert messages[1].data == b"\xfe"


def test_last_error_none(cube, transport):
    transport.queue_reply(Command.ERR, b"\x00")
    transport.queue_reply(Command.ACK)
    assert cube.last_error().ok


# ─── DISPLAY ─────────────────────────────────────────────────────────


def test_update_requires_login(cube):
    with pytest.raises(SessionError):
        cube.update()
    with pytest.raises(SessionError):
        cube.flip()


def test_update_sends_buffer_and_flips(cube, transport, buffer_path):
    _login(cube, transport)
    assert cube.set_pixel(3, 0, 0, "red") == Status.OK
    transport.queue_reply(Command.ACK)
    assert cube.update() is True
    assert transport.commands() == [Command.FRAME, Command.FLIP]
    assert transport.messages()[0].data[0] == 0xC0
    assert Framebuffer(BufferStore(buffer_path).load()).voxels == cube.framebuffer.voxels


def test_update_not_acknowledged(cube, transport, buffer_path):
    _login(cube, transport)
    buffer_path.unlink()
    transport.queue_reply(Command.ERR, bytes([ErrorCode.BAD_DATA]))
    assert cube.update() is False
    assert transport.commands() == [Command.FRAME]
    assert cube.error_info.code == ErrorCode.BAD_DATA
    assert not buffer_path.exists()


def test_drawing_is_local_until_update(cube, transport):
    assert cube.clear("blue") == Status.OK
    assert cube.set_plane("x", 9, "red") == Status.OUT_OF_RANGE
    assert cube.set_pixel(-1, 0, 0) == Status.ERROR
    assert transport.written == []
    assert cube.framebuffer.get_pixel(0, 0, 0) == (0, 0, 192)
