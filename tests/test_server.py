import socket
import threading
import time

import pytest

from barcodepad.protocol import (
    DISCONNECT_FLAG,
    HANDSHAKE_MAGIC_BYTES,
    HandshakeError,
    Macro,
    Side,
    decode_u64,
    encode_u16,
    encode_u64,
    expected_response,
    recv_exact,
)
from barcodepad.server import (
    MAX_INPUTS_QUEUED,
    ClientSession,
    accept_client,
    random_u64,
    server_handshake,
)


class FakeController:
    def __init__(self):
        self.calls = []
        self.closed = threading.Event()

    def set_joystick(self, side, coords):
        self.calls.append(("joystick", side, coords))

    def sync(self):
        self.calls.append(("sync",))

    def press_button(self, button):
        self.calls.append(("press", button))

    def release_button(self, button):
        self.calls.append(("release", button))

    def close(self):
        self.closed.set()


def _answer_handshake(sock):
    sock.sendall(HANDSHAKE_MAGIC_BYTES)
    challenge = decode_u64(recv_exact(sock, 8))
    sock.sendall(encode_u64(expected_response(challenge)))
    return challenge


def _wait_for(predicate, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_random_u64_in_range():
    values = {random_u64() for _ in range(20)}
    assert all(0 <= v < 2**64 for v in values)
    assert len(values) > 1


def test_server_handshake_accepts_correct_answer():
    a, b = socket.socketpair()
    with a, b:
        result = {}
        t = threading.Thread(target=lambda: result.update(c=_answer_handshake(b)))
        t.start()
        challenge = server_handshake(a, 12345)
        t.join(3)
        assert challenge == 12345
        assert result["c"] == 12345


def test_server_handshake_rejects_bad_magic():
    a, b = socket.socketpair()
    with a, b:
        b.sendall(b"\x00\x00\x00\x00")
        with pytest.raises(HandshakeError):
            server_handshake(a, 1)


def test_server_handshake_rejects_wrong_hash():
    a, b = socket.socketpair()
    with a, b:
        challenge = 1000
        b.sendall(HANDSHAKE_MAGIC_BYTES)
        b.sendall(encode_u64(expected_response(challenge) ^ 1))
        with pytest.raises(HandshakeError):
            server_handshake(a, challenge)
        assert decode_u64(recv_exact(b, 8)) == challenge


def test_server_handshake_early_close():
    a, b = socket.socketpair()
    with a:
        b.close()
        with pytest.raises(ConnectionError):
            server_handshake(a, 5)


def test_enqueue_limits_queue_length():
    a, b = socket.socketpair()
    with a, b:
        session = ClientSession(a, FakeController(), Side.LEFT)
        results = [session.enqueue(Macro.JUMP) for _ in range(MAX_INPUTS_QUEUED + 2)]
        assert results == [True] * MAX_INPUTS_QUEUED + [False, False]


def test_receive_loop_stops_on_disconnect_flag():
    a, b = socket.socketpair()
    with a, b:
        session = ClientSession(a, FakeController(), Side.RIGHT)
        b.sendall(encode_u16(Macro.JUMP) + encode_u16(DISCONNECT_FLAG))
        session.receive_loop()
        assert session.finished.is_set()
        # one slot was taken by the JUMP code
        accepted = [session.enqueue(Macro.JUMP) for _ in range(MAX_INPUTS_QUEUED)]
        assert accepted.count(False) == 1


def test_receive_loop_stops_on_eof():
    a, b = socket.socketpair()
    with a:
        session = ClientSession(a, FakeController(), Side.LEFT)
        b.close()
        session.receive_loop()
        assert session.finished.is_set()


def test_input_loop_plays_macro_and_cleans_up():
    a, b = socket.socketpair()
    with b:
        controller = FakeController()
        session = ClientSession(a, controller, Side.LEFT)
        t = threading.Thread(target=session.input_loop)
        t.start()
        session.enqueue(Macro.RUN_AND_ATTACK)
        assert _wait_for(lambda: ("release", 0x133) in controller.calls)
        session.finished.set()
        t.join(3)
        assert controller.closed.is_set()
        assert controller.calls[0] == ("joystick", Side.LEFT, (1.0, 0.0))
        assert a.fileno() == -1


def test_accept_client_serves_until_disconnect():
    a, b = socket.socketpair()
    with b:
        controller = FakeController()

        def client():
            _answer_handshake(b)
            b.sendall(bytes([Side.RIGHT]))

        t = threading.Thread(target=client)
        t.start()
        session = accept_client(a, lambda: controller)
        t.join(3)
        assert session.side is Side.RIGHT
        assert session.controller is controller
        b.sendall(encode_u16(DISCONNECT_FLAG))
        assert _wait_for(controller.closed.is_set)
        assert session.finished.is_set()


def test_accept_client_rejects_unknown_side():
    a, b = socket.socketpair()
    with b:
        def client():
            _answer_handshake(b)
            b.sendall(bytes([7]))

        t = threading.Thread(target=client)
        t.start()
        with pytest.raises(HandshakeError):
            accept_client(a, FakeController)
        t.join(3)
        assert a.fileno() == -1