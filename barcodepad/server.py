"""Macro server: accepts barcode clients and plays their macros on virtual pads."""

from __future__ import annotations

import argparse
import logging
import secrets
import socket
import threading
import time
from collections import deque
from typing import Callable

from .controller import Controller, ControllerError, create_controller
from .macros import perform
from .protocol import (
    DISCONNECT_FLAG,
    HANDSHAKE_MAGIC,
    HandshakeError,
    Side,
    decode_u16,
    decode_u64,
    encode_u64,
    expected_response,
    recv_exact,
)

log = logging.getLogger(__name__)

PORT = 6969
MAX_CLIENTS = 4
MAX_INPUTS_QUEUED = 4
POLL_INTERVAL = 0.01


class ClientSession:
    """One connected client: a socket, its virtual controller and a macro queue."""

    poll_interval = POLL_INTERVAL

    def __init__(self, sock: socket.socket, controller: Controller, side: Side) -> None:
        self.sock = sock
        self.controller = controller
        self.side = Side(side)
        self.finished = threading.Event()
        self._lock = threading.Lock()
        self._queue: deque[int] = deque()

    def enqueue(self, macro: int) -> bool:
        """Queue a macro code; return False if the queue is already full."""
        with self._lock:
            if len(self._queue) >= MAX_INPUTS_QUEUED:
                return False
            self._queue.append(int(macro))
            return True

    def _pop(self) -> int | None:
        with self._lock:
            return self._queue.popleft() if self._queue else None

    def receive_loop(self) -> None:
        """Read macro codes from the client until it disconnects."""
        while not self.finished.is_set():
            try:
                code = decode_u16(recv_exact(self.sock, 2))
            except OSError as exc:
                log.error("Failed to receive value from client: %s", exc)
                self.finished.set()
                return
            if code == DISCONNECT_FLAG:
                self.finished.set()
                return
            self.enqueue(code)

    def input_loop(self) -> None:
        """Play queued macros until the client leaves, then release resources."""
        while not self.finished.is_set():
            code = self._pop()
            if code is not None:
                perform(code, self.controller, self.side)
            time.sleep(self.poll_interval)
        self.sock.close()
        self.controller.close()


def random_u64() -> int:
    """Return a random unsigned 64-bit challenge."""
    return secrets.randbits(64)


def server_handshake(sock: socket.socket, challenge: int | None = None) -> int:
    """Run the server side of the handshake; return the challenge used."""
    magic = int.from_bytes(recv_exact(sock, 4), "big")
    if magic != HANDSHAKE_MAGIC:
        raise HandshakeError("ACK failed.")
    print("ACK!")

    if challenge is None:
        challenge = random_u64()
    sock.sendall(encode_u64(challenge))

    answer = decode_u64(recv_exact(sock, 8))
    if answer != expected_response(challenge):
        raise HandshakeError("Hash comparison failed.")

    print("Handshake completed successfully")
    return challenge


def accept_client(
    sock: socket.socket,
    controller_factory: Callable[[], Controller] = create_controller,
) -> ClientSession:
    """Handshake with a connected socket and start serving it on two threads."""
    try:
        server_handshake(sock)
        side_byte = recv_exact(sock, 1)[0]
        try:
            side = Side(side_byte)
        except ValueError as exc:
            raise HandshakeError("Failed to get client sideness") from exc
        controller = controller_factory()
    except Exception:
        sock.close()
        raise

    session = ClientSession(sock, controller, side)
    threading.Thread(target=session.receive_loop, daemon=True).start()
    threading.Thread(target=session.input_loop, daemon=True).start()
    return session


def serve(
    host: str = "",
    port: int = PORT,
    controller_factory: Callable[[], Controller] = create_controller,
) -> None:
    """Listen forever, giving each client that completes the handshake a pad."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as listener:
        listener.bind((host, port))
        listener.listen(MAX_CLIENTS)
        while True:
            try:
                client_sock, _ = listener.accept()
            except OSError as exc:
                log.error("Failed to accept client connection: %s", exc)
                continue
            try:
                accept_client(client_sock, controller_factory)
            except (HandshakeError, ControllerError, OSError) as exc:
                log.error("Client rejected: %s", exc)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Serve barcode macros to virtual gamepads.")
    parser.add_argument("--host", default="")
    parser.add_argument("--port", type=int, default=PORT)
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    try:
        serve(args.host, args.port)
    except OSError as exc:
        log.error("Failed to start server: %s", exc)
        return 1
    except KeyboardInterrupt:
        return 0
    return 0