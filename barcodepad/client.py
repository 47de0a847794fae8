"""Barcode client: turns scanned codes into macro requests for the server."""

from __future__ import annotations

import argparse
import logging
import socket
import sys
import time
from typing import Callable

from .protocol import (
    DISCONNECT_FLAG,
    HANDSHAKE_MAGIC_BYTES,
    Macro,
    Side,
    decode_u64,
    encode_u16,
    encode_u64,
    expected_response,
    recv_exact,
)

log = logging.getLogger(__name__)

DEFAULT_ADDRESS = "192.168.0.106"
PORT = 6969
DEFAULT_SIDE = Side.RIGHT

INPUT_MAP: dict[str, Macro] = {
    "4251595201907": Macro.RUN_AND_ATTACK,
    "6429810459824": Macro.JUMP,
}


def client_handshake(sock: socket.socket) -> int:
    """Run the client side of the handshake; return the server's challenge."""
    sock.sendall(HANDSHAKE_MAGIC_BYTES)
    challenge = decode_u64(recv_exact(sock, 8))
    print("ACK!")
    sock.sendall(encode_u64(expected_response(challenge)))
    print("Handshake completed successfully.")
    return challenge


def connect(
    address: str = DEFAULT_ADDRESS,
    port: int = PORT,
    side: Side = DEFAULT_SIDE,
    retry_delay: float = 1.0,
    running: Callable[[], bool] | None = None,
) -> socket.socket | None:
    """Connect and handshake, retrying while ``running()``; None if stopped."""
    keep_going = running if running is not None else (lambda: True)
    while keep_going():
        try:
            sock = socket.create_connection((address, port))
        except OSError as exc:
            log.error("Connection failed, retrying... (%s)", exc)
            time.sleep(retry_delay)
            continue
        try:
            client_handshake(sock)
        except OSError as exc:
            log.error("Connection failed, retrying... (%s)", exc)
            sock.close()
            continue
        try:
            sock.sendall(bytes([Side(side)]))
        except OSError as exc:
            log.error("Failed to send sideness: %s", exc)
            sock.close()
            continue
        print("Connected to the server!")
        return sock
    return None


def send_macro(sock: socket.socket, macro: Macro) -> None:
    """Send one macro code; a failed send is logged."""
    code = int(macro)
    print(f"Sending macro [{code}] to the server!")
    try:
        sock.sendall(encode_u16(code))
    except OSError as exc:
        log.error("Failed to send macro: %s", exc)


def lookup_macro(code: str) -> Macro:
    """Return the macro bound to a scanned code, or Macro.INVALID."""
    return INPUT_MAP.get(code, Macro.INVALID)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Send scanned barcodes as macros.")
    parser.add_argument("--address", default=DEFAULT_ADDRESS)
    parser.add_argument("--port", type=int, default=PORT)
    parser.add_argument(
        "--side", choices=[s.name.lower() for s in Side], default=DEFAULT_SIDE.name.lower()
    )
    args = parser.parse_args(argv)
    side = Side[args.side.upper()]

    try:
        sock = connect(args.address, args.port, side)
    except KeyboardInterrupt:
        return 1
    if sock is None:
        return 1

    with sock:
        try:
            for line in sys.stdin:
                for token in line.split():
                    send_macro(sock, lookup_macro(token))
        except KeyboardInterrupt:
            pass
        try:
            sock.sendall(encode_u16(DISCONNECT_FLAG))
        except OSError as exc:
            log.error("Failed to send disconnect: %s", exc)
    return 0