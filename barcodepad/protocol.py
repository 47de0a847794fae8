"""Wire format shared by the macro server and the barcode client."""

from __future__ import annotations

import socket
import struct
from enum import IntEnum

MASK64 = (1 << 64) - 1

#: Value the client sends first to open a handshake.
HANDSHAKE_MAGIC = 0xDEADBEEF
HANDSHAKE_MAGIC_BYTES = struct.pack("!I", HANDSHAKE_MAGIC)

#: Macro code a client sends to announce it is leaving.
DISCONNECT_FLAG = 0xFFFF

#: The challenge is hashed ``challenge % HASH_ROUNDS_MODULUS`` times.
HASH_ROUNDS_MODULUS = 69

_U16 = struct.Struct("!H")
_U64 = struct.Struct("!Q")


class Side(IntEnum):
    """Which half of the pad a client drives; sent as a single byte."""

    LEFT = 0
    RIGHT = 1


class Macro(IntEnum):
    """Macro identifiers carried as 16-bit big-endian codes."""

    RUN_AND_ATTACK = 0
    JUMP = 1
    INVALID = 2


class HandshakeError(Exception):
    """The peer did not complete the handshake correctly."""


def mix_hash(u: int) -> int:
    """Scramble a 64-bit value; the step used by the handshake."""
    v = (u * 3935559000370003845 + 2691343689449507681) & MASK64

    v ^= v >> 21
    v ^= (v << 37) & MASK64
    v ^= v >> 4

    v = (v * 4768777513237032717) & MASK64

    v ^= (v << 20) & MASK64
    v ^= v >> 41
    v ^= (v << 5) & MASK64

    return v


def expected_response(challenge: int) -> int:
    """Return the answer a client must give to ``challenge``."""
    result = challenge & MASK64
    for _ in range(result % HASH_ROUNDS_MODULUS):
        result = mix_hash(result)
    return result


def _check_range(value: int, bits: int) -> None:
    if not 0 <= value < (1 << bits):
        raise ValueError(f"{value} does not fit in an unsigned {bits}-bit integer")


def encode_u16(value: int) -> bytes:
    """Encode an unsigned 16-bit integer in network byte order."""
    _check_range(value, 16)
    return _U16.pack(value)


def decode_u16(data: bytes) -> int:
    """Decode exactly two bytes in network byte order."""
    if len(data) != _U16.size:
        raise ValueError(f"expected {_U16.size} bytes, got {len(data)}")
    return _U16.unpack(data)[0]


def encode_u64(value: int) -> bytes:
    """Encode an unsigned 64-bit integer in network byte order."""
    _check_range(value, 64)
    return _U64.pack(value)


def decode_u64(data: bytes) -> int:
    """Decode exactly eight bytes in network byte order."""
    if len(data) != _U64.size:
        raise ValueError(f"expected {_U64.size} bytes, got {len(data)}")
    return _U64.unpack(data)[0]


def recv_exact(sock: socket.socket, size: int) -> bytes:
    """Read exactly ``size`` bytes, raising ConnectionError on early EOF."""
    chunks = bytearray()
    while len(chunks) < size:
        chunk = sock.recv(size - len(chunks))
        if not chunk:
            raise ConnectionError(
                f"connection closed after {len(chunks)} of {size} bytes"
            )
        chunks += chunk
    return bytes(chunks)