"""Length-prefixed autokey XOR framing used by every request and response.

Frame layout::

    +-----------------+------------------------------+
    | Length          | Ciphertext                   |
    | 4 bytes (BE)    | <Length> bytes               |
    +-----------------+------------------------------+

- Length: big-endian unsigned size of the ciphertext
- Ciphertext: plaintext XORed with a running key. The key starts at 171
  for every frame and is replaced by each ciphertext byte, in both
  directions.

The cipher is an obfuscation step only.
"""

from __future__ import annotations

import struct
from typing import BinaryIO

from ..errors import ProtocolError

INITIAL_KEY = 171
HEADER_SIZE = 4
MAX_FRAME_SIZE = 64 * 1024


def encrypt(plaintext: bytes) -> bytes:
    """XOR ``plaintext`` with the autokey stream, without a length header."""
    key = INITIAL_KEY
    result = bytearray(len(plaintext))
    for i, byte in enumerate(plaintext):
        key ^= byte
        result[i] = key
    return bytes(result)


def decrypt(ciphertext: bytes) -> bytes:
    """Invert :func:`encrypt`. The key follows the ciphertext, not the output."""
    key = INITIAL_KEY
    result = bytearray(len(ciphertext))
    for i, byte in enumerate(ciphertext):
        result[i] = key ^ byte
        key = byte
    return bytes(result)


def build_frame(plaintext: bytes) -> bytes:
    """Build a complete frame (length header + ciphertext) for ``plaintext``."""
    return struct.pack(">I", len(plaintext)) + encrypt(plaintext)


def parse_frame(data: bytes, max_size: int = MAX_FRAME_SIZE) -> bytes:
    """Decode a complete in-memory frame into plaintext.

    Raises:
        ProtocolError: If the header is short, the declared length is too
            large, or fewer bytes than declared are present.
    """
    if len(data) < HEADER_SIZE:
        raise ProtocolError(
            f"Frame header needs {HEADER_SIZE} bytes, got {len(data)}"
        )
    (length,) = struct.unpack(">I", data[:HEADER_SIZE])
    _check_length(length, max_size)
    body = data[HEADER_SIZE:HEADER_SIZE + length]
    if len(body) < length:
        raise ProtocolError(
            f"Frame declares {length} bytes, only {len(body)} present"
        )
    return decrypt(body)


def read_frame(stream: BinaryIO, max_size: int = MAX_FRAME_SIZE) -> bytes:
    """Read exactly one frame from a binary stream and return its plaintext.

    Args:
        stream: Any object with a blocking ``read(n)``, such as the file
            returned by ``socket.makefile("rb")``.
        max_size: Largest ciphertext length accepted from the header.

    Raises:
        ProtocolError: If the stream ends before the header or the body is
            complete, or the declared length exceeds ``max_size``.
    """
    header = stream.read(HEADER_SIZE)
    if len(header) < HEADER_SIZE:
        raise ProtocolError(
            f"Stream closed after {len(header)} of {HEADER_SIZE} header bytes"
        )
    (length,) = struct.unpack(">I", header)
    _check_length(length, max_size)
    body = stream.read(length)
    if len(body) < length:
        raise ProtocolError(
            f"Stream closed after {len(body)} of {length} frame bytes"
        )
    return decrypt(body)


def _check_length(length: int, max_size: int) -> None:
    if length > max_size:
        raise ProtocolError(
            f"Declared frame length {length} exceeds limit of {max_size}"
        )
