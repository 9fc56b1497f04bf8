# -*- coding: utf-8 -*-
from typing import BinaryIO

from errors import InvalidEncodingError

#########################
# Varint encoding (unsigned LEB128)
#########################
def encode_varint(i: int) -> bytes:
    """Encode a non-negative integer as a varint."""
    if i < 0:
        raise ValueError(f"Varint value must be non-negative, got {i}")
    output = bytearray()
    while True:
        byte = i & 0x7F
        i >>= 7
        if i:
            output.append(byte | 0x80)
        else:
            output.append(byte)
            break
    return bytes(output)


def decode_varint(data: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode a varint starting at `offset`.

    Returns (value, bytes_consumed). The first byte holds the least
    significant 7 bits.
    """
    value = 0
    shift = 0
    pos = offset
    while True:
        if pos >= len(data):
            raise InvalidEncodingError(f"Truncated varint at offset {offset}")
        byte = data[pos]
        pos += 1
        value |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return value, pos - offset
        shift += 7


def read_varint(stream: BinaryIO) -> tuple[int, int]:
    """Read one varint from a binary stream, returning (value, bytes_consumed)."""
    value = 0
    shift = 0
    consumed = 0
    while True:
        chunk = stream.read(1)
        if not chunk:
            raise InvalidEncodingError(f"Truncated varint after {consumed} bytes")
        byte = chunk[0]
        consumed += 1
        value |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return value, consumed
        shift += 7
