# -*- coding: utf-8 -*-
"""Lowercase RFC4648 base32 without padding, as used by multibase 'b'."""
from errors import InvalidEncodingError

ALPHABET = "abcdefghijklmnopqrstuvwxyz234567"
_REVERSE = {ch: idx for idx, ch in enumerate(ALPHABET)}


def encode_lower(data: bytes) -> str:
    """Encode bytes into a lowercase base32 string (no padding)."""
    if not data:
        return ""
    output = []
    buffer = 0
    bits_left = 0
    for byte in data:
        buffer = ((buffer << 8) | byte) & 0xFFFF
        bits_left += 8
        while bits_left >= 5:
            output.append(ALPHABET[(buffer >> (bits_left - 5)) & 0x1F])
            bits_left -= 5
    if bits_left > 0:
        # zero-fill the low bits of the final symbol
        output.append(ALPHABET[(buffer << (5 - bits_left)) & 0x1F])
    return "".join(output)


def decode_lower(text: str) -> bytes:
    """Decode base32 text (case-insensitive, surrounding whitespace ignored).

    Trailing bits that do not make up a whole byte are padding and are dropped.
    Raises InvalidEncodingError on a character outside the alphabet.
    """
    cleaned = text.strip().lower()
    if not cleaned:
        return b""
    output = bytearray()
    buffer = 0
    bits_left = 0
    for ch in cleaned:
        value = _REVERSE.get(ch)
        if value is None:
            raise InvalidEncodingError(f"Invalid base32 character: {ch!r}")
        buffer = ((buffer << 5) | value) & 0xFFF
        bits_left += 5
        if bits_left >= 8:
            output.append((buffer >> (bits_left - 8)) & 0xFF)
            bits_left -= 8
    return bytes(output)
