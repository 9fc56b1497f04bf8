import io

import pytest
from multiformats import varint as mf_varint

from errors import InvalidEncodingError
from varint_codec import decode_varint, encode_varint, read_varint


@pytest.mark.parametrize("value, encoded", [
    (0, b"\x00"),
    (1, b"\x01"),
    (0x7F, b"\x7f"),
    (0x80, b"\x80\x01"),
    (300, b"\xac\x02"),
    (0x0202, b"\x82\x04"),
    (0x3FFF, b"\xff\x7f"),
    (0x4000, b"\x80\x80\x01"),
])
def test_known_encodings(value, encoded):
    assert encode_varint(value) == encoded
    assert decode_varint(encoded) == (value, len(encoded))


@pytest.mark.parametrize("value", [0, 1, 127, 128, 255, 256, 2**21, 2**32 - 1, 2**32, 2**53, 2**53 + 1, 2**63 - 1])
def test_round_trip(value):
    encoded = encode_varint(value)
    assert decode_varint(encoded) == (value, len(encoded))


@pytest.mark.parametrize("value", [0, 1, 0x55, 0x70, 0x0202, 2**28, 2**53])
def test_matches_multiformats(value):
    assert encode_varint(value) == mf_varint.encode(value)


def test_decode_at_offset():
    data = b"\xff\xff" + encode_varint(300) + b"\x01"
    assert decode_varint(data, 2) == (300, 2)
    assert decode_varint(data, 4) == (1, 1)


def test_decode_truncated():
    with pytest.raises(InvalidEncodingError):
        decode_varint(b"\x80\x80")
    with pytest.raises(InvalidEncodingError):
        decode_varint(b"", 0)


def test_encode_negative():
    with pytest.raises(ValueError):
        encode_varint(-1)


def test_read_varint_from_stream():
    stream = io.BytesIO(encode_varint(2**40) + b"rest")
    value, consumed = read_varint(stream)
    assert value == 2**40
    assert consumed == len(encode_varint(2**40))
    assert stream.read() == b"rest"


def test_read_varint_truncated_stream():
    with pytest.raises(InvalidEncodingError):
        read_varint(io.BytesIO(b"\x81"))
