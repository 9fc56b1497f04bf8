#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Streaming CARv1 writer producing a minimal CAR with a single raw block.

Layout:
    varint(len(header)) + header + varint(len(cid) + len(payload)) + cid + payload

The header byte form is pluggable (see HEADER_ENCODERS); the framing is not.
The input is never held in memory: it is streamed once to compute the content
CID and a second time to copy it into the CAR.
"""
import contextlib
import json
import os
import tempfile
from dataclasses import dataclass
from typing import BinaryIO, Callable, ContextManager, Iterator

import config
from cid_utils import (
    ByteSource,
    CID_VERSION,
    SHA2_256_CODE,
    cid_from_digest,
    cid_to_bytes,
    cid_to_string,
    generate_cid,
    hash_stream,
    open_source,
    parse_cid,
)
from errors import CarError, CarIOError, InvalidEncodingError, MissingInputError
from logger_setup import logger, get_log_prefix
from varint_codec import encode_varint, read_varint

PARTIAL_SUFFIX = ".part"
CAR_FILE_MODE = 0o644
CAR_VERSION = 1
CID_LINK_TAG = 42 # IPLD dag-cbor tag for CIDs


@dataclass(frozen=True)
class CarWriteResult:
    """Result of writing a CAR file."""
    content_cid: str
    car_cid: str
    output_path: str
    content_length: int
    car_length: int


@dataclass(frozen=True)
class CarLayout:
    """Byte offsets of the parts of a single-block CAR file."""
    header_length: int
    header_bytes: bytes
    block_offset: int
    block_length: int
    cid_bytes: bytes
    payload_offset: int
    payload_length: int

    @property
    def content_cid(self) -> str:
        return cid_to_string(self.cid_bytes)


#########################
# Minimal CBOR encoding helpers
#########################
def _cbor_head(major: int, n: int) -> bytes:
    """Encode a CBOR initial byte plus argument, using the shortest form."""
    if n < 0:
        raise ValueError(f"CBOR argument must be non-negative, got {n}")
    prefix = major << 5
    if n < 24:
        return bytes([prefix | n])
    elif n < 0x100:
        return bytes([prefix | 24]) + n.to_bytes(1, "big")
    elif n < 0x10000:
        return bytes([prefix | 25]) + n.to_bytes(2, "big")
    elif n < 0x100000000:
        return bytes([prefix | 26]) + n.to_bytes(4, "big")
    elif n < 0x10000000000000000:
        return bytes([prefix | 27]) + n.to_bytes(8, "big")
    else:
        raise ValueError("CBOR argument too large")

def cbor_encode_int(n: int) -> bytes:
    """Encode a non-negative integer in CBOR (major type 0)."""
    return _cbor_head(0, n)

def cbor_encode_bytes(b: bytes) -> bytes:
    """Encode a byte string in CBOR (major type 2)."""
    return _cbor_head(2, len(b)) + bytes(b)

def cbor_encode_text(s: str) -> bytes:
    """Encode a text string in CBOR (major type 3)."""
    b = s.encode('utf-8')
    return _cbor_head(3, len(b)) + b

def cbor_encode_array(items: list) -> bytes:
    """Encode a CBOR array from already-encoded items."""
    return _cbor_head(4, len(items)) + b''.join(items)

def cbor_encode_map(d: dict, canonical: bool = False) -> bytes:
    """Encode a CBOR map with text keys and pre-encoded values.

    With canonical=True keys are ordered length-first then bytewise, as
    DAG-CBOR requires; otherwise insertion order is kept.
    """
    pairs = [(cbor_encode_text(key), value) for key, value in d.items()]
    if canonical:
        pairs.sort(key=lambda kv: (len(kv[0]), kv[0]))
    return _cbor_head(5, len(pairs)) + b''.join(k + v for k, v in pairs)

def cbor_encode_tag(tag: int, content: bytes) -> bytes:
    """Encode a tagged value in CBOR (major type 6)."""
    return _cbor_head(6, tag) + content


#########################
# CAR header encoders
#########################
def _dag_cbor_header(content_cid: str) -> bytes:
    # CIDs in DAG-CBOR are tag 42 over a byte string with a 0x00 multibase-identity prefix
    root = cbor_encode_tag(CID_LINK_TAG, cbor_encode_bytes(b"\x00" + cid_to_bytes(content_cid)))
    return cbor_encode_map({
        "version": cbor_encode_int(CAR_VERSION),
        "roots": cbor_encode_array([root]),
    }, canonical=True)

def _cbor_bytes_header(content_cid: str) -> bytes:
    return cbor_encode_map({
        "version": cbor_encode_int(CAR_VERSION),
        "roots": cbor_encode_array([cbor_encode_bytes(cid_to_bytes(content_cid))]),
    })

def _json_header(content_cid: str) -> bytes:
    header = {"version": CAR_VERSION, "roots": [{"/": content_cid}]}
    return json.dumps(header, separators=(",", ":")).encode("utf-8")

HEADER_ENCODERS: dict[str, Callable[[str], bytes]] = {
    "dag-cbor": _dag_cbor_header,
    "cbor-bytes": _cbor_bytes_header,
    "json": _json_header,
}

def encode_car_header(content_cid: str, encoding: str | None = None) -> bytes:
    """Serialize the header {version: 1, roots: [content_cid]} in the named encoding."""
    encoding = encoding or config.CAR_HEADER_ENCODING
    try:
        encoder = HEADER_ENCODERS[encoding]
    except KeyError:
        raise ValueError(
            f"Unknown CAR header encoding {encoding!r}; expected one of {sorted(HEADER_ENCODERS)}"
        ) from None
    return encoder(content_cid)


#########################
# Byte source handling
#########################
@contextlib.contextmanager
def _unclosed(stream: BinaryIO, position: int) -> Iterator[BinaryIO]:
    stream.seek(position)
    yield stream

@contextlib.contextmanager
def byte_source_views(source: ByteSource, buffer_size: int | None = None) -> Iterator[Callable[[], ContextManager[BinaryIO]]]:
    """
    Yield a factory that opens a fresh view of the source, positioned at its start.

    Paths are re-opened per view. Seekable streams are rewound to the position
    they had on entry. Non-seekable streams are spooled once to a temporary
    file, which then backs every view.
    """
    if isinstance(source, (str, os.PathLike)):
        yield lambda: open_source(source)
        return

    if getattr(source, "closed", False):
        raise MissingInputError("Input stream is closed")
    seekable = getattr(source, "seekable", None)
    if seekable is not None and seekable():
        start = source.tell()
        yield lambda: _unclosed(source, start)
        return

    logger.debug(f"{get_log_prefix(component='Source')} Input is not seekable; spooling to a temporary file")
    with tempfile.TemporaryFile() as spool:
        try:
            _copy_stream(source, spool, buffer_size)
        except OSError as e:
            raise CarIOError(f"Failed spooling non-seekable input: {e}") from e
        yield lambda: _unclosed(spool, 0)

def _copy_stream(src: BinaryIO, dst: BinaryIO, buffer_size: int | None = None) -> int:
    """Copy src to dst through one reusable buffer; returns the byte count."""
    buffer_size = buffer_size or config.CAR_BUFFER_SIZE
    total = 0
    if not hasattr(src, "readinto"):
        while True:
            chunk = src.read(buffer_size)
            if not chunk:
                return total
            dst.write(chunk)
            total += len(chunk)
    buf = bytearray(buffer_size)
    view = memoryview(buf)
    try:
        while True:
            n = src.readinto(buf)
            if not n:
                break
            dst.write(view[:n])
            total += n
    finally:
        view.release()
    return total

def _discard_partial(path: str) -> None:
    with contextlib.suppress(FileNotFoundError):
        os.remove(path)


#########################
# CAR file generation
#########################
def write_car(
    input_source: ByteSource,
    output_path: str | os.PathLike,
    content_codec: int | None = None,
    car_cid_codec: int | None = None,
    header_encoding: str | None = None,
    buffer_size: int | None = None,
    job_id: str | None = None,
) -> CarWriteResult:
    """
    Stream `input_source` into a single-block CARv1 file at `output_path`.

    Pass 1 hashes the input to build the content CID, pass 2 copies the input
    after the header and CID. The file is written to a uniquely named `.part`
    file next to the output and only renamed into place once complete; on any
    failure the partial file is removed and the error logged and re-raised.
    The CAR CID is computed last, from the finished file.

    Codecs are opaque integers (defaults: config.CAR_CONTENT_CODEC and
    config.CAR_CID_CODEC).
    """
    log_prefix = get_log_prefix(job_id, "CARWrite")
    content_codec = config.CAR_CONTENT_CODEC if content_codec is None else content_codec
    car_cid_codec = config.CAR_CID_CODEC if car_cid_codec is None else car_cid_codec
    output_path = os.fspath(output_path)
    output_dir, output_name = os.path.split(os.path.abspath(output_path))
    partial_path = None

    try:
        with byte_source_views(input_source, buffer_size) as open_view:
            with open_view() as stream:
                content_digest, content_length = hash_stream(stream, buffer_size)
            content_cid = cid_from_digest(content_digest, content_codec)
            logger.debug(f"{log_prefix} Content CID {content_cid} ({content_length} bytes)")

            header_bytes = encode_car_header(content_cid, header_encoding)
            cid_bytes = cid_to_bytes(content_cid)

            # one partial file per call, next to the output
            fd, partial_path = tempfile.mkstemp(prefix=f".{output_name}.", suffix=PARTIAL_SUFFIX, dir=output_dir)
            with os.fdopen(fd, "wb") as out:
                out.write(encode_varint(len(header_bytes)))
                out.write(header_bytes)
                out.write(encode_varint(len(cid_bytes) + content_length))
                out.write(cid_bytes)
                with open_view() as stream:
                    copied = _copy_stream(stream, out, buffer_size)
                if copied != content_length:
                    raise CarIOError(
                        f"Input changed between passes: hashed {content_length} bytes, copied {copied}"
                    )
                out.flush()
                os.fsync(out.fileno())
            os.chmod(partial_path, CAR_FILE_MODE)
            os.replace(partial_path, output_path)
    except BaseException as e:
        if partial_path is not None:
            _discard_partial(partial_path)
        logger.error(f"{log_prefix} CAR write to {output_path} failed: {e}", exc_info=True)
        if isinstance(e, OSError) and not isinstance(e, CarError):
            raise CarIOError(f"CAR write to {output_path} failed: {e}") from e
        raise

    with open_source(output_path) as car:
        car_digest, car_length = hash_stream(car, buffer_size)
    car_cid = cid_from_digest(car_digest, car_cid_codec)

    logger.info(f"{log_prefix} Wrote CAR {output_path} ({car_length} bytes). Content CID: {content_cid}, CAR CID: {car_cid}")
    return CarWriteResult(
        content_cid=content_cid,
        car_cid=car_cid,
        output_path=output_path,
        content_length=content_length,
        car_length=car_length,
    )

def generate_car(data: bytes, content_codec: int | None = None, header_encoding: str | None = None) -> bytes:
    """
    Build a complete CAR in memory for a small payload.

    Produces the same bytes as write_car for the same content and settings.
    """
    content_codec = config.CAR_CONTENT_CODEC if content_codec is None else content_codec
    cid = generate_cid(data, content_codec)
    header_cbor = encode_car_header(cid_to_string(cid), header_encoding)
    block = cid + data
    return encode_varint(len(header_cbor)) + header_cbor + encode_varint(len(block)) + block


#########################
# CAR reading / verification
#########################
def read_car_layout(path: str | os.PathLike) -> CarLayout:
    """Parse the framing of a single-block CAR without reading its payload."""
    with open_source(path) as car:
        file_size = os.fstat(car.fileno()).st_size
        header_length, _ = read_varint(car)
        header_bytes = car.read(header_length)
        if len(header_bytes) != header_length:
            raise InvalidEncodingError(f"CAR header truncated: expected {header_length} bytes, got {len(header_bytes)}")

        block_offset = car.tell()
        block_length, _ = read_varint(car)
        cid_start = car.tell()
        version, _ = read_varint(car)
        if version != CID_VERSION:
            raise InvalidEncodingError(f"Block CID version {version} is not supported")
        read_varint(car) # codec
        hash_code, _ = read_varint(car)
        if hash_code != SHA2_256_CODE:
            raise InvalidEncodingError(f"Block multihash {hash_code:#x} is not sha2-256")
        digest_length, _ = read_varint(car)
        digest_end = car.tell() + digest_length
        car.seek(cid_start)
        cid_bytes = car.read(digest_end - cid_start)
        if len(cid_bytes) != digest_end - cid_start:
            raise InvalidEncodingError("Block CID truncated")

        payload_offset = car.tell()
        payload_length = block_length - len(cid_bytes)
        if payload_length < 0:
            raise InvalidEncodingError(f"Block length {block_length} is shorter than its CID")
        if payload_offset + payload_length != file_size:
            raise InvalidEncodingError(
                f"CAR size {file_size} does not match single-block framing "
                f"(expected {payload_offset + payload_length})"
            )

    return CarLayout(
        header_length=header_length,
        header_bytes=header_bytes,
        block_offset=block_offset,
        block_length=block_length,
        cid_bytes=cid_bytes,
        payload_offset=payload_offset,
        payload_length=payload_length,
    )

def verify_car(path: str | os.PathLike, buffer_size: int | None = None) -> CarLayout:
    """
    Check that a single-block CAR is internally consistent.

    The header must reference the block CID and the payload must hash to the
    digest in that CID. Raises InvalidEncodingError otherwise.
    """
    layout = read_car_layout(path)
    content_cid = layout.content_cid
    if layout.cid_bytes not in layout.header_bytes and content_cid.encode("ascii") not in layout.header_bytes:
        raise InvalidEncodingError(f"CAR header does not reference block CID {content_cid}")

    with open_source(path) as car:
        car.seek(layout.payload_offset)
        digest, _ = hash_stream(car, buffer_size)
    if digest != parse_cid(content_cid).digest:
        raise InvalidEncodingError(f"Block payload does not match CID {content_cid}")
    logger.debug(f"{get_log_prefix(component='CARVerify')} {os.fspath(path)} verified against {content_cid}")
    return layout

#########################
# Test the implementation
#########################
if __name__ == "__main__":
    text = "My name is Matt."
    car_bytes = generate_car(text.encode('utf-8'), content_codec=0x55)
    cid_str = cid_to_string(generate_cid(text.encode('utf-8')))

    expected_cid = "bafkreiehm2wufzc2krgdkox6fvpixxw2ncvmvqwilvqbeqqy2x4g5wkewm"

    print("Computed CID:", cid_str)
    print("Matches expected:", cid_str == expected_cid)
    print("CAR size:", len(car_bytes))
