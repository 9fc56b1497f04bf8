# -*- coding: utf-8 -*-
"""
CID utilities: a minimal CIDv1 builder for SHA-256 digests.

A CIDv1 is serialized as
    varint(version=1) + varint(codec) + multihash
where
    multihash = varint(0x12 sha2-256) + varint(len(digest)) + digest
and rendered as a lowercase base32 multibase string prefixed with 'b'.
"""
import hashlib
import os
from dataclasses import dataclass
from typing import BinaryIO, Union

import config
from base32_codec import decode_lower, encode_lower
from errors import CarIOError, InvalidDigestError, InvalidEncodingError, MissingInputError
from logger_setup import logger, get_log_prefix
from varint_codec import decode_varint, encode_varint

# --- Well-known multicodecs (open set, never validated) ---
RAW_CODEC = 0x55
DAG_PB_CODEC = 0x70
DAG_CBOR_CODEC = 0x71
CAR_CODEC = 0x0202

SHA2_256_CODE = 0x12
SHA2_256_LENGTH = 32
CID_VERSION = 1
MULTIBASE_BASE32_PREFIX = "b"

ByteSource = Union[str, os.PathLike, BinaryIO]


@dataclass(frozen=True)
class CidInfo:
    """Fields of a parsed CIDv1."""
    version: int
    codec: int
    hash_code: int
    digest: bytes


#########################
# Multihash / CID construction
#########################
def build_multihash(digest: bytes) -> bytes:
    """Tag a SHA-256 digest as a multihash."""
    if not digest:
        raise InvalidDigestError("Digest must not be empty")
    if len(digest) != SHA2_256_LENGTH:
        raise InvalidDigestError(
            f"SHA-256 digest must be {SHA2_256_LENGTH} bytes, got {len(digest)}"
        )
    return encode_varint(SHA2_256_CODE) + encode_varint(len(digest)) + bytes(digest)


def cid_bytes_from_digest(digest: bytes, content_codec: int) -> bytes:
    """Binary CIDv1 for a SHA-256 digest: version + codec + multihash."""
    return encode_varint(CID_VERSION) + encode_varint(content_codec) + build_multihash(digest)


def cid_to_string(cid: bytes) -> str:
    """Render binary CID bytes as a multibase base32 string ('b' prefix)."""
    return MULTIBASE_BASE32_PREFIX + encode_lower(cid)


def cid_from_digest(digest: bytes, content_codec: int) -> str:
    """
    Build a CIDv1 string from a raw SHA-256 digest and a multicodec number.

    The codec is forwarded as-is (e.g. 0x55 raw, 0x70 dag-pb, 0x0202 car);
    no registry lookup is done. Raises InvalidDigestError for an empty or
    wrongly sized digest.
    """
    return cid_to_string(cid_bytes_from_digest(digest, content_codec))


def generate_cid(data: bytes, codec: int = RAW_CODEC) -> bytes:
    """Binary CIDv1 for an in-memory payload."""
    return cid_bytes_from_digest(hashlib.sha256(data).digest(), codec)


#########################
# CID parsing
#########################
def cid_to_bytes(cid: str) -> bytes:
    """Strip the multibase prefix from a CID string and base32-decode it."""
    cid = cid.strip()
    if not cid.startswith(MULTIBASE_BASE32_PREFIX):
        raise InvalidEncodingError(f"CID {cid!r} is not base32 multibase (expected 'b' prefix)")
    return decode_lower(cid[len(MULTIBASE_BASE32_PREFIX):])


def parse_cid(cid: str) -> CidInfo:
    """Parse a base32 CIDv1 string into its fields."""
    raw = cid_to_bytes(cid)
    version, pos = decode_varint(raw, 0)
    if version != CID_VERSION:
        raise InvalidEncodingError(f"Unsupported CID version {version}")
    codec, used = decode_varint(raw, pos)
    pos += used
    hash_code, used = decode_varint(raw, pos)
    pos += used
    if hash_code != SHA2_256_CODE:
        raise InvalidEncodingError(f"Unsupported multihash function {hash_code:#x}")
    length, used = decode_varint(raw, pos)
    pos += used
    digest = raw[pos:]
    if len(digest) != length:
        raise InvalidEncodingError(
            f"Multihash length field says {length} bytes but {len(digest)} remain"
        )
    return CidInfo(version=version, codec=codec, hash_code=hash_code, digest=digest)


#########################
# Streaming digest
#########################
def hash_stream(stream: BinaryIO, buffer_size: int | None = None) -> tuple[bytes, int]:
    """
    Stream a binary file object through a fresh SHA-256 accumulator.

    Reads from the current position to EOF through a single reusable buffer.
    Returns (digest, bytes_read). Read failures raise CarIOError.
    """
    buffer_size = buffer_size or config.CAR_BUFFER_SIZE
    sha = hashlib.sha256()
    total = 0
    buf = bytearray(buffer_size)
    view = memoryview(buf)
    try:
        if hasattr(stream, "readinto"):
            while True:
                n = stream.readinto(buf)
                if not n:
                    break
                sha.update(view[:n])
                total += n
        else:
            while True:
                chunk = stream.read(buffer_size)
                if not chunk:
                    break
                sha.update(chunk)
                total += len(chunk)
    except OSError as e:
        raise CarIOError(f"Failed reading source after {total} bytes: {e}") from e
    finally:
        view.release()
    return sha.digest(), total


def open_source(source: ByteSource) -> BinaryIO:
    """Open a path for binary reading, mapping open failures to MissingInputError."""
    try:
        return open(source, "rb")
    except OSError as e:
        raise MissingInputError(f"Cannot open input {os.fspath(source)!r}: {e}") from e


def digest_of_byte_source(source: ByteSource, buffer_size: int | None = None) -> bytes:
    """
    SHA-256 digest of a file path or binary file object, computed streaming.

    Paths are opened (and closed) here; file objects are read from their
    current position and left open.
    """
    log_prefix = get_log_prefix(component="Digest")
    if isinstance(source, (str, os.PathLike)):
        with open_source(source) as stream:
            digest, total = hash_stream(stream, buffer_size)
    else:
        digest, total = hash_stream(source, buffer_size)
    logger.debug(f"{log_prefix} Hashed {total} bytes -> {digest.hex()}")
    return digest


def cid_of_byte_source(source: ByteSource, codec: int = RAW_CODEC, buffer_size: int | None = None) -> str:
    """CIDv1 string for the content of a file path or binary stream."""
    return cid_from_digest(digest_of_byte_source(source, buffer_size), codec)
