"""
Optional compression wrapper around a serialized artifact.

Layout (little-endian):
    magic      4s   b"MDCZ"
    algorithm  u8
    raw_size   u64
    raw_crc32  u32
    payload    compressed bytes
"""

import gzip
import lzma
import struct
import zlib
from enum import Enum

from morphodic.errors import CorruptArtifactError

MAGIC = b"MDCZ"
HEADER_FORMAT = "<4sBQI"
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)


class Algorithm(Enum):
    """Compression algorithms understood by the loader."""
    DEFLATE = 0
    ZLIB = 1
    GZIP = 2
    RAW = 3
    LZMA = 4

    @classmethod
    def from_name(cls, name: str) -> "Algorithm":
        try:
            return cls[name.upper()]
        except KeyError:
            choices = ", ".join(a.name.lower() for a in cls)
            raise ValueError(f"unknown compression algorithm {name!r} (choose from {choices})")


def _compress_payload(data: bytes, algorithm: Algorithm) -> bytes:
    if algorithm is Algorithm.DEFLATE:
        compressor = zlib.compressobj(9, zlib.DEFLATED, -zlib.MAX_WBITS)
        return compressor.compress(data) + compressor.flush()
    if algorithm is Algorithm.ZLIB:
        return zlib.compress(data, 9)
    if algorithm is Algorithm.GZIP:
        # mtime=0 keeps the output reproducible
        return gzip.compress(data, compresslevel=9, mtime=0)
    if algorithm is Algorithm.LZMA:
        return lzma.compress(data)
    return data


def _decompress_payload(payload: bytes, algorithm: Algorithm) -> bytes:
    if algorithm is Algorithm.DEFLATE:
        decompressor = zlib.decompressobj(-zlib.MAX_WBITS)
        data = decompressor.decompress(payload) + decompressor.flush()
        if not decompressor.eof:
            raise CorruptArtifactError("deflate stream is truncated")
        return data
    if algorithm is Algorithm.ZLIB:
        return zlib.decompress(payload)
    if algorithm is Algorithm.GZIP:
        return gzip.decompress(payload)
    if algorithm is Algorithm.LZMA:
        return lzma.decompress(payload)
    return payload


def compress(data: bytes, algorithm: Algorithm = Algorithm.DEFLATE) -> bytes:
    """
    Wrap a serialized artifact.

    Args:
        data: Raw artifact bytes
        algorithm: Compression algorithm

    Returns:
        Header plus compressed payload
    """
    header = struct.pack(HEADER_FORMAT, MAGIC, algorithm.value, len(data), zlib.crc32(data))
    return header + _compress_payload(data, algorithm)


def is_compressed(data: bytes) -> bool:
    """Check whether data starts with the compression wrapper magic."""
    return data[:len(MAGIC)] == MAGIC


def decompress(data: bytes) -> bytes:
    """
    Unwrap a compressed artifact.

    Raises:
        CorruptArtifactError: On a bad header, unknown algorithm, broken
            stream, or a size or checksum mismatch
    """
    if len(data) < HEADER_SIZE or not is_compressed(data):
        raise CorruptArtifactError("missing compression header")
    _, algorithm_id, raw_size, raw_crc = struct.unpack_from(HEADER_FORMAT, data)
    try:
        algorithm = Algorithm(algorithm_id)
    except ValueError:
        raise CorruptArtifactError(f"unknown compression algorithm id {algorithm_id}")

    try:
        raw = _decompress_payload(data[HEADER_SIZE:], algorithm)
    except (zlib.error, lzma.LZMAError, OSError, EOFError) as e:
        raise CorruptArtifactError(f"{algorithm.name.lower()} stream is corrupt: {e}") from e

    if len(raw) != raw_size:
        raise CorruptArtifactError(
            f"decompressed {len(raw)} bytes, header says {raw_size}"
        )
    if zlib.crc32(raw) != raw_crc:
        raise CorruptArtifactError("checksum mismatch after decompression")
    return raw
