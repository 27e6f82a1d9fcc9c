"""
Binary artifact layout.

All integers are little-endian and fixed width:

    magic      4s   b"MDIC"
    version    u32  FORMAT_VERSION
    bom        u16  0xFEFF, stored as FF FE
    kind       u8   KIND_SYSTEM or KIND_USER
    family     u16 length + UTF-8
    count      u32  number of sections
    sections   tag 4s, length u64, crc32 u32, payload

System dictionaries carry INDX, ENTR, CONN, CHAR, UNKN in that order; user
dictionaries carry INDX, ENTR.
"""

import logging
import os
import struct
import tempfile
import zlib
from pathlib import Path
from typing import Callable, Dict, List, Tuple, Union

from morphodic.chardef import CharacterClassTable
from morphodic.dictionary import (
    CompiledDictionary,
    UserDictionary,
    pack_entries,
    unpack_entries,
)
from morphodic.errors import (
    CorruptArtifactError,
    DictionaryFormatError,
    SerializationError,
)
from morphodic.index import SurfaceIndex
from morphodic.matrix import ConnectionCostMatrix
from morphodic.unknown import UnknownDictionary

logger = logging.getLogger(__name__)

MAGIC = b"MDIC"
FORMAT_VERSION = 1
BYTE_ORDER_MARK = 0xFEFF

KIND_SYSTEM = 0
KIND_USER = 1

PREAMBLE_FORMAT = "<4sIHB"
SECTION_HEADER_FORMAT = "<4sQI"

SYSTEM_SECTIONS = (b"INDX", b"ENTR", b"CONN", b"CHAR", b"UNKN")
USER_SECTIONS = (b"INDX", b"ENTR")

Artifact = Union[CompiledDictionary, UserDictionary]


# ============================================================================
# Serialization
# ============================================================================

def _sections(dictionary: Artifact) -> List[Tuple[bytes, bytes]]:
    sections = [
        (b"INDX", dictionary.index.to_bytes()),
        (b"ENTR", pack_entries(dictionary.entries)),
    ]
    if isinstance(dictionary, CompiledDictionary):
        sections += [
            (b"CONN", dictionary.matrix.to_bytes()),
            (b"CHAR", dictionary.char_table.to_bytes()),
            (b"UNKN", dictionary.unknown.to_bytes()),
        ]
    return sections


def serialize(dictionary: Artifact) -> bytes:
    """
    Pack a dictionary into the artifact layout.

    Identical dictionaries always produce identical bytes.
    """
    kind = KIND_SYSTEM if isinstance(dictionary, CompiledDictionary) else KIND_USER
    family = dictionary.family.encode("utf-8")
    sections = _sections(dictionary)

    parts = [
        struct.pack(PREAMBLE_FORMAT, MAGIC, FORMAT_VERSION, BYTE_ORDER_MARK, kind),
        struct.pack("<H", len(family)),
        family,
        struct.pack("<I", len(sections)),
    ]
    for tag, payload in sections:
        parts.append(struct.pack(SECTION_HEADER_FORMAT, tag, len(payload), zlib.crc32(payload)))
        parts.append(payload)
        logger.debug(f"  section {tag.decode()}: {len(payload):,} bytes")
    return b"".join(parts)


def write_artifact(data: bytes, path: Path):
    """
    Write artifact bytes to ``path`` atomically.

    The bytes go to a temporary file in the same directory which is renamed
    over ``path`` once complete.

    Raises:
        SerializationError: On any I/O failure
    """
    path = Path(path)
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as e:
        raise SerializationError(f"cannot write {path}: {e}") from e
    finally:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)

    size_mb = path.stat().st_size / (1024 * 1024)
    logger.info(f"Saved dictionary to {path} ({size_mb:.1f} MB)")


# ============================================================================
# Deserialization
# ============================================================================

SECTION_DECODERS: Dict[bytes, Callable[[bytes], object]] = {
    b"INDX": SurfaceIndex.from_bytes,
    b"ENTR": unpack_entries,
    b"CONN": ConnectionCostMatrix.from_bytes,
    b"CHAR": CharacterClassTable.from_bytes,
    b"UNKN": UnknownDictionary.from_bytes,
}


def read_header(data: bytes) -> Tuple[int, str, int, int]:
    """
    Parse the artifact preamble.

    Returns:
        (kind, family, section_count, offset of the first section)

    Raises:
        DictionaryFormatError: On wrong magic, version or byte order
        CorruptArtifactError: If the header is truncated
    """
    preamble_size = struct.calcsize(PREAMBLE_FORMAT)
    if len(data) < len(MAGIC) or data[:len(MAGIC)] != MAGIC:
        raise DictionaryFormatError("not a morphodic artifact (bad magic)")
    if len(data) < preamble_size:
        raise CorruptArtifactError("artifact header is truncated")

    _, version, bom, kind = struct.unpack_from(PREAMBLE_FORMAT, data)
    if version != FORMAT_VERSION:
        raise DictionaryFormatError(
            f"artifact format version {version}, this build reads {FORMAT_VERSION}"
        )
    if bom != BYTE_ORDER_MARK:
        raise DictionaryFormatError(f"unexpected byte-order marker 0x{bom:04X}")
    if kind not in (KIND_SYSTEM, KIND_USER):
        raise DictionaryFormatError(f"unknown artifact kind {kind}")

    offset = preamble_size
    try:
        (family_len,) = struct.unpack_from("<H", data, offset)
        offset += 2
        family_bytes = data[offset:offset + family_len]
        if len(family_bytes) != family_len:
            raise CorruptArtifactError("artifact header is truncated")
        family = family_bytes.decode("utf-8")
        offset += family_len
        (count,) = struct.unpack_from("<I", data, offset)
        offset += 4
    except (struct.error, ValueError) as e:
        raise CorruptArtifactError(f"artifact header is damaged: {e}") from e
    return kind, family, count, offset


def read_sections(data: bytes, count: int, offset: int,
                  expected: Tuple[bytes, ...]) -> Dict[bytes, bytes]:
    """
    Split the section area into payloads, checking framing and checksums.

    Raises:
        CorruptArtifactError: On a wrong tag, overrun, checksum mismatch or
            trailing bytes
    """
    if count != len(expected):
        raise CorruptArtifactError(f"artifact has {count} sections, expected {len(expected)}")

    header_size = struct.calcsize(SECTION_HEADER_FORMAT)
    payloads: Dict[bytes, bytes] = {}
    for expected_tag in expected:
        if offset + header_size > len(data):
            raise CorruptArtifactError(f"section {expected_tag.decode()} header is truncated")
        tag, length, crc = struct.unpack_from(SECTION_HEADER_FORMAT, data, offset)
        offset += header_size
        if tag != expected_tag:
            raise CorruptArtifactError(
                f"expected section {expected_tag.decode()}, found {tag!r}"
            )
        if offset + length > len(data):
            raise CorruptArtifactError(
                f"section {tag.decode()} claims {length} bytes, "
                f"only {len(data) - offset} remain"
            )
        payload = data[offset:offset + length]
        offset += length
        if zlib.crc32(payload) != crc:
            raise CorruptArtifactError(f"section {tag.decode()} checksum mismatch")
        payloads[tag] = payload

    if offset != len(data):
        raise CorruptArtifactError(f"{len(data) - offset} trailing bytes after last section")
    return payloads


def _decode_sections(payloads: Dict[bytes, bytes]) -> Dict[bytes, object]:
    decoded = {}
    for tag, payload in payloads.items():
        try:
            decoded[tag] = SECTION_DECODERS[tag](payload)
        # marisa-trie reports a broken trie image as RuntimeError
        except (ValueError, struct.error, RuntimeError) as e:
            raise CorruptArtifactError(f"section {tag.decode()} is damaged: {e}") from e
    return decoded


def deserialize(data: bytes) -> Artifact:
    """
    Decode artifact bytes.

    Cross-table invariants are not checked here; see
    CompiledDictionary.validate.

    Raises:
        DictionaryFormatError: On wrong magic, version or byte order
        CorruptArtifactError: On broken framing or a damaged section
    """
    kind, family, count, offset = read_header(data)
    expected = SYSTEM_SECTIONS if kind == KIND_SYSTEM else USER_SECTIONS
    sections = _decode_sections(read_sections(data, count, offset, expected))

    if kind == KIND_USER:
        return UserDictionary(
            family=family,
            index=sections[b"INDX"],
            entries=sections[b"ENTR"],
        )
    return CompiledDictionary(
        family=family,
        index=sections[b"INDX"],
        entries=sections[b"ENTR"],
        matrix=sections[b"CONN"],
        char_table=sections[b"CHAR"],
        unknown=sections[b"UNKN"],
    )
