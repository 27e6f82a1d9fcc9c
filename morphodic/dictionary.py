"""
Compiled dictionary model.

A CompiledDictionary bundles the surface index, the entry table, the
connection cost matrix and the unknown-word tables. It is built once by
morphodic.builder and is read-only afterwards; the loader hands the same
instance to every caller.
"""

import struct
from dataclasses import dataclass
from typing import List, Optional, Tuple

from morphodic.chardef import DEFAULT_CATEGORY, CharacterCategory, CharacterClassTable
from morphodic.errors import InvariantViolationError
from morphodic.index import SurfaceIndex
from morphodic.lexicon import LexicalEntry
from morphodic.matrix import ConnectionCostMatrix
from morphodic.unknown import UnknownDictionary, UnknownWordEntry

# ============================================================================
# Binary Record Schema
# ============================================================================
# Each entry stores:
#   - left_id: uint16 (2 bytes) - Left context id
#   - right_id: uint16 (2 bytes) - Right context id
#   - cost: int16 (2 bytes) - Word cost
#   - detail_count: uint16 (2 bytes) - Number of detail fields
# followed by the surface, each detail, the reading and the pronunciation as
# length-prefixed UTF-8. Optional strings use length -1 for "absent".
#
# Format string: little-endian uint16, uint16, int16, uint16

RECORD_FORMAT = "<HHhH"
RECORD_SIZE = struct.calcsize(RECORD_FORMAT)  # Should be 8

ABSENT = -1


def _pack_text(parts: list, text: Optional[str]):
    if text is None:
        parts.append(struct.pack("<i", ABSENT))
        return
    data = text.encode("utf-8")
    parts.append(struct.pack("<i", len(data)))
    parts.append(data)


def _unpack_text(data: bytes, offset: int) -> Tuple[Optional[str], int]:
    (length,) = struct.unpack_from("<i", data, offset)
    offset += 4
    if length == ABSENT:
        return None, offset
    if length < 0 or offset + length > len(data):
        raise ValueError(f"string of length {length} overruns entry table")
    return data[offset:offset + length].decode("utf-8"), offset + length


def pack_entries(entries: Tuple[LexicalEntry, ...]) -> bytes:
    """Serialize the entry table."""
    parts = [struct.pack("<I", len(entries))]
    for entry in entries:
        parts.append(struct.pack(
            RECORD_FORMAT, entry.left_id, entry.right_id, entry.cost, len(entry.details)
        ))
        _pack_text(parts, entry.surface)
        for detail in entry.details:
            _pack_text(parts, detail)
        _pack_text(parts, entry.reading)
        _pack_text(parts, entry.pronunciation)
    return b"".join(parts)


def unpack_entries(data: bytes) -> Tuple[LexicalEntry, ...]:
    """
    Inverse of pack_entries.

    Raises:
        ValueError, struct.error, UnicodeDecodeError: If the table is damaged
    """
    (count,) = struct.unpack_from("<I", data, 0)
    offset = 4
    entries = []
    for _ in range(count):
        left_id, right_id, cost, detail_count = struct.unpack_from(RECORD_FORMAT, data, offset)
        offset += RECORD_SIZE
        surface, offset = _unpack_text(data, offset)
        details = []
        for _ in range(detail_count):
            detail, offset = _unpack_text(data, offset)
            details.append(detail)
        reading, offset = _unpack_text(data, offset)
        pronunciation, offset = _unpack_text(data, offset)
        entries.append(LexicalEntry(
            surface=surface,
            left_id=left_id,
            right_id=right_id,
            cost=cost,
            details=tuple(details),
            reading=reading,
            pronunciation=pronunciation,
        ))
    if offset != len(data):
        raise ValueError(f"{len(data) - offset} trailing bytes in entry table")
    return tuple(entries)


# ============================================================================
# Dictionaries
# ============================================================================

def _check_index(index: SurfaceIndex, entries: Tuple[LexicalEntry, ...]):
    seen = [False] * len(entries)
    for surface, positions in index.items():
        if "\x00" in surface:
            raise InvariantViolationError(f"surface {surface!r} contains NUL")
        if not positions:
            raise InvariantViolationError(f"surface {surface!r} has no entries")
        for position in positions:
            if position >= len(entries):
                raise InvariantViolationError(
                    f"surface {surface!r} points at entry #{position}, "
                    f"table has {len(entries)}"
                )
            if entries[position].surface != surface:
                raise InvariantViolationError(
                    f"surface {surface!r} points at entry #{position} "
                    f"({entries[position].surface!r})"
                )
            if seen[position]:
                raise InvariantViolationError(f"entry #{position} indexed twice")
            seen[position] = True
    if not all(seen):
        raise InvariantViolationError(f"entry #{seen.index(False)} is not indexed")


def _check_context(matrix: ConnectionCostMatrix, entries, kind: str):
    for position, entry in enumerate(entries):
        if not (entry.right_id < matrix.forward_size and entry.left_id < matrix.backward_size):
            raise InvariantViolationError(
                f"{kind} #{position} uses context left={entry.left_id} "
                f"right={entry.right_id} outside "
                f"{matrix.forward_size}x{matrix.backward_size} matrix"
            )


@dataclass(frozen=True)
class UserDictionary:
    """Extra entries layered over a system dictionary."""
    family: str
    index: SurfaceIndex
    entries: Tuple[LexicalEntry, ...]

    def lookup(self, surface: str) -> List[LexicalEntry]:
        return [self.entries[position] for position in self.index.get(surface)]

    def validate(self):
        """
        Check index and entry table agree.

        Raises:
            InvariantViolationError: On the first inconsistency
        """
        _check_index(self.index, self.entries)


@dataclass(frozen=True)
class CompiledDictionary:
    """
    A complete system dictionary.

    Attributes:
        family: Name of the dictionary family it was built from
        index: Surface form index into ``entries``
        entries: Lexicon entries; an entry's id is its position
        matrix: Connection costs
        char_table: Character categories for unknown words
        unknown: Unknown-word entries per category
    """
    family: str
    index: SurfaceIndex
    entries: Tuple[LexicalEntry, ...]
    matrix: ConnectionCostMatrix
    char_table: CharacterClassTable
    unknown: UnknownDictionary

    # ------------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------------

    def entry(self, entry_id: int) -> LexicalEntry:
        return self.entries[entry_id]

    def lookup(self, surface: str) -> List[LexicalEntry]:
        """
        Look up a surface form.

        Returns:
            Matching entries in parse order (empty if none)
        """
        return [self.entries[position] for position in self.index.get(surface)]

    def contains(self, surface: str) -> bool:
        return surface in self.index

    def common_prefix_search(self, text: str, start: int = 0) -> List[Tuple[int, LexicalEntry]]:
        """
        Entries whose surface is a prefix of ``text[start:]``.

        Returns:
            (entry_id, entry) pairs, longest surface first; entries sharing
            a surface keep parse order
        """
        results = []
        for _, positions in self.index.common_prefixes(text, start):
            for position in positions:
                results.append((position, self.entries[position]))
        return results

    def predictive_search(self, prefix: str) -> List[Tuple[str, LexicalEntry]]:
        """All entries whose surface starts with ``prefix``."""
        results = []
        for surface, positions in self.index.predictive(prefix):
            for position in positions:
                results.append((surface, self.entries[position]))
        return results

    def connection_cost(self, forward_id: int, backward_id: int) -> int:
        return self.matrix.cost(forward_id, backward_id)

    def categories_of(self, char: str) -> List[CharacterCategory]:
        return self.char_table.lookup(char)

    def unknown_entries(self, category: str) -> Tuple[UnknownWordEntry, ...]:
        return self.unknown.lookup(category)

    # ------------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------------

    def validate(self):
        """
        Re-check every cross-table invariant.

        Raises:
            InvariantViolationError: On the first inconsistency
        """
        _check_index(self.index, self.entries)
        _check_context(self.matrix, self.entries, "entry")
        _check_context(self.matrix, self.unknown.entries, "unknown-word entry")

        names = self.char_table.category_names
        if DEFAULT_CATEGORY not in names:
            raise InvariantViolationError(f"no {DEFAULT_CATEGORY} character category")
        for category_ids in self.char_table.interval_categories:
            if not category_ids or max(category_ids) >= len(names):
                raise InvariantViolationError(
                    f"character interval refers to category ids {category_ids}"
                )
        boundaries = self.char_table.boundaries
        if not boundaries or boundaries[0] != 0 or list(boundaries) != sorted(set(boundaries)):
            raise InvariantViolationError("character intervals are not sorted from U+0000")

        covered = {entry.category for entry in self.unknown.entries}
        for name in names:
            if name not in covered:
                raise InvariantViolationError(f"category {name} has no unknown-word entry")
        for entry in self.unknown.entries:
            if entry.category not in names:
                raise InvariantViolationError(
                    f"unknown-word entry for undefined category {entry.category}"
                )

    def check_user_dictionary(self, user: UserDictionary):
        """
        Check a user dictionary can be used with this dictionary.

        Raises:
            InvariantViolationError: On a family mismatch or out-of-range
                context id
        """
        if user.family != self.family:
            raise InvariantViolationError(
                f"user dictionary built for {user.family}, system dictionary is {self.family}"
            )
        _check_context(self.matrix, user.entries, "user entry")

    def __repr__(self) -> str:
        return (
            f"CompiledDictionary({self.family!r}, {len(self.entries):,} entries, "
            f"{len(self.index):,} surfaces, {self.matrix!r})"
        )
