"""
Unknown-word definitions (unk.def).

Each row gives the context ids, cost and details used to synthesize an
entry for text of a character category when the lexicon has no match:

    DEFAULT,5,5,4769,記号,一般,*,*,*,*,*
"""

import logging
import struct
from dataclasses import dataclass
from typing import Dict, List, Tuple

from morphodic.chardef import CharacterClassTable
from morphodic.errors import MalformedEntryError, MissingFallbackError
from morphodic.lexicon import (
    MAX_CONTEXT_ID,
    MAX_COST,
    MIN_COST,
    iter_rows,
    parse_int_field,
)

logger = logging.getLogger(__name__)

ENTRY_HEADER_FORMAT = "<HHHhH"


@dataclass(frozen=True)
class UnknownWordEntry:
    """Fallback entry parameters for one character category."""
    category: str
    left_id: int
    right_id: int
    cost: int
    details: Tuple[str, ...] = ()


@dataclass(frozen=True)
class UnknownDictionary:
    """
    Unknown-word entries grouped by category.

    ``entries`` keeps source order; ``by_category`` maps a category name to
    the positions of its entries.
    """
    entries: Tuple[UnknownWordEntry, ...]

    @property
    def by_category(self) -> Dict[str, Tuple[int, ...]]:
        grouped: Dict[str, List[int]] = {}
        for position, entry in enumerate(self.entries):
            grouped.setdefault(entry.category, []).append(position)
        return {name: tuple(positions) for name, positions in grouped.items()}

    def lookup(self, category: str) -> Tuple[UnknownWordEntry, ...]:
        return tuple(entry for entry in self.entries if entry.category == category)

    def to_bytes(self) -> bytes:
        parts = [struct.pack("<I", len(self.entries))]
        for entry in self.entries:
            category = entry.category.encode("utf-8")
            details = [detail.encode("utf-8") for detail in entry.details]
            parts.append(struct.pack(
                ENTRY_HEADER_FORMAT,
                len(category), entry.left_id, entry.right_id, entry.cost, len(details),
            ))
            parts.append(category)
            for detail in details:
                parts.append(struct.pack("<I", len(detail)))
                parts.append(detail)
        return b"".join(parts)

    @classmethod
    def from_bytes(cls, data: bytes) -> "UnknownDictionary":
        offset = 0
        (count,) = struct.unpack_from("<I", data, offset)
        offset += 4
        header_size = struct.calcsize(ENTRY_HEADER_FORMAT)
        entries = []
        for _ in range(count):
            name_len, left_id, right_id, cost, detail_count = struct.unpack_from(
                ENTRY_HEADER_FORMAT, data, offset
            )
            offset += header_size
            category = data[offset:offset + name_len].decode("utf-8")
            offset += name_len
            details = []
            for _ in range(detail_count):
                (detail_len,) = struct.unpack_from("<I", data, offset)
                offset += 4
                details.append(data[offset:offset + detail_len].decode("utf-8"))
                offset += detail_len
            entries.append(UnknownWordEntry(category, left_id, right_id, cost, tuple(details)))

        if offset != len(data):
            raise ValueError(f"{len(data) - offset} trailing bytes in unknown-word table")
        return cls(tuple(entries))


def parse_unknown_definition(
    text: str,
    char_table: CharacterClassTable,
    fields_num: int,
    source_name: str = "unk.def",
) -> UnknownDictionary:
    """
    Parse unk.def.

    Args:
        text: Decoded file contents
        char_table: Parsed char.def; every category must get an entry
        fields_num: Exact number of fields per row for this family
        source_name: File name used in error messages

    Raises:
        MalformedEntryError: On a malformed row or an undefined category
        MissingFallbackError: If a character category has no entry
    """
    known = set(char_table.category_names)
    entries: List[UnknownWordEntry] = []

    for line_number, row in iter_rows(text, source_name):
        if len(row) != fields_num:
            raise MalformedEntryError(
                source_name, line_number, f"expected {fields_num} fields, got {len(row)}"
            )
        category = row[0]
        if category not in known:
            raise MalformedEntryError(
                source_name, line_number, f"undefined category {category!r}"
            )
        entries.append(UnknownWordEntry(
            category=category,
            left_id=parse_int_field(row[1], "left id", 0, MAX_CONTEXT_ID, source_name, line_number),
            right_id=parse_int_field(row[2], "right id", 0, MAX_CONTEXT_ID, source_name, line_number),
            cost=parse_int_field(row[3], "cost", MIN_COST, MAX_COST, source_name, line_number),
            details=tuple(row[4:]),
        ))

    covered = {entry.category for entry in entries}
    missing = [name for name in char_table.category_names if name not in covered]
    if missing:
        raise MissingFallbackError(
            f"{source_name}: no unknown-word entry for {', '.join(missing)}"
        )

    logger.info(f"  {source_name}: {len(entries)} unknown-word entries")
    return UnknownDictionary(tuple(entries))
