"""
Character class definitions (char.def).

char.def has two kinds of lines:

    DEFAULT 0 1 0            # NAME INVOKE GROUP LENGTH
    0x3041..0x309F HIRAGANA  # code point range -> one or more categories

Later range lines override earlier ones. Code points not covered by any
range belong to DEFAULT.
"""

import logging
import struct
from bisect import bisect_right
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from morphodic.encoding import iter_lines
from morphodic.errors import MalformedEntryError, MissingFallbackError

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "DEFAULT"
MAX_CODE_POINT = 0x10FFFF


@dataclass(frozen=True)
class CharacterCategory:
    """
    Unknown-word behaviour of one character category.

    Attributes:
        name: Category name (e.g. "KANJI")
        invoke: Always build unknown words, even if the lexicon matched
        group: Group consecutive characters of this category into one word
        length: Also emit unknown words of 1..length characters
    """
    name: str
    invoke: bool
    group: bool
    length: int


@dataclass(frozen=True)
class CharacterClassTable:
    """
    Code point to category lookup.

    ``boundaries[i]`` is the first code point of interval i; the interval
    runs up to ``boundaries[i + 1] - 1``. ``interval_categories[i]`` lists the
    category ids of interval i, primary category first.
    """
    categories: Tuple[CharacterCategory, ...]
    boundaries: Tuple[int, ...]
    interval_categories: Tuple[Tuple[int, ...], ...]

    @property
    def category_names(self) -> List[str]:
        return [category.name for category in self.categories]

    def category_id(self, name: str) -> int:
        for category_id, category in enumerate(self.categories):
            if category.name == name:
                return category_id
        raise KeyError(name)

    @property
    def default_id(self) -> int:
        return self.category_id(DEFAULT_CATEGORY)

    def lookup_ids(self, char: str) -> Tuple[int, ...]:
        """Category ids of a character, primary first."""
        position = bisect_right(self.boundaries, ord(char)) - 1
        if position < 0:
            return (self.default_id,)
        return self.interval_categories[position]

    def lookup(self, char: str) -> List[CharacterCategory]:
        """Categories of a character, primary first."""
        return [self.categories[category_id] for category_id in self.lookup_ids(char)]

    # ------------------------------------------------------------------------
    # Binary form
    # ------------------------------------------------------------------------

    def to_bytes(self) -> bytes:
        parts = [struct.pack("<I", len(self.categories))]
        for category in self.categories:
            name = category.name.encode("utf-8")
            parts.append(struct.pack("<H", len(name)))
            parts.append(name)
            parts.append(struct.pack("<BBI", category.invoke, category.group, category.length))

        parts.append(struct.pack("<I", len(self.boundaries)))
        for start, category_ids in zip(self.boundaries, self.interval_categories):
            parts.append(struct.pack(f"<IB{len(category_ids)}H", start, len(category_ids), *category_ids))
        return b"".join(parts)

    @classmethod
    def from_bytes(cls, data: bytes) -> "CharacterClassTable":
        """
        Inverse of to_bytes.

        Raises:
            struct.error: If the payload is truncated
        """
        offset = 0
        (count,) = struct.unpack_from("<I", data, offset)
        offset += 4
        categories = []
        for _ in range(count):
            (name_len,) = struct.unpack_from("<H", data, offset)
            offset += 2
            name = data[offset:offset + name_len].decode("utf-8")
            offset += name_len
            invoke, group, length = struct.unpack_from("<BBI", data, offset)
            offset += 6
            categories.append(CharacterCategory(name, bool(invoke), bool(group), length))

        (interval_count,) = struct.unpack_from("<I", data, offset)
        offset += 4
        boundaries = []
        interval_categories = []
        for _ in range(interval_count):
            start, id_count = struct.unpack_from("<IB", data, offset)
            offset += 5
            ids = struct.unpack_from(f"<{id_count}H", data, offset)
            offset += 2 * id_count
            boundaries.append(start)
            interval_categories.append(tuple(ids))

        if offset != len(data):
            raise ValueError(f"{len(data) - offset} trailing bytes in character table")
        return cls(tuple(categories), tuple(boundaries), tuple(interval_categories))


# ============================================================================
# char.def Parsing
# ============================================================================

def _parse_code_point(text: str, source: str, line: int) -> int:
    try:
        code_point = int(text, 16)
    except ValueError:
        raise MalformedEntryError(source, line, f"bad code point {text!r}")
    if not 0 <= code_point <= MAX_CODE_POINT:
        raise MalformedEntryError(source, line, f"code point {text} beyond U+10FFFF")
    return code_point


def _parse_flag(text: str, name: str, source: str, line: int) -> bool:
    if text not in ("0", "1"):
        raise MalformedEntryError(source, line, f"{name} must be 0 or 1, got {text!r}")
    return text == "1"


def flatten_ranges(
    ranges: Sequence[Tuple[int, int, Tuple[int, ...]]],
    default_id: int,
) -> Tuple[Tuple[int, ...], Tuple[Tuple[int, ...], ...]]:
    """
    Turn possibly overlapping ranges into disjoint intervals.

    Ranges later in the sequence win. Gaps map to the default category.
    Adjacent intervals with the same categories are merged.
    """
    cuts = {0}
    for start, end, _ in ranges:
        cuts.add(start)
        if end < MAX_CODE_POINT:
            cuts.add(end + 1)
    points = sorted(cuts)

    boundaries: List[int] = []
    interval_categories: List[Tuple[int, ...]] = []
    for point in points:
        category_ids: Tuple[int, ...] = (default_id,)
        for start, end, ids in reversed(ranges):
            if start <= point <= end:
                category_ids = ids
                break
        if interval_categories and interval_categories[-1] == category_ids:
            continue
        boundaries.append(point)
        interval_categories.append(category_ids)
    return tuple(boundaries), tuple(interval_categories)


def parse_char_definition(text: str, source_name: str = "char.def") -> CharacterClassTable:
    """
    Parse char.def.

    Raises:
        MalformedEntryError: On a malformed line or an undefined category
        MissingFallbackError: If there is no DEFAULT category
    """
    categories: List[CharacterCategory] = []
    category_ids: Dict[str, int] = {}
    ranges: List[Tuple[int, int, Tuple[int, ...]]] = []

    for line_number, line in iter_lines(text):
        line = line.split("#", 1)[0].strip()
        if not line:
            continue
        fields = line.split()

        if fields[0].startswith("0x"):
            if len(fields) < 2:
                raise MalformedEntryError(source_name, line_number, "range without category")
            if ".." in fields[0]:
                low, high = fields[0].split("..", 1)
                start = _parse_code_point(low, source_name, line_number)
                end = _parse_code_point(high, source_name, line_number)
            else:
                start = end = _parse_code_point(fields[0], source_name, line_number)
            if end < start:
                raise MalformedEntryError(source_name, line_number, f"reversed range {fields[0]}")

            ids = []
            for name in fields[1:]:
                if name not in category_ids:
                    raise MalformedEntryError(
                        source_name, line_number, f"undefined category {name!r}"
                    )
                ids.append(category_ids[name])
            ranges.append((start, end, tuple(ids)))
            continue

        if len(fields) != 4:
            raise MalformedEntryError(
                source_name, line_number,
                f"category line needs NAME INVOKE GROUP LENGTH, got {len(fields)} fields",
            )
        name, invoke, group, length = fields
        if name in category_ids:
            raise MalformedEntryError(source_name, line_number, f"duplicate category {name!r}")
        try:
            length_value = int(length)
        except ValueError:
            raise MalformedEntryError(source_name, line_number, f"bad length {length!r}")
        if length_value < 0:
            raise MalformedEntryError(source_name, line_number, f"negative length {length_value}")
        category_ids[name] = len(categories)
        categories.append(CharacterCategory(
            name=name,
            invoke=_parse_flag(invoke, "invoke", source_name, line_number),
            group=_parse_flag(group, "group", source_name, line_number),
            length=length_value,
        ))

    if DEFAULT_CATEGORY not in category_ids:
        raise MissingFallbackError(f"{source_name}: no {DEFAULT_CATEGORY} category defined")

    boundaries, interval_categories = flatten_ranges(ranges, category_ids[DEFAULT_CATEGORY])
    logger.info(
        f"  {source_name}: {len(categories)} categories, {len(boundaries):,} intervals"
    )
    return CharacterClassTable(tuple(categories), boundaries, interval_categories)
