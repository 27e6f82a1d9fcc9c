"""
Lexicon CSV parsing.

Every family ships its lexicon as comma-separated rows. Which column holds
what differs per family and is described by a FieldLayout; the default is
the MeCab layout ``surface,left_id,right_id,cost,details...``.
"""

import csv
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from morphodic.encoding import iter_lines
from morphodic.errors import MalformedEntryError

logger = logging.getLogger(__name__)

# Context ids are stored as uint16, costs as int16
MAX_CONTEXT_ID = 0xFFFF
MIN_COST = -0x8000
MAX_COST = 0x7FFF

# IPADIC ships a few dash/tilde variants that the tokenizer never emits
DETAIL_REPLACEMENTS = (("―", "—"), ("～", "〜"))


# ============================================================================
# Entry & Layout
# ============================================================================

@dataclass(frozen=True)
class LexicalEntry:
    """
    A lexicon entry.

    Attributes:
        surface: The surface form (text as it appears)
        left_id: Left context id
        right_id: Right context id
        cost: Word cost (lower = more likely)
        details: Part-of-speech and inflection fields in source order
        reading: Reading, when the family defines a reading column
        pronunciation: Pronunciation, when the family defines one
    """
    surface: str
    left_id: int
    right_id: int
    cost: int
    details: Tuple[str, ...] = ()
    reading: Optional[str] = None
    pronunciation: Optional[str] = None


@dataclass(frozen=True)
class FieldLayout:
    """
    Column layout of a lexicon row.

    Attributes:
        fields_num: Number of fields in a complete row
        surface: Column of the surface form
        left_id: Column of the left context id
        right_id: Column of the right context id
        cost: Column of the word cost
        details: (start, stop) column span of the detail fields; stop may be
            None for "to the end of the row"
        reading: Column of the reading, if any
        pronunciation: Column of the pronunciation, if any
        flexible: Accept rows with more or fewer fields than fields_num as
            long as every column above is present
    """
    fields_num: int
    surface: int = 0
    left_id: int = 1
    right_id: int = 2
    cost: int = 3
    details: Tuple[int, Optional[int]] = (4, None)
    reading: Optional[int] = None
    pronunciation: Optional[int] = None
    flexible: bool = False

    @property
    def min_fields(self) -> int:
        """Smallest row that still holds every numeric column."""
        return max(self.surface, self.left_id, self.right_id, self.cost) + 1


# ============================================================================
# Field Conversion
# ============================================================================

def normalize_field(text: str) -> str:
    """Apply the IPADIC detail normalization to one field."""
    for old, new in DETAIL_REPLACEMENTS:
        text = text.replace(old, new)
    return text


def parse_int_field(value: str, name: str, low: int, high: int,
                    source: str, line: int) -> int:
    """Parse an integer column, rejecting junk and out-of-range values."""
    try:
        number = int(value.strip())
    except ValueError:
        raise MalformedEntryError(source, line, f"{name} is not an integer: {value!r}")
    if not low <= number <= high:
        raise MalformedEntryError(
            source, line, f"{name} {number} out of range [{low}, {high}]"
        )
    return number


def optional_column(row: Sequence[str], column: Optional[int]) -> Optional[str]:
    if column is None or column >= len(row):
        return None
    return row[column]


def check_field_count(row: Sequence[str], layout: FieldLayout, source: str, line: int):
    """Raise MalformedEntryError if the row does not fit the layout."""
    if layout.flexible:
        if len(row) < layout.min_fields:
            raise MalformedEntryError(
                source, line,
                f"expected at least {layout.min_fields} fields, got {len(row)}"
            )
    elif len(row) != layout.fields_num:
        raise MalformedEntryError(
            source, line, f"expected {layout.fields_num} fields, got {len(row)}"
        )


def check_surface(surface: str, source: str, line: int):
    """Reject surfaces the index cannot store."""
    if not surface:
        raise MalformedEntryError(source, line, "empty surface form")
    # marisa-trie lookups stop at the first NUL
    if "\x00" in surface:
        raise MalformedEntryError(source, line, "NUL in surface form")


def row_to_entry(row: Sequence[str], layout: FieldLayout,
                 source: str, line: int) -> LexicalEntry:
    """Convert one CSV row into a LexicalEntry."""
    check_field_count(row, layout, source, line)

    surface = row[layout.surface]
    check_surface(surface, source, line)

    start, stop = layout.details
    return LexicalEntry(
        surface=surface,
        left_id=parse_int_field(row[layout.left_id], "left id", 0, MAX_CONTEXT_ID, source, line),
        right_id=parse_int_field(row[layout.right_id], "right id", 0, MAX_CONTEXT_ID, source, line),
        cost=parse_int_field(row[layout.cost], "cost", MIN_COST, MAX_COST, source, line),
        details=tuple(row[start:stop]),
        reading=optional_column(row, layout.reading),
        pronunciation=optional_column(row, layout.pronunciation),
    )


def iter_rows(text: str, source_name: str) -> Iterable[Tuple[int, List[str]]]:
    """
    Yield (line_number, fields) for each non-blank CSV record.

    Quoted fields follow the usual CSV rules: a field wrapped in double
    quotes may contain commas, and ``""`` stands for a literal quote.
    A record never spans lines.
    """
    for line_number, line in iter_lines(text):
        if not line.strip():
            continue
        if '"' in line:
            try:
                row = next(csv.reader([line], strict=True))
            except csv.Error as e:
                raise MalformedEntryError(source_name, line_number, f"bad quoting: {e}")
        else:
            row = line.split(",")
        yield line_number, row


# ============================================================================
# Lexicon Parsing
# ============================================================================

def parse_lexicon(
    text: str,
    layout: FieldLayout,
    source_name: str,
    normalize_details: bool = False,
) -> List[LexicalEntry]:
    """
    Parse one lexicon file.

    Args:
        text: Decoded file contents
        layout: Column layout of the family
        source_name: File name used in error messages
        normalize_details: Apply the IPADIC dash/tilde normalization

    Returns:
        Entries in source order

    Raises:
        MalformedEntryError: On the first malformed row
    """
    entries: List[LexicalEntry] = []
    for line_number, row in iter_rows(text, source_name):
        if normalize_details:
            row = [normalize_field(field) for field in row]
        entries.append(row_to_entry(row, layout, source_name, line_number))
    return entries


def parse_lexicons(
    texts: Dict[str, str],
    layout: FieldLayout,
    normalize_details: bool = False,
) -> List[LexicalEntry]:
    """
    Parse several lexicon files into one entry table.

    Files are read in sorted name order so that entry positions do not
    depend on directory listing order.

    Raises:
        MalformedEntryError: On a malformed row, or if no entries were found
    """
    entries: List[LexicalEntry] = []
    for name in sorted(texts):
        parsed = parse_lexicon(texts[name], layout, name, normalize_details)
        logger.info(f"  {name}: {len(parsed):,} entries")
        entries.extend(parsed)

    if not entries:
        names = ", ".join(sorted(texts)) or "<no lexicon files>"
        raise MalformedEntryError(names, 0, "lexicon is empty")
    return entries
