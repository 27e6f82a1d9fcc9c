"""
Surface form index.

A marisa_trie.Trie holds the distinct surface forms; the trie assigns each
key an id, and a postings table maps that id to the positions of every entry
with that surface, in the order the entries were parsed.

Serialized layout (little-endian):
    trie_size  u32
    trie       marisa bytes
    key_count  u32
    offsets    (key_count + 1) x u32   postings of key i are ids[offsets[i]:offsets[i+1]]
    ids        offsets[-1] x u32
"""

import struct
from typing import Dict, Iterable, Iterator, List, Sequence, Tuple

import marisa_trie


class SurfaceIndex:
    """Prefix-searchable map from surface form to entry positions."""

    __slots__ = ("_trie", "_offsets", "_ids")

    def __init__(self, trie: marisa_trie.Trie, offsets: Sequence[int], ids: Sequence[int]):
        if len(offsets) != len(trie) + 1:
            raise ValueError(
                f"{len(trie)} keys need {len(trie) + 1} offsets, got {len(offsets)}"
            )
        self._trie = trie
        self._offsets = tuple(offsets)
        self._ids = tuple(ids)

    # ------------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------------

    def _postings(self, key_id: int) -> Tuple[int, ...]:
        return self._ids[self._offsets[key_id]:self._offsets[key_id + 1]]

    def get(self, surface: str) -> Tuple[int, ...]:
        """
        Entry positions for a surface form.

        Returns:
            Positions in parse order, or an empty tuple if the surface is
            not in the index
        """
        if "\x00" in surface:
            return ()
        try:
            key_id = self._trie[surface]
        except KeyError:
            return ()
        return self._postings(key_id)

    def __contains__(self, surface: str) -> bool:
        return "\x00" not in surface and surface in self._trie

    def __len__(self) -> int:
        return len(self._trie)

    def common_prefixes(self, text: str, start: int = 0) -> List[Tuple[str, Tuple[int, ...]]]:
        """
        Surfaces that are prefixes of ``text[start:]``, longest first.

        Args:
            text: Input text
            start: Offset into text where matching begins

        Returns:
            List of (surface, entry positions) tuples
        """
        matches = []
        for surface in self._trie.prefixes(text[start:]):
            matches.append((surface, self._postings(self._trie[surface])))
        matches.sort(key=lambda match: len(match[0]), reverse=True)
        return matches

    def predictive(self, prefix: str) -> List[Tuple[str, Tuple[int, ...]]]:
        """Surfaces starting with ``prefix``, sorted, with their positions."""
        return [
            (surface, self._postings(key_id))
            for surface, key_id in sorted(self._trie.items(prefix))
        ]

    def has_prefix(self, prefix: str) -> bool:
        """Check if any surface starts with the given prefix."""
        try:
            next(iter(self._trie.iterkeys(prefix)))
            return True
        except StopIteration:
            return False

    def items(self) -> Iterator[Tuple[str, Tuple[int, ...]]]:
        """All (surface, positions) pairs in key-id order."""
        for key_id in range(len(self._trie)):
            yield self._trie.restore_key(key_id), self._postings(key_id)

    def postings_count(self) -> int:
        return len(self._ids)

    # ------------------------------------------------------------------------
    # Binary form
    # ------------------------------------------------------------------------

    def to_bytes(self) -> bytes:
        trie_bytes = self._trie.tobytes()
        return b"".join([
            struct.pack("<I", len(trie_bytes)),
            trie_bytes,
            struct.pack("<I", len(self._trie)),
            struct.pack(f"<{len(self._offsets)}I", *self._offsets),
            struct.pack(f"<{len(self._ids)}I", *self._ids),
        ])

    @classmethod
    def from_bytes(cls, data: bytes) -> "SurfaceIndex":
        """
        Inverse of to_bytes.

        Raises:
            ValueError: If the payload does not add up
        """
        (trie_size,) = struct.unpack_from("<I", data, 0)
        offset = 4
        trie_bytes = data[offset:offset + trie_size]
        if len(trie_bytes) != trie_size:
            raise ValueError("index section truncated inside the trie")
        offset += trie_size
        trie = marisa_trie.Trie().frombytes(trie_bytes)

        (key_count,) = struct.unpack_from("<I", data, offset)
        offset += 4
        if key_count != len(trie):
            raise ValueError(f"postings for {key_count} keys, trie has {len(trie)}")
        offsets = struct.unpack_from(f"<{key_count + 1}I", data, offset)
        offset += 4 * (key_count + 1)
        id_count = offsets[-1]
        ids = struct.unpack_from(f"<{id_count}I", data, offset)
        offset += 4 * id_count
        if offset != len(data):
            raise ValueError(f"{len(data) - offset} trailing bytes in index section")
        return cls(trie, offsets, ids)

    def __eq__(self, other):
        if not isinstance(other, SurfaceIndex):
            return NotImplemented
        return (
            self._trie.tobytes() == other._trie.tobytes()
            and self._offsets == other._offsets
            and self._ids == other._ids
        )

    def __hash__(self):
        return hash((self._offsets, self._ids))

    def __repr__(self) -> str:
        return f"SurfaceIndex({len(self)} surfaces, {len(self._ids)} entries)"


def build_index(entries: Iterable) -> SurfaceIndex:
    """
    Build the index over a sequence of entries.

    Args:
        entries: Objects with a ``surface`` attribute, in entry-table order

    Returns:
        SurfaceIndex whose postings list, for each surface, the positions of
        the entries sharing it in parse order
    """
    positions: Dict[str, List[int]] = {}
    for position, entry in enumerate(entries):
        positions.setdefault(entry.surface, []).append(position)

    # dict keeps first-seen order; marisa assigns its own key ids
    trie = marisa_trie.Trie(list(positions))

    offsets = [0]
    ids: List[int] = []
    for key_id in range(len(trie)):
        ids.extend(positions[trie.restore_key(key_id)])
        offsets.append(len(ids))
    return SurfaceIndex(trie, offsets, ids)
