"""
Connection-cost matrix (matrix.def).

The source format is a header line ``forward_size backward_size`` followed
by ``forward_id backward_id cost`` lines. ``forward_id`` is the right
context id of the preceding word, ``backward_id`` the left context id of the
following word. Cells that are not listed cost 0.
"""

import logging
import struct
import sys
from array import array
from typing import Iterable, Union

from morphodic.encoding import iter_lines
from morphodic.errors import CostMatrixError
from morphodic.lexicon import MAX_CONTEXT_ID, MAX_COST, MIN_COST

logger = logging.getLogger(__name__)

HEADER_FORMAT = "<II"


class ConnectionCostMatrix:
    """
    Dense forward_size x backward_size table of int16 costs.

    The cells live in a read-only memoryview; the matrix cannot be changed
    after construction.
    """

    __slots__ = ("forward_size", "backward_size", "_costs")

    def __init__(self, forward_size: int, backward_size: int,
                 costs: Union[array, Iterable[int], None] = None):
        if costs is None:
            cells = array("h", bytes(2 * forward_size * backward_size))
        else:
            cells = array("h", costs)
        if len(cells) != forward_size * backward_size:
            raise ValueError(
                f"expected {forward_size * backward_size} cells, got {len(cells)}"
            )
        self.forward_size = forward_size
        self.backward_size = backward_size
        self._costs = memoryview(cells.tobytes()).cast("h")

    def cost(self, forward_id: int, backward_id: int) -> int:
        """
        Cost of placing a word with right id ``forward_id`` before a word
        with left id ``backward_id``.

        Raises:
            IndexError: If either id is outside the matrix
        """
        if not (0 <= forward_id < self.forward_size and 0 <= backward_id < self.backward_size):
            raise IndexError(
                f"context ({forward_id}, {backward_id}) outside "
                f"{self.forward_size}x{self.backward_size} matrix"
            )
        return self._costs[forward_id * self.backward_size + backward_id]

    def contains(self, forward_id: int, backward_id: int) -> bool:
        return 0 <= forward_id < self.forward_size and 0 <= backward_id < self.backward_size

    def check_entries(self, entries: Iterable, source: str):
        """
        Check that every entry's context ids fall inside the matrix.

        An entry's right id is used as a forward id, its left id as a
        backward id.

        Raises:
            CostMatrixError: For the first entry out of bounds
        """
        for position, entry in enumerate(entries):
            if entry.right_id >= self.forward_size or entry.left_id >= self.backward_size:
                label = getattr(entry, "surface", None) or getattr(entry, "category", "")
                raise CostMatrixError(
                    source,
                    f"entry #{position} ({label!r}) uses context "
                    f"left={entry.left_id} right={entry.right_id}, matrix is "
                    f"{self.forward_size}x{self.backward_size}",
                )

    # ------------------------------------------------------------------------
    # Binary form
    # ------------------------------------------------------------------------

    def to_bytes(self) -> bytes:
        """Header followed by the cells, little-endian, row-major."""
        cells = array("h")
        cells.frombytes(self._costs.tobytes())
        if sys.byteorder == "big":
            cells.byteswap()
        return struct.pack(HEADER_FORMAT, self.forward_size, self.backward_size) + cells.tobytes()

    @classmethod
    def from_bytes(cls, data: bytes) -> "ConnectionCostMatrix":
        """
        Inverse of to_bytes.

        Raises:
            ValueError: If the payload size does not match the header
        """
        header_size = struct.calcsize(HEADER_FORMAT)
        if len(data) < header_size:
            raise ValueError("matrix section shorter than its header")
        forward_size, backward_size = struct.unpack_from(HEADER_FORMAT, data)
        body = data[header_size:]
        if len(body) != 2 * forward_size * backward_size:
            raise ValueError(
                f"matrix section holds {len(body)} bytes, "
                f"expected {2 * forward_size * backward_size}"
            )
        cells = array("h")
        cells.frombytes(body)
        if sys.byteorder == "big":
            cells.byteswap()
        return cls(forward_size, backward_size, cells)

    def __eq__(self, other):
        if not isinstance(other, ConnectionCostMatrix):
            return NotImplemented
        return (
            self.forward_size == other.forward_size
            and self.backward_size == other.backward_size
            and self._costs.tobytes() == other._costs.tobytes()
        )

    def __hash__(self):
        return hash((self.forward_size, self.backward_size, self._costs.tobytes()))

    def __repr__(self) -> str:
        return f"ConnectionCostMatrix({self.forward_size}x{self.backward_size})"


# ============================================================================
# matrix.def Parsing
# ============================================================================

def _parse_ints(parts, count: int, source: str, line: int):
    if len(parts) != count:
        raise CostMatrixError(source, f"expected {count} values, got {len(parts)}", line)
    try:
        return [int(part) for part in parts]
    except ValueError:
        raise CostMatrixError(source, f"non-integer value in {' '.join(parts)!r}", line)


def parse_matrix(text: str, source_name: str = "matrix.def") -> ConnectionCostMatrix:
    """
    Parse matrix.def.

    Raises:
        CostMatrixError: On a bad header, a malformed cell line, a cell outside
            the declared dimensions, or a cost outside int16
    """
    lines = iter_lines(text)
    header = None
    for line_number, line in lines:
        if line.strip():
            header = (line_number, line.split())
            break
    if header is None:
        raise CostMatrixError(source_name, "missing dimension header")

    line_number, parts = header
    forward_size, backward_size = _parse_ints(parts, 2, source_name, line_number)
    for size in (forward_size, backward_size):
        if not 0 < size <= MAX_CONTEXT_ID + 1:
            raise CostMatrixError(
                source_name, f"dimension {size} out of range [1, {MAX_CONTEXT_ID + 1}]",
                line_number,
            )

    costs = array("h", bytes(2 * forward_size * backward_size))
    cells = 0
    for line_number, line in lines:
        parts = line.split()
        if not parts:
            continue
        forward_id, backward_id, cost = _parse_ints(parts, 3, source_name, line_number)
        if not (0 <= forward_id < forward_size and 0 <= backward_id < backward_size):
            raise CostMatrixError(
                source_name,
                f"cell ({forward_id}, {backward_id}) outside declared "
                f"{forward_size}x{backward_size}",
                line_number,
            )
        if not MIN_COST <= cost <= MAX_COST:
            raise CostMatrixError(source_name, f"cost {cost} out of int16 range", line_number)
        costs[forward_id * backward_size + backward_id] = cost
        cells += 1

    logger.info(f"  {source_name}: {forward_size}x{backward_size} matrix, {cells:,} cells")
    return ConnectionCostMatrix(forward_size, backward_size, costs)
