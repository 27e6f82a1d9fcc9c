"""
Source text decoding.

Dictionary archives ship in different legacy encodings (IPADIC is EUC-JP,
the others are UTF-8). Everything downstream works on ``str`` with ``\\n``
line endings.
"""

import codecs
from typing import Iterator, Tuple

from morphodic.errors import EncodingError


def decode_source(data: bytes, encoding: str, source_name: str) -> str:
    """
    Decode raw source bytes strictly.

    Args:
        data: Raw file contents
        encoding: Declared encoding label (e.g. "EUC-JP", "UTF-8")
        source_name: File name used in error messages

    Returns:
        The decoded text with a leading BOM removed and line endings
        normalized to ``\\n``.

    Raises:
        EncodingError: If the label is unknown or a byte sequence is invalid
    """
    try:
        codec = codecs.lookup(encoding)
    except LookupError:
        raise EncodingError(source_name, encoding, "unknown encoding")

    # utf-8-sig drops the BOM if there is one
    if codec.name == "utf-8":
        codec = codecs.lookup("utf-8-sig")

    try:
        text = codec.decode(data, "strict")[0]
    except UnicodeDecodeError as e:
        raise EncodingError(source_name, encoding, e.reason, offset=e.start) from e

    if "\r" in text:
        text = text.replace("\r\n", "\n").replace("\r", "\n")
    return text


def iter_lines(text: str) -> Iterator[Tuple[int, str]]:
    """Yield (line_number, line) pairs, numbering from 1."""
    # str.splitlines() would also split on U+2028 and friends, which may
    # legitimately appear inside lexicon fields
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    for line_number, line in enumerate(lines, 1):
        yield line_number, line
