"""
morphodic: morphological dictionary compiler

Compiles MeCab-style dictionary sources (IPADIC, IPADIC NEologd, UniDic,
ko-dic, CC-CEDICT) into one versioned binary artifact, and loads it back
once per process for fast lexical lookup and connection-cost scoring.

Basic Usage:
    import morphodic

    morphodic.build("mecab-ipadic-2.7.0", "ipadic.dic", family="ipadic")

    dictionary = morphodic.load("ipadic.dic")
    for entry in dictionary.lookup("すもも"):
        print(entry.surface, entry.cost, entry.details)
"""

import time
from pathlib import Path
from typing import Optional, Tuple, Union

from morphodic.errors import (
    BuildError,
    CorruptArtifactError,
    CostMatrixError,
    DictionaryError,
    DictionaryFormatError,
    EncodingError,
    InvariantViolationError,
    LoadError,
    MalformedEntryError,
    MissingFallbackError,
    SerializationError,
    SourceFileError,
    UnknownFamilyError,
)

__version__ = "0.1.0"


# =============================================================================
# Main API
# =============================================================================

def build(input_dir: Union[str, Path], output_path: Union[str, Path],
          family: str = "ipadic", compress: bool = False):
    """
    Build a dictionary artifact from an extracted source directory.

    Args:
        input_dir: Directory with the lexicon CSVs, matrix.def, char.def, unk.def
        output_path: Where to write the artifact
        family: Dictionary family name (see morphodic.families.FAMILIES)
        compress: Compress the artifact with the family's algorithm

    Returns:
        The CompiledDictionary that was written

    Raises:
        BuildError: If the sources are invalid or the artifact cannot be written
    """
    from morphodic.builder import BuildOptions, build_dictionary
    from morphodic.families import get_family

    return build_dictionary(input_dir, output_path, get_family(family), BuildOptions(compress=compress))


def load(path: Optional[Union[str, Path]] = None):
    """
    Get the process-wide shared dictionary for an artifact path.

    The first call loads and validates the artifact; later calls, from any
    thread, return the same object.

    Raises:
        LoadError: If the artifact is missing, corrupt or inconsistent
    """
    from morphodic.loader import get_dictionary
    return get_dictionary(path)


def warm_up(path: Optional[Union[str, Path]] = None, verbose: bool = False) -> Tuple[float, dict]:
    """
    Pre-load the dictionary.

    Args:
        path: Artifact path (default: the bundled IPADIC artifact)
        verbose: If True, print timing information

    Returns:
        Tuple of (total_time_seconds, timing_details_dict)
    """
    timings = {}
    total_start = time.perf_counter()

    if verbose:
        print("Loading morphodic dictionary...")

    t0 = time.perf_counter()
    dictionary = load(path)
    timings['dictionary'] = (time.perf_counter() - t0) * 1000

    if verbose:
        print(f"  Dictionary:     {timings['dictionary']:>7.1f}ms ({len(dictionary.entries):,} entries)")

    total_time = time.perf_counter() - total_start
    timings['total'] = total_time * 1000

    if verbose:
        print(f"Total warm-up:    {timings['total']:>7.1f}ms")

    return total_time, timings


def get_version() -> str:
    """Get the library version."""
    return __version__


# =============================================================================
# Module-level exports
# =============================================================================

__all__ = [
    # API
    "build",
    "load",
    "warm_up",
    "get_version",
    # Exceptions
    "DictionaryError",
    "BuildError",
    "LoadError",
    "UnknownFamilyError",
    "SourceFileError",
    "EncodingError",
    "MalformedEntryError",
    "CostMatrixError",
    "MissingFallbackError",
    "SerializationError",
    "CorruptArtifactError",
    "DictionaryFormatError",
    "InvariantViolationError",
    # Version
    "__version__",
]
