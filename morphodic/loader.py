"""
Runtime loading of compiled dictionaries.

A DictionaryHandle decodes its artifact the first time somebody asks for
it and hands the same read-only CompiledDictionary to every later caller.
Concurrent first calls run the decode exactly once.

Module-level helpers keep one handle per artifact path, so any number of
threads calling ``get_dictionary(path)`` share one dictionary:

    from morphodic.loader import get_dictionary

    dictionary = get_dictionary("ipadic.dic")
    for entry in dictionary.lookup("すもも"):
        print(entry.cost)
"""

import logging
import threading
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from morphodic.artifact import deserialize
from morphodic.compress import decompress, is_compressed
from morphodic.dictionary import CompiledDictionary, UserDictionary
from morphodic.errors import (
    CorruptArtifactError,
    DictionaryFormatError,
    LoadError,
)
from morphodic.lexicon import LexicalEntry

logger = logging.getLogger(__name__)

Source = Union[str, Path, bytes, Callable[[], bytes]]


# ============================================================================
# Decoding
# ============================================================================

def read_source(source: Source) -> bytes:
    """
    Fetch the raw bytes of an artifact.

    Raises:
        CorruptArtifactError: If the file cannot be read
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source)
    if callable(source):
        try:
            return source()
        except OSError as e:
            raise CorruptArtifactError(f"cannot read dictionary source: {e}") from e
    path = Path(source)
    try:
        return path.read_bytes()
    except FileNotFoundError:
        raise CorruptArtifactError(
            f"Dictionary not found at {path}. "
            "Run 'morphodic build' to build it."
        )
    except OSError as e:
        raise CorruptArtifactError(f"cannot read {path}: {e}") from e


def unwrap(data: bytes, fallback: Optional[Source] = None) -> bytes:
    """
    Decompress data if it carries the compression wrapper.

    If decompression fails and an uncompressed fallback artifact is given,
    the fallback is used instead.

    Raises:
        CorruptArtifactError: If decompression fails and there is no usable
            fallback
    """
    if not is_compressed(data):
        return data
    try:
        return decompress(data)
    except CorruptArtifactError as e:
        if fallback is None:
            raise
        logger.warning(f"Compressed dictionary is unusable ({e}); loading uncompressed fallback")
        raw = read_source(fallback)
        if is_compressed(raw):
            raise CorruptArtifactError("fallback artifact is compressed as well") from e
        return raw


def load_dictionary_bytes(data: bytes, fallback: Optional[Source] = None) -> CompiledDictionary:
    """
    Decode and validate a system dictionary artifact.

    Args:
        data: Artifact bytes, compressed or not
        fallback: Uncompressed artifact to use if decompression fails

    Returns:
        The validated dictionary

    Raises:
        CorruptArtifactError: On decompression or framing failure
        DictionaryFormatError: On version, byte-order or kind mismatch
        InvariantViolationError: If the tables are inconsistent
    """
    dictionary = deserialize(unwrap(data, fallback))
    if not isinstance(dictionary, CompiledDictionary):
        raise DictionaryFormatError("artifact is a user dictionary, expected a system dictionary")
    dictionary.validate()
    return dictionary


def load_dictionary_file(path: Union[str, Path],
                         fallback: Optional[Source] = None) -> CompiledDictionary:
    """Read, decode and validate a system dictionary file."""
    return load_dictionary_bytes(read_source(path), fallback)


def load_user_dictionary(source: Source,
                         system: Optional[CompiledDictionary] = None) -> UserDictionary:
    """
    Decode and validate a user dictionary artifact.

    Args:
        source: Path, bytes, or a callable returning bytes
        system: If given, also check the user entries against its matrix

    Raises:
        LoadError: On any decoding or consistency failure
    """
    user = deserialize(unwrap(read_source(source)))
    if not isinstance(user, UserDictionary):
        raise DictionaryFormatError("artifact is a system dictionary, expected a user dictionary")
    user.validate()
    if system is not None:
        system.check_user_dictionary(user)
    return user


# ============================================================================
# Shared Handle
# ============================================================================

class DictionaryHandle:
    """
    Lazily loaded, process-wide shared dictionary.

    ``get()`` may be called from any thread. The first call decodes the
    artifact while holding the lock; callers arriving meanwhile wait and then
    receive the same object. If loading fails, the error is kept and raised
    again to every later caller of this handle.
    """

    def __init__(self, source: Source, fallback: Optional[Source] = None):
        self._source = source
        self._fallback = fallback
        self._lock = threading.Lock()
        self._dictionary: Optional[CompiledDictionary] = None
        self._error: Optional[LoadError] = None
        self.load_count = 0

    @property
    def is_loaded(self) -> bool:
        return self._dictionary is not None

    def get(self) -> CompiledDictionary:
        """
        Return the dictionary, loading it on first use.

        Raises:
            LoadError: If loading failed (now or on an earlier call)
        """
        dictionary = self._dictionary
        if dictionary is not None:
            return dictionary

        with self._lock:
            if self._dictionary is not None:
                return self._dictionary
            if self._error is not None:
                error = self._error
                raise type(error)(f"earlier load failed: {error}") from error

            self.load_count += 1
            start = time.perf_counter()
            try:
                data = read_source(self._source)
                dictionary = load_dictionary_bytes(data, self._fallback)
            except LoadError as e:
                self._error = e
                raise
            elapsed = (time.perf_counter() - start) * 1000
            logger.debug(f"Loaded {dictionary!r} in {elapsed:.1f}ms")
            self._dictionary = dictionary
            return dictionary


# ============================================================================
# Module-level Registry
# ============================================================================

_HANDLES: Dict[Path, DictionaryHandle] = {}
_HANDLES_LOCK = threading.Lock()


def get_dictionary_path(family: str = "ipadic") -> Path:
    """Get the default artifact path of a family."""
    return Path(__file__).parent / "data" / f"{family}.dic"


def get_handle(path: Optional[Union[str, Path]] = None,
               fallback: Optional[Source] = None) -> DictionaryHandle:
    """Get (or create) the shared handle of an artifact path."""
    if path is None:
        path = get_dictionary_path()
    key = Path(path).resolve()
    with _HANDLES_LOCK:
        handle = _HANDLES.get(key)
        if handle is None:
            handle = DictionaryHandle(key, fallback)
            _HANDLES[key] = handle
        return handle


def get_dictionary(path: Optional[Union[str, Path]] = None,
                   fallback: Optional[Source] = None) -> CompiledDictionary:
    """
    Get the shared dictionary of an artifact path, loading it if needed.

    Raises:
        LoadError: If the artifact cannot be loaded
    """
    return get_handle(path, fallback).get()


def is_dictionary_loaded(path: Optional[Union[str, Path]] = None) -> bool:
    """Check if the dictionary at path has been loaded."""
    if path is None:
        path = get_dictionary_path()
    with _HANDLES_LOCK:
        handle = _HANDLES.get(Path(path).resolve())
    return handle is not None and handle.is_loaded


def lookup(surface: str, path: Optional[Union[str, Path]] = None) -> List[LexicalEntry]:
    """Look up a surface form in the shared dictionary."""
    return get_dictionary(path).lookup(surface)


def unload_dictionary():
    """Forget every shared handle so the next call loads afresh."""
    with _HANDLES_LOCK:
        _HANDLES.clear()
