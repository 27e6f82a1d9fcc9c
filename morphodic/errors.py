"""
Exception hierarchy for morphodic.

Build-time errors abort the build of a dictionary family; no artifact is
written. Load-time errors are fatal for the artifact being loaded.
"""

from typing import Optional


class DictionaryError(Exception):
    """Base class for every error raised by morphodic."""


# =============================================================================
# Build-time errors
# =============================================================================

class BuildError(DictionaryError):
    """Raised while compiling source data into an artifact."""


class UnknownFamilyError(BuildError):
    """Raised when a dictionary family name is not registered."""


class SourceFileError(BuildError):
    """Raised when a source file cannot be read."""


class EncodingError(BuildError):
    """Raised when source bytes are invalid under the declared encoding."""

    def __init__(self, source: str, encoding: str, reason: str, offset: Optional[int] = None):
        self.source = source
        self.encoding = encoding
        self.offset = offset
        where = f" at byte {offset}" if offset is not None else ""
        super().__init__(f"{source}: cannot decode as {encoding}{where}: {reason}")


class MalformedEntryError(BuildError):
    """Raised for a source row with the wrong shape or non-numeric fields."""

    def __init__(self, source: str, line: int, reason: str):
        self.source = source
        self.line = line
        self.reason = reason
        super().__init__(f"{source}:{line}: {reason}")


class CostMatrixError(BuildError):
    """Raised for connection-cost dimension or bounds violations."""

    def __init__(self, source: str, reason: str, line: Optional[int] = None):
        self.source = source
        self.line = line
        location = f"{source}:{line}" if line is not None else source
        super().__init__(f"{location}: {reason}")


class MissingFallbackError(BuildError):
    """Raised when the unknown-word fallback tables are incomplete."""


class SerializationError(BuildError):
    """Raised when the artifact cannot be written."""


# =============================================================================
# Load-time errors
# =============================================================================

class LoadError(DictionaryError):
    """Raised while reading a compiled artifact."""


class CorruptArtifactError(LoadError):
    """Raised on decompression failure or broken section framing."""


class DictionaryFormatError(LoadError):
    """Raised on magic, version or byte-order mismatch."""


class InvariantViolationError(LoadError):
    """Raised when the decoded tables are inconsistent with each other."""
