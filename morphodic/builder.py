"""
Dictionary builder for morphodic.

Turns the source files of one dictionary family (lexicon CSVs, matrix.def,
char.def, unk.def) into a compiled artifact. The same pipeline serves every
family; a FamilyConfig supplies the encoding and field layout.

Usage:
    from morphodic.builder import build_dictionary
    from morphodic.families import get_family

    build_dictionary("mecab-ipadic-2.7.0", "ipadic.dic", get_family("ipadic"))
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Union

from morphodic.artifact import serialize, write_artifact
from morphodic.chardef import parse_char_definition
from morphodic.compress import Algorithm, compress
from morphodic.dictionary import CompiledDictionary
from morphodic.encoding import decode_source
from morphodic.errors import SourceFileError
from morphodic.families import FamilyConfig
from morphodic.index import build_index
from morphodic.lexicon import parse_lexicons
from morphodic.matrix import parse_matrix
from morphodic.unknown import parse_unknown_definition

logger = logging.getLogger(__name__)


# ============================================================================
# Inputs & Options
# ============================================================================

@dataclass
class SourceFiles:
    """
    Raw bytes of every source file of one family.

    Attributes:
        lexicons: Lexicon file name -> bytes
        matrix: matrix.def bytes
        char_def: char.def bytes
        unk_def: unk.def bytes
    """
    lexicons: Dict[str, bytes]
    matrix: bytes
    char_def: bytes
    unk_def: bytes

    @classmethod
    def from_directory(cls, path: Union[str, Path], family: FamilyConfig) -> "SourceFiles":
        """
        Read an extracted source directory.

        Raises:
            FileNotFoundError: If a required file is missing
        """
        path = Path(path)
        lexicons = {
            lexicon.name: lexicon.read_bytes()
            for lexicon in sorted(path.glob(family.lexicon_glob))
            if lexicon.is_file()
        }
        return cls(
            lexicons=lexicons,
            matrix=(path / family.matrix_file).read_bytes(),
            char_def=(path / family.char_def_file).read_bytes(),
            unk_def=(path / family.unk_def_file).read_bytes(),
        )


@dataclass
class BuildOptions:
    """
    Output settings.

    Attributes:
        compress: Emit a compressed artifact
        algorithm: Compression algorithm; the family default if None
    """
    compress: bool = False
    algorithm: Optional[Algorithm] = None


# ============================================================================
# Dictionary Building
# ============================================================================

@dataclass
class DictionaryBuilder:
    """Build pipeline for one dictionary family."""
    family: FamilyConfig
    options: BuildOptions = field(default_factory=BuildOptions)

    def decode(self, data: bytes, name: str) -> str:
        return decode_source(data, self.family.encoding, name)

    def build(self, sources: SourceFiles) -> CompiledDictionary:
        """
        Parse and cross-check every table.

        Raises:
            EncodingError, MalformedEntryError, CostMatrixError,
            MissingFallbackError: On invalid source data
        """
        family = self.family
        logger.info(f"Building {family.name} dictionary ({family.encoding})")

        logger.info("Parsing character definitions...")
        char_table = parse_char_definition(
            self.decode(sources.char_def, family.char_def_file), family.char_def_file
        )

        logger.info("Parsing unknown-word definitions...")
        unknown = parse_unknown_definition(
            self.decode(sources.unk_def, family.unk_def_file),
            char_table,
            family.unk_fields_num,
            family.unk_def_file,
        )

        logger.info("Parsing lexicon...")
        texts = {name: self.decode(data, name) for name, data in sources.lexicons.items()}
        entries = tuple(parse_lexicons(texts, family.layout, family.normalize_details))
        logger.info(f"  -> Loaded {len(entries):,} entries")

        logger.info("Parsing connection costs...")
        matrix = parse_matrix(self.decode(sources.matrix, family.matrix_file), family.matrix_file)
        matrix.check_entries(entries, family.matrix_file)
        matrix.check_entries(unknown.entries, family.matrix_file)

        logger.info("Building surface index...")
        index = build_index(entries)
        logger.info(f"  Unique surface forms: {len(index):,}")

        return CompiledDictionary(
            family=family.name,
            index=index,
            entries=entries,
            matrix=matrix,
            char_table=char_table,
            unknown=unknown,
        )

    def encode(self, dictionary: CompiledDictionary) -> bytes:
        """Serialize, and compress if the options ask for it."""
        data = serialize(dictionary)
        if self.options.compress:
            algorithm = self.options.algorithm or self.family.compress_algorithm
            raw_size = len(data)
            data = compress(data, algorithm)
            logger.info(
                f"  Compressed with {algorithm.name.lower()}: "
                f"{raw_size:,} -> {len(data):,} bytes"
            )
        return data

    def build_to_file(self, sources: SourceFiles, output_path: Union[str, Path]) -> CompiledDictionary:
        """
        Build and write an artifact. Nothing is written if any step fails.

        Raises:
            BuildError: On invalid source data or a write failure
        """
        dictionary = self.build(sources)
        write_artifact(self.encode(dictionary), Path(output_path))
        return dictionary


def build_dictionary(
    input_dir: Union[str, Path],
    output_path: Union[str, Path],
    family: FamilyConfig,
    options: Optional[BuildOptions] = None,
) -> CompiledDictionary:
    """
    Build a dictionary from an extracted source directory.

    Args:
        input_dir: Directory holding the family's source files
        output_path: Artifact destination
        family: Family configuration
        options: Output settings

    Returns:
        The compiled dictionary

    Raises:
        BuildError: On invalid source data or a write failure
    """
    start_time = time.time()
    try:
        sources = SourceFiles.from_directory(input_dir, family)
    except OSError as e:
        raise SourceFileError(f"cannot read sources from {input_dir}: {e}") from e

    builder = DictionaryBuilder(family, options or BuildOptions())
    dictionary = builder.build_to_file(sources, output_path)

    elapsed = time.time() - start_time
    logger.info(f"Build completed in {elapsed:.1f} seconds")
    return dictionary
