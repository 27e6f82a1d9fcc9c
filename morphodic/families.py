"""
Per-family build configuration.

Every supported lexicon family goes through the same pipeline; what differs
is the source encoding, the CSV layout, the unk.def width and the user
dictionary conventions. Those live here.
"""

from dataclasses import dataclass
from typing import Dict, List, Tuple

from morphodic.compress import Algorithm
from morphodic.errors import UnknownFamilyError
from morphodic.lexicon import FieldLayout

# Simple user dictionary rows are "surface,pos,reading"
SIMPLE_USERDIC_FIELDS_NUM = 3
SIMPLE_WORD_COST = -10000
SIMPLE_CONTEXT_ID = 0


@dataclass(frozen=True)
class FamilyConfig:
    """
    Build settings of one dictionary family.

    Attributes:
        name: Family name used on the command line and in artifacts
        description: One-line description
        encoding: Encoding of every source file
        layout: Lexicon CSV layout
        unk_fields_num: Exact number of fields of an unk.def row
        normalize_details: Apply IPADIC dash/tilde normalization to lexicon rows
        lexicon_glob: Glob matching lexicon files in a source directory
        matrix_file: Connection cost file name
        char_def_file: Character class file name
        unk_def_file: Unknown-word file name
        compress_algorithm: Algorithm used when compression is requested
        simple_details: Detail template for simple user dictionary rows;
            "{surface}", "{pos}" and "{reading}" are substituted
        userdic_flexible: Accept detailed user dictionary rows with extra
            trailing columns, which are ignored
    """
    name: str
    description: str
    encoding: str
    layout: FieldLayout
    unk_fields_num: int
    normalize_details: bool = False
    lexicon_glob: str = "*.csv"
    matrix_file: str = "matrix.def"
    char_def_file: str = "char.def"
    unk_def_file: str = "unk.def"
    compress_algorithm: Algorithm = Algorithm.DEFLATE
    simple_userdic_fields_num: int = SIMPLE_USERDIC_FIELDS_NUM
    simple_word_cost: int = SIMPLE_WORD_COST
    simple_context_id: int = SIMPLE_CONTEXT_ID
    simple_details: Tuple[str, ...] = ()
    userdic_flexible: bool = False

    @property
    def detailed_userdic_fields_num(self) -> int:
        return self.layout.fields_num

    def simple_details_for(self, surface: str, pos: str, reading: str) -> Tuple[str, ...]:
        """Expand the simple user dictionary template for one row."""
        values = {"surface": surface, "pos": pos, "reading": reading}
        return tuple(template.format(**values) for template in self.simple_details)


# ============================================================================
# Registered Families
# ============================================================================

IPADIC_SIMPLE_DETAILS = (
    "{pos}",      # POS
    "*",          # POS subcategory 1
    "*",          # POS subcategory 2
    "*",          # POS subcategory 3
    "*",          # Conjugation type
    "*",          # Conjugation form
    "{surface}",  # Base form
    "{reading}",  # Reading
    "*",          # Pronunciation
)

IPADIC = FamilyConfig(
    name="ipadic",
    description="A Japanese morphological dictionary for IPADIC.",
    encoding="EUC-JP",
    layout=FieldLayout(fields_num=13, reading=11, pronunciation=12),
    unk_fields_num=11,
    normalize_details=True,
    simple_details=IPADIC_SIMPLE_DETAILS,
    userdic_flexible=True,
)

IPADIC_NEOLOGD = FamilyConfig(
    name="ipadic-neologd",
    description="A Japanese morphological dictionary for IPADIC NEologd.",
    encoding="UTF-8",
    layout=FieldLayout(fields_num=13, reading=11, pronunciation=12),
    unk_fields_num=11,
    normalize_details=True,
    simple_details=IPADIC_SIMPLE_DETAILS,
    userdic_flexible=True,
)

UNIDIC = FamilyConfig(
    name="unidic",
    description="A Japanese morphological dictionary for UniDic.",
    encoding="UTF-8",
    layout=FieldLayout(fields_num=21, reading=10, pronunciation=13),
    unk_fields_num=10,
    simple_details=(
        "{pos}",      # Part-of-speech
        "*",          # Part-of-speech subcategory 1
        "*",          # Part-of-speech subcategory 2
        "*",          # Part-of-speech subcategory 3
        "*",          # Conjugation type
        "*",          # Conjugation form
        "{reading}",  # Reading
        "*",          # Lexeme
        "*",          # Orthographic surface form
        "*",          # Phonological surface form
        "*",          # Orthographic base form
        "*",          # Phonological base form
        "*",          # Word type
        "*",          # Initial mutation type
        "*",          # Initial mutation form
        "*",          # Final mutation type
        "*",          # Final mutation form
    ),
)

KO_DIC = FamilyConfig(
    name="ko-dic",
    description="A Korean morphological dictionary for ko-dic.",
    encoding="UTF-8",
    layout=FieldLayout(fields_num=12, reading=7),
    unk_fields_num=12,
    simple_details=(
        "{pos}",      # Part-of-speech tag
        "*",          # Meaning
        "*",          # Presence or absence of final consonant
        "{reading}",  # Reading
        "*",          # Type
        "*",          # First part-of-speech
        "*",          # Last part-of-speech
        "*",          # Expression
    ),
)

CC_CEDICT = FamilyConfig(
    name="cc-cedict",
    description="A Chinese morphological dictionary for CC-CEDICT.",
    encoding="UTF-8",
    layout=FieldLayout(fields_num=12, reading=8, flexible=True),
    unk_fields_num=10,
    simple_details=(
        "{pos}",      # POS
        "*",          # POS subcategory 1
        "*",          # POS subcategory 2
        "*",          # POS subcategory 3
        "{reading}",  # Pinyin
        "*",          # Traditional
        "*",          # Simplified
        "*",          # Definition
    ),
)

FAMILIES: Dict[str, FamilyConfig] = {
    family.name: family
    for family in (IPADIC, IPADIC_NEOLOGD, UNIDIC, KO_DIC, CC_CEDICT)
}


def get_family(name: str) -> FamilyConfig:
    """
    Look up a registered family.

    Raises:
        UnknownFamilyError: If no family has that name
    """
    try:
        return FAMILIES[name]
    except KeyError:
        raise UnknownFamilyError(
            f"unknown dictionary family {name!r} (choose from {', '.join(FAMILIES)})"
        )


def list_families() -> List[str]:
    return list(FAMILIES)
