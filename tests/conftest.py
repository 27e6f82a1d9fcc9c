"""Pytest configuration and shared fixtures."""
import tempfile
from pathlib import Path

import pytest

from morphodic.builder import DictionaryBuilder, SourceFiles
from morphodic.families import IPADIC, FamilyConfig
from morphodic.lexicon import FieldLayout
from morphodic.loader import unload_dictionary


# Tiny IPADIC-style sources: 13-field lexicon rows, 3x3 matrix, 11-field unk.def

NOUN_CSV = """\
すもも,1,1,7546,名詞,一般,*,*,*,*,すもも,スモモ,スモモ
もも,1,1,7219,名詞,一般,*,*,*,*,もも,モモ,モモ
もも,2,2,8000,名詞,固有名詞,人名,名,*,*,もも,モモ,モモ
す,1,1,9000,名詞,一般,*,*,*,*,す,ス,ス
"""

PARTICLE_CSV = """\
も,2,2,4669,助詞,係助詞,*,*,*,*,も,モ,モ
の,2,2,4816,助詞,連体化,*,*,*,*,の,ノ,ノ
"""

CHAR_DEF = """\
# 文字種の定義
DEFAULT 0 1 0
SPACE 0 1 0
HIRAGANA 0 1 2
KANJI 0 0 2
ALPHA 1 1 0

0x0020 SPACE
0x0041..0x005A ALPHA
0x0061..0x007A ALPHA
0x3041..0x309F HIRAGANA
0x4E00..0x9FFF KANJI  # CJK Unified Ideographs
"""

UNK_DEF = """\
DEFAULT,1,1,4769,記号,一般,*,*,*,*,*
SPACE,2,2,200,記号,空白,*,*,*,*,*
HIRAGANA,1,1,3000,名詞,一般,*,*,*,*,*
KANJI,1,1,2500,名詞,一般,*,*,*,*,*
ALPHA,1,1,1000,名詞,固有名詞,組織,*,*,*,*
ALPHA,1,1,1500,名詞,一般,*,*,*,*,*
"""

# Every cell is (forward - backward) * 100, except (2, 1) which is left out
MATRIX_DEF = "3 3\n" + "".join(
    f"{forward} {backward} {(forward - backward) * 100}\n"
    for forward in range(3)
    for backward in range(3)
    if (forward, backward) != (2, 1)
)

SUMOMO_FAMILY = FamilyConfig(
    name="sumomo",
    description="Single-row test family",
    encoding="UTF-8",
    layout=FieldLayout(fields_num=7, surface=0, left_id=5, right_id=5, cost=6, details=(1, 5)),
    unk_fields_num=4,
)


def write_sources(path: Path, files: dict, encoding: str) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    for name, text in files.items():
        (path / name).write_bytes(text.encode(encoding))
    return path


@pytest.fixture(autouse=True)
def fresh_registry():
    """Drop shared dictionary handles between tests."""
    unload_dictionary()
    yield
    unload_dictionary()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def ipadic_files():
    """Source file name -> text of the tiny IPADIC tree."""
    return {
        "Noun.csv": NOUN_CSV,
        "Particle.csv": PARTICLE_CSV,
        "char.def": CHAR_DEF,
        "unk.def": UNK_DEF,
        "matrix.def": MATRIX_DEF,
    }


@pytest.fixture
def ipadic_dir(temp_dir, ipadic_files):
    """The tiny IPADIC tree written to disk in EUC-JP."""
    return write_sources(temp_dir / "mecab-ipadic", ipadic_files, "euc_jp")


@pytest.fixture
def ipadic_dictionary(ipadic_dir):
    """CompiledDictionary built from the tiny IPADIC tree."""
    sources = SourceFiles.from_directory(ipadic_dir, IPADIC)
    return DictionaryBuilder(IPADIC).build(sources)


@pytest.fixture
def sumomo_family():
    return SUMOMO_FAMILY


@pytest.fixture
def sumomo_dir(temp_dir):
    """One-row lexicon with a 1x1 matrix."""
    return write_sources(temp_dir / "sumomo", {
        "lex.csv": "すもも,名詞,普通名詞,*,*,0,-200\n",
        "matrix.def": "1 1\n0 0 -50\n",
        "char.def": "DEFAULT 0 1 0\n",
        "unk.def": "DEFAULT,0,0,0\n",
    }, "utf-8")
