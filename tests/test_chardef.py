"""Tests for char.def and unk.def parsing."""
import pytest

from morphodic.chardef import (
    CharacterClassTable,
    flatten_ranges,
    parse_char_definition,
)
from morphodic.errors import MalformedEntryError, MissingFallbackError
from morphodic.unknown import UnknownDictionary, parse_unknown_definition


@pytest.fixture
def char_table(ipadic_files):
    return parse_char_definition(ipadic_files["char.def"])


class TestCharDefinition:
    def test_categories(self, char_table):
        assert char_table.category_names == ["DEFAULT", "SPACE", "HIRAGANA", "KANJI", "ALPHA"]
        kanji = char_table.categories[char_table.category_id("KANJI")]
        assert (kanji.invoke, kanji.group, kanji.length) == (False, False, 2)
        alpha = char_table.categories[char_table.category_id("ALPHA")]
        assert alpha.invoke and alpha.group

    def test_lookup(self, char_table):
        assert [c.name for c in char_table.lookup("す")] == ["HIRAGANA"]
        assert [c.name for c in char_table.lookup("桃")] == ["KANJI"]
        assert [c.name for c in char_table.lookup("a")] == ["ALPHA"]
        assert [c.name for c in char_table.lookup(" ")] == ["SPACE"]

    def test_every_code_point_has_a_category(self, char_table):
        """Uncovered code points fall back to DEFAULT."""
        for char in ("\x00", "!", "ア", "€", "\U0010FFFF"):
            assert [c.name for c in char_table.lookup(char)] == ["DEFAULT"]

    def test_unknown_category_name(self, char_table):
        with pytest.raises(KeyError):
            char_table.category_id("KATAKANA")

    def test_later_range_wins(self):
        text = (
            "DEFAULT 0 1 0\nKANJI 0 0 2\nKANJINUMERIC 1 1 0\n"
            "0x4E00..0x9FFF KANJI\n0x4E00 KANJINUMERIC\n"
        )
        table = parse_char_definition(text)
        assert [c.name for c in table.lookup("一")] == ["KANJINUMERIC"]
        assert [c.name for c in table.lookup("丁")] == ["KANJI"]

    def test_multiple_categories_primary_first(self):
        text = "DEFAULT 0 1 0\nHIRAGANA 0 1 2\nKATAKANA 1 1 2\n0x30FC HIRAGANA KATAKANA\n"
        table = parse_char_definition(text)
        assert [c.name for c in table.lookup("ー")] == ["HIRAGANA", "KATAKANA"]

    def test_round_trip(self, char_table):
        assert CharacterClassTable.from_bytes(char_table.to_bytes()) == char_table


class TestMalformedCharDefinition:
    def test_missing_default(self):
        with pytest.raises(MissingFallbackError):
            parse_char_definition("KANJI 0 0 2\n0x4E00 KANJI\n")

    @pytest.mark.parametrize("text,line", [
        ("DEFAULT 0 1 0\n0x4E00 KANJI\n", 2),
        ("DEFAULT 0 1 0\n0x9FFF..0x4E00 DEFAULT\n", 2),
        ("DEFAULT 0 1 0\n0x110000 DEFAULT\n", 2),
        ("DEFAULT 0 1 0\n0xZZZZ DEFAULT\n", 2),
        ("DEFAULT 0 1 0\n0x4E00\n", 2),
        ("DEFAULT 2 1 0\n", 1),
        ("DEFAULT 0 1\n", 1),
        ("DEFAULT 0 1 x\n", 1),
        ("DEFAULT 0 1 -1\n", 1),
        ("DEFAULT 0 1 0\nDEFAULT 0 1 0\n", 2),
    ])
    def test_error_names_line(self, text, line):
        with pytest.raises(MalformedEntryError) as excinfo:
            parse_char_definition(text)
        assert excinfo.value.line == line


def test_flatten_ranges_merges_and_fills_gaps():
    boundaries, categories = flatten_ranges([(10, 19, (1,)), (20, 29, (1,)), (40, 40, (2,))], 0)
    assert boundaries == (0, 10, 30, 40, 41)
    assert categories == ((0,), (1,), (0,), (2,), (0,))


class TestUnknownDefinition:
    def test_entries_keep_source_order(self, char_table, ipadic_files):
        unknown = parse_unknown_definition(ipadic_files["unk.def"], char_table, 11)
        alpha = unknown.lookup("ALPHA")
        assert [entry.cost for entry in alpha] == [1000, 1500]
        assert alpha[0].details == ("名詞", "固有名詞", "組織", "*", "*", "*", "*")
        assert unknown.by_category["ALPHA"] == (4, 5)

    def test_every_category_has_an_entry(self, char_table, ipadic_files):
        unknown = parse_unknown_definition(ipadic_files["unk.def"], char_table, 11)
        for name in char_table.category_names:
            assert unknown.lookup(name)

    def test_missing_category(self, char_table):
        text = "DEFAULT,1,1,4769,記号,一般,*,*,*,*,*\n"
        with pytest.raises(MissingFallbackError):
            parse_unknown_definition(text, char_table, 11)

    def test_undefined_category(self, char_table, ipadic_files):
        text = ipadic_files["unk.def"] + "KATAKANA,1,1,100,名詞,一般,*,*,*,*,*\n"
        with pytest.raises(MalformedEntryError) as excinfo:
            parse_unknown_definition(text, char_table, 11)
        assert excinfo.value.line == 7

    def test_wrong_field_count(self, char_table):
        with pytest.raises(MalformedEntryError) as excinfo:
            parse_unknown_definition("DEFAULT,1,1,4769,記号\n", char_table, 11)
        assert excinfo.value.line == 1

    def test_round_trip(self, char_table, ipadic_files):
        unknown = parse_unknown_definition(ipadic_files["unk.def"], char_table, 11)
        assert UnknownDictionary.from_bytes(unknown.to_bytes()) == unknown
