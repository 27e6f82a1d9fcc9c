"""Tests for user dictionaries."""
import pytest

from morphodic.artifact import serialize
from morphodic.errors import (
    DictionaryFormatError,
    InvariantViolationError,
    MalformedEntryError,
    SourceFileError,
)
from morphodic.families import CC_CEDICT, IPADIC, KO_DIC, UNIDIC
from morphodic.loader import load_user_dictionary
from morphodic.userdic import build_user_dictionary, build_user_dictionary_file, parse_user_entries

SIMPLE_ROW = "東京スカイツリー,カスタム名詞,トウキョウスカイツリー\n"


class TestParseUserEntries:
    def test_simple_row(self):
        (entry,) = parse_user_entries(SIMPLE_ROW, IPADIC, "userdic.csv")
        assert entry.surface == "東京スカイツリー"
        assert (entry.left_id, entry.right_id, entry.cost) == (0, 0, -10000)
        assert entry.reading == "トウキョウスカイツリー"
        assert entry.details == (
            "カスタム名詞", "*", "*", "*", "*", "*",
            "東京スカイツリー", "トウキョウスカイツリー", "*",
        )

    def test_simple_row_korean_template(self):
        (entry,) = parse_user_entries("하나,NNG,하나\n", KO_DIC, "userdic.csv")
        assert entry.details == ("NNG", "*", "*", "하나", "*", "*", "*", "*")

    def test_detailed_row(self):
        row = "とうきょうスカイツリー駅,1,1,-1000,名詞,固有名詞,一般,*,*,*,とうきょうスカイツリー駅,トウキョウスカイツリーエキ,トウキョウスカイツリーエキ\n"
        (entry,) = parse_user_entries(row, IPADIC, "userdic.csv")
        assert (entry.left_id, entry.cost) == (1, -1000)
        assert entry.pronunciation == "トウキョウスカイツリーエキ"

    def test_mixed_rows_keep_order(self):
        text = SIMPLE_ROW + "すもも,1,1,100,名詞,一般,*,*,*,*,すもも,スモモ,スモモ\n"
        entries = parse_user_entries(text, IPADIC, "userdic.csv")
        assert [entry.surface for entry in entries] == ["東京スカイツリー", "すもも"]

    def test_wrong_field_count(self):
        text = SIMPLE_ROW + "すもも,名詞\n"
        with pytest.raises(MalformedEntryError) as excinfo:
            parse_user_entries(text, IPADIC, "userdic.csv")
        assert excinfo.value.line == 2

    def test_empty_surface(self):
        with pytest.raises(MalformedEntryError):
            parse_user_entries(",名詞,ヨミ\n", IPADIC, "userdic.csv")

    def test_nul_in_simple_surface(self):
        with pytest.raises(MalformedEntryError) as excinfo:
            parse_user_entries("す\x00も,名詞,スモモ\n", IPADIC, "userdic.csv")
        assert "NUL" in excinfo.value.reason

    def test_extra_columns_on_ipadic_detailed_row(self):
        row = "すもも,1,1,100,名詞,一般,*,*,*,*,すもも,スモモ,スモモ,memo,2024\n"
        (entry,) = parse_user_entries(row, IPADIC, "userdic.csv")
        assert entry.pronunciation == "スモモ"
        assert len(entry.details) == 9

    def test_extra_columns_rejected_for_strict_family(self):
        row = "사과,1,1,100,NNG,*,F,사과,*,*,*,*,extra\n"
        with pytest.raises(MalformedEntryError):
            parse_user_entries(row, KO_DIC, "userdic.csv")

    def test_cc_cedict_userdic_is_strict(self):
        """Its lexicon rows may vary in width; its user dictionary rows may not."""
        row = "苹果,1,1,100,名词,*,*,*,苹果,ping2 guo3,蘋果,苹果,apple\n"
        with pytest.raises(MalformedEntryError):
            parse_user_entries(row, CC_CEDICT, "userdic.csv")

    def test_short_ipadic_row_still_rejected(self):
        with pytest.raises(MalformedEntryError):
            parse_user_entries("すもも,1,1,100,名詞\n", IPADIC, "userdic.csv")

    def test_empty_file(self):
        with pytest.raises(MalformedEntryError):
            parse_user_entries("", IPADIC, "userdic.csv")


class TestUserDictionaryFiles:
    def test_build_and_load(self, temp_dir, ipadic_dictionary):
        source = temp_dir / "userdic.csv"
        source.write_text(SIMPLE_ROW, encoding="utf-8")
        output = temp_dir / "userdic.dic"

        built = build_user_dictionary_file(source, output, IPADIC)
        user = load_user_dictionary(output, system=ipadic_dictionary)
        assert user == built
        assert user.family == "ipadic"
        assert user.lookup("東京スカイツリー")[0].cost == -10000

    def test_family_mismatch(self, ipadic_dictionary):
        user = build_user_dictionary(SIMPLE_ROW, UNIDIC)
        with pytest.raises(InvariantViolationError):
            load_user_dictionary(serialize(user), system=ipadic_dictionary)

    def test_context_outside_system_matrix(self, ipadic_dictionary):
        row = "すもも,7,7,100,名詞,一般,*,*,*,*,すもも,スモモ,スモモ\n"
        user = build_user_dictionary(row, IPADIC)
        with pytest.raises(InvariantViolationError):
            load_user_dictionary(serialize(user), system=ipadic_dictionary)

    def test_system_artifact_is_rejected(self, ipadic_dictionary):
        with pytest.raises(DictionaryFormatError):
            load_user_dictionary(serialize(ipadic_dictionary))

    def test_missing_source(self, temp_dir):
        with pytest.raises(SourceFileError):
            build_user_dictionary_file(temp_dir / "nope.csv", temp_dir / "out.dic", IPADIC)
