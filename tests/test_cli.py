"""Tests for the morphodic command line."""
import json

import pytest

from morphodic import __version__
from morphodic.cli import main


@pytest.fixture
def built(ipadic_dir, temp_dir):
    output = temp_dir / "ipadic.dic"
    assert main(["build", "-t", "ipadic", str(ipadic_dir), str(output)]) == 0
    return output


def test_list(capsys):
    assert main(["list"]) == 0
    out = capsys.readouterr().out
    for name in ("ipadic", "ipadic-neologd", "unidic", "ko-dic", "cc-cedict"):
        assert name in out


def test_version(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--version"])
    assert excinfo.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_build(built):
    assert built.exists()


def test_build_compressed(ipadic_dir, temp_dir):
    output = temp_dir / "ipadic.dic"
    args = ["build", "-t", "ipadic", "--compress", "-a", "zlib", str(ipadic_dir), str(output)]
    assert main(args) == 0
    assert output.read_bytes()[:4] == b"MDCZ"


def test_info(built, capsys):
    assert main(["info", str(built)]) == 0
    out = capsys.readouterr().out
    assert "ipadic" in out
    assert "3 x 3" in out


def test_lookup(built, capsys):
    assert main(["lookup", str(built), "もも"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        "もも\t名詞,一般,*,*,*,*,もも,モモ,モモ",
        "もも\t名詞,固有名詞,人名,名,*,*,もも,モモ,モモ",
        "EOS",
    ]


def test_lookup_prefix_json(built, capsys):
    assert main(["lookup", "--prefix", "--json", str(built), "すもももも"]) == 0
    matches = json.loads(capsys.readouterr().out)
    assert [(m["id"], m["surface"]) for m in matches] == [(0, "すもも"), (3, "す")]
    assert matches[0]["reading"] == "スモモ"


def test_build_user_dictionary(temp_dir):
    source = temp_dir / "userdic.csv"
    source.write_text("東京スカイツリー,カスタム名詞,トウキョウスカイツリー\n", encoding="utf-8")
    output = temp_dir / "userdic.dic"
    assert main(["build", "-t", "ipadic", "--user", str(source), str(output)]) == 0
    assert output.exists()


def test_error_exit_status(temp_dir, capsys):
    assert main(["info", str(temp_dir / "missing.dic")]) == 1
    assert capsys.readouterr().err.startswith("Error: ")


def test_build_error_exit_status(ipadic_dir, temp_dir, capsys):
    (ipadic_dir / "matrix.def").write_bytes(b"1 1\n")
    assert main(["build", "-t", "ipadic", str(ipadic_dir), str(temp_dir / "x.dic")]) == 1
    assert "Error:" in capsys.readouterr().err


def test_unknown_family():
    with pytest.raises(SystemExit):
        main(["build", "-t", "nope", "src", "dest"])
