"""
CLI interface for morphodic.

Usage:
    morphodic list
    morphodic build -t ipadic mecab-ipadic-2.7.0 ipadic.dic --compress
    morphodic build -t ipadic --user userdic.csv userdic.dic
    morphodic info ipadic.dic
    morphodic lookup ipadic.dic "すもももももも"
    morphodic lookup --json --prefix ipadic.dic "すもも"
"""

import argparse
import json
import logging
import sys
from typing import List, Optional, Tuple

from morphodic import __version__
from morphodic.builder import BuildOptions, build_dictionary
from morphodic.compress import Algorithm
from morphodic.dictionary import CompiledDictionary
from morphodic.errors import DictionaryError
from morphodic.families import FAMILIES, get_family
from morphodic.lexicon import LexicalEntry
from morphodic.loader import load_dictionary_file
from morphodic.userdic import build_user_dictionary_file


# ============================================================================
# Output Formatting
# ============================================================================

def entry_to_dict(entry_id: int, entry: LexicalEntry) -> dict:
    return {
        "id": entry_id,
        "surface": entry.surface,
        "left_id": entry.left_id,
        "right_id": entry.right_id,
        "cost": entry.cost,
        "details": list(entry.details),
        "reading": entry.reading,
        "pronunciation": entry.pronunciation,
    }


def format_default(matches: List[Tuple[int, LexicalEntry]]) -> str:
    """MeCab-like output: surface, tab, comma-joined details."""
    lines = []
    for _, entry in matches:
        lines.append(f"{entry.surface}\t{','.join(entry.details)}")
    lines.append("EOS")
    return "\n".join(lines)


def format_json(matches: List[Tuple[int, LexicalEntry]]) -> str:
    return json.dumps(
        [entry_to_dict(entry_id, entry) for entry_id, entry in matches],
        ensure_ascii=False,
        indent=2,
    )


def format_info(dictionary: CompiledDictionary) -> str:
    matrix = dictionary.matrix
    lines = [
        f"Family:          {dictionary.family}",
        f"Entries:         {len(dictionary.entries):,}",
        f"Surface forms:   {len(dictionary.index):,}",
        f"Cost matrix:     {matrix.forward_size} x {matrix.backward_size}",
        f"Char categories: {', '.join(dictionary.char_table.category_names)}",
        f"Unknown entries: {len(dictionary.unknown.entries)}",
    ]
    return "\n".join(lines)


# ============================================================================
# Commands
# ============================================================================

def cmd_list(args) -> int:
    for family in FAMILIES.values():
        print(f"{family.name:<16}{family.description}")
    return 0


def cmd_build(args) -> int:
    family = get_family(args.dic_type)
    if args.user:
        build_user_dictionary_file(args.src_path, args.dest_path, family)
        return 0

    options = BuildOptions(
        compress=args.compress,
        algorithm=Algorithm.from_name(args.algorithm) if args.algorithm else None,
    )
    build_dictionary(args.src_path, args.dest_path, family, options)
    return 0


def cmd_info(args) -> int:
    print(format_info(load_dictionary_file(args.dictionary)))
    return 0


def cmd_lookup(args) -> int:
    dictionary = load_dictionary_file(args.dictionary)
    if args.prefix:
        matches = dictionary.common_prefix_search(args.text)
    else:
        matches = [
            (entry_id, dictionary.entry(entry_id))
            for entry_id in dictionary.index.get(args.text)
        ]

    if args.json:
        print(format_json(matches))
    else:
        print(format_default(matches))
    return 0


# ============================================================================
# Main
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="morphodic",
        description="Morphological dictionary compiler",
    )
    parser.add_argument(
        "--verbose", "-V",
        action="store_true",
        help="Log debug output",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"morphodic {__version__}",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List supported dictionary families")
    list_parser.set_defaults(func=cmd_list)

    build_cmd = subparsers.add_parser("build", help="Build a dictionary artifact")
    build_cmd.add_argument(
        "--dic-type", "-t",
        required=True,
        choices=list(FAMILIES),
        help="Dictionary family",
    )
    build_cmd.add_argument(
        "--user", "-u",
        action="store_true",
        help="Build a user dictionary from a CSV file",
    )
    build_cmd.add_argument(
        "--compress",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Compress the artifact (default: no)",
    )
    build_cmd.add_argument(
        "--algorithm", "-a",
        choices=[algorithm.name.lower() for algorithm in Algorithm],
        help="Compression algorithm (default: family setting)",
    )
    build_cmd.add_argument("src_path", help="Source directory (or CSV with --user)")
    build_cmd.add_argument("dest_path", help="Artifact destination")
    build_cmd.set_defaults(func=cmd_build)

    info_parser = subparsers.add_parser("info", help="Describe a dictionary artifact")
    info_parser.add_argument("dictionary", help="Artifact path")
    info_parser.set_defaults(func=cmd_info)

    lookup_parser = subparsers.add_parser("lookup", help="Look up a surface form")
    lookup_parser.add_argument(
        "--prefix", "-p",
        action="store_true",
        help="List every entry whose surface is a prefix of TEXT",
    )
    lookup_parser.add_argument(
        "--json", "-j",
        action="store_true",
        help="Output as JSON",
    )
    lookup_parser.add_argument("dictionary", help="Artifact path")
    lookup_parser.add_argument("text", help="Surface form or text")
    lookup_parser.set_defaults(func=cmd_lookup)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
    )

    try:
        return args.func(args)
    except DictionaryError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
