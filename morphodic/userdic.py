"""
User dictionaries.

A user dictionary CSV mixes two row shapes:

    simple:    surface,pos,reading
    detailed:  a full lexicon row of the family; IPADIC-style families
               ignore extra trailing columns

Simple rows get the family's fixed cost and context id, and their details
are filled in from the family template. User dictionaries are UTF-8.
"""

import logging
from pathlib import Path
from typing import List, Union

from morphodic.artifact import serialize, write_artifact
from morphodic.dictionary import UserDictionary
from morphodic.encoding import decode_source
from morphodic.errors import MalformedEntryError, SourceFileError
from morphodic.families import FamilyConfig
from morphodic.index import build_index
from morphodic.lexicon import LexicalEntry, check_surface, iter_rows, row_to_entry

logger = logging.getLogger(__name__)

USERDIC_ENCODING = "UTF-8"


def parse_user_entries(text: str, family: FamilyConfig, source_name: str) -> List[LexicalEntry]:
    """
    Parse user dictionary rows.

    Raises:
        MalformedEntryError: On a row of neither shape, or an empty file
    """
    entries: List[LexicalEntry] = []
    for line_number, row in iter_rows(text, source_name):
        if len(row) == family.simple_userdic_fields_num:
            surface, pos, reading = row
            check_surface(surface, source_name, line_number)
            entries.append(LexicalEntry(
                surface=surface,
                left_id=family.simple_context_id,
                right_id=family.simple_context_id,
                cost=family.simple_word_cost,
                details=family.simple_details_for(surface, pos, reading),
                reading=reading,
            ))
        elif len(row) == family.detailed_userdic_fields_num or (
            family.userdic_flexible and len(row) > family.detailed_userdic_fields_num
        ):
            row = row[:family.detailed_userdic_fields_num]
            entries.append(row_to_entry(row, family.layout, source_name, line_number))
        else:
            at_least = " or more" if family.userdic_flexible else ""
            raise MalformedEntryError(
                source_name, line_number,
                f"expected {family.simple_userdic_fields_num} or "
                f"{family.detailed_userdic_fields_num}{at_least} fields, got {len(row)}",
            )

    if not entries:
        raise MalformedEntryError(source_name, 0, "user dictionary is empty")
    return entries


def build_user_dictionary(text: str, family: FamilyConfig,
                          source_name: str = "userdic.csv") -> UserDictionary:
    """Parse user dictionary text and index it."""
    entries = tuple(parse_user_entries(text, family, source_name))
    index = build_index(entries)
    logger.info(
        f"  {source_name}: {len(entries):,} user entries, {len(index):,} surfaces"
    )
    return UserDictionary(family=family.name, index=index, entries=entries)


def build_user_dictionary_file(
    input_file: Union[str, Path],
    output_file: Union[str, Path],
    family: FamilyConfig,
) -> UserDictionary:
    """
    Build a user dictionary artifact from a CSV file.

    Raises:
        BuildError: On unreadable or invalid input, or a write failure
    """
    input_file = Path(input_file)
    try:
        data = input_file.read_bytes()
    except OSError as e:
        raise SourceFileError(f"cannot read {input_file}: {e}") from e

    text = decode_source(data, USERDIC_ENCODING, input_file.name)
    user = build_user_dictionary(text, family, input_file.name)
    write_artifact(serialize(user), Path(output_file))
    return user
