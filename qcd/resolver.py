"""
Entry resolution for qcd.

A user token names a bookmark either by idx or by alias. ``classify`` turns
the token into an ``Idx`` or ``Alias`` variant, ``resolve`` turns a variant
into exactly one bookmark row.

Alias matching is fuzzy: a token matches every alias it is a prefix of.
An alias equal to the token always wins, otherwise the match has to be
unique. With aliases 'pets' and 'people', 'peo' finds 'people' while 'pe'
is ambiguous.
"""
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

from qcd.constants import MAIN_TABLE_NAME, MAX_IDX, MIN_IDX
from qcd.errors import Ambiguous, InvalidIdx, NotFound

if TYPE_CHECKING:
    from qcd.db import Database

logger = logging.getLogger(__name__)

_IDX_PATTERN = re.compile(r"\+?[0-9]+")


@dataclass(frozen=True)
class Idx:
    """Token referring to a bookmark by idx."""
    value: int

    column = "idx"


@dataclass(frozen=True)
class Alias:
    """Token referring to a bookmark by (a prefix of) its alias."""
    value: str

    column = "alias"


IdxAlias = Union[Idx, Alias]


def parse_idx(text: str) -> int:
    """
    Parse an unsigned 32-bit idx.

    Args:
        text: Decimal digits, optionally preceded by '+'

    Returns:
        The idx value

    Raises:
        InvalidIdx: If text is not a valid idx
    """
    if not _IDX_PATTERN.fullmatch(text):
        raise InvalidIdx(f"Not an idx value: {text}")
    value = int(text)
    if not MIN_IDX <= value <= MAX_IDX:
        raise InvalidIdx(f"Idx out of range: {text}", idx=value)
    return value


def classify(token: str) -> IdxAlias:
    """Create an Idx if token parses as an unsigned 32-bit integer, otherwise an Alias."""
    try:
        return Idx(parse_idx(token))
    except InvalidIdx:
        return Alias(token)


def resolve(db: "Database", entry: Union[str, IdxAlias], table: str = MAIN_TABLE_NAME):
    """
    Find the single bookmark row referred to by entry.

    Args:
        db: Database to search
        entry: Raw token or an already classified Idx/Alias
        table: Bookmark table name

    Returns:
        The matching bookmark row

    Raises:
        NotFound: If no row matches
        Ambiguous: If an alias prefix matches several rows and none exactly
    """
    if isinstance(entry, str):
        entry = classify(entry)

    if isinstance(entry, Idx):
        return db.find_exact(table, "idx", entry.value)
    return _resolve_alias(db, table, entry.value)


def _resolve_alias(db: "Database", table: str, alias: str):
    """Apply the fuzzy alias policy to all rows whose alias starts with alias."""
    if not alias:
        raise NotFound("Alias not found in table", table=table, alias=alias)

    matches = db.alias_prefix_matches(table, alias)
    for row in matches:
        if row.alias == alias:
            return row

    if len(matches) == 1:
        return matches[0]
    if not matches:
        raise NotFound("Alias not found in table", table=table, alias=alias)

    candidates = [row.alias for row in matches]
    logger.debug("Alias '%s' matches %s", alias, candidates)
    raise Ambiguous(
        "Ambiguous alias specification",
        table=table, alias=alias, candidates=candidates
    )
