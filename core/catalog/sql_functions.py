# Path: core/catalog/sql_functions.py
# Purpose: Provide the custom scalar SQL functions referenced by compiled tag queries.
# Layer: core/catalog.
# Details: Registered on every catalog connection through sqlite3.Connection.create_function.

from __future__ import annotations

import logging
import os
import re
import sqlite3
from functools import lru_cache
from typing import Callable, NamedTuple, Optional

from core.hashing import Hash

logger = logging.getLogger(__name__)


class SqlFunction(NamedTuple):
    name: str
    n_args: int
    func: Callable
    deterministic: bool = True


@lru_cache(maxsize=256)
def _compile_regex(pattern: str, flags: str) -> re.Pattern:
    return re.compile(pattern, 0 if "s" in flags else re.IGNORECASE)


def regex(text: Optional[str], pattern: Optional[str], flags: Optional[str]) -> int:
    """Return 1 if ``pattern`` matches anywhere in ``text``.

    ``flags`` contains ``s`` for a case-sensitive match, anything else is
    case-insensitive.
    """

    if text is None or pattern is None:
        return 0
    return int(_compile_regex(pattern, flags or "").search(text) is not None)


def rinstr(text: Optional[str], needle: Optional[str]) -> int:
    """Return the 1-based index of the last occurrence of ``needle``, 0 when absent."""

    if text is None or needle is None:
        return 0
    return text.rfind(needle) + 1


def file_exists(path: Optional[str]) -> int:
    if path is None:
        return 0
    return int(os.path.exists(path))


def similar_hashes(a: Optional[int], b: Optional[int]) -> int:
    if a is None or b is None:
        return 0
    return int(Hash.from_signed(a).similarity(Hash.from_signed(b)).is_similar)


def similarity_confidence(a: Optional[int], b: Optional[int]) -> float:
    if a is None or b is None:
        return 0.0
    return Hash.from_signed(a).similarity(Hash.from_signed(b)).confidence


SQL_FUNCTIONS = (
    SqlFunction("REGEX", 3, regex),
    SqlFunction("RINSTR", 2, rinstr),
    SqlFunction("FILE_EXISTS", 1, file_exists, deterministic=False),
    SqlFunction("SIMILAR_HASHES", 2, similar_hashes),
    SqlFunction("SIMILARITY_CONFIDENCE", 2, similarity_confidence),
)


def register_functions(conn: sqlite3.Connection) -> None:
    """Inject all custom functions into the given connection."""

    for function in SQL_FUNCTIONS:
        conn.create_function(function.name, function.n_args, function.func, deterministic=function.deterministic)
        logger.debug("Registered SQL function '%s'", function.name)
    logger.info("Loaded %d SQL functions.", len(SQL_FUNCTIONS))


__all__ = [
    "SQL_FUNCTIONS",
    "register_functions",
    "regex",
    "rinstr",
    "file_exists",
    "similar_hashes",
    "similarity_confidence",
]
