# Path: core/query/pseudo_tags.py
# Purpose: Register the pseudo-tags usable in tag queries and render their SQL fragments.
# Layer: core/query.
# Details: Templates are boolean conditions over the picture alias "p"; registry is fixed at import time.

from __future__ import annotations

import enum
import os
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

# Marker character introducing a pseudo-tag in the query language.
PSEUDO_TAG_MARKER = "#"


class PseudoTagKind(enum.Enum):
    """Closed set of pseudo-tag shapes."""

    FLAG = "flag"
    PATTERN = "pattern"


@dataclass(frozen=True)
class PseudoTag:
    """A named predicate that is not backed by a stored tag.

    ``FLAG`` templates are used verbatim. ``PATTERN`` templates contain a
    ``{pattern}`` placeholder and, when ``uses_flags`` is set, a ``{flags}``
    placeholder for the case-sensitivity marker and the argument is a regex.
    """

    name: str
    template: str
    kind: PseudoTagKind
    uses_flags: bool = False
    description: str = ""

    def check_argument(self, argument: str) -> None:
        """Raise re.error if the argument is a regex that does not compile."""

        if self.uses_flags:
            re.compile(argument)


def sql_string_literal(value: str) -> str:
    """Return ``value`` as a single-quoted SQLite string literal."""

    return "'" + value.replace("'", "''") + "'"


def render_pseudo_tag(pseudo_tag: PseudoTag, argument: Optional[str] = None, case_sensitive: bool = False) -> str:
    """Render the SQL condition of a pseudo-tag invocation."""

    if pseudo_tag.kind is PseudoTagKind.FLAG:
        return pseudo_tag.template
    elif pseudo_tag.kind is PseudoTagKind.PATTERN:
        if argument is None:
            raise ValueError(f"Pseudo-tag '{pseudo_tag.name}' requires an argument.")
        values = {"pattern": sql_string_literal(argument)}
        if pseudo_tag.uses_flags:
            values["flags"] = sql_string_literal("s" if case_sensitive else "i")
        return pseudo_tag.template.format(**values)
    raise AssertionError(f"Unhandled pseudo-tag kind: {pseudo_tag.kind}")


_SEP = sql_string_literal(os.sep)

PSEUDO_TAGS: Mapping[str, PseudoTag] = MappingProxyType(
    {
        "ext": PseudoTag(
            name="ext",
            template="REGEX(SUBSTR(p.path, RINSTR(p.path, '.') + 1), {pattern}, {flags})",
            kind=PseudoTagKind.PATTERN,
            uses_flags=True,
            description="File extension matches the given regex.",
        ),
        "no_file": PseudoTag(
            name="no_file",
            template="NOT FILE_EXISTS(p.path)",
            kind=PseudoTagKind.FLAG,
            description="Picture file is missing from disk.",
        ),
        "no_tags": PseudoTag(
            name="no_tags",
            template="NOT EXISTS (SELECT 1 FROM picture_tag AS nt WHERE nt.picture_id = p.id)",
            kind=PseudoTagKind.FLAG,
            description="Picture has no tags.",
        ),
        "name": PseudoTag(
            name="name",
            template=f"REGEX(SUBSTR(p.path, RINSTR(p.path, {_SEP}) + 1), {{pattern}}, {{flags}})",
            kind=PseudoTagKind.PATTERN,
            uses_flags=True,
            description="File name matches the given regex.",
        ),
        "path": PseudoTag(
            name="path",
            template="REGEX(p.path, {pattern}, {flags})",
            kind=PseudoTagKind.PATTERN,
            uses_flags=True,
            description="Full path matches the given regex.",
        ),
        "similar_to": PseudoTag(
            name="similar_to",
            template=(
                "p.hash IS NOT NULL AND SIMILAR_HASHES(p.hash, "
                "(SELECT ref.hash FROM pictures AS ref WHERE ref.path = {pattern}))"
            ),
            kind=PseudoTagKind.PATTERN,
            description="Hash is similar to the one of the picture at the given path.",
        ),
    }
)


__all__ = [
    "PSEUDO_TAG_MARKER",
    "PSEUDO_TAGS",
    "PseudoTag",
    "PseudoTagKind",
    "render_pseudo_tag",
    "sql_string_literal",
]
