# Path: core/query/emitter.py
# Purpose: Compile an expanded expression tree into one SQLite query over the picture catalog schema.
# Layer: core/query.
# Details: Tag labels resolve through a read-only lookup; output text is deterministic for a given input.

from __future__ import annotations

from typing import FrozenSet, Mapping, Optional, Protocol

from .ast import And, Expression, Not, Or, PseudoTagCall, TagRef
from .errors import InvalidPseudoTagError
from .pseudo_tags import PSEUDO_TAGS, PseudoTag, render_pseudo_tag

SELECT_CLAUSE = "SELECT p.id, p.path, p.hash\nFROM pictures AS p"

# Condition used for tags that no picture can currently have.
NEVER_TRUE = "0"


class TagLookup(Protocol):
    """Read-only view over stored tags and tag types used during compilation."""

    def lookup_tag_by_label(self, label: str) -> Optional[int]:
        """Return the id of the tag with the given label, if any."""

    def lookup_tag_type(self, symbol: str) -> Optional[int]:
        """Return the id of the tag type with the given symbol, if any."""

    def tag_type_symbols(self) -> FrozenSet[str]:
        """Return all tag-type symbols currently defined."""


class SqlEmitter:
    """Translate expression nodes into SQL conditions."""

    def __init__(self, tag_lookup: TagLookup, pseudo_tags: Mapping[str, PseudoTag] = PSEUDO_TAGS) -> None:
        self.tag_lookup = tag_lookup
        self.pseudo_tags = pseudo_tags

    def emit(self, tree: Expression) -> str:
        """Return the full query selecting the pictures matching ``tree``."""

        return f"{SELECT_CLAUSE}\nWHERE {self.condition(tree)}\nORDER BY p.id"

    def condition(self, node: Expression) -> str:
        if isinstance(node, TagRef):
            return self._tag_exists(node, negated=False)
        if isinstance(node, PseudoTagCall):
            return self._pseudo_tag(node)
        if isinstance(node, Not):
            if isinstance(node.operand, TagRef):
                return self._tag_exists(node.operand, negated=True)
            return f"NOT ({self.condition(node.operand)})"
        if isinstance(node, And):
            return " AND ".join(f"({self.condition(op)})" for op in node.operands)
        if isinstance(node, Or):
            return " OR ".join(f"({self.condition(op)})" for op in node.operands)
        raise TypeError(f"Unexpected expression node: {node!r}")

    def _tag_exists(self, ref: TagRef, negated: bool) -> str:
        prefix = "NOT " if negated else ""
        tag_id = self.tag_lookup.lookup_tag_by_label(ref.label)
        type_id = None
        if ref.type_symbol is not None:
            type_id = self.tag_lookup.lookup_tag_type(ref.type_symbol)
            if type_id is None:
                tag_id = None
        if tag_id is None:
            return f"{prefix}{NEVER_TRUE}"
        if type_id is None:
            return (
                f"{prefix}EXISTS (SELECT 1 FROM picture_tag AS pt "
                f"WHERE pt.picture_id = p.id AND pt.tag_id = {int(tag_id)})"
            )
        return (
            f"{prefix}EXISTS (SELECT 1 FROM picture_tag AS pt JOIN tags AS t ON t.id = pt.tag_id "
            f"WHERE pt.picture_id = p.id AND pt.tag_id = {int(tag_id)} AND t.type_id = {int(type_id)})"
        )

    def _pseudo_tag(self, call: PseudoTagCall) -> str:
        pseudo_tag = self.pseudo_tags.get(call.name)
        if pseudo_tag is None:
            raise InvalidPseudoTagError(call.name)
        return render_pseudo_tag(pseudo_tag, call.argument, bool(call.case_sensitive))


def emit(tree: Expression, tag_lookup: TagLookup, pseudo_tags: Mapping[str, PseudoTag] = PSEUDO_TAGS) -> str:
    """Compile ``tree`` into a query returning each matching picture's id, path and hash."""

    return SqlEmitter(tag_lookup, pseudo_tags).emit(tree)


__all__ = ["emit", "SqlEmitter", "TagLookup", "NEVER_TRUE", "SELECT_CLAUSE"]
