# Path: core/query/ast.py
# Purpose: Define the immutable boolean expression tree produced by the tag query parser.
# Layer: core/query.
# Details: Nodes are frozen dataclasses; trees are built fresh per compile call and never shared.

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional, Tuple, Union


@dataclass(frozen=True)
class TagRef:
    """Reference to a tag by label, optionally qualified by a tag-type symbol."""

    label: str
    type_symbol: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.type_symbol or ''}{self.label}"


@dataclass(frozen=True)
class PseudoTagCall:
    """Invocation of a registered pseudo-tag.

    ``argument`` is only set for pattern pseudo-tags; ``case_sensitive`` is
    resolved by the parser so that the tree is self-contained.
    """

    name: str
    argument: Optional[str] = None
    case_sensitive: Optional[bool] = None

    def __str__(self) -> str:
        if self.argument is None:
            return f"#{self.name}"
        escaped = self.argument.replace("\\", "\\\\").replace('"', '\\"')
        flag = "" if self.case_sensitive is None else ("s" if self.case_sensitive else "i")
        return f'#{self.name}:"{escaped}"{flag}'


@dataclass(frozen=True)
class Not:
    """Logical negation of a sub-expression."""

    operand: "Expression"

    def __str__(self) -> str:
        return f"NOT {_wrap(self.operand)}"


@dataclass(frozen=True)
class And:
    """Conjunction of two or more sub-expressions."""

    operands: Tuple["Expression", ...]

    def __str__(self) -> str:
        return " AND ".join(_wrap(op) for op in self.operands)


@dataclass(frozen=True)
class Or:
    """Disjunction of two or more sub-expressions."""

    operands: Tuple["Expression", ...]

    def __str__(self) -> str:
        return " OR ".join(_wrap(op) for op in self.operands)


Expression = Union[TagRef, PseudoTagCall, Not, And, Or]


def _wrap(node: Expression) -> str:
    if isinstance(node, (And, Or)):
        return f"({node})"
    return str(node)


def iter_nodes(node: Expression) -> Iterator[Expression]:
    """Yield every node of the tree in depth-first pre-order."""

    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        if isinstance(current, Not):
            stack.append(current.operand)
        elif isinstance(current, (And, Or)):
            stack.extend(reversed(current.operands))


def count_nodes(node: Expression) -> int:
    """Return the number of nodes in the tree."""

    return sum(1 for _ in iter_nodes(node))


def tag_labels(node: Expression) -> set[str]:
    """Return the labels of all tag references found in the tree."""

    return {n.label for n in iter_nodes(node) if isinstance(n, TagRef)}


__all__ = [
    "TagRef",
    "PseudoTagCall",
    "Not",
    "And",
    "Or",
    "Expression",
    "iter_nodes",
    "count_nodes",
    "tag_labels",
]
