# Path: core/query/expander.py
# Purpose: Substitute compound tag references by their parsed definitions.
# Layer: core/query.
# Details: Path-sensitive cycle detection plus node and depth bounds shared by the whole expansion.

from __future__ import annotations

from typing import Callable, Dict, FrozenSet, Mapping

from .ast import And, Expression, Not, Or, PseudoTagCall, TagRef
from .errors import CycleDetectedError, TagQuerySyntaxError, TagQueryTooLargeError

DEFAULT_MAX_NODES = 1000

# Levels of the expanded tree, each definition substitution counting as one more.
DEFAULT_MAX_DEPTH = 200

DefinitionParser = Callable[[str], Expression]


class _Expansion:
    """State of a single expansion call.

    Parsed definitions are memoized for the duration of the call only.
    """

    def __init__(
        self,
        definitions: Mapping[str, str],
        max_nodes: int,
        parse_definition: DefinitionParser,
        max_depth: int,
    ) -> None:
        self.definitions = definitions
        self.max_nodes = max_nodes
        self.max_depth = max_depth
        self.parse_definition = parse_definition
        self.node_count = 0
        self._parsed: Dict[str, Expression] = {}

    def _count(self) -> None:
        self.node_count += 1
        if self.node_count > self.max_nodes:
            raise TagQueryTooLargeError(f"Expanded query exceeds {self.max_nodes} nodes")

    def _definition_tree(self, label: str) -> Expression:
        tree = self._parsed.get(label)
        if tree is None:
            try:
                tree = self.parse_definition(self.definitions[label])
            except TagQuerySyntaxError as exc:
                raise TagQuerySyntaxError(exc.message, exc.position, tag=label) from exc
            self._parsed[label] = tree
        return tree

    def expand(self, node: Expression, path: FrozenSet[str], depth: int = 0) -> Expression:
        if depth > self.max_depth:
            raise TagQueryTooLargeError(f"Expanded query nests deeper than {self.max_depth} levels")
        if isinstance(node, TagRef):
            if node.label not in self.definitions:
                self._count()
                return node
            if node.label in path:
                raise CycleDetectedError(node.label)
            return self.expand(self._definition_tree(node.label), path | {node.label}, depth + 1)
        if isinstance(node, PseudoTagCall):
            self._count()
            return node
        if isinstance(node, Not):
            self._count()
            return Not(self.expand(node.operand, path, depth + 1))
        if isinstance(node, And):
            self._count()
            return And(tuple(self.expand(op, path, depth + 1) for op in node.operands))
        if isinstance(node, Or):
            self._count()
            return Or(tuple(self.expand(op, path, depth + 1) for op in node.operands))
        raise TypeError(f"Unexpected expression node: {node!r}")


def expand(
    tree: Expression,
    definitions: Mapping[str, str],
    parse_definition: DefinitionParser,
    max_nodes: int = DEFAULT_MAX_NODES,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Expression:
    """Recursively replace compound tag references by their definitions.

    Args:
        tree: Parsed query.
        definitions: Snapshot mapping compound tag labels to definition text.
        parse_definition: Callable turning definition text into a tree; it
            must use the same syntax settings as the query itself.
        max_nodes: Maximum number of nodes in the expanded tree.
        max_depth: Maximum nesting of the expanded tree, where every
            substituted definition adds a level. Bounds acyclic chains of
            compound tags.

    Returns:
        A tree containing only leaf tag references and pseudo-tag calls.

    Raises:
        CycleDetectedError: If a definition refers back to a tag being expanded.
        TagQueryTooLargeError: If the expansion exceeds ``max_nodes`` or ``max_depth``.
        TagQuerySyntaxError: If a definition is malformed.
    """

    return _Expansion(definitions, max_nodes, parse_definition, max_depth).expand(tree, frozenset())


__all__ = ["expand", "DEFAULT_MAX_NODES", "DEFAULT_MAX_DEPTH"]
