# Path: core/query/compiler.py
# Purpose: Orchestrate parsing, expansion, pruning, and SQL emission of a tag query.
# Layer: core/query.
# Details: Pure and synchronous; callers pass a stable snapshot of definitions and lookups.

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import Mapping, Optional

from .ast import Expression
from .emitter import TagLookup, emit
from .expander import DEFAULT_MAX_DEPTH, DEFAULT_MAX_NODES, expand
from .parser import parse
from .pruner import DEFAULT_PRUNE_BUDGET, is_unsatisfiable
from .pseudo_tags import PSEUDO_TAGS, PseudoTag

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompiledQuery:
    """Result of compiling a tag query.

    ``sql`` is None when the query was proven to never match, in which case
    the caller returns an empty result without touching storage.
    """

    text: str
    expression: Expression
    sql: Optional[str]

    def query_text(self) -> Optional[str]:
        """Return the SQL to execute, or None for a provably empty result."""

        return self.sql

    @property
    def is_empty(self) -> bool:
        return self.sql is None


def compile_query(
    text: str,
    definitions: Mapping[str, str],
    tag_lookup: TagLookup,
    pseudo_tags: Mapping[str, PseudoTag] = PSEUDO_TAGS,
    case_sensitive_default: bool = False,
    max_nodes: int = DEFAULT_MAX_NODES,
    prune_budget: int = DEFAULT_PRUNE_BUDGET,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> CompiledQuery:
    """Compile a textual tag query into an executable SQL query.

    Raises:
        TagQuerySyntaxError: If the query or a tag definition is malformed.
        InvalidPseudoTagError: If an unknown pseudo-tag is used.
        TagQueryTooLargeError: If definitions are cyclic or expand beyond ``max_nodes``
            or ``max_depth``.
    """

    parser = partial(
        parse,
        type_symbols=tag_lookup.tag_type_symbols(),
        pseudo_tags=pseudo_tags,
        case_sensitive_default=case_sensitive_default,
    )
    tree = parser(text)
    expanded = expand(tree, definitions, parser, max_nodes=max_nodes, max_depth=max_depth)

    if is_unsatisfiable(expanded, budget=prune_budget):
        logger.debug("Query %r is unsatisfiable, skipping storage", text)
        return CompiledQuery(text=text, expression=expanded, sql=None)

    sql = emit(expanded, tag_lookup, pseudo_tags)
    logger.debug("Compiled query %r into SQL: %s", text, sql)
    return CompiledQuery(text=text, expression=expanded, sql=sql)


__all__ = ["CompiledQuery", "compile_query"]
