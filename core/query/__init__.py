# Path: core/query/__init__.py
# Purpose: Package initializer for the tag query compiler.
# Layer: core/query.
# Details: Exposes parsing, expansion, pruning, emission, and the compile entrypoint.

from .ast import And, Expression, Not, Or, PseudoTagCall, TagRef
from .compiler import CompiledQuery, compile_query
from .emitter import TagLookup, emit
from .errors import (
    CycleDetectedError,
    InvalidPseudoTagError,
    TagQueryError,
    TagQuerySyntaxError,
    TagQueryTooLargeError,
)
from .expander import expand
from .parser import is_label_valid, is_symbol_valid, parse
from .pruner import is_unsatisfiable
from .pseudo_tags import PSEUDO_TAG_MARKER, PSEUDO_TAGS, PseudoTag, PseudoTagKind

__all__ = [
    "And",
    "Expression",
    "Not",
    "Or",
    "PseudoTagCall",
    "TagRef",
    "CompiledQuery",
    "compile_query",
    "TagLookup",
    "emit",
    "CycleDetectedError",
    "InvalidPseudoTagError",
    "TagQueryError",
    "TagQuerySyntaxError",
    "TagQueryTooLargeError",
    "expand",
    "is_label_valid",
    "is_symbol_valid",
    "parse",
    "is_unsatisfiable",
    "PSEUDO_TAG_MARKER",
    "PSEUDO_TAGS",
    "PseudoTag",
    "PseudoTagKind",
]
