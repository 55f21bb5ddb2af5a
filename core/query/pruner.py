# Path: core/query/pruner.py
# Purpose: Prove that some expanded queries can never match any picture.
# Layer: core/query.
# Details: Shannon splitting with constant propagation over opaque propositional variables, step-bounded.

from __future__ import annotations

from typing import Dict, Hashable, Optional, Tuple, Union

from .ast import And, Expression, Not, Or, PseudoTagCall, TagRef

DEFAULT_PRUNE_BUDGET = 4096

# A formula is a constant, a variable index, or ("not", f) / ("and", fs) / ("or", fs).
Formula = Union[bool, int, Tuple]


class _BudgetExceeded(Exception):
    pass


def _atom_key(node: Expression) -> Hashable:
    if isinstance(node, TagRef):
        return ("tag", node.type_symbol, node.label)
    if isinstance(node, PseudoTagCall):
        return ("pseudo", node.name, node.argument, node.case_sensitive)
    raise TypeError(f"Not an atom: {node!r}")


def to_formula(tree: Expression, variables: Optional[Dict[Hashable, int]] = None) -> Formula:
    """Build the propositional formula isomorphic to ``tree``.

    Each distinct tag reference or pseudo-tag call maps to one variable index,
    independently of the polarity it appears with.
    """

    if variables is None:
        variables = {}
    if isinstance(tree, (TagRef, PseudoTagCall)):
        return variables.setdefault(_atom_key(tree), len(variables))
    if isinstance(tree, Not):
        return ("not", to_formula(tree.operand, variables))
    if isinstance(tree, And):
        return ("and", tuple(to_formula(op, variables) for op in tree.operands))
    if isinstance(tree, Or):
        return ("or", tuple(to_formula(op, variables) for op in tree.operands))
    raise TypeError(f"Unexpected expression node: {tree!r}")


def _assign(formula: Formula, var: int, value: bool) -> Formula:
    if formula is True or formula is False:
        return formula
    if isinstance(formula, int):
        return value if formula == var else formula

    op = formula[0]
    if op == "not":
        inner = _assign(formula[1], var, value)
        if inner is True or inner is False:
            return not inner
        return ("not", inner)

    # "and" absorbs True and is annihilated by False; "or" is the dual.
    neutral = op == "and"
    parts = []
    for sub in formula[1]:
        reduced = _assign(sub, var, value)
        if reduced is (not neutral):
            return not neutral
        if reduced is neutral:
            continue
        parts.append(reduced)
    if not parts:
        return neutral
    if len(parts) == 1:
        return parts[0]
    return (op, tuple(parts))


def _first_variable(formula: Formula) -> int:
    stack = [formula]
    while stack:
        current = stack.pop()
        if current is True or current is False:
            continue
        if isinstance(current, int):
            return current
        if current[0] == "not":
            stack.append(current[1])
        else:
            stack.extend(reversed(current[1]))
    raise ValueError("Formula has no variable")


class _Solver:
    def __init__(self, budget: int) -> None:
        self.budget = budget

    def satisfiable(self, formula: Formula) -> bool:
        # Explicit stack: a wide conjunction splits once per variable.
        pending = [formula]
        while pending:
            current = pending.pop()
            if current is True:
                return True
            if current is False:
                continue
            self.budget -= 1
            if self.budget < 0:
                raise _BudgetExceeded()
            var = _first_variable(current)
            pending.append(_assign(current, var, False))
            pending.append(_assign(current, var, True))
        return False


def is_unsatisfiable(tree: Expression, budget: int = DEFAULT_PRUNE_BUDGET) -> bool:
    """Return True only if ``tree`` is proven to never match.

    Pseudo-tags are opaque propositions. When the proof needs more than
    ``budget`` split steps the answer is False, which only costs a storage
    round trip.
    """

    formula = _assign(to_formula(tree), -1, False)
    try:
        return not _Solver(budget).satisfiable(formula)
    except _BudgetExceeded:
        return False


__all__ = ["is_unsatisfiable", "to_formula", "DEFAULT_PRUNE_BUDGET"]
