"""
Expression evaluation.

Expressions only read the store; they never touch the heap and never fault.
Subtraction saturates at zero and unbound identifiers read zero.

Two flavours are provided:

* ``eval_arith`` / ``eval_bool``: run-to-value evaluation used by the
  big-step evaluator.
* ``step_arith`` / ``step_bool``: one reduction at a time, leftmost
  operand first, used by the small-step reducer.  Iterating them reaches
  the same value as the run-to-value functions.
"""

from __future__ import annotations

from heapsem.ast_nodes import (
    AExp,
    AId,
    AMinus,
    AMult,
    ANum,
    APlus,
    BAnd,
    BEq,
    BExp,
    BFalse,
    BLe,
    BNot,
    BTrue,
    FALSE,
    TRUE,
)
from heapsem.memory import State


def eval_arith(state: State, a: AExp) -> int:
    if isinstance(a, ANum):
        return a.value
    if isinstance(a, AId):
        return state.store.lookup(a.name)
    if isinstance(a, APlus):
        return eval_arith(state, a.left) + eval_arith(state, a.right)
    if isinstance(a, AMinus):
        return max(0, eval_arith(state, a.left) - eval_arith(state, a.right))
    if isinstance(a, AMult):
        return eval_arith(state, a.left) * eval_arith(state, a.right)
    raise TypeError(f"not an arithmetic expression: {a!r}")


def eval_bool(state: State, b: BExp) -> bool:
    if isinstance(b, BTrue):
        return True
    if isinstance(b, BFalse):
        return False
    if isinstance(b, BEq):
        return eval_arith(state, b.left) == eval_arith(state, b.right)
    if isinstance(b, BLe):
        return eval_arith(state, b.left) <= eval_arith(state, b.right)
    if isinstance(b, BNot):
        return not eval_bool(state, b.operand)
    if isinstance(b, BAnd):
        return eval_bool(state, b.left) and eval_bool(state, b.right)
    raise TypeError(f"not a boolean expression: {b!r}")


# ---------------------------------------------------------------------------
# Small-step reduction
# ---------------------------------------------------------------------------

def is_arith_value(a: AExp) -> bool:
    return isinstance(a, ANum)


def is_bool_value(b: BExp) -> bool:
    return isinstance(b, (BTrue, BFalse))


def _as_bool(value: bool) -> BExp:
    return TRUE if value else FALSE


def step_arith(state: State, a: AExp) -> AExp:
    """Perform exactly one reduction on *a*, which must not be a literal."""
    if isinstance(a, AId):
        return ANum(state.store.lookup(a.name))
    if isinstance(a, (APlus, AMinus, AMult)):
        if not is_arith_value(a.left):
            return type(a)(step_arith(state, a.left), a.right)
        if not is_arith_value(a.right):
            return type(a)(a.left, step_arith(state, a.right))
        lhs, rhs = a.left.value, a.right.value
        if isinstance(a, APlus):
            return ANum(lhs + rhs)
        if isinstance(a, AMinus):
            return ANum(max(0, lhs - rhs))
        return ANum(lhs * rhs)
    if isinstance(a, ANum):
        raise ValueError(f"{a!r} is already a value")
    raise TypeError(f"not an arithmetic expression: {a!r}")


def step_bool(state: State, b: BExp) -> BExp:
    """Perform exactly one reduction on *b*, which must not be a literal."""
    if isinstance(b, (BEq, BLe)):
        if not is_arith_value(b.left):
            return type(b)(step_arith(state, b.left), b.right)
        if not is_arith_value(b.right):
            return type(b)(b.left, step_arith(state, b.right))
        if isinstance(b, BEq):
            return _as_bool(b.left.value == b.right.value)
        return _as_bool(b.left.value <= b.right.value)
    if isinstance(b, BNot):
        if not is_bool_value(b.operand):
            return BNot(step_bool(state, b.operand))
        return _as_bool(isinstance(b.operand, BFalse))
    if isinstance(b, BAnd):
        if not is_bool_value(b.left):
            return BAnd(step_bool(state, b.left), b.right)
        if isinstance(b.left, BTrue):
            return b.right
        return FALSE
    if isinstance(b, (BTrue, BFalse)):
        raise ValueError(f"{b!r} is already a value")
    raise TypeError(f"not a boolean expression: {b!r}")


def reduce_arith(state: State, a: AExp) -> AExp:
    """Iterate ``step_arith`` to a literal."""
    while not is_arith_value(a):
        a = step_arith(state, a)
    return a


def reduce_bool(state: State, b: BExp) -> BExp:
    """Iterate ``step_bool`` to ``BTrue`` or ``BFalse``."""
    while not is_bool_value(b):
        b = step_bool(state, b)
    return b
