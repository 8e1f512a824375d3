# tests/conftest.py
"""
Shared fixtures: the reference scenarios and a seeded generator of
terminating random programs.
"""

import os
import random
import sys

import pytest

# Ensure heapsem is importable without an install
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from heapsem.ast_nodes import (
    SKIP,
    AId,
    AMinus,
    AMult,
    ANum,
    APlus,
    Assign,
    BAnd,
    BEq,
    BFalse,
    BLe,
    BNot,
    BTrue,
    HeapAlloc,
    HeapFree,
    HeapWrite,
    If,
    While,
    seq,
)

VARS = ["x", "y", "z"]
PTRS = ["p", "q"]


class ProgramGenerator:
    """
    Random programs that always terminate: every loop is driven by its own
    counter, which the loop body never assigns.  Heap commands address
    cells through pointer variables, pointer arithmetic and small literals,
    so both successful and aborting programs come out.
    """

    def __init__(self, seed, max_depth=3):
        self.rng = random.Random(seed)
        self.max_depth = max_depth
        self.loops = 0

    def arith(self, depth=2):
        rng = self.rng
        if depth <= 0 or rng.random() < 0.4:
            if rng.random() < 0.5:
                return ANum(rng.randint(0, 5))
            return AId(rng.choice(VARS + PTRS))
        op = rng.choice([APlus, AMinus, AMult])
        if op is AMult:
            # a literal factor keeps values from squaring inside loops
            return AMult(self.arith(depth - 1), ANum(rng.randint(0, 3)))
        return op(self.arith(depth - 1), self.arith(depth - 1))

    def boolean(self, depth=2):
        rng = self.rng
        if depth <= 0 or rng.random() < 0.2:
            return rng.choice([BTrue(), BFalse()])
        kind = rng.choice(["eq", "le", "not", "and"])
        if kind == "eq":
            return BEq(self.arith(1), self.arith(1))
        if kind == "le":
            return BLe(self.arith(1), self.arith(1))
        if kind == "not":
            return BNot(self.boolean(depth - 1))
        return BAnd(self.boolean(depth - 1), self.boolean(depth - 1))

    def address(self):
        rng = self.rng
        choice = rng.randint(0, 3)
        if choice == 0:
            return AId(rng.choice(PTRS))
        if choice == 1:
            return APlus(AId(rng.choice(PTRS)), ANum(1))
        if choice == 2:
            return ANum(rng.randint(0, 4))
        return AId(rng.choice(VARS))

    def command(self, depth):
        rng = self.rng
        simple = ["skip", "assign", "assign", "write", "alloc", "alloc", "free"]
        compound = ["seq", "if", "while"] if depth > 0 else []
        kind = rng.choice(simple + compound)
        if kind == "skip":
            return SKIP
        if kind == "assign":
            return Assign(rng.choice(VARS + PTRS), self.arith())
        if kind == "write":
            return HeapWrite(self.address(), self.arith(1))
        if kind == "alloc":
            return HeapAlloc(rng.choice(PTRS), self.arith(1), self.arith(1))
        if kind == "free":
            return HeapFree(self.address())
        if kind == "seq":
            return seq(self.command(depth - 1), self.command(depth - 1))
        if kind == "if":
            return If(self.boolean(), self.command(depth - 1), self.command(depth - 1))
        counter = f"i{self.loops}"
        self.loops += 1
        return seq(
            Assign(counter, ANum(rng.randint(0, 3))),
            While(
                BNot(BLe(AId(counter), ANum(0))),
                seq(self.command(depth - 1), Assign(counter, AMinus(AId(counter), ANum(1)))),
            ),
        )

    def program(self):
        count = self.rng.randint(1, 5)
        return seq(*[self.command(self.max_depth) for _ in range(count)])


@pytest.fixture
def program_generator():
    return ProgramGenerator


# ── Reference scenarios ─────────────────────────────────────────

@pytest.fixture
def alloc_then_write():
    """x := cons(1, 2); [x] := 9"""
    return seq(HeapAlloc("x", ANum(1), ANum(2)), HeapWrite(AId("x"), ANum(9)))


@pytest.fixture
def free_unallocated():
    """dispose(x) with x unbound and an empty heap."""
    return HeapFree(AId("x"))


@pytest.fixture
def count_to_four():
    """x := 0; while x <= 3 do x := x + 1"""
    return seq(
        Assign("x", ANum(0)),
        While(BLe(AId("x"), ANum(3)), Assign("x", APlus(AId("x"), ANum(1)))),
    )


@pytest.fixture
def double_free():
    """x := cons(5, 5); dispose(x); dispose(x)"""
    return seq(
        HeapAlloc("x", ANum(5), ANum(5)),
        HeapFree(AId("x")),
        HeapFree(AId("x")),
    )


@pytest.fixture
def fault_then_assign():
    """dispose(x); x := 100"""
    return seq(HeapFree(AId("x")), Assign("x", ANum(100)))


@pytest.fixture
def list_builder():
    """Cons three cells onto a list, then dispose of the head cell."""
    return seq(
        Assign("n", ANum(3)),
        Assign("head", ANum(0)),
        While(
            BNot(BEq(AId("n"), ANum(0))),
            seq(
                HeapAlloc("cell", AId("n"), AId("head")),
                Assign("head", AId("cell")),
                Assign("n", AMinus(AId("n"), ANum(1))),
            ),
        ),
        HeapFree(AId("head")),
        HeapFree(APlus(AId("head"), ANum(1))),
    )


@pytest.fixture
def diverging():
    """while true do skip"""
    return While(BTrue(), SKIP)
