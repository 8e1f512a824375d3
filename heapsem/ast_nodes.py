# heapsem/ast_nodes.py
"""
Abstract syntax of Imp extended with heap commands.

Nodes are frozen dataclasses: hashable, compared structurally, and never
mutated after construction.  Front-ends build them directly or through
:mod:`heapsem.sexp`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


# ── Arithmetic expressions ──────────────────────────────────────

@dataclass(frozen=True)
class ANum:
    value: int

    def __post_init__(self):
        if isinstance(self.value, bool) or not isinstance(self.value, int) or self.value < 0:
            raise ValueError(f"ANum needs a natural number, got {self.value!r}")


@dataclass(frozen=True)
class AId:
    name: str


@dataclass(frozen=True)
class APlus:
    left: AExp
    right: AExp


@dataclass(frozen=True)
class AMinus:
    left: AExp
    right: AExp


@dataclass(frozen=True)
class AMult:
    left: AExp
    right: AExp


AExp = Union[ANum, AId, APlus, AMinus, AMult]


# ── Boolean expressions ─────────────────────────────────────────

@dataclass(frozen=True)
class BTrue:
    pass


@dataclass(frozen=True)
class BFalse:
    pass


@dataclass(frozen=True)
class BEq:
    left: AExp
    right: AExp


@dataclass(frozen=True)
class BLe:
    left: AExp
    right: AExp


@dataclass(frozen=True)
class BNot:
    operand: BExp


@dataclass(frozen=True)
class BAnd:
    left: BExp
    right: BExp


BExp = Union[BTrue, BFalse, BEq, BLe, BNot, BAnd]


# ── Commands ────────────────────────────────────────────────────

@dataclass(frozen=True)
class Skip:
    pass


@dataclass(frozen=True)
class Assign:
    name: str
    expr: AExp


@dataclass(frozen=True)
class HeapWrite:
    """``[addr] := value``; faults unless ``addr`` is allocated."""
    addr: AExp
    value: AExp


@dataclass(frozen=True)
class HeapAlloc:
    """``name := cons(first, second)``: two contiguous fresh cells."""
    name: str
    first: AExp
    second: AExp


@dataclass(frozen=True)
class HeapFree:
    """``dispose(addr)``; faults unless ``addr`` is allocated."""
    addr: AExp


@dataclass(frozen=True)
class Seq:
    first: Command
    second: Command


@dataclass(frozen=True)
class If:
    cond: BExp
    then: Command
    orelse: Command


@dataclass(frozen=True)
class While:
    cond: BExp
    body: Command


Command = Union[Skip, Assign, HeapWrite, HeapAlloc, HeapFree, Seq, If, While]

SKIP = Skip()
TRUE = BTrue()
FALSE = BFalse()


def seq(*commands: Command) -> Command:
    """Right-nested sequence of *commands*; ``seq()`` is ``Skip``."""
    if not commands:
        return SKIP
    result = commands[-1]
    for cmd in reversed(commands[:-1]):
        result = Seq(cmd, result)
    return result


def lit(value: Union[int, str, AExp]) -> AExp:
    """Coerce an int to ``ANum`` and a str to ``AId``."""
    if isinstance(value, str):
        return AId(value)
    if isinstance(value, int):
        return ANum(value)
    return value
