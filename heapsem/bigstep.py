"""
Big-step (natural) semantics.

``evaluate(cmd, state)`` relates a command and an initial state to its
final outcome, ``Normal(state')`` or ``ABORT``.  The relation is realised
as a derivation search that is deterministic once an allocation policy is
fixed:

    E_Skip        skip leaves the state unchanged
    E_Ass         x := a updates the store
    E_Write       [a1] := a2 with a1 allocated
    E_WriteAbort  [a1] := a2 with a1 unallocated              → Abort
    E_Alloc       x := cons(a1, a2) on a fresh pair n, n+1
    E_Free        dispose(a) with a allocated
    E_FreeAbort   dispose(a) with a unallocated               → Abort
    E_Seq         c1 finishes normally, continue with c2
    E_SeqAbort    c1 aborts; c2 is never evaluated            → Abort
    E_IfTrue / E_IfFalse
    E_WhileFalse  guard false, state unchanged
    E_WhileTrue   guard true, body finishes, loop again
    E_WhileAbort  guard true, body aborts                     → Abort

Loop iterations and sequences (nested either way) are walked with Python
loops rather than recursion, so long-running loops and long programs do
not exhaust the interpreter stack.  ``derive`` walks loops and the right
spine of a sequence the same way, but recurses once per level of a
left-nested sequence.  Divergence is real: callers that need an answer pass
``fuel`` (one unit per rule application) and receive ``EXHAUSTED`` when it
runs out.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from heapsem.allocator import DEFAULT_ALLOCATOR, AllocatorPolicy, fresh_pair
from heapsem.ast_nodes import (
    Assign,
    Command,
    HeapAlloc,
    HeapFree,
    HeapWrite,
    If,
    Seq,
    Skip,
    While,
)
from heapsem.errors import FuelExhaustedError
from heapsem.expressions import eval_arith, eval_bool
from heapsem.memory import State
from heapsem.outcome import ABORT, EXHAUSTED, Normal, Outcome, Result

logger = logging.getLogger(__name__)


@dataclass(frozen=True, repr=False, eq=False)
class Derivation:
    """One node of a big-step derivation tree."""
    rule: str
    command: Command
    state: State
    outcome: Outcome
    premises: Tuple["Derivation", ...] = ()

    def walk(self) -> Iterator["Derivation"]:
        """Pre-order traversal without recursion (trees can be very deep)."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.premises))

    @property
    def size(self) -> int:
        return sum(1 for _ in self.walk())

    @property
    def depth(self) -> int:
        best = 0
        stack = [(self, 1)]
        while stack:
            node, d = stack.pop()
            best = max(best, d)
            stack.extend((p, d + 1) for p in node.premises)
        return best

    def rule_counts(self) -> Dict[str, int]:
        return dict(Counter(node.rule for node in self.walk()))

    def __repr__(self) -> str:
        return f"Derivation({self.rule}, premises={len(self.premises)}, outcome={self.outcome!r})"


class _OutOfFuel(Exception):
    pass


class _BigStep:

    def __init__(
        self,
        allocator: Optional[AllocatorPolicy],
        fuel: Optional[int],
        record: bool,
    ) -> None:
        self.allocator = allocator or DEFAULT_ALLOCATOR
        self.fuel = fuel
        self.used = 0
        self.record = record

    def _burn(self) -> None:
        self.used += 1
        if self.fuel is not None and self.used > self.fuel:
            raise _OutOfFuel()

    def _node(self, rule, cmd, state, outcome, premises=()) -> Optional[Derivation]:
        if not self.record:
            return None
        return Derivation(rule, cmd, state, outcome, tuple(premises))

    def run(self, cmd: Command, state: State) -> Tuple[Outcome, Optional[Derivation]]:
        if isinstance(cmd, Seq):
            return self._run_seq(cmd, state)
        if isinstance(cmd, While):
            return self._run_while(cmd, state)

        self._burn()
        if isinstance(cmd, Skip):
            out = Normal(state)
            return out, self._node("E_Skip", cmd, state, out)

        if isinstance(cmd, Assign):
            value = eval_arith(state, cmd.expr)
            out = Normal(state.with_store(state.store.update(cmd.name, value)))
            return out, self._node("E_Ass", cmd, state, out)

        if isinstance(cmd, HeapWrite):
            addr = eval_arith(state, cmd.addr)
            if not state.heap.in_domain(addr):
                return ABORT, self._node("E_WriteAbort", cmd, state, ABORT)
            value = eval_arith(state, cmd.value)
            out = Normal(state.with_heap(state.heap.write(addr, value)))
            return out, self._node("E_Write", cmd, state, out)

        if isinstance(cmd, HeapAlloc):
            first = eval_arith(state, cmd.first)
            second = eval_arith(state, cmd.second)
            n = fresh_pair(self.allocator, state.heap)
            heap = state.heap.write(n, first).write(n + 1, second)
            out = Normal(State(state.store.update(cmd.name, n), heap))
            return out, self._node("E_Alloc", cmd, state, out)

        if isinstance(cmd, HeapFree):
            addr = eval_arith(state, cmd.addr)
            if not state.heap.in_domain(addr):
                return ABORT, self._node("E_FreeAbort", cmd, state, ABORT)
            out = Normal(state.with_heap(state.heap.free(addr)))
            return out, self._node("E_Free", cmd, state, out)

        if isinstance(cmd, If):
            taken = eval_bool(state, cmd.cond)
            out, sub = self.run(cmd.then if taken else cmd.orelse, state)
            rule = "E_IfTrue" if taken else "E_IfFalse"
            return out, self._node(rule, cmd, state, out, [sub])

        raise TypeError(f"not a command: {cmd!r}")

    def _run_flat(self, cmd: Seq, state: State) -> Outcome:
        # Same rule order as _run_seq, with both spines on an explicit stack
        pending: List[Command] = [cmd]
        while pending:
            current = pending.pop()
            if isinstance(current, Seq):
                self._burn()
                pending.append(current.second)
                pending.append(current.first)
                continue
            out, _ = self.run(current, state)
            if out is ABORT:
                return ABORT
            state = out.state
        return Normal(state)

    def _run_seq(self, cmd: Seq, state: State) -> Tuple[Outcome, Optional[Derivation]]:
        if not self.record:
            return self._run_flat(cmd, state), None
        spine: List[Tuple[Seq, State, Optional[Derivation]]] = []
        current: Command = cmd
        while isinstance(current, Seq):
            self._burn()
            out, first = self.run(current.first, state)
            if out is ABORT:
                outcome = ABORT
                tail = self._node("E_SeqAbort", current, state, ABORT, [first])
                break
            spine.append((current, state, first))
            state = out.state
            current = current.second
        else:
            outcome, tail = self.run(current, state)

        if self.record:
            for node_cmd, node_state, first in reversed(spine):
                tail = Derivation("E_Seq", node_cmd, node_state, outcome, (first, tail))
        return outcome, tail

    def _run_while(self, cmd: While, state: State) -> Tuple[Outcome, Optional[Derivation]]:
        iterations: List[Tuple[State, Optional[Derivation]]] = []
        while True:
            self._burn()
            if not eval_bool(state, cmd.cond):
                outcome = Normal(state)
                tail = self._node("E_WhileFalse", cmd, state, outcome)
                break
            out, body = self.run(cmd.body, state)
            if out is ABORT:
                outcome = ABORT
                tail = self._node("E_WhileAbort", cmd, state, ABORT, [body])
                break
            iterations.append((state, body))
            state = out.state

        if self.record:
            for before, body in reversed(iterations):
                tail = Derivation("E_WhileTrue", cmd, before, outcome, (body, tail))
        return outcome, tail


def evaluate(
    cmd: Command,
    state: Optional[State] = None,
    allocator: Optional[AllocatorPolicy] = None,
    fuel: Optional[int] = None,
) -> Result:
    """Big-step evaluation of *cmd* from *state* (empty store and heap by default).

    Returns ``Normal(state')`` or ``ABORT``; with *fuel* set, returns
    ``EXHAUSTED`` once more than *fuel* rules have been applied.  Without
    fuel a diverging program never returns.
    """
    engine = _BigStep(allocator, fuel, record=False)
    try:
        outcome, _ = engine.run(cmd, state if state is not None else State())
    except _OutOfFuel:
        logger.debug("big-step evaluation ran out of fuel after %d rules", fuel)
        return EXHAUSTED
    logger.debug("big-step evaluation finished: %r after %d rules", outcome, engine.used)
    return outcome


run_big_step = evaluate


def derive(
    cmd: Command,
    state: Optional[State] = None,
    allocator: Optional[AllocatorPolicy] = None,
    fuel: Optional[int] = None,
) -> Derivation:
    """Build the derivation tree of ``evaluate(cmd, state)``.

    Raises :class:`~heapsem.errors.FuelExhaustedError` when *fuel* runs out.
    """
    engine = _BigStep(allocator, fuel, record=True)
    try:
        _, tree = engine.run(cmd, state if state is not None else State())
    except _OutOfFuel:
        raise FuelExhaustedError(fuel) from None
    return tree
