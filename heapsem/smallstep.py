"""
Small-step (structural operational) semantics.

A configuration pairs the remaining command with the current outcome.
``step`` performs one atomic reduction:

    (c, Abort)                         → (skip, Abort)          c ≠ skip
    (x := n, s)                        → (skip, s[x ↦ n])
    ([a] := v, s)   a ∈ dom(h)         → (skip, s[h: a ↦ v])
    ([a] := v, s)   a ∉ dom(h)         → (skip, Abort)
    (x := cons(v1, v2), s)             → (skip, s[x ↦ n][h: n ↦ v1, n+1 ↦ v2])
    (dispose(a), s) a ∈ dom(h)         → (skip, s[h: a freed])
    (dispose(a), s) a ∉ dom(h)         → (skip, Abort)
    (skip; c2, s)                      → (c2, s)
    (c1; c2, s)                        → (c1'; c2, s')          (c1, s) → (c1', s')
    (if true then c1 else c2, s)       → (c1, s)
    (if false then c1 else c2, s)      → (c2, s)
    (while b do c, s)                  → (if b then (c; while b do c) else skip, s)

Operands that are not yet literals are reduced one operation per step
(heap address before content, left operand before right) without touching
the state.  ``(skip, Normal(s))`` and ``(skip, Abort)`` are terminal;
stepping them returns them unchanged.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterator, List, Optional

from heapsem.allocator import DEFAULT_ALLOCATOR, AllocatorPolicy, fresh_pair
from heapsem.ast_nodes import (
    SKIP,
    Assign,
    BFalse,
    BTrue,
    Command,
    HeapAlloc,
    HeapFree,
    HeapWrite,
    If,
    Seq,
    Skip,
    While,
)
from heapsem.errors import StuckConfigurationError
from heapsem.expressions import is_arith_value, step_arith, step_bool
from heapsem.memory import State
from heapsem.outcome import ABORT, EXHAUSTED, Normal, Outcome, Result

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Configuration:
    command: Command
    outcome: Outcome

    @classmethod
    def initial(cls, cmd: Command, state: Optional[State] = None) -> "Configuration":
        return cls(cmd, Normal(state if state is not None else State()))

    @property
    def is_terminal(self) -> bool:
        return isinstance(self.command, Skip)

    @property
    def is_aborted(self) -> bool:
        return self.outcome is ABORT


def is_terminal(config: Configuration) -> bool:
    return config.is_terminal


def step(config: Configuration, allocator: Optional[AllocatorPolicy] = None) -> Configuration:
    """Perform one reduction.  Terminal configurations are fixed points."""
    cmd, outcome = config.command, config.outcome

    if isinstance(cmd, Skip):
        return config
    if outcome is ABORT:
        return Configuration(SKIP, ABORT)

    state = outcome.state
    allocator = allocator or DEFAULT_ALLOCATOR

    if isinstance(cmd, Assign):
        if not is_arith_value(cmd.expr):
            return Configuration(Assign(cmd.name, step_arith(state, cmd.expr)), outcome)
        store = state.store.update(cmd.name, cmd.expr.value)
        return Configuration(SKIP, Normal(state.with_store(store)))

    if isinstance(cmd, HeapWrite):
        if not is_arith_value(cmd.addr):
            return Configuration(HeapWrite(step_arith(state, cmd.addr), cmd.value), outcome)
        if not state.heap.in_domain(cmd.addr.value):
            return Configuration(SKIP, ABORT)
        if not is_arith_value(cmd.value):
            return Configuration(HeapWrite(cmd.addr, step_arith(state, cmd.value)), outcome)
        heap = state.heap.write(cmd.addr.value, cmd.value.value)
        return Configuration(SKIP, Normal(state.with_heap(heap)))

    if isinstance(cmd, HeapAlloc):
        if not is_arith_value(cmd.first):
            return Configuration(
                HeapAlloc(cmd.name, step_arith(state, cmd.first), cmd.second), outcome
            )
        if not is_arith_value(cmd.second):
            return Configuration(
                HeapAlloc(cmd.name, cmd.first, step_arith(state, cmd.second)), outcome
            )
        n = fresh_pair(allocator, state.heap)
        heap = state.heap.write(n, cmd.first.value).write(n + 1, cmd.second.value)
        return Configuration(SKIP, Normal(State(state.store.update(cmd.name, n), heap)))

    if isinstance(cmd, HeapFree):
        if not is_arith_value(cmd.addr):
            return Configuration(HeapFree(step_arith(state, cmd.addr)), outcome)
        if not state.heap.in_domain(cmd.addr.value):
            return Configuration(SKIP, ABORT)
        return Configuration(SKIP, Normal(state.with_heap(state.heap.free(cmd.addr.value))))

    if isinstance(cmd, Seq):
        # descend the left spine to the innermost redex
        rest: List[Command] = []
        node: Command = cmd
        while isinstance(node, Seq) and not isinstance(node.first, Skip):
            rest.append(node.second)
            node = node.first
        if isinstance(node, Seq):
            nxt = Configuration(node.second, outcome)
        else:
            nxt = step(Configuration(node, outcome), allocator)
        command = nxt.command
        for second in reversed(rest):
            command = Seq(command, second)
        return Configuration(command, nxt.outcome)

    if isinstance(cmd, If):
        if isinstance(cmd.cond, BTrue):
            return Configuration(cmd.then, outcome)
        if isinstance(cmd.cond, BFalse):
            return Configuration(cmd.orelse, outcome)
        return Configuration(If(step_bool(state, cmd.cond), cmd.then, cmd.orelse), outcome)

    if isinstance(cmd, While):
        return Configuration(If(cmd.cond, Seq(cmd.body, cmd), SKIP), outcome)

    raise StuckConfigurationError(config)


def iterate(
    config: Configuration,
    allocator: Optional[AllocatorPolicy] = None,
) -> Iterator[Configuration]:
    """Yield *config* and every configuration reached from it, ending with
    the terminal one.  Never terminates for a diverging program."""
    yield config
    while not config.is_terminal:
        config = step(config, allocator)
        yield config


def run(
    cmd: Command,
    state: Optional[State] = None,
    allocator: Optional[AllocatorPolicy] = None,
    fuel: Optional[int] = None,
) -> Result:
    """Step *cmd* from *state* to a terminal configuration.

    With *fuel* set, at most *fuel* steps are taken and ``EXHAUSTED`` is
    returned if the program has not finished by then.
    """
    machine = Machine(cmd, state, allocator=allocator)
    finished = machine.run(fuel)
    if not finished:
        logger.debug("small-step run ran out of fuel after %d steps", machine.steps_taken)
        return EXHAUSTED
    logger.debug(
        "small-step run finished: %r after %d steps",
        machine.configuration.outcome, machine.steps_taken,
    )
    return machine.configuration.outcome


class Machine:
    """
    Resumable small-step machine for stepwise execution and debugging.

    A machine is owned by a single caller; it is not safe to step the same
    machine from several threads.  ``history`` keeps the last
    ``history_limit`` configurations when ``record_history`` is set.
    """

    def __init__(
        self,
        cmd: Command,
        state: Optional[State] = None,
        allocator: Optional[AllocatorPolicy] = None,
        record_history: bool = False,
        history_limit: int = 1000,
    ) -> None:
        self.allocator = allocator or DEFAULT_ALLOCATOR
        self.configuration = Configuration.initial(cmd, state)
        self.steps_taken = 0
        self.record_history = record_history
        self._history: Deque[Configuration] = deque(maxlen=history_limit)
        if record_history:
            self._history.append(self.configuration)

    @property
    def is_terminal(self) -> bool:
        return self.configuration.is_terminal

    @property
    def history(self) -> List[Configuration]:
        return list(self._history)

    def step(self) -> Configuration:
        """Advance one reduction (a no-op once terminal) and return the new
        configuration."""
        if self.configuration.is_terminal:
            return self.configuration
        self.configuration = step(self.configuration, self.allocator)
        self.steps_taken += 1
        if self.record_history:
            self._history.append(self.configuration)
        return self.configuration

    def run(self, max_steps: Optional[int] = None) -> bool:
        """Step until terminal or until *max_steps* more steps were taken.
        Returns whether the machine is terminal."""
        taken = 0
        while not self.configuration.is_terminal:
            if max_steps is not None and taken >= max_steps:
                return False
            self.step()
            taken += 1
        return True

    def __repr__(self) -> str:
        return f"Machine(steps={self.steps_taken}, {self.configuration!r})"
