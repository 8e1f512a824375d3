"""
heapsem/runtime.py
==================

Top-level façade wiring the two evaluators to a configuration.

* ``RuntimeConfig``  – tuning knobs: fuel, allocation policy, history
* ``HeapRuntime``    – owns an allocator and exposes big-step evaluation,
                       derivations, small-step runs and machines
* ``AgreementReport`` – result of running both evaluators on one program

Usage::

    from heapsem.runtime import HeapRuntime, RuntimeConfig

    rt = HeapRuntime(RuntimeConfig(fuel=10_000, allocator="scatter", seed=7))
    report = rt.check_agreement(program, State())
    assert report.agree
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from heapsem import bigstep, smallstep
from heapsem.allocator import AllocatorPolicy, available_allocators, get_allocator
from heapsem.ast_nodes import Command
from heapsem.errors import ConfigError
from heapsem.memory import State
from heapsem.outcome import EXHAUSTED, Normal, Result

logger = logging.getLogger(__name__)


@dataclass
class RuntimeConfig:
    """Tuning knobs for the heapsem runtime."""
    fuel: Optional[int] = 100_000
    allocator: str = "lowest-fit"
    allocator_base: int = 1
    seed: int = 0
    record_history: bool = False
    history_limit: int = 1000

    def validate(self) -> List[str]:
        """Return a list of validation warnings (empty if valid)."""
        warnings: List[str] = []
        if self.fuel is not None and self.fuel <= 0:
            warnings.append("fuel must be positive (or None for unbounded)")
        if self.allocator not in available_allocators():
            warnings.append(
                f"unknown allocator {self.allocator!r}; "
                f"choose from {available_allocators()}"
            )
        if self.allocator_base < 0:
            warnings.append("allocator_base must be non-negative")
        if self.history_limit < 0:
            warnings.append("history_limit must be non-negative")
        return warnings

    def make_allocator(self) -> AllocatorPolicy:
        if self.allocator == "scatter":
            return get_allocator("scatter", seed=self.seed)
        return get_allocator(self.allocator, base=self.allocator_base)


@dataclass
class AgreementReport:
    """Outcome of running the big-step and small-step evaluators side by side."""
    big_step: Result
    small_step: Result
    steps: Optional[int] = None
    notes: List[str] = field(default_factory=list)

    @property
    def conclusive(self) -> bool:
        return self.big_step is not EXHAUSTED and self.small_step is not EXHAUSTED

    @property
    def agree(self) -> bool:
        return self.conclusive and self.big_step == self.small_step

    def summary(self) -> str:
        if not self.conclusive:
            status = "INCONCLUSIVE"
        else:
            status = "AGREE" if self.agree else "DISAGREE"
        lines = [
            f"Status: {status}",
            f"Big-step:   {self.big_step!r}",
            f"Small-step: {self.small_step!r}",
        ]
        if self.steps is not None:
            lines.append(f"Small steps taken: {self.steps}")
        lines.extend(f"Note: {n}" for n in self.notes)
        return "\n".join(lines)


class HeapRuntime:
    """
    Façade over the big-step and small-step evaluators.

    Both evaluators share one allocation policy, which is what makes their
    results comparable with ``==``: the policies are functions of the heap,
    so the same heap yields the same fresh address on both sides.
    """

    def __init__(
        self,
        config: Optional[RuntimeConfig] = None,
        allocator: Optional[AllocatorPolicy] = None,
    ) -> None:
        self.config = config or RuntimeConfig()
        problems = self.config.validate()
        if problems:
            raise ConfigError("; ".join(problems))
        self.allocator = allocator or self.config.make_allocator()
        logger.debug("runtime configured with %r, fuel=%s", self.allocator, self.config.fuel)

    def evaluate(self, cmd: Command, state: Optional[State] = None) -> Result:
        return bigstep.evaluate(cmd, state, allocator=self.allocator, fuel=self.config.fuel)

    def derive(self, cmd: Command, state: Optional[State] = None) -> bigstep.Derivation:
        return bigstep.derive(cmd, state, allocator=self.allocator, fuel=self.config.fuel)

    def run_small_step(self, cmd: Command, state: Optional[State] = None) -> Result:
        return smallstep.run(cmd, state, allocator=self.allocator, fuel=self.config.fuel)

    def machine(self, cmd: Command, state: Optional[State] = None) -> smallstep.Machine:
        return smallstep.Machine(
            cmd,
            state,
            allocator=self.allocator,
            record_history=self.config.record_history,
            history_limit=self.config.history_limit,
        )

    def check_agreement(self, cmd: Command, state: Optional[State] = None) -> AgreementReport:
        big = self.evaluate(cmd, state)
        machine = self.machine(cmd, state)
        finished = machine.run(self.config.fuel)
        small = machine.configuration.outcome if finished else EXHAUSTED
        report = AgreementReport(big_step=big, small_step=small, steps=machine.steps_taken)

        if big is EXHAUSTED:
            report.notes.append("big-step evaluation ran out of fuel")
        if small is EXHAUSTED:
            report.notes.append("small-step evaluation ran out of fuel")
        if report.conclusive and not report.agree:
            if isinstance(big, Normal) and isinstance(small, Normal):
                report.notes.append("both finished normally with different states")
            else:
                report.notes.append("evaluators disagree on whether the program aborts")
            logger.warning("evaluators disagree on %r", cmd)
        return report
