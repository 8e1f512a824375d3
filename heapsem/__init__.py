"""heapsem: big-step and small-step semantics for Imp with a heap.

Imp extended with pointer allocation (``HeapAlloc``), mutation
(``HeapWrite``) and disposal (``HeapFree``), given two independent
operational semantics that agree on every terminating program, including
memory faults.

Submodules
----------
memory
    ``Store``, ``Heap``, ``State`` and the heap algebra
    (union, disjointness, subset).
allocator
    Deterministic fresh-address policies.
ast_nodes
    Expression and command nodes.
expressions
    Store-only expression evaluation and reduction.
outcome
    ``Normal``, ``ABORT`` and the fuel sentinel ``EXHAUSTED``.
bigstep
    ``evaluate`` and ``derive``.
smallstep
    ``Configuration``, ``step``, ``run`` and ``Machine``.
runtime
    ``RuntimeConfig`` and the ``HeapRuntime`` façade.
sexp
    S-expression interchange for programs and states.
main
    CLI entry-point (``python -m heapsem``).

Usage
-----
Programmatic::

    from heapsem import State, evaluate, sexp

    prog = sexp.loads("(alloc x 1 2) (write x 9)")
    outcome = evaluate(prog, State())

Command-line::

    python -m heapsem run program.sexp --store x=3
    python -m heapsem check program.sexp --allocator scatter
"""

from __future__ import annotations

from heapsem.bigstep import Derivation, derive, evaluate, run_big_step
from heapsem.memory import Heap, State, Store
from heapsem.outcome import ABORT, EXHAUSTED, Normal
from heapsem.smallstep import Configuration, Machine, is_terminal, step

__version__: str = "0.1.0"
__all__: list[str] = [
    "__version__",
    "ABORT",
    "EXHAUSTED",
    "Configuration",
    "Derivation",
    "Heap",
    "Machine",
    "Normal",
    "State",
    "Store",
    "derive",
    "evaluate",
    "is_terminal",
    "run_big_step",
    "step",
]
