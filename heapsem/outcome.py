"""
Evaluation outcomes.

    Normal(state)   evaluation finished with *state*
    ABORT           memory fault: write or free outside the heap domain
    EXHAUSTED       a fuel-bounded driver gave up before finishing

``ABORT`` is terminal and absorbs every enclosing construct.  ``EXHAUSTED``
is never produced by the semantics themselves, only by the fuel wrappers,
and is deliberately a different object so the two can never be confused.
"""

from __future__ import annotations

from typing import Union

from heapsem.memory import State


class Normal:
    """Successful outcome carrying the final state."""

    __slots__ = ("state",)

    def __init__(self, state: State) -> None:
        object.__setattr__(self, "state", state)

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError("Normal is immutable")

    def __delattr__(self, name: str) -> None:
        raise AttributeError("Normal is immutable")

    def __reduce__(self):
        return (Normal, (self.state,))

    @property
    def is_abort(self) -> bool:
        return False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Normal):
            return NotImplemented
        return self.state == other.state

    def __hash__(self) -> int:
        return hash(("normal", self.state))

    def __repr__(self) -> str:
        return f"Normal({self.state!r})"


class _Abort:
    """The memory-fault outcome.  Use the ``ABORT`` singleton."""

    __slots__ = ()
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def is_abort(self) -> bool:
        return True

    def __reduce__(self):
        return (_Abort, ())

    def __repr__(self) -> str:
        return "Abort"


class _Exhausted:
    """Fuel ran out.  Use the ``EXHAUSTED`` singleton."""

    __slots__ = ()
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __reduce__(self):
        return (_Exhausted, ())

    def __repr__(self) -> str:
        return "Exhausted"


ABORT = _Abort()
EXHAUSTED = _Exhausted()

# A configuration's outcome component
Outcome = Union[Normal, _Abort]
# What a fuel-bounded driver returns
Result = Union[Normal, _Abort, _Exhausted]


def is_abort(outcome: object) -> bool:
    return outcome is ABORT


def is_exhausted(result: object) -> bool:
    return result is EXHAUSTED


def describe(result: object) -> dict:
    """JSON-friendly summary of a result."""
    if isinstance(result, Normal):
        return {"outcome": "normal", **result.state.to_dict()}
    if result is ABORT:
        return {"outcome": "abort"}
    if result is EXHAUSTED:
        return {"outcome": "exhausted"}
    raise TypeError(f"not an outcome: {result!r}")
