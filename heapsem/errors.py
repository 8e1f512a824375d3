# heapsem/errors.py
"""
Exception hierarchy and structured error codes for heapsem.

The only *modeled* fault of the language, the memory fault produced by
writing to or freeing an address outside the heap domain, is an outcome
value (:data:`heapsem.outcome.ABORT`) and never an exception.  The classes
below cover everything else: malformed interchange text, invalid runtime
configuration, and engine defects that must never occur for a well-formed
program.

Error Hierarchy:
────────────────
    HeapsemError (base)
    ├── SexpSyntaxError           - Malformed S-expression program/state
    ├── ConfigError               - Invalid RuntimeConfig
    ├── FuelExhaustedError        - derive() ran out of fuel
    └── InternalError             - Engine defects (should never happen)
        ├── StuckConfigurationError
        └── AllocatorContractError

Error Codes:
────────────
Each error has a code of the form HSEM-XXXX:
  - 1000-1999: Interchange (S-expression) errors
  - 5000-5999: Runtime errors
  - 9000-9999: Internal errors
"""

from __future__ import annotations

from enum import Enum, unique
from typing import Any, Optional


@unique
class ErrorPhase(Enum):
    """Phase of the pipeline in which an error was raised."""
    INTERCHANGE = "interchange"
    RUNTIME = "runtime"
    INTERNAL = "internal"


class ErrorCode:
    """
    Structured error code ``HSEM-NNNN``.

    Codes compare equal to their string form so tests and callers can
    write ``err.code == "HSEM-1001"``.
    """

    __slots__ = ("prefix", "number", "phase", "title")

    def __init__(
        self,
        number: int,
        phase: ErrorPhase,
        title: str,
        prefix: str = "HSEM",
    ) -> None:
        self.prefix = prefix
        self.number = number
        self.phase = phase
        self.title = title

    @property
    def code(self) -> str:
        return f"{self.prefix}-{self.number:04d}"

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"ErrorCode({self.code!r}, {self.title!r})"

    def __hash__(self) -> int:
        return hash((self.prefix, self.number))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ErrorCode):
            return self.prefix == other.prefix and self.number == other.number
        if isinstance(other, str):
            return self.code == other
        return False


class ErrorCodes:
    """Predefined error codes."""

    # Interchange (1000-1999)
    SEXP_UNREADABLE = ErrorCode(1001, ErrorPhase.INTERCHANGE, "unreadable S-expression")
    SEXP_UNKNOWN_FORM = ErrorCode(1002, ErrorPhase.INTERCHANGE, "unknown form")
    SEXP_ARITY = ErrorCode(1003, ErrorPhase.INTERCHANGE, "wrong number of operands")
    SEXP_BAD_ATOM = ErrorCode(1004, ErrorPhase.INTERCHANGE, "bad atom")
    SEXP_UNREADABLE_FILE = ErrorCode(1005, ErrorPhase.INTERCHANGE, "unreadable source file")

    # Runtime (5000-5999)
    CONFIG_INVALID = ErrorCode(5001, ErrorPhase.RUNTIME, "invalid runtime configuration")
    FUEL_EXHAUSTED = ErrorCode(5002, ErrorPhase.RUNTIME, "fuel exhausted")

    # Internal (9000-9999)
    INTERNAL_ERROR = ErrorCode(9000, ErrorPhase.INTERNAL, "internal error")
    STUCK_CONFIGURATION = ErrorCode(9001, ErrorPhase.INTERNAL, "no step rule applies")
    ALLOCATOR_CONTRACT = ErrorCode(9002, ErrorPhase.INTERNAL, "allocator returned a non-fresh pair")


class HeapsemError(Exception):
    """Base exception for all heapsem errors."""

    default_code: ErrorCode = ErrorCodes.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        hint: str = "",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.hint = hint

    def __str__(self) -> str:
        text = f"{self.code}: {self.message}"
        if self.hint:
            text += f" (hint: {self.hint})"
        return text


class SexpSyntaxError(HeapsemError):
    """Raised when an S-expression program or state is malformed."""

    default_code = ErrorCodes.SEXP_UNREADABLE

    def __init__(
        self,
        message: str,
        form: Any = None,
        code: Optional[ErrorCode] = None,
        hint: str = "",
    ) -> None:
        super().__init__(message, code=code, hint=hint)
        self.form = form


class ConfigError(HeapsemError):
    """Raised for an invalid :class:`heapsem.runtime.RuntimeConfig`."""

    default_code = ErrorCodes.CONFIG_INVALID


class FuelExhaustedError(HeapsemError):
    """Raised by :func:`heapsem.bigstep.derive` when its fuel runs out."""

    default_code = ErrorCodes.FUEL_EXHAUSTED

    def __init__(self, fuel: int) -> None:
        super().__init__(f"derivation exceeded {fuel} rule applications")
        self.fuel = fuel


class InternalError(HeapsemError):
    """Engine defect.  Reaching one of these is a bug in heapsem."""


class StuckConfigurationError(InternalError):
    """Raised when a non-terminal configuration has no applicable step rule."""

    default_code = ErrorCodes.STUCK_CONFIGURATION

    def __init__(self, configuration: Any) -> None:
        super().__init__(f"no step rule applies to {configuration!r}")
        self.configuration = configuration


class AllocatorContractError(InternalError):
    """Raised when an allocator policy picks an address pair already in use."""

    default_code = ErrorCodes.ALLOCATOR_CONTRACT

    def __init__(self, policy: Any, address: Any) -> None:
        super().__init__(
            f"{policy!r} chose {address!r}, which is not a fresh address pair"
        )
        self.policy = policy
        self.address = address
