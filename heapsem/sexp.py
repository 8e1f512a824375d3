"""
S-expression interchange for command ASTs and states.

Front-ends hand heapsem already-built ASTs; this module gives them (and the
CLI) a plain textual carrier for those ASTs, read and written with the
``sexpdata`` library.

Commands::

    (skip)
    (assign x A)                 x := A
    (write A_addr A_value)       [A_addr] := A_value
    (alloc x A1 A2)              x := cons(A1, A2)
    (free A)                     dispose(A)
    (seq C1 C2 ...)              right-nested sequence
    (if B C_then C_else)
    (while B C)

Arithmetic: integers, identifiers, ``(+ A A)``, ``(- A A)``, ``(* A A)``.
Booleans: ``true``, ``false``, ``(= A A)``, ``(<= A A)``, ``(not B)``,
``(and B B)``.

States::

    (state (store (x 1) (y 2)) (heap (1 5) (2 7)))

A program text may hold several top-level commands; they run in sequence.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Union

import sexpdata

from heapsem.ast_nodes import (
    SKIP,
    AExp,
    AId,
    AMinus,
    AMult,
    ANum,
    APlus,
    Assign,
    BAnd,
    BEq,
    BExp,
    BFalse,
    BLe,
    BNot,
    BTrue,
    Command,
    HeapAlloc,
    HeapFree,
    HeapWrite,
    If,
    Seq,
    Skip,
    While,
    seq,
)
from heapsem.errors import ErrorCodes, SexpSyntaxError
from heapsem.memory import Heap, State, Store

logger = logging.getLogger(__name__)

Symbol = sexpdata.Symbol


# ===================================================================
#  Reading
# ===================================================================

def _read_many(text: str) -> List[Any]:
    # sexpdata reads a single form; wrap the text so it yields a list of them.
    # nil/true are disabled so identifiers named ``t`` or ``nil`` stay symbols.
    try:
        return sexpdata.loads(f"({text}\n)", nil=None, true=None)
    except Exception as exc:
        raise SexpSyntaxError(f"unreadable S-expression: {exc}") from exc


def _symbol_name(obj: Any) -> Union[str, None]:
    if isinstance(obj, Symbol):
        value = getattr(obj, "value", None)
        return str(value() if callable(value) else obj)
    return None


def _head(form: Any) -> str:
    if not isinstance(form, list) or not form:
        raise SexpSyntaxError(
            "expected a parenthesised form", form=form,
            code=ErrorCodes.SEXP_UNKNOWN_FORM,
        )
    name = _symbol_name(form[0])
    if name is None:
        raise SexpSyntaxError(
            f"form head must be a symbol, got {form[0]!r}", form=form,
            code=ErrorCodes.SEXP_UNKNOWN_FORM,
        )
    return name


def _arity(form: List[Any], expected: int) -> List[Any]:
    args = form[1:]
    if len(args) != expected:
        raise SexpSyntaxError(
            f"({_head(form)} ...) takes {expected} operand(s), got {len(args)}",
            form=form, code=ErrorCodes.SEXP_ARITY,
        )
    return args


def _identifier(obj: Any) -> str:
    # string atoms are rejected: they would be written back as bare symbols
    name = _symbol_name(obj)
    if not name:
        raise SexpSyntaxError(
            f"expected an identifier, got {obj!r}", form=obj,
            code=ErrorCodes.SEXP_BAD_ATOM,
        )
    return name


def _natural(obj: Any) -> int:
    if isinstance(obj, bool) or not isinstance(obj, int) or obj < 0:
        raise SexpSyntaxError(
            f"expected a natural number, got {obj!r}", form=obj,
            code=ErrorCodes.SEXP_BAD_ATOM,
        )
    return obj


_ARITH_OPS: Dict[str, Callable[[AExp, AExp], AExp]] = {
    "+": APlus,
    "-": AMinus,
    "*": AMult,
}

_COMPARISONS: Dict[str, Callable[[AExp, AExp], BExp]] = {
    "=": BEq,
    "<=": BLe,
}


def read_arith(form: Any) -> AExp:
    if isinstance(form, int) and not isinstance(form, bool):
        return ANum(_natural(form))
    if not isinstance(form, list):
        return AId(_identifier(form))
    head = _head(form)
    if head in _ARITH_OPS:
        left, right = _arity(form, 2)
        return _ARITH_OPS[head](read_arith(left), read_arith(right))
    raise SexpSyntaxError(
        f"unknown arithmetic form {head!r}", form=form,
        code=ErrorCodes.SEXP_UNKNOWN_FORM,
    )


def read_bool(form: Any) -> BExp:
    if not isinstance(form, list):
        name = _symbol_name(form)
        if name == "true":
            return BTrue()
        if name == "false":
            return BFalse()
        raise SexpSyntaxError(
            f"expected a boolean, got {form!r}", form=form,
            code=ErrorCodes.SEXP_BAD_ATOM,
        )
    head = _head(form)
    if head in _COMPARISONS:
        left, right = _arity(form, 2)
        return _COMPARISONS[head](read_arith(left), read_arith(right))
    if head == "not":
        (operand,) = _arity(form, 1)
        return BNot(read_bool(operand))
    if head == "and":
        left, right = _arity(form, 2)
        return BAnd(read_bool(left), read_bool(right))
    raise SexpSyntaxError(
        f"unknown boolean form {head!r}", form=form,
        code=ErrorCodes.SEXP_UNKNOWN_FORM,
    )


def read_command(form: Any) -> Command:
    head = _head(form)
    if head == "skip":
        _arity(form, 0)
        return SKIP
    if head == "assign":
        name, expr = _arity(form, 2)
        return Assign(_identifier(name), read_arith(expr))
    if head == "write":
        addr, value = _arity(form, 2)
        return HeapWrite(read_arith(addr), read_arith(value))
    if head == "alloc":
        name, first, second = _arity(form, 3)
        return HeapAlloc(_identifier(name), read_arith(first), read_arith(second))
    if head == "free":
        (addr,) = _arity(form, 1)
        return HeapFree(read_arith(addr))
    if head == "seq":
        return seq(*[read_command(sub) for sub in form[1:]])
    if head == "if":
        cond, then, orelse = _arity(form, 3)
        return If(read_bool(cond), read_command(then), read_command(orelse))
    if head == "while":
        cond, body = _arity(form, 2)
        return While(read_bool(cond), read_command(body))
    raise SexpSyntaxError(
        f"unknown command {head!r}", form=form,
        code=ErrorCodes.SEXP_UNKNOWN_FORM,
    )


def loads(text: str) -> Command:
    """Read a program: one or more command forms, run in sequence."""
    forms = _read_many(text)
    if not forms:
        raise SexpSyntaxError("empty program", code=ErrorCodes.SEXP_UNKNOWN_FORM)
    return seq(*[read_command(form) for form in forms])


def read_source(path: Union[str, Path]) -> str:
    """Read a UTF-8 program or state file."""
    path = Path(path)
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise SexpSyntaxError(
            f"{path} is not valid UTF-8: {exc}",
            code=ErrorCodes.SEXP_UNREADABLE_FILE,
        ) from exc
    except OSError as exc:
        raise SexpSyntaxError(
            f"cannot read {path}: {exc}",
            code=ErrorCodes.SEXP_UNREADABLE_FILE,
        ) from exc


def load_program(path: Union[str, Path]) -> Command:
    logger.debug("reading program from %s", path)
    return loads(read_source(path))


def _bindings(form: List[Any], section: str) -> List[Any]:
    pairs = []
    for entry in form[1:]:
        if not isinstance(entry, list) or len(entry) != 2:
            raise SexpSyntaxError(
                f"{section} entries are (key value) pairs, got {entry!r}",
                form=entry, code=ErrorCodes.SEXP_ARITY,
            )
        pairs.append(entry)
    return pairs


def load_state(text: str) -> State:
    """Read ``(state (store ...) (heap ...))``; both sections are optional."""
    forms = _read_many(text)
    if len(forms) != 1 or _head(forms[0]) != "state":
        raise SexpSyntaxError(
            "expected a single (state ...) form", form=forms,
            code=ErrorCodes.SEXP_UNKNOWN_FORM,
        )
    store: Dict[str, int] = {}
    heap: Dict[int, int] = {}
    for section in forms[0][1:]:
        head = _head(section)
        if head == "store":
            for name, value in _bindings(section, "store"):
                store[_identifier(name)] = _natural(value)
        elif head == "heap":
            for addr, value in _bindings(section, "heap"):
                heap[_natural(addr)] = _natural(value)
        else:
            raise SexpSyntaxError(
                f"unknown state section {head!r}", form=section,
                code=ErrorCodes.SEXP_UNKNOWN_FORM,
            )
    return State(Store(store), Heap(heap))


# ===================================================================
#  Writing
# ===================================================================

_ARITH_NAMES = {APlus: "+", AMinus: "-", AMult: "*"}
_COMPARISON_NAMES = {BEq: "=", BLe: "<="}


def arith_to_sexp(a: AExp) -> Any:
    if isinstance(a, ANum):
        return a.value
    if isinstance(a, AId):
        return Symbol(a.name)
    op = _ARITH_NAMES.get(type(a))
    if op is None:
        raise TypeError(f"not an arithmetic expression: {a!r}")
    return [Symbol(op), arith_to_sexp(a.left), arith_to_sexp(a.right)]


def bool_to_sexp(b: BExp) -> Any:
    if isinstance(b, BTrue):
        return Symbol("true")
    if isinstance(b, BFalse):
        return Symbol("false")
    if isinstance(b, BNot):
        return [Symbol("not"), bool_to_sexp(b.operand)]
    if isinstance(b, BAnd):
        return [Symbol("and"), bool_to_sexp(b.left), bool_to_sexp(b.right)]
    op = _COMPARISON_NAMES.get(type(b))
    if op is None:
        raise TypeError(f"not a boolean expression: {b!r}")
    return [Symbol(op), arith_to_sexp(b.left), arith_to_sexp(b.right)]


def command_to_sexp(cmd: Command) -> Any:
    if isinstance(cmd, Skip):
        return [Symbol("skip")]
    if isinstance(cmd, Assign):
        return [Symbol("assign"), Symbol(cmd.name), arith_to_sexp(cmd.expr)]
    if isinstance(cmd, HeapWrite):
        return [Symbol("write"), arith_to_sexp(cmd.addr), arith_to_sexp(cmd.value)]
    if isinstance(cmd, HeapAlloc):
        return [
            Symbol("alloc"), Symbol(cmd.name),
            arith_to_sexp(cmd.first), arith_to_sexp(cmd.second),
        ]
    if isinstance(cmd, HeapFree):
        return [Symbol("free"), arith_to_sexp(cmd.addr)]
    if isinstance(cmd, Seq):
        # flatten the right spine: (seq c1 c2 c3) rather than nested seqs
        items = [Symbol("seq")]
        while isinstance(cmd, Seq):
            items.append(command_to_sexp(cmd.first))
            cmd = cmd.second
        items.append(command_to_sexp(cmd))
        return items
    if isinstance(cmd, If):
        return [
            Symbol("if"), bool_to_sexp(cmd.cond),
            command_to_sexp(cmd.then), command_to_sexp(cmd.orelse),
        ]
    if isinstance(cmd, While):
        return [Symbol("while"), bool_to_sexp(cmd.cond), command_to_sexp(cmd.body)]
    raise TypeError(f"not a command: {cmd!r}")


def dumps(cmd: Command) -> str:
    return sexpdata.dumps(command_to_sexp(cmd))


def dump_state(state: State) -> str:
    form = [
        Symbol("state"),
        [Symbol("store")] + [[Symbol(k), v] for k, v in state.store.items()],
        [Symbol("heap")] + [[a, v] for a, v in state.heap.items()],
    ]
    return sexpdata.dumps(form)
