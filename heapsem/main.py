#!/usr/bin/env python3
"""heapsem/main.py: CLI entry-point.

Usage examples
--------------
    # Big-step evaluation of a program, starting from x = 3
    python -m heapsem run program.sexp --store x=3

    # Print every small-step configuration
    python -m heapsem trace program.sexp --max-steps 200

    # Run both evaluators and compare
    python -m heapsem check program.sexp --allocator scatter --seed 4

    # Initial state from a file
    python -m heapsem run program.sexp --state init.sexp --format json

Exit codes
----------
    0   Program finished normally.
    1   Program aborted (memory fault).
    2   Infrastructure failure (missing file, malformed program, bad option).
    3   Fuel exhausted, or the two evaluators disagree.

The module doubles as ``python -m heapsem`` via the companion
``heapsem/__main__.py`` which simply calls :func:`main`.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence, TextIO

from heapsem import __version__
from heapsem.allocator import available_allocators
from heapsem.errors import HeapsemError
from heapsem.memory import State
from heapsem.outcome import ABORT, EXHAUSTED, Normal, Result, describe
from heapsem.runtime import HeapRuntime, RuntimeConfig
from heapsem import sexp

_log = logging.getLogger("heapsem")

EXIT_OK: int = 0
EXIT_ABORT: int = 1
EXIT_INFRA: int = 2
EXIT_INCONCLUSIVE: int = 3


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the ``heapsem`` logger.  0 → WARNING, 1 → INFO, 2+ → DEBUG."""
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    handler._heapsem_cli = True  # type: ignore[attr-defined]
    root = logging.getLogger("heapsem")
    # main() may run several times in one process; keep a single CLI handler
    for old in [h for h in root.handlers if getattr(h, "_heapsem_cli", False)]:
        root.removeHandler(old)
    root.setLevel(level)
    root.addHandler(handler)


def _resolve_path(raw: str, label: str = "file") -> Path:
    """Resolve *raw* to an absolute ``Path``, exiting on missing files."""
    p = Path(raw).expanduser().resolve()
    if not p.exists():
        _log.error("%s not found: %s", label, p)
        raise SystemExit(EXIT_INFRA)
    return p


def _parse_bindings(raw: List[str]) -> Dict[str, int]:
    bindings: Dict[str, int] = {}
    for item in raw:
        name, sep, value = item.partition("=")
        if not sep or not name or not value.isdigit():
            _log.error("bad --store binding %r (expected NAME=NAT)", item)
            raise SystemExit(EXIT_INFRA)
        bindings[name] = int(value)
    return bindings


def _initial_state(args: argparse.Namespace) -> State:
    state = State()
    if args.state:
        path = _resolve_path(args.state, "state file")
        state = sexp.load_state(sexp.read_source(path))
    if args.store:
        store = state.store
        for name, value in _parse_bindings(args.store).items():
            store = store.update(name, value)
        state = state.with_store(store)
    return state


def _runtime(args: argparse.Namespace) -> HeapRuntime:
    config = RuntimeConfig(
        fuel=None if args.fuel == 0 else args.fuel,
        allocator=args.allocator,
        allocator_base=args.base,
        seed=args.seed,
    )
    return HeapRuntime(config)


def _emit_result(result: Result, fmt: str, stream: TextIO) -> None:
    if fmt == "json":
        stream.write(json.dumps(describe(result), sort_keys=True) + "\n")
    elif fmt == "sexp" and isinstance(result, Normal):
        stream.write(sexp.dump_state(result.state) + "\n")
    else:
        stream.write(f"{result!r}\n")


def _exit_code(result: Result) -> int:
    if result is ABORT:
        return EXIT_ABORT
    if result is EXHAUSTED:
        return EXIT_INCONCLUSIVE
    return EXIT_OK


# ===========================================================================
# Sub-command implementations
# ===========================================================================

def cmd_run(args: argparse.Namespace) -> int:
    """Big-step evaluation of a program."""
    program = sexp.load_program(_resolve_path(args.program, "program"))
    state = _initial_state(args)
    rt = _runtime(args)
    _log.info("Evaluating %s with %r", args.program, rt.allocator)
    result = rt.evaluate(program, state)
    if result is EXHAUSTED:
        _log.warning("Fuel exhausted after %d rule applications.", rt.config.fuel)
    _emit_result(result, args.format, sys.stdout)
    return _exit_code(result)


def cmd_trace(args: argparse.Namespace) -> int:
    """Print every small-step configuration of a program."""
    program = sexp.load_program(_resolve_path(args.program, "program"))
    state = _initial_state(args)
    rt = _runtime(args)
    machine = rt.machine(program, state)

    limit = args.max_steps or rt.config.fuel
    out = sys.stdout
    out.write(f"[0] {sexp.dumps(machine.configuration.command)}\n")
    while not machine.is_terminal:
        if limit and machine.steps_taken >= limit:
            _log.warning("Stopped after %d steps.", machine.steps_taken)
            return EXIT_INCONCLUSIVE
        config = machine.step()
        if config.outcome is ABORT:
            label = "abort"
        else:
            label = sexp.dump_state(config.outcome.state)
        out.write(f"[{machine.steps_taken}] {sexp.dumps(config.command)}  {label}\n")
    result = machine.configuration.outcome
    _emit_result(result, args.format, out)
    return _exit_code(result)


def cmd_check(args: argparse.Namespace) -> int:
    """Run both evaluators and compare their outcomes."""
    program = sexp.load_program(_resolve_path(args.program, "program"))
    state = _initial_state(args)
    rt = _runtime(args)
    report = rt.check_agreement(program, state)
    sys.stdout.write(report.summary() + "\n")
    if not report.agree:
        return EXIT_INCONCLUSIVE
    return _exit_code(report.big_step)


# ===========================================================================
# Argument parser
# ===========================================================================

def _add_runtime_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "program",
        metavar="PROGRAM",
        help="Program file (S-expression commands).",
    )
    p.add_argument(
        "--store",
        action="append",
        default=[],
        metavar="NAME=NAT",
        help="Initial store binding (repeatable).",
    )
    p.add_argument(
        "--state",
        default=None,
        metavar="FILE",
        help="Initial state file: (state (store ...) (heap ...)).",
    )
    p.add_argument(
        "--fuel",
        type=int,
        default=RuntimeConfig.fuel,
        metavar="N",
        help="Evaluation budget; 0 for unbounded (default: %(default)s).",
    )
    p.add_argument(
        "--allocator",
        choices=available_allocators(),
        default=RuntimeConfig.allocator,
        help="Fresh-address policy (default: %(default)s).",
    )
    p.add_argument(
        "--base",
        type=int,
        default=RuntimeConfig.allocator_base,
        metavar="ADDR",
        help="Lowest address handed out by lowest-fit/high-water.",
    )
    p.add_argument(
        "--seed",
        type=int,
        default=RuntimeConfig.seed,
        help="Seed for the scatter allocator.",
    )
    p.add_argument(
        "-f", "--format",
        choices=["text", "json", "sexp"],
        default="text",
        help="Result format (default: text).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="heapsem",
        description="Big-step and small-step evaluation of Imp with a heap.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v info, -vv debug).",
    )
    subparsers = parser.add_subparsers(title="commands")

    p_run = subparsers.add_parser(
        "run",
        help="Evaluate a program with the big-step semantics.",
    )
    _add_runtime_args(p_run)
    p_run.set_defaults(func=cmd_run)

    p_trace = subparsers.add_parser(
        "trace",
        help="Print every small-step configuration.",
    )
    _add_runtime_args(p_trace)
    p_trace.add_argument(
        "--max-steps",
        type=int,
        default=0,
        metavar="N",
        help="Stop after N steps (0: bounded only by --fuel).",
    )
    p_trace.set_defaults(func=cmd_trace)

    p_check = subparsers.add_parser(
        "check",
        help="Run both semantics and report whether they agree.",
    )
    _add_runtime_args(p_check)
    p_check.set_defaults(func=cmd_check)

    return parser


# ===========================================================================
# Main entry point
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the heapsem CLI and return its exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help(sys.stderr)
        return EXIT_INFRA

    try:
        return args.func(args)
    except HeapsemError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_INFRA
    except Exception as exc:
        _log.error("Unhandled exception: %s", exc, exc_info=True)
        return EXIT_INFRA


if __name__ == "__main__":
    raise SystemExit(main())
