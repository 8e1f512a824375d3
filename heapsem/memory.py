"""
memory.py: Store, Heap and State for the heap-extended Imp language
=====================================================================

  Store: total mapping identifier → nat (unbound identifiers read 0)
  Heap:  partial mapping address → nat; domain = allocated addresses
  State: immutable (Store, Heap) pair

All three are immutable values.  Every "update" returns a new object and
leaves the receiver untouched, so states captured at different points of an
evaluation never alias one another.  Both mappings are sparse dicts: a heap
address is "not in the domain" exactly when its key is absent.

Usage
-----
    from heapsem.memory import Heap, State, Store

    st = Store().update("x", 3)
    h = Heap.of({1: 5, 2: 7})
    state = State(st, h)
    state.lookup("x")          # 3
    state.heap.in_domain(3)    # False

Heap algebra
------------
    heap_union(h1, h2)      left-biased union
    heap_disjoint(h1, h2)   no address in common (symmetric)
    heap_subset(h1, h2)     every cell of h1 is a cell of h2
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Iterator, Mapping, Optional, Tuple

DEFAULT_VALUE = 0


def _check_nat(value: int, what: str) -> int:
    # bool is an int subclass; reject it so True never becomes a cell value
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{what} must be a natural number, got {value!r}")
    if value < 0:
        raise ValueError(f"{what} must be a natural number, got {value}")
    return value


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class Store:
    """
    Total, immutable mapping from identifiers to natural numbers.

    Bindings equal to the default value are never materialised, so two
    stores compare equal exactly when they agree on every identifier.
    """

    __slots__ = ("_vars", "_hash")

    def __init__(self, bindings: Optional[Mapping[str, int]] = None) -> None:
        cells: Dict[str, int] = {}
        for name, value in (bindings or {}).items():
            _check_nat(value, f"store value for {name!r}")
            if value != DEFAULT_VALUE:
                cells[name] = value
        self._vars = cells
        self._hash: Optional[int] = None

    @classmethod
    def of(cls, bindings: Mapping[str, int]) -> "Store":
        return cls(bindings)

    def lookup(self, name: str) -> int:
        return self._vars.get(name, DEFAULT_VALUE)

    def update(self, name: str, value: int) -> "Store":
        _check_nat(value, f"store value for {name!r}")
        new = Store.__new__(Store)
        cells = dict(self._vars)
        if value == DEFAULT_VALUE:
            cells.pop(name, None)
        else:
            cells[name] = value
        new._vars = cells
        new._hash = None
        return new

    def bound(self) -> FrozenSet[str]:
        """Identifiers holding a non-default value."""
        return frozenset(self._vars)

    def items(self) -> Iterator[Tuple[str, int]]:
        return iter(sorted(self._vars.items()))

    def to_dict(self) -> Dict[str, int]:
        return dict(self._vars)

    def __getitem__(self, name: str) -> int:
        return self.lookup(name)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Store):
            return NotImplemented
        return self._vars == other._vars

    def __hash__(self) -> int:
        if self._hash is None:
            self._hash = hash(frozenset(self._vars.items()))
        return self._hash

    def __repr__(self) -> str:
        inner = ", ".join(f"{k}={v}" for k, v in self.items())
        return f"Store({inner})"


# ---------------------------------------------------------------------------
# Heap
# ---------------------------------------------------------------------------

class Heap:
    """
    Partial, immutable mapping from addresses to natural-number contents.

    ``write`` is unconditional: callers check ``in_domain`` first.  The
    evaluators turn a failed membership check into the Abort outcome.
    """

    __slots__ = ("_cells", "_hash")

    def __init__(self, cells: Optional[Mapping[int, int]] = None) -> None:
        checked: Dict[int, int] = {}
        for addr, value in (cells or {}).items():
            _check_nat(addr, "heap address")
            checked[addr] = _check_nat(value, f"content of address {addr}")
        self._cells = checked
        self._hash: Optional[int] = None

    @classmethod
    def of(cls, cells: Mapping[int, int]) -> "Heap":
        return cls(cells)

    @classmethod
    def _from_trusted(cls, cells: Dict[int, int]) -> "Heap":
        new = cls.__new__(cls)
        new._cells = cells
        new._hash = None
        return new

    def lookup(self, addr: int) -> Optional[int]:
        return self._cells.get(addr)

    def in_domain(self, addr: int) -> bool:
        return addr in self._cells

    def domain(self) -> FrozenSet[int]:
        return frozenset(self._cells)

    def write(self, addr: int, value: int) -> "Heap":
        _check_nat(addr, "heap address")
        _check_nat(value, f"content of address {addr}")
        cells = dict(self._cells)
        cells[addr] = value
        return Heap._from_trusted(cells)

    def free(self, addr: int) -> "Heap":
        cells = dict(self._cells)
        cells.pop(addr, None)
        return Heap._from_trusted(cells)

    def union(self, other: "Heap") -> "Heap":
        """Left-biased union: on overlap the cell of ``self`` wins."""
        cells = dict(other._cells)
        cells.update(self._cells)
        return Heap._from_trusted(cells)

    def disjoint(self, other: "Heap") -> bool:
        small, large = sorted((self._cells, other._cells), key=len)
        return not any(addr in large for addr in small)

    def subset(self, other: "Heap") -> bool:
        return all(
            addr in other._cells and other._cells[addr] == value
            for addr, value in self._cells.items()
        )

    def items(self) -> Iterator[Tuple[int, int]]:
        return iter(sorted(self._cells.items()))

    def to_dict(self) -> Dict[int, int]:
        return dict(self._cells)

    def __len__(self) -> int:
        return len(self._cells)

    def __contains__(self, addr: object) -> bool:
        return addr in self._cells

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Heap):
            return NotImplemented
        return self._cells == other._cells

    def __hash__(self) -> int:
        if self._hash is None:
            self._hash = hash(frozenset(self._cells.items()))
        return self._hash

    def __repr__(self) -> str:
        inner = ", ".join(f"{a}: {v}" for a, v in self.items())
        return f"Heap({{{inner}}})"


EMPTY_HEAP = Heap()


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------

class State:
    """A (store, heap) pair.  Immutable; every transition builds a new one."""

    __slots__ = ("store", "heap")

    def __init__(self, store: Optional[Store] = None, heap: Optional[Heap] = None) -> None:
        object.__setattr__(self, "store", store if store is not None else Store())
        object.__setattr__(self, "heap", heap if heap is not None else EMPTY_HEAP)

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError("State is immutable")

    @classmethod
    def initial(
        cls,
        store: Optional[Mapping[str, int]] = None,
        heap: Optional[Mapping[int, int]] = None,
    ) -> "State":
        return cls(Store(store), Heap(heap))

    def with_store(self, store: Store) -> "State":
        return State(store, self.heap)

    def with_heap(self, heap: Heap) -> "State":
        return State(self.store, heap)

    # Queries for external assertion oracles
    def lookup(self, name: str) -> int:
        return self.store.lookup(name)

    def load(self, addr: int) -> Optional[int]:
        return self.heap.lookup(addr)

    def in_domain(self, addr: int) -> bool:
        return self.heap.in_domain(addr)

    def to_dict(self) -> Dict[str, Dict]:
        return {
            "store": self.store.to_dict(),
            "heap": {str(a): v for a, v in self.heap.items()},
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, State):
            return NotImplemented
        return self.store == other.store and self.heap == other.heap

    def __hash__(self) -> int:
        return hash((self.store, self.heap))

    def __repr__(self) -> str:
        return f"State({self.store!r}, {self.heap!r})"


# ---------------------------------------------------------------------------
# Function-style primitives
# ---------------------------------------------------------------------------

def lookup_store(store: Store, name: str) -> int:
    return store.lookup(name)


def update_store(store: Store, name: str, value: int) -> Store:
    return store.update(name, value)


def lookup_heap(heap: Heap, addr: int) -> Optional[int]:
    return heap.lookup(addr)


def in_domain(heap: Heap, addr: int) -> bool:
    return heap.in_domain(addr)


def write_heap(heap: Heap, addr: int, value: int) -> Heap:
    return heap.write(addr, value)


def free_heap(heap: Heap, addr: int) -> Heap:
    return heap.free(addr)


def heap_union(h1: Heap, h2: Heap) -> Heap:
    return h1.union(h2)


def heap_disjoint(h1: Heap, h2: Heap) -> bool:
    return h1.disjoint(h2)


def heap_subset(h1: Heap, h2: Heap) -> bool:
    return h1.subset(h2)
