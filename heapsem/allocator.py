"""
Fresh-address allocation policies.

``HeapAlloc`` may place its two cells at any ``n`` with ``n`` and ``n + 1``
both outside the heap domain.  The choice is delegated to an injectable
policy so evaluation stays reproducible.  Policies must be stateless, i.e.
a function of the heap alone, so the big-step and small-step evaluators
pick the same address for the same heap.
"""

from __future__ import annotations

import hashlib
from typing import Callable, Dict

from heapsem.errors import AllocatorContractError
from heapsem.memory import Heap


class AllocatorPolicy:
    """Base class: ``choose(heap)`` returns the first address of a fresh pair."""

    name = "abstract"

    def choose(self, heap: Heap) -> int:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class LowestFitAllocator(AllocatorPolicy):
    """Smallest ``n >= base`` such that ``n`` and ``n + 1`` are both free."""

    name = "lowest-fit"

    def __init__(self, base: int = 1) -> None:
        if base < 0:
            raise ValueError("base must be non-negative")
        self.base = base

    def choose(self, heap: Heap) -> int:
        n = self.base
        while heap.in_domain(n) or heap.in_domain(n + 1):
            n += 1
        return n

    def __repr__(self) -> str:
        return f"LowestFitAllocator(base={self.base})"


class HighWaterAllocator(AllocatorPolicy):
    """Allocate just past the highest allocated address (``base`` when empty)."""

    name = "high-water"

    def __init__(self, base: int = 1) -> None:
        if base < 0:
            raise ValueError("base must be non-negative")
        self.base = base

    def choose(self, heap: Heap) -> int:
        if not len(heap):
            return self.base
        return max(max(heap.domain()) + 1, self.base)

    def __repr__(self) -> str:
        return f"HighWaterAllocator(base={self.base})"


class ScatterAllocator(AllocatorPolicy):
    """
    Start from a point derived from ``seed`` and the heap domain, then probe
    upward to the first fresh pair.

    Used by tests to make sure nothing depends on a particular address.
    """

    name = "scatter"

    def __init__(self, seed: int = 0, span: int = 1 << 16) -> None:
        if span <= 0:
            raise ValueError("span must be positive")
        self.seed = seed
        self.span = span

    def choose(self, heap: Heap) -> int:
        digest = hashlib.sha256(
            f"{self.seed}:{sorted(heap.domain())}".encode("utf-8")
        ).digest()
        n = int.from_bytes(digest[:8], "big") % self.span
        while heap.in_domain(n) or heap.in_domain(n + 1):
            n += 1
        return n

    def __repr__(self) -> str:
        return f"ScatterAllocator(seed={self.seed}, span={self.span})"


DEFAULT_ALLOCATOR: AllocatorPolicy = LowestFitAllocator()

_REGISTRY: Dict[str, Callable[..., AllocatorPolicy]] = {
    LowestFitAllocator.name: LowestFitAllocator,
    HighWaterAllocator.name: HighWaterAllocator,
    ScatterAllocator.name: ScatterAllocator,
}


def available_allocators() -> list:
    return sorted(_REGISTRY)


def get_allocator(name: str, **kwargs) -> AllocatorPolicy:
    """Instantiate a registered policy by name."""
    try:
        factory = _REGISTRY[name]
    except KeyError:
        raise ValueError(
            f"unknown allocator {name!r}; choose from {available_allocators()}"
        ) from None
    return factory(**kwargs)


def fresh_pair(policy: AllocatorPolicy, heap: Heap) -> int:
    """Ask *policy* for an address and verify that the pair is fresh."""
    n = policy.choose(heap)
    if not isinstance(n, int) or n < 0 or heap.in_domain(n) or heap.in_domain(n + 1):
        raise AllocatorContractError(policy, n)
    return n
