# tests/test_allocator.py
"""
Tests for fresh-address allocation policies.
"""

import pytest

from heapsem.allocator import (
    AllocatorPolicy,
    HighWaterAllocator,
    LowestFitAllocator,
    ScatterAllocator,
    available_allocators,
    fresh_pair,
    get_allocator,
)
from heapsem.errors import AllocatorContractError
from heapsem.memory import Heap

HEAPS = [
    Heap(),
    Heap.of({1: 0}),
    Heap.of({1: 0, 2: 0, 4: 0}),
    Heap.of({n: n for n in range(0, 20, 3)}),
]


@pytest.mark.parametrize("policy", [
    LowestFitAllocator(),
    LowestFitAllocator(base=0),
    HighWaterAllocator(),
    ScatterAllocator(seed=1),
    ScatterAllocator(seed=2, span=8),
])
@pytest.mark.parametrize("heap", HEAPS)
def test_every_policy_returns_fresh_pair(policy, heap):
    n = fresh_pair(policy, heap)
    assert not heap.in_domain(n)
    assert not heap.in_domain(n + 1)


class TestLowestFit:

    def test_empty_heap_uses_base(self):
        assert LowestFitAllocator().choose(Heap()) == 1
        assert LowestFitAllocator(base=0).choose(Heap()) == 0

    def test_skips_single_gaps(self):
        # 3 is free but 4 is taken, so the first fitting pair is 5, 6
        heap = Heap.of({1: 0, 2: 0, 4: 0})
        assert LowestFitAllocator().choose(heap) == 5

    def test_reuses_freed_pair(self):
        heap = Heap.of({3: 0, 4: 0})
        assert LowestFitAllocator().choose(heap) == 1


class TestHighWater:

    def test_allocates_past_maximum(self):
        assert HighWaterAllocator().choose(Heap.of({1: 0, 7: 0})) == 8

    def test_empty_heap(self):
        assert HighWaterAllocator(base=10).choose(Heap()) == 10


class TestScatter:

    def test_deterministic(self):
        heap = Heap.of({5: 0})
        assert ScatterAllocator(seed=3).choose(heap) == ScatterAllocator(seed=3).choose(heap)

    def test_depends_only_on_heap(self):
        policy = ScatterAllocator(seed=9)
        first = policy.choose(Heap.of({2: 0}))
        policy.choose(Heap.of({100: 0}))
        assert policy.choose(Heap.of({2: 0})) == first


class TestRegistry:

    def test_names(self):
        assert available_allocators() == ["high-water", "lowest-fit", "scatter"]

    def test_get_allocator(self):
        policy = get_allocator("lowest-fit", base=4)
        assert isinstance(policy, LowestFitAllocator)
        assert policy.base == 4

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="unknown allocator"):
            get_allocator("first-fit")


class TestContract:

    def test_non_fresh_choice_is_reported(self):
        class Broken(AllocatorPolicy):
            def choose(self, heap):
                return 1

        with pytest.raises(AllocatorContractError) as info:
            fresh_pair(Broken(), Heap.of({2: 0}))
        assert info.value.code == "HSEM-9002"
