# tests/test_runtime.py
"""
Tests for RuntimeConfig and the HeapRuntime façade.
"""

import pytest

from heapsem.allocator import HighWaterAllocator, LowestFitAllocator, ScatterAllocator
from heapsem.ast_nodes import ANum, Assign, HeapWrite, seq
from heapsem.errors import ConfigError
from heapsem.memory import State
from heapsem.outcome import ABORT, EXHAUSTED, Normal
from heapsem.runtime import AgreementReport, HeapRuntime, RuntimeConfig


class TestRuntimeConfig:

    def test_defaults_are_valid(self):
        assert RuntimeConfig().validate() == []

    @pytest.mark.parametrize("kwargs, fragment", [
        ({"fuel": 0}, "fuel"),
        ({"allocator": "best-fit"}, "unknown allocator"),
        ({"allocator_base": -1}, "allocator_base"),
        ({"history_limit": -2}, "history_limit"),
    ])
    def test_validation(self, kwargs, fragment):
        warnings = RuntimeConfig(**kwargs).validate()
        assert any(fragment in w for w in warnings)

    def test_unbounded_fuel_is_valid(self):
        assert RuntimeConfig(fuel=None).validate() == []

    def test_make_allocator(self):
        assert isinstance(RuntimeConfig().make_allocator(), LowestFitAllocator)
        hw = RuntimeConfig(allocator="high-water", allocator_base=8).make_allocator()
        assert isinstance(hw, HighWaterAllocator) and hw.base == 8
        sc = RuntimeConfig(allocator="scatter", seed=3).make_allocator()
        assert isinstance(sc, ScatterAllocator) and sc.seed == 3


class TestHeapRuntime:

    def test_invalid_config_raises(self):
        with pytest.raises(ConfigError) as info:
            HeapRuntime(RuntimeConfig(fuel=-5))
        assert info.value.code == "HSEM-5001"

    def test_evaluate_and_small_step(self, alloc_then_write):
        rt = HeapRuntime()
        assert rt.evaluate(alloc_then_write) == rt.run_small_step(alloc_then_write)

    def test_fuel_applies(self, diverging):
        rt = HeapRuntime(RuntimeConfig(fuel=100))
        assert rt.evaluate(diverging) is EXHAUSTED
        assert rt.run_small_step(diverging) is EXHAUSTED

    def test_derive(self, count_to_four):
        tree = HeapRuntime().derive(count_to_four)
        assert tree.outcome == Normal(State.initial({"x": 4}))

    def test_machine_uses_config(self, count_to_four):
        rt = HeapRuntime(RuntimeConfig(record_history=True, history_limit=3))
        m = rt.machine(count_to_four)
        m.run()
        assert len(m.history) == 3

    def test_explicit_allocator_wins(self, alloc_then_write):
        rt = HeapRuntime(allocator=HighWaterAllocator(base=100))
        out = rt.evaluate(alloc_then_write)
        assert out.state.lookup("x") == 100


class TestAgreement:

    def test_agree_normal(self, count_to_four):
        report = HeapRuntime().check_agreement(count_to_four)
        assert report.agree and report.conclusive
        assert report.steps > 0
        assert "AGREE" in report.summary()

    def test_agree_abort(self, double_free):
        report = HeapRuntime(RuntimeConfig(allocator="scatter", seed=2)).check_agreement(double_free)
        assert report.agree
        assert report.big_step is ABORT

    def test_inconclusive(self, diverging):
        report = HeapRuntime(RuntimeConfig(fuel=50)).check_agreement(diverging)
        assert not report.conclusive
        assert not report.agree
        assert "INCONCLUSIVE" in report.summary()
        assert len(report.notes) == 2

    def test_disagreement_summary(self):
        report = AgreementReport(
            big_step=Normal(State.initial({"x": 1})),
            small_step=Normal(State()),
        )
        assert report.conclusive and not report.agree
        assert "DISAGREE" in report.summary()

    def test_program_with_fault(self):
        prog = seq(Assign("x", ANum(1)), HeapWrite(ANum(1), ANum(2)))
        report = HeapRuntime().check_agreement(prog, State())
        assert report.agree
        assert report.small_step is ABORT


class TestOutcomeValues:

    def test_normal_is_immutable(self):
        out = Normal(State.initial({"x": 1}))
        with pytest.raises(AttributeError):
            out.state = State()
        with pytest.raises(AttributeError):
            del out.state
        assert out.state == State.initial({"x": 1})

    def test_normal_equality_and_hash(self):
        a, b = Normal(State.initial({"x": 1})), Normal(State.initial({"x": 1}))
        assert a == b and hash(a) == hash(b)
        assert a != ABORT
