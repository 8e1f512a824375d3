# tests/test_sexp.py
"""
Tests for the S-expression interchange of programs and states.
"""

import textwrap

import pytest

from heapsem import sexp
from heapsem.ast_nodes import (
    SKIP,
    AId,
    AMinus,
    AMult,
    ANum,
    APlus,
    Assign,
    BAnd,
    BEq,
    BFalse,
    BLe,
    BNot,
    BTrue,
    HeapAlloc,
    HeapFree,
    HeapWrite,
    If,
    Seq,
    While,
    seq,
)
from heapsem.errors import SexpSyntaxError
from heapsem.memory import State


class TestReadCommands:

    def test_atoms(self):
        assert sexp.loads("(skip)") == SKIP
        assert sexp.loads("(assign x 3)") == Assign("x", ANum(3))
        assert sexp.loads("(assign x y)") == Assign("x", AId("y"))

    def test_heap_commands(self):
        assert sexp.loads("(alloc p 1 2)") == HeapAlloc("p", ANum(1), ANum(2))
        assert sexp.loads("(write p 9)") == HeapWrite(AId("p"), ANum(9))
        assert sexp.loads("(write (+ p 1) 9)") == HeapWrite(APlus(AId("p"), ANum(1)), ANum(9))
        assert sexp.loads("(free x)") == HeapFree(AId("x"))

    def test_arithmetic(self):
        assert sexp.read_arith(sexp._read_many("(* (- x 1) 2)")[0]) == AMult(
            AMinus(AId("x"), ANum(1)), ANum(2)
        )

    def test_control(self):
        text = "(while (<= x 3) (assign x (+ x 1)))"
        assert sexp.loads(text) == While(
            BLe(AId("x"), ANum(3)), Assign("x", APlus(AId("x"), ANum(1)))
        )
        text = "(if (and (not (= x 0)) true) (skip) (free 1))"
        assert sexp.loads(text) == If(
            BAnd(BNot(BEq(AId("x"), ANum(0))), BTrue()), SKIP, HeapFree(ANum(1))
        )

    def test_sequences(self):
        expected = seq(Assign("x", ANum(1)), Assign("y", ANum(2)), SKIP)
        assert sexp.loads("(seq (assign x 1) (assign y 2) (skip))") == expected
        assert sexp.loads("(assign x 1) (assign y 2) (skip)") == expected
        assert sexp.loads("(seq)") == SKIP

    def test_comments(self):
        text = textwrap.dedent("""\
            ; build a cell
            (alloc x 1 2)
            (write x 9)   ; overwrite the first field
        """)
        assert sexp.loads(text) == Seq(
            HeapAlloc("x", ANum(1), ANum(2)), HeapWrite(AId("x"), ANum(9))
        )

    def test_identifier_named_t(self):
        assert sexp.loads("(assign t nil)") == Assign("t", AId("nil"))


class TestReadErrors:

    @pytest.mark.parametrize("text, code", [
        ("(assign x", "HSEM-1001"),
        ("(jump 3)", "HSEM-1002"),
        ("(assign x 1 2)", "HSEM-1003"),
        ("(assign x -1)", "HSEM-1004"),
        ("(free 1.5)", "HSEM-1004"),
        ("(if 1 (skip) (skip))", "HSEM-1004"),
        ('(assign "x y" 1)', "HSEM-1004"),
        ('(assign x (+ "y" 1))', "HSEM-1004"),
        ('(alloc "p" 1 2)', "HSEM-1004"),
        ("", "HSEM-1002"),
        ("skip", "HSEM-1002"),
    ])
    def test_malformed(self, text, code):
        with pytest.raises(SexpSyntaxError) as info:
            sexp.loads(text)
        assert info.value.code == code


class TestWrite:

    def test_dumps_reads_back(self, count_to_four, double_free, list_builder):
        for prog in (count_to_four, double_free, list_builder):
            assert sexp.loads(sexp.dumps(prog)) == prog

    def test_dumps_flattens_sequences(self):
        text = sexp.dumps(seq(SKIP, SKIP, Assign("x", ANum(1))))
        assert text == "(seq (skip) (skip) (assign x 1))"

    def test_left_nested_sequence_survives(self):
        prog = Seq(Seq(SKIP, Assign("x", ANum(1))), HeapFree(AId("x")))
        assert sexp.loads(sexp.dumps(prog)) == prog

    def test_booleans(self):
        prog = If(BNot(BFalse()), SKIP, SKIP)
        assert sexp.dumps(prog) == "(if (not false) (skip) (skip))"


class TestStates:

    def test_load_state(self):
        state = sexp.load_state("(state (store (x 1) (y 2)) (heap (1 5) (2 0)))")
        assert state == State.initial({"x": 1, "y": 2}, {1: 5, 2: 0})

    def test_sections_optional(self):
        assert sexp.load_state("(state)") == State()
        assert sexp.load_state("(state (heap (4 4)))") == State.initial(heap={4: 4})

    def test_dump_state(self):
        state = State.initial({"x": 1}, {3: 7})
        assert sexp.load_state(sexp.dump_state(state)) == state

    @pytest.mark.parametrize("text", [
        "(store (x 1))",
        "(state (store (x)))",
        "(state (registers (x 1)))",
        "(state (heap (x 1)))",
    ])
    def test_malformed_state(self, text):
        with pytest.raises(SexpSyntaxError):
            sexp.load_state(text)

    def test_string_key_in_store(self):
        with pytest.raises(SexpSyntaxError) as info:
            sexp.load_state('(state (store ("x" 1)))')
        assert info.value.code == "HSEM-1004"


class TestSourceFiles:

    def test_load_program(self, tmp_path):
        path = tmp_path / "prog.sexp"
        path.write_text("(assign x 1)", encoding="utf-8")
        assert sexp.load_program(path) == Assign("x", ANum(1))

    def test_invalid_utf8(self, tmp_path):
        path = tmp_path / "bad.sexp"
        path.write_bytes(b"(assign x \xff)")
        with pytest.raises(SexpSyntaxError) as info:
            sexp.load_program(path)
        assert info.value.code == "HSEM-1005"

    def test_missing_file(self, tmp_path):
        with pytest.raises(SexpSyntaxError) as info:
            sexp.read_source(tmp_path / "nope.sexp")
        assert info.value.code == "HSEM-1005"
