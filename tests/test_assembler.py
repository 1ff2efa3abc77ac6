"""
Assembler tests: subroutine table, loop address stack, index literals,
complex literal merging, multi-line definitions and error recovery.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import io
import pytest
from rpncalc.assembler import Assembler, ParseState
from rpncalc.instructions import Instruction, Op, help_text
from rpncalc.machine import Machine


@pytest.fixture
def asm():
    return Assembler(Machine(out=io.StringIO()))


def output(a: Assembler):
    return a.machine.out.getvalue().splitlines()


class TestEmission:

    def test_statement_is_run_and_kept(self, asm):
        asm.parse_line("1 2 +")
        assert asm.machine.program == [
            Instruction(Op.LITERAL, 1.0),
            Instruction(Op.LITERAL, 2.0),
            Instruction(Op.ADD),
        ]
        assert asm.pending == []
        assert asm.machine.state.stack == [3.0]

    def test_index_literal_is_folded(self, asm):
        asm.parse_line("4 3 save")
        assert asm.machine.program[-1] == Instruction(Op.SAVE, 3)
        assert asm.machine.state.registers[3] == 4.0

    def test_index_is_truncated(self, asm):
        asm.parse_line("2 7.9 save")
        assert asm.machine.program[-1] == Instruction(Op.SAVE, 7)

    def test_aliases(self, asm):
        asm.parse_line("1 2 add 4 frdigit")
        assert asm.machine.program[2] == Instruction(Op.ADD)
        assert asm.machine.state.precision == 4

    def test_complex_literal_merge(self, asm):
        asm.parse_line("3 4j")
        assert asm.machine.program == [Instruction(Op.LITERAL, complex(3, 4))]

    def test_lone_imaginary(self, asm):
        asm.parse_line("-2j")
        assert asm.machine.program == [Instruction(Op.LITERAL, complex(0, -2))]

    def test_no_merge_across_mnemonic(self, asm):
        asm.parse_line("3 dup 4j")
        assert asm.machine.state.stack == [3.0, 3.0, 4j]

    def test_word_that_parses_as_number(self, asm):
        asm.parse_line(".5 +2 add")
        assert asm.errors == []
        assert asm.machine.state.stack == [2.5]

    def test_comment_only_line_emits_nothing(self, asm):
        asm.parse_line("# nothing")
        assert asm.machine.program == []


class TestIndexErrors:

    def test_missing_literal(self, asm):
        asm.parse_line("save")
        assert "number needed" in asm.errors[0]

    def test_literal_not_adjacent(self, asm):
        asm.parse_line("1 dup save")
        assert asm.errors
        # the part before the fault still ran
        assert asm.machine.state.stack == [1.0, 1.0]

    def test_complex_index_rejected(self, asm):
        asm.parse_line("1 1j load")
        assert asm.errors

    def test_index_not_taken_from_previous_line(self, asm):
        asm.parse_line("5")
        asm.parse_line("load")
        assert asm.errors
        assert asm.machine.state.stack == [5.0]


class TestSubroutines:

    def test_define_and_call(self, asm):
        asm.parse_line(": sq dup * ;")
        assert asm.subroutines == {'sq': 0}
        assert asm.machine.program == [Instruction(Op.DUP), Instruction(Op.MUL), Instruction(Op.RET)]
        assert asm.mode is ParseState.NORMAL
        asm.parse_line("5 sq p")
        assert output(asm) == ["25"]
        assert Instruction(Op.CALL, 0) in asm.machine.program

    def test_definition_does_not_execute(self, asm):
        asm.parse_line(": five 5 ;")
        assert asm.machine.state.stack == []

    def test_multiline_definition(self, asm):
        asm.parse_line(": cube")
        assert asm.mode is ParseState.IN_BODY
        asm.parse_line("dup dup")
        assert asm.mode is ParseState.IN_BODY
        assert asm.machine.program == []
        asm.parse_line("* * ;")
        asm.parse_line("3 cube p")
        assert output(asm) == ["27"]

    def test_name_on_next_line(self, asm):
        asm.parse_line(":")
        assert asm.mode is ParseState.AWAITING_NAME
        asm.parse_line("inc 1 + ;")
        asm.parse_line("1 inc p")
        assert output(asm) == ["2"]

    def test_index_literal_inside_multiline_body(self, asm):
        asm.parse_line(": keep 4")
        asm.parse_line("save ;")
        assert asm.errors == []
        asm.parse_line("8 keep")
        assert asm.machine.state.registers[4] == 8.0

    def test_code_before_colon_runs_first(self, asm):
        asm.parse_line("7 : seven 7 ;")
        assert asm.machine.state.stack == [7.0]
        assert asm.subroutines['seven'] == 1

    def test_redefinition_rebinds(self, asm):
        asm.parse_line(": f 1 ;")
        asm.parse_line(": g f ;")
        asm.parse_line(": f 2 ;")
        assert asm.subroutines['f'] == 4
        asm.parse_line("f g")
        # g was assembled against the first f
        assert asm.machine.state.stack == [2.0, 1.0]

    @pytest.mark.parametrize("name", ["dup", "save", "42", "3j", ".5", "inf", ";", "help"])
    def test_bad_names(self, asm, name):
        asm.parse_line(f": {name} 1 ;")
        assert asm.errors
        assert asm.mode is ParseState.NORMAL
        assert name not in asm.subroutines

    def test_nested_colon(self, asm):
        asm.parse_line(": f : g ;")
        assert asm.errors
        assert asm.mode is ParseState.NORMAL
        assert 'f' not in asm.subroutines

    def test_semicolon_without_colon(self, asm):
        asm.parse_line("1 ;")
        assert "without ':'" in asm.errors[0]
        assert asm.machine.state.stack == [1.0]

    def test_unknown_word(self, asm):
        asm.parse_line("1 2 frob 3")
        assert "Unknown word 'frob'" in asm.errors[0]
        assert asm.machine.state.stack == [1.0, 2.0]

    def test_program_is_append_only(self, asm):
        asm.parse_line(": sq dup * ;")
        body = list(asm.machine.program)
        asm.parse_line("2 sq drop drop")
        asm.parse_line("frob")
        asm.parse_line("3 sq p")
        assert asm.machine.program[:3] == body
        assert asm.subroutines == {'sq': 0}
        assert output(asm) == ["9"]

    def test_recursion_resolves_own_name(self, asm):
        asm.parse_line(": f f ;")
        assert asm.machine.program[0] == Instruction(Op.CALL, 0)


class TestLoops:

    def test_loop_address(self, asm):
        asm.parse_line("3 [ 1 - dup ]")
        assert asm.machine.program[-1] == Instruction(Op.JNZ, 1)
        assert asm.loop_addrs == []
        assert asm.machine.state.stack == [0.0]

    def test_loop_in_definition_uses_absolute_address(self, asm):
        asm.parse_line("1 2 3")
        asm.parse_line(": down [ 1 - dup ] ;")
        assert asm.machine.program[-2] == Instruction(Op.JNZ, 3)

    def test_unmatched_close(self, asm):
        asm.parse_line("1 ]")
        assert asm.errors
        assert asm.machine.state.stack == [1.0]

    def test_failed_line_drops_its_open_bracket(self, asm):
        asm.parse_line("[ frob")
        assert asm.loop_addrs == []
        asm.parse_line("1 ]")
        assert "without matching" in asm.errors[-1]
        assert Instruction(Op.JNZ, 0) not in asm.machine.program
        assert asm.machine.state.stack == [1.0]

    def test_bracket_from_earlier_line_survives_failure(self, asm):
        asm.parse_line("3 [ 1 -")
        asm.parse_line("frob dup ]")
        assert asm.loop_addrs == [1]

    def test_unclosed_loop_in_definition(self, asm):
        asm.parse_line(": f [ 1 ;")
        assert asm.errors
        assert 'f' not in asm.subroutines
        assert asm.loop_addrs == []
        assert asm.mode is ParseState.NORMAL

    def test_close_cannot_reach_outside_definition(self, asm):
        asm.loop_addrs.append(0)
        asm.parse_line(": f 1 ] ;")
        assert asm.errors
        assert asm.loop_addrs == [0]

    def test_loop_spanning_lines(self, asm):
        asm.parse_line(": down")
        asm.parse_line("[ 1 -")
        asm.parse_line("dup ] ;")
        asm.parse_line("4 down p")
        assert output(asm) == ["0"]


class TestControlWords:

    def test_help(self, asm):
        asm.parse_line("help")
        assert output(asm) == help_text().splitlines()
        assert asm.machine.program == []

    def test_dumpsr_empty(self, asm):
        asm.parse_line("dsr")
        assert output(asm) == ["No subroutines defined."]

    def test_dumpsr_lists_names(self, asm):
        asm.parse_line(": sq dup * ;")
        asm.parse_line(": one 1 ;")
        asm.parse_line("dumpsr")
        lines = output(asm)
        assert lines[0].startswith("sq") and lines[0].endswith("@ 0")
        assert lines[1].startswith("one") and lines[1].endswith("@ 3")

    def test_address_property(self, asm):
        asm.parse_line("1 2")
        asm.parse_line(": f")
        asm.parse_line("dup dup")
        assert asm.address == 4
