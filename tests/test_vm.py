# =============================================================================
# test_vm.py - Reference Stack Machine Tests
# =============================================================================
# Tests for executing stack programs and evaluating trees directly.
#
# Test coverage includes:
#   - Operand order and truncating division
#   - Program input as text, lines and InstructionSequence
#   - Runtime errors (underflow, division by zero, malformed programs)
#   - Agreement between generated programs and direct evaluation
# =============================================================================

import pytest

from stutter.ast import Operator, Value, make_conditional, make_leaf, make_operator
from stutter.codegen import StackCodeGenerator
from stutter.errors import UnsupportedConstructError, VMError
from stutter.parser import parse_source
from stutter.vm import StackMachine, apply_operator, evaluate, load_program, wrap_int64
from stutter.ir import IrOp


def run(*lines: str) -> int:
    return StackMachine().run(list(lines))


# =============================================================================
# Execution Tests
# =============================================================================

class TestExecution:
    """Test running well-formed programs."""

    def test_subtraction_order(self):
        assert StackMachine().run("PUSH\n4\nPUSH\n3\nSUB\nHALT\n") == -1

    def test_single_value(self):
        assert run("PUSH", "7", "HALT") == 7

    def test_instruction_sequence(self):
        program = StackCodeGenerator().generate(parse_source("(1 + 2) * 3"))
        assert StackMachine().run(program) == 9

    def test_blank_lines_ignored(self):
        assert StackMachine().run("\nPUSH\n  7  \n\nHALT\n\n") == 7

    def test_steps_counted(self):
        vm = StackMachine()
        vm.run(["PUSH", "4", "PUSH", "3", "SUB", "HALT"])
        assert vm.steps == 4

    def test_load_program(self):
        assert load_program("PUSH\r\n 7\n\nHALT") == ["PUSH", "7", "HALT"]


# =============================================================================
# Arithmetic Tests
# =============================================================================

class TestArithmetic:
    """Test the machine's signed 64-bit arithmetic."""

    @pytest.mark.parametrize("left,right,expected", [
        (7, 2, 3),
        (-7, 2, -3),
        (7, -2, -3),
        (-7, -2, 3),
        (6, 3, 2),
    ])
    def test_division_truncates_toward_zero(self, left, right, expected):
        assert apply_operator(IrOp.DIV, left, right) == expected

    def test_division_in_program(self):
        # left operand is pushed last
        assert run("PUSH", "2", "PUSH", "-7", "DIV", "HALT") == -3

    def test_overflow_wraps(self):
        assert apply_operator(IrOp.ADD, 2 ** 63 - 1, 1) == -(2 ** 63)

    def test_wrap_int64(self):
        assert wrap_int64(2 ** 64 + 5) == 5
        assert wrap_int64(-1) == -1

    def test_division_by_zero(self):
        with pytest.raises(ZeroDivisionError):
            apply_operator(IrOp.DIV, 1, 0)

    def test_non_arithmetic_op(self):
        with pytest.raises(ValueError):
            apply_operator(IrOp.PUSH, 1, 2)


# =============================================================================
# Runtime Error Tests
# =============================================================================

class TestRuntimeErrors:
    """Test malformed programs and runtime faults."""

    def test_stack_underflow(self):
        with pytest.raises(VMError, match="underflow"):
            run("PUSH", "1", "ADD", "HALT")

    def test_division_by_zero(self):
        with pytest.raises(VMError, match="division by zero") as exc_info:
            run("PUSH", "0", "PUSH", "1", "DIV", "HALT")
        assert exc_info.value.step == 4

    def test_unknown_instruction(self):
        with pytest.raises(VMError, match="unknown instruction 'JUMP'"):
            run("JUMP", "HALT")

    def test_nop_rejected(self):
        with pytest.raises(VMError, match="unknown instruction 'NOP'") as exc_info:
            run("PUSH", "1", "NOP", "HALT")
        assert exc_info.value.step == 2

    def test_push_without_literal(self):
        with pytest.raises(VMError, match="without a literal"):
            run("PUSH")

    def test_push_with_bad_literal(self):
        with pytest.raises(VMError, match="integer literal"):
            run("PUSH", "HALT")

    def test_missing_halt(self):
        with pytest.raises(VMError, match="without HALT"):
            run("PUSH", "1")

    def test_empty_stack_at_halt(self):
        with pytest.raises(VMError, match="found 0"):
            run("HALT")

    def test_extra_values_at_halt(self):
        with pytest.raises(VMError, match="found 2"):
            run("PUSH", "1", "PUSH", "2", "HALT")

    def test_step_limit(self):
        vm = StackMachine(max_steps=2)
        with pytest.raises(VMError, match="step limit"):
            vm.run(["PUSH", "4", "PUSH", "3", "SUB", "HALT"])


# =============================================================================
# Direct Evaluation Tests
# =============================================================================

EXPRESSIONS = [
    "7",
    "-5",
    "3 - 4",
    "1 + 2 * 3",
    "(1 + 2) * 3",
    "1 - 2 - 3",
    "1 - (2 - 3)",
    "10 / 3",
    "-7 / 2",
    "2 - -3",
    "-(4 * 5) + 100 / (3 - 10)",
    "9223372036854775807 + 1",
]


class TestEvaluate:
    """Direct evaluation agrees with the generated program."""

    def test_evaluate_values(self):
        assert evaluate(make_operator(Operator.SUB, make_leaf(Value.number(3)),
                                      make_leaf(Value.number(4)))) == -1
        assert evaluate(parse_source("-7 / 2")) == -3
        assert evaluate(parse_source("-(4 * 5) + 100 / (3 - 10)")) == -34

    @pytest.mark.parametrize("source", EXPRESSIONS)
    def test_program_matches_evaluation(self, source):
        tree = parse_source(source)
        program = StackCodeGenerator().generate(tree)
        assert StackMachine().run(program) == evaluate(tree)

    def test_conditional_is_unsupported(self):
        tree = make_conditional(
            make_leaf(Value.boolean(True)),
            make_leaf(Value.number(1)),
            make_leaf(Value.number(2)),
        )
        with pytest.raises(UnsupportedConstructError):
            evaluate(tree)

    def test_division_by_zero(self):
        with pytest.raises(VMError):
            evaluate(parse_source("1 / (2 - 2)"))
