# =============================================================================
# test_codegen.py - Stack-Machine Code Generator Tests
# =============================================================================
# Tests for lowering expression trees to stack-machine instructions.
#
# Test coverage includes:
#   - Right-then-left emission order for operators
#   - PUSH/literal pairing and the single trailing HALT
#   - Rejection of conditionals, NoOp operators and non-integer leaves
#   - No output for failed generation
#   - Program length limits
# =============================================================================

import io

import pytest

from stutter.ast import (
    Operator,
    Value,
    destroy_ast_node,
    make_conditional,
    make_leaf,
    make_operator,
)
from stutter.codegen import StackCodeGenerator, emit
from stutter.errors import (
    NodeKindError,
    OutOfMemoryError,
    SequenceError,
    UnsupportedConstructError,
)
from stutter.ir import IrOp, format_program, ir_halt_program
from stutter.parser import parse_source


def num(n: int):
    return make_leaf(Value.number(n))


def generate(source: str) -> list:
    return StackCodeGenerator().generate(parse_source(source)).lines()


# =============================================================================
# Instruction Order Tests
# =============================================================================

class TestInstructionOrder:
    """Test the emitted instruction stream."""

    def test_subtraction(self):
        tree = make_operator(Operator.SUB, num(3), num(4))
        program = StackCodeGenerator().generate(tree)
        assert program.lines() == ["PUSH", "4", "PUSH", "3", "SUB", "HALT"]

    def test_single_leaf(self):
        assert generate("7") == ["PUSH", "7", "HALT"]

    def test_negative_literal(self):
        assert generate("-5") == ["PUSH", "-5", "HALT"]

    def test_nested_left_operand(self):
        assert generate("(1 + 2) * 3") == [
            "PUSH", "3",
            "PUSH", "2",
            "PUSH", "1",
            "ADD",
            "MUL",
            "HALT",
        ]

    def test_nested_right_operand(self):
        assert generate("1 - (2 - 3)") == [
            "PUSH", "3",
            "PUSH", "2",
            "SUB",
            "PUSH", "1",
            "SUB",
            "HALT",
        ]

    @pytest.mark.parametrize("source,mnemonic", [
        ("1 + 2", "ADD"),
        ("1 - 2", "SUB"),
        ("1 * 2", "MUL"),
        ("1 / 2", "DIV"),
    ])
    def test_operator_mnemonics(self, source, mnemonic):
        assert generate(source)[4] == mnemonic

    @pytest.mark.parametrize("source", [
        "7",
        "1 + 2 * 3 - 4 / 5",
        "((1 - 2) * (3 + -4)) / 5",
    ])
    def test_program_shape(self, source):
        """Every PUSH is followed by a literal; one HALT, last."""
        lines = generate(source)
        assert lines.count("HALT") == 1
        assert lines[-1] == "HALT"
        for i, line in enumerate(lines):
            if line == "PUSH":
                assert lines[i + 1].lstrip("-").isdigit()

    def test_tree_is_not_consumed(self):
        tree = make_operator(Operator.ADD, num(1), num(2))
        StackCodeGenerator().generate(tree)
        assert not tree.released
        assert tree.left.value.as_number() == 1


# =============================================================================
# Unsupported Construct Tests
# =============================================================================

class TestUnsupported:
    """Test nodes the stack backend refuses to lower."""

    def test_conditional(self):
        tree = make_conditional(make_leaf(Value.boolean(True)), num(1), num(2))
        with pytest.raises(UnsupportedConstructError) as exc_info:
            StackCodeGenerator().generate(tree)
        assert exc_info.value.backend == "stack"
        assert "conditional" in str(exc_info.value)

    def test_nested_conditional(self):
        with pytest.raises(UnsupportedConstructError):
            generate("1 + (if x then 2 else 3)")

    def test_noop_operator(self):
        tree = make_operator(Operator.NOOP, num(1), num(2))
        with pytest.raises(UnsupportedConstructError, match="NOOP"):
            StackCodeGenerator().generate(tree)

    @pytest.mark.parametrize("source", ["2.5", "true", '"s"', "x", "1 + y"])
    def test_non_integer_leaf(self, source):
        with pytest.raises(UnsupportedConstructError):
            generate(source)

    def test_missing_root(self):
        with pytest.raises(NodeKindError):
            StackCodeGenerator().generate(None)

    def test_destroyed_root(self):
        tree = num(1)
        destroy_ast_node(tree)
        with pytest.raises(NodeKindError):
            StackCodeGenerator().generate(tree)


# =============================================================================
# Emit Tests
# =============================================================================

class TestEmit:
    """Test printing programs to a text stream."""

    def test_emit_writes_lines(self):
        output = io.StringIO()
        count = emit(output, num(7))
        assert output.getvalue() == "PUSH\n7\nHALT\n"
        assert count == 3

    def test_emit_writes_nothing_on_error(self):
        """A tree that fails deep inside leaves no partial program."""
        tree = make_operator(
            Operator.ADD,
            num(1),
            make_conditional(make_leaf(Value.boolean(True)), num(2), num(3)),
        )
        output = io.StringIO()
        with pytest.raises(UnsupportedConstructError):
            emit(output, tree)
        assert output.getvalue() == ""

    def test_format_program_matches_emit(self):
        program = StackCodeGenerator().generate(parse_source("3 - 4"))
        assert format_program(program) == "PUSH\n4\nPUSH\n3\nSUB\nHALT\n"


# =============================================================================
# Limit and Halt Tests
# =============================================================================

class TestLimits:
    """Test program length limits and HALT handling."""

    def test_program_too_long(self):
        tree = make_operator(Operator.SUB, num(3), num(4))
        with pytest.raises(OutOfMemoryError):
            StackCodeGenerator(max_instructions=5).generate(tree)

    def test_program_at_limit(self):
        tree = make_operator(Operator.SUB, num(3), num(4))
        assert len(StackCodeGenerator(max_instructions=6).generate(tree)) == 6

    def test_halt_only_once(self):
        program = StackCodeGenerator().generate(num(1))
        assert program.tail().op is IrOp.HALT
        with pytest.raises(SequenceError):
            ir_halt_program(program)

    def test_destroy_releases_literals(self):
        program = StackCodeGenerator().generate(num(9))
        literal = program[1]
        program.destroy()
        assert literal.released
        assert literal.number is None
