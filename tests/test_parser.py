# =============================================================================
# test_parser.py - Parser Unit Tests
# =============================================================================
# Tests for the recursive descent parser.
#
# Test coverage includes:
#   - Operator precedence and left associativity
#   - Parentheses and unary minus
#   - Leaf kinds and conditional expressions
#   - 64-bit literal range
#   - Syntax errors with locations
# =============================================================================

import pytest

from stutter.ast import (
    ASTPrinter,
    ConditionalNode,
    LeafNode,
    Operator,
    OperatorNode,
    ValueKind,
)
from stutter.errors import ParseError, UnexpectedTokenError
from stutter.lexer import Lexer
from stutter.parser import Parser, parse_source


def tree_text(source: str) -> str:
    return ASTPrinter().print(parse_source(source))


# =============================================================================
# Precedence and Associativity Tests
# =============================================================================

class TestPrecedence:
    """Test how binary operators group."""

    def test_single_number(self):
        tree = parse_source("7")
        assert isinstance(tree, LeafNode)
        assert tree.value.as_number() == 7

    def test_multiplication_binds_tighter(self):
        assert tree_text("1 + 2 * 3") == (
            "Operator Add\n"
            "  Leaf number 1\n"
            "  Operator Mul\n"
            "    Leaf number 2\n"
            "    Leaf number 3"
        )

    def test_subtraction_is_left_associative(self):
        tree = parse_source("1 - 2 - 3")
        assert tree.op is Operator.SUB
        assert isinstance(tree.left, OperatorNode)
        assert tree.left.left.value.as_number() == 1
        assert tree.right.value.as_number() == 3

    def test_division_is_left_associative(self):
        tree = parse_source("8 / 4 / 2")
        assert tree.op is Operator.DIV
        assert tree.left.op is Operator.DIV

    def test_parentheses_override(self):
        tree = parse_source("(1 + 2) * 3")
        assert tree.op is Operator.MUL
        assert tree.left.op is Operator.ADD

    def test_nested_parentheses(self):
        tree = parse_source("((7))")
        assert tree.value.as_number() == 7

    def test_trailing_semicolon(self):
        assert parse_source("1 + 2;").op is Operator.ADD

    def test_comments_and_newlines(self):
        tree = parse_source("# compute\n3 -\n  4  # done\n")
        assert tree.op is Operator.SUB


# =============================================================================
# Unary Minus Tests
# =============================================================================

class TestUnaryMinus:
    """Test negative literals and negation."""

    def test_negative_literal(self):
        tree = parse_source("-5")
        assert isinstance(tree, LeafNode)
        assert tree.value.as_number() == -5

    def test_subtract_negative(self):
        tree = parse_source("2 - -3")
        assert tree.op is Operator.SUB
        assert tree.right.value.as_number() == -3

    def test_negate_expression(self):
        assert tree_text("-(1 + 2)") == (
            "Operator Sub\n"
            "  Leaf number 0\n"
            "  Operator Add\n"
            "    Leaf number 1\n"
            "    Leaf number 2"
        )

    def test_negative_real(self):
        assert parse_source("-2.5").value.as_real() == -2.5


# =============================================================================
# Leaf Kind and Conditional Tests
# =============================================================================

class TestLeafKinds:
    """Every Value variant can be written in source."""

    @pytest.mark.parametrize("source,kind", [
        ("42", ValueKind.NUMBER),
        ("2.5", ValueKind.REAL),
        ("true", ValueKind.BOOLEAN),
        ("false", ValueKind.BOOLEAN),
        ('"text"', ValueKind.STRING),
        ("x", ValueKind.SYMBOL),
    ])
    def test_leaf_kind(self, source, kind):
        assert parse_source(source).value.kind is kind

    def test_conditional(self):
        tree = parse_source("if true then 1 else 2 + 3")
        assert isinstance(tree, ConditionalNode)
        assert tree.condition.value.as_boolean() is True
        assert tree.then_branch.value.as_number() == 1
        assert tree.else_branch.op is Operator.ADD

    def test_conditional_inside_parentheses(self):
        tree = parse_source("1 + (if x then 2 else 3)")
        assert isinstance(tree.right, ConditionalNode)


# =============================================================================
# Literal Range Tests
# =============================================================================

class TestLiteralRange:
    """Integer literals must fit in a signed 64-bit integer."""

    def test_max_int64(self):
        assert parse_source("9223372036854775807").value.as_number() == 2 ** 63 - 1

    def test_min_int64(self):
        assert parse_source("-9223372036854775808").value.as_number() == -(2 ** 63)

    def test_too_large(self):
        with pytest.raises(ParseError, match="does not fit in 64 bits"):
            parse_source("9223372036854775808")

    def test_too_small(self):
        with pytest.raises(ParseError, match="does not fit in 64 bits"):
            parse_source("-9223372036854775809")


# =============================================================================
# Syntax Error Tests
# =============================================================================

class TestSyntaxErrors:
    """Test error reporting for malformed input."""

    def test_empty_input(self):
        with pytest.raises(UnexpectedTokenError, match="expected expression"):
            parse_source("")

    def test_missing_operand(self):
        with pytest.raises(UnexpectedTokenError) as exc_info:
            parse_source("1 +", "calc.st")
        assert str(exc_info.value.location) == "calc.st:1:4"
        assert exc_info.value.found == "end of input"

    def test_unclosed_parenthesis(self):
        with pytest.raises(UnexpectedTokenError, match="expected '\\)'"):
            parse_source("(1 + 2")

    def test_two_expressions(self):
        with pytest.raises(UnexpectedTokenError, match="expected end of input"):
            parse_source("1 2")

    def test_missing_else(self):
        with pytest.raises(UnexpectedTokenError, match="expected 'else'"):
            parse_source("if x then 1")

    def test_stray_operator(self):
        with pytest.raises(UnexpectedTokenError, match="unexpected '\\*'"):
            parse_source("* 2")

    def test_error_shows_source_line(self):
        with pytest.raises(ParseError) as exc_info:
            parse_source("1 + )", "calc.st")
        lines = str(exc_info.value).splitlines()
        assert lines[0].startswith("calc.st:1:5: error:")
        assert lines[1] == "    1 + )"
        assert lines[2] == "        ^"

    def test_parser_requires_eof_token(self):
        tokens = list(Lexer("1").tokenize())[:-1]
        with pytest.raises(ValueError):
            Parser(tokens)
