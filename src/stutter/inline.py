"""
Inline-Expression Generator
===========================

This backend renders an expression tree as an infix C expression and
wraps it in a small C program that prints the computed value.

Rendering Rules
---------------
- Leaf: the decimal text with an ``LL`` suffix, padded by one space on
  each side: `` 7LL ``. The suffix makes C do the arithmetic in
  ``long long`` rather than ``int``. The most negative value has no C
  literal and renders as ``(-9223372036854775807LL - 1)``.
- Operator: left fragment, operator symbol, right fragment
- An operand that is itself an operator is wrapped in parentheses, so
  the C compiler evaluates the expression in the tree's order whatever
  the operator precedence:

      Sub(Leaf 1, Sub(Leaf 2, Leaf 3))  ->  " 1LL -( 2LL - 3LL )"

Fragments are accumulated in GrowString buffers.

Output Program
--------------
    #include <stdio.h>

    int main(void) {
        printf("%lld\\n", (long long)( 1LL + 2LL ));
        return 0;
    }
"""

import logging
from typing import Optional

from stutter.ast import (
    ASTNode,
    ASTVisitor,
    ConditionalNode,
    LeafNode,
    Operator,
    OperatorNode,
    ValueKind,
    require_live_node,
)
from stutter.errors import NodeKindError, UnsupportedConstructError
from stutter.growstring import GrowString
from stutter.parser import INT64_MAX, INT64_MIN

logger = logging.getLogger(__name__)


OPERATOR_SYMBOLS: dict[Operator, str] = {
    Operator.ADD: "+",
    Operator.SUB: "-",
    Operator.MUL: "*",
    Operator.DIV: "/",
}

PROGRAM_PREAMBLE = (
    "#include <stdio.h>\n"
    "\n"
    "int main(void) {\n"
    '    printf("%lld\\n", (long long)('
)

PROGRAM_EPILOGUE = (
    "));\n"
    "    return 0;\n"
    "}\n"
)


def c_integer_literal(value: int) -> str:
    """
    Render ``value`` as a C ``long long`` constant.

    Raises:
        ValueError: If ``value`` does not fit in a signed 64-bit integer
    """
    if not INT64_MIN <= value <= INT64_MAX:
        raise ValueError(f"integer {value} does not fit in 64 bits")
    if value == INT64_MIN:
        # -9223372036854775808LL would negate an out-of-range constant
        return f"({INT64_MIN + 1}LL - 1)"
    return f"{value}LL"


class InlineGenerator(ASTVisitor):
    """
    Renders an expression tree as C source.

    Attributes:
        max_size: Optional limit on any buffer's capacity
    """

    BACKEND = "inline"

    def __init__(self, max_size: Optional[int] = None):
        self.max_size = max_size

    def generate(self, node: ASTNode) -> str:
        """
        Render the infix fragment for ``node``.

        Raises:
            UnsupportedConstructError: For conditionals, NoOp operators
                and non-integer leaves
            OutOfMemoryError: If a buffer would exceed max_size
        """
        require_live_node(node, "root")
        buffer = self.visit(node)
        try:
            return buffer.view()
        finally:
            buffer.free()

    def generate_program(self, node: ASTNode) -> str:
        """Render a complete C program that prints the value of ``node``."""
        fragment = self.generate(node)
        program = self._new_buffer()
        try:
            program.extend(PROGRAM_PREAMBLE)
            program.extend(fragment)
            program.extend(PROGRAM_EPILOGUE)
            logger.debug(f"rendered inline program ({program.size} characters)")
            return program.view()
        finally:
            program.free()

    def _new_buffer(self) -> GrowString:
        return GrowString(max_capacity=self.max_size)

    # =========================================================================
    # Node Rendering
    # =========================================================================

    def visit_LeafNode(self, node: LeafNode) -> GrowString:
        if node.value is None:
            raise NodeKindError("leaf has no value")
        if node.value.kind is not ValueKind.NUMBER:
            raise UnsupportedConstructError(
                f"{node.value.kind.name.lower()} literal",
                node.location,
                backend=self.BACKEND,
            )
        try:
            literal = c_integer_literal(node.value.as_number())
        except ValueError:
            raise UnsupportedConstructError(
                "integer literal wider than 64 bits",
                node.location,
                backend=self.BACKEND,
            ) from None
        return self._new_buffer().write(f" {literal} ")

    def visit_OperatorNode(self, node: OperatorNode) -> GrowString:
        symbol = OPERATOR_SYMBOLS.get(node.op)
        if symbol is None:
            raise UnsupportedConstructError(
                f"{node.op.name} operator",
                node.location,
                backend=self.BACKEND,
            )
        left = require_live_node(node.left, "left operand")
        right = require_live_node(node.right, "right operand")

        result = self._new_buffer()
        self._append_operand(result, left)
        result.append(symbol)
        self._append_operand(result, right)
        return result

    def visit_ConditionalNode(self, node: ConditionalNode) -> GrowString:
        raise UnsupportedConstructError(
            "conditional expression",
            node.location,
            backend=self.BACKEND,
            alternative="conditional lowering is not implemented; remove the 'if'",
        )

    def _append_operand(self, result: GrowString, operand: ASTNode) -> None:
        fragment = self.visit(operand)
        try:
            nested = isinstance(operand, OperatorNode)
            if nested:
                result.append("(")
            result.concat(fragment)
            if nested:
                result.append(")")
        finally:
            fragment.free()
