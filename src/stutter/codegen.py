"""
Stack-Machine Code Generator
============================

This module lowers an expression tree into an InstructionSequence for
the stack machine.

Code Generation Strategy
------------------------
The stack machine executes instructions in order. A binary operator
pops twice: the first pop is the left operand, the second pop is the
right operand, and it pushes ``left OP right``. To have the left operand
on top when the operator runs, an operator node emits:

1. the right subtree
2. the left subtree
3. the operator instruction

A leaf emits ``PUSH`` followed by a literal line with its decimal text.
After the root, exactly one ``HALT`` is appended.

Example
-------
``3 - 4`` (Operator(Sub, Leaf 3, Leaf 4)) becomes:

    PUSH
    4
    PUSH
    3
    SUB
    HALT

Unsupported Nodes
-----------------
Conditional nodes, NoOp operators and non-integer leaves raise
UnsupportedConstructError. Generation builds into a private sequence
and returns it only when the whole tree was lowered; on any error the
partial sequence is destroyed, so no truncated program is ever printed.

Usage
-----
>>> from stutter.parser import parse_source
>>> gen = StackCodeGenerator()
>>> program = gen.generate(parse_source("3 - 4"))
>>> program.lines()
['PUSH', '4', 'PUSH', '3', 'SUB', 'HALT']
"""

import logging
from typing import Optional, TextIO

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
from stutter.ir import InstructionSequence, IrOp, ir_halt_program, ir_print_program

logger = logging.getLogger(__name__)


OPERATOR_OPCODES: dict[Operator, IrOp] = {
    Operator.ADD: IrOp.ADD,
    Operator.SUB: IrOp.SUB,
    Operator.MUL: IrOp.MUL,
    Operator.DIV: IrOp.DIV,
}


class StackCodeGenerator(ASTVisitor):
    """
    Generates a stack-machine program from an expression tree.

    Attributes:
        max_instructions: Optional limit on the program length
    """

    BACKEND = "stack"

    def __init__(self, max_instructions: Optional[int] = None):
        self.max_instructions = max_instructions
        self._program: Optional[InstructionSequence] = None

    def generate(self, node: ASTNode) -> InstructionSequence:
        """
        Generate the program for ``node``.

        Returns:
            A HALT-terminated InstructionSequence owned by the caller

        Raises:
            UnsupportedConstructError: If the tree holds a node this
                backend cannot lower
            NodeKindError: If there is no tree or it was destroyed
            OutOfMemoryError: If the program exceeds max_instructions
        """
        require_live_node(node, "root")

        program = InstructionSequence(max_length=self.max_instructions)
        self._program = program
        try:
            self.visit(node)
            ir_halt_program(program)
        except Exception:
            program.destroy()
            raise
        finally:
            self._program = None

        logger.debug(f"generated {len(program)} stack instructions")
        return program

    def visit_OperatorNode(self, node: OperatorNode) -> None:
        opcode = OPERATOR_OPCODES.get(node.op)
        if opcode is None:
            raise UnsupportedConstructError(
                f"{node.op.name} operator",
                node.location,
                backend=self.BACKEND,
            )
        # Right first, so the left operand ends up on top of the stack.
        self.visit(require_live_node(node.right, "right operand"))
        self.visit(require_live_node(node.left, "left operand"))
        self._program.append_op(opcode)

    def visit_LeafNode(self, node: LeafNode) -> None:
        if node.value is None:
            raise NodeKindError("leaf has no value")
        if node.value.kind is not ValueKind.NUMBER:
            raise UnsupportedConstructError(
                f"{node.value.kind.name.lower()} literal",
                node.location,
                backend=self.BACKEND,
                alternative="the stack machine only handles integers",
            )
        self._program.append_op(IrOp.PUSH)
        self._program.append_literal(node.value.text())

    def visit_ConditionalNode(self, node: ConditionalNode) -> None:
        raise UnsupportedConstructError(
            "conditional expression",
            node.location,
            backend=self.BACKEND,
            alternative="conditional lowering is not implemented; remove the 'if'",
        )


def emit(output: TextIO, node: ASTNode, max_instructions: Optional[int] = None) -> int:
    """
    Generate the program for ``node`` and print it to ``output``.

    Nothing is written unless generation succeeds.

    Returns:
        Number of instruction lines written
    """
    program = StackCodeGenerator(max_instructions).generate(node)
    try:
        ir_print_program(output, program)
        return len(program)
    finally:
        program.destroy()
