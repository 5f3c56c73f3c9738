"""
Reference Stack Machine
=======================

Executes stack-machine programs produced by the code generator, and
evaluates expression trees directly with the same arithmetic. The two
must agree for every tree the stack backend accepts.

Execution Model
---------------
- ``PUSH`` reads the literal on the next line and pushes it
- ``ADD``/``SUB``/``MUL``/``DIV`` pop the left operand, then the right
  operand, and push ``left OP right``
- ``HALT`` stops; exactly one value must be left on the stack

Any other line where an instruction is expected, including ``NOP``, is
an error.

Arithmetic is signed 64-bit with two's complement wraparound. Division
truncates toward zero, like C.

Usage
-----
>>> vm = StackMachine()
>>> vm.run("PUSH\\n4\\nPUSH\\n3\\nSUB\\nHALT\\n")
-1
"""

import logging
from typing import Iterable, Optional, Union

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
from stutter.errors import UnsupportedConstructError, VMError
from stutter.ir import OPCODES, InstructionSequence, IrOp

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 1_000_000

# Output mnemonics only; NOP is an IR opcode the generator never emits
MACHINE_OPCODES: dict[str, IrOp] = {
    name: op for name, op in OPCODES.items() if op is not IrOp.NOP
}

_INT64_MASK = (1 << 64) - 1
_INT64_SIGN = 1 << 63


def wrap_int64(value: int) -> int:
    """Reduce ``value`` to a signed 64-bit integer."""
    value &= _INT64_MASK
    return value - (1 << 64) if value & _INT64_SIGN else value


def apply_operator(op: IrOp, left: int, right: int) -> int:
    """
    Compute ``left OP right`` with the machine's arithmetic.

    Raises:
        ZeroDivisionError: For DIV with a zero right operand
    """
    if op is IrOp.ADD:
        result = left + right
    elif op is IrOp.SUB:
        result = left - right
    elif op is IrOp.MUL:
        result = left * right
    elif op is IrOp.DIV:
        if right == 0:
            raise ZeroDivisionError("division by zero")
        # Truncate toward zero rather than floor
        quotient = abs(left) // abs(right)
        result = quotient if (left < 0) == (right < 0) else -quotient
    else:
        raise ValueError(f"{op.name} is not an arithmetic operation")
    return wrap_int64(result)


def load_program(text: str) -> list[str]:
    """Split program text into instruction lines, dropping blank lines."""
    return [line.strip() for line in text.splitlines() if line.strip()]


class StackMachine:
    """
    Interpreter for stack-machine programs.

    Attributes:
        max_steps: Upper bound on executed instructions
        stack: The operand stack after the last run
    """

    def __init__(self, max_steps: int = DEFAULT_MAX_STEPS):
        self.max_steps = max_steps
        self.stack: list[int] = []
        self.steps = 0

    def run(self, program: Union[InstructionSequence, str, Iterable[str]]) -> int:
        """
        Execute ``program`` and return the value left at HALT.

        Args:
            program: An InstructionSequence, program text, or an
                iterable of instruction lines

        Raises:
            VMError: On stack underflow, division by zero, an unknown
                mnemonic, a PUSH without a literal, a missing HALT, a
                stack that does not hold exactly one value at HALT, or
                when max_steps is exceeded
        """
        if isinstance(program, InstructionSequence):
            lines = program.lines()
        elif isinstance(program, str):
            lines = load_program(program)
        else:
            lines = [line.strip() for line in program if line.strip()]

        self.stack = []
        self.steps = 0
        pc = 0

        while pc < len(lines):
            self.steps += 1
            if self.steps > self.max_steps:
                raise VMError(f"step limit of {self.max_steps} exceeded", pc)

            mnemonic = lines[pc]
            op = MACHINE_OPCODES.get(mnemonic)
            if op is None:
                raise VMError(f"unknown instruction {mnemonic!r}", pc)

            if op is IrOp.HALT:
                return self._halt(pc)

            if op is IrOp.PUSH:
                self.stack.append(self._read_literal(lines, pc + 1))
                pc += 2
                continue

            self._binary(op, pc)
            pc += 1

        raise VMError("program ended without HALT")

    # =========================================================================
    # Instruction Helpers
    # =========================================================================

    def _read_literal(self, lines: list[str], index: int) -> int:
        if index >= len(lines):
            raise VMError("PUSH without a literal", index - 1)
        text = lines[index]
        digits = text[1:] if text.startswith("-") else text
        if not (digits.isascii() and digits.isdigit()):
            raise VMError(f"PUSH expects an integer literal, got {text!r}", index)
        return wrap_int64(int(text))

    def _binary(self, op: IrOp, pc: int) -> None:
        if len(self.stack) < 2:
            raise VMError(f"stack underflow in {op.name}", pc)
        left = self.stack.pop()
        right = self.stack.pop()
        try:
            self.stack.append(apply_operator(op, left, right))
        except ZeroDivisionError:
            raise VMError("division by zero", pc) from None

    def _halt(self, pc: int) -> int:
        if len(self.stack) != 1:
            raise VMError(
                f"expected exactly one value on the stack at HALT, found {len(self.stack)}",
                pc,
            )
        logger.debug(f"halted after {self.steps} steps")
        return self.stack[0]


# =============================================================================
# Direct Tree Evaluation
# =============================================================================

EVALUATED_OPERATORS: dict[Operator, IrOp] = {
    Operator.ADD: IrOp.ADD,
    Operator.SUB: IrOp.SUB,
    Operator.MUL: IrOp.MUL,
    Operator.DIV: IrOp.DIV,
}


class TreeEvaluator(ASTVisitor):
    """Computes the value of a Leaf/Operator tree."""

    BACKEND = "evaluate"

    def visit_LeafNode(self, node: LeafNode) -> int:
        if node.value is None or node.value.kind is not ValueKind.NUMBER:
            kind = "released" if node.value is None else node.value.kind.name.lower()
            raise UnsupportedConstructError(f"{kind} literal", node.location, backend=self.BACKEND)
        return wrap_int64(node.value.as_number())

    def visit_OperatorNode(self, node: OperatorNode) -> int:
        op = EVALUATED_OPERATORS.get(node.op)
        if op is None:
            raise UnsupportedConstructError(
                f"{node.op.name} operator", node.location, backend=self.BACKEND
            )
        left = self.visit(require_live_node(node.left, "left operand"))
        right = self.visit(require_live_node(node.right, "right operand"))
        try:
            return apply_operator(op, left, right)
        except ZeroDivisionError:
            raise VMError("division by zero") from None

    def visit_ConditionalNode(self, node: ConditionalNode) -> int:
        raise UnsupportedConstructError(
            "conditional expression", node.location, backend=self.BACKEND
        )


def evaluate(tree: Optional[ASTNode]) -> int:
    """
    Evaluate ``tree`` directly.

    Raises:
        UnsupportedConstructError: For conditionals, NoOp operators and
            non-integer leaves
        VMError: On division by zero
    """
    return TreeEvaluator().visit(require_live_node(tree, "root"))
