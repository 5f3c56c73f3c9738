"""
Stack-Machine Intermediate Representation
=========================================

An IR program is an InstructionSequence of Ir nodes. Each node is
either an operation (an IrOp plus its mnemonic) or a literal (the
verbatim decimal text of a number that the preceding PUSH loads).

Program Text Format
-------------------
One instruction per line, in sequence order:

    PUSH
    4
    PUSH
    3
    SUB
    HALT

- mnemonics: PUSH, ADD, SUB, MUL, DIV, HALT
- every PUSH line is followed by exactly one literal line
- the program ends with exactly one HALT line
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, TextIO

from stutter.errors import SequenceError
from stutter.sequence import OrderedSequence


class IrKind(Enum):
    """Discriminant of an Ir node."""
    OP = auto()
    NUMBER = auto()


class IrOp(Enum):
    """Stack-machine operation codes."""
    NOP = auto()
    HALT = auto()
    ADD = auto()
    SUB = auto()
    MUL = auto()
    DIV = auto()
    PUSH = auto()


# Mnemonics are shared constants; literal text is owned by its node.
MNEMONICS: dict[IrOp, str] = {op: op.name for op in IrOp}

OPCODES: dict[str, IrOp] = {name: op for op, name in MNEMONICS.items()}


@dataclass
class Ir:
    """
    One instruction node.

    Attributes:
        kind: OP or NUMBER
        text: The text printed for this node (mnemonic or decimal literal)
        op: The operation code (OP nodes only)
        number: The literal text (NUMBER nodes only)
    """
    kind: IrKind
    text: Optional[str]
    op: Optional[IrOp] = None
    number: Optional[str] = None
    released: bool = False

    @classmethod
    def operation(cls, op: IrOp) -> "Ir":
        return cls(kind=IrKind.OP, text=MNEMONICS[op], op=op)

    @classmethod
    def literal(cls, text: str) -> "Ir":
        """Build a literal node; ``text`` must be decimal integer text."""
        digits = text[1:] if text.startswith("-") else text
        if not (digits.isascii() and digits.isdigit()):
            raise ValueError(f"literal must be decimal integer text, got {text!r}")
        return cls(kind=IrKind.NUMBER, text=text, number=text)

    @property
    def is_op(self) -> bool:
        return self.kind is IrKind.OP

    def release(self) -> None:
        """Drop the node's owned literal text. Mnemonics are shared and kept."""
        if self.kind is IrKind.NUMBER:
            self.number = None
            self.text = None
        self.released = True

    def __str__(self) -> str:
        return self.text or ""


class InstructionSequence(OrderedSequence[Ir]):
    """Ordered, owned sequence of Ir nodes forming one program."""

    def append_op(self, op: IrOp) -> int:
        return self.append(Ir.operation(op))

    def append_literal(self, text: str) -> int:
        return self.append(Ir.literal(text))

    def lines(self) -> list[str]:
        """Return the program as text lines."""
        return [str(node) for node in self]

    def is_halted(self) -> bool:
        """True if the program ends in HALT."""
        return len(self) > 0 and self.tail().op is IrOp.HALT


def ir_halt_program(program: InstructionSequence) -> InstructionSequence:
    """
    Append the terminating HALT instruction.

    Raises:
        SequenceError: If the program already ends in HALT
    """
    if program.is_halted():
        raise SequenceError("program is already halted")
    program.append_op(IrOp.HALT)
    return program


def ir_print_program(output: TextIO, program: InstructionSequence) -> None:
    """Write each instruction of ``program`` to ``output``, one per line."""
    for node in program:
        output.write(f"{node.text}\n")


def format_program(program: InstructionSequence) -> str:
    """Return the program text that ir_print_program would write."""
    return "".join(f"{line}\n" for line in program.lines())
