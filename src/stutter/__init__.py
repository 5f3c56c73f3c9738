"""
Stutter - Expression Compiler for a Stack Machine
=================================================

This package compiles arithmetic expressions to a small stack-machine
instruction language, or to a C program that computes the same value.

Main Components
---------------
- **lexer / parser**: Turn source text into an expression tree
- **ast**: Tree nodes, leaf values, construction and destruction
- **codegen**: Stack-machine backend producing an InstructionSequence
- **inline**: Inline C backend built on GrowString buffers
- **vm**: Reference stack machine and direct tree evaluation

Quick Start
-----------
Compile an expression:
    >>> from stutter import compile_stutter
    >>> print(compile_stutter("3 - 4"), end="")
    PUSH
    4
    PUSH
    3
    SUB
    HALT

Run it:
    >>> from stutter import StackMachine
    >>> StackMachine().run(compile_stutter("3 - 4"))
    -1

Or use the command-line tools:
    $ echo "3 - 4" | stutterc calc.stk
    $ stuttervm calc.stk

Version History
---------------
1.0.0 - Initial release with stack and inline backends
"""

__version__ = "1.0.0"
__author__ = "Stutter Contributors"

# =============================================================================
# Public API Exports
# =============================================================================

from stutter.errors import (
    StutterError,
    SourceLocation,
    CompileError,
    ParseError,
    UnsupportedConstructError,
    AllocationOrKindError,
    NodeKindError,
    OutOfMemoryError,
    ValueKindError,
    SequenceError,
    VMError,
)
from stutter.ast import (
    ASTKind,
    Operator,
    Value,
    ValueKind,
    make_ast_node,
    make_leaf,
    make_operator,
    make_conditional,
    destroy_ast_node,
)
from stutter.growstring import GrowString
from stutter.sequence import OrderedSequence
from stutter.ir import InstructionSequence, IrOp, ir_halt_program, ir_print_program
from stutter.codegen import StackCodeGenerator, emit
from stutter.inline import InlineGenerator
from stutter.parser import parse_source
from stutter.vm import StackMachine, evaluate
from stutter.compiler import (
    CompilerOptions,
    CompilerResult,
    StutterCompiler,
    compile_stutter,
)

__all__ = [
    "__version__",
    # Errors
    "StutterError",
    "SourceLocation",
    "CompileError",
    "ParseError",
    "UnsupportedConstructError",
    "AllocationOrKindError",
    "NodeKindError",
    "OutOfMemoryError",
    "ValueKindError",
    "SequenceError",
    "VMError",
    # Tree
    "ASTKind",
    "Operator",
    "Value",
    "ValueKind",
    "make_ast_node",
    "make_leaf",
    "make_operator",
    "make_conditional",
    "destroy_ast_node",
    # Containers
    "GrowString",
    "OrderedSequence",
    "InstructionSequence",
    "IrOp",
    "ir_halt_program",
    "ir_print_program",
    # Backends
    "StackCodeGenerator",
    "emit",
    "InlineGenerator",
    # Front end, VM, driver
    "parse_source",
    "StackMachine",
    "evaluate",
    "CompilerOptions",
    "CompilerResult",
    "StutterCompiler",
    "compile_stutter",
]
