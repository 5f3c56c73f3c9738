"""
Stutter Compiler Main Module
============================

This module provides the main compiler interface for Stutter. It
orchestrates the complete compilation process:

    Source → Lex → Parse → Generate → Output text

Backends
--------
- ``stack``: newline-delimited stack-machine program ending in HALT
- ``inline``: a C program that prints the value of the expression

Usage
-----
Command line:
    $ echo "3 - 4" | stutterc calc.stk

Programmatic:
    >>> from stutter.compiler import compile_stutter
    >>> compile_stutter("3 - 4")
    'PUSH\\n4\\nPUSH\\n3\\nSUB\\nHALT\\n'

Error Handling
--------------
``compile_source`` raises the first error of a unit unchanged, so the
caller can tell a parse failure from an unsupported construct or an
allocation failure. ``compile_many`` keeps going after a failed unit and
collects the errors for one report.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from stutter.ast import ASTNode, count_nodes, destroy_ast_node
from stutter.codegen import StackCodeGenerator
from stutter.errors import (
    CompileError,
    CompileErrorCollector,
    ParseError,
    SourceLocation,
    StutterError,
)
from stutter.inline import InlineGenerator
from stutter.ir import format_program
from stutter.parser import parse_source

logger = logging.getLogger(__name__)

BACKENDS = ("stack", "inline")


@dataclass
class CompilerOptions:
    """
    Compiler configuration options.

    Attributes:
        backend: "stack" for stack-machine text, "inline" for C source
        max_buffer_size: Capacity limit for inline-backend buffers
                         (None means unlimited)
        max_instructions: Length limit for stack programs
                          (None means unlimited)
        keep_ast: Keep the tree on the result instead of destroying it
                  after generation
    """
    backend: str = "stack"
    max_buffer_size: Optional[int] = None
    max_instructions: Optional[int] = None
    keep_ast: bool = False

    def __post_init__(self):
        if self.backend not in BACKENDS:
            raise ValueError(
                f"unknown backend {self.backend!r}, expected one of {', '.join(BACKENDS)}"
            )


@dataclass
class CompilerResult:
    """
    Result of a compilation.

    Attributes:
        filename: Source filename
        success: True if compilation succeeded
        output: Generated program text (if successful)
        ast: The tree, when kept via CompilerOptions.keep_ast
        node_count: Number of tree nodes parsed
        instruction_count: Number of stack instructions (stack backend)
        errors: Errors raised for this unit
    """
    filename: str = ""
    success: bool = False
    output: str = ""
    ast: Optional[ASTNode] = None
    node_count: int = 0
    instruction_count: int = 0
    errors: list[StutterError] = field(default_factory=list)


class StutterCompiler:
    """
    Compiler for Stutter expressions.

    Example:
        compiler = StutterCompiler(CompilerOptions(backend="inline"))
        result = compiler.compile_source("1 + 2")
        print(result.output)

    Attributes:
        options: Compiler configuration options
        errors: Errors collected by the last compile_many call
    """

    def __init__(self, options: Optional[CompilerOptions] = None):
        self.options = options or CompilerOptions()
        self.errors = CompileErrorCollector()

    def parse(self, source: str, filename: str = "<input>") -> ASTNode:
        """Parse ``source`` into a tree owned by the caller."""
        try:
            return parse_source(source, filename)
        except RecursionError:
            raise self._too_deep(filename) from None

    def compile_source(self, source: str, filename: str = "<input>") -> CompilerResult:
        """
        Compile one expression.

        Args:
            source: Stutter source text
            filename: Source filename for error messages

        Returns:
            CompilerResult holding the generated text

        Raises:
            ParseError: If the source cannot be parsed
            UnsupportedConstructError: If the backend cannot lower the tree
            OutOfMemoryError: If a configured size limit is exceeded
        """
        logger.debug(f"compiling {filename} with the {self.options.backend} backend")
        result = CompilerResult(filename=filename)

        tree = self.parse(source, filename)
        result.node_count = count_nodes(tree)
        try:
            result.output, result.instruction_count = self._generate(tree, filename)
        finally:
            if self.options.keep_ast:
                result.ast = tree
            else:
                destroy_ast_node(tree)

        result.success = True
        logger.debug(f"compiled {filename}: {result.node_count} nodes")
        return result

    def compile_file(self, filepath: str) -> CompilerResult:
        """
        Compile a source file.

        Raises:
            FileNotFoundError: If the source file does not exist
            ParseError: If the file is not valid UTF-8
        """
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"Source file not found: {filepath}")
        return self.compile_source(decode_source(path.read_bytes(), str(path)), str(path))

    def compile_many(self, sources: Iterable[tuple[str, str]]) -> list[CompilerResult]:
        """
        Compile several independent units.

        A failed unit does not stop the batch: its error is recorded on
        its result and in ``self.errors``. Compilation stops early only
        once the collector's error limit is reached.

        Args:
            sources: (filename, source) pairs
        """
        self.errors.clear()
        results = []
        for filename, source in sources:
            try:
                results.append(self.compile_source(source, filename))
            except StutterError as e:
                logger.warning(f"{filename}: compilation failed")
                self.errors.add(e, filename)
                results.append(CompilerResult(filename=filename, errors=[e]))
                if self.errors.should_stop():
                    logger.warning("too many errors, stopping batch")
                    break
        return results

    def _generate(self, tree: ASTNode, filename: str) -> tuple[str, int]:
        try:
            if self.options.backend == "inline":
                generator = InlineGenerator(max_size=self.options.max_buffer_size)
                return generator.generate_program(tree), 0

            program = StackCodeGenerator(self.options.max_instructions).generate(tree)
            try:
                return format_program(program), len(program)
            finally:
                program.destroy()
        except RecursionError:
            raise self._too_deep(filename) from None

    @staticmethod
    def _too_deep(filename: str) -> CompileError:
        return CompileError(
            f"{filename}: expression nested too deeply",
            hint="split the expression into smaller parts",
        )


# =============================================================================
# Convenience Functions
# =============================================================================

def compile_stutter(source: str, filename: str = "<input>", backend: str = "stack") -> str:
    """
    Compile Stutter source to program text.

    Raises:
        StutterError: If compilation fails

    Example:
        >>> print(compile_stutter("7", backend="stack"), end="")
        PUSH
        7
        HALT
    """
    compiler = StutterCompiler(CompilerOptions(backend=backend))
    return compiler.compile_source(source, filename).output


def decode_source(data: bytes, filename: str = "<input>") -> str:
    """
    Decode raw source bytes as UTF-8.

    Raises:
        ParseError: At the first byte that is not valid UTF-8
    """
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        line_start = data.rfind(b"\n", 0, e.start) + 1
        location = SourceLocation(
            filename,
            data.count(b"\n", 0, e.start) + 1,
            len(data[line_start:e.start].decode("utf-8", errors="replace")) + 1,
        )
        raise ParseError(
            f"source is not valid UTF-8 (byte 0x{data[e.start]:02x} at offset {e.start})",
            location,
        ) from None
