"""
Stutter Error Hierarchy
=======================

This module defines the exception hierarchy for the whole Stutter
toolchain. All exceptions inherit from StutterError, allowing callers
to catch every toolchain error with a single except clause.

Exception Hierarchy
-------------------
StutterError (base)
├── CompileError (errors tied to a source location)
│   ├── ParseError - source text cannot be turned into a tree
│   │   ├── InvalidCharacterError - unexpected character in source
│   │   └── UnexpectedTokenError - token does not fit the grammar
│   ├── UnsupportedConstructError - tree node no backend can lower
│   └── CompilationFailed - aggregate report for a failed unit
├── AllocationOrKindError (construction failures)
│   ├── NodeKindError - invalid node kind or mismatched fields
│   └── OutOfMemoryError - storage could not be grown
├── ValueKindError - reading an inactive Value variant
├── SequenceError - misuse of an ordered sequence
└── VMError - runtime failure in the reference stack machine

Error messages follow this format:
    filename:line:column: error: description
        source_line_text
        ^
    hint: suggestion for fixing (when available)
"""

from dataclasses import dataclass
from typing import List, Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class StutterError(Exception):
    """
    Base exception for all Stutter errors.

        try:
            compiler.compile_source(text)
        except StutterError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    A position in source text.

    Attributes:
        filename: Name of the source file (or "<stdin>")
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """
    filename: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}:{self.column}"


# =============================================================================
# Compile Errors
# =============================================================================

class CompileError(StutterError):
    """
    Base exception for errors reported against source code.

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
        source_line: The source text at the error location (optional)
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the error message with location, source context, and hint.

        Example output:
            calc.st:1:7: error: unexpected ')', expected expression
                1 + ( )
                      ^
        """
        parts = []

        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        if self.source_line is not None and self.location is not None:
            parts.append(f"    {self.source_line}")
            if self.location.column > 0:
                padding = " " * (4 + self.location.column - 1)
                parts.append(f"{padding}^")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)


class ParseError(CompileError):
    """
    The source text could not be parsed into an expression tree.

    This is the ParseFailure case of the driver: it is reported and no
    output file is written.
    """
    pass


class InvalidCharacterError(ParseError):
    """A character that cannot start any token."""

    def __init__(
        self,
        char: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.char = char
        super().__init__(
            f"invalid character {char!r}",
            location=location,
            source_line=source_line,
        )


class UnexpectedTokenError(ParseError):
    """A token that does not fit the grammar at this point."""

    def __init__(
        self,
        found: str,
        expected: Optional[str] = None,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.found = found
        self.expected = expected
        message = f"unexpected {found}"
        if expected:
            message += f", expected {expected}"
        super().__init__(message, location=location, source_line=source_line)


class UnsupportedConstructError(CompileError):
    """
    A tree node that the selected backend cannot lower.

    Conditional nodes always raise this: control-flow lowering is not
    implemented by either backend, and a conditional must never be
    dropped silently.
    """

    def __init__(
        self,
        construct: str,
        location: Optional[SourceLocation] = None,
        backend: Optional[str] = None,
        alternative: Optional[str] = None,
    ):
        self.construct = construct
        self.backend = backend
        message = f"unsupported construct: {construct}"
        if backend:
            message += f" (backend: {backend})"
        super().__init__(message, location=location, hint=alternative)


class CompilationFailed(CompileError):
    """
    Aggregate error for a compilation unit that collected errors.

    The message is already a formatted report and is passed through
    unchanged.
    """

    def _format_message(self) -> str:
        return self.message


# =============================================================================
# Construction Errors
# =============================================================================

class AllocationOrKindError(StutterError):
    """Base for failures while building nodes or growing storage."""
    pass


class NodeKindError(AllocationOrKindError):
    """
    A tree node was requested with an unknown kind, with fields that do
    not match its kind, or with a child that is already owned elsewhere.
    """
    pass


class OutOfMemoryError(AllocationOrKindError):
    """
    Storage could not be grown.

    Raised instead of terminating the process so that a batch compiler
    can abandon only the current unit.

    Attributes:
        requested: Number of slots that were requested
        limit: The configured limit, if one was exceeded
    """

    def __init__(self, what: str, requested: int, limit: Optional[int] = None):
        self.what = what
        self.requested = requested
        self.limit = limit
        if limit is not None:
            message = f"out of memory: {what} needs {requested} slots, limit is {limit}"
        else:
            message = f"out of memory: {what} could not allocate {requested} slots"
        super().__init__(message)


class ValueKindError(StutterError):
    """Reading a Value through an accessor for an inactive variant."""
    pass


class SequenceError(StutterError):
    """Invalid operation on an ordered sequence."""
    pass


class VMError(StutterError):
    """
    Runtime failure in the reference stack machine.

    Attributes:
        step: Index of the instruction line being executed, if known
    """

    def __init__(self, message: str, step: Optional[int] = None):
        self.step = step
        if step is not None:
            message = f"{message} (at instruction {step})"
        super().__init__(message)


# =============================================================================
# Error Collection (for batch compilation)
# =============================================================================

class CompileErrorCollector:
    """
    Collects errors from several compilation units for one report.

    Example:
        collector = CompileErrorCollector()
        for name, text in sources:
            try:
                compile_unit(text)
            except StutterError as e:
                collector.add(e, name)
        collector.raise_if_errors()
    """

    def __init__(self, max_errors: int = 100):
        self.errors: List[StutterError] = []
        self.units: List[str] = []
        self.max_errors = max_errors

    def add(self, error: StutterError, unit: str = "<input>") -> None:
        """Add an error raised while compiling ``unit``."""
        self.errors.append(error)
        self.units.append(unit)

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def should_stop(self) -> bool:
        return len(self.errors) >= self.max_errors

    def error_count(self) -> int:
        return len(self.errors)

    def report(self) -> str:
        """Format all errors for display."""
        lines = []
        for unit, error in zip(self.units, self.errors):
            text = str(error)
            if not isinstance(error, CompileError) or error.location is None:
                text = f"{unit}: {text}"
            lines.append(text)
            lines.append("")

        error_word = "error" if len(self.errors) == 1 else "errors"
        lines.append(f"{len(self.errors)} {error_word}")
        return "\n".join(lines)

    def clear(self) -> None:
        self.errors.clear()
        self.units.clear()

    def raise_if_errors(self) -> None:
        """Raise CompilationFailed if any errors were collected."""
        if self.has_errors():
            raise CompilationFailed(self.report())
