"""
stutterc - Stutter Compiler Command-Line Interface
==================================================

Compiles one Stutter expression, read from standard input or a file,
into a stack-machine program or a C program.

Usage Examples
--------------
Compile from stdin to a stack program:
    $ echo "3 - 4" | stutterc calc.stk

Compile a file with the inline C backend:
    $ stutterc calc.c -i calc.st -b inline

Run the result:
    $ stuttervm calc.stk

Dump the parsed tree:
    $ echo "1 + 2 * 3" | stutterc out.stk --ast
"""

import os
import tempfile
from pathlib import Path
from typing import BinaryIO, Optional

import click

from stutter import __version__
from stutter.ast import ASTPrinter, destroy_ast_node
from stutter.cli import configure_logging
from stutter.cli.errors import StutterCommand, handle_cli_exception
from stutter.compiler import BACKENDS, CompilerOptions, StutterCompiler, decode_source


def write_output(path: Path, text: str) -> None:
    """
    Write ``text`` to ``path`` through a temporary file in the same
    directory, so ``path`` either holds the complete output or is left
    untouched.
    """
    fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
        os.replace(temp_name, path)
    except BaseException:
        if os.path.exists(temp_name):
            os.unlink(temp_name)
        raise


# =============================================================================
# CLI Definition
# =============================================================================

@click.command(cls=StutterCommand)
@click.argument(
    "output",
    type=click.Path(dir_okay=False, path_type=Path),
)
@click.option(
    "-i", "--input", "input_file",
    type=click.File("rb"),
    default="-",
    help="Source file (default: standard input)",
)
@click.option(
    "-b", "--backend",
    type=click.Choice(BACKENDS),
    default="stack",
    show_default=True,
    help="Code generator to use",
)
@click.option(
    "--max-instructions",
    type=click.IntRange(min=1),
    default=None,
    help="Fail if the stack program would exceed this many lines",
)
@click.option(
    "--max-buffer-size",
    type=click.IntRange(min=1),
    default=None,
    help="Fail if an inline-backend buffer would exceed this many characters",
)
@click.option(
    "--ast",
    is_flag=True,
    help="Print AST and exit (for debugging)",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="stutterc")
def main(
    output: Path,
    input_file: BinaryIO,
    backend: str,
    max_instructions: Optional[int],
    max_buffer_size: Optional[int],
    ast: bool,
    verbose: bool,
) -> None:
    """
    Compile a Stutter expression.

    OUTPUT is the file that receives the generated program. It is only
    written when compilation succeeds.

    \b
    Examples:
        echo "3 - 4" | stutterc calc.stk        # Stack-machine program
        stutterc calc.c -i calc.st -b inline    # C program
        stutterc out.stk -i calc.st --ast       # Print the tree
    """
    configure_logging(verbose)

    options = CompilerOptions(
        backend=backend,
        max_buffer_size=max_buffer_size,
        max_instructions=max_instructions,
    )
    compiler = StutterCompiler(options)
    filename = getattr(input_file, "name", "<stdin>")

    try:
        source = decode_source(input_file.read(), filename)

        # AST dump mode
        if ast:
            tree = compiler.parse(source, filename)
            try:
                click.echo(ASTPrinter().print(tree))
            finally:
                destroy_ast_node(tree)
            return

        result = compiler.compile_source(source, filename)
        write_output(output, result.output)

        if verbose:
            click.echo(f"Parsed: {result.node_count} nodes", err=True)
            if backend == "stack":
                click.echo(f"Generated: {result.instruction_count} instructions", err=True)
            click.echo(f"Wrote {len(result.output)} characters to {output}", err=True)

    except Exception as e:
        handle_cli_exception(e, verbose)


if __name__ == "__main__":
    main()
