"""
stuttervm - Reference Stack Machine
===================================

Runs a stack-machine program written by ``stutterc`` and prints the
value left on the stack at HALT.

Usage Examples
--------------
    $ echo "3 - 4" | stutterc calc.stk && stuttervm calc.stk
    -1

    $ stuttervm - < calc.stk
"""

from typing import TextIO

import click

from stutter import __version__
from stutter.cli import configure_logging
from stutter.cli.errors import StutterCommand, handle_cli_exception
from stutter.vm import DEFAULT_MAX_STEPS, StackMachine, load_program


@click.command(cls=StutterCommand)
@click.argument(
    "program",
    type=click.File("r", encoding="utf-8"),
)
@click.option(
    "--max-steps",
    type=click.IntRange(min=1),
    default=DEFAULT_MAX_STEPS,
    show_default=True,
    help="Abort after executing this many instructions",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="stuttervm")
def main(program: TextIO, max_steps: int, verbose: bool) -> None:
    """
    Run a stack-machine program.

    PROGRAM is a file produced by stutterc, or - for standard input.
    """
    configure_logging(verbose)

    try:
        lines = load_program(program.read())
        vm = StackMachine(max_steps=max_steps)
        value = vm.run(lines)
        if verbose:
            click.echo(f"Executed {vm.steps} instructions", err=True)
        click.echo(str(value))
    except Exception as e:
        handle_cli_exception(e, verbose, error_type="Runtime")


if __name__ == "__main__":
    main()
