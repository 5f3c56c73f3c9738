"""
Stutter Command-Line Interface
==============================

This package provides the command-line tools for Stutter:

- **stutterc**: expression compiler (stack machine or inline C)
- **stuttervm**: reference stack machine for generated programs

Each tool is a Click command. Exit codes are defined in
``stutter.cli.errors``.
"""

import logging


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr; DEBUG with --verbose, WARNING otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


__all__ = ["configure_logging", "stutterc", "stuttervm"]
