"""Shared CLI utilities: console verbosity flags.

Verbosity only affects the console. The per-run log file always records
INFO and above, see ``__logger__.add_run_log``.
"""

import argparse
import logging


def add_verbosity_args(parser: argparse.ArgumentParser) -> None:
    """Add console verbosity arguments to a parser."""
    group = parser.add_argument_group("Console output")
    chatter = group.add_mutually_exclusive_group()
    chatter.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Also show rsync and btrfs commands as they are run",
    )
    chatter.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Only show warnings and errors (the run log is unaffected)",
    )
    group.add_argument(
        "--debug",
        action="store_true",
        help="Show everything, overrides --quiet",
    )


def get_log_level(args: argparse.Namespace) -> str:
    """Console log level name for the parsed verbosity flags.

    ``--debug`` wins over everything, ``--verbose`` equals it and
    ``--quiet`` lowers the console to warnings.
    """
    if getattr(args, "debug", False) or getattr(args, "verbose", False):
        level = logging.DEBUG
    elif getattr(args, "quiet", False):
        level = logging.WARNING
    else:
        level = logging.INFO
    return logging.getLevelName(level)
