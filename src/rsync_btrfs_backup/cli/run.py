"""Run command: back up one profile."""

import argparse
import logging
import sys

from .. import __util__
from ..__logger__ import create_logger
from ..config import find_base_dir
from ..core import run_backup
from .common import get_log_level

logger = logging.getLogger(__name__)


def report_fatal(error: Exception) -> None:
    """Print a single ERROR line for ``error`` on stderr."""
    print(f"ERROR: {error}", file=sys.stderr)


def execute_run(args: argparse.Namespace) -> int:
    """Execute a backup run for ``args.profile``.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code (0 once the snapshot exists, 1 on any fatal error)
    """
    create_logger(get_log_level(args))

    base_dir = find_base_dir(getattr(args, "base_dir", None))
    logger.debug("Base directory: %s", base_dir)

    try:
        summary = run_backup(args.profile, base_dir)
    except __util__.BackupError as e:
        report_fatal(e)
        return 1

    if summary.transfers.failed:
        logger.warning(
            "Backup of %s completed with %d failed source(s)",
            args.profile,
            summary.transfers.failed,
        )
    return 0
