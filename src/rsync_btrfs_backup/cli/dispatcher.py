"""CLI argument parsing and routing.

The command line takes a single profile name. ``--example-config`` prints a
commented profile file instead of running a backup.
"""

import argparse
import sys

from .common import add_verbosity_args


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="rsync-btrfs-backup",
        description="Pull remote paths with rsync and keep btrfs snapshots of them",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    add_verbosity_args(parser)

    parser.add_argument(
        "-V",
        "--version",
        action="store_true",
        help="Show version and exit",
    )
    parser.add_argument(
        "--base-dir",
        metavar="DIR",
        help="Directory holding conf/, keys/ and log/ "
        "(default: $RSYNC_BTRFS_BACKUP_HOME or ~/.config/rsync-btrfs-backup)",
    )
    parser.add_argument(
        "--example-config",
        action="store_true",
        help="Print an example profile file and exit",
    )
    parser.add_argument(
        "profile",
        nargs="?",
        help="Name of the backup profile (conf/<profile>.conf)",
    )
    return parser


def run_command(args: argparse.Namespace) -> int:
    """Route parsed arguments to the matching action.

    Args:
        args: Parsed arguments

    Returns:
        Exit code
    """
    from .. import __version__

    if args.version:
        print(f"rsync-btrfs-backup {__version__}")
        return 0

    if args.example_config:
        from ..config import generate_example_config

        print(generate_example_config(), end="")
        return 0

    if not args.profile:
        print(
            "ERROR: No profile specified. Use --help for usage information.",
            file=sys.stderr,
        )
        return 1

    from .run import execute_run

    return execute_run(args)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for rsync-btrfs-backup CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = create_parser()
    args = parser.parse_args(argv)

    return run_command(args)
