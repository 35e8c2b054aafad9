# pyright: standard

"""rsync-btrfs-backup: rsync_btrfs_backup/__logger__.py
A common logger for the console and the per-run log file.
"""

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

# Initialize basic console and handler
cons = Console()
rich_handler = RichHandler(console=cons, show_path=False)
# Package root logger, modules log through logging.getLogger(__name__)
logger = logging.getLogger("rsync_btrfs_backup")

RUN_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(message)s"
RUN_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def create_logger(level: str | int = logging.INFO) -> None:
    """Helper function to setup console logging at the given level."""
    # pylint: disable=global-statement
    global cons, rich_handler

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    cons = Console()
    rich_handler = RichHandler(console=cons, show_path=False)
    rich_handler.setLevel(level)

    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    logger.propagate = False
    # The run log always records INFO, whatever the console shows
    logger.setLevel(min(level, logging.INFO))
    logger.addHandler(rich_handler)


def add_run_log(path: Path) -> logging.FileHandler:
    """Append log records to ``path`` with a timestamp on every line."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setFormatter(logging.Formatter(RUN_LOG_FORMAT, datefmt=RUN_LOG_DATEFMT))
    if logger.getEffectiveLevel() > logging.INFO:
        logger.setLevel(logging.INFO)
    logger.addHandler(handler)
    return handler


def remove_run_log(handler: logging.Handler | None) -> None:
    """Detach and close a handler returned by add_run_log."""
    if handler is None:
        return
    logger.removeHandler(handler)
    handler.close()
