"""Command line interface for rsync-btrfs-backup."""

from .dispatcher import main

__all__ = ["main"]
