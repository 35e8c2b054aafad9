"""rsync-btrfs-backup: rsync_btrfs_backup/storage/__init__.py."""

from .btrfs import BtrfsEngine
from .identity import IdentityProbe

__all__ = ["BtrfsEngine", "IdentityProbe"]
