# pyright: standard

"""rsync-btrfs-backup: rsync_btrfs_backup/storage/btrfs.py
Run btrfs subvolume commands against the local backup storage.
"""

import getpass
import logging
from pathlib import Path

from filelock import FileLock

from .. import __util__

logger = logging.getLogger(__name__)


class BtrfsEngine:
    """Snapshot-capable storage engine backed by btrfs-progs."""

    def __init__(self, btrfs_bin: str = "btrfs", lock_dir: Path | None = None) -> None:
        self.btrfs_bin = btrfs_bin
        self.lock_path = Path(lock_dir or "/tmp") / (
            f".rsync-btrfs-backup.{getpass.getuser()}.lock"
        )

    def __repr__(self) -> str:
        return f"BtrfsEngine({self.btrfs_bin!r})"

    def create_subvolume(self, path: Path) -> None:
        """Create a new, writable subvolume at ``path``."""
        self._exec_command(self._build_create_cmd(path))
        logger.info("Created subvolume: %s", path)

    def is_subvolume(self, path: Path) -> bool:
        """Return True if ``btrfs subvolume show`` accepts ``path``."""
        result = self._exec_command(self._build_show_cmd(path), check=False)
        return result.returncode == 0

    def snapshot_readonly(self, source: Path, destination: Path) -> Path:
        """Create a read-only snapshot of ``source`` at ``destination``."""
        self._exec_command(self._build_snapshot_cmd(source, destination))
        logger.info("%s -> %s", source, destination)
        return Path(destination)

    def clear_readonly(self, path: Path) -> None:
        """Clear the read-only property so the snapshot can be deleted."""
        self._exec_command(self._build_property_cmd(path, readonly=False))

    def delete_subvolume(self, path: Path) -> None:
        self._exec_command(self._build_delete_cmd(path))
        logger.info("Deleted snapshot subvolume: %s", path)

    def _build_create_cmd(self, path):
        return [self.btrfs_bin, "subvolume", "create", str(path)]

    def _build_show_cmd(self, path):
        return [self.btrfs_bin, "subvolume", "show", str(path)]

    def _build_snapshot_cmd(self, source, destination):
        cmd = [self.btrfs_bin, "subvolume", "snapshot", "-r"]
        cmd += [str(source), str(destination)]
        logger.debug("Snapshot command: %s", cmd)
        return cmd

    def _build_property_cmd(self, path, readonly):
        value = "true" if readonly else "false"
        return [self.btrfs_bin, "property", "set", "-ts", str(path), "ro", value]

    def _build_delete_cmd(self, path):
        return [self.btrfs_bin, "subvolume", "delete", str(path)]

    def _exec_command(self, command, check=True):
        with FileLock(self.lock_path):
            return __util__.exec_subprocess(command, check=check)
