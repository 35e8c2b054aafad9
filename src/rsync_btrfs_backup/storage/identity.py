# pyright: standard

"""rsync-btrfs-backup: rsync_btrfs_backup/storage/identity.py
Identity, ownership and filesystem type queries.
"""

import logging
import os
from pathlib import Path

from .. import __util__

logger = logging.getLogger(__name__)


class IdentityProbe:
    """Answer who runs the backup and what the storage root is."""

    def current_uid(self) -> int:
        return os.geteuid()

    def path_owner(self, path: Path) -> int:
        return Path(path).stat().st_uid

    def filesystem_type(self, path: Path) -> str | None:
        """Return the filesystem type name of ``path``, or None if unknown."""
        try:
            result = __util__.exec_subprocess(["stat", "-f", "-c", "%T", str(path)])
        except __util__.StorageCommandError as e:
            logger.debug("Cannot determine filesystem type of %s: %s", path, e)
            return None
        return result.stdout.strip() or None
