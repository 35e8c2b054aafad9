"""Configuration schema definitions using dataclasses.

Defines the resolved backup profile and the defaults applied to it.
"""

from dataclasses import dataclass
from pathlib import Path

from ..__util__ import ConfigInvalid

SECONDS_PER_DAY = 86400

# rsync: recursive, preserve everything, delete extraneous, one hour timeout
DEFAULT_RSYNC_OPTS = (
    "--archive --hard-links --acls --xattrs --numeric-ids "
    "--delete --delete-excluded --timeout=3600"
)
DEFAULT_RSYNC_EXCLUDE = "lost+found"
DEFAULT_KEEP_DAYS = 30
DEFAULT_KEEP_LONG_COUNT = 4

STAGING_NAME = "current"


@dataclass(frozen=True)
class Profile:
    """A fully resolved backup profile.

    Attributes:
        name: Profile name, also the container name below the storage root
        sources: Remote paths to transfer, in configured order
        server: Remote host to pull from
        user: Remote login user
        credential_path: ssh private key used for the transfer
        storage_root: btrfs directory holding one container per profile
        log_dir: Directory for run and transfer logs
        transfer_options: Extra rsync arguments
        exclude_patterns: rsync exclude patterns
        keep_days: Retention window in days
        keep_long_count: Maximum number of Long snapshots retained
    """

    name: str
    sources: tuple[str, ...] = ()
    server: str = ""
    user: str = ""
    credential_path: Path = Path()
    storage_root: Path | None = None
    log_dir: Path = Path()
    transfer_options: tuple[str, ...] = ()
    exclude_patterns: tuple[str, ...] = ()
    keep_days: float = DEFAULT_KEEP_DAYS
    keep_long_count: int = DEFAULT_KEEP_LONG_COUNT

    @property
    def keep_seconds(self) -> float:
        return self.keep_days * SECONDS_PER_DAY

    @property
    def sync_to(self) -> Path:
        """Per-profile subvolume container."""
        if self.storage_root is None:
            raise ConfigInvalid(f"STORAGE is not set for profile {self.name!r}")
        return self.storage_root / self.name

    @property
    def sync_to_current(self) -> Path:
        """Mutable staging subvolume."""
        return self.sync_to / STAGING_NAME
