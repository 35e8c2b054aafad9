# pyright: standard

"""rsync-btrfs-backup: rsync_btrfs_backup/__util__.py
Common errors and helpers shared by the pipeline stages.
"""

import logging
import subprocess

logger = logging.getLogger(__name__)


class BackupError(Exception):
    """Base class for fatal errors which abort a backup run."""

    pass


class ConfigNotFound(BackupError):
    """The profile configuration file does not exist."""


class ConfigInvalid(BackupError):
    """The resolved profile is missing required values or has bad ones."""


class PrivilegeError(BackupError):
    """The process runs with superuser identity."""


class CredentialMissing(BackupError):
    """The ssh key for the profile does not exist."""


class UnsupportedStorage(BackupError):
    """The storage root is not on a btrfs filesystem."""


class StoragePermissionError(BackupError):
    """The storage root is not owned by the invoking user."""


class StorageInitError(BackupError):
    """A missing subvolume container could not be created."""


class CorruptStorage(BackupError):
    """A container path exists but is not a btrfs subvolume."""


class TransferFailed(BackupError):
    """Not a single source could be transferred."""


class SnapshotCreateFailed(BackupError):
    """The read-only snapshot of the staging area could not be created."""


class StorageCommandError(Exception):
    """A btrfs command returned a non-zero exit status."""

    def __init__(self, command: list[str], returncode: int, stderr: str = "") -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr.strip()
        msg = f"{' '.join(command)} exited with {returncode}"
        if self.stderr:
            msg += f": {self.stderr}"
        super().__init__(msg)


class PruneWarning(Exception):
    """A snapshot selected for pruning could not be removed.

    Recorded on the prune result and logged, never raised.
    """


def log_heading(caption: str) -> str:
    """Formatted heading for logging output sections."""
    return f"{'-' * 10} {caption} {'-' * 10}"


def exec_subprocess(
    command: list[str], check: bool = True
) -> subprocess.CompletedProcess:
    """Run ``command`` and capture its output as text.

    Raises:
        StorageCommandError: if the command cannot be started, or if
            ``check`` is set and it exits non-zero.
    """
    logger.debug("Executing: %s", command)
    try:
        result = subprocess.run(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            check=False,
        )
    except OSError as e:
        raise StorageCommandError(command, 127, str(e)) from e
    if check and result.returncode != 0:
        raise StorageCommandError(command, result.returncode, result.stderr or "")
    return result
