"""Checks run before anything is transferred.

All checks are fail-fast and run in a fixed order. The only mutations are
creating the per-profile container, the staging subvolume and the log
directory.
"""

import logging
from pathlib import Path

from .. import __util__
from ..config.schema import Profile

logger = logging.getLogger(__name__)

SUPPORTED_FILESYSTEMS = frozenset({"btrfs"})


def check_not_superuser(identity) -> None:
    if identity.current_uid() == 0:
        raise __util__.PrivilegeError("Refusing to run as root")


def check_required_settings(profile: Profile) -> None:
    if not profile.sources:
        raise __util__.ConfigInvalid(f"No SRC configured for profile {profile.name!r}")
    for key, value in (
        ("SERVER", profile.server),
        ("USER", profile.user),
        ("STORAGE", profile.storage_root),
    ):
        if not value:
            raise __util__.ConfigInvalid(
                f"{key} is not set for profile {profile.name!r}"
            )


def check_credential(profile: Profile) -> None:
    if not Path(profile.credential_path).is_file():
        raise __util__.CredentialMissing(
            f"SSH key not found: {profile.credential_path}"
        )


def check_storage(profile: Profile, identity) -> None:
    """Verify the storage root is on btrfs and owned by the invoking user."""
    storage_root = profile.storage_root
    fs_type = identity.filesystem_type(storage_root)
    if fs_type not in SUPPORTED_FILESYSTEMS:
        raise __util__.UnsupportedStorage(
            f"{storage_root} does not seem to be on a btrfs filesystem"
            f" (found {fs_type or 'nothing'})"
        )
    if identity.path_owner(storage_root) != identity.current_uid():
        raise __util__.StoragePermissionError(
            f"{storage_root} is not owned by the current user"
        )


def ensure_subvolume(engine, path: Path) -> None:
    """Create ``path`` as a subvolume, or verify an existing one."""
    if path.exists():
        try:
            valid = engine.is_subvolume(path)
        except __util__.StorageCommandError as e:
            raise __util__.StorageInitError(f"Cannot inspect {path}: {e}") from e
        if not valid:
            raise __util__.CorruptStorage(
                f"{path} exists but is not a btrfs subvolume, manual repair required"
            )
        logger.debug("Subvolume present: %s", path)
        return
    logger.info("Creating subvolume: %s", path)
    try:
        engine.create_subvolume(path)
    except __util__.StorageCommandError as e:
        raise __util__.StorageInitError(f"Cannot create subvolume {path}: {e}") from e


def check_profile(profile: Profile, identity) -> None:
    """Checks needing nothing but the resolved profile and the process."""
    check_not_superuser(identity)
    check_required_settings(profile)


def prepare_log_dir(profile: Profile) -> Path:
    log_dir = Path(profile.log_dir)
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise __util__.ConfigInvalid(
            f"Cannot create log directory {log_dir}: {e}"
        ) from e
    return log_dir


def check_storage_preconditions(profile: Profile, engine, identity) -> None:
    """Checks run once the run log is open: key, storage and containers."""
    check_credential(profile)
    check_storage(profile, identity)
    ensure_subvolume(engine, profile.sync_to)
    ensure_subvolume(engine, profile.sync_to_current)


def validate_preconditions(profile: Profile, engine, identity) -> None:
    """Run every precondition check for ``profile``.

    The log directory is created as soon as the profile itself is known to
    be complete, so later failures can be recorded in the run log.

    Args:
        profile: Resolved profile
        engine: Storage engine used to create missing containers
        identity: Identity probe for uid, owner and filesystem queries

    Raises:
        BackupError: The first violated precondition
    """
    check_profile(profile, identity)
    prepare_log_dir(profile)
    check_storage_preconditions(profile, engine, identity)
