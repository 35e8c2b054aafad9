"""rsync-btrfs-backup: rsync_btrfs_backup/__init__.py."""


__version__ = "0.3.0"


def strip_trailing_sep(path: str) -> str:
    """Remove trailing '/' from a path, leaving a bare root intact."""
    if not path:
        return path
    return path.rstrip("/") or "/"
