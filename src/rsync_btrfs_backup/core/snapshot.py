"""Snapshot enumeration, classification and creation.

Snapshots live next to the staging subvolume and are named
``{class}_{epoch}``, which makes them sortable by creation time within a
class. The storage directory is listed afresh on every call.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .. import __util__

logger = logging.getLogger(__name__)

SNAPSHOT_NAME_RE = re.compile(r"^(Long|Short)_(\d+)$")


class SnapshotClass(Enum):
    """Retention class of a snapshot."""

    LONG = "Long"
    SHORT = "Short"


@dataclass(frozen=True, order=True)
class SnapshotEntry:
    """A read-only snapshot found in, or created in, a profile container."""

    epoch: int
    name: str
    snapshot_class: SnapshotClass = field(compare=False)
    path: Path = field(compare=False)

    @classmethod
    def from_path(cls, path: Path) -> "SnapshotEntry | None":
        """Parse a container entry, returning None for non-snapshot names."""
        match = SNAPSHOT_NAME_RE.match(path.name)
        if not match:
            return None
        return cls(
            epoch=int(match.group(2)),
            name=path.name,
            snapshot_class=SnapshotClass(match.group(1)),
            path=path,
        )


def snapshot_name(snapshot_class: SnapshotClass, epoch: int) -> str:
    return f"{snapshot_class.value}_{epoch}"


def list_snapshots(
    container: Path, snapshot_class: SnapshotClass | None = None
) -> list[SnapshotEntry]:
    """List snapshots in ``container`` sorted ascending by epoch.

    Entries that carry a snapshot name but are not directories are left
    alone and reported.
    """
    container = Path(container)
    if not container.is_dir():
        return []

    snapshots = []
    for item in container.iterdir():
        entry = SnapshotEntry.from_path(item)
        if entry is None:
            continue
        if not item.is_dir():
            logger.warning("Ignoring %s: not a directory", item)
            continue
        if snapshot_class is not None and entry.snapshot_class is not snapshot_class:
            continue
        snapshots.append(entry)
    snapshots.sort()
    return snapshots


def classify_snapshot(
    last_long: int, keep_seconds: float, now: int, keep_long_count: int
) -> SnapshotClass:
    """Decide the class of the snapshot taken at ``now``.

    A Long snapshot is due once the newest Long snapshot is older than the
    retention window, and only while Long snapshots are retained at all.
    """
    if last_long + keep_seconds < now and keep_long_count > 0:
        return SnapshotClass.LONG
    return SnapshotClass.SHORT


def create_snapshot(
    engine,
    staging: Path,
    container: Path,
    epoch: int,
    keep_seconds: float,
    keep_long_count: int,
) -> SnapshotEntry:
    """Create one read-only snapshot of ``staging`` in ``container``.

    Raises:
        SnapshotCreateFailed: If the container cannot be read, the name is
            taken or btrfs fails
    """
    try:
        long_snapshots = list_snapshots(container, SnapshotClass.LONG)
    except OSError as e:
        raise __util__.SnapshotCreateFailed(
            f"Cannot list snapshots in {container}: {e}"
        ) from e
    last_long = long_snapshots[-1].epoch if long_snapshots else 0
    logger.debug("Last Long snapshot epoch: %d", last_long)

    snapshot_class = classify_snapshot(last_long, keep_seconds, epoch, keep_long_count)
    name = snapshot_name(snapshot_class, epoch)
    destination = Path(container) / name

    if destination.exists():
        raise __util__.SnapshotCreateFailed(f"Snapshot {destination} already exists")

    logger.info("Creating %s snapshot: %s", snapshot_class.value, name)
    try:
        engine.snapshot_readonly(staging, destination)
    except __util__.StorageCommandError as e:
        raise __util__.SnapshotCreateFailed(
            f"Cannot create snapshot {destination}: {e}"
        ) from e

    return SnapshotEntry(
        epoch=epoch, name=name, snapshot_class=snapshot_class, path=destination
    )
