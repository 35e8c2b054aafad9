"""Two-tier retention for Long and Short snapshots.

Long snapshots are kept by count, Short snapshots by age. Deletion is best
effort: a snapshot that cannot be removed is reported and the remaining
candidates are still processed.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from .. import __util__
from .snapshot import SnapshotClass, SnapshotEntry, list_snapshots

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PruneResult:
    """Outcome of removing one snapshot."""

    snapshot: SnapshotEntry
    deleted: bool
    error: __util__.PruneWarning | None = None


def select_long_for_deletion(
    long_snapshots: list[SnapshotEntry], keep_long_count: int
) -> list[SnapshotEntry]:
    """Return all but the newest ``keep_long_count`` Long snapshots."""
    ordered = sorted(long_snapshots)
    if keep_long_count <= 0:
        return ordered
    return ordered[:-keep_long_count]


def select_short_for_deletion(
    short_snapshots: list[SnapshotEntry], now: int, keep_seconds: float
) -> list[SnapshotEntry]:
    """Return the Short snapshots older than the retention window."""
    cutoff = now - keep_seconds
    return [s for s in sorted(short_snapshots) if s.epoch < cutoff]


def delete_snapshot(engine, snapshot: SnapshotEntry) -> PruneResult:
    """Clear the read-only flag of ``snapshot`` and delete it."""
    try:
        engine.clear_readonly(snapshot.path)
    except __util__.StorageCommandError as e:
        return PruneResult(
            snapshot, False, __util__.PruneWarning(f"cannot clear read-only flag: {e}")
        )
    try:
        engine.delete_subvolume(snapshot.path)
    except __util__.StorageCommandError as e:
        return PruneResult(
            snapshot, False, __util__.PruneWarning(f"cannot delete: {e}")
        )
    return PruneResult(snapshot, True)


def prune_snapshots(
    engine,
    container: Path,
    now: int,
    keep_seconds: float,
    keep_long_count: int,
    protected: str | None = None,
) -> list[PruneResult]:
    """Apply the retention policy to ``container``.

    Args:
        engine: Storage engine used for deletion
        container: Profile container holding the snapshots
        now: Run epoch
        keep_seconds: Retention window for Short snapshots
        keep_long_count: Number of Long snapshots to keep
        protected: Name of a snapshot which must never be deleted

    Returns:
        One PruneResult per deletion candidate
    """
    candidates = select_long_for_deletion(
        list_snapshots(container, SnapshotClass.LONG), keep_long_count
    )
    candidates += select_short_for_deletion(
        list_snapshots(container, SnapshotClass.SHORT), now, keep_seconds
    )

    results = []
    for snapshot in candidates:
        if snapshot.name == protected:
            logger.debug("Keeping snapshot of this run: %s", snapshot.name)
            continue
        result = delete_snapshot(engine, snapshot)
        if result.deleted:
            logger.info("Pruned %s", snapshot.name)
        else:
            logger.warning("Failed to prune %s: %s", snapshot.name, result.error)
        results.append(result)

    if not candidates:
        logger.debug("Nothing to prune in %s", container)
    return results
