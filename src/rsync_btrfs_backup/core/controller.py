"""Run controller: resolve, validate, transfer, snapshot, prune.

Every failure up to and including snapshot creation aborts the run. Pruning
problems are logged and never change the outcome of the run.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from .. import __util__
from ..__logger__ import add_run_log, remove_run_log
from ..config import Profile, resolve_profile
from ..rsync import RsyncTool
from ..storage import BtrfsEngine, IdentityProbe
from .preconditions import check_profile, check_storage_preconditions, prepare_log_dir
from .retention import PruneResult, prune_snapshots
from .snapshot import SnapshotEntry, create_snapshot
from .transfer import TransferReport, run_transfers

logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    """Per-invocation state, discarded when the run ends."""

    profile: Profile
    epoch: int
    keep_seconds: float
    run_log: Path
    transfer_log: Path
    sync_to: Path
    sync_to_current: Path

    @classmethod
    def create(cls, profile: Profile, epoch: int) -> "RunContext":
        log_dir = Path(profile.log_dir)
        return cls(
            profile=profile,
            epoch=epoch,
            keep_seconds=profile.keep_seconds,
            run_log=log_dir / f"run.log.{epoch}",
            transfer_log=log_dir / f"transfer.log.{epoch}",
            sync_to=profile.sync_to,
            sync_to_current=profile.sync_to_current,
        )


@dataclass
class RunSummary:
    """What a completed run did."""

    context: RunContext
    transfers: TransferReport
    snapshot: SnapshotEntry
    pruned: list[PruneResult] = field(default_factory=list)

    @property
    def prune_failures(self) -> list[PruneResult]:
        return [r for r in self.pruned if not r.deleted]


def _prune(context: RunContext, engine, snapshot: SnapshotEntry) -> list[PruneResult]:
    try:
        return prune_snapshots(
            engine,
            context.sync_to,
            context.epoch,
            context.keep_seconds,
            context.profile.keep_long_count,
            protected=snapshot.name,
        )
    except OSError as e:
        logger.warning("Pruning of %s skipped: %s", context.sync_to, e)
        return []


def run_backup(
    name: str,
    base_dir: Path,
    engine=None,
    rsync=None,
    identity=None,
    epoch: int | None = None,
) -> RunSummary:
    """Run one backup of profile ``name``.

    Args:
        name: Profile name
        base_dir: Directory holding conf/, keys/ and log/
        engine: Storage engine (defaults to BtrfsEngine)
        rsync: Transfer tool (defaults to RsyncTool)
        identity: Identity probe (defaults to IdentityProbe)
        epoch: Run start time in seconds, fixed for the whole run

    Returns:
        RunSummary of the completed run

    Raises:
        BackupError: On any fatal error
    """
    engine = engine or BtrfsEngine()
    rsync = rsync or RsyncTool()
    identity = identity or IdentityProbe()
    if epoch is None:
        epoch = int(time.time())

    profile, warnings = resolve_profile(name, base_dir)
    check_profile(profile, identity)

    context = RunContext.create(profile, epoch)
    prepare_log_dir(profile)
    try:
        handler = add_run_log(context.run_log)
    except OSError as e:
        raise __util__.ConfigInvalid(f"Cannot open run log {context.run_log}: {e}")
    try:
        logger.info(
            __util__.log_heading(f"Backup of {profile.name} at {time.ctime(epoch)}")
        )
        for warning in warnings:
            logger.warning("Config: %s", warning)
        check_storage_preconditions(profile, engine, identity)
        logger.info(
            "Sources: %d, keep days: %s, keep long: %d",
            len(profile.sources),
            profile.keep_days,
            profile.keep_long_count,
        )

        transfers = run_transfers(
            profile, context.sync_to_current, rsync, context.transfer_log
        )
        snapshot = create_snapshot(
            engine,
            context.sync_to_current,
            context.sync_to,
            context.epoch,
            context.keep_seconds,
            profile.keep_long_count,
        )
        summary = RunSummary(context=context, transfers=transfers, snapshot=snapshot)
        summary.pruned = _prune(context, engine, snapshot)

        logger.info(
            "Snapshot %s created; transfers %d ok / %d failed; pruned %d, %d failed",
            snapshot.name,
            transfers.succeeded,
            transfers.failed,
            len(summary.pruned) - len(summary.prune_failures),
            len(summary.prune_failures),
        )
        logger.info(__util__.log_heading(f"Finished at {time.ctime()}"))
        return summary
    except __util__.BackupError as e:
        logger.error("Backup of %s failed: %s", profile.name, e)
        raise
    except OSError as e:
        logger.error("Backup of %s failed: %s", profile.name, e)
        raise __util__.BackupError(f"Backup of {profile.name} failed: {e}") from e
    finally:
        remove_run_log(handler)
