"""Core backup pipeline for rsync-btrfs-backup.

Each stage of a run lives in its own module; the controller sequences them.
"""

from .controller import RunContext, RunSummary, run_backup
from .preconditions import validate_preconditions
from .retention import PruneResult, prune_snapshots
from .snapshot import SnapshotClass, SnapshotEntry, create_snapshot, list_snapshots
from .transfer import (
    ACCEPTED_EXIT_CODES,
    TransferOutcome,
    TransferReport,
    TransferResult,
    run_transfers,
)

__all__ = [
    "ACCEPTED_EXIT_CODES",
    "PruneResult",
    "RunContext",
    "RunSummary",
    "SnapshotClass",
    "SnapshotEntry",
    "TransferOutcome",
    "TransferReport",
    "TransferResult",
    "create_snapshot",
    "list_snapshots",
    "prune_snapshots",
    "run_backup",
    "run_transfers",
    "validate_preconditions",
]
