"""Transfer orchestration over all configured sources.

Every source is transferred independently into the staging area. A source
whose rsync exit code is not accepted is recorded as failed and the next
source is tried; the run only fails when no source was transferred at all.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .. import __util__, strip_trailing_sep
from ..config.schema import Profile

logger = logging.getLogger(__name__)

# rsync exit codes tolerated as a usable transfer:
#   0  success
#   24 partial transfer due to vanished source files
#   25 --max-delete limit stopped deletions
#   30 timeout in data send/receive
ACCEPTED_EXIT_CODES = frozenset({0, 24, 25, 30})


class TransferOutcome(Enum):
    """Classification of a single rsync exit code."""

    SUCCESS = "success"
    PARTIAL_ACCEPTABLE = "partial"
    FAILED = "failed"


@dataclass(frozen=True)
class TransferResult:
    """Result of transferring one source."""

    source: str
    outcome: TransferOutcome
    raw_code: int

    @property
    def accepted(self) -> bool:
        return self.outcome is not TransferOutcome.FAILED


@dataclass
class TransferReport:
    """Results of all transfers of a run, in source order."""

    results: list[TransferResult] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.accepted)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.accepted)

    @property
    def failures(self) -> list[TransferResult]:
        return [r for r in self.results if not r.accepted]


def classify_exit_code(code: int) -> TransferOutcome:
    if code == 0:
        return TransferOutcome.SUCCESS
    if code in ACCEPTED_EXIT_CODES:
        return TransferOutcome.PARTIAL_ACCEPTABLE
    return TransferOutcome.FAILED


def normalize_sources(sources) -> list[str]:
    """Normalize trailing separators of the configured sources.

    A single source transfers its contents, so it gets exactly one trailing
    '/'. With several sources each path is transferred as a named entry and
    carries no trailing '/'.
    """
    stripped = [strip_trailing_sep(s) for s in sources]
    if len(stripped) == 1:
        only = stripped[0]
        return [only if only.endswith("/") else f"{only}/"]
    return stripped


def remote_spec(profile: Profile, source: str) -> str:
    return f"{profile.user}@{profile.server}:{source}"


def build_transfer_options(profile: Profile) -> list[str]:
    options = list(profile.transfer_options)
    options += [f"--exclude={pattern}" for pattern in profile.exclude_patterns]
    return options


def run_transfers(
    profile: Profile,
    destination: Path,
    rsync,
    log_file: Path,
) -> TransferReport:
    """Transfer every source of ``profile`` into ``destination``.

    Args:
        profile: Resolved profile
        destination: Staging subvolume
        rsync: Transfer tool exposing ``transfer(...) -> int``
        log_file: Per-run transfer log, appended to

    Returns:
        TransferReport with one result per source

    Raises:
        TransferFailed: If no source was transferred with an accepted code
    """
    report = TransferReport()
    options = build_transfer_options(profile)
    sources = normalize_sources(profile.sources)

    for index, source in enumerate(sources, start=1):
        remote = remote_spec(profile, source)
        logger.info("Transferring [%d/%d] %s", index, len(sources), remote)
        code = rsync.transfer(
            remote, destination, options, profile.credential_path, log_file
        )
        outcome = classify_exit_code(code)
        report.results.append(TransferResult(source, outcome, code))

        if outcome is TransferOutcome.SUCCESS:
            logger.info("  %s transferred", source)
        elif outcome is TransferOutcome.PARTIAL_ACCEPTABLE:
            logger.warning("  %s partially transferred (rsync exit %d)", source, code)
        else:
            logger.error("  %s failed (rsync exit %d), see %s", source, code, log_file)

    logger.info(
        "Transfers: %d succeeded, %d failed", report.succeeded, report.failed
    )

    if report.succeeded == 0:
        codes = ", ".join(f"{r.source}={r.raw_code}" for r in report.results)
        raise __util__.TransferFailed(f"All transfers failed ({codes}), see {log_file}")

    return report
