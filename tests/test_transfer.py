"""Tests for transfer orchestration."""

import pytest

from rsync_btrfs_backup import __util__
from rsync_btrfs_backup.core.transfer import (
    ACCEPTED_EXIT_CODES,
    TransferOutcome,
    build_transfer_options,
    classify_exit_code,
    normalize_sources,
    remote_spec,
    run_transfers,
)

from conftest import FakeRsync


class TestClassifyExitCode:
    """Tests for classify_exit_code function."""

    def test_success(self):
        assert classify_exit_code(0) is TransferOutcome.SUCCESS

    @pytest.mark.parametrize("code", [24, 25, 30])
    def test_accepted_partial_codes(self, code):
        assert classify_exit_code(code) is TransferOutcome.PARTIAL_ACCEPTABLE

    @pytest.mark.parametrize("code", [1, 5, 12, 23, 35, 127, 255])
    def test_failures(self, code):
        assert classify_exit_code(code) is TransferOutcome.FAILED

    def test_accepted_set(self):
        assert ACCEPTED_EXIT_CODES == {0, 24, 25, 30}


class TestNormalizeSources:
    """Tests for normalize_sources function."""

    def test_single_source_transfers_contents(self):
        assert normalize_sources(["/srv/www"]) == ["/srv/www/"]
        assert normalize_sources(["/srv/www///"]) == ["/srv/www/"]

    def test_single_root_source(self):
        assert normalize_sources(["/"]) == ["/"]

    def test_multiple_sources_are_named_entries(self):
        assert normalize_sources(["/srv/www/", "/etc"]) == ["/srv/www", "/etc"]

    def test_order_and_duplicates_kept(self):
        assert normalize_sources(["/b", "/a", "/b/"]) == ["/b", "/a", "/b"]


class TestTransferOptions:
    """Tests for option and remote spec building."""

    def test_excludes_appended(self, make_profile):
        profile = make_profile(exclude_patterns=("lost+found", "*.tmp"))
        assert build_transfer_options(profile) == [
            "--archive",
            "--delete",
            "--exclude=lost+found",
            "--exclude=*.tmp",
        ]

    def test_remote_spec(self, make_profile):
        assert remote_spec(make_profile(), "/etc") == "backup@web.example.org:/etc"


class TestRunTransfers:
    """Tests for run_transfers function."""

    def test_all_sources_in_order(self, make_profile, tmp_path):
        profile = make_profile(sources=("/srv/www", "/etc"))
        rsync = FakeRsync()
        log = tmp_path / "transfer.log.1"

        report = run_transfers(profile, tmp_path / "current", rsync, log)

        assert [c[0] for c in rsync.calls] == [
            "backup@web.example.org:/srv/www",
            "backup@web.example.org:/etc",
        ]
        assert all(c[3] == profile.credential_path for c in rsync.calls)
        assert report.succeeded == 2
        assert report.failed == 0
        assert log.read_text().count("\n") == 2

    def test_partial_failure_continues(self, make_profile, tmp_path):
        """Test a failed source does not stop the next one."""
        profile = make_profile(sources=("/srv/www", "/etc", "/home"))
        rsync = FakeRsync({"/srv/www": 12, "/etc": 24})

        report = run_transfers(profile, tmp_path, rsync, tmp_path / "t.log")

        assert len(rsync.calls) == 3
        assert [r.outcome for r in report.results] == [
            TransferOutcome.FAILED,
            TransferOutcome.PARTIAL_ACCEPTABLE,
            TransferOutcome.SUCCESS,
        ]
        assert report.failures[0].source == "/srv/www"
        assert report.failures[0].raw_code == 12

    def test_only_partial_codes_count_as_success(self, make_profile, tmp_path):
        """Test accepted partial codes are enough to proceed."""
        profile = make_profile(sources=("/a", "/b"))
        rsync = FakeRsync({"/a": 24, "/b": 30})

        report = run_transfers(profile, tmp_path, rsync, tmp_path / "t.log")
        assert report.succeeded == 2

    def test_all_failed(self, make_profile, tmp_path):
        profile = make_profile(sources=("/a", "/b"))
        rsync = FakeRsync({"/a": 255, "/b": 23})

        with pytest.raises(__util__.TransferFailed, match="All transfers failed"):
            run_transfers(profile, tmp_path, rsync, tmp_path / "t.log")
        assert len(rsync.calls) == 2

    def test_single_source_transfers_contents(self, make_profile, tmp_path):
        profile = make_profile(sources=("/srv/www/",))
        rsync = FakeRsync()
        run_transfers(profile, tmp_path, rsync, tmp_path / "t.log")
        assert rsync.calls[0][0].endswith(":/srv/www/")
