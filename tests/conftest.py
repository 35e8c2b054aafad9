"""Pytest configuration and shared fixtures."""

import shutil
from pathlib import Path

import pytest

from rsync_btrfs_backup import __util__
from rsync_btrfs_backup.config.schema import Profile


class FakeEngine:
    """In-memory btrfs engine working on plain directories."""

    def __init__(self):
        self.subvolumes: set[Path] = set()
        self.readonly: set[Path] = set()
        self.calls: list[tuple[str, Path]] = []
        self.fail: dict[str, set[Path]] = {}

    def _maybe_fail(self, method, path):
        self.calls.append((method, Path(path)))
        if Path(path) in self.fail.get(method, set()):
            raise __util__.StorageCommandError(["btrfs", method, str(path)], 1, "boom")

    def create_subvolume(self, path):
        self._maybe_fail("create_subvolume", path)
        Path(path).mkdir()
        self.subvolumes.add(Path(path))

    def is_subvolume(self, path):
        return Path(path) in self.subvolumes

    def snapshot_readonly(self, source, destination):
        self._maybe_fail("snapshot_readonly", destination)
        Path(destination).mkdir()
        self.subvolumes.add(Path(destination))
        self.readonly.add(Path(destination))
        return Path(destination)

    def clear_readonly(self, path):
        self._maybe_fail("clear_readonly", path)
        self.readonly.discard(Path(path))

    def delete_subvolume(self, path):
        self._maybe_fail("delete_subvolume", path)
        if Path(path) in self.readonly:
            raise __util__.StorageCommandError(["btrfs", "delete", str(path)], 1, "ro")
        shutil.rmtree(path)
        self.subvolumes.discard(Path(path))


class FakeRsync:
    """Transfer tool returning configured exit codes per source."""

    def __init__(self, codes=None):
        self.codes = codes or {}
        self.calls = []

    def transfer(self, remote, destination, options, credential, log_file):
        self.calls.append((remote, Path(destination), list(options), credential))
        source = remote.split(":", 1)[1]
        code = self.codes.get(source.rstrip("/") or "/", 0)
        with open(log_file, "a", encoding="utf-8") as f:
            f.write(f"{remote} -> {code}\n")
        return code


class FakeIdentity:
    """Identity probe with fixed answers."""

    def __init__(self, uid=1000, owner=1000, fs_type="btrfs"):
        self.uid = uid
        self.owner = owner
        self.fs_type = fs_type

    def current_uid(self):
        return self.uid

    def path_owner(self, path):
        return self.owner

    def filesystem_type(self, path):
        return self.fs_type


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def rsync():
    return FakeRsync()


@pytest.fixture
def identity():
    return FakeIdentity()


@pytest.fixture
def base_dir(tmp_path):
    """Create a base directory with conf/ and keys/."""
    base = tmp_path / "base"
    (base / "conf").mkdir(parents=True)
    (base / "keys").mkdir()
    return base


@pytest.fixture
def storage_root(tmp_path):
    root = tmp_path / "storage"
    root.mkdir(exist_ok=True)
    return root


@pytest.fixture
def write_conf(base_dir):
    """Write conf/<name>.conf from a string."""

    def _write(name, content):
        path = base_dir / "conf" / f"{name}.conf"
        path.write_text(content)
        return path

    return _write


@pytest.fixture
def sample_profile_conf(storage_root):
    """Return a complete profile configuration string."""
    return f"""
# web server backup
SERVER=web.example.org
USER=backup
STORAGE={storage_root}
SRC=/srv/www
SRC=/etc
KEEP_DAYS=7
KEEP_LONG_COUNT=2
"""


@pytest.fixture
def ready_profile(base_dir, write_conf, sample_profile_conf):
    """A profile named 'web' with its ssh key in place."""
    write_conf("web", sample_profile_conf)
    (base_dir / "keys" / "backup@web.example.org").write_text("KEY")
    return "web"


@pytest.fixture
def make_profile(tmp_path, storage_root):
    """Build a Profile directly, bypassing the config files."""

    def _make(**overrides):
        key = tmp_path / "id_backup"
        key.write_text("KEY")
        values = dict(
            name="web",
            sources=("/srv/www",),
            server="web.example.org",
            user="backup",
            credential_path=key,
            storage_root=storage_root,
            log_dir=tmp_path / "log",
            transfer_options=("--archive", "--delete"),
            exclude_patterns=("lost+found",),
            keep_days=7,
            keep_long_count=2,
        )
        values.update(overrides)
        return Profile(**values)

    return _make


@pytest.fixture
def container(tmp_path):
    """A profile container holding the staging area."""
    path = tmp_path / "storage" / "web"
    (path / "current").mkdir(parents=True, exist_ok=True)
    return path


@pytest.fixture
def add_snapshots(container, engine):
    """Create read-only snapshot directories in the container."""

    def _add(*names):
        for name in names:
            path = container / name
            path.mkdir()
            engine.subvolumes.add(path)
            engine.readonly.add(path)

    return _add
