"""Layered KEY=VALUE profile loading and resolution.

Reads the shared defaults file, then the profile file, and resolves the
result into an immutable Profile with defaults applied for absent keys.
"""

import math
import os
import shlex
from pathlib import Path
from typing import Iterable

from ..__util__ import ConfigInvalid, ConfigNotFound
from .schema import (
    DEFAULT_KEEP_DAYS,
    DEFAULT_KEEP_LONG_COUNT,
    DEFAULT_RSYNC_EXCLUDE,
    DEFAULT_RSYNC_OPTS,
    Profile,
)

# Environment variable overriding the base directory
BASE_DIR_ENV = "RSYNC_BTRFS_BACKUP_HOME"

DEFAULTS_FILE = "default.conf"

KNOWN_KEYS = frozenset(
    {
        "SRC",
        "SERVER",
        "USER",
        "STORAGE",
        "SSH_KEY",
        "LOG_DIR",
        "RSYNC_OPTS",
        "RSYNC_EXCLUDE",
        "KEEP_DAYS",
        "KEEP_LONG_COUNT",
    }
)

# Keys whose assignments accumulate instead of overriding
ACCUMULATING_KEYS = frozenset({"SRC"})


def find_base_dir(explicit_path: str | None = None) -> Path:
    """Find the base directory holding conf/, keys/ and log/.

    Args:
        explicit_path: Explicitly specified directory (highest priority)

    Returns:
        Path to the base directory (it is not required to exist)
    """
    if explicit_path:
        return Path(explicit_path).expanduser()
    env_path = os.environ.get(BASE_DIR_ENV)
    if env_path:
        return Path(env_path).expanduser()
    return Path.home() / ".config" / "rsync-btrfs-backup"


def profile_config_path(base_dir: Path, name: str) -> Path:
    return Path(base_dir) / "conf" / f"{name}.conf"


def defaults_config_path(base_dir: Path) -> Path:
    return Path(base_dir) / "conf" / DEFAULTS_FILE


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        return value[1:-1]
    return value


def parse_config_lines(lines: Iterable[str]) -> list[tuple[str, str]]:
    """Parse KEY=VALUE lines into ordered (key, value) pairs.

    Comments, blank lines and lines without a key are skipped.
    """
    pairs = []
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            continue
        pairs.append((key, _unquote(value.strip())))
    return pairs


def read_config_file(path: Path) -> list[tuple[str, str]]:
    """Read and parse a single config layer."""
    try:
        with open(path, encoding="utf-8") as f:
            return parse_config_lines(f)
    except OSError as e:
        raise ConfigInvalid(f"Cannot read config file {path}: {e}")


def merge_layers(*layers: list[tuple[str, str]]) -> tuple[dict[str, str], list[str]]:
    """Merge config layers in order.

    Returns:
        Tuple of (scalar settings, accumulated SRC entries)
    """
    settings: dict[str, str] = {}
    sources: list[str] = []
    for layer in layers:
        for key, value in layer:
            if key in ACCUMULATING_KEYS:
                if value:
                    sources.append(value)
            else:
                settings[key] = value
    return settings, sources


def _parse_keep_days(value: str) -> float:
    try:
        keep_days = float(value)
    except ValueError:
        raise ConfigInvalid(f"KEEP_DAYS must be a number, got {value!r}")
    if not math.isfinite(keep_days):
        raise ConfigInvalid(f"KEEP_DAYS must be a finite number, got {value!r}")
    if keep_days < 0:
        raise ConfigInvalid(f"KEEP_DAYS must not be negative, got {value!r}")
    return keep_days


def _parse_keep_long_count(value: str) -> int:
    try:
        count = int(value)
    except ValueError:
        raise ConfigInvalid(f"KEEP_LONG_COUNT must be an integer, got {value!r}")
    if count < 0:
        raise ConfigInvalid(f"KEEP_LONG_COUNT must not be negative, got {value!r}")
    return count


def _split(key: str, value: str) -> tuple[str, ...]:
    try:
        return tuple(shlex.split(value))
    except ValueError as e:
        raise ConfigInvalid(f"{key} cannot be parsed: {e}")


def _validate_name(name: str) -> None:
    if not name or "/" in name or name.startswith("."):
        raise ConfigInvalid(f"Invalid profile name: {name!r}")


def resolve_profile(name: str, base_dir: Path | str) -> tuple[Profile, list[str]]:
    """Resolve a named profile from its layered configuration.

    Args:
        name: Profile name
        base_dir: Directory holding conf/, keys/ and log/

    Returns:
        Tuple of (Profile, list of warnings)

    Raises:
        ConfigNotFound: If the profile file does not exist
        ConfigInvalid: If a value cannot be parsed
    """
    _validate_name(name)
    base_dir = Path(base_dir)

    profile_path = profile_config_path(base_dir, name)
    if not profile_path.is_file():
        raise ConfigNotFound(f"Config file not found: {profile_path}")

    layers = []
    defaults_path = defaults_config_path(base_dir)
    if defaults_path.is_file():
        layers.append(read_config_file(defaults_path))
    layers.append(read_config_file(profile_path))

    settings, sources = merge_layers(*layers)

    warnings = [
        f"Unknown key '{key}' ignored"
        for key in sorted(set(settings) - KNOWN_KEYS)
    ]

    server = settings.get("SERVER", "")
    user = settings.get("USER", "")
    storage = settings.get("STORAGE", "")

    if "SSH_KEY" in settings:
        credential_path = Path(settings["SSH_KEY"]).expanduser()
    else:
        credential_path = base_dir / "keys" / f"{user}@{server}"

    if "LOG_DIR" in settings:
        log_dir = Path(settings["LOG_DIR"]).expanduser()
    else:
        log_dir = base_dir / "log" / name

    profile = Profile(
        name=name,
        sources=tuple(sources),
        server=server,
        user=user,
        credential_path=credential_path,
        storage_root=Path(storage).expanduser() if storage else None,
        log_dir=log_dir,
        transfer_options=_split(
            "RSYNC_OPTS", settings.get("RSYNC_OPTS", DEFAULT_RSYNC_OPTS)
        ),
        exclude_patterns=_split(
            "RSYNC_EXCLUDE", settings.get("RSYNC_EXCLUDE", DEFAULT_RSYNC_EXCLUDE)
        ),
        keep_days=_parse_keep_days(settings.get("KEEP_DAYS", str(DEFAULT_KEEP_DAYS))),
        keep_long_count=_parse_keep_long_count(
            settings.get("KEEP_LONG_COUNT", str(DEFAULT_KEEP_LONG_COUNT))
        ),
    )
    return profile, warnings


def generate_example_config() -> str:
    """Generate example profile file content."""
    return """# rsync-btrfs-backup profile
# Place in <base dir>/conf/<profile>.conf; shared settings go to conf/default.conf

SERVER=fileserver.example.org
USER=backup
STORAGE=/mnt/backup

# Repeat SRC for every remote path; a single SRC transfers its contents
SRC=/srv/data
SRC=/etc

# SSH_KEY=~/.config/rsync-btrfs-backup/keys/backup@fileserver.example.org
# LOG_DIR=~/.config/rsync-btrfs-backup/log/fileserver/
# RSYNC_OPTS="--archive --hard-links --acls --xattrs --delete --timeout=3600"
# RSYNC_EXCLUDE="lost+found *.tmp"

KEEP_DAYS=30
KEEP_LONG_COUNT=4
"""
