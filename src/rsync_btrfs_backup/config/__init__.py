"""Configuration system for rsync-btrfs-backup.

This module provides layered KEY=VALUE profile loading and the resolved
profile definition consumed by every later stage of a run.
"""

from .loader import (
    find_base_dir,
    generate_example_config,
    parse_config_lines,
    resolve_profile,
)
from .schema import Profile

__all__ = [
    "Profile",
    "resolve_profile",
    "parse_config_lines",
    "find_base_dir",
    "generate_example_config",
]
