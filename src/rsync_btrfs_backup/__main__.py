# pyright: standard

"""rsync-btrfs-backup: rsync_btrfs_backup/__main__.py.

Pull remote paths with rsync into a btrfs staging subvolume and keep
read-only Long and Short snapshots of it.
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
