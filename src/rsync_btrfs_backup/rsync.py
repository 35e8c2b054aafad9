# pyright: standard

"""rsync-btrfs-backup: rsync_btrfs_backup/rsync.py
Delta transfer from a remote host with rsync over ssh.
"""

import logging
import shlex
import subprocess
import time
from pathlib import Path

from . import __util__

logger = logging.getLogger(__name__)

# Exit status used when the rsync binary cannot be started at all
LAUNCH_FAILURE_CODE = 127


class RsyncTool:
    """Run rsync, appending everything it prints to a log file."""

    def __init__(self, rsync_bin: str = "rsync", ssh_bin: str = "ssh") -> None:
        self.rsync_bin = rsync_bin
        self.ssh_bin = ssh_bin

    def build_command(self, remote: str, destination: Path, options, credential):
        """Build the rsync argv for one transfer.

        ``options`` already contains exclude arguments; the destination gets a
        trailing separator so rsync always treats it as a directory.
        """
        ssh_cmd = [self.ssh_bin, "-i", str(credential), "-o", "BatchMode=yes"]
        cmd = [self.rsync_bin, *options, "-e", shlex.join(ssh_cmd)]
        cmd += [remote, f"{str(destination).rstrip('/')}/"]
        return cmd

    def transfer(
        self, remote: str, destination: Path, options, credential, log_file
    ) -> int:
        """Transfer ``remote`` into ``destination`` and return rsync's exit code."""
        cmd = self.build_command(remote, destination, options, credential)
        logger.debug("rsync command: %s", cmd)
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        with open(log_file, "a", encoding="utf-8") as log:
            log.write(__util__.log_heading(f"{remote} at {time.ctime()}") + "\n")
            log.write(f"$ {shlex.join(cmd)}\n")
            log.flush()
            try:
                proc = subprocess.run(
                    cmd,
                    stdin=subprocess.DEVNULL,
                    stdout=log,
                    stderr=subprocess.STDOUT,
                    check=False,
                )
            except OSError as e:
                log.write(f"Failed to start rsync: {e}\n")
                logger.error("Failed to start rsync: %s", e)
                return LAUNCH_FAILURE_CODE
            log.write(f"rsync exited with {proc.returncode}\n")
        return proc.returncode
