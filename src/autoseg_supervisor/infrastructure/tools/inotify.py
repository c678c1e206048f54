"""Filesystem event subscription through ``inotifywait``."""

import math
import shutil
import subprocess
from pathlib import Path
from typing import Optional

from autoseg_supervisor.domain.exceptions import WatcherUnavailable
from autoseg_supervisor.shared.logging import get_logger

logger = get_logger(__name__)

EVENTS = ("create", "moved_to", "close_write")

# inotifywait exit codes
EVENT_RECEIVED = 0
TIMED_OUT = 2


class InotifyWatcher:
    """
    Blocks until an entry appears in a directory, bounded by a timeout.

    Each call is a one-shot ``inotifywait`` subscription. Implements
    IEventWatcher protocol.
    """

    def __init__(self, binary: str = "inotifywait"):
        self.binary = binary
        self._logger = get_logger(__name__)

    def available(self) -> bool:
        return shutil.which(self.binary) is not None

    def wait_for_entry(self, directory: Path, timeout: float) -> Optional[str]:
        """
        Return the name of the first entry created in directory, or None
        if nothing happened within timeout.

        Raises:
            WatcherUnavailable: If the subscription itself fails
        """
        seconds = max(1, int(math.ceil(timeout)))
        cmd = [self.binary, "-q", "--format", "%f", "-t", str(seconds)]
        for event in EVENTS:
            cmd.extend(["-e", event])
        cmd.append(str(directory))

        try:
            result = subprocess.run(
                cmd,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                timeout=seconds + 5,
            )
        except subprocess.TimeoutExpired:
            return None
        except OSError as e:
            raise WatcherUnavailable(f"Could not run {self.binary}: {e}") from e

        if result.returncode == TIMED_OUT:
            return None
        if result.returncode != EVENT_RECEIVED:
            raise WatcherUnavailable(
                f"{self.binary} exited with code {result.returncode}: {result.stderr.strip()}"
            )

        lines = result.stdout.strip().splitlines()
        return lines[0] if lines else None
