"""Subprocess helper for the external command-line tools."""

import subprocess
from typing import List, Optional, Tuple

from autoseg_supervisor.shared.types import PathLike

COMMAND_NOT_FOUND = 127
COMMAND_TIMED_OUT = 124


def run_cmd(
    cmd: List[str],
    cwd: Optional[PathLike] = None,
    timeout: Optional[float] = None,
) -> Tuple[int, str, str]:
    """Run a command to completion. Returns (returncode, stdout, stderr).

    A missing executable is reported as return code 127 and a timeout as
    124, the way a shell would, instead of raising.
    """
    try:
        completed = subprocess.run(
            cmd,
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            timeout=timeout,
        )
        return completed.returncode, completed.stdout, completed.stderr
    except FileNotFoundError as e:
        return COMMAND_NOT_FOUND, "", f"command not found: {cmd[0]} ({e})"
    except subprocess.TimeoutExpired as e:
        return COMMAND_TIMED_OUT, _text(e.stdout), _text(e.stderr) or f"timed out after {timeout}s"


def _text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value
