"""Small filesystem helpers shared by the job components."""

import shutil
from collections import deque
from pathlib import Path

from autoseg_supervisor.shared.types import PathLike


def read_tail(path: PathLike, lines: int = 200) -> str:
    """Return the last ``lines`` lines of a text file, or '' if unreadable."""
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            return "".join(deque(f, maxlen=lines))
    except OSError:
        return ""


def recreate_directory(path: PathLike) -> Path:
    """Remove a directory (or file, or link) if present and create it empty."""
    p = Path(path)
    if p.is_symlink() or p.is_file():
        p.unlink()
    elif p.exists():
        shutil.rmtree(p)
    p.mkdir(parents=True, exist_ok=True)
    return p


def count_files(directory: PathLike) -> int:
    """Count regular files below a directory."""
    root = Path(directory)
    if not root.is_dir():
        return 0
    return sum(1 for p in root.rglob("*") if p.is_file())
