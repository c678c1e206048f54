"""Schema migrations through the migration command-line tool."""

import shutil
from pathlib import Path
from typing import List, Optional

from autoseg_supervisor.infrastructure.tools.shell import run_cmd
from autoseg_supervisor.shared.logging import get_logger

logger = get_logger(__name__)


class MigrationRunner:
    """Applies pending migrations with e.g. ``alembic upgrade head``."""

    def __init__(self, command: List[str], cwd: Path, timeout: Optional[float] = 600):
        self.command = list(command)
        self.cwd = Path(cwd)
        self.timeout = timeout
        self._logger = get_logger(__name__)

    @property
    def tool(self) -> str:
        return self.command[0]

    def locate(self) -> Optional[str]:
        """Resolve the migration tool on PATH, or None if unreachable."""
        return shutil.which(self.tool)

    def upgrade(self):
        """Run the migration command. Returns (returncode, stdout, stderr)."""
        self._logger.info(f"Applying migrations: {' '.join(self.command)}")
        return run_cmd(self.command, cwd=self.cwd, timeout=self.timeout)
