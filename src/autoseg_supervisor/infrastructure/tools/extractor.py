"""Archive extraction through an external extractor command."""

from pathlib import Path
from typing import List

from autoseg_supervisor.domain.exceptions import ExtractionFailed
from autoseg_supervisor.infrastructure.tools.shell import run_cmd
from autoseg_supervisor.shared.logging import get_logger

logger = get_logger(__name__)


class CommandArchiveExtractor:
    """
    Runs an extractor such as ``unzip`` built from a command template.

    The template's ``{archive}`` and ``{destination}`` placeholders are
    substituted per call. Implements IArchiveExtractor protocol.
    """

    def __init__(self, command: List[str], timeout: float = 1800):
        self.command = list(command)
        self.timeout = timeout
        self._logger = get_logger(__name__)

    def build_command(self, archive: Path, destination: Path) -> List[str]:
        return [
            part.format(archive=str(archive), destination=str(destination))
            for part in self.command
        ]

    def extract(self, archive: Path, destination: Path) -> None:
        """
        Extract archive into destination.

        Raises:
            ExtractionFailed: If the extractor exits non-zero
        """
        destination.mkdir(parents=True, exist_ok=True)
        cmd = self.build_command(archive, destination)
        self._logger.info(f"Extracting {archive.name} into {destination}")

        rc, out, err = run_cmd(cmd, timeout=self.timeout)
        if rc != 0:
            raise ExtractionFailed(
                f"Extractor exited with code {rc} for {archive.name}",
                diagnostics=(err or out).strip() or None,
            )
