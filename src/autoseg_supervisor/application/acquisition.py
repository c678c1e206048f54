"""Fetching, unpacking and handing the input series to the worker."""

import fnmatch
import os
import shutil
from pathlib import Path
from typing import List

from autoseg_supervisor.domain.exceptions import (
    DownloadFailed,
    EmptyOrMissingInput,
    RelocationFailed,
    StorageError,
)
from autoseg_supervisor.domain.models import AcquisitionResult, JobParameters, ObjectLocation
from autoseg_supervisor.domain.protocols import IArchiveExtractor, IObjectStore
from autoseg_supervisor.infrastructure.config import SupervisorConfig
from autoseg_supervisor.shared.fs import count_files
from autoseg_supervisor.shared.logging import get_logger, redact_url

logger = get_logger(__name__)


def archive_path_for(download_dir: Path, upload_id: str) -> Path:
    """Job-scoped local path of the input archive."""
    return download_dir / f"file_upload_{upload_id}_dicom.zip"


class InputAcquisition:
    """Single-shot download, extraction and relocation. No retries."""

    def __init__(
        self,
        config: SupervisorConfig,
        store: IObjectStore,
        extractor: IArchiveExtractor,
    ):
        self._config = config
        self._store = store
        self._extractor = extractor
        self._logger = get_logger(__name__)

    def acquire(self, params: JobParameters) -> AcquisitionResult:
        archive = self.download(params)
        self._extractor.extract(archive, self._config.staging_dir)
        relocated = self.relocate()

        watch_count = count_files(self._config.watch_dir)
        self._logger.info(
            f"Moved {len(relocated)} file(s) into {self._config.watch_dir} "
            f"({watch_count} file(s) now in watch directory)"
        )
        return AcquisitionResult(
            archive_path=archive,
            archive_size=archive.stat().st_size,
            relocated=tuple(relocated),
            watch_file_count=watch_count,
        )

    def download(self, params: JobParameters) -> Path:
        """
        Fetch the input archive.

        Raises:
            DownloadFailed: On transfer error
            EmptyOrMissingInput: If the local file is absent or zero-length
        """
        destination = archive_path_for(self._config.download_dir, params.upload_id)
        try:
            location = ObjectLocation.parse(params.input_location)
            self._store.fetch(location, destination)
        except (StorageError, ValueError) as e:
            raise DownloadFailed(f"Failed to download {redact_url(params.input_location)}: {e}") from e

        if not destination.is_file():
            raise EmptyOrMissingInput(f"Downloaded archive not found: {destination}")
        size = destination.stat().st_size
        if size == 0:
            raise EmptyOrMissingInput(f"Downloaded archive is empty: {destination}")

        self._logger.info(f"Downloaded {destination.name} ({size} bytes)")
        return destination

    def relocate(self) -> List[Path]:
        """
        Move every staged regular file matching the relocation pattern into
        the watch directory, flattening subdirectories.

        A file whose name is already taken in the watch directory is moved
        under its staged relative path joined with '_' instead
        (``a/IM0001.dcm`` -> ``a_IM0001.dcm``).

        Raises:
            RelocationFailed: Naming the file that could not be moved,
                including when both names are taken
        """
        staging = self._config.staging_dir
        watch_dir = self._config.watch_dir
        pattern = self._config.relocate_pattern
        watch_dir.mkdir(parents=True, exist_ok=True)

        moved: List[Path] = []
        # Shallow files first so top-level names are kept as-is.
        for source in sorted(staging.rglob("*"), key=lambda p: (len(p.parts), p)):
            if not source.is_file() or source.is_symlink():
                continue
            if not fnmatch.fnmatch(source.name, pattern):
                continue
            target = self._watch_target(source)
            try:
                shutil.move(str(source), str(target))
            except OSError as e:
                raise RelocationFailed(source, str(e)) from e
            moved.append(target)

        return moved

    def _watch_target(self, source: Path) -> Path:
        watch_dir = self._config.watch_dir
        target = watch_dir / source.name
        if not os.path.lexists(target):
            return target

        flat = "_".join(source.relative_to(self._config.staging_dir).parts)
        renamed = watch_dir / flat
        if os.path.lexists(renamed):
            raise RelocationFailed(source, f"name collides with {target} and {renamed}")
        self._logger.warning(f"{target.name} already in watch directory, moving {source} as {flat}")
        return renamed
