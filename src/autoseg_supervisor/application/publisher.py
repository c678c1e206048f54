"""Validating, uploading and verifying the output artifact."""

import time

from autoseg_supervisor.domain.exceptions import (
    OutputMissingOrEmpty,
    StorageError,
    UploadFailed,
    UploadVerificationFailed,
)
from autoseg_supervisor.domain.models import Artifact, JobParameters, ObjectLocation, PublishResult
from autoseg_supervisor.domain.protocols import IObjectStore
from autoseg_supervisor.shared.logging import get_logger
from autoseg_supervisor.shared.types import Sleeper

logger = get_logger(__name__)


class OutputPublisher:
    """Uploads the artifact and confirms it landed; the transfer call alone is not trusted."""

    def __init__(
        self,
        store: IObjectStore,
        settle_seconds: float = 15.0,
        sleep: Sleeper = time.sleep,
    ):
        self._store = store
        self._settle_seconds = settle_seconds
        self._sleep = sleep
        self._logger = get_logger(__name__)

    def remote_location(self, artifact: Artifact, params: JobParameters) -> ObjectLocation:
        base = ObjectLocation.parse(params.output_location)
        return base.child(artifact.remote_name(params.upload_id))

    def publish(self, artifact: Artifact, params: JobParameters) -> PublishResult:
        """
        Raises:
            OutputMissingOrEmpty: If the artifact is absent or zero-length
            UploadFailed: On transfer error
            UploadVerificationFailed: If the remote object cannot be confirmed
        """
        if self._settle_seconds > 0:
            self._logger.info(f"Waiting {self._settle_seconds:.0f}s for output writes to settle")
            self._sleep(self._settle_seconds)

        if not artifact.is_publishable():
            state = "is empty" if artifact.path.is_file() else "not found"
            raise OutputMissingOrEmpty(f"Output file {state}: {artifact.path}")
        size = artifact.size
        self._logger.info(f"Output file {artifact.path.name}: {size} bytes")

        remote = self.remote_location(artifact, params)
        try:
            self._store.put(artifact.path, remote)
        except StorageError as e:
            raise UploadFailed(f"Upload to {remote} failed: {e.message}") from e

        try:
            present = self._store.exists(remote)
        except StorageError as e:
            raise UploadVerificationFailed(
                f"Could not verify upload at {remote}: {e.message}"
            ) from e
        if not present:
            raise UploadVerificationFailed(f"Uploaded object not found at {remote}")

        self._logger.info(f"Published {artifact.path.name} to {remote}")
        return PublishResult(location=remote, size_bytes=size)
