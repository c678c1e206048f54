"""Protocol definitions for dependency inversion."""

from pathlib import Path
from typing import Callable, Optional, Protocol

from autoseg_supervisor.domain.models import (
    JobStatusRecord,
    ObjectLocation,
    StatusReport,
    WorkerHandle,
)


class IObjectStore(Protocol):
    """Interface for object storage."""

    def fetch(self, location: ObjectLocation, destination: Path) -> Path:
        """Download an object to a local path."""
        ...

    def put(self, source: Path, location: ObjectLocation) -> None:
        """Upload a local file to an object location."""
        ...

    def exists(self, location: ObjectLocation) -> bool:
        """Check whether an object is present."""
        ...


class IStatusReader(Protocol):
    """Read-only access to the worker's job status table."""

    def ping(self) -> None:
        """Raise StatusQueryError unless the database answers a query."""
        ...

    def find_status(self, series_id: str) -> Optional[JobStatusRecord]:
        """Return the first record for a series, if any."""
        ...

    def has_status(self, series_id: str, status: str) -> bool:
        """Check whether a series has a row with the given status."""
        ...

    def report(self, series_id: str, expected_status: str) -> StatusReport:
        """Snapshot the table for failure diagnostics."""
        ...


class IArchiveExtractor(Protocol):
    """Interface for unpacking the input archive."""

    def extract(self, archive: Path, destination: Path) -> None:
        """Extract archive into destination."""
        ...


class IEventWatcher(Protocol):
    """Interface for filesystem-change subscriptions."""

    def available(self) -> bool:
        """Check if the subscription mechanism exists on this host."""
        ...

    def wait_for_entry(self, directory: Path, timeout: float) -> Optional[str]:
        """Block until an entry appears in directory; return its name or None on timeout."""
        ...


class IWorkerController(Protocol):
    """Interface for the supervised worker process."""

    def launch(self, on_started: Optional[Callable[[WorkerHandle], None]] = None) -> WorkerHandle:
        """Start the worker and verify it survived the grace period."""
        ...

    def is_alive(self, handle: WorkerHandle) -> bool:
        """Non-blocking liveness check."""
        ...

    def terminate(self, handle: WorkerHandle) -> None:
        """Stop the worker and every descendant."""
        ...

    def read_log_tail(self, handle: WorkerHandle) -> str:
        """Return the tail of the captured output."""
        ...
