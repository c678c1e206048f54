"""Domain layer package."""

from .models import (
    JobParameters,
    WorkerHandle,
    WaitStrategy,
    PhaseWaitSpec,
    PhaseOutcome,
    JobStatusRecord,
    StatusDiagnosis,
    StatusReport,
    Artifact,
    ObjectLocation,
    AcquisitionResult,
    PublishResult,
    JobResult,
)
from .exceptions import (
    JobError,
    ConfigurationError,
    MissingParameter,
    InvalidParameter,
    ToolUnavailable,
    MigrationFailed,
    DatabaseNotCreated,
    ModelRegistryMissing,
    NoModelsFound,
    WorkerStartupFailed,
    DownloadFailed,
    EmptyOrMissingInput,
    ExtractionFailed,
    RelocationFailed,
    PhaseTimeout,
    OutputMissingOrEmpty,
    UploadFailed,
    UploadVerificationFailed,
    StorageError,
    StatusQueryError,
    WatcherUnavailable,
    JobInterrupted,
)
from .protocols import (
    IObjectStore,
    IStatusReader,
    IArchiveExtractor,
    IEventWatcher,
    IWorkerController,
)

__all__ = [
    # Models
    "JobParameters",
    "WorkerHandle",
    "WaitStrategy",
    "PhaseWaitSpec",
    "PhaseOutcome",
    "JobStatusRecord",
    "StatusDiagnosis",
    "StatusReport",
    "Artifact",
    "ObjectLocation",
    "AcquisitionResult",
    "PublishResult",
    "JobResult",
    # Exceptions
    "JobError",
    "ConfigurationError",
    "MissingParameter",
    "InvalidParameter",
    "ToolUnavailable",
    "MigrationFailed",
    "DatabaseNotCreated",
    "ModelRegistryMissing",
    "NoModelsFound",
    "WorkerStartupFailed",
    "DownloadFailed",
    "EmptyOrMissingInput",
    "ExtractionFailed",
    "RelocationFailed",
    "PhaseTimeout",
    "OutputMissingOrEmpty",
    "UploadFailed",
    "UploadVerificationFailed",
    "StorageError",
    "StatusQueryError",
    "WatcherUnavailable",
    "JobInterrupted",
    # Protocols
    "IObjectStore",
    "IStatusReader",
    "IArchiveExtractor",
    "IEventWatcher",
    "IWorkerController",
]
