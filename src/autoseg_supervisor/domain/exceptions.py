"""Domain exceptions for the auto-segmentation job supervisor.

Every failure is fatal to the job. Each exception may carry a block of
diagnostic text (log tail, database dump, missing-file detail) that the CLI
emits before exiting.
"""

from typing import List, Optional, Sequence


class JobError(Exception):
    """Base exception for all job errors."""

    def __init__(self, message: str, diagnostics: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.diagnostics = diagnostics


class ConfigurationError(JobError):
    """Raised when supervisor configuration is invalid."""
    pass


# Parameter validation

class MissingParameter(JobError):
    """Raised when one or more required job parameters are absent."""

    def __init__(self, missing: Sequence[str]):
        self.missing: List[str] = list(missing)
        super().__init__(
            "Missing required parameters: " + ", ".join(self.missing)
        )


class InvalidParameter(JobError):
    """Raised when a job parameter is malformed."""
    pass


# Environment bootstrap

class ToolUnavailable(JobError):
    """Raised when the schema-migration tool cannot be found."""
    pass


class MigrationFailed(JobError):
    """Raised when applying migrations exits non-zero."""
    pass


class DatabaseNotCreated(JobError):
    """Raised when the job database is absent or not queryable after migration."""
    pass


class ModelRegistryMissing(JobError):
    """Raised when the external model registry directory is absent."""
    pass


class NoModelsFound(JobError):
    """Raised when the model registry holds no model entries."""
    pass


# Worker process

class WorkerStartupFailed(JobError):
    """Raised when the worker dies within the startup grace period."""
    pass


# Input acquisition

class DownloadFailed(JobError):
    """Raised when fetching the input archive fails."""
    pass


class EmptyOrMissingInput(JobError):
    """Raised when the fetched archive is absent or zero-length."""
    pass


class ExtractionFailed(JobError):
    """Raised when the archive extractor exits non-zero."""
    pass


class RelocationFailed(JobError):
    """Raised when a staged file cannot be moved into the watch directory."""

    def __init__(self, path, reason: str):
        self.path = path
        super().__init__(f"Failed to move {path} into watch directory: {reason}")


# Phase detection

class PhaseTimeout(JobError):
    """Raised when a bounded wait exhausts its budget."""

    def __init__(self, phase: str, message: str, diagnostics: Optional[str] = None):
        self.phase = phase
        super().__init__(message, diagnostics)


# Publication

class OutputMissingOrEmpty(JobError):
    """Raised when the artifact is absent or zero-length before upload."""
    pass


class UploadFailed(JobError):
    """Raised when uploading the artifact fails."""
    pass


class UploadVerificationFailed(JobError):
    """Raised when the uploaded artifact cannot be confirmed remotely."""
    pass


# Collaborator errors, translated by the components above

class StorageError(JobError):
    """Raised by object storage backends."""
    pass


class StatusQueryError(JobError):
    """Raised when the job status database cannot be queried."""
    pass


class WatcherUnavailable(JobError):
    """Raised when a filesystem event subscription cannot be used."""
    pass


class JobInterrupted(JobError):
    """Raised in the supervising thread when a termination signal arrives."""

    def __init__(self, signum: int):
        self.signum = signum
        self.exit_code = 128 + signum
        super().__init__(f"Interrupted by signal {signum}")
