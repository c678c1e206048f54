"""Infrastructure layer package."""

from autoseg_supervisor.infrastructure.config import ConfigLoader, SupervisorConfig
from autoseg_supervisor.infrastructure.storage import ObjectStore, S3ObjectStore, LocalObjectStore, HttpObjectStore
from autoseg_supervisor.infrastructure.database import SqliteStatusReader
from autoseg_supervisor.infrastructure.process import WorkerProcessController
from autoseg_supervisor.infrastructure.tools import CommandArchiveExtractor, MigrationRunner, InotifyWatcher

__all__ = [
    "ConfigLoader",
    "SupervisorConfig",
    "ObjectStore",
    "S3ObjectStore",
    "LocalObjectStore",
    "HttpObjectStore",
    "SqliteStatusReader",
    "WorkerProcessController",
    "CommandArchiveExtractor",
    "MigrationRunner",
    "InotifyWatcher",
]
