"""Storage infrastructure."""

from autoseg_supervisor.infrastructure.storage.object_store import (
    ObjectStore,
    S3ObjectStore,
    LocalObjectStore,
    HttpObjectStore,
)

__all__ = ["ObjectStore", "S3ObjectStore", "LocalObjectStore", "HttpObjectStore"]
