"""Job status database access."""

from autoseg_supervisor.infrastructure.database.status_reader import SqliteStatusReader

__all__ = ["SqliteStatusReader"]
