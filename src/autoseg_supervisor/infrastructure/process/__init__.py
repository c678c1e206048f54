"""Worker process control."""

from autoseg_supervisor.infrastructure.process.worker import WorkerProcessController

__all__ = ["WorkerProcessController"]
