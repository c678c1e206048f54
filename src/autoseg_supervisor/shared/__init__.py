"""Shared utilities package."""

from autoseg_supervisor.shared.logging import setup_logger, get_logger, mask_secret, redact_url
from autoseg_supervisor.shared.metrics import MetricsCollector
from autoseg_supervisor.shared.fs import read_tail, recreate_directory, count_files
from autoseg_supervisor.shared.types import PathLike, Sleeper, Clock

__all__ = [
    "setup_logger",
    "get_logger",
    "mask_secret",
    "redact_url",
    "MetricsCollector",
    "read_tail",
    "recreate_directory",
    "count_files",
    "PathLike",
    "Sleeper",
    "Clock",
]
