"""Wrappers around the external command-line tools."""

from autoseg_supervisor.infrastructure.tools.shell import run_cmd
from autoseg_supervisor.infrastructure.tools.extractor import CommandArchiveExtractor
from autoseg_supervisor.infrastructure.tools.migrations import MigrationRunner
from autoseg_supervisor.infrastructure.tools.inotify import InotifyWatcher

__all__ = ["run_cmd", "CommandArchiveExtractor", "MigrationRunner", "InotifyWatcher"]
