"""Wiring the job components from configuration."""

import time
from typing import Optional

from autoseg_supervisor.application.acquisition import InputAcquisition
from autoseg_supervisor.application.bootstrap import EnvironmentBootstrapper
from autoseg_supervisor.application.cleanup import CleanupHandler
from autoseg_supervisor.application.orchestrator import JobSupervisor
from autoseg_supervisor.application.phase_detector import PhaseDetector
from autoseg_supervisor.application.publisher import OutputPublisher
from autoseg_supervisor.domain.protocols import IEventWatcher, IObjectStore
from autoseg_supervisor.infrastructure.config import SupervisorConfig
from autoseg_supervisor.infrastructure.database import SqliteStatusReader
from autoseg_supervisor.infrastructure.process import WorkerProcessController
from autoseg_supervisor.infrastructure.storage import ObjectStore, S3ObjectStore
from autoseg_supervisor.infrastructure.tools import (
    CommandArchiveExtractor,
    InotifyWatcher,
    MigrationRunner,
)
from autoseg_supervisor.shared.metrics import MetricsCollector
from autoseg_supervisor.shared.types import Clock, Sleeper


def create_object_store(config: SupervisorConfig) -> ObjectStore:
    return ObjectStore(
        s3=S3ObjectStore(endpoint_url=config.s3_endpoint_url, region=config.s3_region)
    )


def create_supervisor_from_config(
    config: SupervisorConfig,
    cleanup: CleanupHandler,
    store: Optional[IObjectStore] = None,
    watcher: Optional[IEventWatcher] = None,
    sleep: Sleeper = time.sleep,
    clock: Clock = time.monotonic,
) -> JobSupervisor:
    """Create the supervisor with all dependencies from config."""
    store = store or create_object_store(config)
    watcher = watcher or InotifyWatcher(config.inotify_command)

    status_reader = SqliteStatusReader(
        config.database_path,
        table=config.status_table,
        series_column=config.series_column,
        status_column=config.status_column,
    )
    bootstrapper = EnvironmentBootstrapper(
        config,
        MigrationRunner(config.migration_command, cwd=config.pipeline_root),
        status_reader,
    )
    worker = WorkerProcessController(
        command=config.worker_command,
        cwd=config.pipeline_root,
        capture_path=config.worker_capture_path,
        grace_period=config.startup_grace_seconds,
        stop_timeout=config.worker_stop_timeout,
        tail_lines=config.log_tail_lines,
        sleep=sleep,
    )
    acquisition = InputAcquisition(
        config, store, CommandArchiveExtractor(config.extract_command)
    )

    return JobSupervisor(
        config=config,
        bootstrapper=bootstrapper,
        worker=worker,
        acquisition=acquisition,
        detector=PhaseDetector(watcher=watcher, sleep=sleep, clock=clock),
        status_reader=status_reader,
        publisher=OutputPublisher(store, settle_seconds=config.settle_seconds, sleep=sleep),
        cleanup=cleanup,
        metrics=MetricsCollector(),
    )
