"""Job supervisor: runs the job phases strictly in order."""

from typing import List, Optional

from autoseg_supervisor.application.acquisition import InputAcquisition, archive_path_for
from autoseg_supervisor.application.bootstrap import EnvironmentBootstrapper
from autoseg_supervisor.application.cleanup import CleanupHandler
from autoseg_supervisor.application.phase_detector import (
    PhaseDetector,
    file_exists,
    log_ready,
    status_matches,
)
from autoseg_supervisor.application.publisher import OutputPublisher
from autoseg_supervisor.domain.exceptions import StatusQueryError
from autoseg_supervisor.domain.models import (
    Artifact,
    JobParameters,
    JobResult,
    PhaseOutcome,
    PhaseWaitSpec,
    WaitStrategy,
    WorkerHandle,
)
from autoseg_supervisor.domain.protocols import IStatusReader, IWorkerController
from autoseg_supervisor.infrastructure.config import SupervisorConfig
from autoseg_supervisor.shared.fs import read_tail
from autoseg_supervisor.shared.logging import get_logger
from autoseg_supervisor.shared.metrics import MetricsCollector

logger = get_logger(__name__)


class JobSupervisor:
    """
    Coordinates all components of one job.

    Every phase is gated on the previous one; the first failure propagates
    as a JobError and nothing after it runs. Cleanup is owned by the caller
    through the CleanupHandler this supervisor registers state with.
    """

    def __init__(
        self,
        config: SupervisorConfig,
        bootstrapper: EnvironmentBootstrapper,
        worker: IWorkerController,
        acquisition: InputAcquisition,
        detector: PhaseDetector,
        status_reader: IStatusReader,
        publisher: OutputPublisher,
        cleanup: CleanupHandler,
        metrics: Optional[MetricsCollector] = None,
    ):
        self._config = config
        self._bootstrapper = bootstrapper
        self._worker = worker
        self._acquisition = acquisition
        self._detector = detector
        self._status_reader = status_reader
        self._publisher = publisher
        self._cleanup = cleanup
        self._metrics = metrics or MetricsCollector()
        self._logger = get_logger(__name__)

    def run(self, params: JobParameters) -> JobResult:
        """Execute the job for the given parameters."""
        config = self._config
        phases: List[PhaseOutcome] = []
        self._detector.start_job(config.job_timeout_seconds)

        with self._metrics.timed("bootstrap"):
            self._bootstrapper.run()

        with self._metrics.timed("worker_start"):
            handle = self._worker.launch(
                on_started=lambda started: self._cleanup.track_worker(started, self._worker)
            )

        with self._metrics.timed("acquisition"):
            self._cleanup.track_path(archive_path_for(config.download_dir, params.upload_id))
            self._cleanup.track_path(config.staging_dir)
            self._acquisition.acquire(params)

        with self._metrics.timed("log_wait"):
            phases.append(self._detector.wait(self._log_wait_spec()))
            tail = read_tail(config.worker_log_path, config.log_tail_lines)
            self._logger.info(f"Worker log {config.worker_log_path}:\n{tail.rstrip()}")

        with self._metrics.timed("status_wait"):
            phases.append(self._detector.wait(self._status_wait_spec(params)))

        with self._metrics.timed("output_wait"):
            phases.append(self._detector.wait(self._output_wait_spec(handle)))

        with self._metrics.timed("publish"):
            publish = self._publisher.publish(Artifact(config.artifact_path), params)

        tail = read_tail(config.worker_log_path, config.log_tail_lines)
        if tail:
            self._logger.info(f"Final worker log:\n{tail.rstrip()}")

        for line in self._metrics.summary_lines():
            self._logger.info(f"Timing {line}")

        return JobResult(publish=publish, phases=phases, metrics=self._metrics.get_summary())

    def _log_wait_spec(self) -> PhaseWaitSpec:
        config = self._config
        description = f"worker log {config.worker_log_path.name}"
        if config.readiness_marker:
            description += f" with marker '{config.readiness_marker}'"
        return PhaseWaitSpec(
            description=description,
            predicate=log_ready(config.worker_log_path, config.readiness_marker),
            interval=config.log_wait_interval,
            max_attempts=config.log_wait_attempts,
        )

    def _status_wait_spec(self, params: JobParameters) -> PhaseWaitSpec:
        config = self._config
        reader = self._status_reader

        def on_miss(attempt: int) -> None:
            try:
                record = reader.find_status(params.series_id)
            except StatusQueryError as e:
                self._logger.info(f"Check {attempt}: status not readable yet ({e.message})")
                return
            if record is None:
                self._logger.info(f"Check {attempt}: series {params.series_id} not found yet")
            else:
                self._logger.info(
                    f"Check {attempt}: series {params.series_id} has status {record.status}, "
                    f"waiting for {config.expected_status}"
                )

        return PhaseWaitSpec(
            description=f"status {config.expected_status} of series {params.series_id}",
            predicate=status_matches(reader, params.series_id, config.expected_status),
            interval=config.db_wait_interval,
            max_attempts=config.db_wait_attempts,
            on_miss=on_miss,
            diagnostics=lambda: reader.report(params.series_id, config.expected_status).format(),
        )

    def _output_wait_spec(self, handle: WorkerHandle) -> PhaseWaitSpec:
        config = self._config

        def diagnostics() -> str:
            if config.output_dir.is_dir():
                listing = ", ".join(sorted(p.name for p in config.output_dir.iterdir())) or "(empty)"
            else:
                listing = "(missing)"
            sections = [
                f"Contents of {config.output_dir}: {listing}",
                f"Worker alive: {self._worker.is_alive(handle)}",
                f"Captured worker output ({handle.log_path}):",
                self._worker.read_log_tail(handle).rstrip() or "(empty)",
                f"Worker log ({config.worker_log_path}):",
                read_tail(config.worker_log_path, config.log_tail_lines).rstrip() or "(empty)",
            ]
            return "\n".join(sections)

        return PhaseWaitSpec(
            description=f"output file {config.artifact_name}",
            predicate=file_exists(config.artifact_path),
            interval=config.output_poll_interval,
            timeout=config.output_wait_timeout,
            strategy=WaitStrategy.EVENT,
            watch_dir=config.output_dir,
            target_name=config.artifact_name,
            diagnostics=diagnostics,
        )
