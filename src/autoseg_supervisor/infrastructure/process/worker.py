"""Launching, inspecting and stopping the segmentation worker process."""

import os
import subprocess
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional

import psutil

from autoseg_supervisor.domain.exceptions import WorkerStartupFailed
from autoseg_supervisor.domain.models import WorkerHandle
from autoseg_supervisor.shared.fs import read_tail
from autoseg_supervisor.shared.logging import get_logger
from autoseg_supervisor.shared.types import Sleeper

logger = get_logger(__name__)


class WorkerProcessController:
    """
    Owns the single background worker of a job.

    The worker runs detached in its own session with stdout and stderr
    redirected to a capture file; the supervisor only observes it through
    that file, the shared directories and the status database.
    Implements IWorkerController protocol.
    """

    def __init__(
        self,
        command: List[str],
        cwd: Path,
        capture_path: Path,
        grace_period: float = 10.0,
        stop_timeout: float = 10.0,
        tail_lines: int = 200,
        env: Optional[Dict[str, str]] = None,
        sleep: Sleeper = time.sleep,
    ):
        self.command = list(command)
        self.cwd = Path(cwd)
        self.capture_path = Path(capture_path)
        self.grace_period = grace_period
        self.stop_timeout = stop_timeout
        self.tail_lines = tail_lines
        self.env = env
        self._sleep = sleep
        self._logger = get_logger(__name__)

    def launch(self, on_started: Optional[Callable[[WorkerHandle], None]] = None) -> WorkerHandle:
        """
        Start the worker, wait out the grace period, then check it once.

        Args:
            on_started: Called with the handle as soon as the process exists,
                before the grace period, so the caller can stop it on any
                later failure

        Raises:
            WorkerStartupFailed: If the worker cannot be started or has
                already exited when the grace period ends
        """
        self.capture_path.parent.mkdir(parents=True, exist_ok=True)
        self._logger.info(f"Starting worker: {' '.join(self.command)} (cwd={self.cwd})")

        with open(self.capture_path, "ab") as capture:
            try:
                process = subprocess.Popen(
                    self.command,
                    cwd=self.cwd,
                    stdin=subprocess.DEVNULL,
                    stdout=capture,
                    stderr=subprocess.STDOUT,
                    env=self.env if self.env is not None else os.environ.copy(),
                    start_new_session=True,
                )
            except OSError as e:
                raise WorkerStartupFailed(f"Could not start worker: {e}") from e

        handle = WorkerHandle(
            pid=process.pid,
            log_path=self.capture_path,
            command=tuple(self.command),
            process=process,
        )
        self._logger.info(
            f"Worker started with pid {handle.pid}, output captured in {self.capture_path}"
        )
        if on_started is not None:
            on_started(handle)

        self._logger.info(f"Waiting {self.grace_period:.0f}s for worker to initialize...")
        self._sleep(self.grace_period)

        if not self.is_alive(handle):
            returncode = process.poll()
            raise WorkerStartupFailed(
                f"Worker pid {handle.pid} exited during startup (exit code {returncode})",
                diagnostics=self.read_log_tail(handle) or "(worker produced no output)",
            )

        self._logger.info(f"Worker pid {handle.pid} is alive")
        return handle

    def is_alive(self, handle: WorkerHandle) -> bool:
        """Non-blocking liveness check of the worker's pid."""
        if handle.process is not None and handle.process.poll() is not None:
            return False
        try:
            return psutil.Process(handle.pid).status() != psutil.STATUS_ZOMBIE
        except psutil.NoSuchProcess:
            return False

    def terminate(self, handle: WorkerHandle) -> None:
        """Stop the worker and every descendant: SIGTERM, then SIGKILL."""
        procs = self._job_processes(handle)

        for proc in procs:
            try:
                proc.terminate()
            except psutil.NoSuchProcess:
                pass

        _, alive = psutil.wait_procs(procs, timeout=self.stop_timeout)
        for proc in alive:
            self._logger.warning(f"Process {proc.pid} ignored SIGTERM, killing")
            try:
                proc.kill()
            except psutil.NoSuchProcess:
                pass
        if alive:
            psutil.wait_procs(alive, timeout=self.stop_timeout)

        if handle.process is not None:
            handle.process.poll()

        if procs:
            self._logger.info(f"Terminated {len(procs)} process(es) of worker pid {handle.pid}")

    def _job_processes(self, handle: WorkerHandle) -> List[psutil.Process]:
        """
        The worker, its descendants, and anything left in its session.

        The worker leads its own session, so children orphaned by an exited
        launcher (a shell or conda wrapper) still carry its pid as session id.
        """
        found: Dict[int, psutil.Process] = {}
        reaped = handle.process is not None and handle.process.poll() is not None
        if not reaped:
            try:
                parent = psutil.Process(handle.pid)
                for proc in [parent] + parent.children(recursive=True):
                    found[proc.pid] = proc
            except psutil.NoSuchProcess:
                pass

        own_pid = os.getpid()
        for proc in psutil.process_iter():
            if proc.pid in found or proc.pid == own_pid:
                continue
            try:
                if os.getsid(proc.pid) == handle.pid:
                    found[proc.pid] = proc
            except OSError:
                continue
        return list(found.values())

    def read_log_tail(self, handle: WorkerHandle) -> str:
        return read_tail(handle.log_path, self.tail_lines)
