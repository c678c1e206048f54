"""Guaranteed finalization on every exit path of a job."""

import atexit
import shutil
import signal
from pathlib import Path
from typing import Dict, List, Optional

from autoseg_supervisor.domain.exceptions import JobInterrupted
from autoseg_supervisor.domain.models import WorkerHandle
from autoseg_supervisor.domain.protocols import IWorkerController
from autoseg_supervisor.shared.logging import get_logger

logger = get_logger(__name__)

HANDLED_SIGNALS = (signal.SIGTERM, signal.SIGHUP)


class CleanupHandler:
    """
    Terminates the worker, removes job-scoped temporary state and reports
    the exit code.

    ``finalize`` is idempotent, never raises, and always returns the exit
    code recorded by its first call.
    """

    def __init__(self, keep_staging: bool = False):
        self.keep_staging = keep_staging
        self._worker: Optional[WorkerHandle] = None
        self._controller: Optional[IWorkerController] = None
        self._paths: List[Path] = []
        self._previous_handlers: Dict[int, object] = {}
        self._installed = False
        self._finalizing = False
        self._exit_code: Optional[int] = None
        self._logger = get_logger(__name__)

    @property
    def exit_code(self) -> Optional[int]:
        return self._exit_code

    def install(self) -> None:
        """Route termination signals through cleanup and register an exit hook."""
        if self._installed:
            return
        for signum in HANDLED_SIGNALS:
            try:
                self._previous_handlers[signum] = signal.signal(signum, self._on_signal)
            except ValueError:
                # signal.signal only works from the main thread
                self._logger.debug(f"Cannot install handler for signal {signum}")
        atexit.register(self._finalize_at_exit)
        self._installed = True

    def _on_signal(self, signum, frame):
        if self._finalizing:
            self._logger.warning(f"Received signal {signum} during cleanup, ignoring")
            return
        self._logger.warning(f"Received signal {signum}, stopping job")
        raise JobInterrupted(signum)

    def _finalize_at_exit(self) -> None:
        if self._exit_code is None:
            self.finalize(1)

    def track_worker(self, handle: WorkerHandle, controller: IWorkerController) -> None:
        self._worker = handle
        self._controller = controller

    def track_path(self, path: Path) -> None:
        """Remove ``path`` (file or directory) when the job ends."""
        if path not in self._paths:
            self._paths.append(Path(path))

    def finalize(self, exit_code: int) -> int:
        """
        Run cleanup once and return the exit code to terminate with.

        Args:
            exit_code: Exit code of the job, kept even if cleanup fails

        Returns:
            The exit code recorded by the first call
        """
        if self._exit_code is not None:
            return self._exit_code
        self._exit_code = exit_code
        self._finalizing = True

        self._stop_worker()
        if self.keep_staging:
            self._logger.info("Keeping downloaded archive and staging directory")
        else:
            self._remove_paths()
        self._restore()

        self._logger.info(f"Cleanup complete. Exiting with code {exit_code}")
        return exit_code

    def _stop_worker(self) -> None:
        if self._worker is None or self._controller is None:
            return
        try:
            if self._controller.is_alive(self._worker):
                self._logger.info(f"Stopping worker pid {self._worker.pid}")
            self._controller.terminate(self._worker)
        except Exception as e:
            self._logger.warning(f"Failed to stop worker pid {self._worker.pid}: {e}")

    def _remove_paths(self) -> None:
        for path in self._paths:
            try:
                if path.is_symlink() or path.is_file():
                    path.unlink()
                elif path.is_dir():
                    shutil.rmtree(path)
                else:
                    continue
                self._logger.debug(f"Removed {path}")
            except OSError as e:
                self._logger.warning(f"Failed to remove {path}: {e}")

    def _restore(self) -> None:
        for signum, handler in self._previous_handlers.items():
            try:
                signal.signal(signum, handler)
            except (ValueError, TypeError) as e:
                self._logger.debug(f"Cannot restore handler for signal {signum}: {e}")
        self._previous_handlers.clear()
        if self._installed:
            atexit.unregister(self._finalize_at_exit)
            self._installed = False
