"""
Bounded waits on observable signals of worker progress.

One primitive serves all three job phases: polling a predicate a bounded
number of times, or subscribing to filesystem events with a timeout and
falling back to polling when the subscription is unavailable.
"""

import time
from pathlib import Path
from typing import Optional

from autoseg_supervisor.domain.exceptions import (
    PhaseTimeout,
    StatusQueryError,
    WatcherUnavailable,
)
from autoseg_supervisor.domain.models import PhaseOutcome, PhaseWaitSpec, WaitStrategy
from autoseg_supervisor.domain.protocols import IEventWatcher, IStatusReader
from autoseg_supervisor.shared.logging import get_logger
from autoseg_supervisor.shared.types import Clock, Sleeper

logger = get_logger(__name__)


def file_exists(path: Path):
    """Predicate: ``path`` is a regular file."""
    return lambda: path.is_file()


def log_ready(path: Path, marker: Optional[str] = None):
    """Predicate: the log file exists and, if a marker is given, contains it."""

    def check() -> bool:
        if not path.is_file():
            return False
        if not marker:
            return True
        try:
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                return any(marker in line for line in f)
        except OSError:
            return False

    return check


def status_matches(reader: IStatusReader, series_id: str, status: str):
    """Predicate: a status row for the series has the expected status."""

    def check() -> bool:
        try:
            return reader.has_status(series_id, status)
        except StatusQueryError as e:
            logger.debug(f"Status query failed: {e}")
            return False

    return check


class PhaseDetector:
    """
    Runs PhaseWaitSpec waits, each capped by the remaining job deadline.

    Sleep and clock are injectable so the waits can be driven by a fake
    clock in tests.
    """

    def __init__(
        self,
        watcher: Optional[IEventWatcher] = None,
        sleep: Sleeper = time.sleep,
        clock: Clock = time.monotonic,
        job_timeout: Optional[float] = None,
    ):
        self._watcher = watcher
        self._sleep = sleep
        self._clock = clock
        self._job_timeout: Optional[float] = None
        self._deadline: Optional[float] = None
        self._logger = get_logger(__name__)
        if job_timeout is not None:
            self.start_job(job_timeout)

    def start_job(self, timeout: float) -> None:
        """Start the overall job clock."""
        self._job_timeout = timeout
        self._deadline = self._clock() + timeout

    def job_time_left(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return self._deadline - self._clock()

    def wait(self, spec: PhaseWaitSpec) -> PhaseOutcome:
        """
        Block until the awaited signal is observed or the budget runs out.

        Args:
            spec: The wait to perform

        Returns:
            PhaseOutcome describing how the signal was detected

        Raises:
            PhaseTimeout: If the budget or the job deadline is exhausted
        """
        left = self.job_time_left()
        if left is not None and left <= 0:
            raise self._deadline_exceeded(spec)

        self._logger.info(
            f"Waiting for {spec.description} "
            f"({spec.strategy.value}, budget {spec.budget_seconds:.0f}s)"
        )
        start = self._clock()

        if spec.strategy is WaitStrategy.EVENT:
            outcome = self._wait_for_event(spec, start)
        else:
            outcome = self._poll(spec, start, spec.max_attempts, spec.timeout)

        self._logger.info(
            f"Detected {spec.description} after {outcome.attempts} check(s) "
            f"in {outcome.elapsed:.1f}s"
        )
        return outcome

    def _poll(
        self,
        spec: PhaseWaitSpec,
        start: float,
        max_attempts: Optional[int],
        timeout: Optional[float],
        attempts_so_far: int = 0,
    ) -> PhaseOutcome:
        attempt = attempts_so_far
        while True:
            attempt += 1
            if spec.predicate():
                return self._outcome(spec, attempt, start, WaitStrategy.POLL)

            if spec.on_miss is not None:
                spec.on_miss(attempt)

            if max_attempts is not None and attempt - attempts_so_far >= max_attempts:
                break

            elapsed = self._clock() - start
            if timeout is not None and elapsed >= timeout:
                break

            pause = spec.interval
            if timeout is not None:
                pause = min(pause, timeout - elapsed)

            left = self.job_time_left()
            if left is not None:
                if left <= 0:
                    raise self._deadline_exceeded(spec)
                pause = min(pause, left)

            self._logger.debug(
                f"{spec.description}: not yet (check {attempt}), sleeping {pause:.0f}s"
            )
            self._sleep(pause)

        raise self._timed_out(spec, attempt, start)

    def _wait_for_event(self, spec: PhaseWaitSpec, start: float) -> PhaseOutcome:
        # Check first: the entry may predate the subscription.
        attempt = 1
        if spec.predicate():
            return self._outcome(spec, attempt, start, WaitStrategy.EVENT)

        watcher = self._watcher
        if watcher is None or not watcher.available():
            self._logger.warning(
                f"Filesystem events unavailable, polling every {spec.interval:.0f}s instead"
            )
            return self._poll(spec, start, None, spec.timeout, attempts_so_far=attempt)

        while True:
            remaining = spec.timeout - (self._clock() - start)
            left = self.job_time_left()
            if left is not None:
                remaining = min(remaining, left)
            if remaining <= 0:
                break

            try:
                name = watcher.wait_for_entry(spec.watch_dir, remaining)
            except WatcherUnavailable as e:
                self._logger.warning(
                    f"{e.message}; polling every {spec.interval:.0f}s for the remaining budget"
                )
                return self._poll(spec, start, None, spec.timeout, attempts_so_far=attempt)

            attempt += 1
            if name is not None:
                self._logger.debug(f"Event in {spec.watch_dir}: {name}")
            if name == spec.target_name or spec.predicate():
                return self._outcome(spec, attempt, start, WaitStrategy.EVENT)

        # Re-check after the timeout so a late write is never lost.
        attempt += 1
        if spec.predicate():
            return self._outcome(spec, attempt, start, WaitStrategy.EVENT)

        left = self.job_time_left()
        if left is not None and left <= 0 and self._clock() - start < spec.timeout:
            raise self._deadline_exceeded(spec)
        raise self._timed_out(spec, attempt, start)

    def _outcome(
        self, spec: PhaseWaitSpec, attempts: int, start: float, strategy: WaitStrategy
    ) -> PhaseOutcome:
        return PhaseOutcome(
            phase=spec.description,
            attempts=attempts,
            elapsed=self._clock() - start,
            strategy=strategy,
        )

    def _collect_diagnostics(self, spec: PhaseWaitSpec) -> Optional[str]:
        if spec.diagnostics is None:
            return None
        try:
            return spec.diagnostics()
        except Exception as e:
            self._logger.warning(f"Collecting diagnostics for {spec.description} failed: {e}")
            return f"(diagnostics unavailable: {e})"

    def _timed_out(self, spec: PhaseWaitSpec, attempts: int, start: float) -> PhaseTimeout:
        elapsed = self._clock() - start
        return PhaseTimeout(
            spec.description,
            f"Timed out waiting for {spec.description} "
            f"after {attempts} check(s) in {elapsed:.0f}s",
            self._collect_diagnostics(spec),
        )

    def _deadline_exceeded(self, spec: PhaseWaitSpec) -> PhaseTimeout:
        return PhaseTimeout(
            spec.description,
            f"Job deadline of {self._job_timeout:.0f}s exceeded "
            f"while waiting for {spec.description}",
            self._collect_diagnostics(spec),
        )
