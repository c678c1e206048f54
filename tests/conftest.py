import os
import sys
from pathlib import Path

import pytest

# Ensure src/ is on sys.path so 'autoseg_supervisor' is importable without installing
SRC = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src'))
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from autoseg_supervisor.domain.models import JobParameters
from autoseg_supervisor.infrastructure.config import SupervisorConfig


class FakeClock:
    """Monotonic clock advanced only by its own sleep()."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_config(tmp_path):
    """Build a SupervisorConfig rooted in tmp_path with fast budgets."""

    def _make(**overrides) -> SupervisorConfig:
        values = dict(
            pipeline_root=tmp_path / "pipeline",
            model_registry_dir=tmp_path / "efs" / "nnUNet_results",
            startup_grace_seconds=0,
            log_wait_attempts=3,
            log_wait_interval=1,
            db_wait_attempts=3,
            db_wait_interval=1,
            output_wait_timeout=5,
            output_poll_interval=1,
            settle_seconds=0,
            worker_stop_timeout=2,
        )
        values.update(overrides)
        return SupervisorConfig(**values)

    return _make


@pytest.fixture
def config(make_config):
    return make_config()


@pytest.fixture
def params():
    return JobParameters(
        input_location="s3://in-bucket/uploads/series.zip",
        output_location="s3://out-bucket/results",
        series_id="1.2.3",
        study_id="1.2",
        patient_id="PAT-001",
        auth_token="tok_abcdefghijklmnop",
        upload_id="42",
    )


@pytest.fixture
def model_registry(config):
    """A registry with two model subdirectories."""
    registry = Path(config.model_registry_dir)
    for name in ("Dataset001_Prostate", "Dataset002_Breast"):
        model = registry / name
        model.mkdir(parents=True)
        (model / "plans.json").write_text("{}")
    return registry
