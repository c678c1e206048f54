"""Application layer package."""

from autoseg_supervisor.application.parameters import ParameterValidator, parse_argument_pairs, REQUIRED_PARAMETERS
from autoseg_supervisor.application.bootstrap import EnvironmentBootstrapper
from autoseg_supervisor.application.acquisition import InputAcquisition
from autoseg_supervisor.application.phase_detector import PhaseDetector, file_exists, log_ready, status_matches
from autoseg_supervisor.application.publisher import OutputPublisher
from autoseg_supervisor.application.cleanup import CleanupHandler
from autoseg_supervisor.application.orchestrator import JobSupervisor
from autoseg_supervisor.application.factories import create_supervisor_from_config, create_object_store

__all__ = [
    "ParameterValidator",
    "parse_argument_pairs",
    "REQUIRED_PARAMETERS",
    "EnvironmentBootstrapper",
    "InputAcquisition",
    "PhaseDetector",
    "file_exists",
    "log_ready",
    "status_matches",
    "OutputPublisher",
    "CleanupHandler",
    "JobSupervisor",
    "create_supervisor_from_config",
    "create_object_store",
]
