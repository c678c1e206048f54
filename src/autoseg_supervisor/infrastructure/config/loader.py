"""Configuration loading and validation."""

import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from autoseg_supervisor.domain.exceptions import ConfigurationError
from autoseg_supervisor.shared.logging import get_logger

logger = get_logger(__name__)

ENV_PREFIX = "AUTOSEG_"
CONFIG_PATH_ENV = "AUTOSEG_CONFIG"


@dataclass
class SupervisorConfig:
    """Fixed paths, commands and budgets of the supervised job."""

    # Filesystem layout
    pipeline_root: Path = Path("/home/draw/pipeline")
    watch_dir: Optional[Path] = None
    output_dir: Optional[Path] = None
    log_dir: Optional[Path] = None
    database_path: Optional[Path] = None
    download_dir: Optional[Path] = None
    staging_dir: Optional[Path] = None
    model_registry_dir: Path = Path("/mnt/efs/nnUNet_results")
    model_link_path: Optional[Path] = None

    # Worker
    worker_command: List[str] = field(
        default_factory=lambda: ["python", "main.py", "start-pipeline"]
    )
    worker_log_name: str = "logfile.log"
    worker_capture_name: str = "worker_console.log"
    startup_grace_seconds: float = 10.0
    worker_stop_timeout: float = 10.0

    # External tools
    migration_command: List[str] = field(
        default_factory=lambda: ["alembic", "upgrade", "head"]
    )
    extract_command: List[str] = field(
        default_factory=lambda: ["unzip", "-q", "-o", "{archive}", "-d", "{destination}"]
    )
    inotify_command: str = "inotifywait"

    # Status table
    status_table: str = "dicomlog"
    series_column: str = "series_name"
    status_column: str = "status"
    expected_status: str = "INIT"

    # Input / output
    artifact_name: str = "AUTOSEGMENT.RT.dcm"
    relocate_pattern: str = "*"
    readiness_marker: Optional[str] = None

    # Wait budgets
    log_wait_attempts: int = 6
    log_wait_interval: float = 60.0
    db_wait_attempts: int = 11
    db_wait_interval: float = 30.0
    output_wait_timeout: float = 1200.0
    output_poll_interval: float = 30.0
    settle_seconds: float = 15.0
    job_timeout_seconds: float = 2700.0

    # Object storage
    s3_endpoint_url: Optional[str] = None
    s3_region: Optional[str] = None

    # Misc
    log_tail_lines: int = 200
    keep_staging: bool = False
    supervisor_log_file: Optional[Path] = None

    def __post_init__(self):
        """Resolve derived paths and validate."""
        self.pipeline_root = Path(self.pipeline_root)
        self.model_registry_dir = Path(self.model_registry_dir)

        root = self.pipeline_root
        self.watch_dir = Path(self.watch_dir) if self.watch_dir else root / "dicom"
        self.output_dir = Path(self.output_dir) if self.output_dir else root / "output"
        self.log_dir = Path(self.log_dir) if self.log_dir else root / "logs"
        self.database_path = (
            Path(self.database_path) if self.database_path else root / "data" / "draw.db.sqlite"
        )
        self.model_link_path = (
            Path(self.model_link_path) if self.model_link_path else root / "data" / "nnUNet_results"
        )
        self.download_dir = (
            Path(self.download_dir) if self.download_dir else root.parent / "copy_dicom"
        )
        self.staging_dir = (
            Path(self.staging_dir) if self.staging_dir else self.download_dir / "files"
        )
        if self.supervisor_log_file:
            self.supervisor_log_file = Path(self.supervisor_log_file)

        self._validate()

    def _validate(self):
        """Validate configuration values."""
        for name in ("worker_command", "migration_command", "extract_command"):
            value = getattr(self, name)
            if not value or not all(isinstance(part, str) and part for part in value):
                raise ConfigurationError(f"{name} must be a non-empty list of strings")

        joined = " ".join(self.extract_command)
        if "{archive}" not in joined or "{destination}" not in joined:
            raise ConfigurationError(
                "extract_command must contain {archive} and {destination} placeholders"
            )

        for name in ("log_wait_attempts", "db_wait_attempts", "log_tail_lines"):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"{name} must be at least 1, got: {getattr(self, name)}")

        for name in (
            "log_wait_interval", "db_wait_interval", "output_wait_timeout",
            "output_poll_interval", "job_timeout_seconds",
        ):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive, got: {getattr(self, name)}")

        for name in ("startup_grace_seconds", "settle_seconds", "worker_stop_timeout"):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} cannot be negative, got: {getattr(self, name)}")

        if not self.artifact_name or "/" in self.artifact_name:
            raise ConfigurationError(f"Invalid artifact_name: {self.artifact_name!r}")

        if not self.relocate_pattern:
            raise ConfigurationError("relocate_pattern cannot be empty")

    @property
    def worker_log_path(self) -> Path:
        """The worker's own progress log."""
        return self.log_dir / self.worker_log_name

    @property
    def worker_capture_path(self) -> Path:
        """Where the worker's stdout and stderr are redirected."""
        return self.log_dir / self.worker_capture_name

    @property
    def artifact_path(self) -> Path:
        return self.output_dir / self.artifact_name


PATH_FIELDS = {
    "pipeline_root", "watch_dir", "output_dir", "log_dir", "database_path",
    "download_dir", "staging_dir", "model_registry_dir", "model_link_path",
    "supervisor_log_file",
}
INT_FIELDS = {"log_wait_attempts", "db_wait_attempts", "log_tail_lines"}
FLOAT_FIELDS = {
    "startup_grace_seconds", "worker_stop_timeout", "log_wait_interval",
    "db_wait_interval", "output_wait_timeout", "output_poll_interval",
    "settle_seconds", "job_timeout_seconds",
}
BOOL_FIELDS = {"keep_staging"}
LIST_FIELDS = {"worker_command", "migration_command", "extract_command"}


def _coerce(name: str, raw: str) -> Any:
    """Convert an environment string to the type of a config field."""
    if name in PATH_FIELDS:
        return Path(raw)
    if name in INT_FIELDS:
        return int(raw)
    if name in FLOAT_FIELDS:
        return float(raw)
    if name in BOOL_FIELDS:
        return raw.strip().lower() in ("true", "1", "yes")
    if name in LIST_FIELDS:
        text = raw.strip()
        if text.startswith("["):
            value = json.loads(text)
            if not isinstance(value, list):
                raise ValueError("expected a JSON list")
            return [str(part) for part in value]
        return [part.strip() for part in text.split(",") if part.strip()]
    return raw


class ConfigLoader:
    """Loads and validates configuration from a YAML file and environment variables."""

    def __init__(self, config_path: Optional[Path] = None, environ: Optional[Dict[str, str]] = None):
        """
        Initialize config loader.

        Args:
            config_path: Optional path to YAML config file; falls back to
                ``AUTOSEG_CONFIG`` from the environment
            environ: Environment mapping (defaults to ``os.environ``)
        """
        self._environ = os.environ if environ is None else environ
        if config_path is None and self._environ.get(CONFIG_PATH_ENV):
            config_path = Path(self._environ[CONFIG_PATH_ENV])
        self.config_path = Path(config_path) if config_path else None
        self._logger = get_logger(__name__)

    def load(self, overrides: Optional[Dict[str, Any]] = None) -> SupervisorConfig:
        """
        Load configuration from file and environment.

        Environment variables take precedence over the config file, and
        explicit overrides take precedence over both.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        config_dict: Dict[str, Any] = {}

        if self.config_path is not None:
            if not self.config_path.exists():
                raise ConfigurationError(f"Config file not found: {self.config_path}")
            self._logger.info(f"Loading config from {self.config_path}")
            try:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    yaml_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {self.config_path}: {e}") from e
            if not isinstance(yaml_config, dict):
                raise ConfigurationError(f"Config file {self.config_path} must contain a mapping")
            config_dict.update(yaml_config)

        config_dict.update(self._load_from_env())

        if overrides:
            for k, v in overrides.items():
                if v is None:
                    continue
                config_dict[k] = v

        valid_fields = {f.name for f in fields(SupervisorConfig)}
        unknown = sorted(set(config_dict) - valid_fields)
        if unknown:
            self._logger.warning(f"Ignoring unknown config keys: {', '.join(unknown)}")

        filtered_config = {k: v for k, v in config_dict.items() if k in valid_fields}

        try:
            return SupervisorConfig(**filtered_config)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def _load_from_env(self) -> Dict[str, Any]:
        """Load ``AUTOSEG_<FIELD>`` overrides from the environment."""
        env_config: Dict[str, Any] = {}

        for f in fields(SupervisorConfig):
            raw = self._environ.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw == "":
                continue
            try:
                env_config[f.name] = _coerce(f.name, raw)
            except ValueError:
                self._logger.warning(f"Invalid {ENV_PREFIX}{f.name.upper()} value: {raw}")

        return env_config
