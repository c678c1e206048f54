"""Tests for configuration loading."""

from pathlib import Path

import pytest

from autoseg_supervisor.domain.exceptions import ConfigurationError
from autoseg_supervisor.infrastructure.config import ConfigLoader, SupervisorConfig


class TestSupervisorConfig:
    """Test SupervisorConfig defaults and validation."""

    def test_defaults_match_container_layout(self):
        """Test derived paths under the default pipeline root."""
        config = SupervisorConfig()

        assert config.watch_dir == Path("/home/draw/pipeline/dicom")
        assert config.output_dir == Path("/home/draw/pipeline/output")
        assert config.database_path == Path("/home/draw/pipeline/data/draw.db.sqlite")
        assert config.model_link_path == Path("/home/draw/pipeline/data/nnUNet_results")
        assert config.download_dir == Path("/home/draw/copy_dicom")
        assert config.staging_dir == Path("/home/draw/copy_dicom/files")
        assert config.worker_log_path == Path("/home/draw/pipeline/logs/logfile.log")
        assert config.artifact_path == Path("/home/draw/pipeline/output/AUTOSEGMENT.RT.dcm")

    def test_derived_paths_follow_pipeline_root(self, tmp_path):
        """Test changing the root moves every derived path."""
        config = SupervisorConfig(pipeline_root=tmp_path / "root")

        assert config.watch_dir == tmp_path / "root" / "dicom"
        assert config.download_dir == tmp_path / "copy_dicom"

    def test_explicit_path_wins(self, tmp_path):
        """Test an explicit path is not overridden by derivation."""
        config = SupervisorConfig(pipeline_root=tmp_path, watch_dir=tmp_path / "incoming")

        assert config.watch_dir == tmp_path / "incoming"

    @pytest.mark.parametrize("overrides", [
        {"log_wait_attempts": 0},
        {"db_wait_interval": 0},
        {"output_wait_timeout": -1},
        {"settle_seconds": -1},
        {"worker_command": []},
        {"extract_command": ["unzip", "{archive}"]},
        {"artifact_name": "out/AUTOSEGMENT.RT.dcm"},
        {"relocate_pattern": ""},
    ])
    def test_invalid_values_rejected(self, overrides):
        """Test validation raises ConfigurationError."""
        with pytest.raises(ConfigurationError):
            SupervisorConfig(**overrides)


class TestConfigLoader:
    """Test ConfigLoader sources and precedence."""

    def test_load_defaults_without_sources(self):
        """Test loading with no file and an empty environment."""
        config = ConfigLoader(environ={}).load()

        assert config.expected_status == "INIT"
        assert config.output_wait_timeout == 1200

    def test_load_yaml(self, tmp_path):
        """Test values are read from the YAML file."""
        path = tmp_path / "config.yaml"
        path.write_text(
            "pipeline_root: /srv/pipeline\n"
            "relocate_pattern: '*.dcm'\n"
            "db_wait_attempts: 4\n"
            "worker_command: [python3, main.py, start-pipeline]\n"
        )

        config = ConfigLoader(config_path=path, environ={}).load()

        assert config.pipeline_root == Path("/srv/pipeline")
        assert config.relocate_pattern == "*.dcm"
        assert config.db_wait_attempts == 4
        assert config.worker_command == ["python3", "main.py", "start-pipeline"]

    def test_env_overrides_yaml(self, tmp_path):
        """Test AUTOSEG_* variables take precedence over the file."""
        path = tmp_path / "config.yaml"
        path.write_text("db_wait_attempts: 4\nkeep_staging: false\n")
        environ = {
            "AUTOSEG_DB_WAIT_ATTEMPTS": "7",
            "AUTOSEG_KEEP_STAGING": "yes",
            "AUTOSEG_MIGRATION_COMMAND": '["alembic", "-c", "alt.ini", "upgrade", "head"]',
            "AUTOSEG_WORKER_COMMAND": "python,main.py,start-pipeline",
        }

        config = ConfigLoader(config_path=path, environ=environ).load()

        assert config.db_wait_attempts == 7
        assert config.keep_staging is True
        assert config.migration_command == ["alembic", "-c", "alt.ini", "upgrade", "head"]
        assert config.worker_command == ["python", "main.py", "start-pipeline"]

    def test_overrides_win(self):
        """Test explicit overrides beat the environment."""
        loader = ConfigLoader(environ={"AUTOSEG_SETTLE_SECONDS": "3"})

        config = loader.load(overrides={"settle_seconds": 0, "expected_status": None})

        assert config.settle_seconds == 0
        assert config.expected_status == "INIT"

    def test_config_path_from_environment(self, tmp_path):
        """Test AUTOSEG_CONFIG names the file."""
        path = tmp_path / "config.yaml"
        path.write_text("expected_status: initialized\n")

        config = ConfigLoader(environ={"AUTOSEG_CONFIG": str(path)}).load()

        assert config.expected_status == "initialized"

    def test_invalid_env_value_ignored(self):
        """Test a non-numeric override is ignored with a warning."""
        config = ConfigLoader(environ={"AUTOSEG_LOG_WAIT_ATTEMPTS": "many"}).load()

        assert config.log_wait_attempts == 6

    def test_unknown_keys_ignored(self, tmp_path):
        """Test unknown YAML keys do not break loading."""
        path = tmp_path / "config.yaml"
        path.write_text("no_such_option: 1\n")

        config = ConfigLoader(config_path=path, environ={}).load()

        assert not hasattr(config, "no_such_option")

    def test_missing_file_raises(self, tmp_path):
        """Test a missing config file is a configuration error."""
        with pytest.raises(ConfigurationError):
            ConfigLoader(config_path=tmp_path / "nope.yaml", environ={}).load()

    def test_non_mapping_yaml_raises(self, tmp_path):
        """Test a YAML list is rejected."""
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError):
            ConfigLoader(config_path=path, environ={}).load()

    def test_invalid_value_raises(self, tmp_path):
        """Test a value failing validation surfaces as ConfigurationError."""
        path = tmp_path / "config.yaml"
        path.write_text("output_wait_timeout: 0\n")

        with pytest.raises(ConfigurationError):
            ConfigLoader(config_path=path, environ={}).load()
