"""Tests for the environment bootstrapper."""

import os
import sqlite3
import sys
from unittest.mock import Mock

import pytest

from autoseg_supervisor.application.bootstrap import EnvironmentBootstrapper
from autoseg_supervisor.domain.exceptions import (
    DatabaseNotCreated,
    MigrationFailed,
    ModelRegistryMissing,
    NoModelsFound,
    ToolUnavailable,
)
from autoseg_supervisor.infrastructure.database import SqliteStatusReader
from autoseg_supervisor.infrastructure.tools import MigrationRunner


def create_database(config):
    config.database_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(config.database_path)
    conn.execute("CREATE TABLE dicomlog (series_name TEXT, status TEXT)")
    conn.commit()
    conn.close()


def make_bootstrapper(config, migrations=None):
    if migrations is None:
        migrations = Mock(spec=MigrationRunner)
        migrations.tool = "alembic"
        migrations.locate.return_value = "/usr/bin/alembic"
        migrations.upgrade.return_value = (0, "", "")
    reader = SqliteStatusReader(config.database_path)
    return EnvironmentBootstrapper(config, migrations, reader)


class TestMigrations:
    """Test the migration step."""

    def test_tool_unavailable(self, config):
        migrations = MigrationRunner(["no-such-migration-tool", "upgrade", "head"], cwd=config.pipeline_root)

        with pytest.raises(ToolUnavailable):
            make_bootstrapper(config, migrations).apply_migrations()

    def test_migration_failure_carries_output(self, config):
        config.pipeline_root.mkdir(parents=True)
        migrations = MigrationRunner(
            [sys.executable, "-c", "import sys; sys.stderr.write('revision not found'); sys.exit(1)"],
            cwd=config.pipeline_root,
        )

        with pytest.raises(MigrationFailed) as excinfo:
            make_bootstrapper(config, migrations).apply_migrations()

        assert "revision not found" in excinfo.value.diagnostics

    def test_migration_runs_in_pipeline_root(self, config):
        config.pipeline_root.mkdir(parents=True)
        migrations = MigrationRunner(
            [sys.executable, "-c", "open('migrated', 'w').close()"],
            cwd=config.pipeline_root,
        )

        make_bootstrapper(config, migrations).apply_migrations()

        assert (config.pipeline_root / "migrated").exists()


class TestDatabaseCheck:
    """Test the post-migration database check."""

    def test_database_not_created(self, config):
        with pytest.raises(DatabaseNotCreated):
            make_bootstrapper(config).verify_database()

    def test_database_not_queryable(self, config):
        config.database_path.parent.mkdir(parents=True)
        config.database_path.write_bytes(b"this is not a database file at all, honestly" * 4)

        with pytest.raises(DatabaseNotCreated):
            make_bootstrapper(config).verify_database()

    def test_database_ready(self, config):
        create_database(config)

        make_bootstrapper(config).verify_database()


class TestOutputDirectory:
    """Test output directory recreation."""

    def test_recreation_is_idempotent(self, config):
        bootstrapper = make_bootstrapper(config)
        config.output_dir.mkdir(parents=True)
        (config.output_dir / "AUTOSEGMENT.RT.dcm").write_bytes(b"stale")
        (config.output_dir / "nested").mkdir()

        for _ in range(2):
            output_dir = bootstrapper.prepare_output_dir()

            assert output_dir.is_dir()
            assert list(output_dir.iterdir()) == []
            assert output_dir.stat().st_uid == os.getuid()

    def test_replaces_file_at_output_path(self, config):
        config.output_dir.parent.mkdir(parents=True)
        config.output_dir.write_text("not a directory")

        make_bootstrapper(config).prepare_output_dir()

        assert config.output_dir.is_dir()


class TestModelRegistry:
    """Test linking the model registry."""

    def test_registry_missing(self, config):
        with pytest.raises(ModelRegistryMissing):
            make_bootstrapper(config).link_model_registry()

    def test_no_models(self, config):
        config.model_registry_dir.mkdir(parents=True)
        (config.model_registry_dir / "README.txt").write_text("models go here")

        with pytest.raises(NoModelsFound):
            make_bootstrapper(config).link_model_registry()

    def test_link_created(self, config, model_registry):
        models = make_bootstrapper(config).link_model_registry()

        assert models == ["Dataset001_Prostate", "Dataset002_Breast"]
        assert config.model_link_path.is_symlink()
        assert config.model_link_path.resolve() == model_registry.resolve()

    def test_replaces_existing_directory(self, config, model_registry):
        config.model_link_path.mkdir(parents=True)
        (config.model_link_path / "old_model").mkdir()

        make_bootstrapper(config).link_model_registry()

        assert config.model_link_path.is_symlink()
        assert not (model_registry / "old_model").exists()

    def test_replaces_existing_link(self, config, model_registry, tmp_path):
        stale = tmp_path / "stale_registry"
        stale.mkdir()
        config.model_link_path.parent.mkdir(parents=True)
        config.model_link_path.symlink_to(stale)

        make_bootstrapper(config).link_model_registry()

        assert config.model_link_path.resolve() == model_registry.resolve()
        assert stale.exists()


class TestRun:
    """Test the full bootstrap sequence."""

    def test_run_creates_runtime_dirs(self, config, model_registry):
        create_database(config)

        models = make_bootstrapper(config).run()

        assert len(models) == 2
        for directory in (config.log_dir, config.watch_dir, config.download_dir,
                          config.staging_dir, config.output_dir):
            assert directory.is_dir()

    def test_run_stops_at_first_failure(self, config, model_registry):
        migrations = Mock(spec=MigrationRunner)
        migrations.tool = "alembic"
        migrations.locate.return_value = None

        with pytest.raises(ToolUnavailable):
            make_bootstrapper(config, migrations).run()

        migrations.upgrade.assert_not_called()
        assert not config.model_link_path.exists()
