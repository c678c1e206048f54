"""Preparing the runtime environment the worker expects."""

import shutil
from pathlib import Path
from typing import List

from autoseg_supervisor.domain.exceptions import (
    DatabaseNotCreated,
    MigrationFailed,
    ModelRegistryMissing,
    NoModelsFound,
    StatusQueryError,
    ToolUnavailable,
)
from autoseg_supervisor.domain.protocols import IStatusReader
from autoseg_supervisor.infrastructure.config import SupervisorConfig
from autoseg_supervisor.infrastructure.tools import MigrationRunner
from autoseg_supervisor.shared.fs import count_files, recreate_directory
from autoseg_supervisor.shared.logging import get_logger

logger = get_logger(__name__)


class EnvironmentBootstrapper:
    """
    Migrates the job database, resets the output directory and links the
    model registry, failing before the worker is ever started.
    """

    def __init__(
        self,
        config: SupervisorConfig,
        migrations: MigrationRunner,
        status_reader: IStatusReader,
    ):
        self._config = config
        self._migrations = migrations
        self._status_reader = status_reader
        self._logger = get_logger(__name__)

    def run(self) -> List[str]:
        """
        Run every bootstrap step in order.

        Returns:
            Names of the models found in the registry
        """
        self.apply_migrations()
        self.verify_database()
        self.prepare_output_dir()
        self.prepare_runtime_dirs()
        return self.link_model_registry()

    def apply_migrations(self) -> None:
        """
        Raises:
            ToolUnavailable: If the migration tool is not on PATH
            MigrationFailed: If the migration command exits non-zero
        """
        tool = self._migrations.locate()
        if tool is None:
            raise ToolUnavailable(
                f"Migration tool '{self._migrations.tool}' not found on PATH"
            )
        self._logger.debug(f"Migration tool: {tool}")

        rc, out, err = self._migrations.upgrade()
        if rc != 0:
            raise MigrationFailed(
                f"Migrations exited with code {rc}",
                diagnostics=(err or out).strip() or None,
            )
        self._logger.info("Migrations applied")

    def verify_database(self) -> None:
        """
        Raises:
            DatabaseNotCreated: If the database is missing or not queryable
        """
        path = self._config.database_path
        if not path.is_file():
            raise DatabaseNotCreated(f"Database file not found after migration: {path}")
        try:
            self._status_reader.ping()
        except StatusQueryError as e:
            raise DatabaseNotCreated(
                f"Database {path} exists but cannot be queried", diagnostics=e.message
            ) from e
        self._logger.info(f"Database ready: {path} ({path.stat().st_size} bytes)")

    def prepare_output_dir(self) -> Path:
        """Recreate the output directory empty. Safe to repeat."""
        output_dir = recreate_directory(self._config.output_dir)
        self._logger.info(f"Output directory reset: {output_dir}")
        return output_dir

    def prepare_runtime_dirs(self) -> None:
        config = self._config
        for directory in (
            config.log_dir,
            config.watch_dir,
            config.download_dir,
            config.staging_dir,
            config.model_link_path.parent,
        ):
            directory.mkdir(parents=True, exist_ok=True)

    def link_model_registry(self) -> List[str]:
        """
        Point the local model path at the external registry.

        Returns:
            Names of the model entries visible through the link

        Raises:
            ModelRegistryMissing: If the registry is absent or unreadable
                through the link
            NoModelsFound: If the registry holds no model entries
        """
        registry = self._config.model_registry_dir
        link = self._config.model_link_path

        if not registry.is_dir():
            raise ModelRegistryMissing(f"Model registry not found: {registry}")

        models = sorted(p.name for p in registry.iterdir() if p.is_dir())
        if not models:
            raise NoModelsFound(f"Model registry {registry} contains no model directories")

        if link.is_symlink() or link.is_file():
            link.unlink()
        elif link.exists():
            shutil.rmtree(link)
        link.parent.mkdir(parents=True, exist_ok=True)
        link.symlink_to(registry, target_is_directory=True)
        self._logger.info(f"Linked {link} -> {registry}")

        try:
            visible = sorted(p for p in link.iterdir() if p.is_dir())
        except OSError as e:
            raise ModelRegistryMissing(f"Cannot list models through {link}: {e}") from e

        self._logger.info(f"Found {len(visible)} model(s):")
        for model in visible:
            self._logger.info(f"  {model.name} ({count_files(model)} files)")
        return [model.name for model in visible]
