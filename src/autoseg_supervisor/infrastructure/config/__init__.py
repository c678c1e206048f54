"""Configuration package."""

from autoseg_supervisor.infrastructure.config.loader import ConfigLoader, SupervisorConfig

__all__ = ["ConfigLoader", "SupervisorConfig"]
