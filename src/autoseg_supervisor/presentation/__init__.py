"""Presentation layer package."""

from autoseg_supervisor.presentation.cli import main, build_parser

__all__ = ["main", "build_parser"]
