"""Supervisor for a single auto-segmentation batch job."""

__version__ = "1.0.0"
