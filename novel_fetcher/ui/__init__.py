"""User interaction helpers."""

from .progress import UnitProgress, UnitProgressReporter

__all__ = ["UnitProgress", "UnitProgressReporter"]
