# src/__init__.py - v1
"""credreports: cached reporting and query monitoring for the student credential system."""

from credreports.version import __version__

__all__ = ["__version__"]
