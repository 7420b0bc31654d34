"""
Local package for procdev.

This package provides the merged configuration through the effective_settings
singleton, along with the Procfile parser and the process supervisor.
"""

from .config import effective_settings

__all__ = ["effective_settings"]
