"""
Logging module for the application.
This module provides functionality to set up console and file logging.
"""

from .setup import setup_logging, MainFormatter, UI_LOGGER_NAME

__all__ = ["setup_logging", "MainFormatter", "UI_LOGGER_NAME"]
