"""
This module initializes the console package, exposing command execution
and the help text for the procdev command line.
"""

from .process import execute_command
from .handler import print_help

__all__ = ["execute_command", "print_help"]
