"""
The Supervisor package.
Runs the processes of a Procfile in the foreground.

This package contains the central Supervisor class and its helper modules,
which together handle launching the processes, multiplexing their output and
shutting them down on interrupt or exit.
"""
from .supervisor import LaunchState, RunSummary, Supervisor, SupervisorState

__all__ = ['LaunchState', 'RunSummary', 'Supervisor', 'SupervisorState']
