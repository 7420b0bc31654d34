"""Pytest configuration and shared fixtures.

The project root is put on sys.path so ``import procdev`` works when tests are
run from a checkout without installing the package.
"""

import logging
import os
import sys

import pytest

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


@pytest.fixture(autouse=True)
def restore_root_logging():
    """Removes the handlers setup_logging() installed so they do not leak into later tests."""
    from procdev.log.setup import MainFormatter

    root_logger = logging.getLogger()
    level = root_logger.level
    yield
    for handler in list(root_logger.handlers):
        if isinstance(handler.formatter, MainFormatter):
            root_logger.removeHandler(handler)
            handler.close()
    root_logger.setLevel(level)


class FakeProcess:
    """
    Stands in for RunningProcess in supervisor tests.

    :param exit_after_polls: Exit on its own after this many liveness checks.
    :param exits_on_terminate: Whether a termination request makes it exit.
    """

    def __init__(self, name, events=None, exit_after_polls=None, exits_on_terminate=True, exit_code=0):
        self.name = name
        self.color = ""
        self.readers = []
        self.returncode = None
        self.calls = []
        self.joined = False
        self._events = events if events is not None else []
        self._alive = True
        self._polls = 0
        self._exit_after_polls = exit_after_polls
        self._exits_on_terminate = exits_on_terminate
        self._exit_code = exit_code

    def _exit(self, code):
        self._alive = False
        self.returncode = code

    def is_alive(self):
        if self._alive and self._exit_after_polls is not None:
            self._polls += 1
            if self._polls >= self._exit_after_polls:
                self._exit(self._exit_code)
        return self._alive

    def terminate(self):
        self.calls.append("terminate")
        self._events.append(("terminate", self.name))
        if self._exits_on_terminate:
            self._exit(-15)

    def kill(self):
        self.calls.append("kill")
        self._events.append(("kill", self.name))
        self._exit(-9)

    def wait(self, timeout=None):
        return None if self._alive else self.returncode

    def join_readers(self):
        self.joined = True


@pytest.fixture
def fake_launcher():
    """Returns (launcher, launched) where the launcher hands out prepared FakeProcess objects by name."""
    def make(processes):
        launched = []

        def launcher(spec, color, reset):
            launched.append((spec, color, reset))
            return processes[spec.name]

        return launcher, launched

    return make
