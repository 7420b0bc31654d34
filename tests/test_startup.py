import logging
import os
import signal
import threading

from procdev.local.procfile import ProcessSpec
from procdev.local.supervisor import startup


def test_build_environment_prepends_bin_dirs_in_order():
    env = startup.build_environment(["/app/bin", "/app/node_modules/.bin"], base_env={"PATH": "/usr/bin", "HOME": "/h"})
    assert env["PATH"] == os.pathsep.join(["/app/bin", "/app/node_modules/.bin", "/usr/bin"])
    assert env["HOME"] == "/h"


def test_build_environment_without_existing_path():
    env = startup.build_environment(["/app/bin"], base_env={})
    assert env["PATH"] == "/app/bin"


def test_build_environment_copies_base_and_applies_extra():
    base = {"PATH": "/usr/bin", "RAILS_ENV": "development"}
    env = startup.build_environment(base_env=base, extra={"RAILS_ENV": "test", "PORT": "4000"})
    assert env == {"PATH": "/usr/bin", "RAILS_ENV": "test", "PORT": "4000"}
    assert base == {"PATH": "/usr/bin", "RAILS_ENV": "development"}


def test_build_environment_defaults_to_process_environment(monkeypatch):
    monkeypatch.setenv("PROCDEV_TEST_MARKER", "present")
    env = startup.build_environment()
    assert env["PROCDEV_TEST_MARKER"] == "present"
    assert env is not os.environ


def test_prepare_commands_without_port_or_wrapper():
    specs = [ProcessSpec("web", "bin/rails server -p 3000")]
    assert startup.prepare_commands(specs, None, "web") == specs


def test_prepare_commands_rewrites_web_then_wraps():
    specs = [ProcessSpec("web", "rails s -p 3000"), ProcessSpec("css", "watch -p 3000")]
    prepared = startup.prepare_commands(specs, 4000, "web", lambda command: f"bundle exec {command}")
    assert prepared == [
        ProcessSpec("web", "bundle exec rails s -p 4000"),
        ProcessSpec("css", "bundle exec watch -p 3000"),
    ]


def test_signal_handlers_are_installed_and_restored():
    before = signal.getsignal(signal.SIGINT)
    calls = []

    previous = startup.install_signal_handlers(lambda: calls.append("shutdown"))
    try:
        assert signal.SIGINT in previous
        handler = signal.getsignal(signal.SIGINT)
        handler(signal.SIGINT, None)
        assert calls == ["shutdown"]
    finally:
        startup.restore_signal_handlers(previous)

    assert signal.getsignal(signal.SIGINT) is before


def test_signal_handlers_outside_main_thread_are_skipped(caplog):
    result = {}

    def install():
        result["previous"] = startup.install_signal_handlers(lambda: None)

    with caplog.at_level(logging.WARNING):
        thread = threading.Thread(target=install)
        thread.start()
        thread.join()

    assert result["previous"] == {}
    assert "Could not set signal handler for SIGINT" in caplog.text
