import io
import sys
import threading
import time

import pytest

from procdev.errors import SpawnError
from procdev.local.supervisor import process_utils
from procdev.local.supervisor.process_utils import RunningProcess, launch_process, start_output_readers

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses POSIX shell commands")


def _run_and_collect(command, tmp_path, color="", reset="", name="app"):
    out, err = io.StringIO(), io.StringIO()
    process = launch_process(name, command, tmp_path, {"PATH": "/usr/bin:/bin"})
    readers = start_output_readers(process, name, color, reset, out, err)
    process.wait(timeout=10)
    for thread in readers:
        thread.join(timeout=10)
    return out.getvalue(), err.getvalue(), readers


@posix_only
def test_stdout_lines_are_tagged(tmp_path):
    out, err, readers = _run_and_collect("echo hello; echo world", tmp_path)
    assert out == "[app] hello\n[app] world\n"
    assert err == ""
    assert len(readers) == 2


@posix_only
def test_stderr_goes_to_stderr_target(tmp_path):
    out, err, _ = _run_and_collect("echo to-out; echo to-err 1>&2", tmp_path)
    assert out == "[app] to-out\n"
    assert err == "[app] to-err\n"


@posix_only
def test_color_codes_wrap_the_tag(tmp_path):
    out, _, _ = _run_and_collect("echo hi", tmp_path, color="\x1b[36m", reset="\x1b[0m", name="web")
    assert out == "\x1b[36m[web]\x1b[0m hi\n"


@posix_only
def test_trailing_partial_line_and_empty_lines_are_emitted(tmp_path):
    out, _, _ = _run_and_collect("printf 'first\\n\\r\\nlast'", tmp_path)
    assert out == "[app] first\n[app] \n[app] last\n"


@posix_only
def test_shell_operators_are_interpreted(tmp_path):
    out, _, _ = _run_and_collect("echo a-b-c | tr '-' ' ' && echo done", tmp_path)
    assert out == "[app] a b c\n[app] done\n"


@posix_only
def test_launch_uses_cwd_and_env(tmp_path):
    process = launch_process("app", 'pwd; echo "$GREETING"', tmp_path, {"PATH": "/usr/bin:/bin", "GREETING": "hi"})
    stdout, _ = process.communicate(timeout=10)
    lines = stdout.decode().splitlines()
    assert lines[0] == str(tmp_path.resolve()) or lines[0] == str(tmp_path)
    assert lines[1] == "hi"


def test_launch_failure_raises_spawn_error(tmp_path):
    with pytest.raises(SpawnError) as excinfo:
        launch_process("web", "echo hi", tmp_path / "missing", {})
    assert excinfo.value.name == "web"
    assert excinfo.value.command == "echo hi"
    assert isinstance(excinfo.value.__cause__, OSError)


class _BrokenPipe:
    def __init__(self):
        self.closed = False

    def readline(self):
        raise OSError("read failed")

    def close(self):
        self.closed = True


def test_reader_ends_silently_on_read_error():
    pipe = _BrokenPipe()
    target = io.StringIO()
    thread = threading.Thread(target=process_utils._read_pipe, args=(pipe, "[app]", target))
    thread.start()
    thread.join(timeout=5)
    assert not thread.is_alive()
    assert pipe.closed
    assert target.getvalue() == ""


class _NoPipes:
    stdout = None
    stderr = None


def test_no_readers_without_pipes():
    assert start_output_readers(_NoPipes(), "app", "", "", io.StringIO(), io.StringIO()) == []


@posix_only
def test_running_process_terminate(tmp_path):
    process = launch_process("sleeper", "sleep 30", tmp_path, {"PATH": "/usr/bin:/bin"})
    readers = start_output_readers(process, "sleeper", "", "", io.StringIO(), io.StringIO())
    running = RunningProcess("sleeper", "", process, readers)

    assert running.is_alive()
    assert running.wait(timeout=0.1) is None

    running.terminate()
    assert running.wait(timeout=10) is not None
    assert not running.is_alive()
    running.join_readers()
    assert not any(thread.is_alive() for thread in readers)


@posix_only
def test_running_process_kill_reaches_children(tmp_path):
    # The trap keeps the shell from exec'ing sleep, so sleep runs as a child.
    process = launch_process("stubborn", "trap '' TERM; sleep 30; true", tmp_path, {"PATH": "/usr/bin:/bin"})
    readers = start_output_readers(process, "stubborn", "", "", io.StringIO(), io.StringIO())
    running = RunningProcess("stubborn", "", process, readers)
    time.sleep(0.2)

    running.terminate()
    assert running.wait(timeout=0.5) is None

    running.kill()
    assert running.wait(timeout=10) is not None
    running.join_readers()
    assert not any(thread.is_alive() for thread in readers)


@posix_only
def test_descendant_ignoring_terminate_keeps_process_alive(tmp_path):
    # The outer shell dies on SIGTERM; the inner one and its sleep ignore it.
    command = "sh -c \"trap '' TERM; sleep 30\"; echo after"
    process = launch_process("nested", command, tmp_path, {"PATH": "/usr/bin:/bin"})
    out = io.StringIO()
    readers = start_output_readers(process, "nested", "", "", out, io.StringIO())
    running = RunningProcess("nested", "", process, readers)
    time.sleep(0.3)

    running.terminate()
    assert running.wait(timeout=5) is not None
    assert running.descendants
    assert running.is_alive()

    running.kill()
    deadline = time.monotonic() + 5
    while running.is_alive() and time.monotonic() < deadline:
        time.sleep(0.05)
    assert not running.is_alive()
    running.join_readers()
    assert "after" not in out.getvalue()
