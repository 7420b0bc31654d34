import psutil
import logging
import subprocess
import threading
from pathlib import Path
from typing import IO, Dict, List, Optional, TextIO, Union

from procdev.errors import SpawnError
from procdev.local.supervisor import shutdown

log = logging.getLogger(__name__)


#* --- Process Creation ---
def launch_process(name: str, command: str, cwd: Union[str, Path], env: Dict[str, str]) -> subprocess.Popen:
    """
    Starts a command through the platform shell without waiting for it.

    stdin is inherited from the terminal; stdout and stderr are captured as pipes.

    :param name: The logical name of the process, used in error messages.
    :param command: The shell command string.
    :param cwd: The working directory for the process.
    :param env: The complete environment for the process.
    :return: The `subprocess.Popen` handle.
    :raises SpawnError: If the OS could not create the process.
    """
    log.debug(f"Starting process '{name}' in {cwd}: {command}")
    try:
        return subprocess.Popen(
            command,
            shell=True,
            cwd=str(cwd),
            env=env,
            stdin=None,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except (OSError, ValueError) as e:
        raise SpawnError(name, command, str(e)) from e


#* --- Output Multiplexing ---
def _strip_newline(line_bytes: bytes) -> str:
    """Decodes a raw line and removes its trailing '\\n' or '\\r\\n'."""
    line = line_bytes.decode("utf-8", errors="replace")
    if line.endswith("\n"):
        line = line[:-1]
        if line.endswith("\r"):
            line = line[:-1]
    return line


def _read_pipe(pipe: IO[bytes], prefix: str, target: TextIO) -> None:
    """Target function for reader threads. Copies prefixed lines from a pipe to a stream."""
    try:
        for line_bytes in iter(pipe.readline, b""):
            target.write(f"{prefix} {_strip_newline(line_bytes)}\n")
            target.flush()
    except (OSError, ValueError) as e:
        log.debug(f"Pipe reader for {prefix} stream exited: {e}")
    finally:
        try:
            pipe.close()
        except OSError:
            pass


def start_output_readers(
    process: subprocess.Popen,
    name: str,
    color: str,
    reset: str,
    stdout: TextIO,
    stderr: TextIO,
) -> List[threading.Thread]:
    """
    Starts one thread per captured pipe of a process.

    Each line is written as `{color}[{name}]{reset} {line}`; stdout lines go to
    `stdout` and stderr lines to `stderr`.

    :return: The started reader threads, to be joined by the caller.
    """
    prefix = f"{color}[{name}]{reset}"
    readers: List[threading.Thread] = []
    for pipe, target, label in ((process.stdout, stdout, "stdout"), (process.stderr, stderr, "stderr")):
        if pipe is None:
            continue
        thread = threading.Thread(
            target=_read_pipe,
            args=(pipe, prefix, target),
            daemon=True,
            name=f"{name}-{label}-reader",
        )
        thread.start()
        readers.append(thread)
    return readers


#* --- Process Handles ---
class RunningProcess:
    """
    A launched process together with the threads reading its output.

    Only the supervisor's control thread calls the lifecycle methods. Once
    terminated, the process counts as alive while the shell or any descendant
    signalled with it is still running.
    """

    def __init__(self, name: str, color: str, process: subprocess.Popen, readers: List[threading.Thread]) -> None:
        self.name = name
        self.color = color
        self.process = process
        self.readers = readers
        self.descendants: List[psutil.Process] = []

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def returncode(self) -> Optional[int]:
        return self.process.returncode

    def _shell_alive(self) -> bool:
        try:
            return self.process.poll() is None
        except OSError as e:
            log.debug(f"Could not poll process '{self.name}' (PID {self.pid}): {e}")
            return False

    def is_alive(self) -> bool:
        """Polls the process and its signalled descendants without blocking. Errors count as exited."""
        if self._shell_alive():
            return True
        if self.descendants:
            self.descendants = shutdown.find_running(self.descendants)
        return bool(self.descendants)

    def terminate(self) -> None:
        """Asks the process and its descendants to exit."""
        tree = shutdown.terminate_process_tree(self.process)
        self.descendants = [proc for proc in tree if proc.pid != self.pid]

    def kill(self) -> None:
        """Forcefully kills the process, its current descendants and any survivor of `terminate()`."""
        # Once reaped, the shell's PID may belong to an unrelated process.
        if self._shell_alive():
            shutdown.kill_process_tree(self.process)
        shutdown.kill_processes(self.descendants)

    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        """Waits for the process to exit, returning None if it is still running after `timeout`."""
        try:
            return self.process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return None

    def join_readers(self) -> None:
        """Blocks until every reader thread has drained its pipe."""
        for thread in self.readers:
            thread.join()
