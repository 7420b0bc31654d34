import sys
import time
import logging
import threading
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, TextIO, Tuple, Union

from procdev.errors import ProcfileError, SpawnError
from procdev.local.config import effective_settings as config
from procdev.local.procfile import ProcessSpec
from procdev.local.supervisor import process_utils, shutdown, startup
from procdev.log.setup import UI_LOGGER_NAME

log = logging.getLogger(__name__)
ui = logging.getLogger(UI_LOGGER_NAME)

# (spec, color, reset) -> started process with its readers
Launcher = Callable[[ProcessSpec, str, str], process_utils.RunningProcess]


class SupervisorState(Enum):
    RUNNING = "running"
    SHUTTING_DOWN_GRACEFUL = "shutting_down_graceful"
    SHUTTING_DOWN_FORCED = "shutting_down_forced"
    DONE = "done"


class LaunchState(Enum):
    PENDING = "pending"
    SPAWNED = "spawned"
    FAILED = "failed"


class RunSummary:
    """The outcome of a completed run. Child exit codes are reported, not judged."""

    def __init__(self) -> None:
        self.interrupted = False
        self.forced: List[str] = []
        self.exit_codes: List[Tuple[str, Optional[int]]] = []

    def failed_processes(self) -> List[str]:
        """Names of processes that exited on their own with a non-zero status."""
        return [name for name, code in self.exit_codes if code not in (0, None)]


def _is_terminal(stream: TextIO) -> bool:
    try:
        return stream.isatty()
    except (AttributeError, ValueError):
        return False


class Supervisor:
    """
    Runs a set of Procfile processes in the foreground until they all exit or
    the user interrupts.

    The interrupt handler only sets `shutdown_requested`; the control loop in
    `run()` owns every process handle and issues every signal. Shutdown moves
    through RUNNING -> SHUTTING_DOWN_GRACEFUL -> SHUTTING_DOWN_FORCED -> DONE,
    or straight from RUNNING to DONE when all processes exit on their own.
    """

    def __init__(
        self,
        specs: Sequence[ProcessSpec],
        cwd: Union[str, Path],
        env: Dict[str, str],
        port: Optional[int] = None,
        *,
        web_process_name: Optional[str] = None,
        poll_interval: Optional[float] = None,
        grace_period: Optional[float] = None,
        reap_timeout: Optional[float] = None,
        command_wrapper: Optional[Callable[[str], str]] = None,
        stdout: Optional[TextIO] = None,
        stderr: Optional[TextIO] = None,
        use_colors: Optional[bool] = None,
        launcher: Optional[Launcher] = None,
    ) -> None:
        """
        :param specs: The processes to run, in launch order.
        :param cwd: Working directory for every process.
        :param env: Complete environment for every process.
        :param port: If given, rewritten into the web process's command.
        :param command_wrapper: Applied to each command after the port rewrite.
        :param stdout: Where stdout lines go, defaults to sys.stdout.
        :param stderr: Where stderr lines go, defaults to sys.stderr.
        :param use_colors: Force colors on or off instead of checking whether stdout is a terminal.
        :param launcher: Replaces the default shell launcher (used by tests).
        """
        self.specs = list(specs)
        self.cwd = cwd
        self.env = env
        self.port = port
        self.web_process_name = web_process_name or config.WEB_PROCESS_NAME
        self.poll_interval = config.POLL_INTERVAL if poll_interval is None else poll_interval
        self.grace_period = config.GRACEFUL_SHUTDOWN_TIMEOUT if grace_period is None else grace_period
        self.reap_timeout = config.REAP_TIMEOUT if reap_timeout is None else reap_timeout
        self.command_wrapper = command_wrapper
        self.stdout = stdout or sys.stdout
        self.stderr = stderr or sys.stderr
        self.use_colors = use_colors
        self.launcher = launcher or self._launch

        self.shutdown_requested = threading.Event()
        # Set by the signal handler, which must not take the Event's lock.
        self._signal_received = False
        self.state = SupervisorState.RUNNING
        self.launch_states: List[Tuple[ProcessSpec, LaunchState]] = []
        self.processes: List[process_utils.RunningProcess] = []
        self.summary = RunSummary()
        self._grace_deadline = 0.0

    def request_shutdown(self) -> None:
        """Asks the control loop to stop all processes. Safe to call from any thread."""
        self.shutdown_requested.set()

    def _handle_signal(self) -> None:
        """Signal handler body. The control loop turns the flag into `shutdown_requested`."""
        self._signal_received = True

    #* --- Launching ---
    def _launch(self, spec: ProcessSpec, color: str, reset: str) -> process_utils.RunningProcess:
        process = process_utils.launch_process(spec.name, spec.command, self.cwd, self.env)
        try:
            readers = process_utils.start_output_readers(process, spec.name, color, reset, self.stdout, self.stderr)
        except RuntimeError as e:
            shutdown.kill_process_tree(process)
            process.wait()
            raise SpawnError(spec.name, spec.command, f"could not start output readers: {e}") from e
        return process_utils.RunningProcess(spec.name, color, process, readers)

    def _spawn_all(self, specs: List[ProcessSpec], colors_enabled: bool) -> None:
        """
        Launches every spec in order. On failure the processes started so far
        stay in `self.processes` so the caller can shut them down.
        """
        reset = config.RESET if colors_enabled else ""
        self.launch_states = [(spec, LaunchState.PENDING) for spec in specs]

        for index, spec in enumerate(specs):
            color = config.COLORS[index % len(config.COLORS)] if colors_enabled else ""
            ui.info(f"{color}[{spec.name}]{reset} {spec.command}")
            try:
                running = self.launcher(spec, color, reset)
            except SpawnError:
                self.launch_states[index] = (spec, LaunchState.FAILED)
                raise
            self.processes.append(running)
            self.launch_states[index] = (spec, LaunchState.SPAWNED)

    #* --- Control Loop ---
    def _step(self) -> None:
        """Advances the state machine by one poll."""
        if self._signal_received and not self.shutdown_requested.is_set():
            self.shutdown_requested.set()
        alive = [proc for proc in self.processes if proc.is_alive()]

        if self.state is SupervisorState.RUNNING:
            if self.shutdown_requested.is_set() and alive:
                ui.info("Shutting down...")
                for proc in alive:
                    log.debug(f"Requesting termination of '{proc.name}'")
                    proc.terminate()
                self._grace_deadline = time.monotonic() + self.grace_period
                self.state = SupervisorState.SHUTTING_DOWN_GRACEFUL
                return
            if not alive:
                self.state = SupervisorState.DONE
                return

        elif self.state is SupervisorState.SHUTTING_DOWN_GRACEFUL:
            if not alive:
                self.state = SupervisorState.DONE
                return
            if time.monotonic() >= self._grace_deadline:
                self.state = SupervisorState.SHUTTING_DOWN_FORCED
                return

        elif self.state is SupervisorState.SHUTTING_DOWN_FORCED:
            if alive:
                log.warning(f"{len(alive)} processes did not terminate gracefully. Forcing shutdown...")
            for proc in alive:
                log.warning(f"Killing stubborn process '{proc.name}'.")
                proc.kill()
                self.summary.forced.append(proc.name)
            self.state = SupervisorState.DONE
            return

        time.sleep(self.poll_interval)

    def _drive(self) -> None:
        """Runs the state machine until DONE."""
        while self.state is not SupervisorState.DONE:
            try:
                self._step()
            except KeyboardInterrupt:
                # Only reachable when the signal handler could not be installed.
                log.info("Supervisor loop interrupted by user.")
                self.request_shutdown()

    def _finish(self) -> None:
        """Reaps every process, records exit codes and joins all reader threads."""
        for proc in self.processes:
            if proc.wait(timeout=self.reap_timeout) is None:
                log.warning(f"Process '{proc.name}' is still running after shutdown.")
            self.summary.exit_codes.append((proc.name, proc.returncode))

        for proc in self.processes:
            proc.join_readers()

    def run(self) -> RunSummary:
        """
        Launches all processes and supervises them until the run is over.

        :return: A summary of the run.
        :raises ProcfileError: If there is nothing to run.
        :raises SpawnError: If a process could not be started. Processes that
            were already running are shut down before this is raised.
        """
        if not self.specs:
            raise ProcfileError("No processes to run.")

        self.summary = RunSummary()
        colors_enabled = _is_terminal(self.stdout) if self.use_colors is None else self.use_colors
        specs = startup.prepare_commands(self.specs, self.port, self.web_process_name, self.command_wrapper)

        previous_handlers = startup.install_signal_handlers(self._handle_signal)
        try:
            ui.info("Starting development processes...")
            spawn_error: Optional[SpawnError] = None
            try:
                self._spawn_all(specs, colors_enabled)
            except SpawnError as e:
                spawn_error = e
                if self.processes:
                    log.warning(f"Stopping {len(self.processes)} processes that were already started.")
                self.request_shutdown()
            ui.info("")

            try:
                self._drive()
            except Exception as e:
                log.critical(f"Critical error in supervisor loop: {e}", exc_info=True)
                for proc in self.processes:
                    if proc.is_alive():
                        proc.kill()
                raise
            self._finish()
            if spawn_error is not None:
                raise spawn_error
        finally:
            startup.restore_signal_handlers(previous_handlers)

        self.summary.interrupted = self.shutdown_requested.is_set() or self._signal_received
        if not self.summary.interrupted:
            for name in self.summary.failed_processes():
                log.warning(f"Process '{name}' exited with a non-zero status.")
        return self.summary
