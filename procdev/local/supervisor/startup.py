import os
import signal
import logging
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Union

from procdev.local.port import rewrite_port
from procdev.local.procfile import ProcessSpec

log = logging.getLogger(__name__)

# SIGTERM lets `kill <supervisor>` shut the group down like Ctrl+C.
INTERRUPT_SIGNALS = tuple(
    getattr(signal, sig_name) for sig_name in ("SIGINT", "SIGTERM") if hasattr(signal, sig_name)
)


def build_environment(
    bin_dirs: Iterable[Union[str, Path]] = (),
    base_env: Optional[Mapping[str, str]] = None,
    extra: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Builds the complete environment for the managed processes.

    :param bin_dirs: Executable directories to put in front of PATH, in order.
    :param base_env: The environment to start from, defaults to os.environ.
    :param extra: Variables set after PATH has been adjusted.
    :return: A new environment dictionary.
    """
    env = dict(os.environ if base_env is None else base_env)

    prefix = [str(d) for d in bin_dirs]
    if prefix:
        current_path = env.get("PATH", "")
        env["PATH"] = os.pathsep.join(prefix + ([current_path] if current_path else []))

    if extra:
        env.update(extra)
    return env


def prepare_commands(
    specs: Iterable[ProcessSpec],
    port: Optional[int],
    web_process_name: str,
    command_wrapper: Optional[Callable[[str], str]] = None,
) -> List[ProcessSpec]:
    """
    Returns the specs with the commands that will actually be launched.

    The web process gets its port rewritten first; the wrapper (if any) is applied afterwards.
    """
    prepared: List[ProcessSpec] = []
    for spec in specs:
        command = spec.command
        if port is not None and spec.name == web_process_name:
            command = rewrite_port(command, port)
        if command_wrapper is not None:
            command = command_wrapper(command)
        prepared.append(ProcessSpec(spec.name, command))
    return prepared


def install_signal_handlers(handler: Callable[[], None]) -> Dict[int, object]:
    """
    Routes interrupt signals to `handler`.

    A signal that cannot be registered (e.g. outside the main thread) is
    logged as a warning and skipped.

    :return: The previous handlers, keyed by signal number, for `restore_signal_handlers`.
    """
    previous: Dict[int, object] = {}
    for signum in INTERRUPT_SIGNALS:
        try:
            previous[signum] = signal.signal(signum, lambda _signum, _frame: handler())
        except (ValueError, OSError) as e:
            log.warning(f"Could not set signal handler for {signal.Signals(signum).name}: {e}")
    return previous


def restore_signal_handlers(previous: Dict[int, object]) -> None:
    """Reinstalls the handlers returned by `install_signal_handlers`."""
    for signum, old_handler in previous.items():
        try:
            signal.signal(signum, old_handler if old_handler is not None else signal.SIG_DFL)
        except (ValueError, OSError, TypeError) as e:
            log.debug(f"Could not restore handler for signal {signum}: {e}")
