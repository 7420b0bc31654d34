import psutil
import logging
import subprocess
from typing import List

log = logging.getLogger(__name__)


def collect_process_tree(process: subprocess.Popen) -> List[psutil.Process]:
    """
    Returns the process followed by all of its descendants.

    The shell started for a Procfile entry may fork the real command, so the
    whole tree has to be signalled. Children are collected before anything is
    signalled, since they are reparented once their parent exits.

    :param process: The `subprocess.Popen` handle of the shell.
    :return: A list of psutil.Process objects, empty if the process is gone.
    """
    try:
        parent = psutil.Process(process.pid)
    except psutil.NoSuchProcess:
        return []

    tree = [parent]
    try:
        tree.extend(parent.children(recursive=True))
    except psutil.NoSuchProcess:
        log.debug(f"Process {process.pid} exited while collecting its children.")
    return tree


def find_running(processes: List[psutil.Process]) -> List[psutil.Process]:
    """
    Returns the members of `processes` that have not exited yet, without waiting.

    Only pass processes that are not direct children of this one, or their
    exit status is reaped here instead of by `subprocess`. Zombies count as exited.
    """
    if not processes:
        return []
    try:
        _, alive = psutil.wait_procs(processes, timeout=0)
    except psutil.NoSuchProcess:
        return []

    running: List[psutil.Process] = []
    for proc in alive:
        try:
            if proc.status() != psutil.STATUS_ZOMBIE:
                running.append(proc)
        except psutil.NoSuchProcess:
            continue
        except psutil.AccessDenied:
            running.append(proc)
    return running


def terminate_process_tree(process: subprocess.Popen) -> List[psutil.Process]:
    """
    Sends SIGTERM (TerminateProcess on Windows) to a process and its descendants.

    :return: The signalled processes, so survivors can be tracked and killed later.
    """
    try:
        tree = collect_process_tree(process)
    except psutil.AccessDenied:
        process.terminate()
        return []

    for proc in tree:
        try:
            log.debug(f"Sending SIGTERM to PID {proc.pid}")
            proc.terminate()
        except psutil.NoSuchProcess:
            continue
        except psutil.AccessDenied:
            log.warning(f"Access denied while terminating PID {proc.pid}.")
    return tree


def kill_processes(processes: List[psutil.Process]) -> None:
    """Sends SIGKILL to each of the given processes that still exists."""
    for proc in processes:
        try:
            log.debug(f"Killing PID {proc.pid}")
            proc.kill()
        except psutil.NoSuchProcess:
            continue
        except psutil.AccessDenied:
            log.warning(f"Access denied while killing PID {proc.pid}.")


def kill_process_tree(process: subprocess.Popen) -> None:
    """Sends SIGKILL to a process and its descendants."""
    try:
        tree = collect_process_tree(process)
    except psutil.AccessDenied:
        process.kill()
        return
    kill_processes(tree)
