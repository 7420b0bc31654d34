import string
from typing import Optional

# Tried in order; the bare '-p' form comes last so it cannot shadow '-p=' or '-p '.
PORT_FLAG_PATTERNS = ("--port=", "--port ", "-p=", "-p ", "-p")


def _digit_run_end(command: str, start: int) -> int:
    """Returns the index just past the run of ASCII digits starting at `start`."""
    end = start
    while end < len(command) and command[end] in string.digits:
        end += 1
    return end


def _try_replace_port(command: str, pattern: str, port_str: str) -> Optional[str]:
    """
    Replaces the digits after the first occurrence of `pattern`.

    :return: The rewritten command, or None if the pattern is absent or not followed by digits.
    """
    idx = command.find(pattern)
    if idx == -1:
        return None

    start = idx + len(pattern)
    end = _digit_run_end(command, start)
    if start == end:
        return None
    return command[:start] + port_str + command[end:]


def rewrite_port(command: str, port: int) -> str:
    """
    Rewrites the port number passed to a server command.

    Recognizes `--port=N`, `--port N`, `-p=N`, `-p N` and `-pN`. Only the first
    matching form is rewritten, and only once.

    :param command: A shell command string.
    :param port: The port to substitute.
    :return: The rewritten command, or the original string if no port flag is found.
    """
    port_str = str(port)
    for pattern in PORT_FLAG_PATTERNS:
        result = _try_replace_port(command, pattern, port_str)
        if result is not None:
            return result
    return command
