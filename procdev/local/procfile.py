"""
Parsing of Procfile-style process definitions.

Each line holds one process in the form `name: command`. Blank lines and lines
starting with `#` are ignored, as are lines without a colon or with an invalid
process name.
"""
import re
import logging
from pathlib import Path
from typing import List, NamedTuple, Union

from procdev.errors import ProcfileError

log = logging.getLogger(__name__)

_VALID_NAME = re.compile(r"[A-Za-z0-9_-]+")


class ProcessSpec(NamedTuple):
    """A named shell command read from a Procfile."""
    name: str
    command: str


def is_valid_process_name(name: str) -> bool:
    """Returns True if the name only uses ASCII letters, digits, '_' and '-'."""
    return _VALID_NAME.fullmatch(name) is not None


def parse_procfile(content: str) -> List[ProcessSpec]:
    """
    Parses Procfile text into an ordered list of process specs.

    The line is split on the first colon only, so commands may contain colons
    (URLs, namespaced tasks). An empty result is returned as-is.

    :param content: The raw Procfile text.
    :return: The valid entries in file order.
    """
    processes: List[ProcessSpec] = []

    for raw_line in content.split("\n"):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        name, sep, command = line.partition(":")
        if not sep:
            log.debug(f"Skipping Procfile line without a colon: {line!r}")
            continue

        name, command = name.strip(), command.strip()
        if not name or not command:
            continue
        if not is_valid_process_name(name):
            log.debug(f"Skipping Procfile entry with invalid name: {name!r}")
            continue

        processes.append(ProcessSpec(name, command))

    return processes


def load_procfile(path: Union[str, Path]) -> List[ProcessSpec]:
    """
    Reads and parses a Procfile from disk.

    :param path: The Procfile path.
    :return: The parsed entries.
    :raises ProcfileError: If the file cannot be read or defines no processes.
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ProcfileError(f"Could not read {path}: {e}") from e

    processes = parse_procfile(content)
    if not processes:
        raise ProcfileError(f"{path} is empty")
    return processes
