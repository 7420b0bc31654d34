import logging
from typing import List

from procdev.errors import ProcdevError
from procdev.local.console.handler import handle_check_command, handle_config_command, handle_dev_command, print_help

log = logging.getLogger(__name__)


def execute_command(command: str, args: List[str]) -> int:
    """
    Executes a single command from the user.

    :param command: The main command string (e.g., 'dev', 'config').
    :param args: A list of arguments for the command.
    :return int: The exit status for the process.
    """
    log.debug(f"Executing command: {command}, args: {args}")
    command_map = {
        "dev": lambda: handle_dev_command(args),
        "check": lambda: handle_check_command(args),
        "config": lambda: handle_config_command(args),
        "help": print_help,
    }

    if command not in command_map:
        log.error(f"Unknown command: '{command}'. Type 'procdev help' for a list of commands.")
        return 1

    try:
        return command_map[command]()
    except ProcdevError as e:
        log.error(str(e))
        return 1
    except Exception as e:
        log.critical(f"An unexpected error occurred: {e}", exc_info=True)
        return 1
