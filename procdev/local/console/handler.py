import logging
from pathlib import Path
from typing import Dict, List, Tuple

from procdev.errors import UsageError
from procdev.local.config import effective_settings as config
from procdev.local.port import rewrite_port
from procdev.local.procfile import ProcessSpec, load_procfile
from procdev.local.supervisor import Supervisor, startup
from procdev.log.setup import UI_LOGGER_NAME

log = logging.getLogger(__name__)
ui = logging.getLogger(UI_LOGGER_NAME)

OPTION_ALIASES = {
    "--port": "port",
    "-p": "port",
    "--procfile": "procfile",
    "--bin-dir": "bin_dir",
}


def parse_options(args: List[str]) -> Dict[str, List[str]]:
    """
    Parses `--option value` and `--option=value` pairs.

    :param args: The arguments following the command.
    :return: A mapping of option name to every value given for it, in order.
    :raises UsageError: On an unknown option or a missing value.
    """
    options: Dict[str, List[str]] = {}
    remaining = list(args)
    while remaining:
        arg = remaining.pop(0)
        flag, sep, value = arg.partition("=")
        if flag not in OPTION_ALIASES:
            raise UsageError(f"Unknown option: '{arg}'. Type 'procdev help' for usage.")
        if not sep:
            if not remaining:
                raise UsageError(f"Option '{flag}' requires a value.")
            value = remaining.pop(0)
        options.setdefault(OPTION_ALIASES[flag], []).append(value)
    return options


def _parse_port(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        raise UsageError(f"Invalid port: '{value}'.") from None
    if not 0 < port < 65536:
        raise UsageError(f"Port must be between 1 and 65535, got {port}.")
    return port


def _resolve_procfile(options: Dict[str, List[str]]) -> Tuple[Path, bool]:
    """Returns the Procfile path and whether it was given explicitly."""
    if "procfile" in options:
        return Path(options["procfile"][-1]).resolve(), True
    return Path.cwd() / config.PROCFILE_NAME, False


def resolve_specs(options: Dict[str, List[str]], port: int) -> Tuple[List[ProcessSpec], Path]:
    """
    Loads the process specs and the directory they run in.

    Without a Procfile in the current directory, a single web process running
    DEFAULT_WEB_COMMAND is used instead.
    """
    procfile_path, explicit = _resolve_procfile(options)
    if explicit or procfile_path.exists():
        return load_procfile(procfile_path), procfile_path.parent

    ui.info(f"No {config.PROCFILE_NAME} found. Starting {config.WEB_PROCESS_NAME} on http://localhost:{port}")
    return [ProcessSpec(config.WEB_PROCESS_NAME, config.DEFAULT_WEB_COMMAND)], procfile_path.parent


def handle_dev_command(args: List[str]) -> int:
    """
    Handles the 'dev' command: runs every Procfile process in the foreground.

    :param args: The arguments following 'dev'.
    :return: The process exit status.
    """
    options = parse_options(args)
    port = _parse_port(options.get("port", [str(config.DEFAULT_PORT)])[-1])
    specs, cwd = resolve_specs(options, port)
    env = startup.build_environment(options.get("bin_dir", []))

    summary = Supervisor(specs, cwd, env, port).run()

    log.debug(f"Run finished. Exit codes: {summary.exit_codes}")
    if summary.forced:
        log.info(f"Force-killed: {', '.join(summary.forced)}")
    return 0


def handle_check_command(args: List[str]) -> int:
    """Handles the 'check' command: lists the processes a 'dev' run would start."""
    options = parse_options(args)
    port = _parse_port(options.get("port", [str(config.DEFAULT_PORT)])[-1])
    procfile_path, _ = _resolve_procfile(options)
    specs = load_procfile(procfile_path)

    print(f"\n--- {procfile_path} ---")
    for spec in specs:
        command = rewrite_port(spec.command, port) if spec.name == config.WEB_PROCESS_NAME else spec.command
        print(f"  {spec.name:<16} : {command}")
    print(f"\n{len(specs)} processes defined.\n")
    return 0


def _config_show() -> None:
    """Displays the current values of all modifiable settings."""
    print("\n--- Current Configuration ---")
    print(f"(Overrides file: {config.OVERRIDES_JSON_PATH})")
    for key in sorted(config.MODIFIABLE_SETTINGS):
        print(f"  {key} = {config.get(key, 'N/A')}")
    print("---")
    print("Use 'procdev config set <KEY> <VALUE>' to change a setting.")
    print("-----------------------------\n")


def _config_set(args: List[str]) -> int:
    """Sets a modifiable setting and persists it to the overrides file."""
    if len(args) < 2:
        raise UsageError("Usage: procdev config set <SETTING_NAME> <VALUE>")

    key, value_str = args[0], " ".join(args[1:])
    success, message = config.update_setting(key, value_str)
    if not success:
        log.error(message)
        return 1
    print(message)
    return 0


def _config_help() -> None:
    """Displays help for the config command."""
    print("\nConfig Command Help:")
    print("  config show                - Display all modifiable settings.")
    print("  config set KEY VALUE       - Change a setting and save it to the overrides file.")
    print("  config help                - Show this help message.")


def handle_config_command(args: List[str]) -> int:
    """
    Handles all sub-commands for the 'config' command.

    :param args: A list of string arguments following the 'config' command.
    """
    sub_command = args[0].lower() if args else "show"

    if sub_command == "show":
        _config_show()
    elif sub_command == "set":
        return _config_set(args[1:])
    elif sub_command == "help":
        _config_help()
    else:
        raise UsageError(f"Unknown config sub-command: '{sub_command}'. Type 'procdev config help' for available commands.")
    return 0


def print_help() -> int:
    """Prints the main help text."""
    print("\nUsage: procdev <command> [options]")
    print("\nAvailable commands:")
    print("  dev                    - Start every process in Procfile.dev (Ctrl+C to stop).")
    print(f"      -p, --port N       - Port for the web process (default: {config.DEFAULT_PORT}).")
    print(f"      --procfile PATH    - Procfile to read (default: ./{config.PROCFILE_NAME}).")
    print("      --bin-dir DIR      - Prepend DIR to PATH for the processes. May be repeated.")
    print("  check                  - List the processes defined in the Procfile.")
    print("  config <cmd>           - Manage configuration. Use 'config help' for more details.")
    print("  help                   - Show this help message.")
    print("\nAdd --verbose to any command for DEBUG output.")
    print()
    return 0
