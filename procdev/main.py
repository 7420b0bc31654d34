import sys
import logging
import setproctitle
from typing import List, Optional

import procdev.local.console as console
from procdev.local.config import effective_settings as config
from procdev.log.setup import setup_logging

log = logging.getLogger("procdev")


def main(argv: Optional[List[str]] = None) -> int:
    """
    The main entry point for the command line.

    :param argv: The arguments after the program name, defaults to sys.argv[1:].
    :return: The exit status.
    """
    args = list(sys.argv[1:] if argv is None else argv)

    verbose = config.VERBOSE_LOGGING
    if "--verbose" in args:
        verbose = True
        args.remove("--verbose")

    setup_logging(logging.DEBUG if verbose else logging.INFO, config.LOG_FILE_PATH)

    if not args:
        return console.print_help()

    setproctitle.setproctitle(config.PROCESS_TITLE)
    command, args = args[0].lower(), args[1:]
    return console.execute_command(command, args)


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
