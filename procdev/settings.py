"""
This module contains the configuration settings for procdev.
It defines paths, supervisor timings, the output palette and the CLI defaults.
Values can be set from the environment or a `.env` file in the current directory.
"""

import os
import pathlib
from dotenv import find_dotenv, load_dotenv

# Load environment variables from the project's .env file
load_dotenv(find_dotenv(usecwd=True))

#* --- Core Paths ---
PROCDEV_HOME = pathlib.Path(os.getenv("PROCDEV_HOME", pathlib.Path.home() / ".procdev"))
OVERRIDES_JSON_PATH = PROCDEV_HOME / "overrides.json"
LOG_FILE_PATH = pathlib.Path(os.environ["PROCDEV_LOG_FILE"]) if os.getenv("PROCDEV_LOG_FILE") else None

#* --- Procfile Settings ---
PROCFILE_NAME = os.getenv("PROCDEV_PROCFILE", "Procfile.dev")
WEB_PROCESS_NAME = "web"
# Used when the project has no Procfile; the port is rewritten like any 'web' entry.
DEFAULT_WEB_COMMAND = os.getenv("PROCDEV_WEB_COMMAND", "bin/rails server -p 3000")
DEFAULT_PORT = int(os.getenv("PROCDEV_PORT", "3000"))

#* --- Supervisor Settings ---
POLL_INTERVAL = 0.1              # seconds between liveness checks
GRACEFUL_SHUTDOWN_TIMEOUT = 3    # seconds before force-killing
REAP_TIMEOUT = 2                 # seconds to wait for a killed process to be reaped
PROCESS_TITLE = "procdev - Supervisor"

#* --- Output Settings ---
COLORS = [
    "\x1b[36m",  # cyan
    "\x1b[35m",  # magenta
    "\x1b[33m",  # yellow
    "\x1b[32m",  # green
    "\x1b[34m",  # blue
]
RESET = "\x1b[0m"

#* --- Application variables ---
VERBOSE_LOGGING = os.getenv("PROCDEV_VERBOSE", "False").lower() in ('true', '1', 't')

#* --- MODIFIABLE SETTINGS (Changeable through overrides.json) ---
MODIFIABLE_SETTINGS = {
    "DEFAULT_PORT", "PROCFILE_NAME", "WEB_PROCESS_NAME", "DEFAULT_WEB_COMMAND",
    "POLL_INTERVAL", "GRACEFUL_SHUTDOWN_TIMEOUT", "REAP_TIMEOUT", "LOG_FILE_PATH",
}
