"""
This module contains the default configuration settings for ForkManager.
It defines the supervisor polling behaviour, child process naming, and logging
destinations. Every value can be overridden from the environment (or a `.env`
file) using the `FORKMANAGER_` prefix.
"""

import os
import pathlib
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ('true', '1', 't', 'yes', 'y')


#* --- Core Paths ---
BASE_DIR = pathlib.Path.cwd()
OVERRIDES_JSON_PATH = pathlib.Path(
    os.getenv("FORKMANAGER_OVERRIDES_PATH", str(BASE_DIR / "forkmanager.overrides.json"))
)

#* --- Supervisor Settings ---
DEFAULT_MAX_PROCESSES = int(os.getenv("FORKMANAGER_MAX_PROCESSES", "4"))
POLL_INTERVAL = float(os.getenv("FORKMANAGER_POLL_INTERVAL", "0.5"))  # seconds between non-blocking reaps
FORK_FAILURE_EXIT_CODE = 75  # EX_TEMPFAIL

#* --- Child Process Settings ---
SET_CHILD_PROCESS_TITLE = _env_bool("FORKMANAGER_SET_PROCESS_TITLE", "true")
CHILD_PROCESS_TITLE = os.getenv("FORKMANAGER_PROCESS_TITLE", "ForkManager - {label}")

#* --- Logging Settings ---
LOG_LEVEL = os.getenv("FORKMANAGER_LOG_LEVEL", "INFO").upper()
_log_db = os.getenv("FORKMANAGER_LOG_DB_PATH")
LOG_DB_PATH = pathlib.Path(_log_db) if _log_db else None

#* --- MODIFIABLE SETTINGS (Changeable through the overrides file) ---
MODIFIABLE_SETTINGS = {
    "DEFAULT_MAX_PROCESSES", "POLL_INTERVAL",
    "SET_CHILD_PROCESS_TITLE", "CHILD_PROCESS_TITLE",
    "LOG_LEVEL", "LOG_DB_PATH",
}
