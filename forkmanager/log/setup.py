import logging
import sys
from pathlib import Path
from typing import Optional

from forkmanager.config import effective_settings as config
from forkmanager.log.handler import SQLiteHandler

CONTEXT_FIELDS = ("label", "pid", "exit_code")


class MainFormatter(logging.Formatter):
    """
    Prefixes each line with the emitting process ID and appends the structured
    context ForkManager passes through `extra`, e.g. `(label=A, exit_code=7)`.
    """

    def __init__(self) -> None:
        super().__init__('%(asctime)s - %(levelname)-8s - [%(name)s] [%(process)d] - %(message)s')

    def format(self, record):
        formatted_message = super().format(record)
        context = [
            f"{field}={getattr(record, field)}"
            for field in CONTEXT_FIELDS
            if getattr(record, field, None) is not None
        ]
        if context:
            formatted_message = f"{formatted_message} ({', '.join(context)})"
        return formatted_message


def setup_logging(console_level: Optional[int] = None, db_path: Optional[Path] = None) -> None:
    """
    Configures the root logger for an application that uses ForkManager.
    Previously configured handlers are removed so repeated calls do not duplicate output.

    :param console_level: The logging level for the console output. Defaults to the LOG_LEVEL setting.
    :param db_path: Also record every log line in this SQLite file. Defaults to the LOG_DB_PATH setting.
    """
    if console_level is None:
        console_level = logging.getLevelName(config.LOG_LEVEL)
    if db_path is None:
        db_path = config.LOG_DB_PATH

    root_logger = logging.getLogger()
    # Set root level to lowest to capture all messages for handler filtering
    root_logger.setLevel(logging.DEBUG)

    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    # --- Console Handler ---
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(MainFormatter())
    root_logger.addHandler(console_handler)

    # --- SQLite Handler (conditional) ---
    if db_path:
        try:
            sqlite_handler = SQLiteHandler(db_path=db_path)
            sqlite_handler.setLevel(logging.INFO)
            root_logger.addHandler(sqlite_handler)
        except Exception as e:
            root_logger.error(f"Failed to initialize SQLite logging handler: {e}. Logging to DB will be disabled.")
