import sys
import sqlite3
import logging
from pathlib import Path

from forkmanager.log.database import LogDBManager


class SQLiteHandler(logging.Handler):
    """
    A logging handler that writes every record to a SQLite database.

    Records are written synchronously. A buffering thread would not survive
    `os.fork()` (the child gets the buffer and lock but not the thread), and
    children of the pool log through this same handler.
    """

    def __init__(self, db_path: Path):
        """
        :param db_path: The path to the SQLite database file.
        """
        super().__init__()
        self.db_path = Path(db_path)
        self.logDB = LogDBManager(self.db_path)
        self.logDB.initialize_database()

    def emit(self, record: logging.LogRecord) -> None:
        """
        Stores the record, including the `label`, `pid` and `exit_code` context
        that ForkManager passes through `extra`.

        :param record: The log record to be processed.
        """
        try:
            self.logDB.insert_log_entry(
                timestamp=record.created,
                level=record.levelname,
                logger=record.name,
                pid=getattr(record, "pid", record.process),
                label=getattr(record, "label", None),
                exit_code=getattr(record, "exit_code", None),
                message=record.getMessage(),
            )
        except sqlite3.Error as e:
            print(f"Error writing log record to '{self.db_path}': {e}", file=sys.stderr)
