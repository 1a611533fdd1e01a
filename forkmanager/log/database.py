import sqlite3
import logging
from pathlib import Path
from collections import namedtuple
from contextlib import contextmanager
from typing import Any, Generator, List, Optional, Tuple

LogEntry = namedtuple('LogEntry', ['timestamp', 'level', 'pid', 'label', 'exit_code', 'message'])
log = logging.getLogger(__name__)


class LogDBManager:
    """
    Stores supervisor and child log records in a SQLite database.

    A fresh connection is opened for every operation, so the same manager can
    be used from the parent and from forked children. SQLite's file locking
    serialises writers across processes.
    """

    def __init__(self, db_path: Path, timeout: float = 10):
        """
        :param db_path: The path to the SQLite database file.
        :param timeout: Seconds to wait for another process's write lock.
        """
        self.db_path = Path(db_path)
        self.timeout = timeout

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        try:
            yield conn
        finally:
            conn.close()

    def execute(self, sql: str, params: Optional[Tuple[Any, ...]] = None) -> List[Any]:
        """
        Executes a single SQL statement and commits it.

        :param sql: The SQL command to execute.
        :param params: Optional parameters for the SQL command.
        :return: The rows produced by the statement.
        """
        with self._get_connection() as conn:
            cursor = conn.execute(sql, params or ())
            conn.commit()
            return cursor.fetchall()

    def fetch_all(self, sql: str, params: Optional[Tuple[Any, ...]] = None) -> List[sqlite3.Row]:
        with self._get_connection() as conn:
            conn.row_factory = sqlite3.Row
            return conn.execute(sql, params or ()).fetchall()

    def initialize_database(self) -> None:
        """Ensures the log table exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self.execute('''
                CREATE TABLE IF NOT EXISTS logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp REAL,
                    level TEXT,
                    logger TEXT,
                    pid INTEGER,
                    label TEXT,
                    exit_code INTEGER,
                    message TEXT
                )
            ''')
        except sqlite3.Error as e:
            log.critical(f"Could not create log database table: {e}", exc_info=True)
            raise

    def insert_log_entry(self, timestamp: float, level: str, logger: str, pid: int,
                         label: Optional[str], exit_code: Optional[int], message: str) -> None:
        """
        Inserts a single log entry.

        :param pid: The process the record is about: the child for lifecycle events, otherwise the emitting process.
        :param label: The child's label, if the record is about a child.
        :param exit_code: The child's exit code, for reap events.
        """
        self.execute(
            '''INSERT INTO logs (timestamp, level, logger, pid, label, exit_code, message)
               VALUES (?, ?, ?, ?, ?, ?, ?)''',
            (timestamp, level, logger, pid, label, exit_code, message)
        )

    def fetch_last_entries(self, limit: int) -> List[LogEntry]:
        """
        Fetches the most recent N log entries, oldest first.

        :param limit: The maximum number of log entries to retrieve.
        """
        entries = []
        try:
            rows = self.fetch_all(
                "SELECT timestamp, level, pid, label, exit_code, message FROM logs ORDER BY id DESC LIMIT ?",
                (limit,)
            )
        except sqlite3.Error as e:
            log.error(f"Failed to fetch log entries from database: {e}")
            return entries

        for row in reversed(rows):
            entries.append(LogEntry(
                timestamp=row['timestamp'], level=row['level'], pid=row['pid'],
                label=row['label'], exit_code=row['exit_code'], message=row['message']
            ))
        return entries

    def fetch_abnormal_exits(self) -> List[LogEntry]:
        """Returns every recorded child exit with a non-zero code."""
        rows = self.fetch_all(
            "SELECT timestamp, level, pid, label, exit_code, message FROM logs "
            "WHERE exit_code IS NOT NULL AND exit_code != 0 ORDER BY id ASC"
        )
        return [LogEntry(row['timestamp'], row['level'], row['pid'], row['label'], row['exit_code'], row['message'])
                for row in rows]

