"""
Logging module for ForkManager applications.
This module provides functionality to set up console and SQLite logging.
"""

from .setup import setup_logging, MainFormatter
from .handler import SQLiteHandler
from .database import LogDBManager

__all__ = ["setup_logging", "MainFormatter", "SQLiteHandler", "LogDBManager"]
