"""
ForkManager: run a bounded pool of forked worker processes.

Forks children on demand, blocks new spawns while the pool is full, reaps
finished children and propagates shutdown signals to every child.
"""
import logging

# Silent until the application configures logging (see forkmanager.log.setup_logging).
logging.getLogger(__name__).addHandler(logging.NullHandler())

from .errors import ForkExhaustionError
from .supervisor import ForkManager, ManagedProcess, ProcessRegistry, TRAPPED_SIGNALS, shutdown_all
from .log import setup_logging

__all__ = [
    "ForkManager",
    "ForkExhaustionError",
    "ManagedProcess",
    "ProcessRegistry",
    "TRAPPED_SIGNALS",
    "setup_logging",
    "shutdown_all",
]
