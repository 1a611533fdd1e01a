"""
The Supervisor package.
Forks, throttles, reaps and signals pools of child processes.

This package contains the central ForkManager class and its helper modules,
which together handle process registration, signal handling, reaping and
shutdown of every pool in the process.
"""
import signal

from .manager import ForkManager
from .registry import ManagedProcess, ProcessRegistry
from .signals import TRAPPED_SIGNALS


def shutdown_all(signum: int = signal.SIGINT) -> None:
    """Shuts down every ForkManager constructed in this process, oldest first."""
    ForkManager.shutdown_all(signum)


__all__ = ['ForkManager', 'ManagedProcess', 'ProcessRegistry', 'TRAPPED_SIGNALS', 'shutdown_all']
