"""
Signal handler installation for ForkManager parents and children.

CPython never runs a Python-level handler inside the C signal handler. The
interpreter sets a flag and calls the handler in the main thread at the next
bytecode boundary, so handlers here may do arbitrary work. A blocking call
that is interrupted (such as `time.sleep` or `os.waitpid`) runs the pending
handler and then resumes, unless the handler raises.
"""
import os
import sys
import signal
import logging
import threading
from typing import Callable, Optional

log = logging.getLogger(__name__)

SignalHandler = Callable[[int], None]

# Signals trapped by every ForkManager.
TRAPPED_SIGNALS = (
    signal.SIGHUP,
    signal.SIGINT,
    signal.SIGABRT,
    signal.SIGTERM,
    signal.SIGQUIT,
)


def signal_name(signum: int) -> str:
    """Returns a readable name for a signal number, e.g. 'SIGTERM'."""
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)


def exit_child(signum: int) -> None:
    """Default child handler: end the child at once with the signal number as exit status."""
    os._exit(signum)


def exit_parent(signum: int) -> None:
    """Terminal parent handler installed once the pool has been shut down."""
    log.debug(f"{signal_name(signum)} received after shutdown. Exiting.")
    sys.exit(signum)


def _adapt(handler: SignalHandler) -> Callable:
    """Wraps a `handler(signum)` callable in the `(signum, frame)` shape `signal.signal` expects."""
    def _dispatch(signum, frame):
        handler(signum)
    _dispatch.__wrapped__ = handler
    return _dispatch


def install(handler: SignalHandler) -> bool:
    """
    Installs `handler` for every trapped signal in the current process.

    :param handler: A callable that receives the signal number.
    :return: True if the handlers were installed, False when called off the main thread.
    """
    if threading.current_thread() is not threading.main_thread():
        log.warning("Signal handlers can only be installed from the main thread. Skipping.")
        return False

    wrapped = _adapt(handler)
    for signum in TRAPPED_SIGNALS:
        signal.signal(signum, wrapped)
    return True


def installed_handler(signum: int) -> Optional[SignalHandler]:
    """Returns the `handler(signum)` callable currently installed for `signum`, if it was installed by `install`."""
    current = signal.getsignal(signum)
    return getattr(current, "__wrapped__", None)
