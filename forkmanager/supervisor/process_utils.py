import os
import sys
import psutil
import logging
import setproctitle
from typing import Tuple

from forkmanager.config import effective_settings as config

log = logging.getLogger(__name__)


#* --- Process Creation ---
def fork() -> int:
    """A wrapper for os.fork for easy testing/mocking. Returns 0 in the child, the child's PID in the parent."""
    return os.fork()

def set_child_title(label: str) -> None:
    """Renames the current process after its label so it is easy to spot in `ps`/`top`."""
    title = config.CHILD_PROCESS_TITLE.format(label=label)
    try:
        setproctitle.setproctitle(title)
    except Exception as e:
        log.debug(f"Could not set process title to '{title}': {e}")

def exit_now(code: int = 0) -> None:
    """Ends the current process without running the parent's atexit hooks."""
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.flush()
        except (OSError, ValueError):
            pass
    os._exit(code)


#* --- Waiting ---
def poll_child() -> Tuple[int, int]:
    """
    Non-blocking wait for any child.

    :return: `(0, 0)` if no child has exited yet, else `(pid, wait_status)`.
    :raises ChildProcessError: If the process has no children left.
    """
    return os.waitpid(-1, os.WNOHANG)

def wait_child() -> Tuple[int, int]:
    """
    Blocking wait for any child.

    :raises ChildProcessError: If the process has no children left.
    """
    return os.waitpid(-1, 0)

def exit_code_from_status(status: int) -> int:
    """Converts a wait status to an exit code. Negative values mean the child was killed by that signal."""
    return os.waitstatus_to_exitcode(status)


#* --- Signalling & Status ---
def send_signal(pid: int, signum: int) -> None:
    """
    Sends `signum` to `pid`.

    :raises psutil.NoSuchProcess: If the process is already gone.
    :raises psutil.AccessDenied: If the process belongs to someone else.
    """
    psutil.Process(pid).send_signal(signum)

def get_process_status(pid: int) -> str:
    """Gets a string representation of a process status."""
    try:
        if psutil.Process(pid).status() == psutil.STATUS_ZOMBIE:
            return "zombie"
        return "running"
    except psutil.NoSuchProcess:
        return "stopped"
    except psutil.Error:
        return "unknown"
