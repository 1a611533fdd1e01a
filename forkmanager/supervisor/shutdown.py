import psutil
import logging

from forkmanager.supervisor import process_utils
from forkmanager.supervisor.registry import ProcessRegistry
from forkmanager.supervisor.signals import signal_name

log = logging.getLogger(__name__)


def broadcast_signal(registry: ProcessRegistry, signum: int, logger: logging.Logger = log) -> int:
    """
    Sends `signum` to every tracked child.

    Children that are already gone are skipped silently.

    :param registry: The children to signal.
    :param signum: The POSIX signal to send.
    :param logger: Where to report children we are not allowed to signal.
    :return: The number of children that were signalled.
    """
    sent = 0
    for pid, label in registry.all():
        try:
            process_utils.send_signal(pid, signum)
            sent += 1
        except psutil.NoSuchProcess:
            continue
        except psutil.AccessDenied:
            logger.warning(f"Not permitted to send {signal_name(signum)} to '{label}' (PID {pid}).",
                           extra={"label": label, "pid": pid})
    return sent
