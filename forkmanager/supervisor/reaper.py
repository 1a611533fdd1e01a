import logging
from dataclasses import dataclass
from typing import Optional, Union

from forkmanager.supervisor import process_utils
from forkmanager.supervisor import registry as supervisor_registry
from forkmanager.supervisor.registry import ProcessRegistry
from forkmanager.supervisor.signals import signal_name

log = logging.getLogger(__name__)


#* --- Outcomes ---
@dataclass(frozen=True)
class NoChildFinished:
    """The poll returned without a finished child."""


@dataclass(frozen=True)
class WaitError:
    """The wait call failed. Treated like NoChildFinished by the supervisor loop."""
    error: OSError


@dataclass(frozen=True)
class Reaped:
    """A child was collected and removed from the registry."""
    pid: int
    exit_code: int
    label: Optional[str] = None
    tracked: bool = False

    @property
    def abnormal(self) -> bool:
        return self.exit_code != 0

    def describe(self) -> str:
        if self.exit_code < 0:
            return f"killed by {signal_name(-self.exit_code)}"
        return f"exit code {self.exit_code}"


Outcome = Union[NoChildFinished, WaitError, Reaped]
NO_CHILD_FINISHED = NoChildFinished()


#* --- Reaping ---
def collect(registry: ProcessRegistry, pid: int, status: int) -> Reaped:
    """
    Classifies the wait status of a reaped child and stops tracking it.

    :param registry: The registry the child may belong to.
    :param pid: The PID returned by the wait call.
    :param status: The raw wait status.
    :return: The Reaped outcome. `tracked` is False for a PID this registry never held.
        A child of another manager is dropped from that manager and keeps its label.
    """
    tracked = registry.contains(pid)
    if tracked:
        label = registry.label_of(pid)
        registry.unregister(pid)
    else:
        label = supervisor_registry.supervisors.release(pid)
    return Reaped(pid, process_utils.exit_code_from_status(status), label, tracked)


def reap_one(registry: ProcessRegistry, logger: logging.Logger = log) -> Outcome:
    """
    Attempts to collect one finished child without blocking.

    Abnormal exits are reported at critical level but never raised: a failing
    child must not take the supervisor down with it.
    """
    try:
        pid, status = process_utils.poll_child()
    except OSError as e:
        return WaitError(e)

    if pid == 0:
        return NO_CHILD_FINISHED

    reaped = collect(registry, pid, status)
    if not reaped.tracked and reaped.label is None:
        logger.info(f"Reaped unknown child {pid} ({reaped.describe()}). Registry unchanged.",
                    extra={"pid": pid, "exit_code": reaped.exit_code})
    elif reaped.abnormal:
        logger.critical(f"Process '{reaped.label}' (PID {pid}) exited abnormally with {reaped.describe()}",
                        extra={"label": reaped.label, "pid": pid, "exit_code": reaped.exit_code})
    elif not reaped.tracked:
        logger.info(f"Reaped child {pid} ({reaped.label}) of another fork manager.",
                    extra={"label": reaped.label, "pid": pid, "exit_code": reaped.exit_code})
    return reaped
