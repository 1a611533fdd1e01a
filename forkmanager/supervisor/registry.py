import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional, Tuple

if TYPE_CHECKING:
    from .manager import ForkManager

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ManagedProcess:
    """A forked child that is still tracked by its ForkManager."""
    pid: int
    label: str


class ProcessRegistry:
    """
    In-memory mapping of live child PIDs to their caller-supplied labels.

    Only the parent's supervisor loop mutates it, so no locking is required.
    Entries keep insertion order.
    """

    def __init__(self) -> None:
        self._labels: Dict[int, str] = {}

    def register(self, pid: int, label: str) -> None:
        """Tracks a new child. A PID that is already tracked gets the new label."""
        self._labels[pid] = label

    def unregister(self, pid: int) -> None:
        """Stops tracking a child. Unknown PIDs are ignored."""
        self._labels.pop(pid, None)

    def contains(self, pid: int) -> bool:
        return pid in self._labels

    def count(self) -> int:
        return len(self._labels)

    def label_of(self, pid: int) -> Optional[str]:
        return self._labels.get(pid)

    def all(self) -> Iterator[Tuple[int, str]]:
        """
        Yields `(pid, label)` pairs in the order the children were registered.

        Each call returns a fresh generator over a snapshot, so the registry can
        be modified while a previous iteration is still in progress.
        """
        for pid, label in list(self._labels.items()):
            yield pid, label

    def processes(self) -> List[ManagedProcess]:
        return [ManagedProcess(pid, label) for pid, label in self.all()]

    def clear(self) -> None:
        self._labels.clear()

    def __contains__(self, pid: object) -> bool:
        return pid in self._labels

    def __len__(self) -> int:
        return len(self._labels)

    def __iter__(self) -> Iterator[Tuple[int, str]]:
        return self.all()

    def __repr__(self) -> str:
        return f"ProcessRegistry({self._labels!r})"


class SupervisorRegistry:
    """
    Every ForkManager constructed in this process image, in construction order.

    Entries are never removed; the registry lives as long as the interpreter.
    Appends are locked so managers may be created from several threads.
    """

    def __init__(self) -> None:
        self._managers: List["ForkManager"] = []
        self._lock = threading.Lock()

    def register(self, manager: "ForkManager") -> None:
        with self._lock:
            self._managers.append(manager)

    def __iter__(self) -> Iterator["ForkManager"]:
        with self._lock:
            snapshot = list(self._managers)
        return iter(snapshot)

    def __len__(self) -> int:
        with self._lock:
            return len(self._managers)

    def release(self, pid: int) -> Optional[str]:
        """
        Stops tracking `pid` in whichever manager holds it.

        Waits are process-wide, so one manager may reap a child another manager
        spawned. The owner must still drop it.

        :return: The child's label, or None if no manager tracks `pid`.
        """
        for manager in self:
            if manager.processes.contains(pid):
                label = manager.processes.label_of(pid)
                manager.processes.unregister(pid)
                return label
        return None

    def forget_children(self) -> None:
        """Clears every manager's registry. Called in a freshly forked child."""
        for manager in self:
            manager.processes.clear()

    def shutdown_all(self, signum: int) -> None:
        """Shuts down every registered manager with `signum`, oldest first."""
        managers = list(self)
        log.info(f"Shutting down {len(managers)} fork manager(s) with signal {signum}.")
        for manager in managers:
            manager.shutdown(signum)


# Process-wide registry. Starts empty at interpreter start and is shared by all managers.
supervisors = SupervisorRegistry()
