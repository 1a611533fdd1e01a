"""Test doubles for the OS process primitives wrapped by forkmanager.supervisor.process_utils."""

from __future__ import annotations

from collections import deque
from typing import Deque, Dict, List, Optional, Tuple

import psutil


def exited(code: int) -> int:
    """Builds the wait status of a child that exited with `code`."""
    return code << 8


class FakeOS:
    """Scripted replacement for the fork/wait/kill wrappers in process_utils.

    - `fork()` hands out increasing PIDs, or 0 when `in_child` is set.
    - `finish_child()` queues an exit that the next poll or wait returns.
    - `poll_child()` raises queued errors first, then returns queued exits,
      then `(0, 0)` while children are running.
    - `send_signal()` records the signal and queues the child as killed.
    - `on_sleep` callbacks run, one per call, whenever the supervisor sleeps.
    """

    def __init__(self) -> None:
        self.next_pid = 1000
        self.in_child = False
        self.fork_error: Optional[OSError] = None
        self.running: Dict[int, bool] = {}
        self.exited: Deque[Tuple[int, int]] = deque()
        self.poll_errors: Deque[OSError] = deque()
        self.sent: List[Tuple[int, int]] = []
        self.sleeps: List[float] = []
        self.on_sleep: Deque = deque()
        self.polls = 0
        self.titles: List[str] = []
        self.exit_codes: List[int] = []

    def fork(self) -> int:
        if self.fork_error is not None:
            raise self.fork_error
        if self.in_child:
            return 0
        self.next_pid += 1
        self.running[self.next_pid] = True
        return self.next_pid

    def finish_child(self, pid: int, code: int = 0, signum: Optional[int] = None) -> None:
        self.running.pop(pid, None)
        self.exited.append((pid, signum if signum else exited(code)))

    def poll_child(self) -> Tuple[int, int]:
        self.polls += 1
        if self.poll_errors:
            raise self.poll_errors.popleft()
        if self.exited:
            return self.exited.popleft()
        if not self.running:
            raise ChildProcessError(10, "No child processes")
        return 0, 0

    def wait_child(self) -> Tuple[int, int]:
        if self.exited:
            return self.exited.popleft()
        if self.running:
            pid = next(iter(self.running))
            del self.running[pid]
            return pid, exited(0)
        raise ChildProcessError(10, "No child processes")

    def send_signal(self, pid: int, signum: int) -> None:
        if pid not in self.running:
            raise psutil.NoSuchProcess(pid)
        self.sent.append((pid, signum))
        self.finish_child(pid, signum=signum)

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        if self.on_sleep:
            self.on_sleep.popleft()()

    def set_title(self, label: str) -> None:
        self.titles.append(label)

    def exit_now(self, code: int = 0) -> None:
        self.exit_codes.append(code)


