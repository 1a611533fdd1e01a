import time
import signal
import logging
from typing import Any, Callable, Dict, Optional, Tuple

from forkmanager.config import effective_settings as config
from forkmanager.errors import ForkExhaustionError
from forkmanager.supervisor import process_utils, reaper, registry, shutdown, signals
from forkmanager.supervisor.registry import ProcessRegistry
from forkmanager.supervisor.signals import SignalHandler, signal_name

log = logging.getLogger(__name__)


class ForkManager:
    """
    Runs a bounded number of forked child processes.

    The caller forks through `spawn()`, which returns 0 in the child and the
    child's PID in the parent. While `max_processes` children are running,
    `spawn()` blocks in the parent until one of them has been reaped. Trapped
    signals received by the parent are re-broadcast to the whole pool.

    Typical use::

        fm = ForkManager(4)
        for item in work:
            if not fm.alive():
                break
            if fm.spawn(str(item)) == 0:
                process(item)
                fm.stop()
        fm.finish()
    """

    def __init__(
        self,
        max_processes: Optional[int] = None,
        use_default_handler: bool = True,
        logger: Optional[logging.Logger] = None,
        poll_interval: Optional[float] = None,
    ) -> None:
        """
        :param max_processes: Children allowed at once. 0 disables throttling.
        :param use_default_handler: Install the parent handler that shuts the pool down on trapped signals.
        :param logger: Logging sink. Defaults to this module's logger, which is silent until logging is configured.
        :param poll_interval: Seconds to sleep between non-blocking reaps while throttled.
        """
        if max_processes is None:
            max_processes = config.DEFAULT_MAX_PROCESSES
        if max_processes < 0:
            raise ValueError(f"max_processes must be >= 0, got {max_processes}")

        self._max_processes: int = max_processes
        self._active = True
        self.poll_interval: float = config.POLL_INTERVAL if poll_interval is None else poll_interval
        self.logger: logging.Logger = logger or log
        self.processes = ProcessRegistry()
        self.parent_handler: Optional[SignalHandler] = None
        self.child_handler: Optional[SignalHandler] = None

        registry.supervisors.register(self)

        if use_default_handler:
            self.set_default_parent_handler()

    @property
    def max_processes(self) -> int:
        return self._max_processes

    def alive(self) -> bool:
        """True until `shutdown()` has run."""
        return self._active

    def set_logger(self, logger: logging.Logger) -> None:
        self.logger = logger

    #* --- Spawning ---
    def spawn(self, label: str = "Some Random Process") -> Optional[int]:
        """
        Forks a new child process, first waiting for a free slot if the pool is full.

        :param label: A name for the child, used in logs and the process title.
        :return: 0 in the child, the child's PID in the parent, or None if the pool was shut down.
        :raises ForkExhaustionError: If the operating system cannot create another process.
        """
        if self._active and self._max_processes and self.processes.count() >= self._max_processes:
            self._wait_for_slot()

        if not self._active:
            self.logger.warning(f"Pool has been shut down. Not spawning '{label}'.", extra={"label": label})
            return None

        try:
            pid = process_utils.fork()
        except OSError as e:
            self.logger.critical(f"Unable to fork process '{label}': {e}", extra={"label": label})
            raise ForkExhaustionError(label, e, config.FORK_FAILURE_EXIT_CODE) from e

        if pid == 0:
            self._enter_child(label)
            return 0

        self.processes.register(pid, label)
        self.logger.info(f"Announcing new process w/ pid ({pid}): {label}", extra={"label": label, "pid": pid})
        return pid

    def run(self, label: str, target: Callable[..., Any], *args: Any, **kwargs: Any) -> Optional[int]:
        """
        Spawns a child that calls `target(*args, **kwargs)` and exits.

        The child exits with 0 on success and 1 if `target` raised. This call
        only returns in the parent.
        """
        pid = self.spawn(label)
        if pid != 0:
            return pid

        code = 0
        try:
            target(*args, **kwargs)
        except SystemExit as e:
            code = e.code if isinstance(e.code, int) else int(e.code is not None)
        except Exception:
            self.logger.exception(f"Process '{label}' failed.", extra={"label": label})
            code = 1
        self.stop(code)

    def _enter_child(self, label: str) -> None:
        # Handlers go in first so the child is never left with the parent's handlers.
        signals.install(self.child_handler or signals.exit_child)
        # Siblings belong to the parent, whichever manager spawned them.
        registry.supervisors.forget_children()
        if config.SET_CHILD_PROCESS_TITLE:
            process_utils.set_child_title(label)

    def _wait_for_slot(self) -> None:
        """
        Polls until a slot is free or the pool is shut down.

        A blocking wait would hold off our own signal handlers, so we poll and
        sleep instead. Pending handlers run while we sleep.
        """
        while self._active and self.processes.count() >= self._max_processes:
            outcome = reaper.reap_one(self.processes, self.logger)
            if isinstance(outcome, reaper.Reaped):
                if outcome.tracked:
                    break
                continue
            time.sleep(self.poll_interval)

    def stop(self, code: int = 0) -> None:
        """Ends the current fork immediately. Meant to be called from the child."""
        for handler in logging.getLogger().handlers:
            handler.flush()
        process_utils.exit_now(code)

    #* --- Reaping ---
    def finish(self) -> None:
        """Blocks until every child of this process has exited."""
        while True:
            try:
                pid, status = process_utils.wait_child()
            except ChildProcessError:
                break
            reaped = reaper.collect(self.processes, pid, status)
            self.logger.info(f"Reaped child {pid} ({reaped.label or 'unknown'}) with {reaped.describe()}",
                             extra={"label": reaped.label, "pid": pid, "exit_code": reaped.exit_code})

    def status(self) -> Dict[int, Tuple[str, str]]:
        """Returns `{pid: (label, state)}` for every tracked child."""
        return {pid: (label, process_utils.get_process_status(pid)) for pid, label in self.processes.all()}

    #* --- Shutdown ---
    def shutdown(self, signum: int = signal.SIGINT, wait: bool = False) -> None:
        """
        Shuts the pool down and asks all the children to exit as well.
        SIGHUP is ignored so a lost terminal does not tear the pool down.

        :param signum: The POSIX signal to send to every child.
        :param wait: Wait for the children to exit before returning.
        """
        if signum == signal.SIGHUP:
            return

        self._active = False
        sent = shutdown.broadcast_signal(self.processes, signum, self.logger)
        self.logger.info(f"Shutting down pool: sent {signal_name(signum)} to {sent} process(es).")

        if wait:
            self.finish()

        self.unset_parent_handler()

    @staticmethod
    def shutdown_all(signum: int = signal.SIGINT) -> None:
        """Shuts down every ForkManager in this process."""
        registry.supervisors.shutdown_all(signum)

    #* --- Signal Handlers ---
    def set_parent_handler(self, handler: Optional[SignalHandler]) -> None:
        """
        Installs `handler(signum)` for the trapped signals in this (parent) process.
        Passing None restores the default handler, which calls `shutdown(signum)`.
        """
        if handler is None:
            self.set_default_parent_handler()
            return
        self.parent_handler = handler
        signals.install(handler)

    def set_default_parent_handler(self) -> None:
        self.parent_handler = None
        signals.install(self.shutdown)

    def unset_parent_handler(self) -> None:
        """Makes any further trapped signal exit the parent. Called by `shutdown()`."""
        self.parent_handler = None
        signals.install(signals.exit_parent)

    def set_child_handler(self, handler: Optional[SignalHandler]) -> None:
        """
        Sets the handler installed in each child right after fork.
        With no handler, children exit with the signal number as their status.
        """
        self.child_handler = handler

    def __repr__(self) -> str:
        return f"<ForkManager max_processes={self._max_processes} running={self.processes.count()} active={self._active}>"
