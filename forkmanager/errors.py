"""Exceptions raised by ForkManager."""

from typing import Optional

from forkmanager.config import effective_settings as config


class ForkExhaustionError(SystemExit):
    """
    Raised when the operating system refuses to create another process.

    The supervisor cannot continue without being able to fork, so this derives
    from `SystemExit`: left uncaught, it ends the interpreter with `code` rather
    than printing a traceback.
    """

    def __init__(self, label: str, error: Optional[OSError] = None, code: Optional[int] = None) -> None:
        super().__init__(config.FORK_FAILURE_EXIT_CODE if code is None else code)
        self.label = label
        self.error = error

    def __str__(self) -> str:
        reason = self.error.strerror if self.error is not None and self.error.strerror else "unknown error"
        return f"Unable to fork process '{self.label}': {reason}"
