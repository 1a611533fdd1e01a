"""Shared fixtures for the ForkManager test suite.

Provides signal-handler isolation, a fresh process-wide supervisor registry
per test, and a scripted stand-in for the OS process primitives.
"""

from __future__ import annotations

import logging
import signal

import pytest

from forkmanager.supervisor import manager, process_utils, registry
from forkmanager.supervisor.signals import TRAPPED_SIGNALS
from tests.helpers import FakeOS


@pytest.fixture(autouse=True)
def restore_signal_handlers():
    """Put back whatever handlers pytest had for the trapped signals."""
    saved = {signum: signal.getsignal(signum) for signum in TRAPPED_SIGNALS}
    yield
    for signum, handler in saved.items():
        signal.signal(signum, handler)


@pytest.fixture(autouse=True)
def fresh_supervisors(monkeypatch) -> registry.SupervisorRegistry:
    """Each test sees an empty process-wide supervisor registry."""
    supervisors = registry.SupervisorRegistry()
    monkeypatch.setattr(registry, "supervisors", supervisors)
    return supervisors


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def fake_os(monkeypatch) -> FakeOS:
    fake = FakeOS()
    monkeypatch.setattr(process_utils, "fork", fake.fork)
    monkeypatch.setattr(process_utils, "poll_child", fake.poll_child)
    monkeypatch.setattr(process_utils, "wait_child", fake.wait_child)
    monkeypatch.setattr(process_utils, "send_signal", fake.send_signal)
    monkeypatch.setattr(process_utils, "set_child_title", fake.set_title)
    monkeypatch.setattr(process_utils, "exit_now", fake.exit_now)
    monkeypatch.setattr(manager.time, "sleep", fake.sleep)
    return fake
