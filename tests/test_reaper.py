"""Tests for the non-blocking reaper."""

from __future__ import annotations

import logging
import signal

import pytest

from forkmanager import ForkManager
from forkmanager.supervisor import process_utils, reaper
from forkmanager.supervisor.registry import ProcessRegistry
from tests.helpers import exited


@pytest.fixture
def registry() -> ProcessRegistry:
    reg = ProcessRegistry()
    reg.register(101, "alpha")
    reg.register(102, "beta")
    return reg


def _poll_returns(monkeypatch, result):
    def poll():
        if isinstance(result, BaseException):
            raise result
        return result
    monkeypatch.setattr(process_utils, "poll_child", poll)


def test_nothing_finished(monkeypatch, registry):
    _poll_returns(monkeypatch, (0, 0))

    assert isinstance(reaper.reap_one(registry), reaper.NoChildFinished)
    assert registry.count() == 2


def test_wait_error_is_absorbed(monkeypatch, registry):
    _poll_returns(monkeypatch, ChildProcessError(10, "No child processes"))

    outcome = reaper.reap_one(registry)

    assert isinstance(outcome, reaper.WaitError)
    assert isinstance(outcome.error, ChildProcessError)
    assert registry.count() == 2


def test_reaps_tracked_child(monkeypatch, registry, caplog):
    _poll_returns(monkeypatch, (101, exited(0)))

    with caplog.at_level(logging.INFO):
        outcome = reaper.reap_one(registry)

    assert outcome == reaper.Reaped(101, 0, "alpha", True)
    assert not registry.contains(101)
    assert registry.count() == 1
    assert not [r for r in caplog.records if r.levelno == logging.CRITICAL]


def test_abnormal_exit_logged_at_critical(monkeypatch, registry, caplog):
    _poll_returns(monkeypatch, (102, exited(7)))

    outcome = reaper.reap_one(registry)

    assert outcome.abnormal
    assert outcome.exit_code == 7
    assert registry.count() == 1

    critical = [r for r in caplog.records if r.levelno == logging.CRITICAL]
    assert len(critical) == 1
    assert critical[0].label == "beta"
    assert critical[0].exit_code == 7
    assert "exit code 7" in critical[0].getMessage()


def test_killed_child_reports_negative_code(monkeypatch, registry, caplog):
    _poll_returns(monkeypatch, (101, signal.SIGKILL))

    outcome = reaper.reap_one(registry)

    assert outcome.exit_code == -signal.SIGKILL
    assert outcome.describe() == "killed by SIGKILL"
    assert "killed by SIGKILL" in caplog.text


def test_unknown_child_leaves_registry_unchanged(monkeypatch, registry, caplog):
    _poll_returns(monkeypatch, (555, exited(3)))

    with caplog.at_level(logging.INFO):
        outcome = reaper.reap_one(registry)

    assert outcome.tracked is False
    assert outcome.label is None
    assert registry.count() == 2
    assert "unknown child 555" in caplog.text
    assert not [r for r in caplog.records if r.levelno == logging.CRITICAL]


def test_reap_one_uses_given_logger(monkeypatch, registry):
    _poll_returns(monkeypatch, (101, exited(1)))
    records = []

    class Collect(logging.Handler):
        def emit(self, record):
            records.append(record)

    logger = logging.getLogger("tests.reaper.sink")
    logger.addHandler(Collect())
    try:
        reaper.reap_one(registry, logger)
    finally:
        logger.handlers.clear()

    assert [r.levelname for r in records] == ["CRITICAL"]


def test_collect_does_not_log(registry, caplog):
    with caplog.at_level(logging.DEBUG):
        outcome = reaper.collect(registry, 101, exited(9))

    assert outcome == reaper.Reaped(101, 9, "alpha", True)
    assert caplog.records == []


def test_child_of_another_manager_is_released(monkeypatch, registry, caplog):
    owner = ForkManager(2, use_default_handler=False)
    owner.processes.register(555, "theirs")
    _poll_returns(monkeypatch, (555, exited(0)))

    with caplog.at_level(logging.INFO):
        outcome = reaper.reap_one(registry)

    assert outcome == reaper.Reaped(555, 0, "theirs", False)
    assert owner.processes.count() == 0
    assert registry.count() == 2
    assert "of another fork manager" in caplog.text
