"""Shared test fixtures."""

import threading

import pytest


class RecordingSink:
    """Collects (level, line) pairs from both pump threads."""

    def __init__(self):
        self.records = []
        self._lock = threading.Lock()

    def write(self, level, line):
        with self._lock:
            self.records.append((level, line))

    def lines(self, level=None):
        return [line for lvl, line in self.records if level is None or lvl == level]


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def mock_process(monkeypatch):
    """Mock process.invoke for tests."""
    from genkey import process

    calls = []
    responses = []

    def fake_invoke(invocation, sink):
        calls.append((invocation, sink))
        if responses:
            response = responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        return process.ProcessOutcome(exit_code=0)

    monkeypatch.setattr(process, "invoke", fake_invoke)

    return type("MockProcess", (), {"calls": calls, "responses": responses})()
