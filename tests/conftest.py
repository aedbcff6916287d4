"""Shared fixtures for the test suite."""

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest


class RecordingSink:
    """Notification sink that records every call and the resulting live set."""

    def __init__(self, fail_on=()):
        self.calls = []
        self.live = {}
        self.fail_on = set(fail_on)

    def schedule(self, identifier, title, body, first_fire, repeat_daily, repeat_at=None):
        self.calls.append(("schedule", identifier))
        if identifier in self.fail_on:
            raise PermissionError("notifications not permitted")
        self.live[identifier] = (title, body, first_fire, repeat_daily, repeat_at)

    def cancel(self, identifier):
        self.calls.append(("cancel", identifier))
        if identifier in self.fail_on:
            raise PermissionError("notifications not permitted")
        self.live.pop(identifier, None)

    def calls_of(self, operation):
        return [identifier for op, identifier in self.calls if op == operation]


@pytest.fixture
def chicago():
    return ZoneInfo("America/Chicago")


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def failing_sink():
    """Factory for sinks that raise on the given identifiers."""
    def make(*identifiers):
        return RecordingSink(fail_on=identifiers)
    return make


@pytest.fixture
def morning(chicago):
    """2024-01-01 10:00 in Chicago."""
    return datetime(2024, 1, 1, 10, 0, tzinfo=chicago)
