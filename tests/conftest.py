import os
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

# Ensure we default to memory backend for tests to avoid filesystem dependencies
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")

from todo_service.main import create_app  # noqa: E402
from todo_service.settings import Settings  # noqa: E402


class FakeClock:
    """Deterministic clock. Each call advances by `step` (zero freezes time)."""

    def __init__(self, start=datetime(2025, 1, 1, 9, 0, 0), step=timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self):
        current = self.now
        self.now = self.now + self.step
        return current


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return Settings(persistence_backend="memory", log_format="console")


@pytest.fixture
def app(settings, clock):
    return create_app(settings, clock=clock)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def frozen_clock():
    return FakeClock(step=timedelta(0))


@pytest.fixture
def make_client():
    """Factory building a client over a fresh app with the given clock, failure policy and store."""

    def _make(clock=None, strict=False, event_store=None, **client_kwargs):
        app = create_app(
            Settings(persistence_backend="memory", log_format="console", change_events_strict=strict),
            clock=clock or FakeClock(),
            event_store=event_store,
        )
        return TestClient(app, **client_kwargs)

    return _make
