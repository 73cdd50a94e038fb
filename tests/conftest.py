"""
Pytest configuration for backup store tests.

Ensures the project root is in the path for imports and provides an
in-memory store, a deterministic clock and a wired service/API client.
"""

import itertools
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from backups.config import BackupConfig
from backups.exceptions import StoreIOError
from backups.service import BackupService
from storage.object_store.buckets import InMemoryObjectStore

AUTH_KEY = "test-secret"


class FailingStore(InMemoryObjectStore):
    """Raises StoreIOError for the listed keys or, once armed, on list."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_puts = set()
        self.fail_deletes = set()
        self.fail_list = False

    def put(self, key, data, metadata=None, content_type="application/json"):
        if key in self.fail_puts:
            raise StoreIOError("put", key, RuntimeError("disk on fire"))
        return super().put(key, data, metadata, content_type)

    def delete(self, key):
        if key in self.fail_deletes:
            raise StoreIOError("delete", key, RuntimeError("disk on fire"))
        super().delete(key)

    def list(self, prefix=""):
        if self.fail_list:
            raise StoreIOError("list", prefix, RuntimeError("disk on fire"))
        return super().list(prefix)


class StepClock:
    """Returns a strictly increasing time on every call."""

    def __init__(self, start=None, step=timedelta(seconds=1)):
        self.current = start or datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.step = step

    def __call__(self):
        value = self.current
        self.current += self.step
        return value


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def store(clock):
    return InMemoryObjectStore(clock=clock)


@pytest.fixture
def failing_store(clock):
    return FailingStore(clock=clock)


@pytest.fixture
def config():
    return BackupConfig(
        auth_key=AUTH_KEY,
        max_backups=3,
        store_backend="memory",
        cors_origins=["*"],
        log_level="DEBUG"
    )


@pytest.fixture
def make_service(store, clock):
    """Factory for services with a custom MAX_BACKUPS."""
    counter = itertools.count(1)

    def _make(max_backups=3):
        config = BackupConfig(
            auth_key=AUTH_KEY,
            max_backups=max_backups,
            store_backend="memory",
            cors_origins=["*"]
        )
        return BackupService(
            store,
            config,
            clock=clock,
            uuid_factory=lambda: f"uuid-{next(counter)}"
        )

    return _make


@pytest.fixture
def service(make_service):
    return make_service(3)


@pytest.fixture
def client(config, store, clock):
    from fastapi.testclient import TestClient
    from apps.api.main import create_app

    service = BackupService(store, config, clock=clock)
    return TestClient(create_app(config=config, service=service))


@pytest.fixture
def auth_headers():
    return {"X-Auth-Key": AUTH_KEY}
