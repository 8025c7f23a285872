"""Shared test fixtures and configuration.

Sets up environment variables before any projectflow imports so the config
singleton never reads a developer's .env, and provides common fixtures:
temp-file caches, mocked remote/session ports, and a wired Store.
"""

import os

# Patch env vars BEFORE any projectflow imports
os.environ.setdefault("API_URL", "http://api.test")
os.environ.setdefault("CACHE_PATH", ":memory:")
os.environ.setdefault("CACHE_NAMESPACE", "test")
os.environ.setdefault("DEFAULT_LOCALE", "en")
os.environ.setdefault("DEFAULT_THEME", "light")
os.environ.setdefault("SESSION_USER_ID", "")
os.environ.setdefault("TRIAL_DAYS", "5")

from unittest.mock import AsyncMock, MagicMock

import pytest

from projectflow.ports.remote_port import RemoteError


def make_remote(fail: bool = False):
    """Return a MagicMock RemotePort whose collections echo what they receive.

    With fail=True every call raises RemoteError(0) like an unreachable server.
    """
    error = RemoteError(0, "connection refused")
    remote = MagicMock()
    collections: dict = {}

    def collection(name):
        if name not in collections:
            coll = MagicMock()
            if fail:
                for method in ("get_all", "get_by_id", "create", "update", "delete"):
                    setattr(coll, method, AsyncMock(side_effect=error))
            else:
                coll.get_all = AsyncMock(return_value=[])
                coll.get_by_id = AsyncMock(return_value={})
                coll.create = AsyncMock(side_effect=lambda data: data)
                coll.update = AsyncMock(side_effect=lambda entity_id, data: data)
                coll.delete = AsyncMock(return_value=None)
            collections[name] = coll
        return collections[name]

    remote.collection = MagicMock(side_effect=collection)
    remote.set_access_token = MagicMock()
    if fail:
        remote.get_initial_data = AsyncMock(side_effect=error)
        remote.get_subscription_status = AsyncMock(side_effect=error)
    else:
        remote.get_initial_data = AsyncMock(return_value={})
        remote.get_subscription_status = AsyncMock(return_value={})
    return remote


@pytest.fixture
def tmp_cache_path(tmp_path):
    """Return a temporary SQLite cache path."""
    return str(tmp_path / "test_cache.db")


@pytest.fixture
def cache(tmp_cache_path):
    """Return a DurableCache backed by a temp file."""
    from projectflow.data.cache import DurableCache
    return DurableCache(db_path=tmp_cache_path, namespace="test")


@pytest.fixture
def remote_factory():
    return make_remote


@pytest.fixture
def remote():
    return make_remote()


@pytest.fixture
def failing_remote():
    return make_remote(fail=True)


@pytest.fixture
def session():
    """A StaticSessionProvider with nobody signed in."""
    from projectflow.adapters.static_session import StaticSessionProvider
    return StaticSessionProvider()


@pytest.fixture
def sync(remote, session):
    from projectflow.core.sync_queue import SyncQueue
    return SyncQueue(remote, session)


@pytest.fixture
def store(cache, sync):
    """A Store wired to a temp cache and a sync queue over the mock remote."""
    from projectflow.core.store import AppState, Store
    return Store(cache, sync, initial=AppState(loading=False))


@pytest.fixture
def notifier():
    from projectflow.adapters.log_notifier import LogNotifier
    return LogNotifier()
