"""
Unit test configuration.

Patches dotenv so pydantic-settings never reads the project's real .env file
during unit tests. Tests control config exclusively through monkeypatch.setenv().

Store-backed tests run against both TokenStore implementations: a mongomock
collection behind MongoTokenStore and the InMemoryTokenStore.
"""

from datetime import datetime, timedelta, timezone

import mongomock
import pytest

from config import TokenSettings
from infrastructure.token_store.memory import InMemoryTokenStore
from infrastructure.token_store.mongo import MongoTokenStore
from services.token_issuer import TokenIssuer


@pytest.fixture(autouse=True)
def disable_dotenv_loading(monkeypatch):
    """Prevent pydantic-settings from loading .env files in all unit tests."""
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})


class FakeClock:
    """Settable clock; starts at a fixed instant and only moves when told."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def mongo_collection():
    return mongomock.MongoClient().db["api-tokens"]


@pytest.fixture
def mongo_store(mongo_collection):
    store = MongoTokenStore(mongo_collection)
    store.ensure_indexes()
    return store


@pytest.fixture
def memory_store():
    return InMemoryTokenStore()


@pytest.fixture(params=["mongo", "memory"])
def store(request):
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def token_settings(monkeypatch):
    for var in (
        "API_TOKEN_PREFIX",
        "API_TOKEN_BYTES",
        "API_TOKEN_MAX_ACTIVE",
        "API_TOKEN_NAME_MAX_LENGTH",
    ):
        monkeypatch.delenv(var, raising=False)
    return TokenSettings()


@pytest.fixture
def issuer(store, token_settings, clock):
    return TokenIssuer(store, token_settings, clock=clock)
