"""
Shared fixtures: deterministic wallets, stores and an API client.
"""

import pytest
from eth_account import Account
from fastapi.testclient import TestClient

from zkmedshard_api.config import get_settings
from zkmedshard_api.store import MemoryDocumentStore

TEST_SECRET = "test-secret"


@pytest.fixture
def alice():
    return Account.from_key("0x" + "11" * 32)


@pytest.fixture
def bob():
    return Account.from_key("0x" + "22" * 32)


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def client(monkeypatch):
    """API client backed by a fresh in-memory store."""
    monkeypatch.setenv("DATABASE_URL", "memory://")
    monkeypatch.setenv("JWT_SECRET", TEST_SECRET)
    get_settings.cache_clear()

    from zkmedshard_api.main import app

    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        get_settings.cache_clear()
