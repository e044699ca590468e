"""
Shared fixtures for the D/C Ledger test suite.

Test strategy:
1. Unit tests for the pure engine, models and validator
2. Service tests against in-memory storage
3. Google Sheets storage against fake worksheets (no real API calls)
"""

import asyncio
from uuid import uuid4

import pytest

from dc_ledger.config import AuthSettings, LedgerSettings
from dc_ledger.orchestrator import LedgerService
from dc_ledger.services.identity import LocalIdentityService
from dc_ledger.services.storage import InMemoryLedgerStorage, InMemoryUserStorage


@pytest.fixture
def run():
    """Run a coroutine to completion on a fresh event loop."""
    return asyncio.run


@pytest.fixture
def owner_a():
    return uuid4()


@pytest.fixture
def owner_b():
    return uuid4()


@pytest.fixture
def storage():
    return InMemoryLedgerStorage()


@pytest.fixture
def ledger(storage):
    return LedgerService(storage, settings=LedgerSettings())


@pytest.fixture
def auth_settings():
    return AuthSettings(
        secret_key="test-secret-key",
        hash_iterations=1_000,
        token_ttl_seconds=3600,
    )


@pytest.fixture
def identity(auth_settings):
    return LocalIdentityService(InMemoryUserStorage(), auth_settings)
