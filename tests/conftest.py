#!/usr/bin/env python3
"""
Pytest Configuration and Shared Fixtures

Provides shared fixtures and configuration for all tests.
"""

import pytest
import tempfile
import sys
import os
from pathlib import Path

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from donations import (
    CurrencyLookup,
    DonationsValues,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    SUPPORTED_CURRENCY_CODES,
)


# ============================================================================
# TEMPORARY DIRECTORIES
# ============================================================================

@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# ============================================================================
# STORE FIXTURES
# ============================================================================

@pytest.fixture
def memory_store():
    """Empty in-memory key-value store"""
    return InMemoryKeyValueStore()


@pytest.fixture
def json_store_path(temp_dir):
    """Location of a key-value document inside the temp dir"""
    return temp_dir / "donations_store.json"


@pytest.fixture
def json_store(json_store_path):
    """Empty JSON-file key-value store"""
    return JsonFileKeyValueStore(json_store_path)


# ============================================================================
# DONATION SETTINGS FIXTURES
# ============================================================================

class DeviceHints:
    """Mutable locale and phone number seen by DonationsValues"""

    def __init__(self, locale_name=None, local_number=None):
        self.locale_name = locale_name
        self.local_number = local_number
        self.locale_calls = 0
        self.number_calls = 0

    def get_locale(self):
        self.locale_calls += 1
        return self.locale_name

    def get_local_number(self):
        self.number_calls += 1
        return self.local_number


@pytest.fixture
def device_hints():
    """Device with no locale region and no registered number"""
    return DeviceHints()


@pytest.fixture
def make_values(memory_store, device_hints):
    """Factory for DonationsValues over the shared memory store and hints"""
    def _make(store=None, supported=None, default_currency="USD"):
        return DonationsValues(
            store if store is not None else memory_store,
            currency_lookup=CurrencyLookup(),
            locale_provider=device_hints.get_locale,
            local_number_provider=device_hints.get_local_number,
            supported_currencies=supported if supported is not None else SUPPORTED_CURRENCY_CODES,
            default_currency=default_currency,
        )
    return _make


@pytest.fixture
def donations_values(make_values):
    """DonationsValues over an empty in-memory store"""
    return make_values()


# ============================================================================
# FASTAPI TEST CLIENT FIXTURES
# ============================================================================

@pytest.fixture
def app(donations_values):
    """FastAPI application wired to the test DonationsValues"""
    try:
        from web_ui.api.main import app
        from donations import get_donations_values
    except ImportError:
        pytest.skip("FastAPI app not available")

    app.dependency_overrides[get_donations_values] = lambda: donations_values
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """Create synchronous test client"""
    try:
        from fastapi.testclient import TestClient
        return TestClient(app)
    except ImportError:
        pytest.skip("FastAPI TestClient not available")
