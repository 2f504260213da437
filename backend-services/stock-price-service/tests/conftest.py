# backend-services/stock-price-service/tests/conftest.py
"""
Pytest configuration and shared fixtures for stock-price-service tests
Centralizes test client, store patching, environment and fast hashing
"""

import os
import sys
import tempfile
from copy import deepcopy
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest

# Ensure the app and shared modules are in the python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../../')))

# Module-level settings are read at import time; keep hashing cheap and logs local.
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "stock_price_service_logs"))

# --- Environment Configuration ---
def pytest_configure(config):
    """Register custom markers to avoid warnings."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated, no containers).")
    config.addinivalue_line(
        "markers",
        "integration: Integration tests requiring a reachable MongoDB.",
    )

def pytest_collection_modifyitems(config, items):
    # auto-tag tests by folder so `-m unit|integration` works consistently
    for item in items:
        path = str(item.fspath)
        if f"{os.sep}integration{os.sep}" in path:
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)

@pytest.fixture(autouse=True)
def ensure_test_env(monkeypatch):
    """
    Standardize DB env for tests and fix Docker hostname vs localhost.
    """
    in_docker = os.path.exists("/.dockerenv")
    mongo_uri = "mongodb://mongodb:27017" if in_docker else "mongodb://localhost:27017"
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("MONGO_URI", os.getenv("TEST_MONGO_URI", mongo_uri))
    monkeypatch.setenv("TEST_DB_NAME", "test_stock_prices")
    yield

# -------------------------------------------------------------------
# Flask app and client fixtures
# -------------------------------------------------------------------

@pytest.fixture(scope="session")
def app():
    from app import app as flask_app
    flask_app.config["TESTING"] = True
    yield flask_app

@pytest.fixture
def client(app):
    import app as app_module
    app_module.close_db()
    yield app.test_client()
    app_module.close_db()

@pytest.fixture
def patch_connect(monkeypatch):
    """
    Replaces mongo_client.connect/initialize_indexes so routes never hit a server.
    Returns (client_mock, db_mock).
    """
    from database import mongo_client
    client_mock, db_mock = MagicMock(), MagicMock()
    monkeypatch.setattr(mongo_client, "connect", lambda: (client_mock, db_mock))
    monkeypatch.setattr(mongo_client, "initialize_indexes", lambda db: None)
    return client_mock, db_mock

# -------------------------------------------------------------------
# In-memory store
# -------------------------------------------------------------------

class InMemoryStocks:
    """
    Dict-backed stand-in for the store functions of database.mongo_client,
    with the same signatures and return shapes.
    """

    def __init__(self):
        self.docs: Dict[str, Dict[str, Any]] = {}

    def seed(self, symbol: str, price: Optional[float] = None, likes: int = 0, hashes: Optional[List[str]] = None):
        hashes = list(hashes) if hashes is not None else [f"seed-hash-{i}" for i in range(likes)]
        self.docs[symbol] = {"stock": symbol, "price": price, "likes": len(hashes), "liker_hashes": hashes}

    def upsert_price(self, db, symbol, price):
        doc = self.docs.setdefault(symbol, {"stock": symbol, "price": None, "likes": 0, "liker_hashes": []})
        if price is not None:
            doc["price"] = price
        return deepcopy(doc)

    def get_liker_hashes(self, db, symbol):
        doc = self.docs.get(symbol)
        return list(doc["liker_hashes"]) if doc else []

    def record_like(self, db, symbol, new_hash):
        doc = self.docs[symbol]
        doc["likes"] += 1
        doc["liker_hashes"].append(new_hash)
        return deepcopy(doc)

@pytest.fixture
def memory_store(monkeypatch):
    """Routes every store call made through database.mongo_client into an InMemoryStocks."""
    from database import mongo_client
    store = InMemoryStocks()
    monkeypatch.setattr(mongo_client, "upsert_price", store.upsert_price)
    monkeypatch.setattr(mongo_client, "get_liker_hashes", store.get_liker_hashes)
    monkeypatch.setattr(mongo_client, "record_like", store.record_like)
    return store

@pytest.fixture
def quote_prices(monkeypatch):
    """
    Patches price_fetcher.fetch_price with a dict lookup.
    Symbols missing from the dict raise UpstreamUnavailable.
    """
    from errors import UpstreamUnavailable
    from services import price_fetcher
    prices: Dict[str, float] = {}

    def _fetch(symbol):
        if symbol not in prices:
            raise UpstreamUnavailable(symbol, "no quote configured")
        return prices[symbol]

    monkeypatch.setattr(price_fetcher, "fetch_price", _fetch)
    return prices
