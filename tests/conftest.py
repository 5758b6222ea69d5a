"""Pytest configuration and fixtures"""
import os
import pytest
from unittest.mock import Mock

# Set test environment variables
os.environ.setdefault("UPSTASH_REDIS_REST_URL", "https://test.upstash.io")
os.environ.setdefault("UPSTASH_REDIS_REST_TOKEN", "test_token")
os.environ.setdefault("LOG_LEVEL", "WARNING")


@pytest.fixture
def storage():
    """In-memory cart storage"""
    from cartcore.cart import MemoryStorage

    return MemoryStorage()


@pytest.fixture
def events():
    """Cart event dispatcher without listeners"""
    from cartcore.cart import CartEvents

    return CartEvents()


@pytest.fixture
def cart(storage, events):
    """Empty "shopping" cart"""
    from cartcore.cart import Cart

    return Cart(storage, events, "shopping", "SAMPLESESSIONKEY")


@pytest.fixture
def sample_items():
    """Three line items for bulk adds"""
    return [
        {
            "id": 456,
            "name": "Sample Item 1",
            "price": 67.99,
            "quantity": 4,
            "attributes": {},
        },
        {
            "id": 568,
            "name": "Sample Item 2",
            "price": 69.25,
            "quantity": 4,
            "attributes": {},
        },
        {
            "id": 856,
            "name": "Sample Item 3",
            "price": 50.25,
            "quantity": 4,
            "attributes": {},
        },
    ]


@pytest.fixture
def mock_redis():
    """Mock Upstash Redis client backed by a dict"""
    store = {}

    client = Mock()
    client.get.side_effect = lambda key: store.get(key)
    client.set.side_effect = lambda key, value, ex=None: store.__setitem__(key, value)
    client.delete.side_effect = lambda key: store.pop(key, None)
    client.store = store

    return client
