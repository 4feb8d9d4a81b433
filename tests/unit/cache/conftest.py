"""
Caching test fixtures and configuration.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, Mock

import pytest

from cache_decorator import Lookup


@pytest.fixture
def mock_cache_backend():
    """Create a mock cache backend for testing; every read misses."""
    backend = Mock()
    backend.get = Mock(return_value=Lookup.miss())
    backend.put = Mock(return_value=True)
    backend.delete = Mock(return_value=True)
    return backend


@pytest.fixture
def mock_async_cache_backend():
    """Create a mock async cache backend for testing; every read misses."""
    backend = Mock()
    backend.get = AsyncMock(return_value=Lookup.miss())
    backend.put = AsyncMock(return_value=True)
    backend.delete = AsyncMock(return_value=True)
    return backend


@pytest.fixture
def cache_key_templates():
    """Provide cache key templates for testing."""
    return {
        "user_profile": "user:{user_id}:profile",
        "user_permissions": "user:{user_id}:permissions:{role}",
        "product_details": "product:{product_id}:details",
        "session_data": "session:{session_id}",
    }


@pytest.fixture
def sample_cache_data():
    """Provide sample cache data for testing."""
    return {
        "user:123": {"id": 123, "name": "Test User", "email": "test@example.com"},
        "product:456": {"id": 456, "name": "Test Product", "price": 1999},
        "session:789": {"user_id": 123, "expires_at": "2023-12-31T23:59:59Z"},
    }
