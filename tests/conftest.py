"""
Root conftest.py for cache-decorator tests.

This file provides:
1. Common pytest markers for test categorization
2. Shared fixtures used across multiple test modules
"""

from __future__ import annotations

from unittest.mock import Mock

import pytest

from cache_decorator import CacheDecorator, InMemoryBackend
from cache_decorator.settings import get_cache_settings


# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_collection_modifyitems(config, items):
    """Tag everything under tests/unit/cache/ with the `cache` marker."""
    for item in items:
        norm = str(item.fspath).replace("\\", "/")
        if "/tests/unit/cache/" in norm:
            item.add_marker(pytest.mark.cache)
        if "/tests/integration/" in norm:
            item.add_marker(pytest.mark.integration)


def pytest_configure(config):
    # Ensure custom markers are registered even if pyproject.toml isn't picked up in some contexts
    for name, desc in [
        ("cache", "Cache decorator and policy tests"),
        ("integration", "Tests needing a live backend (REDIS_URL)"),
    ]:
        config.addinivalue_line("markers", f"{name}: {desc}")


# =============================================================================
# SETTINGS
# =============================================================================


@pytest.fixture(autouse=True)
def _cache_settings_env(monkeypatch):
    """Start every test from default settings, not the developer's environment."""
    for var in ("CACHE_ENABLED", "CACHE_BACKEND", "CACHE_URL", "CACHE_NAMESPACE"):
        monkeypatch.delenv(var, raising=False)
    get_cache_settings.cache_clear()
    yield
    get_cache_settings.cache_clear()


# =============================================================================
# BACKENDS
# =============================================================================


@pytest.fixture
def memory_backend():
    """A real in-memory backend, cleared after the test."""
    backend = InMemoryBackend()
    yield backend
    backend.clear()


@pytest.fixture
def recording_backend(memory_backend):
    """An in-memory backend whose get/put/delete calls can be asserted on."""
    return Mock(wraps=memory_backend)


@pytest.fixture
def decorator(recording_backend):
    return CacheDecorator(recording_backend, config={"pool": "test"})
