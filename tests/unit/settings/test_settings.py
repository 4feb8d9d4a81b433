from __future__ import annotations

import pytest
from pydantic import ValidationError

from cache_decorator.settings import CacheSettings, get_cache_settings


def test_defaults():
    settings = CacheSettings()

    assert settings.enabled is True
    assert settings.backend == "memory"
    assert settings.url is None
    assert settings.namespace == ""
    assert settings.log_format == "plain"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("CACHE_ENABLED", "false")
    monkeypatch.setenv("CACHE_BACKEND", "redis")
    monkeypatch.setenv("CACHE_URL", "redis://localhost:6379/1")
    monkeypatch.setenv("CACHE_NAMESPACE", "test_app")

    settings = CacheSettings()

    assert settings.enabled is False
    assert settings.backend == "redis"
    assert settings.url == "redis://localhost:6379/1"
    assert settings.namespace == "test_app"


def test_redis_requires_url():
    with pytest.raises(ValidationError, match="CACHE_URL"):
        CacheSettings(backend="redis")


def test_unknown_backend_is_rejected():
    with pytest.raises(ValidationError):
        CacheSettings(backend="memcached")


def test_get_cache_settings_is_cached_and_ignores_none():
    first = get_cache_settings(namespace=None)
    second = get_cache_settings(namespace=None)

    assert first is second
    assert first.namespace == ""
    assert get_cache_settings(namespace="svc").namespace == "svc"
