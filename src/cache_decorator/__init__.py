"""
Declarative caching and cache invalidation for Python functions.

Bind a backend once with ``CacheDecorator`` and declare, per function, a key
template and the results that should be cached or should invalidate a key.
"""

# Backends
from .backend import (
    AsyncCacheBackend,
    AsyncRedisBackend,
    CacheBackend,
    InMemoryBackend,
    Lookup,
    LookupStatus,
    NullBackend,
    RedisBackend,
    build_backend,
)

# Decorators
from .decorators import CacheDecorator, bind_arguments

# Interception policy
from .engine import intercept, intercept_async

# Errors
from .exceptions import (
    BackendContractError,
    BackendUnavailableError,
    CacheDecoratorError,
    ConfigurationError,
    EmptyTemplateError,
    InvalidTemplateError,
    UnknownPlaceholderError,
)

# Key templates
from .keys import CompiledKey, Literal, Placeholder, compile_key, format_key, key_fragment

# Logging
from .logging import JsonFormatter, setup_logging

# Registration
from .operations import Mode, OperationRegistry, OperationSpec, register_operation

# Result patterns
from .patterns import ANY, UNSET, Exact, MatchSpec, Pattern, Record, Shape, Wildcard, match_spec

# Settings
from .settings import CacheSettings, get_cache_settings

__all__ = [
    # Decorators
    "CacheDecorator",
    "bind_arguments",
    # Interception policy
    "intercept",
    "intercept_async",
    # Registration
    "Mode",
    "OperationSpec",
    "OperationRegistry",
    "register_operation",
    # Key templates
    "CompiledKey",
    "Literal",
    "Placeholder",
    "compile_key",
    "format_key",
    "key_fragment",
    # Result patterns
    "Pattern",
    "ANY",
    "Exact",
    "Shape",
    "Wildcard",
    "Record",
    "MatchSpec",
    "UNSET",
    "match_spec",
    # Backends
    "CacheBackend",
    "AsyncCacheBackend",
    "Lookup",
    "LookupStatus",
    "InMemoryBackend",
    "NullBackend",
    "RedisBackend",
    "AsyncRedisBackend",
    "build_backend",
    # Errors
    "CacheDecoratorError",
    "ConfigurationError",
    "InvalidTemplateError",
    "EmptyTemplateError",
    "UnknownPlaceholderError",
    "BackendUnavailableError",
    "BackendContractError",
    # Logging
    "JsonFormatter",
    "setup_logging",
    # Settings
    "CacheSettings",
    "get_cache_settings",
]
