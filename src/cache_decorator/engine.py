"""
Interception policy.

``intercept`` runs one call of a decorated operation under its
``OperationSpec``:

* ``Mode.CACHE``: read-through. A stored value is returned without calling
  the operation; a miss calls it once and stores the result when it matches
  ``on=``; an unreadable backend calls it once and stores nothing.
* ``Mode.INVALIDATE``: call the operation once, then delete the key when the
  result matches ``on=``.

The operation's result (or exception) always reaches the caller unchanged.
Reads are best-effort; a failed ``put`` or ``delete`` raises
``BackendContractError``.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Mapping

from .backend import AnyBackend, CacheBackend, Lookup, LookupStatus
from .exceptions import BackendContractError
from .keys import format_key
from .operations import Mode, OperationSpec

logger = logging.getLogger(__name__)


def _ctx(spec: OperationSpec, key: str, outcome: str) -> dict[str, Any]:
    return {
        "cache_operation": spec.name,
        "cache_mode": spec.mode.value,
        "cache_key": key,
        "cache_outcome": outcome,
    }


def _as_lookup(raw: Any) -> Lookup:
    if isinstance(raw, Lookup):
        return raw
    return Lookup.hit(raw) if raw is not None else Lookup.miss()


def _reject_awaitable(raw: Any, spec: OperationSpec, method: str) -> Any:
    if inspect.isawaitable(raw):
        close = getattr(raw, "close", None)
        if close is not None:
            close()
        raise TypeError(
            f"backend.{method} returned an awaitable for synchronous operation {spec.name}; "
            "use an async backend only with coroutine functions"
        )
    return raw


async def _resolve(raw: Any) -> Any:
    if inspect.isawaitable(raw):
        return await raw
    return raw


def _degraded(spec: OperationSpec, key: str, exc: BaseException | None) -> None:
    if exc is None:
        logger.warning("Cache unavailable for %s, calling through", key, extra=_ctx(spec, key, "unavailable"))
    else:
        logger.warning(
            "Cache GET failed for %s, calling through: %s", key, exc, extra=_ctx(spec, key, "unavailable")
        )


def _write_failed(action: str, spec: OperationSpec, key: str, exc: Exception | None, result: Any = None):
    detail = str(exc) if exc is not None else f"backend returned {result!r}"
    logger.error(
        "Cache %s failed for %s: %s",
        action,
        key,
        detail,
        exc_info=exc is not None,
        extra=_ctx(spec, key, f"{action}_failed"),
    )
    return BackendContractError(action, operation=spec.name, key=key, detail=detail)


def _check_write(action: str, spec: OperationSpec, key: str, result: Any) -> None:
    # Only an explicit False reports failure; plain None-returning setters are fine.
    if result is False:
        raise _write_failed(action, spec, key, None, result)


# ---------------------------------------------------------------------------
# Sync
# ---------------------------------------------------------------------------


def intercept(
    spec: OperationSpec,
    bindings: Mapping[str, Any],
    call: Callable[[], Any],
    *,
    backend: CacheBackend,
    config: Any = None,
) -> Any:
    """Run ``call`` once (or not at all, on a cache hit) under ``spec``."""
    if spec.mode is Mode.CACHE:
        return _read_through(spec, bindings, call, backend, config)
    return _invalidate(spec, bindings, call, backend, config)


def _read_through(spec, bindings, call, backend, config):
    key = format_key(spec.key, bindings)

    try:
        raw = backend.get(config, key)
    except Exception as e:
        _degraded(spec, key, e)
        return call()
    lookup = _as_lookup(_reject_awaitable(raw, spec, "get"))

    if lookup.found:
        logger.debug("Cache HIT: %s", key, extra=_ctx(spec, key, "hit"))
        return lookup.value
    if lookup.status is LookupStatus.UNAVAILABLE:
        _degraded(spec, key, None)
        return call()

    logger.debug("Cache MISS: %s", key, extra=_ctx(spec, key, "miss"))
    value = call()

    if not spec.match.matches(value):
        logger.debug("Result not cached for %s: no pattern matched", key, extra=_ctx(spec, key, "skipped"))
        return value

    try:
        result = backend.put(config, key, value, dict(spec.options))
    except Exception as e:
        raise _write_failed("put", spec, key, e) from e
    _reject_awaitable(result, spec, "put")
    _check_write("put", spec, key, result)
    logger.debug("Cache PUT: %s", key, extra=_ctx(spec, key, "stored"))
    return value


def _invalidate(spec, bindings, call, backend, config):
    value = call()

    if not spec.match.matches(value):
        logger.debug("No invalidation for %s: no pattern matched", spec.name, extra=_ctx(spec, "", "skipped"))
        return value

    key = format_key(spec.key, bindings)
    try:
        result = backend.delete(config, key)
    except Exception as e:
        raise _write_failed("delete", spec, key, e) from e
    _reject_awaitable(result, spec, "delete")
    _check_write("delete", spec, key, result)
    logger.debug("Cache DEL: %s", key, extra=_ctx(spec, key, "invalidated"))
    return value


# ---------------------------------------------------------------------------
# Async
# ---------------------------------------------------------------------------


async def intercept_async(
    spec: OperationSpec,
    bindings: Mapping[str, Any],
    call: Callable[[], Awaitable[Any]],
    *,
    backend: AnyBackend,
    config: Any = None,
) -> Any:
    """Coroutine counterpart of ``intercept``; backend methods may be sync or async."""
    if spec.mode is Mode.CACHE:
        return await _read_through_async(spec, bindings, call, backend, config)
    return await _invalidate_async(spec, bindings, call, backend, config)


async def _read_through_async(spec, bindings, call, backend, config):
    key = format_key(spec.key, bindings)

    try:
        lookup = _as_lookup(await _resolve(backend.get(config, key)))
    except Exception as e:
        _degraded(spec, key, e)
        return await call()

    if lookup.found:
        logger.debug("Cache HIT: %s", key, extra=_ctx(spec, key, "hit"))
        return lookup.value
    if lookup.status is LookupStatus.UNAVAILABLE:
        _degraded(spec, key, None)
        return await call()

    logger.debug("Cache MISS: %s", key, extra=_ctx(spec, key, "miss"))
    value = await call()

    if not spec.match.matches(value):
        logger.debug("Result not cached for %s: no pattern matched", key, extra=_ctx(spec, key, "skipped"))
        return value

    try:
        result = await _resolve(backend.put(config, key, value, dict(spec.options)))
    except Exception as e:
        raise _write_failed("put", spec, key, e) from e
    _check_write("put", spec, key, result)
    logger.debug("Cache PUT: %s", key, extra=_ctx(spec, key, "stored"))
    return value


async def _invalidate_async(spec, bindings, call, backend, config):
    value = await call()

    if not spec.match.matches(value):
        logger.debug("No invalidation for %s: no pattern matched", spec.name, extra=_ctx(spec, "", "skipped"))
        return value

    key = format_key(spec.key, bindings)
    try:
        result = await _resolve(backend.delete(config, key))
    except Exception as e:
        raise _write_failed("delete", spec, key, e) from e
    _check_write("delete", spec, key, result)
    logger.debug("Cache DEL: %s", key, extra=_ctx(spec, key, "invalidated"))
    return value


__all__ = ["intercept", "intercept_async"]
