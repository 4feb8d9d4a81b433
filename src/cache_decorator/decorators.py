"""
Cache decorators.

Bind a backend once per module, then declare caching on functions::

    from cache_decorator import CacheDecorator, ANY

    decorator = CacheDecorator(MyBackend(), config={"pool": "users"})

    @decorator.cache(key="user:{user_id}", on=("ok", ANY), ttl=300)
    def fetch_user(user_id: int):
        ...

    @decorator.invalidate(key="user:{user_id}", on="ok")
    def update_user(user_id: int, data: dict):
        ...

Keys are validated when the function is decorated: an empty template, a
non-string template or a ``{placeholder}`` that names no parameter raises a
``ConfigurationError`` right away. Extra keyword arguments of ``cache`` (such
as ``ttl``) are forwarded to ``backend.put`` as its ``options``.

Without decorators, ``@decorator.cache(key="prefix_{arg}")`` amounts to::

    def get(arg):
        key = f"prefix_{arg}"
        lookup = backend.get(config, key)
        if lookup is unavailable:
            return expensive_computation(arg)
        if lookup has a value:
            return lookup.value
        value = expensive_computation(arg)
        backend.put(config, key, value, {})
        return value
"""

from __future__ import annotations

import functools
import inspect
from typing import Any, Callable, Mapping, Optional, TypeVar

from .backend import AnyBackend
from .engine import intercept, intercept_async
from .operations import DISCARDED, Mode, OperationRegistry, argument_names, operation_name
from .patterns import UNSET
from .settings import get_cache_settings

F = TypeVar("F", bound=Callable[..., Any])


def bind_arguments(
    signature: inspect.Signature, args: tuple, kwargs: Mapping[str, Any]
) -> Optional[dict[str, Any]]:
    """Map parameter names to this call's values, defaults included.

    Returns None when the call doesn't fit the signature; the caller then
    invokes the function directly so it raises its own ``TypeError``.
    """
    try:
        bound = signature.bind(*args, **kwargs)
    except TypeError:
        return None
    bound.apply_defaults()
    return {name: value for name, value in bound.arguments.items() if name != DISCARDED}


class CacheDecorator:
    """Caching and invalidation decorators bound to one backend.

    Args:
        backend: Object implementing ``get``/``put``/``delete`` (see
            ``CacheBackend``); async backends work with coroutine functions.
        config: Opaque value handed to every backend call unchanged.
        registry: Table the decorated operations are registered in.
        enabled: Turn interception on or off; defaults to ``CACHE_ENABLED``.
    """

    def __init__(
        self,
        backend: AnyBackend,
        *,
        config: Any = None,
        registry: Optional[OperationRegistry] = None,
        enabled: Optional[bool] = None,
    ):
        self.backend = backend
        self.config = config
        self.registry = registry if registry is not None else OperationRegistry()
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        if self._enabled is None:
            return get_cache_settings().enabled
        return self._enabled

    def cache(self, *, key: Any, on: Any = UNSET, **options: Any) -> Callable[[F], F]:
        """Read-through caching of the function's result under ``key``.

        ``on`` restricts caching to results matching a pattern (or any of a
        list of patterns); omitted, every result is cached.
        """
        return self._decorate(Mode.CACHE, key, on, options)

    def invalidate(self, *, key: Any, on: Any = UNSET) -> Callable[[F], F]:
        """Delete ``key`` after the function returns a result matching ``on``.

        Omitting ``on`` invalidates after every call.
        """
        return self._decorate(Mode.INVALIDATE, key, on, {})

    # Aliases
    cached = cache
    invalidates = invalidate

    def _decorate(self, mode: Mode, template: Any, on: Any, options: Mapping[str, Any]):
        def decorator(func: F) -> F:
            signature = inspect.signature(func)
            spec = self.registry.register(
                operation_name(func),
                argument_names(signature),
                mode,
                template,
                on=on,
                options=options,
            )

            if inspect.iscoroutinefunction(func):

                @functools.wraps(func)
                async def async_wrapper(*args, **kwargs):
                    bindings = bind_arguments(signature, args, kwargs) if self.enabled else None
                    if bindings is None:
                        return await func(*args, **kwargs)
                    return await intercept_async(
                        spec,
                        bindings,
                        lambda: func(*args, **kwargs),
                        backend=self.backend,
                        config=self.config,
                    )

                wrapper = async_wrapper
            else:

                @functools.wraps(func)
                def sync_wrapper(*args, **kwargs):
                    bindings = bind_arguments(signature, args, kwargs) if self.enabled else None
                    if bindings is None:
                        return func(*args, **kwargs)
                    return intercept(
                        spec,
                        bindings,
                        lambda: func(*args, **kwargs),
                        backend=self.backend,
                        config=self.config,
                    )

                wrapper = sync_wrapper

            wrapper.__cache_operation__ = spec  # type: ignore[attr-defined]
            return wrapper  # type: ignore[return-value]

        return decorator


__all__ = ["CacheDecorator", "bind_arguments"]
