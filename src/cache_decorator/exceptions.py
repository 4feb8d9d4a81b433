from __future__ import annotations

from typing import Any, Optional

PREFIX = "cache_decorator"


class CacheDecoratorError(Exception):
    """Base class for every error raised by cache_decorator."""


class ConfigurationError(CacheDecoratorError, ValueError):
    """A decorated operation was declared with an invalid key or match spec.

    Raised once, when the operation is registered, never per call.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        mode: str,
        template: Any = None,
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.mode = mode
        self.template = template


class InvalidTemplateError(ConfigurationError):
    def __init__(self, template: Any, *, operation: str, mode: str) -> None:
        super().__init__(
            f"{PREFIX}: invalid value {template!r} in key for @{mode} {operation}",
            operation=operation,
            mode=mode,
            template=template,
        )


class EmptyTemplateError(InvalidTemplateError):
    def __init__(self, *, operation: str, mode: str) -> None:
        super().__init__("", operation=operation, mode=mode)


class UnknownPlaceholderError(ConfigurationError):
    def __init__(self, name: str, template: str, *, operation: str, mode: str) -> None:
        super().__init__(
            f"{PREFIX}: unknown variable {{{name}}} in key for @{mode} {operation}",
            operation=operation,
            mode=mode,
            template=template,
        )
        self.name = name


class BackendUnavailableError(CacheDecoratorError):
    """A backend could not serve a read. Treated as a cache bypass."""


class BackendContractError(CacheDecoratorError, RuntimeError):
    """A backend failed a write the engine had already decided to perform."""

    def __init__(self, action: str, *, operation: str, key: str, detail: Optional[str] = None) -> None:
        message = f"{PREFIX}: backend {action} failed for key {key!r} in {operation}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.action = action
        self.operation = operation
        self.key = key


__all__ = [
    "CacheDecoratorError",
    "ConfigurationError",
    "InvalidTemplateError",
    "EmptyTemplateError",
    "UnknownPlaceholderError",
    "BackendUnavailableError",
    "BackendContractError",
]
