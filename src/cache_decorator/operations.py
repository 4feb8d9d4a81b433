"""
Operation registration.

Each decorated function is registered once as an ``OperationSpec``: its
compiled key, its mode, its ``on=`` patterns and the options forwarded to the
backend. Specs are immutable and shared by every call of the operation.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType
from typing import Any, Callable, Iterable, Iterator, Mapping, Optional

from .keys import CompiledKey, compile_key
from .patterns import UNSET, MatchSpec, match_spec

logger = logging.getLogger(__name__)

# Parameters named "_" are discarded and cannot appear in a key.
DISCARDED = "_"


class Mode(StrEnum):
    CACHE = "cache"
    INVALIDATE = "invalidate"


@dataclass(frozen=True)
class OperationSpec:
    name: str
    argument_names: frozenset[str]
    mode: Mode
    key: CompiledKey
    match: MatchSpec
    options: Mapping[str, Any]


def operation_name(func: Callable[..., Any]) -> str:
    """``module.qualname/arity`` for a function."""
    arity = len(inspect.signature(func).parameters)
    module = getattr(func, "__module__", None) or "<unknown>"
    qualname = getattr(func, "__qualname__", None) or getattr(func, "__name__", repr(func))
    return f"{module}.{qualname}/{arity}"


def argument_names(signature: inspect.Signature) -> frozenset[str]:
    return frozenset(name for name in signature.parameters if name != DISCARDED)


def register_operation(
    name: str,
    argument_names: Iterable[str],
    mode: Mode | str,
    template: Any,
    on: Any = UNSET,
    options: Optional[Mapping[str, Any]] = None,
) -> OperationSpec:
    """Validate and compile one operation's declaration.

    Raises a ``ConfigurationError`` subclass when the key template is not a
    non-empty string or references an argument the operation doesn't bind.
    """
    mode = Mode(mode)
    names = frozenset(argument_names)
    key = compile_key(template, names, operation=name, mode=mode.value)
    return OperationSpec(
        name=name,
        argument_names=names,
        mode=mode,
        key=key,
        match=match_spec(on),
        options=MappingProxyType(dict(options or {})),
    )


class OperationRegistry:
    """Table of registered operations, keyed by ``(name, mode)``."""

    def __init__(self) -> None:
        self._specs: dict[tuple[str, Mode], OperationSpec] = {}

    def register(
        self,
        name: str,
        argument_names: Iterable[str],
        mode: Mode | str,
        template: Any,
        on: Any = UNSET,
        options: Optional[Mapping[str, Any]] = None,
    ) -> OperationSpec:
        spec = register_operation(name, argument_names, mode, template, on=on, options=options)
        ident = (spec.name, spec.mode)
        if ident in self._specs:
            logger.debug("Replacing registered @%s spec for %s", spec.mode, spec.name)
        self._specs[ident] = spec
        return spec

    def get(self, name: str, mode: Mode | str) -> Optional[OperationSpec]:
        return self._specs.get((name, Mode(mode)))

    def __contains__(self, ident: object) -> bool:
        return ident in self._specs

    def __iter__(self) -> Iterator[OperationSpec]:
        return iter(list(self._specs.values()))

    def __len__(self) -> int:
        return len(self._specs)


__all__ = [
    "Mode",
    "OperationSpec",
    "OperationRegistry",
    "register_operation",
    "operation_name",
    "argument_names",
]
