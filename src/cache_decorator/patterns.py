"""
Result patterns for the ``on=`` option.

``on=`` gates a cache action on the shape of the decorated function's
result. Plain values are converted into patterns:

* a ``Pattern`` is used as is
* a ``tuple`` becomes a ``Shape`` over its converted elements
* anything else is compared with ``Exact``

A ``list`` passed to ``on=`` is a list of alternatives tried in order::

    @decorator.cache(key="user:{user_id}", on=("ok", ANY))
    @decorator.invalidate(key="user:{user_id}", on=["ok", ("ok", ANY)])
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional


class Pattern:
    """A structural predicate over a result value."""

    __slots__ = ()

    def matches(self, value: Any) -> bool:  # pragma: no cover - interface
        raise NotImplementedError


class _Unset:
    __slots__ = ()

    def __repr__(self) -> str:
        return "UNSET"


# Marks an omitted ``on=`` option; distinct from an explicit empty list.
UNSET: Any = _Unset()


@dataclass(frozen=True)
class Wildcard(Pattern):
    """Matches every value."""

    def matches(self, value: Any) -> bool:
        return True

    def __repr__(self) -> str:
        return "ANY"


ANY = Wildcard()


@dataclass(frozen=True)
class Exact(Pattern):
    value: Any

    def matches(self, value: Any) -> bool:
        # 1 == True in Python, but a flag is not a count
        if isinstance(self.value, bool) != isinstance(value, bool):
            return False
        try:
            return bool(value == self.value)
        except Exception:
            return False


@dataclass(frozen=True, init=False)
class Shape(Pattern):
    """A tuple of fixed length whose elements match element-wise."""

    elements: tuple[Pattern, ...]

    def __init__(self, *elements: Any) -> None:
        object.__setattr__(self, "elements", tuple(as_pattern(e) for e in elements))

    def matches(self, value: Any) -> bool:
        if not isinstance(value, tuple) or len(value) != len(self.elements):
            return False
        return all(p.matches(v) for p, v in zip(self.elements, value))


@dataclass(frozen=True, init=False)
class Record(Pattern):
    """An instance of ``cls`` whose named fields match.

    Fields are read as attributes, or as items when ``cls`` is a mapping type.
    """

    cls: type
    fields: tuple[tuple[str, Pattern], ...]

    def __init__(self, cls: type, **fields: Any) -> None:
        object.__setattr__(self, "cls", cls)
        object.__setattr__(
            self, "fields", tuple((name, as_pattern(p)) for name, p in fields.items())
        )

    def matches(self, value: Any) -> bool:
        if not isinstance(value, self.cls):
            return False
        for name, pattern in self.fields:
            if isinstance(value, Mapping):
                if name not in value:
                    return False
                field = value[name]
            else:
                if not hasattr(value, name):
                    return False
                field = getattr(value, name)
            if not pattern.matches(field):
                return False
        return True


def as_pattern(obj: Any) -> Pattern:
    if isinstance(obj, Pattern):
        return obj
    if isinstance(obj, tuple):
        return Shape(*obj)
    return Exact(obj)


@dataclass(frozen=True)
class MatchSpec:
    """Ordered patterns gating a cache action.

    ``patterns is None`` means no ``on=`` was given and the action always
    fires. An empty tuple never matches.
    """

    patterns: Optional[tuple[Pattern, ...]] = None

    @classmethod
    def unconditional(cls) -> "MatchSpec":
        return cls(None)

    @classmethod
    def of(cls, patterns) -> "MatchSpec":
        return cls(tuple(as_pattern(p) for p in patterns))

    @property
    def is_unconditional(self) -> bool:
        return self.patterns is None

    def select(self, value: Any) -> Optional[Pattern]:
        """Return the first pattern matching ``value``, or None."""
        if self.patterns is None:
            return ANY
        for pattern in self.patterns:
            if pattern.matches(value):
                return pattern
        return None

    def matches(self, value: Any) -> bool:
        return self.select(value) is not None


def match_spec(on: Any = UNSET) -> MatchSpec:
    """Build a ``MatchSpec`` from a decorator's ``on=`` argument."""
    if on is UNSET:
        return MatchSpec.unconditional()
    if isinstance(on, list):
        return MatchSpec.of(on)
    return MatchSpec.of([on])


__all__ = [
    "Pattern",
    "Wildcard",
    "ANY",
    "Exact",
    "Shape",
    "Record",
    "MatchSpec",
    "UNSET",
    "as_pattern",
    "match_spec",
]
