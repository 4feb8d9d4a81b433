"""
Cache key templates.

A key template is a plain string with ``{name}`` placeholders::

    "user:{user_id}:permissions:{role}"

Templates are compiled once, when an operation is decorated, into a
``CompiledKey``. Every placeholder is checked against the operation's
argument names at that point, so formatting a key for a live call cannot
fail.
"""

from __future__ import annotations

import dataclasses
import json
import re
from collections.abc import Iterable, Mapping
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Union
from uuid import UUID

from .exceptions import EmptyTemplateError, InvalidTemplateError, UnknownPlaceholderError

PLACEHOLDER_RE = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


@dataclasses.dataclass(frozen=True)
class Literal:
    text: str


@dataclasses.dataclass(frozen=True)
class Placeholder:
    name: str


Segment = Union[Literal, Placeholder]


@dataclasses.dataclass(frozen=True)
class CompiledKey:
    """An immutable, ordered sequence of key segments."""

    template: str
    segments: tuple[Segment, ...]

    @property
    def placeholders(self) -> tuple[str, ...]:
        return tuple(s.name for s in self.segments if isinstance(s, Placeholder))

    @property
    def is_constant(self) -> bool:
        return not self.placeholders

    def render(self, bindings: Mapping[str, Any]) -> str:
        return format_key(self, bindings)


def parse_segments(template: str) -> tuple[Segment, ...]:
    segments: list[Segment] = []
    pos = 0
    for m in PLACEHOLDER_RE.finditer(template):
        if m.start() > pos:
            segments.append(Literal(template[pos : m.start()]))
        segments.append(Placeholder(m.group(1)))
        pos = m.end()
    if pos < len(template):
        segments.append(Literal(template[pos:]))
    return tuple(segments)


def compile_key(
    template: Any,
    known_names: Iterable[str],
    *,
    operation: str = "<anonymous>",
    mode: str = "cache",
) -> CompiledKey:
    """Compile ``template`` against the names an operation can bind.

    Raises:
        InvalidTemplateError: ``template`` is not a string.
        EmptyTemplateError: ``template`` is the empty string.
        UnknownPlaceholderError: a placeholder names an unknown argument.
    """
    if not isinstance(template, str):
        raise InvalidTemplateError(template, operation=operation, mode=mode)

    segments = parse_segments(template)
    if not segments:
        raise EmptyTemplateError(operation=operation, mode=mode)

    known = frozenset(known_names)
    for seg in segments:
        if isinstance(seg, Placeholder) and seg.name not in known:
            raise UnknownPlaceholderError(seg.name, template, operation=operation, mode=mode)

    return CompiledKey(template=template, segments=segments)


def format_key(key: CompiledKey, bindings: Mapping[str, Any]) -> str:
    parts = []
    for seg in key.segments:
        if isinstance(seg, Literal):
            parts.append(seg.text)
        else:
            parts.append(key_fragment(bindings[seg.name]))
    return "".join(parts)


def key_fragment(value: Any) -> str:
    """Render one argument value the way it appears inside a key."""
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return key_fragment(value.value)
    if isinstance(value, (int, float, Decimal, UUID)):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="backslashreplace")
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    normalized = _normalize(value)
    if isinstance(normalized, str):
        return normalized
    return json.dumps(normalized, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _normalize(obj: Any) -> Any:
    """Reduce a value to JSON-compatible data with a stable ordering."""
    if isinstance(obj, (str, int, float, bool, type(None))):
        return obj
    if isinstance(obj, Enum):
        return _normalize(obj.value)
    if isinstance(obj, (Decimal, UUID)):
        return str(obj)
    if isinstance(obj, (bytes, bytearray)):
        return bytes(obj).decode("utf-8", errors="backslashreplace")
    if isinstance(obj, (datetime, date, time)):
        return obj.isoformat()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        # asdict() deep-copies, which fails on fields such as locks.
        return {f.name: _normalize(getattr(obj, f.name, None)) for f in dataclasses.fields(obj)}
    model_dump = getattr(obj, "model_dump", None)
    if callable(model_dump) and not isinstance(obj, type):
        try:
            dumped = model_dump(mode="json")
        except Exception:
            return _text(obj)
        return _normalize(dumped)
    if isinstance(obj, Mapping):
        return {key_fragment(k): _normalize(v) for k, v in obj.items()}
    if isinstance(obj, (set, frozenset)):
        items = [_normalize(v) for v in obj]
        return sorted(items, key=lambda v: json.dumps(v, sort_keys=True, default=str))
    if isinstance(obj, (list, tuple)):
        return [_normalize(v) for v in obj]
    return _text(obj)


def _text(obj: Any) -> str:
    try:
        return str(obj)
    except Exception:
        return object.__repr__(obj)


__all__ = [
    "Literal",
    "Placeholder",
    "Segment",
    "CompiledKey",
    "PLACEHOLDER_RE",
    "parse_segments",
    "compile_key",
    "format_key",
    "key_fragment",
]
