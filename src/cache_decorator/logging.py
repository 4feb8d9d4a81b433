from __future__ import annotations

import logging
import os
from logging.config import dictConfig
from typing import Optional

from cache_decorator.settings import get_cache_settings

# LogRecord attribute -> key inside the "cache" object of JSON logs
CACHE_FIELDS = {
    "cache_operation": "operation",
    "cache_mode": "mode",
    "cache_key": "key",
    "cache_outcome": "outcome",
}


class JsonFormatter(logging.Formatter):
    """Structured JSON formatter for prod and CI logs."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        import json
        from traceback import format_exception

        payload: dict[str, object] = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "pid": record.process,
            "message": record.getMessage(),
        }

        # Interception context (only when present)
        cache_ctx = {
            out: getattr(record, attr)
            for attr, out in CACHE_FIELDS.items()
            if getattr(record, attr, None) is not None
        }
        if cache_ctx:
            payload["cache"] = cache_ctx

        if record.exc_info:
            exc_type = record.exc_info[0].__name__ if record.exc_info[0] else None
            exc_message = str(record.exc_info[1]) if record.exc_info[1] else None
            stack = "".join(format_exception(*record.exc_info))

            err_obj: dict[str, object] = {}
            if exc_type:
                err_obj["type"] = exc_type
            if exc_message:
                err_obj["message"] = exc_message

            # Truncate very long stacks to keep lines readable in hosted logs.
            max_stack = int(os.getenv("LOG_STACK_LIMIT", "4000"))
            err_obj["stack"] = stack[:max_stack] + ("...(truncated)" if len(stack) > max_stack else "")

            payload["error"] = err_obj

        return json.dumps(payload, ensure_ascii=False, default=str)


def _read_level(level: Optional[str]) -> str:
    if level:
        return level.upper()
    explicit = os.getenv("LOG_LEVEL")
    if explicit:
        return explicit.upper()
    return get_cache_settings().log_level.upper()


def _read_format(fmt: Optional[str]) -> str:
    if fmt:
        return fmt.lower()
    explicit = os.getenv("LOG_FORMAT")
    if explicit:
        return explicit.lower()
    return get_cache_settings().log_format


def setup_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    level = _read_level(level)
    formatter_name = "json" if _read_format(fmt) == "json" else "plain"

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "plain": {
                    "format": "%(asctime)s %(levelname)-5s [pid:%(process)d] %(name)s: %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                },
                "json": {
                    "()": JsonFormatter,
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                },
            },
            "handlers": {
                "stream": {
                    "class": "logging.StreamHandler",
                    "level": level,
                    "formatter": formatter_name,
                }
            },
            "root": {
                "level": level,
                "handlers": ["stream"],
            },
            "loggers": {
                "redis": {"level": "WARNING", "handlers": [], "propagate": True},
            },
        }
    )


__all__ = ["JsonFormatter", "setup_logging"]
