from __future__ import annotations

"""
Structured logging setup for tokenledger.

This module configures **structlog** + the stdlib ``logging`` package so that:
- Ledger logs are emitted as structured JSON by default (or as a pretty console
  renderer in dev).
- Context variables bound by a unit of work (``op``, ``caller``) are merged
  into each event.
- Log level & format come from `tokenledger.config.Settings` unless passed.

Quick start
-----------
    from tokenledger.logging import setup_logging, get_logger

    setup_logging()                     # call once on process start
    log = get_logger(__name__)
    log.info("ledger_opened", db="memory://")

Libraries embedding the ledger may skip `setup_logging()` entirely; structlog
then falls back to its default configuration.
"""

import logging
from typing import Any, Dict, Iterable, Optional

import structlog
from structlog.contextvars import merge_contextvars
from structlog.processors import JSONRenderer

from .config import get_settings


# ------------------------------ Processors -----------------------------------


def _stringify_bytes(_: Any, __: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Render raw key/value bytes as hex so every renderer can print them."""
    for k, v in list(event_dict.items()):
        if isinstance(v, (bytes, bytearray)):
            event_dict[k] = bytes(v).hex()
    return event_dict


def _base_processors(service_name: str, include_stacktrace: bool) -> Iterable:
    yield structlog.stdlib.add_log_level
    yield structlog.processors.TimeStamper(fmt="iso", utc=True)
    yield merge_contextvars  # op / caller bound by the unit of work
    yield structlog.processors.StackInfoRenderer()
    if include_stacktrace:
        yield structlog.processors.format_exc_info
    yield _stringify_bytes
    yield structlog.processors.UnicodeDecoder()

    def _ensure_service(_: Any, __: str, ev: Dict[str, Any]) -> Dict[str, Any]:
        ev.setdefault("service", service_name)
        return ev

    yield _ensure_service


# ------------------------------ Setup ----------------------------------------


def setup_logging(
    *,
    service_name: str = "tokenledger",
    level: Optional[str | int] = None,
    log_format: Optional[str] = None,
    include_stacktrace: Optional[bool] = None,
) -> None:
    """
    Configure structlog + stdlib logging. Safe to call once at process start.

    Parameters
    ----------
    service_name: str
        Value injected as "service" into every event.
    level: str|int
        Log level (e.g., "INFO"). Defaults to ``Settings.log_level``.
    log_format: str
        "json" or "console". Defaults to ``Settings.log_format``.
    include_stacktrace: bool
        Include stack traces for records with exc_info. Defaults to True for
        JSON and False for console.
    """
    settings = get_settings()
    level = level or settings.log_level
    log_format = (log_format or settings.log_format).lower()
    if include_stacktrace is None:
        include_stacktrace = log_format == "json"

    processors = list(_base_processors(service_name, include_stacktrace))

    if log_format == "console":
        renderer = structlog.dev.ConsoleRenderer(colors=False, sort_keys=False)
    else:
        renderer = JSONRenderer(sort_keys=True)

    # Rendering happens once, in the handler's formatter, for structlog and
    # plain stdlib records alike.
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            *processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler()
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
            foreign_pre_chain=[
                structlog.stdlib.add_log_level,
                structlog.stdlib.add_logger_name,
                *processors,
            ],
        )
    )

    root = logging.getLogger()
    root.setLevel(level)
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Return a lazily-assembled structlog logger named `name` (stdlib logger name).

    Module-level loggers are created at import time, before `setup_logging()`
    runs, so they must pick up the configuration on each call.
    """
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()


# ------------------------------ Context helpers -------------------------------


def bind_context(**kv: Any) -> None:
    """
    Bind operation-scoped key/value pairs into the structlog contextvars store.
    Typical keys: op, caller, variant
    """
    structlog.contextvars.bind_contextvars(**kv)


def clear_context(*keys: str) -> None:
    """
    Clear specific keys from contextvars, or clear all if no keys provided.
    """
    if keys:
        structlog.contextvars.unbind_contextvars(*keys)
    else:
        structlog.contextvars.clear_contextvars()


__all__ = [
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",
]
