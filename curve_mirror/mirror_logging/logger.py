"""
Logging setup for curve-mirror, configured once when the package is imported.

Processor chain, in order:
- merge_contextvars, add_log_level, stack and exception rendering;
- _add_timestamp: ISO 8601 UTC "timestamp" unless the caller passed one;
- _normalize_event: structlog's "event" becomes "event_type", mirrored into "message";
- _stringify_keys: Pubkey, Signature and Hash values and enum members
  (TradeDirection, OutcomeStatus, ...) become plain strings;
- JSONRenderer, or ConsoleRenderer when LOG_FORMAT is not "json".

Event names are snake_case and scoped by component (listener_*, stream_*,
executor_*, submit_*, copy_trade_*). Trade context goes in the mint,
signature and direction keys.

This module must not import anything from curve_mirror: every other module
imports it.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import structlog

# LOG_LEVEL: any stdlib level name; unknown names fall back to INFO
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL_VALUE = getattr(logging, LOG_LEVEL, logging.INFO)

# LOG_FORMAT: "json" (default) or anything else for the colored console renderer
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()


def _add_timestamp(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Stamp the event with the current UTC time unless one was passed in."""
    if "timestamp" not in event_dict:
        event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def _normalize_event(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Expose the event name as event_type (and message, when the caller set none)."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    if "message" not in event_dict and "event_type" in event_dict:
        event_dict["message"] = str(event_dict["event_type"])
    return event_dict


def _stringify_keys(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Render Pubkey / Signature / Enum values as plain strings for the JSON renderer."""
    for key, value in list(event_dict.items()):
        if isinstance(value, Enum):
            event_dict[key] = value.value
        elif type(value).__module__.startswith("solders"):
            event_dict[key] = str(value)
    return event_dict


def configure_structlog() -> None:
    """Install the processor chain described in the module docstring."""
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_timestamp,
        _normalize_event,
        _stringify_keys,
    ]
    if LOG_FORMAT == "json":
        shared_processors.append(structlog.processors.JSONRenderer())
    else:
        shared_processors.append(
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
        )
    structlog.configure(
        processors=shared_processors,
        wrapper_class=structlog.make_filtering_bound_logger(LOG_LEVEL_VALUE),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


# Configure on first import only; tests and main share one setup
if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Logger bound to the module name under the "logger" key.

    The first positional argument is the event name; trade context goes in keywords:
        logger = get_logger(__name__)
        logger.info("copy_trade_succeeded", mint=mint, direction="buy", amount=5_000_000_000)
    Output (JSON): {"event_type": "copy_trade_succeeded", "mint": "...", "direction": "buy",
    "amount": 5000000000, "timestamp": "...", "level": "info", "logger": "module.name"}
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_mint(mint: Any) -> structlog.BoundLogger:
    """Return a logger with mint (Pubkey or base58 string) bound to all subsequent log calls."""
    return get_logger("curve_mirror").bind(mint=str(mint))
