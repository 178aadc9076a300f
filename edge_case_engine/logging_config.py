"""
Structured Logging for the Edge Case Engine

Services log structlog events (`logger.info("Edge case detected", rule_id=...,
trip_id=...)`); the orchestrator and repositories log through stdlib logging.
setup_logging() renders both through one structlog ProcessorFormatter, so
engine fields such as rule_id, trip_id and vehicle_id come out as top-level
keys in JSON mode and as key=value pairs on the console.

Usage:
    from edge_case_engine.logging_config import setup_logging, set_correlation_id

    setup_logging()                      # LOG_LEVEL / LOG_JSON from settings
    set_correlation_id()                 # tag every line of the current batch
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any, List, Optional

import structlog

from edge_case_engine.settings import get_settings

# Context variable for correlation ID (thread-safe)
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# Keys rendered first, in this order, when present on an event
ENGINE_KEYS = ("rule_id", "trip_id", "vehicle_id", "case_type", "scenario_type", "severity")

SENSITIVE_FIELDS = frozenset({"password", "token", "secret", "api_key", "authorization"})
MASK = "***MASKED***"


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Set (or generate) the correlation id for the current context."""
    correlation_id = correlation_id or uuid.uuid4().hex
    correlation_id_var.set(correlation_id)
    return correlation_id


def get_correlation_id() -> Optional[str]:
    return correlation_id_var.get()


# ═══════════════════════════════════════════════════════════════════════════════
# PROCESSORS
# ═══════════════════════════════════════════════════════════════════════════════


def add_correlation_id(logger: Any, method_name: str, event_dict: dict) -> dict:
    correlation_id = correlation_id_var.get()
    if correlation_id:
        event_dict.setdefault("correlation_id", correlation_id)
    return event_dict


def mask_sensitive_fields(logger: Any, method_name: str, event_dict: dict) -> dict:
    for key in event_dict:
        if key.lower() in SENSITIVE_FIELDS:
            event_dict[key] = MASK
    return event_dict


def order_engine_keys(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Timestamp, level, logger and event first, then engine fields, then the rest."""
    head = ["timestamp", "level", "logger", "event", "correlation_id", *ENGINE_KEYS]
    ordered = {key: event_dict.pop(key) for key in head if key in event_dict}
    ordered.update(event_dict)
    return ordered


def shared_processors() -> List[Any]:
    """Processors applied to structlog events and stdlib records alike."""
    return [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_correlation_id,
        mask_sensitive_fields,
    ]


def build_formatter(json_format: bool, colors: bool = False) -> structlog.stdlib.ProcessorFormatter:
    """Formatter for the root handler: JSON lines or console key=value."""
    if json_format:
        renderer = structlog.processors.JSONRenderer(default=str)
        final = [structlog.processors.format_exc_info, order_engine_keys, renderer]
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=colors, sort_keys=False)
        final = [order_engine_keys, renderer]

    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors(),
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *final],
    )


def setup_logging(level: Optional[str] = None, json_format: Optional[bool] = None) -> None:
    """
    Configure the root logger and structlog.

    Args:
        level: Log level name (LOG_LEVEL setting if None)
        json_format: JSON lines instead of the console format (LOG_JSON if None)
    """
    log_settings = get_settings().logging
    level = (level or log_settings.level).upper()
    json_format = log_settings.json_format if json_format is None else json_format

    root = logging.getLogger()
    root.setLevel(getattr(logging, level, logging.INFO))
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(build_formatter(json_format, colors=sys.stdout.isatty()))
    root.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors(),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
