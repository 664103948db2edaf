"""Structured logging configuration.

buildmark logs snake_case events with keyword context through structlog.
The events a build emits, in order:

    config_invalid           error                               (CLI)
    connector_selected       connector                           (debug)
    assembly_started         version
    tag_history_loaded       raw, versions                       (debug)
    checkout_not_at_latest_tag  latest_tag, latest_hash, current_hash
    baseline_resolved        target, baseline
    change_units_fetched     from_tag, to_ref, commits, pull_requests (debug)
    enrichment_degraded      operation, error, pull_request | issue
    malformed_*_skipped      record or error
    assembly_complete        to_version, from_version, changes, bugs,
                             known_issues
    assembly_failed          version, error

All output goes to stderr. stdout carries only the BuildInformation JSON
printed by the CLI, so `buildmark > build.json` stays valid JSON.

Usage:
    from buildmark.logging_config import setup_logging, get_logger

    setup_logging(environment="production")
    logger = get_logger(__name__)
    logger.info("assembly_started", version="v2.0.0")
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

# Libraries that log one line per HTTP request at INFO
NOISY_LOGGERS = ("httpx", "httpcore")


def setup_logging(
    environment: str | None = None,
    log_level: str | None = None,
) -> None:
    """Configure structured logging for the application.

    In development: Pretty-printed, colorized output for a terminal.
    In production (CI): JSON output, one object per line, for log collectors.

    Args:
        environment: "development" or "production". Reads from
                     ENVIRONMENT env var if not provided.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
                   Reads from LOG_LEVEL env var if not provided.
    """
    env = environment or os.environ.get("ENVIRONMENT", "development")
    level = getattr(logging, (log_level or os.environ.get("LOG_LEVEL", "INFO")).upper())

    if env == "production":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)
    # Request lines are only useful when debugging the GitHub connector
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level if level <= logging.DEBUG else max(level, logging.WARNING))


def get_logger(name: str) -> Any:
    """Return a structlog logger bound to name (typically __name__)."""
    return structlog.get_logger(name)
