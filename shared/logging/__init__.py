"""
Logging Module
==============

Structured logging using structlog with JSON output for production
and colored console output for development.

Usage:
    from shared.logging import get_logger, setup_logging

    # Setup at application start
    setup_logging()

    # Get logger for a module
    logger = get_logger(__name__)

    # Log with context
    logger.info("source_collected", source="eurlex", count=12)
    logger.error("source_collection_failed", source="cnil", error=str(e))
"""

from shared.logging.logger import (
    bind_context,
    get_logger,
    run_context,
    setup_logging,
    unbind_context,
)


__all__ = [
    "get_logger",
    "setup_logging",
    "bind_context",
    "run_context",
    "unbind_context",
]
