"""
Logging Module
==============

Structured logging using structlog with JSON output for production
and colored console output for development.

Usage:
    from zklend.logging import get_logger, setup_logging

    # Setup at application start
    setup_logging()

    # Get logger for a module
    logger = get_logger(__name__)

    # Log with context
    logger.info("zk_proof_generated", proof_type="collateral", proving_time_ms=812)
    logger.warning("zk_verification_rejected", reason="pairing_failed")
"""

from zklend.logging.logger import bind_context, clear_context, get_logger, setup_logging


__all__ = [
    "get_logger",
    "setup_logging",
    "bind_context",
    "clear_context",
]
