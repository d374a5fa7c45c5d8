"""Observability module for formcrypt.

Structured logging (structlog) with console output for development and JSON
output for production, plus helpers to redact secrets from logged details.

Example:
    >>> from formcrypt.observability import get_logger
    >>>
    >>> logger = get_logger(__name__)
    >>> logger.info("keypair.loaded", fingerprint="3f1c...")
"""

from formcrypt.observability.logging import (
    LogSettings,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    is_debug_mode,
    reconfigure,
    sanitize_for_logging,
)

__all__ = [
    "LogSettings",
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
    "is_debug_mode",
    "reconfigure",
    "sanitize_for_logging",
]
