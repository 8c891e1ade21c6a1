"""Logging configuration for mdfreeze.

This module provides consistent logging across the codebase.

Usage in other modules:
    import logging
    log = logging.getLogger(__name__)

    log.debug("Detailed info for debugging")
    log.info("General operational info")
    log.warning("Unexpected but handled situation")
    log.error("Error that prevented operation")

The log level can be configured via the MDFREEZE_LOG_LEVEL environment variable:
    - DEBUG: Every resolved embed and vault lookup
    - INFO: General operational messages (default)
    - WARNING: Unexpected situations that were handled (e.g. unknown headings)
    - ERROR: Errors that prevented a freeze
"""

import logging
import os
import sys

PACKAGE_LOGGER = "mdfreeze"


def configure_logging() -> None:
    """Configure logging for the mdfreeze package.

    Call this once at application startup (the CLI does it).
    Subsequent calls are no-ops.
    """
    root_logger = logging.getLogger(PACKAGE_LOGGER)

    # Skip if already configured (has handlers)
    if root_logger.handlers:
        return

    level_name = os.environ.get("MDFREEZE_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    # Use a clean format: [level] logger: message
    formatter = logging.Formatter(fmt="[%(levelname)s] %(name)s: %(message)s")
    handler.setFormatter(formatter)

    root_logger.setLevel(level)
    root_logger.addHandler(handler)

    # Prevent propagation to root logger (avoids duplicate messages)
    root_logger.propagate = False


def set_quiet_mode(quiet: bool) -> None:
    """Raise the package log level to ERROR so only failures reach stderr."""
    if not quiet:
        return
    root_logger = logging.getLogger(PACKAGE_LOGGER)
    root_logger.setLevel(logging.ERROR)
    for handler in root_logger.handlers:
        handler.setLevel(logging.ERROR)
