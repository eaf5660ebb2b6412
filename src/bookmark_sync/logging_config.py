"""Logging configuration for bookmark-sync."""

import sys

from loguru import logger


def configure_logging(*, verbose: bool = False, quiet: bool = False) -> None:
    """Configure loguru for CLI use.

    Sync diagnostics (skipped records, parked nodes) are WARNING, so ``quiet``
    keeps those and hides the per-cycle INFO summaries.
    """
    logger.remove()
    if verbose:
        level = "DEBUG"
    elif quiet:
        level = "WARNING"
    else:
        level = "INFO"
    logger.add(sys.stderr, level=level, format="{level.icon} {message}")
