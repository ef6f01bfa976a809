"""Logging configuration for PromoterForge.

Modules log through ``logging.getLogger(__name__)``; this module wires
the ``promoterforge`` logger to a rich console handler and, optionally,
a plain-text log file.

Example:
    >>> from promoterforge.utils.logging import setup_logging, Timer
    >>> setup_logging(verbosity=2)
    >>> with Timer("Parsing annotation", logger):
    ...     records = read_annotation("genes.gff3", "gff3")
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any

from rich.logging import RichHandler

# =============================================================================
# Constants
# =============================================================================

LOGGER_NAME = "promoterforge"

# File log format
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Rich console format
RICH_FORMAT = "%(message)s"

# Log levels by verbosity
VERBOSITY_LEVELS = {
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
}


# =============================================================================
# Setup Functions
# =============================================================================


def setup_logging(
    verbosity: int = 1,
    log_file: Path | str | None = None,
) -> logging.Logger:
    """Configure logging for PromoterForge.

    Args:
        verbosity: Verbosity level (0=warning, 1=info, 2=debug).
        log_file: Optional file that receives DEBUG-level records.

    Returns:
        The package logger.
    """
    level = VERBOSITY_LEVELS.get(verbosity, logging.DEBUG)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if log_file is not None else level)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    console_handler = RichHandler(
        rich_tracebacks=True,
        show_time=False,
        show_path=False,
    )
    console_handler.setFormatter(logging.Formatter(RICH_FORMAT))
    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
        file_handler.setLevel(logging.DEBUG)
        logger.addHandler(file_handler)

    return logger


# =============================================================================
# Progress Logging
# =============================================================================


class ProgressLogger:
    """Periodic progress messages for long per-gene loops.

    Example:
        >>> progress = ProgressLogger(logger, total=27000, interval=5000)
        >>> for locus in loci:
        ...     extract(locus)
        ...     progress.update()
    """

    def __init__(
        self,
        logger: logging.Logger,
        total: int,
        interval: int = 100,
        description: str = "Processing",
    ) -> None:
        self.logger = logger
        self.total = total
        self.interval = max(1, interval)
        self.description = description
        self.count = 0

    def update(self, n: int = 1) -> None:
        """Advance the counter and log every `interval` items."""
        self.count += n
        if self.count % self.interval == 0 or self.count == self.total:
            pct = 100 * self.count / self.total if self.total > 0 else 100
            self.logger.debug(
                f"{self.description}: {self.count}/{self.total} ({pct:.1f}%)"
            )


# =============================================================================
# Timing Utilities
# =============================================================================


class Timer:
    """Context manager for timing pipeline stages.

    Example:
        >>> with Timer("Consolidating loci", logger):
        ...     consolidate_loci(records)
        # Logs: "Consolidating loci completed in 0.42s"
    """

    def __init__(self, description: str, logger: logging.Logger) -> None:
        self.description = description
        self.logger = logger
        self.start_time: float = 0
        self.elapsed: float = 0

    def __enter__(self) -> Timer:
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        self.elapsed = time.perf_counter() - self.start_time
        self.logger.debug(f"{self.description} completed in {self.elapsed:.2f}s")
