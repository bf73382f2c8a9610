from __future__ import annotations

import sys

from loguru import logger


def configure_logging(level: str = "INFO") -> None:
    """Route loguru output to stderr at the requested level.

    stdout is reserved for the JSON the CLI prints.
    """

    logger.remove()
    logger.add(sys.stderr, level=level)
