"""Root logger configuration for the CLI."""
from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger; unknown level names fall back to INFO."""
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO

    logging.basicConfig(format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT, force=True)
    logging.getLogger().setLevel(resolved)
    # the price fetcher's HTTP client is chatty at DEBUG
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
