"""Logging bootstrap for the operator scripts."""
from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s | %(message)s"


def setup_logging(level: str = "INFO", debug: bool = False) -> None:
    """Configure the root logger once per process."""
    resolved = logging.DEBUG if debug else getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    # SQL echo stays off even in debug mode
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
