# backend/immotep/scripts/compute_stats.py
"""Compute the all-time average price per m² of every region, department and city."""
from __future__ import annotations

import argparse
import logging

from dotenv import load_dotenv

from immotep.core.errors import ImmotepError
from immotep.core.logging_config import setup_logging
from immotep.core.settings import get_settings
from immotep.db import open_database
from immotep.stats.compute import compute_unit_stats

LOGGER = logging.getLogger("compute_stats")


def main(argv=None) -> int:
    load_dotenv(override=False)
    ap = argparse.ArgumentParser(description="compute unit statistics")
    ap.add_argument("--debug", action="store_true")
    args = ap.parse_args(argv)
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, debug=args.debug)

    try:
        updated = compute_unit_stats(open_database(settings))
    except ImmotepError as e:
        LOGGER.error("compute failed: %s", e)
        raise

    LOGGER.info("units updated: %s", updated)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
