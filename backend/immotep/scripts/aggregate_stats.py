# backend/immotep/scripts/aggregate_stats.py
"""Rebuild the yearly aggregate tables (cities, departments, regions)."""
from __future__ import annotations

import argparse
import logging

from dotenv import load_dotenv

from immotep.core.errors import ImmotepError
from immotep.core.logging_config import setup_logging
from immotep.core.settings import get_settings
from immotep.db import open_database
from immotep.stats.aggregate import aggregate

LOGGER = logging.getLogger("aggregate_stats")


def main(argv=None) -> int:
    load_dotenv(override=False)
    ap = argparse.ArgumentParser(description="aggregate yearly statistics")
    ap.add_argument("--batch", type=int, default=None, help="rows per insert batch (default: AGG_BATCH_SIZE)")
    ap.add_argument("--debug", action="store_true")
    args = ap.parse_args(argv)
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, debug=args.debug)
    if args.batch:
        settings = settings.model_copy(update={"AGG_BATCH_SIZE": args.batch})

    try:
        written = aggregate(open_database(settings), settings)
    except ImmotepError as e:
        LOGGER.error("aggregate failed: %s", e)
        raise

    LOGGER.info("yearly rows written: %s", written)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
