# backend/immotep/scripts/load_reference.py
"""
Load the geographic reference units (regions, departments, cities).

usage: python -m immotep.scripts.load_reference --region regions.geojson \
           --department departements.geojson --city communes.json [--citygeo communes.geojson]
"""
from __future__ import annotations

import argparse
import logging

from dotenv import load_dotenv

from immotep.core.errors import ImmotepError
from immotep.core.logging_config import setup_logging
from immotep.core.settings import get_settings
from immotep.db import open_database
from immotep.reference.load_reference import load_cities, load_departments, load_regions

LOGGER = logging.getLogger("load_reference")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="load regions / departments / cities")
    ap.add_argument("--region", help="regions GeoJSON file")
    ap.add_argument("--department", help="departments GeoJSON file")
    ap.add_argument("--city", help="cities JSON file")
    ap.add_argument("--citygeo", help="cities GeoJSON file (contours)")
    ap.add_argument("--debug", action="store_true")
    return ap


def main(argv=None) -> int:
    load_dotenv(override=False)
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, debug=args.debug)

    if not (args.region or args.department or args.city):
        LOGGER.warning("nothing to load: pass --region, --department and/or --city")
        return 0

    try:
        session_factory = open_database(settings)
        loaded = {}
        if args.region:
            loaded["regions"] = load_regions(session_factory, args.region)
        if args.department:
            loaded["departments"] = load_departments(session_factory, args.department)
        if args.city:
            loaded["cities"] = load_cities(session_factory, args.city, args.citygeo)
    except ImmotepError as e:
        LOGGER.error("load reference failed: %s", e)
        raise

    LOGGER.info("reference loaded: %s", loaded)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
