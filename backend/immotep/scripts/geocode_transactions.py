# backend/immotep/scripts/geocode_transactions.py
"""
Backfill transaction coordinates through the batch geocoding service.

  no department           -> incremental run over every ungeocoded row
  departments             -> one run per department (incremental)
  departments + --full    -> re-geocode every row of those departments
"""
from __future__ import annotations

import argparse
import logging

from dotenv import load_dotenv

from immotep.core.errors import ImmotepError
from immotep.core.logging_config import setup_logging
from immotep.core.settings import get_settings
from immotep.db import open_database
from immotep.geocode.ban_client import BanClient
from immotep.geocode.reconcile import ReconcileReport, Selection, reconcile
from immotep.utils.normalize import normalize_department_code

LOGGER = logging.getLogger("geocode_transactions")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="geocode transactions")
    ap.add_argument("departments", nargs="*", help="department codes (e.g. 33 2A 75)")
    ap.add_argument("--full", action="store_true", help="re-geocode every row of the given departments")
    ap.add_argument("--debug", action="store_true")
    return ap


def selections(departments, full: bool):
    if not departments:
        if full:
            LOGGER.warning("--full without department is ignored, running incremental")
        return [Selection(incremental=True)]
    return [Selection(incremental=not full, department=normalize_department_code(d)) for d in departments]


def main(argv=None) -> int:
    load_dotenv(override=False)
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, debug=args.debug)

    total = ReconcileReport()
    try:
        session_factory = open_database(settings)
        client = BanClient(settings.GEOCODE_URL, columns=settings.geocode_columns, timeout=settings.GEOCODE_TIMEOUT)
        try:
            for selection in selections(args.departments, args.full):
                report = reconcile(selection, session_factory, settings, client=client)
                total.selected += report.selected
                total.attempted += report.attempted
                total.updated += report.updated
                total.errored += report.errored
                total.batches += report.batches
        finally:
            client.close()
    except ImmotepError as e:
        LOGGER.error("geocode failed: %s", e)
        raise

    LOGGER.info(
        "geocode summary: attempted=%s updated=%s errored=%s (service calls=%s)",
        total.attempted, total.updated, total.errored, client.calls,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
