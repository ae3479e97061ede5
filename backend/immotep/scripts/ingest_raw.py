# backend/immotep/scripts/ingest_raw.py
"""
Ingest one or more raw DVF files (pipe delimited), one after the other.

usage: python -m immotep.scripts.ingest_raw valeursfoncieres-2019.txt valeursfoncieres-2020.txt
"""
from __future__ import annotations

import argparse
import logging

from dotenv import load_dotenv

from immotep.core.errors import ImmotepError
from immotep.core.logging_config import setup_logging
from immotep.core.settings import get_settings
from immotep.db import open_database
from immotep.ingest.raw_loader import IngestReport, build_reference_index, ingest_file

LOGGER = logging.getLogger("ingest_raw")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="ingest raw DVF transaction files")
    ap.add_argument("files", nargs="+", help="pipe delimited DVF files")
    ap.add_argument("--zipcode-file", help="semicolon delimited INSEE code / city / zip file (default: ZIPCODE_FILE)")
    ap.add_argument("--no-progress", action="store_true", help="hide the progress bar")
    ap.add_argument("--debug", action="store_true")
    return ap


def main(argv=None) -> int:
    load_dotenv(override=False)
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, debug=args.debug)

    if args.no_progress:
        settings = settings.model_copy(update={"SHOW_PROGRESS": False})
    zipcode_file = args.zipcode_file or settings.ZIPCODE_FILE

    total = IngestReport()
    try:
        session_factory = open_database(settings)
        index = build_reference_index(session_factory, zipcode_file, settings.SOURCE_ENCODING)
        LOGGER.info("reference index ready: %s cities", len(index))
        for path in args.files:
            LOGGER.info("ingest %s...", path)
            total.merge(ingest_file(path, session_factory, settings, index=index))
    except ImmotepError as e:
        LOGGER.error("ingest failed: %s", e)
        raise

    LOGGER.info(
        "ingest done (%s files): accepted=%s duplicate=%s invalid=%s overseas=%s written=%s failed_batches=%s",
        len(args.files), total.accepted, total.duplicates, total.invalid,
        total.overseas, total.written, total.failed_batches,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
