"""
Raw DVF ingestion: stream the pipe-delimited file, keep house sales,
drop adjacent duplicates, derive computed fields and batch insert.

- only rows with property type "Maison", sale type "Vente", a price and a
  room count are candidates (everything else is skipped silently)
- duplicate detection compares a candidate with the previous candidate only
- a failed batch insert is logged and skipped (no rollback of earlier
  batches, no retry)
"""
from __future__ import annotations

import csv
import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from tqdm import tqdm

from immotep.core.errors import IngestError
from immotep.core.settings import Settings
from immotep.db.storage import insert_rows
from immotep.ingest import dvf_layout as col
from immotep.ingest.reference_index import ReferenceIndex
from immotep.models import Transaction, UNRESOLVED_ZIP
from immotep.utils.normalize import (
    build_city_code,
    ddmmyyyy_to_date,
    none_if_blank,
    normalize_department_code,
    parse_decimal_comma,
    parse_int,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 500


class RowOutcome(enum.Enum):
    ACCEPTED = "accepted"
    INVALID = "invalid"
    OVERSEAS = "overseas"


@dataclass
class IngestReport:
    lines_read: int = 0
    accepted: int = 0
    duplicates: int = 0
    invalid: int = 0
    overseas: int = 0
    written: int = 0
    failed_batches: int = 0
    # raw rows rejected as invalid, kept for diagnostics
    rejected_rows: List[List[str]] = field(default_factory=list)

    def merge(self, other: "IngestReport") -> None:
        self.lines_read += other.lines_read
        self.accepted += other.accepted
        self.duplicates += other.duplicates
        self.invalid += other.invalid
        self.overseas += other.overseas
        self.written += other.written
        self.failed_batches += other.failed_batches
        self.rejected_rows.extend(other.rejected_rows)


class DuplicateWindow:
    """Single-row lookback: remembers the key of the previous candidate."""

    def __init__(self) -> None:
        self._previous: Optional[Tuple[str, ...]] = None

    def is_duplicate(self, row: Sequence[str]) -> bool:
        key = tuple(row[i] for i in col.DUPLICATE_KEY_COLS)
        duplicate = key == self._previous
        self._previous = key
        return duplicate


def is_candidate(row: Sequence[str]) -> bool:
    if len(row) < col.MIN_COLUMNS:
        return False
    return (
        row[col.PROPERTY_TYPE_COL] == col.HOUSE
        and row[col.SALE_TYPE_COL] == col.SALE
        and row[col.PRICE_COL] != ""
        and row[col.NB_ROOM_COL] != ""
    )


def build_address(row: Sequence[str]) -> str:
    parts = (
        row[col.STREET_NUMBER_COL],
        row[col.STREET_BIS_COL],
        row[col.STREET_TYPE_COL],
        row[col.STREET_COL],
    )
    return " ".join(p.strip() for p in parts if p and p.strip())


def build_transaction(row: Sequence[str], index: ReferenceIndex) -> Tuple[RowOutcome, Optional[Dict]]:
    """
    Candidate row -> transactions row dict.
    Returns (OVERSEAS, None) for non metropolitan departments and
    (INVALID, None) when department, price, built area or date is unusable.
    """
    dep_code = normalize_department_code(row[col.DEP_COL])
    if dep_code is None:
        LOGGER.debug("no department code")
        return RowOutcome.INVALID, None
    if len(dep_code) > 2:
        return RowOutcome.OVERSEAS, None

    city = none_if_blank(row[col.CITY_COL])
    city_code = build_city_code(dep_code, row[col.CITY_CODE_COL])

    # room count is lenient: unparseable -> 0
    nb_room = parse_int(row[col.NB_ROOM_COL])
    if nb_room is None:
        LOGGER.debug("cannot convert room count %r, default 0", row[col.NB_ROOM_COL])
        nb_room = 0

    zip_code = parse_int(row[col.ZIP_COL])
    if zip_code is None:
        zip_code = index.resolve_zip(city_code, city)
        if zip_code == UNRESOLVED_ZIP:
            LOGGER.error("no zip for city_code=%s city=%r", city_code, city)

    valid = True

    price = parse_decimal_comma(row[col.PRICE_COL])
    if price is None:
        LOGGER.debug("no price %r", row[col.PRICE_COL])
        valid = False

    area = parse_int(row[col.HOUSE_AREA_COL])
    if area is None or area <= 0:
        LOGGER.debug("no usable built area %r", row[col.HOUSE_AREA_COL])
        valid = False

    full_area = 0
    if row[col.FULL_AREA_COL] != "":
        parsed = parse_int(row[col.FULL_AREA_COL])
        if parsed is None:
            LOGGER.debug("cannot convert full area %r", row[col.FULL_AREA_COL])
        else:
            full_area = parsed

    sale_date = ddmmyyyy_to_date(row[col.DATE_COL])
    if sale_date is None:
        LOGGER.debug("cannot convert date %r", row[col.DATE_COL])
        valid = False

    if not valid:
        return RowOutcome.INVALID, None

    return RowOutcome.ACCEPTED, {
        "date": sale_date,
        "address": build_address(row),
        "zip_code": zip_code,
        "city": city,
        "city_code": city_code,
        "department_code": dep_code,
        "price": price,
        "price_psqm": price / area,
        "area": area,
        "full_area": full_area,
        "nb_room": nb_room,
        "cadastre": f"{row[col.CITY_CODE_COL]}{row[col.SECTION_COL]}{row[col.PARCEL_COL]}",
        "lat": 0.0,
        "lng": 0.0,
    }


def count_lines(path: str | Path) -> int:
    """Pre-pass used to size the progress bar."""
    count = 0
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(32 * 1024), b""):
                count += chunk.count(b"\n")
    except OSError as e:
        raise IngestError(f"cannot read {path}: {e}") from e
    return count


class RawTransactionLoader:
    def __init__(
        self,
        session_factory: sessionmaker,
        index: ReferenceIndex,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        encoding: str = "utf-8",
        show_progress: bool = True,
    ) -> None:
        self._session_factory = session_factory
        self._index = index
        self._batch_size = batch_size
        self._encoding = encoding
        self._show_progress = show_progress

    def ingest(self, path: str | Path) -> IngestReport:
        report = IngestReport()
        total = count_lines(path)

        try:
            f = open(path, newline="", encoding=self._encoding, errors="replace")
        except OSError as e:
            raise IngestError(f"cannot open {path}: {e}") from e

        with f, self._session_factory() as session:
            reader = csv.reader(f, delimiter=col.DELIMITER, strict=False)
            if next(reader, None) is None:
                LOGGER.warning("%s: cannot read header, nothing to load", path)
                return report

            window = DuplicateWindow()
            batch: List[Dict] = []
            bar = tqdm(total=total, unit="line", disable=not self._show_progress, desc=Path(path).name)
            try:
                for row in reader:
                    report.lines_read += 1
                    bar.update(1)

                    if len(row) < col.MIN_COLUMNS:
                        LOGGER.debug("line %s: short row (%s columns), skipped", report.lines_read + 1, len(row))
                        continue

                    if not is_candidate(row):
                        continue

                    if window.is_duplicate(row):
                        report.duplicates += 1
                        continue

                    outcome, item = build_transaction(row, self._index)
                    if outcome is RowOutcome.OVERSEAS:
                        report.overseas += 1
                        continue
                    if outcome is RowOutcome.INVALID:
                        report.invalid += 1
                        report.rejected_rows.append(list(row))
                        continue

                    report.accepted += 1
                    batch.append(item)
                    if len(batch) >= self._batch_size:
                        self._flush(session, batch, report)
                        batch = []

                if batch:
                    self._flush(session, batch, report)
            finally:
                bar.close()

        LOGGER.info(
            "%s: rows=%s accepted=%s duplicate=%s invalid=%s overseas=%s written=%s failed_batches=%s",
            path, report.lines_read, report.accepted, report.duplicates,
            report.invalid, report.overseas, report.written, report.failed_batches,
        )
        return report

    def _flush(self, session: Session, batch: List[Dict], report: IngestReport) -> None:
        try:
            report.written += insert_rows(session, Transaction, batch)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            report.failed_batches += 1
            LOGGER.error("batch insert failed (%s rows skipped): %s", len(batch), e)


def build_reference_index(session_factory: sessionmaker, zipcode_file: Optional[str] = None, encoding: str = "utf-8") -> ReferenceIndex:
    with session_factory() as session:
        index = ReferenceIndex.from_session(session)
    if zipcode_file:
        index.merge_zipcode_file(zipcode_file, encoding=encoding)
    return index


def ingest_file(
    path: str | Path,
    session_factory: sessionmaker,
    settings: Settings,
    index: Optional[ReferenceIndex] = None,
) -> IngestReport:
    """Ingest one raw file with the configured batch size / progress display."""
    if index is None:
        index = build_reference_index(session_factory, settings.ZIPCODE_FILE, settings.SOURCE_ENCODING)
    loader = RawTransactionLoader(
        session_factory,
        index,
        batch_size=settings.INGEST_BATCH_SIZE,
        encoding=settings.SOURCE_ENCODING,
        show_progress=settings.SHOW_PROGRESS,
    )
    return loader.ingest(path)
