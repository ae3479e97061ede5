"""
Geocoding reconciliation: backfill transaction coordinates from the
batch geocoding service.

Policy:
  - incremental selection = rows still at (0, 0), optionally one department
  - full selection = one department (re-geocode) or everything
  - batch size adapts to the selection: clamp(count / 100, 100, 5000)
  - batches are serial: request, parse, upsert, then the next batch
  - a failed batch (HTTP or storage) is counted and skipped, never retried
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from sqlalchemy import and_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from immotep.core.errors import GeocodeError
from immotep.core.settings import Settings
from immotep.db.storage import count_where, upsert_rows
from immotep.geocode.ban_client import BanClient, build_payload
from immotep.geocode.response_parser import BAN_LAYOUT, GeocodedRow, ResponseLayout, parse_response
from immotep.models import Transaction

LOGGER = logging.getLogger(__name__)

MIN_BATCH = 100
MAX_BATCH = 5000

UPDATE_COLUMNS = ("lat", "lng", "address", "city", "zip_code")

# (tr_id, address, zip_code, city)
RequestRow = Tuple[int, Optional[str], Optional[int], Optional[str]]


@dataclass(frozen=True)
class Selection:
    incremental: bool = True
    department: Optional[str] = None


@dataclass
class ReconcileReport:
    selected: int = 0
    attempted: int = 0
    updated: int = 0
    errored: int = 0
    batches: int = 0


def adaptive_batch_size(count: int, minimum: int = MIN_BATCH, maximum: int = MAX_BATCH) -> int:
    return max(minimum, min(count // 100, maximum))


def selection_criteria(selection: Selection) -> list:
    criteria = []
    if selection.incremental:
        criteria.append(and_(Transaction.lat == 0, Transaction.lng == 0))
    if selection.department:
        criteria.append(Transaction.department_code == selection.department)
    return criteria


def merge_update(sent: RequestRow, got: GeocodedRow) -> Dict:
    """Service values win; an empty service field keeps what was sent."""
    tr_id, address, zip_code, city = sent
    return {
        "tr_id": tr_id,
        "lat": got.lat,
        "lng": got.lng,
        "address": got.address or address,
        "city": got.city or city,
        "zip_code": got.zip_code if got.zip_code is not None else zip_code,
    }


class GeocodeReconciler:
    def __init__(
        self,
        session_factory: sessionmaker,
        client: BanClient,
        *,
        layout: ResponseLayout = BAN_LAYOUT,
        min_batch: int = MIN_BATCH,
        max_batch: int = MAX_BATCH,
        throttle: float = 0.0,
    ) -> None:
        self._session_factory = session_factory
        self._client = client
        self._layout = layout
        self._min_batch = min_batch
        self._max_batch = max_batch
        self._throttle = throttle

    def reconcile(self, selection: Selection) -> ReconcileReport:
        report = ReconcileReport()
        criteria = selection_criteria(selection)

        with self._session_factory() as session:
            report.selected = count_where(session, Transaction, *criteria)
            if report.selected == 0:
                LOGGER.info("geocode: nothing to do (incremental=%s dep=%s)", selection.incremental, selection.department)
                return report

            batch_size = adaptive_batch_size(report.selected, self._min_batch, self._max_batch)
            LOGGER.info(
                "geocode: %s rows selected (incremental=%s dep=%s) batch_size=%s",
                report.selected, selection.incremental, selection.department, batch_size,
            )

            last_id = 0
            while True:
                rows = self._fetch_batch(session, criteria, last_id, batch_size)
                if not rows:
                    break
                last_id = rows[-1][0]
                report.batches += 1

                self._process_batch(session, rows, report)
                LOGGER.info(
                    "geocode: batch %s (size %s) updated %s/%s, errors %s",
                    report.batches, len(rows), report.updated, report.selected, report.errored,
                )
                if self._throttle:
                    time.sleep(self._throttle)

        LOGGER.info(
            "geocode done: attempted=%s updated=%s errored=%s",
            report.attempted, report.updated, report.errored,
        )
        return report

    def _fetch_batch(self, session: Session, criteria: list, last_id: int, batch_size: int) -> List[RequestRow]:
        # keyset paging on tr_id: rows updated by a previous batch do not shift the window
        stmt = (
            select(Transaction.tr_id, Transaction.address, Transaction.zip_code, Transaction.city)
            .where(Transaction.tr_id > last_id, *criteria)
            .order_by(Transaction.tr_id)
            .limit(batch_size)
        )
        return [tuple(r) for r in session.execute(stmt).all()]

    def _process_batch(self, session: Session, rows: List[RequestRow], report: ReconcileReport) -> None:
        report.attempted += len(rows)
        try:
            body = self._client.geocode_csv(build_payload(rows))
        except GeocodeError as e:
            report.errored += len(rows)
            LOGGER.error("geocode: batch of %s skipped: %s", len(rows), e)
            return

        # every sent row that does not end up updated counts as errored,
        # so attempted == updated + errored for each batch
        sent = {r[0]: r for r in rows}
        updates: Dict[int, Dict] = {}
        for parsed in parse_response(body, self._layout):
            if not isinstance(parsed, GeocodedRow):
                LOGGER.debug("geocode: cannot use row (%s): %s", parsed.reason, parsed.raw)
                continue
            request_row = sent.get(parsed.tr_id)
            if request_row is None:
                LOGGER.debug("geocode: unknown trid %s in answer", parsed.tr_id)
                continue
            updates[parsed.tr_id] = merge_update(request_row, parsed)

        missing = len(rows) - len(updates)
        if missing:
            report.errored += missing
            LOGGER.debug("geocode: %s of %s rows not resolved in this batch", missing, len(rows))

        if not updates:
            return

        try:
            upsert_rows(
                session,
                Transaction,
                list(updates.values()),
                key="tr_id",
                update_columns=UPDATE_COLUMNS,
            )
            session.commit()
            report.updated += len(updates)
        except SQLAlchemyError as e:
            session.rollback()
            report.errored += len(updates)
            LOGGER.error("geocode: upsert of %s rows failed: %s", len(updates), e)


def reconcile(
    selection: Selection,
    session_factory: sessionmaker,
    settings: Settings,
    client: Optional[BanClient] = None,
) -> ReconcileReport:
    """Run one reconciliation with the configured endpoint and batch bounds."""
    own_client = client is None
    if client is None:
        client = BanClient(settings.GEOCODE_URL, columns=settings.geocode_columns, timeout=settings.GEOCODE_TIMEOUT)
    try:
        reconciler = GeocodeReconciler(
            session_factory,
            client,
            min_batch=settings.GEOCODE_MIN_BATCH,
            max_batch=settings.GEOCODE_MAX_BATCH,
            throttle=settings.GEOCODE_THROTTLE,
        )
        return reconciler.reconcile(selection)
    finally:
        if own_client:
            client.close()
