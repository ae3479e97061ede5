"""All-time average price per m² stored on each geographic unit (avg_price)."""
from __future__ import annotations

import logging
from typing import Dict

from sqlalchemy import bindparam, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from immotep.db.storage import iter_chunks
from immotep.models import City, Department, Region, Transaction

LOGGER = logging.getLogger(__name__)

BATCH_SIZE = 1000


def _unit_averages(session: Session, code_column, *joins) -> Dict[str, float]:
    stmt = select(code_column, func.avg(Transaction.price_psqm)).select_from(Transaction)
    for target, onclause in joins:
        stmt = stmt.join(target, onclause)
    stmt = stmt.where(Transaction.price_psqm.is_not(None)).group_by(code_column)
    return {code: float(avg) for code, avg in session.execute(stmt) if code is not None and avg is not None}


def _write_averages(session: Session, unit, name: str, averages: Dict[str, float]) -> int:
    if not averages:
        LOGGER.info("nothing to compute for %s", name)
        return 0

    table = unit.__table__
    stmt = (
        update(table)
        .where(table.c.code == bindparam("b_code"))
        .values(avg_price=bindparam("b_avg"))
    )
    updated = 0
    for part in iter_chunks(sorted(averages.items()), BATCH_SIZE):
        try:
            session.connection().execute(stmt, [{"b_code": c, "b_avg": a} for c, a in part])
            session.commit()
            updated += len(part)
        except SQLAlchemyError as e:
            session.rollback()
            LOGGER.error("compute %s: update of %s units failed: %s", name, len(part), e)
    return updated


def compute_unit_stats(session_factory: sessionmaker) -> Dict[str, int]:
    """Regions, then departments, then cities. Returns units updated per level."""
    result: Dict[str, int] = {}
    with session_factory() as session:
        LOGGER.info("compute stat for regions...")
        regions = _unit_averages(
            session, Region.code,
            (City, City.code == Transaction.city_code),
            (Region, Region.code == City.code_region),
        )
        result["regions"] = _write_averages(session, Region, "regions", regions)

        LOGGER.info("compute stat for departments...")
        departments = _unit_averages(
            session, Department.code,
            (City, City.code == Transaction.city_code),
            (Department, Department.code == City.code_department),
        )
        result["departments"] = _write_averages(session, Department, "departments", departments)

        LOGGER.info("compute stat for cities...")
        cities = _unit_averages(
            session, City.code,
            (City, City.code == Transaction.city_code),
        )
        result["cities"] = _write_averages(session, City, "cities", cities)

    LOGGER.info("all stat computed: %s", result)
    return result
