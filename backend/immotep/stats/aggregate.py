"""
Yearly price aggregation per geographic level (city, department, region).

Each level goes through the same pipeline:

    group   -- SQL: AVG(price_psqm) per (unit code, year)
    sort    -- Python: order by (code, year)
    fold    -- one forward pass computing the relative change against the
               previous row of the same code
    write   -- truncate-then-insert in fixed size batches

Every level joins through the city, the single hierarchy
transaction -> city -> department / region.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from immotep.core.settings import Settings
from immotep.db.storage import dialect_name, insert_rows, iter_chunks, truncate, year_of
from immotep.models import (
    City,
    CityYearlyAgg,
    Department,
    DepartmentYearlyAgg,
    Region,
    RegionYearlyAgg,
    Transaction,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 200


@dataclass(frozen=True)
class YearlyAverage:
    code: str
    year: int
    name: Optional[str]
    avg_price: float


@dataclass(frozen=True)
class YearlyTrend:
    code: str
    year: int
    name: Optional[str]
    avg_price: float
    increase: float

    def as_row(self) -> Dict:
        return {
            "code": self.code,
            "year": self.year,
            "name": self.name,
            "avg_price": self.avg_price,
            "increase": self.increase,
        }


def sort_by_code_and_year(rows: Iterable[YearlyAverage]) -> List[YearlyAverage]:
    return sorted(rows, key=lambda r: (r.code, r.year))


def fold_increases(rows: Iterable[YearlyAverage]) -> List[YearlyTrend]:
    """
    Single forward pass over rows already sorted by (code, year).
    increase = (avg - prev_avg) / prev_avg when the previous row has the same
    code, 0 for the first row of a code and when prev_avg is 0.
    """
    out: List[YearlyTrend] = []
    prev_code: Optional[str] = None
    prev_avg = 0.0
    for r in rows:
        increase = 0.0
        if r.code == prev_code and prev_avg != 0:
            increase = (r.avg_price - prev_avg) / prev_avg
        prev_code = r.code
        prev_avg = r.avg_price
        out.append(YearlyTrend(r.code, r.year, r.name, r.avg_price, increase))
    return out


def compute_trends(rows: Iterable[YearlyAverage]) -> List[YearlyTrend]:
    """sort then fold: the fold relies on the ordering."""
    return fold_increases(sort_by_code_and_year(rows))


# ─────────────────────────────
# per level grouped queries
# ─────────────────────────────
def _city_query(year):
    code = Transaction.city_code
    return (
        select(
            year.label("year"),
            code.label("code"),
            func.coalesce(func.min(City.name), func.min(Transaction.city)).label("name"),
            func.avg(Transaction.price_psqm).label("avg_price"),
        )
        .select_from(Transaction)
        .outerjoin(City, City.code == Transaction.city_code)
        .where(code.is_not(None), Transaction.price_psqm.is_not(None))
        .group_by(year, code)
    )


def _department_query(year):
    return (
        select(
            year.label("year"),
            Department.code.label("code"),
            func.min(Department.name).label("name"),
            func.avg(Transaction.price_psqm).label("avg_price"),
        )
        .select_from(Transaction)
        .join(City, City.code == Transaction.city_code)
        .join(Department, Department.code == City.code_department)
        .where(Transaction.price_psqm.is_not(None))
        .group_by(year, Department.code)
    )


def _region_query(year):
    return (
        select(
            year.label("year"),
            Region.code.label("code"),
            func.min(Region.name).label("name"),
            func.avg(Transaction.price_psqm).label("avg_price"),
        )
        .select_from(Transaction)
        .join(City, City.code == Transaction.city_code)
        .join(Region, Region.code == City.code_region)
        .where(Transaction.price_psqm.is_not(None))
        .group_by(year, Region.code)
    )


@dataclass(frozen=True)
class AggregateLevel:
    name: str
    table: type
    query: Callable


LEVELS = (
    AggregateLevel("cities", CityYearlyAgg, _city_query),
    AggregateLevel("departments", DepartmentYearlyAgg, _department_query),
    AggregateLevel("regions", RegionYearlyAgg, _region_query),
)


def read_yearly_averages(session: Session, level: AggregateLevel) -> List[YearlyAverage]:
    year = year_of(Transaction.date, dialect_name(session))
    out: List[YearlyAverage] = []
    for row in session.execute(level.query(year)).mappings():
        if row["year"] is None or row["avg_price"] is None:
            continue
        out.append(YearlyAverage(
            code=row["code"],
            year=int(row["year"]),
            name=row["name"],
            avg_price=float(row["avg_price"]),
        ))
    return out


class YearlyAggregator:
    def __init__(self, session_factory: sessionmaker, *, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        self._session_factory = session_factory
        self._batch_size = batch_size

    def aggregate(self) -> Dict[str, int]:
        """Truncate the three yearly tables and rebuild them. Returns rows written per level."""
        written: Dict[str, int] = {}
        with self._session_factory() as session:
            for level in LEVELS:
                truncate(session, level.table)
            session.commit()

            for level in LEVELS:
                LOGGER.info("aggregate data for %s...", level.name)
                written[level.name] = self._aggregate_level(session, level)

        LOGGER.info("all aggregation done: %s", written)
        return written

    def _aggregate_level(self, session: Session, level: AggregateLevel) -> int:
        trends = compute_trends(read_yearly_averages(session, level))
        if not trends:
            LOGGER.info("nothing to aggregate for %s", level.name)
            return 0

        written = 0
        for part in iter_chunks((t.as_row() for t in trends), self._batch_size):
            try:
                written += insert_rows(session, level.table, part)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                LOGGER.error("aggregate %s: batch of %s rows failed: %s", level.name, len(part), e)
        LOGGER.debug("aggregate %s: %s/%s rows written", level.name, written, len(trends))
        return written


def aggregate(session_factory: sessionmaker, settings: Settings) -> Dict[str, int]:
    return YearlyAggregator(session_factory, batch_size=settings.AGG_BATCH_SIZE).aggregate()
