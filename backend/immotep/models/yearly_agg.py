"""Yearly price aggregates, one table per geographic level.

These tables are a disposable cache: the aggregation job truncates and
rebuilds them on every run.
"""
from __future__ import annotations

from sqlalchemy import Column, Float, Integer, Text

from immotep.db.orm_registry import Base


class _YearlyAggColumns:
    code = Column(Text, primary_key=True)
    year = Column(Integer, primary_key=True)
    name = Column(Text, nullable=True)           # unit name at aggregation time
    avg_price = Column(Float, nullable=False)    # avg price / m² for the year
    increase = Column(Float, nullable=False, default=0.0)  # relative change vs previous row


class CityYearlyAgg(_YearlyAggColumns, Base):
    __tablename__ = "city_yearly_aggs"


class DepartmentYearlyAgg(_YearlyAggColumns, Base):
    __tablename__ = "department_yearly_aggs"


class RegionYearlyAgg(_YearlyAggColumns, Base):
    __tablename__ = "region_yearly_aggs"
