"""Reference geographic units: region > department > city."""
from __future__ import annotations

from sqlalchemy import Column, Float, Integer, Text

from immotep.db.orm_registry import Base


class Region(Base):
    __tablename__ = "regions"

    code = Column(Text, primary_key=True)
    name = Column(Text, nullable=True)
    contour = Column(Text, nullable=True)        # GeoJSON feature, kept opaque
    avg_price = Column(Float, nullable=True)     # all-time avg price / m²


class Department(Base):
    __tablename__ = "departments"

    code = Column(Text, primary_key=True)
    name = Column(Text, nullable=True)
    contour = Column(Text, nullable=True)
    avg_price = Column(Float, nullable=True)


class City(Base):
    __tablename__ = "cities"

    code = Column(Text, primary_key=True)                 # INSEE code
    name = Column(Text, nullable=True)
    name_upper = Column(Text, nullable=True, index=True)  # upper-cased, accents stripped
    zip_code = Column(Integer, nullable=True)
    population = Column(Integer, nullable=True)
    contour = Column(Text, nullable=True)
    code_department = Column(Text, nullable=True, index=True)
    code_region = Column(Text, nullable=True, index=True)
    avg_price = Column(Float, nullable=True)
