"""SQLAlchemy model for accepted house sale transactions."""
from __future__ import annotations

from sqlalchemy import BigInteger, Column, Date, Float, Integer, Text
from sqlalchemy.dialects import sqlite

from immotep.db.orm_registry import Base

# SQLite only autoincrements an INTEGER PRIMARY KEY
_PK_TYPE = BigInteger().with_variant(sqlite.INTEGER(), "sqlite")

# zip_code value when neither the source nor the reference index knows it
UNRESOLVED_ZIP = -1


class Transaction(Base):
    __tablename__ = "transactions"

    # PK, assigned on insert
    tr_id = Column(_PK_TYPE, primary_key=True, autoincrement=True)

    date = Column(Date, nullable=True, index=True)        # sale date
    address = Column(Text, nullable=True)                 # number + B/T/Q + street type + street
    zip_code = Column(Integer, nullable=True)             # -1 = unresolved
    city = Column(Text, nullable=True)
    city_code = Column(Text, nullable=True, index=True)   # INSEE code (dep + 3 digits)
    department_code = Column(Text, nullable=True, index=True)

    price = Column(Float, nullable=True)
    price_psqm = Column(Float, nullable=True)             # price / area
    area = Column(Integer, nullable=True)                 # built area (m²)
    full_area = Column(Integer, nullable=True)            # parcel area (m²)
    nb_room = Column(Integer, nullable=True)
    cadastre = Column(Text, nullable=True)

    # (0, 0) = not geocoded yet
    lat = Column(Float, nullable=False, default=0.0, server_default="0", index=True)
    lng = Column(Float, nullable=False, default=0.0, server_default="0", index=True)

    def __repr__(self) -> str:
        return f"<Transaction {self.tr_id} {self.date} {self.city_code} {self.price}>"
