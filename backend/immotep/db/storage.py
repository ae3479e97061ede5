# backend/immotep/db/storage.py
"""
Storage boundary used by the batch jobs.

Only the operations the jobs need live here: batched insert, upsert by key,
conditional count, truncate and the dialect specific year expression.
"""
from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Sequence, TypeVar

from sqlalchemy import Integer, cast, delete, extract, func, insert, select, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from immotep.core.errors import StorageError

T = TypeVar("T")

# keeps a multi-row VALUES statement under SQLite's bound parameter limit
UPSERT_CHUNK = 500


def iter_chunks(items: Iterable[T], size: int) -> Iterator[List[T]]:
    buf: List[T] = []
    for x in items:
        buf.append(x)
        if len(buf) >= size:
            yield buf
            buf = []
    if buf:
        yield buf


def dialect_name(session: Session) -> str:
    return session.get_bind().dialect.name


def insert_rows(session: Session, model, rows: Sequence[Dict]) -> int:
    """Plain executemany INSERT. Returns the number of rows sent."""
    if not rows:
        return 0
    session.execute(insert(model), list(rows))
    return len(rows)


def upsert_rows(
    session: Session,
    model,
    rows: Sequence[Dict],
    *,
    key: str,
    update_columns: Sequence[str],
) -> int:
    """
    INSERT ... ON CONFLICT (key) DO UPDATE SET <update_columns>.
    Every row must carry the same keys.
    """
    if not rows:
        return 0

    name = dialect_name(session)
    if name == "postgresql":
        dialect_insert = postgresql.insert
    elif name == "sqlite":
        dialect_insert = sqlite.insert
    else:
        raise StorageError(f"upsert not supported for dialect '{name}'")

    table = model.__table__
    written = 0
    for part in iter_chunks(rows, UPSERT_CHUNK):
        stmt = dialect_insert(table).values(part)
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c[key]],
            set_={col: getattr(stmt.excluded, col) for col in update_columns},
        )
        session.execute(stmt, execution_options={"synchronize_session": False})
        written += len(part)
    return written


def count_where(session: Session, model, *criteria) -> int:
    stmt = select(func.count()).select_from(model)
    if criteria:
        stmt = stmt.where(*criteria)
    return int(session.execute(stmt).scalar_one())


def truncate(session: Session, model) -> None:
    """Empty a table. SQLite has no TRUNCATE, it gets a DELETE instead."""
    table = model.__table__
    if dialect_name(session) == "postgresql":
        session.execute(text(f'TRUNCATE TABLE "{table.name}"'))
    else:
        session.execute(delete(table))


def year_of(column, dialect: str):
    """
    Year extracted from a DATE column, as an integer.
    - sqlite: CAST(strftime('%Y', col) AS INTEGER)
    - postgresql (and others): CAST(EXTRACT(year FROM col) AS INTEGER)
    """
    if dialect == "sqlite":
        return cast(func.strftime("%Y", column), Integer)
    return cast(extract("year", column), Integer)


__all__ = [
    "count_where",
    "dialect_name",
    "insert_rows",
    "iter_chunks",
    "truncate",
    "upsert_rows",
    "year_of",
]
