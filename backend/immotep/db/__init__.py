# immotep/db/__init__.py
from .db_connection import init_db, make_engine, make_session_factory, open_database
from .orm_registry import Base

__all__ = ["Base", "init_db", "make_engine", "make_session_factory", "open_database"]
