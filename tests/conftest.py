"""Pytest configuration for repository test runs."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


def pytest_sessionstart() -> None:
    """Add backend directory to sys.path for test imports."""
    project_root = Path(__file__).resolve().parent.parent
    backend_path = project_root / "backend"
    if str(backend_path) not in sys.path:
        sys.path.insert(0, str(backend_path))


@pytest.fixture
def engine(tmp_path):
    """Fresh SQLite database with every table created."""
    from immotep.db import init_db, make_engine

    eng = make_engine(f"sqlite:///{tmp_path / 'immotep.db'}")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    from immotep.db import make_session_factory

    return make_session_factory(engine)


@pytest.fixture
def seeded_units(session_factory):
    """One region, one department and two cities of that department."""
    from immotep.models import City, Department, Region

    with session_factory() as session:
        session.add(Region(code="75", name="Nouvelle-Aquitaine"))
        session.add(Department(code="33", name="Gironde"))
        session.add_all([
            City(code="33063", name="Bordeaux", name_upper="BORDEAUX", zip_code=33000,
                 code_department="33", code_region="75"),
            City(code="33281", name="Mérignac", name_upper="MERIGNAC", zip_code=33700,
                 code_department="33", code_region="75"),
        ])
        session.commit()
    return session_factory
