# backend/immotep/db/orm_registry.py
from __future__ import annotations

from typing import TYPE_CHECKING
from sqlalchemy.orm import declarative_base

# single Base shared by every ORM model
Base = declarative_base()

# type-checker hints only, not executed at runtime (avoids import cycles)
if TYPE_CHECKING:  # pragma: no cover
    from immotep.models.transaction import Transaction  # noqa: F401
    from immotep.models.geo_unit import City, Department, Region  # noqa: F401
    from immotep.models.yearly_agg import CityYearlyAgg  # noqa: F401


def import_all_models() -> None:
    """
    Load every model module so their mappers are registered on Base.metadata.
    - called by init_db() and by the Alembic env.
    - imports are deferred to avoid cycles.
    """
    import importlib

    for mod in (
        "immotep.models.transaction",
        "immotep.models.geo_unit",
        "immotep.models.yearly_agg",
    ):
        importlib.import_module(mod)


__all__ = ["Base", "import_all_models"]
