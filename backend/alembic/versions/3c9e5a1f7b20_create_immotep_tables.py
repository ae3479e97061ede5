"""create transactions, reference units and yearly aggregates

Revision ID: 3c9e5a1f7b20
Revises:
Create Date: 2026-10-19 10:12:41.208533
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import sqlite

# revision identifiers, used by Alembic.
revision: str = "3c9e5a1f7b20"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_UNIT_TABLES = ("regions", "departments")
_YEARLY_TABLES = ("city_yearly_aggs", "department_yearly_aggs", "region_yearly_aggs")


def upgrade() -> None:
    """Upgrade schema: create every table used by the batch jobs."""
    op.create_table(
        "transactions",
        sa.Column("tr_id", sa.BigInteger().with_variant(sqlite.INTEGER(), "sqlite"), primary_key=True, autoincrement=True),
        sa.Column("date", sa.Date(), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("zip_code", sa.Integer(), nullable=True),
        sa.Column("city", sa.Text(), nullable=True),
        sa.Column("city_code", sa.Text(), nullable=True),
        sa.Column("department_code", sa.Text(), nullable=True),
        sa.Column("price", sa.Float(), nullable=True),
        sa.Column("price_psqm", sa.Float(), nullable=True),
        sa.Column("area", sa.Integer(), nullable=True),
        sa.Column("full_area", sa.Integer(), nullable=True),
        sa.Column("nb_room", sa.Integer(), nullable=True),
        sa.Column("cadastre", sa.Text(), nullable=True),
        sa.Column("lat", sa.Float(), nullable=False, server_default="0"),
        sa.Column("lng", sa.Float(), nullable=False, server_default="0"),
    )
    for col in ("date", "city_code", "department_code", "lat", "lng"):
        op.create_index(f"ix_transactions_{col}", "transactions", [col])

    for name in _UNIT_TABLES:
        op.create_table(
            name,
            sa.Column("code", sa.Text(), primary_key=True),
            sa.Column("name", sa.Text(), nullable=True),
            sa.Column("contour", sa.Text(), nullable=True),
            sa.Column("avg_price", sa.Float(), nullable=True),
        )

    op.create_table(
        "cities",
        sa.Column("code", sa.Text(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=True),
        sa.Column("name_upper", sa.Text(), nullable=True),
        sa.Column("zip_code", sa.Integer(), nullable=True),
        sa.Column("population", sa.Integer(), nullable=True),
        sa.Column("contour", sa.Text(), nullable=True),
        sa.Column("code_department", sa.Text(), nullable=True),
        sa.Column("code_region", sa.Text(), nullable=True),
        sa.Column("avg_price", sa.Float(), nullable=True),
    )
    for col in ("name_upper", "code_department", "code_region"):
        op.create_index(f"ix_cities_{col}", "cities", [col])

    for name in _YEARLY_TABLES:
        op.create_table(
            name,
            sa.Column("code", sa.Text(), primary_key=True),
            sa.Column("year", sa.Integer(), primary_key=True),
            sa.Column("name", sa.Text(), nullable=True),
            sa.Column("avg_price", sa.Float(), nullable=False),
            sa.Column("increase", sa.Float(), nullable=False),
        )


def downgrade() -> None:
    """Downgrade schema: drop everything."""
    for name in reversed(_YEARLY_TABLES):
        op.drop_table(name)
    for col in ("name_upper", "code_department", "code_region"):
        op.drop_index(f"ix_cities_{col}", table_name="cities")
    op.drop_table("cities")
    for name in reversed(_UNIT_TABLES):
        op.drop_table(name)
    for col in ("date", "city_code", "department_code", "lat", "lng"):
        op.drop_index(f"ix_transactions_{col}", table_name="transactions")
    op.drop_table("transactions")
