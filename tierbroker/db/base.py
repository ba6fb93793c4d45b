"""Declarative Base — one MetaData for every TierBroker table.

Invariants:
    - Every ORM model inherits from Base; alembic autogenerate reads Base.metadata
    - Constraint and index names are deterministic (NAMING_CONVENTION), so
      migrations can drop or alter them by name on every dialect
"""

from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)
