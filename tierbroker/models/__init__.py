"""ORM Models — SQLAlchemy declarative models for all hierarchy and pricing entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Actor is the identity every other table points at

Design Decisions:
    - One file per entity (RateConfig and its history share one) for locality
    - All models imported here so Base.metadata is complete before create_all
      or alembic autogenerate runs
"""

from tierbroker.models.actor import Actor  # noqa: F401
from tierbroker.models.hierarchy_edge import HierarchyEdge  # noqa: F401
from tierbroker.models.hierarchy_change import HierarchyChange  # noqa: F401
from tierbroker.models.reference_code import ReferenceCode  # noqa: F401
from tierbroker.models.rate_config import RateConfig, RateConfigHistory  # noqa: F401
from tierbroker.models.job import Job  # noqa: F401
from tierbroker.models.financial_access_audit import FinancialAccessAudit  # noqa: F401
