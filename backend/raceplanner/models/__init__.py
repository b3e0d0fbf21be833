"""
Database models.

Importing this package registers every table on ``Base.metadata``.
"""

from .base import Base
from .catalog import RaceCatalog, RaceCatalogAidStation
from .plan import PlanAidStation, RacePlan
from .subscription import Subscription

__all__ = [
    "Base",
    "RaceCatalog",
    "RaceCatalogAidStation",
    "RacePlan",
    "PlanAidStation",
    "Subscription",
]
