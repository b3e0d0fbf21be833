"""
Plans feature.

Import of catalog races into user plans and the plan quota check.
"""

from .duplication import (
    CatalogImportService,
    build_course_stats_snapshot,
    build_planner_values,
    is_plan_stale,
    plan_blob_key,
)
from .entitlements import PlanQuotaService
from .schemas import FromCatalogRequest, PlanResponse

__all__ = [
    "CatalogImportService",
    "FromCatalogRequest",
    "PlanQuotaService",
    "PlanResponse",
    "build_course_stats_snapshot",
    "build_planner_values",
    "is_plan_stale",
    "plan_blob_key",
]
