"""
API Router v1

Combines all route modules.
"""

from fastapi import APIRouter

from raceplanner.api.v1.routes import plans, race_catalog

api_router = APIRouter()

api_router.include_router(race_catalog.router, prefix="/race-catalog", tags=["Race catalog"])
api_router.include_router(plans.router, prefix="/plans", tags=["Plans"])
