"""
Plans Routes

Import of catalog races into user plans.
"""

from fastapi import APIRouter, Depends, Request

from raceplanner.api.auth import AuthenticatedUser
from raceplanner.api.deps import (
    get_catalog_import_service,
    get_current_user,
    get_plan_quota_service,
    rate_limit,
)
from raceplanner.features.plans import (
    CatalogImportService,
    FromCatalogRequest,
    PlanQuotaService,
    PlanResponse,
)
from raceplanner.shared.errors import ValidationError

router = APIRouter()


async def read_from_catalog_request(request: Request) -> FromCatalogRequest:
    """Parse the JSON body. Malformed body -> 400."""
    try:
        return FromCatalogRequest.model_validate(await request.json())
    except ValueError:
        raise ValidationError("Invalid request.")


@router.post("/from-catalog", status_code=201, response_model=PlanResponse)
async def create_plan_from_catalog(
    # Body is checked before auth, rate limit and quota
    body: FromCatalogRequest = Depends(read_from_catalog_request),
    user: AuthenticatedUser = Depends(get_current_user),
    _limited: None = Depends(rate_limit("plans-from-catalog")),
    quota: PlanQuotaService = Depends(get_plan_quota_service),
    service: CatalogImportService = Depends(get_catalog_import_service),
):
    """
    Create a plan from a live catalog race.

    Copies the race GPX into the user's plan storage and the aid stations
    into the plan.
    """
    await quota.ensure_can_create_plan(user.id)
    plan = await service.import_from_catalog(user.id, str(body.catalog_race_id))
    return PlanResponse(plan=plan)
