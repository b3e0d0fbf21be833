"""Pydantic schemas for plan import."""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class FromCatalogRequest(BaseModel):
    """Body of POST /plans/from-catalog."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    catalog_race_id: UUID = Field(alias="catalogRaceId")


class PlanResponse(BaseModel):
    """Envelope for a single plan row."""

    plan: dict[str, Any]
