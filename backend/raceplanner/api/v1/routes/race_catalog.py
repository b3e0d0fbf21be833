"""
Race Catalog Routes

Admin endpoints for creating catalog races from GPX files and replacing
their GPX.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile

from raceplanner.api.auth import AuthenticatedUser
from raceplanner.api.deps import get_catalog_ingestion_service, rate_limit, require_admin
from raceplanner.features.catalog import CatalogIngestionService, CatalogMetadata, RaceResponse
from raceplanner.shared.errors import ValidationError

router = APIRouter()


async def _read_upload(gpx: Optional[UploadFile], max_bytes: int) -> tuple[Optional[bytes], Optional[str]]:
    """
    Read an uploaded GPX part.

    Returns (None, None) when the part is missing. At most max_bytes + 1
    bytes are read, enough for the service to tell the file is too large.
    """
    if gpx is None:
        return None, None
    content = await gpx.read(max_bytes + 1)
    return content, gpx.content_type or None


@router.post("", status_code=201, response_model=RaceResponse)
async def create_catalog_race(
    gpx: Optional[UploadFile] = File(default=None),
    name: Optional[str] = Form(default=None, max_length=255),
    location_text: Optional[str] = Form(default=None, max_length=255),
    trace_id: Optional[str] = Form(default=None),
    external_site_url: Optional[str] = Form(default=None),
    thumbnail_url: Optional[str] = Form(default=None),
    is_live: bool = Form(default=True),
    admin: AuthenticatedUser = Depends(require_admin),
    _limited: None = Depends(rate_limit("race-catalog-create")),
    service: CatalogIngestionService = Depends(get_catalog_ingestion_service),
):
    """
    Create a catalog race from an uploaded GPX.

    The race name defaults to the GPX track name.
    """
    content, content_type = await _read_upload(gpx, service.max_bytes)
    metadata = CatalogMetadata(
        name=name,
        location_text=location_text,
        trace_id=trace_id,
        external_site_url=external_site_url,
        thumbnail_url=thumbnail_url,
        is_live=is_live,
    )
    race = await service.create_race(content, metadata, content_type=content_type)
    return RaceResponse(race=race)


@router.put("/{race_id}/gpx", response_model=RaceResponse)
async def replace_catalog_race_gpx(
    race_id: str,
    gpx: Optional[UploadFile] = File(default=None),
    admin: AuthenticatedUser = Depends(require_admin),
    _limited: None = Depends(rate_limit("race-catalog-update")),
    service: CatalogIngestionService = Depends(get_catalog_ingestion_service),
):
    """Replace the GPX of a catalog race and refresh its course stats."""
    try:
        race_id = str(UUID(race_id))
    except ValueError:
        raise ValidationError("Invalid race id.")

    content, content_type = await _read_upload(gpx, service.max_bytes)
    race = await service.replace_gpx(race_id, content, content_type=content_type)
    return RaceResponse(race=race)
