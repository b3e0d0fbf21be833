"""Pydantic schemas for catalog ingestion."""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class CatalogMetadata(BaseModel):
    """Admin-supplied fields of a new catalog race (multipart form fields)."""

    name: Optional[str] = Field(default=None, max_length=255)
    location_text: Optional[str] = Field(default=None, max_length=255)
    trace_id: Optional[str] = None
    external_site_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    is_live: bool = True

    @field_validator("name", "location_text", "trace_id", "external_site_url", "thumbnail_url")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Empty form fields arrive as '' and mean 'not set'."""
        if v is None:
            return None
        v = v.strip()
        return v or None


class RaceResponse(BaseModel):
    """Envelope for a single catalog race row."""

    race: dict[str, Any]
