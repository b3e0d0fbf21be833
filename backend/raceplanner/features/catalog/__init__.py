"""
Race catalog feature.

Admin ingestion of GPX tracks into the catalog.
"""

from .ingestion import CATALOG_TABLE, CatalogIngestionService, catalog_blob_key, slugify
from .schemas import CatalogMetadata, RaceResponse

__all__ = [
    "CATALOG_TABLE",
    "CatalogIngestionService",
    "CatalogMetadata",
    "RaceResponse",
    "catalog_blob_key",
    "slugify",
]
