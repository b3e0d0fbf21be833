"""
Store collaborators.

Blob store (GPX bytes) and record store (catalog / plan rows). Backends are
picked from settings so local development runs without a Supabase project.
"""

import logging
from typing import Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine

from raceplanner.config import Settings
from .base import BlobStore, BlobStoreError, Record, RecordStore, RecordStoreError, StoreError
from .blob import LocalBlobStore, SupabaseBlobStore
from .records import PostgrestRecordStore
from .sql import SqlRecordStore

logger = logging.getLogger(__name__)


def _service_role_key(settings: Settings) -> str:
    if not settings.supabase_url or not settings.supabase_service_role_key:
        raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required for the supabase backend")
    return settings.supabase_service_role_key


def build_blob_store(settings: Settings, client: httpx.AsyncClient) -> BlobStore:
    """Blob store for ``settings.blob_backend``."""
    if settings.blob_backend == "supabase":
        logger.info("Blob backend: Supabase Storage")
        return SupabaseBlobStore(client, settings.supabase_url, _service_role_key(settings))

    logger.info(f"Blob backend: local directory {settings.local_blob_dir}")
    return LocalBlobStore(settings.local_blob_dir)


def build_record_store(
    settings: Settings,
    client: httpx.AsyncClient,
    engine: Optional[AsyncEngine] = None,
) -> RecordStore:
    """Record store for ``settings.record_backend``."""
    if settings.record_backend == "supabase":
        logger.info("Record backend: PostgREST")
        return PostgrestRecordStore(client, settings.supabase_url, _service_role_key(settings))

    if engine is None:
        raise RuntimeError("The sql record backend needs a database engine")
    logger.info("Record backend: SQLAlchemy")
    return SqlRecordStore(engine)


__all__ = [
    "BlobStore",
    "BlobStoreError",
    "LocalBlobStore",
    "PostgrestRecordStore",
    "Record",
    "RecordStore",
    "RecordStoreError",
    "SqlRecordStore",
    "StoreError",
    "SupabaseBlobStore",
    "build_blob_store",
    "build_record_store",
]
