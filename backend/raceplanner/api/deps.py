"""
FastAPI dependencies.

Stores and the HTTP client are created once in the application lifespan and
kept on ``app.state``; services are cheap and built per request.
"""

from typing import Optional

import httpx
from fastapi import Depends, Header, Request

from raceplanner.config import Settings
from raceplanner.features.catalog import CatalogIngestionService
from raceplanner.features.gpx import GPXParserService
from raceplanner.features.plans import CatalogImportService, PlanQuotaService
from raceplanner.shared.errors import AuthenticationError, PermissionDeniedError, RateLimitedError
from raceplanner.stores.base import BlobStore, RecordStore
from .auth import AuthenticatedUser, SupabaseAuthClient, extract_bearer_token
from .rate_limit import RateLimiter


# === App state ===

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


def get_record_store(request: Request) -> RecordStore:
    return request.app.state.record_store


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


# === Services ===

def get_catalog_ingestion_service(
    settings: Settings = Depends(get_settings),
    blob_store: BlobStore = Depends(get_blob_store),
    records: RecordStore = Depends(get_record_store),
) -> CatalogIngestionService:
    return CatalogIngestionService(
        blob_store,
        records,
        parser=GPXParserService(settings.elevation_noise_threshold_m),
        bucket=settings.catalog_gpx_bucket,
        max_bytes=settings.max_gpx_bytes,
    )


def get_catalog_import_service(
    settings: Settings = Depends(get_settings),
    blob_store: BlobStore = Depends(get_blob_store),
    records: RecordStore = Depends(get_record_store),
) -> CatalogImportService:
    return CatalogImportService(
        blob_store,
        records,
        catalog_bucket=settings.catalog_gpx_bucket,
        plan_bucket=settings.plan_gpx_bucket,
    )


def get_plan_quota_service(
    settings: Settings = Depends(get_settings),
    records: RecordStore = Depends(get_record_store),
) -> PlanQuotaService:
    return PlanQuotaService(records, free_plan_limit=settings.free_plan_limit)


# === Auth ===

async def get_current_user(
    authorization: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> AuthenticatedUser:
    """Resolve the bearer token to a user (401 otherwise)."""
    token = extract_bearer_token(authorization)
    if not token:
        raise AuthenticationError("Missing access token.")

    auth = SupabaseAuthClient(client, settings.supabase_url, settings.supabase_anon_key)
    user = await auth.get_user(token)
    if user is None:
        raise AuthenticationError("Invalid session.")
    return user


async def require_admin(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
    if not user.is_admin:
        raise PermissionDeniedError("Not authorized.")
    return user


def rate_limit(scope: str):
    """Dependency factory: per-user rate limit for one route."""

    async def check(
        user: AuthenticatedUser = Depends(get_current_user),
        settings: Settings = Depends(get_settings),
        limiter: RateLimiter = Depends(get_rate_limiter),
    ) -> None:
        if not settings.rate_limit_enabled:
            return
        retry_after = await limiter.check_and_increment(f"{scope}:{user.id}")
        if retry_after is not None:
            raise RateLimitedError(retry_after)

    return check
