"""
Catalog ingestion.

Creates a catalog race from an uploaded GPX, or replaces the GPX of an
existing race. The blob and the row live in different stores with no shared
transaction, so the work runs as a saga:

    upload_gpx  -> put blob            (undo: delete blob)
    hash_gpx    -> sha256 of the bytes
    persist_race -> insert / patch row

The blob is always written before the row that references it. A failed
persist deletes the freshly uploaded blob.
"""

from __future__ import annotations

import logging
import re
import time
import unicodedata
import uuid
from typing import Callable, Optional

from raceplanner.features.gpx import GPXParserService, GpxParseError, ParsedGpx
from raceplanner.shared.constants import GPX_CONTENT_TYPE
from raceplanner.shared.errors import NotFoundError, UnprocessableGpxError, ValidationError
from raceplanner.shared.hashing import content_sha256
from raceplanner.shared.saga import Saga
from raceplanner.stores.base import BlobStore, Record, RecordStore, RecordStoreError
from .schemas import CatalogMetadata

logger = logging.getLogger(__name__)

CATALOG_TABLE = "race_catalog"


def slugify(value: str) -> str:
    """'Ultra Trail du Mont-Blanc®' -> 'ultra-trail-du-mont-blanc'"""
    value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    value = re.sub(r"[^a-z0-9]+", "-", value.lower())
    return value.strip("-") or "race"


def catalog_blob_key(race_id: str, timestamp_ms: int) -> str:
    return f"catalog/{race_id}/{timestamp_ms}.gpx"


class CatalogIngestionService:
    """
    Admin-side GPX ingestion into the race catalog.

    Usage:
        service = CatalogIngestionService(blob_store, record_store)
        race = await service.create_race(gpx_bytes, CatalogMetadata(name="Marathon du Mont"))
        race = await service.replace_gpx(race["id"], new_gpx_bytes)
    """

    def __init__(
        self,
        blob_store: BlobStore,
        records: RecordStore,
        parser: Optional[GPXParserService] = None,
        bucket: str = "race-gpx",
        max_bytes: int = 20 * 1024 * 1024,
        clock: Callable[[], float] = time.time,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self.blob_store = blob_store
        self.records = records
        self.parser = parser or GPXParserService()
        self.bucket = bucket
        self.max_bytes = max_bytes
        self._clock = clock
        self._new_id = id_factory

    # === Validation (no side effects) ===

    def _parse_upload(self, content: Optional[bytes]) -> ParsedGpx:
        # Missing part -> 400; an empty part goes to the parser -> 422
        if content is None:
            raise ValidationError("GPX file is required.")

        if len(content) > self.max_bytes:
            raise ValidationError(f"GPX file is too large (max {self.max_bytes // (1024 * 1024)}MB).")

        try:
            return self.parser.parse(content)
        except GpxParseError as e:
            logger.info(f"Rejected GPX upload: {e}")
            raise UnprocessableGpxError("Invalid GPX file.") from e

    def _new_blob_key(self, race_id: str) -> str:
        return catalog_blob_key(race_id, int(self._clock() * 1000))

    # === Saga ===

    def _saga(
        self,
        name: str,
        content: bytes,
        content_type: str,
        blob_key: str,
        persist: Callable[[str], object],
        persist_failure: str,
    ) -> Saga:
        saga = Saga(name)

        async def upload() -> str:
            await self.blob_store.put(self.bucket, blob_key, content, content_type, upsert=True)
            return blob_key

        async def delete_blob() -> None:
            await self.blob_store.delete(self.bucket, blob_key)

        saga.step("upload_gpx", upload, compensate=delete_blob,
                  failure_message="Unable to upload GPX file.")
        saga.step("hash_gpx", lambda: content_sha256(content))
        saga.step("persist_race", lambda: persist(saga.results["hash_gpx"]),
                  failure_message=persist_failure)
        return saga

    async def create_race(
        self,
        content: Optional[bytes],
        metadata: CatalogMetadata,
        content_type: Optional[str] = None,
    ) -> Record:
        """
        Create a catalog race from a GPX upload.

        The race name falls back to the GPX track name when the form
        leaves it empty.

        Raises:
            ValidationError: Missing/oversized file or no usable name
            UnprocessableGpxError: GPX has no track points
            DependencyError: Upload or insert failed (upload compensated)
        """
        parsed = self._parse_upload(content)

        name = metadata.name or parsed.name
        if not name:
            raise ValidationError("Race name is required.")

        race_id = self._new_id()
        blob_key = self._new_blob_key(race_id)

        async def persist(gpx_sha256: str) -> Record:
            row = {
                "id": race_id,
                "slug": f"{slugify(name)}-{race_id[:8]}",
                "name": name,
                "location_text": metadata.location_text,
                "trace_id": metadata.trace_id,
                "external_site_url": metadata.external_site_url,
                "thumbnail_url": metadata.thumbnail_url,
                "is_live": metadata.is_live,
                "gpx_storage_path": blob_key,
                "gpx_sha256": gpx_sha256,
                **parsed.stats.to_record(),
            }
            created = await self.records.insert(CATALOG_TABLE, row)
            if not created:
                raise RecordStoreError(f"insert on {CATALOG_TABLE} returned no row")
            return created[0]

        saga = self._saga(
            "catalog_create", content, content_type or GPX_CONTENT_TYPE,
            blob_key, persist, "Unable to create race.",
        )
        results = await saga.run()

        logger.info(
            f"Catalog race {race_id} created: '{name}', "
            f"{parsed.stats.distance_km} km, +{parsed.stats.elevation_gain_m} m"
        )
        return results["persist_race"]

    async def replace_gpx(
        self,
        race_id: str,
        content: Optional[bytes],
        content_type: Optional[str] = None,
    ) -> Record:
        """
        Replace the GPX of an existing catalog race and refresh its stats.

        The previous blob is left in place.

        Raises:
            ValidationError / UnprocessableGpxError: As for create_race
            NotFoundError: No race with this id (new blob deleted)
            DependencyError: Upload or update failed (upload compensated)
        """
        parsed = self._parse_upload(content)
        blob_key = self._new_blob_key(race_id)

        async def persist(gpx_sha256: str) -> Record:
            updated = await self.records.patch(
                CATALOG_TABLE,
                {"id": race_id},
                {
                    "gpx_storage_path": blob_key,
                    "gpx_sha256": gpx_sha256,
                    **parsed.stats.to_record(),
                },
            )
            if not updated:
                raise NotFoundError("Race not found.")
            return updated[0]

        saga = self._saga(
            "catalog_replace_gpx", content, content_type or GPX_CONTENT_TYPE,
            blob_key, persist, "Unable to update race.",
        )
        results = await saga.run()

        logger.info(f"Catalog race {race_id} GPX replaced: {blob_key}")
        return results["persist_race"]
