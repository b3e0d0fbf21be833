"""
Catalog-to-plan duplication.

Imports a live catalog race into a user's plan:

    copy_gpx            -> store-side copy race-gpx/<key> -> plan-gpx/<user>/<plan>.gpx
                           (undo: delete copy)
    build_payload       -> planner values + frozen stats snapshot
    insert_plan         -> race_plans row     (undo: delete row)
    insert_aid_stations -> plan_aid_stations rows, one bulk insert

A plan whose source race had aid stations is either imported with all of
them or not persisted at all.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Callable

from raceplanner.features.catalog import CATALOG_TABLE
from raceplanner.features.gpx import CourseStats
from raceplanner.shared.errors import ConflictError, DependencyError, NotFoundError
from raceplanner.shared.saga import Saga
from raceplanner.stores.base import BlobStore, Record, RecordStore, RecordStoreError, StoreError

logger = logging.getLogger(__name__)

PLAN_TABLE = "race_plans"
PLAN_AID_STATIONS_TABLE = "plan_aid_stations"
CATALOG_AID_STATIONS_TABLE = "race_catalog_aid_stations"


def plan_blob_key(user_id: str, plan_id: str) -> str:
    return f"{user_id}/{plan_id}.gpx"


# =============================================================================
# Payload mapping
# =============================================================================

def build_planner_values(race: Record, templates: list[Record]) -> dict[str, Any]:
    """Planner values from the catalog row and its aid-station templates, as stored."""
    return {
        "raceDistanceKm": race.get("distance_km"),
        "elevationGain": race.get("elevation_gain_m"),
        "elevationLoss": race.get("elevation_loss_m"),
        "aidStations": [
            {
                "name": station["name"],
                "distanceKm": station["km"],
                "waterRefill": station.get("water_available", True),
                "notes": station.get("notes"),
            }
            for station in templates
        ],
    }


def build_course_stats_snapshot(race: Record) -> dict[str, Any]:
    """Frozen copy of the catalog's course stats (camelCase) plus its GPX hash."""
    stats = CourseStats.from_record(race)
    return {
        "distanceKm": stats.distance_km,
        "elevationGainM": stats.elevation_gain_m,
        "elevationLossM": stats.elevation_loss_m,
        "minAltM": stats.min_alt_m,
        "maxAltM": stats.max_alt_m,
        "startLat": stats.start_lat,
        "startLng": stats.start_lng,
        "boundsMinLat": stats.bounds_min_lat,
        "boundsMinLng": stats.bounds_min_lng,
        "boundsMaxLat": stats.bounds_max_lat,
        "boundsMaxLng": stats.bounds_max_lng,
        "gpxHash": race.get("gpx_sha256"),
    }


def is_plan_stale(plan: Record, race: Record) -> bool:
    """True when the catalog race changed after the plan was imported."""
    imported_at = plan.get("catalog_race_updated_at_at_import")
    current = race.get("updated_at")
    if imported_at is None or current is None:
        return False
    return str(imported_at) != str(current)


# =============================================================================
# Service
# =============================================================================

class CatalogImportService:
    """
    User-side import of a catalog race into a new plan.

    Usage:
        service = CatalogImportService(blob_store, record_store)
        plan = await service.import_from_catalog(user_id, catalog_race_id)
    """

    def __init__(
        self,
        blob_store: BlobStore,
        records: RecordStore,
        catalog_bucket: str = "race-gpx",
        plan_bucket: str = "plan-gpx",
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self.blob_store = blob_store
        self.records = records
        self.catalog_bucket = catalog_bucket
        self.plan_bucket = plan_bucket
        self._new_id = id_factory

    async def _load_race(self, catalog_race_id: str) -> tuple[Record, list[Record]]:
        """Live catalog race and its aid-station templates, read concurrently."""
        try:
            races, templates = await asyncio.gather(
                self.records.select(
                    CATALOG_TABLE,
                    {"id": catalog_race_id, "is_live": True},
                    limit=1,
                ),
                self.records.select(
                    CATALOG_AID_STATIONS_TABLE,
                    {"race_id": catalog_race_id},
                    order=[("order_index", "asc")],
                ),
            )
        except StoreError as e:
            raise DependencyError("Unable to load race.") from e

        if not races:
            raise NotFoundError("Race not found.")

        race = races[0]
        if not race.get("gpx_storage_path"):
            raise ConflictError("This race has no GPX available.")

        return race, templates

    async def import_from_catalog(self, user_id: str, catalog_race_id: str) -> Record:
        """
        Create a plan from a live catalog race.

        Raises:
            NotFoundError: Race missing or not live
            ConflictError: Race has no GPX
            DependencyError: Load, copy or insert failed (completed steps undone)
        """
        catalog_race_id = str(catalog_race_id)
        race, templates = await self._load_race(catalog_race_id)

        plan_id = self._new_id()
        plan_key = plan_blob_key(user_id, plan_id)
        saga = Saga("plan_from_catalog")

        async def copy_gpx() -> str:
            await self.blob_store.copy(
                self.catalog_bucket, race["gpx_storage_path"], self.plan_bucket, plan_key
            )
            return plan_key

        async def delete_copy() -> None:
            await self.blob_store.delete(self.plan_bucket, plan_key)

        def build_payload() -> dict[str, Any]:
            return {
                "planner_values": build_planner_values(race, templates),
                "plan_course_stats": build_course_stats_snapshot(race),
            }

        async def insert_plan() -> Record:
            payload = saga.results["build_payload"]
            created = await self.records.insert(PLAN_TABLE, {
                "id": plan_id,
                "user_id": user_id,
                "name": race["name"],
                "planner_values": payload["planner_values"],
                "catalog_race_id": race["id"],
                "catalog_race_updated_at_at_import": race.get("updated_at"),
                "plan_gpx_path": plan_key,
                "plan_course_stats": payload["plan_course_stats"],
            })
            if not created:
                raise RecordStoreError(f"insert on {PLAN_TABLE} returned no row")
            return created[0]

        async def delete_plan() -> None:
            await self.records.delete(PLAN_TABLE, {"id": plan_id})

        async def insert_aid_stations() -> list[Record]:
            if not templates:
                return []
            return await self.records.insert(PLAN_AID_STATIONS_TABLE, [
                {
                    "plan_id": plan_id,
                    "name": station["name"],
                    "km": station["km"],
                    "water_available": station.get("water_available", True),
                    "notes": station.get("notes"),
                    "order_index": index,
                }
                for index, station in enumerate(templates)
            ])

        saga.step("copy_gpx", copy_gpx, compensate=delete_copy,
                  failure_message="Unable to copy race GPX.")
        saga.step("build_payload", build_payload)
        saga.step("insert_plan", insert_plan, compensate=delete_plan,
                  failure_message="Unable to create plan.")
        saga.step("insert_aid_stations", insert_aid_stations,
                  failure_message="Unable to create plan.")

        results = await saga.run()

        logger.info(
            f"Plan {plan_id} imported from catalog race {catalog_race_id} "
            f"for user {user_id} ({len(templates)} aid stations)"
        )
        return results["insert_plan"]
