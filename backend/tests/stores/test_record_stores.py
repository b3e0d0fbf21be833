"""
Tests for the record store backends.

PostgrestRecordStore runs against httpx.MockTransport; SqlRecordStore against
an in-memory sqlite database.
"""

import json

import httpx
import pytest

from raceplanner.db.session import create_engine_for, init_models
from raceplanner.stores import PostgrestRecordStore, RecordStoreError, SqlRecordStore

BASE_URL = "https://project.supabase.co"
KEY = "service-role-key"


def _postgrest(handler) -> tuple[PostgrestRecordStore, httpx.AsyncClient]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return PostgrestRecordStore(client, BASE_URL, KEY), client


# =============================================================================
# PostgREST
# =============================================================================

class TestPostgrestRecordStore:

    async def test_insert_returns_representation(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(201, json=[{"id": "r1", "name": "Race"}])

        store, client = _postgrest(handler)
        async with client:
            rows = await store.insert("race_catalog", {"id": "r1", "name": "Race"})

        request = seen[0]
        assert rows == [{"id": "r1", "name": "Race"}]
        assert request.method == "POST"
        assert str(request.url) == f"{BASE_URL}/rest/v1/race_catalog"
        assert request.headers["prefer"] == "return=representation"
        assert request.headers["apikey"] == KEY
        assert json.loads(request.content) == {"id": "r1", "name": "Race"}

    async def test_bulk_insert_sends_array(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(201, json=json.loads(request.content))

        store, client = _postgrest(handler)
        async with client:
            rows = await store.insert("plan_aid_stations", [{"name": "A"}, {"name": "B"}])

        assert json.loads(seen[0].content) == [{"name": "A"}, {"name": "B"}]
        assert len(rows) == 2

    async def test_patch_uses_equality_filters(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=[{"id": "r1", "gpx_sha256": "abc"}])

        store, client = _postgrest(handler)
        async with client:
            rows = await store.patch("race_catalog", {"id": "r1"}, {"gpx_sha256": "abc"})

        assert seen[0].method == "PATCH"
        assert seen[0].url.params["id"] == "eq.r1"
        assert rows[0]["gpx_sha256"] == "abc"

    async def test_patch_matching_nothing_returns_empty(self):
        store, client = _postgrest(lambda request: httpx.Response(200, json=[]))
        async with client:
            assert await store.patch("race_catalog", {"id": "missing"}, {"name": "x"}) == []

    async def test_select_params(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=[])

        store, client = _postgrest(handler)
        async with client:
            await store.select(
                "race_catalog_aid_stations",
                {"race_id": "r1", "is_live": True, "notes": None},
                columns=["id", "name"],
                order=[("order_index", "asc")],
                limit=5,
            )

        params = seen[0].url.params
        assert params["race_id"] == "eq.r1"
        assert params["is_live"] == "eq.true"
        assert params["notes"] == "is.null"
        assert params["select"] == "id,name"
        assert params["order"] == "order_index.asc"
        assert params["limit"] == "5"

    async def test_delete(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(204)

        store, client = _postgrest(handler)
        async with client:
            await store.delete("race_plans", {"id": "p1"})

        assert seen[0].method == "DELETE"
        assert seen[0].url.params["id"] == "eq.p1"

    async def test_unfiltered_writes_refused(self):
        store, client = _postgrest(lambda request: httpx.Response(204))
        async with client:
            with pytest.raises(ValueError):
                await store.delete("race_plans", {})
            with pytest.raises(ValueError):
                await store.patch("race_plans", {}, {"name": "x"})

    async def test_error_status_raises(self):
        store, client = _postgrest(lambda request: httpx.Response(409, json={"code": "23505"}))
        async with client:
            with pytest.raises(RecordStoreError) as exc_info:
                await store.insert("race_catalog", {"id": "dup"})

        assert exc_info.value.status_code == 409


# =============================================================================
# SQLAlchemy
# =============================================================================

@pytest.fixture
async def sql_store():
    engine = create_engine_for("sqlite:///:memory:")
    await init_models(engine)
    yield SqlRecordStore(engine)
    await engine.dispose()


class TestSqlRecordStore:

    async def test_insert_and_select(self, sql_store):
        created = await sql_store.insert("race_catalog", {
            "id": "r1", "slug": "race-r1", "name": "Race", "distance_km": 10.5,
        })

        assert created[0]["id"] == "r1"
        assert created[0]["is_live"] is True
        assert isinstance(created[0]["updated_at"], str)

        rows = await sql_store.select("race_catalog", {"id": "r1", "is_live": True}, limit=1)
        assert rows[0]["distance_km"] == 10.5

    async def test_select_columns_order_limit(self, sql_store):
        await sql_store.insert("race_catalog", {"id": "r1", "slug": "s", "name": "Race"})
        await sql_store.insert("race_catalog_aid_stations", [
            {"race_id": "r1", "name": "Second", "km": 20.0, "order_index": 1},
            {"race_id": "r1", "name": "First", "km": 10.0, "order_index": 0},
            {"race_id": "r1", "name": "Third", "km": 30.0, "order_index": 2},
        ])

        rows = await sql_store.select(
            "race_catalog_aid_stations", {"race_id": "r1"},
            columns=["name", "km"], order=[("order_index", "asc")], limit=2,
        )

        assert rows == [{"name": "First", "km": 10.0}, {"name": "Second", "km": 20.0}]

    async def test_patch_returns_updated_rows(self, sql_store):
        await sql_store.insert("race_catalog", {"id": "r1", "slug": "s", "name": "Race"})

        updated = await sql_store.patch("race_catalog", {"id": "r1"}, {"gpx_sha256": "abc"})
        missing = await sql_store.patch("race_catalog", {"id": "nope"}, {"gpx_sha256": "abc"})

        assert updated[0]["gpx_sha256"] == "abc"
        assert missing == []

    async def test_json_columns_round_trip(self, sql_store):
        await sql_store.insert("race_plans", {
            "id": "p1", "user_id": "u1", "name": "Plan",
            "planner_values": {"raceDistanceKm": 42.2, "aidStations": []},
        })

        rows = await sql_store.select("race_plans", {"id": "p1"})

        assert rows[0]["planner_values"] == {"raceDistanceKm": 42.2, "aidStations": []}

    async def test_delete(self, sql_store):
        await sql_store.insert("race_plans", {"id": "p1", "user_id": "u1", "name": "Plan"})
        await sql_store.delete("race_plans", {"id": "p1"})
        assert await sql_store.select("race_plans", {}) == []

    async def test_bulk_insert_is_atomic(self, sql_store):
        await sql_store.insert("race_plans", {"id": "p1", "user_id": "u1", "name": "Plan"})

        with pytest.raises(RecordStoreError):
            await sql_store.insert("plan_aid_stations", [
                {"id": "a1", "plan_id": "p1", "name": "Ok", "km": 1.0},
                {"id": "a2", "plan_id": "p1", "name": None, "km": 2.0},  # NOT NULL violation
            ])

        assert await sql_store.select("plan_aid_stations", {"plan_id": "p1"}) == []

    async def test_unknown_table_or_column(self, sql_store):
        with pytest.raises(RecordStoreError):
            await sql_store.select("no_such_table", {})
        with pytest.raises(RecordStoreError):
            await sql_store.select("race_plans", {"no_such_column": 1})
