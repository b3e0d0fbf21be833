"""
Shared fixtures: in-memory store fakes and a GPX document builder.
"""

from typing import Any, Optional, Sequence

import pytest

from raceplanner.stores.base import BlobStoreError, RecordStoreError


# =============================================================================
# In-memory stores
# =============================================================================

class FakeBlobStore:
    """
    Blob store kept in a dict.

    ``fail_on`` holds operation names ("put", "copy", "delete") that raise
    BlobStoreError instead of running.
    """

    def __init__(self):
        self.objects: dict[tuple[str, str], bytes] = {}
        self.content_types: dict[tuple[str, str], str] = {}
        self.calls: list[tuple] = []
        self.fail_on: set[str] = set()

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise BlobStoreError(f"{operation} failed", status_code=500)

    async def put(self, bucket, key, data, content_type, upsert=True):
        self.calls.append(("put", bucket, key))
        self._maybe_fail("put")
        if not upsert and (bucket, key) in self.objects:
            raise BlobStoreError("exists", status_code=409)
        self.objects[(bucket, key)] = bytes(data)
        self.content_types[(bucket, key)] = content_type

    async def copy(self, source_bucket, source_key, dest_bucket, dest_key):
        self.calls.append(("copy", source_bucket, source_key, dest_bucket, dest_key))
        self._maybe_fail("copy")
        if (source_bucket, source_key) not in self.objects:
            raise BlobStoreError("not found", status_code=404)
        self.objects[(dest_bucket, dest_key)] = self.objects[(source_bucket, source_key)]

    async def delete(self, bucket, key):
        self.calls.append(("delete", bucket, key))
        self._maybe_fail("delete")
        self.objects.pop((bucket, key), None)

    def keys(self, bucket: str) -> list[str]:
        return sorted(key for b, key in self.objects if b == bucket)


class FakeRecordStore:
    """
    Record store kept in per-table lists.

    ``fail_on`` holds ``(operation, table)`` pairs that raise RecordStoreError.
    """

    def __init__(self):
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.calls: list[tuple] = []
        self.fail_on: set[tuple[str, str]] = set()
        self._next_id = 0

    def _maybe_fail(self, operation: str, table: str) -> None:
        if (operation, table) in self.fail_on:
            raise RecordStoreError(f"{operation} on {table} failed", status_code=500)

    @staticmethod
    def _matches(row: dict, filters: dict) -> bool:
        return all(row.get(column) == value for column, value in filters.items())

    def rows(self, table: str) -> list[dict[str, Any]]:
        return self.tables.setdefault(table, [])

    async def insert(self, table, rows):
        self.calls.append(("insert", table))
        self._maybe_fail("insert", table)
        rows = [rows] if isinstance(rows, dict) else list(rows)
        created = []
        for row in rows:
            row = dict(row)
            if "id" not in row:
                self._next_id += 1
                row["id"] = f"row-{self._next_id}"
            created.append(row)
        self.rows(table).extend(created)
        return [dict(row) for row in created]

    async def patch(self, table, filters, fields):
        self.calls.append(("patch", table))
        self._maybe_fail("patch", table)
        updated = []
        for row in self.rows(table):
            if self._matches(row, filters):
                row.update(fields)
                updated.append(dict(row))
        return updated

    async def select(
        self,
        table,
        filters,
        columns: Optional[Sequence[str]] = None,
        order: Optional[Sequence[tuple[str, str]]] = None,
        limit: Optional[int] = None,
    ):
        self.calls.append(("select", table))
        self._maybe_fail("select", table)
        found = [dict(row) for row in self.rows(table) if self._matches(row, filters)]
        for column, direction in reversed(order or ()):
            found.sort(key=lambda row: row[column], reverse=direction == "desc")
        if limit is not None:
            found = found[:limit]
        if columns:
            found = [{column: row.get(column) for column in columns} for row in found]
        return found

    async def delete(self, table, filters):
        self.calls.append(("delete", table))
        self._maybe_fail("delete", table)
        self.tables[table] = [row for row in self.rows(table) if not self._matches(row, filters)]


@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def record_store() -> FakeRecordStore:
    return FakeRecordStore()


# =============================================================================
# GPX documents
# =============================================================================

def _build_gpx(
    points: Sequence[tuple],
    waypoints: Sequence[tuple] = (),
    name: Optional[str] = None,
) -> str:
    """points: (lat, lon) or (lat, lon, ele); waypoints: (lat, lon, name)."""
    parts = ['<?xml version="1.0" encoding="UTF-8"?>',
             '<gpx version="1.1" creator="tests" xmlns="http://www.topografix.com/GPX/1/1">']
    if name:
        parts.append(f"<metadata><name>{name}</name></metadata>")
    for lat, lon, wpt_name in waypoints:
        parts.append(f'<wpt lat="{lat}" lon="{lon}"><name>{wpt_name}</name></wpt>')
    parts.append("<trk><trkseg>")
    for point in points:
        lat, lon = point[0], point[1]
        ele = f"<ele>{point[2]}</ele>" if len(point) > 2 else ""
        parts.append(f'<trkpt lat="{lat}" lon="{lon}">{ele}</trkpt>')
    parts.append("</trkseg></trk></gpx>")
    return "\n".join(parts)


@pytest.fixture
def make_gpx():
    return _build_gpx


# Three points heading north, elevations 100 -> 140 -> 90
SCENARIO_POINTS = [
    (45.0000, 6.0000, 100),
    (45.0100, 6.0000, 140),
    (45.0200, 6.0000, 90),
]


@pytest.fixture
def scenario_gpx() -> bytes:
    return _build_gpx(SCENARIO_POINTS, name="Col Test").encode("utf-8")
