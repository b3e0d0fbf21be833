"""
PostgREST record store.

Talks to Supabase's REST interface (``/rest/v1/<table>``) with equality
filters only, which is all the ingestion pipeline needs.
"""

import logging
from collections.abc import Mapping
from typing import Any, Optional, Sequence

import httpx

from .base import Record, RecordStoreError

logger = logging.getLogger(__name__)


def _filter_value(value: Any) -> str:
    """Render one equality filter in PostgREST syntax."""
    if value is None:
        return "is.null"
    if isinstance(value, bool):
        return f"eq.{str(value).lower()}"
    return f"eq.{value}"


class PostgrestRecordStore:
    """
    Async client for PostgREST.

    Usage:
        store = PostgrestRecordStore(http_client, settings.supabase_url, key)
        rows = await store.select("race_catalog", {"id": race_id, "is_live": True}, limit=1)
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        api_key: str,
    ):
        self._client = client
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key

    def _headers(self, prefer: Optional[str] = None) -> dict[str, str]:
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._api_key}",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _table_url(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{table}"

    @staticmethod
    def _filters(filters: Record, allow_empty: bool = True) -> dict[str, str]:
        if not filters and not allow_empty:
            raise ValueError("Refusing to write without a filter")
        return {column: _filter_value(value) for column, value in filters.items()}

    async def _send(self, method: str, table: str, operation: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, self._table_url(table), **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Record store {operation} on {table} failed: {e!r}")
            raise RecordStoreError(f"{operation} on {table} failed: {e}") from e

        if not response.is_success:
            logger.error(
                f"Record store {operation} on {table} failed: "
                f"{response.status_code} {response.text}"
            )
            raise RecordStoreError(
                f"{operation} on {table} failed with status {response.status_code}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _rows(response: httpx.Response, operation: str, table: str) -> list[Record]:
        if not response.content:
            return []
        try:
            payload = response.json()
        except ValueError as e:
            raise RecordStoreError(f"{operation} on {table} returned invalid JSON") from e
        if isinstance(payload, dict):
            return [payload]
        return list(payload)

    async def insert(self, table: str, rows: Record | Sequence[Record]) -> list[Record]:
        body = dict(rows) if isinstance(rows, Mapping) else [dict(row) for row in rows]
        response = await self._send(
            "POST", table, "insert",
            json=body,
            headers=self._headers("return=representation"),
        )
        return self._rows(response, "insert", table)

    async def patch(self, table: str, filters: Record, fields: Record) -> list[Record]:
        response = await self._send(
            "PATCH", table, "patch",
            params=self._filters(filters, allow_empty=False),
            json=dict(fields),
            headers=self._headers("return=representation"),
        )
        return self._rows(response, "patch", table)

    async def select(
        self,
        table: str,
        filters: Record,
        columns: Optional[Sequence[str]] = None,
        order: Optional[Sequence[tuple[str, str]]] = None,
        limit: Optional[int] = None,
    ) -> list[Record]:
        params = self._filters(filters)
        params["select"] = ",".join(columns) if columns else "*"
        if order:
            params["order"] = ",".join(f"{column}.{direction}" for column, direction in order)
        if limit is not None:
            params["limit"] = str(limit)

        response = await self._send("GET", table, "select", params=params, headers=self._headers())
        return self._rows(response, "select", table)

    async def delete(self, table: str, filters: Record) -> None:
        await self._send(
            "DELETE", table, "delete",
            params=self._filters(filters, allow_empty=False),
            headers=self._headers("return=minimal"),
        )
