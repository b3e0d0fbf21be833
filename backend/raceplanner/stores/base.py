"""
Store collaborator contracts.

The sagas only ever talk to these two protocols. Concrete backends live in
``blob.py`` (Supabase Storage, local filesystem), ``records.py`` (PostgREST)
and ``sql.py`` (SQLAlchemy).
"""

from typing import Any, Optional, Protocol, Sequence


Record = dict[str, Any]


# =============================================================================
# Exceptions
# =============================================================================

class StoreError(Exception):
    """Base store error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class BlobStoreError(StoreError):
    """Object store call failed or returned a non-success status."""
    pass


class RecordStoreError(StoreError):
    """Relational store call failed or returned a non-success status."""
    pass


# =============================================================================
# Protocols
# =============================================================================

class BlobStore(Protocol):
    """Binary object store addressed by (bucket, key)."""

    async def put(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str,
        upsert: bool = True,
    ) -> None: ...

    async def copy(
        self,
        source_bucket: str,
        source_key: str,
        dest_bucket: str,
        dest_key: str,
    ) -> None: ...

    async def delete(self, bucket: str, key: str) -> None: ...


class RecordStore(Protocol):
    """
    Row store with equality filters.

    ``order`` is a sequence of ``(column, "asc" | "desc")`` pairs.
    """

    async def insert(self, table: str, rows: Record | Sequence[Record]) -> list[Record]: ...

    async def patch(self, table: str, filters: Record, fields: Record) -> list[Record]: ...

    async def select(
        self,
        table: str,
        filters: Record,
        columns: Optional[Sequence[str]] = None,
        order: Optional[Sequence[tuple[str, str]]] = None,
        limit: Optional[int] = None,
    ) -> list[Record]: ...

    async def delete(self, table: str, filters: Record) -> None: ...
