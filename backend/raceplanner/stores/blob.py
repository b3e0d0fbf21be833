"""
Blob store backends.

- SupabaseBlobStore: Supabase Storage REST API over httpx
- LocalBlobStore: directory tree on disk (buckets are sub-directories),
  used for local development
"""

import asyncio
import logging
import shutil
from pathlib import Path, PurePosixPath
from urllib.parse import quote

import httpx

from .base import BlobStoreError

logger = logging.getLogger(__name__)


class SupabaseBlobStore:
    """
    Async client for Supabase Storage.

    All calls use the service role key; bucket policies are not consulted.

    Usage:
        store = SupabaseBlobStore(http_client, settings.supabase_url, key)
        await store.put("race-gpx", "catalog/<id>/1700000000000.gpx", data, "application/gpx+xml")
    """

    def __init__(self, client: httpx.AsyncClient, base_url: str, service_role_key: str):
        self._client = client
        self.base_url = base_url.rstrip("/")
        self._key = service_role_key

    def _headers(self, content_type: str | None = None) -> dict[str, str]:
        headers = {
            "apikey": self._key,
            "Authorization": f"Bearer {self._key}",
        }
        if content_type:
            headers["Content-Type"] = content_type
        return headers

    def _object_url(self, bucket: str, key: str) -> str:
        return f"{self.base_url}/storage/v1/object/{quote(bucket)}/{quote(key, safe='/')}"

    async def _request(self, method: str, url: str, operation: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Storage {operation} failed: {e!r}")
            raise BlobStoreError(f"Storage {operation} failed: {e}") from e
        return response

    @staticmethod
    def _check(response: httpx.Response, operation: str) -> None:
        if response.is_success:
            return
        logger.error(f"Storage {operation} failed: {response.status_code} {response.text}")
        raise BlobStoreError(
            f"Storage {operation} failed with status {response.status_code}",
            status_code=response.status_code,
        )

    async def put(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str,
        upsert: bool = True,
    ) -> None:
        operation = f"upload {bucket}/{key}"
        headers = self._headers(content_type)
        headers["x-upsert"] = "true" if upsert else "false"
        response = await self._request(
            "POST", self._object_url(bucket, key), operation, content=data, headers=headers
        )
        self._check(response, operation)
        logger.info(f"Uploaded blob {bucket}/{key} ({len(data)} bytes)")

    async def copy(
        self,
        source_bucket: str,
        source_key: str,
        dest_bucket: str,
        dest_key: str,
    ) -> None:
        operation = f"copy {source_bucket}/{source_key} -> {dest_bucket}/{dest_key}"
        response = await self._request(
            "POST",
            f"{self.base_url}/storage/v1/object/copy",
            operation,
            json={
                "bucketId": source_bucket,
                "sourceKey": source_key,
                "destinationBucket": dest_bucket,
                "destinationKey": dest_key,
            },
            headers=self._headers("application/json"),
        )
        self._check(response, operation)
        logger.info(f"Copied blob {source_bucket}/{source_key} -> {dest_bucket}/{dest_key}")

    async def delete(self, bucket: str, key: str) -> None:
        operation = f"delete {bucket}/{key}"
        response = await self._request(
            "DELETE", self._object_url(bucket, key), operation, headers=self._headers()
        )
        if response.status_code == 404:
            logger.debug(f"Blob {bucket}/{key} already absent")
            return
        self._check(response, operation)
        logger.info(f"Deleted blob {bucket}/{key}")


class LocalBlobStore:
    """Filesystem blob store rooted at ``root``: ``root/<bucket>/<key>``."""

    def __init__(self, root: Path | str):
        self.root = Path(root)

    def _path(self, bucket: str, key: str) -> Path:
        parts = PurePosixPath(bucket).parts + PurePosixPath(key).parts
        if not key or any(part in ("..", "/") for part in parts):
            raise BlobStoreError(f"Invalid blob key: {bucket}/{key}")
        return self.root.joinpath(*parts)

    def exists(self, bucket: str, key: str) -> bool:
        return self._path(bucket, key).is_file()

    def read(self, bucket: str, key: str) -> bytes:
        path = self._path(bucket, key)
        if not path.is_file():
            raise BlobStoreError(f"Blob not found: {bucket}/{key}", status_code=404)
        return path.read_bytes()

    def _write(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def put(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str,
        upsert: bool = True,
    ) -> None:
        path = self._path(bucket, key)
        if not upsert and path.exists():
            raise BlobStoreError(f"Blob already exists: {bucket}/{key}", status_code=409)
        try:
            await asyncio.to_thread(self._write, path, data)
        except OSError as e:
            raise BlobStoreError(f"Unable to write {bucket}/{key}: {e}") from e
        logger.info(f"Stored blob {bucket}/{key} ({len(data)} bytes, {content_type})")

    async def copy(
        self,
        source_bucket: str,
        source_key: str,
        dest_bucket: str,
        dest_key: str,
    ) -> None:
        source = self._path(source_bucket, source_key)
        dest = self._path(dest_bucket, dest_key)
        if not source.is_file():
            raise BlobStoreError(f"Blob not found: {source_bucket}/{source_key}", status_code=404)
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(shutil.copyfile, source, dest)
        except OSError as e:
            raise BlobStoreError(f"Unable to copy {source_bucket}/{source_key}: {e}") from e
        logger.info(f"Copied blob {source_bucket}/{source_key} -> {dest_bucket}/{dest_key}")

    async def delete(self, bucket: str, key: str) -> None:
        path = self._path(bucket, key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise BlobStoreError(f"Unable to delete {bucket}/{key}: {e}") from e
        logger.info(f"Deleted blob {bucket}/{key}")
