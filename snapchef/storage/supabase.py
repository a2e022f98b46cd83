"""Minimal async Supabase client (Storage + PostgREST) over aiohttp.

Only what SnapChef needs: upload an object, insert a row with returning,
select rows with equality filters, ordering and a limit. Pass ``session`` to
reuse one aiohttp.ClientSession; otherwise each call opens its own.
"""

import json
from dataclasses import dataclass
from typing import Any, Optional

import aiohttp

from snapchef.utils.config import Config, config as default_config
from snapchef.utils.errors import ReadError, StorageError, WriteError
from snapchef.utils.logger import logger


class SupabaseHTTPError(Exception):
    """Non-2xx response from Supabase."""

    def __init__(self, status: int, body: str, url: str) -> None:
        super().__init__(f"HTTP {status} from {url}: {body[:300]}")
        self.status = status
        self.body = body
        self.url = url


@dataclass
class UploadResult:
    # Path inside the bucket, e.g. "public/1712345678901.jpg"
    path: str
    full_path: Optional[str] = None


class SupabaseClient:
    def __init__(self, url: str, key: str, session: Optional[aiohttp.ClientSession] = None) -> None:
        if not url or not key:
            raise ValueError("Supabase URL and key are required")
        self.url = url.rstrip("/")
        self.key = key
        self._session = session

    @classmethod
    def from_config(cls, settings: Optional[Config] = None) -> "SupabaseClient":
        settings = settings or default_config
        return cls(settings.SUPABASE_URL, settings.SUPABASE_KEY)

    def _headers(self, extra: Optional[dict[str, str]] = None) -> dict[str, str]:
        headers = {
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
        }
        if extra:
            headers.update(extra)
        return headers

    async def _send(self, session: Any, method: str, url: str, **kwargs: Any) -> Any:
        async with session.request(method, url, **kwargs) as response:
            body = await response.text()
            if response.status >= 400:
                raise SupabaseHTTPError(response.status, body, url)
            return json.loads(body) if body else None

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        if self._session is not None:
            return await self._send(self._session, method, url, **kwargs)
        async with aiohttp.ClientSession() as session:
            return await self._send(session, method, url, **kwargs)

    async def upload(self, bucket: str, key: str, data: bytes, content_type: str) -> UploadResult:
        """Upload bytes to ``bucket/key``.

        Raises:
            StorageError: On any HTTP or connection failure.
        """
        url = f"{self.url}/storage/v1/object/{bucket}/{key}"
        try:
            body = await self._request(
                "POST",
                url,
                data=data,
                headers=self._headers({"Content-Type": content_type, "x-upsert": "false"}),
            )
        except (SupabaseHTTPError, aiohttp.ClientError) as e:
            raise StorageError(f"Upload to {bucket}/{key} failed: {e}") from e

        logger.debug(f"Uploaded {len(data)} bytes to {bucket}/{key}")
        full_path = body.get("Key") if isinstance(body, dict) else None
        return UploadResult(path=key, full_path=full_path)

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.url}/storage/v1/object/public/{bucket}/{path}"

    async def insert(self, table: str, row: dict[str, Any], returning: str = "*") -> list[dict[str, Any]]:
        """Insert one row and return the inserted representation.

        Raises:
            WriteError: On any HTTP or connection failure.
        """
        url = f"{self.url}/rest/v1/{table}"
        try:
            rows = await self._request(
                "POST",
                url,
                params={"select": returning},
                json=row,
                headers=self._headers({"Content-Type": "application/json", "Prefer": "return=representation"}),
            )
        except (SupabaseHTTPError, aiohttp.ClientError) as e:
            raise WriteError(f"Insert into {table} failed: {e}") from e
        return rows or []

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: Optional[dict[str, Any]] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """Select rows.

        Args:
            table: Table name.
            columns: PostgREST select list.
            filters: Column → value equality filters (``col=eq.value``).
            order: PostgREST order clause, e.g. ``"created_at.desc"``.
            limit: Maximum number of rows.

        Raises:
            ReadError: On any HTTP or connection failure.
        """
        params: dict[str, str] = {"select": columns}
        for column, value in (filters or {}).items():
            params[column] = f"eq.{value}"
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = str(limit)

        url = f"{self.url}/rest/v1/{table}"
        try:
            rows = await self._request("GET", url, params=params, headers=self._headers())
        except (SupabaseHTTPError, aiohttp.ClientError) as e:
            raise ReadError(f"Select from {table} failed: {e}") from e
        return rows or []
