"""Data store for a hosted Supabase/PostgREST backend."""

import logging
from typing import Any, Self
from urllib.parse import urlparse

import httpx

from whodunit.stores import register_store
from whodunit.stores.base import DataStore, StoreError

logger = logging.getLogger(__name__)


@register_store
class PostgrestStore(DataStore):
    """Data store talking to the auto-generated REST API of a hosted database.

    Requests go to ``<base url>/rest/v1/<table>`` and carry the project's
    anon key both as ``apikey`` and as a bearer token, the way the Supabase
    JavaScript client does.

    Upserts use ``on_conflict`` with ``resolution=merge-duplicates``. The
    conditional session write is a PATCH filtered on ``<field>=is.null``; if
    that matches nothing, an insert that ignores duplicates decides whether
    the row was missing. PostgREST has no push channel, so ``subscribe``
    keeps the default and callers poll.

    Expected URL format:
        https://<project>.supabase.co
    """

    REST_PATH = "/rest/v1"

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = httpx.Client(
            base_url=base_url.rstrip("/") + self.REST_PATH,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def can_open(cls, url: str) -> bool:
        return urlparse(url).scheme in ("http", "https")

    @classmethod
    def from_url(cls, url: str, **options) -> Self:
        return cls(url, **options)

    def _request(
        self,
        method: str,
        table: str,
        params: dict[str, str] | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> httpx.Response:
        headers = {"Prefer": prefer} if prefer else None
        try:
            response = self._client.request(
                method, f"/{table}", params=params, json=json, headers=headers
            )
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            raise StoreError(
                f"{method} {table} failed with HTTP {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise StoreError(f"{method} {table} failed: {e}") from e

    @staticmethod
    def _rows(response: httpx.Response) -> list[dict[str, Any]]:
        if not response.content:
            return []
        try:
            data = response.json()
        except ValueError as e:
            raise StoreError(f"Invalid JSON from store: {e}") from e
        if not isinstance(data, list):
            raise StoreError(f"Expected a list of rows, got {type(data).__name__}")
        return [row for row in data if isinstance(row, dict)]

    def upsert(self, table: str, key: str, record: dict[str, Any]) -> None:
        if key not in record:
            raise StoreError(f"Record for {table!r} is missing key column {key!r}")
        self._request(
            "POST", table,
            params={"on_conflict": key},
            json=record,
            prefer="resolution=merge-duplicates,return=minimal",
        )

    def select_all(self, table: str) -> list[dict[str, Any]]:
        return self._rows(self._request("GET", table, params={"select": "*"}))

    def delete_all(self, table: str, key: str) -> None:
        # PostgREST refuses unfiltered deletes
        self._request(
            "DELETE", table, params={key: "not.is.null"}, prefer="return=minimal"
        )

    def write_if_null(
        self, table: str, key: str, record: dict[str, Any], field: str
    ) -> bool:
        if key not in record:
            raise StoreError(f"Record for {table!r} is missing key column {key!r}")
        patched = self._rows(self._request(
            "PATCH", table,
            params={key: f"eq.{record[key]}", field: "is.null"},
            json=record,
            prefer="return=representation",
        ))
        if patched:
            return True
        inserted = self._rows(self._request(
            "POST", table,
            params={"on_conflict": key},
            json=record,
            prefer="resolution=ignore-duplicates,return=representation",
        ))
        return bool(inserted)

    def close(self) -> None:
        self._client.close()
