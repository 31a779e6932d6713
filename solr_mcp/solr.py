"""Handles interaction with the Solr HTTP API."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx
from loguru import logger

from .encoding import encode_select_params
from .errors import UpstreamDecodeError, UpstreamError

if TYPE_CHECKING:
    from .config import SolrMcpConfig

__all__ = ["SolrClient"]


class SolrClient:
    """Manages all communication with a Solr node or cluster.

    Every method names its call (``schema.fields``, ``solr.select``, ...) so that a
    failure can be traced back to the request that caused it. Nothing is retried.
    """

    def __init__(
        self,
        config: SolrMcpConfig,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = config.solr_url.rstrip("/")
        # Basic auth is attached per request; the client may be shared with the planner
        self.auth: httpx.BasicAuth | None = None
        if config.solr_basic_user:
            self.auth = httpx.BasicAuth(
                config.solr_basic_user, config.solr_basic_pass or ""
            )
        self.client = http_client or httpx.AsyncClient(timeout=config.http_timeout)

    def _collection_url(self, collection: str, path: str) -> str:
        return f"{self.base_url}/solr/{quote(collection, safe='')}/{path}"

    async def _send(
        self,
        call: str,
        method: str,
        url: str,
        params: Any = None,
        json_body: Any = None,
        form: Any = None,
    ) -> Any:
        logger.debug(f"{method} {url} ({call})")
        try:
            response = await self.client.request(
                method,
                url,
                params=params,
                json=json_body,
                data=form,
                auth=self.auth,
            )
        except httpx.HTTPError as e:
            logger.error(f"{call} request failed: {e}")
            raise UpstreamError(call, f"HTTP request error: {e}") from e

        if not response.is_success:
            logger.error(f"{call} returned HTTP {response.status_code}")
            raise UpstreamError(
                call, f"HTTP status {response.status_code}: {response.text}"
            )
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamDecodeError(
                call, f"JSON decode error: {e}. Response: {response.text}"
            ) from e

    # --- Schema API ---

    async def get_unique_key(self, collection: str) -> str:
        data = await self._send(
            "schema.uniquekey",
            "GET",
            self._collection_url(collection, "schema/uniquekey"),
            params={"wt": "json"},
        )
        if not isinstance(data, dict):
            raise UpstreamDecodeError("schema.uniquekey", f"unexpected body: {data!r}")
        return str(data.get("uniqueKey") or "")

    async def get_fields(self, collection: str) -> list[dict[str, Any]]:
        """Full field list, dynamic fields included."""
        data = await self._send(
            "schema.fields",
            "GET",
            self._collection_url(collection, "schema/fields"),
            params={"wt": "json", "includeDynamic": "true"},
        )
        if not isinstance(data, dict) or not isinstance(data.get("fields", []), list):
            raise UpstreamDecodeError("schema.fields", f"unexpected body: {data!r}")
        return data.get("fields", [])

    async def get_field_metadata(self, collection: str, filename: str) -> dict[str, Any]:
        data = await self._send(
            "schema.field_metadata",
            "GET",
            self._collection_url(collection, "admin/file"),
            params={"file": filename, "wt": "json"},
        )
        if not isinstance(data, dict):
            raise UpstreamDecodeError(
                "schema.field_metadata", f"unexpected body: {data!r}"
            )
        return data

    # --- Query API ---

    async def select(self, collection: str, params: dict[str, Any]) -> dict[str, Any]:
        """Run a parameter-encoded ``/select`` request and return the raw response.

        Parameters travel as a form body so that long id filters from the hybrid
        merge phase stay clear of the server's URL length limit.
        """
        form: dict[str, list[str]] = {}
        for key, value in encode_select_params(params):
            form.setdefault(key, []).append(value)
        return await self._send(
            "solr.select",
            "POST",
            self._collection_url(collection, "select"),
            form=form,
        )

    async def query_json(self, collection: str, body: dict[str, Any]) -> dict[str, Any]:
        """Run a JSON Request API query and return the raw response."""
        return await self._send(
            "solr.query_json",
            "POST",
            self._collection_url(collection, "query"),
            params={"wt": "json"},
            json_body=body,
        )

    # --- Admin API ---

    async def cluster_status(self, collection: str | None = None) -> dict[str, Any]:
        params = {"action": "CLUSTERSTATUS", "wt": "json"}
        if collection:
            params["collection"] = collection
        return await self._send(
            "solr.cluster_status",
            "GET",
            f"{self.base_url}/solr/admin/collections",
            params=params,
        )

    async def commit(self, collection: str) -> dict[str, Any]:
        return await self._send(
            "solr.commit",
            "GET",
            self._collection_url(collection, "update"),
            params={"commit": "true", "wt": "json"},
        )

    async def close(self) -> None:
        """Closes the underlying HTTP client."""
        await self.client.aclose()
