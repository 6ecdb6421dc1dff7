"""Datasource catalog backed by the scheduler's REST API, using httpx.

The client keeps one ``httpx.AsyncClient`` for connection reuse. Use it as
an async context manager, or call ``close()`` explicitly.

Example:
    async with HttpDatasourceCatalog("http://scheduler:12345/api", token) as catalog:
        form = JobForm(catalog)
        await form.load()
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from jobform.catalog.base import DatasourceInstance, DatasourceType, TableColumns
from jobform.constants import DATASOURCE_TYPES
from jobform.lib.errors import CatalogError

logger = logging.getLogger(__name__)

__all__ = ["HttpDatasourceCatalog"]


class HttpDatasourceCatalog:
    """Catalog client for the ``/datasources`` endpoints.

    Responses use the scheduler envelope ``{"code": 0, "msg": ..., "data": ...}``;
    a non-zero code is reported as a CatalogError. Requests are never retried:
    a failed lookup is surfaced to the form, and the user re-triggers it.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        *,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if token:
            headers["token"] = token
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
        )

    async def __aenter__(self) -> "HttpDatasourceCatalog":
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _get(self, operation: str, path: str, params: Dict[str, Any]) -> Any:
        try:
            response = await self._client.get(path, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise CatalogError(
                f"Catalog request failed: {operation}",
                operation=operation,
                status_code=e.response.status_code,
                cause=e,
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise CatalogError(
                f"Catalog request failed: {operation}", operation=operation, cause=e
            ) from e

        if isinstance(payload, dict) and "code" in payload:
            if payload.get("code") not in (0, 200):
                raise CatalogError(
                    f"Catalog returned an error for {operation}: {payload.get('msg')}",
                    operation=operation,
                    details={"code": payload.get("code")},
                )
            payload = payload.get("data")

        logger.debug("Catalog %s %s -> ok", operation, params)
        return payload

    async def list_datasource_types(self) -> List[DatasourceType]:
        # The scheduler has no endpoint for this; the set is fixed per release
        return [DatasourceType(code=code, enabled=enabled) for code, enabled in DATASOURCE_TYPES]

    async def list_datasource_instances(self, ds_type: str) -> List[DatasourceInstance]:
        data = await self._get(
            "list_datasource_instances", "/datasources/list", {"type": ds_type}
        )
        try:
            return [DatasourceInstance.model_validate(item) for item in data or []]
        except PydanticValidationError as e:
            raise CatalogError(
                "Malformed datasource list", operation="list_datasource_instances", cause=e
            ) from e

    async def list_tables(self, datasource_id: str) -> List[str]:
        data = await self._get(
            "list_tables", "/datasources/tables", {"datasourceId": datasource_id}
        )
        tables: List[str] = []
        for item in data or []:
            # Either bare names or {"label": ..., "value": ...} options
            if isinstance(item, dict):
                tables.append(str(item.get("value") or item.get("label") or ""))
            else:
                tables.append(str(item))
        return [table for table in tables if table]

    async def fetch_columns_and_partitions(
        self, datasource_id: str, table_name: str
    ) -> TableColumns:
        data = await self._get(
            "fetch_columns_and_partitions",
            "/datasources/tableColumnsWithType",
            {"datasourceId": datasource_id, "tableName": table_name},
        )
        try:
            return TableColumns.model_validate(data or {})
        except PydanticValidationError as e:
            raise CatalogError(
                "Malformed column payload",
                operation="fetch_columns_and_partitions",
                cause=e,
            ) from e
