"""In-memory datasource catalog, loadable from a YAML fixture.

Example catalog.yaml:
    instances:
      MYSQL:
        - {id: 1, name: orders-db}
    tables:
      "1": [orders, customers]
    columns:
      "1":
        orders:
          columns: [{name: id, type: bigint}]
          partition_columns: [{name: dt}]
          is_partitioned: true
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError

from jobform.catalog.base import DatasourceInstance, DatasourceType, TableColumns
from jobform.constants import DATASOURCE_TYPES
from jobform.lib.errors import CatalogError

__all__ = ["InMemoryCatalog"]


class InMemoryCatalog:
    """Catalog answering from dictionaries.

    Attributes:
        types: Datasource types (defaults to the built-in type list)
        instances: Datasource instances keyed by type code
        tables: Table names keyed by datasource id
        columns: Table columns keyed by datasource id, then table name
        latency: Seconds every lookup sleeps before answering
    """

    def __init__(
        self,
        *,
        types: Optional[List[DatasourceType]] = None,
        instances: Optional[Mapping[str, List[DatasourceInstance]]] = None,
        tables: Optional[Mapping[str, List[str]]] = None,
        columns: Optional[Mapping[str, Mapping[str, TableColumns]]] = None,
        latency: float = 0.0,
    ) -> None:
        self.types = list(types) if types is not None else [
            DatasourceType(code=code, enabled=enabled) for code, enabled in DATASOURCE_TYPES
        ]
        self.instances: Dict[str, List[DatasourceInstance]] = dict(instances or {})
        self.tables: Dict[str, List[str]] = {str(k): list(v) for k, v in (tables or {}).items()}
        self.columns: Dict[str, Dict[str, TableColumns]] = {
            str(k): dict(v) for k, v in (columns or {}).items()
        }
        self.latency = latency
        self.calls: List[tuple] = []

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "InMemoryCatalog":
        """Build a catalog from plain data (as loaded from YAML)."""
        try:
            types = (
                [DatasourceType.model_validate(item) for item in data["types"]]
                if "types" in data
                else None
            )
            instances = {
                str(ds_type).upper(): [DatasourceInstance.model_validate(i) for i in items or []]
                for ds_type, items in (data.get("instances") or {}).items()
            }
            columns = {
                str(ds_id): {
                    str(table): TableColumns.model_validate(info or {})
                    for table, info in (tables or {}).items()
                }
                for ds_id, tables in (data.get("columns") or {}).items()
            }
        except PydanticValidationError as e:
            raise CatalogError("Malformed catalog fixture", operation="load", cause=e) from e

        return cls(
            types=types,
            instances=instances,
            tables=data.get("tables") or {},
            columns=columns,
            latency=float(data.get("latency", 0.0)),
        )

    @classmethod
    def from_yaml(cls, path: Path) -> "InMemoryCatalog":
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    async def _answer(self, *call: Any) -> None:
        self.calls.append(call)
        if self.latency:
            await asyncio.sleep(self.latency)

    async def list_datasource_types(self) -> List[DatasourceType]:
        await self._answer("list_datasource_types")
        return list(self.types)

    async def list_datasource_instances(self, ds_type: str) -> List[DatasourceInstance]:
        await self._answer("list_datasource_instances", ds_type)
        return list(self.instances.get(ds_type, []))

    async def list_tables(self, datasource_id: str) -> List[str]:
        await self._answer("list_tables", datasource_id)
        if str(datasource_id) not in self.tables:
            raise CatalogError(
                f"Unknown datasource: {datasource_id}", operation="list_tables"
            )
        return list(self.tables[str(datasource_id)])

    async def fetch_columns_and_partitions(
        self, datasource_id: str, table_name: str
    ) -> TableColumns:
        await self._answer("fetch_columns_and_partitions", datasource_id, table_name)
        table = self.columns.get(str(datasource_id), {}).get(table_name)
        if table is None:
            raise CatalogError(
                f"Unknown table: {table_name}",
                operation="fetch_columns_and_partitions",
                details={"datasource_id": datasource_id},
            )
        return table.model_copy(deep=True)
