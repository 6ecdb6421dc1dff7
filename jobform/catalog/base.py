"""Datasource catalog interface and its result models.

The catalog is the form's only asynchronous collaborator: it lists
datasource types, datasource instances, tables, and the columns and
partitions of a table. Results are pydantic models so payloads from any
backend are validated the same way.
"""

from __future__ import annotations

from typing import Any, List, Protocol, runtime_checkable

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from jobform.models.columns import ColumnRecord

__all__ = [
    "DatasourceType",
    "DatasourceInstance",
    "ColumnInfo",
    "PartitionColumn",
    "TableColumns",
    "DatasourceCatalog",
]


class DatasourceType(BaseModel):
    """A datasource type code and whether it may be selected."""

    code: str = Field(..., min_length=1, description="Type code (MYSQL, HIVE, ...)")
    enabled: bool = Field(default=True, description="Offered in the type selects")

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return v.upper()


class DatasourceInstance(BaseModel):
    """A configured datasource of some type."""

    id: str = Field(..., description="Datasource id (kept as a string)")
    name: str = Field(..., description="Display name")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        return str(v)


class ColumnInfo(BaseModel):
    """A table column as reported by the datasource."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., validation_alias=AliasChoices("name", "columnName"))
    type: str = Field(
        default="",
        validation_alias=AliasChoices("type", "dataType", "columnType"),
    )


class PartitionColumn(BaseModel):
    """A partition column of a partitioned table."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., validation_alias=AliasChoices("name", "columnName"))


class TableColumns(BaseModel):
    """Columns and partition information of one table."""

    model_config = ConfigDict(populate_by_name=True)

    columns: List[ColumnInfo] = Field(default_factory=list)
    partition_columns: List[PartitionColumn] = Field(
        default_factory=list,
        validation_alias=AliasChoices("partition_columns", "partitionColumns"),
    )
    is_partitioned: bool = Field(
        default=False,
        validation_alias=AliasChoices("is_partitioned", "partitionTable"),
    )

    @field_validator("columns", "partition_columns", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    def partition_placeholders(self) -> list[str]:
        """One ``name=`` entry per partition column, for the user to fill in."""
        if not self.is_partitioned:
            return []
        return [f"{column.name}=" for column in self.partition_columns]

    def to_records(self) -> list[ColumnRecord]:
        """Column records for the mapping editor, unconnected."""
        return [
            ColumnRecord(ordinal_hint=index, name=column.name, data_type=column.type)
            for index, column in enumerate(self.columns)
        ]


@runtime_checkable
class DatasourceCatalog(Protocol):
    """Asynchronous lookups the form issues. All of them may fail."""

    async def list_datasource_types(self) -> list[DatasourceType]:
        ...

    async def list_datasource_instances(self, ds_type: str) -> list[DatasourceInstance]:
        ...

    async def list_tables(self, datasource_id: str) -> list[str]:
        ...

    async def fetch_columns_and_partitions(
        self, datasource_id: str, table_name: str
    ) -> TableColumns:
        ...
