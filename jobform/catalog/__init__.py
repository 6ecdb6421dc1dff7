"""Datasource catalogs the form looks up types, instances, tables and columns in."""

from jobform.catalog.base import (
    ColumnInfo,
    DatasourceCatalog,
    DatasourceInstance,
    DatasourceType,
    PartitionColumn,
    TableColumns,
)
from jobform.catalog.http import HttpDatasourceCatalog
from jobform.catalog.memory import InMemoryCatalog

__all__ = [
    "ColumnInfo",
    "DatasourceCatalog",
    "DatasourceInstance",
    "DatasourceType",
    "PartitionColumn",
    "TableColumns",
    "HttpDatasourceCatalog",
    "InMemoryCatalog",
]
