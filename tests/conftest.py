"""Shared fixtures for job form tests."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional

import pytest

from jobform.catalog.memory import InMemoryCatalog
from jobform.lib.errors import CatalogError
from jobform.settings import FormSettings

CATALOG_DATA: Dict[str, Any] = {
    "instances": {
        "MYSQL": [{"id": 1, "name": "orders-db"}, {"id": 4, "name": "crm-db"}],
        "HIVE": [{"id": 2, "name": "warehouse"}],
        "ELASTICSEARCH": [{"id": 3, "name": "search"}],
    },
    "tables": {
        "1": ["orders", "customers"],
        "2": ["orders", "events"],
        "3": [],
        "4": ["contacts"],
    },
    "columns": {
        "1": {
            "orders": {
                "columns": [
                    {"name": "id", "type": "bigint"},
                    {"name": "name", "type": "varchar"},
                ],
            },
            "customers": {
                "columns": [{"name": "uid", "type": "bigint"}],
            },
        },
        "2": {
            "orders": {
                "columns": [
                    {"name": "order_id", "type": "bigint"},
                    {"name": "amount", "type": "decimal"},
                    {"name": "dt", "type": "string"},
                ],
                "partitionColumns": [{"name": "dt"}],
                "partitionTable": True,
            },
            "events": {
                "columns": [{"name": "event_id", "type": "string"}],
            },
        },
        "4": {
            "contacts": {
                "columns": [
                    {"name": "contact_id", "type": "bigint"},
                    {"name": "email", "type": "varchar"},
                    {"name": "phone", "type": "varchar"},
                ],
            },
        },
    },
}


class GatedCatalog(InMemoryCatalog):
    """Catalog whose calls block until the test releases them.

    Each call appends an event to ``gates``; ``release(i)`` lets call i
    answer, so tests decide the order in which lookups complete.
    """

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.gates: List[asyncio.Event] = []

    async def _answer(self, *call: Any) -> None:
        self.calls.append(call)
        gate = asyncio.Event()
        self.gates.append(gate)
        await gate.wait()

    def release(self, index: int) -> None:
        self.gates[index].set()

    def release_all(self) -> None:
        for gate in self.gates:
            gate.set()


class FailingCatalog(InMemoryCatalog):
    """Catalog failing the named operations."""

    def __init__(self, fail: Optional[set] = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.fail = set(fail or ())

    async def _answer(self, *call: Any) -> None:
        self.calls.append(call)
        if call[0] in self.fail:
            raise CatalogError("Catalog unavailable", operation=call[0])


async def reach_gates(catalog: GatedCatalog, count: int) -> None:
    """Let scheduled lookups run until `count` calls are waiting."""
    for _ in range(100):
        if len(catalog.gates) >= count:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"expected {count} catalog calls, got {len(catalog.gates)}")


@pytest.fixture
def catalog() -> InMemoryCatalog:
    """In-memory catalog with MySQL, Hive and Elasticsearch datasources."""
    return InMemoryCatalog.from_dict(CATALOG_DATA)


@pytest.fixture
def gated_catalog() -> GatedCatalog:
    base = InMemoryCatalog.from_dict(CATALOG_DATA)
    return GatedCatalog(
        instances=base.instances, tables=base.tables, columns=base.columns
    )


@pytest.fixture
def failing_catalog() -> FailingCatalog:
    base = InMemoryCatalog.from_dict(CATALOG_DATA)
    return FailingCatalog(
        fail={"list_tables", "fetch_columns_and_partitions"},
        instances=base.instances,
        tables=base.tables,
        columns=base.columns,
    )


@pytest.fixture
def settings() -> FormSettings:
    """Settings independent of the environment running the tests."""
    return FormSettings.model_construct(
        api_base_url="http://scheduler.test/api",
        api_token=None,
        lookup_timeout=None,
        log_level="INFO",
        log_format="console",
        log_file=None,
        disabled_types=[],
    )


@pytest.fixture
def tmp_job_yaml(tmp_path: Path) -> Generator[Path, None, None]:
    """Job definition of a MySQL -> MySQL task with a complete mapping."""
    job_file = tmp_path / "job.yaml"
    job_file.write_text(
        """
ds_type: MYSQL
data_source: "1"
source_table: orders
dt_type: MYSQL
data_target: "4"
target_table: contacts
write_mode: "0"
ds_columns:
  - {index: 0, columnName: id, dataType: bigint, enable: true}
  - {index: 1, columnName: name, dataType: varchar, enable: true}
dt_columns:
  - {index: 0, columnName: contact_id, dataType: bigint, enable: true}
  - {index: 1, columnName: email, dataType: varchar, enable: true}
""",
        encoding="utf-8",
    )
    yield job_file
