"""Shared constants for the job form modules.

Centralizes model keys, datasource type codes and option lists used across
the template, the layout table and the mapping editor.
"""

from __future__ import annotations

# =============================================================================
# Model keys
# =============================================================================

CUSTOM_CONFIG = "custom_config"
DS_TYPE = "ds_type"
DATA_SOURCE = "data_source"
SOURCE_TABLE = "source_table"
DS_PARTITIONS = "ds_partitions"
DS_COLUMNS = "ds_columns"
DT_TYPE = "dt_type"
DATA_TARGET = "data_target"
TARGET_TABLE = "target_table"
DT_PARTITIONS = "dt_partitions"
DT_COLUMNS = "dt_columns"
WRITE_MODE = "write_mode"
JSON_TEMPLATE = "json"
LOCAL_PARAMS = "local_params"

# Prefix of the nested Elasticsearch writer parameters (es_params.index, ...)
ES_PARAMS = "es_params"

# Inputs of the layout table; every laid-out descriptor depends on these
LAYOUT_KEYS: tuple[str, str, str] = (CUSTOM_CONFIG, DS_TYPE, DT_TYPE)

# =============================================================================
# Datasource types
# =============================================================================

MYSQL = "MYSQL"
POSTGRESQL = "POSTGRESQL"
HIVE = "HIVE"
SPARK = "SPARK"
CLICKHOUSE = "CLICKHOUSE"
ORACLE = "ORACLE"
SQLSERVER = "SQLSERVER"
DB2 = "DB2"
PRESTO = "PRESTO"
ELASTICSEARCH = "ELASTICSEARCH"
DM = "DM"

# Known types and whether the DataX plugins support them: (code, enabled)
DATASOURCE_TYPES: tuple[tuple[str, bool], ...] = (
    (MYSQL, True),
    (POSTGRESQL, True),
    (HIVE, True),
    (SPARK, False),
    (CLICKHOUSE, True),
    (ORACLE, True),
    (SQLSERVER, True),
    (DB2, False),
    (PRESTO, False),
    (ELASTICSEARCH, True),
    (DM, True),
)

# Types that can only be written to
SINK_ONLY_TYPES = frozenset({ELASTICSEARCH})

# Placeholder data type of records created by the mapping editor
CUSTOM_DATA_TYPE = "custom"

# =============================================================================
# Option lists
# =============================================================================

# MySQL write modes: (label, value)
WRITE_MODE_OPTIONS: tuple[tuple[str, str], ...] = (
    ("insert into", "0"),
    ("replace into", "1"),
    ("on duplicate key update", "2"),
)

# Hive write rules: (label, value)
RULE_MODE_OPTIONS: tuple[tuple[str, str], ...] = (
    ("append", "3"),
    ("nonConflict", "4"),
    ("truncate", "5"),
)

ALIAS_MODE_OPTIONS: tuple[tuple[str, int], ...] = (
    ("append", 0),
    ("exclusive", 1),
)

JOB_SPEED_BYTE_OPTIONS: tuple[tuple[str, int], ...] = (
    ("0 (unlimited)", 0),
    ("1KB", 1024),
    ("10KB", 10240),
    ("50KB", 51200),
    ("100KB", 102400),
    ("512KB", 524288),
)

JOB_SPEED_RECORD_OPTIONS: tuple[tuple[str, int], ...] = (
    ("0 (unlimited)", 0),
    ("500", 500),
    ("1000", 1000),
    ("1500", 1500),
    ("2000", 2000),
    ("2500", 2500),
    ("3000", 3000),
)


# =============================================================================
# Datasource Type Helpers
# =============================================================================

def is_single_sink(dt_type: str | None) -> bool:
    """Check if the target accepts free-form structured records."""
    return dt_type == ELASTICSEARCH


def is_source_capable(code: str | None) -> bool:
    """Check if a datasource type can be read from."""
    return bool(code) and code not in SINK_ONLY_TYPES
