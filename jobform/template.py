"""Static descriptor template of the DataX synchronisation task form.

The template is the declarative table the dependency resolver interprets:
which fields exist, which span group lays each one out, which keys each one
depends on, how it is validated, and which lookups its changes trigger.

Trigger chain (clearing cascades down the chain):

    ds_type -> data_source -> source_table -> ds_columns, ds_partitions
    dt_type -> data_target -> target_table -> dt_columns, dt_partitions
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping, Optional

from jobform import validators
from jobform.constants import (
    ALIAS_MODE_OPTIONS,
    CUSTOM_CONFIG,
    DATA_SOURCE,
    DATA_TARGET,
    DS_COLUMNS,
    DS_PARTITIONS,
    DS_TYPE,
    DT_COLUMNS,
    DT_PARTITIONS,
    DT_TYPE,
    HIVE,
    JOB_SPEED_BYTE_OPTIONS,
    JOB_SPEED_RECORD_OPTIONS,
    JSON_TEMPLATE,
    LAYOUT_KEYS,
    LOCAL_PARAMS,
    MYSQL,
    RULE_MODE_OPTIONS,
    SOURCE_TABLE,
    TARGET_TABLE,
    WRITE_MODE,
    WRITE_MODE_OPTIONS,
    is_single_sink,
    is_source_capable,
)
from jobform.models.descriptors import (
    FieldDescriptor,
    FieldKind,
    LookupResult,
    Option,
    OptionsRule,
    RemoteTrigger,
)
from jobform.models.form_model import FormModel

__all__ = ["build_datax_template", "MAPPING_KEY"]

MAPPING_KEY = f"{DS_COLUMNS}:{DT_COLUMNS}"


# =============================================================================
# Lookups
# =============================================================================


def _type_options(
    option_key: str, sources_only: bool, disabled: frozenset[str]
) -> RemoteTrigger:
    async def fetch(values: Mapping[str, Any], catalog: Any) -> LookupResult:
        types = await catalog.list_datasource_types()
        options = [
            Option(t.code, t.code)
            for t in types
            if t.enabled
            and t.code not in disabled
            and (is_source_capable(t.code) or not sources_only)
        ]
        return LookupResult(options={option_key: options})

    return RemoteTrigger(fetch=fetch, option_keys=(option_key,), prime=True)


def _instances(
    type_key: str, instance_key: str, produces: tuple[str, ...]
) -> RemoteTrigger:
    async def fetch(values: Mapping[str, Any], catalog: Any) -> Optional[LookupResult]:
        ds_type = values.get(type_key)
        if not ds_type:
            return None
        instances = await catalog.list_datasource_instances(ds_type)
        return LookupResult(
            options={instance_key: [Option(i.name, str(i.id)) for i in instances]}
        )

    return RemoteTrigger(
        fetch=fetch, produces=produces, option_keys=(instance_key,), prime=True
    )


def _tables(
    instance_key: str,
    table_key: str,
    produces: tuple[str, ...],
    skip: Callable[[Mapping[str, Any]], bool] = lambda values: False,
) -> RemoteTrigger:
    async def fetch(values: Mapping[str, Any], catalog: Any) -> Optional[LookupResult]:
        datasource_id = values.get(instance_key)
        if not datasource_id or skip(values):
            return None
        tables = await catalog.list_tables(str(datasource_id))
        return LookupResult(options={table_key: [Option(t, t) for t in tables]})

    return RemoteTrigger(
        fetch=fetch, produces=produces, option_keys=(table_key,), prime=True
    )


def _columns(
    instance_key: str, table_key: str, columns_key: str, partitions_key: str
) -> RemoteTrigger:
    async def fetch(values: Mapping[str, Any], catalog: Any) -> Optional[LookupResult]:
        datasource_id = values.get(instance_key)
        table_name = values.get(table_key)
        if not datasource_id or not table_name:
            return None
        table = await catalog.fetch_columns_and_partitions(str(datasource_id), table_name)
        return LookupResult(
            values={
                columns_key: table.to_records(),
                partitions_key: table.partition_placeholders(),
            }
        )

    return RemoteTrigger(fetch=fetch, produces=(columns_key, partitions_key))


def _write_mode_options(model: FormModel) -> list[Option]:
    dt_type = model.get(DT_TYPE)
    if dt_type == HIVE:
        return list(Option.from_pairs(RULE_MODE_OPTIONS))
    if dt_type == MYSQL:
        return list(Option.from_pairs(WRITE_MODE_OPTIONS))
    return []


# =============================================================================
# Template
# =============================================================================


def _laid_out(
    key: str,
    kind: FieldKind,
    group: str,
    *,
    depends_on: Iterable[str] = (),
    **kwargs: Any,
) -> FieldDescriptor:
    """Descriptor whose span comes from the layout table."""
    return FieldDescriptor(
        key=key,
        kind=kind,
        layout_group=group,
        depends_on=tuple(LAYOUT_KEYS) + tuple(depends_on),
        **kwargs,
    )


def _es(name: str, kind: FieldKind, group: str = "es_params", **kwargs: Any) -> FieldDescriptor:
    return _laid_out(f"es_params.{name}", kind, group, **kwargs)


def build_datax_template(
    disabled_types: Iterable[str] = (),
) -> tuple[FieldDescriptor, ...]:
    """Build the descriptor table of a DataX task form.

    Args:
        disabled_types: Type codes to hide on top of the catalog's own flags

    Returns:
        Descriptors in rendering order
    """
    disabled = frozenset(code.upper() for code in disabled_types)

    return (
        _laid_out("divider.source", FieldKind.DIVIDER, "source_table", label="Data source"),
        FieldDescriptor(
            key=CUSTOM_CONFIG,
            kind=FieldKind.SWITCH,
            label="Custom template",
            default=False,
        ),
        _laid_out(
            DS_TYPE,
            FieldKind.SELECT,
            "datasource",
            label="Datasource type",
            required=True,
            options_loader=_type_options(DS_TYPE, sources_only=True, disabled=disabled),
            remote_trigger=_instances(DS_TYPE, DATA_SOURCE, produces=(DATA_SOURCE,)),
        ),
        _laid_out(
            DATA_SOURCE,
            FieldKind.SELECT,
            "datasource",
            label="Datasource instance",
            required=True,
            remote_trigger=_tables(DATA_SOURCE, SOURCE_TABLE, produces=(SOURCE_TABLE,)),
        ),
        _laid_out(
            SOURCE_TABLE,
            FieldKind.SELECT,
            "source_table",
            label="Table",
            required=True,
            remote_trigger=_columns(DATA_SOURCE, SOURCE_TABLE, DS_COLUMNS, DS_PARTITIONS),
        ),
        _laid_out("where", FieldKind.TEXTAREA, "where", label="Data filter"),
        _laid_out("split_pk", FieldKind.TEXTAREA, "where", label="Split field"),
        _laid_out(
            DS_PARTITIONS,
            FieldKind.PARTITION_LIST,
            "ds_partitions",
            label="Partitions",
            default=[],
            validators=(validators.partition_values,),
        ),
        _laid_out(
            JSON_TEMPLATE,
            FieldKind.EDITOR,
            "json_editor",
            label="Custom JSON template",
            required=True,
        ),
        _laid_out("divider.target", FieldKind.DIVIDER, "source_table", label="Data target"),
        _laid_out(
            DT_TYPE,
            FieldKind.SELECT,
            "destination_datasource",
            label="Target datasource type",
            required=True,
            options_loader=_type_options(DT_TYPE, sources_only=False, disabled=disabled),
            remote_trigger=_instances(
                DT_TYPE, DATA_TARGET, produces=(DATA_TARGET, WRITE_MODE)
            ),
        ),
        _laid_out(
            DATA_TARGET,
            FieldKind.SELECT,
            "destination_datasource",
            label="Target datasource instance",
            required=True,
            remote_trigger=_tables(
                DATA_TARGET,
                TARGET_TABLE,
                produces=(TARGET_TABLE, DT_COLUMNS),
                skip=lambda values: is_single_sink(values.get(DT_TYPE)),
            ),
        ),
        _laid_out(
            TARGET_TABLE,
            FieldKind.SELECT,
            "target_table",
            label="Target table",
            required=True,
            remote_trigger=_columns(DATA_TARGET, TARGET_TABLE, DT_COLUMNS, DT_PARTITIONS),
        ),
        _laid_out(
            "pre_statements",
            FieldKind.MULTI_INPUT,
            "other_statement",
            label="Pre statements",
            default=[],
        ),
        _laid_out(
            "post_statements",
            FieldKind.MULTI_INPUT,
            "other_statement",
            label="Post statements",
            default=[],
        ),
        _laid_out(
            DT_PARTITIONS,
            FieldKind.PARTITION_LIST,
            "dt_partitions",
            label="Target partitions",
            default=[],
            validators=(validators.partition_values,),
        ),
        _laid_out(
            WRITE_MODE,
            FieldKind.SELECT,
            "write_mode",
            label="Write mode",
            required=True,
            options_rule=OptionsRule(reads=(DT_TYPE,), build=_write_mode_options),
        ),
        _laid_out("divider.es_params", FieldKind.DIVIDER, "es_params", label="Elasticsearch"),
        _es("index", FieldKind.INPUT, label="Index", required=True),
        _es("type", FieldKind.INPUT, label="Type"),
        _es("clean_up", FieldKind.SWITCH, label="Clean up", default=False),
        _es("splitter", FieldKind.INPUT, label="Splitter"),
        _es("alias", FieldKind.INPUT, label="Alias"),
        _es(
            "alias_mode",
            FieldKind.SELECT,
            label="Alias mode",
            default=0,
            options=Option.from_pairs(ALIAS_MODE_OPTIONS),
        ),
        _es("settings", FieldKind.EDITOR, label="Index settings"),
        _laid_out(
            "divider.es_advanced",
            FieldKind.DIVIDER,
            "es_params",
            label="Elasticsearch advanced",
        ),
        _es("ignore_write_error", FieldKind.SWITCH, "es_params_half", default=False),
        _es("ignore_parse_error", FieldKind.SWITCH, "es_params_half", default=False),
        _es("try_size", FieldKind.NUMBER, "es_params_half", label="Try size", default=0),
        _es("timeout", FieldKind.NUMBER, "es_params_half", label="Timeout", default=0),
        _es("discovery", FieldKind.SWITCH, "es_params_half", default=False),
        _es("compression", FieldKind.SWITCH, "es_params_half", default=False),
        _es("multi_thread", FieldKind.SWITCH, "es_params_half", default=False),
        _es("dynamic", FieldKind.SWITCH, "es_params_half", default=False),
        _laid_out("divider.mapping", FieldKind.DIVIDER, "source_table", label="Field mapping"),
        _laid_out(
            MAPPING_KEY,
            FieldKind.FIELD_MAPPING,
            "source_table",
            label="Field mapping",
            default=[],
            validators=(validators.field_mapping,),
        ),
        _laid_out("divider.channel", FieldKind.DIVIDER, "source_table", label="Channel control"),
        _laid_out(
            LOCAL_PARAMS,
            FieldKind.CUSTOM_PARAMETERS,
            "custom_parameter",
            label="Custom parameters",
            default=[],
            validators=(validators.local_params,),
        ),
        _laid_out(
            "batch_size",
            FieldKind.NUMBER,
            "datasource",
            label="Batch size",
            default=1024,
            required=True,
            validators=(validators.number,),
        ),
        _laid_out(
            "channel",
            FieldKind.NUMBER,
            "datasource",
            label="Channel",
            default=1,
            required=True,
            validators=(validators.number,),
        ),
        _laid_out(
            "job_speed_byte",
            FieldKind.SELECT,
            "job_speed",
            label="Speed limit (bytes)",
            default=0,
            options=Option.from_pairs(JOB_SPEED_BYTE_OPTIONS),
        ),
        _laid_out(
            "job_speed_record",
            FieldKind.SELECT,
            "job_speed",
            label="Speed limit (records)",
            default=0,
            options=Option.from_pairs(JOB_SPEED_RECORD_OPTIONS),
        ),
        FieldDescriptor(key="xms", kind=FieldKind.NUMBER, label="Xms (GB)", span=12, default=1),
        FieldDescriptor(key="xmx", kind=FieldKind.NUMBER, label="Xmx (GB)", span=12, default=5),
    )
