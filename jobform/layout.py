"""Table-driven layout policy.

The layout weight ("span") of every laid-out field is a pure function of
three model values: the custom-template switch, the source datasource type
and the target datasource type. The policy is data: a base table per
template mode plus overlays keyed by source type and by target type.
A weight of 0 hides the field.
"""

from __future__ import annotations

from functools import lru_cache
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Iterable, Mapping

from jobform.constants import (
    CUSTOM_CONFIG,
    DS_TYPE,
    DT_TYPE,
    ELASTICSEARCH,
    HIVE,
    MYSQL,
)

if TYPE_CHECKING:
    from jobform.models.form_model import FormModel

__all__ = [
    "SPAN_GROUPS",
    "CUSTOM_TEMPLATE_SPANS",
    "STANDARD_SPANS",
    "SOURCE_TYPE_OVERLAYS",
    "TARGET_TYPE_OVERLAYS",
    "resolve_spans",
    "spans_for_model",
    "layout_table",
]

SPAN_GROUPS: tuple[str, ...] = (
    "datasource",
    "source_table",
    "where",
    "ds_partitions",
    "json_editor",
    "destination_datasource",
    "target_table",
    "other_statement",
    "dt_partitions",
    "write_mode",
    "es_params",
    "es_params_half",
    "custom_parameter",
    "job_speed",
)

# Custom template: only the free-form JSON editor is laid out
CUSTOM_TEMPLATE_SPANS: Mapping[str, int] = MappingProxyType(
    {**{group: 0 for group in SPAN_GROUPS}, "json_editor": 24}
)

STANDARD_SPANS: Mapping[str, int] = MappingProxyType(
    {
        "datasource": 12,
        "source_table": 24,
        "where": 24,
        "ds_partitions": 0,
        "json_editor": 0,
        "destination_datasource": 12,
        "target_table": 24,
        "other_statement": 22,
        "dt_partitions": 0,
        "write_mode": 0,
        "es_params": 0,
        "es_params_half": 0,
        "custom_parameter": 24,
        "job_speed": 12,
    }
)

# Applied on top of STANDARD_SPANS only
SOURCE_TYPE_OVERLAYS: Mapping[str, Mapping[str, int]] = MappingProxyType(
    {
        HIVE: MappingProxyType({"where": 0, "ds_partitions": 24}),
    }
)

TARGET_TYPE_OVERLAYS: Mapping[str, Mapping[str, int]] = MappingProxyType(
    {
        MYSQL: MappingProxyType({"write_mode": 24}),
        HIVE: MappingProxyType(
            {"other_statement": 0, "dt_partitions": 24, "write_mode": 24}
        ),
        ELASTICSEARCH: MappingProxyType(
            {
                "other_statement": 0,
                "es_params": 24,
                "es_params_half": 12,
                "target_table": 0,
            }
        ),
    }
)


@lru_cache(maxsize=None)
def resolve_spans(
    custom_config: bool, ds_type: str | None, dt_type: str | None
) -> Mapping[str, int]:
    """Get the span of every layout group for a (mode, source, target) triple.

    Args:
        custom_config: Whether the custom JSON template is in use
        ds_type: Source datasource type code
        dt_type: Target datasource type code

    Returns:
        Read-only mapping of span group -> weight
    """
    if custom_config:
        return CUSTOM_TEMPLATE_SPANS

    spans = dict(STANDARD_SPANS)
    spans.update(SOURCE_TYPE_OVERLAYS.get(ds_type or "", {}))
    spans.update(TARGET_TYPE_OVERLAYS.get(dt_type or "", {}))
    return MappingProxyType(spans)


def spans_for_model(model: "FormModel") -> Mapping[str, int]:
    """Resolve spans from the layout inputs held by a model."""
    return resolve_spans(
        bool(model.get(CUSTOM_CONFIG)),
        _code(model.get(DS_TYPE)),
        _code(model.get(DT_TYPE)),
    )


def layout_table(
    type_codes: Iterable[str],
) -> dict[tuple[bool, str, str], Mapping[str, int]]:
    """Enumerate the policy for every triple over the given type codes."""
    codes = list(type_codes)
    return {
        (custom, ds_type, dt_type): resolve_spans(custom, ds_type, dt_type)
        for custom in (False, True)
        for ds_type in codes
        for dt_type in codes
    }


def _code(value: Any) -> str | None:
    return str(value) if value else None
