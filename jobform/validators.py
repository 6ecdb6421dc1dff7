"""Validation rules for form fields.

Every rule takes the field's current value and the form model and returns
an error message, or None when the value is acceptable. Rules never raise.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Optional

from jobform.constants import DS_COLUMNS, DT_COLUMNS, DT_TYPE, is_single_sink
from jobform.mapping import validate_mapping

if TYPE_CHECKING:
    from jobform.models.form_model import FormModel

__all__ = [
    "is_blank",
    "partition_values",
    "number",
    "local_params",
    "field_mapping",
]


def is_blank(value: Any) -> bool:
    """Presence rule shared by all required fields."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return not value
    return False


def partition_values(value: Any, model: "FormModel") -> Optional[str]:
    """Every partition placeholder ``name=`` must have its value filled in.

    An empty list is valid: the table simply is not partitioned.
    """
    for entry in value or []:
        _, _, partition_value = str(entry).partition("=")
        if not partition_value:
            return "Fill in a value for every partition (name=value)"
    return None


def number(value: Any, model: "FormModel") -> Optional[str]:
    """Value must be a number."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return "Must be a number"
    return None


def local_params(value: Any, model: "FormModel") -> Optional[str]:
    """Custom parameters need a name, and names must be unique."""
    items = value or []
    if not isinstance(items, (list, tuple)) or not all(isinstance(i, Mapping) for i in items):
        return "Custom parameters must be a list of prop/value pairs"
    props = [str(item.get("prop") or "") for item in items]
    if any(not prop for prop in props):
        return "Every custom parameter needs a name"
    duplicates = sorted(prop for prop, count in Counter(props).items() if count > 1)
    if duplicates:
        return f"Duplicate custom parameter: {', '.join(duplicates)}"
    return None


def field_mapping(value: Any, model: "FormModel") -> Optional[str]:
    """Both column lists of the mapping editor must be complete."""
    return validate_mapping(
        model.get(DS_COLUMNS) or [],
        model.get(DT_COLUMNS) or [],
        is_single_sink(model.get(DT_TYPE)),
    )
