"""UI-agnostic state of a job form.

This package provides testable state classes that can be used without any
rendering toolkit: field values with provenance, field descriptors, column
records of the mapping editor and the form model itself.
"""

from jobform.models.columns import ColumnRecord, Direction, Side
from jobform.models.descriptors import (
    FieldDescriptor,
    FieldKind,
    FieldState,
    FieldView,
    LookupResult,
    Option,
    OptionsRule,
    RemoteTrigger,
)
from jobform.models.field_value import FieldSource, FieldValue
from jobform.models.form_model import FormModel

__all__ = [
    "ColumnRecord",
    "Direction",
    "Side",
    "FieldDescriptor",
    "FieldKind",
    "FieldState",
    "FieldView",
    "LookupResult",
    "Option",
    "OptionsRule",
    "RemoteTrigger",
    "FieldSource",
    "FieldValue",
    "FormModel",
]
