"""Dependent-field resolution engine for DataX job forms.

This package derives which fields of a data-integration job form are laid
out, runs the remote lookups a field change triggers (datasources, tables,
columns and partitions), and keeps the two column lists of the field-mapping
editor in sync.

Usage:
    python -m jobform layout --ds-type HIVE --dt-type MYSQL
    python -m jobform check job.yaml --catalog catalog.yaml
"""

from jobform.form import JobForm
from jobform.mapping import MappingReconciler
from jobform.resolver import DependencyResolver, LookupOutcome, LookupStatus, LookupTicket
from jobform.settings import FormSettings

__version__ = "0.1.0"

__all__ = [
    "JobForm",
    "MappingReconciler",
    "DependencyResolver",
    "LookupOutcome",
    "LookupStatus",
    "LookupTicket",
    "FormSettings",
]
