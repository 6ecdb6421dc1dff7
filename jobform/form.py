"""JobForm: one DataX task form with its resolver and mapping editor.

The form owns a single model instance and hands it by reference to the
dependency resolver and the mapping reconciler. Whenever a column list is
replaced, by a lookup or by a cascade clear, the two lists are reconciled
while the editor is editable.

Example:
    async with HttpDatasourceCatalog(settings.api_base_url, settings.api_token) as catalog:
        form = JobForm(catalog, settings=settings)
        await form.load()
        ticket = form.on_field_change("source_table", "orders")
        await ticket.result()
        form.mapping.set_all_connections(True)
        params = form.to_params()
"""

from __future__ import annotations

import uuid
from typing import Any, Mapping, Optional, Sequence

from jobform.constants import (
    DATA_TARGET,
    DS_COLUMNS,
    DT_COLUMNS,
    DT_TYPE,
    SOURCE_TABLE,
    TARGET_TABLE,
    is_single_sink,
)
from jobform.lib.errors import ValidationError
from jobform.lib.logging import get_form_logger
from jobform.mapping import MappingReconciler
from jobform.models.columns import ColumnRecord
from jobform.models.descriptors import FieldDescriptor, FieldKind, FieldView
from jobform.models.form_model import FormModel
from jobform.resolver import DependencyResolver, LookupOutcome, LookupTicket
from jobform.settings import FormSettings
from jobform.template import build_datax_template
from jobform.validators import is_blank

__all__ = ["JobForm"]


def _column_records(key: str, items: Any) -> list[ColumnRecord]:
    """Turn a column list from job parameters into records.

    Raises:
        ValidationError: If the list or one of its entries is not a column mapping
    """
    if items is None or items == "":
        return []
    if not isinstance(items, (list, tuple)):
        raise ValidationError(
            f"Invalid {key}", issues=[f"{key}: expected a list of columns"], key=key
        )
    records: list[ColumnRecord] = []
    issues: list[str] = []
    for index, item in enumerate(items):
        if isinstance(item, ColumnRecord):
            records.append(item)
            continue
        try:
            records.append(ColumnRecord.from_dict(item))
        except (TypeError, ValueError) as e:
            issues.append(f"{key}[{index}]: {e}")
    if issues:
        raise ValidationError(f"Invalid {key}", issues=issues, key=key)
    return records


class JobForm:
    """A DataX task form bound to a datasource catalog.

    Args:
        catalog: Catalog the remote lookups query
        values: Parameters of an existing job (nested mappings allowed)
        settings: Form settings (defaults from the environment)
        descriptors: Descriptor table (defaults to the DataX template)
    """

    def __init__(
        self,
        catalog: Any,
        values: Optional[Mapping[str, Any]] = None,
        *,
        settings: Optional[FormSettings] = None,
        descriptors: Optional[Sequence[FieldDescriptor]] = None,
    ) -> None:
        self.settings = settings or FormSettings()
        self.form_id = uuid.uuid4().hex[:8]
        self.logger = get_form_logger(__name__, form_id=self.form_id, task="datax")

        self.model = FormModel.from_values(values or {})
        for key in (DS_COLUMNS, DT_COLUMNS):
            if key in self.model:
                self.model.fields[key].value = _column_records(key, self.model[key])

        if descriptors is None:
            descriptors = build_datax_template(self.settings.disabled_types)
        self.descriptors: tuple[FieldDescriptor, ...] = tuple(descriptors)

        self.resolver = DependencyResolver(
            self.model,
            self.descriptors,
            catalog,
            timeout=self.settings.lookup_timeout,
        )
        self.mapping = MappingReconciler(
            self.model,
            single_sink=lambda model: is_single_sink(model.get(DT_TYPE)),
        )
        self.resolver.subscribe(DS_COLUMNS, self._columns_replaced)
        self.resolver.subscribe(DT_COLUMNS, self._columns_replaced)
        self.resolver.initialize()

    @property
    def editable(self) -> bool:
        """Whether the mapping editor accepts edits.

        Needs a source table and a chosen sink: the target table, or the
        target datasource when the sink takes structured records.
        """
        if not self.model.get(SOURCE_TABLE):
            return False
        sink = DATA_TARGET if is_single_sink(self.model.get(DT_TYPE)) else TARGET_TABLE
        return bool(self.model.get(sink))

    def _columns_replaced(self, key: str, value: Any) -> None:
        # Fires for lookup results and for cascade clears alike
        if self.editable:
            appended = self.mapping.reconcile_lengths()
            if appended:
                self.logger.debug("Grew mapping by %d records after %s changed", appended, key)

    # ------------------------------------------------------------------
    # Rendering-layer interface
    # ------------------------------------------------------------------

    def on_field_change(self, key: str, value: Any) -> Optional[LookupTicket]:
        self.logger.debug("Field %s changed to %r", key, value)
        return self.resolver.on_field_change(key, value)

    async def load(self) -> list[LookupOutcome]:
        """Fill option lists for the current values (first render)."""
        self.resolver.prime()
        outcomes = await self.resolver.wait_idle()
        failed = [o.trigger for o in outcomes if o.error is not None]
        if failed:
            self.logger.warning("Initial lookups failed for: %s", ", ".join(failed))
        return outcomes

    async def settle(self) -> list[LookupOutcome]:
        """Wait until no lookup is in flight."""
        return await self.resolver.wait_idle()

    def field_view(self, key: str) -> FieldView:
        return self.resolver.field_view(key)

    def visible_fields(self) -> list[FieldDescriptor]:
        return [d for d in self.descriptors if self.resolver.compute_visible(d.key)]

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def validate(self) -> dict[str, str]:
        """Run presence and format rules of every visible field.

        Hidden fields are not validated: they are not part of the job the
        user sees.

        Returns:
            Error message per descriptor key; empty when the form is valid
        """
        errors: dict[str, str] = {}
        for descriptor in self.visible_fields():
            keys = descriptor.model_keys
            if not keys:
                continue
            value = self.field_view(descriptor.key).value
            message = None
            if descriptor.required and is_blank(value):
                message = "Required"
            else:
                for rule in descriptor.validators:
                    message = rule(value, self.model)
                    if message:
                        break
            for key in keys:
                self.model.field(key).validation_error = message
            if message:
                errors[descriptor.key] = message
        return errors

    def to_params(self, strict: bool = True) -> dict[str, Any]:
        """Export the job parameters.

        Args:
            strict: Raise instead of exporting an invalid form

        Raises:
            ValidationError: If strict and validate() found issues
        """
        if strict:
            errors = self.validate()
            if errors:
                raise ValidationError(
                    "Job form has invalid fields",
                    issues=[f"{key}: {message}" for key, message in errors.items()],
                )

        keys = [
            key
            for descriptor in self.descriptors
            if descriptor.kind != FieldKind.DIVIDER
            for key in descriptor.model_keys
        ]
        params = self.model.to_dict(keys)
        for key in (DS_COLUMNS, DT_COLUMNS):
            params[key] = [record.to_dict() for record in self.model.get(key) or []]
        self.logger.info("Exported job parameters (%d keys)", len(params))
        return params
