"""Form model: the flat key -> value map behind one job form.

Keys may be dot-paths denoting nesting (``es_params.index``). The model is
owned by one form and shared by reference with the dependency resolver and
the mapping reconciler.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping

from jobform.models.field_value import FieldSource, FieldValue


@dataclass
class FormModel:
    """UI-agnostic state of a job form.

    Attributes:
        fields: Field values keyed by model key
    """

    fields: dict[str, FieldValue] = field(default_factory=dict)

    @classmethod
    def from_values(cls, values: Mapping[str, Any]) -> "FormModel":
        """Create a model from (possibly nested) job parameters.

        Nested mappings are flattened into dot-path keys; lists are kept
        as values.
        """
        model = cls()
        for key, value in _flatten(values).items():
            model.fields[key] = FieldValue(
                name=key,
                value=value,
                source=FieldSource.LOCAL,
            )
        return model

    def __contains__(self, key: object) -> bool:
        return key in self.fields

    def __getitem__(self, key: str) -> Any:
        return self.fields[key].value

    def __iter__(self) -> Iterator[str]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def get(self, key: str, default: Any = None) -> Any:
        if key in self.fields:
            return self.fields[key].value
        return default

    def field(self, key: str) -> FieldValue:
        return self.fields[key]

    def ensure(self, key: str, default: Any) -> None:
        """Seed a key with its default if the model does not hold it yet."""
        if key not in self.fields:
            self.fields[key] = FieldValue(name=key, value=default)

    def set_value(self, key: str, value: Any) -> None:
        """Set a user value (marks it as local)."""
        if key not in self.fields:
            self.fields[key] = FieldValue(name=key)
        self.fields[key].set_local_value(value)

    def set_lookup_value(self, key: str, value: Any) -> None:
        if key not in self.fields:
            self.fields[key] = FieldValue(name=key)
        self.fields[key].set_lookup_value(value)

    def clear(self, key: str, default: Any = "") -> None:
        if key not in self.fields:
            self.fields[key] = FieldValue(name=key, value=default)
            return
        self.fields[key].clear(default)

    def touch(self, key: str) -> None:
        """Mark a value edited in place (column lists) as local."""
        if key in self.fields:
            self.fields[key].source = FieldSource.LOCAL

    def snapshot(self) -> dict[str, Any]:
        """Flat copy of the current values, handed to lookups."""
        return {key: fv.value for key, fv in self.fields.items()}

    def to_dict(self, keys: list[str] | None = None) -> dict[str, Any]:
        """Convert the model to nested parameters.

        Dot-path keys are expanded into nested dictionaries.

        Args:
            keys: Restrict the export to these keys (default: all)
        """
        result: dict[str, Any] = {}
        for key in keys if keys is not None else list(self.fields):
            if key not in self.fields:
                continue
            value = self.fields[key].value
            if "." in key:
                parent, child = key.split(".", 1)
                nested = result.setdefault(parent, {})
                if isinstance(nested, dict):
                    nested[child] = value
            else:
                result[key] = value
        return result


def _flatten(config: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten nested config into dot-path keys."""
    result: dict[str, Any] = {}

    for key, value in config.items():
        flat_key = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            result.update(_flatten(value, flat_key))
        else:
            result[flat_key] = value

    return result
