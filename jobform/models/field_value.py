"""Field value with source tracking and error indicators."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class FieldSource(str, Enum):
    """Source of a field's value."""

    DEFAULT = "default"  # From descriptor default or cleared
    LOCAL = "local"  # Set by the user
    LOOKUP = "lookup"  # Written by a remote lookup


@dataclass
class FieldValue:
    """Represents a single model entry with provenance tracking.

    Attributes:
        name: The model key (e.g., "ds_type", "es_params.index")
        value: The current value (can be any type)
        source: Where this value came from
        validation_error: Current validation error, if any
        lookup_error: Error of the last failed lookup this key triggered
    """

    name: str
    value: Any = ""
    source: FieldSource = FieldSource.DEFAULT
    validation_error: str | None = None
    lookup_error: str | None = None

    def is_local(self) -> bool:
        """Check if this value was set by the user."""
        return self.source == FieldSource.LOCAL

    def from_lookup(self) -> bool:
        """Check if this value was populated by a remote lookup."""
        return self.source == FieldSource.LOOKUP

    def set_local_value(self, value: Any) -> None:
        """Set a user value."""
        self.value = value
        self.source = FieldSource.LOCAL
        self.lookup_error = None

    def set_lookup_value(self, value: Any) -> None:
        """Set a value produced by a remote lookup."""
        self.value = value
        self.source = FieldSource.LOOKUP

    def clear(self, default: Any = "") -> None:
        """Reset the value to its default."""
        self.value = default
        self.source = FieldSource.DEFAULT
        self.validation_error = None
        self.lookup_error = None

    def __str__(self) -> str:
        marker = "(default)" if self.source == FieldSource.DEFAULT else ""
        return f"{self.name}={self.value!r} {marker}".strip()
