"""Column records edited by the field-mapping editor."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from jobform.constants import CUSTOM_DATA_TYPE


class Side(str, Enum):
    """Which list of the mapping editor an operation targets."""

    SOURCE = "source"
    TARGET = "target"


class Direction(str, Enum):
    """Direction of a reorder."""

    UP = "up"
    DOWN = "down"


@dataclass
class ColumnRecord:
    """One row of the source or target list of the mapping editor.

    `connected` only means something pairwise: the record at index i of the
    source list is connected to the record at index i of the target list
    when both flags are set.
    """

    ordinal_hint: int = 0
    name: str = ""
    data_type: str = CUSTOM_DATA_TYPE
    connected: bool = False
    raw_json: str = ""

    @classmethod
    def empty(cls) -> "ColumnRecord":
        return cls()

    def has_valid_json(self) -> bool:
        """Check the raw payload is a non-empty, well-formed JSON document."""
        if not self.raw_json:
            return False
        try:
            json.loads(self.raw_json)
        except ValueError:
            return False
        return True

    def normalize_json(self) -> bool:
        """Pretty-print the raw payload, clearing it if it is malformed.

        Returns:
            True when the payload parsed (or was empty), False when cleared.
        """
        if not self.raw_json:
            return True
        try:
            parsed = json.loads(self.raw_json)
        except ValueError:
            self.raw_json = ""
            return False
        self.raw_json = json.dumps(parsed, indent=2)
        return True

    def to_dict(self) -> dict:
        """Convert to the column-info shape the task runner consumes."""
        return {
            "index": self.ordinal_hint,
            "columnName": self.name,
            "dataType": self.data_type,
            "enable": self.connected,
            "json": self.raw_json,
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> "ColumnRecord":
        """Create from the column-info shape (or snake_case keys).

        Raises:
            TypeError: If data is not a mapping
            ValueError: If the index is not a number
        """
        if not isinstance(data, Mapping):
            raise TypeError(f"expected a column mapping, got {type(data).__name__}")
        data_type = data.get("dataType", data.get("data_type", CUSTOM_DATA_TYPE))
        return cls(
            ordinal_hint=int(data.get("index", data.get("ordinal_hint", 0)) or 0),
            name=data.get("columnName", data.get("name", "")) or "",
            data_type=data_type if data_type is not None else "",
            connected=bool(data.get("enable", data.get("connected", False))),
            raw_json=data.get("json", data.get("raw_json", "")) or "",
        )
