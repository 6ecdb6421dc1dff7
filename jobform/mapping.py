"""Mapping reconciler for the field-mapping editor.

The editor shows two ordered lists of column records, the source list (A)
and the target list (B), with a connection column in between. Connections
are positional: A[i] and B[i] are connected when both carry
``connected=True``. Any operation that moves a record therefore resets the
flags it would otherwise carry to a different partner.

Both lists live in the form model (``ds_columns`` / ``dt_columns``); the
reconciler mutates them in place, so the model always reflects the editor.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from jobform.constants import DS_COLUMNS, DT_COLUMNS
from jobform.models.columns import ColumnRecord, Direction, Side
from jobform.models.form_model import FormModel

logger = logging.getLogger(__name__)

__all__ = ["MappingReconciler", "validate_mapping"]

NAME_REQUIRED = "Every mapped column needs a name"
TYPE_REQUIRED = "Every mapped column needs a data type"
PAYLOAD_REQUIRED = "Every target record needs a well-formed JSON payload"


def validate_mapping(
    source: Sequence[ColumnRecord],
    target: Sequence[ColumnRecord],
    single_sink: bool,
) -> Optional[str]:
    """Check both lists are complete enough to submit.

    Args:
        source: Source column records
        target: Target column records
        single_sink: Whether the target takes raw structured records

    Returns:
        Error message, or None if the mapping is valid
    """
    if single_sink:
        if any(not record.name for record in source):
            return NAME_REQUIRED
        if any(not record.has_valid_json() for record in target):
            return PAYLOAD_REQUIRED
        return None

    if any(not record.name for record in source) or any(
        not record.name for record in target
    ):
        return NAME_REQUIRED
    if any(not record.data_type for record in source) or any(
        not record.data_type for record in target
    ):
        return TYPE_REQUIRED
    return None


class MappingReconciler:
    """Keeps the source and target column lists of a form in sync.

    Out-of-range indexes are silently ignored: they can only come from a
    stale rendering, never from meaningful user input.

    Example:
        reconciler = MappingReconciler(model, single_sink=lambda m: False)
        reconciler.add_record(Side.SOURCE)
        reconciler.set_connection(0, True)
    """

    def __init__(
        self,
        model: FormModel,
        *,
        source_key: str = DS_COLUMNS,
        target_key: str = DT_COLUMNS,
        single_sink: Callable[[FormModel], bool] | None = None,
    ) -> None:
        self.model = model
        self.source_key = source_key
        self.target_key = target_key
        self._single_sink = single_sink or (lambda _model: False)
        self.model.ensure(source_key, [])
        self.model.ensure(target_key, [])

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def source(self) -> list[ColumnRecord]:
        return self._list(self.source_key)

    @property
    def target(self) -> list[ColumnRecord]:
        return self._list(self.target_key)

    @property
    def single_sink(self) -> bool:
        """Whether the target accepts arbitrary structured records."""
        return bool(self._single_sink(self.model))

    def records(self, side: Side) -> list[ColumnRecord]:
        return self.source if side is Side.SOURCE else self.target

    def _key(self, side: Side) -> str:
        return self.source_key if side is Side.SOURCE else self.target_key

    def _list(self, key: str) -> list[ColumnRecord]:
        value = self.model.get(key)
        if not isinstance(value, list):
            # Keys cleared to a non-list default are repaired in place
            value = []
            self.model.clear(key, value)
        return value

    @property
    def connection_summary(self) -> list[bool]:
        """Per overlapping index, whether A[i] and B[i] are connected."""
        source, target = self.source, self.target
        return [
            source[i].connected and target[i].connected
            for i in range(min(len(source), len(target)))
        ]

    @property
    def all_connected(self) -> bool:
        """Checked state of the select-all control."""
        summary = self.connection_summary
        return bool(summary) and all(summary)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_record(self, side: Side) -> ColumnRecord:
        """Append an empty record to one list."""
        record = ColumnRecord.empty()
        self.records(side).append(record)
        self.model.touch(self._key(side))
        return record

    def remove_record(self, side: Side, index: int) -> ColumnRecord | None:
        """Remove a record, severing the connection through its slot.

        Records after `index` move up one position, so their connections
        now pair with the partner one position earlier.
        """
        records = self.records(side)
        if not _in_range(records, index):
            return None
        for slot in (self.source, self.target):
            if _in_range(slot, index):
                slot[index].connected = False
        removed = records.pop(index)
        self.model.touch(self._key(side))
        return removed

    def move_record(self, side: Side, index: int, direction: Direction) -> bool:
        """Swap a record with its neighbour; no-op at the list boundaries.

        Both swapped records lose their connection.
        """
        records = self.records(side)
        other = index - 1 if Direction(direction) is Direction.UP else index + 1
        if not _in_range(records, index) or not _in_range(records, other):
            return False
        records[index].connected = False
        records[other].connected = False
        records[index], records[other] = records[other], records[index]
        self.model.touch(self._key(side))
        return True

    def set_connection(self, index: int, connected: bool) -> bool:
        """Connect or disconnect A[index] and B[index]."""
        source, target = self.source, self.target
        if not _in_range(source, index) or not _in_range(target, index):
            return False
        source[index].connected = connected
        target[index].connected = connected
        return True

    def set_all_connections(self, connected: bool) -> int:
        """Apply set_connection to the whole overlapping prefix.

        Returns:
            Number of positions updated
        """
        count = min(len(self.source), len(self.target))
        for index in range(count):
            self.set_connection(index, connected)
        return count

    def reconcile_lengths(self) -> int:
        """Grow the shorter list with empty records after a wholesale replace.

        A is grown up to B's length, never past it. When the target takes
        arbitrary records, B is also grown up to A's length. Records are
        only ever appended.

        Returns:
            Number of records appended
        """
        source, target = self.source, self.target
        appended = 0

        if target and len(target) > len(source):
            missing = len(target) - len(source)
            source.extend(ColumnRecord.empty() for _ in range(missing))
            appended += missing

        if source and self.single_sink and len(source) > len(target):
            missing = len(source) - len(target)
            target.extend(ColumnRecord.empty() for _ in range(missing))
            appended += missing

        if appended:
            logger.debug(
                "Reconciled mapping lengths: source=%d target=%d (+%d)",
                len(source),
                len(target),
                appended,
            )
        return appended

    def update_record(
        self,
        side: Side,
        index: int,
        *,
        name: str | None = None,
        raw_json: str | None = None,
    ) -> bool:
        """Edit a record in place.

        A raw JSON payload is pretty-printed; a malformed one is cleared.

        Returns:
            False if the index is out of range or the payload was rejected
        """
        records = self.records(side)
        if not _in_range(records, index):
            return False
        record = records[index]
        if name is not None:
            record.name = name
        accepted = True
        if raw_json is not None:
            record.raw_json = raw_json
            accepted = record.normalize_json()
            if not accepted:
                logger.warning("Rejected malformed JSON payload at %s[%d]", side.value, index)
        self.model.touch(self._key(side))
        return accepted

    def validate(self) -> Optional[str]:
        """Submission check over both lists."""
        return validate_mapping(self.source, self.target, self.single_sink)


def _in_range(records: Sequence[ColumnRecord], index: int) -> bool:
    return 0 <= index < len(records)
