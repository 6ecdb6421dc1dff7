"""Tests for the mapping reconciler and column records.

These tests verify the field-mapping editor's list operations without any
rendering layer.
"""

from __future__ import annotations

import json
from typing import List

import pytest

from jobform.mapping import (
    NAME_REQUIRED,
    PAYLOAD_REQUIRED,
    TYPE_REQUIRED,
    MappingReconciler,
    validate_mapping,
)
from jobform.models.columns import ColumnRecord, Direction, Side
from jobform.models.field_value import FieldSource
from jobform.models.form_model import FormModel


def records(*names: str, connected: bool = False) -> List[ColumnRecord]:
    return [
        ColumnRecord(ordinal_hint=i, name=name, data_type="varchar", connected=connected)
        for i, name in enumerate(names)
    ]


def make_reconciler(
    source: List[ColumnRecord], target: List[ColumnRecord], single_sink: bool = False
) -> MappingReconciler:
    model = FormModel.from_values({"ds_columns": source, "dt_columns": target})
    return MappingReconciler(model, single_sink=lambda _model: single_sink)


def names(items: List[ColumnRecord]) -> List[str]:
    return [record.name for record in items]


class TestColumnRecord:
    """Tests for ColumnRecord."""

    def test_empty_record(self) -> None:
        record = ColumnRecord.empty()

        assert record.ordinal_hint == 0
        assert record.name == ""
        assert record.data_type == "custom"
        assert record.connected is False
        assert record.raw_json == ""

    def test_normalize_json_pretty_prints(self) -> None:
        record = ColumnRecord(raw_json='{"a":1}')

        assert record.normalize_json() is True
        assert record.raw_json == json.dumps({"a": 1}, indent=2)

    def test_normalize_json_clears_malformed(self) -> None:
        record = ColumnRecord(raw_json="{not json")

        assert record.normalize_json() is False
        assert record.raw_json == ""

    def test_has_valid_json(self) -> None:
        assert ColumnRecord(raw_json='{"type": "keyword"}').has_valid_json() is True
        assert ColumnRecord(raw_json="").has_valid_json() is False
        assert ColumnRecord(raw_json="{").has_valid_json() is False

    def test_dict_shape(self) -> None:
        """Records convert to the column-info shape and back."""
        record = ColumnRecord(ordinal_hint=3, name="id", data_type="bigint", connected=True)
        data = record.to_dict()

        assert data == {
            "index": 3,
            "columnName": "id",
            "dataType": "bigint",
            "enable": True,
            "json": "",
        }
        assert ColumnRecord.from_dict(data) == record

    def test_from_dict_snake_case(self) -> None:
        record = ColumnRecord.from_dict({"name": "uid", "connected": True})

        assert record.name == "uid"
        assert record.connected is True
        assert record.data_type == "custom"


class TestAccessors:
    """Tests for list access and the connection summary."""

    def test_missing_lists_seeded(self) -> None:
        reconciler = MappingReconciler(FormModel())

        assert reconciler.source == []
        assert reconciler.target == []
        assert reconciler.connection_summary == []

    def test_non_list_value_repaired(self) -> None:
        model = FormModel.from_values({"ds_columns": "", "dt_columns": None})
        reconciler = MappingReconciler(model)

        assert reconciler.source == []
        assert model["ds_columns"] == []

    def test_lists_are_model_values(self) -> None:
        """The reconciler edits the model's lists in place."""
        reconciler = make_reconciler(records("id"), records("uid"))
        reconciler.add_record(Side.SOURCE)

        assert len(reconciler.model["ds_columns"]) == 2

    def test_summary_covers_overlap(self) -> None:
        source = records("a", "b", "c", connected=True)
        target = records("x", "y", connected=True)
        target[1].connected = False

        reconciler = make_reconciler(source, target)

        assert reconciler.connection_summary == [True, False]

    def test_summary_needs_both_flags(self) -> None:
        source = records("a", connected=True)
        target = records("x")

        assert make_reconciler(source, target).connection_summary == [False]

    def test_all_connected(self) -> None:
        assert make_reconciler(records("a"), records("x"), False).all_connected is False
        assert make_reconciler([], [], False).all_connected is False
        connected = make_reconciler(records("a", connected=True), records("x", connected=True))
        assert connected.all_connected is True


class TestAddRemove:
    """Tests for add_record and remove_record."""

    def test_add_only_touches_one_list(self) -> None:
        reconciler = make_reconciler(records("a"), records("x"))

        record = reconciler.add_record(Side.TARGET)

        assert len(reconciler.source) == 1
        assert len(reconciler.target) == 2
        assert reconciler.target[-1] is record
        assert record.connected is False

    def test_add_marks_list_local(self) -> None:
        reconciler = make_reconciler([], [])
        reconciler.model.set_lookup_value("ds_columns", [])

        reconciler.add_record(Side.SOURCE)

        assert reconciler.model.field("ds_columns").source == FieldSource.LOCAL

    def test_remove_shifts_connections_down(self) -> None:
        """Removing A[i] pairs A[i+1]'s connection with B[i]."""
        source = records("a", "b", "c", connected=True)
        target = records("x", "y", "z", connected=True)
        reconciler = make_reconciler(source, target)

        removed = reconciler.remove_record(Side.SOURCE, 1)

        assert removed is not None and removed.name == "b"
        assert names(reconciler.source) == ["a", "c"]
        # y lost its partner, c now sits opposite y
        assert reconciler.connection_summary == [True, False]
        assert reconciler.target[1].connected is False
        assert reconciler.target[2].connected is True

    def test_remove_severs_counterpart(self) -> None:
        source = records("a", "b", connected=True)
        target = records("x", "y", connected=True)
        reconciler = make_reconciler(source, target)

        reconciler.remove_record(Side.TARGET, 0)

        assert reconciler.source[0].connected is False
        assert reconciler.connection_summary == [False]

    def test_remove_without_counterpart(self) -> None:
        reconciler = make_reconciler(records("a", "b", "c"), records("x"))

        reconciler.remove_record(Side.SOURCE, 2)

        assert names(reconciler.source) == ["a", "b"]
        assert names(reconciler.target) == ["x"]

    @pytest.mark.parametrize("index", [-1, 5])
    def test_remove_out_of_range_is_noop(self, index: int) -> None:
        reconciler = make_reconciler(records("a"), records("x"))

        assert reconciler.remove_record(Side.SOURCE, index) is None
        assert names(reconciler.source) == ["a"]


class TestMove:
    """Tests for move_record."""

    def test_move_down_swaps_and_disconnects(self) -> None:
        source = records("a", "b", "c", connected=True)
        target = records("x", "y", "z", connected=True)
        reconciler = make_reconciler(source, target)

        assert reconciler.move_record(Side.SOURCE, 0, Direction.DOWN) is True

        assert names(reconciler.source) == ["b", "a", "c"]
        assert reconciler.source[0].connected is False
        assert reconciler.source[1].connected is False
        assert reconciler.connection_summary == [False, False, True]

    def test_move_up(self) -> None:
        reconciler = make_reconciler(records("a", "b"), [])

        assert reconciler.move_record(Side.SOURCE, 1, Direction.UP) is True
        assert names(reconciler.source) == ["b", "a"]

    def test_move_accepts_string_direction(self) -> None:
        reconciler = make_reconciler([], records("x", "y"))

        assert reconciler.move_record(Side.TARGET, 0, "down") is True  # type: ignore[arg-type]
        assert names(reconciler.target) == ["y", "x"]

    def test_move_at_boundaries_is_noop(self) -> None:
        source = records("a", "b", connected=True)
        reconciler = make_reconciler(source, records("x", "y", connected=True))

        assert reconciler.move_record(Side.SOURCE, 0, Direction.UP) is False
        assert reconciler.move_record(Side.SOURCE, 1, Direction.DOWN) is False
        assert names(reconciler.source) == ["a", "b"]
        assert reconciler.all_connected is True

    def test_move_leaves_other_list(self) -> None:
        target = records("x", "y", connected=True)
        reconciler = make_reconciler(records("a", "b", connected=True), target)

        reconciler.move_record(Side.SOURCE, 0, Direction.DOWN)

        assert names(reconciler.target) == ["x", "y"]
        assert all(record.connected for record in reconciler.target)


class TestConnections:
    """Tests for set_connection and set_all_connections."""

    def test_set_connection_sets_both(self) -> None:
        reconciler = make_reconciler(records("a", "b"), records("x", "y"))

        assert reconciler.set_connection(1, True) is True

        assert reconciler.source[1].connected is True
        assert reconciler.target[1].connected is True
        assert reconciler.connection_summary == [False, True]

    def test_set_connection_missing_counterpart(self) -> None:
        reconciler = make_reconciler(records("a", "b"), records("x"))

        assert reconciler.set_connection(1, True) is False
        assert reconciler.source[1].connected is False

    def test_set_all_equal_lengths(self) -> None:
        reconciler = make_reconciler(records("a", "b"), records("x", "y"))

        assert reconciler.set_all_connections(True) == 2
        assert reconciler.all_connected is True

        reconciler.set_all_connections(False)
        assert reconciler.connection_summary == [False, False]

    def test_set_all_differing_lengths(self) -> None:
        """Only the overlapping prefix is affected."""
        reconciler = make_reconciler(records("a", "b", "c"), records("x"))

        assert reconciler.set_all_connections(True) == 1

        assert reconciler.connection_summary == [True]
        assert reconciler.source[1].connected is False
        assert reconciler.source[2].connected is False

    def test_set_all_empty(self) -> None:
        reconciler = make_reconciler([], records("x"))

        assert reconciler.set_all_connections(True) == 0
        assert reconciler.all_connected is False


class TestReconcileLengths:
    """Tests for reconcile_lengths."""

    def test_grow_target_in_single_sink_mode(self) -> None:
        """A = [id, name], B = [uid]: B grows to two, A is unchanged."""
        source = [ColumnRecord(name="id"), ColumnRecord(name="name")]
        target = [ColumnRecord(name="uid")]
        reconciler = make_reconciler(source, target, single_sink=True)

        assert reconciler.reconcile_lengths() == 1

        assert len(reconciler.target) == 2
        assert reconciler.target[1] == ColumnRecord.empty()
        assert reconciler.target[1].connected is False
        assert names(reconciler.source) == ["id", "name"]

    def test_source_never_grows_past_target(self) -> None:
        reconciler = make_reconciler(records("a", "b", "c"), records("x"))

        assert reconciler.reconcile_lengths() == 0

        assert len(reconciler.source) == 3
        assert len(reconciler.target) == 1

    def test_source_grows_up_to_target(self) -> None:
        reconciler = make_reconciler(records("a"), records("x", "y", "z"))

        assert reconciler.reconcile_lengths() == 2

        assert names(reconciler.source) == ["a", "", ""]
        assert len(reconciler.target) == 3

    def test_never_removes(self) -> None:
        reconciler = make_reconciler(records("a", "b"), [], single_sink=False)

        reconciler.reconcile_lengths()

        assert names(reconciler.source) == ["a", "b"]
        assert reconciler.target == []

    def test_equal_lengths_untouched(self) -> None:
        reconciler = make_reconciler(records("a"), records("x"), single_sink=True)

        assert reconciler.reconcile_lengths() == 0


class TestUpdateRecord:
    """Tests for update_record."""

    def test_rename(self) -> None:
        reconciler = make_reconciler(records("a"), [])

        assert reconciler.update_record(Side.SOURCE, 0, name="id") is True
        assert reconciler.source[0].name == "id"

    def test_payload_normalized(self) -> None:
        reconciler = make_reconciler([], [ColumnRecord()])

        assert reconciler.update_record(Side.TARGET, 0, raw_json='{"type":"keyword"}') is True
        assert reconciler.target[0].raw_json == json.dumps({"type": "keyword"}, indent=2)

    def test_malformed_payload_cleared(self, caplog: pytest.LogCaptureFixture) -> None:
        reconciler = make_reconciler([], [ColumnRecord()])

        assert reconciler.update_record(Side.TARGET, 0, raw_json="{oops") is False

        assert reconciler.target[0].raw_json == ""
        assert "Rejected malformed JSON" in caplog.text

    def test_out_of_range(self) -> None:
        reconciler = make_reconciler([], [])

        assert reconciler.update_record(Side.SOURCE, 0, name="x") is False


class TestValidateMapping:
    """Tests for the submission predicate."""

    def test_complete_standard_mapping(self) -> None:
        assert validate_mapping(records("a"), records("x"), single_sink=False) is None

    def test_empty_lists_are_valid(self) -> None:
        assert validate_mapping([], [], single_sink=False) is None

    def test_missing_name(self) -> None:
        target = [ColumnRecord(name="", data_type="bigint")]

        assert validate_mapping(records("a"), target, single_sink=False) == NAME_REQUIRED

    def test_missing_type(self) -> None:
        source = [ColumnRecord(name="a", data_type="")]

        assert validate_mapping(source, records("x"), single_sink=False) == TYPE_REQUIRED

    def test_single_sink_needs_payload(self) -> None:
        target = [ColumnRecord(raw_json="")]

        assert validate_mapping(records("a"), target, single_sink=True) == PAYLOAD_REQUIRED

    def test_single_sink_valid(self) -> None:
        target = [ColumnRecord(raw_json='{"type": "keyword"}')]

        assert validate_mapping(records("a"), target, single_sink=True) is None

    def test_single_sink_source_needs_name(self) -> None:
        source = [ColumnRecord(name="")]
        target = [ColumnRecord(raw_json="{}")]

        assert validate_mapping(source, target, single_sink=True) == NAME_REQUIRED

    def test_reconciler_validate_uses_mode(self) -> None:
        reconciler = make_reconciler(records("a"), [ColumnRecord(name="x")], single_sink=True)

        assert reconciler.validate() == PAYLOAD_REQUIRED
