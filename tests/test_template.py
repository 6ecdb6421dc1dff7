"""Tests for the DataX descriptor template."""

from __future__ import annotations

from jobform.constants import LAYOUT_KEYS
from jobform.layout import SPAN_GROUPS
from jobform.models.descriptors import FieldKind
from jobform.template import MAPPING_KEY, build_datax_template


class TestTemplate:
    """Static checks over the descriptor table."""

    def test_keys_unique(self) -> None:
        keys = [d.key for d in build_datax_template()]

        assert len(keys) == len(set(keys))

    def test_layout_groups_known(self) -> None:
        for descriptor in build_datax_template():
            if descriptor.layout_group is not None:
                assert descriptor.layout_group in SPAN_GROUPS, descriptor.key
                assert set(LAYOUT_KEYS) <= set(descriptor.depends_on), descriptor.key

    def test_mapping_descriptor(self) -> None:
        mapping = {d.key: d for d in build_datax_template()}[MAPPING_KEY]

        assert mapping.kind == FieldKind.FIELD_MAPPING
        assert mapping.model_keys == ("ds_columns", "dt_columns")

    def test_dividers_have_no_model_keys(self) -> None:
        dividers = [d for d in build_datax_template() if d.kind == FieldKind.DIVIDER]

        assert dividers
        assert all(d.model_keys == () for d in dividers)

    def test_trigger_chain(self) -> None:
        triggers = {
            d.key: d.remote_trigger.produces
            for d in build_datax_template()
            if d.remote_trigger is not None
        }

        assert triggers == {
            "ds_type": ("data_source",),
            "data_source": ("source_table",),
            "source_table": ("ds_columns", "ds_partitions"),
            "dt_type": ("data_target", "write_mode"),
            "data_target": ("target_table", "dt_columns"),
            "target_table": ("dt_columns", "dt_partitions"),
        }

    def test_defaults_not_shared(self) -> None:
        partitions = {d.key: d for d in build_datax_template()}["ds_partitions"]

        first = partitions.default_value()
        first.append("dt=")

        assert partitions.default_value() == []
