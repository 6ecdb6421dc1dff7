"""Field descriptors: the declarative table the dependency resolver interprets.

A descriptor is a static, frozen definition of one form field. The parts of a
field that change at runtime (its layout weight and its option list) live in
a separate FieldState owned by the resolver, so descriptors can be shared and
compared freely.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Optional

if TYPE_CHECKING:
    from jobform.catalog.base import DatasourceCatalog
    from jobform.models.form_model import FormModel


class FieldKind(str, Enum):
    """Widget family of a field, used by the rendering layer's dispatcher."""

    SELECT = "select"
    INPUT = "input"
    TEXTAREA = "textarea"
    SWITCH = "switch"
    NUMBER = "number"
    EDITOR = "editor"
    MULTI_INPUT = "multi_input"
    PARTITION_LIST = "partition_list"
    FIELD_MAPPING = "field_mapping"
    CUSTOM_PARAMETERS = "custom_parameters"
    DIVIDER = "divider"


@dataclass(frozen=True)
class Option:
    """A label/value pair offered by a select field."""

    label: str
    value: Any

    @classmethod
    def from_pairs(cls, pairs: tuple[tuple[str, Any], ...]) -> tuple["Option", ...]:
        return tuple(cls(label, value) for label, value in pairs)


@dataclass
class LookupResult:
    """What a remote lookup writes back into the form.

    Attributes:
        values: Model keys to populate (column lists, partition placeholders)
        options: Descriptor keys whose option lists are replaced
    """

    values: dict[str, Any] = field(default_factory=dict)
    options: dict[str, list[Option]] = field(default_factory=dict)


# (value, model) -> error message or None
Validator = Callable[[Any, "FormModel"], Optional[str]]

# (snapshot of model values, catalog) -> result, or None when the lookup's
# precondition does not hold (e.g. no datasource selected yet)
Fetch = Callable[
    [Mapping[str, Any], "DatasourceCatalog"], Awaitable[Optional[LookupResult]]
]


@dataclass(frozen=True)
class OptionsRule:
    """Options derived synchronously from other model values.

    `reads` lists every key `build` looks at; the resolver refuses a
    descriptor whose `depends_on` does not cover them.
    """

    reads: tuple[str, ...]
    build: Callable[["FormModel"], list[Option]]


@dataclass(frozen=True)
class RemoteTrigger:
    """Asynchronous lookup attached to a trigger key.

    Attributes:
        fetch: Coroutine function performing the lookup
        produces: Model keys cleared when the trigger changes
        option_keys: Descriptor keys whose options are cleared when the
            trigger changes and repopulated by the lookup
        prime: Also run on first load, without clearing, to fill option
            lists for an existing job
    """

    fetch: Fetch
    produces: tuple[str, ...] = ()
    option_keys: tuple[str, ...] = ()
    prime: bool = False


@dataclass(frozen=True)
class FieldDescriptor:
    """Static definition of one form field.

    Attributes:
        key: Model key (dot-path for nested fields). Field-mapping descriptors
            use "source_key:target_key"; dividers use keys outside the model.
        kind: Widget family
        label: Plain label for tooling output
        layout_group: Span group in the layout table; None means fixed `span`
        span: Fixed layout weight when no layout group is set
        depends_on: Upstream keys whose change re-evaluates this descriptor
        default: Default model value (copied for each model)
        options: Static option list
        options_rule: Options computed from other model values
        options_loader: Lookup run on first load to fill this field's options
        required: Presence rule
        validators: Format rules evaluated against the current model
        remote_trigger: Lookup issued when this field changes
    """

    key: str
    kind: FieldKind
    label: str = ""
    layout_group: str | None = None
    span: int = 24
    depends_on: tuple[str, ...] = ()
    default: Any = ""
    options: tuple[Option, ...] = ()
    options_rule: OptionsRule | None = None
    options_loader: RemoteTrigger | None = None
    required: bool = False
    validators: tuple[Validator, ...] = ()
    remote_trigger: RemoteTrigger | None = None

    @property
    def model_keys(self) -> tuple[str, ...]:
        """Model keys this descriptor reads and writes."""
        if self.kind == FieldKind.DIVIDER:
            return ()
        if self.kind == FieldKind.FIELD_MAPPING:
            return tuple(self.key.split(":"))
        return (self.key,)

    def default_value(self) -> Any:
        """Fresh copy of the default, so list defaults are never shared."""
        return copy.deepcopy(self.default)


@dataclass
class FieldState:
    """Derived, mutable state of a descriptor."""

    layout_weight: int
    options: list[Option] = field(default_factory=list)

    @property
    def visible(self) -> bool:
        return self.layout_weight != 0


@dataclass(frozen=True)
class FieldView:
    """Read accessor handed to the rendering layer."""

    visible: bool
    options: tuple[Option, ...]
    value: Any
