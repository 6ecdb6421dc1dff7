"""Dependency resolver: derives field state and sequences remote lookups.

The resolver owns the descriptor table of one form and the derived state of
every descriptor (layout weight and option list). It never infers
dependencies: a descriptor is re-evaluated when, and only when, a key listed
in its ``depends_on`` changes.

Lookups run as asyncio tasks on the caller's event loop. Every issued lookup
records the trigger's generation and the triggering value; when it completes
its result is applied only if both still match the model. A superseded
lookup is discarded whatever its outcome, since there is no way to cancel
the remote call itself.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Sequence

from jobform.constants import LAYOUT_KEYS
from jobform.layout import spans_for_model
from jobform.lib.errors import ConfigurationError, LookupFailedError
from jobform.models.descriptors import (
    FieldDescriptor,
    FieldState,
    FieldView,
    LookupResult,
    RemoteTrigger,
)
from jobform.models.form_model import FormModel

logger = logging.getLogger(__name__)

__all__ = [
    "DependencyResolver",
    "LookupOutcome",
    "LookupStatus",
    "LookupTicket",
]

Subscriber = Callable[[str, Any], None]


class LookupStatus(str, Enum):
    """How an issued lookup ended."""

    APPLIED = "applied"
    DISCARDED = "discarded"  # Superseded before it completed
    FAILED = "failed"
    SKIPPED = "skipped"  # Precondition not met, nothing fetched


@dataclass
class LookupOutcome:
    trigger: str
    value: Any
    status: LookupStatus
    error: Optional[LookupFailedError] = None


@dataclass
class LookupTicket:
    """Handle on an in-flight lookup returned by on_field_change."""

    trigger: str
    value: Any
    generation: int
    task: "asyncio.Task[LookupOutcome]"

    def done(self) -> bool:
        return self.task.done()

    async def result(self) -> LookupOutcome:
        """Wait for the lookup.

        Raises:
            LookupFailedError: If the lookup failed and was not superseded
        """
        outcome = await self.task
        if outcome.error is not None:
            raise outcome.error
        return outcome


class DependencyResolver:
    """Binds a descriptor table to a form model.

    Args:
        model: The form's model, shared with the mapping reconciler
        descriptors: Descriptor table in rendering order
        catalog: Collaborator the remote lookups query
        timeout: Optional per-lookup timeout in seconds
    """

    def __init__(
        self,
        model: FormModel,
        descriptors: Sequence[FieldDescriptor],
        catalog: Any,
        *,
        timeout: Optional[float] = None,
    ) -> None:
        self.model = model
        self.catalog = catalog
        self.timeout = timeout

        self.descriptors: dict[str, FieldDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.key in self.descriptors:
                raise ConfigurationError("Duplicate descriptor key", field=descriptor.key)
            self.descriptors[descriptor.key] = descriptor

        # model key -> descriptor owning its default
        self._owners: dict[str, FieldDescriptor] = {}
        # upstream key -> descriptor keys to re-evaluate
        self._dependents: dict[str, list[str]] = {}
        self._triggers: dict[str, RemoteTrigger] = {}
        self._generations: dict[str, int] = {}
        self._states: dict[str, FieldState] = {}
        self._subscribers: dict[str, list[Subscriber]] = {}
        self._in_flight: set["asyncio.Task[LookupOutcome]"] = set()
        self._initialized = False

        for descriptor in self.descriptors.values():
            for key in descriptor.model_keys:
                self._owners[key] = descriptor
            for key in descriptor.depends_on:
                self._dependents.setdefault(key, []).append(descriptor.key)
            if descriptor.remote_trigger is not None:
                self._triggers[descriptor.key] = descriptor.remote_trigger
                self._generations[descriptor.key] = 0
            if descriptor.options_loader is not None:
                self._generations[_loader_id(descriptor.key)] = 0

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def initialize(self) -> "DependencyResolver":
        """Seed defaults, check the dependency table and evaluate every field once."""
        for key, descriptor in self._owners.items():
            self.model.ensure(key, descriptor.default_value())

        self._check_declarations()

        for descriptor in self.descriptors.values():
            self._states[descriptor.key] = FieldState(
                layout_weight=self._layout_weight(descriptor),
                options=self._initial_options(descriptor),
            )

        self._initialized = True
        logger.debug("Initialized resolver with %d descriptors", len(self.descriptors))
        return self

    def _check_declarations(self) -> None:
        for descriptor in self.descriptors.values():
            declared = set(descriptor.depends_on)
            if descriptor.layout_group is not None:
                missing = [key for key in LAYOUT_KEYS if key not in declared]
                if missing:
                    raise ConfigurationError(
                        "Laid-out field does not declare its layout inputs",
                        field=descriptor.key,
                        value=missing,
                    )
            if descriptor.options_rule is not None:
                missing = [key for key in descriptor.options_rule.reads if key not in declared]
                if missing:
                    raise ConfigurationError(
                        "Options rule reads undeclared keys",
                        field=descriptor.key,
                        value=missing,
                    )
            unknown = [key for key in descriptor.depends_on if key not in self.model]
            if unknown:
                raise ConfigurationError(
                    "Field depends on keys missing from the model",
                    field=descriptor.key,
                    value=unknown,
                )
            trigger = descriptor.remote_trigger
            if trigger is not None:
                for key in trigger.produces:
                    if key not in self.model:
                        raise ConfigurationError(
                            "Lookup produces a key missing from the model",
                            field=descriptor.key,
                            value=key,
                        )
                for key in trigger.option_keys:
                    if key not in self.descriptors:
                        raise ConfigurationError(
                            "Lookup fills options of an unknown field",
                            field=descriptor.key,
                            value=key,
                        )

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise ConfigurationError("Resolver used before initialize()")

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    def _layout_weight(self, descriptor: FieldDescriptor) -> int:
        if descriptor.layout_group is None:
            return descriptor.span
        return spans_for_model(self.model).get(descriptor.layout_group, 0)

    def _initial_options(self, descriptor: FieldDescriptor) -> list:
        if descriptor.options_rule is not None:
            return list(descriptor.options_rule.build(self.model))
        return list(descriptor.options)

    def _reevaluate(self, key: str) -> None:
        """Re-run layout and option rules of every descriptor depending on key."""
        for dependent in self._dependents.get(key, ()):
            descriptor = self.descriptors[dependent]
            state = self._states[dependent]
            state.layout_weight = self._layout_weight(descriptor)
            if descriptor.options_rule is not None:
                state.options = list(descriptor.options_rule.build(self.model))

    def compute_visible(self, key: str) -> bool:
        """Whether a field is rendered: its layout weight is non-zero."""
        self._require_initialized()
        return self._states[key].visible

    def layout_weight(self, key: str) -> int:
        self._require_initialized()
        return self._states[key].layout_weight

    def options(self, key: str) -> tuple:
        self._require_initialized()
        return tuple(self._states[key].options)

    def field_view(self, key: str) -> FieldView:
        """(visible, options, value) of one descriptor for the rendering layer."""
        self._require_initialized()
        descriptor = self.descriptors[key]
        keys = descriptor.model_keys
        if not keys:
            value = None
        elif len(keys) == 1:
            value = self.model[keys[0]]
        else:
            value = tuple(self.model[k] for k in keys)
        state = self._states[key]
        return FieldView(visible=state.visible, options=tuple(state.options), value=value)

    def visible_keys(self) -> list[str]:
        self._require_initialized()
        return [key for key, state in self._states.items() if state.visible]

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, key: str, callback: Subscriber) -> None:
        """Call `callback(key, value)` whenever the resolver writes key."""
        self._subscribers.setdefault(key, []).append(callback)

    def _notify(self, key: str) -> None:
        for callback in self._subscribers.get(key, ()):
            callback(key, self.model[key])

    # ------------------------------------------------------------------
    # Changes
    # ------------------------------------------------------------------

    def on_field_change(self, key: str, value: Any) -> Optional[LookupTicket]:
        """Write a user value and propagate it.

        Dependents are re-evaluated synchronously. If key is a trigger, the
        keys its lookup produces are cleared before this call returns and
        the lookup is scheduled on the running event loop.

        Returns:
            Ticket of the issued lookup, or None if key triggers nothing

        Raises:
            ConfigurationError: If key is a trigger and no event loop is running;
                the model is left untouched
        """
        self._require_initialized()
        if key not in self.model:
            raise ConfigurationError("Unknown field", field=key)
        trigger = self._triggers.get(key)
        if trigger is not None:
            _require_running_loop(key)

        self.model.set_value(key, value)
        self._notify(key)
        self._reevaluate(key)

        if trigger is None:
            return None

        self._clear_downstream(key, trigger, {key})
        self._generations[key] += 1
        return self._issue(key, trigger, compare_key=key)

    def _clear_downstream(self, key: str, trigger: RemoteTrigger, seen: set[str]) -> None:
        for option_key in trigger.option_keys:
            self._states[option_key].options = []
        for produced in trigger.produces:
            if produced in seen:
                continue
            seen.add(produced)
            self._clear(produced)
            nested = self._triggers.get(produced)
            if nested is not None:
                # Supersedes anything in flight for the cleared trigger
                self._generations[produced] += 1
                self._clear_downstream(produced, nested, seen)

    def _clear(self, key: str) -> None:
        owner = self._owners.get(key)
        default = owner.default_value() if owner is not None else ""
        self.model.clear(key, default)
        self._notify(key)
        self._reevaluate(key)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _issue(
        self, lookup_id: str, trigger: RemoteTrigger, compare_key: Optional[str]
    ) -> LookupTicket:
        generation = self._generations[lookup_id]
        value = self.model[compare_key] if compare_key is not None else None
        snapshot = self.model.snapshot()

        task = asyncio.get_running_loop().create_task(
            self._run(lookup_id, trigger, snapshot, value, generation, compare_key),
            name=lookup_id,
        )
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        logger.info("Lookup issued for %s=%r", lookup_id, value)
        return LookupTicket(trigger=lookup_id, value=value, generation=generation, task=task)

    def _is_stale(
        self, lookup_id: str, value: Any, generation: int, compare_key: Optional[str]
    ) -> bool:
        if self._generations.get(lookup_id) != generation:
            return True
        return compare_key is not None and self.model.get(compare_key) != value

    async def _run(
        self,
        lookup_id: str,
        trigger: RemoteTrigger,
        snapshot: dict,
        value: Any,
        generation: int,
        compare_key: Optional[str],
    ) -> LookupOutcome:
        try:
            pending = trigger.fetch(snapshot, self.catalog)
            if self.timeout is not None:
                result = await asyncio.wait_for(pending, self.timeout)
            else:
                result = await pending
        except Exception as e:
            if self._is_stale(lookup_id, value, generation, compare_key):
                logger.debug("Discarded failed lookup for %s=%r (superseded)", lookup_id, value)
                return LookupOutcome(lookup_id, value, LookupStatus.DISCARDED)
            error = LookupFailedError(
                f"Lookup for {lookup_id} failed", trigger=lookup_id, value=value, cause=e
            )
            owner_key = compare_key or _loader_key(lookup_id)
            if owner_key in self.model:
                self.model.field(owner_key).lookup_error = str(e) or type(e).__name__
            logger.warning("Lookup for %s=%r failed: %s", lookup_id, value, e)
            return LookupOutcome(lookup_id, value, LookupStatus.FAILED, error=error)

        if self._is_stale(lookup_id, value, generation, compare_key):
            logger.debug("Discarded lookup result for %s=%r (superseded)", lookup_id, value)
            return LookupOutcome(lookup_id, value, LookupStatus.DISCARDED)
        if result is None:
            return LookupOutcome(lookup_id, value, LookupStatus.SKIPPED)

        self._apply(result)
        logger.info("Lookup applied for %s=%r", lookup_id, value)
        return LookupOutcome(lookup_id, value, LookupStatus.APPLIED)

    def _apply(self, result: LookupResult) -> None:
        for key, options in result.options.items():
            self._states[key].options = list(options)
        for key, value in result.values.items():
            self.model.set_lookup_value(key, value)
        for key in result.values:
            self._notify(key)
            self._reevaluate(key)

    def prime(self) -> list[LookupTicket]:
        """Fill option lists for the current values without clearing anything.

        Runs every options loader, and every trigger flagged ``prime`` whose
        key holds a value. Used on first load of an existing job.
        """
        self._require_initialized()
        _require_running_loop()
        tickets: list[LookupTicket] = []
        for descriptor in self.descriptors.values():
            if descriptor.options_loader is not None:
                lookup_id = _loader_id(descriptor.key)
                self._generations[lookup_id] += 1
                tickets.append(self._issue(lookup_id, descriptor.options_loader, None))
            trigger = descriptor.remote_trigger
            if trigger is not None and trigger.prime and self.model[descriptor.key]:
                self._generations[descriptor.key] += 1
                tickets.append(self._issue(descriptor.key, trigger, descriptor.key))
        return tickets

    @property
    def in_flight(self) -> int:
        return sum(1 for task in self._in_flight if not task.done())

    async def wait_idle(self) -> list[LookupOutcome]:
        """Wait until no lookup is in flight.

        Returns:
            Outcomes of every lookup awaited, failures included
        """
        outcomes: list[LookupOutcome] = []
        seen: set[asyncio.Task] = set()
        while True:
            pending = [task for task in self._in_flight if task not in seen]
            if not pending:
                return outcomes
            seen.update(pending)
            outcomes.extend(await asyncio.gather(*pending))


def _loader_id(key: str) -> str:
    return f"{key}:options"


def _loader_key(lookup_id: str) -> str:
    return lookup_id.rsplit(":options", 1)[0]


def _require_running_loop(key: Optional[str] = None) -> None:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        raise ConfigurationError(
            "Lookups can only be issued from a running event loop",
            field=key,
            suggestion="Change trigger fields from async code, e.g. inside asyncio.run().",
        ) from None
