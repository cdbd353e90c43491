"""
Materialized occurrences for a scheduling scope.

OccurrenceSet.build turns event definitions (single intervals or recurrence
rules with an anchor) into an immutable, sorted snapshot bounded to a window.
Status changes never mutate a snapshot; with_status() derives a new one.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Iterator, Optional, Sequence, Tuple, Union

from eventix.errors import InvalidDefinition, InvalidInterval, InvalidWindow
from eventix.lifecycle import LifecycleStatus, is_active
from eventix.logging_helper import Log
from eventix.recurrence import RecurrenceRule
from eventix.recurrence_expander import expand
from eventix.time_models import ZonedInterval


@dataclass(frozen=True)
class SingleDefinition:
    """A non-recurring event: one interval."""
    identity: str
    interval: ZonedInterval
    status: LifecycleStatus = LifecycleStatus.CONFIRMED
    title: Optional[str] = None


@dataclass(frozen=True)
class RecurringDefinition:
    """A recurring event: rule anchored at its first interval."""
    identity: str
    rule: RecurrenceRule
    anchor: ZonedInterval
    status: LifecycleStatus = LifecycleStatus.CONFIRMED
    title: Optional[str] = None


EventDefinition = Union[SingleDefinition, RecurringDefinition]


@dataclass(frozen=True)
class Occurrence:
    identity: str
    interval: ZonedInterval
    status: LifecycleStatus = LifecycleStatus.CONFIRMED
    ordinal: Optional[int] = None  # raw recurrence step; None for single events
    title: Optional[str] = None

    @property
    def start(self):
        return self.interval.start

    @property
    def end(self):
        return self.interval.end

    @property
    def is_active(self) -> bool:
        return is_active(self.status)

    def sort_key(self):
        return (self.interval.start.utc, self.identity, -1 if self.ordinal is None else self.ordinal)

    def __str__(self):
        label = self.title or self.identity
        if self.ordinal is not None:
            label = f"{label}#{self.ordinal}"
        return f"{label} {self.interval} ({self.status.value})"


def _check_definition(definition) -> None:
    if not isinstance(definition, (SingleDefinition, RecurringDefinition)):
        raise InvalidDefinition(f"Unsupported event definition: {definition!r}")
    if not isinstance(definition.identity, str) or not definition.identity:
        raise InvalidDefinition(f"Event definition needs a non-empty identity: {definition!r}")
    if not isinstance(definition.status, LifecycleStatus):
        raise InvalidDefinition(
            f"Event {definition.identity!r} has invalid status {definition.status!r}"
        )
    interval = definition.interval if isinstance(definition, SingleDefinition) else definition.anchor
    if not isinstance(interval, ZonedInterval):
        raise InvalidInterval(
            f"Event {definition.identity!r} interval must be a ZonedInterval, got {interval!r}"
        )


class OccurrenceSet:
    """Immutable snapshot of occurrences sorted by start, then identity, then ordinal."""

    __slots__ = ("_occurrences", "_window")

    def __init__(self, occurrences: Iterable[Occurrence] = (), window: Optional[ZonedInterval] = None):
        self._occurrences: Tuple[Occurrence, ...] = tuple(sorted(occurrences, key=Occurrence.sort_key))
        self._window = window

    @classmethod
    def build(
        cls,
        definitions: Sequence[EventDefinition],
        window: Optional[ZonedInterval],
    ) -> "OccurrenceSet":
        """
        Materialize definitions into occurrences intersecting window.

        Single events keep their full bounds (never clipped).
        Recurring events contribute one occurrence per accepted step.
        Any malformed definition fails the whole build.

        Args:
            definitions: SingleDefinition / RecurringDefinition values
            window: Query window, or None for everything (bounded rules only)

        Raises:
            InvalidDefinition, InvalidInterval, InvalidWindow, UnboundedExpansion
        """
        if window is not None and not isinstance(window, ZonedInterval):
            raise InvalidWindow(f"Expected a ZonedInterval window, got {type(window).__name__}")
        definitions = list(definitions)
        for definition in definitions:
            _check_definition(definition)

        occurrences = []
        for definition in definitions:
            if isinstance(definition, SingleDefinition):
                if window is None or definition.interval.intersects(window):
                    occurrences.append(Occurrence(
                        identity=definition.identity,
                        interval=definition.interval,
                        status=definition.status,
                        title=definition.title,
                    ))
                continue
            for ordinal, interval in expand(definition.rule, definition.anchor, window).with_ordinals():
                occurrences.append(Occurrence(
                    identity=definition.identity,
                    interval=interval,
                    status=definition.status,
                    ordinal=ordinal,
                    title=definition.title,
                ))

        result = cls(occurrences, window)
        Log.kv({
            "stage": "build",
            "definitions": len(definitions),
            "occurrences": len(result),
            "window": str(window) if window is not None else "unbounded",
        })
        return result

    @property
    def window(self) -> Optional[ZonedInterval]:
        return self._window

    @property
    def occurrences(self) -> Tuple[Occurrence, ...]:
        return self._occurrences

    def __len__(self):
        return len(self._occurrences)

    def __iter__(self) -> Iterator[Occurrence]:
        return iter(self._occurrences)

    def __getitem__(self, index):
        return self._occurrences[index]

    def __bool__(self):
        return bool(self._occurrences)

    def __repr__(self):
        return f"OccurrenceSet({len(self)} occurrences, window={self._window})"

    def active(self, include_tentative: bool = True) -> Tuple[Occurrence, ...]:
        return tuple(o for o in self._occurrences if is_active(o.status, include_tentative))

    def intersecting(self, window: ZonedInterval) -> Tuple[Occurrence, ...]:
        return tuple(o for o in self._occurrences if o.interval.intersects(window))

    def for_identity(self, identity: str) -> Tuple[Occurrence, ...]:
        return tuple(o for o in self._occurrences if o.identity == identity)

    def with_status(self, identity: str, status: LifecycleStatus) -> "OccurrenceSet":
        """New snapshot in which every occurrence of identity carries status."""
        if not isinstance(status, LifecycleStatus):
            raise InvalidDefinition(f"Invalid status {status!r}")
        return OccurrenceSet(
            (replace(o, status=status) if o.identity == identity else o for o in self._occurrences),
            self._window,
        )
