"""
Declarative recurrence rules.

A RecurrenceRule describes how an anchor interval repeats: frequency and
step, an optional Count/Until bound, a weekday filter, civil exception dates
and an optional custom predicate. Rules are immutable; the fluent helpers
return new rules.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum, IntEnum
from typing import Callable, FrozenSet, Optional, Union

from eventix.errors import InvalidRule
from eventix.time_models import TimeInstant


class Frequency(Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class Weekday(IntEnum):
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @property
    def ical(self) -> str:
        return self.name[:2]

    @classmethod
    def parse(cls, value: Union["Weekday", int, str]) -> "Weekday":
        if isinstance(value, str):
            key = value.strip().upper()
            for day in cls:
                if key in (day.name, day.ical, day.name[:3]):
                    return day
            raise InvalidRule(f"Invalid weekday: {value!r}")
        try:
            return cls(value)
        except ValueError as err:
            raise InvalidRule(f"Invalid weekday: {value!r}") from err


WEEKDAYS = frozenset({Weekday.MONDAY, Weekday.TUESDAY, Weekday.WEDNESDAY, Weekday.THURSDAY, Weekday.FRIDAY})

ExceptionDate = Union[date, datetime, TimeInstant]


def _civil_date(value: ExceptionDate) -> date:
    # TimeInstant carries its own zone; exceptions are compared as civil dates.
    if isinstance(value, TimeInstant):
        return value.local_date
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise InvalidRule(f"Invalid exception date: {value!r}")


@dataclass(frozen=True)
class RecurrenceRule:
    frequency: Frequency
    interval: int = 1
    count: Optional[int] = None
    until: Optional[TimeInstant] = None
    weekday_filter: Optional[FrozenSet[Weekday]] = None
    exception_dates: FrozenSet[date] = frozenset()
    custom_predicate: Optional[Callable[[TimeInstant], bool]] = None

    def __post_init__(self):
        if not isinstance(self.frequency, Frequency):
            try:
                object.__setattr__(self, "frequency", Frequency(str(self.frequency).upper()))
            except ValueError as err:
                raise InvalidRule(f"Invalid frequency: {self.frequency!r}") from err
        if isinstance(self.interval, bool) or not isinstance(self.interval, int) or self.interval < 1:
            raise InvalidRule(f"Recurrence interval must be a positive integer, got {self.interval!r}")
        if self.count is not None:
            if isinstance(self.count, bool) or not isinstance(self.count, int) or self.count < 0:
                raise InvalidRule(f"Recurrence count must be a non-negative integer, got {self.count!r}")
        if self.until is not None:
            if isinstance(self.until, datetime):
                object.__setattr__(self, "until", TimeInstant.from_datetime(self.until))
            elif not isinstance(self.until, TimeInstant):
                raise InvalidRule(f"Recurrence until must be a TimeInstant, got {self.until!r}")
        if self.count is not None and self.until is not None:
            raise InvalidRule("Recurrence bound must be either count or until, not both")
        if self.weekday_filter is not None:
            object.__setattr__(
                self, "weekday_filter", frozenset(Weekday.parse(d) for d in self.weekday_filter)
            )
        object.__setattr__(
            self, "exception_dates", frozenset(_civil_date(d) for d in self.exception_dates)
        )
        if self.custom_predicate is not None and not callable(self.custom_predicate):
            raise InvalidRule("Recurrence custom predicate must be callable")

    @classmethod
    def daily(cls) -> "RecurrenceRule":
        return cls(Frequency.DAILY)

    @classmethod
    def weekly(cls) -> "RecurrenceRule":
        return cls(Frequency.WEEKLY)

    @classmethod
    def monthly(cls) -> "RecurrenceRule":
        return cls(Frequency.MONTHLY)

    @classmethod
    def yearly(cls) -> "RecurrenceRule":
        return cls(Frequency.YEARLY)

    def every(self, interval: int) -> "RecurrenceRule":
        """Set the step, e.g. weekly().every(2) for every other week."""
        return replace(self, interval=interval)

    def limit(self, count: int) -> "RecurrenceRule":
        """Bound the rule to count raw steps (filtered-out steps still count)."""
        return replace(self, count=count, until=None)

    def until_instant(self, until: Union[TimeInstant, datetime]) -> "RecurrenceRule":
        return replace(self, until=until, count=None)

    def unbounded(self) -> "RecurrenceRule":
        return replace(self, count=None, until=None)

    def on_weekdays(self, *days: Union[Weekday, int, str]) -> "RecurrenceRule":
        if len(days) == 1 and not isinstance(days[0], (Weekday, int, str)):
            days = tuple(days[0])
        return replace(self, weekday_filter=frozenset(days))

    def skip_weekends(self) -> "RecurrenceRule":
        allowed = WEEKDAYS if self.weekday_filter is None else self.weekday_filter & WEEKDAYS
        return replace(self, weekday_filter=allowed)

    def except_on(self, *dates: ExceptionDate) -> "RecurrenceRule":
        if len(dates) == 1 and isinstance(dates[0], (list, tuple, set, frozenset)):
            dates = tuple(dates[0])
        return replace(self, exception_dates=self.exception_dates | {_civil_date(d) for d in dates})

    def where(self, predicate: Callable[[TimeInstant], bool]) -> "RecurrenceRule":
        return replace(self, custom_predicate=predicate)

    @property
    def is_bounded(self) -> bool:
        return self.count is not None or self.until is not None

    def accepts(self, candidate: TimeInstant) -> bool:
        """Filter checks on a resolved candidate start: exceptions, weekday filter, predicate."""
        local_date = candidate.local_date
        if local_date in self.exception_dates:
            return False
        if self.weekday_filter is not None and local_date.weekday() not in self.weekday_filter:
            return False
        if self.custom_predicate is not None and not self.custom_predicate(candidate):
            return False
        return True

    def rrule_value(self) -> str:
        """RFC 5545 RRULE value, e.g. 'FREQ=WEEKLY;INTERVAL=2;COUNT=10;BYDAY=MO,WE'."""
        parts = [f"FREQ={self.frequency.value}"]
        if self.interval > 1:
            parts.append(f"INTERVAL={self.interval}")
        if self.count is not None:
            parts.append(f"COUNT={self.count}")
        if self.until is not None:
            parts.append(f"UNTIL={self.until.utc.strftime('%Y%m%dT%H%M%SZ')}")
        if self.weekday_filter:
            days = sorted(self.weekday_filter)
            parts.append("BYDAY=" + ",".join(day.ical for day in days))
        return ";".join(parts)

    def to_rrule_string(self, dtstart: TimeInstant) -> str:
        """DTSTART + RRULE text block for this rule anchored at dtstart."""
        if dtstart.zone == "UTC":
            start_line = f"DTSTART:{dtstart.utc.strftime('%Y%m%dT%H%M%SZ')}"
        else:
            start_line = f"DTSTART;TZID={dtstart.zone}:{dtstart.local.strftime('%Y%m%dT%H%M%S')}"
        return f"{start_line}\nRRULE:{self.rrule_value()}"
