"""
Value types for absolute instants and half-open [start, end) intervals.

TimeInstant keeps the absolute instant in UTC and carries the civil zone
identifier as metadata. All comparisons and arithmetic use the absolute
instant: Python compares and subtracts aware datetimes that share a tzinfo
by wall-clock time, which is wrong across DST transitions, so local
datetimes are never used for interval math.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from functools import total_ordering
from typing import Optional, Union

from eventix.errors import InvalidInterval, InvalidWindow, UnknownTimezone
from eventix.timezone_service import (
    UTC,
    localize,
    parse_datetime,
    resolve_zone,
    to_local,
    zone_name_of,
)


@total_ordering
@dataclass(frozen=True, eq=False)
class TimeInstant:
    """An absolute point in time with the zone it is displayed/evaluated in."""

    utc: datetime
    zone: str = "UTC"

    def __post_init__(self):
        if not isinstance(self.utc, datetime) or self.utc.utcoffset() is None:
            raise TypeError("TimeInstant requires a timezone-aware datetime")
        resolve_zone(self.zone)
        object.__setattr__(self, "utc", self.utc.astimezone(UTC))

    @classmethod
    def from_local(cls, value: datetime, zone: str) -> "TimeInstant":
        """Civil datetime in zone -> instant. Aware datetimes are taken as absolute."""
        if value.utcoffset() is not None:
            return cls(value, zone)
        return cls(localize(value, zone), zone)

    @classmethod
    def from_datetime(cls, value: datetime, zone: Optional[str] = None) -> "TimeInstant":
        """Wrap an aware datetime, deriving the zone name from its tzinfo when not given."""
        if zone is None:
            zone = zone_name_of(value.tzinfo)
            if zone is None:
                raise UnknownTimezone(repr(value.tzinfo))
        return cls.from_local(value, zone)

    @classmethod
    def parse(cls, text: str, zone: str = "UTC") -> "TimeInstant":
        return cls(parse_datetime(text, zone), zone)

    @property
    def local(self) -> datetime:
        return to_local(self.utc, self.zone)

    @property
    def local_date(self) -> date:
        return self.local.date()

    @property
    def weekday(self) -> int:
        """Local weekday, Monday == 0."""
        return self.local.weekday()

    def in_zone(self, zone: str) -> "TimeInstant":
        return TimeInstant(self.utc, zone)

    def isoformat(self) -> str:
        return self.local.isoformat()

    def __eq__(self, other):
        if not isinstance(other, TimeInstant):
            return NotImplemented
        return self.utc == other.utc

    def __lt__(self, other):
        if not isinstance(other, TimeInstant):
            return NotImplemented
        return self.utc < other.utc

    def __hash__(self):
        return hash(self.utc)

    def __add__(self, delta: timedelta) -> "TimeInstant":
        if not isinstance(delta, timedelta):
            return NotImplemented
        return TimeInstant(self.utc + delta, self.zone)

    __radd__ = __add__

    def __sub__(self, other: Union["TimeInstant", timedelta]):
        if isinstance(other, TimeInstant):
            return self.utc - other.utc
        if isinstance(other, timedelta):
            return TimeInstant(self.utc - other, self.zone)
        return NotImplemented

    def __repr__(self):
        return f"TimeInstant({self.isoformat()}, {self.zone!r})"

    def __str__(self):
        return f"{self.local.strftime('%Y-%m-%d %H:%M:%S')} {self.zone}"


@dataclass(frozen=True)
class ZonedInterval:
    """Half-open [start, end) interval. end == start is a legal empty interval."""

    start: TimeInstant
    end: TimeInstant

    def __post_init__(self):
        if not isinstance(self.start, TimeInstant) or not isinstance(self.end, TimeInstant):
            raise InvalidInterval("Interval bounds must be TimeInstant values")
        if self.end < self.start:
            raise InvalidInterval(f"Interval end {self.end} is before start {self.start}")

    @classmethod
    def window(cls, start: TimeInstant, end: TimeInstant) -> "ZonedInterval":
        """Build a query window; raises InvalidWindow when end < start."""
        if end < start:
            raise InvalidWindow(f"Window end {end} is before start {start}")
        return cls(start, end)

    @classmethod
    def from_local(cls, start: str, end: str, zone: str = "UTC") -> "ZonedInterval":
        return cls(TimeInstant.parse(start, zone), TimeInstant.parse(end, zone))

    @classmethod
    def starting_at(cls, start: TimeInstant, duration: timedelta) -> "ZonedInterval":
        return cls(start, start + duration)

    @property
    def zone(self) -> str:
        return self.start.zone

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def is_empty(self) -> bool:
        return self.start == self.end

    def overlaps(self, other: "ZonedInterval") -> bool:
        """True when both intervals share a non-zero duration. Adjacency is not overlap."""
        if self.is_empty or other.is_empty:
            return False
        return self.start < other.end and other.start < self.end

    def intersects(self, window: "ZonedInterval") -> bool:
        """Window membership: shared duration, or an empty interval lying inside the window."""
        if self.is_empty:
            return window.start <= self.start < window.end
        return self.overlaps(window)

    def intersection(self, other: "ZonedInterval") -> Optional["ZonedInterval"]:
        if not self.overlaps(other):
            return None
        return ZonedInterval(max(self.start, other.start), min(self.end, other.end))

    def clip(self, window: "ZonedInterval") -> Optional["ZonedInterval"]:
        return self.intersection(window)

    def contains(self, other: "ZonedInterval") -> bool:
        return self.start <= other.start and other.end <= self.end

    def contains_instant(self, instant: TimeInstant) -> bool:
        return self.start <= instant < self.end

    def shifted(self, delta: timedelta) -> "ZonedInterval":
        return ZonedInterval(self.start + delta, self.end + delta)

    def __str__(self):
        return f"[{self.start}, {self.end})"
