"""
Event data models.
Defines Event (the mutable owner of an event's times, recurrence and
lifecycle status) and EventBuilder (fluent construction with validation).
"""

import hashlib
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional, Union

from eventix.errors import EventixError, InvalidDefinition, InvalidInterval, InvalidTransition
from eventix.lifecycle import LifecycleStatus, can_reschedule, is_active
from eventix.logging_helper import Log
from eventix.occurrence_set import OccurrenceSet, RecurringDefinition, SingleDefinition
from eventix.recurrence import ExceptionDate, RecurrenceRule
from eventix.settings_manager import get_default_timezone
from eventix.time_models import TimeInstant, ZonedInterval
from eventix.timezone_service import resolve_zone


@dataclass
class Event:
    """
    A calendar event with timezone-aware start and end times.
    Status transitions happen here; occurrence snapshots are re-derived from it.
    """
    title: str
    start: TimeInstant
    end: TimeInstant
    timezone: str = "UTC"
    description: Optional[str] = None
    location: Optional[str] = None
    attendees: List[str] = field(default_factory=list)
    recurrence: Optional[RecurrenceRule] = None
    status: LifecycleStatus = LifecycleStatus.CONFIRMED
    uid: Optional[str] = None

    @staticmethod
    def builder() -> "EventBuilder":
        return EventBuilder()

    @property
    def interval(self) -> ZonedInterval:
        return ZonedInterval(self.start, self.end)

    @property
    def identity(self) -> str:
        return self.uid or _derive_uid(self.title, self.start)

    def duration(self) -> timedelta:
        return self.end - self.start

    def is_active(self) -> bool:
        """True for Confirmed, Tentative and Blocked; False for Cancelled."""
        return is_active(self.status)

    def confirm(self):
        self.status = LifecycleStatus.CONFIRMED

    def cancel(self):
        self.status = LifecycleStatus.CANCELLED

    def tentative(self):
        self.status = LifecycleStatus.TENTATIVE

    def block(self):
        self.status = LifecycleStatus.BLOCKED

    def reschedule(self, new_start: TimeInstant, new_end: TimeInstant):
        """
        Move the event. Rescheduling a cancelled event confirms it again.

        Raises:
            InvalidTransition: the event is blocked
            InvalidInterval: new_end is not after new_start
        """
        if not can_reschedule(self.status):
            raise InvalidTransition(f"Event '{self.title}' is blocked and cannot be rescheduled")
        if new_end <= new_start:
            raise InvalidInterval("Event end time must be after start time")
        self.start = new_start
        self.end = new_end
        if self.status is LifecycleStatus.CANCELLED:
            self.status = LifecycleStatus.CONFIRMED
        Log.kv({"stage": "event", "action": "reschedule", "uid": self.identity, "start": new_start.isoformat()})

    def to_definition(self, identity: Optional[str] = None):
        """Snapshot of this event as an OccurrenceSet definition."""
        identity = identity or self.identity
        if self.recurrence is not None:
            return RecurringDefinition(identity, self.recurrence, self.interval, self.status, self.title)
        return SingleDefinition(identity, self.interval, self.status, self.title)

    def occurrences_between(self, window: Optional[ZonedInterval]) -> List[ZonedInterval]:
        """Intervals of this event (expanded if recurring) intersecting window."""
        occurrences = OccurrenceSet.build([self.to_definition()], window)
        return [o.interval for o in occurrences]

    def occurs_on(self, day: date) -> bool:
        """Whether any occurrence intersects the civil day in the event's zone."""
        day_start = TimeInstant.from_local(datetime(day.year, day.month, day.day), self.timezone)
        next_day = day + timedelta(days=1)
        day_end = TimeInstant.from_local(datetime(next_day.year, next_day.month, next_day.day), self.timezone)
        return bool(self.occurrences_between(ZonedInterval.window(day_start, day_end)))


def _derive_uid(title: str, start: TimeInstant) -> str:
    # Generate unique ID for event (title + start instant hash)
    uid_string = f"{start.utc.strftime('%Y%m%dT%H%M%SZ')}_{title}"
    return hashlib.md5(uid_string.encode()).hexdigest() + "@eventix.local"


class EventBuilder:
    """
    Fluent builder for Event.

    Setters record errors instead of raising so the chain stays readable;
    build() raises the first recorded error.
    """

    def __init__(self):
        self._title: Optional[str] = None
        self._description: Optional[str] = None
        self._start: Optional[TimeInstant] = None
        self._end: Optional[TimeInstant] = None
        self._timezone: Optional[str] = None
        self._duration: Optional[timedelta] = None
        self._attendees: List[str] = []
        self._recurrence: Optional[RecurrenceRule] = None
        self._skip_weekends = False
        self._exception_dates: List[ExceptionDate] = []
        self._location: Optional[str] = None
        self._uid: Optional[str] = None
        self._status = LifecycleStatus.CONFIRMED
        self._errors: List[EventixError] = []

    def _attempt(self, action: Callable[[], None]) -> "EventBuilder":
        try:
            action()
        except EventixError as err:
            self._errors.append(err)
        return self

    def title(self, title: str) -> "EventBuilder":
        self._title = title
        return self

    def description(self, description: str) -> "EventBuilder":
        self._description = description
        return self

    def start(self, text: str, zone: Optional[str] = None) -> "EventBuilder":
        """Set the start from a civil date/time string in zone (default: configured zone)."""
        def action():
            tz_name = zone or self._timezone or get_default_timezone()
            resolve_zone(tz_name)
            self._timezone = tz_name
            self._start = TimeInstant.parse(text, tz_name)
        return self._attempt(action)

    def start_at(self, instant: Union[TimeInstant, datetime]) -> "EventBuilder":
        def action():
            value = instant if isinstance(instant, TimeInstant) else TimeInstant.from_datetime(instant)
            self._timezone = value.zone
            self._start = value
        return self._attempt(action)

    def end(self, text: str) -> "EventBuilder":
        """Set the end from a civil date/time string in the start's zone."""
        def action():
            tz_name = self._timezone or get_default_timezone()
            self._end = TimeInstant.parse(text, tz_name)
            self._duration = None
        return self._attempt(action)

    def end_at(self, instant: Union[TimeInstant, datetime]) -> "EventBuilder":
        def action():
            value = instant if isinstance(instant, TimeInstant) else TimeInstant.from_datetime(instant)
            self._end = value
            self._duration = None
        return self._attempt(action)

    def duration(self, duration: timedelta) -> "EventBuilder":
        self._duration = duration
        self._end = None
        return self

    def duration_hours(self, hours: float) -> "EventBuilder":
        return self.duration(timedelta(hours=hours))

    def duration_minutes(self, minutes: float) -> "EventBuilder":
        return self.duration(timedelta(minutes=minutes))

    def attendee(self, attendee: str) -> "EventBuilder":
        self._attendees.append(attendee)
        return self

    def attendees(self, attendees: List[str]) -> "EventBuilder":
        self._attendees = list(attendees)
        return self

    def location(self, location: str) -> "EventBuilder":
        self._location = location
        return self

    def uid(self, uid: str) -> "EventBuilder":
        self._uid = uid
        return self

    def status(self, status: Union[LifecycleStatus, str]) -> "EventBuilder":
        def action():
            try:
                self._status = LifecycleStatus.parse(status)
            except ValueError as err:
                raise InvalidDefinition(str(err)) from err
        return self._attempt(action)

    def recurrence(self, rule: RecurrenceRule) -> "EventBuilder":
        self._recurrence = rule
        return self

    def skip_weekends(self, skip: bool = True) -> "EventBuilder":
        self._skip_weekends = skip
        return self

    def exception_date(self, value: ExceptionDate) -> "EventBuilder":
        self._exception_dates.append(value)
        return self

    def exception_dates(self, values: List[ExceptionDate]) -> "EventBuilder":
        self._exception_dates = list(values)
        return self

    def build(self) -> Event:
        """
        Validate and create the Event.

        Raises:
            EventixError: the first error recorded by a setter, a missing
                title/start/end, or an end not after the start
        """
        if self._errors:
            err = self._errors[0]
            Log.error(f"Event build failed: {err}")
            Log.kv({"stage": "event", "result": "failed", "error": str(err)}, level="error")
            raise err

        if not self._title:
            raise InvalidDefinition("Event title is required")
        if self._start is None:
            raise InvalidDefinition("Event start time is required")
        end = self._end
        if end is None and self._duration is not None:
            end = self._start + self._duration
        if end is None:
            raise InvalidDefinition("Event end time or duration is required")
        if end <= self._start:
            raise InvalidInterval("Event end time must be after start time")

        recurrence = self._recurrence
        if recurrence is not None:
            if self._skip_weekends:
                recurrence = recurrence.skip_weekends()
            if self._exception_dates:
                recurrence = recurrence.except_on(*self._exception_dates)
        elif self._skip_weekends or self._exception_dates:
            Log.warn(f"Event '{self._title}' has recurrence filters but no recurrence rule; ignoring them")

        zone = self._timezone or self._start.zone
        event = Event(
            title=self._title,
            start=self._start,
            end=end.in_zone(zone),
            timezone=zone,
            description=self._description,
            location=self._location,
            attendees=list(self._attendees),
            recurrence=recurrence,
            status=self._status,
            uid=self._uid or _derive_uid(self._title, self._start),
        )
        Log.kv({
            "stage": "event",
            "result": "success",
            "uid": event.uid,
            "start": event.start.isoformat(),
            "end": event.end.isoformat(),
            "recurring": recurrence is not None,
        })
        return event
