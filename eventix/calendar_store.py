"""
Calendar container.
Holds a named list of Event objects, answers date-range queries through
OccurrenceSet, and round-trips to JSON.
"""

from __future__ import annotations

import json
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from eventix.errors import CalendarFormatError, EventixError
from eventix.event_models import Event
from eventix.lifecycle import LifecycleStatus
from eventix.logging_helper import Log
from eventix.occurrence_set import OccurrenceSet
from eventix.recurrence import RecurrenceRule, Weekday
from eventix.time_models import TimeInstant, ZonedInterval


class Calendar:
    """A named collection of events sharing a display timezone."""

    def __init__(self, name: str, description: Optional[str] = None, timezone: str = "UTC"):
        self.name = name
        self.description = description
        self.timezone = timezone
        self.events: List[Event] = []

    def add_event(self, event: Event) -> None:
        self.events.append(event)

    def add_events(self, events: List[Event]) -> None:
        self.events.extend(events)

    def remove_event(self, index: int) -> Optional[Event]:
        if 0 <= index < len(self.events):
            return self.events.pop(index)
        return None

    def update_event(self, index: int, update: Callable[[Event], None]) -> bool:
        """Apply update to the event at index; False when index is out of range."""
        if 0 <= index < len(self.events):
            update(self.events[index])
            return True
        return False

    def find_events_by_title(self, title: str) -> List[Event]:
        """Case-insensitive substring match."""
        needle = title.lower()
        return [event for event in self.events if needle in event.title.lower()]

    def event_count(self) -> int:
        return len(self.events)

    def clear_events(self) -> None:
        self.events.clear()

    def definitions(self) -> list:
        """Snapshot definitions of every event; identities are made unique by position."""
        seen = {}
        result = []
        for event in self.events:
            identity = event.identity
            seen[identity] = seen.get(identity, 0) + 1
            if seen[identity] > 1:
                identity = f"{identity}#{seen[identity] - 1}"
            result.append(event.to_definition(identity))
        return result

    def events_between(self, window: ZonedInterval) -> OccurrenceSet:
        return OccurrenceSet.build(self.definitions(), window)

    def events_on_date(self, day: date, zone: Optional[str] = None) -> OccurrenceSet:
        """Occurrences intersecting the civil day in zone (default: calendar timezone)."""
        zone = zone or self.timezone
        next_day = day + timedelta(days=1)
        window = ZonedInterval.window(
            TimeInstant.from_local(datetime(day.year, day.month, day.day), zone),
            TimeInstant.from_local(datetime(next_day.year, next_day.month, next_day.day), zone),
        )
        return self.events_between(window)

    def to_json(self, indent: Optional[int] = 2) -> str:
        data = {
            "name": self.name,
            "description": self.description,
            "timezone": self.timezone,
            "events": [_event_to_dict(event) for event in self.events],
        }
        return json.dumps(data, indent=indent)

    @classmethod
    def from_json(cls, text: str) -> "Calendar":
        """
        Parse a calendar produced by to_json().

        Raises:
            CalendarFormatError: text is not JSON or misses required fields
            EventixError: a field holds an invalid zone, time or rule
        """
        try:
            data = json.loads(text)
        except ValueError as err:
            raise CalendarFormatError(f"Calendar is not valid JSON: {err}") from err
        if not isinstance(data, dict):
            raise CalendarFormatError("Calendar JSON must be an object")
        if not isinstance(data.get("name"), str):
            raise CalendarFormatError("Calendar JSON is missing 'name'")
        events = data.get("events", [])
        if not isinstance(events, list):
            raise CalendarFormatError("Calendar 'events' must be a list")

        calendar = cls(data["name"], data.get("description"), data.get("timezone") or "UTC")
        for position, item in enumerate(events):
            try:
                calendar.add_event(_event_from_dict(item))
            except (KeyError, TypeError, AttributeError) as err:
                raise CalendarFormatError(f"Event #{position} is malformed: {err!r}") from err
        Log.kv({"stage": "calendar", "action": "load", "name": calendar.name, "events": calendar.event_count()})
        return calendar

    def save(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.write_text(self.to_json(), encoding="utf-8")
        Log.info(f"Calendar saved: {path}")
        return path

    @classmethod
    def load(cls, path: Union[str, Path]) -> "Calendar":
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as err:
            raise CalendarFormatError(f"Unable to read calendar file {path}: {err}") from err
        return cls.from_json(text)

    def __repr__(self):
        return f"Calendar({self.name!r}, {self.event_count()} events, timezone={self.timezone!r})"


def _instant_to_text(instant: TimeInstant) -> str:
    return instant.isoformat()


def _rule_to_dict(rule: RecurrenceRule, title: str) -> Dict[str, Any]:
    if rule.custom_predicate is not None:
        Log.warn(f"Event '{title}': custom recurrence predicate cannot be serialized; dropping it")
    return {
        "frequency": rule.frequency.value,
        "interval": rule.interval,
        "count": rule.count,
        "until": _instant_to_text(rule.until) if rule.until is not None else None,
        "until_zone": rule.until.zone if rule.until is not None else None,
        "weekdays": sorted(day.name for day in rule.weekday_filter) if rule.weekday_filter is not None else None,
        "exception_dates": sorted(d.isoformat() for d in rule.exception_dates),
    }


def _rule_from_dict(data: Dict[str, Any]) -> RecurrenceRule:
    until = None
    if data.get("until"):
        until = TimeInstant.parse(data["until"], data.get("until_zone") or "UTC")
    weekdays = data.get("weekdays")
    return RecurrenceRule(
        frequency=data["frequency"],
        interval=data.get("interval", 1),
        count=data.get("count"),
        until=until,
        weekday_filter=frozenset(Weekday.parse(d) for d in weekdays) if weekdays is not None else None,
        exception_dates=frozenset(date.fromisoformat(d) for d in data.get("exception_dates", [])),
    )


def _event_to_dict(event: Event) -> Dict[str, Any]:
    return {
        "uid": event.uid,
        "title": event.title,
        "description": event.description,
        "location": event.location,
        "attendees": list(event.attendees),
        "timezone": event.timezone,
        "start": _instant_to_text(event.start),
        "end": _instant_to_text(event.end),
        "status": event.status.value,
        "recurrence": _rule_to_dict(event.recurrence, event.title) if event.recurrence is not None else None,
    }


def _event_from_dict(data: Dict[str, Any]) -> Event:
    zone = data.get("timezone") or "UTC"
    try:
        status = LifecycleStatus.parse(data.get("status", "confirmed"))
    except ValueError as err:
        raise CalendarFormatError(str(err)) from err
    try:
        recurrence = _rule_from_dict(data["recurrence"]) if data.get("recurrence") else None
    except ValueError as err:
        if isinstance(err, EventixError):
            raise
        raise CalendarFormatError(f"Invalid recurrence: {err}") from err
    return Event(
        title=data["title"],
        start=TimeInstant.parse(data["start"], zone),
        end=TimeInstant.parse(data["end"], zone),
        timezone=zone,
        description=data.get("description"),
        location=data.get("location"),
        attendees=list(data.get("attendees") or []),
        recurrence=recurrence,
        status=status,
        uid=data.get("uid"),
    )
