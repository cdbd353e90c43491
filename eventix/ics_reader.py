"""
ICS Reader for loading iCalendar (.ics) files into a Calendar.
Reads what ics_generator writes: one Event per VEVENT, with RRULE/EXDATE
turned back into a RecurrenceRule and X-EVENTIX-STATUS restoring BLOCKED.
"""

from datetime import date, datetime, time
from pathlib import Path
from typing import List, Optional, Union

from icalendar import Calendar as ICalendar

from eventix.calendar_store import Calendar
from eventix.errors import CalendarFormatError, InvalidRule
from eventix.event_models import Event
from eventix.lifecycle import LifecycleStatus
from eventix.logging_helper import Log
from eventix.recurrence import Frequency, RecurrenceRule, Weekday
from eventix.settings_manager import get_default_timezone
from eventix.time_models import TimeInstant

SUPPORTED_RRULE_PARTS = {"FREQ", "INTERVAL", "COUNT", "UNTIL", "BYDAY"}


def _instant(prop, default_zone: str) -> TimeInstant:
    """
    DTSTART/DTEND value as a TimeInstant.

    TZID values keep their wall-clock time in that zone, Z values are UTC,
    floating values and all-day dates are taken in default_zone.
    """
    value = prop.dt
    tzid = prop.params.get("TZID")
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    if tzid:
        return TimeInstant.from_local(value.replace(tzinfo=None), str(tzid))
    if value.utcoffset() is not None:
        return TimeInstant(value, "UTC")
    return TimeInstant.from_local(value, default_zone)


def _as_list(value) -> list:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _exception_dates(component, zone: str) -> List[date]:
    days = []
    for prop in _as_list(component.get("EXDATE")):
        has_tzid = bool(prop.params.get("TZID"))
        for item in prop.dts:
            value = item.dt
            if isinstance(value, datetime):
                if value.utcoffset() is not None and not has_tzid:
                    value = TimeInstant(value, zone).local_date
                else:
                    value = value.date()
            days.append(value)
    return days


def _rule(component, start: TimeInstant) -> Optional[RecurrenceRule]:
    recur = component.get("RRULE")
    if recur is None:
        return None
    unsupported = set(recur.keys()) - SUPPORTED_RRULE_PARTS
    if unsupported:
        raise InvalidRule(f"Unsupported RRULE parts: {', '.join(sorted(unsupported))}")

    until = None
    if recur.get("UNTIL"):
        value = recur["UNTIL"][0]
        if not isinstance(value, datetime):
            value = datetime.combine(value, time.max.replace(microsecond=0))
        until = TimeInstant.from_local(value, start.zone)
    weekdays = recur.get("BYDAY")
    try:
        frequency = Frequency(str(recur["FREQ"][0]).upper())
    except (KeyError, ValueError) as err:
        raise InvalidRule(f"Invalid RRULE frequency: {recur.get('FREQ')!r}") from err
    return RecurrenceRule(
        frequency=frequency,
        interval=int(recur.get("INTERVAL", [1])[0]),
        count=int(recur["COUNT"][0]) if recur.get("COUNT") else None,
        until=until,
        weekday_filter=frozenset(Weekday.parse(str(d)) for d in weekdays) if weekdays else None,
        exception_dates=frozenset(_exception_dates(component, start.zone)),
    )


def _status(component) -> LifecycleStatus:
    if str(component.get("X-EVENTIX-STATUS", "")).upper() == "BLOCKED":
        return LifecycleStatus.BLOCKED
    try:
        return LifecycleStatus.parse(str(component.get("STATUS", "CONFIRMED")))
    except ValueError as err:
        raise CalendarFormatError(str(err)) from err


def _attendees(component) -> List[str]:
    addresses = []
    for attendee in _as_list(component.get("ATTENDEE")):
        address = str(attendee)
        if address.lower().startswith("mailto:"):
            address = address[len("mailto:"):]
        addresses.append(address)
    return addresses


def _event(component, default_zone: str) -> Event:
    summary = component.get("SUMMARY")
    if summary is None or component.get("DTSTART") is None:
        raise CalendarFormatError("VEVENT is missing SUMMARY or DTSTART")
    start = _instant(component.get("DTSTART"), default_zone)
    if component.get("DTEND") is not None:
        end = _instant(component.get("DTEND"), start.zone).in_zone(start.zone)
    elif component.get("DURATION") is not None:
        end = start + component.get("DURATION").dt
    else:
        raise CalendarFormatError(f"VEVENT '{summary}' has neither DTEND nor DURATION")
    if end <= start:
        raise CalendarFormatError(f"VEVENT '{summary}' ends at or before its start")

    description = component.get("DESCRIPTION")
    location = component.get("LOCATION")
    uid = component.get("UID")
    return Event(
        title=str(summary),
        start=start,
        end=end,
        timezone=start.zone,
        description=str(description) if description is not None else None,
        location=str(location) if location is not None else None,
        attendees=_attendees(component),
        recurrence=_rule(component, start),
        status=_status(component),
        uid=str(uid) if uid is not None else None,
    )


def parse_ics(text: Union[str, bytes], name: Optional[str] = None,
              default_zone: Optional[str] = None) -> Calendar:
    """
    Build a Calendar from iCalendar text.

    Args:
        text: VCALENDAR text
        name: Calendar name when the text carries no X-WR-CALNAME
        default_zone: Zone for floating times (default: configured timezone)

    Returns:
        Calendar with one Event per VEVENT

    Raises:
        CalendarFormatError: text is not iCalendar or a VEVENT is incomplete
        EventixError: a VEVENT holds an invalid zone or rule
    """
    default_zone = default_zone or get_default_timezone()
    try:
        parsed = ICalendar.from_ical(text)
    except ValueError as err:
        raise CalendarFormatError(f"Calendar is not valid iCalendar: {err}") from err

    calname = parsed.get("X-WR-CALNAME")
    calzone = parsed.get("X-WR-TIMEZONE")
    calendar = Calendar(
        str(calname) if calname is not None else (name or "Imported"),
        timezone=str(calzone) if calzone is not None else default_zone,
    )
    for component in parsed.walk("VEVENT"):
        calendar.add_event(_event(component, default_zone))
    Log.kv({"stage": "ics", "action": "import", "name": calendar.name, "events": calendar.event_count()})
    return calendar


def import_ics(path: Union[str, Path], default_zone: Optional[str] = None) -> Calendar:
    """Read an .ics file; the file stem names the calendar when X-WR-CALNAME is absent."""
    path = Path(path)
    try:
        content = path.read_bytes()
    except OSError as err:
        raise CalendarFormatError(f"Unable to read calendar file {path}: {err}") from err
    calendar = parse_ics(content, path.stem, default_zone)
    Log.info(f"ICS file imported: {path}")
    return calendar
