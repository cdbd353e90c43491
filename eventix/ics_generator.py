"""
ICS Generator for creating iCalendar (.ics) files.
Generates RFC5545-compliant VCALENDAR text from a Calendar (one VEVENT per
event, recurrence kept as RRULE/EXDATE) or from materialized occurrences.
"""

import re
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Union

from dateutil import tz as dateutil_tz

from eventix.lifecycle import LifecycleStatus
from eventix.logging_helper import Log
from eventix.occurrence_set import Occurrence
from eventix.time_models import TimeInstant

PRODID = "-//Eventix//Eventix Occurrence Engine//EN"
MAX_LINE_OCTETS = 75

_STATUS_NAMES = {
    LifecycleStatus.CONFIRMED: "CONFIRMED",
    LifecycleStatus.TENTATIVE: "TENTATIVE",
    LifecycleStatus.CANCELLED: "CANCELLED",
    # iCalendar has no blocked status
    LifecycleStatus.BLOCKED: "CONFIRMED",
}


def _escape_ical_text(text: Optional[str]) -> str:
    """
    Escape text for iCalendar format (RFC5545).
    Escapes commas, semicolons, backslashes, and newlines.
    """
    if text is None:
        return ""
    # Replace backslashes first (before other replacements)
    text = text.replace('\\', '\\\\')
    text = text.replace(';', '\\;')
    text = text.replace(',', '\\,')
    text = text.replace('\r\n', '\\n').replace('\n', '\\n')
    return text.replace('\r', '')


def _fold_line(line: str) -> str:
    """
    Fold a content line to at most 75 octets per physical line.
    Continuation lines start with a single space, which counts toward the limit.
    Multi-byte UTF-8 characters are never split.
    """
    if len(line.encode('utf-8')) <= MAX_LINE_OCTETS:
        return line
    lines = []
    current = ""
    for char in line:
        test_line = current + char
        if len(test_line.encode('utf-8')) <= MAX_LINE_OCTETS:
            current = test_line
        else:
            lines.append(current)
            current = " " + char
    if current:
        lines.append(current)
    return '\r\n'.join(lines)


def _format_ical_datetime(dt: datetime) -> str:
    """
    Format datetime to iCalendar format (UTC).

    Args:
        dt: Aware datetime object

    Returns:
        Formatted datetime string (YYYYMMDDTHHMMSSZ)
    """
    return dt.astimezone(dateutil_tz.UTC).strftime('%Y%m%dT%H%M%SZ')


def _datetime_property(name: str, instant: TimeInstant) -> str:
    """DTSTART/DTEND/EXDATE line: UTC form for UTC instants, TZID form otherwise."""
    if instant.zone == "UTC":
        return f"{name}:{_format_ical_datetime(instant.utc)}"
    return f"{name};TZID={instant.zone}:{instant.local.strftime('%Y%m%dT%H%M%S')}"


def _status_lines(status: LifecycleStatus) -> List[str]:
    lines = [f"STATUS:{_STATUS_NAMES[status]}"]
    if status is LifecycleStatus.BLOCKED:
        lines.append("X-EVENTIX-STATUS:BLOCKED")
    return lines


def _exdate_lines(event) -> List[str]:
    rule = event.recurrence
    lines = []
    for day in sorted(rule.exception_dates):
        local_start = event.start.local
        excluded = TimeInstant.from_local(
            datetime(day.year, day.month, day.day, local_start.hour, local_start.minute, local_start.second),
            event.start.zone,
        )
        lines.append(_datetime_property("EXDATE", excluded))
    return lines


def _event_lines(event, dtstamp: datetime) -> List[str]:
    lines = [
        "BEGIN:VEVENT",
        f"UID:{event.identity}",
        f"DTSTAMP:{_format_ical_datetime(dtstamp)}",
        _datetime_property("DTSTART", event.start),
        _datetime_property("DTEND", event.end.in_zone(event.start.zone)),
        f"SUMMARY:{_escape_ical_text(event.title)}",
    ]
    if event.description:
        lines.append(f"DESCRIPTION:{_escape_ical_text(event.description)}")
    if event.location:
        lines.append(f"LOCATION:{_escape_ical_text(event.location)}")
    for attendee in event.attendees:
        address = attendee if attendee.lower().startswith("mailto:") else f"mailto:{attendee}"
        lines.append(f"ATTENDEE:{address}")
    lines.extend(_status_lines(event.status))
    if event.recurrence is not None:
        if event.recurrence.custom_predicate is not None:
            Log.warn(f"Event '{event.title}': custom recurrence predicate has no iCalendar form; exporting without it")
        lines.append(f"RRULE:{event.recurrence.rrule_value()}")
        lines.extend(_exdate_lines(event))
    lines.append("END:VEVENT")
    return lines


def _occurrence_lines(occurrence: Occurrence, dtstamp: datetime) -> List[str]:
    uid = occurrence.identity
    if occurrence.ordinal is not None:
        uid = f"{uid}-{occurrence.ordinal}"
    lines = [
        "BEGIN:VEVENT",
        f"UID:{uid}",
        f"DTSTAMP:{_format_ical_datetime(dtstamp)}",
        _datetime_property("DTSTART", occurrence.start),
        _datetime_property("DTEND", occurrence.end.in_zone(occurrence.start.zone)),
        f"SUMMARY:{_escape_ical_text(occurrence.title or occurrence.identity)}",
    ]
    lines.extend(_status_lines(occurrence.status))
    lines.append("END:VEVENT")
    return lines


def _wrap_calendar(body: List[str], name: Optional[str] = None, timezone: Optional[str] = None) -> str:
    ics_lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
    ]
    if name:
        ics_lines.append(f"X-WR-CALNAME:{_escape_ical_text(name)}")
    if timezone:
        ics_lines.append(f"X-WR-TIMEZONE:{timezone}")
    ics_lines.extend(body)
    ics_lines.append("END:VCALENDAR")
    return '\r\n'.join(_fold_line(line) for line in ics_lines) + '\r\n'


def generate_ics(calendar, dtstamp: Optional[datetime] = None) -> str:
    """
    Render a Calendar as iCalendar text.

    Args:
        calendar: Calendar whose events become VEVENTs
        dtstamp: Creation timestamp (default: now, UTC)

    Returns:
        VCALENDAR text with CRLF line endings
    """
    dtstamp = dtstamp or datetime.now(dateutil_tz.UTC)
    body: List[str] = []
    for event in calendar.events:
        body.extend(_event_lines(event, dtstamp))
    Log.kv({"stage": "ics", "calendar": calendar.name, "events": len(calendar.events)})
    return _wrap_calendar(body, calendar.name, calendar.timezone)


def occurrences_to_ics(occurrences: Iterable[Occurrence], name: Optional[str] = None,
                       dtstamp: Optional[datetime] = None) -> str:
    """Render materialized occurrences as individual (non-recurring) VEVENTs."""
    dtstamp = dtstamp or datetime.now(dateutil_tz.UTC)
    body: List[str] = []
    count = 0
    for occurrence in occurrences:
        body.extend(_occurrence_lines(occurrence, dtstamp))
        count += 1
    Log.kv({"stage": "ics", "occurrences": count})
    return _wrap_calendar(body, name)


def safe_filename(title: str) -> str:
    safe_title = re.sub(r'[^\w\s-]', '', title)[:50]
    return re.sub(r'[-\s]+', '_', safe_title) or "calendar"


def export_ics(calendar, path: Union[str, Path, None] = None) -> Path:
    """
    Write generate_ics(calendar) to path.

    Args:
        calendar: Calendar to export
        path: Target file, or a directory to place <calendar name>.ics in
            (default: current directory)

    Returns:
        Path to the written ICS file
    """
    Log.section("ICS Generator")
    target = Path(path) if path is not None else Path.cwd()
    if target.is_dir():
        target = target / f"{safe_filename(calendar.name)}.ics"
    content = generate_ics(calendar)
    try:
        target.write_text(content, encoding='utf-8', newline='')
    except OSError as err:
        Log.error(f"ICS export failed: {err}")
        Log.kv({"stage": "ics", "result": "failed", "error": str(err)}, level="error")
        raise
    Log.info(f"ICS file generated: {target}")
    Log.kv({"stage": "ics", "result": "success", "ics_path": str(target)})
    return target
