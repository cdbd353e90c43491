from datetime import date, datetime

import pytest

from eventix.calendar_store import Calendar
from eventix.event_models import EventBuilder
from eventix.ics_generator import (
    _escape_ical_text,
    _fold_line,
    export_ics,
    generate_ics,
    occurrences_to_ics,
)
from eventix.ics_reader import import_ics, parse_ics
from eventix.lifecycle import LifecycleStatus
from eventix.recurrence import RecurrenceRule
from eventix.time_models import ZonedInterval
from eventix.timezone_service import UTC

STAMP = datetime(2025, 1, 1, 12, 0, tzinfo=UTC)


def unfold(text):
    return text.replace("\r\n ", "")


@pytest.fixture
def calendar():
    cal = Calendar("Team, Inc", timezone="America/New_York")
    cal.add_event(
        EventBuilder()
        .title("Standup; daily")
        .uid("standup-1")
        .start("2025-03-10 09:00", "America/New_York")
        .duration_minutes(15)
        .recurrence(RecurrenceRule.daily().limit(5))
        .exception_date(date(2025, 3, 12))
        .attendee("dev@example.com")
        .build()
    )
    cal.add_event(
        EventBuilder()
        .title("Deploy freeze")
        .uid("freeze-1")
        .start("2025-03-14 00:00", "UTC")
        .duration_hours(24)
        .status(LifecycleStatus.BLOCKED)
        .build()
    )
    return cal


class TestGenerateIcs:

    def test_structure(self, calendar):
        text = generate_ics(calendar, STAMP)
        lines = text.split("\r\n")
        assert lines[0] == "BEGIN:VCALENDAR"
        assert lines[-2] == "END:VCALENDAR"
        assert lines[-1] == ""
        assert text.count("BEGIN:VEVENT") == 2
        assert "X-WR-CALNAME:Team\\, Inc" in lines
        assert "DTSTAMP:20250101T120000Z" in lines

    def test_zoned_event(self, calendar):
        lines = generate_ics(calendar, STAMP).split("\r\n")
        assert "UID:standup-1" in lines
        assert "DTSTART;TZID=America/New_York:20250310T090000" in lines
        assert "DTEND;TZID=America/New_York:20250310T091500" in lines
        assert "SUMMARY:Standup\\; daily" in lines
        assert "RRULE:FREQ=DAILY;COUNT=5" in lines
        assert "EXDATE;TZID=America/New_York:20250312T090000" in lines
        assert "ATTENDEE:mailto:dev@example.com" in lines

    def test_utc_event_and_blocked_status(self, calendar):
        lines = generate_ics(calendar, STAMP).split("\r\n")
        assert "DTSTART:20250314T000000Z" in lines
        assert "DTEND:20250315T000000Z" in lines
        assert "STATUS:CONFIRMED" in lines
        assert "X-EVENTIX-STATUS:BLOCKED" in lines

    def test_long_lines_folded(self, calendar):
        calendar.events[0].description = "Agenda: " + "é" * 100
        text = generate_ics(calendar, STAMP)
        assert all(len(line.encode("utf-8")) <= 75 for line in text.split("\r\n"))
        assert "DESCRIPTION:Agenda: " + "é" * 100 in unfold(text).split("\r\n")

    def test_export_to_directory(self, calendar, tmp_path):
        path = export_ics(calendar, tmp_path)
        assert path == tmp_path / "Team_Inc.ics"
        assert path.read_bytes().startswith(b"BEGIN:VCALENDAR\r\n")

    def test_export_to_file(self, calendar, tmp_path):
        target = tmp_path / "out.ics"
        assert export_ics(calendar, target) == target
        assert target.exists()


class TestImportRoundTrip:

    def test_events_survive(self, calendar):
        imported = parse_ics(generate_ics(calendar, STAMP))
        assert imported.name == "Team, Inc"
        assert imported.timezone == "America/New_York"
        assert imported.events == calendar.events
        assert imported.events[0].start.zone == "America/New_York"
        assert imported.events[1].status is LifecycleStatus.BLOCKED

    def test_occurrences_match(self, calendar):
        window = ZonedInterval.from_local("2025-03-09 00:00", "2025-03-16 00:00", "America/New_York")
        imported = parse_ics(generate_ics(calendar, STAMP))
        assert list(imported.events_between(window)) == list(calendar.events_between(window))

    def test_export_then_import_file(self, calendar, tmp_path):
        path = export_ics(calendar, tmp_path)
        assert import_ics(path).events == calendar.events


class TestOccurrencesToIcs:

    def test_one_vevent_per_occurrence(self, calendar):
        occurrences = calendar.events_on_date(date(2025, 3, 14), "UTC")
        text = occurrences_to_ics(occurrences, "Friday", STAMP)
        lines = text.split("\r\n")
        assert text.count("BEGIN:VEVENT") == 2
        assert "UID:standup-1-4" in lines
        assert "UID:freeze-1" in lines
        assert "RRULE" not in text


class TestEscaping:

    def test_escape(self):
        assert _escape_ical_text("a, b; c\\d\nx") == "a\\, b\\; c\\\\d\\nx"
        assert _escape_ical_text(None) == ""

    def test_fold_short_line_unchanged(self):
        assert _fold_line("SUMMARY:short") == "SUMMARY:short"

    def test_fold_boundary(self):
        line = "X" * 76
        folded = _fold_line(line).split("\r\n")
        assert folded == ["X" * 75, " X"]
